"""Scrub detection for launches close to liftoff.

Inside the critical window (1 hour before to 10 minutes after the
scheduled time) a read of a launch first re-fetches the authoritative
record and classifies what changed:

    COMPLETE        terminal outcome reported -> streams flagged complete
    SCRUBBED        time moved by more than the policy threshold
    STATUS_CHANGED  status moved, time materially unchanged
    ON_TIME         nothing material changed

Outside the window, for terminal launches, or when the per-launch rate
limit is spent, the check is a passthrough.

The check runs on a user-facing read path, so it never raises: any
upstream or storage failure returns the last-known-good record.
"""

import logging
import sqlite3
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Protocol

from launchwindow.config import (
    BACKGROUND_DELAY_THRESHOLD,
    CRITICAL_WINDOW_AFTER,
    CRITICAL_WINDOW_BEFORE,
    STREAM_RESET_DELAY,
    Config,
)
from launchwindow.core import Launch, LaunchStatus, NotFoundError, SourceError
from launchwindow.database import get_db, update_launch_schedule
from launchwindow.services import RateLimiter, StreamCache
from launchwindow.utilities.time import utc_now

logger = logging.getLogger(__name__)


class LaunchRecordSource(Protocol):
    """Single authoritative launch lookup."""

    def fetch_launch(self, launch_id: str) -> Launch: ...


def in_critical_window(scheduled_at: datetime, now: datetime) -> bool:
    """True if now is within [scheduled - 1h, scheduled + 10min]."""
    return scheduled_at - CRITICAL_WINDOW_BEFORE <= now <= scheduled_at + CRITICAL_WINDOW_AFTER


@dataclass(frozen=True)
class ScrubPolicy:
    """Single policy for what counts as a significant schedule slip.

    The threshold depends on how close to launch the comparison happens:
    tight inside the critical window, loose for background comparisons
    days out. Directory sync and the scrub detector both ask this policy.
    """

    critical_threshold: timedelta = field(default_factory=Config.critical_delay_threshold)
    background_threshold: timedelta = BACKGROUND_DELAY_THRESHOLD

    def delay_threshold(self, scheduled_at: datetime, now: datetime) -> timedelta:
        if in_critical_window(scheduled_at, now):
            return self.critical_threshold
        return self.background_threshold

    def is_significant_delay(self, old: datetime, new: datetime, now: datetime) -> bool:
        return abs(new - old) > self.delay_threshold(old, now)


class ScrubOutcome(Enum):
    """Result classification of one scrub check."""

    COMPLETE = "complete"
    SCRUBBED = "scrubbed"
    STATUS_CHANGED = "status_changed"
    ON_TIME = "on_time"

    # Passthroughs - no fetch was made, or it produced nothing usable
    OUTSIDE_WINDOW = "outside_window"
    TERMINAL = "terminal"
    RATE_LIMITED = "rate_limited"
    UNAVAILABLE = "unavailable"


@dataclass
class ScrubResult:
    """Outcome of a scrub check. launch is always the best-known record."""

    outcome: ScrubOutcome
    launch: Launch
    delay: timedelta | None = None
    streams_invalidated: bool = False
    streams_completed: int = 0
    error: str | None = None

    @property
    def changed(self) -> bool:
        return self.outcome in (
            ScrubOutcome.COMPLETE,
            ScrubOutcome.SCRUBBED,
            ScrubOutcome.STATUS_CHANGED,
        )


class ScrubDetector:
    """Re-checks launches inside the critical window.

    Usage:
        detector = ScrubDetector(launch_client, stream_cache, rate_limiter)
        result = detector.check(launch)
        launch = result.launch
    """

    def __init__(
        self,
        source: LaunchRecordSource,
        stream_cache: StreamCache,
        rate_limiter: RateLimiter,
        db_factory: Callable = get_db,
        policy: ScrubPolicy | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._source = source
        self._stream_cache = stream_cache
        self._rate_limiter = rate_limiter
        self._db = db_factory
        self._policy = policy or ScrubPolicy()
        self._clock = clock

    @property
    def policy(self) -> ScrubPolicy:
        return self._policy

    def check(self, launch: Launch, now: datetime | None = None) -> ScrubResult:
        """Classify and persist any change to one launch. Never raises."""
        now = now or self._clock()

        if launch.status.is_terminal or launch.status is LaunchStatus.ARCHIVED:
            return ScrubResult(ScrubOutcome.TERMINAL, launch)

        if not in_critical_window(launch.scheduled_at, now):
            return ScrubResult(ScrubOutcome.OUTSIDE_WINDOW, launch)

        if not self._rate_limiter.acquire(launch.id, now):
            logger.debug(f"[SCRUB] Rate limit reached for {launch.id}, using cached record")
            return ScrubResult(ScrubOutcome.RATE_LIMITED, launch)

        try:
            fresh = self._source.fetch_launch(launch.id)
        except NotFoundError:
            logger.info(f"[SCRUB] {launch.id} not found upstream, keeping cached record")
            return ScrubResult(ScrubOutcome.UNAVAILABLE, launch, error="not_found")
        except SourceError as e:
            logger.warning(f"[SCRUB] Check failed for {launch.id}: {e}")
            return ScrubResult(ScrubOutcome.UNAVAILABLE, launch, error=str(e))

        try:
            return self._classify(launch, fresh, now)
        except sqlite3.Error as e:
            logger.error(f"[SCRUB] Failed to persist change for {launch.id}: {e}")
            return ScrubResult(ScrubOutcome.UNAVAILABLE, launch, error=str(e))

    def _classify(self, launch: Launch, fresh: Launch, now: datetime) -> ScrubResult:
        delay = fresh.scheduled_at - launch.scheduled_at

        if fresh.status.is_terminal:
            updated = self._persist(launch, now, scheduled_at=fresh.scheduled_at, status=fresh.status)
            completed = self._stream_cache.mark_complete(launch.id)
            logger.info(
                f"[SCRUB] {launch.name}: {fresh.status.value}, "
                f"{completed} stream(s) marked complete"
            )
            return ScrubResult(ScrubOutcome.COMPLETE, updated, delay=delay, streams_completed=completed)

        if abs(delay) > self._policy.delay_threshold(launch.scheduled_at, now):
            updated = self._persist(launch, now, scheduled_at=fresh.scheduled_at, status=fresh.status)
            day_changed = fresh.scheduled_at.date() != launch.scheduled_at.date()
            invalidated = False
            if day_changed or abs(delay) > STREAM_RESET_DELAY:
                # Keep the old associations visible until the re-match lands
                self._stream_cache.invalidate(launch.id, retain_as_scrubbed=True)
                invalidated = True
            logger.info(
                f"[SCRUB] {launch.name}: scrubbed, moved {_format_delay(delay)} "
                f"to {fresh.scheduled_at.isoformat()}"
                + (" (streams reset)" if invalidated else "")
            )
            return ScrubResult(ScrubOutcome.SCRUBBED, updated, delay=delay, streams_invalidated=invalidated)

        if fresh.status is not launch.status:
            updated = self._persist(launch, now, status=fresh.status)
            logger.info(f"[SCRUB] {launch.name}: status {launch.status.value} -> {fresh.status.value}")
            return ScrubResult(ScrubOutcome.STATUS_CHANGED, updated, delay=delay)

        return ScrubResult(ScrubOutcome.ON_TIME, launch, delay=delay)

    def _persist(
        self,
        launch: Launch,
        now: datetime,
        scheduled_at: datetime | None = None,
        status: LaunchStatus | None = None,
    ) -> Launch:
        with self._db() as conn:
            updated = update_launch_schedule(
                conn, launch.id, scheduled_at=scheduled_at, status=status, now=now
            )
        if updated is not None:
            return updated

        # Not stored locally (e.g. swept by retention) - reflect the change anyway
        changes = {"updated_at": now}
        if scheduled_at is not None:
            changes["scheduled_at"] = scheduled_at
        if status is not None:
            changes["status"] = status
        return launch.with_changes(**changes)

    def quick_update(self, launch_id: str, now: datetime | None = None) -> bool:
        """Fetch one launch and persist its time/status without classifying.

        Used by the background sweep for launches it only wants to keep
        current. Rate limited like check().

        Returns:
            True if the stored record was updated
        """
        now = now or self._clock()
        if not self._rate_limiter.acquire(launch_id, now):
            return False

        try:
            fresh = self._source.fetch_launch(launch_id)
        except SourceError as e:
            logger.debug(f"[SCRUB] Quick update failed for {launch_id}: {e}")
            return False

        try:
            with self._db() as conn:
                updated = update_launch_schedule(
                    conn,
                    launch_id,
                    scheduled_at=fresh.scheduled_at,
                    status=fresh.status,
                    now=now,
                )
        except sqlite3.Error as e:
            logger.error(f"[SCRUB] Quick update could not be stored for {launch_id}: {e}")
            return False
        return updated is not None


def _format_delay(delay: timedelta) -> str:
    minutes = int(delay.total_seconds() // 60)
    sign = "+" if minutes >= 0 else "-"
    hours, mins = divmod(abs(minutes), 60)
    return f"{sign}{hours}h{mins:02d}m"
