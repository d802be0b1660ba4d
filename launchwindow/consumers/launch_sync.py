"""Launch directory sync.

Pulls the upcoming launch directory from the manifest provider and merges
it into the local store:

1. Fetch one page of upcoming launches (retried with backoff in the client)
2. Compare each record with the stored launch; a significant change
   (schedule slip beyond the policy threshold, or GO -> TBD/TBC) drops
   that launch's stream cache so the next read re-matches
3. Upsert every record, significant or not
4. Stamp the directory SyncMarker, even if some records were rejected

If the fetch itself fails the marker is left alone so the next read
retries promptly; callers fall back to what is already stored.
"""

import logging
import sqlite3
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol

from launchwindow.consumers.scrub_detector import ScrubPolicy
from launchwindow.core import DIRECTORY_MARKER_KEY, Launch
from launchwindow.database import get_db, get_launches_by_ids, set_marker, upsert_launch
from launchwindow.providers.launch_library import ManifestBatch
from launchwindow.services import RateLimiter, StreamCache
from launchwindow.utilities.time import utc_now

logger = logging.getLogger(__name__)

# Rate limiter key for directory fetches
DIRECTORY_RATE_KEY = "directory"


class LaunchDirectorySource(Protocol):
    """Upcoming launch directory fetch."""

    def fetch_upcoming(self) -> ManifestBatch: ...


@dataclass
class DirectorySyncResult:
    """Outcome of one directory sync."""

    fetched: int = 0
    inserted: int = 0
    updated: int = 0
    significant: list[str] = field(default_factory=list)  # Launch ids
    streams_invalidated: int = 0
    rejected: int = 0  # Malformed upstream records
    failed: list[str] = field(default_factory=list)  # Launch ids that couldn't be stored
    marker_written: bool = False
    skipped_reason: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def partial(self) -> bool:
        return bool(self.rejected or self.failed)

    def to_dict(self) -> dict:
        return {
            "fetched": self.fetched,
            "inserted": self.inserted,
            "updated": self.updated,
            "significant": list(self.significant),
            "streams_invalidated": self.streams_invalidated,
            "rejected": self.rejected,
            "failed": list(self.failed),
            "marker_written": self.marker_written,
            "skipped_reason": self.skipped_reason,
            "partial": self.partial,
        }


def is_significant_change(previous: Launch, current: Launch, policy: ScrubPolicy, now: datetime) -> bool:
    """Whether a directory update must invalidate the launch's streams."""
    if policy.is_significant_delay(previous.scheduled_at, current.scheduled_at, now):
        return True
    return previous.status.is_confirmed and current.status.is_uncertain


class LaunchDirectorySync:
    """Merges the upstream launch directory into the local store.

    Usage:
        sync = LaunchDirectorySync(LaunchLibraryClient(), stream_cache, rate_limiter)
        result = sync.sync()
    """

    def __init__(
        self,
        source: LaunchDirectorySource,
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

    def sync(self, now: datetime | None = None) -> DirectorySyncResult:
        """Run one directory sync.

        Returns a result with skipped_reason="rate_limited" when the
        directory key has no quota left this window.

        Raises:
            SourceError: The fetch failed; nothing was written
        """
        now = now or self._clock()
        result = DirectorySyncResult(started_at=now)

        if not self._rate_limiter.acquire(DIRECTORY_RATE_KEY, now):
            logger.info("[SYNC] Directory fetch rate limited, serving stored launches")
            result.skipped_reason = "rate_limited"
            return result

        logger.info("[SYNC] Refreshing launch directory")
        batch = self._source.fetch_upcoming()
        result.fetched = len(batch.launches)
        result.rejected = len(batch.rejected)

        with self._db() as conn:
            existing = get_launches_by_ids(conn, [launch.id for launch in batch.launches])

        # Invalidate before upserting so a reader never sees the new
        # schedule paired with streams matched against the old one
        for launch in batch.launches:
            previous = existing.get(launch.id)
            if previous is None or not is_significant_change(previous, launch, self._policy, now):
                continue
            result.significant.append(launch.id)
            logger.info(
                f"[SYNC] Significant change for {launch.name}: "
                f"{previous.status.value} @ {previous.scheduled_at.isoformat()} -> "
                f"{launch.status.value} @ {launch.scheduled_at.isoformat()}"
            )
            if self._stream_cache.invalidate(launch.id):
                result.streams_invalidated += 1

        with self._db() as conn:
            for launch in batch.launches:
                try:
                    upsert_launch(conn, launch, now)
                except sqlite3.Error as e:
                    logger.error(f"[SYNC] Failed to store launch {launch.id}: {e}")
                    result.failed.append(launch.id)
                    continue
                if launch.id in existing:
                    result.updated += 1
                else:
                    result.inserted += 1

            # Written even on partial success to avoid refresh storms
            set_marker(conn, DIRECTORY_MARKER_KEY, now)
            result.marker_written = True

        result.completed_at = self._clock()
        logger.info(
            f"[SYNC] Directory synced: {result.inserted} new, {result.updated} updated, "
            f"{len(result.significant)} significant, {result.rejected} rejected"
        )
        return result
