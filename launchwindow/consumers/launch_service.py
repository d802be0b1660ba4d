"""Launch window service.

Facade over the sync, detection and matching pieces. This is the only
thing the HTTP layer and the background sweep talk to.

Read path (list_upcoming_launches, get_launch, get_streams) always
answers with the best data it has: upstream or storage failures during
a refresh are logged and the stored data is served instead.

Admin path (refresh_directory, refresh_streams) surfaces failures as
RefreshError, stating whether anything was persisted first.

Refreshes are coordinated per resource key through SingleFlight, so a
user read, an admin refresh and the background sweep asking for the
same launch share one upstream round-trip.
"""

import logging
import sqlite3
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime

from launchwindow.config import (
    CRITICAL_WINDOW_AFTER,
    CRITICAL_WINDOW_BEFORE,
    PREWARM_HORIZON,
    RATE_MAX_CALLS,
    RATE_WINDOW,
    Config,
)
from launchwindow.consumers.launch_sync import DirectorySyncResult, LaunchDirectorySync
from launchwindow.consumers.scrub_detector import ScrubDetector, ScrubResult
from launchwindow.consumers.stream_matcher import (
    MatchRun,
    StreamMatcher,
    extract_identity,
    load_channel_roster,
)
from launchwindow.core import (
    DIRECTORY_MARKER_KEY,
    Launch,
    RefreshError,
    SourceError,
    StreamAssociation,
    StreamStatus,
    SyncMarker,
    presentation_order,
    stream_marker_key,
)
from launchwindow.core.types import STREAM_MARKER_PREFIX
from launchwindow.database import (
    count_launches,
    get_db,
    get_launch,
    get_marker,
    list_launches_between,
    list_markers,
    list_upcoming_launches,
)
from launchwindow.providers import LaunchLibraryClient, YouTubeClient
from launchwindow.services import (
    RateLimiter,
    SingleFlight,
    StreamCache,
    beyond_stream_horizon,
    directory_needs_refresh,
    marker_age,
    streams_need_refresh,
)
from launchwindow.utilities.time import utc_now

logger = logging.getLogger(__name__)

# SingleFlight key prefix for per-launch scrub checks
SCRUB_FLIGHT_PREFIX = "launch:"


class LaunchWindowService:
    """Launch directory and stream lookups with cache-first refresh.

    Usage:
        service = create_launch_service()
        launches = service.list_upcoming_launches(limit=10)
        streams = service.get_streams(launches[0].id)
    """

    def __init__(
        self,
        directory_sync: LaunchDirectorySync,
        scrub_detector: ScrubDetector,
        stream_matcher: StreamMatcher,
        stream_cache: StreamCache,
        rate_limiter: RateLimiter,
        single_flight: SingleFlight | None = None,
        db_factory: Callable = get_db,
        clock: Callable[[], datetime] = utc_now,
        resources: tuple = (),
    ):
        """Initialize the service.

        Args:
            directory_sync: Directory merge
            scrub_detector: Critical-window checker
            stream_matcher: Channel search + scoring
            stream_cache: Per-launch association cache
            rate_limiter: Limiter shared with sync and scrub detector (for stats)
            single_flight: Per-key refresh coordination
            db_factory: Factory returning a database connection context
            clock: Source of "now"
            resources: Objects with close() released by close()
        """
        self._directory_sync = directory_sync
        self._scrub_detector = scrub_detector
        self._matcher = stream_matcher
        self._stream_cache = stream_cache
        self._rate_limiter = rate_limiter
        self._flight = single_flight or SingleFlight()
        self._db = db_factory
        self._clock = clock
        self._resources = resources

    @property
    def scrub_detector(self) -> ScrubDetector:
        return self._scrub_detector

    @property
    def stream_cache(self) -> StreamCache:
        return self._stream_cache

    # =========================================================================
    # READ PATH
    # =========================================================================

    def list_upcoming_launches(self, limit: int = 20) -> list[Launch]:
        """Upcoming launches, soonest first. Refreshes the directory if stale."""
        now = self._clock()
        self._ensure_directory_fresh(now)
        with self._db() as conn:
            return list_upcoming_launches(conn, now, limit)

    def get_launch(self, launch_id: str) -> Launch | None:
        """One launch, re-checked upstream when inside the critical window."""
        with self._db() as conn:
            launch = get_launch(conn, launch_id)
        if launch is None:
            return None
        return self._scrub_check(launch, self._clock()).launch

    def get_streams(self, launch_id: str) -> list[StreamAssociation] | None:
        """Matched and manually added streams for a launch, best first.

        Returns:
            None if the launch is unknown, [] if it's beyond the stream
            horizon, otherwise cached or freshly matched associations
        """
        launch = self.get_launch(launch_id)
        if launch is None:
            return None

        now = self._clock()
        if beyond_stream_horizon(launch, now):
            logger.debug(f"[STREAMS] {launch.name} is beyond the stream horizon, skipping search")
            return []

        cached, last_refreshed = self._stream_cache.get(launch_id)
        marker = SyncMarker(stream_marker_key(launch_id), last_refreshed) if last_refreshed else None
        if not streams_need_refresh(marker, now):
            return presentation_order(cached)

        try:
            run = self._flight.do(
                stream_marker_key(launch_id),
                lambda: self._refresh_streams(launch, now, recheck=True),
            )
        except (SourceError, RefreshError, sqlite3.Error) as e:
            logger.warning(f"[STREAMS] Refresh failed for {launch_id}, serving cache: {e}")
            return presentation_order(cached)

        if run is None:
            return presentation_order(cached)
        # Read back so manually added streams are included
        stored, _ = self._stream_cache.get(launch_id)
        return presentation_order(stored)

    # =========================================================================
    # ADMIN PATH
    # =========================================================================

    def refresh_directory(self, force: bool = True) -> DirectorySyncResult:
        """Refresh the launch directory.

        Args:
            force: Ignore the directory TTL

        Raises:
            RefreshError: The fetch failed
        """
        now = self._clock()
        if not force:
            with self._db() as conn:
                marker = get_marker(conn, DIRECTORY_MARKER_KEY)
            if not directory_needs_refresh(marker, now):
                return DirectorySyncResult(skipped_reason="fresh", started_at=now)

        try:
            return self._flight.do(DIRECTORY_MARKER_KEY, lambda: self._directory_sync.sync(now))
        except SourceError as e:
            logger.error(f"[SYNC] Forced directory refresh failed: {e}")
            raise RefreshError(f"Directory refresh failed: {e}", partial_progress=False) from e
        except sqlite3.Error as e:
            logger.error(f"[SYNC] Forced directory refresh could not be stored: {e}")
            raise RefreshError(f"Directory refresh could not be stored: {e}", partial_progress=False) from e

    def refresh_streams(self, launch_id: str, force: bool = True) -> MatchRun | None:
        """Re-match streams for one launch.

        Returns:
            The match run, or None if the launch is unknown

        Raises:
            RefreshError: Nothing could be searched or stored
        """
        with self._db() as conn:
            launch = get_launch(conn, launch_id)
        if launch is None:
            return None

        now = self._clock()
        if not force and not streams_need_refresh(self._stream_cache.marker(launch_id), now):
            cached, _ = self._stream_cache.get(launch_id)
            return MatchRun(
                launch_id=launch_id,
                identity=extract_identity(launch.name),
                streams=presentation_order(cached),
                skipped_reason="fresh",
            )

        if beyond_stream_horizon(launch, now):
            return MatchRun(
                launch_id=launch_id,
                identity=extract_identity(launch.name),
                skipped_reason="beyond_horizon",
            )

        try:
            run = self._flight.do(
                stream_marker_key(launch_id),
                lambda: self._refresh_streams(launch, now, raise_on_empty=True),
            )
        except sqlite3.Error as e:
            logger.error(f"[STREAMS] Forced refresh for {launch_id} could not be stored: {e}")
            raise RefreshError(f"Stream refresh could not be stored: {e}", partial_progress=False) from e
        if run is None:
            # Joined a read-path refresh that found nothing usable
            raise RefreshError(f"Stream refresh for {launch_id} found no usable results", partial_progress=False)
        return run

    def add_manual_stream(self, stream: StreamAssociation) -> StreamAssociation | None:
        """Attach an operator-supplied stream to a launch.

        Manual streams are kept across re-matches and do not count as a
        refresh of the launch's stream set.

        Returns:
            The stored association, or None if the launch is unknown
        """
        with self._db() as conn:
            launch = get_launch(conn, stream.launch_id)
        if launch is None:
            return None

        now = self._clock()
        stored = replace(
            stream,
            manual=True,
            status=StreamStatus.COMPLETE if launch.status.is_terminal else stream.status,
            created_at=now,
        )
        self._stream_cache.add(stored, now)
        return stored

    def staleness_report(self) -> dict:
        """Freshness of every tracked resource."""
        now = self._clock()
        with self._db() as conn:
            directory_marker = get_marker(conn, DIRECTORY_MARKER_KEY)
            stream_markers = list_markers(conn, STREAM_MARKER_PREFIX)
            total_launches = count_launches(conn)

        directory_age = marker_age(directory_marker, now)
        stale_streams = [m for m in stream_markers if streams_need_refresh(m, now)]
        limiter_stats = self._rate_limiter.stats

        return {
            "generated_at": now.isoformat(),
            "directory": {
                "last_refreshed": directory_marker.last_refreshed.isoformat() if directory_marker else None,
                "age_seconds": int(directory_age.total_seconds()) if directory_age is not None else None,
                "stale": directory_needs_refresh(directory_marker, now),
            },
            "launches": total_launches,
            "streams": {
                "tracked": len(stream_markers),
                "stale": len(stale_streams),
                "cache": self._stream_cache.stats(),
            },
            "rate_limiter": {
                "max_calls": RATE_MAX_CALLS,
                "window_minutes": int(RATE_WINDOW.total_seconds() // 60),
                "tracked_keys": self._rate_limiter.tracked_keys(),
                **limiter_stats.to_dict(),
            },
            "in_flight": {
                "refreshes": self._flight.in_flight_count(),
                "shared": self._flight.shared_count,
            },
        }

    # =========================================================================
    # BACKGROUND SWEEP HELPERS
    # =========================================================================

    def check_critical_launches(self) -> dict:
        """Run the scrub check for every launch inside its critical window."""
        now = self._clock()
        with self._db() as conn:
            candidates = list_launches_between(
                conn, now - CRITICAL_WINDOW_AFTER, now + CRITICAL_WINDOW_BEFORE
            )

        outcomes: dict[str, int] = {}
        for launch in candidates:
            result = self._scrub_check(launch, now)
            outcomes[result.outcome.value] = outcomes.get(result.outcome.value, 0) + 1
        return {"checked": len(candidates), "outcomes": outcomes}

    def prewarm_streams(self) -> dict:
        """Match streams ahead of time for confirmed launches in the next 48h."""
        now = self._clock()
        with self._db() as conn:
            upcoming = list_launches_between(conn, now, now + PREWARM_HORIZON)

        warmed = 0
        skipped = 0
        for launch in upcoming:
            if launch.status.is_uncertain or launch.status.is_terminal:
                skipped += 1
                continue
            if not streams_need_refresh(self._stream_cache.marker(launch.id), now):
                skipped += 1
                continue
            streams = self.get_streams(launch.id)
            if streams is not None:
                warmed += 1
        return {"candidates": len(upcoming), "warmed": warmed, "skipped": skipped}

    def refresh_directory_if_stale(self) -> dict:
        now = self._clock()
        refreshed = self._ensure_directory_fresh(now)
        return {"refreshed": refreshed}

    def close(self) -> None:
        """Release HTTP clients."""
        for resource in self._resources:
            resource.close()

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _ensure_directory_fresh(self, now: datetime) -> bool:
        """Sync the directory if its marker is stale. Never raises."""
        try:
            with self._db() as conn:
                marker = get_marker(conn, DIRECTORY_MARKER_KEY)
            if not directory_needs_refresh(marker, now):
                return False
            result = self._flight.do(DIRECTORY_MARKER_KEY, lambda: self._directory_sync.sync(now))
        except (SourceError, sqlite3.Error) as e:
            logger.warning(f"[SYNC] Directory refresh failed, serving stored launches: {e}")
            return False
        return result.marker_written

    def _scrub_check(self, launch: Launch, now: datetime) -> ScrubResult:
        """Scrub-check one launch; concurrent callers share one upstream fetch."""
        return self._flight.do(
            f"{SCRUB_FLIGHT_PREFIX}{launch.id}",
            lambda: self._scrub_detector.check(launch, now),
        )

    def _refresh_streams(
        self,
        launch: Launch,
        now: datetime,
        raise_on_empty: bool = False,
        recheck: bool = False,
    ) -> MatchRun | None:
        """Match and store streams for one launch.

        A run in which no channel could be searched leaves the cache as is
        so the next read retries. With recheck, a marker written by a
        refresh that finished after the caller's staleness check is
        honored instead of searching again.
        """
        if recheck and not streams_need_refresh(self._stream_cache.marker(launch.id), now):
            cached, _ = self._stream_cache.get(launch.id)
            return MatchRun(
                launch_id=launch.id,
                identity=extract_identity(launch.name),
                streams=presentation_order(cached),
                skipped_reason="fresh",
            )

        run = self._matcher.match(launch)

        searched = run.calls_made - len(run.channels_failed)
        if run.skipped_reason or searched <= 0:
            reason = run.skipped_reason or "all channel searches failed"
            logger.warning(f"[STREAMS] No usable search results for {launch.id} ({reason})")
            if raise_on_empty:
                raise RefreshError(f"Stream refresh for {launch.id} failed: {reason}", partial_progress=False)
            return None

        if launch.status.is_terminal:
            # Outcome is known, re-matched coverage is a replay
            run.streams = [replace(stream, status=StreamStatus.COMPLETE) for stream in run.streams]

        self._stream_cache.put(launch.id, run.streams, now)
        return run


def create_launch_service(db_factory: Callable = get_db) -> LaunchWindowService:
    """Wire the service with real upstream clients from Config."""
    launch_client = LaunchLibraryClient()
    search_client = YouTubeClient()
    stream_cache = StreamCache(db_factory)
    rate_limiter = RateLimiter()

    return LaunchWindowService(
        directory_sync=LaunchDirectorySync(launch_client, stream_cache, rate_limiter, db_factory),
        scrub_detector=ScrubDetector(launch_client, stream_cache, rate_limiter, db_factory),
        stream_matcher=StreamMatcher(search_client, channels=load_channel_roster(Config.CHANNEL_ROSTER_PATH)),
        stream_cache=stream_cache,
        rate_limiter=rate_limiter,
        db_factory=db_factory,
        resources=(launch_client, search_client),
    )
