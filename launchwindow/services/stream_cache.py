"""Stream cache.

Stores the Stream Matcher's output per launch along with a SyncMarker
(key "streams:<launch_id>") that the Staleness Gate checks against the
12 hour stream TTL.

Invalidation removes the marker so the next read re-matches. By default
the associations are deleted too. A scrub keeps them as history instead,
flagged SCRUBBED, so readers still have something to show until the
re-match lands; the next put() supersedes them wholesale.
"""

import logging
import threading
from collections.abc import Callable
from datetime import datetime

from launchwindow.core import StreamAssociation, StreamStatus, SyncMarker, stream_marker_key
from launchwindow.database import (
    add_stream,
    delete_marker,
    delete_streams_for_launches,
    get_db,
    get_marker,
    get_streams_for_launch,
    replace_streams_for_launch,
    set_marker,
    set_stream_status,
)

logger = logging.getLogger(__name__)


class StreamCache:
    """Per-launch stream association cache backed by SQLite."""

    def __init__(self, db_factory: Callable = get_db):
        self._db = db_factory
        self._stats_lock = threading.Lock()
        self._stats = {
            "hits": 0,
            "misses": 0,
            "puts": 0,
            "invalidations": 0,
        }

    def get(self, launch_id: str) -> tuple[list[StreamAssociation], datetime | None]:
        """Cached associations and when they were last refreshed.

        last_refreshed is None when there is no live cache entry (never
        matched, or invalidated); associations may still be non-empty in
        that case if they were retained as scrubbed history.
        """
        with self._db() as conn:
            marker = get_marker(conn, stream_marker_key(launch_id))
            streams = get_streams_for_launch(conn, launch_id)

        if marker is None:
            self._count("misses")
            return streams, None
        self._count("hits")
        return streams, marker.last_refreshed

    def marker(self, launch_id: str) -> SyncMarker | None:
        with self._db() as conn:
            return get_marker(conn, stream_marker_key(launch_id))

    def put(self, launch_id: str, associations: list[StreamAssociation], now: datetime) -> None:
        """Replace a launch's matched associations and stamp the marker.

        Manually added associations are kept.
        """
        with self._db() as conn:
            written = replace_streams_for_launch(conn, launch_id, associations, now)
            set_marker(conn, stream_marker_key(launch_id), now)
        self._count("puts")
        logger.debug(f"[CACHE] Stored {written} stream(s) for launch {launch_id}")

    def add(self, association: StreamAssociation, now: datetime) -> None:
        """Store one association alongside the cached set. The marker is untouched."""
        with self._db() as conn:
            add_stream(conn, association, now)
        logger.info(f"[CACHE] Added stream {association.video_id} to launch {association.launch_id}")

    def invalidate(self, launch_id: str, *, retain_as_scrubbed: bool = False) -> bool:
        """Drop the cache entry for a launch. Idempotent.

        Args:
            launch_id: Launch to invalidate
            retain_as_scrubbed: Keep associations as SCRUBBED history instead
                of deleting them

        Returns:
            True if there was anything to invalidate
        """
        with self._db() as conn:
            had_marker = delete_marker(conn, stream_marker_key(launch_id))
            if retain_as_scrubbed:
                touched = set_stream_status(conn, launch_id, StreamStatus.SCRUBBED)
            else:
                touched = delete_streams_for_launches(conn, [launch_id])

        changed = had_marker or touched > 0
        if changed:
            self._count("invalidations")
            action = "flagged scrubbed" if retain_as_scrubbed else "deleted"
            logger.info(f"[CACHE] Invalidated streams for launch {launch_id} ({touched} {action})")
        return changed

    def mark_complete(self, launch_id: str) -> int:
        """Flag every association of a launch COMPLETE. Returns rows changed."""
        with self._db() as conn:
            return set_stream_status(conn, launch_id, StreamStatus.COMPLETE)

    def stats(self) -> dict:
        with self._stats_lock:
            return dict(self._stats)

    def _count(self, name: str) -> None:
        # Read paths run on concurrent request threads
        with self._stats_lock:
            self._stats[name] += 1
