"""Retention sweeps for launches and their streams.

Old launches are either archived (kept as history, no more scrub checks)
or deleted along with their stream associations and stream markers.
Orphaned associations, whose launch no longer exists, are swept
separately.

None of this runs on the sync or read paths; it is driven by the admin
API and the background scheduler.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from launchwindow.config import Config
from launchwindow.core import Launch, stream_marker_key
from launchwindow.database import (
    archive_launches_before,
    count_streams_for_launches,
    delete_launches,
    delete_markers,
    delete_streams_for_launches,
    get_all_launch_ids,
    get_db,
    get_stream_launch_ids,
    list_launches_before,
)
from launchwindow.utilities.time import utc_now

logger = logging.getLogger(__name__)


@dataclass
class CleanupResult:
    """Outcome of a retention sweep."""

    launches_deleted: int = 0
    streams_deleted: int = 0
    launches_archived: int = 0
    launch_ids: list[str] = field(default_factory=list)
    cutoff: datetime | None = None

    def to_dict(self) -> dict:
        return {
            "launches_deleted": self.launches_deleted,
            "streams_deleted": self.streams_deleted,
            "launches_archived": self.launches_archived,
            "launch_ids": list(self.launch_ids),
            "cutoff": self.cutoff.isoformat() if self.cutoff else None,
        }


def _cutoff(hours_after_launch: int | None, now: datetime | None) -> datetime:
    hours = Config.CLEANUP_HOURS_AFTER_LAUNCH if hours_after_launch is None else hours_after_launch
    return (now or utc_now()) - timedelta(hours=hours)


def cleanup_old_launches(
    db_factory: Callable = get_db,
    hours_after_launch: int | None = None,
    now: datetime | None = None,
) -> CleanupResult:
    """Delete launches older than the cutoff and everything hanging off them."""
    cutoff = _cutoff(hours_after_launch, now)
    result = CleanupResult(cutoff=cutoff)

    with db_factory() as conn:
        old = list_launches_before(conn, cutoff)
        if not old:
            logger.debug("No old launches to clean up")
            return result

        launch_ids = [launch.id for launch in old]
        # Streams first so a failure can't leave fresh orphans behind
        result.streams_deleted = delete_streams_for_launches(conn, launch_ids)
        delete_markers(conn, [stream_marker_key(launch_id) for launch_id in launch_ids])
        result.launches_deleted = delete_launches(conn, launch_ids)
        result.launch_ids = launch_ids

    logger.info(
        f"Cleaned up {result.launches_deleted} launch(es) and {result.streams_deleted} "
        f"stream(s) older than {cutoff.isoformat()}"
    )
    return result


def archive_old_launches(
    db_factory: Callable = get_db,
    hours_after_launch: int | None = None,
    now: datetime | None = None,
) -> CleanupResult:
    """Mark launches older than the cutoff archived."""
    cutoff = _cutoff(hours_after_launch, now)
    with db_factory() as conn:
        archived = archive_launches_before(conn, cutoff, now)

    if archived:
        logger.info(f"Archived {archived} launch(es) older than {cutoff.isoformat()}")
    return CleanupResult(launches_archived=archived, cutoff=cutoff)


def cleanup_orphaned_streams(db_factory: Callable = get_db) -> dict:
    """Delete associations whose launch no longer exists."""
    with db_factory() as conn:
        orphaned = sorted(get_stream_launch_ids(conn) - get_all_launch_ids(conn))
        if not orphaned:
            return {"deleted": 0, "orphaned_launch_ids": []}
        deleted = delete_streams_for_launches(conn, orphaned)
        delete_markers(conn, [stream_marker_key(launch_id) for launch_id in orphaned])

    logger.info(f"Cleaned up {deleted} orphaned stream(s) across {len(orphaned)} launch id(s)")
    return {"deleted": deleted, "orphaned_launch_ids": orphaned}


def _launch_summary(launch: Launch) -> dict:
    return {
        "id": launch.id,
        "name": launch.name,
        "scheduled_at": launch.scheduled_at.isoformat(),
        "status": launch.status.value,
    }


def get_cleanup_stats(
    db_factory: Callable = get_db,
    hours_after_launch: int | None = None,
    now: datetime | None = None,
) -> dict:
    """What cleanup_old_launches would remove, without removing it."""
    cutoff = _cutoff(hours_after_launch, now)
    with db_factory() as conn:
        old = list_launches_before(conn, cutoff)
        stream_count = count_streams_for_launches(conn, [launch.id for launch in old])

    return {
        "old_launches_count": len(old),
        "associated_streams_count": stream_count,
        "cutoff": cutoff.isoformat(),
        "launches": [_launch_summary(launch) for launch in old],
    }
