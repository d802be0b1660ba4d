"""Staleness gate.

Pure TTL checks against SyncMarkers. One TTL per cached resource class:
- Launch directory: 1 hour
- A launch's stream set: 12 hours

Stream refresh has two extra rules that depend on the launch, not the
marker: launches beyond the 72h horizon are never searched (nothing is
scheduled on the channels that far out), while launches in the past are
still searched so replays can be found.
"""

from datetime import datetime, timedelta

from launchwindow.config import DIRECTORY_TTL, STREAM_HORIZON, STREAM_TTL
from launchwindow.core import Launch, SyncMarker


def needs_refresh(marker: SyncMarker | None, ttl: timedelta, now: datetime) -> bool:
    """True iff there is no marker or it is at least ttl old.

    The boundary is inclusive: elapsed == ttl needs a refresh.
    """
    if marker is None:
        return True
    return now - marker.last_refreshed >= ttl


def directory_needs_refresh(marker: SyncMarker | None, now: datetime) -> bool:
    return needs_refresh(marker, DIRECTORY_TTL, now)


def streams_need_refresh(marker: SyncMarker | None, now: datetime) -> bool:
    return needs_refresh(marker, STREAM_TTL, now)


def beyond_stream_horizon(launch: Launch, now: datetime, horizon: timedelta = STREAM_HORIZON) -> bool:
    """True if the launch is too far out to search for streams.

    Past launches are never beyond the horizon.
    """
    return launch.scheduled_at - now > horizon


def marker_age(marker: SyncMarker | None, now: datetime) -> timedelta | None:
    """Elapsed time since the marker was written, or None."""
    if marker is None:
        return None
    return now - marker.last_refreshed
