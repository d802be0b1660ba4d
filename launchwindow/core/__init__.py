"""Core types and errors."""

from launchwindow.core.errors import (
    ClientSourceError,
    MalformedRecordError,
    NotFoundError,
    QuotaExceededError,
    RefreshError,
    SourceError,
    TransientSourceError,
)
from launchwindow.core.types import (
    DIRECTORY_MARKER_KEY,
    UNKNOWN,
    Launch,
    LaunchStatus,
    Mission,
    Pad,
    StreamAssociation,
    StreamStatus,
    SyncMarker,
    Vehicle,
    VideoCandidate,
    presentation_order,
    stream_marker_key,
)

__all__ = [
    "ClientSourceError",
    "DIRECTORY_MARKER_KEY",
    "Launch",
    "LaunchStatus",
    "MalformedRecordError",
    "Mission",
    "NotFoundError",
    "Pad",
    "QuotaExceededError",
    "RefreshError",
    "SourceError",
    "StreamAssociation",
    "StreamStatus",
    "SyncMarker",
    "TransientSourceError",
    "UNKNOWN",
    "Vehicle",
    "VideoCandidate",
    "presentation_order",
    "stream_marker_key",
]
