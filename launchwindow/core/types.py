"""Core data types for Launch Window.

All data structures are pure dataclasses with attribute access.
Provider-scoped IDs: launches carry the manifest provider's id, stream
associations carry the video platform's id plus a platform tag.

Use attribute access: launch.name, launch.scheduled_at, stream.score, etc.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum

# Sentinel for nested manifest fields the provider omitted
UNKNOWN = "Unknown"

DIRECTORY_MARKER_KEY = "launches:directory"
STREAM_MARKER_PREFIX = "streams:"


def stream_marker_key(launch_id: str) -> str:
    """SyncMarker key for one launch's stream set."""
    return f"{STREAM_MARKER_PREFIX}{launch_id}"


class LaunchStatus(Enum):
    """Internal launch status vocabulary."""

    PENDING = "pending"
    GO = "go"
    TBD = "tbd"
    TBC = "tbc"
    SUCCESS = "success"
    FAILURE = "failure"
    PARTIAL_FAILURE = "partial_failure"
    ARCHIVED = "archived"

    @property
    def is_terminal(self) -> bool:
        """Outcome is known - no further scrub checks."""
        return self in _TERMINAL_STATUSES

    @property
    def is_confirmed(self) -> bool:
        return self is LaunchStatus.GO

    @property
    def is_uncertain(self) -> bool:
        return self in (LaunchStatus.TBD, LaunchStatus.TBC)


_TERMINAL_STATUSES = frozenset(
    {LaunchStatus.SUCCESS, LaunchStatus.FAILURE, LaunchStatus.PARTIAL_FAILURE}
)


class StreamStatus(Enum):
    """Lifecycle of a matched stream."""

    UPCOMING = "upcoming"
    SCRUBBED = "scrubbed"  # Matched against a schedule that has since slipped
    COMPLETE = "complete"  # Launch reached a terminal outcome


@dataclass(frozen=True)
class Vehicle:
    """Launch vehicle."""

    name: str = UNKNOWN
    configuration: str = UNKNOWN  # Full configuration name, e.g. "Falcon 9 Block 5"


@dataclass(frozen=True)
class Mission:
    """Mission carried by a launch."""

    name: str | None = None
    description: str | None = None
    orbit: str = UNKNOWN
    type: str | None = None


@dataclass(frozen=True)
class Pad:
    """Launch pad and its site."""

    name: str = UNKNOWN
    location: str = UNKNOWN


@dataclass
class Launch:
    """A single scheduled launch."""

    id: str
    name: str
    scheduled_at: datetime
    status: LaunchStatus
    vehicle: Vehicle = field(default_factory=Vehicle)
    mission: Mission = field(default_factory=Mission)
    pad: Pad = field(default_factory=Pad)
    provider: str = UNKNOWN
    image_url: str | None = None
    webcast_live: bool = False

    # Provider-side last update, then local bookkeeping
    last_modified: datetime | None = None
    updated_at: datetime | None = None

    def with_changes(self, **changes) -> "Launch":
        """Copy with the given fields replaced."""
        return replace(self, **changes)


@dataclass(frozen=True)
class VideoCandidate:
    """A video returned by the search provider, before matching."""

    video_id: str
    title: str
    description: str
    channel_id: str
    channel_name: str
    scheduled_start: datetime | None = None
    thumbnail_url: str | None = None
    platform: str = "youtube"
    is_live: bool = False

    @property
    def url(self) -> str:
        return f"https://www.youtube.com/watch?v={self.video_id}"

    @property
    def text(self) -> str:
        """Combined title and description, lowercased, for matching."""
        return f"{self.title} {self.description}".lower()


@dataclass
class StreamAssociation:
    """A video matched to a launch."""

    video_id: str
    launch_id: str
    platform: str
    title: str
    channel_name: str | None = None
    channel_id: str | None = None
    scheduled_start: datetime | None = None
    status: StreamStatus = StreamStatus.UPCOMING
    score: float = 0.0
    url: str | None = None
    thumbnail_url: str | None = None
    language: str = "en"
    is_live: bool = False
    manual: bool = False
    created_at: datetime | None = None

    @classmethod
    def from_candidate(
        cls,
        candidate: VideoCandidate,
        launch_id: str,
        score: float,
        created_at: datetime | None = None,
    ) -> "StreamAssociation":
        return cls(
            video_id=candidate.video_id,
            launch_id=launch_id,
            platform=candidate.platform,
            title=candidate.title,
            channel_name=candidate.channel_name,
            channel_id=candidate.channel_id,
            scheduled_start=candidate.scheduled_start,
            score=score,
            url=candidate.url,
            thumbnail_url=candidate.thumbnail_url,
            is_live=candidate.is_live,
            created_at=created_at,
        )


@dataclass(frozen=True)
class SyncMarker:
    """Last successful refresh of a tracked resource."""

    resource_key: str
    last_refreshed: datetime


def presentation_order(streams: list[StreamAssociation]) -> list[StreamAssociation]:
    """Sort by score descending, then scheduled start ascending.

    Streams without a scheduled start sort last within their score.
    """
    return sorted(
        streams,
        key=lambda s: (
            -s.score,
            s.scheduled_start is None,
            s.scheduled_start.timestamp() if s.scheduled_start else 0.0,
        ),
    )
