"""Pydantic models for API request/response."""

from datetime import datetime

from typing import Literal

from pydantic import BaseModel, Field

from launchwindow.core import Launch, StreamAssociation

# =============================================================================
# LAUNCHES
# =============================================================================


class VehicleModel(BaseModel):
    name: str
    configuration: str


class MissionModel(BaseModel):
    name: str | None = None
    description: str | None = None
    orbit: str
    type: str | None = None


class PadModel(BaseModel):
    name: str
    location: str


class LaunchResponse(BaseModel):
    """A launch as served to clients."""

    id: str
    name: str
    scheduled_at: datetime
    status: str
    vehicle: VehicleModel
    mission: MissionModel
    pad: PadModel
    provider: str
    image_url: str | None = None
    webcast_live: bool = False
    last_modified: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_launch(cls, launch: Launch) -> "LaunchResponse":
        return cls(
            id=launch.id,
            name=launch.name,
            scheduled_at=launch.scheduled_at,
            status=launch.status.value,
            vehicle=VehicleModel(name=launch.vehicle.name, configuration=launch.vehicle.configuration),
            mission=MissionModel(
                name=launch.mission.name,
                description=launch.mission.description,
                orbit=launch.mission.orbit,
                type=launch.mission.type,
            ),
            pad=PadModel(name=launch.pad.name, location=launch.pad.location),
            provider=launch.provider,
            image_url=launch.image_url,
            webcast_live=launch.webcast_live,
            last_modified=launch.last_modified,
            updated_at=launch.updated_at,
        )


# =============================================================================
# STREAMS
# =============================================================================


class StreamResponse(BaseModel):
    """A video matched to a launch."""

    video_id: str
    launch_id: str
    platform: str
    title: str
    channel_name: str | None = None
    channel_id: str | None = None
    scheduled_start: datetime | None = None
    status: str
    score: float
    url: str | None = None
    thumbnail_url: str | None = None
    language: str = "en"
    is_live: bool = False
    manual: bool = False

    @classmethod
    def from_stream(cls, stream: StreamAssociation) -> "StreamResponse":
        return cls(
            video_id=stream.video_id,
            launch_id=stream.launch_id,
            platform=stream.platform,
            title=stream.title,
            channel_name=stream.channel_name,
            channel_id=stream.channel_id,
            scheduled_start=stream.scheduled_start,
            status=stream.status.value,
            score=stream.score,
            url=stream.url,
            thumbnail_url=stream.thumbnail_url,
            language=stream.language,
            is_live=stream.is_live,
            manual=stream.manual,
        )


class LaunchStreamsResponse(BaseModel):
    launch_id: str
    count: int
    streams: list[StreamResponse]


# =============================================================================
# ADMIN
# =============================================================================


class DirectoryRefreshResponse(BaseModel):
    """Result of a directory refresh."""

    fetched: int
    inserted: int
    updated: int
    significant: list[str]
    streams_invalidated: int
    rejected: int
    failed: list[str]
    marker_written: bool
    skipped_reason: str | None = None
    partial: bool


class StreamRefreshResponse(BaseModel):
    """Result of a per-launch stream refresh."""

    launch_id: str
    vehicle: str
    mission_class: str
    streams: int
    calls_made: int
    candidates_seen: int
    duplicates_dropped: int
    channels_failed: list[str]
    channels_skipped: list[str]
    skipped_reason: str | None = None


class CleanupRequest(BaseModel):
    """Retention sweep parameters."""

    hours_after_launch: int | None = None


class CleanupResponse(BaseModel):
    launches_deleted: int
    streams_deleted: int
    launches_archived: int
    launch_ids: list[str]
    cutoff: str | None = None


class RefreshErrorResponse(BaseModel):
    detail: str
    partial_progress: bool


class ManualStreamRequest(BaseModel):
    """Operator-supplied stream for a launch."""

    launch_id: str
    platform: Literal["youtube", "twitter", "twitch"] = "youtube"
    video_id: str = Field(min_length=1)
    title: str = Field(min_length=1)
    url: str | None = None
    channel_name: str | None = None
    channel_id: str | None = None
    thumbnail_url: str | None = None
    language: str = "en"
    scheduled_start: datetime | None = None
    is_live: bool = False
    score: float = Field(1.0, ge=0.0, le=1.0)

    def to_stream(self) -> StreamAssociation:
        url = self.url
        if url is None and self.platform == "youtube":
            url = f"https://www.youtube.com/watch?v={self.video_id}"
        return StreamAssociation(
            video_id=self.video_id,
            launch_id=self.launch_id,
            platform=self.platform,
            title=self.title,
            channel_name=self.channel_name,
            channel_id=self.channel_id,
            scheduled_start=self.scheduled_start,
            score=self.score,
            url=url,
            thumbnail_url=self.thumbnail_url,
            language=self.language,
            is_live=self.is_live,
        )
