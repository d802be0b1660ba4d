"""Shared fixtures: temp database, fake clock and fake upstream sources."""

from datetime import UTC, datetime, timedelta

import pytest

from launchwindow.core import (
    Launch,
    LaunchStatus,
    Mission,
    NotFoundError,
    Pad,
    Vehicle,
    VideoCandidate,
)
from launchwindow.database import init_db, make_db_factory
from launchwindow.providers.launch_library import ManifestBatch
from launchwindow.services import RateLimiter, StreamCache

NOW = datetime(2025, 3, 10, 12, 0, tzinfo=UTC)


class FakeClock:
    """Mutable clock; call it to get now."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


def make_launch(
    launch_id: str = "ll-1",
    name: str = "Falcon 9 Block 5 | Starlink Group 6-87",
    scheduled_at: datetime | None = None,
    status: LaunchStatus = LaunchStatus.GO,
    **changes,
) -> Launch:
    launch = Launch(
        id=launch_id,
        name=name,
        scheduled_at=scheduled_at or NOW + timedelta(days=2),
        status=status,
        vehicle=Vehicle(name="Falcon 9", configuration="Falcon 9 Block 5"),
        mission=Mission(name="Starlink Group 6-87", description="Batch of Starlink satellites", orbit="Low Earth Orbit"),
        pad=Pad(name="SLC-40", location="Cape Canaveral SFS, FL, USA"),
        provider="SpaceX",
    )
    return launch.with_changes(**changes) if changes else launch


def make_candidate(
    video_id: str,
    title: str,
    description: str = "",
    channel_id: str = "UC-test",
    channel_name: str = "Test Channel",
    scheduled_start: datetime | None = None,
) -> VideoCandidate:
    return VideoCandidate(
        video_id=video_id,
        title=title,
        description=description,
        channel_id=channel_id,
        channel_name=channel_name,
        scheduled_start=scheduled_start,
    )


class FakeLaunchSource:
    """Stands in for LaunchLibraryClient."""

    def __init__(self, launches=None, records=None, error: Exception | None = None):
        self.launches = list(launches or [])
        self.records = dict(records or {})
        self.error = error
        self.rejected: list[str] = []
        self.upcoming_calls = 0
        self.launch_calls: list[str] = []

    def fetch_upcoming(self) -> ManifestBatch:
        self.upcoming_calls += 1
        if self.error:
            raise self.error
        return ManifestBatch(
            launches=list(self.launches),
            rejected=list(self.rejected),
            total=len(self.launches) + len(self.rejected),
        )

    def fetch_launch(self, launch_id: str) -> Launch:
        self.launch_calls.append(launch_id)
        if self.error:
            raise self.error
        if launch_id not in self.records:
            raise NotFoundError(f"{launch_id} not found", source="fake")
        return self.records[launch_id]


class FakeSearchSource:
    """Stands in for YouTubeClient.

    results maps channel id to the candidates that channel returns;
    default is returned for channels not in the map.
    """

    def __init__(self, results=None, default=None, errors=None, configured: bool = True):
        self.results = dict(results or {})
        self.default = list(default or [])
        self.errors = dict(errors or {})
        self.configured = configured
        self.calls: list[tuple[str, str]] = []

    @property
    def is_configured(self) -> bool:
        return self.configured

    def search_upcoming(self, channel_id: str, query: str, max_results: int = 10) -> list[VideoCandidate]:
        self.calls.append((channel_id, query))
        if channel_id in self.errors:
            raise self.errors[channel_id]
        return list(self.results.get(channel_id, self.default))


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def db_path(tmp_path):
    path = tmp_path / "launchwindow.db"
    init_db(path)
    return path


@pytest.fixture
def db_factory(db_path):
    return make_db_factory(db_path)


@pytest.fixture
def stream_cache(db_factory) -> StreamCache:
    return StreamCache(db_factory)


@pytest.fixture
def rate_limiter(clock) -> RateLimiter:
    return RateLimiter(clock=clock)
