"""Tests for launch directory sync."""

from datetime import timedelta

import pytest
from conftest import NOW, FakeLaunchSource, make_launch

from launchwindow.consumers import DIRECTORY_RATE_KEY, LaunchDirectorySync, ScrubPolicy, is_significant_change
from launchwindow.core import (
    DIRECTORY_MARKER_KEY,
    LaunchStatus,
    StreamAssociation,
    TransientSourceError,
)
from launchwindow.database import get_launch, get_marker, upsert_launch
from launchwindow.services import RateLimiter


def cached_stream(launch_id: str) -> StreamAssociation:
    return StreamAssociation(video_id=f"v-{launch_id}", launch_id=launch_id, platform="youtube", title="t", score=0.5)


@pytest.fixture
def seed(db_factory, stream_cache):
    """Store a launch and give it a cached stream set."""

    def _seed(launch):
        with db_factory() as conn:
            upsert_launch(conn, launch, NOW - timedelta(hours=2))
        stream_cache.put(launch.id, [cached_stream(launch.id)], NOW - timedelta(hours=2))
        return launch

    return _seed


def make_sync(source, stream_cache, db_factory, rate_limiter=None) -> LaunchDirectorySync:
    return LaunchDirectorySync(
        source,
        stream_cache,
        rate_limiter or RateLimiter(),
        db_factory,
        policy=ScrubPolicy(critical_threshold=timedelta(hours=1)),
        clock=lambda: NOW,
    )


# =============================================================================
# SIGNIFICANCE
# =============================================================================


class TestSignificance:
    policy = ScrubPolicy(critical_threshold=timedelta(hours=1))

    def test_small_slip_days_out_is_not_significant(self):
        before = make_launch()
        after = before.with_changes(scheduled_at=before.scheduled_at + timedelta(hours=6))
        assert not is_significant_change(before, after, self.policy, NOW)

    def test_slip_over_a_day_is_significant(self):
        before = make_launch()
        after = before.with_changes(scheduled_at=before.scheduled_at + timedelta(hours=25))
        assert is_significant_change(before, after, self.policy, NOW)

    def test_go_to_tbd_is_significant(self):
        before = make_launch(status=LaunchStatus.GO)
        assert is_significant_change(before, before.with_changes(status=LaunchStatus.TBD), self.policy, NOW)
        assert is_significant_change(before, before.with_changes(status=LaunchStatus.TBC), self.policy, NOW)

    def test_tbd_to_go_is_not_significant(self):
        before = make_launch(status=LaunchStatus.TBD)
        assert not is_significant_change(before, before.with_changes(status=LaunchStatus.GO), self.policy, NOW)

    def test_critical_window_uses_tight_threshold(self):
        before = make_launch(scheduled_at=NOW + timedelta(minutes=30))
        after = before.with_changes(scheduled_at=before.scheduled_at + timedelta(minutes=90))
        assert is_significant_change(before, after, self.policy, NOW)


# =============================================================================
# SYNC
# =============================================================================


class TestDirectorySync:
    def test_inserts_new_launches_and_writes_marker(self, db_factory, stream_cache):
        source = FakeLaunchSource(launches=[make_launch("ll-1"), make_launch("ll-2")])
        result = make_sync(source, stream_cache, db_factory).sync()

        assert result.inserted == 2
        assert result.updated == 0
        assert result.marker_written
        with db_factory() as conn:
            assert get_launch(conn, "ll-2") is not None
            assert get_marker(conn, DIRECTORY_MARKER_KEY).last_refreshed == NOW

    def test_go_to_tbd_clears_stream_cache(self, db_factory, stream_cache, seed):
        """Launch in 2 days, GO -> TBD: next stream read must re-match."""
        launch = seed(make_launch("ll-1", scheduled_at=NOW + timedelta(days=2), status=LaunchStatus.GO))
        source = FakeLaunchSource(launches=[launch.with_changes(status=LaunchStatus.TBD)])

        result = make_sync(source, stream_cache, db_factory).sync()

        assert result.significant == ["ll-1"]
        assert result.streams_invalidated == 1
        assert stream_cache.get("ll-1") == ([], None)
        with db_factory() as conn:
            assert get_launch(conn, "ll-1").status is LaunchStatus.TBD

    def test_minor_change_keeps_cache_but_is_persisted(self, db_factory, stream_cache, seed):
        launch = seed(make_launch("ll-1"))
        moved = launch.with_changes(scheduled_at=launch.scheduled_at + timedelta(hours=3))
        source = FakeLaunchSource(launches=[moved])

        result = make_sync(source, stream_cache, db_factory).sync()

        assert result.significant == []
        assert result.updated == 1
        streams, last_refreshed = stream_cache.get("ll-1")
        assert len(streams) == 1
        assert last_refreshed is not None
        with db_factory() as conn:
            assert get_launch(conn, "ll-1").scheduled_at == moved.scheduled_at

    def test_partial_success_still_writes_marker(self, db_factory, stream_cache):
        source = FakeLaunchSource(launches=[make_launch("ll-1")])
        source.rejected = ["Launch record missing id or name"]

        result = make_sync(source, stream_cache, db_factory).sync()

        assert result.partial
        assert result.marker_written
        with db_factory() as conn:
            assert get_marker(conn, DIRECTORY_MARKER_KEY) is not None

    def test_fetch_failure_leaves_marker_untouched(self, db_factory, stream_cache):
        source = FakeLaunchSource(error=TransientSourceError("timed out"))
        with pytest.raises(TransientSourceError):
            make_sync(source, stream_cache, db_factory).sync()
        with db_factory() as conn:
            assert get_marker(conn, DIRECTORY_MARKER_KEY) is None

    def test_rate_limited(self, db_factory, stream_cache):
        limiter = RateLimiter(max_calls=1)
        limiter.acquire(DIRECTORY_RATE_KEY, NOW)
        source = FakeLaunchSource(launches=[make_launch()])

        result = make_sync(source, stream_cache, db_factory, limiter).sync()

        assert result.skipped_reason == "rate_limited"
        assert source.upcoming_calls == 0
        assert not result.marker_written
