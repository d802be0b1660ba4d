"""Tests for critical-window scrub detection."""

from datetime import timedelta

import pytest
from conftest import NOW, FakeLaunchSource, make_launch

from launchwindow.consumers import ScrubDetector, ScrubOutcome, ScrubPolicy, in_critical_window
from launchwindow.core import (
    LaunchStatus,
    MalformedRecordError,
    StreamAssociation,
    StreamStatus,
    TransientSourceError,
)
from launchwindow.database import get_launch, upsert_launch
from launchwindow.services import RateLimiter

POLICY = ScrubPolicy(critical_threshold=timedelta(hours=1))


@pytest.fixture
def stored(db_factory, stream_cache):
    """Store a launch with two cached streams."""

    def _stored(launch):
        with db_factory() as conn:
            upsert_launch(conn, launch, NOW - timedelta(hours=1))
        stream_cache.put(
            launch.id,
            [
                StreamAssociation(video_id="a", launch_id=launch.id, platform="youtube", title="A", score=0.9),
                StreamAssociation(video_id="b", launch_id=launch.id, platform="youtube", title="B", score=0.4),
            ],
            NOW - timedelta(hours=1),
        )
        with db_factory() as conn:
            return get_launch(conn, launch.id)

    return _stored


def make_detector(source, stream_cache, db_factory, rate_limiter=None) -> ScrubDetector:
    return ScrubDetector(
        source,
        stream_cache,
        rate_limiter or RateLimiter(),
        db_factory,
        policy=POLICY,
        clock=lambda: NOW,
    )


# =============================================================================
# WINDOW AND POLICY
# =============================================================================


class TestCriticalWindow:
    @pytest.mark.parametrize(
        "offset,inside",
        [
            (timedelta(hours=1), True),  # T-60min
            (timedelta(hours=1, seconds=1), False),
            (timedelta(0), True),
            (-timedelta(minutes=10), True),  # T+10min
            (-timedelta(minutes=11), False),
        ],
    )
    def test_bounds(self, offset, inside):
        assert in_critical_window(NOW + offset, NOW) is inside

    def test_policy_threshold_depends_on_proximity(self):
        assert POLICY.delay_threshold(NOW + timedelta(minutes=30), NOW) == timedelta(hours=1)
        assert POLICY.delay_threshold(NOW + timedelta(days=2), NOW) == timedelta(hours=24)


# =============================================================================
# TRANSITIONS
# =============================================================================


class TestScrubDetector:
    def test_scrub_at_t_minus_5(self, db_factory, stream_cache, stored):
        """Record now 90 minutes later: scrubbed, persisted, streams reset."""
        launch = stored(make_launch(scheduled_at=NOW + timedelta(minutes=5)))
        new_time = launch.scheduled_at + timedelta(minutes=90)
        source = FakeLaunchSource(records={launch.id: launch.with_changes(scheduled_at=new_time)})

        result = make_detector(source, stream_cache, db_factory).check(launch)

        assert result.outcome is ScrubOutcome.SCRUBBED
        assert result.streams_invalidated
        assert result.launch.scheduled_at == new_time
        with db_factory() as conn:
            assert get_launch(conn, launch.id).scheduled_at == new_time
        streams, last_refreshed = stream_cache.get(launch.id)
        assert last_refreshed is None
        assert {s.status for s in streams} == {StreamStatus.SCRUBBED}

    def test_success_at_t_minus_2_completes_streams(self, db_factory, stream_cache, stored):
        launch = stored(make_launch(scheduled_at=NOW + timedelta(minutes=2)))
        source = FakeLaunchSource(records={launch.id: launch.with_changes(status=LaunchStatus.SUCCESS)})
        detector = make_detector(source, stream_cache, db_factory)

        result = detector.check(launch)

        assert result.outcome is ScrubOutcome.COMPLETE
        assert result.launch.status is LaunchStatus.SUCCESS
        streams, _ = stream_cache.get(launch.id)
        assert {s.status for s in streams} == {StreamStatus.COMPLETE}

        # Terminal: no further checks for this launch
        again = detector.check(result.launch)
        assert again.outcome is ScrubOutcome.TERMINAL
        assert source.launch_calls == [launch.id]

    def test_status_change_without_slip(self, db_factory, stream_cache, stored):
        launch = stored(make_launch(scheduled_at=NOW + timedelta(minutes=20), status=LaunchStatus.TBC))
        source = FakeLaunchSource(records={launch.id: launch.with_changes(status=LaunchStatus.GO)})

        result = make_detector(source, stream_cache, db_factory).check(launch)

        assert result.outcome is ScrubOutcome.STATUS_CHANGED
        assert result.launch.status is LaunchStatus.GO
        assert result.launch.scheduled_at == launch.scheduled_at
        _, last_refreshed = stream_cache.get(launch.id)
        assert last_refreshed is not None

    def test_small_slip_is_on_time(self, db_factory, stream_cache, stored):
        launch = stored(make_launch(scheduled_at=NOW + timedelta(minutes=20)))
        moved = launch.with_changes(scheduled_at=launch.scheduled_at + timedelta(minutes=15))
        source = FakeLaunchSource(records={launch.id: moved})

        result = make_detector(source, stream_cache, db_factory).check(launch)

        assert result.outcome is ScrubOutcome.ON_TIME
        assert result.launch is launch

    def test_outside_window_is_passthrough(self, db_factory, stream_cache):
        launch = make_launch(scheduled_at=NOW + timedelta(hours=3))
        source = FakeLaunchSource()
        result = make_detector(source, stream_cache, db_factory).check(launch)
        assert result.outcome is ScrubOutcome.OUTSIDE_WINDOW
        assert result.launch is launch
        assert source.launch_calls == []

    def test_archived_is_not_checked(self, db_factory, stream_cache):
        launch = make_launch(scheduled_at=NOW, status=LaunchStatus.ARCHIVED)
        source = FakeLaunchSource()
        assert make_detector(source, stream_cache, db_factory).check(launch).outcome is ScrubOutcome.TERMINAL
        assert source.launch_calls == []


# =============================================================================
# FAILURES
# =============================================================================


class TestNeverRaises:
    @pytest.mark.parametrize(
        "error",
        [TransientSourceError("timed out"), MalformedRecordError("garbage")],
    )
    def test_source_failure_returns_original(self, db_factory, stream_cache, error):
        launch = make_launch(scheduled_at=NOW + timedelta(minutes=5))
        snapshot = launch.with_changes()
        source = FakeLaunchSource(error=error)

        result = make_detector(source, stream_cache, db_factory).check(launch)

        assert result.outcome is ScrubOutcome.UNAVAILABLE
        assert result.launch is launch
        assert launch == snapshot

    def test_not_found_keeps_cached_record(self, db_factory, stream_cache, stored):
        launch = stored(make_launch(scheduled_at=NOW + timedelta(minutes=5)))
        result = make_detector(FakeLaunchSource(), stream_cache, db_factory).check(launch)

        assert result.outcome is ScrubOutcome.UNAVAILABLE
        assert result.launch is launch
        with db_factory() as conn:
            assert get_launch(conn, launch.id) is not None

    def test_rate_limited_skips_fetch(self, db_factory, stream_cache):
        launch = make_launch(scheduled_at=NOW + timedelta(minutes=5))
        limiter = RateLimiter(max_calls=5)
        source = FakeLaunchSource(records={launch.id: launch})
        detector = make_detector(source, stream_cache, db_factory, limiter)

        outcomes = [detector.check(launch).outcome for _ in range(6)]

        assert outcomes[-1] is ScrubOutcome.RATE_LIMITED
        assert len(source.launch_calls) == 5


class TestQuickUpdate:
    def test_persists_new_time(self, db_factory, stream_cache, stored):
        launch = stored(make_launch())
        new_time = launch.scheduled_at + timedelta(hours=2)
        source = FakeLaunchSource(records={launch.id: launch.with_changes(scheduled_at=new_time)})

        assert make_detector(source, stream_cache, db_factory).quick_update(launch.id)
        with db_factory() as conn:
            assert get_launch(conn, launch.id).scheduled_at == new_time

    def test_failure_returns_false(self, db_factory, stream_cache):
        source = FakeLaunchSource(error=TransientSourceError("down"))
        assert not make_detector(source, stream_cache, db_factory).quick_update("ll-1")
