"""Tests for the background sweep scheduler."""

import time
from datetime import timedelta

import pytest
from conftest import NOW, make_launch

from launchwindow.config import Config
from launchwindow.consumers import scheduler as scheduler_module
from launchwindow.consumers.scheduler import SweepScheduler
from launchwindow.core import LaunchStatus
from launchwindow.database import get_launch, upsert_launch


class StubService:
    """Records sweep calls; one task can be made to blow up."""

    def __init__(self, failing: str | None = None):
        self.failing = failing
        self.calls: list[str] = []

    def _call(self, name: str, result: dict) -> dict:
        self.calls.append(name)
        if name == self.failing:
            raise RuntimeError(f"{name} exploded")
        return result

    def refresh_directory_if_stale(self) -> dict:
        return self._call("directory", {"refreshed": True})

    def check_critical_launches(self) -> dict:
        return self._call("scrub_checks", {"checked": 0, "outcomes": {}})

    def prewarm_streams(self) -> dict:
        return self._call("prewarm", {"candidates": 0, "warmed": 0, "skipped": 0})


@pytest.fixture(autouse=True)
def reset_global_scheduler():
    yield
    scheduler_module.stop_sweep_scheduler(timeout=5)


class TestRunOnce:
    def test_runs_every_task(self, db_factory, clock):
        service = StubService()
        scheduler = SweepScheduler(service, db_factory=db_factory, clock=clock)

        result = scheduler.run_once()

        assert service.calls == ["directory", "scrub_checks", "prewarm"]
        assert result["directory"] == {"refreshed": True}
        assert result["archive"] == {"archived": 0}
        assert scheduler.last_run == NOW

    def test_failing_task_does_not_stop_the_rest(self, db_factory, clock):
        service = StubService(failing="scrub_checks")
        scheduler = SweepScheduler(service, db_factory=db_factory, clock=clock)

        result = scheduler.run_once()

        assert result["scrub_checks"] == {"error": "scrub_checks exploded"}
        assert service.calls == ["directory", "scrub_checks", "prewarm"]
        assert "archive" in result
        assert scheduler.status()["last_result"] is result

    def test_archives_old_launches(self, db_factory, clock):
        with db_factory() as conn:
            upsert_launch(conn, make_launch("old", scheduled_at=NOW - timedelta(days=3)), NOW)
        scheduler = SweepScheduler(StubService(), db_factory=db_factory, archive_hours=24, clock=clock)

        assert scheduler.run_once()["archive"] == {"archived": 1}
        with db_factory() as conn:
            assert get_launch(conn, "old").status is LaunchStatus.ARCHIVED


class TestLifecycle:
    def test_start_and_stop(self, db_factory, clock):
        scheduler = SweepScheduler(StubService(), db_factory=db_factory, interval_minutes=60, clock=clock)

        assert scheduler.start() is True
        assert scheduler.start() is False
        assert scheduler.is_running

        # The first sweep runs immediately on start
        deadline = time.monotonic() + 5
        while scheduler.last_run is None and time.monotonic() < deadline:
            time.sleep(0.01)
        assert scheduler.last_run == NOW

        assert scheduler.stop(timeout=5) is True
        assert not scheduler.is_running

    def test_status_when_idle(self, db_factory):
        scheduler = SweepScheduler(StubService(), db_factory=db_factory, interval_minutes=5)
        assert scheduler.status() == {
            "running": False,
            "last_run": None,
            "interval_minutes": 5,
            "last_result": None,
        }


class TestGlobalScheduler:
    def test_disabled_in_config(self, db_factory, monkeypatch):
        monkeypatch.setattr(Config, "SCHEDULER_ENABLED", False)
        assert scheduler_module.start_sweep_scheduler(StubService(), db_factory) is False
        assert scheduler_module.is_scheduler_running() is False
        assert scheduler_module.get_scheduler_status() == {"running": False}

    def test_start_status_stop(self, db_factory, monkeypatch):
        monkeypatch.setattr(Config, "SCHEDULER_ENABLED", True)
        assert scheduler_module.start_sweep_scheduler(StubService(), db_factory, interval_minutes=60) is True
        assert scheduler_module.is_scheduler_running() is True
        assert scheduler_module.get_scheduler_status()["interval_minutes"] == 60

        assert scheduler_module.stop_sweep_scheduler(timeout=5) is True
        assert scheduler_module.is_scheduler_running() is False

    def test_run_sweep_once_without_global(self, db_factory):
        service = StubService()
        result = scheduler_module.run_sweep_once(service, db_factory)
        assert service.calls == ["directory", "scrub_checks", "prewarm"]
        assert "completed_at" in result
