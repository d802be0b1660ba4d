"""Background sweep scheduler.

Runs periodic tasks:
- Refresh the launch directory when its marker is stale
- Scrub-check launches inside their critical window
- Pre-warm stream caches for confirmed launches in the next 48 hours
- Archive launches past retention

Integrates with FastAPI lifespan for clean startup/shutdown.
"""

import logging
import threading
from collections.abc import Callable
from datetime import datetime
from typing import Any

from launchwindow.config import Config
from launchwindow.consumers.cleanup import archive_old_launches
from launchwindow.database import get_db
from launchwindow.utilities.time import utc_now

logger = logging.getLogger(__name__)


class SweepScheduler:
    """Background scheduler for launch and stream upkeep.

    Runs periodic tasks in a daemon thread. Each task is isolated: one
    failing is logged and recorded in the run result, the rest still run.

    Usage:
        scheduler = SweepScheduler(service, interval_minutes=10)
        scheduler.start()
        # ... application runs ...
        scheduler.stop()
    """

    def __init__(
        self,
        service: Any,
        db_factory: Callable = get_db,
        interval_minutes: int = 10,
        archive_hours: int | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """Initialize the scheduler.

        Args:
            service: LaunchWindowService the tasks run against
            db_factory: Factory function returning database connection
            interval_minutes: Minutes between task runs
            archive_hours: Hours after launch before archiving (None = Config)
            clock: Source of "now"
        """
        self._service = service
        self._db_factory = db_factory
        self._interval_minutes = interval_minutes
        self._archive_hours = archive_hours
        self._clock = clock

        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()
        self._run_lock = threading.Lock()
        self._running = False
        self._last_run: datetime | None = None
        self._last_result: dict | None = None

    @property
    def is_running(self) -> bool:
        return self._running and self._thread is not None and self._thread.is_alive()

    @property
    def last_run(self) -> datetime | None:
        return self._last_run

    @property
    def interval_minutes(self) -> int:
        return self._interval_minutes

    def start(self) -> bool:
        """Start the scheduler.

        Returns:
            True if started, False if already running
        """
        if self.is_running:
            logger.warning("[SCHEDULER] Already running")
            return False

        self._stop_event.clear()
        self._running = True
        self._thread = threading.Thread(
            target=self._run_loop,
            name="sweep-scheduler",
            daemon=True,
        )
        self._thread.start()
        logger.info(f"[SCHEDULER] Started (interval: {self._interval_minutes} minutes)")
        return True

    def stop(self, timeout: float = 30.0) -> bool:
        """Stop the scheduler gracefully.

        Returns:
            True if stopped, False if the thread didn't exit in time
        """
        if not self.is_running:
            return True

        logger.info("[SCHEDULER] Stopping...")
        self._stop_event.set()
        self._running = False

        if self._thread:
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                logger.warning("[SCHEDULER] Thread did not stop in time")
                return False

        logger.info("[SCHEDULER] Stopped")
        return True

    def run_once(self) -> dict:
        """Run all tasks once (manual trigger and tests)."""
        return self._run_tasks()

    def status(self) -> dict:
        return {
            "running": self.is_running,
            "last_run": self._last_run.isoformat() if self._last_run else None,
            "interval_minutes": self._interval_minutes,
            "last_result": self._last_result,
        }

    def _run_loop(self) -> None:
        """Main scheduler loop - runs in background thread."""
        interval_seconds = self._interval_minutes * 60

        while not self._stop_event.is_set():
            try:
                self._run_tasks()
            except Exception as e:
                logger.exception(f"[SCHEDULER] Error in sweep: {e}")

            if self._stop_event.wait(timeout=interval_seconds):
                return

    def _run_tasks(self) -> dict:
        # A manual trigger overlapping a timed run waits for it
        with self._run_lock:
            self._last_run = self._clock()
            results: dict[str, Any] = {"started_at": self._last_run.isoformat()}

            tasks = (
                ("directory", self._task_refresh_directory),
                ("scrub_checks", self._task_scrub_checks),
                ("prewarm", self._task_prewarm_streams),
                ("archive", self._task_archive),
            )
            for name, task in tasks:
                try:
                    results[name] = task()
                except Exception as e:
                    logger.warning(f"[SCHEDULER] Task {name} failed: {e}")
                    results[name] = {"error": str(e)}

            results["completed_at"] = self._clock().isoformat()
            self._last_result = results
            return results

    def _task_refresh_directory(self) -> dict:
        return self._service.refresh_directory_if_stale()

    def _task_scrub_checks(self) -> dict:
        result = self._service.check_critical_launches()
        if result["checked"]:
            logger.info(f"[SCHEDULER] Scrub-checked {result['checked']} launch(es): {result['outcomes']}")
        return result

    def _task_prewarm_streams(self) -> dict:
        result = self._service.prewarm_streams()
        if result["warmed"]:
            logger.info(f"[SCHEDULER] Pre-warmed streams for {result['warmed']} launch(es)")
        return result

    def _task_archive(self) -> dict:
        result = archive_old_launches(self._db_factory, self._archive_hours, self._clock())
        return {"archived": result.launches_archived}


# =============================================================================
# MODULE-LEVEL FUNCTIONS
# =============================================================================


_scheduler: SweepScheduler | None = None


def start_sweep_scheduler(
    service: Any,
    db_factory: Callable = get_db,
    interval_minutes: int | None = None,
) -> bool:
    """Start the global sweep scheduler.

    Returns:
        True if started, False if already running or disabled
    """
    global _scheduler

    if not Config.SCHEDULER_ENABLED:
        logger.info("[SCHEDULER] Disabled in config")
        return False

    if _scheduler and _scheduler.is_running:
        logger.warning("[SCHEDULER] Already running")
        return False

    _scheduler = SweepScheduler(
        service=service,
        db_factory=db_factory,
        interval_minutes=interval_minutes or Config.SCHEDULER_INTERVAL_MINUTES,
    )
    return _scheduler.start()


def stop_sweep_scheduler(timeout: float = 30.0) -> bool:
    """Stop the global sweep scheduler."""
    global _scheduler

    if not _scheduler:
        return True

    result = _scheduler.stop(timeout)
    _scheduler = None
    return result


def is_scheduler_running() -> bool:
    return _scheduler is not None and _scheduler.is_running


def get_scheduler_status() -> dict:
    """Get status of the global scheduler."""
    if not _scheduler:
        return {"running": False}
    return _scheduler.status()


def run_sweep_once(service: Any, db_factory: Callable = get_db) -> dict:
    """Run one sweep now, on the global scheduler if there is one."""
    if _scheduler is not None:
        return _scheduler.run_once()
    return SweepScheduler(service=service, db_factory=db_factory).run_once()
