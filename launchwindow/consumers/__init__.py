"""Consumers: sync, detection, matching and the service facade built on them."""

from launchwindow.consumers.scrub_detector import (
    ScrubDetector,
    ScrubOutcome,
    ScrubPolicy,
    ScrubResult,
    in_critical_window,
)
from launchwindow.consumers.stream_matcher import (
    DEFAULT_CHANNELS,
    ChannelConfig,
    LaunchIdentity,
    MatchRun,
    MissionClass,
    StreamMatcher,
    extract_identity,
    load_channel_roster,
)
from launchwindow.consumers.launch_sync import (
    DIRECTORY_RATE_KEY,
    DirectorySyncResult,
    LaunchDirectorySync,
    is_significant_change,
)
from launchwindow.consumers.cleanup import (
    CleanupResult,
    archive_old_launches,
    cleanup_old_launches,
    cleanup_orphaned_streams,
    get_cleanup_stats,
)
from launchwindow.consumers.launch_service import LaunchWindowService, create_launch_service
from launchwindow.consumers.scheduler import (
    SweepScheduler,
    get_scheduler_status,
    is_scheduler_running,
    run_sweep_once,
    start_sweep_scheduler,
    stop_sweep_scheduler,
)

__all__ = [
    "DEFAULT_CHANNELS",
    "DIRECTORY_RATE_KEY",
    "ChannelConfig",
    "CleanupResult",
    "DirectorySyncResult",
    "LaunchDirectorySync",
    "LaunchIdentity",
    "LaunchWindowService",
    "MatchRun",
    "MissionClass",
    "ScrubDetector",
    "ScrubOutcome",
    "ScrubPolicy",
    "ScrubResult",
    "StreamMatcher",
    "SweepScheduler",
    "archive_old_launches",
    "cleanup_old_launches",
    "cleanup_orphaned_streams",
    "create_launch_service",
    "extract_identity",
    "get_cleanup_stats",
    "get_scheduler_status",
    "in_critical_window",
    "is_scheduler_running",
    "is_significant_change",
    "load_channel_roster",
    "run_sweep_once",
    "start_sweep_scheduler",
    "stop_sweep_scheduler",
]
