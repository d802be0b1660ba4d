"""Application configuration.

Single source of truth for all configuration values.
Loads from environment variables with .env file support.

Freshness windows and limits live here as module constants so the sync,
detection and matching layers all read the same numbers.
"""

import os
from datetime import timedelta
from pathlib import Path

from dotenv import load_dotenv

# Application version - single source of truth
VERSION = "1.2.0"

APP_NAME = "Launch Window"
APP_DESCRIPTION = "Rocket launch schedules with matched live coverage"

# Load .env file from project root
_PROJECT_ROOT = Path(__file__).parent.parent
_ENV_FILE = _PROJECT_ROOT / ".env"
load_dotenv(_ENV_FILE)


# =============================================================================
# FRESHNESS WINDOWS
# =============================================================================

DIRECTORY_TTL = timedelta(hours=1)  # Launch directory
STREAM_TTL = timedelta(hours=12)  # Per-launch stream set
STREAM_HORIZON = timedelta(hours=72)  # Don't search for launches further out

# Critical window around liftoff where inline scrub checks run
CRITICAL_WINDOW_BEFORE = timedelta(hours=1)
CRITICAL_WINDOW_AFTER = timedelta(minutes=10)

# Schedule shift that counts as significant outside the critical window
BACKGROUND_DELAY_THRESHOLD = timedelta(hours=24)

# A slip beyond this always forces streams to be re-matched
STREAM_RESET_DELAY = timedelta(hours=1)

# Background sweep pre-warms stream caches this far ahead
PREWARM_HORIZON = timedelta(hours=48)


# =============================================================================
# RATE LIMITS AND QUOTA
# =============================================================================

RATE_WINDOW = timedelta(minutes=60)
RATE_MAX_CALLS = 5  # Manifest calls per key per window
STREAM_CALL_BUDGET = 50  # Video searches per matcher invocation
SEARCH_MAX_RESULTS = 10


# =============================================================================
# HTTP
# =============================================================================

MANIFEST_TIMEOUT = 30.0  # Full directory fetch
SINGLE_LAUNCH_TIMEOUT = 10.0  # Scrub check fetch
SEARCH_TIMEOUT = 10.0
RETRY_COUNT = 3
RETRY_BASE_DELAY = 1.0
RETRY_MAX_DELAY = 10.0
USER_AGENT = f"LaunchWindow/{VERSION}"


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Application configuration singleton.

    All configuration values should be accessed through this class.
    Values are loaded from environment variables with sensible defaults.
    """

    # Database
    DATABASE_PATH: str = os.getenv(
        "DATABASE_PATH",
        str(_PROJECT_ROOT / "data" / "launchwindow.db"),
    )

    # Logging
    LOG_DIR: str = os.getenv("LOG_DIR", str(_PROJECT_ROOT / "logs"))
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # API
    API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
    API_PORT: int = int(os.getenv("API_PORT", "5000"))

    # Launch manifest (Launch Library 2)
    LAUNCH_LIBRARY_BASE_URL: str = os.getenv(
        "LAUNCH_LIBRARY_BASE_URL",
        "https://ll.thespacedevs.com/2.2.0",
    )
    LAUNCH_LIBRARY_PAGE_SIZE: int = int(os.getenv("LAUNCH_LIBRARY_PAGE_SIZE", "50"))

    # Video search (YouTube Data API v3)
    YOUTUBE_API_KEY: str | None = os.getenv("YOUTUBE_API_KEY")
    YOUTUBE_API_BASE: str = os.getenv(
        "YOUTUBE_API_BASE",
        "https://www.googleapis.com/youtube/v3",
    )
    CHANNEL_ROSTER_PATH: str | None = os.getenv("CHANNEL_ROSTER_PATH")

    # Background sweep
    SCHEDULER_ENABLED: bool = _env_bool("SCHEDULER_ENABLED", True)
    SCHEDULER_INTERVAL_MINUTES: int = int(os.getenv("SCHEDULER_INTERVAL_MINUTES", "10"))
    SYNC_ON_STARTUP: bool = _env_bool("SYNC_ON_STARTUP", True)

    # Scrub detection
    SCRUB_CRITICAL_DELAY_MINUTES: int = int(os.getenv("SCRUB_CRITICAL_DELAY_MINUTES", "60"))

    # Retention
    CLEANUP_HOURS_AFTER_LAUNCH: int = int(os.getenv("CLEANUP_HOURS_AFTER_LAUNCH", "24"))

    @classmethod
    def critical_delay_threshold(cls) -> timedelta:
        """Slip that counts as a scrub inside the critical window."""
        return timedelta(minutes=cls.SCRUB_CRITICAL_DELAY_MINUTES)

    @classmethod
    def reload(cls) -> None:
        """Reload configuration from environment.

        Useful for testing or runtime config changes.
        """
        load_dotenv(_ENV_FILE, override=True)
        cls.DATABASE_PATH = os.getenv("DATABASE_PATH", cls.DATABASE_PATH)
        cls.LOG_DIR = os.getenv("LOG_DIR", cls.LOG_DIR)
        cls.LOG_LEVEL = os.getenv("LOG_LEVEL", cls.LOG_LEVEL)
        cls.YOUTUBE_API_KEY = os.getenv("YOUTUBE_API_KEY")
        cls.SCHEDULER_ENABLED = _env_bool("SCHEDULER_ENABLED", cls.SCHEDULER_ENABLED)
        cls.SCHEDULER_INTERVAL_MINUTES = int(
            os.getenv("SCHEDULER_INTERVAL_MINUTES", str(cls.SCHEDULER_INTERVAL_MINUTES))
        )
        cls.SYNC_ON_STARTUP = _env_bool("SYNC_ON_STARTUP", cls.SYNC_ON_STARTUP)
        cls.SCRUB_CRITICAL_DELAY_MINUTES = int(
            os.getenv("SCRUB_CRITICAL_DELAY_MINUTES", str(cls.SCRUB_CRITICAL_DELAY_MINUTES))
        )
