"""Logging setup for Launch Window.

Console plus rotating files:
- launchwindow.log: everything at DEBUG
- launchwindow_errors.log: ERROR and above
- launchwindow_providers.log: upstream HTTP traffic (loggers under providers)
"""

import logging
import os
from logging.handlers import RotatingFileHandler

from launchwindow.config import Config

LOG_FORMAT = "[%(asctime)s] %(levelname)-8s [%(name)s:%(lineno)d] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_initialized = False


def setup_logging(log_dir: str | None = None, log_level: str | None = None) -> None:
    """Initialize the logging system once per process.

    Args:
        log_dir: Directory for log files (defaults to Config.LOG_DIR)
        log_level: Console level name (defaults to Config.LOG_LEVEL)
    """
    global _initialized
    if _initialized:
        return

    log_dir = log_dir or Config.LOG_DIR
    level = getattr(logging, (log_level or Config.LOG_LEVEL).upper(), logging.INFO)
    os.makedirs(log_dir, exist_ok=True)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)

    file_handler = RotatingFileHandler(
        os.path.join(log_dir, "launchwindow.log"),
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=5,
    )
    file_handler.setLevel(logging.DEBUG)  # Always log DEBUG to file
    file_handler.setFormatter(formatter)

    error_handler = RotatingFileHandler(
        os.path.join(log_dir, "launchwindow_errors.log"),
        maxBytes=10 * 1024 * 1024,
        backupCount=3,
    )
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(formatter)

    provider_handler = RotatingFileHandler(
        os.path.join(log_dir, "launchwindow_providers.log"),
        maxBytes=5 * 1024 * 1024,  # 5MB
        backupCount=3,
    )
    provider_handler.setLevel(logging.DEBUG)
    provider_handler.setFormatter(formatter)
    provider_handler.addFilter(lambda record: "providers" in record.name)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.addHandler(console_handler)
    root_logger.addHandler(file_handler)
    root_logger.addHandler(error_handler)
    root_logger.addHandler(provider_handler)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    _initialized = True
    logging.getLogger(__name__).info(f"Logging initialized (level={logging.getLevelName(level)}, dir={log_dir})")
