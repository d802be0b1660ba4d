"""FastAPI dependencies for dependency injection."""

from collections.abc import Callable
from functools import lru_cache

from launchwindow.consumers import LaunchWindowService, create_launch_service
from launchwindow.database import get_db


@lru_cache
def get_launch_service() -> LaunchWindowService:
    """Get singleton LaunchWindowService wired from Config."""
    return create_launch_service()


def get_db_factory() -> Callable:
    """Database factory for endpoints that touch storage directly."""
    return get_db
