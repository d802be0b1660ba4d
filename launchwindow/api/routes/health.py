"""Health check endpoint."""

from fastapi import APIRouter

from launchwindow.config import APP_NAME, VERSION
from launchwindow.consumers import is_scheduler_running

router = APIRouter()


@router.get("/health")
def health_check() -> dict:
    """Liveness plus whether the background sweep is up."""
    return {
        "status": "healthy",
        "service": APP_NAME,
        "version": VERSION,
        "scheduler_running": is_scheduler_running(),
    }
