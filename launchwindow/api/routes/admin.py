"""Administrative endpoints: forced refreshes, manual streams, staleness,
retention, scheduler.

All of these are safe to call repeatedly. A failed refresh answers 502
with partial_progress saying whether anything was stored before the
failure.
"""

from collections.abc import Callable

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse

from launchwindow.api.dependencies import get_db_factory, get_launch_service
from launchwindow.api.models import (
    CleanupRequest,
    CleanupResponse,
    DirectoryRefreshResponse,
    ManualStreamRequest,
    RefreshErrorResponse,
    StreamRefreshResponse,
    StreamResponse,
)
from launchwindow.consumers import (
    LaunchWindowService,
    archive_old_launches,
    cleanup_old_launches,
    cleanup_orphaned_streams,
    get_cleanup_stats,
    get_scheduler_status,
    run_sweep_once,
)
from launchwindow.core import RefreshError

router = APIRouter()

_REFRESH_ERRORS = {status.HTTP_502_BAD_GATEWAY: {"model": RefreshErrorResponse}}


def _refresh_failed(error: RefreshError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"detail": str(error), "partial_progress": error.partial_progress},
    )


# =============================================================================
# REFRESH
# =============================================================================


@router.post("/refresh/launches", response_model=DirectoryRefreshResponse, responses=_REFRESH_ERRORS)
def refresh_launches(
    force: bool = True,
    service: LaunchWindowService = Depends(get_launch_service),
):
    """Force a launch directory refresh."""
    try:
        result = service.refresh_directory(force=force)
    except RefreshError as e:
        return _refresh_failed(e)
    return result.to_dict()


@router.post("/refresh/streams/{launch_id}", response_model=StreamRefreshResponse, responses=_REFRESH_ERRORS)
def refresh_streams(
    launch_id: str,
    force: bool = True,
    service: LaunchWindowService = Depends(get_launch_service),
):
    """Force a stream re-match for one launch."""
    try:
        run = service.refresh_streams(launch_id, force=force)
    except RefreshError as e:
        return _refresh_failed(e)
    if run is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Launch not found")
    return run.summary()


@router.post("/streams", response_model=StreamResponse, status_code=status.HTTP_201_CREATED)
def add_stream(
    request: ManualStreamRequest,
    service: LaunchWindowService = Depends(get_launch_service),
):
    """Manually attach a stream to a launch."""
    stream = service.add_manual_stream(request.to_stream())
    if stream is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Launch not found")
    return StreamResponse.from_stream(stream)


@router.get("/staleness")
def staleness(service: LaunchWindowService = Depends(get_launch_service)) -> dict:
    """Freshness of the directory and stream caches."""
    return service.staleness_report()


# =============================================================================
# RETENTION
# =============================================================================


@router.post("/cleanup", response_model=CleanupResponse)
def cleanup(
    request: CleanupRequest | None = None,
    db_factory: Callable = Depends(get_db_factory),
):
    """Delete old launches and their streams."""
    hours = request.hours_after_launch if request else None
    return cleanup_old_launches(db_factory, hours).to_dict()


@router.post("/archive", response_model=CleanupResponse)
def archive(
    request: CleanupRequest | None = None,
    db_factory: Callable = Depends(get_db_factory),
):
    """Archive old launches instead of deleting them."""
    hours = request.hours_after_launch if request else None
    return archive_old_launches(db_factory, hours).to_dict()


@router.post("/cleanup/orphans")
def cleanup_orphans(db_factory: Callable = Depends(get_db_factory)) -> dict:
    """Delete streams whose launch no longer exists."""
    return cleanup_orphaned_streams(db_factory)


@router.get("/cleanup/stats")
def cleanup_stats(
    hours_after_launch: int | None = None,
    db_factory: Callable = Depends(get_db_factory),
) -> dict:
    """What a cleanup would remove."""
    return get_cleanup_stats(db_factory, hours_after_launch)


# =============================================================================
# SCHEDULER
# =============================================================================


@router.get("/scheduler")
def scheduler_status() -> dict:
    return get_scheduler_status()


@router.post("/scheduler/run")
def scheduler_run(
    service: LaunchWindowService = Depends(get_launch_service),
    db_factory: Callable = Depends(get_db_factory),
) -> dict:
    """Run one background sweep now."""
    return run_sweep_once(service, db_factory)
