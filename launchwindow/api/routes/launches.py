"""Launch and stream read endpoints.

These never fail because an upstream source is down: the service serves
whatever it has stored.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from launchwindow.api.dependencies import get_launch_service
from launchwindow.api.models import LaunchResponse, LaunchStreamsResponse, StreamResponse
from launchwindow.consumers import LaunchWindowService

router = APIRouter()


@router.get("/launches", response_model=list[LaunchResponse])
def list_launches(
    limit: int = Query(20, ge=1, le=100),
    service: LaunchWindowService = Depends(get_launch_service),
):
    """Upcoming launches, soonest first."""
    return [LaunchResponse.from_launch(launch) for launch in service.list_upcoming_launches(limit)]


@router.get("/launches/{launch_id}", response_model=LaunchResponse)
def get_launch(
    launch_id: str,
    service: LaunchWindowService = Depends(get_launch_service),
):
    """One launch, scrub-checked if it's about to fly."""
    launch = service.get_launch(launch_id)
    if launch is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Launch not found")
    return LaunchResponse.from_launch(launch)


@router.get("/launches/{launch_id}/streams", response_model=LaunchStreamsResponse)
def get_launch_streams(
    launch_id: str,
    service: LaunchWindowService = Depends(get_launch_service),
):
    """Matched streams for a launch, best match first."""
    streams = service.get_streams(launch_id)
    if streams is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Launch not found")
    return LaunchStreamsResponse(
        launch_id=launch_id,
        count=len(streams),
        streams=[StreamResponse.from_stream(stream) for stream in streams],
    )
