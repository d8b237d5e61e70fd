"""Timer session API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from src.api.dependencies import get_current_user, get_timer_service
from src.models.timer_session import TimerSession
from src.models.user import User
from src.schemas.timer import TimeLogResponse, TimerSessionResponse
from src.services.timer_service import TimerService

router = APIRouter(prefix="/api/v1", tags=["timers"])


def get_user_session(service: TimerService, session_id: int, user: User) -> TimerSession:
    """Get a timer session owned by the user."""
    session = service.get_session(session_id)
    if session.user_id != user.id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Timer not found")
    return session


@router.post(
    "/work-items/{work_item_id}/timer/start",
    response_model=TimerSessionResponse,
    status_code=status.HTTP_201_CREATED,
)
def start_timer(
    work_item_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    service: Annotated[TimerService, Depends(get_timer_service)],
):
    """Start a timer on a work item."""
    return service.start(work_item_id, current_user.id)


@router.get("/work-items/{work_item_id}/timer", response_model=TimerSessionResponse | None)
def get_active_timer(
    work_item_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    service: Annotated[TimerService, Depends(get_timer_service)],
):
    """Get the active timer session of a work item, if any."""
    return service.get_active(work_item_id)


@router.get("/work-items/{work_item_id}/time-logs", response_model=list[TimeLogResponse])
def get_time_logs(
    work_item_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    service: Annotated[TimerService, Depends(get_timer_service)],
):
    """List the time logs recorded for a work item."""
    return service.list_logs(work_item_id)


@router.post("/timers/{session_id}/pause", response_model=TimerSessionResponse)
def pause_timer(
    session_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    service: Annotated[TimerService, Depends(get_timer_service)],
):
    """Pause a running timer."""
    get_user_session(service, session_id, current_user)
    return service.pause(session_id)


@router.post("/timers/{session_id}/resume", response_model=TimerSessionResponse)
def resume_timer(
    session_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    service: Annotated[TimerService, Depends(get_timer_service)],
):
    """Resume a paused timer."""
    get_user_session(service, session_id, current_user)
    return service.resume(session_id)


@router.post("/timers/{session_id}/stop", response_model=TimeLogResponse)
def stop_timer(
    session_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    service: Annotated[TimerService, Depends(get_timer_service)],
):
    """Stop a timer and record its time log."""
    get_user_session(service, session_id, current_user)
    return service.stop(session_id)
