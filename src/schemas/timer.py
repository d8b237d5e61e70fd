"""Timer session and time log schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from src.models.enums import TimerState


class TimerSessionResponse(BaseModel):
    """Active timer session."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    work_item_id: int
    user_id: int
    state: TimerState
    started_at: datetime
    paused_at: datetime | None
    accumulated_paused_minutes: float
    version: int


class TimeLogResponse(BaseModel):
    """Immutable record of a stopped timer session."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    work_item_id: int
    user_id: int
    started_at: datetime
    ended_at: datetime
    paused_minutes: float
    worked_minutes: float
