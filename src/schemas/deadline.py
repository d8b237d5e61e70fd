"""Deadline, timeline and SLA schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from src.models.enums import SlaStatus


class DeadlineBoundsResponse(BaseModel):
    """Hour bounds a deadline range was derived from."""

    model_config = ConfigDict(from_attributes=True)

    min_hours: float
    max_hours: float
    suggested_hours: float


class DeadlineRangeResponse(BaseModel):
    """Allowed deadline window for a category."""

    model_config = ConfigDict(from_attributes=True)

    min: datetime
    max: datetime
    suggested: datetime
    bounds: DeadlineBoundsResponse


class DeadlineValidateRequest(BaseModel):
    """Validate a proposed deadline."""

    deadline: datetime
    start_date: datetime | None = None


class DeadlineValidationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    is_valid: bool
    is_too_short: bool
    is_too_long: bool
    hours_until_deadline: float
    warnings: list[str]


class TimelineEstimateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    estimated_start: datetime
    estimated_end: datetime
    estimated_duration_hours: float


class TimelineValidateRequest(BaseModel):
    """Check an estimated timeline against a deadline."""

    estimated_start: datetime | None = None
    estimated_end: datetime | None = None
    deadline: datetime | None = None


class TimelineValidationResponse(BaseModel):
    is_valid: bool
    errors: list[str]


class CategoryStatsResponse(BaseModel):
    """Historical completion-hour statistics."""

    model_config = ConfigDict(from_attributes=True)

    category_id: int
    avg_hours: float
    median_hours: float
    min_hours: float
    max_hours: float
    sample_size: int
    computed_at: datetime


class SlaStatusResponse(BaseModel):
    """SLA Clock reading for a work item."""

    model_config = ConfigDict(from_attributes=True)

    work_item_id: int
    has_sla: bool
    remaining_minutes: float | None = None
    percent_remaining: float | None = None
    status: SlaStatus | None = None
    deadline: datetime | None = None
    adjusted_deadline: datetime | None = None
    paused_minutes: float | None = None
