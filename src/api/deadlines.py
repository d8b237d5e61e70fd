"""Deadline range, validation and timeline endpoints per category."""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status

from src.api.dependencies import get_current_user, get_deadline_calculator
from src.models.enums import UserRole
from src.models.user import User
from src.schemas.deadline import (
    CategoryStatsResponse,
    DeadlineRangeResponse,
    DeadlineValidateRequest,
    DeadlineValidationResponse,
    TimelineEstimateResponse,
    TimelineValidateRequest,
    TimelineValidationResponse,
)
from src.services.deadline_calculator import DeadlineCalculator, validate_timeline

router = APIRouter(prefix="/api/v1", tags=["deadlines"])


@router.get("/categories/{category_id}/deadline-range", response_model=DeadlineRangeResponse)
def get_deadline_range(
    category_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    calculator: Annotated[DeadlineCalculator, Depends(get_deadline_calculator)],
    start_date: Annotated[datetime | None, Query()] = None,
):
    """Get the allowed deadline window for a category."""
    return calculator.get_deadline_range(category_id, start_date)


@router.post(
    "/categories/{category_id}/deadline/validate", response_model=DeadlineValidationResponse
)
def validate_deadline(
    category_id: int,
    data: DeadlineValidateRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    calculator: Annotated[DeadlineCalculator, Depends(get_deadline_calculator)],
):
    """Check a proposed deadline against the category's bounds."""
    return calculator.validate_deadline(category_id, data.deadline, data.start_date)


@router.get("/categories/{category_id}/timeline", response_model=TimelineEstimateResponse)
def estimate_timeline(
    category_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    calculator: Annotated[DeadlineCalculator, Depends(get_deadline_calculator)],
    request_date: Annotated[datetime | None, Query()] = None,
):
    """Estimate start and end of work for a new request."""
    return calculator.estimate_timeline(category_id, request_date)


@router.post("/timeline/validate", response_model=TimelineValidationResponse)
def check_timeline(
    data: TimelineValidateRequest,
    current_user: Annotated[User, Depends(get_current_user)],
):
    """Check an estimated timeline for consistency with its deadline."""
    errors = validate_timeline(data.estimated_start, data.estimated_end, data.deadline)
    return TimelineValidationResponse(is_valid=not errors, errors=errors)


@router.post(
    "/categories/{category_id}/stats/refresh", response_model=CategoryStatsResponse | None
)
def refresh_category_stats(
    category_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    calculator: Annotated[DeadlineCalculator, Depends(get_deadline_calculator)],
):
    """Recompute completion statistics for a category (admins and leaders only)."""
    if current_user.role not in (UserRole.ADMIN, UserRole.LEADER):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed")
    return calculator.update_category_stats(category_id)
