"""Pydantic schemas for API requests and responses."""

from src.schemas.deadline import (
    CategoryStatsResponse,
    DeadlineRangeResponse,
    DeadlineValidateRequest,
    DeadlineValidationResponse,
    SlaStatusResponse,
    TimelineEstimateResponse,
    TimelineValidateRequest,
    TimelineValidationResponse,
)
from src.schemas.escalation import EscalationResolve, EscalationResponse, EscalationStatsResponse
from src.schemas.notification import (
    MarkAllReadResponse,
    NotificationResponse,
    NotificationSettingsResponse,
    NotificationSettingsUpdate,
    UnreadCountResponse,
)
from src.schemas.tick import TickResponse
from src.schemas.timer import TimeLogResponse, TimerSessionResponse

__all__ = [
    "TimerSessionResponse",
    "TimeLogResponse",
    "DeadlineRangeResponse",
    "DeadlineValidateRequest",
    "DeadlineValidationResponse",
    "TimelineEstimateResponse",
    "TimelineValidateRequest",
    "TimelineValidationResponse",
    "CategoryStatsResponse",
    "SlaStatusResponse",
    "NotificationResponse",
    "UnreadCountResponse",
    "MarkAllReadResponse",
    "NotificationSettingsUpdate",
    "NotificationSettingsResponse",
    "EscalationResponse",
    "EscalationResolve",
    "EscalationStatsResponse",
    "TickResponse",
]
