"""Escalation schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from src.models.enums import EscalationStatus, WorkItemKind


class EscalationResponse(BaseModel):
    """Escalation record."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    rule_id: int
    entity_type: WorkItemKind
    entity_id: int
    recipient_id: int
    reason: str
    status: EscalationStatus
    created_at: datetime
    cleared_at: datetime | None
    resolved_at: datetime | None
    notes: str | None


class EscalationResolve(BaseModel):
    notes: str | None = Field(None, max_length=2000)


class EscalationStatsResponse(BaseModel):
    pending: int
    acknowledged: int
    resolved: int
    total: int
