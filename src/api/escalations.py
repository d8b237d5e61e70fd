"""Escalation handling endpoints for recipients."""

from typing import Annotated

from fastapi import APIRouter, Depends

from src.api.dependencies import get_current_user, get_escalation_detector
from src.models.user import User
from src.schemas.escalation import (
    EscalationResolve,
    EscalationResponse,
    EscalationStatsResponse,
)
from src.services.escalation_detector import EscalationDetector

router = APIRouter(prefix="/api/v1/escalations", tags=["escalations"])


@router.get("", response_model=list[EscalationResponse])
def list_active_escalations(
    current_user: Annotated[User, Depends(get_current_user)],
    detector: Annotated[EscalationDetector, Depends(get_escalation_detector)],
):
    """Get pending and acknowledged escalations addressed to the current user."""
    return detector.list_active(current_user.id)


@router.get("/stats", response_model=EscalationStatsResponse)
def get_escalation_stats(
    current_user: Annotated[User, Depends(get_current_user)],
    detector: Annotated[EscalationDetector, Depends(get_escalation_detector)],
):
    """Get escalation counts by status for the current user."""
    return detector.stats(current_user.id)


@router.post("/{escalation_id}/acknowledge", response_model=EscalationResponse)
def acknowledge_escalation(
    escalation_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    detector: Annotated[EscalationDetector, Depends(get_escalation_detector)],
):
    """Acknowledge a pending escalation."""
    return detector.acknowledge(escalation_id, current_user.id)


@router.post("/{escalation_id}/resolve", response_model=EscalationResponse)
def resolve_escalation(
    escalation_id: int,
    data: EscalationResolve,
    current_user: Annotated[User, Depends(get_current_user)],
    detector: Annotated[EscalationDetector, Depends(get_escalation_detector)],
):
    """Resolve an escalation, optionally with notes."""
    return detector.resolve(escalation_id, current_user.id, notes=data.notes)
