"""Periodic trigger endpoints for external cron sources."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from src.api.dependencies import verify_cron_secret
from src.database import get_db
from src.models.mixins import utcnow
from src.schemas.tick import TickResponse
from src.services.engine import TickReport, run_tick

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/cron",
    tags=["cron"],
    dependencies=[Depends(verify_cron_secret)],
)


def _to_response(report: TickReport) -> TickResponse:
    return TickResponse(
        success=report.success,
        skipped=report.skipped,
        checked=report.checked,
        escalated=report.escalated,
        sent=report.sent,
        failed=report.failed,
        deferred=report.deferred,
        by_trigger_type=report.by_trigger_type,
        escalations_last_hour=report.escalations_last_hour,
        duration_ms=report.duration_ms,
        timestamp=report.timestamp,
    )


def _run(db: Session, reminders: bool, escalations: bool) -> TickResponse | JSONResponse:
    try:
        report = run_tick(db, reminders=reminders, escalations=escalations)
    except Exception as e:
        db.rollback()
        logger.error(f"Engine tick failed: {e}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "success": False,
                "error": "Tick failed",
                "timestamp": utcnow().isoformat(),
            },
        )
    return _to_response(report)


@router.api_route("/tick", methods=["GET", "POST"], response_model=TickResponse)
def run_full_tick(db: Annotated[Session, Depends(get_db)]):
    """Run reminders and escalations once."""
    return _run(db, reminders=True, escalations=True)


@router.api_route("/reminders", methods=["GET", "POST"], response_model=TickResponse)
def run_reminder_tick(db: Annotated[Session, Depends(get_db)]):
    """Run the reminder pass only."""
    return _run(db, reminders=True, escalations=False)


@router.api_route("/escalations", methods=["GET", "POST"], response_model=TickResponse)
def run_escalation_tick(db: Annotated[Session, Depends(get_db)]):
    """Run the escalation pass only."""
    return _run(db, reminders=False, escalations=True)
