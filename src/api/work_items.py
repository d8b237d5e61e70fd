"""Work item SLA endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from src.api.dependencies import get_current_user
from src.database import get_db
from src.models.mixins import utcnow
from src.models.user import User
from src.schemas.deadline import SlaStatusResponse
from src.services import sla_clock
from src.services.repositories import WorkItemRepository

router = APIRouter(prefix="/api/v1/work-items", tags=["work-items"])


@router.get("/{work_item_id}/sla", response_model=SlaStatusResponse)
def get_sla_status(
    work_item_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    """Get the SLA Clock reading of a work item."""
    item = WorkItemRepository(db).get(work_item_id)
    reading = sla_clock.read_work_item(item, utcnow())
    if reading is None:
        return SlaStatusResponse(work_item_id=work_item_id, has_sla=False)

    return SlaStatusResponse(
        work_item_id=work_item_id,
        has_sla=True,
        remaining_minutes=reading.remaining_minutes,
        percent_remaining=reading.percent_remaining,
        status=reading.status,
        deadline=reading.deadline,
        adjusted_deadline=reading.adjusted_deadline,
        paused_minutes=reading.paused_minutes,
    )
