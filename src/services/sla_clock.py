"""Pause-aware SLA clock.

Pure functions only: ``now`` is always passed in, nothing here touches the
database or reads the system clock.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta

from src.models.enums import SlaStatus
from src.models.mixins import ensure_utc
from src.models.work_item import WorkItem

AT_RISK_PERCENT = 25.0


@dataclass(frozen=True)
class SlaReading:
    """SLA Clock output."""

    remaining_minutes: float
    percent_remaining: float
    status: SlaStatus
    deadline: datetime
    adjusted_deadline: datetime
    paused_minutes: float

    def to_dict(self) -> dict:
        return {
            "remaining_minutes": self.remaining_minutes,
            "percent_remaining": self.percent_remaining,
            "status": self.status.value,
            "deadline": self.deadline.isoformat(),
            "adjusted_deadline": self.adjusted_deadline.isoformat(),
            "paused_minutes": self.paused_minutes,
        }


def compute(
    deadline: datetime,
    accumulated_paused_minutes: float,
    now: datetime,
    total_window_minutes: float | None = None,
) -> SlaReading:
    """Derive remaining time, percent remaining and status.

    Paused minutes push the effective deadline forward. ``total_window_minutes``
    is the original deadline - start span as persisted when the deadline was set.
    Without it the percentage is 0.

    Args:
        deadline: Original SLA deadline
        accumulated_paused_minutes: Total minutes the SLA has been paused
        now: Evaluation time
        total_window_minutes: Original SLA window in minutes

    Returns:
        SlaReading with a possibly negative remaining_minutes
    """
    deadline = ensure_utc(deadline)
    now = ensure_utc(now)
    paused = accumulated_paused_minutes or 0.0

    adjusted_deadline = deadline + timedelta(minutes=paused)
    remaining_minutes = (adjusted_deadline - now).total_seconds() / 60

    if total_window_minutes and total_window_minutes > 0:
        percent_remaining = max(0.0, remaining_minutes / total_window_minutes * 100)
    else:
        percent_remaining = 0.0

    if remaining_minutes <= 0:
        status = SlaStatus.OVERDUE
    elif percent_remaining < AT_RISK_PERCENT:
        status = SlaStatus.AT_RISK
    else:
        status = SlaStatus.ON_TIME

    return SlaReading(
        remaining_minutes=remaining_minutes,
        percent_remaining=percent_remaining,
        status=status,
        deadline=deadline,
        adjusted_deadline=adjusted_deadline,
        paused_minutes=paused,
    )


def read_work_item(item: WorkItem, now: datetime) -> SlaReading | None:
    """SLA reading for a work item, or None when it has no deadline.

    While the item's SLA is paused the in-progress pause counts towards the
    adjusted deadline and the status is reported as PAUSED.
    """
    if item.deadline is None:
        return None

    paused_minutes = item.accumulated_paused_minutes or 0.0
    paused_at = ensure_utc(item.sla_paused_at)
    if paused_at is not None:
        paused_minutes += max(0.0, (ensure_utc(now) - paused_at).total_seconds() / 60)

    reading = compute(item.deadline, paused_minutes, now, item.total_window_minutes)
    if paused_at is None:
        return reading

    return SlaReading(
        remaining_minutes=reading.remaining_minutes,
        percent_remaining=reading.percent_remaining,
        status=SlaStatus.PAUSED,
        deadline=reading.deadline,
        adjusted_deadline=reading.adjusted_deadline,
        paused_minutes=reading.paused_minutes,
    )
