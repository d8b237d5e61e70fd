"""One engine tick: reminders and escalations under the advisory lock."""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.orm import Session

from src.models.enums import TriggerType
from src.models.mixins import utcnow
from src.services.channels import NotificationChannel, get_channel
from src.services.escalation_detector import EscalationDetector, EscalationSummary
from src.services.reminder_scheduler import ReminderScheduler, ReminderSummary
from src.services.tick_lock import tick_lock

logger = logging.getLogger(__name__)


@dataclass
class TickReport:
    timestamp: datetime
    skipped: bool = False
    checked: int = 0
    escalated: int = 0
    sent: int = 0
    failed: int = 0
    deferred: int = 0
    by_trigger_type: dict[str, int] = field(
        default_factory=lambda: {trigger.value: 0 for trigger in TriggerType}
    )
    escalations_last_hour: int = 0
    duration_ms: int = 0
    reminders: ReminderSummary | None = None
    escalations: EscalationSummary | None = None

    @property
    def success(self) -> bool:
        """False when the tick completed but some items failed."""
        return self.failed == 0


def run_tick(
    db: Session,
    reminders: bool = True,
    escalations: bool = True,
    now: datetime | None = None,
    channel: NotificationChannel | None = None,
) -> TickReport:
    """Run the requested engine passes once.

    Per-item failures are counted in the report. Anything raised here is a
    tick-level failure for the caller to surface.
    """
    now = now or utcnow()
    started = time.monotonic()
    report = TickReport(timestamp=now)

    if reminders and escalations:
        lock_name = "tick"
    else:
        lock_name = "reminders" if reminders else "escalations"

    with tick_lock(lock_name) as acquired:
        if not acquired:
            report.skipped = True
            return report

        channel = channel or get_channel(db)

        if reminders:
            summary = ReminderScheduler(db, channel=channel).run(now)
            report.reminders = summary
            report.checked += summary.checked
            report.sent += summary.sent
            report.failed += summary.failed
            report.deferred += summary.deferred

        if escalations:
            summary = EscalationDetector(db, channel=channel).run(now)
            report.escalations = summary
            report.checked += summary.total_checked
            report.escalated += summary.total_escalations
            report.failed += summary.failed
            report.deferred += summary.deferred
            report.by_trigger_type = dict(summary.by_trigger_type)
            report.escalations_last_hour = summary.escalations_last_hour

    report.duration_ms = int((time.monotonic() - started) * 1000)
    logger.info(
        f"Tick {lock_name} done in {report.duration_ms}ms: checked={report.checked} "
        f"sent={report.sent} escalated={report.escalated} failed={report.failed}"
    )
    return report
