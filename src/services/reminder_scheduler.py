"""Threshold-based reminders for in-progress work items."""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from src.config import get_settings
from src.models import ReminderConfig, ReminderSendRecord, WorkItem
from src.models.enums import DeliveryChannel, NotificationPriority, NotificationType
from src.models.mixins import ensure_utc, utcnow
from src.services import audit
from src.services.audit import AuditTrailWriter
from src.services.channels import NotificationChannel
from src.services.notification_dispatcher import NotificationDispatcher
from src.services.repositories import ConfigRepository, WorkItemRepository

logger = logging.getLogger(__name__)

LEVEL_PRIORITIES = {
    1: NotificationPriority.INFO,
    2: NotificationPriority.WARNING,
    3: NotificationPriority.URGENT,
}


@dataclass
class ReminderResult:
    work_item_id: int
    user_id: int
    level: int
    elapsed_minutes: float
    notified: bool


@dataclass
class ReminderSummary:
    checked: int = 0
    sent: int = 0
    skipped: int = 0
    failed: int = 0
    deferred: int = 0
    results: list[ReminderResult] = field(default_factory=list)


def match_level(
    elapsed_minutes: float, thresholds: dict[int, int], window_minutes: float
) -> int | None:
    """Reminder level whose window [T, T + window) contains ``elapsed_minutes``.

    The highest level wins when windows overlap.
    """
    matched = None
    for level, threshold in sorted(thresholds.items()):
        if threshold is None:
            continue
        if threshold <= elapsed_minutes < threshold + window_minutes:
            matched = level
    return matched


class ReminderScheduler:
    """Sends at most one reminder per level per run of a work item.

    The (work item, level, run start) unique key on ``reminder_send_records``
    is the idempotency guard; an insert conflict means another tick already
    handled the reminder.
    """

    def __init__(self, db: Session, channel: NotificationChannel | None = None) -> None:
        self.db = db
        self.work_items = WorkItemRepository(db)
        self.config = ConfigRepository(db)
        self.audit = AuditTrailWriter(db)
        self.dispatcher = NotificationDispatcher(db, channel=channel, audit_writer=self.audit)

    def run(self, now: datetime | None = None) -> ReminderSummary:
        """Evaluate every reminder candidate once.

        A failing item is rolled back and counted; the tick carries on. Items
        left when the time budget runs out are deferred to the next tick.
        """
        now = now or utcnow()
        settings = get_settings()
        summary = ReminderSummary()

        config = self.config.get_reminder_config()
        if not config or not config.enabled:
            logger.info("Reminders disabled, skipping tick")
            return summary

        started = time.monotonic()
        candidates = self.work_items.find_reminder_candidates()

        for index, item in enumerate(candidates):
            if time.monotonic() - started > settings.tick_time_budget_seconds:
                summary.deferred = len(candidates) - index
                logger.warning(f"Reminder tick out of time, deferring {summary.deferred} items")
                break

            summary.checked += 1
            if not item.assignee_id:
                summary.skipped += 1
                continue

            elapsed = (ensure_utc(now) - ensure_utc(item.started_at)).total_seconds() / 60
            level = match_level(elapsed, config.thresholds, settings.reminder_window_minutes)
            if level is None:
                continue

            try:
                result = self._send_reminder(item, level, elapsed, config, now)
            except Exception as e:
                self.db.rollback()
                summary.failed += 1
                logger.error(
                    f"Reminder level {level} failed for work item {item.id}: {e}", exc_info=True
                )
                continue

            if result is None:
                summary.skipped += 1
            else:
                summary.sent += 1
                summary.results.append(result)

        logger.info(
            f"Reminder tick: checked={summary.checked} sent={summary.sent} "
            f"skipped={summary.skipped} failed={summary.failed} deferred={summary.deferred}"
        )
        return summary

    def _send_reminder(
        self,
        item: WorkItem,
        level: int,
        elapsed: float,
        config: ReminderConfig,
        now: datetime,
    ) -> ReminderResult | None:
        """Record and dispatch one reminder in a single transaction.

        Returns None when this level was already sent for the current run.
        """
        item_id = item.id
        already_sent = (
            self.db.query(ReminderSendRecord.id)
            .filter(
                ReminderSendRecord.work_item_id == item_id,
                ReminderSendRecord.level == level,
                ReminderSendRecord.run_started_at == item.started_at,
            )
            .first()
        )
        if already_sent:
            return None

        self.db.add(
            ReminderSendRecord(
                work_item_id=item_id,
                level=level,
                run_started_at=item.started_at,
                sent_at=now,
            )
        )
        try:
            self.db.flush()
        except IntegrityError:
            self.db.rollback()
            logger.info(f"Reminder level {level} for work item {item_id} already recorded")
            return None

        elapsed_minutes = int(elapsed)
        params = {
            "work_item_id": item_id,
            "title": item.title,
            "level": level,
            "elapsed_minutes": elapsed_minutes,
        }
        notification = self.dispatcher.create(
            user_id=item.assignee_id,
            type=NotificationType.REMINDER,
            title=f"Reminder: {item.title}",
            message=f"This item has been in progress for {elapsed_minutes} minutes.",
            priority=LEVEL_PRIORITIES.get(level, NotificationPriority.INFO),
            metadata=params,
            link=f"/work-items/{item_id}",
            template_key=f"reminder.level_{level}",
            push=DeliveryChannel.TELEGRAM.value in (config.channels or []),
            now=now,
        )

        self.audit.record(
            audit.REMINDER_SENT if notification else audit.REMINDER_SUPPRESSED,
            "WorkItem",
            entity_id=item_id,
            user_id=item.assignee_id,
            payload={"level": level, "elapsed_minutes": elapsed_minutes},
        )
        self.db.commit()

        logger.info(f"Reminder level {level} recorded for work item {item_id}")
        return ReminderResult(
            work_item_id=item_id,
            user_id=item.assignee_id,
            level=level,
            elapsed_minutes=elapsed,
            notified=notification is not None,
        )
