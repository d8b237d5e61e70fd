"""Escalation detection over the fixed trigger catalog, plus escalation handling."""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from src.config import get_settings
from src.exceptions import InvalidStateError, NotFoundError
from src.models import EscalationRecord, EscalationRule, User, WorkItem
from src.models.enums import (
    ACTIVE_STATUSES,
    DeliveryChannel,
    EscalationStatus,
    EscalationTarget,
    NotificationPriority,
    NotificationType,
    TriggerType,
    UserRole,
    WorkItemStatus,
)
from src.models.mixins import ensure_utc, utcnow
from src.services import audit, sla_clock
from src.services.audit import AuditTrailWriter
from src.services.channels import NotificationChannel
from src.services.notification_dispatcher import NotificationDispatcher
from src.services.repositories import ConfigRepository, WorkItemRepository

logger = logging.getLogger(__name__)


@dataclass
class Candidate:
    """A work item currently breaching a rule."""

    item: WorkItem
    reason: str
    # Paused items keep an open episode alive but are never escalated
    held: bool = False


@dataclass
class EscalationResult:
    escalation_id: int
    rule_id: int
    rule_name: str
    trigger_type: TriggerType
    entity_id: int
    recipient_id: int
    reason: str


@dataclass
class EscalationSummary:
    total_checked: int = 0
    total_escalations: int = 0
    by_trigger_type: dict[str, int] = field(
        default_factory=lambda: {trigger.value: 0 for trigger in TriggerType}
    )
    cleared: int = 0
    failed: int = 0
    deferred: int = 0
    escalations_last_hour: int = 0
    escalations: list[EscalationResult] = field(default_factory=list)


def _hours_since(moment: datetime, now: datetime) -> float:
    return (ensure_utc(now) - ensure_utc(moment)).total_seconds() / 3600


def format_duration(minutes: int) -> str:
    if minutes < 60:
        return f"{minutes}m"
    hours, rest = divmod(minutes, 60)
    if hours < 24:
        return f"{hours}h {rest}m" if rest else f"{hours}h"
    days, hours = divmod(hours, 24)
    return f"{days}d {hours}h" if hours else f"{days}d"


class EscalationDetector:
    """Evaluates active escalation rules once per tick.

    An episode lasts while a rule's breach condition holds for an entity. The
    open record (``cleared_at`` NULL) is unique per (rule, entity); it is
    cleared as soon as the entity stops breaching, so a later breach opens a
    new record. Pausing does not stop a breach.
    """

    def __init__(self, db: Session, channel: NotificationChannel | None = None) -> None:
        self.db = db
        self.work_items = WorkItemRepository(db)
        self.config = ConfigRepository(db)
        self.audit = AuditTrailWriter(db)
        self.dispatcher = NotificationDispatcher(db, channel=channel, audit_writer=self.audit)
        self._finders: dict[TriggerType, Callable[[EscalationRule, datetime], list[Candidate]]] = {
            TriggerType.NO_CONFIRMATION: self._find_unconfirmed,
            TriggerType.CLARIFICATION_TIMEOUT: self._find_clarification_timeouts,
            TriggerType.SLA_OVERDUE: self._find_sla_overdue,
            TriggerType.STUCK_TASK: self._find_stuck,
        }

    def run(self, now: datetime | None = None) -> EscalationSummary:
        """Run every active rule and report what was escalated.

        Per-candidate failures are rolled back and counted; the tick carries on.
        """
        now = now or utcnow()
        settings = get_settings()
        summary = EscalationSummary()
        started = time.monotonic()

        for rule in self.config.get_active_escalation_rules():
            rule_name, trigger_type = rule.name, rule.trigger_type
            try:
                candidates = self._finders[trigger_type](rule, now)
                summary.cleared += self._clear_episodes(rule, candidates, now)
            except Exception as e:
                self.db.rollback()
                summary.failed += 1
                logger.error(f"Error evaluating escalation rule {rule_name}: {e}", exc_info=True)
                continue

            for index, candidate in enumerate(candidates):
                if time.monotonic() - started > settings.tick_time_budget_seconds:
                    summary.deferred += len(candidates) - index
                    logger.warning(
                        f"Escalation tick out of time, deferring {len(candidates) - index} "
                        f"candidates of rule {rule_name}"
                    )
                    break

                if candidate.held:
                    continue

                summary.total_checked += 1
                try:
                    result = self._escalate(rule, candidate, now)
                except Exception as e:
                    self.db.rollback()
                    summary.failed += 1
                    logger.error(
                        f"Escalation {rule_name} failed for work item {candidate.item.id}: {e}",
                        exc_info=True,
                    )
                    continue

                if result:
                    summary.total_escalations += 1
                    summary.by_trigger_type[trigger_type.value] += 1
                    summary.escalations.append(result)

        summary.escalations_last_hour = self.count_since(now - timedelta(hours=1))
        if summary.escalations_last_hour > settings.escalation_alert_threshold:
            logger.warning(
                f"High escalation volume: {summary.escalations_last_hour} escalations "
                f"in the last hour (threshold {settings.escalation_alert_threshold})"
            )

        logger.info(
            f"Escalation tick: checked={summary.total_checked} "
            f"escalated={summary.total_escalations} cleared={summary.cleared} "
            f"failed={summary.failed}"
        )
        return summary

    # Candidate finders

    def _find_unconfirmed(self, rule: EscalationRule, now: datetime) -> list[Candidate]:
        return [
            Candidate(
                item,
                f'"{item.title}" has not been confirmed for {rule.threshold_hours:g} hours',
            )
            for item in self.work_items.find_active_by_status(WorkItemStatus.TODO)
            if item.confirmed_at is None
            and _hours_since(item.created_at, now) > rule.threshold_hours
        ]

    def _find_clarification_timeouts(
        self, rule: EscalationRule, now: datetime
    ) -> list[Candidate]:
        candidates = []
        for item in self.work_items.find_active_by_status(WorkItemStatus.NEEDS_CLARIFICATION):
            since = item.clarification_requested_at or item.status_changed_at
            if since and _hours_since(since, now) > rule.threshold_hours:
                candidates.append(
                    Candidate(
                        item,
                        f'"{item.title}" has been waiting for clarification '
                        f"for more than {rule.threshold_hours:g} hours",
                    )
                )
        return candidates

    def _find_sla_overdue(self, rule: EscalationRule, now: datetime) -> list[Candidate]:
        candidates = []
        for item in self.work_items.find_active_by_status(*ACTIVE_STATUSES):
            if item.deadline is None:
                continue
            # The running pause counts towards the adjusted deadline
            reading = sla_clock.read_work_item(item, now)
            if reading.remaining_minutes <= 0:
                overdue = format_duration(int(-reading.remaining_minutes))
                candidates.append(
                    Candidate(
                        item,
                        f'"{item.title}" is {overdue} past its SLA',
                        held=item.sla_paused_at is not None,
                    )
                )
        return candidates

    def _find_stuck(self, rule: EscalationRule, now: datetime) -> list[Candidate]:
        candidates = []
        for item in self.work_items.find_active_by_status(WorkItemStatus.IN_PROGRESS):
            idle_hours = _hours_since(item.last_activity_at, now)
            if idle_hours > rule.threshold_hours:
                candidates.append(
                    Candidate(
                        item,
                        f'"{item.title}" has had no activity for {int(idle_hours)}h',
                        held=item.sla_paused_at is not None,
                    )
                )
        return candidates

    # Episodes

    def _clear_episodes(
        self, rule: EscalationRule, candidates: list[Candidate], now: datetime
    ) -> int:
        """Close open records of ``rule`` whose entity no longer breaches."""
        breaching = {candidate.item.id for candidate in candidates}
        open_records = (
            self.db.query(EscalationRecord)
            .filter(EscalationRecord.rule_id == rule.id, EscalationRecord.cleared_at.is_(None))
            .all()
        )

        cleared = 0
        for record in open_records:
            if record.entity_id in breaching:
                continue
            record.cleared_at = now
            self.audit.record(
                audit.ESCALATION_CLEARED,
                "EscalationRecord",
                entity_id=record.id,
                payload={"rule_id": rule.id, "work_item_id": record.entity_id},
            )
            cleared += 1

        if cleared:
            self.db.commit()
            logger.info(f"Cleared {cleared} escalation episodes for rule {rule.name}")
        return cleared

    def _escalate(
        self, rule: EscalationRule, candidate: Candidate, now: datetime
    ) -> EscalationResult | None:
        """Open a record for the candidate's episode and notify the recipient.

        Returns None when the episode is already escalated or nobody can receive it.
        """
        item = candidate.item
        existing = (
            self.db.query(EscalationRecord.id)
            .filter(
                EscalationRecord.rule_id == rule.id,
                EscalationRecord.entity_id == item.id,
                EscalationRecord.cleared_at.is_(None),
            )
            .first()
        )
        if existing:
            return None

        recipient = self.resolve_recipient(rule, item)
        if not recipient:
            logger.warning(
                f"No recipient found for escalation rule {rule.name}, work item {item.id}"
            )
            return None

        record = EscalationRecord(
            rule_id=rule.id,
            entity_type=item.kind,
            entity_id=item.id,
            recipient_id=recipient.id,
            reason=candidate.reason,
            status=EscalationStatus.PENDING,
            created_at=now,
        )
        self.db.add(record)
        try:
            self.db.flush()
        except IntegrityError:
            self.db.rollback()
            logger.info(f"Escalation {rule.name} for work item {item.id} already open")
            return None

        params = {
            "escalation_id": record.id,
            "work_item_id": item.id,
            "rule": rule.name,
            "trigger_type": rule.trigger_type.value,
            "reason": candidate.reason,
        }
        self.dispatcher.create(
            user_id=recipient.id,
            type=NotificationType.ESCALATION,
            title=f"Escalation: {rule.name}",
            message=candidate.reason,
            priority=NotificationPriority.URGENT,
            metadata=params,
            link=f"/escalations/{record.id}",
            template_key=f"escalation.{rule.trigger_type.value}",
            push=DeliveryChannel.TELEGRAM.value in (rule.notification_channels or []),
            now=now,
        )
        self.audit.record(
            audit.ESCALATION_TRIGGERED,
            "EscalationRecord",
            entity_id=record.id,
            user_id=recipient.id,
            payload={"rule_id": rule.id, "work_item_id": item.id},
        )
        self.db.commit()

        logger.info(f"Escalated work item {item.id} to user {recipient.id} ({rule.name})")
        return EscalationResult(
            escalation_id=record.id,
            rule_id=rule.id,
            rule_name=rule.name,
            trigger_type=rule.trigger_type,
            entity_id=item.id,
            recipient_id=recipient.id,
            reason=candidate.reason,
        )

    def resolve_recipient(self, rule: EscalationRule, item: WorkItem) -> User | None:
        """Pick who receives an escalation, falling back to an administrator."""
        recipient = None

        if rule.escalate_to == EscalationTarget.TEAM_LEADER:
            team = item.assignee.team if item.assignee else None
            if team:
                recipient = team.leader
                if recipient is None or not recipient.is_active:
                    recipient = next(
                        (
                            member
                            for member in team.members
                            if member.role == UserRole.LEADER and member.is_active
                        ),
                        None,
                    )
        elif rule.escalate_to == EscalationTarget.CUSTOM and rule.custom_recipient_id:
            recipient = self.config.get_user(rule.custom_recipient_id)

        return recipient or self.config.get_first_admin()

    # Escalation handling

    def count_since(self, since: datetime) -> int:
        return (
            self.db.query(func.count(EscalationRecord.id))
            .filter(EscalationRecord.created_at >= since)
            .scalar()
        )

    def _get_for_recipient(self, escalation_id: int, user_id: int) -> EscalationRecord:
        record = self.db.query(EscalationRecord).filter(EscalationRecord.id == escalation_id).first()
        if not record:
            raise NotFoundError("Escalation", escalation_id)
        if record.recipient_id != user_id:
            raise InvalidStateError(
                "Only the escalation recipient can update it",
                {"escalation_id": escalation_id},
            )
        return record

    def acknowledge(self, escalation_id: int, user_id: int) -> EscalationRecord:
        record = self._get_for_recipient(escalation_id, user_id)
        if record.status != EscalationStatus.PENDING:
            raise InvalidStateError(
                f"Escalation is already {record.status.value}", {"escalation_id": escalation_id}
            )

        record.status = EscalationStatus.ACKNOWLEDGED
        self.audit.record(
            audit.ESCALATION_ACKNOWLEDGED, "EscalationRecord", entity_id=record.id, user_id=user_id
        )
        self.db.commit()
        self.db.refresh(record)
        return record

    def resolve(
        self,
        escalation_id: int,
        user_id: int,
        notes: str | None = None,
        now: datetime | None = None,
    ) -> EscalationRecord:
        record = self._get_for_recipient(escalation_id, user_id)
        if record.status == EscalationStatus.RESOLVED:
            raise InvalidStateError(
                "Escalation is already resolved", {"escalation_id": escalation_id}
            )

        record.status = EscalationStatus.RESOLVED
        record.resolved_at = now or utcnow()
        record.notes = notes
        self.audit.record(
            audit.ESCALATION_RESOLVED,
            "EscalationRecord",
            entity_id=record.id,
            user_id=user_id,
            payload={"notes": notes} if notes else None,
        )
        self.db.commit()
        self.db.refresh(record)
        return record

    def list_active(self, user_id: int) -> list[EscalationRecord]:
        """Pending and acknowledged escalations addressed to ``user_id``."""
        return (
            self.db.query(EscalationRecord)
            .filter(
                EscalationRecord.recipient_id == user_id,
                EscalationRecord.status.in_(
                    [EscalationStatus.PENDING, EscalationStatus.ACKNOWLEDGED]
                ),
            )
            .order_by(EscalationRecord.created_at.desc())
            .all()
        )

    def stats(self, user_id: int) -> dict[str, int]:
        rows = (
            self.db.query(EscalationRecord.status, func.count(EscalationRecord.id))
            .filter(EscalationRecord.recipient_id == user_id)
            .group_by(EscalationRecord.status)
            .all()
        )
        counts = {status.value: 0 for status in EscalationStatus}
        for status, count in rows:
            counts[status.value] = count
        counts["total"] = sum(counts.values())
        return counts
