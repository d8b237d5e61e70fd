"""Notification persistence with Do-Not-Disturb suppression."""

import logging
from datetime import UTC, datetime, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy.orm import Session

from src.config import get_settings
from src.exceptions import NotFoundError
from src.models import Notification, NotificationSetting
from src.models.enums import NotificationPriority, NotificationType
from src.models.mixins import ensure_utc, utcnow
from src.services import audit
from src.services.audit import AuditTrailWriter
from src.services.channels import NotificationChannel, get_channel
from src.services.repositories import ConfigRepository

logger = logging.getLogger(__name__)


def is_dnd_active(setting: NotificationSetting | None, now: datetime) -> bool:
    """Check if ``now`` falls in the user's Do-Not-Disturb window.

    Weekdays use Sunday=0; an empty day list means every day. Windows whose
    start is after their end wrap past midnight.
    """
    if not setting or not setting.dnd_enabled:
        return False
    if not setting.dnd_start_time or not setting.dnd_end_time:
        return False

    try:
        user_tz = ZoneInfo(setting.timezone or "UTC")
    except ZoneInfoNotFoundError:
        logger.warning(f"Unknown timezone {setting.timezone!r} for user {setting.user_id}")
        user_tz = UTC

    local_now = ensure_utc(now).astimezone(user_tz)
    weekday = (local_now.weekday() + 1) % 7
    days = setting.dnd_days or []
    if days and weekday not in days:
        return False

    local_time = local_now.time()
    start = setting.dnd_start_time
    end = setting.dnd_end_time

    if start > end:
        return local_time >= start or local_time < end

    return start <= local_time < end


class NotificationDispatcher:
    """Creates notifications inside the caller's transaction.

    ``create`` flushes but never commits, so a reminder or escalation and its
    notification succeed or fail together.
    """

    def __init__(
        self,
        db: Session,
        channel: NotificationChannel | None = None,
        audit_writer: AuditTrailWriter | None = None,
    ) -> None:
        self.db = db
        self.config = ConfigRepository(db)
        self.channel = channel or get_channel(db)
        self.audit = audit_writer or AuditTrailWriter(db)

    def create(
        self,
        user_id: int,
        type: NotificationType,
        title: str,
        message: str,
        priority: NotificationPriority = NotificationPriority.INFO,
        metadata: dict | None = None,
        link: str | None = None,
        template_key: str | None = None,
        push: bool = False,
        now: datetime | None = None,
    ) -> Notification | None:
        """Persist a notification unless DND suppresses it.

        URGENT notifications are never suppressed. When ``push`` is set and a
        template key is given, the notification is also sent over the outbound
        channel.

        Returns:
            The new notification, or None when suppressed

        Raises:
            ChannelError: outbound delivery failed
        """
        now = now or utcnow()
        metadata = metadata or {}

        setting = self.config.get_notification_setting(user_id)
        if priority != NotificationPriority.URGENT and is_dnd_active(setting, now):
            logger.info(f"Notification skipped (DND) for user {user_id}: {title}")
            self.audit.record(
                audit.NOTIFICATION_SUPPRESSED,
                "Notification",
                user_id=user_id,
                payload={"type": type.value, "priority": priority.value, "title": title},
            )
            return None

        notification = Notification(
            user_id=user_id,
            type=type,
            priority=priority,
            title=title,
            message=message,
            link=link,
            template_key=template_key,
            extra=metadata,
            created_at=now,
        )
        self.db.add(notification)
        self.db.flush()

        self.audit.record(
            audit.NOTIFICATION_CREATED,
            "Notification",
            entity_id=notification.id,
            user_id=user_id,
            payload={"type": type.value, "priority": priority.value},
        )

        if push and template_key:
            self.channel.send(user_id, template_key, metadata)

        logger.info(f"Notification created for user {user_id}: {title}")
        return notification

    def get_unread_count(self, user_id: int) -> int:
        return (
            self.db.query(Notification)
            .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
            .count()
        )

    def get_recent(
        self, user_id: int, limit: int = 20, unread_only: bool = False
    ) -> list[Notification]:
        query = self.db.query(Notification).filter(Notification.user_id == user_id)
        if unread_only:
            query = query.filter(Notification.is_read.is_(False))
        return query.order_by(Notification.created_at.desc()).limit(limit).all()

    def mark_as_read(
        self, notification_id: int, user_id: int, now: datetime | None = None
    ) -> Notification:
        """Mark one notification read. Re-marking a read notification is a no-op."""
        notification = (
            self.db.query(Notification)
            .filter(Notification.id == notification_id, Notification.user_id == user_id)
            .first()
        )
        if not notification:
            raise NotFoundError("Notification", notification_id)

        if not notification.is_read:
            notification.is_read = True
            notification.read_at = now or utcnow()
            self.db.commit()
            self.db.refresh(notification)
        return notification

    def mark_all_as_read(self, user_id: int, now: datetime | None = None) -> int:
        updated = (
            self.db.query(Notification)
            .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
            .update({"is_read": True, "read_at": now or utcnow()}, synchronize_session=False)
        )
        self.db.commit()
        return updated

    def purge_read(self, older_than_days: int | None = None, now: datetime | None = None) -> int:
        """Delete notifications that are read and older than the retention window.

        Unread notifications are kept regardless of age.
        """
        days = (
            older_than_days
            if older_than_days is not None
            else get_settings().notification_retention_days
        )
        cutoff = (now or utcnow()) - timedelta(days=days)
        deleted = (
            self.db.query(Notification)
            .filter(Notification.is_read.is_(True), Notification.created_at < cutoff)
            .delete(synchronize_session=False)
        )
        self.db.commit()
        logger.info(f"Purged {deleted} read notifications older than {days} days")
        return deleted
