"""Reminder configuration and send-record models."""

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB

from src.database import Base
from src.models.mixins import TimestampMixin, utcnow


class ReminderConfig(Base, TimestampMixin):
    """Reminder thresholds, in minutes since the current run started."""

    __tablename__ = "reminder_configs"
    __table_args__ = (
        CheckConstraint(
            "first_reminder_minutes > 0"
            " AND first_reminder_minutes < second_reminder_minutes"
            " AND second_reminder_minutes < third_reminder_minutes",
            name="ck_reminder_thresholds_ordered",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    enabled = Column(Boolean, default=True, nullable=False)
    first_reminder_minutes = Column(Integer, default=60, nullable=False)
    second_reminder_minutes = Column(Integer, default=120, nullable=False)
    third_reminder_minutes = Column(Integer, default=180, nullable=False)
    # ["in_app", "telegram"]
    channels = Column(JSON().with_variant(JSONB, "postgresql"), default=lambda: ["in_app"])

    @property
    def thresholds(self) -> dict[int, int]:
        """Reminder level -> threshold minutes."""
        return {
            1: self.first_reminder_minutes,
            2: self.second_reminder_minutes,
            3: self.third_reminder_minutes,
        }


class ReminderSendRecord(Base):
    """Idempotency guard: one row per (work item, level, run)."""

    __tablename__ = "reminder_send_records"
    __table_args__ = (
        UniqueConstraint("work_item_id", "level", "run_started_at", name="uq_reminder_level_run"),
    )

    id = Column(Integer, primary_key=True, index=True)
    work_item_id = Column(Integer, ForeignKey("work_items.id"), nullable=False, index=True)
    level = Column(Integer, nullable=False)
    run_started_at = Column(DateTime(timezone=True), nullable=False)
    sent_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
