"""Notification and notification settings models."""

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Time,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship

from src.database import Base
from src.models.enums import NotificationPriority, NotificationType
from src.models.mixins import TimestampMixin, utcnow


class Notification(Base):
    """In-app notification for a user."""

    __tablename__ = "notifications"
    __table_args__ = (Index("ix_notifications_user_read", "user_id", "is_read"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    type = Column(
        Enum(
            NotificationType,
            name="notificationtype",
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
    )
    priority = Column(
        Enum(
            NotificationPriority,
            name="notificationpriority",
            values_callable=lambda x: [e.value for e in x],
        ),
        default=NotificationPriority.INFO,
        nullable=False,
    )
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    link = Column(String(500), nullable=True)
    template_key = Column(String(100), nullable=True)
    # "metadata" is reserved on declarative classes
    extra = Column("metadata", JSON().with_variant(JSONB, "postgresql"), default=dict)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    read_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    user = relationship("User")


class NotificationSetting(Base, TimestampMixin):
    """Per-user Do-Not-Disturb preferences."""

    __tablename__ = "notification_settings"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    dnd_enabled = Column(Boolean, default=False, nullable=False)
    dnd_start_time = Column(Time, nullable=True)  # e.g., 22:00
    dnd_end_time = Column(Time, nullable=True)  # e.g., 07:00
    # Weekdays with Sunday=0 ... Saturday=6; empty means every day
    dnd_days = Column(JSON().with_variant(JSONB, "postgresql"), default=list)
    timezone = Column(String(50), default="UTC", nullable=False)

    # Relationships
    user = relationship("User", backref="notification_setting")
