"""Notification-related Pydantic schemas."""

from datetime import datetime, time

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.models.enums import NotificationPriority, NotificationType


class NotificationResponse(BaseModel):
    """Schema for a notification in the inbox."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    type: NotificationType
    priority: NotificationPriority
    title: str
    message: str
    link: str | None
    template_key: str | None
    metadata: dict | None = Field(default=None, validation_alias="extra")
    is_read: bool
    created_at: datetime
    read_at: datetime | None


class UnreadCountResponse(BaseModel):
    count: int


class MarkAllReadResponse(BaseModel):
    updated: int


class NotificationSettingsUpdate(BaseModel):
    """Schema for updating Do-Not-Disturb settings."""

    dnd_enabled: bool | None = None
    dnd_start_time: time | None = None
    dnd_end_time: time | None = None
    dnd_days: list[int] | None = None  # 0 = Sunday
    timezone: str | None = None

    @field_validator("dnd_days")
    @classmethod
    def validate_days(cls, value: list[int] | None) -> list[int] | None:
        if value is not None and any(day < 0 or day > 6 for day in value):
            raise ValueError("dnd_days must be weekday numbers 0-6 (0 = Sunday)")
        return value


class NotificationSettingsResponse(BaseModel):
    """Schema for notification settings response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    dnd_enabled: bool
    dnd_start_time: time | None
    dnd_end_time: time | None
    dnd_days: list[int]
    timezone: str
