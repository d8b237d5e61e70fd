"""Notification inbox and Do-Not-Disturb settings endpoints."""

from typing import Annotated
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from src.api.dependencies import get_current_user, get_notification_dispatcher
from src.database import get_db
from src.models.user import User
from src.schemas.notification import (
    MarkAllReadResponse,
    NotificationResponse,
    NotificationSettingsResponse,
    NotificationSettingsUpdate,
    UnreadCountResponse,
)
from src.services.notification_dispatcher import NotificationDispatcher
from src.services.repositories import ConfigRepository

router = APIRouter(prefix="/api/v1/notifications", tags=["notifications"])


@router.get("", response_model=list[NotificationResponse])
def list_notifications(
    current_user: Annotated[User, Depends(get_current_user)],
    dispatcher: Annotated[NotificationDispatcher, Depends(get_notification_dispatcher)],
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    unread_only: bool = False,
):
    """Get the current user's most recent notifications."""
    return dispatcher.get_recent(current_user.id, limit=limit, unread_only=unread_only)


@router.get("/unread-count", response_model=UnreadCountResponse)
def get_unread_count(
    current_user: Annotated[User, Depends(get_current_user)],
    dispatcher: Annotated[NotificationDispatcher, Depends(get_notification_dispatcher)],
):
    """Get the number of unread notifications."""
    return UnreadCountResponse(count=dispatcher.get_unread_count(current_user.id))


@router.post("/read-all", response_model=MarkAllReadResponse)
def mark_all_read(
    current_user: Annotated[User, Depends(get_current_user)],
    dispatcher: Annotated[NotificationDispatcher, Depends(get_notification_dispatcher)],
):
    """Mark every notification of the current user as read."""
    return MarkAllReadResponse(updated=dispatcher.mark_all_as_read(current_user.id))


@router.post("/{notification_id}/read", response_model=NotificationResponse)
def mark_read(
    notification_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    dispatcher: Annotated[NotificationDispatcher, Depends(get_notification_dispatcher)],
):
    """Mark a notification as read."""
    return dispatcher.mark_as_read(notification_id, current_user.id)


@router.get("/settings", response_model=NotificationSettingsResponse)
def get_notification_settings(
    db: Annotated[Session, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    """Get notification settings for the current user."""
    return ConfigRepository(db).get_or_create_notification_setting(current_user.id)


@router.put("/settings", response_model=NotificationSettingsResponse)
def update_notification_settings(
    settings_data: NotificationSettingsUpdate,
    db: Annotated[Session, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    """Update Do-Not-Disturb settings for the current user."""
    update_data = settings_data.model_dump(exclude_unset=True)

    if "timezone" in update_data:
        try:
            ZoneInfo(update_data["timezone"])
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"Unknown timezone: {update_data['timezone']}",
            ) from e

    user_settings = ConfigRepository(db).get_or_create_notification_setting(current_user.id)
    for field, value in update_data.items():
        setattr(user_settings, field, value)

    db.commit()
    db.refresh(user_settings)
    return user_settings
