"""SQLAlchemy models."""

from src.models.audit_log import AuditLog
from src.models.category import Category, CategoryStats
from src.models.escalation import EscalationRecord, EscalationRule
from src.models.notification import Notification, NotificationSetting
from src.models.reminder import ReminderConfig, ReminderSendRecord
from src.models.timer_session import TimeLog, TimerSession
from src.models.user import Team, User
from src.models.work_item import WorkItem

__all__ = [
    "User",
    "Team",
    "Category",
    "CategoryStats",
    "WorkItem",
    "TimerSession",
    "TimeLog",
    "ReminderConfig",
    "ReminderSendRecord",
    "EscalationRule",
    "EscalationRecord",
    "Notification",
    "NotificationSetting",
    "AuditLog",
]
