"""Enums for model fields."""

from enum import Enum


class UserRole(str, Enum):
    """Organisational role, used when resolving escalation recipients."""

    ADMIN = "admin"
    LEADER = "leader"
    STAFF = "staff"


class WorkItemKind(str, Enum):
    """Kind of tracked work item."""

    REQUEST = "request"
    TASK = "task"


class WorkItemStatus(str, Enum):
    """Workflow status of a work item."""

    TODO = "todo"
    IN_PROGRESS = "in_progress"
    NEEDS_CLARIFICATION = "needs_clarification"
    IN_REVIEW = "in_review"
    DONE = "done"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        """Check if no further work is expected."""
        return self in (WorkItemStatus.DONE, WorkItemStatus.CANCELLED)


ACTIVE_STATUSES = (
    WorkItemStatus.TODO,
    WorkItemStatus.IN_PROGRESS,
    WorkItemStatus.NEEDS_CLARIFICATION,
)


class TimerState(str, Enum):
    """Persisted state of an open timer session (stopped sessions become time logs)."""

    RUNNING = "running"
    PAUSED = "paused"


class SlaStatus(str, Enum):
    """SLA compliance status."""

    ON_TIME = "on_time"
    AT_RISK = "at_risk"
    OVERDUE = "overdue"
    PAUSED = "paused"


class TriggerType(str, Enum):
    """Escalation rule trigger types."""

    NO_CONFIRMATION = "no_confirmation"
    CLARIFICATION_TIMEOUT = "clarification_timeout"
    SLA_OVERDUE = "sla_overdue"
    STUCK_TASK = "stuck_task"


class EscalationTarget(str, Enum):
    """Recipient-resolution strategy of an escalation rule."""

    TEAM_LEADER = "team_leader"
    ADMIN = "admin"
    CUSTOM = "custom"


class EscalationStatus(str, Enum):
    """Handling status of an escalation record."""

    PENDING = "pending"
    ACKNOWLEDGED = "acknowledged"
    RESOLVED = "resolved"


class NotificationPriority(str, Enum):
    """Notification priority. URGENT bypasses Do-Not-Disturb."""

    INFO = "info"
    WARNING = "warning"
    URGENT = "urgent"


class NotificationType(str, Enum):
    """Notification categories produced by the engine."""

    REMINDER = "reminder"
    ESCALATION = "escalation"
    DEADLINE_APPROACHING = "deadline_approaching"
    OVERDUE = "overdue"
    SYSTEM = "system"


class DeliveryChannel(str, Enum):
    """Delivery channels configurable on reminders and escalation rules."""

    IN_APP = "in_app"
    TELEGRAM = "telegram"
