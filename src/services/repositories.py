"""SQLAlchemy-backed collaborators the engine reads through.

The engine never writes workflow status; writes here are limited to
configuration defaults and category statistics.
"""

from datetime import datetime

from sqlalchemy.orm import Session, joinedload

from src.exceptions import NotFoundError
from src.models import (
    Category,
    CategoryStats,
    EscalationRule,
    NotificationSetting,
    ReminderConfig,
    User,
    WorkItem,
)
from src.models.enums import UserRole, WorkItemStatus
from src.models.mixins import utcnow


class WorkItemRepository:
    """Read access to work items."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def find_by_id(self, work_item_id: int) -> WorkItem | None:
        return self.db.query(WorkItem).filter(WorkItem.id == work_item_id).first()

    def get(self, work_item_id: int) -> WorkItem:
        item = self.find_by_id(work_item_id)
        if not item:
            raise NotFoundError("WorkItem", work_item_id)
        return item

    def find_active_by_status(self, *statuses: WorkItemStatus) -> list[WorkItem]:
        """Uncompleted items in any of ``statuses``, with assignee and team loaded."""
        return (
            self.db.query(WorkItem)
            .options(joinedload(WorkItem.assignee).joinedload(User.team))
            .filter(WorkItem.status.in_(statuses), WorkItem.completed_at.is_(None))
            .order_by(WorkItem.id)
            .all()
        )

    def find_reminder_candidates(self) -> list[WorkItem]:
        """In-progress, unpaused, uncompleted items with a known run start."""
        return (
            self.db.query(WorkItem)
            .filter(
                WorkItem.status == WorkItemStatus.IN_PROGRESS,
                WorkItem.sla_paused_at.is_(None),
                WorkItem.completed_at.is_(None),
                WorkItem.started_at.isnot(None),
            )
            .order_by(WorkItem.id)
            .all()
        )

    def find_recently_completed(self, category_id: int, limit: int = 20) -> list[WorkItem]:
        return (
            self.db.query(WorkItem)
            .filter(
                WorkItem.category_id == category_id,
                WorkItem.status == WorkItemStatus.DONE,
                WorkItem.completed_at.isnot(None),
            )
            .order_by(WorkItem.completed_at.desc())
            .limit(limit)
            .all()
        )


class CategoryStatsRepository:
    """Categories and their historical completion statistics."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def get_category(self, category_id: int) -> Category:
        category = self.db.query(Category).filter(Category.id == category_id).first()
        if not category:
            raise NotFoundError("Category", category_id)
        return category

    def list_active_categories(self) -> list[Category]:
        return self.db.query(Category).filter(Category.is_active.is_(True)).all()

    def get_stats(self, category_id: int) -> CategoryStats | None:
        return (
            self.db.query(CategoryStats).filter(CategoryStats.category_id == category_id).first()
        )

    def replace_stats(
        self,
        category_id: int,
        avg_hours: float,
        median_hours: float,
        min_hours: float,
        max_hours: float,
        sample_size: int,
        computed_at: datetime | None = None,
    ) -> CategoryStats:
        """Overwrite every stats field; no merging with the previous values."""
        stats = self.get_stats(category_id)
        if stats is None:
            stats = CategoryStats(category_id=category_id)
            self.db.add(stats)

        stats.avg_hours = avg_hours
        stats.median_hours = median_hours
        stats.min_hours = min_hours
        stats.max_hours = max_hours
        stats.sample_size = sample_size
        stats.computed_at = computed_at or utcnow()
        return stats


class ConfigRepository:
    """Reminder config, escalation rules, notification settings and recipients."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def get_reminder_config(self) -> ReminderConfig | None:
        return (
            self.db.query(ReminderConfig)
            .filter(ReminderConfig.is_active.is_(True))
            .order_by(ReminderConfig.id.desc())
            .first()
        )

    def get_active_escalation_rules(self) -> list[EscalationRule]:
        return (
            self.db.query(EscalationRule)
            .filter(EscalationRule.is_active.is_(True))
            .order_by(EscalationRule.id)
            .all()
        )

    def get_notification_setting(self, user_id: int) -> NotificationSetting | None:
        return (
            self.db.query(NotificationSetting)
            .filter(NotificationSetting.user_id == user_id)
            .first()
        )

    def get_or_create_notification_setting(self, user_id: int) -> NotificationSetting:
        setting = self.get_notification_setting(user_id)
        if not setting:
            setting = NotificationSetting(user_id=user_id)
            self.db.add(setting)
            self.db.commit()
            self.db.refresh(setting)
        return setting

    def get_user(self, user_id: int) -> User | None:
        return self.db.query(User).filter(User.id == user_id, User.is_active.is_(True)).first()

    def get_first_admin(self) -> User | None:
        return (
            self.db.query(User)
            .filter(User.role == UserRole.ADMIN, User.is_active.is_(True))
            .order_by(User.id)
            .first()
        )
