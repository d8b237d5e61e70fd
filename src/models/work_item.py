"""Work item model.

Owned by the workflow system; the engine only reads status and timestamps and
writes SLA pause accumulation through timer sessions.
"""

from datetime import datetime

from sqlalchemy import Column, DateTime, Enum, Float, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from src.database import Base
from src.models.enums import WorkItemKind, WorkItemStatus
from src.models.mixins import TimestampMixin, ensure_utc, utcnow


class WorkItem(Base, TimestampMixin):
    """A request or task tracked against an SLA."""

    __tablename__ = "work_items"

    id = Column(Integer, primary_key=True, index=True)
    kind = Column(
        Enum(WorkItemKind, name="workitemkind", values_callable=lambda x: [e.value for e in x]),
        default=WorkItemKind.TASK,
        nullable=False,
    )
    title = Column(String(500), nullable=False)
    status = Column(
        Enum(
            WorkItemStatus,
            name="workitemstatus",
            values_callable=lambda x: [e.value for e in x],
        ),
        default=WorkItemStatus.TODO,
        nullable=False,
        index=True,
    )
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True, index=True)
    assignee_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)

    # Workflow timestamps
    status_changed_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    started_at = Column(DateTime(timezone=True), nullable=True)  # start of the current run
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    clarification_requested_at = Column(DateTime(timezone=True), nullable=True)
    last_activity_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    # SLA
    deadline = Column(DateTime(timezone=True), nullable=True, index=True)
    sla_window_minutes = Column(Float, nullable=True)
    sla_paused_at = Column(DateTime(timezone=True), nullable=True)
    accumulated_paused_minutes = Column(Float, default=0.0, nullable=False)

    # Relationships
    category = relationship("Category")
    assignee = relationship("User")

    def assign_deadline(self, deadline: datetime, start: datetime) -> None:
        """Set the SLA deadline and persist the original window it spans."""
        self.deadline = deadline
        self.sla_window_minutes = (deadline - start).total_seconds() / 60

    @property
    def total_window_minutes(self) -> float | None:
        """Original SLA window; falls back to deadline - created_at for legacy rows."""
        if self.sla_window_minutes is not None:
            return self.sla_window_minutes
        if self.deadline is None or self.created_at is None:
            return None
        return (ensure_utc(self.deadline) - ensure_utc(self.created_at)).total_seconds() / 60
