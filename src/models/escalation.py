"""Escalation rule and record models."""

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship

from src.database import Base
from src.models.enums import EscalationStatus, EscalationTarget, TriggerType, WorkItemKind
from src.models.mixins import TimestampMixin, utcnow


class EscalationRule(Base, TimestampMixin):
    """A rule from the fixed trigger catalog with its threshold and recipient strategy."""

    __tablename__ = "escalation_rules"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    trigger_type = Column(
        Enum(TriggerType, name="triggertype", values_callable=lambda x: [e.value for e in x]),
        nullable=False,
    )
    threshold_hours = Column(Float, nullable=False, default=24.0)
    escalate_to = Column(
        Enum(
            EscalationTarget,
            name="escalationtarget",
            values_callable=lambda x: [e.value for e in x],
        ),
        default=EscalationTarget.TEAM_LEADER,
        nullable=False,
    )
    custom_recipient_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    # ["in_app", "telegram"]
    notification_channels = Column(
        JSON().with_variant(JSONB, "postgresql"), default=lambda: ["in_app"]
    )
    is_active = Column(Boolean, default=True, nullable=False)

    # Relationships
    custom_recipient = relationship("User")


class EscalationRecord(Base):
    """One escalation per rule and entity per breach episode.

    An episode stays open (cleared_at is NULL) while the breach condition holds.
    The partial unique index allows a single open record per (rule, entity).
    """

    __tablename__ = "escalation_records"
    __table_args__ = (
        Index(
            "uq_escalation_open_episode",
            "rule_id",
            "entity_type",
            "entity_id",
            unique=True,
            sqlite_where=text("cleared_at IS NULL"),
            postgresql_where=text("cleared_at IS NULL"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    rule_id = Column(Integer, ForeignKey("escalation_rules.id"), nullable=False, index=True)
    entity_type = Column(
        Enum(WorkItemKind, name="workitemkind", values_callable=lambda x: [e.value for e in x]),
        nullable=False,
    )
    entity_id = Column(Integer, ForeignKey("work_items.id"), nullable=False, index=True)
    recipient_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    reason = Column(Text, nullable=False)
    status = Column(
        Enum(
            EscalationStatus,
            name="escalationstatus",
            values_callable=lambda x: [e.value for e in x],
        ),
        default=EscalationStatus.PENDING,
        nullable=False,
    )
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    cleared_at = Column(DateTime(timezone=True), nullable=True)
    resolved_at = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)

    # Relationships
    rule = relationship("EscalationRule")
    work_item = relationship("WorkItem")
    recipient = relationship("User")
