"""Timer session and time log models."""

from sqlalchemy import Column, DateTime, Enum, Float, ForeignKey, Integer
from sqlalchemy.orm import relationship

from src.database import Base
from src.models.enums import TimerState
from src.models.mixins import TimestampMixin


class TimerSession(Base, TimestampMixin):
    """An open (running or paused) timer on a work item.

    The unique work_item_id enforces one active session per item. Stopping a
    session deletes this row and writes a TimeLog. ``version`` guards
    conditional updates against concurrent transitions.
    """

    __tablename__ = "timer_sessions"

    id = Column(Integer, primary_key=True, index=True)
    work_item_id = Column(Integer, ForeignKey("work_items.id"), unique=True, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    state = Column(
        Enum(TimerState, name="timerstate", values_callable=lambda x: [e.value for e in x]),
        default=TimerState.RUNNING,
        nullable=False,
    )
    started_at = Column(DateTime(timezone=True), nullable=False)
    paused_at = Column(DateTime(timezone=True), nullable=True)
    accumulated_paused_minutes = Column(Float, default=0.0, nullable=False)
    version = Column(Integer, default=1, nullable=False)

    # Relationships
    work_item = relationship("WorkItem")


class TimeLog(Base):
    """Immutable record of a stopped timer session."""

    __tablename__ = "time_logs"

    id = Column(Integer, primary_key=True, index=True)
    work_item_id = Column(Integer, ForeignKey("work_items.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    started_at = Column(DateTime(timezone=True), nullable=False)
    ended_at = Column(DateTime(timezone=True), nullable=False)
    paused_minutes = Column(Float, nullable=False)
    worked_minutes = Column(Float, nullable=False)
