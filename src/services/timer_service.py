"""Timer session manager: start/pause/resume/stop per work item."""

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from src.exceptions import AlreadyRunningError, InvalidStateError, NotFoundError
from src.models import TimeLog, TimerSession, WorkItem
from src.models.enums import TimerState
from src.models.mixins import ensure_utc, utcnow
from src.services.repositories import WorkItemRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Running:
    started_at: datetime
    accumulated_paused_minutes: float = 0.0


@dataclass(frozen=True)
class Paused:
    started_at: datetime
    paused_at: datetime
    accumulated_paused_minutes: float = 0.0


@dataclass(frozen=True)
class Stopped:
    started_at: datetime
    ended_at: datetime
    paused_minutes: float
    worked_minutes: float


TimerPhase = Running | Paused | Stopped


def _minutes_between(start: datetime, end: datetime) -> float:
    return max(0.0, (end - start).total_seconds() / 60)


def pause_phase(phase: TimerPhase, now: datetime) -> Paused:
    if not isinstance(phase, Running):
        raise InvalidStateError(f"Cannot pause a timer that is {_phase_name(phase)}")
    return Paused(phase.started_at, now, phase.accumulated_paused_minutes)


def resume_phase(phase: TimerPhase, now: datetime) -> tuple[Running, float]:
    """Resume a paused phase, returning the new phase and the minutes just paused."""
    if not isinstance(phase, Paused):
        raise InvalidStateError(f"Cannot resume a timer that is {_phase_name(phase)}")
    paused_for = _minutes_between(phase.paused_at, now)
    return Running(phase.started_at, phase.accumulated_paused_minutes + paused_for), paused_for


def stop_phase(phase: TimerPhase, now: datetime) -> Stopped:
    """Close a phase. Time spent paused up to ``now`` is not work time."""
    if isinstance(phase, Running):
        paused = phase.accumulated_paused_minutes
    elif isinstance(phase, Paused):
        paused = phase.accumulated_paused_minutes + _minutes_between(phase.paused_at, now)
    else:
        raise InvalidStateError("Timer is already stopped")

    elapsed = _minutes_between(phase.started_at, now)
    return Stopped(
        started_at=phase.started_at,
        ended_at=now,
        paused_minutes=paused,
        worked_minutes=max(0.0, elapsed - paused),
    )


def _phase_name(phase: TimerPhase) -> str:
    return type(phase).__name__.lower()


def phase_of(session: TimerSession) -> TimerPhase:
    """Map a persisted session onto its phase."""
    started_at = ensure_utc(session.started_at)
    accumulated = session.accumulated_paused_minutes or 0.0
    if session.state == TimerState.PAUSED:
        return Paused(started_at, ensure_utc(session.paused_at), accumulated)
    return Running(started_at, accumulated)


class TimerService:
    """Persists timer transitions with optimistic, version-checked updates."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.work_items = WorkItemRepository(db)

    def get_session(self, session_id: int) -> TimerSession:
        session = self.db.query(TimerSession).filter(TimerSession.id == session_id).first()
        if not session:
            raise NotFoundError("TimerSession", session_id)
        return session

    def get_active(self, work_item_id: int) -> TimerSession | None:
        return (
            self.db.query(TimerSession).filter(TimerSession.work_item_id == work_item_id).first()
        )

    def list_logs(self, work_item_id: int) -> list[TimeLog]:
        return (
            self.db.query(TimeLog)
            .filter(TimeLog.work_item_id == work_item_id)
            .order_by(TimeLog.started_at.desc())
            .all()
        )

    def start(self, work_item_id: int, user_id: int, now: datetime | None = None) -> TimerSession:
        """Start a timer on a work item.

        Raises:
            NotFoundError: the work item does not exist
            AlreadyRunningError: the item already has a running or paused session
            InvalidStateError: the item is done or cancelled
        """
        now = now or utcnow()
        item = self.work_items.get(work_item_id)
        if item.status.is_terminal:
            raise InvalidStateError(f"Work item {work_item_id} is {item.status.value}")

        existing = self.get_active(work_item_id)
        if existing:
            raise AlreadyRunningError(work_item_id, existing.id)

        session = TimerSession(
            work_item_id=work_item_id,
            user_id=user_id,
            state=TimerState.RUNNING,
            started_at=now,
            accumulated_paused_minutes=0.0,
            version=1,
        )
        self.db.add(session)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise AlreadyRunningError(work_item_id) from e

        self.db.refresh(session)
        logger.info(f"Timer {session.id} started on work item {work_item_id} by user {user_id}")
        return session

    def pause(self, session_id: int, now: datetime | None = None) -> TimerSession:
        now = now or utcnow()
        session = self.get_session(session_id)
        paused = pause_phase(phase_of(session), now)

        self._conditional_update(
            session,
            TimerState.RUNNING,
            {"state": TimerState.PAUSED, "paused_at": paused.paused_at},
        )
        self._update_work_item(session.work_item_id, {WorkItem.sla_paused_at: now})
        self.db.commit()
        self.db.refresh(session)

        logger.info(f"Timer {session_id} paused")
        return session

    def resume(self, session_id: int, now: datetime | None = None) -> TimerSession:
        now = now or utcnow()
        session = self.get_session(session_id)
        running, paused_for = resume_phase(phase_of(session), now)

        self._conditional_update(
            session,
            TimerState.PAUSED,
            {
                "state": TimerState.RUNNING,
                "paused_at": None,
                "accumulated_paused_minutes": running.accumulated_paused_minutes,
            },
        )
        self._update_work_item(
            session.work_item_id,
            {
                WorkItem.accumulated_paused_minutes: WorkItem.accumulated_paused_minutes
                + paused_for,
                WorkItem.sla_paused_at: None,
            },
        )
        self.db.commit()
        self.db.refresh(session)

        logger.info(f"Timer {session_id} resumed after {paused_for:.1f} paused minutes")
        return session

    def stop(self, session_id: int, now: datetime | None = None) -> TimeLog:
        """Stop a running or paused timer and write its immutable time log.

        A zero-elapsed stop yields a zero-duration log.
        """
        now = now or utcnow()
        session = self.get_session(session_id)
        phase = phase_of(session)
        stopped = stop_phase(phase, now)

        deleted = (
            self.db.query(TimerSession)
            .filter(TimerSession.id == session.id, TimerSession.version == session.version)
            .delete(synchronize_session=False)
        )
        if deleted == 0:
            self.db.rollback()
            raise InvalidStateError(f"Timer {session_id} was changed concurrently")

        if isinstance(phase, Paused):
            self._update_work_item(
                session.work_item_id,
                {
                    WorkItem.accumulated_paused_minutes: WorkItem.accumulated_paused_minutes
                    + _minutes_between(phase.paused_at, now),
                    WorkItem.sla_paused_at: None,
                },
            )

        log = TimeLog(
            work_item_id=session.work_item_id,
            user_id=session.user_id,
            started_at=stopped.started_at,
            ended_at=stopped.ended_at,
            paused_minutes=stopped.paused_minutes,
            worked_minutes=stopped.worked_minutes,
        )
        self.db.expunge(session)
        self.db.add(log)
        self.db.commit()
        self.db.refresh(log)

        logger.info(
            f"Timer {session_id} stopped: {stopped.worked_minutes:.1f} worked, "
            f"{stopped.paused_minutes:.1f} paused minutes"
        )
        return log

    def _conditional_update(
        self, session: TimerSession, expected_state: TimerState, values: dict
    ) -> None:
        """Apply ``values`` only if nobody transitioned the session in between."""
        updated = (
            self.db.query(TimerSession)
            .filter(
                TimerSession.id == session.id,
                TimerSession.version == session.version,
                TimerSession.state == expected_state,
            )
            .update({**values, "version": session.version + 1}, synchronize_session=False)
        )
        if updated == 0:
            self.db.rollback()
            raise InvalidStateError(f"Timer {session.id} was changed concurrently")

    def _update_work_item(self, work_item_id: int, values: dict) -> None:
        self.db.query(WorkItem).filter(WorkItem.id == work_item_id).update(
            values, synchronize_session=False
        )
