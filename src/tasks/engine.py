"""Celery tasks driving the SLA engine on a schedule."""

import logging

from sqlalchemy.orm import Session

from src.celery_app import app as celery_app
from src.database import SessionLocal
from src.services.deadline_calculator import DeadlineCalculator
from src.services.engine import run_tick
from src.services.notification_dispatcher import NotificationDispatcher

logger = logging.getLogger(__name__)


def _tick_stats(db: Session, reminders: bool, escalations: bool) -> dict:
    report = run_tick(db, reminders=reminders, escalations=escalations)
    return {
        "success": report.success,
        "skipped": report.skipped,
        "checked": report.checked,
        "sent": report.sent,
        "escalated": report.escalated,
        "failed": report.failed,
        "deferred": report.deferred,
        "by_trigger_type": report.by_trigger_type,
        "duration_ms": report.duration_ms,
    }


@celery_app.task
def run_reminder_tick() -> dict:
    """Send due reminders.

    This task runs every minute via celery-beat.

    Returns:
        dict with tick statistics
    """
    db: Session = SessionLocal()
    try:
        return _tick_stats(db, reminders=True, escalations=False)
    except Exception as e:
        logger.error(f"Reminder tick failed: {e}", exc_info=True)
        db.rollback()
        raise
    finally:
        db.close()


@celery_app.task
def run_escalation_tick() -> dict:
    """Detect and escalate breaches.

    This task runs every 15 minutes via celery-beat.

    Returns:
        dict with tick statistics
    """
    db: Session = SessionLocal()
    try:
        return _tick_stats(db, reminders=False, escalations=True)
    except Exception as e:
        logger.error(f"Escalation tick failed: {e}", exc_info=True)
        db.rollback()
        raise
    finally:
        db.close()


@celery_app.task
def refresh_category_stats() -> dict:
    """Recompute completion statistics for every active category."""
    db: Session = SessionLocal()
    try:
        results = DeadlineCalculator(db).update_all_category_stats()
        updated = sum(1 for stats in results.values() if stats is not None)
        logger.info(f"Refreshed stats for {updated} of {len(results)} categories")
        return {"categories": len(results), "updated": updated}
    finally:
        db.close()


@celery_app.task
def purge_read_notifications(older_than_days: int | None = None) -> dict:
    """Delete read notifications past the retention window."""
    db: Session = SessionLocal()
    try:
        deleted = NotificationDispatcher(db).purge_read(older_than_days)
        return {"deleted": deleted}
    except Exception as e:
        logger.error(f"Notification purge failed: {e}", exc_info=True)
        db.rollback()
        raise
    finally:
        db.close()
