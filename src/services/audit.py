"""Append-only audit trail writer."""

import logging

from sqlalchemy.orm import Session

from src.models import AuditLog

logger = logging.getLogger(__name__)

REMINDER_SENT = "REMINDER_SENT"
REMINDER_SUPPRESSED = "REMINDER_SUPPRESSED"
ESCALATION_TRIGGERED = "ESCALATION_TRIGGERED"
ESCALATION_CLEARED = "ESCALATION_CLEARED"
ESCALATION_ACKNOWLEDGED = "ESCALATION_ACKNOWLEDGED"
ESCALATION_RESOLVED = "ESCALATION_RESOLVED"
NOTIFICATION_CREATED = "NOTIFICATION_CREATED"
NOTIFICATION_SUPPRESSED = "NOTIFICATION_SUPPRESSED"


class AuditTrailWriter:
    """Adds audit rows to the caller's transaction; never updates or deletes."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def record(
        self,
        action: str,
        entity: str,
        entity_id: int | None = None,
        user_id: int | None = None,
        payload: dict | None = None,
    ) -> AuditLog:
        entry = AuditLog(
            action=action,
            entity=entity,
            entity_id=entity_id,
            user_id=user_id,
            payload=payload or {},
        )
        self.db.add(entry)
        logger.debug(f"Audit {action} {entity}:{entity_id} user={user_id}")
        return entry
