"""FastAPI dependencies for authentication, database and engine services."""

import hmac
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from src.config import get_settings
from src.database import get_db
from src.models.user import User
from src.services.auth import decode_access_token
from src.services.deadline_calculator import DeadlineCalculator
from src.services.escalation_detector import EscalationDetector
from src.services.notification_dispatcher import NotificationDispatcher
from src.services.timer_service import TimerService

security = HTTPBearer()
cron_security = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
    db: Annotated[Session, Depends(get_db)],
) -> User:
    """Get the current authenticated user from JWT token."""
    token = credentials.credentials
    payload = decode_access_token(token)

    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id = payload.get("sub")
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = db.query(User).filter(User.id == int(user_id), User.is_active.is_(True)).first()
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return user


def verify_cron_secret(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(cron_security)],
) -> None:
    """Check the shared-secret bearer token of the periodic trigger.

    The comparison is constant-time. A missing server-side secret is a
    configuration error, not an auth failure.
    """
    cron_secret = get_settings().cron_secret
    if not cron_secret:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Cron secret is not configured",
        )

    provided = credentials.credentials if credentials else ""
    if not hmac.compare_digest(provided.encode(), cron_secret.encode()):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )


def get_timer_service(db: Annotated[Session, Depends(get_db)]) -> TimerService:
    """Get timer service with dependencies."""
    return TimerService(db)


def get_deadline_calculator(db: Annotated[Session, Depends(get_db)]) -> DeadlineCalculator:
    """Get deadline calculator with dependencies."""
    return DeadlineCalculator(db)


def get_notification_dispatcher(
    db: Annotated[Session, Depends(get_db)],
) -> NotificationDispatcher:
    """Get notification dispatcher with dependencies."""
    return NotificationDispatcher(db)


def get_escalation_detector(db: Annotated[Session, Depends(get_db)]) -> EscalationDetector:
    """Get escalation detector with dependencies."""
    return EscalationDetector(db)
