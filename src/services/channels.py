"""Outbound notification channels.

The engine picks a template key and its parameters; rendering human-facing
text is up to whatever sits behind the channel.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable

import httpx
from sqlalchemy.orm import Session

from src.config import get_settings
from src.exceptions import ChannelError
from src.models import User

logger = logging.getLogger(__name__)


class NotificationChannel(ABC):
    """Outbound delivery boundary."""

    name: str = "channel"

    @abstractmethod
    def send(self, user_id: int, template_key: str, params: dict) -> bool:
        """Deliver a message.

        Returns False when the user cannot be reached on this channel.

        Raises:
            ChannelError: delivery failed and may succeed on retry
        """


class LoggingChannel(NotificationChannel):
    """Channel used when no outbound transport is configured."""

    name = "log"

    def send(self, user_id: int, template_key: str, params: dict) -> bool:
        logger.info(f"Outbound {template_key} for user {user_id}: {params}")
        return True


class TelegramChannel(NotificationChannel):
    """Telegram Bot API delivery via the user's chat id."""

    name = "telegram"

    def __init__(
        self,
        bot_token: str,
        chat_id_lookup: Callable[[int], str | None],
        api_url: str = "https://api.telegram.org",
        timeout: float = 10.0,
    ) -> None:
        self.bot_token = bot_token
        self.chat_id_lookup = chat_id_lookup
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout

    def send(self, user_id: int, template_key: str, params: dict) -> bool:
        chat_id = self.chat_id_lookup(user_id)
        if not chat_id:
            logger.info(f"No Telegram chat for user {user_id}, skipping {template_key}")
            return False

        payload = {"chat_id": chat_id, "text": format_message(template_key, params)}
        try:
            response = httpx.post(
                f"{self.api_url}/bot{self.bot_token}/sendMessage",
                json=payload,
                timeout=self.timeout,
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise ChannelError(self.name, str(e), {"user_id": user_id}) from e

        logger.info(f"Telegram {template_key} delivered to user {user_id}")
        return True


def format_message(template_key: str, params: dict) -> str:
    """Plain key/value rendering for transports without their own templates."""
    details = ", ".join(f"{key}={value}" for key, value in sorted(params.items()))
    return f"[{template_key}] {details}" if details else f"[{template_key}]"


def get_channel(db: Session) -> NotificationChannel:
    """Telegram when a bot token is configured, otherwise log-only."""
    settings = get_settings()
    if not settings.telegram_bot_token:
        return LoggingChannel()

    def chat_id_lookup(user_id: int) -> str | None:
        user = db.query(User).filter(User.id == user_id).first()
        return user.telegram_chat_id if user else None

    return TelegramChannel(
        settings.telegram_bot_token, chat_id_lookup, api_url=settings.telegram_api_url
    )
