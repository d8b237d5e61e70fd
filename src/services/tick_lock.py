"""Short-TTL Redis advisory lock used to skip overlapping ticks.

Correctness never depends on this lock: the uniqueness constraints on send
and escalation records make overlapping ticks safe. The lock only saves the
work of a second tick that would find nothing to do.
"""

import logging
import uuid
from collections.abc import Iterator
from contextlib import contextmanager

import redis

from src.config import get_settings

logger = logging.getLogger(__name__)

_redis_client: redis.Redis | None = None


def get_redis() -> redis.Redis:
    """Get the shared synchronous Redis client."""
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(get_settings().redis_url)
    return _redis_client


@contextmanager
def tick_lock(name: str, client: redis.Redis | None = None) -> Iterator[bool]:
    """Try to take the advisory lock for one tick kind.

    Yields True when the tick should run. It yields False only when another
    tick holds the lock. A Redis failure is logged and the tick runs anyway.
    """
    settings = get_settings()
    if not settings.tick_lock_enabled:
        yield True
        return

    key = f"sla-engine:tick-lock:{name}"
    token = uuid.uuid4().hex
    acquired = False
    try:
        client = client or get_redis()
        acquired = bool(client.set(key, token, nx=True, ex=settings.tick_lock_ttl_seconds))
    except redis.RedisError as e:
        logger.warning(f"Could not take tick lock {key}, running unlocked: {e}")
        yield True
        return

    if not acquired:
        logger.info(f"Tick {name} already running elsewhere, skipping")
        yield False
        return

    try:
        yield True
    finally:
        try:
            # Only release our own lock; it may have expired and been retaken
            if client.get(key) == token.encode():
                client.delete(key)
        except redis.RedisError as e:
            logger.warning(f"Could not release tick lock {key}: {e}")
