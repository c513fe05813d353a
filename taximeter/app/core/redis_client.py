"""
Redis connection for presence notifications.

Location pushes publish on this client after their write has committed, so
its socket timeouts bound how long a slow Redis can hold up a push.
"""

import logging

import redis.asyncio as redis
from redis.exceptions import RedisError
from taximeter.app.core.config import settings

logger = logging.getLogger("taximeter.redis")

redis_client = redis.from_url(
    settings.redis_url,
    decode_responses=settings.redis_decode_responses,
    socket_timeout=settings.redis_socket_timeout_seconds,
    socket_connect_timeout=settings.redis_socket_timeout_seconds,
)


async def get_redis():
    """FastAPI dependency; tests override it with an in-memory double."""
    return redis_client


async def ping_redis() -> bool:
    """Whether Redis answers, for ``/health``."""
    try:
        return bool(await redis_client.ping())
    except (RedisError, OSError) as exc:
        logger.warning("Redis ping failed", extra={"error": str(exc)})
        return False
