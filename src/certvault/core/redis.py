"""
Redis Configuration

Shared async Redis client. Redis is optional: rate limiting falls back to
memory when the client is not initialized.
"""

import logging

from redis.asyncio import Redis, from_url

from certvault.core.config import settings

logger = logging.getLogger(__name__)

redis_client: Redis | None = None


async def init_redis() -> Redis:
    """
    Initialize Redis connection.

    Call this on application startup. Raises if Redis cannot be reached;
    the caller decides whether that is fatal.
    """
    global redis_client
    client = from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
    )
    await client.ping()
    redis_client = client
    logger.info("Redis connection established")
    return redis_client


async def get_redis() -> Redis | None:
    """Return the shared client, or None when Redis is unavailable."""
    return redis_client


def is_redis_available() -> bool:
    """Check if Redis client is initialized and available."""
    return redis_client is not None


async def close_redis() -> None:
    """Close Redis connection."""
    global redis_client
    if redis_client:
        await redis_client.aclose()
        redis_client = None
