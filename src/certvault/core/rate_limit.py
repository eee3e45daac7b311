"""
Rate Limiting Module

Sliding-window rate limiting backed by Redis, with an in-memory fallback
when Redis is not available.

Limited actions:
- login and registration, keyed by client IP (brute force, mass sign-up)
- access requests, keyed by company (spamming students with requests)
- certificate uploads, keyed by school
"""

import logging
import time
from collections.abc import Awaitable, Callable

from fastapi import HTTPException, Request, status

from certvault.core.redis import get_redis

logger = logging.getLogger(__name__)

# In-memory rate limit storage (fallback when Redis unavailable)
# Format: {key: [timestamp, ...]}
_memory_store: dict[str, list[float]] = {}


class RateLimitExceeded(HTTPException):
    """Exception raised when rate limit is exceeded."""

    def __init__(self, limit: int, window_seconds: int):
        super().__init__(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "error": "RATE_LIMIT_EXCEEDED",
                "message": f"Rate limit exceeded. Maximum {limit} requests per {window_seconds} seconds.",
                "retry_after_seconds": window_seconds,
            },
            headers={"Retry-After": str(window_seconds)},
        )


async def _check_rate_limit_redis(
    client,
    key: str,
    limit: int,
    window_seconds: int,
) -> bool:
    """
    Check rate limit using a Redis sorted set as the sliding window.

    Returns:
        True if request is allowed, False if rate limit exceeded
    """
    now = time.time()
    window_start = now - window_seconds

    pipe = client.pipeline()
    pipe.zremrangebyscore(key, 0, window_start)
    pipe.zcard(key)
    pipe.zadd(key, {str(now): now})
    pipe.expire(key, window_seconds)

    results = await pipe.execute()
    current_count = results[1]

    return current_count < limit


def _check_rate_limit_memory(
    key: str,
    limit: int,
    window_seconds: int,
) -> bool:
    """
    Check rate limit using in-memory storage.

    Not shared across server instances.
    """
    now = time.time()
    window_start = now - window_seconds

    hits = [ts for ts in _memory_store.get(key, []) if ts > window_start]

    if len(hits) >= limit:
        _memory_store[key] = hits
        return False

    hits.append(now)
    _memory_store[key] = hits
    return True


def reset_memory_store() -> None:
    """Forget all in-memory counters."""
    _memory_store.clear()


async def check_rate_limit(
    key: str,
    limit: int,
    window_seconds: int,
) -> bool:
    """
    Check if a request is within rate limits.

    Tries Redis first, falls back to in-memory storage.

    Args:
        key: Unique key for this rate limit (e.g., "rate_limit:login:10.0.0.1")
        limit: Maximum requests allowed in the window
        window_seconds: Time window in seconds

    Returns:
        True if request is allowed, False if rate limit exceeded
    """
    redis_client = await get_redis()

    if redis_client is not None:
        try:
            return await _check_rate_limit_redis(redis_client, key, limit, window_seconds)
        except Exception as e:
            logger.warning(f"Redis rate limit check failed, using memory: {e}")

    return _check_rate_limit_memory(key, limit, window_seconds)


async def enforce_rate_limit(
    action: str,
    subject: str,
    limit: int,
    window_seconds: int,
) -> None:
    """
    Count one request for ``subject`` performing ``action``.

    Raises:
        RateLimitExceeded: When rate limit is exceeded (HTTP 429)
    """
    key = f"rate_limit:{action}:{subject}"
    if not await check_rate_limit(key, limit, window_seconds):
        logger.warning(f"Rate limit exceeded for {key}: {limit}/{window_seconds}s")
        raise RateLimitExceeded(limit, window_seconds)


def client_ip(request: Request) -> str:
    """
    Address of the connected peer.

    Client-supplied headers such as X-Forwarded-For are ignored; deployments
    behind a proxy should have it rewrite the peer address (e.g. uvicorn
    --proxy-headers with --forwarded-allow-ips).
    """
    return request.client.host if request.client else "unknown"


def rate_limit_by_ip(
    action: str,
    limit: int = 10,
    window_seconds: int = 60,
) -> Callable[[Request], Awaitable[None]]:
    """
    Build a FastAPI dependency limiting ``action`` per client IP.

    Usage:
        @router.post("/login", dependencies=[Depends(rate_limit_by_ip("login", 10, 60))])
        async def login(...):
            ...
    """

    async def dependency(request: Request) -> None:
        await enforce_rate_limit(action, client_ip(request), limit, window_seconds)

    return dependency


__all__ = [
    "check_rate_limit",
    "enforce_rate_limit",
    "rate_limit_by_ip",
    "client_ip",
    "reset_memory_store",
    "RateLimitExceeded",
]
