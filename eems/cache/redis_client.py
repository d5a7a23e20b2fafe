"""
Redis client for caching the telemetry snapshot response.

Serialising every RTU's full buffer is the most expensive read the gateway
serves, and dashboards poll it frequently. The serialised snapshot is kept
in Redis for a short TTL. Caching is best-effort: with no REDIS_URL
configured it is disabled, and connection failures are logged but never
propagate.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

import json
import logging
from typing import Any

import redis.asyncio as redis

logger = logging.getLogger(__name__)

SNAPSHOT_CACHE_KEY = "eems:snapshot"


async def get_redis(url: str) -> redis.Redis:
    """Create and return an async Redis client for *url*.

    Args:
        url: Redis connection URL.

    Returns:
        redis.Redis: Async Redis client.
    """
    return redis.from_url(url)


async def read_cached_snapshot(url: str) -> dict[str, Any] | None:
    """Return the cached snapshot, or None on a miss or any Redis failure.

    Args:
        url: Redis connection URL; an empty string disables the cache.
    """
    if not url:
        return None
    try:
        client = await get_redis(url)
        try:
            cached = await client.get(SNAPSHOT_CACHE_KEY)
        finally:
            await client.aclose()
    except Exception:
        logger.warning(
            "Redis read failed for key %s, serving from memory",
            SNAPSHOT_CACHE_KEY,
            exc_info=True,
        )
        return None
    if cached is None:
        return None
    return json.loads(cached)


async def write_cached_snapshot(url: str, body: dict[str, Any], ttl_s: int) -> None:
    """Cache *body* under the snapshot key for *ttl_s* seconds (best-effort).

    Args:
        url: Redis connection URL; an empty string disables the cache.
        body: JSON-serialisable response body.
        ttl_s: Expiry in seconds.
    """
    if not url:
        return
    try:
        client = await get_redis(url)
        try:
            await client.set(SNAPSHOT_CACHE_KEY, json.dumps(body), ex=ttl_s)
        finally:
            await client.aclose()
    except Exception:
        logger.warning(
            "Redis write failed for key %s",
            SNAPSHOT_CACHE_KEY,
            exc_info=True,
        )
