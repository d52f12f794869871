"""
Redis caching service for class listings.

CACHING STRATEGY
================

What we cache:
  - The upcoming-classes listing with booked counts (JSON-serialized)
  - Cache key pattern: "classes:list:upcoming"

Why:
  - The class listing is the most frequent read (every member browses it)
  - Serving from Redis avoids the bookings GROUP BY on every page load

Invalidation strategy:
  - On booking, cancellation, class create/update/delete: delete all
    "classes:list:*" keys
  - TTL-based expiry as safety net (5 minutes)

What we never cache:
  - Anything the booking decision reads. The capacity guard always counts
    confirmed bookings inside its own transaction; a stale cached count
    would only ever be shown, never acted on.

Redis is optional: when it is disabled or unreachable every call degrades
to a cache miss.
"""

import json
from typing import Optional

import redis.asyncio as redis
from class_booking.core.config import get_settings
from class_booking.core.logging import get_logger
from class_booking.core.metrics import record_cache_operation, redis_connection_errors

logger = get_logger(__name__)
settings = get_settings()

CLASS_LIST_PREFIX = "classes:list:"

_redis_client: Optional[redis.Redis] = None


async def get_redis() -> Optional[redis.Redis]:
    """Get or create Redis connection. Returns None if Redis is disabled."""
    global _redis_client

    if not settings.REDIS_ENABLED:
        return None

    if _redis_client is None:
        try:
            _redis_client = redis.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
            )
            # Test connection
            await _redis_client.ping()
            logger.info("redis_connected", url=settings.REDIS_URL)
        except Exception as e:
            redis_connection_errors.inc()
            logger.error("redis_connection_failed", error=str(e))
            _redis_client = None
            return None

    return _redis_client


async def close_redis() -> None:
    """Close Redis connection on shutdown."""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None


def _make_class_list_key(scope: str = "upcoming") -> str:
    return f"{CLASS_LIST_PREFIX}{scope}"


async def get_cached_classes() -> Optional[dict]:
    """Retrieve cached class listing response."""
    client = await get_redis()
    if not client:
        return None

    key = _make_class_list_key()
    try:
        data = await client.get(key)
        record_cache_operation("get", hit=bool(data))
        if data:
            logger.debug("cache_hit", key=key)
            return json.loads(data)
        logger.debug("cache_miss", key=key)
    except Exception as e:
        logger.error("cache_get_error", key=key, error=str(e))

    return None


async def set_cached_classes(data: dict) -> None:
    """Cache class listing response with TTL."""
    client = await get_redis()
    if not client:
        return

    key = _make_class_list_key()
    try:
        await client.setex(key, settings.REDIS_CACHE_TTL, json.dumps(data, default=str))
        record_cache_operation("set", hit=False)
        logger.debug("cache_set", key=key, ttl=settings.REDIS_CACHE_TTL)
    except Exception as e:
        logger.error("cache_set_error", key=key, error=str(e))


async def invalidate_class_cache() -> None:
    """
    Invalidate all cached class listings.
    Uses SCAN to find and delete all keys matching the prefix.
    """
    client = await get_redis()
    if not client:
        return

    try:
        deleted = 0
        async for key in client.scan_iter(match=f"{CLASS_LIST_PREFIX}*", count=100):
            await client.delete(key)
            deleted += 1
        logger.info("cache_invalidated", keys_deleted=deleted)
    except Exception as e:
        logger.error("cache_invalidation_error", error=str(e))


async def get_cache_stats() -> dict:
    """Get Redis cache statistics for monitoring."""
    client = await get_redis()
    if not client:
        return {"status": "disabled"}

    try:
        info = await client.info("stats")
        hits = info.get("keyspace_hits", 0)
        misses = info.get("keyspace_misses", 0)
        return {
            "status": "connected",
            "hits": hits,
            "misses": misses,
            "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
        }
    except Exception as e:
        return {"status": "error", "error": str(e)}
