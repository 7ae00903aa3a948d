"""
Redis caching for the enriched ticket listing.

CACHING STRATEGY
================

What we cache:
  - Enriched ticket listing pages (ticket + vendor/customer names)
  - Cache key pattern:
    "tickets:list:status={s}&vendor={v}&customer={c}&page={p}&size={n}"

What we never cache:
  - Availability counts. They are always a live COUNT(*) so they cannot
    drift from the rows the allocator actually locks.
  - Anything the allocator or ingestion reads. Both go to the database.

Invalidation strategy:
  - On purchase and on ingestion: delete every "tickets:list:*" key
  - TTL-based expiry as safety net

Redis is optional. When disabled or unreachable every call degrades to a
miss and the listing is served from the database.
"""

import json
from typing import Optional

import redis.asyncio as redis

from ticketpool.core.config import get_settings
from ticketpool.core.logging import get_logger
from ticketpool.core.metrics import record_cache_operation
from ticketpool.schemas.ticket import TicketFilter

logger = get_logger(__name__)

LIST_KEY_PREFIX = "tickets:list:"

_redis_client: Optional[redis.Redis] = None


async def get_redis() -> Optional[redis.Redis]:
    """Get or create Redis connection. Returns None if Redis is disabled."""
    global _redis_client
    settings = get_settings()

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
            await _redis_client.ping()
            logger.info("redis_connected", url=settings.REDIS_URL)
        except Exception as e:
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


def make_list_key(ticket_filter: TicketFilter) -> str:
    status = ticket_filter.status.value if ticket_filter.status else "any"
    return (
        f"{LIST_KEY_PREFIX}status={status}&vendor={ticket_filter.vendor_id}"
        f"&customer={ticket_filter.customer_id}"
        f"&page={ticket_filter.page}&size={ticket_filter.page_size}"
    )


async def get_cached_listing(ticket_filter: TicketFilter) -> Optional[dict]:
    client = await get_redis()
    if not client:
        return None

    key = make_list_key(ticket_filter)
    try:
        data = await client.get(key)
        if data:
            record_cache_operation("get", "hit")
            return json.loads(data)
        record_cache_operation("get", "miss")
    except Exception as e:
        record_cache_operation("get", "error")
        logger.error("cache_get_error", key=key, error=str(e))

    return None


async def set_cached_listing(ticket_filter: TicketFilter, data: dict) -> None:
    client = await get_redis()
    if not client:
        return

    settings = get_settings()
    key = make_list_key(ticket_filter)
    try:
        await client.setex(key, settings.REDIS_CACHE_TTL, json.dumps(data, default=str))
        record_cache_operation("set", "ok")
    except Exception as e:
        record_cache_operation("set", "error")
        logger.error("cache_set_error", key=key, error=str(e))


async def invalidate_listing_cache() -> None:
    """Best effort: a failure here only means listings stay stale until TTL."""
    client = await get_redis()
    if not client:
        return

    try:
        deleted = 0
        async for key in client.scan_iter(match=f"{LIST_KEY_PREFIX}*", count=100):
            await client.delete(key)
            deleted += 1
        record_cache_operation("invalidate", "ok")
        logger.debug("cache_invalidated", keys_deleted=deleted)
    except Exception as e:
        record_cache_operation("invalidate", "error")
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
