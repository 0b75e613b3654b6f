"""Redis read-through cache for product views.

Reads never fail because of the cache: a missing or unreachable Redis is a
miss and the caller falls back to the database.
"""

import logging
from typing import Optional

import redis.asyncio as redis

from wishes_tracer.config import settings

logger = logging.getLogger(__name__)

LIST_KEY_PREFIX = "products_page"


def product_details_key(product_id) -> str:
    return f"product-details:{product_id}"


def product_history_key(product_id) -> str:
    return f"product-history:{product_id}"


def products_page_key(page: int, page_size: int, search: Optional[str]) -> str:
    return f"{LIST_KEY_PREFIX}{page}_size{page_size}_search{search or 'all'}"


def product_cache_keys(product_id) -> list[str]:
    """Cache entries that go stale when a product changes."""
    return [product_history_key(product_id), product_details_key(product_id)]


class ProductCache:
    """Thin JSON string cache over Redis with per-entry TTLs."""

    def __init__(self, redis_url: Optional[str] = None, enabled: Optional[bool] = None):
        self.redis_url = redis_url or settings.redis_url
        self.enabled = settings.cache_enabled if enabled is None else enabled
        self._redis: Optional[redis.Redis] = None

    async def _get_redis(self) -> redis.Redis:
        """Get or create Redis connection."""
        if self._redis is None:
            self._redis = await redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
        return self._redis

    async def close(self):
        """Close Redis connection."""
        if self._redis:
            await self._redis.close()
            self._redis = None

    async def get(self, key: str) -> Optional[str]:
        if not self.enabled:
            return None
        try:
            redis_client = await self._get_redis()
            return await redis_client.get(key)
        except Exception as e:
            logger.debug(f"Cache read failed for {key}: {e}")
            return None

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        if not self.enabled:
            return
        try:
            redis_client = await self._get_redis()
            await redis_client.setex(key, ttl_seconds, value)
        except Exception as e:
            logger.debug(f"Cache write failed for {key}: {e}")

    async def invalidate_product(self, product_id) -> int:
        """
        Drop the details and history entries of one product.

        Unlike reads, failures propagate so the caller can report them.
        """
        redis_client = await self._get_redis()
        removed = await redis_client.delete(*product_cache_keys(product_id))
        logger.debug(f"Invalidated {removed} cache entries for product {product_id}")
        return removed

    async def invalidate_lists(self) -> int:
        """Drop every cached product list page."""
        redis_client = await self._get_redis()
        keys = [key async for key in redis_client.scan_iter(match=f"{LIST_KEY_PREFIX}*")]
        if not keys:
            return 0
        return await redis_client.delete(*keys)
