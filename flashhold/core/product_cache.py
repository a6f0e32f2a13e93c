"""
Product Display Cache

Short-lived read-through cache for product detail views.

Rules:
- Only read-only display queries go through here (GET /products/{id})
- Reservation decisions always read the locked row, never this cache
- Every StockLedger mutation calls invalidate() for the product it touched
- TTL: 10 seconds by default (PRODUCT_CACHE_TTL_SECONDS)
- Max size: 1000 entries (LRU eviction)

Usage:
    from flashhold.core.product_cache import product_cache

    view = await product_cache.get_or_fetch(product_id, load_view)
    product_cache.invalidate(product_id)
"""
import logging
import time
from collections import OrderedDict
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from flashhold.core.config import settings

logger = logging.getLogger(__name__)


class ProductCache:
    """
    LRU cache with TTL for product display snapshots.

    Values are plain dicts, never ORM instances, so a cached entry cannot
    leak a session-bound object between requests.
    Safe for single-threaded async usage (standard in asyncio).
    """

    def __init__(
        self,
        ttl_seconds: int = 10,
        max_size: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.max_size = max_size
        self._clock = clock
        self._cache: "OrderedDict[int, Tuple[float, Dict[str, Any]]]" = OrderedDict()
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._invalidations = 0

    def get(self, product_id: int) -> Optional[Dict[str, Any]]:
        """Return the cached snapshot, or None if missing/expired."""
        entry = self._cache.get(product_id)
        if entry is None:
            self._misses += 1
            return None

        stored_at, view = entry
        if self._clock() - stored_at > self.ttl_seconds:
            del self._cache[product_id]
            self._misses += 1
            logger.debug(f"[PRODUCT_CACHE] Expired: product {product_id}")
            return None

        self._cache.move_to_end(product_id)
        self._hits += 1
        return dict(view)

    def set(self, product_id: int, view: Dict[str, Any]) -> None:
        if product_id in self._cache:
            del self._cache[product_id]
        while len(self._cache) >= self.max_size:
            self._cache.popitem(last=False)
            self._evictions += 1
            logger.debug("[PRODUCT_CACHE] Evicted oldest entry (capacity)")

        self._cache[product_id] = (self._clock(), dict(view))

    async def get_or_fetch(
        self,
        product_id: int,
        fetch_func: Callable[[int], Awaitable[Optional[Dict[str, Any]]]],
    ) -> Optional[Dict[str, Any]]:
        """
        Get from cache or fetch and cache.

        fetch_func returns None for a missing product; misses are not cached.
        """
        cached = self.get(product_id)
        if cached is not None:
            return cached

        view = await fetch_func(product_id)
        if view is not None:
            self.set(product_id, view)
        return view

    def invalidate(self, product_id: int) -> bool:
        """Drop the entry for product_id. Returns True if one was present."""
        self._invalidations += 1
        if self._cache.pop(product_id, None) is not None:
            logger.debug(f"[PRODUCT_CACHE] Invalidated: product {product_id}")
            return True
        return False

    def clear(self) -> None:
        count = len(self._cache)
        self._cache.clear()
        logger.info(f"[PRODUCT_CACHE] Cleared {count} entries")

    def get_stats(self) -> Dict[str, Any]:
        total = self._hits + self._misses
        return {
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round(self._hits / total, 4) if total > 0 else 0.0,
            "size": len(self._cache),
            "max_size": self.max_size,
            "ttl_seconds": self.ttl_seconds,
            "evictions": self._evictions,
            "invalidations": self._invalidations,
        }

    def reset_stats(self) -> None:
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._invalidations = 0


product_cache = ProductCache(
    ttl_seconds=settings.PRODUCT_CACHE_TTL_SECONDS,
    max_size=settings.PRODUCT_CACHE_MAX_SIZE,
)
