"""
Base service class for the leaderboard engine.

Provides best-effort cache access for all service layer operations: a cache
failure is logged and behaves like a miss, never failing the computation.
"""

import logging
from typing import Any, Callable, Optional, TypeVar

from attestboard.services.cache import CacheAdapter

logger = logging.getLogger(__name__)

T = TypeVar("T")

class BaseService:
    """Base class for services that read and write an injected cache."""

    def __init__(self, cache: CacheAdapter):
        """
        Initialize base service with a cache adapter.

        Args:
            cache: Any CacheAdapter implementation
        """
        self.cache = cache

    async def _cache_get(self, key: str) -> Optional[Any]:
        try:
            return await self.cache.get(key)
        except Exception as e:
            logger.warning(f"Cache read failed for {key}, recomputing: {e}")
            return None

    async def _cached_or_none(self, key: str, decode: Callable[[Any], T]) -> Optional[T]:
        """
        Read and decode a cached value.

        A payload that no longer decodes (an older layout, or a foreign value
        under the same key) is logged and treated as a miss.
        """
        cached = await self._cache_get(key)
        if cached is None:
            return None
        try:
            return decode(cached)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Unreadable cache entry for {key}, recomputing: {e}")
            return None

    async def _cache_set(self, key: str, value: Any, ttl_seconds: Optional[int]):
        try:
            await self.cache.set(key, value, ttl_seconds)
        except Exception as e:
            logger.warning(f"Cache write failed for {key}: {e}")

    async def _cache_invalidate(self, key: str):
        try:
            await self.cache.invalidate(key)
        except Exception as e:
            logger.warning(f"Cache invalidation failed for {key}: {e}")

    async def close(self):
        await self.cache.close()
