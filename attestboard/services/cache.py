"""
Cache adapters for computed leaderboards.

The leaderboard service only consumes the CacheAdapter contract:
``get(key) -> value | None``, ``set(key, value, ttl_seconds)`` and
``invalidate(key)``. Values are JSON-compatible. Concurrent writers are
last-write-wins. Adapters raise CacheError on backend failures; the service
treats those as misses.
"""

import asyncio
import hashlib
import json
import logging
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional, Tuple

from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError

from attestboard.config import Config
from attestboard.constants import CacheConstants
from attestboard.database.database import Database
from attestboard.utils.leaderboard_exceptions import CacheError
from attestboard.utils.redis_utils import RedisUtils

logger = logging.getLogger(__name__)


def select_cache_ttl(window_end: datetime, now: Optional[datetime] = None) -> int:
    """Short TTL while the window can still receive data, long once it has closed."""
    now = now or datetime.now(timezone.utc)
    if window_end > now:
        return Config.LIVE_CACHE_TTL
    return Config.CLOSED_CACHE_TTL


def roster_fingerprint(identities: Iterable[str]) -> str:
    """Stable short hash of a roster, independent of order and duplicates."""
    digest = hashlib.sha256("\n".join(sorted(set(identities))).encode('utf-8')).hexdigest()
    return digest[:CacheConstants.FINGERPRINT_LENGTH]


class CacheAdapter(ABC):
    """Key/value cache with caller-specified TTL."""

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """Cached value, or None on a miss."""
        pass

    @abstractmethod
    async def set(self, key: str, value: Any, ttl_seconds: Optional[int]):
        """Store value for ttl_seconds (None or 0 = no expiry)."""
        pass

    @abstractmethod
    async def invalidate(self, key: str):
        pass

    async def close(self):
        pass


class InMemoryCache(CacheAdapter):
    """Process-local TTL cache with a size bound."""

    def __init__(self, max_size: int = CacheConstants.DEFAULT_MAX_CACHE_SIZE):
        self._cache: Dict[str, Tuple[Optional[float], Any]] = {}  # key -> (expires_at, value)
        self._cache_max_size = max_size
        self._cache_lock = asyncio.Lock()

    async def get(self, key: str) -> Optional[Any]:
        async with self._cache_lock:
            item = self._cache.get(key)
            if item is None:
                return None
            expires_at, value = item
            if expires_at is not None and time.monotonic() >= expires_at:
                self._cache.pop(key, None)
                return None
            return value

    async def set(self, key: str, value: Any, ttl_seconds: Optional[int]):
        expires_at = time.monotonic() + ttl_seconds if ttl_seconds else None
        async with self._cache_lock:
            self._cache[key] = (expires_at, value)
            if len(self._cache) > self._cache_max_size:
                self._cleanup_cache()

    async def invalidate(self, key: str):
        async with self._cache_lock:
            self._cache.pop(key, None)

    def _cleanup_cache(self):
        """Drop expired entries, then the soonest-expiring ones beyond the size limit."""
        now = time.monotonic()
        self._cache = {
            key: item for key, item in self._cache.items()
            if item[0] is None or item[0] > now
        }
        if len(self._cache) > self._cache_max_size:
            ordered = sorted(
                self._cache.items(),
                key=lambda kv: kv[1][0] if kv[1][0] is not None else float('inf'),
                reverse=True
            )
            self._cache = dict(ordered[:self._cache_max_size])
        logger.debug(f"Cleaned leaderboard cache, kept {len(self._cache)} entries")


class RedisCache(CacheAdapter):
    """Redis-backed cache; values are stored as JSON strings."""

    def __init__(self, client=None, key_prefix: Optional[str] = None):
        self.client = client
        self.key_prefix = Config.REDIS_KEY_PREFIX if key_prefix is None else key_prefix

    async def _get_client(self):
        if self.client is None:
            self.client = await RedisUtils.create_redis_client()
            if self.client is None:
                raise CacheError("connect", "no Redis connection available")
        return self.client

    async def get(self, key: str) -> Optional[Any]:
        try:
            client = await self._get_client()
            raw = await client.get(self.key_prefix + key)
        except (RedisError, OSError) as e:
            raise CacheError("get", str(e)) from e
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (TypeError, ValueError) as e:
            raise CacheError("decode", str(e)) from e

    async def set(self, key: str, value: Any, ttl_seconds: Optional[int]):
        try:
            client = await self._get_client()
            await client.set(self.key_prefix + key, json.dumps(value), ex=ttl_seconds or None)
        except (RedisError, OSError) as e:
            raise CacheError("set", str(e)) from e

    async def invalidate(self, key: str):
        try:
            client = await self._get_client()
            await client.delete(self.key_prefix + key)
        except (RedisError, OSError) as e:
            raise CacheError("invalidate", str(e)) from e

    async def close(self):
        """Clean up Redis connection."""
        if self.client is not None:
            await self.client.close()


class DatabaseCache(CacheAdapter):
    """SQL-backed cache table through SQLAlchemy (SQLite by default)."""

    def __init__(self, database: Optional[Database] = None):
        self.database = database or Database()
        self._initialized = False
        self._init_lock = asyncio.Lock()

    async def _ensure_initialized(self):
        """Connect on first use and drop rows that expired while the process was down."""
        async with self._init_lock:
            if self._initialized:
                return
            if self.database.engine is None:
                await self.database.initialize()
            await self.database.purge_expired_cache()
            self._initialized = True

    async def get(self, key: str) -> Optional[Any]:
        try:
            await self._ensure_initialized()
            raw = await self.database.get_cache_value(key)
        except SQLAlchemyError as e:
            raise CacheError("get", str(e)) from e
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (TypeError, ValueError) as e:
            raise CacheError("decode", str(e)) from e

    async def set(self, key: str, value: Any, ttl_seconds: Optional[int]):
        try:
            await self._ensure_initialized()
            await self.database.set_cache_value(key, json.dumps(value), ttl_seconds)
        except SQLAlchemyError as e:
            raise CacheError("set", str(e)) from e

    async def invalidate(self, key: str):
        try:
            await self._ensure_initialized()
            await self.database.delete_cache_value(key)
        except SQLAlchemyError as e:
            raise CacheError("invalidate", str(e)) from e

    async def close(self):
        await self.database.close()


def create_cache(backend: Optional[str] = None) -> CacheAdapter:
    """Build the cache adapter selected by Config.CACHE_BACKEND."""
    backend = (backend or Config.CACHE_BACKEND).lower()
    if backend == 'memory':
        return InMemoryCache()
    if backend == 'redis':
        return RedisCache()
    if backend == 'database':
        return DatabaseCache()
    raise ValueError(f"Unknown cache backend: {backend}")
