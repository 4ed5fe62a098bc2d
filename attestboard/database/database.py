from datetime import datetime, timedelta, timezone
from typing import Optional
from contextlib import asynccontextmanager

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from attestboard.config import Config
from attestboard.database.models import Base, LeaderboardCacheEntry
from attestboard.utils.logger import setup_logger

class Database:
    def __init__(self, database_url: Optional[str] = None):
        self.logger = setup_logger(__name__)
        self.database_url = database_url or Config.DATABASE_URL
        self.engine = None
        self.async_session = None

    async def initialize(self):
        """Create the engine and session factory, then the cache table."""
        self.logger.info("Initializing cache database...")

        self.engine = create_async_engine(_async_url(self.database_url), echo=Config.DEBUG)
        self.async_session = async_sessionmaker(self.engine, class_=AsyncSession, expire_on_commit=False)

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        self.logger.info("Cache database initialized successfully")

    @asynccontextmanager
    async def get_session(self):
        """Get a database session"""
        async with self.async_session() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()

    async def close(self):
        """Close database connection"""
        if self.engine:
            await self.engine.dispose()
            self.logger.info("Database connection closed")

    async def get_cache_value(self, key: str, now: Optional[datetime] = None) -> Optional[str]:
        """Stored JSON payload for key, or None when missing or expired."""
        now = now or _utcnow()
        async with self.get_session() as session:
            entry = await session.get(LeaderboardCacheEntry, key)
            if entry is None:
                return None
            if entry.expires_at is not None and entry.expires_at <= now:
                return None
            return entry.value

    async def set_cache_value(self, key: str, value: str, ttl_seconds: Optional[int], now: Optional[datetime] = None):
        """Insert or replace a payload. Last write wins."""
        now = now or _utcnow()
        expires_at = now + timedelta(seconds=ttl_seconds) if ttl_seconds else None
        async with self.get_session() as session:
            await session.merge(LeaderboardCacheEntry(key=key, value=value, expires_at=expires_at))
            await session.commit()

    async def delete_cache_value(self, key: str):
        async with self.get_session() as session:
            await session.execute(delete(LeaderboardCacheEntry).where(LeaderboardCacheEntry.key == key))
            await session.commit()

    async def purge_expired_cache(self, now: Optional[datetime] = None) -> int:
        """Delete expired payloads. Returns the number removed."""
        now = now or _utcnow()
        async with self.get_session() as session:
            result = await session.execute(
                select(LeaderboardCacheEntry.key).where(
                    LeaderboardCacheEntry.expires_at.isnot(None),
                    LeaderboardCacheEntry.expires_at <= now
                )
            )
            keys = [row[0] for row in result]
            if keys:
                await session.execute(delete(LeaderboardCacheEntry).where(LeaderboardCacheEntry.key.in_(keys)))
                await session.commit()
            self.logger.info(f"Purged {len(keys)} expired cache entries")
            return len(keys)


def _utcnow() -> datetime:
    # Stored naive in UTC; SQLite drops tzinfo
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _async_url(database_url: str) -> str:
    """Swap sync drivers for their asyncio counterparts."""
    if database_url.startswith('sqlite:///'):
        return database_url.replace('sqlite:///', 'sqlite+aiosqlite:///', 1)
    return database_url
