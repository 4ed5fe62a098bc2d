from sqlalchemy import Column, DateTime, String, Text
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()

class LeaderboardCacheEntry(Base):
    """Computed leaderboard payload stored by the database cache backend."""
    __tablename__ = 'leaderboard_cache'

    key = Column(String(255), primary_key=True)
    value = Column(Text, nullable=False)  # JSON-encoded payload
    expires_at = Column(DateTime, nullable=True, index=True)  # None = never expires

    # Metadata
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<LeaderboardCacheEntry(key='{self.key}', expires_at={self.expires_at})>"
