"""
Services package for the attestation leaderboard engine.

Relay retrieval, caching and the leaderboard pipeline.
"""

from .base import BaseService
from .leaderboard import LeaderboardService

__all__ = ['BaseService', 'LeaderboardService']
