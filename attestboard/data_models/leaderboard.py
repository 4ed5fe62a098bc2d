"""
Leaderboard data models.

Provides immutable data transfer objects for computed rankings.
"""

from dataclasses import dataclass, asdict, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class LeaderboardEntry:
    """Single leaderboard row. A score of None means 'did not finish'."""
    rank: int
    participant: str
    display_name: str
    score: Optional[float]
    formatted_score: str
    workout_count: int

    @property
    def has_score(self) -> bool:
        return self.score is not None and self.score != 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LeaderboardEntry":
        return cls(
            rank=int(data['rank']),
            participant=data['participant'],
            display_name=data['display_name'],
            score=data['score'],
            formatted_score=data['formatted_score'],
            workout_count=int(data['workout_count']),
        )


@dataclass(frozen=True)
class TeamGoalProgress:
    """Combined team total against a goal."""
    current: float
    goal: float
    percentage: float
    formatted_current: str
    formatted_goal: str
    unit: str


@dataclass(frozen=True)
class DailyLeaderboards:
    """Per-distance daily leaderboards for a team (or globally when group_key is None)."""
    group_key: Optional[str]
    date: str
    buckets: Dict[str, List[LeaderboardEntry]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'group_key': self.group_key,
            'date': self.date,
            'buckets': {
                name: [entry.to_dict() for entry in entries]
                for name, entries in self.buckets.items()
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DailyLeaderboards":
        return cls(
            group_key=data.get('group_key'),
            date=data['date'],
            buckets={
                name: [LeaderboardEntry.from_dict(entry) for entry in entries]
                for name, entries in data.get('buckets', {}).items()
            },
        )
