"""
Competition configuration models.

A CompetitionConfig is supplied by the caller as an immutable value per call.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from enum import Enum
from typing import Any, Mapping, Optional
from zoneinfo import ZoneInfo

from attestboard.config import Config
from attestboard.constants import EventConstants
from attestboard.utils.leaderboard_exceptions import InvalidCompetitionError


class ScoringMetric(Enum):
    TOTAL_DISTANCE = "total_distance"
    MOST_WORKOUTS = "most_workouts"
    TOTAL_WORKOUTS = "total_workouts"
    TOTAL_DURATION = "total_duration"
    TOTAL_CALORIES = "total_calories"
    FASTEST_TIME = "fastest_time"
    AVERAGE_PACE = "average_pace"
    COMPLETION = "completion"
    MOST_CONSISTENT = "most_consistent"
    WEEKLY_STREAK = "weekly_streak"

    @property
    def is_extremal(self) -> bool:
        """Best-of metrics keep a single attestation per participant."""
        return self in (ScoringMetric.FASTEST_TIME, ScoringMetric.AVERAGE_PACE)

    @property
    def lower_is_better(self) -> bool:
        return self in (ScoringMetric.FASTEST_TIME, ScoringMetric.AVERAGE_PACE)

    @classmethod
    def parse(cls, value) -> "ScoringMetric":
        if isinstance(value, ScoringMetric):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValueError(f"Unknown scoring metric: {value}")


def leaderboard_timezone():
    """Timezone that defines calendar days for daily boards and streaks."""
    if Config.LEADERBOARD_TIMEZONE.upper() == 'UTC':
        return timezone.utc
    return ZoneInfo(Config.LEADERBOARD_TIMEZONE)


@dataclass(frozen=True)
class CompetitionConfig:
    """Immutable competition definition consumed by the leaderboard service."""
    competition_id: str
    metric: ScoringMetric
    start: datetime
    end: datetime
    activity_type: str = EventConstants.ANY_ACTIVITY
    name: str = ""
    target_distance: Optional[float] = None  # km
    team_goal: Optional[float] = None
    goal_unit: str = "km"
    payout_scheme: Optional[Mapping[str, Any]] = None  # carried through, never computed

    @property
    def start_timestamp(self) -> int:
        return int(self.start.timestamp())

    @property
    def end_timestamp(self) -> int:
        return int(self.end.timestamp())

    def contains(self, timestamp: int) -> bool:
        """Window is [start, end)."""
        return self.start_timestamp <= timestamp < self.end_timestamp

    def validate(self):
        """Raise InvalidCompetitionError for configurations that cannot be computed."""
        if not self.competition_id:
            raise InvalidCompetitionError(str(self.competition_id), "competition id is required")
        if not isinstance(self.metric, ScoringMetric):
            raise InvalidCompetitionError(self.competition_id, f"unknown metric {self.metric!r}")
        if not isinstance(self.start, datetime) or not isinstance(self.end, datetime):
            raise InvalidCompetitionError(self.competition_id, "start and end must be datetimes")
        if self.start.tzinfo is None or self.end.tzinfo is None:
            raise InvalidCompetitionError(self.competition_id, "start and end must be timezone-aware")
        if self.start >= self.end:
            raise InvalidCompetitionError(self.competition_id, "window start must precede end")
        if not self.activity_type:
            raise InvalidCompetitionError(self.competition_id, "activity type is required")
        if self.target_distance is not None and self.target_distance <= 0:
            raise InvalidCompetitionError(self.competition_id, "target distance must be positive")
        if self.team_goal is not None and self.team_goal < 0:
            raise InvalidCompetitionError(self.competition_id, "team goal cannot be negative")

    @classmethod
    def for_event_day(
        cls,
        competition_id: str,
        metric,
        event_date: date,
        duration_minutes: Optional[int] = None,
        starts_at: Optional[time] = None,
        **kwargs
    ) -> "CompetitionConfig":
        """
        Build a config for a single-day event.

        Full-day events cover the local calendar day in the leaderboard
        timezone. Short events start at ``starts_at`` (default midnight) and
        last ``duration_minutes``.
        """
        tz = leaderboard_timezone()
        start = datetime.combine(event_date, starts_at or time(0, 0), tzinfo=tz)
        if duration_minutes:
            end = start + timedelta(minutes=duration_minutes)
        else:
            start = datetime.combine(event_date, time(0, 0), tzinfo=tz)
            end = start + timedelta(days=1)
        return cls(
            competition_id=competition_id,
            metric=ScoringMetric.parse(metric),
            start=start,
            end=end,
            **kwargs
        )
