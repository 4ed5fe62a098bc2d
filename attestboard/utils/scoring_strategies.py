"""
Scoring Strategy Pattern for Competition Metrics

This module implements the Strategy pattern for the competition scoring
metrics, keeping each formula a small pure function of one participant's
selected attestations.

Includes:
- Accumulation metrics (distance, duration, calories, workout count)
- Extremal metrics (fastest time, best pace) with explicit "did not finish"
- Calendar metrics (distinct active days, consecutive-day streak)
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, timedelta, timezone, tzinfo
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from attestboard.data_models.competition import ScoringMetric
from attestboard.data_models.workout import Participant, WorkoutAttestation
from attestboard.operations.selection import Selection
import logging

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class ParticipantScore:
    """Score of one roster participant. None means no qualifying result."""
    participant: str
    score: Optional[float]
    workout_count: int

class ScoringStrategy(ABC):
    """
    Abstract base class for scoring strategies.

    Each strategy maps one participant's selected attestations to a score.
    """

    @abstractmethod
    def score(self, attestations: Sequence[WorkoutAttestation]) -> Optional[float]:
        """
        Calculate the score for one participant.

        Args:
            attestations: Selected attestations, in deterministic order

        Returns:
            Numeric score, or None for "did not finish"
        """
        pass

    def empty_score(self) -> Optional[float]:
        """Score of a roster participant with no qualifying attestations."""
        return 0.0

    @abstractmethod
    def get_strategy_name(self) -> str:
        """Get human-readable name of this strategy"""
        pass

class SumStrategy(ScoringStrategy):
    """Sum of one numeric attestation field (missing values count as 0)."""

    def __init__(self, name: str, getter: Callable[[WorkoutAttestation], Optional[float]]):
        self.name = name
        self.getter = getter

    def score(self, attestations: Sequence[WorkoutAttestation]) -> Optional[float]:
        return float(sum(self.getter(a) or 0 for a in attestations))

    def get_strategy_name(self) -> str:
        return self.name

class WorkoutCountStrategy(ScoringStrategy):

    def score(self, attestations: Sequence[WorkoutAttestation]) -> Optional[float]:
        return float(len(attestations))

    def get_strategy_name(self) -> str:
        return "Most Workouts"

class FastestTimeStrategy(ScoringStrategy):
    """Lowest duration wins; no qualifying attestation means did not finish."""

    def score(self, attestations: Sequence[WorkoutAttestation]) -> Optional[float]:
        if not attestations:
            return None
        return float(min(a.duration for a in attestations))

    def empty_score(self) -> Optional[float]:
        return None

    def get_strategy_name(self) -> str:
        return "Fastest Time"

class AveragePaceStrategy(ScoringStrategy):
    """Best pace in minutes per km over attestations with a positive distance."""

    def score(self, attestations: Sequence[WorkoutAttestation]) -> Optional[float]:
        paces = [a.duration / 60 / a.distance for a in attestations if a.distance > 0]
        if not paces:
            return None
        return min(paces)

    def empty_score(self) -> Optional[float]:
        return None

    def get_strategy_name(self) -> str:
        return "Average Pace"

class CompletionStrategy(ScoringStrategy):
    """Binary: 1 if any qualifying attestation exists."""

    def score(self, attestations: Sequence[WorkoutAttestation]) -> Optional[float]:
        return 1.0 if attestations else 0.0

    def get_strategy_name(self) -> str:
        return "Completion"

class ConsistencyStrategy(ScoringStrategy):
    """Distinct calendar days with at least one attestation."""

    def __init__(self, tz: tzinfo = timezone.utc):
        self.tz = tz

    def score(self, attestations: Sequence[WorkoutAttestation]) -> Optional[float]:
        return float(len({a.calendar_day(self.tz) for a in attestations}))

    def get_strategy_name(self) -> str:
        return "Most Consistent"

class StreakStrategy(ScoringStrategy):
    """
    Consecutive-day streak ending on the reference day.

    The streak counts back from the most recent active day, which must be the
    reference day or the day before (one-day grace). Older activity scores 0.
    """

    def __init__(self, reference_day: date, tz: tzinfo = timezone.utc):
        self.reference_day = reference_day
        self.tz = tz

    def score(self, attestations: Sequence[WorkoutAttestation]) -> Optional[float]:
        days = sorted(
            {a.calendar_day(self.tz) for a in attestations if a.calendar_day(self.tz) <= self.reference_day},
            reverse=True
        )
        if not days:
            return 0.0
        if (self.reference_day - days[0]).days > 1:
            return 0.0

        streak = 1
        for previous, current in zip(days, days[1:]):
            if previous - current == timedelta(days=1):
                streak += 1
            else:
                break
        return float(streak)

    def get_strategy_name(self) -> str:
        return "Weekly Streak"

class ScoringStrategyFactory:
    """Factory for creating scoring strategies based on competition metric"""

    @staticmethod
    def create_strategy(metric: ScoringMetric, **kwargs) -> ScoringStrategy:
        """
        Create appropriate scoring strategy for a metric.

        Args:
            metric: Scoring metric of the competition
            **kwargs: reference_day (date) and tz (tzinfo) for calendar metrics

        Returns:
            Configured ScoringStrategy instance
        """
        metric = ScoringMetric.parse(metric)
        tz = kwargs.get('tz') or timezone.utc

        if metric == ScoringMetric.TOTAL_DISTANCE:
            return SumStrategy("Total Distance", lambda a: a.distance)
        elif metric in (ScoringMetric.MOST_WORKOUTS, ScoringMetric.TOTAL_WORKOUTS):
            return WorkoutCountStrategy()
        elif metric == ScoringMetric.TOTAL_DURATION:
            return SumStrategy("Total Duration", lambda a: a.duration)
        elif metric == ScoringMetric.TOTAL_CALORIES:
            return SumStrategy("Total Calories", lambda a: a.calories)
        elif metric == ScoringMetric.FASTEST_TIME:
            return FastestTimeStrategy()
        elif metric == ScoringMetric.AVERAGE_PACE:
            return AveragePaceStrategy()
        elif metric == ScoringMetric.COMPLETION:
            return CompletionStrategy()
        elif metric == ScoringMetric.MOST_CONSISTENT:
            return ConsistencyStrategy(tz)
        elif metric == ScoringMetric.WEEKLY_STREAK:
            reference_day = kwargs.get('reference_day')
            if reference_day is None:
                raise ValueError("weekly_streak scoring requires a reference_day")
            return StreakStrategy(reference_day, tz)
        else:
            raise ValueError(f"Unknown scoring metric: {metric}")

    @staticmethod
    def get_available_strategies() -> List[str]:
        """Get list of available metric names"""
        return [metric.value for metric in ScoringMetric]

def calculate_scores(
    selections: Dict[str, Selection],
    metric: ScoringMetric,
    roster: Iterable[Participant],
    **kwargs
) -> Dict[str, ParticipantScore]:
    """
    Score every roster participant, including those without attestations.

    Participants outside the roster are ignored.
    """
    strategy = ScoringStrategyFactory.create_strategy(metric, **kwargs)
    scores = {}
    for participant in roster:
        selection = selections.get(participant.identity)
        if selection is None or not selection.attestations:
            scores[participant.identity] = ParticipantScore(
                participant.identity,
                strategy.empty_score(),
                selection.qualifying_count if selection else 0
            )
            continue
        scores[participant.identity] = ParticipantScore(
            participant.identity,
            strategy.score(selection.attestations),
            selection.qualifying_count
        )
    logger.debug(f"{strategy.get_strategy_name()} scoring: {len(scores)} participants")
    return scores
