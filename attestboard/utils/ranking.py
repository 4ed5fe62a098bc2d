"""
Shared ranking utilities for league, event and daily leaderboards.

Provides the single ordering rule used by every leaderboard so rank numbers
mean the same thing everywhere.
"""

from dataclasses import replace
from typing import List, Sequence

from attestboard.data_models.competition import ScoringMetric
from attestboard.data_models.leaderboard import LeaderboardEntry


class RankingUtility:
    """Shared ranking logic: sort direction, sentinel placement, rank assignment."""

    @staticmethod
    def sort_entries(entries: Sequence[LeaderboardEntry], metric: ScoringMetric) -> List[LeaderboardEntry]:
        """
        Order entries for a metric.

        Entries with a present, non-zero score come first, ascending for time
        metrics and descending otherwise. Zero and absent (did not finish)
        scores always follow, whatever the direction. Python's sort is stable,
        so equal scores keep their encounter order; there is no secondary key.
        """
        if metric == ScoringMetric.COMPLETION:
            # Completers before non-completers, encounter order otherwise
            scored = [entry for entry in entries if entry.has_score]
            unscored = [entry for entry in entries if not entry.has_score]
            return scored + unscored

        return RankingUtility.sort_by_value(entries, metric.lower_is_better)

    @staticmethod
    def sort_by_value(entries: Sequence[LeaderboardEntry], lower_is_better: bool) -> List[LeaderboardEntry]:
        """Same ordering rule for boards that are not tied to a competition metric."""
        scored = [entry for entry in entries if entry.has_score]
        unscored = [entry for entry in entries if not entry.has_score]
        scored.sort(key=lambda entry: entry.score, reverse=not lower_is_better)
        return scored + unscored

    @staticmethod
    def assign_ranks(entries: Sequence[LeaderboardEntry]) -> List[LeaderboardEntry]:
        """Contiguous ranks 1..N. Equal scores still receive distinct ranks."""
        return [replace(entry, rank=index + 1) for index, entry in enumerate(entries)]

    @staticmethod
    def rank_entries(entries: Sequence[LeaderboardEntry], metric: ScoringMetric) -> List[LeaderboardEntry]:
        return RankingUtility.assign_ranks(RankingUtility.sort_entries(entries, metric))
