from datetime import date

import pytest

from attestboard.data_models.competition import ScoringMetric
from attestboard.data_models.workout import Participant, WorkoutAttestation
from attestboard.operations.selection import select_attestations
from attestboard.utils.scoring_strategies import (
    ScoringStrategyFactory,
    StreakStrategy,
    calculate_scores,
)
from conftest import ALICE, BOB, CAROL, ts


def workout(event_id, participant=ALICE, distance=5.0, duration=1500.0, created_at=None, calories=None):
    return WorkoutAttestation(
        event_id=event_id,
        participant=participant,
        activity_type="running",
        distance=distance,
        duration=duration,
        created_at=created_at or ts(2024, 5, 1),
        calories=calories,
    )


def score_for(metric, items, **kwargs):
    roster = [Participant(ALICE)]
    scores = calculate_scores(select_attestations(items, metric), metric, roster, **kwargs)
    return scores[ALICE]


class TestAccumulationMetrics:

    def test_total_distance(self):
        items = [workout("e1", distance=5.0), workout("e2", distance=7.5)]
        assert score_for(ScoringMetric.TOTAL_DISTANCE, items).score == 12.5

    def test_workout_counts(self):
        items = [workout("e1"), workout("e2"), workout("e3")]
        assert score_for(ScoringMetric.MOST_WORKOUTS, items).score == 3
        assert score_for(ScoringMetric.TOTAL_WORKOUTS, items).score == 3

    def test_total_duration(self):
        items = [workout("e1", duration=1500.0), workout("e2", duration=600.0)]
        assert score_for(ScoringMetric.TOTAL_DURATION, items).score == 2100.0

    def test_total_calories_treats_missing_as_zero(self):
        items = [workout("e1", calories=300), workout("e2")]
        assert score_for(ScoringMetric.TOTAL_CALORIES, items).score == 300.0


class TestExtremalMetrics:

    def test_fastest_time(self):
        items = [workout("e1", duration=1600.0), workout("e2", duration=1450.0)]
        result = score_for(ScoringMetric.FASTEST_TIME, items)
        assert result.score == 1450.0
        assert result.workout_count == 2

    def test_average_pace_is_best_pace(self):
        items = [workout("e1", distance=5.0, duration=1500.0), workout("e2", distance=10.0, duration=2700.0)]
        assert score_for(ScoringMetric.AVERAGE_PACE, items).score == pytest.approx(4.5)

    def test_no_attestations_means_did_not_finish(self):
        assert score_for(ScoringMetric.FASTEST_TIME, []).score is None
        assert score_for(ScoringMetric.AVERAGE_PACE, []).score is None


class TestCalendarMetrics:

    def test_completion(self):
        assert score_for(ScoringMetric.COMPLETION, [workout("e1")]).score == 1.0
        assert score_for(ScoringMetric.COMPLETION, []).score == 0.0

    def test_most_consistent_counts_distinct_days(self):
        items = [
            workout("e1", created_at=ts(2024, 5, 1, 8)),
            workout("e2", created_at=ts(2024, 5, 1, 18)),
            workout("e3", created_at=ts(2024, 5, 3)),
        ]
        assert score_for(ScoringMetric.MOST_CONSISTENT, items).score == 2.0

    def test_streak_counts_back_from_reference_day(self):
        items = [workout(f"e{d}", created_at=ts(2024, 5, d)) for d in (1, 2, 3, 5, 6, 7)]
        result = score_for(ScoringMetric.WEEKLY_STREAK, items, reference_day=date(2024, 5, 7))
        assert result.score == 3.0

    def test_streak_one_day_grace(self):
        items = [workout(f"e{d}", created_at=ts(2024, 5, d)) for d in (5, 6)]
        assert StreakStrategy(date(2024, 5, 7)).score(items) == 2.0

    def test_streak_broken_when_last_activity_too_old(self):
        items = [workout(f"e{d}", created_at=ts(2024, 5, d)) for d in (3, 4)]
        assert StreakStrategy(date(2024, 5, 7)).score(items) == 0.0

    def test_streak_ignores_days_after_reference(self):
        items = [workout(f"e{d}", created_at=ts(2024, 5, d)) for d in (6, 7, 9)]
        assert StreakStrategy(date(2024, 5, 7)).score(items) == 2.0

    def test_streak_requires_reference_day(self):
        with pytest.raises(ValueError):
            ScoringStrategyFactory.create_strategy(ScoringMetric.WEEKLY_STREAK)


class TestCalculateScores:

    def test_every_roster_member_scored(self):
        items = [workout("e1", participant=ALICE), workout("e2", participant=BOB)]
        roster = [Participant(ALICE), Participant(BOB), Participant(CAROL)]
        scores = calculate_scores(select_attestations(items, ScoringMetric.TOTAL_DISTANCE),
                                  ScoringMetric.TOTAL_DISTANCE, roster)
        assert set(scores) == {ALICE, BOB, CAROL}
        assert scores[CAROL].score == 0.0
        assert scores[CAROL].workout_count == 0

    def test_non_roster_attestations_ignored(self):
        items = [workout("e1", participant=ALICE), workout("e2", participant=BOB)]
        scores = calculate_scores(select_attestations(items, ScoringMetric.TOTAL_DISTANCE),
                                  ScoringMetric.TOTAL_DISTANCE, [Participant(ALICE)])
        assert set(scores) == {ALICE}

    def test_available_strategies(self):
        assert "weekly_streak" in ScoringStrategyFactory.get_available_strategies()
        assert len(ScoringStrategyFactory.get_available_strategies()) == 10

    def test_metric_names_accepted(self):
        strategy = ScoringStrategyFactory.create_strategy("total_distance")
        assert strategy.get_strategy_name() == "Total Distance"
