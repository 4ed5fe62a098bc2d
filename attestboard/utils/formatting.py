"""
Display formatting for leaderboard scores and team goal values.
"""

from typing import Optional

from attestboard.data_models.competition import ScoringMetric
from attestboard.utils.time_parser import format_hours_minutes, format_seconds_to_time


def format_score(score: Optional[float], metric: ScoringMetric) -> str:
    """Format a leaderboard score for display."""
    if metric == ScoringMetric.COMPLETION:
        return "Completed ✓" if score else "Not completed"

    if metric == ScoringMetric.FASTEST_TIME:
        if not score:
            return "Did not complete"
        return format_seconds_to_time(score)

    if metric == ScoringMetric.AVERAGE_PACE:
        if not score:
            return "No pace"
        pace_minutes = int(score)
        pace_seconds = int(round((score - pace_minutes) * 60))
        if pace_seconds == 60:
            pace_minutes, pace_seconds = pace_minutes + 1, 0
        return f"{pace_minutes}:{pace_seconds:02d} /km"

    score = score or 0
    if metric == ScoringMetric.TOTAL_DISTANCE:
        return f"{score:.2f} km"
    if metric in (ScoringMetric.MOST_WORKOUTS, ScoringMetric.TOTAL_WORKOUTS):
        return f"{int(score)} workouts"
    if metric == ScoringMetric.TOTAL_DURATION:
        return format_hours_minutes(score)
    if metric == ScoringMetric.TOTAL_CALORIES:
        return f"{round(score)} cal"
    if metric == ScoringMetric.MOST_CONSISTENT:
        return f"{int(score)} days"
    if metric == ScoringMetric.WEEKLY_STREAK:
        return f"{int(score)} day streak"
    return f"{score:.2f}"


def format_goal_value(value: float, metric: ScoringMetric, unit: str) -> str:
    """Format a team goal total (distance-like metrics use the goal unit)."""
    if metric == ScoringMetric.TOTAL_DURATION:
        return format_hours_minutes(value)
    if metric == ScoringMetric.TOTAL_CALORIES:
        return f"{round(value)} cal"
    if metric in (ScoringMetric.MOST_WORKOUTS, ScoringMetric.TOTAL_WORKOUTS):
        return f"{round(value)} workouts"
    return f"{value:.1f} {unit}"


def format_steps(steps: float) -> str:
    return f"{int(steps):,} steps"
