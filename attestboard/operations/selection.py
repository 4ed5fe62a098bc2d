"""
Deduplication and best-of selection.

Reduces all attestations of each participant to the set relevant for one
leaderboard: the single best attestation for extremal metrics (fastest time,
average pace), every eligible attestation for accumulation metrics.
"""

import math
from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, Optional, Tuple

from attestboard.constants import DistanceConstants
from attestboard.data_models.competition import ScoringMetric
from attestboard.data_models.workout import WorkoutAttestation
from attestboard.operations.target_distance import extract_target_distance_time


@dataclass(frozen=True)
class Selection:
    """Attestations kept for one participant plus how many qualified."""
    attestations: Tuple[WorkoutAttestation, ...]
    qualifying_count: int


def split_threshold(target_km: float) -> int:
    """Minimum split count that makes a workout eligible for a target distance."""
    for distance, threshold in DistanceConstants.SPLIT_THRESHOLDS.items():
        if math.isclose(distance, target_km):
            return threshold
    return max(1, math.floor(target_km))


def is_eligible_for_target(attestation: WorkoutAttestation, target_km: float) -> bool:
    has_splits = attestation.split_count >= split_threshold(target_km)
    has_distance = attestation.distance >= target_km * DistanceConstants.TARGET_DISTANCE_MARGIN
    return has_splits or has_distance


def apply_target_distance(attestations: Iterable[WorkoutAttestation], target_km: float) -> List[WorkoutAttestation]:
    """Keep eligible attestations with their duration replaced by the time at target_km."""
    adjusted = []
    for attestation in attestations:
        if not is_eligible_for_target(attestation, target_km):
            continue
        target_time = extract_target_distance_time(attestation, target_km)
        adjusted.append(replace(attestation, duration=target_time))
    return adjusted


def ordered(attestations: Iterable[WorkoutAttestation]) -> List[WorkoutAttestation]:
    """Deterministic processing order independent of relay arrival order."""
    return sorted(attestations, key=lambda a: (a.created_at, a.event_id))


def best_value(attestation: WorkoutAttestation, metric: ScoringMetric) -> Optional[float]:
    """Comparable value for extremal metrics (lower is better), None if not applicable."""
    if metric == ScoringMetric.FASTEST_TIME:
        return attestation.duration
    if metric == ScoringMetric.AVERAGE_PACE:
        if attestation.distance <= 0:
            return None
        return attestation.duration / 60 / attestation.distance
    raise ValueError(f"{metric.value} is not an extremal metric")


def select_attestations(
    attestations: Iterable[WorkoutAttestation],
    metric: ScoringMetric
) -> Dict[str, Selection]:
    """Group by participant and apply the metric family's selection policy."""
    grouped: Dict[str, List[WorkoutAttestation]] = {}
    for attestation in ordered(attestations):
        grouped.setdefault(attestation.participant, []).append(attestation)

    selections = {}
    for participant, items in grouped.items():
        if not metric.is_extremal:
            selections[participant] = Selection(tuple(items), len(items))
            continue

        best = None
        best_score = None
        for attestation in items:
            value = best_value(attestation, metric)
            if value is None:
                continue
            # First encountered wins on equal values
            if best_score is None or value < best_score:
                best, best_score = attestation, value
        kept = (best,) if best is not None else ()
        selections[participant] = Selection(kept, len(items))
    return selections
