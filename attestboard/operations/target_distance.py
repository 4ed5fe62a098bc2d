"""
Target-distance time extraction.

Estimates the elapsed time at a canonical distance (e.g. 5 km) from split
data, so a participant who ran past the target is scored at exactly the
target without penalty for continuing.
"""

from attestboard.data_models.workout import WorkoutAttestation


def extract_target_distance_time(attestation: WorkoutAttestation, target_km: float) -> float:
    """
    Elapsed seconds at target_km.

    - No splits: the total recorded duration.
    - Exact split at the target: that split's time.
    - Otherwise: the nearest split at or below the target, extrapolated at
      that split's average pace, never exceeding the total duration.
    - No split at or below the target: the total recorded duration.
    """
    if not attestation.splits:
        return attestation.duration

    splits = attestation.split_map
    exact = splits.get(target_km)
    if exact is not None:
        return exact

    closest_km = 0
    closest_time = 0.0
    for km, elapsed in attestation.splits:
        if km <= target_km and km > closest_km:
            closest_km = km
            closest_time = elapsed

    if closest_km > 0 and closest_time > 0:
        average_pace = closest_time / closest_km
        estimate = closest_time + (target_km - closest_km) * average_pace
        return min(estimate, attestation.duration)

    return attestation.duration
