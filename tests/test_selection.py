import pytest

from attestboard.data_models.competition import ScoringMetric
from attestboard.data_models.workout import WorkoutAttestation
from attestboard.operations.selection import (
    apply_target_distance,
    is_eligible_for_target,
    select_attestations,
    split_threshold,
)
from attestboard.operations.target_distance import extract_target_distance_time
from conftest import ALICE, BOB


def attestation(event_id, participant=ALICE, distance=5.0, duration=1500.0, created_at=1000, splits=()):
    return WorkoutAttestation(
        event_id=event_id,
        participant=participant,
        activity_type="running",
        distance=distance,
        duration=duration,
        created_at=created_at,
        splits=splits,
    )


class TestTargetDistanceExtraction:

    def test_no_splits_uses_total_duration(self):
        assert extract_target_distance_time(attestation("e1", distance=6.0, duration=1800.0), 5.0) == 1800.0

    def test_exact_split(self):
        splits = tuple((km, km * 300.0) for km in range(1, 7))
        assert extract_target_distance_time(attestation("e1", distance=6.0, duration=1800.0, splits=splits), 5.0) == 1500.0

    def test_extrapolation_capped_at_total_duration(self):
        # 3 km in 900s projects 1500s at 5 km, but the whole workout took 1200s
        item = attestation("e1", distance=5.0, duration=1200.0, splits=((3, 900.0),))
        assert extract_target_distance_time(item, 5.0) == 1200.0

    def test_extrapolation_from_nearest_split_below(self):
        splits = ((20, 6000.0), (21, 6300.0), (22, 6600.0))
        item = attestation("e1", distance=22.0, duration=6600.0, splits=splits)
        assert extract_target_distance_time(item, 21.1) == pytest.approx(6330.0)

    def test_no_split_below_target_uses_total(self):
        item = attestation("e1", distance=10.0, duration=3000.0, splits=((8, 2400.0),))
        assert extract_target_distance_time(item, 5.0) == 3000.0


class TestEligibility:

    def test_split_thresholds(self):
        assert split_threshold(5.0) == 5
        assert split_threshold(21.1) == 21
        assert split_threshold(42.2) == 42
        assert split_threshold(15.0) == 15
        assert split_threshold(0.5) == 1

    def test_distance_margin(self):
        assert is_eligible_for_target(attestation("e1", distance=4.76), 5.0)
        assert not is_eligible_for_target(attestation("e1", distance=4.7), 5.0)

    def test_enough_splits_qualifies_short_distance(self):
        splits = tuple((km, km * 300.0) for km in range(1, 6))
        assert is_eligible_for_target(attestation("e1", distance=4.0, splits=splits), 5.0)

    def test_apply_target_distance_filters_and_retimes(self):
        splits = tuple((km, km * 300.0) for km in range(1, 11))
        items = [
            attestation("long", distance=10.0, duration=3000.0, splits=splits),
            attestation("short", distance=3.0, duration=900.0),
        ]
        adjusted = apply_target_distance(items, 5.0)
        assert [a.event_id for a in adjusted] == ["long"]
        assert adjusted[0].duration == 1500.0
        assert items[0].duration == 3000.0


class TestSelection:

    def test_fastest_time_keeps_single_best(self):
        items = [
            attestation("e1", duration=1600.0, created_at=1),
            attestation("e2", duration=1500.0, created_at=2),
            attestation("e3", duration=1700.0, created_at=3),
        ]
        selection = select_attestations(items, ScoringMetric.FASTEST_TIME)[ALICE]
        assert [a.event_id for a in selection.attestations] == ["e2"]
        assert selection.qualifying_count == 3

    def test_ties_keep_earliest(self):
        items = [
            attestation("e2", duration=1500.0, created_at=5),
            attestation("e1", duration=1500.0, created_at=1),
        ]
        selection = select_attestations(items, ScoringMetric.FASTEST_TIME)[ALICE]
        assert selection.attestations[0].event_id == "e1"

    def test_order_independent(self):
        items = [
            attestation("e1", duration=1500.0, created_at=1),
            attestation("e2", duration=1500.0, created_at=1),
            attestation("e3", participant=BOB, duration=1400.0, created_at=2),
        ]
        forward = select_attestations(items, ScoringMetric.FASTEST_TIME)
        backward = select_attestations(list(reversed(items)), ScoringMetric.FASTEST_TIME)
        assert forward == backward

    def test_average_pace_ignores_zero_distance(self):
        items = [
            attestation("e1", distance=0.0, duration=600.0),
            attestation("e2", distance=5.0, duration=1500.0),
        ]
        selection = select_attestations(items, ScoringMetric.AVERAGE_PACE)[ALICE]
        assert [a.event_id for a in selection.attestations] == ["e2"]

    def test_accumulation_keeps_everything(self):
        items = [attestation(f"e{i}", created_at=10 - i) for i in range(3)]
        selection = select_attestations(items, ScoringMetric.TOTAL_DISTANCE)[ALICE]
        assert [a.event_id for a in selection.attestations] == ["e2", "e1", "e0"]
        assert selection.qualifying_count == 3
