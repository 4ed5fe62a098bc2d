"""
Workout event parsing.

Turns one raw relay event into a WorkoutAttestation or rejects it. Required
fields (exercise, distance, duration) reject the whole event when missing or
unparsable; optional fields are parsed one by one and simply omitted when
malformed. Nothing here raises to the caller.
"""

import asyncio
import logging
import math
from typing import Iterable, List, Optional, Tuple

from attestboard.constants import EventConstants
from attestboard.data_models.workout import RawEvent, WorkoutAttestation
from attestboard.utils.leaderboard_exceptions import MalformedEventError
from attestboard.utils.time_parser import parse_duration

logger = logging.getLogger(__name__)

_MILE_UNITS = ('mi', 'mile', 'miles')


def parse_workout_event(event: RawEvent) -> Optional[WorkoutAttestation]:
    """Parse a workout event. Returns None when the event is rejected."""
    try:
        return _parse(event)
    except MalformedEventError as e:
        logger.debug(f"Rejected workout event: {e}")
        return None


def _parse(event: RawEvent) -> WorkoutAttestation:
    if event.kind != EventConstants.WORKOUT_EVENT_KIND:
        raise MalformedEventError(event.id, 'kind', f"is {event.kind}, expected {EventConstants.WORKOUT_EVENT_KIND}")
    if not event.pubkey:
        raise MalformedEventError(event.id, 'pubkey', "is missing")

    activity_type = _required_value(event, EventConstants.TAG_EXERCISE).strip()
    if not activity_type:
        raise MalformedEventError(event.id, EventConstants.TAG_EXERCISE, "is empty")

    distance = _parse_distance(event)
    duration = _parse_required_duration(event)
    splits = _parse_splits(event)

    return WorkoutAttestation(
        event_id=event.id,
        participant=event.pubkey,
        activity_type=activity_type,
        distance=distance,
        duration=duration,
        created_at=event.created_at,
        calories=_optional_int(event, EventConstants.TAG_CALORIES, minimum=0),
        splits=splits,
        split_paces=_parse_split_paces(event),
        steps=_optional_int(event, EventConstants.TAG_STEPS, minimum=1),
        team=_optional_text(event, EventConstants.TAG_TEAM),
        charity=_optional_text(event, EventConstants.TAG_CHARITY),
    )


def _required_value(event: RawEvent, name: str) -> str:
    tag = event.get_tag(name)
    if tag is None or len(tag) < 2:
        raise MalformedEventError(event.id, name, "is missing")
    return tag[1]


def _parse_distance(event: RawEvent) -> float:
    tag = event.get_tag(EventConstants.TAG_DISTANCE)
    if tag is None or len(tag) < 2:
        raise MalformedEventError(event.id, EventConstants.TAG_DISTANCE, "is missing")
    try:
        distance = float(tag[1])
    except ValueError:
        raise MalformedEventError(event.id, EventConstants.TAG_DISTANCE, f"is not a number: {tag[1]!r}")
    if math.isnan(distance) or math.isinf(distance) or distance < 0:
        raise MalformedEventError(event.id, EventConstants.TAG_DISTANCE, f"is out of range: {tag[1]!r}")

    unit = tag[2].strip().lower() if len(tag) > 2 else 'km'
    if unit in _MILE_UNITS:
        distance *= EventConstants.KM_PER_MILE
    return distance


def _parse_required_duration(event: RawEvent) -> float:
    raw = _required_value(event, EventConstants.TAG_DURATION)
    try:
        duration = parse_duration(raw)
    except ValueError:
        raise MalformedEventError(event.id, EventConstants.TAG_DURATION, f"is not a clock time: {raw!r}")
    if duration <= 0:
        raise MalformedEventError(event.id, EventConstants.TAG_DURATION, "must be positive")
    return duration


def _optional_int(event: RawEvent, name: str, minimum: int) -> Optional[int]:
    tag = event.get_tag(name)
    if tag is None or len(tag) < 2:
        return None
    try:
        value = int(float(tag[1]))
    except (ValueError, OverflowError):
        logger.debug(f"Event {event.id}: ignoring malformed {name} tag {tag[1]!r}")
        return None
    if value < minimum:
        logger.debug(f"Event {event.id}: ignoring out-of-range {name} tag {tag[1]!r}")
        return None
    return value


def _optional_text(event: RawEvent, name: str) -> Optional[str]:
    tag = event.get_tag(name)
    if tag is None or len(tag) < 2 or not tag[1].strip():
        return None
    return tag[1].strip()


def _parse_splits(event: RawEvent) -> Tuple[Tuple[int, float], ...]:
    """Split tags: [split, km, HH:MM:SS]. Dropped entirely unless strictly increasing."""
    splits = {}
    for tag in event.get_tags(EventConstants.TAG_SPLIT):
        if len(tag) < 3:
            continue
        try:
            km = int(tag[1])
            elapsed = parse_duration(tag[2])
        except ValueError:
            logger.debug(f"Event {event.id}: ignoring malformed split {tag[1:]}")
            continue
        if km <= 0 or elapsed <= 0:
            continue
        if km in splits and splits[km] != elapsed:
            logger.debug(f"Event {event.id}: conflicting splits at km {km}, dropping splits")
            return ()
        splits[km] = elapsed

    ordered = tuple(sorted(splits.items()))
    for (_, previous), (_, current) in zip(ordered, ordered[1:]):
        if current <= previous:
            logger.debug(f"Event {event.id}: split times not increasing, dropping splits")
            return ()
    return ordered


def _parse_split_paces(event: RawEvent) -> Tuple[Tuple[int, float], ...]:
    """Split pace tags: [split_pace, km, seconds_per_km]."""
    paces = {}
    for tag in event.get_tags(EventConstants.TAG_SPLIT_PACE):
        if len(tag) < 3:
            continue
        try:
            km = int(tag[1])
            pace = float(tag[2])
        except ValueError:
            continue
        if km <= 0 or pace <= 0 or math.isnan(pace) or math.isinf(pace):
            continue
        paces.setdefault(km, pace)
    return tuple(sorted(paces.items()))


async def parse_events_chunked(events: Iterable[RawEvent], batch_size: int = 100) -> List[WorkoutAttestation]:
    """
    Parse a large batch of events, yielding to the event loop between chunks.

    Rejected events are skipped. Order of the input is preserved.
    """
    events = list(events)
    attestations = []
    rejected = 0
    for offset in range(0, len(events), batch_size):
        for event in events[offset:offset + batch_size]:
            attestation = parse_workout_event(event)
            if attestation is None:
                rejected += 1
            else:
                attestations.append(attestation)
        if offset + batch_size < len(events):
            await asyncio.sleep(0)

    if rejected:
        logger.info(f"Parsed {len(attestations)} workouts, rejected {rejected} malformed events")
    return attestations
