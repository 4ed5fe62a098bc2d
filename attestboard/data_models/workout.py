"""
Workout data models for the attestation pipeline.

Provides immutable data transfer objects for raw relay events, parsed workout
attestations and roster participants.
"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone, tzinfo
from typing import Any, Dict, List, Optional, Tuple, Union

from attestboard.constants import EventConstants
from attestboard.utils.identity import normalize_identity


@dataclass(frozen=True)
class RawEvent:
    """Relay event record as received on the wire."""
    id: str
    pubkey: str
    created_at: int
    kind: int
    tags: Tuple[Tuple[str, ...], ...] = ()
    content: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RawEvent":
        """Build from a relay JSON object. Raises ValueError when unusable."""
        if not isinstance(data, dict):
            raise ValueError("Event payload must be an object")
        event_id = data.get('id')
        if not event_id or not isinstance(event_id, str):
            raise ValueError("Event has no id")
        try:
            created_at = int(data.get('created_at', 0))
            kind = int(data.get('kind', -1))
        except (TypeError, ValueError) as e:
            raise ValueError(f"Event {event_id} has invalid header fields") from e
        raw_tags = data.get('tags') or []
        tags = tuple(
            tuple(str(part) for part in tag)
            for tag in raw_tags
            if isinstance(tag, (list, tuple)) and tag
        )
        return cls(
            id=event_id,
            pubkey=str(data.get('pubkey') or ''),
            created_at=created_at,
            kind=kind,
            tags=tags,
            content=str(data.get('content') or ''),
        )

    def get_tag(self, name: str) -> Optional[Tuple[str, ...]]:
        """First tag with the given name, or None."""
        for tag in self.tags:
            if tag[0] == name:
                return tag
        return None

    def get_tags(self, name: str) -> List[Tuple[str, ...]]:
        return [tag for tag in self.tags if tag[0] == name]


@dataclass(frozen=True)
class WorkoutAttestation:
    """One parsed, validated workout record."""
    event_id: str
    participant: str
    activity_type: str
    distance: float  # km
    duration: float  # seconds
    created_at: int
    calories: Optional[int] = None
    splits: Tuple[Tuple[int, float], ...] = ()  # km -> elapsed seconds, ascending
    split_paces: Tuple[Tuple[int, float], ...] = ()  # km -> seconds per km
    steps: Optional[int] = None
    team: Optional[str] = None
    charity: Optional[str] = None

    @property
    def split_map(self) -> Dict[int, float]:
        return dict(self.splits)

    @property
    def split_count(self) -> int:
        return len(self.splits)

    def calendar_day(self, tz: tzinfo = timezone.utc) -> date:
        """Calendar day of the workout in the given timezone."""
        return datetime.fromtimestamp(self.created_at, tz=tz).date()

    def matches_activity(self, activity_type: str) -> bool:
        if activity_type == EventConstants.ANY_ACTIVITY:
            return True
        return self.activity_type.lower() == activity_type.lower()


@dataclass(frozen=True)
class Participant:
    """Roster member. The identity is the only ownership key."""
    identity: str
    display_name: Optional[str] = field(default=None, compare=False)

    @property
    def label(self) -> str:
        if self.display_name:
            return self.display_name
        return self.identity[:8] + '...'

    @classmethod
    def coerce(cls, value: Union[str, "Participant"]) -> "Participant":
        if isinstance(value, Participant):
            return value
        return cls(identity=str(value))


def normalize_roster(roster) -> List[Participant]:
    """
    Coerce roster members to Participants, keeping the first of any duplicate identity.

    Hex and npub identities are rewritten to lowercase hex so they match event
    authors. Anything else is kept as declared; it can still be ranked but
    never owns a workout.
    """
    seen = set()
    participants = []
    for member in roster or []:
        participant = Participant.coerce(member)
        identity = normalize_identity(participant.identity)
        if identity and identity != participant.identity:
            participant = replace(participant, identity=identity)
        if participant.identity in seen:
            continue
        seen.add(participant.identity)
        participants.append(participant)
    return participants
