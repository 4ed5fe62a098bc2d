"""
Shared test helpers: workout event builders and in-process relay doubles.
"""
import asyncio
import itertools
from datetime import datetime, timezone
from typing import Dict, List, Optional

import pytest
from bech32 import bech32_encode, convertbits

from attestboard.data_models.workout import RawEvent
from attestboard.services.relay_client import RelayMessage
from attestboard.services.relay_gateway import RetrievalResult
from attestboard.utils.leaderboard_exceptions import RelayConnectionError

ALICE = "a" * 64
BOB = "b" * 64
CAROL = "c" * 64

_ids = itertools.count(1)


def ts(year, month, day, hour=12, minute=0) -> int:
    return int(datetime(year, month, day, hour, minute, tzinfo=timezone.utc).timestamp())


def workout_event(
    pubkey: str,
    created_at: int,
    exercise: str = "running",
    distance: Optional[str] = "5.0",
    duration: Optional[str] = "00:25:00",
    splits: Optional[List] = None,
    extra_tags: Optional[List] = None,
    kind: int = 1301,
    event_id: Optional[str] = None,
) -> Dict:
    """Relay JSON object for a workout record."""
    tags = []
    if exercise is not None:
        tags.append(["exercise", exercise])
    if distance is not None:
        tags.append(["distance", distance, "km"])
    if duration is not None:
        tags.append(["duration", duration])
    for km, elapsed in splits or []:
        tags.append(["split", str(km), elapsed])
    tags.extend(extra_tags or [])
    return {
        "id": event_id or f"evt{next(_ids):061d}",
        "pubkey": pubkey,
        "created_at": created_at,
        "kind": kind,
        "tags": tags,
        "content": "",
    }


def npub(hex_key: str) -> str:
    """bech32 npub form of a hex public key."""
    return bech32_encode("npub", convertbits(bytes.fromhex(hex_key), 8, 5))


def raw(event: Dict) -> RawEvent:
    return RawEvent.from_dict(event)


class FakeRelayClient:
    """
    Relay double for the gateway.

    Replays its events, optionally sends EOSE, then stays subscribed until
    cancelled, as a live relay would.
    """

    def __init__(self, url: str, events=None, send_eose: bool = True, fail_connect: bool = False,
                 connect_delay: float = 0.0):
        self.url = url
        self.events = list(events or [])
        self.send_eose = send_eose
        self.fail_connect = fail_connect
        self.connect_delay = connect_delay
        self.subscriptions = []
        self.closed = False

    async def connect(self):
        if self.connect_delay:
            await asyncio.sleep(self.connect_delay)
        if self.fail_connect:
            raise RelayConnectionError(self.url, "connection refused")

    async def subscribe(self, subscription_id, relay_filter):
        self.subscriptions.append((subscription_id, relay_filter))
        for event in self.events:
            yield RelayMessage("EVENT", event)
        if self.send_eose:
            yield RelayMessage("EOSE")
        await asyncio.Event().wait()

    async def close(self):
        self.closed = True


class FakeGateway:
    """Gateway double returning prepared events and recording each filter."""

    def __init__(self, events=None, responses=None):
        self.responses = list(responses) if responses is not None else None
        self.events = [raw(event) for event in events or []]
        self.calls = []

    async def fetch_events(self, relay_filter, deadline=None):
        self.calls.append(relay_filter)
        if self.responses is not None:
            batch = self.responses.pop(0) if self.responses else []
            return RetrievalResult(events=[raw(event) for event in batch], complete=True)
        return RetrievalResult(events=list(self.events), complete=True, relays_connected=1, relays_finished=1)


@pytest.fixture
def fake_clients():
    """Registry of FakeRelayClients keyed by URL, usable as a client_factory."""
    clients = {}

    def factory(url):
        return clients[url]

    factory.clients = clients
    return factory
