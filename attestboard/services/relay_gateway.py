"""
Event Retrieval Gateway

Fans a bounded-time query out to every configured relay and collects raw
workout events into one buffer keyed by event id.

Key properties:
- One hard deadline is the only authority for ending the wait. EOSE signals
  are advisory; a relay may never send one.
- An optional minimum-connected-relays gate bounds startup latency before the
  deadline timer starts.
- Every relay subscription is closed on every exit path (deadline, all relays
  gone, early quorum, caller cancellation).
- Relay failures are logged and absorbed. An empty result is valid.
"""

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Set, Tuple

from attestboard.config import Config
from attestboard.constants import EventConstants
from attestboard.data_models.workout import RawEvent
from attestboard.services.relay_client import WebsocketRelayClient
from attestboard.utils.leaderboard_exceptions import RelayConnectionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RelayFilter:
    """NIP-01 subscription filter."""
    kinds: Tuple[int, ...] = (EventConstants.WORKOUT_EVENT_KIND,)
    authors: Optional[Tuple[str, ...]] = None
    since: Optional[int] = None
    until: Optional[int] = None
    limit: Optional[int] = None

    def to_dict(self) -> Dict:
        data = {'kinds': list(self.kinds)}
        if self.authors is not None:
            data['authors'] = list(self.authors)
        if self.since is not None:
            data['since'] = self.since
        if self.until is not None:
            data['until'] = self.until
        if self.limit is not None:
            data['limit'] = self.limit
        return data


@dataclass(frozen=True)
class RetrievalResult:
    """Events collected before the deadline. complete=False means best-effort."""
    events: List[RawEvent] = field(default_factory=list)
    complete: bool = False
    relays_connected: int = 0
    relays_finished: int = 0
    elapsed: float = 0.0


class _RetrievalState:
    """Shared buffer and progress signals for one fetch."""

    def __init__(self, relay_count: int, min_relays: int, eose_quorum: int):
        self.relay_count = relay_count
        self.required_connections = max(1, min(min_relays, relay_count))
        self.eose_quorum = eose_quorum
        self.events: Dict[str, RawEvent] = {}
        self.connected: Set[str] = set()
        self.eose: Set[str] = set()
        self.exited: Set[str] = set()
        self.gate_open = asyncio.Event()
        self.stop = asyncio.Event()

    def add_event(self, relay_url: str, payload) -> bool:
        try:
            event = RawEvent.from_dict(payload)
        except ValueError as e:
            logger.debug(f"Dropping unusable event from {relay_url}: {e}")
            return False
        if event.id in self.events:
            return False
        self.events[event.id] = event
        return True

    def mark_connected(self, relay_url: str):
        self.connected.add(relay_url)
        if len(self.connected) >= self.required_connections:
            self.gate_open.set()

    def mark_eose(self, relay_url: str):
        self.eose.add(relay_url)
        if self.eose_quorum and len(self.eose) >= self.eose_quorum:
            self.stop.set()

    def mark_exited(self, relay_url: str):
        self.exited.add(relay_url)
        if len(self.exited) >= self.relay_count:
            self.gate_open.set()
            self.stop.set()


class EventRetrievalGateway:
    """Bounded-time multi-relay event retrieval."""

    def __init__(
        self,
        relay_urls: Optional[Sequence[str]] = None,
        client_factory: Optional[Callable[[str], WebsocketRelayClient]] = None,
        deadline: Optional[float] = None,
        min_relays: Optional[int] = None,
        connect_wait: Optional[float] = None,
        eose_quorum: Optional[int] = None
    ):
        """
        Initialize the gateway.

        Args:
            relay_urls: Relay endpoints (defaults to Config.RELAY_URLS)
            client_factory: Callable building a relay client for a URL
            deadline: Hard limit in seconds on the collection wait
            min_relays: Connected relays required before the deadline timer starts
            connect_wait: Maximum time spent waiting for min_relays
            eose_quorum: Stop early once this many relays sent EOSE (0 disables)
        """
        self.relay_urls = list(relay_urls) if relay_urls is not None else Config.get_relay_urls()
        self.client_factory = client_factory or (
            lambda url: WebsocketRelayClient(url, open_timeout=Config.RELAY_CONNECT_WAIT_SECONDS)
        )
        self.deadline = deadline if deadline is not None else Config.QUERY_DEADLINE_SECONDS
        self.min_relays = min_relays if min_relays is not None else Config.MIN_CONNECTED_RELAYS
        self.connect_wait = connect_wait if connect_wait is not None else Config.RELAY_CONNECT_WAIT_SECONDS
        self.eose_quorum = eose_quorum if eose_quorum is not None else Config.EOSE_QUORUM

    async def fetch_events(self, relay_filter: RelayFilter, deadline: Optional[float] = None) -> RetrievalResult:
        """Query every relay until the deadline and return the deduplicated events."""
        if not self.relay_urls:
            logger.warning("No relays configured - returning empty result")
            return RetrievalResult(complete=True)

        deadline = deadline if deadline is not None else self.deadline
        started = time.monotonic()
        state = _RetrievalState(len(self.relay_urls), self.min_relays, self.eose_quorum)
        subscription_id = f"lb-{uuid.uuid4().hex[:12]}"
        clients = [(url, self.client_factory(url)) for url in self.relay_urls]

        tasks = [
            asyncio.create_task(self._drain(url, client, subscription_id, relay_filter, state))
            for url, client in clients
        ]

        try:
            if not await self._wait_for(state.gate_open, self.connect_wait):
                logger.warning(
                    f"Only {len(state.connected)}/{len(self.relay_urls)} relays connected after "
                    f"{self.connect_wait:.1f}s - proceeding with minimal connectivity"
                )
            await self._wait_for(state.stop, deadline)
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            await asyncio.gather(*(self._close_client(url, client) for url, client in clients))

        elapsed = time.monotonic() - started
        complete = len(state.eose) >= len(self.relay_urls)
        if not state.connected:
            logger.warning("No relay reachable - returning empty result")
        elif not complete:
            logger.info(
                f"Collected {len(state.events)} events from {len(state.connected)} relays "
                f"({len(state.eose)} finished) in {elapsed:.2f}s - best-effort result"
            )
        else:
            logger.debug(f"Collected {len(state.events)} events from all relays in {elapsed:.2f}s")

        return RetrievalResult(
            events=list(state.events.values()),
            complete=complete,
            relays_connected=len(state.connected),
            relays_finished=len(state.eose),
            elapsed=elapsed,
        )

    async def _drain(self, url: str, client, subscription_id: str, relay_filter: RelayFilter, state: _RetrievalState):
        """Pump one relay's subscription into the shared buffer."""
        try:
            await client.connect()
            state.mark_connected(url)
            async for message in client.subscribe(subscription_id, relay_filter.to_dict()):
                if message.type == "EVENT":
                    state.add_event(url, message.event)
                elif message.type == "EOSE":
                    logger.debug(f"EOSE from {url} - {len(state.events)} events collected")
                    state.mark_eose(url)
        except RelayConnectionError as e:
            logger.warning(f"Relay {url} unavailable: {e}")
        except Exception as e:
            # Protocol errors end only this relay's subscription
            logger.warning(f"Relay {url} failed during subscription: {e}", exc_info=True)
        finally:
            state.mark_exited(url)

    async def _close_client(self, url: str, client):
        try:
            await client.close()
        except Exception as e:
            logger.debug(f"Error closing relay {url}: {e}")

    @staticmethod
    async def _wait_for(event: asyncio.Event, timeout: float) -> bool:
        if event.is_set():
            return True
        try:
            await asyncio.wait_for(event.wait(), timeout=timeout)
            return True
        except asyncio.TimeoutError:
            return False
