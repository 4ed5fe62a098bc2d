"""
Relay client speaking the NIP-01 subscription protocol over a WebSocket.

One client owns one connection to one relay. The gateway creates a client per
relay for every query and always closes it, whatever the outcome.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, Optional

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from attestboard.utils.leaderboard_exceptions import RelayConnectionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RelayMessage:
    """Subscription message relevant to the gateway."""
    type: str  # "EVENT" or "EOSE"
    event: Optional[Dict[str, Any]] = None


class WebsocketRelayClient:
    """Single relay connection with REQ/EVENT/EOSE/CLOSE handling."""

    def __init__(self, url: str, open_timeout: float = 3.0, ping_interval: float = 20.0):
        self.url = url
        self.open_timeout = open_timeout
        self.ping_interval = ping_interval
        self.ws = None
        self._subscription_id: Optional[str] = None
        self._closed = False

    async def connect(self):
        """Establish the WebSocket connection. Raises RelayConnectionError."""
        try:
            self.ws = await websockets.connect(
                self.url,
                open_timeout=self.open_timeout,
                ping_interval=self.ping_interval,
            )
        except (OSError, asyncio.TimeoutError, WebSocketException, ValueError) as e:
            raise RelayConnectionError(self.url, str(e)) from e
        logger.debug(f"Connected to relay {self.url}")

    async def subscribe(self, subscription_id: str, relay_filter: Dict[str, Any]) -> AsyncIterator[RelayMessage]:
        """
        Open a subscription and yield EVENT and EOSE messages.

        The iterator ends when the relay closes the subscription or the
        connection. EOSE does not end it; stored events may be followed by
        live ones until the caller stops listening.
        """
        if self.ws is None:
            raise RelayConnectionError(self.url, "not connected")

        self._subscription_id = subscription_id
        try:
            await self.ws.send(json.dumps(["REQ", subscription_id, relay_filter]))
            async for raw in self.ws:
                message = self._decode(raw)
                if message is None:
                    continue

                message_type = message[0]
                if message_type == "EVENT" and len(message) >= 3 and message[1] == subscription_id:
                    yield RelayMessage("EVENT", message[2])
                elif message_type == "EOSE" and len(message) >= 2 and message[1] == subscription_id:
                    yield RelayMessage("EOSE")
                elif message_type == "CLOSED" and len(message) >= 2 and message[1] == subscription_id:
                    reason = message[2] if len(message) > 2 else ""
                    logger.info(f"Relay {self.url} closed subscription: {reason}")
                    self._subscription_id = None
                    return
                elif message_type == "NOTICE":
                    logger.info(f"Relay {self.url} notice: {message[1] if len(message) > 1 else ''}")
        except ConnectionClosed as e:
            logger.warning(f"Relay {self.url} connection closed: {e}")
            self._subscription_id = None

    def _decode(self, raw) -> Optional[list]:
        try:
            message = json.loads(raw)
        except (TypeError, ValueError):
            logger.debug(f"Ignoring undecodable frame from {self.url}")
            return None
        if not isinstance(message, list) or not message:
            logger.debug(f"Ignoring unexpected frame from {self.url}")
            return None
        return message

    async def close(self):
        """Close the subscription and the connection. Safe to call repeatedly."""
        if self._closed:
            return
        self._closed = True
        if self.ws is None:
            return
        try:
            if self._subscription_id is not None:
                await self.ws.send(json.dumps(["CLOSE", self._subscription_id]))
        except WebSocketException as e:
            logger.debug(f"Could not send CLOSE to {self.url}: {e}")
        finally:
            self._subscription_id = None
            await self.ws.close()
            logger.debug(f"Closed relay {self.url}")
