import json
from unittest.mock import AsyncMock, patch

import pytest
from websockets.exceptions import ConnectionClosed, WebSocketException

from attestboard.services.relay_client import WebsocketRelayClient
from attestboard.utils.leaderboard_exceptions import RelayConnectionError


class FakeWebSocket:
    """Async-iterable websocket double replaying prepared frames."""

    def __init__(self, frames):
        self.frames = list(frames)
        self.send = AsyncMock()
        self.close = AsyncMock()

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for frame in self.frames:
            yield frame


def connected_client(frames):
    client = WebsocketRelayClient("wss://relay.example")
    client.ws = FakeWebSocket(frames)
    return client


async def collect(client, subscription_id="sub1"):
    return [message async for message in client.subscribe(subscription_id, {"kinds": [1301]})]


class TestSubscribe:

    @pytest.mark.asyncio
    async def test_sends_req_and_yields_events_and_eose(self):
        client = connected_client([
            json.dumps(["EVENT", "sub1", {"id": "e1"}]),
            json.dumps(["EOSE", "sub1"]),
        ])

        messages = await collect(client)

        client.ws.send.assert_awaited_once_with(json.dumps(["REQ", "sub1", {"kinds": [1301]}]))
        assert [m.type for m in messages] == ["EVENT", "EOSE"]
        assert messages[0].event == {"id": "e1"}

    @pytest.mark.asyncio
    async def test_ignores_other_subscriptions_and_garbage(self):
        client = connected_client([
            "not json",
            json.dumps({"unexpected": "object"}),
            json.dumps(["EVENT", "other", {"id": "e0"}]),
            json.dumps(["NOTICE", "rate limited"]),
            json.dumps(["EVENT", "sub1", {"id": "e1"}]),
        ])

        messages = await collect(client)

        assert [m.event for m in messages] == [{"id": "e1"}]

    @pytest.mark.asyncio
    async def test_closed_ends_subscription(self):
        client = connected_client([
            json.dumps(["CLOSED", "sub1", "auth-required"]),
            json.dumps(["EVENT", "sub1", {"id": "late"}]),
        ])

        assert await collect(client) == []

    @pytest.mark.asyncio
    async def test_subscribe_without_connection_raises(self):
        client = WebsocketRelayClient("wss://relay.example")
        with pytest.raises(RelayConnectionError):
            await collect(client)


class TestConnectAndClose:

    @pytest.mark.asyncio
    async def test_connect_failure_raises_relay_error(self):
        with patch("attestboard.services.relay_client.websockets.connect", AsyncMock(side_effect=OSError("refused"))):
            client = WebsocketRelayClient("wss://relay.example")
            with pytest.raises(RelayConnectionError) as exc_info:
                await client.connect()
        assert exc_info.value.relay_url == "wss://relay.example"

    @pytest.mark.asyncio
    async def test_close_sends_close_once(self):
        client = connected_client([json.dumps(["EOSE", "sub1"])])
        await collect(client)

        await client.close()
        await client.close()

        client.ws.send.assert_any_await(json.dumps(["CLOSE", "sub1"]))
        assert client.ws.send.await_count == 2
        client.ws.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_close_without_connection(self):
        client = WebsocketRelayClient("wss://relay.example")
        await client.close()
        assert client.ws is None

    @pytest.mark.asyncio
    async def test_dropped_connection_ends_subscription(self):
        client = connected_client([json.dumps(["EVENT", "sub1", {"id": "e1"}])])
        frames = client.ws._iterate

        async def dropping():
            async for frame in frames():
                yield frame
            raise ConnectionClosed(None, None)

        client.ws._iterate = dropping

        messages = await collect(client)

        assert [m.event for m in messages] == [{"id": "e1"}]
        assert isinstance(ConnectionClosed(None, None), WebSocketException)
