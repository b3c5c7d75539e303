"""Unit tests for AccountSubscriptionClient with a fake websocket connection."""
import asyncio
import json

import pytest
import websockets

from solana_watcher import websocket_client
from solana_watcher.cancellation import CancellationToken
from solana_watcher.errors import MalformedAddressError, SubscriptionError, TransportError, WatchCancelledError
from solana_watcher.websocket_client import AccountSubscriptionClient
from tests.helpers import flush


class FakeWebsocket:
    def __init__(self):
        self.sent = []
        self.incoming: asyncio.Queue = asyncio.Queue()
        self.closed = False

    async def send(self, message: str) -> None:
        self.sent.append(json.loads(message))

    async def recv(self):
        item = await self.incoming.get()
        if isinstance(item, BaseException):
            raise item
        return item

    async def close(self) -> None:
        self.closed = True

    def push(self, message) -> None:
        self.incoming.put_nowait(json.dumps(message) if isinstance(message, dict) else message)


def _notification(subscription: int, slot: int, lamports: int) -> dict:
    return {
        "jsonrpc": "2.0",
        "method": "accountNotification",
        "params": {
            "result": {
                "context": {"slot": slot},
                "value": {
                    "data": ["", "base64"],
                    "executable": False,
                    "lamports": lamports,
                    "owner": "11111111111111111111111111111111",
                    "rentEpoch": 18446744073709551615,
                    "space": 0,
                },
            },
            "subscription": subscription,
        },
    }


@pytest.fixture
def fake_websocket(monkeypatch) -> FakeWebsocket:
    websocket = FakeWebsocket()

    async def fake_connect(url, **kwargs):
        return websocket

    monkeypatch.setattr(websocket_client.websockets, "connect", fake_connect)
    return websocket


async def _collect(iterator, count: int):
    items = []
    async for item in iterator:
        items.append(item)
        if len(items) == count:
            break
    return items


class TestAccountNotifications:
    async def test_subscribes_and_yields_matching_notifications(self, fake_websocket, address) -> None:
        client = AccountSubscriptionClient("ws://localhost:8900")
        fake_websocket.push({"jsonrpc": "2.0", "result": 42, "id": 1})
        fake_websocket.push("not json")
        fake_websocket.push(_notification(subscription=7, slot=10, lamports=1))
        fake_websocket.push(_notification(subscription=42, slot=11, lamports=5000))
        fake_websocket.push(_notification(subscription=42, slot=12, lamports=6000))

        stream = client.account_notifications(address)
        items = await _collect(stream, 2)
        await stream.aclose()

        request = fake_websocket.sent[0]
        assert request["method"] == "accountSubscribe"
        assert request["params"] == [address, {"encoding": "base64", "commitment": "confirmed"}]
        assert [(n.slot, n.lamports) for n in items] == [(11, 5000), (12, 6000)]
        assert all(n.subscription == 42 for n in items)
        assert fake_websocket.closed

    async def test_invalid_params_ack_is_malformed_address(self, fake_websocket, address) -> None:
        client = AccountSubscriptionClient("ws://localhost:8900")
        fake_websocket.push({"jsonrpc": "2.0", "error": {"code": -32602, "message": "Invalid param"}, "id": 1})

        with pytest.raises(MalformedAddressError):
            await _collect(client.account_notifications(address), 1)
        assert fake_websocket.closed

    async def test_other_error_ack_is_subscription_error(self, fake_websocket, address) -> None:
        client = AccountSubscriptionClient("ws://localhost:8900")
        fake_websocket.push({"jsonrpc": "2.0", "error": {"code": -32000, "message": "too many subscriptions"}, "id": 1})

        with pytest.raises(SubscriptionError):
            await _collect(client.account_notifications(address), 1)

    async def test_connection_closed_is_subscription_error(self, fake_websocket, address) -> None:
        client = AccountSubscriptionClient("ws://localhost:8900")
        fake_websocket.push({"jsonrpc": "2.0", "result": 1, "id": 1})
        fake_websocket.incoming.put_nowait(websockets.exceptions.ConnectionClosedError(None, None))

        with pytest.raises(SubscriptionError) as exc:
            await _collect(client.account_notifications(address), 1)
        assert isinstance(exc.value, TransportError)

    async def test_abort_stops_stream_and_closes_socket(self, fake_websocket, address) -> None:
        client = AccountSubscriptionClient("ws://localhost:8900")
        token = CancellationToken()
        fake_websocket.push({"jsonrpc": "2.0", "result": 3, "id": 1})

        consumer = asyncio.ensure_future(_collect(client.account_notifications(address, abort_signal=token), 1))
        await flush()
        token.cancel()

        with pytest.raises(WatchCancelledError):
            await consumer
        assert fake_websocket.closed

    async def test_cancel_during_handshake_closes_opened_socket(self, monkeypatch, address) -> None:
        websocket = FakeWebsocket()
        token = CancellationToken()

        async def connect_then_cancel(url, **kwargs):
            token.cancel()
            return websocket

        monkeypatch.setattr(websocket_client.websockets, "connect", connect_then_cancel)
        client = AccountSubscriptionClient("ws://localhost:8900")

        with pytest.raises(WatchCancelledError):
            await _collect(client.account_notifications(address, abort_signal=token), 1)
        assert websocket.closed
        assert websocket.sent == []

    async def test_malformed_address_fails_before_connecting(self, fake_websocket) -> None:
        client = AccountSubscriptionClient("ws://localhost:8900")

        with pytest.raises(MalformedAddressError):
            await _collect(client.account_notifications("invalid"), 1)
        assert fake_websocket.sent == []

    async def test_connection_refused_is_transport_error(self, monkeypatch, address) -> None:
        async def refuse(url, **kwargs):
            raise ConnectionRefusedError("refused")

        monkeypatch.setattr(websocket_client.websockets, "connect", refuse)
        client = AccountSubscriptionClient("ws://localhost:8900")

        with pytest.raises(TransportError):
            await _collect(client.account_notifications(address), 1)
