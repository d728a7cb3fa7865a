"""
Tests for the websocket transaction source: subscription, decode-skip,
reconnect and shutdown. The websocket is replaced by an in-memory fake.
"""

from __future__ import annotations

import asyncio
import json

from websockets.exceptions import ConnectionClosedError, ConnectionClosedOK

from conftest import TARGET_WALLET, trade_logs
from curve_mirror.ingestion.solana_stream import StreamingTransactionSource, build_subscribe_request
from curve_mirror.pump.codec import InstructionKind


def _notification(sig, slot=10):
    return json.dumps(
        {
            "jsonrpc": "2.0",
            "method": "transactionNotification",
            "params": {
                "subscription": 42,
                "result": {
                    "signature": sig,
                    "slot": slot,
                    "transaction": {
                        "transaction": {"signatures": [sig]},
                        "meta": {"err": None, "logMessages": trade_logs(InstructionKind.BUY)},
                    },
                },
            },
        }
    )


class FakeWebSocket:
    def __init__(self, messages, ack=None, drop=False):
        self.sent = []
        self.closed = False
        self._ack = json.dumps(ack if ack is not None else {"jsonrpc": "2.0", "id": 1, "result": 42})
        self._incoming = list(messages)
        self._drop = drop

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        self.closed = True

    async def send(self, data):
        self.sent.append(json.loads(data))

    async def recv(self):
        return self._ack

    async def close(self):
        self.closed = True

    def __aiter__(self):
        return self

    async def __anext__(self):
        if self.closed:
            raise ConnectionClosedOK(None, None)
        if self._incoming:
            return self._incoming.pop(0)
        if self._drop:
            raise ConnectionClosedError(None, None)
        # idle until closed
        while not self.closed:
            await asyncio.sleep(0.005)
        raise ConnectionClosedOK(None, None)


class FakeConnect:
    def __init__(self, sockets):
        self.sockets = list(sockets)
        self.calls = []

    def __call__(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if not self.sockets:
            raise OSError("no more sockets")
        return self.sockets.pop(0)


def _source(connect, **kwargs):
    return StreamingTransactionSource(
        "wss://feed.example/ws",
        TARGET_WALLET,
        token="secret-token",
        reconnect_delay_sec=0.01,
        connect=connect,
        **kwargs,
    )


async def _collect(source, count):
    seen = []
    async for tx in source.transactions():
        seen.append(tx)
        if len(seen) >= count:
            await source.stop()
    return seen


def test_subscribe_request_filters_target_and_excludes_votes_and_failures():
    req = build_subscribe_request(TARGET_WALLET, 3)
    assert req["method"] == "transactionSubscribe"
    assert req["id"] == 3
    filters, options = req["params"]
    assert filters == {"vote": False, "failed": False, "accountInclude": [TARGET_WALLET]}
    assert options["commitment"] == "confirmed"


def test_token_sent_as_header_and_subscription_sent_once():
    ws = FakeWebSocket([_notification("sig1")])
    connect = FakeConnect([ws])
    seen = asyncio.run(asyncio.wait_for(_collect(_source(connect), 1), timeout=5))
    assert [t.signature for t in seen] == ["sig1"]
    url, kwargs = connect.calls[0]
    assert url == "wss://feed.example/ws"
    assert kwargs["additional_headers"] == {"x-token": "secret-token"}
    assert len(ws.sent) == 1
    assert ws.sent[0]["params"][0]["accountInclude"] == [TARGET_WALLET]


def test_undecodable_messages_are_skipped():
    ws = FakeWebSocket(["not json", json.dumps([1, 2]), json.dumps({"method": "transactionNotification"}), _notification("ok")])
    seen = asyncio.run(asyncio.wait_for(_collect(_source(FakeConnect([ws])), 1), timeout=5))
    assert [t.signature for t in seen] == ["ok"]


def test_reconnects_and_resubscribes_after_drop():
    first = FakeWebSocket([_notification("a")], drop=True)
    second = FakeWebSocket([_notification("b")])
    connect = FakeConnect([first, second])
    source = _source(connect)
    seen = asyncio.run(asyncio.wait_for(_collect(source, 2), timeout=5))
    assert [t.signature for t in seen] == ["a", "b"]
    assert len(connect.calls) == 2
    assert len(first.sent) == 1 and len(second.sent) == 1
    assert source.run_id == 2


def test_rejected_subscription_triggers_reconnect():
    rejected = FakeWebSocket([], ack={"jsonrpc": "2.0", "id": 1, "error": {"code": -32602, "message": "bad"}})
    good = FakeWebSocket([_notification("c")])
    connect = FakeConnect([rejected, good])
    seen = asyncio.run(asyncio.wait_for(_collect(_source(connect), 1), timeout=5))
    assert [t.signature for t in seen] == ["c"]
    assert len(connect.calls) == 2


def test_stop_closes_socket():
    ws = FakeWebSocket([_notification("a")])
    source = _source(FakeConnect([ws]))
    asyncio.run(asyncio.wait_for(_collect(source, 1), timeout=5))
    assert ws.closed is True
