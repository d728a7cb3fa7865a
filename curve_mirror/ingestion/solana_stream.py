"""
Real-time transaction feed: WebSocket transactionSubscribe → normalize → yield.

Connects to an enhanced-websocket feed endpoint (static token sent in the
x-token header), sends one transactionSubscribe request for the target wallet
with vote and failed transactions excluded, and yields an ObservedTransaction
per notification.

Fault tolerance: on any stream error or close the whole connection is torn
down and re-established after a fixed delay, then resubscribed; there is no
partial recovery. Individual messages that fail to decode are logged and
skipped. stop() closes the socket before returning.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, AsyncIterator, Callable

import websockets
from websockets.exceptions import ConnectionClosed, InvalidHandshake

from curve_mirror.core.exceptions import DecodeError
from curve_mirror.mirror_logging import get_logger
from curve_mirror.solana_listener.models import ObservedTransaction
from curve_mirror.solana_listener.normalizer import from_stream_notification
from curve_mirror.solana_listener.source import TransactionSource

logger = get_logger(__name__)

DEFAULT_RECONNECT_DELAY_SEC = 5.0
DEFAULT_WS_PING_INTERVAL = 30.0
DEFAULT_WS_PING_TIMEOUT = 10.0
DEFAULT_SUBSCRIBE_TIMEOUT_SEC = 10.0
_WS_CLOSE_TIMEOUT = 5.0
TOKEN_HEADER = "x-token"


class StreamSubscribeError(Exception):
    """Feed rejected or never acknowledged the subscription."""


def build_subscribe_request(target_wallet: str, request_id: int = 1) -> dict[str, Any]:
    """transactionSubscribe for one account, excluding vote and failed transactions."""
    return {
        "jsonrpc": "2.0",
        "id": request_id,
        "method": "transactionSubscribe",
        "params": [
            {
                "vote": False,
                "failed": False,
                "accountInclude": [target_wallet],
            },
            {
                "commitment": "confirmed",
                "encoding": "jsonParsed",
                "transactionDetails": "full",
                "showRewards": False,
                "maxSupportedTransactionVersion": 0,
            },
        ],
    }


class StreamingTransactionSource(TransactionSource):
    """Push-based source over a long-lived websocket subscription."""

    name = "stream"

    def __init__(
        self,
        stream_url: str,
        target_wallet: str,
        *,
        token: str | None = None,
        reconnect_delay_sec: float = DEFAULT_RECONNECT_DELAY_SEC,
        subscribe_timeout_sec: float = DEFAULT_SUBSCRIBE_TIMEOUT_SEC,
        ws_ping_interval: float | None = DEFAULT_WS_PING_INTERVAL,
        ws_ping_timeout: float | None = DEFAULT_WS_PING_TIMEOUT,
        connect: Callable[..., Any] | None = None,
    ) -> None:
        if not stream_url.strip():
            raise ValueError("stream_url must be non-empty")
        if not target_wallet.strip():
            raise ValueError("target_wallet must be non-empty")
        self._url = stream_url.strip()
        self._target = target_wallet.strip()
        self._token = (token or "").strip() or None
        self._reconnect_delay = reconnect_delay_sec
        self._subscribe_timeout = subscribe_timeout_sec
        self._ping_interval = ws_ping_interval
        self._ping_timeout = ws_ping_timeout
        self._connect = connect or websockets.connect
        self._stop = asyncio.Event()
        self._ws: Any = None
        self._next_rpc_id = 0
        self.run_id = 0

    def _next_id(self) -> int:
        self._next_rpc_id += 1
        return self._next_rpc_id

    def _open(self) -> Any:
        headers = {TOKEN_HEADER: self._token} if self._token else None
        return self._connect(
            self._url,
            additional_headers=headers,
            ping_interval=self._ping_interval,
            ping_timeout=self._ping_timeout,
            close_timeout=_WS_CLOSE_TIMEOUT,
            max_size=None,
        )

    async def stop(self) -> None:
        """Stop delivery; close the socket so a pending receive returns."""
        self._stop.set()
        ws = self._ws
        if ws is not None:
            await ws.close()

    async def transactions(self) -> AsyncIterator[ObservedTransaction]:
        while not self._stop.is_set():
            self.run_id += 1
            try:
                logger.info("stream_connecting", run_id=self.run_id, url=self._url)
                async with self._open() as ws:
                    self._ws = ws
                    await self._subscribe(ws)
                    async for tx in self._receive(ws):
                        yield tx
            except ConnectionClosed as e:
                if self._stop.is_set():
                    break
                logger.warning(
                    "stream_disconnected",
                    run_id=self.run_id,
                    code=getattr(e.rcvd, "code", None),
                    reason=getattr(e.rcvd, "reason", None),
                )
            except (OSError, asyncio.TimeoutError, StreamSubscribeError, InvalidHandshake) as e:
                logger.warning("stream_error", run_id=self.run_id, error=str(e))
            finally:
                self._ws = None

            if self._stop.is_set():
                break
            logger.info(
                "stream_reconnect",
                run_id=self.run_id,
                backoff_sec=self._reconnect_delay,
            )
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self._reconnect_delay)
            except asyncio.TimeoutError:
                pass
        logger.info("stream_stopped", run_id=self.run_id)

    async def _subscribe(self, ws: Any) -> None:
        """Send the subscription and wait for its acknowledgement."""
        req = build_subscribe_request(self._target, self._next_id())
        await ws.send(json.dumps(req))
        raw = await asyncio.wait_for(ws.recv(), timeout=self._subscribe_timeout)
        try:
            msg = json.loads(raw)
        except json.JSONDecodeError as e:
            raise StreamSubscribeError(f"unreadable subscription ack: {e}") from e
        sub_id = msg.get("result") if isinstance(msg, dict) else None
        if sub_id is None:
            error = msg.get("error") if isinstance(msg, dict) else msg
            raise StreamSubscribeError(f"subscription rejected: {error}")
        logger.info(
            "stream_subscribed",
            run_id=self.run_id,
            target_wallet=self._target,
            subscription_id=sub_id,
        )

    async def _receive(self, ws: Any) -> AsyncIterator[ObservedTransaction]:
        """Yield one ObservedTransaction per notification; skip undecodable messages."""
        async for raw in ws:
            if self._stop.is_set():
                return
            try:
                msg = json.loads(raw)
                if not isinstance(msg, dict):
                    raise DecodeError("stream message is not an object")
                tx = from_stream_notification(msg)
            except (json.JSONDecodeError, DecodeError, ValueError, TypeError) as e:
                logger.warning("stream_message_decode_failed", run_id=self.run_id, error=str(e))
                continue
            if tx is None:
                continue
            logger.debug(
                "stream_event",
                run_id=self.run_id,
                signature=tx.short_signature(),
                slot=tx.slot,
            )
            yield tx
