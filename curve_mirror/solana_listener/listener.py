"""
Polling transaction source for the target wallet.

Responsibilities:
- Every poll_interval_sec: list the newest signatures (bounded window), keep
  those newer than the cursor, fetch each one's transaction, emit
  ObservedTransaction oldest-first, advance the cursor.
- Retry the listing call on transient RPC errors; skip a transaction whose
  fetch or decode fails without ending the stream.
- Graceful shutdown via stop().

Known gap: when the target signs more than signatures_window transactions
within one interval, the older ones never appear in a listing and are missed.
"""

from __future__ import annotations

import asyncio
from collections import deque
from enum import Enum
from typing import Any, AsyncIterator

from curve_mirror.core.exceptions import DecodeError, MirrorError, TransactionNotAvailable
from curve_mirror.core.retry import retry_async
from curve_mirror.mirror_logging import get_logger
from curve_mirror.solana_listener.models import ObservedTransaction, SignatureInfo, SourceKind
from curve_mirror.solana_listener.normalizer import from_rpc_transaction
from curve_mirror.solana_listener.source import TransactionSource

logger = get_logger(__name__)

DEFAULT_POLL_INTERVAL_SEC = 2.0
DEFAULT_SIGNATURES_WINDOW = 5
DEFAULT_LIST_ATTEMPTS = 3
DEFAULT_LIST_RETRY_DELAY_SEC = 1.0
DEFAULT_FETCH_ATTEMPTS = 3
DEFAULT_FETCH_RETRY_DELAY_SEC = 0.5
DEFAULT_MAX_SEEN_SIGNATURES = 10_000


class PollState(str, Enum):
    IDLE = "idle"
    LISTING = "listing"
    FETCHING = "fetching"


class PollingTransactionSource(TransactionSource):
    """
    Polling-based source: getSignaturesForAddress + getTransaction per new
    signature. The cursor (last_seen_signature) and a bounded seen-set live
    in memory only; a restart re-detects the current window.
    """

    name = "poll"

    def __init__(
        self,
        rpc: Any,
        target_wallet: str,
        *,
        poll_interval_sec: float = DEFAULT_POLL_INTERVAL_SEC,
        signatures_window: int = DEFAULT_SIGNATURES_WINDOW,
        list_attempts: int = DEFAULT_LIST_ATTEMPTS,
        list_retry_delay_sec: float = DEFAULT_LIST_RETRY_DELAY_SEC,
        fetch_attempts: int = DEFAULT_FETCH_ATTEMPTS,
        fetch_retry_delay_sec: float = DEFAULT_FETCH_RETRY_DELAY_SEC,
        max_seen_signatures: int = DEFAULT_MAX_SEEN_SIGNATURES,
    ) -> None:
        """
        Args:
            rpc: SolanaRpcClient (or anything with get_signatures_for_address / get_transaction).
            target_wallet: Base58 address whose transactions are mirrored.
            poll_interval_sec: Seconds between ticks.
            signatures_window: Signatures listed per tick (1–1000).
            list_attempts / list_retry_delay_sec: Bounded retry for the listing call.
            fetch_attempts / fetch_retry_delay_sec: Bounded retry per getTransaction
                (a just-listed transaction may not be served by the node yet).
            max_seen_signatures: Max signatures kept in memory for dedup.
        """
        if not target_wallet.strip():
            raise ValueError("target_wallet must be non-empty")
        if poll_interval_sec <= 0:
            raise ValueError("poll_interval_sec must be positive")
        if not (1 <= signatures_window <= 1000):
            raise ValueError("signatures_window must be between 1 and 1000")

        self._rpc = rpc
        self._target = target_wallet.strip()
        self._poll_interval_sec = poll_interval_sec
        self._window = signatures_window
        self._list_attempts = list_attempts
        self._list_retry_delay = list_retry_delay_sec
        self._fetch_attempts = fetch_attempts
        self._fetch_retry_delay = fetch_retry_delay_sec
        self._max_seen = max_seen_signatures

        self.last_seen_signature: str | None = None
        self.state = PollState.IDLE
        self._seen: set[str] = set()
        self._seen_order: deque[str] = deque()
        self._stop_event = asyncio.Event()

    async def stop(self) -> None:
        """Request shutdown; the poll loop exits after the current tick."""
        self._stop_event.set()

    async def transactions(self) -> AsyncIterator[ObservedTransaction]:
        logger.info(
            "listener_started",
            target_wallet=self._target,
            poll_interval_sec=self._poll_interval_sec,
            signatures_window=self._window,
        )
        while not self._stop_event.is_set():
            batch = await self.poll_once()
            for tx in batch:
                if self._stop_event.is_set():
                    break
                yield tx
            if self._stop_event.is_set():
                break
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._poll_interval_sec)
            except asyncio.TimeoutError:
                pass
        logger.info("listener_poll_loop_exited", last_seen_signature=self.last_seen_signature)

    def _mark_seen(self, sig: str) -> None:
        """Mark signature as seen; evict oldest if over capacity."""
        if sig in self._seen:
            return
        if len(self._seen) >= self._max_seen:
            oldest = self._seen_order.popleft()
            self._seen.discard(oldest)
        self._seen.add(sig)
        self._seen_order.append(sig)

    def new_signatures(self, listed: list[SignatureInfo]) -> list[SignatureInfo]:
        """
        Signatures newer than the cursor, oldest first. listed is newest-first
        (RPC order); walking stops at the cursor.
        """
        fresh: list[SignatureInfo] = []
        for info in listed:
            if info.signature == self.last_seen_signature:
                break
            if info.signature in self._seen:
                continue
            fresh.append(info)
        fresh.reverse()
        return fresh

    async def poll_once(self) -> list[ObservedTransaction]:
        """One tick: Idle -> Listing -> Fetching -> Idle."""
        self.state = PollState.LISTING
        try:
            listed = await retry_async(
                lambda: self._rpc.get_signatures_for_address(self._target, self._window),
                max_attempts=self._list_attempts,
                delay_sec=self._list_retry_delay,
                label="get_signatures_for_address",
            )
        except MirrorError as e:
            logger.error("listener_rpc_give_up", target_wallet=self._target, error=str(e))
            self.state = PollState.IDLE
            return []

        fresh = self.new_signatures(listed)
        if listed:
            self.last_seen_signature = listed[0].signature
        if not fresh:
            self.state = PollState.IDLE
            return []

        logger.info(
            "listener_new_signatures",
            target_wallet=self._target,
            signature_count=len(fresh),
            oldest_slot=fresh[0].slot,
        )
        self.state = PollState.FETCHING
        out: list[ObservedTransaction] = []
        for info in fresh:
            self._mark_seen(info.signature)
            if not info.succeeded:
                out.append(
                    ObservedTransaction(
                        signature=info.signature,
                        slot=info.slot,
                        success=False,
                        log_lines=(),
                        block_time=info.block_time,
                        source=SourceKind.POLL,
                    )
                )
                continue
            tx = await self._fetch(info)
            if tx is not None:
                out.append(tx)
        self.state = PollState.IDLE
        return out

    async def _fetch(self, info: SignatureInfo) -> ObservedTransaction | None:
        sig = info.signature

        async def _get() -> dict[str, Any]:
            result = await self._rpc.get_transaction(sig)
            if result is None:
                raise TransactionNotAvailable(sig)
            return result

        try:
            result = await retry_async(
                _get,
                max_attempts=self._fetch_attempts,
                delay_sec=self._fetch_retry_delay,
                label="get_transaction",
            )
            return from_rpc_transaction(sig, result)
        except (DecodeError, ValueError, TypeError) as e:
            logger.warning("listener_tx_decode_failed", signature=sig, error=str(e))
        except MirrorError as e:
            logger.warning("listener_tx_fetch_failed", signature=sig, error=str(e))
        return None

