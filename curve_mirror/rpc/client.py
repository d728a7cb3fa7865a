"""
Async Solana JSON-RPC client over httpx.

Responsibilities:
- Thin wrappers for the calls the agent needs (account bytes, signature
  listing, transaction fetch, blockhash, send, balance, signature status).
- Bounded per-request timeout; client-side rate limiting.
- Map failures onto the error taxonomy: timeouts, transport errors, HTTP
  429/5xx and node-behind RPC codes become TransientRpcError; every other
  JSON-RPC error becomes RpcError.
"""

from __future__ import annotations

import asyncio
import base64
import time
from typing import Any, Sequence

import httpx
from solana.rpc.commitment import Commitment, Confirmed
from solders.hash import Hash
from solders.pubkey import Pubkey

from curve_mirror.core.exceptions import RpcError, TransientRpcError
from curve_mirror.mirror_logging import get_logger
from curve_mirror.solana_listener.models import SignatureInfo

logger = get_logger(__name__)

DEFAULT_REQUEST_TIMEOUT_SEC = 15.0
DEFAULT_RPC_RATE_PER_SEC = 8.0

# Node behind / block or slot not yet available: retrying later can succeed
TRANSIENT_RPC_CODES = frozenset({-32004, -32005, -32007, -32014, -32016})


class _RateLimiter:
    """Simple token-bucket style: min interval between acquires."""

    def __init__(self, rate_per_sec: float) -> None:
        self._interval = 1.0 / rate_per_sec if rate_per_sec > 0 else 0.0
        self._last_acquire = 0.0
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        async with self._lock:
            now = time.monotonic()
            elapsed = now - self._last_acquire
            if elapsed < self._interval:
                await asyncio.sleep(self._interval - elapsed)
            self._last_acquire = time.monotonic()


def _address(value: Pubkey | str) -> str:
    return value if isinstance(value, str) else str(value)


def _decode_account_value(value: Any) -> bytes | None:
    """getAccountInfo/getMultipleAccounts value (base64 encoding) -> raw bytes."""
    if value is None:
        return None
    data = value.get("data") if isinstance(value, dict) else None
    if isinstance(data, list) and data:
        return base64.b64decode(data[0])
    if isinstance(data, str):
        return base64.b64decode(data)
    raise RpcError(f"unexpected account data encoding: {type(data).__name__}")


class SolanaRpcClient:
    """
    JSON-RPC over HTTP for one endpoint. Use as an async context manager or
    call aclose() when done. An httpx.AsyncClient may be injected (tests use
    httpx.MockTransport).
    """

    def __init__(
        self,
        rpc_url: str,
        *,
        request_timeout_sec: float = DEFAULT_REQUEST_TIMEOUT_SEC,
        rpc_rate_per_sec: float = DEFAULT_RPC_RATE_PER_SEC,
        commitment: Commitment = Confirmed,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        if not rpc_url.strip():
            raise ValueError("rpc_url must be non-empty")
        self._rpc_url = rpc_url.strip()
        self._commitment = commitment
        self._client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(request_timeout_sec)
        )
        self._owns_client = http_client is None
        self._rate_limiter = _RateLimiter(rpc_rate_per_sec)
        self._next_rpc_id = 0

    @property
    def rpc_url(self) -> str:
        return self._rpc_url

    async def __aenter__(self) -> "SolanaRpcClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _next_id(self) -> int:
        self._next_rpc_id += 1
        return self._next_rpc_id

    async def call(self, method: str, params: list[Any]) -> Any:
        """Perform one JSON-RPC call and return its "result"; raise on transport or RPC error."""
        body = {"jsonrpc": "2.0", "id": self._next_id(), "method": method, "params": params}
        await self._rate_limiter.acquire()
        try:
            resp = await self._client.post(self._rpc_url, json=body)
        except httpx.TimeoutException as e:
            raise TransientRpcError(f"{method} timed out: {e}") from e
        except httpx.TransportError as e:
            raise TransientRpcError(f"{method} transport error: {e}") from e
        if resp.status_code == 429 or resp.status_code >= 500:
            raise TransientRpcError(f"{method} HTTP {resp.status_code}")
        try:
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPStatusError, ValueError) as e:
            raise RpcError(f"{method} bad response: {e}") from e
        err = data.get("error") if isinstance(data, dict) else None
        if err:
            code = err.get("code") if isinstance(err, dict) else None
            message = err.get("message", str(err)) if isinstance(err, dict) else str(err)
            if code in TRANSIENT_RPC_CODES:
                raise TransientRpcError(f"{method}: {message} (code={code})")
            raise RpcError(f"{method}: {message}", rpc_code=code, data=err.get("data") if isinstance(err, dict) else None)
        if not isinstance(data, dict) or "result" not in data:
            raise RpcError(f"{method}: response has no result")
        return data["result"]

    # --- accounts -------------------------------------------------------------

    async def get_account_data(self, pubkey: Pubkey | str) -> bytes | None:
        """Raw account bytes, or None when the account does not exist."""
        result = await self.call(
            "getAccountInfo",
            [_address(pubkey), {"encoding": "base64", "commitment": self._commitment}],
        )
        return _decode_account_value((result or {}).get("value"))

    async def get_multiple_account_data(self, pubkeys: Sequence[Pubkey | str]) -> list[bytes | None]:
        result = await self.call(
            "getMultipleAccounts",
            [[_address(p) for p in pubkeys], {"encoding": "base64", "commitment": self._commitment}],
        )
        values = (result or {}).get("value") or []
        if len(values) != len(pubkeys):
            raise RpcError(f"getMultipleAccounts returned {len(values)} values for {len(pubkeys)} keys")
        return [_decode_account_value(v) for v in values]

    async def get_balance(self, pubkey: Pubkey | str) -> int:
        """Lamports held by the account."""
        result = await self.call("getBalance", [_address(pubkey), {"commitment": self._commitment}])
        return int((result or {}).get("value") or 0)

    # --- transactions -----------------------------------------------------------

    async def get_signatures_for_address(
        self,
        address: Pubkey | str,
        limit: int,
        before: str | None = None,
    ) -> list[SignatureInfo]:
        """Newest-first signature infos for the address."""
        opts: dict[str, Any] = {"limit": limit, "commitment": self._commitment}
        if before is not None:
            opts["before"] = before
        result = await self.call("getSignaturesForAddress", [_address(address), opts])
        infos: list[SignatureInfo] = []
        for item in result if isinstance(result, list) else []:
            if not isinstance(item, dict) or "signature" not in item:
                continue
            try:
                infos.append(SignatureInfo.from_rpc_item(item))
            except (KeyError, TypeError, ValueError) as e:
                logger.debug("rpc_skip_invalid_signature_item", error=str(e))
        return infos

    async def get_transaction(self, signature: str) -> dict[str, Any] | None:
        """getTransaction (json encoding); None when the node does not have it yet."""
        return await self.call(
            "getTransaction",
            [
                signature,
                {
                    "encoding": "json",
                    "commitment": self._commitment,
                    "maxSupportedTransactionVersion": 0,
                },
            ],
        )

    async def get_latest_blockhash(self) -> Hash:
        result = await self.call("getLatestBlockhash", [{"commitment": self._commitment}])
        value = (result or {}).get("value") or {}
        blockhash = value.get("blockhash")
        if not blockhash:
            raise TransientRpcError("getLatestBlockhash returned no blockhash")
        return Hash.from_string(blockhash)

    async def send_raw_transaction(self, raw: bytes, *, skip_preflight: bool = False) -> str:
        """Submit a signed, serialized transaction; returns its signature."""
        result = await self.call(
            "sendTransaction",
            [
                base64.b64encode(raw).decode("ascii"),
                {
                    "encoding": "base64",
                    "skipPreflight": skip_preflight,
                    "preflightCommitment": self._commitment,
                },
            ],
        )
        if not isinstance(result, str) or not result:
            raise RpcError("sendTransaction returned no signature")
        return result

    async def get_signature_statuses(self, signatures: Sequence[str]) -> list[dict[str, Any] | None]:
        result = await self.call(
            "getSignatureStatuses",
            [list(signatures), {"searchTransactionHistory": False}],
        )
        return list((result or {}).get("value") or [])
