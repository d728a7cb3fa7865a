"""
Transaction normalizer — raw Solana payloads to ObservedTransaction.

Responsibilities:
- Convert getTransaction results (polling) and transactionNotification
  messages (push feed) into the one ObservedTransaction shape.
- Provide a stable schema downstream regardless of RPC/feed response shape.
- Raise DecodeError for malformed payloads so sources can log and skip them.
"""

from __future__ import annotations

from typing import Any

from curve_mirror.core.exceptions import DecodeError
from curve_mirror.solana_listener.models import ObservedTransaction, SourceKind


def _log_lines(meta: dict[str, Any]) -> tuple[str, ...]:
    logs = meta.get("logMessages")
    if logs is None:
        return ()
    if not isinstance(logs, list):
        raise DecodeError("logMessages is not a list")
    return tuple(str(line) for line in logs)


def _first_signature(transaction: Any) -> str | None:
    """transaction.signatures[0] for json / jsonParsed encodings."""
    if isinstance(transaction, dict):
        sigs = transaction.get("signatures") or []
        if sigs and isinstance(sigs[0], str):
            return sigs[0]
    return None


def from_rpc_transaction(signature: str, result: dict[str, Any]) -> ObservedTransaction:
    """Normalize a getTransaction result (json encoding)."""
    if not isinstance(result, dict):
        raise DecodeError(f"getTransaction result for {signature} is not an object")
    meta = result.get("meta")
    if not isinstance(meta, dict):
        raise DecodeError(f"transaction {signature} has no meta")
    slot = result.get("slot")
    if slot is None:
        raise DecodeError(f"transaction {signature} has no slot")
    return ObservedTransaction(
        signature=signature,
        slot=int(slot),
        success=meta.get("err") is None,
        log_lines=_log_lines(meta),
        block_time=result.get("blockTime"),
        source=SourceKind.POLL,
    )


def from_stream_notification(message: dict[str, Any]) -> ObservedTransaction | None:
    """
    Normalize one transactionNotification. Returns None for messages that are
    not notifications (subscription acks, pings).
    """
    if message.get("method") != "transactionNotification":
        return None
    params = message.get("params")
    if not isinstance(params, dict):
        raise DecodeError("transactionNotification without params")
    result = params.get("result")
    if not isinstance(result, dict):
        raise DecodeError("transactionNotification without result")
    envelope = result.get("transaction")
    if not isinstance(envelope, dict):
        raise DecodeError("transactionNotification without transaction")
    meta = envelope.get("meta")
    if not isinstance(meta, dict):
        raise DecodeError("transactionNotification without meta")
    signature = result.get("signature") or _first_signature(envelope.get("transaction"))
    if not signature:
        raise DecodeError("transactionNotification without signature")
    slot = result.get("slot", envelope.get("slot"))
    if slot is None:
        raise DecodeError(f"transactionNotification {signature} without slot")
    return ObservedTransaction(
        signature=str(signature),
        slot=int(slot),
        success=meta.get("err") is None,
        log_lines=_log_lines(meta),
        block_time=envelope.get("blockTime"),
        source=SourceKind.STREAM,
    )
