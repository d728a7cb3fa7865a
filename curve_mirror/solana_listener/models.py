"""
Data models for transaction sources and the trade extractor.

Responsibilities:
- SignatureInfo: one getSignaturesForAddress item.
- ObservedTransaction: the normalized unit both sources (polling, push) emit.
- DetectedTrade / ExtractionSkip: what the extractor makes of one transaction.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from solders.pubkey import Pubkey


@dataclass(frozen=True)
class SignatureInfo:
    """
    Normalized transaction signature info from getSignaturesForAddress.

    Mirrors Solana RPC response fields; the polling source lists these and
    fetches the full transaction for each new one.
    """

    signature: str
    slot: int
    err: Any  # None if success; dict/object from RPC if failed
    block_time: int | None  # Unix timestamp; None if not available
    memo: str | None
    confirmation_status: str | None  # processed | confirmed | finalized

    @property
    def succeeded(self) -> bool:
        return self.err is None

    @classmethod
    def from_rpc_item(cls, item: dict[str, Any]) -> "SignatureInfo":
        """Build from a single getSignaturesForAddress result item."""
        return cls(
            signature=item["signature"],
            slot=int(item["slot"]),
            err=item.get("err"),
            block_time=item.get("blockTime"),
            memo=item.get("memo"),
            confirmation_status=item.get("confirmationStatus"),
        )


class SourceKind(str, Enum):
    POLL = "poll"
    STREAM = "stream"


@dataclass(frozen=True)
class ObservedTransaction:
    """A confirmed transaction of the target wallet, as seen by a source."""

    signature: str
    slot: int
    success: bool
    log_lines: tuple[str, ...]
    block_time: int | None = None
    source: SourceKind = SourceKind.POLL

    def short_signature(self) -> str:
        return self.signature[:16] + "..." if len(self.signature) > 16 else self.signature


class TradeDirection(str, Enum):
    BUY = "buy"
    SELL = "sell"


@dataclass(frozen=True)
class DetectedTrade:
    """A target-wallet bonding-curve trade recovered from transaction logs."""

    mint: Pubkey
    direction: TradeDirection
    raw_amount: int | None
    signature: str
    slot: int


class SkipReason(str, Enum):
    FAILED_TRANSACTION = "failed_transaction"
    NOT_RELEVANT = "not_relevant"
    EXTRACTION_FAILED = "extraction_failed"


@dataclass(frozen=True)
class ExtractionSkip:
    """Why a transaction produced no trade. EXTRACTION_FAILED is a hard failure."""

    reason: SkipReason
    signature: str
    detail: str = ""
    direction_hint: TradeDirection | None = None
