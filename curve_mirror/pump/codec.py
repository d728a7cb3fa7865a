"""
pump.fun instruction codec.

Wire format: 8-byte little-endian discriminator followed by a fixed layout.

- Instruction data (what we submit):  disc(8) | amount u64 | limit u64
- Trade payload (what the target's transaction logs carry in "Program data:"):
  disc(8) | mint(32) | amount u64 | ...   (TradeEvent adds is_buy at byte 56)

Pure functions, no I/O. Unknown discriminators decode to InstructionKind.UNKNOWN;
short buffers raise InstructionLengthError.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import Enum

from solders.pubkey import Pubkey

from curve_mirror.core.exceptions import InstructionLengthError
from curve_mirror.pump.constants import (
    BUY_DISCRIMINATOR,
    SELL_DISCRIMINATOR,
    TRADE_EVENT_DISCRIMINATOR,
)

DISCRIMINATOR_LEN = 8
MINT_OFFSET = DISCRIMINATOR_LEN
MINT_END = MINT_OFFSET + 32  # 40
AMOUNT_END = MINT_END + 8  # 48
# TradeEvent: disc | mint | sol_amount | token_amount | is_buy | user | ...
TRADE_EVENT_IS_BUY_OFFSET = AMOUNT_END + 8  # 56

_U64 = struct.Struct("<Q")
_U64_MAX = 2**64 - 1


class InstructionKind(str, Enum):
    """Closed set of decoded variants; match exhaustively downstream."""

    BUY = "buy"
    SELL = "sell"
    UNKNOWN = "unknown"

    @property
    def discriminator(self) -> int:
        if self is InstructionKind.BUY:
            return BUY_DISCRIMINATOR
        if self is InstructionKind.SELL:
            return SELL_DISCRIMINATOR
        raise ValueError("UNKNOWN has no discriminator")


_KIND_BY_DISCRIMINATOR = {
    BUY_DISCRIMINATOR: InstructionKind.BUY,
    SELL_DISCRIMINATOR: InstructionKind.SELL,
}


@dataclass(frozen=True)
class TradePayload:
    """Direction, mint and amount recovered from a log-embedded payload."""

    kind: InstructionKind
    mint: Pubkey
    amount: int
    discriminator: int


def _check_u64(value: int, name: str) -> int:
    if not (0 <= int(value) <= _U64_MAX):
        raise ValueError(f"{name} must fit in u64, got {value}")
    return int(value)


def _require(data: bytes, needed: int, field: str) -> None:
    if len(data) < needed:
        raise InstructionLengthError(needed, len(data), field)


def read_discriminator(data: bytes) -> int:
    """First 8 bytes as little-endian u64."""
    _require(data, DISCRIMINATOR_LEN, "discriminator")
    return _U64.unpack_from(data, 0)[0]


def kind_for(discriminator: int) -> InstructionKind:
    return _KIND_BY_DISCRIMINATOR.get(discriminator, InstructionKind.UNKNOWN)


def encode(kind: InstructionKind, amount: int, limit: int | None = None) -> bytes:
    """
    Encode instruction data: discriminator | amount (| limit).

    limit is the program's slippage bound (max_sol_cost on buy,
    min_sol_output on sell); the deployed program requires it.
    """
    out = _U64.pack(kind.discriminator) + _U64.pack(_check_u64(amount, "amount"))
    if limit is not None:
        out += _U64.pack(_check_u64(limit, "limit"))
    return out


def decode(data: bytes) -> tuple[InstructionKind, bytes]:
    """Split instruction data into (kind, remaining payload)."""
    disc = read_discriminator(data)
    return kind_for(disc), bytes(data[DISCRIMINATOR_LEN:])


def decode_instruction(data: bytes) -> tuple[InstructionKind, int]:
    """Decode (kind, amount) from instruction data produced by encode()."""
    kind, payload = decode(data)
    _require(data, DISCRIMINATOR_LEN + 8, "amount")
    return kind, _U64.unpack_from(payload, 0)[0]


def decode_limit(data: bytes) -> int | None:
    """Slippage bound of encoded instruction data, or None when absent."""
    if len(data) < DISCRIMINATOR_LEN + 16:
        return None
    return _U64.unpack_from(data, DISCRIMINATOR_LEN + 8)[0]


def decode_trade_payload(data: bytes) -> TradePayload:
    """
    Decode a trade payload taken from a "Program data:" log line.

    Buy/sell instruction payloads carry direction in the discriminator;
    TradeEvent payloads carry it in the is_buy flag. Any other discriminator
    returns kind UNKNOWN with whatever mint/amount bytes are present
    (callers must ignore it).
    """
    disc = read_discriminator(data)
    kind = kind_for(disc)
    if kind is InstructionKind.UNKNOWN and disc != TRADE_EVENT_DISCRIMINATOR:
        return TradePayload(kind=kind, mint=Pubkey.default(), amount=0, discriminator=disc)
    _require(data, MINT_END, "mint")
    mint = Pubkey.from_bytes(bytes(data[MINT_OFFSET:MINT_END]))
    _require(data, AMOUNT_END, "amount")
    amount = _U64.unpack_from(data, MINT_END)[0]
    if disc == TRADE_EVENT_DISCRIMINATOR:
        _require(data, TRADE_EVENT_IS_BUY_OFFSET + 1, "is_buy")
        kind = InstructionKind.BUY if data[TRADE_EVENT_IS_BUY_OFFSET] else InstructionKind.SELL
    return TradePayload(kind=kind, mint=mint, amount=amount, discriminator=disc)


def encode_trade_payload(kind: InstructionKind, mint: Pubkey, amount: int) -> bytes:
    """Inverse of decode_trade_payload for buy/sell payloads (used by fixtures and tooling)."""
    return _U64.pack(kind.discriminator) + bytes(mint) + _U64.pack(_check_u64(amount, "amount"))
