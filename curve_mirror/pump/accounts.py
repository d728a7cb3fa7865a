"""
Binary account layouts read by the agent.

BondingCurve (pump program, Anchor account):
    8 discriminator | virtual_token_reserves u64 | virtual_sol_reserves u64 |
    real_token_reserves u64 | real_sol_reserves u64 | token_total_supply u64 |
    complete bool | (newer deployments append creator pubkey; ignored)

SPL token account:
    mint(32) | owner(32) | amount u64 | ...
"""

from __future__ import annotations

import struct
from dataclasses import dataclass

from solders.pubkey import Pubkey

from curve_mirror.core.exceptions import DecodeError
from curve_mirror.pump.constants import BONDING_CURVE_ACCOUNT_DISCRIMINATOR

ACCOUNT_DISCRIMINATOR_LEN = 8
_BONDING_CURVE = struct.Struct("<QQQQQ?")
BONDING_CURVE_MIN_LEN = ACCOUNT_DISCRIMINATOR_LEN + _BONDING_CURVE.size  # 49

_TOKEN_ACCOUNT_AMOUNT = struct.Struct("<Q")
TOKEN_ACCOUNT_MIN_LEN = 32 + 32 + 8  # 72


@dataclass(frozen=True)
class BondingCurveLayout:
    virtual_token_reserves: int
    virtual_sol_reserves: int
    real_token_reserves: int
    real_sol_reserves: int
    token_total_supply: int
    complete: bool


@dataclass(frozen=True)
class TokenAccountLayout:
    mint: Pubkey
    owner: Pubkey
    amount: int


def decode_bonding_curve(data: bytes, *, check_discriminator: bool = True) -> BondingCurveLayout:
    """Skip the 8-byte account discriminator and decode the reserve fields."""
    if data is None or len(data) < BONDING_CURVE_MIN_LEN:
        raise DecodeError(
            f"bonding curve account too short: need {BONDING_CURVE_MIN_LEN} bytes, "
            f"got {0 if data is None else len(data)}"
        )
    if check_discriminator:
        disc = int.from_bytes(data[:ACCOUNT_DISCRIMINATOR_LEN], "little")
        if disc != BONDING_CURVE_ACCOUNT_DISCRIMINATOR:
            raise DecodeError(f"unexpected bonding curve account discriminator {disc}")
    try:
        fields = _BONDING_CURVE.unpack_from(data, ACCOUNT_DISCRIMINATOR_LEN)
    except struct.error as e:
        raise DecodeError(f"bonding curve layout mismatch: {e}") from e
    return BondingCurveLayout(*fields)


def encode_bonding_curve(layout: BondingCurveLayout) -> bytes:
    """Inverse of decode_bonding_curve (fixtures and tooling)."""
    return BONDING_CURVE_ACCOUNT_DISCRIMINATOR.to_bytes(8, "little") + _BONDING_CURVE.pack(
        layout.virtual_token_reserves,
        layout.virtual_sol_reserves,
        layout.real_token_reserves,
        layout.real_sol_reserves,
        layout.token_total_supply,
        layout.complete,
    )


def decode_token_account(data: bytes) -> TokenAccountLayout:
    if data is None or len(data) < TOKEN_ACCOUNT_MIN_LEN:
        raise DecodeError(
            f"token account too short: need {TOKEN_ACCOUNT_MIN_LEN} bytes, "
            f"got {0 if data is None else len(data)}"
        )
    return TokenAccountLayout(
        mint=Pubkey.from_bytes(bytes(data[0:32])),
        owner=Pubkey.from_bytes(bytes(data[32:64])),
        amount=_TOKEN_ACCOUNT_AMOUNT.unpack_from(data, 64)[0],
    )


def encode_token_account(mint: Pubkey, owner: Pubkey, amount: int) -> bytes:
    """Minimal SPL token account bytes (165-byte account, initialized state)."""
    head = bytes(mint) + bytes(owner) + _TOKEN_ACCOUNT_AMOUNT.pack(amount)
    # delegate option(36) | state(1) = initialized | is_native(12) | delegated(8) | close_authority(36)
    tail = bytes(36) + b"\x01" + bytes(12) + bytes(8) + bytes(36)
    return head + tail
