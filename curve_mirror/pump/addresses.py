"""
Deterministic program-owned addresses for a bonding-curve market.

bonding curve            = PDA([b"bonding-curve", mint], pump program)
associated bonding curve = ATA(owner=bonding curve, mint)
"""

from __future__ import annotations

from dataclasses import dataclass

from solders.pubkey import Pubkey

from curve_mirror.core.exceptions import AddressDerivationError
from curve_mirror.pump.constants import (
    ASSOCIATED_TOKEN_PROGRAM_ID,
    BONDING_CURVE_SEED,
    PUMP_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
)


@dataclass(frozen=True)
class MarketAddresses:
    mint: Pubkey
    bonding_curve: Pubkey
    bump: int
    associated_bonding_curve: Pubkey


def derive_bonding_curve(mint: Pubkey, program_id: Pubkey = PUMP_PROGRAM_ID) -> tuple[Pubkey, int]:
    """Return (bonding_curve, bump). Bumps tried 255 -> 0; first off-curve result wins."""
    try:
        return Pubkey.find_program_address([BONDING_CURVE_SEED, bytes(mint)], program_id)
    except ValueError as e:
        raise AddressDerivationError(f"no viable bump for bonding curve of {mint}") from e


def derive_associated_token_account(
    owner: Pubkey,
    mint: Pubkey,
    token_program_id: Pubkey = TOKEN_PROGRAM_ID,
) -> Pubkey:
    """Associated token account of (owner, mint). Seeds: [owner, token_program, mint]."""
    address, _ = Pubkey.find_program_address(
        [bytes(owner), bytes(token_program_id), bytes(mint)],
        ASSOCIATED_TOKEN_PROGRAM_ID,
    )
    return address


def derive_market_addresses(mint: Pubkey, program_id: Pubkey = PUMP_PROGRAM_ID) -> MarketAddresses:
    bonding_curve, bump = derive_bonding_curve(mint, program_id)
    return MarketAddresses(
        mint=mint,
        bonding_curve=bonding_curve,
        bump=bump,
        associated_bonding_curve=derive_associated_token_account(bonding_curve, mint),
    )
