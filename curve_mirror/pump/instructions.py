"""
pump.fun instruction builder.

Builds buy/sell instructions with the account order the deployed program
expects (order and writability are part of the program ABI; any deviation is
rejected on chain), plus the SPL associated-token-account creation
instruction and optional compute-budget (priority fee) instructions.
"""

from __future__ import annotations

from dataclasses import dataclass

from solders.compute_budget import set_compute_unit_limit, set_compute_unit_price
from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey
from spl.token.instructions import create_associated_token_account

from curve_mirror.core.exceptions import ZeroAmount
from curve_mirror.pump import codec
from curve_mirror.pump.addresses import derive_associated_token_account, derive_market_addresses
from curve_mirror.pump.codec import InstructionKind
from curve_mirror.pump.constants import (
    ASSOCIATED_TOKEN_PROGRAM_ID,
    PUMP_EVENT_AUTHORITY,
    PUMP_FEE_RECIPIENT,
    PUMP_GLOBAL,
    PUMP_PROGRAM_ID,
    RENT,
    SYSTEM_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
)
from curve_mirror.solana_listener.models import TradeDirection

_KIND_BY_DIRECTION = {
    TradeDirection.BUY: InstructionKind.BUY,
    TradeDirection.SELL: InstructionKind.SELL,
}


@dataclass(frozen=True)
class TradeInstruction:
    """
    One buy or sell, ready to be placed in a transaction.

    amount: token amount (buy: tokens to receive, sell: tokens to sell).
    limit: slippage bound in lamports (buy: max_sol_cost, sell: min_sol_output).
    """

    direction: TradeDirection
    program_id: Pubkey
    accounts: tuple[AccountMeta, ...]
    discriminator: int
    amount: int
    limit: int

    @property
    def data(self) -> bytes:
        return codec.encode(_KIND_BY_DIRECTION[self.direction], self.amount, self.limit)

    def to_instruction(self) -> Instruction:
        return Instruction(program_id=self.program_id, data=self.data, accounts=list(self.accounts))


class TradeInstructionBuilder:
    """Assemble pump.fun buy/sell instructions for a trader wallet."""

    def __init__(
        self,
        *,
        program_id: Pubkey = PUMP_PROGRAM_ID,
        global_account: Pubkey = PUMP_GLOBAL,
        fee_recipient: Pubkey = PUMP_FEE_RECIPIENT,
        event_authority: Pubkey = PUMP_EVENT_AUTHORITY,
    ) -> None:
        self._program_id = program_id
        self._global = global_account
        self._fee_recipient = fee_recipient
        self._event_authority = event_authority

    @property
    def program_id(self) -> Pubkey:
        return self._program_id

    def build(
        self,
        direction: TradeDirection,
        trader: Pubkey,
        mint: Pubkey,
        amount: int,
        limit: int,
    ) -> TradeInstruction:
        if amount <= 0:
            raise ZeroAmount(f"refusing to build {direction.value} of 0 tokens for {mint}")
        market = derive_market_addresses(mint, self._program_id)
        trader_ata = derive_associated_token_account(trader, mint)

        head = [
            AccountMeta(pubkey=self._global, is_signer=False, is_writable=False),
            AccountMeta(pubkey=self._fee_recipient, is_signer=False, is_writable=True),
            AccountMeta(pubkey=mint, is_signer=False, is_writable=False),
            AccountMeta(pubkey=market.bonding_curve, is_signer=False, is_writable=True),
            AccountMeta(pubkey=market.associated_bonding_curve, is_signer=False, is_writable=True),
            AccountMeta(pubkey=trader_ata, is_signer=False, is_writable=True),
            AccountMeta(pubkey=trader, is_signer=True, is_writable=True),
            AccountMeta(pubkey=SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
        ]
        if direction is TradeDirection.BUY:
            middle = [
                AccountMeta(pubkey=TOKEN_PROGRAM_ID, is_signer=False, is_writable=False),
                AccountMeta(pubkey=RENT, is_signer=False, is_writable=False),
            ]
        else:
            middle = [
                AccountMeta(pubkey=ASSOCIATED_TOKEN_PROGRAM_ID, is_signer=False, is_writable=False),
                AccountMeta(pubkey=TOKEN_PROGRAM_ID, is_signer=False, is_writable=False),
            ]
        tail = [
            AccountMeta(pubkey=self._event_authority, is_signer=False, is_writable=False),
            AccountMeta(pubkey=self._program_id, is_signer=False, is_writable=False),
        ]
        kind = _KIND_BY_DIRECTION[direction]
        return TradeInstruction(
            direction=direction,
            program_id=self._program_id,
            accounts=tuple(head + middle + tail),
            discriminator=kind.discriminator,
            amount=amount,
            limit=limit,
        )


def build_create_token_account(payer: Pubkey, mint: Pubkey) -> Instruction:
    """Create payer's associated token account for mint (payer is also the owner)."""
    return create_associated_token_account(payer, payer, mint)


def priority_fee_instructions(unit_limit: int | None, unit_price: int | None) -> list[Instruction]:
    """Compute-budget instructions; empty when no fee budget is configured."""
    out: list[Instruction] = []
    if unit_limit:
        out.append(set_compute_unit_limit(unit_limit))
    if unit_price:
        out.append(set_compute_unit_price(unit_price))
    return out
