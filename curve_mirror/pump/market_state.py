"""
Bonding-curve market state: typed snapshot, reader and quotes.

The reader fetches the bonding curve and its holding account in a single
getMultipleAccounts call, decodes the curve, and checks the holding account's
mint against the requested mint. Transient read failures are retried with a
fixed backoff; AccountNotFound / DecodeError / MintMismatch surface at once.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from solders.pubkey import Pubkey

from curve_mirror.core.exceptions import AccountNotFound, MintMismatch
from curve_mirror.core.retry import retry_async
from curve_mirror.mirror_logging import get_logger
from curve_mirror.pump.accounts import decode_bonding_curve, decode_token_account
from curve_mirror.pump.addresses import MarketAddresses, derive_market_addresses
from curve_mirror.pump.constants import BPS_DENOMINATOR, PUMP_FEE_BPS, PUMP_PROGRAM_ID

logger = get_logger(__name__)

DEFAULT_READ_ATTEMPTS = 3
DEFAULT_READ_RETRY_DELAY_SEC = 0.5


@dataclass(frozen=True)
class MarketState:
    """
    Point-in-time snapshot of one bonding curve. Token reserves are the base
    side, SOL reserves (lamports) the quote side.
    """

    mint: Pubkey
    bonding_curve: Pubkey
    associated_bonding_curve: Pubkey
    virtual_token_reserves: int
    virtual_sol_reserves: int
    real_token_reserves: int
    real_sol_reserves: int
    token_total_supply: int
    complete: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "mint": str(self.mint),
            "bonding_curve": str(self.bonding_curve),
            "virtual_token_reserves": self.virtual_token_reserves,
            "virtual_sol_reserves": self.virtual_sol_reserves,
            "real_token_reserves": self.real_token_reserves,
            "real_sol_reserves": self.real_sol_reserves,
            "token_total_supply": self.token_total_supply,
            "complete": self.complete,
        }


def parse_market_state(
    addresses: MarketAddresses,
    curve_data: bytes | None,
    holding_data: bytes | None,
) -> MarketState:
    """Decode raw curve + holding account bytes for the given market addresses."""
    if curve_data is None:
        raise AccountNotFound(str(addresses.bonding_curve), "bonding curve")
    layout = decode_bonding_curve(curve_data)
    if holding_data is not None:
        holding = decode_token_account(holding_data)
        if holding.mint != addresses.mint:
            raise MintMismatch(str(addresses.mint), str(holding.mint))
    return MarketState(
        mint=addresses.mint,
        bonding_curve=addresses.bonding_curve,
        associated_bonding_curve=addresses.associated_bonding_curve,
        virtual_token_reserves=layout.virtual_token_reserves,
        virtual_sol_reserves=layout.virtual_sol_reserves,
        real_token_reserves=layout.real_token_reserves,
        real_sol_reserves=layout.real_sol_reserves,
        token_total_supply=layout.token_total_supply,
        complete=layout.complete,
    )


class MarketStateReader:
    """Fetch and decode the bonding curve for a mint."""

    def __init__(
        self,
        rpc: Any,
        *,
        program_id: Pubkey = PUMP_PROGRAM_ID,
        max_attempts: int = DEFAULT_READ_ATTEMPTS,
        retry_delay_sec: float = DEFAULT_READ_RETRY_DELAY_SEC,
    ) -> None:
        self._rpc = rpc
        self._program_id = program_id
        self._max_attempts = max_attempts
        self._retry_delay_sec = retry_delay_sec

    async def read(self, mint: Pubkey) -> MarketState:
        addresses = derive_market_addresses(mint, self._program_id)
        curve_data, holding_data = await retry_async(
            lambda: self._rpc.get_multiple_account_data(
                [addresses.bonding_curve, addresses.associated_bonding_curve]
            ),
            max_attempts=self._max_attempts,
            delay_sec=self._retry_delay_sec,
            label="market_state_read",
        )
        state = parse_market_state(addresses, curve_data, holding_data)
        logger.debug("market_state_read", **state.to_dict())
        return state


def quote_buy(state: MarketState, sol_in: int) -> int:
    """
    Tokens received for sol_in lamports (constant product on virtual reserves,
    after the program fee). Capped at the real token reserves.
    """
    if sol_in <= 0:
        return 0
    net = sol_in * BPS_DENOMINATOR // (BPS_DENOMINATOR + PUMP_FEE_BPS)
    denom = state.virtual_sol_reserves + net
    if denom <= 0:
        return 0
    tokens = state.virtual_token_reserves * net // denom
    return min(tokens, state.real_token_reserves)


def quote_sell(state: MarketState, tokens_in: int) -> int:
    """Lamports received for tokens_in (constant product, after the program fee)."""
    if tokens_in <= 0:
        return 0
    denom = state.virtual_token_reserves + tokens_in
    if denom <= 0:
        return 0
    gross = state.virtual_sol_reserves * tokens_in // denom
    return gross - gross * PUMP_FEE_BPS // BPS_DENOMINATOR
