"""
Copy policy — how big the mirrored trade is.

Buy: a fixed fraction of the curve's virtual SOL reserves (lamports).
Sell: the same fraction of the bot's own token balance for the mint.

Arithmetic is exact decimal with half-up rounding, so a ratio in [0, 1]
always gives a result in [0, base].
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from solders.pubkey import Pubkey

from curve_mirror.core.exceptions import NothingToSell
from curve_mirror.pump.market_state import MarketState
from curve_mirror.solana_listener.models import TradeDirection

DEFAULT_COPY_RATIO = Decimal("0.5")


def _scale(base: int, ratio: Decimal) -> int:
    return int((Decimal(base) * ratio).to_integral_value(rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class CopyPolicy:
    """Fixed-ratio sizing for mirrored trades."""

    ratio: Decimal = DEFAULT_COPY_RATIO

    def __post_init__(self) -> None:
        ratio = Decimal(str(self.ratio))
        if not ratio.is_finite() or ratio < 0 or ratio > 1:
            raise ValueError(f"copy ratio must be between 0 and 1, got {self.ratio}")
        object.__setattr__(self, "ratio", ratio)

    def buy_amount(self, state: MarketState) -> int:
        """Lamports to spend mirroring a buy."""
        return _scale(state.virtual_sol_reserves, self.ratio)

    def sell_amount(self, mint: Pubkey, own_token_balance: int) -> int:
        """Raw token units to sell mirroring a sell. Raises NothingToSell on a zero balance."""
        if own_token_balance <= 0:
            raise NothingToSell(str(mint))
        return _scale(own_token_balance, self.ratio)

    def amount_for(
        self,
        direction: TradeDirection,
        state: MarketState,
        own_token_balance: int = 0,
    ) -> int:
        if direction is TradeDirection.BUY:
            return self.buy_amount(state)
        return self.sell_amount(state.mint, own_token_balance)
