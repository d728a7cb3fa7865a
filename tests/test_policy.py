"""
Tests for copy-trade sizing.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from conftest import curve_layout
from curve_mirror.agent_worker.policy import CopyPolicy
from curve_mirror.core.exceptions import NothingToSell
from curve_mirror.pump.accounts import encode_bonding_curve
from curve_mirror.pump.addresses import derive_market_addresses
from curve_mirror.pump.constants import LAMPORTS_PER_SOL
from curve_mirror.pump.market_state import parse_market_state
from curve_mirror.solana_listener.models import TradeDirection


def _state(mint, **kwargs):
    return parse_market_state(derive_market_addresses(mint), encode_bonding_curve(curve_layout(**kwargs)), None)


def test_half_of_ten_sol_reserves(mint):
    """10 SOL virtual reserves at ratio 0.5 -> 5 SOL buy."""
    state = _state(mint, virtual_sol_reserves=10 * LAMPORTS_PER_SOL)
    assert CopyPolicy(Decimal("0.5")).buy_amount(state) == 5_000_000_000


def test_rounding_is_half_up(mint):
    policy = CopyPolicy(Decimal("0.5"))
    assert policy.buy_amount(_state(mint, virtual_sol_reserves=3)) == 2
    assert policy.buy_amount(_state(mint, virtual_sol_reserves=1)) == 1
    assert policy.sell_amount(mint, 7) == 4


@pytest.mark.parametrize("ratio", ["0", "0.1", "0.333", "1"])
@pytest.mark.parametrize("reserves", [0, 1, 999, 10 * LAMPORTS_PER_SOL])
def test_buy_amount_stays_within_reserves(mint, ratio, reserves):
    amount = CopyPolicy(Decimal(ratio)).buy_amount(_state(mint, virtual_sol_reserves=reserves))
    assert 0 <= amount <= reserves


def test_zero_balance_sell_is_nothing_to_sell(mint):
    with pytest.raises(NothingToSell):
        CopyPolicy().sell_amount(mint, 0)


def test_amount_for_dispatches_on_direction(mint):
    policy = CopyPolicy(Decimal("0.25"))
    state = _state(mint, virtual_sol_reserves=400)
    assert policy.amount_for(TradeDirection.BUY, state) == 100
    assert policy.amount_for(TradeDirection.SELL, state, own_token_balance=1_000) == 250


@pytest.mark.parametrize("ratio", ["-0.1", "1.01", "NaN"])
def test_ratio_out_of_range_rejected(ratio):
    with pytest.raises(ValueError):
        CopyPolicy(Decimal(ratio))


def test_ratio_accepts_float():
    assert CopyPolicy(0.5).ratio == Decimal("0.5")
