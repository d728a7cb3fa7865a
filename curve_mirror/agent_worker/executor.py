"""
Copy executor — one DetectedTrade in, one mirrored trade (or a reason why not) out.

States per trade: VALIDATING -> ENSURING_ACCOUNT -> BUILDING -> SUBMITTING -> DONE | FAILED.

- Validating: fresh market state, policy amount, balance checks.
- Ensuring account: a buy needs the bot's associated token account; create it
  and wait until it is visible.
- Building: quote, apply the slippage bound, build the pump instruction.
- Submitting: sign once, send (transient failures resend the same bytes).

Trades on the same mint are serialized; a mint's lock is dropped once no
trade holds or waits on it. A source signature is marked handled
before any network call, so an event is never mirrored twice even if the
source re-delivers it.
"""

from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Any

from solders.pubkey import Pubkey

from curve_mirror.agent_worker.policy import CopyPolicy
from curve_mirror.agent_worker.submitter import TransactionSubmitter
from curve_mirror.core.exceptions import (
    AccountNotVisible,
    InsufficientBalance,
    MarketClosed,
    MirrorError,
    PolicyViolation,
    SubmissionFailed,
    ZeroAmount,
)
from curve_mirror.core.retry import retry_async
from curve_mirror.mirror_logging import get_logger
from curve_mirror.pump.accounts import decode_token_account
from curve_mirror.pump.addresses import derive_associated_token_account
from curve_mirror.pump.constants import BPS_DENOMINATOR
from curve_mirror.pump.instructions import TradeInstructionBuilder, build_create_token_account
from curve_mirror.pump.market_state import MarketState, MarketStateReader, quote_buy, quote_sell
from curve_mirror.solana_listener.models import DetectedTrade, TradeDirection

logger = get_logger(__name__)

DEFAULT_SLIPPAGE_BPS = 500
DEFAULT_READ_ATTEMPTS = 3
DEFAULT_READ_RETRY_DELAY_SEC = 0.5
DEFAULT_ACCOUNT_POLL_ATTEMPTS = 10
DEFAULT_ACCOUNT_POLL_DELAY_SEC = 1.0
DEFAULT_MAX_HANDLED_SIGNATURES = 10_000


class ExecutionState(str, Enum):
    VALIDATING = "validating"
    ENSURING_ACCOUNT = "ensuring_account"
    BUILDING = "building"
    SUBMITTING = "submitting"
    DONE = "done"
    FAILED = "failed"


class OutcomeStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class CopyOutcome:
    """
    Result of mirroring one detected trade.

    amount: policy amount (buy: lamports to spend, sell: tokens to sell); None
        when execution stopped before sizing.
    failed_in: state the trade was in when it stopped (None on success).
    """

    trade: DetectedTrade
    status: OutcomeStatus
    amount: int | None = None
    token_amount: int | None = None
    limit: int | None = None
    signature: str | None = None
    error: str | None = None
    error_code: str | None = None
    failed_in: ExecutionState | None = None
    confirmed: bool | None = None


@dataclass
class _Plan:
    """Sizing decided while validating."""

    state: MarketState
    amount: int
    token_amount: int
    limit: int
    trader_ata: Pubkey
    ata_exists: bool


class CopyExecutor:
    """Mirror detected trades from the bot wallet."""

    def __init__(
        self,
        rpc: Any,
        submitter: TransactionSubmitter,
        *,
        policy: CopyPolicy | None = None,
        market_reader: MarketStateReader | None = None,
        builder: TradeInstructionBuilder | None = None,
        slippage_bps: int = DEFAULT_SLIPPAGE_BPS,
        read_attempts: int = DEFAULT_READ_ATTEMPTS,
        read_retry_delay_sec: float = DEFAULT_READ_RETRY_DELAY_SEC,
        account_poll_attempts: int = DEFAULT_ACCOUNT_POLL_ATTEMPTS,
        account_poll_delay_sec: float = DEFAULT_ACCOUNT_POLL_DELAY_SEC,
        max_handled_signatures: int = DEFAULT_MAX_HANDLED_SIGNATURES,
    ) -> None:
        if not (0 <= slippage_bps < BPS_DENOMINATOR):
            raise ValueError("slippage_bps must be in [0, 10000)")
        self._rpc = rpc
        self._submitter = submitter
        self._policy = policy or CopyPolicy()
        self._builder = builder or TradeInstructionBuilder()
        self._market = market_reader or MarketStateReader(rpc, program_id=self._builder.program_id)
        self._slippage_bps = slippage_bps
        self._read_attempts = read_attempts
        self._read_retry_delay = read_retry_delay_sec
        self._account_poll_attempts = account_poll_attempts
        self._account_poll_delay = account_poll_delay_sec
        self._max_handled = max_handled_signatures

        # mint -> (lock, trades holding or waiting on it); dropped when unused
        self._locks: dict[str, tuple[asyncio.Lock, int]] = {}
        self._handled: set[str] = set()
        self._handled_order: deque[str] = deque()

    def already_handled(self, signature: str) -> bool:
        return signature in self._handled

    def _mark_handled(self, signature: str) -> None:
        if signature in self._handled:
            return
        if len(self._handled) >= self._max_handled:
            self._handled.discard(self._handled_order.popleft())
        self._handled.add(signature)
        self._handled_order.append(signature)

    @property
    def active_mints(self) -> int:
        """Mints with a trade running or queued."""
        return len(self._locks)

    def _acquire_lock(self, key: str) -> asyncio.Lock:
        lock, users = self._locks.get(key, (None, 0))
        if lock is None:
            lock = asyncio.Lock()
        self._locks[key] = (lock, users + 1)
        return lock

    def _release_lock(self, key: str) -> None:
        lock, users = self._locks[key]
        if users <= 1:
            del self._locks[key]
        else:
            self._locks[key] = (lock, users - 1)

    async def execute(self, trade: DetectedTrade) -> CopyOutcome:
        if self.already_handled(trade.signature):
            return CopyOutcome(trade, OutcomeStatus.SKIPPED, error="already handled", error_code="duplicate")
        key = str(trade.mint)
        lock = self._acquire_lock(key)
        try:
            async with lock:
                if self.already_handled(trade.signature):
                    return CopyOutcome(trade, OutcomeStatus.SKIPPED, error="already handled", error_code="duplicate")
                self._mark_handled(trade.signature)
                return await self._run(trade)
        finally:
            self._release_lock(key)

    async def _run(self, trade: DetectedTrade) -> CopyOutcome:
        # per call: trades on different mints interleave
        state = ExecutionState.VALIDATING
        plan: _Plan | None = None
        try:
            plan = await self._validate(trade)

            if trade.direction is TradeDirection.BUY and not plan.ata_exists:
                state = ExecutionState.ENSURING_ACCOUNT
                await self._ensure_token_account(trade.mint, plan.trader_ata)

            state = ExecutionState.BUILDING
            ix = self._builder.build(
                trade.direction,
                self._submitter.payer,
                trade.mint,
                plan.token_amount,
                plan.limit,
            )

            state = ExecutionState.SUBMITTING
            result = await self._submitter.submit([ix.to_instruction()], label=trade.direction.value)
        except PolicyViolation as e:
            return self._stopped(trade, plan, state, e, OutcomeStatus.SKIPPED)
        except MirrorError as e:
            return self._stopped(trade, plan, state, e, OutcomeStatus.FAILED)

        return CopyOutcome(
            trade,
            OutcomeStatus.SUCCEEDED,
            amount=plan.amount,
            token_amount=plan.token_amount,
            limit=plan.limit,
            signature=result.signature,
            confirmed=result.confirmed,
        )

    def _stopped(
        self,
        trade: DetectedTrade,
        plan: _Plan | None,
        failed_in: ExecutionState,
        exc: MirrorError,
        status: OutcomeStatus,
    ) -> CopyOutcome:
        return CopyOutcome(
            trade,
            status,
            amount=plan.amount if plan else None,
            token_amount=plan.token_amount if plan else None,
            limit=plan.limit if plan else None,
            signature=exc.signature if isinstance(exc, SubmissionFailed) else None,
            error=str(exc),
            error_code=exc.code,
            failed_in=failed_in,
        )

    async def _read(self, fn: Any, label: str) -> Any:
        return await retry_async(
            fn,
            max_attempts=self._read_attempts,
            delay_sec=self._read_retry_delay,
            label=label,
        )

    async def _validate(self, trade: DetectedTrade) -> _Plan:
        state = await self._market.read(trade.mint)
        if state.complete:
            raise MarketClosed(str(trade.mint))

        payer = self._submitter.payer
        trader_ata = derive_associated_token_account(payer, trade.mint)
        ata_data = await self._read(lambda: self._rpc.get_account_data(trader_ata), "get_token_account")
        own_tokens = decode_token_account(ata_data).amount if ata_data is not None else 0

        if trade.direction is TradeDirection.BUY:
            sol_in = self._policy.buy_amount(state)
            if sol_in <= 0:
                raise ZeroAmount(f"buy size for {trade.mint} rounds to 0 lamports")
            max_cost = sol_in * (BPS_DENOMINATOR + self._slippage_bps) // BPS_DENOMINATOR
            balance = await self._read(lambda: self._rpc.get_balance(payer), "get_balance")
            if max_cost > balance:
                raise InsufficientBalance(balance, max_cost, "lamports")
            tokens_out = quote_buy(state, sol_in)
            if tokens_out <= 0:
                raise ZeroAmount(f"{sol_in} lamports buys 0 tokens of {trade.mint}")
            return _Plan(state, sol_in, tokens_out, max_cost, trader_ata, ata_data is not None)

        tokens_in = self._policy.sell_amount(trade.mint, own_tokens)
        if tokens_in <= 0:
            raise ZeroAmount(f"sell size for {trade.mint} rounds to 0 tokens")
        if tokens_in > own_tokens:
            raise InsufficientBalance(own_tokens, tokens_in, "token")
        sol_out = quote_sell(state, tokens_in)
        min_out = sol_out * (BPS_DENOMINATOR - self._slippage_bps) // BPS_DENOMINATOR
        return _Plan(state, tokens_in, tokens_in, min_out, trader_ata, True)

    async def _ensure_token_account(self, mint: Pubkey, trader_ata: Pubkey) -> None:
        payer = self._submitter.payer
        logger.info("executor_creating_token_account", mint=mint, token_account=trader_ata)
        result = await self._submitter.submit(
            [build_create_token_account(payer, mint)], label="create_token_account"
        )
        if result.dry_run:
            return
        for attempt in range(1, self._account_poll_attempts + 1):
            data = await self._read(lambda: self._rpc.get_account_data(trader_ata), "get_token_account")
            if data is not None:
                logger.info(
                    "executor_token_account_ready",
                    mint=mint,
                    token_account=trader_ata,
                    attempts=attempt,
                    signature=result.signature,
                )
                return
            await asyncio.sleep(self._account_poll_delay)
        raise AccountNotVisible(str(trader_ata), self._account_poll_attempts)
