"""
Outcome reporting for the monitor loop.

Every detected trade ends up here with one of three distinguishable events:
copy_trade_succeeded, copy_trade_failed, copy_trade_skipped. Each carries the
mint, direction, computed amount and the resulting signature or error. The
per-process transaction counter used to tag log lines lives on the reporter.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from curve_mirror.agent_worker.executor import CopyOutcome, OutcomeStatus
from curve_mirror.mirror_logging import get_logger
from curve_mirror.solana_listener.models import ExtractionSkip, ObservedTransaction, SkipReason

logger = get_logger(__name__)


@dataclass
class ReporterStats:
    transactions_seen: int = 0
    trades_detected: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    extraction_failures: int = 0
    last_error: str | None = None
    counts_by_code: dict[str, int] = field(default_factory=dict)


class TradeReporter:
    """Owns the transaction counter and the outcome log lines."""

    def __init__(self) -> None:
        self.tx_counter = 0
        self.stats = ReporterStats()

    def observed(self, tx: ObservedTransaction) -> int:
        """Count one delivered transaction; returns its tag number."""
        self.tx_counter += 1
        self.stats.transactions_seen += 1
        logger.debug(
            "transaction_observed",
            tx_number=self.tx_counter,
            signature=tx.short_signature(),
            slot=tx.slot,
            source=tx.source,
        )
        return self.tx_counter

    def extraction_skipped(self, skip: ExtractionSkip) -> None:
        if skip.reason is SkipReason.EXTRACTION_FAILED:
            self.stats.extraction_failures += 1
            self.stats.last_error = skip.detail
            logger.warning(
                "trade_extraction_failed",
                tx_number=self.tx_counter,
                signature=skip.signature,
                direction_hint=skip.direction_hint,
                detail=skip.detail,
            )
            return
        logger.debug(
            "transaction_skipped",
            tx_number=self.tx_counter,
            signature=skip.signature,
            reason=skip.reason,
            detail=skip.detail,
        )

    def report(self, outcome: CopyOutcome) -> None:
        trade = outcome.trade
        self.stats.trades_detected += 1
        common = {
            "tx_number": self.tx_counter,
            "mint": trade.mint,
            "direction": trade.direction,
            "amount": outcome.amount,
            "source_signature": trade.signature,
        }
        if outcome.status is OutcomeStatus.SUCCEEDED:
            self.stats.succeeded += 1
            logger.info(
                "copy_trade_succeeded",
                **common,
                token_amount=outcome.token_amount,
                limit=outcome.limit,
                signature=outcome.signature,
                confirmed=outcome.confirmed,
            )
            return

        code = outcome.error_code or "unknown"
        self.stats.counts_by_code[code] = self.stats.counts_by_code.get(code, 0) + 1
        if outcome.status is OutcomeStatus.SKIPPED:
            self.stats.skipped += 1
            logger.info(
                "copy_trade_skipped",
                **common,
                reason=code,
                error=outcome.error,
            )
            return

        self.stats.failed += 1
        self.stats.last_error = outcome.error
        logger.error(
            "copy_trade_failed",
            **common,
            error_code=code,
            error=outcome.error,
            failed_in=outcome.failed_in,
            signature=outcome.signature,
        )
