"""
Monitor loop — main event loop and process lifecycle.

Pulls ObservedTransactions from the configured source, runs
extractor -> executor (sizing policy inside the executor) per event and
reports every outcome. A per-event error never ends the loop; an error that
escapes the source ends that source instance, and a fresh one is built after
a fixed delay. One shutdown signal stops delivery and lets the in-flight
trade finish.
"""

from __future__ import annotations

import asyncio
import signal
from contextlib import aclosing
from typing import Awaitable, Callable

from curve_mirror.agent_worker.executor import CopyExecutor, CopyOutcome, OutcomeStatus
from curve_mirror.agent_worker.reporter import TradeReporter
from curve_mirror.mirror_logging import bind_mint, get_logger
from curve_mirror.solana_listener.models import ExtractionSkip, ObservedTransaction
from curve_mirror.solana_listener.parser import TradeExtractor
from curve_mirror.solana_listener.source import TransactionSource

logger = get_logger(__name__)

DEFAULT_RESTART_DELAY_SEC = 5.0


class MonitorLoop:
    """Drive one TransactionSource at a time through extraction and execution."""

    def __init__(
        self,
        source_factory: Callable[[], TransactionSource],
        extractor: TradeExtractor,
        executor: CopyExecutor,
        reporter: TradeReporter | None = None,
        *,
        restart_delay_sec: float = DEFAULT_RESTART_DELAY_SEC,
        on_shutdown: Callable[[], Awaitable[None]] | None = None,
    ) -> None:
        self._source_factory = source_factory
        self._extractor = extractor
        self._executor = executor
        self.reporter = reporter or TradeReporter()
        self._restart_delay = restart_delay_sec
        self._on_shutdown = on_shutdown
        self._stop = asyncio.Event()
        self._source: TransactionSource | None = None
        self.source_runs = 0

    @property
    def stopping(self) -> bool:
        return self._stop.is_set()

    async def stop(self) -> None:
        """Stop source delivery; the event being handled runs to completion."""
        self._stop.set()
        source = self._source
        if source is not None:
            await source.stop()

    async def handle(self, tx: ObservedTransaction) -> CopyOutcome | None:
        """Extract and mirror one transaction. Returns None when it holds no trade."""
        self.reporter.observed(tx)
        result = self._extractor.extract(tx)
        if isinstance(result, ExtractionSkip):
            self.reporter.extraction_skipped(result)
            return None

        log = bind_mint(result.mint)
        log.info(
            "trade_detected",
            tx_number=self.reporter.tx_counter,
            direction=result.direction,
            raw_amount=result.raw_amount,
            signature=result.signature,
            slot=result.slot,
        )
        try:
            outcome = await self._executor.execute(result)
        except Exception as e:
            logger.exception("monitor_event_failed", signature=result.signature, error=str(e))
            outcome = CopyOutcome(
                result,
                OutcomeStatus.FAILED,
                error=str(e),
                error_code="unexpected_error",
            )
        self.reporter.report(outcome)
        return outcome

    async def run(self) -> None:
        """Run until stop(); restart the source after it fails or ends."""
        logger.info("monitor_started", restart_delay_sec=self._restart_delay)
        while not self._stop.is_set():
            self.source_runs += 1
            source = self._source_factory()
            self._source = source
            logger.info("monitor_source_started", source=source.name, run=self.source_runs)
            try:
                async with aclosing(source.transactions()) as stream:
                    async for tx in stream:
                        await self.handle(tx)
                        if self._stop.is_set():
                            break
            except Exception as e:
                logger.exception(
                    "monitor_source_failed",
                    source=source.name,
                    run=self.source_runs,
                    error=str(e),
                )
            finally:
                self._source = None
                await source.stop()

            if self._stop.is_set():
                break
            logger.warning(
                "monitor_source_restart",
                source=source.name,
                backoff_sec=self._restart_delay,
            )
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self._restart_delay)
            except asyncio.TimeoutError:
                pass

        stats = self.reporter.stats
        logger.info(
            "monitor_stopped",
            source_runs=self.source_runs,
            transactions_seen=stats.transactions_seen,
            trades_detected=stats.trades_detected,
            succeeded=stats.succeeded,
            failed=stats.failed,
            skipped=stats.skipped,
        )

    async def _run_with_signals(self) -> None:
        loop = asyncio.get_running_loop()
        pending: list[asyncio.Task] = []

        def request_shutdown() -> None:
            if self._stop.is_set():
                return
            logger.info("monitor_shutdown_signal")
            pending.append(loop.create_task(self.stop()))

        installed: list[signal.Signals] = []
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, request_shutdown)
                installed.append(sig)
            except (NotImplementedError, RuntimeError):
                # Windows or not the main thread
                pass
        try:
            await self.run()
            if pending:
                await asyncio.gather(*pending)
        finally:
            for sig in installed:
                loop.remove_signal_handler(sig)
            if self._on_shutdown is not None:
                await self._on_shutdown()

    def start(self) -> None:
        """Blocking entry point: run the loop until SIGINT/SIGTERM."""
        asyncio.run(self._run_with_signals())
