"""
Main entrypoint: copy-trading monitor loop (24/7) in the main thread.

Builds the RPC client, transaction source (poll or stream), extractor,
executor and reporter from settings, then blocks in MonitorLoop.start()
until SIGINT/SIGTERM. The in-flight trade finishes before exit.

Env: TARGET_WALLET, MIRROR_PRIVATE_KEY, SOLANA_RPC_URL (or HELIUS_API_KEY),
SOURCE_MODE, COPY_RATIO, DRY_RUN, etc. See curve_mirror/config/settings.py.
"""

import sys

# Configure structured JSON logging before other imports that may log
from curve_mirror.mirror_logging import get_logger

logger = get_logger("main")


def main() -> int:
    """Load settings and keypair, wire the pipeline, run until shutdown."""
    from curve_mirror.agent_worker import (
        CopyExecutor,
        CopyPolicy,
        MonitorLoop,
        TradeReporter,
        TransactionSubmitter,
    )
    from curve_mirror.config import get_settings, load_keypair
    from curve_mirror.config.env import mask_secret_url, print_mirror_startup
    from curve_mirror.ingestion import StreamingTransactionSource
    from curve_mirror.pump.instructions import TradeInstructionBuilder
    from curve_mirror.pump.market_state import MarketStateReader
    from curve_mirror.rpc import SolanaRpcClient
    from curve_mirror.solana_listener import TradeExtractor
    from curve_mirror.solana_listener.listener import PollingTransactionSource

    print_mirror_startup("main")
    try:
        settings = get_settings()
        keypair = load_keypair(settings.private_key)
    except ValueError as e:
        logger.error("main_config_error", message=str(e))
        return 1

    program_id = settings.program_id
    rpc = SolanaRpcClient(
        settings.solana_rpc_url,
        request_timeout_sec=settings.request_timeout_sec,
        rpc_rate_per_sec=settings.rpc_rate_per_sec,
    )
    submitter = TransactionSubmitter(
        rpc,
        keypair,
        max_attempts=settings.submit_attempts,
        retry_delay_sec=settings.submit_retry_delay_sec,
        confirm_timeout_sec=settings.confirm_timeout_sec,
        priority_fee_unit_limit=settings.priority_fee_unit_limit,
        priority_fee_unit_price=settings.priority_fee_unit_price,
        dry_run=settings.dry_run,
    )
    executor = CopyExecutor(
        rpc,
        submitter,
        policy=CopyPolicy(settings.copy_ratio),
        market_reader=MarketStateReader(rpc, program_id=program_id),
        builder=TradeInstructionBuilder(program_id=program_id),
        slippage_bps=settings.slippage_bps,
    )

    if settings.source_mode == "stream":
        def source_factory():
            return StreamingTransactionSource(
                settings.stream_url,
                settings.target_wallet,
                token=settings.stream_token,
                reconnect_delay_sec=settings.stream_reconnect_sec,
            )
    else:
        def source_factory():
            return PollingTransactionSource(
                rpc,
                settings.target_wallet,
                poll_interval_sec=settings.poll_interval_sec,
                signatures_window=settings.signatures_window,
            )

    logger.info(
        "main_starting",
        target_wallet=settings.target_wallet,
        bot_wallet=submitter.payer,
        program_id=program_id,
        source_mode=settings.source_mode,
        copy_ratio=str(settings.copy_ratio),
        slippage_bps=settings.slippage_bps,
        dry_run=settings.dry_run,
        rpc_url=mask_secret_url(settings.solana_rpc_url),
    )
    loop = MonitorLoop(
        source_factory,
        TradeExtractor(program_id),
        executor,
        TradeReporter(),
        restart_delay_sec=settings.restart_delay_sec,
        on_shutdown=rpc.aclose,
    )
    try:
        loop.start()
    except KeyboardInterrupt:
        logger.info("main_shutdown_signal")
    except Exception as e:
        logger.exception("main_fatal", error=str(e))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
