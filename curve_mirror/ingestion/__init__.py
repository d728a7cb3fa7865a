"""
Push ingestion — websocket transaction subscription for the target wallet.
"""

from curve_mirror.ingestion.solana_stream import StreamingTransactionSource, build_subscribe_request

__all__ = ["StreamingTransactionSource", "build_subscribe_request"]
