"""
Target-wallet transaction observation.

- models: SignatureInfo, ObservedTransaction, DetectedTrade, ExtractionSkip.
- normalizer: RPC / stream payloads to ObservedTransaction.
- parser: TradeExtractor.
- listener: PollingTransactionSource (imported directly, it depends on the RPC layer).
"""

from curve_mirror.solana_listener.models import (
    DetectedTrade,
    ExtractionSkip,
    ObservedTransaction,
    SignatureInfo,
    SkipReason,
    SourceKind,
    TradeDirection,
)
from curve_mirror.solana_listener.parser import TradeExtractor

__all__ = [
    "DetectedTrade",
    "ExtractionSkip",
    "ObservedTransaction",
    "SignatureInfo",
    "SkipReason",
    "SourceKind",
    "TradeDirection",
    "TradeExtractor",
]
