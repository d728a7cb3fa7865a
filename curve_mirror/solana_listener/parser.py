"""
Trade extractor — ObservedTransaction to DetectedTrade.

Purely structural: finds the pump program in the log output, decodes the
base64 payload of its "Program data:" lines, and returns the traded mint and
direction. "Program log: Instruction: Buy|Sell" lines only corroborate the
direction; they can never stand in for the mint.
"""

from __future__ import annotations

import base64
import binascii

from solders.pubkey import Pubkey

from curve_mirror.core.exceptions import DecodeError
from curve_mirror.mirror_logging import get_logger
from curve_mirror.pump.codec import InstructionKind, decode_trade_payload
from curve_mirror.pump.constants import PUMP_PROGRAM_ID
from curve_mirror.solana_listener.models import (
    DetectedTrade,
    ExtractionSkip,
    ObservedTransaction,
    SkipReason,
    TradeDirection,
)

logger = get_logger(__name__)

PROGRAM_DATA_PREFIX = "Program data: "
INSTRUCTION_LOG_MARKER = "Instruction: "

_DIRECTION_BY_KIND = {
    InstructionKind.BUY: TradeDirection.BUY,
    InstructionKind.SELL: TradeDirection.SELL,
}


def _direction_from_text(log_lines: tuple[str, ...]) -> TradeDirection | None:
    """Direction named by an "Instruction: Buy" / "Instruction: Sell" log line."""
    for line in log_lines:
        idx = line.find(INSTRUCTION_LOG_MARKER)
        if idx < 0:
            continue
        name = line[idx + len(INSTRUCTION_LOG_MARKER):].strip().lower()
        if name == "buy":
            return TradeDirection.BUY
        if name == "sell":
            return TradeDirection.SELL
    return None


def _program_data(line: str) -> bytes | None:
    idx = line.find(PROGRAM_DATA_PREFIX)
    if idx < 0:
        return None
    b64 = line[idx + len(PROGRAM_DATA_PREFIX):].strip()
    try:
        return base64.b64decode(b64, validate=True)
    except (binascii.Error, ValueError):
        return None


class TradeExtractor:
    """Recover (mint, direction, amount) of a pump trade from transaction logs."""

    def __init__(self, program_id: Pubkey = PUMP_PROGRAM_ID) -> None:
        self._program_id = str(program_id)

    def extract(self, tx: ObservedTransaction) -> DetectedTrade | ExtractionSkip:
        if not tx.success:
            return ExtractionSkip(SkipReason.FAILED_TRANSACTION, tx.signature)
        if not any(self._program_id in line for line in tx.log_lines):
            return ExtractionSkip(SkipReason.NOT_RELEVANT, tx.signature, "program not invoked")

        text_direction = _direction_from_text(tx.log_lines)
        for line in tx.log_lines:
            raw = _program_data(line)
            if raw is None:
                continue
            try:
                payload = decode_trade_payload(raw)
            except DecodeError as e:
                logger.debug(
                    "extractor_payload_decode_failed",
                    signature=tx.short_signature(),
                    error=str(e),
                )
                continue
            if payload.kind is InstructionKind.UNKNOWN:
                continue
            direction = _DIRECTION_BY_KIND[payload.kind]
            if text_direction is not None and text_direction is not direction:
                logger.warning(
                    "extractor_direction_disagrees",
                    signature=tx.short_signature(),
                    payload_direction=direction,
                    log_direction=text_direction,
                )
            return DetectedTrade(
                mint=payload.mint,
                direction=direction,
                raw_amount=payload.amount,
                signature=tx.signature,
                slot=tx.slot,
            )

        if text_direction is not None:
            return ExtractionSkip(
                SkipReason.EXTRACTION_FAILED,
                tx.signature,
                "instruction named in logs but no decodable trade payload",
                direction_hint=text_direction,
            )
        return ExtractionSkip(SkipReason.NOT_RELEVANT, tx.signature, "no buy or sell instruction")
