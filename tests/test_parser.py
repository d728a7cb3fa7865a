"""
Tests for the trade extractor and the transaction normalizer.
"""

from __future__ import annotations

import base64
import struct

import pytest

from conftest import MINT, program_data_line, trade_logs
from curve_mirror.core.exceptions import DecodeError
from curve_mirror.pump.codec import InstructionKind
from curve_mirror.pump.constants import PUMP_PROGRAM_ID_STR, SELL_DISCRIMINATOR
from curve_mirror.solana_listener.models import (
    DetectedTrade,
    ExtractionSkip,
    ObservedTransaction,
    SkipReason,
    SourceKind,
    TradeDirection,
)
from curve_mirror.solana_listener.normalizer import from_rpc_transaction, from_stream_notification
from curve_mirror.solana_listener.parser import TradeExtractor

SIG = "5h6xBEauJ3PK6SWCZ1PGjBvj8vDdWG3KpwATGy1ARAXFSDwt8GFXM7W5Ncn16wmqokgpiKRLuS83KUxyZyv2sUYv"


def _tx(lines, success=True):
    return ObservedTransaction(signature=SIG, slot=100, success=success, log_lines=tuple(lines))


def test_buy_extracted_with_mint_and_amount():
    result = TradeExtractor().extract(_tx(trade_logs(InstructionKind.BUY, amount=777)))
    assert isinstance(result, DetectedTrade)
    assert result.direction is TradeDirection.BUY
    assert result.mint == MINT
    assert result.raw_amount == 777
    assert result.signature == SIG


def test_sell_extracted():
    result = TradeExtractor().extract(_tx(trade_logs(InstructionKind.SELL)))
    assert isinstance(result, DetectedTrade)
    assert result.direction is TradeDirection.SELL


def test_failed_transaction_skipped():
    result = TradeExtractor().extract(_tx(trade_logs(InstructionKind.BUY), success=False))
    assert isinstance(result, ExtractionSkip)
    assert result.reason is SkipReason.FAILED_TRANSACTION


def test_program_not_invoked_is_not_relevant():
    lines = ["Program 11111111111111111111111111111111 invoke [1]", program_data_line(InstructionKind.BUY)]
    result = TradeExtractor().extract(_tx(lines))
    assert isinstance(result, ExtractionSkip)
    assert result.reason is SkipReason.NOT_RELEVANT


def test_create_without_trade_is_not_relevant():
    lines = [f"Program {PUMP_PROGRAM_ID_STR} invoke [1]", "Program log: Instruction: Create"]
    result = TradeExtractor().extract(_tx(lines))
    assert isinstance(result, ExtractionSkip)
    assert result.reason is SkipReason.NOT_RELEVANT


def test_text_without_payload_never_fabricates_a_trade():
    lines = [f"Program {PUMP_PROGRAM_ID_STR} invoke [1]", "Program log: Instruction: Buy"]
    result = TradeExtractor().extract(_tx(lines))
    assert isinstance(result, ExtractionSkip)
    assert result.reason is SkipReason.EXTRACTION_FAILED
    assert result.direction_hint is TradeDirection.BUY


def test_truncated_payload_is_extraction_failure():
    short = base64.b64encode(struct.pack("<Q", SELL_DISCRIMINATOR) + bytes(4)).decode()
    lines = [
        f"Program {PUMP_PROGRAM_ID_STR} invoke [1]",
        "Program log: Instruction: Sell",
        f"Program data: {short}",
    ]
    result = TradeExtractor().extract(_tx(lines))
    assert isinstance(result, ExtractionSkip)
    assert result.reason is SkipReason.EXTRACTION_FAILED


def test_payload_direction_wins_over_text():
    lines = trade_logs(InstructionKind.SELL)
    lines[1] = "Program log: Instruction: Buy"
    result = TradeExtractor().extract(_tx(lines))
    assert isinstance(result, DetectedTrade)
    assert result.direction is TradeDirection.SELL


def test_invalid_base64_is_ignored():
    lines = trade_logs(InstructionKind.BUY)
    lines.insert(2, "Program data: not*base64!")
    result = TradeExtractor().extract(_tx(lines))
    assert isinstance(result, DetectedTrade)


def test_normalize_rpc_transaction():
    result = {
        "slot": 321,
        "blockTime": 1_700_000_000,
        "meta": {"err": None, "logMessages": trade_logs(InstructionKind.BUY)},
        "transaction": {"signatures": [SIG]},
    }
    tx = from_rpc_transaction(SIG, result)
    assert tx.slot == 321
    assert tx.success is True
    assert tx.source is SourceKind.POLL
    assert len(tx.log_lines) == 4


def test_normalize_rpc_transaction_without_meta():
    with pytest.raises(DecodeError):
        from_rpc_transaction(SIG, {"slot": 1})


def test_normalize_stream_notification():
    message = {
        "jsonrpc": "2.0",
        "method": "transactionNotification",
        "params": {
            "subscription": 7,
            "result": {
                "signature": SIG,
                "slot": 555,
                "transaction": {
                    "transaction": {"signatures": [SIG]},
                    "meta": {"err": {"InstructionError": [0, "Custom"]}, "logMessages": []},
                },
            },
        },
    }
    tx = from_stream_notification(message)
    assert tx.signature == SIG
    assert tx.slot == 555
    assert tx.success is False
    assert tx.source is SourceKind.STREAM


def test_stream_ack_is_not_a_transaction():
    assert from_stream_notification({"jsonrpc": "2.0", "id": 1, "result": 7}) is None
    with pytest.raises(DecodeError):
        from_stream_notification({"method": "transactionNotification", "params": {}})
