"""
Tests for the pump instruction / trade-payload codec.
"""

from __future__ import annotations

import struct

import pytest
from solders.pubkey import Pubkey

from curve_mirror.core.exceptions import DecodeError, InstructionLengthError
from curve_mirror.pump import codec
from curve_mirror.pump.codec import InstructionKind
from curve_mirror.pump.constants import (
    BUY_DISCRIMINATOR,
    SELL_DISCRIMINATOR,
    TRADE_EVENT_DISCRIMINATOR,
)

MINT = Pubkey.from_string("7F1WzVNQ1Qpurqxxdyv3UrFQR3uoNepULVW9A4bAJ5nZ")


def test_discriminators_match_anchor_bytes():
    """Discriminator constants are the LE u64 of the program's 8-byte tags."""
    assert BUY_DISCRIMINATOR.to_bytes(8, "little").hex() == "66063d1201daebea"
    assert SELL_DISCRIMINATOR.to_bytes(8, "little").hex() == "33e685a4017f83ad"
    assert TRADE_EVENT_DISCRIMINATOR.to_bytes(8, "little").hex() == "bddb7fd34ee661ee"


def test_sell_discriminator_decodes_to_sell():
    data = struct.pack("<QQ", 12502976635542562355, 42)
    kind, payload = codec.decode(data)
    assert kind is InstructionKind.SELL
    assert payload == struct.pack("<Q", 42)


def test_encode_decode_instruction():
    data = codec.encode(InstructionKind.BUY, 123_456, limit=7_000_000)
    assert len(data) == 24
    assert codec.decode_instruction(data) == (InstructionKind.BUY, 123_456)
    assert codec.decode_limit(data) == 7_000_000
    assert codec.decode_limit(codec.encode(InstructionKind.SELL, 1)) is None


def test_unknown_discriminator_is_not_an_error():
    data = struct.pack("<QQ", 1, 5)
    kind, _ = codec.decode(data)
    assert kind is InstructionKind.UNKNOWN
    payload = codec.decode_trade_payload(data)
    assert payload.kind is InstructionKind.UNKNOWN


@pytest.mark.parametrize("length", range(0, 8))
def test_truncated_buffers_raise_typed_error(length):
    """Every buffer shorter than the discriminator fails with InstructionLengthError."""
    data = bytes(length)
    with pytest.raises(InstructionLengthError) as exc:
        codec.decode(data)
    assert exc.value.needed == 8
    assert exc.value.actual == length
    with pytest.raises(DecodeError):
        codec.decode_trade_payload(data)


def test_trade_payload_needs_mint_and_amount():
    full = codec.encode_trade_payload(InstructionKind.BUY, MINT, 99)
    with pytest.raises(InstructionLengthError) as exc:
        codec.decode_trade_payload(full[:39])
    assert exc.value.field == "mint"
    with pytest.raises(InstructionLengthError) as exc:
        codec.decode_trade_payload(full[:47])
    assert exc.value.field == "amount"


def test_trade_payload_mint_at_bytes_8_to_40():
    data = codec.encode_trade_payload(InstructionKind.SELL, MINT, 5_000)
    assert data[8:40] == bytes(MINT)
    payload = codec.decode_trade_payload(data)
    assert payload.kind is InstructionKind.SELL
    assert payload.mint == MINT
    assert payload.amount == 5_000


def test_trade_event_direction_from_is_buy_flag():
    head = TRADE_EVENT_DISCRIMINATOR.to_bytes(8, "little") + bytes(MINT)
    body = struct.pack("<QQ", 1_000_000, 2_000)
    buy = codec.decode_trade_payload(head + body + b"\x01" + bytes(32))
    sell = codec.decode_trade_payload(head + body + b"\x00" + bytes(32))
    assert buy.kind is InstructionKind.BUY
    assert sell.kind is InstructionKind.SELL
    assert buy.mint == MINT
    with pytest.raises(InstructionLengthError):
        codec.decode_trade_payload(head + body)


def test_encode_rejects_out_of_range_amounts():
    with pytest.raises(ValueError):
        codec.encode(InstructionKind.BUY, -1)
    with pytest.raises(ValueError):
        codec.encode(InstructionKind.BUY, 2**64)
    with pytest.raises(ValueError):
        codec.encode(InstructionKind.UNKNOWN, 1)
