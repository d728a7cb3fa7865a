"""
Tests for the polling transaction source: cursor handling, ordering,
retry and skip behavior.
"""

from __future__ import annotations

import asyncio

import pytest

from conftest import TARGET_WALLET, trade_logs
from curve_mirror.core.exceptions import RpcError, TransientRpcError
from curve_mirror.pump.codec import InstructionKind
from curve_mirror.solana_listener.listener import PollingTransactionSource, PollState
from curve_mirror.solana_listener.models import SignatureInfo


def _info(sig, slot=1, err=None):
    return SignatureInfo(
        signature=sig,
        slot=slot,
        err=err,
        block_time=None,
        memo=None,
        confirmation_status="confirmed",
    )


def _tx_result(slot):
    return {"slot": slot, "meta": {"err": None, "logMessages": trade_logs(InstructionKind.BUY)}}


def _source(rpc, **kwargs):
    kwargs.setdefault("list_retry_delay_sec", 0)
    kwargs.setdefault("fetch_retry_delay_sec", 0)
    return PollingTransactionSource(rpc, TARGET_WALLET, **kwargs)


def test_new_transactions_emitted_oldest_first(rpc):
    rpc.signature_pages = [[_info("c", 3), _info("b", 2), _info("a", 1)]]
    rpc.transactions = {"a": _tx_result(1), "b": _tx_result(2), "c": _tx_result(3)}
    source = _source(rpc)
    batch = asyncio.run(source.poll_once())
    assert [t.signature for t in batch] == ["a", "b", "c"]
    assert source.last_seen_signature == "c"
    assert source.state is PollState.IDLE


def test_walk_stops_at_cursor(rpc):
    rpc.signature_pages = [
        [_info("b", 2), _info("a", 1)],
        [_info("d", 4), _info("c", 3), _info("b", 2), _info("a", 1)],
    ]
    rpc.transactions = {s: _tx_result(i) for i, s in enumerate("abcd", start=1)}
    source = _source(rpc)

    async def go():
        first = await source.poll_once()
        second = await source.poll_once()
        return first, second

    first, second = asyncio.run(go())
    assert [t.signature for t in first] == ["a", "b"]
    assert [t.signature for t in second] == ["c", "d"]


def test_redelivered_signatures_emit_nothing(rpc):
    """Signatures at or below the cursor produce zero emitted transactions."""
    page = [_info("b", 2), _info("a", 1)]
    rpc.signature_pages = [list(page), list(page), [_info("a", 1)]]
    rpc.transactions = {"a": _tx_result(1), "b": _tx_result(2)}
    source = _source(rpc)

    async def go():
        await source.poll_once()
        return await source.poll_once(), await source.poll_once()

    again, older = asyncio.run(go())
    assert again == []
    assert older == []
    assert rpc.calls.count("get_transaction") == 2


def test_failed_signature_emitted_without_fetch(rpc):
    rpc.signature_pages = [[_info("x", 5, err={"InstructionError": [0, "Custom"]})]]
    source = _source(rpc)
    batch = asyncio.run(source.poll_once())
    assert len(batch) == 1
    assert batch[0].success is False
    assert "get_transaction" not in rpc.calls


def test_listing_retried_then_skipped(rpc):
    rpc.signature_pages = [TransientRpcError("429"), TransientRpcError("429"), TransientRpcError("429")]
    source = _source(rpc, list_attempts=3)
    assert asyncio.run(source.poll_once()) == []
    assert rpc.calls.count("get_signatures_for_address") == 3
    assert source.last_seen_signature is None


def test_listing_recovers_after_transient_error(rpc):
    rpc.signature_pages = [TransientRpcError("timeout"), [_info("a", 1)]]
    rpc.transactions = {"a": _tx_result(1)}
    batch = asyncio.run(_source(rpc).poll_once())
    assert [t.signature for t in batch] == ["a"]


def test_fetch_failure_skips_only_that_transaction(rpc):
    rpc.signature_pages = [[_info("b", 2), _info("a", 1)]]
    rpc.transactions = {"a": RpcError("boom", rpc_code=-32600), "b": _tx_result(2)}
    batch = asyncio.run(_source(rpc).poll_once())
    assert [t.signature for t in batch] == ["b"]


def test_not_yet_available_transaction_is_refetched(rpc):
    rpc.signature_pages = [[_info("a", 1)]]
    rpc.transactions = {"a": [None, _tx_result(1)]}
    batch = asyncio.run(_source(rpc).poll_once())
    assert [t.signature for t in batch] == ["a"]
    assert rpc.calls.count("get_transaction") == 2


def test_undecodable_transaction_skipped(rpc):
    rpc.signature_pages = [[_info("a", 1)]]
    rpc.transactions = {"a": {"slot": 1}}
    assert asyncio.run(_source(rpc).poll_once()) == []


def test_transactions_stream_stops_on_stop(rpc):
    rpc.signature_pages = [[_info("a", 1)]]
    rpc.transactions = {"a": _tx_result(1)}
    source = _source(rpc, poll_interval_sec=0.01)

    async def go():
        seen = []
        async for tx in source.transactions():
            seen.append(tx.signature)
            await source.stop()
        return seen

    assert asyncio.run(asyncio.wait_for(go(), timeout=5)) == ["a"]


@pytest.mark.parametrize("window", [0, 1001])
def test_window_bounds_validated(rpc, window):
    with pytest.raises(ValueError):
        PollingTransactionSource(rpc, TARGET_WALLET, signatures_window=window)
