"""
Pytest fixtures for curve-mirror tests. In-memory RPC double, deterministic
keys and bonding-curve account bytes.
"""

from __future__ import annotations

import base64
from typing import Any, Callable

import pytest
from solders.hash import Hash
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.transaction import Transaction

from curve_mirror.pump.accounts import BondingCurveLayout, encode_bonding_curve, encode_token_account
from curve_mirror.pump.addresses import derive_market_addresses
from curve_mirror.pump.codec import InstructionKind, encode_trade_payload
from curve_mirror.pump.constants import LAMPORTS_PER_SOL, PUMP_PROGRAM_ID_STR

# Valid Solana pubkeys (base58, 32 bytes)
MINT = Pubkey.from_string("7F1WzVNQ1Qpurqxxdyv3UrFQR3uoNepULVW9A4bAJ5nZ")
TARGET_WALLET = "9QCfNuQuxct1Xk9ytFYgxc5fThmTzL4pHQnSjjrVUrka"


class FakeRpc:
    """
    In-memory stand-in for SolanaRpcClient. Accounts keyed by base58 string;
    send_errors are raised (in order) by send_raw_transaction before accepting.
    """

    def __init__(self) -> None:
        self.accounts: dict[str, bytes] = {}
        self.balances: dict[str, int] = {}
        self.signature_pages: list[list[Any]] = []
        self.transactions: dict[str, Any] = {}
        self.statuses: dict[str, dict[str, Any]] = {}
        self.sent: list[bytes] = []
        self.send_errors: list[Exception] = []
        self.read_errors: list[Exception] = []
        self.on_send: Callable[[bytes], None] | None = None
        self.calls: list[str] = []

    async def get_account_data(self, pubkey: Any) -> bytes | None:
        self.calls.append("get_account_data")
        return self.accounts.get(str(pubkey))

    async def get_multiple_account_data(self, pubkeys: Any) -> list[bytes | None]:
        self.calls.append("get_multiple_account_data")
        if self.read_errors:
            raise self.read_errors.pop(0)
        return [self.accounts.get(str(p)) for p in pubkeys]

    async def get_balance(self, pubkey: Any) -> int:
        self.calls.append("get_balance")
        return self.balances.get(str(pubkey), 0)

    async def get_signatures_for_address(self, address: Any, limit: int, before: str | None = None) -> list[Any]:
        self.calls.append("get_signatures_for_address")
        if not self.signature_pages:
            return []
        page = self.signature_pages.pop(0)
        if isinstance(page, Exception):
            raise page
        return page[:limit]

    async def get_transaction(self, signature: str) -> Any:
        self.calls.append("get_transaction")
        value = self.transactions.get(signature)
        if isinstance(value, list):
            value = value.pop(0) if value else None
        if isinstance(value, Exception):
            raise value
        return value

    async def get_latest_blockhash(self) -> Hash:
        self.calls.append("get_latest_blockhash")
        return Hash.default()

    async def send_raw_transaction(self, raw: bytes, *, skip_preflight: bool = False) -> str:
        self.calls.append("send_raw_transaction")
        self.sent.append(raw)
        if self.send_errors:
            raise self.send_errors.pop(0)
        if self.on_send is not None:
            self.on_send(raw)
        return str(Transaction.from_bytes(raw).signatures[0])

    async def get_signature_statuses(self, signatures: Any) -> list[dict[str, Any] | None]:
        self.calls.append("get_signature_statuses")
        return [self.statuses.get(s) for s in signatures]


def curve_layout(
    *,
    virtual_token_reserves: int = 1_073_000_000_000_000,
    virtual_sol_reserves: int = 10 * LAMPORTS_PER_SOL,
    real_token_reserves: int = 793_100_000_000_000,
    real_sol_reserves: int = 0,
    token_total_supply: int = 1_000_000_000_000_000,
    complete: bool = False,
) -> BondingCurveLayout:
    return BondingCurveLayout(
        virtual_token_reserves=virtual_token_reserves,
        virtual_sol_reserves=virtual_sol_reserves,
        real_token_reserves=real_token_reserves,
        real_sol_reserves=real_sol_reserves,
        token_total_supply=token_total_supply,
        complete=complete,
    )


def install_market(rpc: FakeRpc, mint: Pubkey = MINT, **layout_kwargs: Any) -> None:
    """Put bonding curve + holding account for mint into the fake RPC."""
    addrs = derive_market_addresses(mint)
    rpc.accounts[str(addrs.bonding_curve)] = encode_bonding_curve(curve_layout(**layout_kwargs))
    rpc.accounts[str(addrs.associated_bonding_curve)] = encode_token_account(
        mint, addrs.bonding_curve, layout_kwargs.get("real_token_reserves", 793_100_000_000_000)
    )


def program_data_line(kind: InstructionKind, mint: Pubkey = MINT, amount: int = 1_000) -> str:
    payload = encode_trade_payload(kind, mint, amount)
    return "Program data: " + base64.b64encode(payload).decode("ascii")


def trade_logs(kind: InstructionKind, mint: Pubkey = MINT, amount: int = 1_000) -> list[str]:
    name = "Buy" if kind is InstructionKind.BUY else "Sell"
    return [
        f"Program {PUMP_PROGRAM_ID_STR} invoke [1]",
        f"Program log: Instruction: {name}",
        program_data_line(kind, mint, amount),
        f"Program {PUMP_PROGRAM_ID_STR} success",
    ]


@pytest.fixture
def rpc() -> FakeRpc:
    return FakeRpc()


@pytest.fixture
def mint() -> Pubkey:
    return MINT


@pytest.fixture
def keypair() -> Keypair:
    return Keypair.from_seed(bytes(range(32)))
