"""
Application-level exceptions.

One hierarchy rooted at MirrorError so the monitor loop can tell apart:
- decode errors (log and skip the event),
- transient RPC errors (retried locally, surfaced after the retry bound),
- policy violations (stop for that trade, no retry),
- terminal submission failures (reported, never re-submitted).
"""

from __future__ import annotations


class MirrorError(Exception):
    """Base class for every error raised by curve_mirror."""

    code = "mirror_error"


# --- decoding ---------------------------------------------------------------


class DecodeError(MirrorError):
    """Bytes did not match the expected layout."""

    code = "decode_error"


class InstructionLengthError(DecodeError):
    """Buffer too short for the field being read."""

    code = "instruction_length"

    def __init__(self, needed: int, actual: int, field: str = "payload") -> None:
        self.needed = needed
        self.actual = actual
        self.field = field
        super().__init__(f"need at least {needed} bytes to read {field}, got {actual}")


class MintMismatch(DecodeError):
    """Decoded market state belongs to a different mint than requested."""

    code = "mint_mismatch"

    def __init__(self, expected: str, actual: str) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"market state mint {actual} does not match requested mint {expected}")


class AddressDerivationError(MirrorError):
    """No bump seed produced an off-curve program address."""

    code = "address_derivation"


# --- RPC ----------------------------------------------------------------------


class RpcError(MirrorError):
    """JSON-RPC error response. Not retried (e.g. preflight rejection)."""

    code = "rpc_error"

    def __init__(self, message: str, rpc_code: int | None = None, data: object = None) -> None:
        self.rpc_code = rpc_code
        self.data = data
        super().__init__(f"{message} (code={rpc_code})" if rpc_code is not None else message)


class TransientRpcError(MirrorError):
    """Timeout, transport failure, rate limit or node-behind error. Safe to retry."""

    code = "transient_rpc"


class TransactionNotAvailable(TransientRpcError):
    """getTransaction returned null for a listed signature; the node may not serve it yet."""

    code = "transaction_not_available"

    def __init__(self, signature: str) -> None:
        self.signature = signature
        super().__init__(f"transaction {signature} not available yet")


class AccountNotFound(MirrorError):
    """Account does not exist (or is not yet visible) on chain."""

    code = "account_not_found"

    def __init__(self, address: str, what: str = "account", detail: str = "not found") -> None:
        self.address = address
        self.what = what
        super().__init__(f"{what} {address} {detail}")


class AccountNotVisible(AccountNotFound):
    """Account was just created but did not show up within the poll bound."""

    code = "account_not_visible"

    def __init__(self, address: str, polls: int, what: str = "token account") -> None:
        self.polls = polls
        super().__init__(address, what, detail=f"not visible after {polls} polls")


# --- policy -------------------------------------------------------------------


class PolicyViolation(MirrorError):
    """Trade refused locally; reported, never retried."""

    code = "policy_violation"


class ZeroAmount(PolicyViolation):
    code = "zero_amount"

    def __init__(self, message: str = "trade amount is zero") -> None:
        super().__init__(message)


class NothingToSell(PolicyViolation):
    code = "nothing_to_sell"

    def __init__(self, mint: str) -> None:
        self.mint = mint
        super().__init__(f"no {mint} tokens held, nothing to sell")


class MarketClosed(PolicyViolation):
    code = "market_closed"

    def __init__(self, mint: str) -> None:
        self.mint = mint
        super().__init__(f"bonding curve for {mint} is complete")


class InsufficientBalance(PolicyViolation):
    code = "insufficient_balance"

    def __init__(self, have: int, need: int, unit: str) -> None:
        self.have = have
        self.need = need
        self.unit = unit
        super().__init__(f"insufficient {unit} balance: have {have}, need {need}")


# --- submission ---------------------------------------------------------------


class SubmissionFailed(MirrorError):
    """Signed transaction could not be submitted; the event is dropped."""

    code = "submission_failed"

    def __init__(self, message: str, signature: str | None = None) -> None:
        self.signature = signature
        super().__init__(message)
