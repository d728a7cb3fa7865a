"""
Core utilities — error taxonomy and the bounded retry helper shared by the
listener, market reader, executor and RPC client.
"""

from curve_mirror.core.exceptions import (
    AccountNotFound,
    AccountNotVisible,
    AddressDerivationError,
    DecodeError,
    InstructionLengthError,
    InsufficientBalance,
    MarketClosed,
    MintMismatch,
    MirrorError,
    NothingToSell,
    PolicyViolation,
    RpcError,
    SubmissionFailed,
    TransactionNotAvailable,
    TransientRpcError,
    ZeroAmount,
)
from curve_mirror.core.retry import is_transient, retry_async

__all__ = [
    "AccountNotFound",
    "AccountNotVisible",
    "AddressDerivationError",
    "DecodeError",
    "InstructionLengthError",
    "InsufficientBalance",
    "MarketClosed",
    "MintMismatch",
    "MirrorError",
    "NothingToSell",
    "PolicyViolation",
    "RpcError",
    "SubmissionFailed",
    "TransactionNotAvailable",
    "TransientRpcError",
    "ZeroAmount",
    "is_transient",
    "retry_async",
]
