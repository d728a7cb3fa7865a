"""
TransactionSource contract shared by the polling listener and the push stream.
"""

from __future__ import annotations

import abc
from typing import AsyncIterator

from curve_mirror.solana_listener.models import ObservedTransaction


class TransactionSource(abc.ABC):
    """
    Stream of confirmed transactions for one target wallet.

    transactions() yields ObservedTransaction until stop() is called; item-level
    decode failures are logged and skipped inside the source. Errors that
    escape transactions() are fatal for this source instance; the monitor loop
    builds a fresh one.
    """

    name: str = "source"

    @abc.abstractmethod
    def transactions(self) -> AsyncIterator[ObservedTransaction]:
        """Async iterator of observed transactions."""

    @abc.abstractmethod
    async def stop(self) -> None:
        """Stop delivery and release the connection."""
