"""
Transaction submission — sign once, send, optionally confirm.

The transaction is built and signed exactly once per call. A transient send
failure resends the identical signed bytes: the signature (and so the
transaction identity) never changes, so the cluster executes it at most once
however many times it is sent. A JSON-RPC rejection (e.g. preflight failure)
is terminal and surfaces as SubmissionFailed; nothing is re-signed.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Sequence

from solders.hash import Hash
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.transaction import Transaction

from curve_mirror.core.exceptions import MirrorError, RpcError, SubmissionFailed
from curve_mirror.core.retry import retry_async
from curve_mirror.mirror_logging import get_logger
from curve_mirror.pump.instructions import priority_fee_instructions

logger = get_logger(__name__)

DRY_RUN_SIGNATURE_PLACEHOLDER = "dry_run"
DEFAULT_SUBMIT_ATTEMPTS = 3
DEFAULT_SUBMIT_RETRY_DELAY_SEC = 1.0
DEFAULT_CONFIRM_TIMEOUT_SEC = 30.0
DEFAULT_CONFIRM_POLL_INTERVAL_SEC = 1.0
DEFAULT_BLOCKHASH_ATTEMPTS = 3


@dataclass(frozen=True)
class SubmitResult:
    signature: str
    attempts: int
    confirmed: bool | None  # None: not checked (dry run or confirmation disabled)
    dry_run: bool = False


class TransactionSubmitter:
    """Sign with the bot keypair and submit through the RPC client."""

    def __init__(
        self,
        rpc: Any,
        keypair: Keypair,
        *,
        max_attempts: int = DEFAULT_SUBMIT_ATTEMPTS,
        retry_delay_sec: float = DEFAULT_SUBMIT_RETRY_DELAY_SEC,
        confirm_timeout_sec: float = DEFAULT_CONFIRM_TIMEOUT_SEC,
        confirm_poll_interval_sec: float = DEFAULT_CONFIRM_POLL_INTERVAL_SEC,
        priority_fee_unit_limit: int | None = None,
        priority_fee_unit_price: int | None = None,
        skip_preflight: bool = False,
        dry_run: bool = False,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self._rpc = rpc
        self._keypair = keypair
        self._max_attempts = max_attempts
        self._retry_delay = retry_delay_sec
        self._confirm_timeout = confirm_timeout_sec
        self._confirm_interval = confirm_poll_interval_sec
        self._fee_ixs = priority_fee_instructions(priority_fee_unit_limit, priority_fee_unit_price)
        self._skip_preflight = skip_preflight
        self.dry_run = dry_run

    @property
    def payer(self) -> Pubkey:
        return self._keypair.pubkey()

    def sign(self, instructions: Sequence[Instruction], blockhash: Hash) -> Transaction:
        """Compile (fee instructions first) and sign with the bot keypair."""
        message = Message.new_with_blockhash(
            [*self._fee_ixs, *instructions], self.payer, blockhash
        )
        return Transaction([self._keypair], message, blockhash)

    async def submit(self, instructions: Sequence[Instruction], *, label: str = "trade") -> SubmitResult:
        if not instructions:
            raise ValueError("no instructions to submit")

        if self.dry_run:
            tx = self.sign(instructions, Hash.default())
            logger.info(
                "submit_dry_run",
                label=label,
                signature=DRY_RUN_SIGNATURE_PLACEHOLDER,
                would_be_signature=str(tx.signatures[0]),
                instruction_count=len(tx.message.instructions),
            )
            return SubmitResult(DRY_RUN_SIGNATURE_PLACEHOLDER, attempts=0, confirmed=None, dry_run=True)

        try:
            blockhash = await retry_async(
                self._rpc.get_latest_blockhash,
                max_attempts=DEFAULT_BLOCKHASH_ATTEMPTS,
                delay_sec=self._retry_delay,
                label="get_latest_blockhash",
            )
        except MirrorError as e:
            raise SubmissionFailed(f"could not fetch blockhash: {e}") from e

        tx = self.sign(instructions, blockhash)
        signature = str(tx.signatures[0])
        raw = bytes(tx)
        attempts = 0

        async def _send() -> str:
            nonlocal attempts
            attempts += 1
            return await self._rpc.send_raw_transaction(raw, skip_preflight=self._skip_preflight)

        try:
            sent = await retry_async(
                _send,
                max_attempts=self._max_attempts,
                delay_sec=self._retry_delay,
                label=f"send_{label}",
            )
        except RpcError as e:
            logger.warning("submit_rejected", label=label, signature=signature, error=str(e))
            raise SubmissionFailed(f"transaction rejected: {e}", signature=signature) from e
        except MirrorError as e:
            logger.error(
                "submit_retries_exhausted",
                label=label,
                signature=signature,
                attempts=attempts,
                error=str(e),
            )
            raise SubmissionFailed(
                f"send failed after {attempts} attempts: {e}", signature=signature
            ) from e

        if sent != signature:
            logger.warning("submit_signature_differs", expected=signature, returned=sent)
        logger.info("submit_sent", label=label, signature=signature, attempts=attempts)

        confirmed = None
        if self._confirm_timeout > 0:
            confirmed = await self.wait_for_confirmation(signature)
        return SubmitResult(signature, attempts=attempts, confirmed=confirmed)

    async def wait_for_confirmation(self, signature: str) -> bool:
        """
        Poll getSignatureStatuses until confirmed/finalized or timeout.
        Returns False on timeout; raises SubmissionFailed if the transaction
        landed with an error.
        """
        deadline = time.monotonic() + self._confirm_timeout
        while time.monotonic() < deadline:
            try:
                statuses = await self._rpc.get_signature_statuses([signature])
            except MirrorError as e:
                logger.warning("submit_confirm_poll_error", signature=signature, error=str(e))
                statuses = []
            st = statuses[0] if statuses else None
            if st is not None:
                err = st.get("err")
                if err is not None:
                    logger.warning(
                        "submit_confirm_failed",
                        signature=signature,
                        reason="transaction_failed",
                        err=str(err),
                    )
                    raise SubmissionFailed(f"transaction failed on chain: {err}", signature=signature)
                status = st.get("confirmationStatus") or ""
                if status in ("confirmed", "finalized"):
                    logger.info("submit_confirmed", signature=signature, confirmation_status=status)
                    return True
            await asyncio.sleep(self._confirm_interval)
        logger.warning(
            "submit_confirm_failed",
            signature=signature,
            reason="timeout",
            timeout_sec=self._confirm_timeout,
        )
        return False
