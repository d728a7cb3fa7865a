"""
Bounded retry for async calls.

Every retry-with-sleep loop in the agent goes through retry_async so the
bound, the delay and the retryable-error predicate are explicit at the call
site. Non-retryable errors propagate on the first attempt; the last error
propagates once attempts are exhausted.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, TypeVar

from curve_mirror.core.exceptions import TransientRpcError
from curve_mirror.mirror_logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def is_transient(exc: BaseException) -> bool:
    """Default predicate: only TransientRpcError is worth retrying."""
    return isinstance(exc, TransientRpcError)


async def retry_async(
    fn: Callable[[], Awaitable[T]],
    *,
    max_attempts: int,
    delay_sec: float,
    retryable: Callable[[BaseException], bool] = is_transient,
    backoff: float = 1.0,
    label: str = "call",
) -> T:
    """
    Await fn() up to max_attempts times.

    Args:
        fn: Zero-argument coroutine factory; called once per attempt.
        max_attempts: Total attempts including the first (>= 1).
        delay_sec: Sleep before the second attempt.
        retryable: Predicate deciding whether an exception is retried.
        backoff: Multiplier applied to the delay after each retry (1.0 = fixed delay).
        label: Name used in retry log events.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")
    delay = delay_sec
    for attempt in range(1, max_attempts + 1):
        try:
            return await fn()
        except Exception as e:
            if not retryable(e) or attempt >= max_attempts:
                if attempt > 1:
                    logger.warning(
                        "retry_give_up",
                        label=label,
                        attempts=attempt,
                        error=str(e),
                    )
                raise
            logger.info(
                "retry_attempt",
                label=label,
                attempt=attempt,
                max_attempts=max_attempts,
                delay_sec=round(delay, 3),
                error=str(e),
            )
            if delay > 0:
                await asyncio.sleep(delay)
            delay *= backoff
    raise AssertionError("unreachable")
