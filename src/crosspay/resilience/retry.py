"""
Retry Strategies using Tenacity.

Chain reads (allowance, balance) are idempotent and may be retried a
bounded number of times. Settlement provider calls and transaction
submissions are never retried here.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from crosspay.core.exceptions import ChainReadError
from crosspay.core.logging import get_logger

logger = get_logger("resilience.retry")

T = TypeVar("T")


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(f"Retrying chain read (attempt {retry_state.attempt_number}): {exc}")


def chain_read_retrying(attempts: int = 3, backoff: float = 0.5) -> AsyncRetrying:
    """
    Retry policy for transient chain reads.

    Args:
        attempts: Total attempts including the first
        backoff: Exponential wait multiplier in seconds
    """
    return AsyncRetrying(
        retry=retry_if_exception_type(ChainReadError),
        wait=wait_exponential(multiplier=backoff, max=backoff * 8),
        stop=stop_after_attempt(attempts),
        reraise=True,
        before_sleep=_log_retry,
    )


async def execute_with_retry(
    func: Callable[..., Awaitable[T]],
    *args: Any,
    attempts: int = 3,
    backoff: float = 0.5,
    **kwargs: Any,
) -> T:
    """Execute an async chain read, retrying on ChainReadError."""
    async for attempt in chain_read_retrying(attempts, backoff):
        with attempt:
            return await func(*args, **kwargs)
    raise AssertionError("unreachable")  # pragma: no cover
