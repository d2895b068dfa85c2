"""
Bounded retry with exponential backoff and jitter for Cosmos operations.

The loop is explicit rather than a decorator: callers pass the policy,
the retry predicate and the sleep function, which keeps the schedule
testable without real delays.
"""

from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, TypeVar

from azure.core.exceptions import ServiceRequestError, ServiceResponseError
from azure.cosmos.exceptions import CosmosHttpResponseError

from cosmos_setup.cosmosdb.exceptions import SetupCancelledError, TransientStoreError
from utils.ml_logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

# 408 timeout, 410 gone (partition moved), 429 throttled, 449 retry-with, 5xx
TRANSIENT_STATUS_CODES = frozenset({408, 410, 429, 449, 500, 502, 503, 504})


@dataclass(frozen=True)
class RetryPolicy:
    """
    Retry schedule: ``backoff_base_s ** n`` seconds plus up to ``max_jitter_ms``
    of jitter before retry ``n`` (1-indexed).

    :param max_retries: Retries after the initial attempt.
    :param backoff_base_s: Exponential base in seconds.
    :param max_jitter_ms: Exclusive upper bound of the random jitter.
    """

    max_retries: int = 5
    backoff_base_s: float = 2.0
    max_jitter_ms: int = 1000

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.max_jitter_ms < 0:
            raise ValueError("max_jitter_ms must be >= 0")

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def compute_delay(self, attempt: int, rng: Optional[random.Random] = None) -> float:
        """Delay in seconds before retry ``attempt``; lies in ``[base**n, base**n + jitter)``."""
        if attempt < 1:
            raise ValueError("attempt is 1-indexed")
        rng = rng or random
        jitter_ms = rng.randrange(0, self.max_jitter_ms) if self.max_jitter_ms else 0
        return self.backoff_base_s**attempt + jitter_ms / 1000.0


def is_transient_error(exc: BaseException) -> bool:
    """Return True when ``exc`` is worth retrying."""
    if isinstance(exc, asyncio.CancelledError):
        return False
    if isinstance(exc, TransientStoreError):
        return True
    if isinstance(exc, CosmosHttpResponseError):
        return exc.status_code in TRANSIENT_STATUS_CODES
    if isinstance(exc, (ServiceRequestError, ServiceResponseError)):
        return True
    return isinstance(exc, (TimeoutError, ConnectionError))


def raise_if_cancelled(cancel_event: Optional[asyncio.Event], operation_name: str) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise SetupCancelledError(f"{operation_name} cancelled")


async def run_cancellable(
    awaitable: Awaitable[T],
    cancel_event: Optional[asyncio.Event],
    operation_name: str,
) -> T:
    """Await ``awaitable`` unless ``cancel_event`` fires first, in which case it is cancelled."""
    if cancel_event is None:
        return await awaitable

    work = asyncio.ensure_future(awaitable)
    waiter = asyncio.ensure_future(cancel_event.wait())
    try:
        await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
        if work.done():
            return work.result()
        raise SetupCancelledError(f"{operation_name} cancelled")
    finally:
        pending = [task for task in (work, waiter) if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)


async def execute_with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    policy: Optional[RetryPolicy] = None,
    should_retry: Callable[[BaseException], bool] = is_transient_error,
    cancel_event: Optional[asyncio.Event] = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    operation_name: str = "operation",
    rng: Optional[random.Random] = None,
) -> T:
    """
    Run ``operation`` until it succeeds, fails with a non-retryable error, or
    exhausts ``policy.max_retries`` retries.

    Cancellation is checked before every attempt and raced against both the
    attempt and the backoff sleep. ``asyncio.CancelledError`` is never retried.
    The last error is re-raised unchanged.
    """
    policy = policy or RetryPolicy()
    attempt = 0

    while True:
        raise_if_cancelled(cancel_event, operation_name)
        try:
            return await run_cancellable(operation(), cancel_event, operation_name)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            if not should_retry(exc):
                logger.error(
                    "Non-retryable error during %s: %s", operation_name, exc
                )
                raise
            if attempt >= policy.max_retries:
                raise
            attempt += 1
            delay = policy.compute_delay(attempt, rng)
            logger.warning(
                "Failed to %s, trying again in %.3fs ... count: %d/%d",
                operation_name,
                delay,
                attempt,
                policy.max_retries,
                exc_info=exc,
                extra={
                    "operation_name": operation_name,
                    "retry_attempt": attempt,
                    "retry_delay_s": delay,
                },
            )

        await run_cancellable(sleep(delay), cancel_event, operation_name)
