"""
Retry/Backoff Policy
====================
Single generic retry wrapper shared by both generator call sites.

- Exponential backoff with additive jitter, capped per delay
- Hard attempt ceiling: the initial call plus `max_retries` retries
- Error classification decides between retrying in place, fast-failing
  so the caller can escalate, and propagating fatal errors untouched

Architecture: tenacity AsyncRetrying + pluggable classifier
"""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from loguru import logger
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

from core.enums import ErrorClass
from core.exceptions import ContentAutomationException

T = TypeVar("T")

# =============================================================================
# ERROR CLASSIFICATION
# =============================================================================

FATAL_MARKERS: tuple[str, ...] = (
    "unauthenticated",
    "permission denied",
    "permission-denied",
    "invalid api key",
    "401",
    "403",
)

FAST_FAIL_MARKERS: tuple[str, ...] = (
    "overloaded",
    "503",
    "service unavailable",
    "rate limit",
    "429",
    "too many requests",
    "resource exhausted",
)


def classify_error(exc: BaseException) -> ErrorClass:
    """
    Classify a failure for the retry policy.

    Domain exceptions carry their own class. Anything else is classified
    by well-known markers in its message; unknown errors are retryable.
    """
    if not isinstance(exc, Exception):
        # Cancellation and interpreter exits are never retried
        return ErrorClass.FATAL

    if isinstance(exc, ContentAutomationException):
        return exc.error_class

    text = f"{type(exc).__name__} {exc}".lower()
    if any(marker in text for marker in FATAL_MARKERS):
        return ErrorClass.FATAL
    if any(marker in text for marker in FAST_FAIL_MARKERS):
        return ErrorClass.FAST_FAIL
    return ErrorClass.RETRYABLE


# =============================================================================
# RETRY ATTEMPT RECORD
# =============================================================================


@dataclass(frozen=True)
class RetryAttempt:
    """One failed attempt that is about to be retried."""

    operation: str
    attempt: int
    delay: float
    error_class: ErrorClass
    error: str


# =============================================================================
# POLICY
# =============================================================================


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    max_retries: int,
    base_delay: float,
    max_delay: float,
    jitter: float = 1.0,
    classify: Callable[[BaseException], ErrorClass] = classify_error,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    operation_name: str = "operation",
    on_retry: Optional[Callable[[RetryAttempt], None]] = None,
) -> T:
    """
    Run `operation` under the retry policy.

    Args:
        operation: Zero-argument coroutine factory, called once per attempt
        max_retries: Retries after the first call (3 means at most 4 calls)
        base_delay: Delay before the first retry, seconds
        max_delay: Upper bound for any single delay, seconds
        jitter: Upper bound of the uniform random addend, seconds
        classify: Error classifier; only RETRYABLE errors are retried
        sleep: Awaitable sleep, injectable for tests
        operation_name: Label for logs
        on_retry: Observer called with each RetryAttempt

    Returns:
        The operation's result

    Raises:
        The last error, unchanged, once attempts are exhausted or the error
        is not retryable.
    """
    if max_retries < 0:
        raise ValueError("max_retries must be non-negative")

    def _before_sleep(retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception()
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        record = RetryAttempt(
            operation=operation_name,
            attempt=retry_state.attempt_number,
            delay=delay,
            error_class=classify(exc),
            error=str(exc),
        )
        logger.warning(
            f"Retrying {operation_name} | attempt={record.attempt}/{max_retries + 1} | "
            f"delay={record.delay:.2f}s | error={record.error}"
        )
        if on_retry is not None:
            on_retry(record)

    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_retries + 1),
        wait=wait_exponential_jitter(initial=base_delay, max=max_delay, exp_base=2, jitter=jitter),
        retry=retry_if_exception(lambda e: classify(e).should_retry),
        before_sleep=_before_sleep,
        sleep=sleep,
        reraise=True,
    )

    async for attempt in retrying:
        with attempt:
            result = await operation()
    return result


__all__ = [
    "with_retry",
    "classify_error",
    "RetryAttempt",
    "FATAL_MARKERS",
    "FAST_FAIL_MARKERS",
]
