"""Retry executor built on tenacity.

Drives a single asynchronous operation through repeated attempts. The
classifier decides whether a failure is transient and the backoff
calculator decides how long to wait; tenacity owns the attempt loop.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
)
from tenacity.wait import wait_base

from retrybatch.domain.backoff import compute_delay
from retrybatch.domain.classifier import extract_failure_info, is_retryable
from retrybatch.domain.config.retry import RetryPolicy
from retrybatch.domain.models.attempt import Attempt

logger = logging.getLogger(__name__)

T = TypeVar("T")

Operation = Callable[[], Awaitable[T]]
RetryHook = Callable[[Attempt], None]
SleepFunc = Callable[[float], Awaitable[Any]]


class wait_policy_backoff(wait_base):
    """Tenacity wait strategy delegating to compute_delay (no jitter)"""

    def __init__(self, policy: RetryPolicy):
        self.policy = policy

    def __call__(self, retry_state: RetryCallState) -> float:
        # tenacity counts attempts from 1, backoff indexes them from 0
        return compute_delay(
            retry_state.attempt_number - 1,
            self.policy.initial_delay,
            self.policy.max_delay,
            self.policy.backoff_multiplier,
        )


def _describe(error: Optional[BaseException]) -> str:
    info = extract_failure_info(error)
    return info.message or info.code or type(error).__name__


def create_retrying(
    policy: RetryPolicy,
    on_retry: Optional[RetryHook] = None,
    sleep: SleepFunc = asyncio.sleep,
) -> AsyncRetrying:
    """Create a tenacity controller for the given policy

    Args:
        policy: Retry policy
        on_retry: Optional hook called with the failed Attempt before each wait
        sleep: Coroutine function used for backoff waits

    Returns:
        AsyncRetrying instance (reraises the last error unchanged)
    """

    def _retry_condition(exception: BaseException) -> bool:
        return is_retryable(exception, policy.retryable_patterns)

    def _before_log(retry_state: RetryCallState) -> None:
        if retry_state.attempt_number > 1:
            logger.info(f"Retry attempt {retry_state.attempt_number - 1}/{policy.max_retries}...")
        else:
            logger.debug("Attempting operation...")

    def _before_sleep(retry_state: RetryCallState) -> None:
        if retry_state.outcome is None or retry_state.next_action is None:
            return
        error = retry_state.outcome.exception()
        delay = retry_state.next_action.sleep
        attempt = Attempt(index=retry_state.attempt_number - 1, error=error, delay=delay)
        logger.warning(
            f"Operation failed (attempt {attempt.number}/{policy.max_attempts}): "
            f"{_describe(error)}. Retrying in {delay:.2f}s..."
        )
        if on_retry is not None:
            on_retry(attempt)

    return AsyncRetrying(
        stop=stop_after_attempt(policy.max_attempts),
        wait=wait_policy_backoff(policy),
        retry=retry_if_exception(_retry_condition),
        reraise=True,
        before=_before_log,
        before_sleep=_before_sleep,
        sleep=sleep,
    )


async def execute_with_retry(
    operation: Operation[T],
    policy: Optional[RetryPolicy] = None,
    *,
    on_retry: Optional[RetryHook] = None,
    sleep: SleepFunc = asyncio.sleep,
) -> T:
    """Run an operation, retrying transient failures with backoff

    Args:
        operation: Zero-argument callable returning an awaitable
        policy: Retry policy (defaults to RetryPolicy())
        on_retry: Optional hook called with each failed Attempt that will be retried
        sleep: Coroutine function used for backoff waits

    Returns:
        Result of the first successful attempt

    Raises:
        Exception: The most recent error, unchanged, once retries are
            exhausted or the error is not retryable
    """
    if policy is None:
        policy = RetryPolicy()

    attempts = 0

    async def _attempt() -> T:
        nonlocal attempts
        attempts += 1
        return await operation()

    retrying = create_retrying(policy, on_retry=on_retry, sleep=sleep)
    try:
        return await retrying(_attempt)
    except Exception as e:
        logger.error(f"Operation failed after {attempts} attempt(s): {_describe(e)}")
        raise


def retryable(
    policy: Optional[RetryPolicy] = None,
    on_retry: Optional[RetryHook] = None,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """Create a retry decorator for coroutine functions

    Every call of the decorated function runs through execute_with_retry.
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapped(*args: Any, **kwargs: Any) -> T:
            return await execute_with_retry(
                functools.partial(func, *args, **kwargs),
                policy,
                on_retry=on_retry,
            )

        return wrapped

    return decorator
