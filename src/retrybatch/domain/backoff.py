"""Exponential backoff calculation"""

from __future__ import annotations

from typing import TYPE_CHECKING, List

if TYPE_CHECKING:
    from retrybatch.domain.config.retry import RetryPolicy


def compute_delay(
    attempt_index: int,
    initial_delay: float,
    max_delay: float,
    multiplier: float,
) -> float:
    """Calculate delay before the next attempt

    Delay is initial_delay * multiplier^attempt_index, capped at max_delay.
    Index 0 is the wait after the first failure.

    Args:
        attempt_index: 0-based index of the attempt that just failed
        initial_delay: Delay before the first retry (seconds)
        max_delay: Upper bound for any delay (seconds)
        multiplier: Exponential backoff multiplier

    Returns:
        Delay in seconds (never negative)
    """
    if attempt_index < 0:
        raise ValueError("attempt_index must be >= 0")

    max_delay = max(0.0, float(max_delay))
    try:
        delay = float(initial_delay * (multiplier ** attempt_index))
    except OverflowError:
        return max_delay
    return max(0.0, min(delay, max_delay))


def backoff_schedule(policy: RetryPolicy) -> List[float]:
    """Delays used for each retry allowed by the policy"""
    return [
        compute_delay(
            index,
            policy.initial_delay,
            policy.max_delay,
            policy.backoff_multiplier,
        )
        for index in range(policy.max_retries)
    ]
