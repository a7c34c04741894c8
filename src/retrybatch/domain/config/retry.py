"""Retry policy configuration model."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from retrybatch.domain.classifier import DEFAULT_RETRYABLE_PATTERNS


class RetryPolicy(BaseModel):
    """Configuration for retry logic.

    An initial_delay above max_delay is accepted; delays are capped at
    max_delay when computed.

    Attributes:
        max_retries: Retries after the first attempt (0 = single attempt)
        initial_delay: Delay before the first retry in seconds
        max_delay: Upper bound for any delay in seconds
        backoff_multiplier: Exponential backoff multiplier
        retryable_patterns: Substrings marking an error as transient.
            Replaces the default set entirely when given.
    """

    max_retries: int = Field(3, ge=0)
    initial_delay: float = Field(1.0, ge=0.0)  # Allow 0 for tests
    max_delay: float = Field(30.0, ge=0.0)
    backoff_multiplier: float = Field(2.0, ge=1.0)
    retryable_patterns: tuple[str, ...] = DEFAULT_RETRYABLE_PATTERNS

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator("retryable_patterns")
    @classmethod
    def _reject_empty_patterns(cls, patterns: tuple[str, ...]) -> tuple[str, ...]:
        # An empty pattern would match every error
        if any(not pattern for pattern in patterns):
            raise ValueError("retryable patterns must be non-empty strings")
        return patterns

    @property
    def max_attempts(self) -> int:
        """Total number of attempts, including the first one"""
        return self.max_retries + 1
