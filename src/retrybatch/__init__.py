"""Retry and batch execution for asynchronous operations."""

from retrybatch.application.batch_service import process_batch, process_batch_settled
from retrybatch.domain.backoff import backoff_schedule, compute_delay
from retrybatch.domain.classifier import (
    DEFAULT_RETRYABLE_PATTERNS,
    extract_failure_info,
    is_retryable,
)
from retrybatch.domain.config import BatchOptions, RetryPolicy
from retrybatch.domain.models.attempt import Attempt
from retrybatch.domain.models.failure import FailureInfo
from retrybatch.domain.models.outcome import ItemOutcome
from retrybatch.infrastructure.retry import execute_with_retry, retryable

__all__ = [
    "DEFAULT_RETRYABLE_PATTERNS",
    "Attempt",
    "BatchOptions",
    "FailureInfo",
    "ItemOutcome",
    "RetryPolicy",
    "backoff_schedule",
    "compute_delay",
    "execute_with_retry",
    "extract_failure_info",
    "is_retryable",
    "process_batch",
    "process_batch_settled",
    "retryable",
]
