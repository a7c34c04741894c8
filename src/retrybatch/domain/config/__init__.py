"""Configuration models with Pydantic validation."""

from retrybatch.domain.config.app import AppConfig
from retrybatch.domain.config.batch import BatchConfig, BatchOptions, ProgressCallback
from retrybatch.domain.config.retry import RetryPolicy

__all__ = [
    "AppConfig",
    "BatchConfig",
    "BatchOptions",
    "ProgressCallback",
    "RetryPolicy",
]
