"""Batch processing configuration models."""

from __future__ import annotations

from typing import Callable, Optional

from pydantic import BaseModel, ConfigDict, Field

from retrybatch.domain.config.retry import RetryPolicy

ProgressCallback = Callable[[int, int], None]


class BatchConfig(BaseModel):
    """Batch section of the configuration file.

    Attributes:
        batch_size: Items processed concurrently per group
    """

    batch_size: int = Field(5, gt=0)


class BatchOptions(BaseModel):
    """Runtime options for a batch run.

    Attributes:
        batch_size: Items processed concurrently per group
        retry_policy: Policy applied to every item individually
        progress_callback: Called with (completed, total) after each group
    """

    batch_size: int = Field(5, gt=0)
    retry_policy: RetryPolicy = Field(default_factory=RetryPolicy)
    progress_callback: Optional[ProgressCallback] = None

    model_config = ConfigDict(frozen=True, extra="forbid")
