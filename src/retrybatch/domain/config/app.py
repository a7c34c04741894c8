"""Main application configuration model."""

from pydantic import BaseModel, ConfigDict, Field

from retrybatch.domain.config.batch import BatchConfig
from retrybatch.domain.config.retry import RetryPolicy


class AppConfig(BaseModel):
    """Main application configuration.

    Root model aggregating all configuration sections. Validation is
    performed at load time to fail fast on configuration errors.

    Attributes:
        retry: Retry policy configuration
        batch: Batch processing configuration
    """

    retry: RetryPolicy = Field(default_factory=RetryPolicy)
    batch: BatchConfig = Field(default_factory=BatchConfig)

    model_config = ConfigDict(
        validate_assignment=True,  # Validate on attribute assignment
        extra="forbid",  # Reject unknown fields
        json_schema_extra={
            "example": {
                "retry": {
                    "max_retries": 3,
                    "initial_delay": 1.0,
                    "max_delay": 30.0,
                    "backoff_multiplier": 2.0,
                    "retryable_patterns": ["ECONNRESET", "ETIMEDOUT", "429", "503"],
                },
                "batch": {
                    "batch_size": 5,
                },
            }
        },
    )
