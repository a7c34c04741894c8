"""Configuration manager for loading and validating .retrybatch.yml"""

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import ValidationError

from retrybatch.domain.classifier import DEFAULT_RETRYABLE_PATTERNS
from retrybatch.domain.config import (
    AppConfig,
    BatchConfig,
    BatchOptions,
    ProgressCallback,
    RetryPolicy,
)

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = ".retrybatch.yml"


class ConfigurationError(Exception):
    """Configuration validation error."""

    pass


class ConfigManager:
    """Manages configuration from .retrybatch.yml and environment variables

    Configuration priority:
    1. Default values
    2. .retrybatch.yml file (searched from current directory upwards)
    3. Environment variables (RETRYBATCH_*)
    4. CLI arguments (handled by CLI layer)
    """

    DEFAULT_CONFIG = {
        "retry": {
            "max_retries": 3,
            "initial_delay": 1.0,
            "max_delay": 30.0,
            "backoff_multiplier": 2.0,
            "retryable_patterns": list(DEFAULT_RETRYABLE_PATTERNS),
        },
        "batch": {
            "batch_size": 5,
        },
    }

    # Environment variable -> (section, key)
    ENV_OVERRIDES = {
        "RETRYBATCH_MAX_RETRIES": ("retry", "max_retries"),
        "RETRYBATCH_INITIAL_DELAY": ("retry", "initial_delay"),
        "RETRYBATCH_MAX_DELAY": ("retry", "max_delay"),
        "RETRYBATCH_BACKOFF_MULTIPLIER": ("retry", "backoff_multiplier"),
        "RETRYBATCH_BATCH_SIZE": ("batch", "batch_size"),
    }

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize config manager

        Args:
            config_path: Path to .retrybatch.yml (searches from current dir if None)

        Raises:
            ConfigurationError: If the file cannot be parsed or validation fails
        """
        if isinstance(config_path, str):
            config_path = Path(config_path)
        self.config_path = config_path or self._find_config_file()
        try:
            self.config: AppConfig = self._load_config()
        except ValidationError as e:
            errors = []
            for error in e.errors():
                field = ".".join(str(x) for x in error["loc"])
                msg = error["msg"]
                errors.append(f"  - {field}: {msg}")
            raise ConfigurationError(
                "Configuration validation failed:\n" + "\n".join(errors)
            ) from e

    def _find_config_file(self) -> Optional[Path]:
        """Find .retrybatch.yml starting from current directory

        Returns:
            Path to config file or None if not found
        """
        current = Path.cwd()
        for parent in [current] + list(current.parents):
            config_file = parent / CONFIG_FILE_NAME
            if config_file.exists():
                logger.info(f"Found config file: {config_file}")
                return config_file
        logger.debug(f"No {CONFIG_FILE_NAME} found, using defaults")
        return None

    def _load_config(self) -> AppConfig:
        """Load configuration from file and validate with Pydantic

        Returns:
            Validated AppConfig instance

        Raises:
            ConfigurationError: If the file is not valid YAML or not a mapping
            ValidationError: If configuration is invalid
        """
        config_dict = copy.deepcopy(self.DEFAULT_CONFIG)

        if self.config_path and self.config_path.exists():
            try:
                with open(self.config_path, "r", encoding="utf-8") as f:
                    file_config = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Invalid YAML in {self.config_path}: {e}") from e
            if not isinstance(file_config, dict):
                raise ConfigurationError(f"Top level of {self.config_path} must be a mapping")
            config_dict = self._merge_config(config_dict, file_config)
            logger.info(f"Loaded configuration from {self.config_path}")

        config_dict = self._apply_env_overrides(config_dict)

        return AppConfig(**config_dict)

    def _merge_config(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively merge configuration dictionaries

        Lists are replaced, not merged, so a file's retryable_patterns
        replace the defaults.
        """
        result = base.copy()
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_config(result[key], value)
            else:
                result[key] = value
        return result

    def _apply_env_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Apply environment variable overrides

        Values are passed as strings; Pydantic coerces them.
        """
        for env_name, (section, key) in self.ENV_OVERRIDES.items():
            value = os.getenv(env_name)
            if value:
                logger.debug(f"Overriding {section}.{key} from {env_name}")
                if not isinstance(config.get(section), dict):
                    config[section] = {}
                config[section][key] = value
        return config

    def get_retry_policy(self) -> RetryPolicy:
        """Get retry policy

        Returns:
            Retry policy model
        """
        return self.config.retry

    def get_batch_config(self) -> BatchConfig:
        """Get batch configuration

        Returns:
            Batch configuration model
        """
        return self.config.batch

    def build_batch_options(
        self, progress_callback: Optional[ProgressCallback] = None
    ) -> BatchOptions:
        """Build runtime batch options from the loaded configuration

        Args:
            progress_callback: Optional sink called with (completed, total)

        Returns:
            BatchOptions carrying the configured batch size and retry policy
        """
        return BatchOptions(
            batch_size=self.config.batch.batch_size,
            retry_policy=self.config.retry,
            progress_callback=progress_callback,
        )

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by key (supports dot notation)

        Args:
            key: Configuration key (e.g., "retry.max_retries" or "batch")
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key.split(".")
        value = self.config.model_dump()
        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default
        return value
