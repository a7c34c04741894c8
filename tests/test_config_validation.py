"""Tests for configuration validation with Pydantic."""

import tempfile
from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from retrybatch.domain.classifier import DEFAULT_RETRYABLE_PATTERNS
from retrybatch.domain.config import AppConfig, BatchConfig, BatchOptions, RetryPolicy
from retrybatch.infrastructure.config.config_manager import ConfigManager, ConfigurationError

ENV_VARS = [
    "RETRYBATCH_MAX_RETRIES",
    "RETRYBATCH_INITIAL_DELAY",
    "RETRYBATCH_MAX_DELAY",
    "RETRYBATCH_BACKOFF_MULTIPLIER",
    "RETRYBATCH_BATCH_SIZE",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Isolate tests from RETRYBATCH_* variables and stray config files"""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


def _write_config(tmp_path: Path, data, name: str = "config.yml") -> Path:
    config_path = tmp_path / name
    config_path.write_text(yaml.dump(data), encoding="utf-8")
    return config_path


class TestRetryPolicyValidation:
    """Tests for RetryPolicy validation."""

    def test_valid_retry_policy(self):
        """Test valid retry policy"""
        policy = RetryPolicy(
            max_retries=5,
            initial_delay=0.5,
            max_delay=10.0,
            backoff_multiplier=3.0,
            retryable_patterns=["ECONNRESET"],
        )
        assert policy.max_retries == 5
        assert policy.max_attempts == 6
        assert policy.retryable_patterns == ("ECONNRESET",)

    def test_defaults(self):
        """Test default policy values"""
        policy = RetryPolicy()
        assert policy.max_retries == 3
        assert policy.initial_delay == 1.0
        assert policy.max_delay == 30.0
        assert policy.backoff_multiplier == 2.0
        assert policy.retryable_patterns == DEFAULT_RETRYABLE_PATTERNS

    def test_zero_retries_allowed(self):
        """Test max_retries may be zero"""
        assert RetryPolicy(max_retries=0).max_attempts == 1

    def test_negative_retries(self):
        """Test max_retries must be non-negative"""
        with pytest.raises(ValidationError, match="max_retries"):
            RetryPolicy(max_retries=-1)

    def test_backoff_multiplier_too_low(self):
        """Test backoff_multiplier below 1.0"""
        with pytest.raises(ValidationError, match="backoff_multiplier"):
            RetryPolicy(backoff_multiplier=0.5)

    def test_negative_delay(self):
        """Test delays must be non-negative"""
        with pytest.raises(ValidationError, match="initial_delay"):
            RetryPolicy(initial_delay=-1)

    def test_initial_delay_above_max_accepted(self):
        """Test inverted delays are accepted (capped when computed)"""
        policy = RetryPolicy(initial_delay=60.0, max_delay=30.0)
        assert policy.initial_delay == 60.0

    def test_empty_pattern_rejected(self):
        """Test empty retryable pattern"""
        with pytest.raises(ValidationError, match="retryable_patterns"):
            RetryPolicy(retryable_patterns=["429", ""])

    def test_policy_is_immutable(self):
        """Test policy cannot be modified after creation"""
        policy = RetryPolicy()
        with pytest.raises(ValidationError):
            policy.max_retries = 10


class TestBatchOptionsValidation:
    """Tests for BatchOptions and BatchConfig validation."""

    def test_defaults(self):
        """Test default batch options"""
        options = BatchOptions()
        assert options.batch_size == 5
        assert options.retry_policy == RetryPolicy()
        assert options.progress_callback is None

    def test_batch_size_zero(self):
        """Test batch_size must be positive"""
        with pytest.raises(ValidationError, match="batch_size"):
            BatchOptions(batch_size=0)
        with pytest.raises(ValidationError, match="batch_size"):
            BatchConfig(batch_size=0)

    def test_progress_callback_must_be_callable(self):
        """Test non-callable progress sink"""
        with pytest.raises(ValidationError, match="progress_callback"):
            BatchOptions(progress_callback="print")

    def test_progress_callback_accepted(self):
        """Test callable progress sink"""
        calls = []
        options = BatchOptions(progress_callback=lambda done, total: calls.append((done, total)))
        options.progress_callback(1, 2)
        assert calls == [(1, 2)]


class TestAppConfigValidation:
    """Tests for AppConfig validation."""

    def test_valid_app_config(self):
        """Test valid application configuration"""
        config = AppConfig()
        assert config.retry.max_retries == 3
        assert config.batch.batch_size == 5

    def test_unknown_field_rejected(self):
        """Test unknown fields are rejected"""
        with pytest.raises(ValidationError, match="extra"):
            AppConfig(unknown_field="value")

    def test_nested_validation(self):
        """Test nested validation works"""
        with pytest.raises(ValidationError, match="backoff_multiplier"):
            AppConfig(retry={"backoff_multiplier": 0.1})


class TestConfigManager:
    """Tests for ConfigManager loading."""

    def test_default_config_is_valid(self):
        """Test default configuration when no file exists"""
        manager = ConfigManager()
        assert manager.config_path is None
        assert isinstance(manager.config, AppConfig)
        assert manager.get_retry_policy() == RetryPolicy()

    def test_load_valid_config_from_file(self, tmp_path):
        """Test file values override defaults"""
        config_path = _write_config(tmp_path, {"retry": {"max_retries": 5}, "batch": {"batch_size": 10}})

        manager = ConfigManager(config_path=config_path)

        assert manager.get_retry_policy().max_retries == 5
        assert manager.get_retry_policy().initial_delay == 1.0
        assert manager.get_batch_config().batch_size == 10

    def test_string_path_accepted(self):
        """Test loading with a string path"""
        config_data = {"retry": {"initial_delay": 0.5}}

        with tempfile.NamedTemporaryFile(mode="w", suffix=".yml", delete=False) as f:
            yaml.dump(config_data, f)
            config_path = f.name

        try:
            manager = ConfigManager(config_path=config_path)
            assert manager.get_retry_policy().initial_delay == 0.5
        finally:
            Path(config_path).unlink()

    def test_finds_config_in_parent_directory(self, tmp_path, monkeypatch):
        """Test .retrybatch.yml is searched upwards from cwd"""
        _write_config(tmp_path, {"batch": {"batch_size": 7}}, name=".retrybatch.yml")
        nested = tmp_path / "scripts" / "backup"
        nested.mkdir(parents=True)
        monkeypatch.chdir(nested)

        manager = ConfigManager()

        assert manager.config_path.resolve() == (tmp_path / ".retrybatch.yml").resolve()
        assert manager.get_batch_config().batch_size == 7

    def test_file_patterns_replace_defaults(self, tmp_path):
        """Test retryable_patterns from file are not merged with defaults"""
        config_path = _write_config(tmp_path, {"retry": {"retryable_patterns": ["deadlock"]}})

        manager = ConfigManager(config_path=config_path)

        assert manager.get_retry_policy().retryable_patterns == ("deadlock",)

    def test_load_invalid_config_raises_error(self, tmp_path):
        """Test loading invalid configuration raises error"""
        config_path = _write_config(tmp_path, {"retry": {"max_retries": -2}})

        with pytest.raises(ConfigurationError, match="retry.max_retries"):
            ConfigManager(config_path=config_path)

    def test_unknown_section_raises_error(self, tmp_path):
        """Test unknown top-level section"""
        config_path = _write_config(tmp_path, {"retries": {"max_retries": 2}})

        with pytest.raises(ConfigurationError, match="retries"):
            ConfigManager(config_path=config_path)

    def test_invalid_yaml_raises_error(self, tmp_path):
        """Test malformed YAML"""
        config_path = tmp_path / "broken.yml"
        config_path.write_text("retry: [unclosed\n", encoding="utf-8")

        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            ConfigManager(config_path=config_path)

    def test_non_mapping_yaml_raises_error(self, tmp_path):
        """Test YAML whose top level is not a mapping"""
        config_path = _write_config(tmp_path, ["retry"])

        with pytest.raises(ConfigurationError, match="mapping"):
            ConfigManager(config_path=config_path)

    def test_env_overrides_work(self, tmp_path, monkeypatch):
        """Test environment variables override file values"""
        config_path = _write_config(tmp_path, {"retry": {"max_retries": 5}, "batch": {"batch_size": 10}})
        monkeypatch.setenv("RETRYBATCH_MAX_RETRIES", "1")
        monkeypatch.setenv("RETRYBATCH_MAX_DELAY", "2.5")
        monkeypatch.setenv("RETRYBATCH_BATCH_SIZE", "3")

        manager = ConfigManager(config_path=config_path)

        assert manager.get_retry_policy().max_retries == 1
        assert manager.get_retry_policy().max_delay == 2.5
        assert manager.get_batch_config().batch_size == 3

    def test_invalid_env_override(self, monkeypatch):
        """Test invalid environment value is reported"""
        monkeypatch.setenv("RETRYBATCH_BATCH_SIZE", "zero")

        with pytest.raises(ConfigurationError, match="batch.batch_size"):
            ConfigManager()

    def test_build_batch_options(self, tmp_path):
        """Test runtime options carry configured values"""
        config_path = _write_config(tmp_path, {"retry": {"max_retries": 1}, "batch": {"batch_size": 4}})
        progress = []

        options = ConfigManager(config_path=config_path).build_batch_options(
            progress_callback=lambda done, total: progress.append(done)
        )

        assert options.batch_size == 4
        assert options.retry_policy.max_retries == 1
        assert options.progress_callback is not None

    def test_get_dotted_key(self):
        """Test dotted key access"""
        manager = ConfigManager()
        assert manager.get("retry.max_retries") == 3
        assert manager.get("batch") == {"batch_size": 5}
        assert manager.get("retry.missing", "fallback") == "fallback"
