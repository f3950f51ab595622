"""
Unit tests for Config class.

Tests configuration defaults, environment variable handling, overrides
and validation for the run coordinator and its clients.
"""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from runcontrol.core.config import Config
from runcontrol.core.exceptions import ValidationError
from runcontrol.execution.models import ExecutionMethod, ExecutionMode


class TestConfig:
    """Test cases for Config class."""

    def test_default_config_creation(self):
        """Test creating config with default values."""
        config = Config()

        assert config.ci_mode is False
        assert config.log_level == "INFO"
        assert config.log_format == "text"
        assert config.execution_mode == "simulated"
        assert config.execution_method == "host"
        assert config.backend_url == "http://localhost:3001"
        assert config.container_name == "playwright-runner"
        assert config.history_limit == 500
        assert config.run_timeout is None
        assert config.api_key is None

    @patch.dict(os.environ, {"CI": "true"})
    def test_ci_mode_detection(self):
        """Test CI mode detection from environment variable."""
        config = Config()

        assert config.is_ci_mode
        assert config.log_format == "json"

    @patch.dict(
        os.environ,
        {
            "RUNCONTROL_MODE": "REAL",
            "RUNCONTROL_EXECUTION_METHOD": "docker",
            "RUNCONTROL_BACKEND_URL": "http://runner:3001/",
            "RUNCONTROL_CONTAINER_NAME": "pw-1",
            "RUNCONTROL_LOG_LEVEL": "debug",
            "RUNCONTROL_HISTORY_LIMIT": "25",
            "RUNCONTROL_TIME_SCALE": "0",
            "API_KEY": "test-key",
        },
    )
    def test_environment_overrides(self):
        """Test that environment variables override defaults."""
        config = Config()

        assert config.execution_mode == "real"
        assert config.execution_method == "docker"
        assert config.backend_url == "http://runner:3001"
        assert config.container_name == "pw-1"
        assert config.log_level == "DEBUG"
        assert config.debug_enabled
        assert config.history_limit == 25
        assert config.time_scale == 0.0
        assert config.api_key == "test-key"

    @patch.dict(os.environ, {"RUNCONTROL_HISTORY_LIMIT": "many"})
    def test_invalid_numeric_override_is_ignored(self):
        config = Config()

        assert config.history_limit == 500

    def test_invalid_log_level_falls_back(self):
        config = Config(log_level="LOUD")

        assert config.log_level == "INFO"

    @patch.dict(os.environ, {"GEMINI_API_KEY": "gemini-key"})
    def test_gemini_key_fallback(self):
        assert Config().api_key == "gemini-key"

    def test_execution_config(self):
        """Test building execution settings from configuration."""
        config = Config(execution_mode="real", execution_method="docker")

        execution = config.execution_config()

        assert execution.mode == ExecutionMode.REAL
        assert execution.execution_method == ExecutionMethod.DOCKER
        assert execution.container_name == "playwright-runner"

    def test_apply_overrides(self, tmp_path):
        config = Config()

        config.apply_overrides(
            {
                "backend_url": "https://ci.example.com/",
                "artifacts_dir": str(tmp_path / "out"),
                "container_name": None,
            }
        )

        assert config.backend_url == "https://ci.example.com"
        assert config.artifacts_dir == tmp_path / "out"
        assert isinstance(config.artifacts_dir, Path)
        assert config.container_name == "playwright-runner"

    def test_apply_unknown_override(self):
        with pytest.raises(ValidationError, match="Unknown setting"):
            Config().apply_overrides({"headless": True})

    def test_to_dict(self, temp_config):
        data = temp_config.to_dict()

        assert data["execution_mode"] == "simulated"
        assert data["history_limit"] == 0
        assert data["artifacts_dir"].endswith("artifacts")
        assert "api_key" not in data

    def test_log_file_path(self, temp_config):
        assert temp_config.get_log_file_path() == temp_config.logs_dir / "runcontrol.log"


class TestConfigValidation:
    """Test cases for Config.validate."""

    def test_valid_config(self, temp_config):
        """Test validation of a default configuration."""
        temp_config.validate()

    @pytest.mark.parametrize(
        "overrides, expected",
        [
            ({"execution_mode": "turbo"}, "Invalid execution mode"),
            ({"execution_method": "vm"}, "Invalid execution method"),
            ({"backend_url": "ftp://backend"}, "Backend URL must be http(s)"),
            ({"execution_method": "docker", "container_name": ""}, "Container name"),
            ({"history_limit": -1}, "History limit"),
            ({"time_scale": -0.5}, "Time scale"),
            ({"run_timeout": 0}, "Run timeout"),
        ],
    )
    def test_invalid_settings(self, temp_config, overrides, expected):
        """Test that each invalid setting is reported."""
        for key, value in overrides.items():
            setattr(temp_config, key, value)

        with pytest.raises(ValidationError) as exc_info:
            temp_config.validate()

        assert exc_info.value.validation_type == "config"
        assert any(expected in v for v in exc_info.value.violations)

    def test_all_errors_reported(self, temp_config):
        temp_config.execution_mode = "turbo"
        temp_config.history_limit = -1

        with pytest.raises(ValidationError) as exc_info:
            temp_config.validate()

        assert len(exc_info.value.violations) == 2
        assert exc_info.value.error_code == "VALIDATION_FAILED"
