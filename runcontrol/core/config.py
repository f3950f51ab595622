"""
Configuration management for Run Control.

Handles environment variables, defaults, and configuration validation
for the run coordinator, the backend clients and the LLM assistant.
"""

import os
from typing import Optional, Dict, Any
from dataclasses import dataclass, field
from pathlib import Path


VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARN", "ERROR"]
VALID_MODES = ["simulated", "real"]
VALID_METHODS = ["host", "docker"]


@dataclass
class Config:
    """Configuration class for Run Control with environment variable support."""

    # Environment detection
    ci_mode: bool = field(default=False)

    # Logging configuration
    log_level: str = field(default="INFO")
    log_format: str = field(default="text")

    # Execution settings
    execution_mode: str = field(default="simulated")
    execution_method: str = field(default="host")
    backend_url: str = field(default="http://localhost:3001")
    container_name: str = field(default="playwright-runner")
    run_timeout: Optional[float] = field(default=None)
    time_scale: float = field(default=1.0)

    # Run history
    history_limit: int = field(default=500)
    scope_logs_per_run: bool = field(default=False)

    # Model configuration
    api_key: Optional[str] = field(default=None)
    model_name: str = field(default="gemini/gemini-2.5-flash")
    fast_model_name: str = field(default="gemini/gemini-2.5-flash-lite")
    vision_model_name: str = field(default="gemini/gemini-3-pro-preview")

    # Directory paths
    artifacts_dir: Path = field(default_factory=lambda: Path.cwd() / "artifacts")
    logs_dir: Path = field(default_factory=lambda: Path.cwd() / "logs")

    def __post_init__(self):
        """Post-initialization normalisation and environment overrides."""
        if os.getenv("CI", "").lower() == "true" and self.ci_mode is False:
            self.ci_mode = True

        mode_env = os.getenv("RUNCONTROL_MODE")
        if mode_env:
            self.execution_mode = mode_env.lower()

        method_env = os.getenv("RUNCONTROL_EXECUTION_METHOD")
        if method_env:
            self.execution_method = method_env.lower()

        backend_env = os.getenv("RUNCONTROL_BACKEND_URL")
        if backend_env:
            self.backend_url = backend_env

        container_env = os.getenv("RUNCONTROL_CONTAINER_NAME")
        if container_env:
            self.container_name = container_env

        log_env = os.getenv("RUNCONTROL_LOG_LEVEL")
        if log_env:
            self.log_level = log_env

        if self.log_level.upper() not in VALID_LOG_LEVELS:
            self.log_level = "INFO"
        else:
            self.log_level = self.log_level.upper()

        # JSON logs in CI unless explicitly set otherwise
        if self.ci_mode and self.log_format == "text":
            self.log_format = "json"

        history_env = os.getenv("RUNCONTROL_HISTORY_LIMIT")
        if history_env is not None:
            try:
                self.history_limit = max(0, int(history_env))
            except ValueError:
                pass

        scale_env = os.getenv("RUNCONTROL_TIME_SCALE")
        if scale_env is not None:
            try:
                self.time_scale = max(0.0, float(scale_env))
            except ValueError:
                pass

        if self.api_key is None:
            self.api_key = os.getenv("API_KEY") or os.getenv("GEMINI_API_KEY")

        self.backend_url = self.backend_url.rstrip("/")

    @property
    def is_ci_mode(self) -> bool:
        """Check if running in CI environment."""
        return self.ci_mode

    @property
    def debug_enabled(self) -> bool:
        """Check if debug logging is enabled."""
        return self.log_level == "DEBUG"

    def get_log_file_path(self) -> Path:
        """Get the main log file path."""
        return self.logs_dir / "runcontrol.log"

    def execution_config(self):
        """Build the process-wide execution settings read at the start of each run."""
        from ..execution.models import ExecutionConfig

        return ExecutionConfig(
            mode=self.execution_mode,
            execution_method=self.execution_method,
            backend_url=self.backend_url,
            container_name=self.container_name,
        )

    def apply_overrides(self, overrides: Dict[str, Any]) -> None:
        """Apply settings from a workspace file or the command line."""
        for key, value in overrides.items():
            if value is None:
                continue
            if not hasattr(self, key):
                from .exceptions import ValidationError

                raise ValidationError(
                    f"Unknown setting: {key}",
                    validation_type="config",
                    violations=[f"Unknown setting: {key}"],
                )
            if key in ("artifacts_dir", "logs_dir"):
                value = Path(value)
            setattr(self, key, value)
        self.backend_url = self.backend_url.rstrip("/")

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary for logging."""
        return {
            "ci_mode": self.ci_mode,
            "log_level": self.log_level,
            "log_format": self.log_format,
            "execution_mode": self.execution_mode,
            "execution_method": self.execution_method,
            "backend_url": self.backend_url,
            "container_name": self.container_name,
            "run_timeout": self.run_timeout,
            "time_scale": self.time_scale,
            "history_limit": self.history_limit,
            "scope_logs_per_run": self.scope_logs_per_run,
            "model_name": self.model_name,
            "artifacts_dir": str(self.artifacts_dir),
            "logs_dir": str(self.logs_dir),
        }

    @classmethod
    def from_env(cls) -> "Config":
        """Create configuration from environment variables."""
        ci = os.getenv("CI", "").lower() == "true"
        return cls(
            ci_mode=ci,
            log_level=os.getenv("RUNCONTROL_LOG_LEVEL", "INFO").upper(),
            log_format="json" if ci else "text",
        )

    def validate(self) -> None:
        """Validate configuration and raise ValidationError if invalid."""
        from .exceptions import ValidationError

        errors = []

        if self.log_level not in VALID_LOG_LEVELS:
            errors.append(
                f"Invalid log level: {self.log_level}. Must be one of {VALID_LOG_LEVELS}"
            )

        if self.execution_mode not in VALID_MODES:
            errors.append(
                f"Invalid execution mode: {self.execution_mode}. Must be one of {VALID_MODES}"
            )

        if self.execution_method not in VALID_METHODS:
            errors.append(
                f"Invalid execution method: {self.execution_method}. Must be one of {VALID_METHODS}"
            )

        if not self.backend_url.startswith(("http://", "https://")):
            errors.append(f"Backend URL must be http(s): {self.backend_url}")

        if self.execution_method == "docker" and not self.container_name:
            errors.append("Container name is required for docker execution")

        if self.history_limit < 0:
            errors.append("History limit cannot be negative")

        if self.time_scale < 0:
            errors.append("Time scale cannot be negative")

        if self.run_timeout is not None and self.run_timeout <= 0:
            errors.append("Run timeout must be positive when set")

        if errors:
            message = "Configuration validation failed: " + "; ".join(errors)
            raise ValidationError(
                message,
                validation_type="config",
                violations=errors,
            )
