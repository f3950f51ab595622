"""Core components for Run Control."""

from .config import Config
from .exceptions import (
    RunControlError,
    ValidationError,
    RunExecutionError,
    ArtifactError,
    ModelError,
    WorkspaceError,
)
from .logging_config import setup_logging, get_logger

__all__ = [
    "Config",
    "RunControlError",
    "ValidationError",
    "RunExecutionError",
    "ArtifactError",
    "ModelError",
    "WorkspaceError",
    "setup_logging",
    "get_logger",
]
