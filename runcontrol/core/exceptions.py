"""
Base exception classes for Run Control.

Provides a hierarchy of exceptions for the error types that can occur
while queuing, executing and inspecting test runs.
"""

from typing import Optional, Dict, Any


class RunControlError(Exception):
    """Base exception class for all Run Control errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for structured logging."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "context": self.context,
        }


class ValidationError(RunControlError):
    """Raised when validation fails."""

    def __init__(
        self,
        message: str,
        validation_type: Optional[str] = None,
        violations: Optional[list] = None,
    ):
        super().__init__(message, "VALIDATION_FAILED")
        self.validation_type = validation_type
        self.violations = violations or []
        self.context.update(
            {
                "validation_type": validation_type,
                "violations": violations,
            }
        )


class RunExecutionError(RunControlError):
    """Raised when a real run cannot be dispatched or streamed."""

    def __init__(
        self,
        message: str,
        feature_title: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message, "RUN_EXECUTION_FAILED")
        self.feature_title = feature_title
        self.status_code = status_code
        self.context.update(
            {
                "feature_title": feature_title,
                "status_code": status_code,
            }
        )


class ArtifactError(RunControlError):
    """Raised when run artifacts cannot be resolved."""

    def __init__(
        self,
        message: str,
        run_id: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message, "ARTIFACT_RESOLUTION_FAILED")
        self.run_id = run_id
        self.status_code = status_code
        self.context.update(
            {
                "run_id": run_id,
                "status_code": status_code,
            }
        )


class ModelError(RunControlError):
    """Raised when AI model operations fail."""

    def __init__(
        self,
        message: str,
        model_name: Optional[str] = None,
        task_type: Optional[str] = None,
    ):
        super().__init__(message, "MODEL_ERROR")
        self.model_name = model_name
        self.task_type = task_type
        self.context.update(
            {
                "model_name": model_name,
                "task_type": task_type,
            }
        )


class WorkspaceError(RunControlError):
    """Raised when a workspace file cannot be loaded."""

    def __init__(
        self,
        message: str,
        file_path: Optional[str] = None,
    ):
        super().__init__(message, "WORKSPACE_LOAD_FAILED")
        self.file_path = file_path
        self.context.update({"file_path": file_path})
