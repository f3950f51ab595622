"""
Data models for features, environments and test runs.

Defines Pydantic models for the execution configuration, queued run
requests, completed run records and backend health responses.
"""

import re
import time
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


TAG_PATTERN = re.compile(r"@[\w-]+")
FEATURE_TITLE_PATTERN = re.compile(r"Feature:\s*(.+)")
SENSITIVE_KEY_PATTERN = re.compile(
    r"PASS|KEY|SECRET|TOKEN|CREDENTIAL|PWD|AUTH|SIGNATURE", re.IGNORECASE
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ExecutionMode(Enum):
    """How a run is carried out."""

    SIMULATED = "simulated"
    REAL = "real"


class ExecutionMethod(Enum):
    """Where the backend spawns Playwright for real runs."""

    HOST = "host"
    DOCKER = "docker"


class RunStatus(Enum):
    """Terminal outcome of a run."""

    PASSED = "passed"
    FAILED = "failed"


class RunOrigin(Enum):
    """Which execution path produced a run record."""

    SIMULATED = "simulated"
    REAL = "real"


class RequestState(Enum):
    """Lifecycle of a single run request."""

    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    DISCARDED = "discarded"


class Feature(BaseModel):
    """A Gherkin feature plus its generated step definitions."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(..., min_length=1, description="Feature identifier")
    title: str = Field(..., description="Feature title")
    content: str = Field(..., description="Gherkin .feature text")
    steps_code: str = Field("", description="Generated automation code")
    created_at: datetime = Field(default_factory=_utcnow)

    @classmethod
    def from_gherkin(
        cls,
        content: str,
        steps_code: str = "",
        feature_id: Optional[str] = None,
    ) -> "Feature":
        """Build a feature, taking the title from its ``Feature:`` line."""
        match = FEATURE_TITLE_PATTERN.search(content)
        title = match.group(1).strip() if match else "Untitled Feature"
        return cls(
            id=feature_id or str(int(time.time() * 1000)),
            title=title,
            content=content,
            steps_code=steps_code,
        )

    @property
    def tags(self) -> List[str]:
        """Unique ``@tags`` found in the feature text, in order of appearance."""
        return list(dict.fromkeys(TAG_PATTERN.findall(self.content)))

    def has_tag(self, tag: str) -> bool:
        return tag in self.content


class EnvVariable(BaseModel):
    """A variable injected into the target environment."""

    model_config = ConfigDict(frozen=True)

    key: str = Field(..., min_length=1)
    value: str = Field("")

    @property
    def is_sensitive(self) -> bool:
        return bool(SENSITIVE_KEY_PATTERN.search(self.key))

    def display_value(self) -> str:
        """Value safe to print in run logs."""
        if not self.is_sensitive:
            return self.value
        if len(self.value) > 8:
            return f"{self.value[:4]}...{self.value[-2:]}"
        return "********"


class Environment(BaseModel):
    """A target environment for test runs."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    url: str = Field(..., min_length=1)
    active: bool = Field(False)
    variables: List[EnvVariable] = Field(default_factory=list)


class ExecutionConfig(BaseModel):
    """Process-wide execution settings, read at the start of each run."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    mode: ExecutionMode = Field(ExecutionMode.SIMULATED)
    execution_method: ExecutionMethod = Field(ExecutionMethod.HOST)
    backend_url: str = Field("http://localhost:3001")
    container_name: str = Field("playwright-runner")

    @field_validator("backend_url")
    @classmethod
    def validate_backend_url(cls, v):
        """Validate and normalise the backend base URL."""
        if not v or not v.startswith(("http://", "https://")):
            raise ValueError(f"Backend URL must be http(s): {v!r}")
        return v.rstrip("/")

    @property
    def is_real(self) -> bool:
        return self.mode == ExecutionMode.REAL


class RunRequest(BaseModel):
    """A feature waiting for, or occupying, the execution slot."""

    model_config = ConfigDict(extra="forbid")

    request_id: str = Field(default_factory=lambda: uuid.uuid4().hex[:12])
    feature: Feature
    tags: List[str] = Field(default_factory=list)
    dry_run: bool = Field(False)
    state: RequestState = Field(RequestState.QUEUED)

    @property
    def is_terminal(self) -> bool:
        return self.state in (
            RequestState.COMPLETED,
            RequestState.FAILED,
            RequestState.DISCARDED,
        )


class RunRecord(BaseModel):
    """Immutable outcome of one completed run."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str
    feature_title: str
    status: RunStatus
    duration: str
    timestamp: datetime = Field(default_factory=_utcnow)
    origin: RunOrigin

    @classmethod
    def create(
        cls,
        feature_title: str,
        status: RunStatus,
        duration: str,
        origin: RunOrigin,
    ) -> "RunRecord":
        """Create a record with a fresh id for the given origin."""
        prefix = "sim" if origin == RunOrigin.SIMULATED else "real"
        run_id = f"{prefix}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:6]}"
        return cls(
            id=run_id,
            feature_title=feature_title,
            status=status,
            duration=duration,
            origin=origin,
        )

    @property
    def is_success(self) -> bool:
        return self.status == RunStatus.PASSED

    def to_summary(self) -> Dict[str, Any]:
        """Create a summary dictionary for logging and display."""
        return {
            "id": self.id,
            "feature": self.feature_title,
            "status": self.status.value,
            "duration": self.duration,
            "timestamp": self.timestamp.isoformat(),
            "origin": self.origin.value,
        }


class HealthStatus(BaseModel):
    """Response of the backend ``/health`` endpoint."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    status: str
    mode: Optional[str] = None
    engine: Optional[str] = None
    tests_dir: Optional[str] = Field(None, alias="testsDir")

    @property
    def is_ok(self) -> bool:
        return self.status == "ok"

    @property
    def inside_container(self) -> bool:
        return self.mode == "inside-container"
