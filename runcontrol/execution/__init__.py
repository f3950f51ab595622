"""
Test execution components for Run Control.

This module provides the run coordinator, its execution queue, log sink and
run ledger, the simulated/real run driver, and artifact resolution.
"""

from .artifacts import ArtifactResolver
from .coordinator import RunCoordinator
from .driver import RunDriver
from .health import BackendHealthProbe
from .ledger import RunLedger
from .log_sink import LogSink
from .models import (
    EnvVariable,
    Environment,
    ExecutionConfig,
    ExecutionMethod,
    ExecutionMode,
    Feature,
    HealthStatus,
    RequestState,
    RunOrigin,
    RunRecord,
    RunRequest,
    RunStatus,
)
from .run_queue import ExecutionQueue

__all__ = [
    "ArtifactResolver",
    "RunCoordinator",
    "RunDriver",
    "BackendHealthProbe",
    "RunLedger",
    "LogSink",
    "ExecutionQueue",
    "EnvVariable",
    "Environment",
    "ExecutionConfig",
    "ExecutionMethod",
    "ExecutionMode",
    "Feature",
    "HealthStatus",
    "RequestState",
    "RunOrigin",
    "RunRecord",
    "RunRequest",
    "RunStatus",
]
