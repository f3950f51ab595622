"""
Run driver: executes one run request in simulated or real mode.

Simulated runs play back a scripted narrative on fixed delays. Real runs
POST the feature to the run-execution backend and relay its streamed
output into the log sink line by line.
"""

import asyncio
import time
from typing import Any, Dict, Optional

import aiohttp

from ..core.config import Config
from ..core.exceptions import RunExecutionError
from ..core.logging_config import get_logger, log_call, log_run_outcome
from .ledger import RunLedger
from .log_sink import LogSink
from .models import (
    Environment,
    ExecutionConfig,
    ExecutionMethod,
    RunOrigin,
    RunRecord,
    RunRequest,
    RunStatus,
)
from .simulation import build_preamble, build_script, dry_run_line, COMPLETION_DELAY
from .stream import iter_lines


class RunDriver:
    """
    Executes a single run request and records its outcome.

    The driver never raises for transport problems in real mode: a failed
    request becomes a failure line in the log sink plus a ``failed`` record.
    """

    def __init__(
        self,
        config: Config,
        log_sink: LogSink,
        ledger: RunLedger,
        session_id: Optional[str] = None,
    ):
        """
        Initialize the run driver.

        Args:
            config: Run Control configuration
            log_sink: Sink receiving run output
            ledger: Ledger receiving terminal records
            session_id: Identifier used to correlate log records
        """
        self.config = config
        self.log_sink = log_sink
        self.ledger = ledger
        self.logger = get_logger(__name__, session_id=session_id or "local")

    async def execute(
        self,
        request: RunRequest,
        execution_config: ExecutionConfig,
        environment: Optional[Environment] = None,
    ) -> Optional[RunRecord]:
        """
        Execute a run request.

        Args:
            request: The request occupying the execution slot
            execution_config: Settings captured at the start of the run
            environment: Active target environment, if any

        Returns:
            The appended run record, or None for a dry run
        """
        feature = request.feature
        log = self.logger.for_request(request)

        if request.dry_run:
            self.log_sink.append(dry_run_line(feature, request.tags))
            log.info(
                f"Dry run validated: {feature.title}",
                extra={"metadata": {"tags": request.tags}},
            )
            return None

        log.info(
            f"Starting run: {feature.title}",
            extra={
                "metadata": {
                    "mode": execution_config.mode.value,
                    "method": execution_config.execution_method.value,
                    "tags": request.tags,
                }
            },
        )

        if execution_config.is_real:
            record = await self._run_real(request, execution_config)
        else:
            record = await self._run_simulated(request, environment)

        self.ledger.append(record)
        log_run_outcome(log, record)
        return record

    async def _sleep_until(self, started: float, offset: float) -> None:
        """Sleep until ``offset`` seconds (scaled) after ``started``."""
        target = started + offset * self.config.time_scale
        remaining = target - time.monotonic()
        await asyncio.sleep(max(0.0, remaining))

    async def _run_simulated(
        self,
        request: RunRequest,
        environment: Optional[Environment],
    ) -> RunRecord:
        """Play back the scripted narrative for a feature."""
        feature = request.feature
        script = build_script(feature, environment, request.tags)

        self.log_sink.begin_run()
        self.log_sink.extend(build_preamble(feature, environment))

        started = time.monotonic()
        for step in script.steps:
            await self._sleep_until(started, step.delay)
            self.log_sink.append(step.line)

        await self._sleep_until(started, script.steps[-1].delay + COMPLETION_DELAY)

        return RunRecord.create(
            feature_title=feature.title,
            status=RunStatus.PASSED,
            duration=script.duration,
            origin=RunOrigin.SIMULATED,
        )

    def build_payload(
        self, request: RunRequest, execution_config: ExecutionConfig
    ) -> Dict[str, Any]:
        """Body of the ``POST /api/run`` request."""
        feature = request.feature
        return {
            "featureTitle": feature.title,
            "featureCode": feature.content,
            "stepsCode": feature.steps_code,
            "tags": list(request.tags),
            "executionMode": execution_config.execution_method.value,
            "containerName": execution_config.container_name,
        }

    async def _run_real(
        self, request: RunRequest, execution_config: ExecutionConfig
    ) -> RunRecord:
        """Delegate the run to the backend and relay its streamed output."""
        feature = request.feature
        url = f"{execution_config.backend_url}/api/run"
        log = self.logger.for_request(request)

        self.log_sink.begin_run()
        target = execution_config.execution_method.value
        if execution_config.execution_method == ExecutionMethod.DOCKER:
            target += f": {execution_config.container_name}"
        self.log_sink.append(f"> Dispatching {feature.title} to {url} ({target})")

        started = time.monotonic()
        try:
            await self._stream_run(url, self.build_payload(request, execution_config), feature.title)
        except Exception as e:
            log_call(log, "backend", f"POST {url}", started, error=e)
            log.error(
                f"Real run failed: {feature.title} - {e}",
                extra={"metadata": {"error_type": type(e).__name__}},
            )
            self.log_sink.append(f"[Error] Execution failed: {e}")
            return RunRecord.create(
                feature_title=feature.title,
                status=RunStatus.FAILED,
                duration="0s",
                origin=RunOrigin.REAL,
            )

        elapsed = log_call(log, "backend", f"POST {url}", started)

        return RunRecord.create(
            feature_title=feature.title,
            status=RunStatus.PASSED,
            duration=f"{elapsed:.1f}s",
            origin=RunOrigin.REAL,
        )

    async def _stream_run(self, url: str, payload: Dict[str, Any], feature_title: str) -> None:
        """POST the run and append each streamed line to the log sink."""
        timeout = aiohttp.ClientTimeout(total=self.config.run_timeout)

        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.post(url, json=payload) as response:
                if not 200 <= response.status < 300:
                    raise RunExecutionError(
                        f"Backend responded with status {response.status}",
                        feature_title=feature_title,
                        status_code=response.status,
                    )
                if response.content is None:
                    raise RunExecutionError(
                        "Backend response has no body stream",
                        feature_title=feature_title,
                        status_code=response.status,
                    )

                async for line in iter_lines(response.content.iter_any()):
                    self.log_sink.append(line)
