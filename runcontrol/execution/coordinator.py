"""
Run coordinator: the single owner of the execution slot.

Holds the execution queue, log sink and run ledger for one session and
serializes runs so that at most one request occupies the slot at a time.
Every mutation of that state goes through the operations defined here.
"""

import asyncio
import uuid
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, Tuple, Union

from ..core.config import Config
from ..core.exceptions import ArtifactError, ValidationError
from ..core.logging_config import get_logger
from ..library.environments import EnvironmentStore
from .artifacts import ArtifactResolver
from .driver import RunDriver
from .ledger import RunLedger
from .log_sink import LogSink
from .models import (
    ExecutionConfig,
    Feature,
    RequestState,
    RunOrigin,
    RunRecord,
    RunRequest,
    RunStatus,
)
from .run_queue import ExecutionQueue


class RunCoordinator:
    """
    Serializes feature runs through a single execution slot.

    Queued requests are drained in FIFO order whenever the slot frees; the
    direct ``run`` entry point is ignored while a run is active.
    """

    def __init__(
        self,
        config: Config,
        environments: Optional[EnvironmentStore] = None,
        driver: Optional[RunDriver] = None,
        resolver: Optional[ArtifactResolver] = None,
        session_id: Optional[str] = None,
    ):
        """
        Initialize the coordinator.

        Args:
            config: Run Control configuration
            environments: Store providing the active target environment
            driver: Optional run driver (built from config when omitted)
            resolver: Optional artifact resolver (built from config when omitted)
            session_id: Identifier used to correlate log records
        """
        self.config = config
        self.session_id = session_id or uuid.uuid4().hex[:16]
        self.logger = get_logger(__name__, session_id=self.session_id)

        self.environments = environments or EnvironmentStore()
        self.queue = ExecutionQueue()
        self.log_sink = LogSink(scope_per_run=config.scope_logs_per_run)
        self.ledger = RunLedger(limit=config.history_limit)

        self.driver = driver or RunDriver(
            config, self.log_sink, self.ledger, session_id=self.session_id
        )
        self.resolver = resolver or ArtifactResolver(config, session_id=self.session_id)

        self._execution_config: ExecutionConfig = config.execution_config()
        self._active: Optional[RunRequest] = None
        self._run_lines: Dict[str, Tuple[str, ...]] = {}
        self._tasks: Set[asyncio.Task] = set()
        self._idle = asyncio.Event()
        self._idle.set()

    # -- configuration -------------------------------------------------

    @property
    def execution_config(self) -> ExecutionConfig:
        return self._execution_config

    def update_execution_config(self, **changes) -> ExecutionConfig:
        """
        Replace the execution settings used by subsequent runs.

        An in-flight run keeps the settings it started with.
        """
        data = self._execution_config.model_dump()
        unknown = set(changes) - set(data)
        if unknown:
            raise ValidationError(
                f"Unknown execution settings: {sorted(unknown)}",
                validation_type="execution_config",
                violations=sorted(unknown),
            )
        data.update({k: v for k, v in changes.items() if v is not None})
        try:
            self._execution_config = ExecutionConfig(**data)
        except ValueError as e:
            raise ValidationError(
                f"Invalid execution settings: {e}",
                validation_type="execution_config",
                violations=[str(e)],
            ) from e

        self.logger.info(
            "Execution settings updated",
            extra={
                "metadata": {
                    "mode": self._execution_config.mode.value,
                    "method": self._execution_config.execution_method.value,
                    "backend_url": self._execution_config.backend_url,
                    "container_name": self._execution_config.container_name,
                }
            },
        )
        return self._execution_config

    # -- slot state ----------------------------------------------------

    @property
    def is_busy(self) -> bool:
        return self._active is not None

    @property
    def active_request(self) -> Optional[RunRequest]:
        return self._active

    @property
    def history(self) -> List[RunRecord]:
        return self.ledger.records()

    @property
    def logs(self):
        return self.log_sink.lines

    # -- entry points --------------------------------------------------

    def run(
        self,
        feature: Feature,
        tags: Optional[List[str]] = None,
        dry_run: bool = False,
    ) -> Optional[RunRequest]:
        """
        Start a feature immediately if the slot is free.

        Returns:
            The started request, or None when a run is already active

        Raises:
            RuntimeError: If called outside a running event loop
        """
        if self.is_busy:
            self.logger.debug(
                f"Run request ignored, slot busy: {feature.title}",
                extra={"metadata": {"active": self._active.feature.title}},
            )
            return None

        loop = asyncio.get_running_loop()
        request = RunRequest(feature=feature, tags=list(tags or []), dry_run=dry_run)
        self._start(request, loop)
        return request

    def enqueue(
        self, items: Iterable[Union[RunRequest, Feature]]
    ) -> List[RunRequest]:
        """Append requests (or bare features) to the queue and drain it."""
        requests = [
            item if isinstance(item, RunRequest) else RunRequest(feature=item)
            for item in items
        ]
        self.queue.enqueue(requests)
        if requests:
            self.logger.info(
                f"Queued {len(requests)} run(s)",
                extra={
                    "metadata": {
                        "features": [r.feature.title for r in requests],
                        "pending": len(self.queue),
                    }
                },
            )
        self._drain()
        return requests

    def run_all(
        self, features: Iterable[Feature], tag: Optional[str] = None
    ) -> List[RunRequest]:
        """Queue every feature (optionally filtered by tag) except the running one."""
        active_id = self._active.feature.id if self._active else None
        selected = [
            f for f in features
            if f.id != active_id and (not tag or f.has_tag(tag))
        ]
        return self.enqueue(selected)

    def cancel(self) -> List[RunRequest]:
        """Discard every pending request; the in-flight run is unaffected."""
        discarded = self.queue.cancel()
        if discarded:
            self.logger.info(
                f"Cancelled {len(discarded)} queued run(s)",
                extra={"metadata": {"features": [r.feature.title for r in discarded]}},
            )
        if self._active is None:
            self._idle.set()
        return discarded

    async def wait_until_idle(self) -> None:
        """Wait until the slot is free and nothing is queued."""
        while True:
            await self._idle.wait()
            if self._active is None and self.queue.is_empty():
                return

    def run_output(self, run_id: str) -> Tuple[str, ...]:
        """Log lines emitted while the given run held the slot."""
        return self._run_lines.get(run_id, ())

    async def download_artifacts(
        self, run_id: str, destination: Optional[Path] = None
    ) -> Path:
        """Save the artifacts of a completed run from this session."""
        record = self.ledger.get(run_id)
        if record is None:
            raise ArtifactError(f"Unknown run: {run_id}", run_id=run_id)
        return await self.resolver.download_artifacts(
            record,
            destination=destination,
            backend_url=self._execution_config.backend_url,
            log_lines=self.run_output(run_id),
        )

    # -- internals -----------------------------------------------------

    def _drain(self) -> None:
        if self._active is not None:
            return
        if self.queue.is_empty():
            self._idle.set()
            return
        # Raises before anything leaves the queue when called outside a loop
        loop = asyncio.get_running_loop()
        self._start(self.queue.pop_next(), loop)

    def _start(self, request: RunRequest, loop: asyncio.AbstractEventLoop) -> None:
        task = loop.create_task(self._execute(request, self._execution_config))
        self._active = request
        request.state = RequestState.RUNNING
        self._idle.clear()

        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _keep_run_output(self, record: Optional[RunRecord], lines: List[str]) -> None:
        if record is None:
            return
        self._run_lines[record.id] = tuple(lines)
        if len(self._run_lines) > len(self.ledger):
            retained = {r.id for r in self.ledger}
            for run_id in [k for k in self._run_lines if k not in retained]:
                del self._run_lines[run_id]

    async def _execute(self, request: RunRequest, execution_config: ExecutionConfig) -> None:
        feature = request.feature
        lines: List[str] = []
        unsubscribe = self.log_sink.subscribe(lines.append)
        record: Optional[RunRecord] = None
        try:
            record = await self.driver.execute(
                request, execution_config, self.environments.active
            )
            if record is not None and not record.is_success:
                request.state = RequestState.FAILED
            else:
                request.state = RequestState.COMPLETED
        except Exception as e:
            request.state = RequestState.FAILED
            self.logger.for_request(request).exception(
                f"Unexpected error while running {feature.title}: {e}"
            )
            self.log_sink.append(f"[Error] Run aborted: {e}")
            if not request.dry_run:
                origin = RunOrigin.REAL if execution_config.is_real else RunOrigin.SIMULATED
                record = RunRecord.create(feature.title, RunStatus.FAILED, "0s", origin)
                self.ledger.append(record)
        finally:
            unsubscribe()
            self._keep_run_output(record, lines)
            if not request.is_terminal:
                request.state = RequestState.FAILED
            self._active = None
            self._drain()
