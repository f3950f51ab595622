"""
Artifact resolution for completed runs.

Simulated runs get a locally rendered text report; real runs are fetched
from the backend's per-run artifact endpoint and saved as a file.
"""

import re
import time
from pathlib import Path
from typing import List, Optional, Sequence

import aiohttp
from jinja2 import Template

from ..core.config import Config
from ..core.exceptions import ArtifactError
from ..core.logging_config import get_logger, log_call
from .models import RunOrigin, RunRecord


SCREENSHOT_MARKER = "Screenshot saved:"
FILENAME_PATTERN = re.compile(r'filename\*?=(?:UTF-8\'\')?"?([^";]+)"?', re.IGNORECASE)

SIMULATED_REPORT_TEMPLATE = """\
Run Control - Simulated Run Report
==================================
Run ID:    {{ record.id }}
Feature:   {{ record.feature_title }}
Timestamp: {{ record.timestamp.isoformat() }}
Status:    passed
Duration:  {{ record.duration }}
Origin:    {{ record.origin.value }}
{% if screenshots %}
Screenshots:
{% for name in screenshots %}  - {{ name }}
{% endfor %}{% endif %}"""


def screenshots_from_logs(lines: Sequence[str]) -> List[str]:
    """Names of screenshots announced in run output."""
    return [
        line.split(SCREENSHOT_MARKER, 1)[1].strip()
        for line in lines
        if SCREENSHOT_MARKER in line
    ]


def filename_from_disposition(header: Optional[str]) -> Optional[str]:
    """Extract the filename from a Content-Disposition header."""
    if not header:
        return None
    match = FILENAME_PATTERN.search(header)
    if not match:
        return None
    # Only a bare file name is kept; directory parts and dot entries are dropped
    name = Path(match.group(1).strip()).name
    if name in ("", ".", ".."):
        return None
    return name


class ArtifactResolver:
    """
    Retrieves or synthesizes a downloadable bundle for a completed run.

    Branches on the record's origin: simulated runs never touch the network.
    """

    def __init__(self, config: Config, session_id: Optional[str] = None):
        """
        Initialize the artifact resolver.

        Args:
            config: Run Control configuration
            session_id: Identifier used to correlate log records
        """
        self.config = config
        self.logger = get_logger(__name__, session_id=session_id or "local")

    def artifact_url(self, run_id: str, backend_url: Optional[str] = None) -> str:
        base = (backend_url or self.config.backend_url).rstrip("/")
        return f"{base}/api/artifacts/{run_id}"

    def render_report(self, record: RunRecord, log_lines: Sequence[str] = ()) -> str:
        """Render the plain-text report of a simulated run."""
        template = Template(SIMULATED_REPORT_TEMPLATE)
        return template.render(record=record, screenshots=screenshots_from_logs(log_lines))

    async def download_artifacts(
        self,
        record: RunRecord,
        destination: Optional[Path] = None,
        backend_url: Optional[str] = None,
        log_lines: Sequence[str] = (),
    ) -> Path:
        """
        Save the artifact bundle of a run.

        Args:
            record: Completed run record
            destination: Directory to save into (defaults to the artifacts dir)
            backend_url: Backend base URL for real runs
            log_lines: Run output, used to list screenshots in simulated reports

        Returns:
            Path of the saved file
        """
        destination = Path(destination or self.config.artifacts_dir)
        destination.mkdir(parents=True, exist_ok=True)

        if record.origin == RunOrigin.SIMULATED:
            path = destination / f"run-{record.id}-report.txt"
            path.write_text(self.render_report(record, log_lines), encoding="utf-8")
            self.logger.info(
                f"Saved simulated report: {path}",
                extra={"metadata": {"run_id": record.id, "path": str(path)}},
            )
            return path

        return await self._fetch_bundle(record.id, destination, backend_url)

    async def _fetch_bundle(
        self, run_id: str, destination: Path, backend_url: Optional[str]
    ) -> Path:
        """Download a real run's bundle from the backend."""
        url = self.artifact_url(run_id, backend_url)
        started = time.monotonic()

        async with aiohttp.ClientSession() as session:
            async with session.get(url) as response:
                if response.status != 200:
                    log_call(
                        self.logger, "backend", f"GET {url}", started,
                        error=f"status {response.status}", run_id=run_id,
                    )
                    raise ArtifactError(
                        f"Artifact download failed with status {response.status}",
                        run_id=run_id,
                        status_code=response.status,
                    )
                body = await response.read()
                filename = filename_from_disposition(
                    response.headers.get("Content-Disposition")
                ) or f"run-{run_id}-artifacts.txt"

        path = destination / filename
        path.write_bytes(body)
        log_call(
            self.logger, "backend", f"GET {url}", started,
            run_id=run_id, bytes=len(body), file=path.name,
        )
        return path
