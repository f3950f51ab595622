"""Backend health probe."""

import time
from typing import Optional

import aiohttp

from ..core.logging_config import get_logger, log_call
from .models import HealthStatus

UNREACHABLE = "unreachable"


class BackendHealthProbe:
    """Checks whether the run-execution backend is reachable and where it runs."""

    def __init__(self, backend_url: str, timeout: float = 5.0):
        self.backend_url = backend_url.rstrip("/")
        self.timeout = timeout
        self.logger = get_logger(__name__)

    async def check(self) -> HealthStatus:
        """
        Probe ``GET /health``.

        Returns:
            The backend's status, or an ``unreachable`` status on any failure
        """
        url = f"{self.backend_url}/health"
        started = time.monotonic()
        try:
            timeout = aiohttp.ClientTimeout(total=self.timeout)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(url) as response:
                    if response.status != 200:
                        raise ValueError(f"status {response.status}")
                    data = await response.json()
            health = HealthStatus.model_validate(data)
        except Exception as e:
            log_call(self.logger, "backend", f"GET {url}", started, error=e)
            return HealthStatus(status=UNREACHABLE)

        log_call(self.logger, "backend", f"GET {url}", started, mode=health.mode)
        return health

    async def is_containerized(self) -> Optional[bool]:
        """True if the backend reports running inside a container, None if unreachable."""
        health = await self.check()
        if health.status == UNREACHABLE:
            return None
        return health.inside_container
