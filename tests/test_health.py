"""
Unit tests for BackendHealthProbe.
"""

from unittest.mock import patch

import aiohttp
import pytest

from runcontrol.execution.health import BackendHealthProbe, UNREACHABLE


class TestBackendHealthProbe:
    """Test cases for BackendHealthProbe."""

    @pytest.mark.asyncio
    async def test_inside_container(self, body_response):
        """Test a healthy backend running in a container."""
        probe = BackendHealthProbe("http://localhost:3001/")
        response = body_response(
            json_data={"status": "ok", "mode": "inside-container", "engine": "playwright"}
        )

        with patch("aiohttp.ClientSession.get") as mock_get:
            mock_get.return_value.__aenter__.return_value = response
            health = await probe.check()

        assert mock_get.call_args[0][0] == "http://localhost:3001/health"
        assert health.is_ok
        assert health.inside_container
        assert health.engine == "playwright"

    @pytest.mark.asyncio
    async def test_host_mode(self, body_response):
        probe = BackendHealthProbe("http://localhost:3001")

        with patch("aiohttp.ClientSession.get") as mock_get:
            mock_get.return_value.__aenter__.return_value = body_response(
                json_data={"status": "ok", "mode": "host"}
            )
            assert await probe.is_containerized() is False

    @pytest.mark.asyncio
    async def test_error_status_is_unreachable(self, body_response):
        probe = BackendHealthProbe("http://localhost:3001")

        with patch("aiohttp.ClientSession.get") as mock_get:
            mock_get.return_value.__aenter__.return_value = body_response(status=503)
            health = await probe.check()

        assert health.status == UNREACHABLE
        assert not health.is_ok

    @pytest.mark.asyncio
    async def test_connection_error_is_unreachable(self):
        """Test that transport failures never propagate from the probe."""
        probe = BackendHealthProbe("http://localhost:3001")

        with patch("aiohttp.ClientSession.get") as mock_get:
            mock_get.side_effect = aiohttp.ClientConnectionError("refused")
            assert await probe.is_containerized() is None
