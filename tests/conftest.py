"""
Pytest configuration and shared fixtures for Run Control tests.

Provides common test fixtures, sample features and helpers for mocking
streamed aiohttp responses.
"""

import asyncio
import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from runcontrol.core.config import Config
from runcontrol.execution.coordinator import RunCoordinator
from runcontrol.execution.models import EnvVariable, Environment, Feature
from runcontrol.library.environments import EnvironmentStore


ENV_VARS = [
    "CI",
    "RUNCONTROL_MODE",
    "RUNCONTROL_EXECUTION_METHOD",
    "RUNCONTROL_BACKEND_URL",
    "RUNCONTROL_CONTAINER_NAME",
    "RUNCONTROL_LOG_LEVEL",
    "RUNCONTROL_HISTORY_LIMIT",
    "RUNCONTROL_TIME_SCALE",
    "API_KEY",
    "GEMINI_API_KEY",
]


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep host environment variables out of configuration tests."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def temp_config(tmp_path):
    """Create a configuration that plays simulations back instantly."""
    return Config(
        artifacts_dir=tmp_path / "artifacts",
        logs_dir=tmp_path / "logs",
        time_scale=0.0,
        history_limit=0,
    )


@pytest.fixture
def login_feature():
    return Feature(
        id="default-1",
        title="User Login",
        content=(
            "@smoke @auth\n"
            "Feature: User Login\n"
            "  Scenario: Valid Login Flow\n"
            "    Given I navigate to the portal\n"
            "    When I perform the secure login sequence\n"
            "    Then I should be fully authenticated and on the dashboard"
        ),
        steps_code='import { Given } from "@cucumber/cucumber";',
    )


@pytest.fixture
def checkout_feature():
    return Feature(
        id="checkout-1",
        title="Checkout",
        content=(
            "@regression\n"
            "Feature: Checkout\n"
            "  Scenario: Pay with card\n"
            "    Given I have items in my cart\n"
            "    When I pay\n"
            "    Then I see a receipt"
        ),
    )


@pytest.fixture
def qa_environment():
    return Environment(
        id="env-qa",
        name="QA Portal",
        url="https://qa.example.com",
        active=True,
        variables=[
            EnvVariable(key="TEST_USER", value="tester@example.com"),
            EnvVariable(key="TEST_PASSWORD", value="HopTest1107"),
            EnvVariable(key="API_TOKEN", value="short"),
        ],
    )


@pytest.fixture
def coordinator(temp_config):
    """Coordinator in simulated mode with no environments."""
    return RunCoordinator(temp_config, session_id="test-session")


@pytest.fixture
def coordinator_with_env(temp_config, qa_environment):
    return RunCoordinator(
        temp_config,
        environments=EnvironmentStore([qa_environment]),
        session_id="test-session",
    )


async def aiter_chunks(chunks, delays=None):
    """Async iterator over byte chunks, optionally pausing before each one."""
    for index, chunk in enumerate(chunks):
        if delays:
            await asyncio.sleep(delays[index])
        yield chunk


def make_stream_response(chunks, status=200, delays=None):
    """Mock aiohttp response whose body streams the given chunks."""
    response = MagicMock()
    response.status = status
    response.content.iter_any = MagicMock(
        side_effect=lambda: aiter_chunks(chunks, delays)
    )
    return response


def make_body_response(body=b"", status=200, headers=None, json_data=None):
    """Mock aiohttp response with a fully buffered body."""
    response = MagicMock()
    response.status = status
    response.headers = headers or {}
    response.read = AsyncMock(return_value=body)
    response.json = AsyncMock(return_value=json_data)
    return response


@pytest.fixture
def chunk_stream():
    """Factory for async byte-chunk iterators."""
    return aiter_chunks


@pytest.fixture
def stream_response():
    """Factory for mocked streaming responses."""
    return make_stream_response


@pytest.fixture
def body_response():
    """Factory for mocked buffered responses."""
    return make_body_response


@pytest.fixture
def restore_root_logger():
    """Put back the root logger handlers replaced by setup_logging."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
