"""
Natural-language command adapter.

Lets a user type "run the login test with @smoke as a dry run": the text is
handed to the LLM with a single ``run_test_execution`` tool, and a matching
tool call is forwarded to the run coordinator.
"""

from dataclasses import dataclass
from typing import Any, List, Optional

from ..core.logging_config import get_logger
from ..execution.coordinator import RunCoordinator
from ..execution.models import RunRequest
from ..library.features import FeatureLibrary
from .llm import LLMClient

RUN_TOOL_NAME = "run_test_execution"

RUN_TEST_TOOL = {
    "type": "function",
    "function": {
        "name": RUN_TOOL_NAME,
        "description": "Run a Gherkin test scenario from the feature library.",
        "parameters": {
            "type": "object",
            "properties": {
                "scenario_name": {
                    "type": "string",
                    "description": "Name or part of the name of the feature to run",
                },
                "tags": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Optional tag filter, e.g. ['@smoke']",
                },
                "dry_run": {
                    "type": "boolean",
                    "description": "Validate the plan without executing",
                },
            },
            "required": ["scenario_name"],
        },
    },
}

SYSTEM_PROMPT = (
    "You control a Playwright test runner. When the user asks to run a test, "
    f"call {RUN_TOOL_NAME}. Otherwise answer briefly."
)

GENERIC_ERROR_MESSAGE = "Sorry, I couldn't process that command. Please try again."


@dataclass
class CommandResult:
    """Reply to the user, plus the run request that was started if any."""

    message: str
    request: Optional[RunRequest] = None


def normalize_tags(raw: Any) -> List[str]:
    """
    Coerce the model's ``tags`` argument into a list of tag strings.

    Accepts a list or a whitespace-separated string; anything else is ignored.
    """
    if isinstance(raw, str):
        return raw.split()
    if isinstance(raw, (list, tuple)):
        return [str(tag).strip() for tag in raw if isinstance(tag, (str, int)) and str(tag).strip()]
    return []


def _is_true(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1")
    return value is True


class CommandAdapter:
    """Turns free text into run requests via an LLM tool call."""

    def __init__(
        self,
        llm: LLMClient,
        library: FeatureLibrary,
        coordinator: RunCoordinator,
    ):
        self.llm = llm
        self.library = library
        self.coordinator = coordinator
        self.logger = get_logger(__name__)

    async def handle(self, text: str) -> CommandResult:
        """Interpret one user command."""
        messages = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": text},
        ]
        try:
            result = await self.llm.complete(
                messages, tools=[RUN_TEST_TOOL], task_type="command"
            )
        except Exception as e:
            self.logger.warning(f"Command interpretation failed: {e}")
            return CommandResult(message=GENERIC_ERROR_MESSAGE)

        for call in result.tool_calls:
            if call.name == RUN_TOOL_NAME:
                return self._run_scenario(
                    str(call.arguments.get("scenario_name", "")),
                    normalize_tags(call.arguments.get("tags")),
                    _is_true(call.arguments.get("dry_run")),
                )

        return CommandResult(message=result.content or "No action taken.")

    def _run_scenario(self, scenario_name: str, tags: List[str], dry_run: bool) -> CommandResult:
        feature = self.library.find_by_title(scenario_name)
        if feature is None:
            return CommandResult(message=f"No scenario matching '{scenario_name}' was found.")

        request = self.coordinator.run(feature, tags=tags, dry_run=dry_run)
        if request is None:
            return CommandResult(
                message=f"A run is already in progress; '{feature.title}' was not started."
            )

        self.logger.info(
            f"Command started run: {feature.title}",
            extra={"metadata": {"tags": tags, "dry_run": dry_run}},
        )
        mode = "Validating" if dry_run else "Running"
        return CommandResult(message=f"{mode} '{feature.title}'.", request=request)
