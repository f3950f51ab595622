"""
LLM client built on LiteLLM.

Provides plain completions for test generation and tool-call completions
for the natural-language command adapter.
"""

import json
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import litellm

from ..core.config import Config
from ..core.exceptions import ModelError, ValidationError
from ..core.logging_config import get_logger, log_call


@dataclass
class ToolCall:
    """A tool invocation requested by the model."""

    name: str
    arguments: Dict[str, Any] = field(default_factory=dict)


@dataclass
class CompletionResult:
    """Text and tool calls returned by one completion."""

    content: str
    model: str
    tool_calls: List[ToolCall] = field(default_factory=list)
    usage: Optional[Dict[str, int]] = None


def _parse_arguments(raw: Any) -> Dict[str, Any]:
    if isinstance(raw, dict):
        return raw
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise ModelError(f"Tool arguments are not valid JSON: {e}")
    return parsed if isinstance(parsed, dict) else {}


class LLMClient:
    """Thin async wrapper around ``litellm.acompletion``."""

    def __init__(self, config: Config, timeout: int = 60):
        self.config = config
        self.timeout = timeout
        self.logger = get_logger(__name__)

    async def complete(
        self,
        messages: List[Dict[str, Any]],
        model: Optional[str] = None,
        temperature: float = 0.2,
        tools: Optional[List[Dict[str, Any]]] = None,
        task_type: str = "generation",
    ) -> CompletionResult:
        """
        Run one completion.

        Args:
            messages: Chat messages in OpenAI format
            model: LiteLLM model name (defaults to the configured model)
            temperature: Sampling temperature
            tools: Optional tool schemas the model may call
            task_type: Label used in log records

        Returns:
            The model's text and any requested tool calls

        Raises:
            ModelError: If the call fails
            ValidationError: If no messages are given
        """
        if not messages:
            raise ValidationError("Messages cannot be empty", validation_type="input")

        model = model or self.config.model_name
        kwargs: Dict[str, Any] = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "timeout": self.timeout,
        }
        if self.config.api_key:
            kwargs["api_key"] = self.config.api_key
        if tools:
            kwargs["tools"] = tools

        started = time.monotonic()
        try:
            response = await litellm.acompletion(**kwargs)
        except Exception as e:
            log_call(self.logger, "model", f"{model} ({task_type})", started, error=e)
            raise ModelError(f"Model call failed: {e}", model_name=model, task_type=task_type)

        message = response.choices[0].message
        tool_calls = [
            ToolCall(name=call.function.name, arguments=_parse_arguments(call.function.arguments))
            for call in (getattr(message, "tool_calls", None) or [])
        ]
        usage = None
        if getattr(response, "usage", None):
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }

        log_call(
            self.logger, "model", f"{model} ({task_type})", started,
            tool_calls=len(tool_calls), usage=usage,
        )
        return CompletionResult(
            content=message.content or "",
            model=getattr(response, "model", None) or model,
            tool_calls=tool_calls,
            usage=usage,
        )
