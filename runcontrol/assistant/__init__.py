"""LLM-backed helpers: test generation and natural-language run commands."""

from .commands import CommandAdapter, CommandResult, RUN_TEST_TOOL
from .generator import GherkinGenerator, GeneratedAssets, split_sections
from .llm import LLMClient, CompletionResult, ToolCall

__all__ = [
    "CommandAdapter",
    "CommandResult",
    "RUN_TEST_TOOL",
    "GherkinGenerator",
    "GeneratedAssets",
    "split_sections",
    "LLMClient",
    "CompletionResult",
    "ToolCall",
]
