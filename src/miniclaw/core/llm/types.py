"""Shared LLM types."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

from miniclaw.core.agent import ToolCall, ToolCallSource

ChunkCallback = Callable[[str], None]

DEFAULT_BASE_URL = "http://localhost:11434"
DEFAULT_MODEL = "qwen2.5-coder:7b-instruct"
DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful coding assistant. You have access to tools for reading files, running "
    "commands, and checking the time. Use them when appropriate to answer the user's questions. "
    "Be concise."
)


@dataclass(slots=True)
class LLMSettings:
    """Runtime configuration for the LLM client."""

    base_url: str = DEFAULT_BASE_URL
    model: str = DEFAULT_MODEL
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    timeout_seconds: float | None = 300.0


@dataclass(slots=True)
class LLMResponse:
    """Normalised result of one endpoint call: text plus requested tool calls."""

    text: str
    tool_calls: list[ToolCall] = field(default_factory=list)
    source: ToolCallSource | None = None
    latency_seconds: float = 0.0
    done: bool = True


__all__ = [
    "ChunkCallback",
    "DEFAULT_BASE_URL",
    "DEFAULT_MODEL",
    "DEFAULT_SYSTEM_PROMPT",
    "LLMResponse",
    "LLMSettings",
]
