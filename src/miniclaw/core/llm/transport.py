"""HTTP transport helpers for the LLM client."""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterable, Collection, Sequence
from typing import Any

from miniclaw.core.agent import ChatMessage, ToolCall, ToolCallSource
from miniclaw.core.tool_calls import extract_tool_calls

from .errors import LLMError
from .types import ChunkCallback, LLMSettings

logger = logging.getLogger(__name__)


def build_endpoint(settings: LLMSettings) -> str:
    return f"{settings.base_url.rstrip('/')}/api/chat"


def build_headers() -> dict[str, str]:
    return {"Content-Type": "application/json"}


def normalize_messages(
    system_prompt: str | None,
    history: Sequence[ChatMessage],
) -> list[dict[str, Any]]:
    conversation: list[dict[str, Any]] = []
    if system_prompt:
        conversation.append({"role": "system", "content": system_prompt})
    conversation.extend(message.to_wire() for message in history)
    return conversation


def build_payload(
    settings: LLMSettings,
    messages: list[dict[str, Any]],
    tools: list[dict[str, Any]],
    *,
    stream: bool,
) -> dict[str, object]:
    return {
        "model": settings.model,
        "messages": messages,
        "tools": tools,
        "stream": stream,
    }


def parse_message(payload: Any) -> tuple[str, list[ToolCall] | None]:
    """Pull ``(content, tool_calls)`` out of a response or stream chunk.

    ``tool_calls`` is ``None`` when the chunk did not carry any.
    """
    if not isinstance(payload, dict):
        return "", None
    message = payload.get("message")
    if not isinstance(message, dict):
        return "", None
    content = message.get("content")
    text = content if isinstance(content, str) else ""
    raw_calls = message.get("tool_calls")
    if not isinstance(raw_calls, list) or not raw_calls:
        return text, None
    calls = [call for call in (ToolCall.from_wire(item) for item in raw_calls) if call]
    return text, calls or None


def resolve_tool_calls(
    text: str,
    structured: list[ToolCall] | None,
    known_names: Collection[str],
) -> tuple[list[ToolCall], ToolCallSource | None]:
    """Apply the text fallback when the endpoint sent no structured calls."""
    if structured:
        return list(structured), ToolCallSource.STRUCTURED
    if text.strip():
        recovered = extract_tool_calls(text, known_names)
        if recovered:
            logger.debug("Recovered %d tool call(s) from text", len(recovered))
            return recovered, ToolCallSource.TEXT_RECOVERED
    return [], None


async def consume_stream(
    lines: AsyncIterable[str],
    on_chunk: ChunkCallback | None,
) -> tuple[str, list[ToolCall] | None, bool]:
    """Read NDJSON chunks until ``done``; returns text, last tool calls and done flag."""
    text_parts: list[str] = []
    tool_calls: list[ToolCall] | None = None
    done = False
    async for raw_line in lines:
        line = raw_line.strip()
        if not line:
            continue
        try:
            parsed = json.loads(line)
        except json.JSONDecodeError:
            logger.debug("Skipping non-JSON stream line: %s", line)
            continue
        if isinstance(parsed, dict) and parsed.get("error"):
            raise LLMError(f"Model endpoint error: {parsed['error']}")
        chunk_text, chunk_calls = parse_message(parsed)
        if chunk_text:
            text_parts.append(chunk_text)
            if on_chunk:
                on_chunk(chunk_text)
        if chunk_calls:
            tool_calls = chunk_calls
        if isinstance(parsed, dict) and parsed.get("done") is True:
            done = True
            break
    return "".join(text_parts), tool_calls, done


__all__ = [
    "build_endpoint",
    "build_headers",
    "build_payload",
    "consume_stream",
    "normalize_messages",
    "parse_message",
    "resolve_tool_calls",
]
