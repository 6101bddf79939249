"""Recover tool calls that a model wrote as plain text.

Some models (qwen2.5-coder among them) answer a tool-calling prompt with the
call serialised into the message body instead of the structured
``tool_calls`` field, e.g. ``{"name": "read_file", "arguments": {"path": "x"}}``.
``extract_tool_calls`` turns such text back into :class:`ToolCall` objects.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Collection
from typing import Any

from .agent import ToolCall

logger = logging.getLogger(__name__)

# Only flat objects: neither the call nor its arguments may contain nested braces.
_EMBEDDED_CALL_PATTERN = re.compile(
    r'\{[^{}]*"name"\s*:\s*"(\w+)"[^{}]*"arguments"\s*:\s*(\{[^{}]*\})[^{}]*\}'
)


def _call_from_object(item: Any, known_names: Collection[str]) -> ToolCall | None:
    if not isinstance(item, dict):
        return None
    name = item.get("name")
    if not isinstance(name, str) or name not in known_names:
        return None
    arguments = item.get("arguments")
    if not isinstance(arguments, dict):
        arguments = {}
    return ToolCall(name=name, arguments=arguments)


def _parse_whole(text: str, known_names: Collection[str]) -> list[ToolCall]:
    try:
        parsed = json.loads(text)
    except (json.JSONDecodeError, RecursionError):
        return []

    if isinstance(parsed, list):
        return [call for call in (_call_from_object(item, known_names) for item in parsed) if call]

    call = _call_from_object(parsed, known_names)
    return [call] if call else []


def _scan_embedded(text: str, known_names: Collection[str]) -> list[ToolCall]:
    calls: list[ToolCall] = []
    for match in _EMBEDDED_CALL_PATTERN.finditer(text):
        name, raw_arguments = match.group(1), match.group(2)
        if name not in known_names:
            continue
        try:
            arguments = json.loads(raw_arguments)
        except json.JSONDecodeError:
            logger.debug("Skipping malformed arguments for %s: %s", name, raw_arguments)
            continue
        if isinstance(arguments, dict):
            calls.append(ToolCall(name=name, arguments=arguments))
    return calls


def extract_tool_calls(text: str, known_names: Collection[str]) -> list[ToolCall]:
    """Return the tool calls embedded in ``text``, in order of appearance.

    The whole text is tried as JSON first (a single call object or an array of
    them); failing that, flat call-shaped fragments are located inside free
    prose. Calls naming tools outside ``known_names`` are dropped. Never raises.
    """
    trimmed = text.strip()
    if not trimmed:
        return []
    calls = _parse_whole(trimmed, known_names)
    if calls:
        return calls
    return _scan_embedded(trimmed, known_names)


__all__ = ["extract_tool_calls"]
