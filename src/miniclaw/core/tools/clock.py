from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from miniclaw.core.tools.base import Tool, Toolkit, ToolResult


def _current_time_handler(_payload: dict[str, Any]) -> ToolResult:
    now = datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    return ToolResult(content=now, summary="Current time")


def clock_toolkit() -> Toolkit:
    tool = Tool(
        name="current_time",
        description="Returns the current date and time in ISO 8601 format.",
        input_schema={"type": "object", "properties": {}},
        handler=_current_time_handler,
    )
    return Toolkit(
        name="miniclaw.clock",
        version="1.0.0",
        description="Wall clock access.",
        tools=[tool],
    )


__all__ = ["clock_toolkit"]
