"""File access tools."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from miniclaw.core.tools.base import Tool, Toolkit, ToolResult

MAX_FILE_CHARS = 10_000


def _read_file_handler(payload: dict[str, Any]) -> ToolResult:
    path = Path(payload["path"]).expanduser()
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        return ToolResult(content=f"Error reading file: {exc}", summary=f"Could not read {path}")

    if len(content) > MAX_FILE_CHARS:
        content = content[:MAX_FILE_CHARS] + "\n\n... (truncated at 10,000 chars)"
    return ToolResult(content=content, summary=f"Read {path}", data={"path": str(path)})


def files_toolkit() -> Toolkit:
    return Toolkit(
        name="miniclaw.files",
        version="1.0.0",
        description="Read-only file access.",
        tools=[
            Tool(
                name="read_file",
                description=(
                    "Read the contents of a file at the given path. Returns the file content as a "
                    "string, truncated to 10,000 characters."
                ),
                input_schema={
                    "type": "object",
                    "properties": {
                        "path": {
                            "type": "string",
                            "description": "Absolute or relative file path to read",
                        },
                    },
                    "required": ["path"],
                },
                handler=_read_file_handler,
            )
        ],
    )


__all__ = ["MAX_FILE_CHARS", "files_toolkit"]
