from __future__ import annotations

import subprocess
from typing import Any

from miniclaw.core.tools.base import Tool, Toolkit, ToolResult

COMMAND_TIMEOUT_SECONDS = 10.0


def _failure_report(stdout: str | None, stderr: str | None, error: str) -> str:
    return f"stdout: {stdout or ''}\nstderr: {stderr or ''}\nerror: {error}"


def _command_handler(payload: dict[str, Any]) -> ToolResult:
    command = payload["command"]
    try:
        completed = subprocess.run(  # noqa: S602
            command,
            shell=True,
            check=False,
            capture_output=True,
            text=True,
            timeout=COMMAND_TIMEOUT_SECONDS,
        )
    except subprocess.TimeoutExpired as exc:
        stdout = exc.stdout.decode("utf-8", "replace") if isinstance(exc.stdout, bytes) else exc.stdout
        stderr = exc.stderr.decode("utf-8", "replace") if isinstance(exc.stderr, bytes) else exc.stderr
        return ToolResult(
            content=_failure_report(
                stdout,
                stderr,
                f"Command timed out after {COMMAND_TIMEOUT_SECONDS:g} seconds: {command}",
            ),
            summary="Command timed out",
        )

    if completed.returncode != 0:
        return ToolResult(
            content=_failure_report(
                completed.stdout,
                completed.stderr,
                f"Command failed with exit code {completed.returncode}: {command}",
            ),
            summary=f"Command exited with {completed.returncode}",
            data={"returncode": completed.returncode},
        )

    return ToolResult(
        content=completed.stdout or "(no output)",
        summary="Command exited with 0",
        data={"returncode": 0},
    )


def command_toolkit() -> Toolkit:
    tool = Tool(
        name="run_command",
        description="Run a shell command and return its stdout and stderr. Has a 10-second timeout.",
        input_schema={
            "type": "object",
            "properties": {
                "command": {
                    "type": "string",
                    "description": "The shell command to execute",
                },
            },
            "required": ["command"],
        },
        handler=_command_handler,
    )
    return Toolkit(
        name="miniclaw.command",
        version="1.0.0",
        description="Shell command execution.",
        tools=[tool],
    )


__all__ = ["COMMAND_TIMEOUT_SECONDS", "command_toolkit"]
