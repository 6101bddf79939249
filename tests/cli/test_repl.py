from collections.abc import Sequence
from io import StringIO

import pytest
from rich.console import Console

from miniclaw.cli.app import ENDPOINT_HINT, ChatREPL
from miniclaw.cli.branding import MINICLAW_THEME
from miniclaw.core.agent import ChatMessage, ToolCall, ToolCallSource
from miniclaw.core.conversation import ConversationService
from miniclaw.core.llm import LLMError, LLMResponse
from miniclaw.core.tool_registry import build_default_registry


class ScriptedLLM:
    def __init__(self, responses: list[LLMResponse]) -> None:
        self.responses = list(responses)
        self.calls = 0

    async def chat(self, history: Sequence[ChatMessage]) -> LLMResponse:
        self.calls += 1
        if not self.responses:
            raise AssertionError("No scripted responses remaining")
        return self.responses.pop(0)


class OfflineLLM:
    async def chat(self, history: Sequence[ChatMessage]) -> LLMResponse:
        raise LLMError("Model endpoint unreachable: [Errno 111] Connection refused")


def _repl(llm) -> tuple[ChatREPL, StringIO]:
    buffer = StringIO()
    console = Console(file=buffer, force_terminal=False, color_system=None, width=100, theme=MINICLAW_THEME)
    service = ConversationService(llm, build_default_registry())
    return ChatREPL(service, console=console), buffer


@pytest.mark.asyncio
async def test_quit_stops_the_repl() -> None:
    llm = ScriptedLLM([])
    repl, buffer = _repl(llm)

    assert await repl.handle_line("  quit ") is False
    assert "Goodbye!" in buffer.getvalue()
    assert llm.calls == 0


@pytest.mark.asyncio
async def test_blank_line_is_ignored() -> None:
    llm = ScriptedLLM([])
    repl, buffer = _repl(llm)

    assert await repl.handle_line("   ") is True
    assert llm.calls == 0
    assert buffer.getvalue() == ""


@pytest.mark.asyncio
async def test_reply_is_rendered() -> None:
    repl, buffer = _repl(ScriptedLLM([LLMResponse(text="Hello from the model")]))

    assert await repl.handle_line("hi") is True

    assert "Hello from the model" in buffer.getvalue()
    assert [message.role for message in repl.service.sessions.get("console")] == ["user", "assistant"]


@pytest.mark.asyncio
async def test_tool_activity_is_rendered() -> None:
    repl, buffer = _repl(
        ScriptedLLM(
            [
                LLMResponse(
                    text="",
                    tool_calls=[ToolCall(name="current_time", arguments={})],
                    source=ToolCallSource.STRUCTURED,
                ),
                LLMResponse(text="It is now."),
            ]
        )
    )

    await repl.handle_line("what time is it?")

    output = buffer.getvalue()
    assert "[tool: current_time({})]" in output
    assert "[result: " in output
    assert "It is now." in output


@pytest.mark.asyncio
async def test_endpoint_failure_prints_hint_and_continues() -> None:
    repl, buffer = _repl(OfflineLLM())

    assert await repl.handle_line("hi") is True

    output = buffer.getvalue()
    assert "Error: Model endpoint unreachable" in output
    assert ENDPOINT_HINT in output


class CrashingLLM:
    async def chat(self, history: Sequence[ChatMessage]) -> LLMResponse:
        raise UnicodeDecodeError("utf-8", b"\x80", 0, 1, "invalid start byte")


@pytest.mark.asyncio
async def test_unexpected_failure_is_reported_and_repl_continues() -> None:
    repl, buffer = _repl(CrashingLLM())

    assert await repl.handle_line("hi") is True

    output = buffer.getvalue()
    assert "Error: 'utf-8' codec can't decode" in output
    assert ENDPOINT_HINT not in output
    assert await repl.handle_line("quit") is False
