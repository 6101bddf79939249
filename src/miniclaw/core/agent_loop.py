"""Agent loop orchestration.

One call to :func:`run_agent_loop` drives a single user turn:

    DISPATCHING -> AWAITING_RESPONSE -> RECONCILING -> DISPATCHING ...
                                                    -> DONE | ABORTED

The conversation history passed in the context is mutated in place: the user
message, every assistant reply and one ``tool`` message per requested call are
appended in order.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from miniclaw.core.agent import (
    ChatMessage,
    ToolCall,
    ToolCallSource,
    assistant_message,
    tool_message,
    user_message,
)
from miniclaw.core.llm import LLMResponse
from miniclaw.core.tool_registry import ToolRegistry

DEFAULT_AGENT_MAX_ITERATIONS = 10
ITERATION_LIMIT_MESSAGE = "I've hit the tool-call limit. Here's what I have so far."
_PREVIEW_CHARS = 200

logger = logging.getLogger(__name__)


class LLMBackend(Protocol):
    """Interface the loop needs from a model endpoint client."""

    async def chat(self, history: Sequence[ChatMessage]) -> LLMResponse:
        ...


class LoopState(str, Enum):
    DISPATCHING = "dispatching"
    AWAITING_RESPONSE = "awaiting_response"
    RECONCILING = "reconciling"
    DONE = "done"
    ABORTED = "aborted"


@dataclass
class AgentLoopContext:
    """Encapsulates shared state required by the agent loop."""

    prompt: str
    history: list[ChatMessage]
    llm: LLMBackend
    tool_registry: ToolRegistry
    render_message: Callable[[str, str], None] | None = None
    max_iterations: int = DEFAULT_AGENT_MAX_ITERATIONS


@dataclass(slots=True)
class AgentTurnResult:
    """Outcome of one user turn."""

    text: str
    state: LoopState
    iterations: int


def _preview(text: str) -> str:
    return text if len(text) <= _PREVIEW_CHARS else f"{text[:_PREVIEW_CHARS]}..."


def _reconcile(response: LLMResponse) -> ChatMessage:
    content = response.text
    if response.tool_calls and response.source is ToolCallSource.TEXT_RECOVERED:
        # The text was only the serialised calls; never surface it as prose.
        content = ""
    return assistant_message(content, response.tool_calls or None)


async def _dispatch(ctx: AgentLoopContext, call: ToolCall) -> str:
    tool = ctx.tool_registry.find(call.name)
    if tool is None:
        logger.info("Model requested unknown tool '%s'", call.name)
        _render(ctx, "system", f"[unknown tool: {call.name}]")
        return f"Unknown tool: {call.name}"

    _render(ctx, "tool", f"[tool: {call.name}({json.dumps(call.arguments)})]")
    result = await asyncio.to_thread(ctx.tool_registry.execute, tool, call.arguments)
    _render(ctx, "tool", f"[result: {_preview(result)}]")
    logger.debug(">>> tool result for %s, length: %d", call.name, len(result))
    return result


def _render(ctx: AgentLoopContext, role: str, text: str) -> None:
    if ctx.render_message is not None:
        ctx.render_message(role, text)


async def run_agent_loop(ctx: AgentLoopContext) -> AgentTurnResult:
    """Execute the agent loop for ``ctx.prompt`` and return the final text.

    Endpoint failures (:class:`~miniclaw.core.llm.LLMError`) propagate to the
    caller; tool failures are already text by the time they reach the loop.
    """
    history = ctx.history
    history.append(user_message(ctx.prompt))
    logger.debug(">>> user: %s", ctx.prompt)

    iteration = 0
    state = LoopState.DISPATCHING
    while True:
        iteration += 1
        logger.debug("--- loop iteration %d (%s) ---", iteration, state.value)

        if iteration > ctx.max_iterations:
            history.append(assistant_message(ITERATION_LIMIT_MESSAGE))
            logger.info("Agent loop stopped after %d iterations", ctx.max_iterations)
            return AgentTurnResult(
                text=ITERATION_LIMIT_MESSAGE,
                state=LoopState.ABORTED,
                iterations=ctx.max_iterations,
            )

        state = LoopState.AWAITING_RESPONSE
        response = await ctx.llm.chat(history)

        state = LoopState.RECONCILING
        reply = _reconcile(response)
        history.append(reply)
        logger.debug("<<< assistant: %s", _preview(reply.model_dump_json()))

        if not response.tool_calls:
            logger.debug("<<< no tool calls, returning final text")
            return AgentTurnResult(text=reply.content, state=LoopState.DONE, iterations=iteration)

        for call in response.tool_calls:
            history.append(tool_message(await _dispatch(ctx, call)))

        state = LoopState.DISPATCHING
        logger.debug("--- looping back with %d tool result(s) ---", len(response.tool_calls))


__all__ = [
    "AgentLoopContext",
    "AgentTurnResult",
    "DEFAULT_AGENT_MAX_ITERATIONS",
    "ITERATION_LIMIT_MESSAGE",
    "LLMBackend",
    "LoopState",
    "run_agent_loop",
]
