"""Glue between channels, the session store and the agent loop."""

from __future__ import annotations

import logging
from collections.abc import Callable

from miniclaw.core.agent_loop import (
    DEFAULT_AGENT_MAX_ITERATIONS,
    AgentLoopContext,
    AgentTurnResult,
    LLMBackend,
    run_agent_loop,
)
from miniclaw.core.tool_registry import ToolRegistry
from miniclaw.session import SessionStore

logger = logging.getLogger(__name__)


class ConversationService:
    """Runs agent turns against per-identity histories.

    Shared by every channel: the registry is read-only and the session store
    hands each identity its own history, one turn at a time.
    """

    def __init__(
        self,
        llm: LLMBackend,
        tool_registry: ToolRegistry,
        sessions: SessionStore | None = None,
        *,
        max_iterations: int = DEFAULT_AGENT_MAX_ITERATIONS,
    ) -> None:
        self.llm = llm
        self.tool_registry = tool_registry
        self.sessions = sessions or SessionStore()
        self.max_iterations = max_iterations

    async def respond(
        self,
        identity: str,
        text: str,
        *,
        render_message: Callable[[str, str], None] | None = None,
    ) -> AgentTurnResult:
        async with self.sessions.turn(identity) as history:
            logger.debug("Turn started for %s (%d messages so far)", identity, len(history))
            return await run_agent_loop(
                AgentLoopContext(
                    prompt=text,
                    history=history,
                    llm=self.llm,
                    tool_registry=self.tool_registry,
                    render_message=render_message,
                    max_iterations=self.max_iterations,
                )
            )


__all__ = ["ConversationService"]
