"""Conversation message schemas shared by the agent loop and the LLM client."""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

MessageRole = Literal["system", "user", "assistant", "tool"]


class ToolCallSource(str, Enum):
    """Where a batch of tool calls came from."""

    STRUCTURED = "structured"
    TEXT_RECOVERED = "text_recovered"


class ToolCall(BaseModel):
    """Represents a tool invocation requested by the model."""

    model_config = ConfigDict(frozen=True)

    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)

    def to_wire(self) -> dict[str, Any]:
        return {"function": {"name": self.name, "arguments": self.arguments}}

    @classmethod
    def from_wire(cls, payload: Any) -> ToolCall | None:
        """Parse an endpoint ``tool_calls`` entry; returns ``None`` when unusable."""
        if not isinstance(payload, dict):
            return None
        function = payload.get("function", payload)
        if not isinstance(function, dict):
            return None
        name = function.get("name")
        if not isinstance(name, str) or not name:
            return None
        arguments = function.get("arguments")
        if not isinstance(arguments, dict):
            arguments = {}
        return cls(name=name, arguments=arguments)


class ChatMessage(BaseModel):
    """One immutable turn in a conversation history."""

    model_config = ConfigDict(frozen=True)

    role: MessageRole
    content: str = ""
    tool_calls: tuple[ToolCall, ...] | None = None

    def to_wire(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"role": self.role, "content": self.content}
        if self.tool_calls:
            payload["tool_calls"] = [call.to_wire() for call in self.tool_calls]
        return payload


def system_message(content: str) -> ChatMessage:
    return ChatMessage(role="system", content=content)


def user_message(content: str) -> ChatMessage:
    return ChatMessage(role="user", content=content)


def assistant_message(content: str, tool_calls: list[ToolCall] | None = None) -> ChatMessage:
    return ChatMessage(role="assistant", content=content, tool_calls=tuple(tool_calls) if tool_calls else None)


def tool_message(content: str) -> ChatMessage:
    return ChatMessage(role="tool", content=content)


__all__ = [
    "ChatMessage",
    "MessageRole",
    "ToolCall",
    "ToolCallSource",
    "assistant_message",
    "system_message",
    "tool_message",
    "user_message",
]
