"""Tool registry for agent capabilities."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError, create_model

from miniclaw.core.tools import DEFAULT_TOOLKIT_FACTORIES
from miniclaw.core.tools.base import (
    Tool,
    ToolAlreadyRegisteredError,
    ToolInvocationError,
    Toolkit,
    ToolkitAlreadyRegisteredError,
    ToolNotFoundError,
    ToolRegistryError,
    ToolResult,
)

logger = logging.getLogger(__name__)

_JSON_TYPES: dict[str, Any] = {
    "string": str,
    "number": float,
    "integer": int,
    "boolean": bool,
    "object": dict[str, Any],
    "array": list[Any],
}


def _arguments_model(tool: Tool) -> type[BaseModel]:
    """Build a pydantic model mirroring the tool's declared input schema."""
    properties = tool.input_schema.get("properties") or {}
    required = set(tool.input_schema.get("required") or [])
    fields: dict[str, Any] = {}
    for field_name, spec in properties.items():
        json_type = spec.get("type") if isinstance(spec, dict) else None
        annotation = _JSON_TYPES.get(json_type, Any) if isinstance(json_type, str) else Any
        if field_name in required:
            fields[field_name] = (annotation, ...)
        else:
            fields[field_name] = (annotation | None, None)
    return create_model(
        f"{tool.name}_arguments",
        __config__=ConfigDict(extra="allow"),
        **fields,
    )


def _format_validation_error(exc: ValidationError) -> str:
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())) or "arguments"
        problems.append(f"{location}: {error.get('msg', 'invalid value')}")
    return "; ".join(problems)


class ToolRegistry:
    """Stores tool handlers in registration order."""

    def __init__(self, toolkits: list[Toolkit] | None = None) -> None:
        self._tools: dict[str, Tool] = {}
        self._toolkits: dict[str, Toolkit] = {}
        self._models: dict[str, type[BaseModel]] = {}
        if toolkits:
            for toolkit in toolkits:
                self.add_toolkit(toolkit)

    def add_toolkit(self, toolkit: Toolkit) -> None:
        if toolkit.name in self._toolkits:
            raise ToolkitAlreadyRegisteredError(f"Toolkit '{toolkit.name}' already registered")

        registered: list[str] = []
        try:
            for tool in toolkit.tools:
                self.register(tool)
                registered.append(tool.name)
        except Exception:
            for tool_name in registered:
                self.unregister(tool_name)
            raise

        self._toolkits[toolkit.name] = toolkit

    def register(self, tool: Tool) -> None:
        if tool.name in self._tools:
            raise ToolAlreadyRegisteredError(f"Tool '{tool.name}' already registered")
        self._models[tool.name] = _arguments_model(tool)
        self._tools[tool.name] = tool

    def unregister(self, name: str) -> None:
        self._tools.pop(name, None)
        self._models.pop(name, None)

    def available_tools(self) -> list[Tool]:
        return list(self._tools.values())

    def names(self) -> set[str]:
        return set(self._tools)

    def find(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def get(self, name: str) -> Tool:
        try:
            return self._tools[name]
        except KeyError as exc:
            raise ToolNotFoundError(f"Unknown tool '{name}'") from exc

    def available_toolkits(self) -> dict[str, Toolkit]:
        return dict(self._toolkits)

    def catalog(self) -> list[dict[str, Any]]:
        """Render the registry as the endpoint's function-calling tool list."""
        return [
            {
                "type": "function",
                "function": {
                    "name": tool.name,
                    "description": tool.description,
                    "parameters": tool.input_schema,
                },
            }
            for tool in self._tools.values()
        ]

    def validate(self, tool: Tool, payload: dict[str, Any] | None) -> dict[str, Any]:
        model = self._models.get(tool.name) or _arguments_model(tool)
        if payload is not None and not isinstance(payload, dict):
            raise ToolInvocationError(
                f"Invalid arguments for '{tool.name}': expected an object, got {type(payload).__name__}"
            )
        try:
            parsed = model.model_validate(payload or {})
        except ValidationError as exc:
            raise ToolInvocationError(
                f"Invalid arguments for '{tool.name}': {_format_validation_error(exc)}"
            ) from exc
        return parsed.model_dump(exclude_unset=True)

    def invoke(self, name: str, payload: dict[str, Any] | None = None) -> ToolResult:
        tool = self.get(name)
        arguments = self.validate(tool, payload)
        try:
            return tool.handler(arguments)
        except ToolInvocationError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise ToolInvocationError(f"Tool '{name}' failed: {exc}") from exc

    def execute(self, tool: Tool, payload: dict[str, Any] | None = None) -> str:
        """Run a tool and return its text result; failures become text too."""
        try:
            return self.invoke(tool.name, payload).content
        except ToolRegistryError as exc:
            logger.debug("Tool '%s' did not complete: %s", tool.name, exc)
            return str(exc)


def build_default_registry() -> ToolRegistry:
    """Return a registry pre-populated with the built-in toolkits."""
    toolkits = [factory() for factory in DEFAULT_TOOLKIT_FACTORIES]
    return ToolRegistry(toolkits=toolkits)


__all__ = [
    "ToolRegistry",
    "Tool",
    "ToolResult",
    "ToolRegistryError",
    "ToolNotFoundError",
    "ToolAlreadyRegisteredError",
    "ToolInvocationError",
    "Toolkit",
    "ToolkitAlreadyRegisteredError",
    "build_default_registry",
]
