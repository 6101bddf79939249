"""Core services for MiniClaw."""

from .agent import (
    ChatMessage,
    ToolCall,
    ToolCallSource,
    assistant_message,
    system_message,
    tool_message,
    user_message,
)
from .tool_calls import extract_tool_calls
from .tool_registry import (
    Tool,
    ToolRegistry,
    ToolRegistryError,
    ToolResult,
    Toolkit,
    ToolkitAlreadyRegisteredError,
    build_default_registry,
)
from .agent_loop import (
    DEFAULT_AGENT_MAX_ITERATIONS,
    ITERATION_LIMIT_MESSAGE,
    AgentLoopContext,
    AgentTurnResult,
    LoopState,
    run_agent_loop,
)
from .config import (
    DEFAULT_CONFIG_DIR,
    ConfigManager,
    ConfigurationError,
    MiniClawConfig,
)

__all__ = [
    "AgentLoopContext",
    "AgentTurnResult",
    "ChatMessage",
    "ConfigManager",
    "ConfigurationError",
    "DEFAULT_AGENT_MAX_ITERATIONS",
    "DEFAULT_CONFIG_DIR",
    "ITERATION_LIMIT_MESSAGE",
    "LoopState",
    "MiniClawConfig",
    "Tool",
    "ToolCall",
    "ToolCallSource",
    "ToolRegistry",
    "ToolRegistryError",
    "ToolResult",
    "Toolkit",
    "ToolkitAlreadyRegisteredError",
    "assistant_message",
    "build_default_registry",
    "extract_tool_calls",
    "run_agent_loop",
    "system_message",
    "tool_message",
    "user_message",
]
