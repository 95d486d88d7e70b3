"""Tool registry and bundled tool sources."""

from chat_engine.core.agentic_system.tools.context_tools import SelectedContextToolSource
from chat_engine.core.agentic_system.tools.global_tools import GlobalToolSource
from chat_engine.core.agentic_system.tools.registry import (
    StaticToolSource,
    ToolContext,
    ToolDefinition,
    ToolRegistry,
    ToolResult,
    ToolSource,
)

__all__ = [
    "GlobalToolSource",
    "SelectedContextToolSource",
    "StaticToolSource",
    "ToolContext",
    "ToolDefinition",
    "ToolRegistry",
    "ToolResult",
    "ToolSource",
]
