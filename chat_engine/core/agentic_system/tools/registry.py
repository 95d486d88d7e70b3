"""
Tool registry.

Assembles the invocable tool set for a conversation from independent
sources (global tools plus context-specific tools) and dispatches named
calls to their handlers. ``invoke`` never raises: every failure comes back
as a ``ToolResult`` with ``success=False`` so the turn executor can apply the
tool's own failure policy.

Dependencies: pydantic, langchain_core.tools
System role: Tool discovery and dispatch for the conversation loop
"""

import logging
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

from langchain_core.tools import BaseTool
from langchain_core.utils.function_calling import convert_to_openai_tool
from pydantic import BaseModel

from chat_engine.observability.log_utils import log_exception_with_context

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolContext:
    """
    Per-call context threaded explicitly through the executor and every tool.

    Attributes:
        session_id: Session the turn belongs to
        owner: Principal that owns the session
        source: Interaction kind (chat or ping)
        selected_context: Client-selected context, if any
    """

    session_id: uuid.UUID
    owner: str
    source: str = "chat"
    selected_context: dict[str, Any] | None = None


class ToolResult(BaseModel):
    """Structured outcome of one tool invocation."""

    success: bool
    tool_name: str
    data: Any = None
    error: str | None = None

    def to_payload(self) -> dict[str, Any]:
        """Content stored on the tool-role message and shown to the model."""
        payload: dict[str, Any] = {"success": self.success, "tool_name": self.tool_name}
        if self.success:
            payload["data"] = self.data
        else:
            payload["error"] = self.error
        return payload


ToolHandler = Callable[[dict[str, Any], ToolContext], Awaitable[Any]]


@dataclass
class ToolDefinition:
    """
    A tool the model may call.

    The handler receives the call parameters and the ToolContext. It may
    return a ToolResult directly, a dict with a ``success`` key (passed
    through as-is), or any other value (wrapped as successful data).

    Attributes:
        name: Unique tool name
        description: Description shown to the model
        parameters: JSON schema of the parameters object
        handler: Async callable executing the tool
        abort_on_failure: A failed call aborts the turn instead of being reported to the model
    """

    name: str
    description: str
    parameters: dict[str, Any]
    handler: ToolHandler
    abort_on_failure: bool = False

    def to_openai_schema(self) -> dict[str, Any]:
        """Function-calling schema accepted by LangChain ``bind_tools``."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }

    @classmethod
    def from_langchain_tool(cls, tool: BaseTool, abort_on_failure: bool = False) -> "ToolDefinition":
        """
        Wrap a LangChain tool (e.g. one built with ``@tool``).

        The ToolContext is not forwarded; use a plain handler when the tool
        needs session information.
        """
        schema = convert_to_openai_tool(tool)["function"]

        async def handler(parameters: dict[str, Any], context: ToolContext) -> Any:
            return await tool.ainvoke(parameters)

        return cls(
            name=schema["name"],
            description=schema.get("description", ""),
            parameters=schema.get("parameters", {"type": "object", "properties": {}}),
            handler=handler,
            abort_on_failure=abort_on_failure,
        )


class ToolSource(Protocol):
    """A provider of tool definitions, consulted on every lookup."""

    def get_tools(self, context: ToolContext) -> list[ToolDefinition]: ...


@dataclass
class StaticToolSource:
    """Source that always offers the same tools."""

    tools: list[ToolDefinition] = field(default_factory=list)

    def get_tools(self, context: ToolContext) -> list[ToolDefinition]:
        return list(self.tools)


class ToolRegistry:
    """Merges tool sources and dispatches tool calls."""

    def __init__(self, sources: list[ToolSource] | None = None) -> None:
        """
        Initialize registry.

        Args:
            sources: Tool sources in precedence order (first definition of a name wins)
        """
        self._sources: list[ToolSource] = list(sources or [])

    @property
    def sources(self) -> list[ToolSource]:
        return list(self._sources)

    def get_available_tools(self, context: ToolContext) -> list[ToolDefinition]:
        """
        Assemble the tool set for a conversation.

        Args:
            context: Per-call tool context

        Returns:
            list[ToolDefinition]: Merged, de-duplicated definitions
        """
        tools: dict[str, ToolDefinition] = {}
        for source in self._sources:
            for definition in source.get_tools(context):
                if definition.name in tools:
                    logger.warning(
                        "Duplicate tool name ignored",
                        extra={"tool_name": definition.name, "source": type(source).__name__},
                    )
                    continue
                tools[definition.name] = definition
        return list(tools.values())

    def get_tool(self, name: str, context: ToolContext) -> ToolDefinition | None:
        for definition in self.get_available_tools(context):
            if definition.name == name:
                return definition
        return None

    async def invoke(
        self,
        name: str,
        parameters: dict[str, Any],
        context: ToolContext,
    ) -> ToolResult:
        """
        Execute a named tool.

        Args:
            name: Tool name requested by the model
            parameters: Call parameters
            context: Per-call tool context

        Returns:
            ToolResult: Never raises; failures are returned with success=False
        """
        definition = self.get_tool(name, context)
        if definition is None:
            logger.warning("Unknown tool requested", extra={"tool_name": name})
            return ToolResult(success=False, tool_name=name, error=f"Tool '{name}' is not available")

        try:
            raw = await definition.handler(parameters, context)
        except Exception as e:
            log_exception_with_context(
                logger,
                "Tool handler raised",
                e,
                tool_name=name,
                session_id=context.session_id,
            )
            return ToolResult(success=False, tool_name=name, error=f"{type(e).__name__}: {e}")

        return _coerce_result(name, raw)


def _coerce_result(name: str, raw: Any) -> ToolResult:
    if isinstance(raw, ToolResult):
        return raw
    if isinstance(raw, dict) and "success" in raw:
        success = bool(raw["success"])
        return ToolResult(
            success=success,
            tool_name=name,
            data=raw.get("data", {k: v for k, v in raw.items() if k not in ("success", "error")}),
            error=None if success else str(raw.get("error") or "Tool reported failure"),
        )
    return ToolResult(success=True, tool_name=name, data=raw)
