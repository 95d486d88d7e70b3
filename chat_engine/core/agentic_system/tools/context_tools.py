"""
Context-specific chat tools.

Tools that only exist while the client has something selected.

Dependencies: chat_engine.core.agentic_system.tools.registry
System role: Context-dependent tool source for the conversation loop
"""

from typing import Any

from chat_engine.core.agentic_system.tools.registry import ToolContext, ToolDefinition, ToolResult


class SelectedContextToolSource:
    """Offers ``get_selected_context`` when the request carries a selection."""

    def get_tools(self, context: ToolContext) -> list[ToolDefinition]:
        if not context.selected_context:
            return []
        return [
            ToolDefinition(
                name="get_selected_context",
                description=(
                    "Return the item the user currently has selected in the client "
                    "(for example the pipeline or record they are viewing)."
                ),
                parameters={"type": "object", "properties": {}},
                handler=self._get_selected_context,
            )
        ]

    async def _get_selected_context(self, parameters: dict[str, Any], context: ToolContext) -> ToolResult:
        return ToolResult(
            success=True,
            tool_name="get_selected_context",
            data=dict(context.selected_context or {}),
        )
