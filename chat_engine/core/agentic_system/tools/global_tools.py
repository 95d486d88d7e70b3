"""
Global chat tools.

Tools offered to every conversation regardless of client context:
- system_health_check: database reachability and the caller's session counts
- send_ping: POST a payload to one or more webhook URLs

Dependencies: httpx, sqlalchemy, chat_engine.boundary.db
System role: Always-available tool source for the conversation loop
"""

import logging
from typing import Any

import httpx
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from chat_engine.boundary.db.CRUD.chat_session_crud import chat_session_crud
from chat_engine.core.agentic_system.tools.registry import ToolContext, ToolDefinition, ToolResult

logger = logging.getLogger(__name__)

PING_TIMEOUT_SECONDS = 10.0


class GlobalToolSource:
    """Tool source for tools available in every conversation."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        http_client_factory=httpx.AsyncClient,
    ) -> None:
        """
        Initialize global tools.

        Args:
            session_factory: Factory for short-lived database sessions used by tools
            http_client_factory: httpx client factory (overridable for tests)
        """
        self._session_factory = session_factory
        self._http_client_factory = http_client_factory

    def get_tools(self, context: ToolContext) -> list[ToolDefinition]:
        return [
            ToolDefinition(
                name="system_health_check",
                description=(
                    "Run health diagnostics for the chat engine. Returns database status "
                    "and counts of the current user's sessions by status."
                ),
                parameters={"type": "object", "properties": {}},
                handler=self.system_health_check,
            ),
            ToolDefinition(
                name="send_ping",
                description=(
                    "Send a ping to one or more webhook URLs. Useful for triggering "
                    "external agents or notifying services."
                ),
                parameters={
                    "type": "object",
                    "properties": {
                        "webhook_url": {
                            "type": "string",
                            "description": "URL to POST to. Accepts a single URL or newline-separated URLs.",
                        },
                        "prompt": {
                            "type": "string",
                            "description": "Optional instructions for the receiving agent",
                        },
                        "context": {
                            "type": "object",
                            "description": "Optional structured context forwarded with the ping",
                        },
                    },
                    "required": ["webhook_url"],
                },
                handler=self.send_ping,
            ),
        ]

    async def system_health_check(self, parameters: dict[str, Any], context: ToolContext) -> ToolResult:
        async with self._session_factory() as db:
            try:
                await db.execute(text("SELECT 1"))
            except Exception as e:
                logger.error("Health check database probe failed", extra={"error": str(e)})
                return ToolResult(
                    success=False,
                    tool_name="system_health_check",
                    error=f"Database unreachable: {type(e).__name__}",
                )

            counts = {
                status: await chat_session_crud.count_for_owner(db, context.owner, status=status)
                for status in ("processing", "completed", "error")
            }

        return ToolResult(
            success=True,
            tool_name="system_health_check",
            data={"database": "ok", "sessions": counts},
        )

    async def send_ping(self, parameters: dict[str, Any], context: ToolContext) -> ToolResult:
        raw_urls = str(parameters.get("webhook_url") or "")
        urls = [line.strip() for line in raw_urls.splitlines() if line.strip()]
        if not urls:
            return ToolResult(success=False, tool_name="send_ping", error="webhook_url is required")

        body = {
            "prompt": parameters.get("prompt"),
            "context": parameters.get("context") or {},
            "session_id": str(context.session_id),
        }

        results = []
        async with self._http_client_factory(timeout=PING_TIMEOUT_SECONDS) as client:
            for url in urls:
                try:
                    response = await client.post(url, json=body)
                    results.append({"url": url, "status_code": response.status_code, "ok": response.is_success})
                except httpx.HTTPError as e:
                    logger.warning("Ping delivery failed", extra={"url": url, "error": str(e)})
                    results.append({"url": url, "ok": False, "error": type(e).__name__})

        sent = sum(1 for r in results if r["ok"])
        if sent == 0:
            return ToolResult(
                success=False,
                tool_name="send_ping",
                error=f"Ping failed for all {len(urls)} URL(s)",
            )
        return ToolResult(
            success=True,
            tool_name="send_ping",
            data={"sent": sent, "total": len(urls), "results": results},
        )
