"""
Test suite for ToolRegistry and the bundled tool sources.

System role: Verification of tool assembly and dispatch
"""

import uuid

import httpx
import pytest
from langchain_core.tools import tool

from chat_engine.core.agentic_system.tools import (
    GlobalToolSource,
    SelectedContextToolSource,
    StaticToolSource,
    ToolContext,
    ToolDefinition,
    ToolRegistry,
    ToolResult,
)


async def _noop(parameters, context):
    return None


@pytest.fixture
def context() -> ToolContext:
    """Provide tool context without a client selection."""
    return ToolContext(session_id=uuid.uuid4(), owner="alice")


class TestToolAssembly:
    """Tests for merging tool sources."""

    def test_sources_are_merged_in_order(self, context) -> None:
        registry = ToolRegistry([
            StaticToolSource([ToolDefinition("a", "first", {}, _noop)]),
            StaticToolSource([ToolDefinition("b", "second", {}, _noop)]),
        ])

        assert [t.name for t in registry.get_available_tools(context)] == ["a", "b"]

    def test_first_definition_of_a_name_wins(self, context) -> None:
        registry = ToolRegistry([
            StaticToolSource([ToolDefinition("a", "global", {}, _noop)]),
            StaticToolSource([ToolDefinition("a", "override attempt", {}, _noop)]),
        ])

        tools = registry.get_available_tools(context)

        assert len(tools) == 1
        assert tools[0].description == "global"

    def test_selected_context_tool_only_offered_with_selection(self, context) -> None:
        registry = ToolRegistry([SelectedContextToolSource()])
        selected = ToolContext(
            session_id=context.session_id,
            owner="alice",
            selected_context={"pipeline_id": 7},
        )

        assert registry.get_available_tools(context) == []
        assert [t.name for t in registry.get_available_tools(selected)] == ["get_selected_context"]

    def test_openai_schema_shape(self) -> None:
        definition = ToolDefinition("a", "desc", {"type": "object", "properties": {}}, _noop)

        assert definition.to_openai_schema() == {
            "type": "function",
            "function": {
                "name": "a",
                "description": "desc",
                "parameters": {"type": "object", "properties": {}},
            },
        }


class TestInvoke:
    """invoke() never raises; failures come back as ToolResult."""

    async def test_unknown_tool(self, context) -> None:
        result = await ToolRegistry().invoke("missing", {}, context)

        assert result.success is False
        assert "not available" in result.error

    async def test_handler_exception_becomes_failure(self, context) -> None:
        async def boom(parameters, ctx):
            raise ValueError("bad input")

        registry = ToolRegistry([StaticToolSource([ToolDefinition("boom", "", {}, boom)])])

        result = await registry.invoke("boom", {}, context)

        assert result == ToolResult(success=False, tool_name="boom", error="ValueError: bad input")

    async def test_dict_with_success_key_is_passed_through(self, context) -> None:
        async def reports(parameters, ctx):
            return {"success": False, "error": "quota"}

        registry = ToolRegistry([StaticToolSource([ToolDefinition("r", "", {}, reports)])])

        result = await registry.invoke("r", {}, context)

        assert result.success is False
        assert result.error == "quota"

    async def test_context_is_threaded_to_handler(self, context) -> None:
        seen = []

        async def handler(parameters, ctx):
            seen.append(ctx)
            return "ok"

        registry = ToolRegistry([StaticToolSource([ToolDefinition("h", "", {}, handler)])])

        result = await registry.invoke("h", {"x": 1}, context)

        assert seen == [context]
        assert result.data == "ok"

    async def test_selected_context_tool_returns_selection(self) -> None:
        selected = ToolContext(session_id=uuid.uuid4(), owner="alice", selected_context={"pipeline_id": 7})
        registry = ToolRegistry([SelectedContextToolSource()])

        result = await registry.invoke("get_selected_context", {}, selected)

        assert result.success is True
        assert result.data == {"pipeline_id": 7}

    async def test_langchain_tool_is_wrapped(self, context) -> None:
        @tool
        def add(a: int, b: int) -> int:
            """Add two integers."""
            return a + b

        definition = ToolDefinition.from_langchain_tool(add)
        registry = ToolRegistry([StaticToolSource([definition])])

        result = await registry.invoke("add", {"a": 2, "b": 3}, context)

        assert definition.name == "add"
        assert "a" in definition.parameters["properties"]
        assert result.data == 5


class TestGlobalTools:
    """Tests for system_health_check and send_ping."""

    async def test_health_check_reports_session_counts(self, test_session_factory, store, context) -> None:
        await store.create("alice", {"source": "chat"})
        source = GlobalToolSource(test_session_factory)

        result = await source.system_health_check({}, context)

        assert result.success is True
        assert result.data["database"] == "ok"
        assert result.data["sessions"] == {"processing": 1, "completed": 0, "error": 0}

    async def test_send_ping_posts_to_each_url(self, test_session_factory, context) -> None:
        received = []

        def handler(request: httpx.Request) -> httpx.Response:
            received.append(str(request.url))
            return httpx.Response(200 if "good" in str(request.url) else 500)

        source = GlobalToolSource(
            test_session_factory,
            http_client_factory=lambda **kwargs: httpx.AsyncClient(transport=httpx.MockTransport(handler), **kwargs),
        )

        result = await source.send_ping(
            {"webhook_url": "https://good.example/hook\n\nhttps://bad.example/hook", "prompt": "go"},
            context,
        )

        assert received == ["https://good.example/hook", "https://bad.example/hook"]
        assert result.success is True
        assert result.data["sent"] == 1
        assert result.data["total"] == 2

    async def test_send_ping_requires_url(self, test_session_factory, context) -> None:
        source = GlobalToolSource(test_session_factory)

        result = await source.send_ping({"webhook_url": "  "}, context)

        assert result.success is False
