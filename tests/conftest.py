"""
Shared test fixtures and configuration for entire test suite.

Provides: In-memory async database, session store and dedup cache, scripted
AI provider, a small tool registry and orchestrator factory
Dependencies: pytest, pytest-asyncio, sqlalchemy, aiosqlite
System role: Test infrastructure and fixture management
"""

from typing import Any
from unittest.mock import MagicMock

import pytest

from chat_engine.application.services.dedup_cache import DedupCache
from chat_engine.application.services.session_orchestrator import SessionOrchestrator
from chat_engine.application.services.session_store import SessionStore
from chat_engine.configs.chat import ChatSettings
from chat_engine.core.agentic_system.provider.chat_provider import ProviderResponse
from chat_engine.core.agentic_system.tools.registry import (
    StaticToolSource,
    ToolContext,
    ToolDefinition,
    ToolRegistry,
    ToolResult,
)
from chat_engine.models.message import ChatMessage


class ScriptedProvider:
    """
    AI provider returning pre-scripted replies in order.

    A step that is an Exception instance is raised instead of returned.
    Every call is recorded with a copy of the history it received.
    """

    def __init__(self, *steps: ProviderResponse | Exception) -> None:
        self.steps = list(steps)
        self.calls: list[dict[str, Any]] = []

    async def complete(
        self,
        messages: list[ChatMessage],
        tools: list[dict[str, Any]],
        provider: str,
        model: str,
    ) -> ProviderResponse:
        self.calls.append({
            "messages": list(messages),
            "tools": tools,
            "provider": provider,
            "model": model,
        })
        if not self.steps:
            raise AssertionError("Unexpected provider call")
        step = self.steps.pop(0)
        if isinstance(step, Exception):
            raise step
        return step


@pytest.fixture
async def test_engine():
    """
    Create in-memory SQLite async engine with all tables.

    Yields:
        AsyncEngine: Engine shared by every session opened in the test
    """
    from sqlalchemy.ext.asyncio import create_async_engine
    from sqlalchemy.pool import StaticPool

    from chat_engine.boundary.db.create_tables import create_all_tables, drop_all_tables

    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    await create_all_tables(engine)

    yield engine

    await drop_all_tables(engine)
    await engine.dispose()


@pytest.fixture
def test_session_factory(test_engine):
    """Session factory bound to the test engine."""
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )


@pytest.fixture
async def test_async_db(test_session_factory):
    """
    Create a database session for the test.

    Yields:
        AsyncSession: Test database session with cleanup
    """
    async with test_session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def store(test_async_db) -> SessionStore:
    """Provide SessionStore over the test database."""
    return SessionStore(test_async_db)


@pytest.fixture
def dedup(test_async_db, store) -> DedupCache:
    """Provide DedupCache over the test database."""
    return DedupCache(test_async_db, store, ttl_seconds=60, pending_window_seconds=600)


@pytest.fixture
def make_provider():
    """Factory for ScriptedProvider instances."""
    return ScriptedProvider


@pytest.fixture
def tool_calls_log() -> list[tuple[str, dict[str, Any], ToolContext]]:
    """Records every invocation of the test tools."""
    return []


@pytest.fixture
def tool_registry(tool_calls_log) -> ToolRegistry:
    """
    Registry with three test tools.

    - lookup: succeeds, echoes its arguments
    - flaky: fails softly (reported to the model)
    - explode: fails and aborts the turn
    """

    async def lookup(parameters: dict[str, Any], context: ToolContext) -> dict[str, Any]:
        tool_calls_log.append(("lookup", parameters, context))
        return {"found": parameters.get("q", "")}

    async def flaky(parameters: dict[str, Any], context: ToolContext) -> ToolResult:
        tool_calls_log.append(("flaky", parameters, context))
        return ToolResult(success=False, tool_name="flaky", error="temporarily unavailable")

    async def explode(parameters: dict[str, Any], context: ToolContext) -> None:
        tool_calls_log.append(("explode", parameters, context))
        raise RuntimeError("disk on fire")

    empty_schema = {"type": "object", "properties": {}}
    return ToolRegistry([
        StaticToolSource([
            ToolDefinition("lookup", "Look something up", {"type": "object", "properties": {"q": {"type": "string"}}}, lookup),
            ToolDefinition("flaky", "Sometimes fails", empty_schema, flaky),
            ToolDefinition("explode", "Always fails", empty_schema, explode, abort_on_failure=True),
        ])
    ])


@pytest.fixture
def chat_settings() -> ChatSettings:
    """Chat settings with a configured default provider and model."""
    return ChatSettings(
        default_provider="fake",
        default_model="fake-model",
        max_turns=12,
        ping_owner="admin",
    )


@pytest.fixture
def title_dispatcher() -> MagicMock:
    """Records title dispatches instead of running them."""
    return MagicMock()


@pytest.fixture
def build_orchestrator(store, dedup, tool_registry, chat_settings, title_dispatcher):
    """Factory: SessionOrchestrator wired to the test store and a given provider."""

    def _build(provider, settings: ChatSettings | None = None) -> SessionOrchestrator:
        return SessionOrchestrator(
            store=store,
            registry=tool_registry,
            provider=provider,
            dedup=dedup,
            settings=settings or chat_settings,
            title_dispatcher=title_dispatcher,
        )

    return _build
