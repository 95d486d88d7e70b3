"""
Test suite for TurnExecutor.

Covers the single-turn boundary, multi-round loops, the round budget,
pending tool resolution, and the partial-progress failure contract.

System role: Verification of the conversation loop
"""

import uuid
from unittest.mock import AsyncMock

import pytest

from chat_engine.core.agentic_system.provider.chat_provider import ProviderResponse
from chat_engine.core.agentic_system.tools.registry import ToolContext
from chat_engine.core.agentic_system.turn_executor import TurnExecutor
from chat_engine.core.exceptions import (
    ProviderFailureError,
    ToolFailureError,
    UnexpectedFailureError,
)
from chat_engine.models.message import ChatMessage, MessageRole, ToolCall


def _final(text: str) -> ProviderResponse:
    return ProviderResponse(content=text)


def _tools(name: str, call_id: str, **arguments) -> ProviderResponse:
    return ProviderResponse(tool_calls=[ToolCall(id=call_id, name=name, arguments=arguments)])


@pytest.fixture
def context() -> ToolContext:
    """Provide tool context for a throwaway session."""
    return ToolContext(session_id=uuid.uuid4(), owner="alice")


@pytest.fixture
def history() -> list[ChatMessage]:
    """Provide a history holding a single user message."""
    return [ChatMessage.user("What is in the box?")]


async def _run(executor, registry, history, context, **kwargs):
    params = {"provider": "fake", "model": "fake-model", "max_turns": 12}
    params.update(kwargs)
    return await executor.execute(
        history,
        registry.get_available_tools(context),
        params.pop("provider"),
        params.pop("model"),
        params.pop("max_turns"),
        context,
        **params,
    )


class TestSingleTurn:
    """Single-turn mode stops after one model call."""

    async def test_final_answer_completes(self, make_provider, tool_registry, history, context) -> None:
        provider = make_provider(_final("A cat."))
        executor = TurnExecutor(tool_registry, provider)

        result = await _run(executor, tool_registry, history, context)

        assert result.completed is True
        assert result.final_content == "A cat."
        assert result.turn_count == 1
        assert result.has_pending_tools is False
        assert [m.role for m in result.new_messages] == [MessageRole.ASSISTANT]
        assert result.error is None

    async def test_tool_request_is_left_pending(
        self, make_provider, tool_registry, history, context, tool_calls_log
    ) -> None:
        provider = make_provider(_tools("lookup", "call_1", q="box"))
        executor = TurnExecutor(tool_registry, provider)

        result = await _run(executor, tool_registry, history, context)

        assert result.completed is False
        assert result.turn_count == 1
        assert result.has_pending_tools is True
        assert [c.name for c in result.last_tool_calls] == ["lookup"]
        assert tool_calls_log == []
        assert result.max_turns_reached is False

    async def test_pending_tools_run_before_next_model_call(
        self, make_provider, tool_registry, history, context, tool_calls_log
    ) -> None:
        call = ToolCall(id="call_1", name="lookup", arguments={"q": "box"})
        pending_history = [*history, ChatMessage.assistant("", [call])]
        provider = make_provider(_final("It holds a cat."))
        executor = TurnExecutor(tool_registry, provider)

        result = await _run(executor, tool_registry, pending_history, context, turns_consumed=1)

        assert [m.role for m in result.new_messages] == [MessageRole.TOOL, MessageRole.ASSISTANT]
        assert result.new_messages[0].tool_call_id == "call_1"
        assert result.new_messages[0].content == {
            "success": True,
            "tool_name": "lookup",
            "data": {"found": "box"},
        }
        assert [name for name, _, _ in tool_calls_log] == ["lookup"]
        # The model saw the tool result
        assert provider.calls[0]["messages"][-1].role == MessageRole.TOOL
        assert result.completed is True
        assert result.turn_count == 1


class TestMultiTurn:
    """Looping mode keeps going until a final answer or the budget."""

    async def test_runs_tools_until_final_answer(
        self, make_provider, tool_registry, history, context, tool_calls_log
    ) -> None:
        provider = make_provider(
            _tools("lookup", "c1", q="a"),
            _tools("lookup", "c2", q="b"),
            _final("done"),
        )
        executor = TurnExecutor(tool_registry, provider)

        result = await _run(executor, tool_registry, history, context, single_turn=False)

        assert result.completed is True
        assert result.turn_count == 3
        assert [p["q"] for _, p, _ in tool_calls_log] == ["a", "b"]
        assert [m.role for m in result.messages] == [
            MessageRole.USER,
            MessageRole.ASSISTANT,
            MessageRole.TOOL,
            MessageRole.ASSISTANT,
            MessageRole.TOOL,
            MessageRole.ASSISTANT,
        ]

    async def test_budget_exhaustion_sets_max_turns_reached(
        self, make_provider, tool_registry, history, context
    ) -> None:
        provider = make_provider(_tools("lookup", "c1"), _tools("lookup", "c2"))
        executor = TurnExecutor(tool_registry, provider)

        result = await _run(executor, tool_registry, history, context, single_turn=False, max_turns=2)

        assert result.turn_count == 2
        assert result.completed is False
        assert result.max_turns_reached is True
        assert result.warning is not None
        assert result.error is None

    async def test_budget_accounts_for_consumed_turns(
        self, make_provider, tool_registry, history, context
    ) -> None:
        provider = make_provider()
        executor = TurnExecutor(tool_registry, provider)

        result = await _run(executor, tool_registry, history, context, max_turns=3, turns_consumed=3)

        assert provider.calls == []
        assert result.turn_count == 0
        assert result.max_turns_reached is True

    async def test_final_answer_on_last_round_is_not_max_turns(
        self, make_provider, tool_registry, history, context
    ) -> None:
        provider = make_provider(_tools("lookup", "c1"), _final("ok"))
        executor = TurnExecutor(tool_registry, provider)

        result = await _run(executor, tool_registry, history, context, single_turn=False, max_turns=2)

        assert result.completed is True
        assert result.max_turns_reached is False

    async def test_soft_tool_failure_is_reported_to_model(
        self, make_provider, tool_registry, history, context
    ) -> None:
        provider = make_provider(_tools("flaky", "c1"), _final("Sorry, try later."))
        executor = TurnExecutor(tool_registry, provider)

        result = await _run(executor, tool_registry, history, context, single_turn=False)

        assert result.error is None
        tool_message = result.messages[2]
        assert tool_message.content["success"] is False
        assert tool_message.content["error"] == "temporarily unavailable"
        assert result.completed is True


class TestFailures:
    """Failures abort the loop and keep completed exchanges only."""

    async def test_provider_failure_keeps_completed_exchange(
        self, make_provider, tool_registry, history, context
    ) -> None:
        provider = make_provider(_tools("lookup", "c1", q="x"), RuntimeError("quota exceeded"))
        executor = TurnExecutor(tool_registry, provider)

        result = await _run(executor, tool_registry, history, context, single_turn=False)

        assert isinstance(result.error, ProviderFailureError)
        assert "quota exceeded" in result.error.message
        assert result.turn_count == 1
        assert [m.role for m in result.messages] == [
            MessageRole.USER,
            MessageRole.ASSISTANT,
            MessageRole.TOOL,
        ]

    async def test_aborting_tool_discards_failed_round(
        self, make_provider, tool_registry, history, context
    ) -> None:
        provider = make_provider(_tools("lookup", "c1"), _tools("explode", "c2"))
        executor = TurnExecutor(tool_registry, provider)

        result = await _run(executor, tool_registry, history, context, single_turn=False)

        assert isinstance(result.error, ToolFailureError)
        assert result.error.details["tool_name"] == "explode"
        assert len(result.messages) == 3
        assert result.has_pending_tools is False
        assert result.turn_count == 2

    async def test_unexpected_error_is_wrapped(self, make_provider, tool_registry, history, context) -> None:
        provider = make_provider(_tools("lookup", "c1"))
        executor = TurnExecutor(tool_registry, provider)
        tool_registry.invoke = AsyncMock(side_effect=KeyError("boom"))

        result = await _run(executor, tool_registry, history, context, single_turn=False)

        assert isinstance(result.error, UnexpectedFailureError)
        assert result.messages == history
        assert result.new_messages == []
