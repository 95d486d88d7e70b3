"""
Turn executor: the conversation loop.

Given a message history and a tool set, calls the AI provider and, when the
reply requests tools, runs them through the ToolRegistry and feeds the
results back, repeating until a final answer, the single-turn boundary, the
round budget, or a failure.

Tool calls left unresolved on the tail assistant message (by an earlier
single-turn exchange) are executed first, so resuming a session is the same
call as starting one.

Dependencies: chat_engine.core.agentic_system.tools, chat_engine.core.agentic_system.provider
System role: Model call -> tool dispatch -> model call loop
"""

import logging
from dataclasses import dataclass, field

from chat_engine.core.agentic_system.provider.chat_provider import AIProvider
from chat_engine.core.agentic_system.tools.registry import ToolContext, ToolDefinition, ToolRegistry
from chat_engine.core.exceptions import (
    ProviderFailureError,
    ToolFailureError,
    TurnFailureError,
    UnexpectedFailureError,
)
from chat_engine.models.message import ChatMessage, ToolCall, unresolved_tool_calls
from chat_engine.observability.log_utils import log_exception_with_context, log_with_context

logger = logging.getLogger(__name__)


@dataclass
class TurnResult:
    """
    Outcome of one executor invocation.

    On failure ``messages`` holds every completed exchange; the round that
    failed is not included. ``turn_count`` counts model calls that returned.
    """

    messages: list[ChatMessage]
    new_messages: list[ChatMessage] = field(default_factory=list)
    final_content: str = ""
    completed: bool = False
    turn_count: int = 0
    last_tool_calls: list[ToolCall] = field(default_factory=list)
    max_turns_reached: bool = False
    warning: str | None = None
    error: TurnFailureError | None = None

    @property
    def has_pending_tools(self) -> bool:
        return bool(unresolved_tool_calls(self.messages))


class TurnExecutor:
    """Runs the bounded model/tool loop for one orchestration call."""

    def __init__(self, registry: ToolRegistry, provider: AIProvider) -> None:
        """
        Initialize executor.

        Args:
            registry: Dispatches tool calls
            provider: Completes conversations
        """
        self._registry = registry
        self._provider = provider

    async def execute(
        self,
        messages: list[ChatMessage],
        tools: list[ToolDefinition],
        provider: str,
        model: str,
        max_turns: int,
        context: ToolContext,
        turns_consumed: int = 0,
        single_turn: bool = True,
    ) -> TurnResult:
        """
        Run the loop.

        Args:
            messages: History including the newest user message
            tools: Tool definitions offered to the model
            provider: Provider name
            model: Model identifier
            max_turns: Round limit for one user message and its continues
            context: Per-call tool context
            turns_consumed: Rounds already spent since the newest user message
            single_turn: Stop after one model call, leaving requested tools pending

        Returns:
            TurnResult: Never raises; failures are returned in ``error``
        """
        history = list(messages)
        committed = len(history)
        budget = max(max_turns - turns_consumed, 0)
        rounds = 0
        completed = False
        final_content = ""
        last_tool_calls: list[ToolCall] = []
        error: TurnFailureError | None = None

        log_with_context(
            logger,
            logging.INFO,
            "Turn started",
            session_id=context.session_id,
            provider=provider,
            model=model,
            budget=budget,
            single_turn=single_turn,
        )

        try:
            pending = unresolved_tool_calls(history)
            if pending:
                await self._run_tools(pending, tools, history, context)
                committed = len(history)

            schemas = [definition.to_openai_schema() for definition in tools]
            while rounds < budget:
                try:
                    reply = await self._provider.complete(history, schemas, provider, model)
                except Exception as e:
                    raise ProviderFailureError(
                        f"AI provider call failed: {e}",
                        session_id=context.session_id,
                        details={"provider": provider, "model": model},
                    ) from e
                rounds += 1

                if reply.is_final:
                    history.append(ChatMessage.assistant(reply.content))
                    committed = len(history)
                    final_content = reply.content
                    completed = True
                    break

                last_tool_calls = list(reply.tool_calls)
                history.append(ChatMessage.assistant(reply.content, reply.tool_calls))
                if single_turn:
                    committed = len(history)
                    break

                await self._run_tools(reply.tool_calls, tools, history, context)
                committed = len(history)

        except TurnFailureError as e:
            error = e
        except Exception as e:
            error = UnexpectedFailureError(
                f"Unexpected error during turn: {type(e).__name__}: {e}",
                session_id=context.session_id,
            )

        if error is not None:
            log_exception_with_context(
                logger,
                "Turn aborted",
                error,
                session_id=context.session_id,
                code=error.code,
                rounds=rounds,
            )

        max_turns_reached = error is None and not completed and turns_consumed + rounds >= max_turns
        result = TurnResult(
            messages=history[:committed],
            new_messages=history[len(messages):committed],
            final_content=final_content,
            completed=completed,
            turn_count=rounds,
            last_tool_calls=last_tool_calls,
            max_turns_reached=max_turns_reached,
            warning=(
                f"Reached the maximum of {max_turns} turns without a final answer"
                if max_turns_reached
                else None
            ),
            error=error,
        )

        log_with_context(
            logger,
            logging.INFO,
            "Turn finished",
            session_id=context.session_id,
            rounds=rounds,
            completed=completed,
            pending_tools=result.has_pending_tools,
            max_turns_reached=max_turns_reached,
        )
        return result

    async def _run_tools(
        self,
        calls: list[ToolCall],
        tools: list[ToolDefinition],
        history: list[ChatMessage],
        context: ToolContext,
    ) -> None:
        """Execute calls in request order, appending one tool message per call."""
        definitions = {definition.name: definition for definition in tools}
        for call in calls:
            result = await self._registry.invoke(call.name, call.arguments, context)
            definition = definitions.get(call.name)
            if not result.success and definition is not None and definition.abort_on_failure:
                raise ToolFailureError(
                    f"Tool '{call.name}' failed: {result.error}",
                    session_id=context.session_id,
                    details={"tool_name": call.name},
                )
            history.append(ChatMessage.tool_result(call, result.to_payload()))
