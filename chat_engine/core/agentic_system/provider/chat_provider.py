"""
AI provider adapter.

Sends a conversation plus tool schema to a chat model and normalizes the
reply into either final text or a list of tool-call requests. Model access
goes through LangChain ``init_chat_model`` so any installed integration
(google_genai, bedrock_converse, ...) can be selected by name per session.

Dependencies: langchain, langchain_core, chat_engine.observability
System role: Opaque "history + tools -> answer | tool calls" capability
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Protocol

from langchain.chat_models import init_chat_model
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage, ToolMessage

from chat_engine.models.message import ChatMessage, MessageRole, ToolCall
from chat_engine.observability.langfuse_tracer import get_trace_callbacks

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful assistant. Use the available tools when they help answer "
    "the user's request, and reply with a concise final answer once you have what you need."
)


@dataclass
class ProviderResponse:
    """Normalized model reply."""

    content: str = ""
    tool_calls: list[ToolCall] = field(default_factory=list)

    @property
    def is_final(self) -> bool:
        return not self.tool_calls


class AIProvider(Protocol):
    """Anything that can complete a conversation with optional tools."""

    async def complete(
        self,
        messages: list[ChatMessage],
        tools: list[dict[str, Any]],
        provider: str,
        model: str,
    ) -> ProviderResponse: ...


class LangChainChatProvider:
    """
    AIProvider backed by LangChain chat models.

    One chat model instance is kept per (provider, model) pair; tools are
    bound per call because the available set depends on the request.
    """

    def __init__(self, temperature: float = 0.0, system_prompt: str | None = DEFAULT_SYSTEM_PROMPT) -> None:
        """
        Initialize provider adapter.

        Args:
            temperature: Sampling temperature passed to every model
            system_prompt: Prepended to each call as a system message (None to skip)
        """
        self._temperature = temperature
        self._system_prompt = system_prompt
        self._models: dict[tuple[str, str], BaseChatModel] = {}

    def _get_model(self, provider: str, model: str) -> BaseChatModel:
        key = (provider, model)
        if key not in self._models:
            logger.info(f"{__name__}:_get_model - initializing provider={provider}, model={model}")
            self._models[key] = init_chat_model(
                model,
                model_provider=provider,
                temperature=self._temperature,
            )
        return self._models[key]

    async def complete(
        self,
        messages: list[ChatMessage],
        tools: list[dict[str, Any]],
        provider: str,
        model: str,
    ) -> ProviderResponse:
        """
        Run one model call.

        Args:
            messages: Full conversation history
            tools: OpenAI-style function schemas
            provider: LangChain model provider name
            model: Model identifier

        Returns:
            ProviderResponse: Final text or tool-call requests
        """
        chat_model = self._get_model(provider, model)
        runnable = chat_model.bind_tools(tools) if tools else chat_model

        lc_messages = to_langchain_messages(messages)
        if self._system_prompt:
            lc_messages.insert(0, SystemMessage(content=self._system_prompt))

        reply = await runnable.ainvoke(lc_messages, config={"callbacks": get_trace_callbacks()})

        tool_calls = [
            ToolCall(
                id=call.get("id") or f"call_{uuid.uuid4().hex[:12]}",
                name=call["name"],
                arguments=call.get("args") or {},
            )
            for call in getattr(reply, "tool_calls", None) or []
        ]
        return ProviderResponse(content=_content_text(reply.content), tool_calls=tool_calls)


def to_langchain_messages(messages: list[ChatMessage]) -> list[BaseMessage]:
    """
    Convert stored history to LangChain messages.

    Tool-call requests that never received a result (a stale request
    followed by a new user message) are dropped from the assistant message,
    since providers reject calls without answers.
    """
    answered = {m.tool_call_id for m in messages if m.role == MessageRole.TOOL}
    converted: list[BaseMessage] = []

    for message in messages:
        if message.role == MessageRole.USER:
            converted.append(HumanMessage(content=message.text))
        elif message.role == MessageRole.ASSISTANT:
            converted.append(
                AIMessage(
                    content=message.text,
                    tool_calls=[
                        {"id": call.id, "name": call.name, "args": call.arguments, "type": "tool_call"}
                        for call in message.tool_calls
                        if call.id in answered
                    ],
                )
            )
        else:
            converted.append(
                ToolMessage(
                    content=message.text,
                    tool_call_id=message.tool_call_id or "",
                    name=message.tool_name,
                )
            )
    return converted


def _content_text(content: Any) -> str:
    # Some integrations return a list of content blocks instead of a string
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(str(block.get("text", "")))
        return "".join(parts)
    return str(content or "")
