"""
Conversation message models.

A message is one entry in a session's history. Assistant messages may carry
tool-call requests; tool messages carry the id of the call they answer.

Dependencies: pydantic
System role: Message contracts shared by persistence, executor and API
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class MessageRole(str, Enum):
    """Author of a message."""

    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class MessageType(str, Enum):
    """Payload discriminator."""

    TEXT = "text"
    TOOL_CALL = "tool_call"
    TOOL_RESULT = "tool_result"


class ToolCall(BaseModel):
    """A single tool invocation requested by the model."""

    id: str = Field(description="Provider-issued call identifier")
    name: str = Field(description="Tool name")
    arguments: dict[str, Any] = Field(default_factory=dict, description="Call parameters")


class ChatMessage(BaseModel):
    """One entry in a session's history."""

    role: MessageRole
    content: str | dict[str, Any] = ""
    type: MessageType = MessageType.TEXT
    tool_calls: list[ToolCall] = Field(default_factory=list)
    tool_call_id: str | None = None
    tool_name: str | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def user(cls, content: str) -> "ChatMessage":
        return cls(role=MessageRole.USER, content=content)

    @classmethod
    def assistant(cls, content: str, tool_calls: list[ToolCall] | None = None) -> "ChatMessage":
        return cls(
            role=MessageRole.ASSISTANT,
            content=content,
            type=MessageType.TOOL_CALL if tool_calls else MessageType.TEXT,
            tool_calls=tool_calls or [],
        )

    @classmethod
    def tool_result(cls, call: ToolCall, payload: dict[str, Any]) -> "ChatMessage":
        return cls(
            role=MessageRole.TOOL,
            content=payload,
            type=MessageType.TOOL_RESULT,
            tool_call_id=call.id,
            tool_name=call.name,
        )

    @property
    def text(self) -> str:
        """Content rendered as plain text."""
        if isinstance(self.content, str):
            return self.content
        return json.dumps(self.content, default=str)


def unresolved_tool_calls(messages: list[ChatMessage]) -> list[ToolCall]:
    """
    Tool calls on the trailing assistant message that have no result yet.

    Only the tail of the history counts: a tool-call message followed by a
    user message is a stale request and is never executed.

    Args:
        messages: Conversation history

    Returns:
        list[ToolCall]: Requests awaiting execution, in request order
    """
    last_assistant = None
    for index in range(len(messages) - 1, -1, -1):
        message = messages[index]
        if message.role == MessageRole.ASSISTANT:
            last_assistant = index
            break
        if message.role != MessageRole.TOOL:
            return []

    if last_assistant is None:
        return []

    answered = {
        m.tool_call_id
        for m in messages[last_assistant + 1:]
        if m.role == MessageRole.TOOL
    }
    return [call for call in messages[last_assistant].tool_calls if call.id not in answered]


def close_unresolved_tool_calls(messages: list[ChatMessage], reason: str) -> list[ChatMessage]:
    """
    Answer every unresolved tail tool call with a failed result.

    Used before appending a user message, so no assistant message is ever
    followed by a user message while its tool calls are still open.

    Args:
        messages: Conversation history
        reason: Error text recorded on each closing result

    Returns:
        list[ChatMessage]: History with one tool-role result per open call
    """
    closing = [
        ChatMessage.tool_result(call, {"success": False, "tool_name": call.name, "error": reason})
        for call in unresolved_tool_calls(messages)
    ]
    return [*messages, *closing]


def rounds_since_last_user(messages: list[ChatMessage]) -> int:
    """Number of assistant messages after the newest user message."""
    rounds = 0
    for message in reversed(messages):
        if message.role == MessageRole.USER:
            break
        if message.role == MessageRole.ASSISTANT:
            rounds += 1
    return rounds
