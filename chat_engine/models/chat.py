"""
Chat domain models and schemas.

Request/response schemas for the new-message, continue and ping operations.

Dependencies: pydantic, chat_engine.models.message
System role: Chat API contracts
"""

import uuid
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

from chat_engine.models.message import ChatMessage, ToolCall

T = TypeVar("T")


class ChatRequest(BaseModel):
    """Request schema for a new chat message."""

    message: str = Field(min_length=1, description="User message")
    provider: str | None = Field(default=None, description="AI provider (defaults to configured provider)")
    model: str | None = Field(default=None, description="Model identifier (defaults to configured model)")
    session_id: uuid.UUID | None = Field(default=None, description="Existing session to continue")
    selected_context: dict[str, Any] | None = Field(
        default=None,
        description="Context the client currently has selected; exposes context-specific tools",
    )


class ContinueRequest(BaseModel):
    """Request schema for resuming a session with pending tool calls."""

    session_id: uuid.UUID


class PingRequest(BaseModel):
    """Request schema for an externally triggered session."""

    message: str = Field(min_length=1, description="Message to process")
    prompt: str | None = Field(default=None, description="Optional instructions prepended to the message")
    context: dict[str, Any] | None = Field(default=None, description="Optional caller context appended as JSON")


class ChatTurnResponse(BaseModel):
    """
    Response of a new-message exchange.

    A provisional entry written before the turn runs has ``pending=True`` and
    only ``session_id`` populated.
    """

    session_id: uuid.UUID
    pending: bool = False
    response: str = ""
    tool_calls: list[ToolCall] = Field(default_factory=list)
    conversation: list[ChatMessage] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
    completed: bool = False
    turn_number: int = 0
    max_turns: int = 0
    max_turns_reached: bool = False
    warning: str | None = None


class ContinueResponse(BaseModel):
    """Response of a continue exchange; carries only newly appended messages."""

    session_id: uuid.UUID
    new_messages: list[ChatMessage] = Field(default_factory=list)
    final_content: str = ""
    tool_calls: list[ToolCall] = Field(default_factory=list)
    completed: bool
    turn_number: int
    max_turns: int
    max_turns_reached: bool = False


class PingResponse(BaseModel):
    """Response of a ping run."""

    session_id: uuid.UUID
    response: str
    turns: int
    completed: bool = True


class ApiResponse(BaseModel, Generic[T]):
    """Success envelope used by every chat endpoint."""

    success: bool = True
    data: T
