"""
Session domain models and schemas.

The ChatSession model is the unit of conversational state handed between the
store, the orchestrator and the API layer.

Dependencies: pydantic, chat_engine.models.message
System role: Session contracts
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from chat_engine.models.message import ChatMessage


class SessionStatus(str, Enum):
    """Session lifecycle states."""

    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


class SessionSource(str, Enum):
    """How a session originated; also the interaction kind used for dedup."""

    CHAT = "chat"
    PING = "ping"


class ChatSession(BaseModel):
    """A conversation and its orchestration metadata."""

    id: uuid.UUID
    owner: str
    messages: list[ChatMessage] = Field(default_factory=list)
    status: SessionStatus = SessionStatus.PROCESSING
    turn_count: int = 0
    has_pending_tools: bool = False
    provider: str | None = None
    model: str | None = None
    title: str | None = None
    source: SessionSource = SessionSource.CHAT
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    last_activity_at: datetime
    completed_at: datetime | None = None

    @property
    def is_finished(self) -> bool:
        """Completed with nothing left for a continue call to do."""
        return self.status == SessionStatus.COMPLETED and not self.has_pending_tools


class SessionSummary(BaseModel):
    """Session listing entry (no message bodies)."""

    session_id: uuid.UUID
    title: str | None
    status: SessionStatus
    source: SessionSource
    turn_count: int
    has_pending_tools: bool
    message_count: int
    provider: str | None
    model: str | None
    created_at: datetime
    last_activity_at: datetime

    @classmethod
    def from_session(cls, session: ChatSession) -> "SessionSummary":
        return cls(
            session_id=session.id,
            title=session.title,
            status=session.status,
            source=session.source,
            turn_count=session.turn_count,
            has_pending_tools=session.has_pending_tools,
            message_count=len(session.messages),
            provider=session.provider,
            model=session.model,
            created_at=session.created_at,
            last_activity_at=session.last_activity_at,
        )


class SessionListResponse(BaseModel):
    """Paginated session listing."""

    sessions: list[SessionSummary]
    total: int
    limit: int
    offset: int


class SessionDetailResponse(BaseModel):
    """Single session with its full conversation."""

    session_id: uuid.UUID
    title: str | None
    conversation: list[ChatMessage]
    metadata: dict[str, Any]

    @classmethod
    def from_session(cls, session: ChatSession) -> "SessionDetailResponse":
        return cls(
            session_id=session.id,
            title=session.title,
            conversation=session.messages,
            metadata={
                **session.metadata,
                "status": session.status.value,
                "source": session.source.value,
                "current_turn": session.turn_count,
                "has_pending_tools": session.has_pending_tools,
                "provider": session.provider,
                "model": session.model,
                "created_at": session.created_at.isoformat(),
                "last_activity": session.last_activity_at.isoformat(),
                "completed_at": session.completed_at.isoformat() if session.completed_at else None,
            },
        )


class DeleteSessionResponse(BaseModel):
    session_id: uuid.UUID
    deleted: bool = True
