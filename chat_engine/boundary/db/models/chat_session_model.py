"""
Chat session ORM model.

One row per conversation. Messages are stored as a JSON array on the row so
that messages and metadata are always written together.

Dependencies: sqlalchemy, chat_engine.boundary.db.base
System role: Session persistence for conversation state
"""

from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from chat_engine.boundary.db.base import Base, TimestampMixin, UUIDMixin


class ChatSessionModel(Base, UUIDMixin, TimestampMixin):
    """
    Chat session ORM model.

    Attributes:
        id: UUID primary key (auto-generated)
        owner: Principal that owns the session
        messages: Ordered JSON list of serialized ChatMessage dicts
        status: processing | completed | error
        turn_count: Model-call rounds consumed so far
        has_pending_tools: Last assistant message has unresolved tool calls
        provider: AI provider that serviced the session
        model: Model that serviced the session
        title: Generated title (nullable until generated)
        source: chat | ping
        session_metadata: Free-form merge-patched metadata
        completed_at: Timestamp of the last transition to completed
    """

    __tablename__ = "chat_sessions"
    __table_args__ = (
        Index("ix_chat_sessions_owner_source_created", "owner", "source", "created_at"),
        Index("ix_chat_sessions_owner_activity", "owner", "last_activity_at"),
    )

    owner: Mapped[str] = mapped_column(String(255), nullable=False)
    messages: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="processing")
    turn_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    has_pending_tools: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    provider: Mapped[str | None] = mapped_column(String(100), nullable=True)
    model: Mapped[str | None] = mapped_column(String(255), nullable=True)
    title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    source: Mapped[str] = mapped_column(String(32), nullable=False, default="chat")
    session_metadata: Mapped[dict] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
        doc="Flexible session metadata (selected context, error message, counters)",
    )
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
