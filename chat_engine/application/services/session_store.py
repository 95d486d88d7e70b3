"""
Session store.

The only component that touches session persistence. Converts between
ChatSessionModel rows and ChatSession domain objects and commits every
write immediately so progress survives a dropped request.

Dependencies: sqlalchemy, chat_engine.boundary.db.CRUD
System role: Session persistence boundary for the orchestrator
"""

import logging
from datetime import datetime, timedelta
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from chat_engine.boundary.db.base import as_utc, utcnow
from chat_engine.boundary.db.CRUD.chat_session_crud import COLUMN_FIELDS, chat_session_crud
from chat_engine.boundary.db.models.chat_session_model import ChatSessionModel
from chat_engine.core.exceptions import SessionPersistenceError
from chat_engine.models.message import ChatMessage
from chat_engine.models.session import ChatSession, SessionSource, SessionStatus

logger = logging.getLogger(__name__)

MAX_LIST_LIMIT = 100


class SessionStore:
    """
    SQL-backed session store.

    Ownership is never checked here; callers compare ``session.owner`` with
    the requester before acting.

    Concurrency: writes are last-writer-wins. ``update`` replaces the whole
    message list, so two concurrent turns on one session can overwrite each
    other. No version column or per-session lock is used.
    """

    def __init__(self, db: AsyncSession) -> None:
        """
        Initialize store with async database session.

        Args:
            db: Async SQLAlchemy session (request scoped)
        """
        self.db = db

    async def create(self, owner: str, metadata: dict[str, Any] | None = None) -> UUID:
        """
        Create an empty session.

        Args:
            owner: Owning principal
            metadata: Initial metadata; known keys (source, provider, model...) go to columns

        Returns:
            UUID: New session id

        Raises:
            SessionPersistenceError: If the row could not be written
        """
        columns, extra = _split_metadata(metadata or {})
        try:
            row = await chat_session_crud.create(
                self.db,
                owner=owner,
                messages=[],
                session_metadata=extra,
                **columns,
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise SessionPersistenceError("Failed to create session", {"error": str(e)}) from e

        logger.info("Session created", extra={"session_id": str(row.id), "source": row.source})
        return row.id

    async def get(self, session_id: UUID) -> ChatSession | None:
        row = await chat_session_crud.get_by_id(self.db, session_id)
        return _to_domain(row) if row else None

    async def update(
        self,
        session_id: UUID,
        messages: list[ChatMessage],
        metadata_patch: dict[str, Any] | None = None,
    ) -> bool:
        """
        Replace messages and merge-patch metadata.

        Args:
            session_id: Session UUID
            messages: Complete message list
            metadata_patch: Partial metadata; keys not present are left untouched

        Returns:
            bool: False if the session does not exist

        Raises:
            SessionPersistenceError: If the write failed
        """
        columns, extra = _split_metadata(metadata_patch or {})
        try:
            row = await chat_session_crud.write_conversation(
                self.db,
                session_id,
                [message.model_dump(mode="json") for message in messages],
                {**columns, **extra},
            )
            if row is None:
                return False
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise SessionPersistenceError(
                "Failed to update session",
                {"session_id": str(session_id), "error": str(e)},
            ) from e
        return True

    async def set_title(self, session_id: UUID, title: str) -> bool:
        """Write only the title column, leaving messages as they are."""
        try:
            row = await chat_session_crud.get_by_id(self.db, session_id)
            if row is None:
                return False
            row.title = title
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise SessionPersistenceError(
                "Failed to set session title",
                {"session_id": str(session_id), "error": str(e)},
            ) from e
        return True

    async def delete(self, session_id: UUID) -> bool:
        try:
            deleted = await chat_session_crud.delete_by_id(self.db, session_id)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise SessionPersistenceError(
                "Failed to delete session",
                {"session_id": str(session_id), "error": str(e)},
            ) from e
        return deleted

    async def list(
        self,
        owner: str,
        status: str | None = None,
        source: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[ChatSession]:
        """
        List an owner's sessions, most recently active first.

        ``limit`` is clamped to 1..100 and ``offset`` to >= 0.
        """
        limit, offset = clamp_page(limit, offset)
        rows = await chat_session_crud.list_for_owner(
            self.db, owner, status=status, source=source, limit=limit, offset=offset
        )
        return [_to_domain(row) for row in rows]

    async def count(self, owner: str, status: str | None = None, source: str | None = None) -> int:
        return await chat_session_crud.count_for_owner(self.db, owner, status=status, source=source)

    async def find_recent_pending(self, owner: str, window_seconds: int, kind: str) -> ChatSession | None:
        """
        Newest session of this kind created by the owner within the window
        that has not reached ``completed``.
        """
        cutoff = utcnow() - timedelta(seconds=window_seconds)
        row = await chat_session_crud.find_recent_pending(self.db, owner, cutoff, kind)
        return _to_domain(row) if row else None


def clamp_page(limit: int, offset: int) -> tuple[int, int]:
    return max(1, min(limit, MAX_LIST_LIMIT)), max(0, offset)


def _split_metadata(metadata: dict[str, Any]) -> tuple[dict[str, Any], dict[str, Any]]:
    columns: dict[str, Any] = {}
    extra: dict[str, Any] = {}
    for key, value in metadata.items():
        if isinstance(value, Enum):
            value = value.value
        if key in COLUMN_FIELDS:
            columns[key] = value
        else:
            # JSON column
            extra[key] = value.isoformat() if isinstance(value, datetime) else value
    return columns, extra


def _to_domain(row: ChatSessionModel) -> ChatSession:
    return ChatSession(
        id=row.id,
        owner=row.owner,
        messages=[ChatMessage.model_validate(message) for message in row.messages or []],
        status=SessionStatus(row.status),
        turn_count=row.turn_count,
        has_pending_tools=row.has_pending_tools,
        provider=row.provider,
        model=row.model,
        title=row.title,
        source=SessionSource(row.source),
        metadata=dict(row.session_metadata or {}),
        created_at=as_utc(row.created_at),
        last_activity_at=as_utc(row.last_activity_at),
        completed_at=as_utc(row.completed_at),
    )
