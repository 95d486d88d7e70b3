"""
Chat session CRUD operations.

Extends BaseCRUD with owner-scoped listing, the recent-pending lookup used
for duplicate-submission dedup, and the messages + metadata write.

Dependencies: sqlalchemy, chat_engine.boundary.db.models
System role: Session persistence operations
"""

from datetime import datetime
from typing import Any, Sequence
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from chat_engine.boundary.db.CRUD.base_crud import BaseCRUD
from chat_engine.boundary.db.models.chat_session_model import ChatSessionModel

# Metadata keys stored in dedicated columns; every other key is merged into session_metadata.
COLUMN_FIELDS = frozenset({
    "status",
    "turn_count",
    "has_pending_tools",
    "provider",
    "model",
    "title",
    "source",
    "last_activity_at",
    "completed_at",
})


class ChatSessionCRUD(BaseCRUD[ChatSessionModel]):
    """CRUD operations for ChatSessionModel."""

    def __init__(self) -> None:
        """Initialize ChatSessionCRUD with ChatSessionModel."""
        super().__init__(ChatSessionModel)

    def _owner_filters(self, owner: str, status: str | None, source: str | None) -> list:
        clauses = [ChatSessionModel.owner == owner]
        if status:
            clauses.append(ChatSessionModel.status == status)
        if source:
            clauses.append(ChatSessionModel.source == source)
        return clauses

    async def list_for_owner(
        self,
        session: AsyncSession,
        owner: str,
        status: str | None = None,
        source: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Sequence[ChatSessionModel]:
        """
        Retrieve an owner's sessions, most recently active first.

        Args:
            session: Async database session
            owner: Owning principal
            status: Optional status filter
            source: Optional source filter
            limit: Maximum number of sessions to return
            offset: Number of sessions to skip

        Returns:
            Sequence of ChatSessionModel rows
        """
        stmt = (
            select(ChatSessionModel)
            .where(*self._owner_filters(owner, status, source))
            .order_by(ChatSessionModel.last_activity_at.desc(), ChatSessionModel.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    async def count_for_owner(
        self,
        session: AsyncSession,
        owner: str,
        status: str | None = None,
        source: str | None = None,
    ) -> int:
        stmt = select(func.count()).select_from(ChatSessionModel).where(
            *self._owner_filters(owner, status, source)
        )
        result = await session.execute(stmt)
        return int(result.scalar_one())

    async def find_recent_pending(
        self,
        session: AsyncSession,
        owner: str,
        created_after: datetime,
        source: str,
    ) -> ChatSessionModel | None:
        """
        Newest unfinished session created by the owner after a cutoff.

        Args:
            session: Async database session
            owner: Owning principal
            created_after: Only sessions created at or after this instant qualify
            source: Interaction kind the session must have originated from

        Returns:
            ChatSessionModel if one qualifies, None otherwise
        """
        stmt = (
            select(ChatSessionModel)
            .where(
                ChatSessionModel.owner == owner,
                ChatSessionModel.source == source,
                ChatSessionModel.status != "completed",
                ChatSessionModel.created_at >= created_after,
            )
            .order_by(ChatSessionModel.created_at.desc())
            .limit(1)
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalars().first()

    async def write_conversation(
        self,
        session: AsyncSession,
        id: UUID,
        messages: list[dict[str, Any]],
        metadata_patch: dict[str, Any],
    ) -> ChatSessionModel | None:
        """
        Replace the message list and merge-patch metadata on one row.

        Known keys in ``metadata_patch`` update their columns; the rest are
        merged into ``session_metadata``. Keys absent from the patch are left
        untouched.

        Args:
            session: Async database session
            id: Session UUID
            messages: Full serialized message list
            metadata_patch: Partial metadata update

        Returns:
            Updated ChatSessionModel if found, None otherwise
        """
        row = await self.get_by_id(session, id)
        if row is None:
            return None

        row.messages = list(messages)

        extra = dict(row.session_metadata or {})
        for key, value in metadata_patch.items():
            if key in COLUMN_FIELDS:
                setattr(row, key, value)
            else:
                extra[key] = value
        row.session_metadata = extra

        await session.flush()
        return row


chat_session_crud = ChatSessionCRUD()
