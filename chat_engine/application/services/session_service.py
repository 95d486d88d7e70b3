"""
Session service.

Owner-checked read, list and delete operations on chat sessions.

Dependencies: chat_engine.application.services.session_store
System role: Session use case orchestration
"""

import logging
from uuid import UUID

from chat_engine.application.services.session_store import SessionStore, clamp_page
from chat_engine.core.exceptions import SessionAccessDeniedError, SessionNotFoundError
from chat_engine.models.session import (
    ChatSession,
    DeleteSessionResponse,
    SessionDetailResponse,
    SessionListResponse,
    SessionSummary,
)

logger = logging.getLogger(__name__)


class SessionService:
    """Session service orchestrator."""

    def __init__(self, store: SessionStore) -> None:
        """
        Initialize session service.

        Args:
            store: Session store bound to the request's database session
        """
        self.store = store

    async def get_session(self, session_id: UUID, owner: str) -> SessionDetailResponse:
        """
        Get a session with its full conversation.

        Args:
            session_id: Session UUID
            owner: Requesting principal

        Returns:
            SessionDetailResponse: Conversation and metadata

        Raises:
            SessionNotFoundError: If session not found
            SessionAccessDeniedError: If the session belongs to another principal
        """
        session = await self._get_owned(session_id, owner)
        return SessionDetailResponse.from_session(session)

    async def list_sessions(
        self,
        owner: str,
        limit: int = 20,
        offset: int = 0,
        status: str | None = None,
        source: str | None = None,
    ) -> SessionListResponse:
        """
        List the owner's sessions with pagination.

        Args:
            owner: Requesting principal
            limit: Maximum number of sessions to return (clamped to 1..100)
            offset: Number of sessions to skip
            status: Optional status filter
            source: Optional source filter

        Returns:
            SessionListResponse: Page of summaries plus the filtered total
        """
        limit, offset = clamp_page(limit, offset)
        sessions = await self.store.list(owner, status=status, source=source, limit=limit, offset=offset)
        total = await self.store.count(owner, status=status, source=source)
        return SessionListResponse(
            sessions=[SessionSummary.from_session(s) for s in sessions],
            total=total,
            limit=limit,
            offset=offset,
        )

    async def delete_session(self, session_id: UUID, owner: str) -> DeleteSessionResponse:
        """
        Delete a session by ID.

        Raises:
            SessionNotFoundError: If session not found
            SessionAccessDeniedError: If the session belongs to another principal
        """
        await self._get_owned(session_id, owner)
        if not await self.store.delete(session_id):
            raise SessionNotFoundError(session_id)

        logger.info("Session deleted", extra={"session_id": str(session_id)})
        return DeleteSessionResponse(session_id=session_id)

    async def _get_owned(self, session_id: UUID, owner: str) -> ChatSession:
        session = await self.store.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        if session.owner != owner:
            raise SessionAccessDeniedError(session_id)
        return session
