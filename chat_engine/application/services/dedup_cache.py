"""
Duplicate-request cache.

Two time-windowed lookups that keep retries from duplicating work:
- by request key: replay the stored response of a recent new-message call
- recent pending: find an unfinished session the same owner just created

Dependencies: sqlalchemy, chat_engine.boundary.db.CRUD
System role: Idempotency for the new-message operation
"""

import logging
from datetime import timedelta
from typing import Any
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from chat_engine.application.services.session_store import SessionStore
from chat_engine.boundary.db.base import utcnow
from chat_engine.boundary.db.CRUD.request_cache_crud import request_cache_crud
from chat_engine.models.chat import ChatTurnResponse
from chat_engine.models.session import ChatSession

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 60
DEFAULT_PENDING_WINDOW_SECONDS = 600


class DedupCache:
    """Request-key response cache plus the recent-pending-session lookup."""

    def __init__(
        self,
        db: AsyncSession,
        store: SessionStore,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        pending_window_seconds: int = DEFAULT_PENDING_WINDOW_SECONDS,
    ) -> None:
        """
        Initialize cache.

        Args:
            db: Async SQLAlchemy session
            store: Session store used for the pending-session lookup
            ttl_seconds: Lifetime of request-key entries
            pending_window_seconds: Default window for recent_pending
        """
        self.db = db
        self.store = store
        self.ttl_seconds = ttl_seconds
        self.pending_window_seconds = pending_window_seconds

    async def get_response(self, request_key: str) -> dict[str, Any] | None:
        """Stored payload for a key, or None if absent or expired."""
        row = await request_cache_crud.get_live(self.db, request_key, utcnow())
        return dict(row.payload) if row else None

    async def remember_pending(self, request_key: str, session_id: UUID) -> None:
        """Write the provisional entry returned to retries while the turn runs."""
        placeholder = ChatTurnResponse(session_id=session_id, pending=True)
        await self._write(request_key, placeholder.model_dump(mode="json"))

    async def remember_response(self, request_key: str, payload: dict[str, Any]) -> None:
        """Store (or overwrite) the final response for a key."""
        await self._write(request_key, payload)

    async def forget(self, request_key: str) -> None:
        """Drop an entry so a retry after a failed turn runs again."""
        try:
            await request_cache_crud.delete_by_id(self.db, request_key)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.warning(
                "Request cache delete failed",
                extra={"request_key": request_key, "error": str(e)},
            )

    async def recent_pending(
        self,
        owner: str,
        kind: str,
        window_seconds: int | None = None,
    ) -> ChatSession | None:
        """Unfinished session of this kind created by the owner within the window."""
        window = self.pending_window_seconds if window_seconds is None else window_seconds
        return await self.store.find_recent_pending(owner, window, kind)

    async def _write(self, request_key: str, payload: dict[str, Any]) -> None:
        now = utcnow()
        try:
            await request_cache_crud.purge_expired(self.db, now)
            await request_cache_crud.upsert(
                self.db,
                request_key,
                payload,
                now + timedelta(seconds=self.ttl_seconds),
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            # Losing a cache entry only weakens retry dedup
            await self.db.rollback()
            logger.warning(
                "Request cache write failed",
                extra={"request_key": request_key, "error": str(e)},
            )
