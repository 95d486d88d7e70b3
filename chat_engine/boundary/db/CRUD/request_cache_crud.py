"""
Request cache CRUD operations.

Dependencies: sqlalchemy, chat_engine.boundary.db.models
System role: Idempotency key persistence
"""

from datetime import datetime
from typing import Any

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from chat_engine.boundary.db.CRUD.base_crud import BaseCRUD
from chat_engine.boundary.db.base import as_utc
from chat_engine.boundary.db.models.request_cache_model import RequestCacheModel


class RequestCacheCRUD(BaseCRUD[RequestCacheModel]):
    """CRUD operations for RequestCacheModel."""

    def __init__(self) -> None:
        super().__init__(RequestCacheModel)

    async def get_live(
        self,
        session: AsyncSession,
        request_key: str,
        now: datetime,
    ) -> RequestCacheModel | None:
        """
        Return the entry for a key unless it has expired.

        Args:
            session: Async database session
            request_key: Client idempotency key
            now: Current UTC time

        Returns:
            RequestCacheModel if present and unexpired, None otherwise
        """
        row = await self.get_by_id(session, request_key)
        if row is None or as_utc(row.expires_at) <= now:
            return None
        return row

    async def upsert(
        self,
        session: AsyncSession,
        request_key: str,
        payload: dict[str, Any],
        expires_at: datetime,
    ) -> RequestCacheModel:
        """Insert or overwrite the entry for a key."""
        row = await self.get_by_id(session, request_key)
        if row is None:
            return await self.create(
                session,
                request_key=request_key,
                payload=payload,
                expires_at=expires_at,
            )

        row.payload = payload
        row.expires_at = expires_at
        await session.flush()
        return row

    async def purge_expired(self, session: AsyncSession, now: datetime) -> int:
        """Delete expired entries. Returns the number removed."""
        stmt = delete(RequestCacheModel).where(RequestCacheModel.expires_at <= now)
        result = await session.execute(stmt)
        return result.rowcount or 0


request_cache_crud = RequestCacheCRUD()
