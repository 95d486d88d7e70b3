"""
Database boundary layer: ORM models, CRUD operations, and connection management.

Exports:
  - Base, UUIDMixin, TimestampMixin: Model building blocks
  - get_async_engine(), get_async_session_factory(), get_async_db(): Async connection management
  - ChatSessionModel, RequestCacheModel: Persisted entities
  - chat_session_crud, request_cache_crud: CRUD operation singletons

Dependencies: sqlalchemy, chat_engine.configs
System role: Database adapter providing persistent storage for chat sessions
and idempotency entries.
"""

from chat_engine.boundary.db.base import Base, TimestampMixin, UUIDMixin
from chat_engine.boundary.db.connection import (
    get_async_db,
    get_async_engine,
    get_async_session_factory,
)
from chat_engine.boundary.db.models import ChatSessionModel, RequestCacheModel
from chat_engine.boundary.db.CRUD import (
    BaseCRUD,
    ChatSessionCRUD,
    RequestCacheCRUD,
    chat_session_crud,
    request_cache_crud,
)

__all__ = [
    # Base classes
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    # Connection
    "get_async_db",
    "get_async_engine",
    "get_async_session_factory",
    # Models
    "ChatSessionModel",
    "RequestCacheModel",
    # CRUD classes
    "BaseCRUD",
    "ChatSessionCRUD",
    "RequestCacheCRUD",
    # CRUD singletons
    "chat_session_crud",
    "request_cache_crud",
]
