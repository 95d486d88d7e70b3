"""ORM models."""

from chat_engine.boundary.db.models.chat_session_model import ChatSessionModel
from chat_engine.boundary.db.models.request_cache_model import RequestCacheModel

__all__ = ["ChatSessionModel", "RequestCacheModel"]
