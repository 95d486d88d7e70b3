"""CRUD operation classes and singletons."""

from chat_engine.boundary.db.CRUD.base_crud import BaseCRUD
from chat_engine.boundary.db.CRUD.chat_session_crud import ChatSessionCRUD, chat_session_crud
from chat_engine.boundary.db.CRUD.request_cache_crud import RequestCacheCRUD, request_cache_crud

__all__ = [
    "BaseCRUD",
    "ChatSessionCRUD",
    "RequestCacheCRUD",
    "chat_session_crud",
    "request_cache_crud",
]
