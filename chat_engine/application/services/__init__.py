"""
Application services.

Exports:
  - SessionStore: Session persistence boundary
  - DedupCache: Request-key replay and pending-session lookup
  - SessionOrchestrator, NewMessageOptions: Conversation entry point
  - SessionService: Owner-checked read/list/delete
  - TitleService, BackgroundTitleDispatcher: Session titles
"""

from chat_engine.application.services.dedup_cache import DedupCache
from chat_engine.application.services.session_orchestrator import NewMessageOptions, SessionOrchestrator
from chat_engine.application.services.session_service import SessionService
from chat_engine.application.services.session_store import SessionStore
from chat_engine.application.services.title_service import BackgroundTitleDispatcher, TitleService

__all__ = [
    "BackgroundTitleDispatcher",
    "DedupCache",
    "NewMessageOptions",
    "SessionOrchestrator",
    "SessionService",
    "SessionStore",
    "TitleService",
]
