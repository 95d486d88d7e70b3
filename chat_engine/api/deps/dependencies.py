"""
Dependency injection container.

Factory functions for FastAPI dependencies.

Dependencies: chat_engine.configs, chat_engine.application, chat_engine.boundary
System role: DI container for service injection
"""

import hmac
from functools import lru_cache

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from chat_engine.application.services import (
    BackgroundTitleDispatcher,
    DedupCache,
    SessionOrchestrator,
    SessionService,
    SessionStore,
    TitleService,
)
from chat_engine.boundary.db import get_async_db, get_async_session_factory
from chat_engine.configs import Settings, get_settings
from chat_engine.core.agentic_system.provider import LangChainChatProvider
from chat_engine.core.agentic_system.tools import (
    GlobalToolSource,
    SelectedContextToolSource,
    ToolRegistry,
)


class ServiceCache:
    """Container for process-wide service instances."""

    def __init__(self):
        self._provider = None
        self._tool_registry = None
        self._title_dispatcher = None

    @property
    def provider(self) -> LangChainChatProvider:
        """Get cached AI provider adapter."""
        if self._provider is None:
            self._provider = LangChainChatProvider(temperature=0.0)
        return self._provider

    @property
    def tool_registry(self) -> ToolRegistry:
        """Get cached tool registry (global tools first, then context tools)."""
        if self._tool_registry is None:
            self._tool_registry = ToolRegistry([
                GlobalToolSource(get_async_session_factory()),
                SelectedContextToolSource(),
            ])
        return self._tool_registry

    @property
    def title_dispatcher(self) -> BackgroundTitleDispatcher:
        """Get cached background title dispatcher."""
        if self._title_dispatcher is None:
            self._title_dispatcher = BackgroundTitleDispatcher(
                get_async_session_factory(),
                TitleService(
                    provider=self.provider,
                    max_length=get_settings().chat.title_max_length,
                ),
            )
        return self._title_dispatcher

    def clear(self) -> None:
        """Clear all cached instances."""
        self._provider = None
        self._tool_registry = None
        self._title_dispatcher = None


# Global service cache
_service_cache = ServiceCache()


def get_service_cache() -> ServiceCache:
    """Get service cache singleton."""
    return _service_cache


@lru_cache
def get_settings_dependency() -> Settings:
    """Get settings singleton."""
    return get_settings()


def get_current_owner(x_user_id: str | None = Header(default=None, alias="X-User-ID")) -> str:
    """
    Resolve the requesting principal.

    The identity header is set by the upstream gateway after authentication.

    Raises:
        HTTPException(401): Header missing or blank
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": "unauthenticated", "message": "Missing X-User-ID header"},
        )
    return x_user_id.strip()


def verify_ping_token(
    authorization: str | None = Header(default=None),
    settings: Settings = Depends(get_settings_dependency),
) -> None:
    """
    Check the ping bearer token against CHAT_PING_SECRET.

    Raises:
        HTTPException(403): No secret configured, or token mismatch
        HTTPException(401): Authorization header missing
    """
    secret = settings.chat.ping_secret
    if not secret:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"code": "ping_disabled", "message": "Ping secret is not configured"},
        )
    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": "unauthenticated", "message": "Missing Authorization header"},
        )

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not hmac.compare_digest(token.strip(), secret):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"code": "invalid_token", "message": "Invalid ping token"},
        )


def get_session_store(db: AsyncSession = Depends(get_async_db)) -> SessionStore:
    """
    Get session store instance.

    Args:
        db: Async database session (injected via Depends)

    Returns:
        SessionStore: Store bound to the request's session
    """
    return SessionStore(db=db)


def get_dedup_cache(
    db: AsyncSession = Depends(get_async_db),
    store: SessionStore = Depends(get_session_store),
    settings: Settings = Depends(get_settings_dependency),
) -> DedupCache:
    """Get duplicate-request cache bound to the request's session."""
    return DedupCache(
        db=db,
        store=store,
        ttl_seconds=settings.chat.request_cache_ttl,
        pending_window_seconds=settings.chat.pending_window_seconds,
    )


def get_session_orchestrator(
    store: SessionStore = Depends(get_session_store),
    dedup: DedupCache = Depends(get_dedup_cache),
    settings: Settings = Depends(get_settings_dependency),
) -> SessionOrchestrator:
    """
    Get session orchestrator instance.

    Returns:
        SessionOrchestrator: Orchestrator wired with cached provider and tool registry
    """
    cache = get_service_cache()
    return SessionOrchestrator(
        store=store,
        registry=cache.tool_registry,
        provider=cache.provider,
        dedup=dedup,
        settings=settings.chat,
        title_dispatcher=cache.title_dispatcher,
    )


def get_session_service(store: SessionStore = Depends(get_session_store)) -> SessionService:
    """Get owner-checked session read/list/delete service."""
    return SessionService(store=store)
