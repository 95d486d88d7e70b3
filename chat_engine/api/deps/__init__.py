"""API dependencies."""

from chat_engine.api.deps.dependencies import (
    get_current_owner,
    get_dedup_cache,
    get_service_cache,
    get_session_orchestrator,
    get_session_service,
    get_session_store,
    get_settings_dependency,
    verify_ping_token,
)

__all__ = [
    "get_current_owner",
    "get_dedup_cache",
    "get_service_cache",
    "get_session_orchestrator",
    "get_session_service",
    "get_session_store",
    "get_settings_dependency",
    "verify_ping_token",
]
