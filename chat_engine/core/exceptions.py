"""
Exception hierarchy for the chat engine.

Each expected failure kind carries a stable ``code`` and the HTTP status the
API layer maps it to. Anything that is not a ``ChatEngineException`` is a
programming error and is only caught at the turn boundary.

Dependencies: None (pure domain layer)
System role: Centralized error taxonomy across the application
"""

from typing import Any


class ChatEngineException(Exception):
    """Base exception for all chat engine errors."""

    code: str = "chat_error"
    status_code: int = 500

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """
        Initialize base exception with message and optional context.

        Args:
            message: Human-readable error message
            details: Optional dictionary of additional context for debugging
        """
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        """Return string representation including details."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message

    def to_dict(self) -> dict[str, Any]:
        """Stable error payload returned to API clients."""
        return {"code": self.code, "message": self.message}


class SessionNotFoundError(ChatEngineException):
    """Raised when a session id does not resolve to any record."""

    code = "session_not_found"
    status_code = 404

    def __init__(self, session_id: Any, details: dict[str, Any] | None = None) -> None:
        details = details or {}
        details["session_id"] = str(session_id)
        super().__init__("Session not found", details)


class SessionAccessDeniedError(ChatEngineException):
    """Raised when a session exists but belongs to another principal."""

    code = "session_access_denied"
    status_code = 403

    def __init__(self, session_id: Any, details: dict[str, Any] | None = None) -> None:
        details = details or {}
        details["session_id"] = str(session_id)
        super().__init__("Access denied to this session", details)


class ConfigurationMissingError(ChatEngineException):
    """Raised when provider or model cannot be resolved from request or defaults."""

    code = "configuration_missing"
    status_code = 400

    def __init__(self, setting: str, details: dict[str, Any] | None = None) -> None:
        details = details or {}
        details["setting"] = setting
        super().__init__(
            f"AI {setting} is required. Configure a default {setting} or provide one in the request.",
            details,
        )


class TurnFailureError(ChatEngineException):
    """Base for failures that happen mid-turn, after the session was persisted."""

    def __init__(
        self,
        message: str,
        session_id: Any | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if session_id is not None:
            details["session_id"] = str(session_id)
        super().__init__(message, details)


class ProviderFailureError(TurnFailureError):
    """Raised when the AI provider call failed or returned an unrecoverable error."""

    code = "provider_failure"
    status_code = 502


class ToolFailureError(TurnFailureError):
    """Raised when a tool failure aborts the turn."""

    code = "tool_failure"
    status_code = 500


class UnexpectedFailureError(TurnFailureError):
    """Raised for any other exception caught at the turn boundary."""

    code = "unexpected_failure"
    status_code = 500


class SessionPersistenceError(ChatEngineException):
    """Raised when a session record could not be created or written."""

    code = "session_persistence_failed"
    status_code = 500
