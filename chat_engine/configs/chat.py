"""
Chat orchestration settings.

Default provider/model, turn budget, idempotency windows and ping
credentials used by the session orchestrator.

Dependencies: pydantic, pydantic_settings
System role: Conversation engine configuration
"""

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from chat_engine.configs.base import BaseSettings


class ChatSettings(BaseSettings):
    """Conversation engine configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="CHAT_",
        case_sensitive=False,
        extra="ignore",
    )

    default_provider: str | None = Field(
        default=None,
        description="AI provider used when a request does not name one (e.g. google_genai)",
    )
    default_model: str | None = Field(
        default=None,
        description="Model used when a request does not name one",
    )
    max_turns: int = Field(default=12, ge=1, description="Maximum model-call rounds per session")
    request_cache_ttl: int = Field(
        default=60,
        description="Seconds a request-key response stays replayable",
    )
    pending_window_seconds: int = Field(
        default=600,
        description="Window in which an unfinished session is reused for duplicate submissions",
    )
    ping_secret: str | None = Field(
        default=None,
        description="Bearer token required by the ping endpoint",
    )
    ping_owner: str = Field(
        default="admin",
        description="Principal that owns sessions created by ping",
    )
    title_max_length: int = Field(default=60, description="Maximum generated title length")
