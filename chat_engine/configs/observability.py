"""
Observability configuration settings.

Settings for Langfuse tracing of provider calls.

Dependencies: pydantic_settings
System role: Observability configuration for tracing and logging
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class ObservabilitySettings(BaseSettings):
    """Observability configuration for Langfuse and logging."""

    model_config = SettingsConfigDict(
        env_prefix="LANGFUSE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    public_key: str | None = Field(
        default=None,
        description="Langfuse public key for tracing",
    )
    secret_key: str | None = Field(
        default=None,
        description="Langfuse secret key for tracing",
    )
    host: str = Field(
        default="http://localhost:3000",
        description="Langfuse server host URL",
    )
    enable_tracing: bool = Field(
        default=True,
        description="Enable Langfuse tracing",
    )

    @property
    def tracing_configured(self) -> bool:
        """Tracing is active only when enabled and both keys are present."""
        return bool(self.enable_tracing and self.public_key and self.secret_key)
