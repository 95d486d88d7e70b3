"""
Database configuration settings.

Connection parameters for the async SQLAlchemy engine backing session
records and the request-key cache.

Dependencies: pydantic, pydantic_settings
System role: Database connection configuration for ORM
"""

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from chat_engine.configs.base import BaseSettings


class DatabaseSettings(BaseSettings):
    """Async database configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="DATABASE_",
        case_sensitive=False,
        extra="ignore",
    )

    url: str = Field(
        default="sqlite+aiosqlite:///./chat_engine.db",
        description="SQLAlchemy async database URL",
    )
    pool_size: int = Field(default=10, description="Connection pool size (ignored for SQLite)")
    max_overflow: int = Field(default=20, description="Maximum overflow connections")
    pool_timeout: int = Field(default=30, description="Connection pool timeout in seconds")
    echo_sql: bool = Field(default=False, description="Echo SQL statements to logs")

    @property
    def is_sqlite(self) -> bool:
        """Whether the configured URL targets SQLite."""
        return self.url.startswith("sqlite")
