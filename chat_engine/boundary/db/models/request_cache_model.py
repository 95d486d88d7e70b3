"""
Request cache ORM model.

Short-lived rows mapping a client idempotency key to the response it
produced (or a pending placeholder while the turn is running).

Dependencies: sqlalchemy, chat_engine.boundary.db.base
System role: Idempotent replay storage
"""

from datetime import datetime

from sqlalchemy import JSON, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from chat_engine.boundary.db.base import Base


class RequestCacheModel(Base):
    """Idempotency entry keyed by the client-supplied request key."""

    __tablename__ = "chat_request_cache"

    request_key: Mapped[str] = mapped_column(String(255), primary_key=True)
    payload: Mapped[dict] = mapped_column(JSON, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
