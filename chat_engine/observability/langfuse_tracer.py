"""
Langfuse tracing integration.

Builds LangChain callback handlers so provider calls are traced in Langfuse
when credentials are configured.

Dependencies: langfuse, chat_engine.configs
System role: Distributed tracing for model calls
"""

import logging
from functools import lru_cache
from typing import Any

from chat_engine.configs import get_settings

logger = logging.getLogger(__name__)


@lru_cache
def _init_langfuse_client() -> bool:
    """Initialise the process-wide Langfuse client once. Returns False when disabled."""
    settings = get_settings().observability
    if not settings.tracing_configured:
        return False

    from langfuse import Langfuse

    Langfuse(
        public_key=settings.public_key,
        secret_key=settings.secret_key,
        host=settings.host,
    )
    logger.info("Langfuse tracing enabled", extra={"host": settings.host})
    return True


def get_trace_callbacks() -> list[Any]:
    """
    Return LangChain callbacks for the current process configuration.

    Returns:
        list: A single Langfuse CallbackHandler, or an empty list when tracing is off
    """
    if not _init_langfuse_client():
        return []

    from langfuse.langchain import CallbackHandler

    return [CallbackHandler()]
