"""
Observability module.

Provides structured logging, correlation ID tracking and Langfuse tracing.
"""

from chat_engine.observability.logger import configure_logging, get_logger

__all__ = ["configure_logging", "get_logger"]
