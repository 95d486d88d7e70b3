"""
FastAPI application with assembled routers.

Initializes FastAPI app with all API routers and configures uvicorn server.

Dependencies: fastapi, chat_engine.api.routers, uvicorn
System role: API entry point with router assembly and server launch
"""

from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from chat_engine.api.deps.dependencies import get_service_cache
from chat_engine.boundary.db.connection import get_async_engine
from chat_engine.boundary.db.create_tables import create_all_tables
from chat_engine.configs import get_settings
from chat_engine.observability import configure_logging, get_logger
from chat_engine.observability.middleware import CorrelationMiddleware, RequestLoggingMiddleware

from .routers import chat_router, health_router, sessions_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Handles startup and shutdown events.
    """
    settings = get_settings()
    configure_logging(settings.log_level)
    logger = get_logger("uvicorn")

    # Startup
    await create_all_tables()
    cache = get_service_cache()
    _ = cache.tool_registry
    logger.info("Chat engine ready")

    yield

    # Shutdown
    cache.clear()
    await get_async_engine().dispose()
    logger.info("Service cache cleared")


def create_app() -> FastAPI:
    """
    Create and configure FastAPI application with routers.

    Returns:
        FastAPI: Configured application instance with all routers registered
    """
    app = FastAPI(
        title="Chat Engine API",
        description="Conversation sessions with AI tool calling",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add observability middleware
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(CorrelationMiddleware)

    # Register all routers with /api/v1 prefix for versioning
    app.include_router(health_router, prefix="/api/v1")
    app.include_router(sessions_router, prefix="/api/v1")
    app.include_router(chat_router, prefix="/api/v1")

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "chat_engine.api.main:app",
        host="0.0.0.0",
        port=8000,
    )
