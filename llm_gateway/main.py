"""
LLM Gateway application.

FastAPI application with structured logging, error handling, and the
provider registry wired in at startup.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from llm_gateway import __version__
from llm_gateway.api import probe_router, v1_router
from llm_gateway.config import get_settings
from llm_gateway.core import get_logger, setup_logging
from llm_gateway.core.middleware import (
    RequestContextMiddleware,
    RequestSizeLimitMiddleware,
    setup_exception_handlers,
)
from llm_gateway.db import dispose_engine, reset_session_factory, verify_database_connection
from llm_gateway.providers import ProviderRegistry
from llm_gateway.services import ChatService

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    settings = get_settings()

    # Startup
    setup_logging(
        level=settings.log_level,
        json_output=not settings.debug,
        log_file=settings.log_file or None,
    )
    logger.info(
        "Starting LLM gateway",
        data={
            "host": settings.host,
            "port": settings.port,
            "debug": settings.debug,
            "environment": settings.environment,
        },
    )

    # Verify database connectivity (does NOT run migrations)
    if verify_database_connection():
        logger.info("Database connection verified")
    else:
        logger.warning(
            "Database connection failed - run 'alembic upgrade head' to initialize"
        )

    if not settings.api_keys_list:
        logger.warning("API_KEYS is empty; every authenticated request will be rejected")

    _app.state.start_time = datetime.now(UTC)

    # Tests may install their own registry before startup.
    registry_created = False
    if not hasattr(_app.state, "provider_registry"):
        _app.state.provider_registry = ProviderRegistry(settings)
        registry_created = True
    if not hasattr(_app.state, "chat_service"):
        _app.state.chat_service = ChatService(_app.state.provider_registry)

    yield

    # Shutdown
    logger.info("Shutting down LLM gateway")
    dispose_engine()
    reset_session_factory()
    if registry_created:
        await _app.state.provider_registry.aclose()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="LLM Gateway",
        description="Streaming chat gateway for OpenAI, Anthropic and Google Gemini",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    # Setup exception handlers (must be before middleware)
    setup_exception_handlers(app)

    # Middleware order matters: last added = first executed
    app.add_middleware(RequestSizeLimitMiddleware, max_bytes=settings.max_request_bytes)
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
        expose_headers=["X-Request-ID"],
    )

    app.include_router(probe_router)
    app.include_router(v1_router)

    return app


app = create_app()
