"""
Health check endpoints.

Provides liveness and readiness probes for monitoring.
"""

from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from llm_gateway import __version__
from llm_gateway.config import get_settings
from llm_gateway.core import metrics
from llm_gateway.db import verify_database_connection

router = APIRouter(tags=["health"])
probe_router = APIRouter(tags=["health"])


@router.get("/health")
async def healthcheck() -> dict[str, Any]:
    """
    Health check endpoint (no authentication).

    Reports which providers have an API key configured, never the keys.
    """
    settings = get_settings()
    return {
        "status": "ok",
        "version": __version__,
        "timestamp": datetime.now(UTC).isoformat(),
        "providers": {
            "openai": bool(settings.openai_api_key),
            "anthropic": bool(settings.anthropic_api_key),
            "google": bool(settings.google_api_key),
        },
        "metrics": metrics.snapshot(),
    }


@probe_router.get("/readyz")
async def readiness() -> JSONResponse:
    """Readiness probe: the database must be reachable."""
    checks = {"database": verify_database_connection()}
    ready = all(checks.values())
    return JSONResponse(
        status_code=status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": "ready" if ready else "not_ready", "checks": checks},
    )
