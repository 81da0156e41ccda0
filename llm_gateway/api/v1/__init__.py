"""Version 1 API routes, mounted under ``/api/v1``."""

from fastapi import APIRouter

from llm_gateway.api.v1.chat import router as chat_router
from llm_gateway.api.v1.conversations import router as conversations_router
from llm_gateway.api.v1.health import probe_router
from llm_gateway.api.v1.health import router as health_router
from llm_gateway.api.v1.models import router as models_router

router = APIRouter(prefix="/api/v1")
router.include_router(health_router)
router.include_router(chat_router)
router.include_router(conversations_router)
router.include_router(models_router)

__all__ = ["probe_router", "router"]
