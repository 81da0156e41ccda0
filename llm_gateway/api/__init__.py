"""API routers."""

from llm_gateway.api.v1 import probe_router
from llm_gateway.api.v1 import router as v1_router

__all__ = ["probe_router", "v1_router"]
