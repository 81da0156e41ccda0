"""Core module with logging, errors, metrics, and middleware."""

from llm_gateway.core.errors import (
    AppError,
    ErrorCode,
    ErrorResponse,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from llm_gateway.core.logging import (
    bind_turn,
    get_logger,
    log_context,
    request_id_ctx,
    setup_logging,
    stream_id_ctx,
)
from llm_gateway.core.metrics import metrics

__all__ = [
    "AppError",
    "ErrorCode",
    "ErrorResponse",
    "NotFoundError",
    "UnauthorizedError",
    "ValidationError",
    "bind_turn",
    "get_logger",
    "log_context",
    "metrics",
    "request_id_ctx",
    "setup_logging",
    "stream_id_ctx",
]
