"""
Structured logging for the LLM gateway.

Every record carries the context of the work that produced it: the HTTP
request, the SSE stream, and the chat turn (conversation, model and
provider). Request and stream ids are set by middleware and the chat
service; turn fields are bound with ``bind_turn`` around provider calls so
retry warnings and mapped provider errors can be traced to the turn they
belong to.
"""

import json
import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any, Dict, Optional

request_id_ctx: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
stream_id_ctx: ContextVar[Optional[str]] = ContextVar("stream_id", default=None)
turn_ctx: ContextVar[Dict[str, str]] = ContextVar("turn", default={})

TURN_FIELDS = ("conversation_id", "model", "provider")

NOISY_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "openai", "anthropic")


@contextmanager
def bind_turn(**fields: Optional[str]) -> Iterator[Dict[str, str]]:
    """
    Attach turn fields to every record logged inside the block.

    Fields merge with any already bound; unknown names raise ``ValueError``.
    Tasks created inside the block inherit the fields.
    """
    unknown = set(fields) - set(TURN_FIELDS)
    if unknown:
        raise ValueError(f"Unknown turn fields: {sorted(unknown)}")
    merged = {**turn_ctx.get(), **{k: v for k, v in fields.items() if v is not None}}
    token = turn_ctx.set(merged)
    try:
        yield merged
    finally:
        turn_ctx.reset(token)


def log_context() -> Dict[str, str]:
    """Context fields currently in scope, without unset values."""
    context: Dict[str, str] = {}
    request_id = request_id_ctx.get()
    if request_id:
        context["request_id"] = request_id
    stream_id = stream_id_ctx.get()
    if stream_id:
        context["stream_id"] = stream_id
    context.update(turn_ctx.get())
    return context


class StructuredFormatter(logging.Formatter):
    """One JSON object per record; context fields sit at the top level."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **log_context(),
        }
        data = getattr(record, "data", None)
        if data:
            entry["data"] = data
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """Single-line output for local development."""

    def format(self, record: logging.LogRecord) -> str:
        context = log_context()
        timestamp = datetime.fromtimestamp(record.created, UTC).strftime("%H:%M:%S")
        request_id = context.get("request_id", "-")[:8]
        line = f"{timestamp} {record.levelname:<8} [{request_id}] {record.name}: {record.getMessage()}"

        # provider/model of the turn, when a provider call is in progress
        if "provider" in context:
            line += f" ({context['provider']}/{context.get('model', '?')})"

        data = getattr(record, "data", None)
        if data:
            line += f" {data}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class ContextLogger(logging.LoggerAdapter):
    """Logger adapter that accepts a ``data`` keyword for structured fields."""

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        extra = kwargs.setdefault("extra", {})
        if "data" in kwargs:
            extra["data"] = kwargs.pop("data")
        return msg, kwargs


def get_logger(name: str) -> ContextLogger:
    return ContextLogger(logging.getLogger(name), {})


def setup_logging(
    level: str = "INFO",
    json_output: bool = False,
    log_file: Optional[str] = None,
) -> None:
    """
    Install handlers on the root logger, replacing any existing ones.

    Console output is JSON when ``json_output`` is set; the optional log file
    is always JSON.
    """
    root = logging.getLogger()
    root.setLevel(level.upper())
    root.handlers.clear()

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(StructuredFormatter() if json_output else ConsoleFormatter())
    root.addHandler(console)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(StructuredFormatter())
        root.addHandler(file_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
