"""
Incremental parser for Gemini's ``alt=sse`` response stream.

Network chunks do not respect line boundaries, so a trailing partial line
is held back until the rest of it arrives.
"""

from __future__ import annotations

import codecs
import json
from collections.abc import Iterator
from typing import Any

from llm_gateway.core import get_logger

logger = get_logger(__name__)

DATA_PREFIX = "data: "


class SSELineParser:
    """Turn raw response bytes into decoded ``data:`` JSON payloads."""

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    def feed(self, chunk: bytes) -> Iterator[dict[str, Any]]:
        """Consume ``chunk`` and yield every payload completed by it."""
        self._buffer += self._decoder.decode(chunk)
        *lines, self._buffer = self._buffer.split("\n")
        for line in lines:
            payload = self._parse_line(line)
            if payload is not None:
                yield payload

    def flush(self) -> Iterator[dict[str, Any]]:
        """Parse whatever remains once the stream has ended."""
        self._buffer += self._decoder.decode(b"", final=True)
        line, self._buffer = self._buffer, ""
        payload = self._parse_line(line)
        if payload is not None:
            yield payload

    @staticmethod
    def _parse_line(line: str) -> dict[str, Any] | None:
        line = line.rstrip("\r")
        if not line.startswith(DATA_PREFIX):
            return None
        try:
            payload = json.loads(line[len(DATA_PREFIX):])
        except json.JSONDecodeError:
            logger.debug("Skipping malformed stream line", data={"line": line[:200]})
            return None
        return payload if isinstance(payload, dict) else None


def extract_text(payload: dict[str, Any]) -> str | None:
    """Return ``candidates[0].content.parts[0].text`` if present."""
    try:
        text = payload["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return None
    return text if isinstance(text, str) else None


def blocked_reason(payload: dict[str, Any]) -> str | None:
    """Return why Gemini refused the prompt or response, if it did."""
    feedback = payload.get("promptFeedback")
    if isinstance(feedback, dict) and feedback.get("blockReason"):
        return str(feedback["blockReason"])
    candidates = payload.get("candidates")
    if isinstance(candidates, list) and candidates and isinstance(candidates[0], dict):
        if candidates[0].get("finishReason") == "SAFETY":
            return "SAFETY"
    return None
