"""
Translate provider SDK and transport failures into the error taxonomy.

The OpenAI and Anthropic adapters surface their SDK exception hierarchies;
the Gemini adapter talks raw HTTP and surfaces httpx exceptions. Both end
up as a single ``LLMError`` so retry and rendering never need provider
knowledge.
"""

from __future__ import annotations

import traceback
from typing import Any

import anthropic
import httpx
import openai

from llm_gateway.core import get_logger, metrics
from llm_gateway.providers.errors import (
    DEFAULT_RETRY_AFTER,
    SERVICE_UNAVAILABLE_RETRY_AFTER,
    AuthenticationError,
    ContentFilterError,
    InvalidRequestError,
    LLMError,
    ModelNotFoundError,
    ProviderError,
    ProviderTimeoutError,
    RateLimitError,
    ServiceUnavailableError,
)

logger = get_logger(__name__)

_SDK_TIMEOUT_ERRORS = (openai.APITimeoutError, anthropic.APITimeoutError)
_SDK_CONNECTION_ERRORS = (openai.APIConnectionError, anthropic.APIConnectionError)
_SDK_RATE_LIMIT_ERRORS = (openai.RateLimitError, anthropic.RateLimitError)
_SDK_AUTH_ERRORS = (
    openai.AuthenticationError,
    anthropic.AuthenticationError,
    openai.PermissionDeniedError,
    anthropic.PermissionDeniedError,
)
_SDK_STATUS_ERRORS = (openai.APIStatusError, anthropic.APIStatusError)

_CONTENT_FILTER_MARKERS = ("content filter", "content_filter", "content management policy", "safety")

TRACEBACK_FRAMES = 5


def parse_retry_after(headers: Any, default: int) -> int:
    """Read a ``Retry-After`` header as integer seconds, else ``default``."""
    if headers is None:
        return default
    raw = headers.get("retry-after")
    if raw is None:
        return default
    try:
        return int(float(raw))
    except (TypeError, ValueError):
        return default


def _status_of(error: Exception) -> int | None:
    if isinstance(error, _SDK_STATUS_ERRORS):
        return error.status_code
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code
    return None


def _headers_of(error: Exception) -> Any:
    response = getattr(error, "response", None)
    return getattr(response, "headers", None)


def _response_snippet(response: httpx.Response) -> str:
    try:
        return response.text[:300]
    except httpx.ResponseNotRead:
        return ""


def _describe(error: Exception) -> str:
    if isinstance(error, httpx.HTTPStatusError):
        snippet = _response_snippet(error.response)
        return snippet or str(error)
    return str(error) or type(error).__name__


class ProviderErrorMapper:
    """Maps any exception raised by a provider call to exactly one ``LLMError``."""

    def map(self, error: BaseException, provider: str, **context: Any) -> LLMError:
        """Return the taxonomy error for ``error``.

        Already-mapped errors are returned unchanged so repeated mapping
        never nests. Every newly mapped error is logged once at ERROR level.
        """
        if isinstance(error, LLMError):
            return error

        mapped = self._classify(error, provider)
        metrics.increment("provider_errors_total")
        logger.error(
            "Provider call failed",
            data={
                "error_class": type(error).__name__,
                "message": str(error),
                "provider": provider,
                "mapped_kind": mapped.kind.value,
                "backtrace": traceback.format_tb(error.__traceback__)[-TRACEBACK_FRAMES:],
                **context,
            },
        )
        return mapped

    def _classify(self, error: BaseException, provider: str) -> LLMError:
        common = {"provider": provider, "original_error": error}
        status = _status_of(error) if isinstance(error, Exception) else None

        # SDK timeout classes subclass their connection classes.
        if isinstance(error, _SDK_TIMEOUT_ERRORS):
            return ProviderTimeoutError(f"Request timeout: {error}", **common)

        if isinstance(error, _SDK_CONNECTION_ERRORS):
            return ProviderError(f"Connection failed: {error}", **common)

        if isinstance(error, _SDK_RATE_LIMIT_ERRORS) or status == 429:
            return RateLimitError(
                "Rate limit exceeded",
                retry_after=parse_retry_after(_headers_of(error), DEFAULT_RETRY_AFTER),
                **common,
            )

        if isinstance(error, _SDK_AUTH_ERRORS) or (
            isinstance(error, httpx.HTTPStatusError) and status in (401, 403)
        ):
            return AuthenticationError(f"Authentication failed: {_describe(error)}", **common)

        if status is not None:
            return self._classify_status(error, status, common)

        if isinstance(error, httpx.TimeoutException):
            return ProviderTimeoutError("Request timeout", **common)

        if isinstance(error, httpx.ConnectError):
            return ProviderError("Connection failed", **common)

        if isinstance(error, httpx.HTTPError):
            return ProviderError(f"Network error: {error}", **common)

        return ProviderError(f"Provider error: {error}", **common)

    def _classify_status(
        self, error: BaseException, status: int, common: dict[str, Any]
    ) -> LLMError:
        detail = _describe(error)

        if status == 400:
            if any(marker in detail.lower() for marker in _CONTENT_FILTER_MARKERS):
                return ContentFilterError(f"Content filtered: {detail}", **common)
            return InvalidRequestError(f"Invalid request: {detail}", **common)

        if status == 404:
            return ModelNotFoundError(f"Model not found: {detail}", **common)

        if status == 503:
            return ServiceUnavailableError(
                "Service unavailable",
                retry_after=parse_retry_after(
                    _headers_of(error), SERVICE_UNAVAILABLE_RETRY_AFTER
                ),
                **common,
            )

        return ProviderError(f"HTTP {status}: {detail}", **common)
