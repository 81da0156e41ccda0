"""
LLM provider error taxonomy.

Every failure that originates from a provider call leaves the provider
layer as exactly one of the kinds below. Retryability and the user-facing
message are fixed per kind; callers never decide them.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, ClassVar

from llm_gateway.core.errors import AppError, ErrorCode, ErrorResponse

DEFAULT_RETRY_AFTER = 60
SERVICE_UNAVAILABLE_RETRY_AFTER = 30


class ErrorKind(str, Enum):
    """Closed set of provider failure kinds."""

    PROVIDER_ERROR = "provider_error"
    TIMEOUT = "timeout"
    SERVICE_UNAVAILABLE = "service_unavailable"
    STREAMING_ERROR = "streaming_error"
    RATE_LIMIT = "rate_limit"
    AUTHENTICATION = "authentication"
    INVALID_REQUEST = "invalid_request"
    MODEL_NOT_FOUND = "model_not_found"
    CONTENT_FILTER = "content_filter"


def _clamp_retry_after(value: Any) -> int | None:
    if value is None:
        return None
    return max(int(value), 0)


class LLMError(AppError):
    """Base for all provider errors.

    Subclasses pin ``kind``, ``retryable``, the stable error code, the HTTP
    status used at the boundary, and the user-facing message. The internal
    ``message`` may carry provider detail and is never shown to end users.

    Attributes:
        provider: Name of the provider that failed (e.g. "anthropic").
        original_error: The raw SDK/transport exception, if any.
        retry_after: Non-negative seconds to wait before retrying, if known.
    """

    kind: ClassVar[ErrorKind]
    retryable: ClassVar[bool] = False
    error_code: ClassVar[ErrorCode] = ErrorCode.PROVIDER_ERROR
    http_status: ClassVar[int] = 502
    default_retry_after: ClassVar[int | None] = None
    user_message_template: ClassVar[str] = (
        "An error occurred while processing your request. Please try again."
    )

    def __init__(
        self,
        message: str,
        *,
        provider: str | None = None,
        original_error: BaseException | None = None,
        retry_after: int | float | None = None,
    ) -> None:
        if retry_after is None:
            retry_after = self.default_retry_after
        self.provider = provider
        self.original_error = original_error
        self.retry_after = _clamp_retry_after(retry_after)
        super().__init__(self.error_code, message, self.http_status)

    @property
    def user_message(self) -> str:
        return self.user_message_template.format(retry_after=self.retry_after)

    def to_dict(self) -> dict[str, Any]:
        """Safe, user-facing representation (no internal message)."""
        payload: dict[str, Any] = {
            "error": type(self).__name__,
            "kind": self.kind.value,
            "code": self.error_code.value,
            "message": self.user_message,
            "provider": self.provider,
            "retry_after": self.retry_after,
        }
        return {key: value for key, value in payload.items() if value is not None}

    def to_response(self, request_id: str | None = None) -> ErrorResponse:
        details: dict[str, Any] = {"kind": self.kind.value}
        if self.provider:
            details["provider"] = self.provider
        if self.retry_after is not None:
            details["retry_after"] = self.retry_after
        return ErrorResponse(
            code=self.error_code,
            message=self.user_message,
            request_id=request_id,
            details=details,
        )

    def __repr__(self) -> str:
        parts = [repr(self.message)]
        if self.provider is not None:
            parts.append(f"provider={self.provider!r}")
        if self.retry_after is not None:
            parts.append(f"retry_after={self.retry_after!r}")
        return f"{type(self).__name__}({', '.join(parts)})"


class ProviderError(LLMError):
    """Connectivity or otherwise unclassified provider failure."""

    kind = ErrorKind.PROVIDER_ERROR
    retryable = True
    user_message_template = "Unable to connect to AI service. Please try again in a moment."


class ProviderTimeoutError(ProviderError):
    """Request timed out before the provider responded."""

    kind = ErrorKind.TIMEOUT
    error_code = ErrorCode.PROVIDER_TIMEOUT
    http_status = 504
    user_message_template = "Request took too long. Please try again."


class ServiceUnavailableError(ProviderError):
    """Provider reported itself unavailable (HTTP 503)."""

    kind = ErrorKind.SERVICE_UNAVAILABLE
    error_code = ErrorCode.PROVIDER_UNAVAILABLE
    http_status = 503
    default_retry_after = SERVICE_UNAVAILABLE_RETRY_AFTER
    user_message_template = (
        "AI service is temporarily unavailable. Please try again in a moment."
    )


class StreamingError(ProviderError):
    """Failure after the response stream was opened."""

    kind = ErrorKind.STREAMING_ERROR
    error_code = ErrorCode.STREAMING_ERROR
    user_message_template = "Error occurred during response streaming. Please try again."


class RateLimitError(LLMError):
    """Provider rate limit exceeded."""

    kind = ErrorKind.RATE_LIMIT
    retryable = True
    error_code = ErrorCode.PROVIDER_RATE_LIMITED
    http_status = 429
    default_retry_after = DEFAULT_RETRY_AFTER
    user_message_template = (
        "AI service rate limit reached. Please try again in {retry_after} seconds."
    )


class AuthenticationError(LLMError):
    """Invalid or missing provider credentials."""

    kind = ErrorKind.AUTHENTICATION
    error_code = ErrorCode.PROVIDER_AUTH_FAILED
    http_status = 401
    user_message_template = "AI service authentication failed. Please contact support."


class InvalidRequestError(LLMError):
    """Provider rejected the request parameters."""

    kind = ErrorKind.INVALID_REQUEST
    error_code = ErrorCode.PROVIDER_INVALID_REQUEST
    http_status = 400
    user_message_template = "Invalid request parameters. Please check your input."


class ModelNotFoundError(LLMError):
    """Requested model is unknown or unsupported."""

    kind = ErrorKind.MODEL_NOT_FOUND
    error_code = ErrorCode.MODEL_NOT_FOUND
    http_status = 404
    user_message_template = "The requested AI model is not available."


class ContentFilterError(LLMError):
    """Request or response blocked by the provider's safety filter."""

    kind = ErrorKind.CONTENT_FILTER
    error_code = ErrorCode.CONTENT_FILTERED
    http_status = 403
    user_message_template = (
        "Your request was blocked by content filters. Please modify your message."
    )


ERROR_CLASSES: dict[ErrorKind, type[LLMError]] = {
    cls.kind: cls
    for cls in (
        ProviderError,
        ProviderTimeoutError,
        ServiceUnavailableError,
        StreamingError,
        RateLimitError,
        AuthenticationError,
        InvalidRequestError,
        ModelNotFoundError,
        ContentFilterError,
    )
}


def error_for_kind(kind: ErrorKind, message: str, **kwargs: Any) -> LLMError:
    """Construct the taxonomy error for ``kind``."""
    return ERROR_CLASSES[kind](message, **kwargs)
