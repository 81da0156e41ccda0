"""Tests for the provider error taxonomy."""

from __future__ import annotations

import pytest

from llm_gateway.core import AppError, ErrorCode
from llm_gateway.providers import (
    AuthenticationError,
    ContentFilterError,
    ErrorKind,
    InvalidRequestError,
    LLMError,
    ModelNotFoundError,
    ProviderError,
    ProviderErrorMapper,
    ProviderTimeoutError,
    RateLimitError,
    ServiceUnavailableError,
    StreamingError,
)
from llm_gateway.providers.errors import ERROR_CLASSES, error_for_kind

ALL_ERRORS = [
    ProviderError,
    ProviderTimeoutError,
    ServiceUnavailableError,
    StreamingError,
    RateLimitError,
    AuthenticationError,
    InvalidRequestError,
    ModelNotFoundError,
    ContentFilterError,
]

RETRYABLE = {
    ErrorKind.PROVIDER_ERROR,
    ErrorKind.TIMEOUT,
    ErrorKind.SERVICE_UNAVAILABLE,
    ErrorKind.STREAMING_ERROR,
    ErrorKind.RATE_LIMIT,
}


def test_every_kind_has_exactly_one_class() -> None:
    assert set(ERROR_CLASSES) == set(ErrorKind)
    assert sorted(cls.__name__ for cls in ERROR_CLASSES.values()) == sorted(
        cls.__name__ for cls in ALL_ERRORS
    )


@pytest.mark.parametrize("error_cls", ALL_ERRORS)
def test_mapping_is_idempotent(error_cls: type[LLMError]) -> None:
    error = error_cls("already mapped", provider="anthropic")

    mapped = ProviderErrorMapper().map(error, "openai", model="gpt-4o")

    assert mapped is error
    assert mapped.kind is error_cls.kind
    assert mapped.provider == "anthropic"


@pytest.mark.parametrize("error_cls", ALL_ERRORS)
def test_retryability_is_fixed_per_kind(error_cls: type[LLMError]) -> None:
    assert error_cls("x").retryable is (error_cls.kind in RETRYABLE)
    assert isinstance(error_cls("x"), AppError)


def test_negative_retry_after_is_clamped_to_zero() -> None:
    assert RateLimitError("slow down", retry_after=-5).retry_after == 0


def test_default_retry_after_values() -> None:
    assert RateLimitError("x").retry_after == 60
    assert ServiceUnavailableError("x").retry_after == 30
    assert ProviderError("x").retry_after is None
    assert RateLimitError("x", retry_after=12.7).retry_after == 12


def test_user_message_hides_internal_detail() -> None:
    error = AuthenticationError("401 invalid key sk-abc", provider="openai")

    payload = error.to_dict()

    assert payload["message"] == "AI service authentication failed. Please contact support."
    assert "sk-abc" not in str(payload)
    assert payload["kind"] == "authentication"
    assert payload["code"] == ErrorCode.PROVIDER_AUTH_FAILED.value


def test_rate_limit_user_message_includes_retry_after() -> None:
    error = RateLimitError("429", retry_after=17)

    assert error.user_message == "AI service rate limit reached. Please try again in 17 seconds."


def test_to_response_carries_kind_provider_and_retry_after() -> None:
    response = RateLimitError("429", provider="google", retry_after=5).to_response("req-1")

    body = response.to_dict()["error"]
    assert body["code"] == "E4006"
    assert body["request_id"] == "req-1"
    assert body["details"] == {"kind": "rate_limit", "provider": "google", "retry_after": 5}


def test_error_for_kind_builds_matching_class() -> None:
    error = error_for_kind(ErrorKind.CONTENT_FILTER, "blocked", provider="google")

    assert isinstance(error, ContentFilterError)
    assert error.http_status == 403


def test_repr_names_class_and_provider() -> None:
    error = ServiceUnavailableError("down", provider="anthropic")

    assert repr(error) == "ServiceUnavailableError('down', provider='anthropic', retry_after=30)"
