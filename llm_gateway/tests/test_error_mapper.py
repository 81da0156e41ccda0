"""Tests for translating SDK and transport exceptions into taxonomy errors."""

from __future__ import annotations

import logging

import anthropic
import httpx
import openai
import pytest

from llm_gateway.core import metrics
from llm_gateway.providers import (
    AuthenticationError,
    ContentFilterError,
    ErrorKind,
    InvalidRequestError,
    ModelNotFoundError,
    ProviderError,
    ProviderErrorMapper,
    ProviderTimeoutError,
    RateLimitError,
    ServiceUnavailableError,
)
from llm_gateway.providers.error_mapper import parse_retry_after

REQUEST = httpx.Request("POST", "https://provider.test/v1/chat")


def _response(status: int, headers: dict[str, str] | None = None, json: object = None) -> httpx.Response:
    return httpx.Response(status, headers=headers, json=json, request=REQUEST)


@pytest.fixture
def mapper() -> ProviderErrorMapper:
    return ProviderErrorMapper()


def test_sdk_timeout_wins_over_connection_error(mapper: ProviderErrorMapper) -> None:
    error = openai.APITimeoutError(request=REQUEST)
    assert isinstance(error, openai.APIConnectionError)

    mapped = mapper.map(error, "openai")

    assert isinstance(mapped, ProviderTimeoutError)
    assert mapped.original_error is error


def test_sdk_connection_error_maps_to_provider_error(mapper: ProviderErrorMapper) -> None:
    mapped = mapper.map(anthropic.APIConnectionError(request=REQUEST), "anthropic")

    assert type(mapped) is ProviderError
    assert mapped.kind is ErrorKind.PROVIDER_ERROR
    assert mapped.provider == "anthropic"


def test_sdk_rate_limit_reads_retry_after_header(mapper: ProviderErrorMapper) -> None:
    error = openai.RateLimitError(
        "Rate limited", response=_response(429, {"retry-after": "12"}), body=None
    )

    mapped = mapper.map(error, "openai")

    assert isinstance(mapped, RateLimitError)
    assert mapped.retry_after == 12


def test_sdk_rate_limit_defaults_to_sixty_seconds(mapper: ProviderErrorMapper) -> None:
    error = anthropic.RateLimitError("Rate limited", response=_response(429), body=None)

    assert mapper.map(error, "anthropic").retry_after == 60


def test_sdk_authentication_error(mapper: ProviderErrorMapper) -> None:
    error = openai.AuthenticationError("Incorrect API key", response=_response(401), body=None)

    mapped = mapper.map(error, "openai")

    assert isinstance(mapped, AuthenticationError)
    assert mapped.retryable is False


def test_sdk_bad_request_mentioning_filter_is_content_filter(mapper: ProviderErrorMapper) -> None:
    error = anthropic.BadRequestError(
        "Output blocked by content filtering policy", response=_response(400), body=None
    )

    assert isinstance(mapper.map(error, "anthropic"), ContentFilterError)


def test_sdk_bad_request_is_invalid_request(mapper: ProviderErrorMapper) -> None:
    error = openai.BadRequestError("max_tokens is too large", response=_response(400), body=None)

    mapped = mapper.map(error, "openai")

    assert isinstance(mapped, InvalidRequestError)
    assert "max_tokens" in mapped.message


def test_sdk_not_found_is_model_not_found(mapper: ProviderErrorMapper) -> None:
    error = anthropic.NotFoundError("model: claude-9", response=_response(404), body=None)

    assert isinstance(mapper.map(error, "anthropic"), ModelNotFoundError)


def test_sdk_503_is_service_unavailable_with_header(mapper: ProviderErrorMapper) -> None:
    error = openai.InternalServerError(
        "Service unavailable", response=_response(503, {"retry-after": "7"}), body=None
    )

    mapped = mapper.map(error, "openai")

    assert isinstance(mapped, ServiceUnavailableError)
    assert mapped.retry_after == 7


def test_sdk_other_status_is_provider_error(mapper: ProviderErrorMapper) -> None:
    error = openai.InternalServerError("boom", response=_response(500), body=None)

    mapped = mapper.map(error, "openai")

    assert type(mapped) is ProviderError
    assert mapped.message.startswith("HTTP 500")


@pytest.mark.parametrize(
    ("status", "expected"),
    [
        (429, RateLimitError),
        (401, AuthenticationError),
        (403, AuthenticationError),
        (400, InvalidRequestError),
        (404, ModelNotFoundError),
        (503, ServiceUnavailableError),
        (502, ProviderError),
    ],
)
def test_http_status_errors(mapper: ProviderErrorMapper, status: int, expected: type) -> None:
    response = _response(status, json={"error": {"message": "nope"}})
    error = httpx.HTTPStatusError("status", request=REQUEST, response=response)

    assert type(mapper.map(error, "google")) is expected


def test_http_400_safety_block_is_content_filter(mapper: ProviderErrorMapper) -> None:
    response = _response(400, json={"error": {"message": "Blocked for SAFETY reasons"}})
    error = httpx.HTTPStatusError("status", request=REQUEST, response=response)

    assert isinstance(mapper.map(error, "google"), ContentFilterError)


def test_http_transport_errors(mapper: ProviderErrorMapper) -> None:
    timeout = mapper.map(httpx.ConnectTimeout("slow", request=REQUEST), "google")
    connect = mapper.map(httpx.ConnectError("refused", request=REQUEST), "google")
    network = mapper.map(httpx.RemoteProtocolError("eof", request=REQUEST), "google")

    assert isinstance(timeout, ProviderTimeoutError)
    assert type(connect) is ProviderError and connect.message == "Connection failed"
    assert type(network) is ProviderError and network.message.startswith("Network error")


def test_unknown_exception_falls_back_to_provider_error(mapper: ProviderErrorMapper) -> None:
    mapped = mapper.map(ValueError("boom"), "openai")

    assert type(mapped) is ProviderError
    assert mapped.message == "Provider error: boom"
    assert mapped.retryable is True


def test_mapping_logs_once_with_context(
    mapper: ProviderErrorMapper, caplog: pytest.LogCaptureFixture
) -> None:
    caplog.set_level(logging.ERROR, logger="llm_gateway.providers.error_mapper")

    try:
        raise KeyError("missing")
    except KeyError as exc:
        mapper.map(exc, "anthropic", model="claude-3-haiku-20240307")

    records = [r for r in caplog.records if r.name == "llm_gateway.providers.error_mapper"]
    assert len(records) == 1
    data = records[0].data
    assert records[0].levelno == logging.ERROR
    assert data["error_class"] == "KeyError"
    assert data["provider"] == "anthropic"
    assert data["model"] == "claude-3-haiku-20240307"
    assert 1 <= len(data["backtrace"]) <= 5
    assert metrics.snapshot()["counters"]["provider_errors_total"] == 1


def test_parse_retry_after() -> None:
    assert parse_retry_after(httpx.Headers({"Retry-After": "3"}), 60) == 3
    assert parse_retry_after(httpx.Headers({"Retry-After": "soon"}), 60) == 60
    assert parse_retry_after(None, 30) == 30
