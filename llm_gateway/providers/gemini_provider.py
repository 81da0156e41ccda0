"""
Google Gemini provider adapter.

Gemini is called over plain HTTP (``streamGenerateContent`` with
``alt=sse``) using the shared httpx client helpers.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Iterable
from typing import Any

import httpx

from llm_gateway.providers.base import (
    BaseProvider,
    ChatMessage,
    GenerationSettings,
    ProviderType,
)
from llm_gateway.providers.error_mapper import ProviderErrorMapper
from llm_gateway.providers.errors import ContentFilterError
from llm_gateway.providers.http_client import create_http_client, request_headers
from llm_gateway.providers.retry import RetryDriver
from llm_gateway.providers.sse import SSELineParser, blocked_reason, extract_text

GEMINI_ROLES = {"user": "user", "assistant": "model"}


class GeminiProvider(BaseProvider):
    """Streams completions from the Gemini REST API."""

    provider_type = ProviderType.GOOGLE

    def __init__(
        self,
        api_key: str | None,
        generation: GenerationSettings,
        retry: RetryDriver,
        error_mapper: ProviderErrorMapper,
        *,
        base_url: str = "https://generativelanguage.googleapis.com",
        timeout_seconds: float = 30.0,
        connect_timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        super().__init__(generation, retry, error_mapper, api_key=api_key)
        self._client = client or create_http_client(
            base_url,
            timeout_seconds,
            connect_timeout_seconds,
            headers={"Content-Type": "application/json"},
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    def build_payload(self, system: str | None, turns: list[ChatMessage]) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "contents": [
                {"role": GEMINI_ROLES[turn.role], "parts": [{"text": turn.content}]}
                for turn in turns
            ],
            "generationConfig": {
                "maxOutputTokens": self.generation.max_tokens,
                "temperature": self.generation.temperature,
            },
        }
        if system:
            payload["systemInstruction"] = {"parts": [{"text": system}]}
        return payload

    def _texts(self, payloads: Iterable[dict[str, Any]]) -> Iterable[str]:
        for payload in payloads:
            reason = blocked_reason(payload)
            if reason:
                raise ContentFilterError(
                    f"Gemini blocked the request: {reason}",
                    provider=self.provider_type.value,
                )
            text = extract_text(payload)
            if text:
                yield text

    async def _stream(
        self, system: str | None, turns: list[ChatMessage], model: str
    ) -> AsyncIterator[str]:
        api_key = self._require_api_key()
        parser = SSELineParser()
        async with self._client.stream(
            "POST",
            f"/v1beta/models/{model}:streamGenerateContent",
            params={"alt": "sse"},
            json=self.build_payload(system, turns),
            headers=request_headers({"x-goog-api-key": api_key}),
        ) as response:
            if response.is_error:
                # Read the body so the error mapper can inspect it.
                await response.aread()
                response.raise_for_status()
            async for chunk in response.aiter_bytes():
                for text in self._texts(parser.feed(chunk)):
                    yield text
            for text in self._texts(parser.flush()):
                yield text
