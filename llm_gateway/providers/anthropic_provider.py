"""
Anthropic provider adapter (Messages streaming via the official SDK).
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any

import anthropic
import httpx

from llm_gateway.providers.base import (
    BaseProvider,
    ChatMessage,
    GenerationSettings,
    ProviderType,
)
from llm_gateway.providers.error_mapper import ProviderErrorMapper
from llm_gateway.providers.http_client import provider_timeout, request_headers
from llm_gateway.providers.retry import RetryDriver


class AnthropicProvider(BaseProvider):
    """Streams completions from Anthropic; the system prompt uses ``system=``."""

    provider_type = ProviderType.ANTHROPIC

    def __init__(
        self,
        api_key: str | None,
        generation: GenerationSettings,
        retry: RetryDriver,
        error_mapper: ProviderErrorMapper,
        *,
        base_url: str | None = None,
        timeout_seconds: float = 30.0,
        connect_timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
        client: anthropic.AsyncAnthropic | None = None,
    ):
        super().__init__(generation, retry, error_mapper, api_key=api_key)
        timeout = provider_timeout(timeout_seconds, connect_timeout_seconds)
        self._client = client or anthropic.AsyncAnthropic(
            api_key=api_key or None,
            base_url=base_url or None,
            timeout=timeout,
            max_retries=0,
            http_client=httpx.AsyncClient(transport=transport, timeout=timeout)
            if transport
            else None,
        )

    async def aclose(self) -> None:
        await self._client.close()

    def build_params(
        self, system: str | None, turns: list[ChatMessage], model: str
    ) -> dict[str, Any]:
        params: dict[str, Any] = {
            "model": model,
            "max_tokens": self.generation.max_tokens,
            "temperature": self.generation.temperature,
            "messages": [{"role": turn.role, "content": turn.content} for turn in turns],
        }
        if system:
            params["system"] = system
        return params

    async def _stream(
        self, system: str | None, turns: list[ChatMessage], model: str
    ) -> AsyncIterator[str]:
        self._require_api_key()
        params = self.build_params(system, turns, model)
        async with self._client.messages.stream(
            **params, extra_headers=request_headers()
        ) as stream:
            async for text in stream.text_stream:
                yield text
