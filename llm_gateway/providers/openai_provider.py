"""
OpenAI provider adapter (Chat Completions streaming via the official SDK).
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any

import httpx
import openai

from llm_gateway.providers.base import (
    BaseProvider,
    ChatMessage,
    GenerationSettings,
    ProviderType,
)
from llm_gateway.providers.error_mapper import ProviderErrorMapper
from llm_gateway.providers.errors import ContentFilterError
from llm_gateway.providers.http_client import provider_timeout, request_headers
from llm_gateway.providers.retry import RetryDriver


class OpenAIProvider(BaseProvider):
    """
    Streams completions from OpenAI.

    Chat Completions has no separate system field, so the system prompt is
    sent as the leading ``system`` entry of ``messages``.
    """

    provider_type = ProviderType.OPENAI

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
        client: openai.AsyncOpenAI | None = None,
    ):
        super().__init__(generation, retry, error_mapper, api_key=api_key)
        timeout = provider_timeout(timeout_seconds, connect_timeout_seconds)
        self._client = client or openai.AsyncOpenAI(
            api_key=api_key or "",
            base_url=base_url or None,
            timeout=timeout,
            # Retries are owned by RetryDriver.
            max_retries=0,
            http_client=httpx.AsyncClient(transport=transport, timeout=timeout)
            if transport
            else None,
        )

    async def aclose(self) -> None:
        await self._client.close()

    def build_messages(
        self, system: str | None, turns: list[ChatMessage]
    ) -> list[dict[str, str]]:
        messages = [{"role": "system", "content": system}] if system else []
        messages.extend({"role": turn.role, "content": turn.content} for turn in turns)
        return messages

    def build_params(
        self, system: str | None, turns: list[ChatMessage], model: str
    ) -> dict[str, Any]:
        return {
            "model": model,
            "messages": self.build_messages(system, turns),
            "max_tokens": self.generation.max_tokens,
            "temperature": self.generation.temperature,
            "stream": True,
        }

    async def _stream(
        self, system: str | None, turns: list[ChatMessage], model: str
    ) -> AsyncIterator[str]:
        self._require_api_key()
        stream = await self._client.chat.completions.create(
            **self.build_params(system, turns, model),
            extra_headers=request_headers(),
        )
        async with stream:
            async for chunk in stream:
                if not chunk.choices:
                    continue
                choice = chunk.choices[0]
                if choice.delta is not None and choice.delta.content:
                    yield choice.delta.content
                if choice.finish_reason == "content_filter":
                    raise ContentFilterError(
                        "Response stopped by OpenAI content filter",
                        provider=self.provider_type.value,
                    )
