"""Provider registry: one adapter instance per provider type."""

from __future__ import annotations

import httpx

from llm_gateway.config import Settings
from llm_gateway.core import get_logger
from llm_gateway.providers.anthropic_provider import AnthropicProvider
from llm_gateway.providers.base import BaseProvider, GenerationSettings, ProviderType
from llm_gateway.providers.error_mapper import ProviderErrorMapper
from llm_gateway.providers.errors import ModelNotFoundError
from llm_gateway.providers.gemini_provider import GeminiProvider
from llm_gateway.providers.openai_provider import OpenAIProvider
from llm_gateway.providers.retry import RetryDriver, RetryPolicy

logger = get_logger(__name__)


def retry_policy_from_settings(settings: Settings) -> RetryPolicy:
    return RetryPolicy(
        max_attempts=settings.retry_max_attempts,
        initial_delay=settings.retry_initial_delay_seconds,
        max_delay=settings.retry_max_delay_seconds,
        backoff_multiplier=settings.retry_backoff_multiplier,
    )


class ProviderRegistry:
    """Instantiate and hold the adapters for every supported provider."""

    def __init__(
        self,
        settings: Settings,
        transport_overrides: dict[ProviderType, httpx.AsyncBaseTransport] | None = None,
        retry: RetryDriver | None = None,
    ):
        self.settings = settings
        self.providers: dict[ProviderType, BaseProvider] = {}
        self._transport_overrides = transport_overrides or {}
        self.retry = retry or RetryDriver(retry_policy_from_settings(settings))
        self.error_mapper = ProviderErrorMapper()
        self._initialize()

    def _transport(self, provider_type: ProviderType) -> httpx.AsyncBaseTransport | None:
        return self._transport_overrides.get(provider_type)

    def _initialize(self) -> None:
        settings = self.settings
        generation = GenerationSettings(
            max_tokens=settings.max_tokens, temperature=settings.temperature
        )
        timeouts = {
            "timeout_seconds": settings.provider_timeout_seconds,
            "connect_timeout_seconds": settings.provider_connect_timeout_seconds,
        }

        for provider_type in ProviderType:
            provider: BaseProvider
            if provider_type is ProviderType.OPENAI:
                provider = OpenAIProvider(
                    settings.openai_api_key,
                    generation,
                    self.retry,
                    self.error_mapper,
                    base_url=settings.openai_base_url,
                    transport=self._transport(provider_type),
                    **timeouts,
                )
            elif provider_type is ProviderType.ANTHROPIC:
                provider = AnthropicProvider(
                    settings.anthropic_api_key,
                    generation,
                    self.retry,
                    self.error_mapper,
                    base_url=settings.anthropic_base_url,
                    transport=self._transport(provider_type),
                    **timeouts,
                )
            else:
                provider = GeminiProvider(
                    settings.google_api_key,
                    generation,
                    self.retry,
                    self.error_mapper,
                    base_url=settings.gemini_base_url,
                    transport=self._transport(provider_type),
                    **timeouts,
                )

            if not provider.api_key:
                logger.warning(
                    "Provider API key not set; requests will fail authentication",
                    data={"provider": provider_type.value},
                )
            self.providers[provider_type] = provider

        logger.info(
            "Provider registry initialized",
            data={"providers": [p.value for p in self.providers]},
        )

    def get(self, provider_type: ProviderType) -> BaseProvider:
        """Resolve the adapter for ``provider_type``."""
        provider = self.providers.get(provider_type)
        if provider is None:
            raise ModelNotFoundError(
                f"Provider '{provider_type.value}' is not registered",
                provider=provider_type.value,
            )
        return provider

    def configured(self) -> dict[str, bool]:
        """Whether each provider has an API key configured."""
        return {
            provider_type.value: bool(provider.api_key)
            for provider_type, provider in self.providers.items()
        }

    async def aclose(self) -> None:
        """Close all provider clients."""
        for provider_type, provider in self.providers.items():
            try:
                await provider.aclose()
            except Exception:  # pragma: no cover - defensive
                logger.warning(
                    "Error closing provider client", data={"provider": provider_type.value}
                )
