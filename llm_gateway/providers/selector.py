"""
Resolve a model name to the adapter that serves it.

The model catalogue is consulted first; names it does not know fall back
to prefix matching, and anything unrecognised goes to OpenAI.
"""

from __future__ import annotations

from typing import Protocol

from llm_gateway.core import get_logger
from llm_gateway.providers.base import BaseProvider, ProviderType
from llm_gateway.providers.errors import ModelNotFoundError
from llm_gateway.providers.registry import ProviderRegistry

logger = get_logger(__name__)

MODEL_PREFIXES: tuple[tuple[str, ProviderType], ...] = (
    ("gpt-", ProviderType.OPENAI),
    ("claude-", ProviderType.ANTHROPIC),
    ("gemini-", ProviderType.GOOGLE),
)

DEFAULT_PROVIDER = ProviderType.OPENAI


class ModelRecord(Protocol):
    name: str
    provider: str


class ModelCatalog(Protocol):
    """Lookup of enabled catalogue entries by exact model name."""

    def find_enabled(self, name: str) -> ModelRecord | None: ...


def detect_provider(model_name: str) -> ProviderType:
    """Infer the provider from the model name prefix."""
    for prefix, provider_type in MODEL_PREFIXES:
        if model_name.startswith(prefix):
            return provider_type
    return DEFAULT_PROVIDER


def parse_provider(value: str, model_name: str) -> ProviderType:
    try:
        return ProviderType(value)
    except ValueError as exc:
        raise ModelNotFoundError(
            f"Unknown provider '{value}' for model '{model_name}'"
        ) from exc


class ProviderSelector:
    """Pick the adapter for a model name."""

    def __init__(self, registry: ProviderRegistry, catalog: ModelCatalog | None = None):
        self.registry = registry
        self.catalog = catalog

    def provider_type_for(self, model_name: str) -> ProviderType:
        record = self.catalog.find_enabled(model_name) if self.catalog else None
        if record is not None:
            return parse_provider(record.provider, model_name)
        provider_type = detect_provider(model_name)
        logger.debug(
            "Model not in catalogue; provider inferred from name",
            data={"model": model_name, "provider": provider_type.value},
        )
        return provider_type

    def resolve(self, model_name: str) -> BaseProvider:
        """Return the adapter that should serve ``model_name``."""
        return self.registry.get(self.provider_type_for(model_name))
