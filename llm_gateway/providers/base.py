"""
Base provider interface.

Defines the contract all LLM provider adapters implement: turn an ordered
chat history into an ordered stream of text tokens, with failures mapped
into the error taxonomy and retried by the shared driver.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Awaitable, Callable, Sequence
from contextlib import aclosing
from dataclasses import dataclass
from enum import Enum

from llm_gateway.providers.error_mapper import ProviderErrorMapper
from llm_gateway.providers.errors import AuthenticationError
from llm_gateway.providers.retry import RetryDriver

ROLES = frozenset({"system", "user", "assistant"})


class ProviderType(str, Enum):
    """Supported provider types."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GOOGLE = "google"


@dataclass(frozen=True)
class ChatMessage:
    """A single chat message."""

    role: str  # "system", "user", "assistant"
    content: str

    def __post_init__(self) -> None:
        if self.role not in ROLES:
            raise ValueError(f"Invalid message role: {self.role!r}")


@dataclass(frozen=True)
class StreamToken:
    """A text fragment relayed from a provider stream."""

    text: str


@dataclass(frozen=True)
class GenerationSettings:
    """Sampling parameters applied to every request an adapter makes."""

    max_tokens: int = 2000
    temperature: float = 0.7


TokenCallback = Callable[[StreamToken], Awaitable[None]]


def split_system_prompt(
    history: Sequence[ChatMessage],
) -> tuple[str | None, list[ChatMessage]]:
    """
    Separate the system prompt from the conversational turns.

    The first system message supplies the system text; every system message
    is dropped from the returned turns, which keep their original order.
    """
    system: str | None = None
    turns: list[ChatMessage] = []
    for message in history:
        if message.role == "system":
            if system is None:
                system = message.content
            continue
        turns.append(message)
    return system, turns


class BaseProvider(ABC):
    """
    Abstract base class for LLM providers.

    Subclasses implement ``_stream`` for one attempt against their API. The
    base class owns system-prompt extraction, retry, and error mapping so
    every provider behaves the same way to callers.
    """

    provider_type: ProviderType

    def __init__(
        self,
        generation: GenerationSettings,
        retry: RetryDriver,
        error_mapper: ProviderErrorMapper,
        api_key: str | None = None,
    ):
        self.generation = generation
        self.retry = retry
        self.error_mapper = error_mapper
        self.api_key = api_key

    async def aclose(self) -> None:
        """Close any underlying resources (optional)."""
        return None

    def _require_api_key(self) -> str:
        if not self.api_key:
            raise AuthenticationError(
                f"{self.provider_type.value} API key is not configured",
                provider=self.provider_type.value,
            )
        return self.api_key

    async def stream_completion(
        self,
        history: Sequence[ChatMessage],
        model: str,
        on_token: TokenCallback,
        on_attempt: Callable[[], None] | None = None,
    ) -> None:
        """
        Stream a completion for ``history``, relaying tokens to ``on_token``.

        Args:
            history: Ordered conversation, optionally including system messages.
            model: Provider model name.
            on_token: Awaited once per non-empty text fragment, in order.
            on_attempt: Called before every attempt, including retries, so
                callers can discard text relayed by a failed attempt.

        Raises:
            LLMError: The mapped failure once retries are exhausted or the
                failure is not retryable.
        """
        system, turns = split_system_prompt(history)

        async def attempt() -> None:
            if on_attempt is not None:
                on_attempt()
            try:
                async with aclosing(self._stream(system, turns, model)) as stream:
                    async for text in stream:
                        if text:
                            await on_token(StreamToken(text))
            except Exception as exc:
                mapped = self.error_mapper.map(exc, self.provider_type.value, model=model)
                if mapped is exc:
                    raise
                raise mapped from exc

        await self.retry.execute(attempt)

    @abstractmethod
    def _stream(
        self,
        system: str | None,
        turns: list[ChatMessage],
        model: str,
    ) -> AsyncIterator[str]:
        """
        Run one request and yield text fragments as they arrive.

        Args:
            system: System prompt text, delivered via the provider's system channel.
            turns: Non-system messages in order.
            model: Provider model name.
        """
        ...
