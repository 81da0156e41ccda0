"""LLM provider adapters, error taxonomy and retry."""

from llm_gateway.providers.base import (
    BaseProvider,
    ChatMessage,
    GenerationSettings,
    ProviderType,
    StreamToken,
    split_system_prompt,
)
from llm_gateway.providers.error_mapper import ProviderErrorMapper
from llm_gateway.providers.errors import (
    AuthenticationError,
    ContentFilterError,
    ErrorKind,
    InvalidRequestError,
    LLMError,
    ModelNotFoundError,
    ProviderError,
    ProviderTimeoutError,
    RateLimitError,
    ServiceUnavailableError,
    StreamingError,
)
from llm_gateway.providers.registry import ProviderRegistry
from llm_gateway.providers.retry import DEFAULT_RETRY_POLICY, RetryDriver, RetryPolicy
from llm_gateway.providers.selector import ProviderSelector, detect_provider

__all__ = [
    "DEFAULT_RETRY_POLICY",
    "AuthenticationError",
    "BaseProvider",
    "ChatMessage",
    "ContentFilterError",
    "ErrorKind",
    "GenerationSettings",
    "InvalidRequestError",
    "LLMError",
    "ModelNotFoundError",
    "ProviderError",
    "ProviderErrorMapper",
    "ProviderRegistry",
    "ProviderSelector",
    "ProviderTimeoutError",
    "ProviderType",
    "RateLimitError",
    "RetryDriver",
    "RetryPolicy",
    "ServiceUnavailableError",
    "StreamToken",
    "StreamingError",
    "detect_provider",
    "split_system_prompt",
]
