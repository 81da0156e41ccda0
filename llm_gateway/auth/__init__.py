"""Bearer API-key authentication."""

from llm_gateway.auth.dependencies import (
    RequireAuth,
    get_bearer_token,
    require_api_key,
    user_identifier_for,
)

__all__ = [
    "RequireAuth",
    "get_bearer_token",
    "require_api_key",
    "user_identifier_for",
]
