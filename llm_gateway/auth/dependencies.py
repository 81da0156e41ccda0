"""
FastAPI dependencies for authentication.

Callers authenticate with ``Authorization: Bearer <key>``; the key must be
one of the configured ``API_KEYS``.
"""

from typing import Annotated

from fastapi import Depends, Request

from llm_gateway.config import get_settings
from llm_gateway.core import UnauthorizedError

USER_IDENTIFIER_LENGTH = 10


def get_bearer_token(request: Request) -> str | None:
    """Extract the bearer token from the Authorization header."""
    header = request.headers.get("Authorization")
    if not header:
        return None
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def user_identifier_for(api_key: str) -> str:
    """Stable caller identity derived from the key prefix."""
    return api_key[:USER_IDENTIFIER_LENGTH]


def require_api_key(request: Request) -> str:
    """
    Dependency that validates the bearer key.

    Returns:
        The caller's user identifier.

    Raises:
        UnauthorizedError: If the key is missing or not configured.
    """
    token = get_bearer_token(request)
    if token is None or token not in get_settings().api_keys_list:
        raise UnauthorizedError()
    return user_identifier_for(token)


RequireAuth = Annotated[str, Depends(require_api_key)]
