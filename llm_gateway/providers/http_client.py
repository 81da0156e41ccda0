"""
Shared HTTP client helpers for provider adapters.

Provides consistent timeouts and request-id propagation for adapters that
talk to provider HTTP APIs directly.
"""

from __future__ import annotations

import httpx

from llm_gateway.core import request_id_ctx


def provider_timeout(timeout_seconds: float, connect_timeout_seconds: float) -> httpx.Timeout:
    """Overall timeout with a shorter connect phase."""
    return httpx.Timeout(timeout_seconds, connect=connect_timeout_seconds)


def create_http_client(
    base_url: str,
    timeout_seconds: float,
    connect_timeout_seconds: float,
    headers: dict[str, str] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """
    Build an AsyncClient with consistent timeout settings.

    Args:
        base_url: Base URL for the provider.
        timeout_seconds: Total timeout for reads, writes and pool waits.
        connect_timeout_seconds: Timeout for establishing the connection.
        headers: Default headers to include.
        transport: Optional transport (used by tests with MockTransport).
    """
    return httpx.AsyncClient(
        base_url=base_url.rstrip("/"),
        timeout=provider_timeout(timeout_seconds, connect_timeout_seconds),
        headers=headers or {},
        transport=transport,
    )


def request_headers(headers: dict[str, str] | None = None) -> dict[str, str]:
    """Copy ``headers`` and add the current request id when one is set."""
    merged = dict(headers or {})
    request_id = request_id_ctx.get()
    if request_id and "X-Request-ID" not in merged:
        merged["X-Request-ID"] = request_id
    return merged
