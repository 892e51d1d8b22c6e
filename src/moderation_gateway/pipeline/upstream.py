"""
HTTP transport to the OpenAI-compatible upstream providers.

Each call opens its own httpx.AsyncClient and closes it when the call ends, so
no connection state outlives a single upstream call. Transport failures are
mapped to gateway errors here; HTTP status handling is left to the caller.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import httpx

from moderation_gateway.models.gateway import ProviderConfig
from moderation_gateway.utils.logging import get_logger
from moderation_gateway.utils.upstream_errors import map_httpx_exception

logger = get_logger(__name__)


def is_success(response: httpx.Response) -> bool:
    """Return True for 2xx responses."""
    return 200 <= response.status_code < 300


def error_payload(response: httpx.Response) -> Any:
    """
    Extract an upstream error body for diagnostics.

    Returns the decoded JSON body when possible, the raw text otherwise, or
    None for an empty body. The response body must already be read.
    """
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


async def post_chat_completion(
    provider: ProviderConfig,
    payload: dict[str, Any],
    timeout: float | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.Response:
    """
    POST a buffered chat completion request to a provider.

    Args:
        provider: Upstream provider settings
        payload: JSON request body
        timeout: Optional per-call timeout overriding the provider default
        transport: Optional httpx transport (used to stub providers in tests)

    Returns:
        The provider response with its body fully read

    Raises:
        UpstreamConnectionError: If the provider is unreachable
        UpstreamTimeoutError: If the call exceeds its timeout
    """
    timeout = timeout or provider.timeout_seconds
    logger.debug(
        "Calling upstream provider",
        extra={"provider": provider.name, "timeout_seconds": timeout, "stream": False},
    )
    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            return await client.post(
                provider.completions_url,
                headers=provider.headers,
                json=payload,
            )
    except httpx.HTTPError as exc:
        logger.error(
            "Upstream provider call failed",
            extra={"provider": provider.name, "error_type": type(exc).__name__, "error": str(exc)},
        )
        raise map_httpx_exception(exc, provider.name, timeout) from exc


@asynccontextmanager
async def stream_chat_completion(
    provider: ProviderConfig,
    payload: dict[str, Any],
    timeout: float | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AsyncIterator[httpx.Response]:
    """
    Open a streamed chat completion request to a provider.

    The client and connection stay open for the lifetime of the context and
    are released when it exits, including on cancellation.

    Args:
        provider: Upstream provider settings
        payload: JSON request body
        timeout: Optional per-call timeout overriding the provider default
        transport: Optional httpx transport (used to stub providers in tests)

    Yields:
        The open provider response, body not yet read

    Raises:
        UpstreamConnectionError: If the provider is unreachable or the stream breaks
        UpstreamTimeoutError: If the call exceeds its timeout
    """
    timeout = timeout or provider.timeout_seconds
    logger.debug(
        "Opening upstream stream",
        extra={"provider": provider.name, "timeout_seconds": timeout, "stream": True},
    )
    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            async with client.stream(
                "POST",
                provider.completions_url,
                headers=provider.headers,
                json=payload,
            ) as response:
                yield response
    except httpx.HTTPError as exc:
        logger.error(
            "Upstream stream failed",
            extra={"provider": provider.name, "error_type": type(exc).__name__, "error": str(exc)},
        )
        raise map_httpx_exception(exc, provider.name, timeout) from exc
