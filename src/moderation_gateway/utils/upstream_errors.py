"""
httpx exception mapping utilities.

Maps httpx transport exceptions to gateway error classes for consistent error
handling across both upstream providers.
"""

import httpx

from moderation_gateway.utils.errors import (
    UpstreamConnectionError,
    UpstreamError,
    UpstreamTimeoutError,
)
from moderation_gateway.utils.logging import get_logger

logger = get_logger(__name__)


def map_httpx_exception(exc: httpx.HTTPError, provider: str, timeout_seconds: float) -> UpstreamError:
    """
    Map an httpx exception to a gateway upstream error.

    Args:
        exc: Exception raised by httpx during an upstream call
        provider: Upstream role ("moderation" or "completion")
        timeout_seconds: Timeout configured for the failed call

    Returns:
        Mapped gateway exception
    """
    if isinstance(exc, httpx.TimeoutException):
        logger.debug(
            "Mapping httpx timeout to UpstreamTimeoutError",
            extra={"provider": provider, "original_error": str(exc)},
        )
        return UpstreamTimeoutError(provider, timeout_seconds)

    logger.debug(
        f"Mapping {type(exc).__name__} to UpstreamConnectionError",
        extra={"provider": provider, "original_error": str(exc)},
    )
    message = f"{provider.capitalize()} provider connection failed"
    if str(exc):
        message = f"{message}: {exc}"
    return UpstreamConnectionError(provider, message=message)
