"""
Utility modules for the Moderation Gateway.

This module provides error handling, logging, and helper utilities.
"""

from moderation_gateway.utils.errors import (
    AuthenticationError,
    ConfigurationError,
    ContentViolationError,
    GatewayError,
    InvalidModerationResponseError,
    InvalidRequestError,
    MethodNotAllowedError,
    UpstreamAPIError,
    UpstreamConnectionError,
    UpstreamError,
    UpstreamTimeoutError,
)
from moderation_gateway.utils.logging import get_logger, setup_logging
from moderation_gateway.utils.prompts import load_prompt

__all__ = [
    # Errors
    "GatewayError",
    "InvalidRequestError",
    "AuthenticationError",
    "MethodNotAllowedError",
    "ConfigurationError",
    "ContentViolationError",
    "InvalidModerationResponseError",
    "UpstreamError",
    "UpstreamConnectionError",
    "UpstreamTimeoutError",
    "UpstreamAPIError",
    # Logging
    "get_logger",
    "setup_logging",
    # Prompts
    "load_prompt",
]
