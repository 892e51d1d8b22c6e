"""Configuration and authentication dependencies for FastAPI endpoints.

Provides the fail-closed configuration check, bearer key verification and the
per-request orchestrator.
"""

import hmac

from fastapi import Depends, Request

from moderation_gateway.models.gateway import GatewayConfig
from moderation_gateway.pipeline.orchestrator import RequestOrchestrator
from moderation_gateway.utils.errors import AuthenticationError, ConfigurationError
from moderation_gateway.utils.logging import get_logger

logger = get_logger(__name__)


async def get_gateway_config(request: Request) -> GatewayConfig:
    """
    Dependency returning the immutable gateway configuration from app state.

    Raises:
        ConfigurationError: If required settings were missing or invalid at startup
    """
    config = getattr(request.app.state, "gateway_config", None)
    if config is None:
        error = getattr(request.app.state, "config_error", None)
        if error is None:
            error = ConfigurationError(
                "Gateway configuration not loaded", error_code="provider_not_configured"
            )
        logger.error(
            "Request rejected - gateway not configured",
            extra={"error_code": error.error_code, "details": error.details},
        )
        raise error
    return config


async def verify_auth_key(
    request: Request,
    config: GatewayConfig = Depends(get_gateway_config),
) -> GatewayConfig:
    """
    Verify the caller's bearer key against the configured auth key.

    The comparison is constant-time.

    Returns:
        The gateway configuration, for dependencies chained on authentication

    Raises:
        AuthenticationError: 401 if the key is missing or wrong
    """
    authorization = request.headers.get("Authorization", "")
    scheme, _, token = authorization.partition(" ")

    if scheme.lower() != "bearer" or not token:
        logger.warning("Authentication failed: missing bearer key")
        raise AuthenticationError()

    if not hmac.compare_digest(token.strip().encode(), config.auth_key.encode()):
        logger.warning("Authentication failed: invalid bearer key")
        raise AuthenticationError()

    logger.debug("Bearer key verified")
    return config


async def get_orchestrator(
    request: Request,
    config: GatewayConfig = Depends(verify_auth_key),
) -> RequestOrchestrator:
    """
    Dependency building the orchestrator for one request.

    An optional httpx transport on app state replaces the network for both
    upstream providers (used by tests).
    """
    transport = getattr(request.app.state, "upstream_transport", None)
    return RequestOrchestrator(config, transport=transport)
