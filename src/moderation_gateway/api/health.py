"""Health check endpoints for the Moderation Gateway."""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from moderation_gateway.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/health", tags=["health"])


@router.get("/")
async def health_check() -> dict[str, str]:
    """
    Health check endpoint.

    Returns:
        Status response indicating API is healthy
    """
    logger.debug("Health check (liveness) request received")
    return {"status": "healthy"}


@router.get("/ready")
async def readiness_check(request: Request):
    """
    Readiness check endpoint.

    The gateway is ready only when both upstream providers and the auth key
    are configured.

    Returns:
        Status response, or 503 with the configuration problem
    """
    logger.debug("Readiness check request received")
    if getattr(request.app.state, "gateway_config", None) is None:
        error = getattr(request.app.state, "config_error", None)
        return JSONResponse(
            status_code=503,
            content={
                "status": "not_ready",
                "reason": error.error_code if error else "provider_not_configured",
                "details": error.details if error else None,
            },
        )
    return {"status": "ready"}
