"""
Security headers middleware.

Headers are applied after the route handler returns, so streamed relays get
them on the response start, before the first upstream byte is sent.
"""

from fastapi import Request

from moderation_gateway.utils.logging import get_logger

logger = get_logger(__name__)

BASELINE_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
}

HSTS_HEADER = ("Strict-Transport-Security", "max-age=31536000; includeSubDomains")


def is_https_request(request: Request) -> bool:
    """True for direct TLS or a TLS-terminating proxy (X-Forwarded-Proto)."""
    if request.url.scheme == "https":
        return True
    return request.headers.get("X-Forwarded-Proto", "").lower() == "https"


async def security_headers_middleware(request: Request, call_next):  # type: ignore
    """Add baseline security headers, plus HSTS on HTTPS requests.

    Args:
        request: FastAPI Request object
        call_next: Next middleware/route handler

    Returns:
        The downstream response with security headers set
    """
    response = await call_next(request)
    response.headers.update(BASELINE_HEADERS)

    hsts = is_https_request(request)
    if hsts:
        name, value = HSTS_HEADER
        response.headers[name] = value

    logger.debug(
        "Security headers applied",
        extra={"path": request.url.path, "hsts": hsts},
    )
    return response
