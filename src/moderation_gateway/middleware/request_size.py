"""
Request size middleware.

Rejects completion requests whose declared body size exceeds
MAX_REQUEST_BODY_SIZE before the body is read or any upstream call is made.
"""

from fastapi import Request

from moderation_gateway.pipeline.normalizer import error_response, normalize_error
from moderation_gateway.utils.errors import RequestSizeError
from moderation_gateway.utils.logging import get_logger

logger = get_logger(__name__)

BODILESS_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})


def declared_body_size(request: Request) -> int | None:
    """Content-Length as an int, or None when absent or unparseable."""
    header = request.headers.get("content-length")
    if header is None:
        return None
    try:
        return int(header)
    except ValueError:
        return None


async def request_size_validator(request: Request, call_next):  # type: ignore
    """Reject oversized bodies with a 413 error envelope.

    Bodiless methods and health probes pass straight through, as do requests
    without a usable Content-Length (the body parser applies its own limits).

    Args:
        request: FastAPI Request object
        call_next: Next middleware/route handler

    Returns:
        The downstream response, or a 413 JSON error response
    """
    if request.method in BODILESS_METHODS or request.url.path.startswith("/health/"):
        return await call_next(request)

    size = declared_body_size(request)
    limit = request.app.state.settings.max_request_body_size

    if size is not None and size > limit:
        logger.warning(
            "Request body too large",
            extra={"actual_size": size, "max_size": limit, "path": request.url.path},
        )
        return error_response(normalize_error(RequestSizeError(size, limit)))

    return await call_next(request)
