"""
Request tracking middleware.

Binds a request ID to the request context for log correlation, echoes it back
as X-Request-ID, and records timing. For streamed relays the timing covers
only moderation and the opening of the upstream stream (time to first byte).
"""

import time
import uuid

from fastapi import Request

from moderation_gateway.utils.logging import get_logger
from moderation_gateway.utils.request_context import set_request_id

logger = get_logger(__name__)


def new_request_id() -> str:
    """Generate a request ID for callers that send none."""
    return f"req_{uuid.uuid4().hex[:16]}"


def is_event_stream(response) -> bool:  # type: ignore
    return response.headers.get("content-type", "").startswith("text/event-stream")


async def request_tracking_middleware(request: Request, call_next):  # type: ignore
    """Bind the caller's X-Request-ID (or a fresh one) and time the response."""
    request_id = request.headers.get("X-Request-ID", "").strip() or new_request_id()
    set_request_id(request_id)

    started = time.perf_counter()
    response = await call_next(request)
    elapsed = time.perf_counter() - started

    response.headers["X-Request-ID"] = request_id

    if is_event_stream(response):
        response.headers["X-First-Byte-Time"] = f"{elapsed:.6f}"
        logger.info(
            "Stream opened",
            extra={"method": request.method, "path": request.url.path, "first_byte_time": elapsed},
        )
    else:
        response.headers["X-Response-Time"] = f"{elapsed:.6f}"
        logger.info(
            "Request finished",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "response_time": elapsed,
            },
        )

    return response
