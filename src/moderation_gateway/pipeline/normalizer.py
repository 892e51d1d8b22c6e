"""
Error normalization.

Every failure, in either transport mode, reaches the caller through
normalize_error() as an ErrorEnvelope. Buffered requests get it as a JSON
response; streamed requests get it as one SSE data event followed by the
[DONE] marker.
"""

import json

from fastapi.responses import JSONResponse

from moderation_gateway.models.openai import ErrorDetail, ErrorEnvelope
from moderation_gateway.utils.errors import GatewayError
from moderation_gateway.utils.logging import get_logger

logger = get_logger(__name__)

SSE_DONE = b"data: [DONE]\n\n"


def normalize_error(exc: BaseException) -> ErrorEnvelope:
    """
    Map any exception to the uniform error envelope.

    Gateway errors keep their own type, code and status. Anything else is
    reported as a generic internal error; its text is logged, not returned.

    Args:
        exc: The exception to normalize

    Returns:
        Immutable ErrorEnvelope with the HTTP status attached
    """
    if isinstance(exc, GatewayError):
        code = exc.error_code
        status_code = code if isinstance(code, int) else exc.status_code
        return ErrorEnvelope(
            error=ErrorDetail(
                message=exc.message or "An error occurred.",
                type=exc.error_type,
                code=code,
                details=exc.details,
                provider_error=exc.provider_error,
            ),
            status_code=status_code,
        )

    logger.error(
        f"Unexpected error: {exc}",
        extra={"error_type": type(exc).__name__},
        exc_info=exc,
    )
    return ErrorEnvelope(
        error=ErrorDetail(message="Internal server error", type="internal_error", code=500),
        status_code=500,
    )


def error_response(envelope: ErrorEnvelope, headers: dict[str, str] | None = None) -> JSONResponse:
    """Render an envelope as a JSON response at its HTTP status."""
    return JSONResponse(status_code=envelope.status_code, content=envelope.to_dict(), headers=headers)


def error_event(envelope: ErrorEnvelope) -> bytes:
    """Render an envelope as a terminal SSE event followed by [DONE]."""
    data = json.dumps(envelope.to_dict(), ensure_ascii=False)
    return f"data: {data}\n\n".encode() + SSE_DONE
