"""Chat completions endpoint for the OpenAI-compatible gateway API."""

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse, StreamingResponse

from moderation_gateway.api.dependencies import get_orchestrator
from moderation_gateway.pipeline.orchestrator import RequestOrchestrator
from moderation_gateway.utils.errors import InvalidRequestError
from moderation_gateway.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/v1", tags=["chat"])

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # Disable nginx buffering
}


@router.post("/chat/completions")
async def create_chat_completion(
    request: Request,
    orchestrator: RequestOrchestrator = Depends(get_orchestrator),
):
    """
    Moderate a chat completion request and forward it when it is clean.

    The conversation is first judged by the moderation provider. Only when no
    violation is reported is the original request sent to the completion
    provider, whose response is relayed unchanged.

    Args:
        request: FastAPI request object (raw JSON body)
        orchestrator: Per-request pipeline orchestrator (injected, authenticated)

    Returns:
        JSONResponse with the completion provider's body (buffered), or a
        StreamingResponse relaying its SSE events verbatim (stream=true)

    Raises:
        InvalidRequestError: If the body is not valid JSON or fails validation (400)
        ContentViolationError: If moderation reports a violation (403, buffered only)
        GatewayError: Any upstream failure (buffered only; streamed errors are in-band)
    """
    try:
        body = await request.json()
    except (ValueError, RecursionError) as exc:
        raise InvalidRequestError("Invalid request body", error_code="invalid_body") from exc

    completion_request = orchestrator.validate(body)

    logger.info(
        "Chat completion request",
        extra={"model": completion_request.model, "stream": bool(completion_request.stream)},
    )
    logger.debug(
        "Chat completion request details",
        extra={
            "model": completion_request.model,
            "message_count": len(completion_request.messages),
            "max_tokens": completion_request.max_tokens,
            "temperature": completion_request.temperature,
            "has_tools": bool(completion_request.tools),
        },
    )

    if completion_request.stream:
        return StreamingResponse(
            orchestrator.run_streamed(completion_request),
            media_type="text/event-stream",
            headers=STREAM_HEADERS,
        )

    result = await orchestrator.run_buffered(completion_request)
    return JSONResponse(content=result)


@router.options("/chat/completions")
async def chat_completion_options() -> Response:
    """Answer plain OPTIONS requests with permissive CORS headers."""
    return Response(status_code=200, headers=CORS_HEADERS)
