"""
Forwarder to the completion provider.

Sends the caller's original request (never the moderation projection) to the
completion provider, either buffered or as a streamed pass-through relay.
"""

from collections.abc import AsyncIterator
from typing import Any

import httpx

from moderation_gateway.models.gateway import ProviderConfig
from moderation_gateway.models.openai import CompletionRequest
from moderation_gateway.pipeline.upstream import (
    error_payload,
    is_success,
    post_chat_completion,
    stream_chat_completion,
)
from moderation_gateway.utils.errors import UpstreamAPIError
from moderation_gateway.utils.logging import get_logger

logger = get_logger(__name__)


def build_completion_payload(request: CompletionRequest, default_max_tokens: int) -> dict[str, Any]:
    """
    Build the completion provider request body from the original request.

    Args:
        request: Validated caller request
        default_max_tokens: max_tokens used when the caller sends none

    Returns:
        JSON request body for the completion provider
    """
    payload: dict[str, Any] = {
        "model": request.model,
        "messages": request.messages,
        "stream": bool(request.stream),
        "max_tokens": request.max_tokens or default_max_tokens,
    }
    if request.temperature is not None:
        payload["temperature"] = request.temperature
    if request.response_format is not None:
        payload["response_format"] = request.response_format
    if request.tools is not None:
        payload["tools"] = request.tools
    return payload


def _summarize_messages(messages: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return [
        {
            "role": message.get("role"),
            "content_type": "array" if isinstance(message.get("content"), list) else "text",
        }
        for message in messages
    ]


class Forwarder:
    """Relays an accepted request to the completion provider."""

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        """
        Initialize the forwarder.

        Args:
            transport: Optional httpx transport (used to stub the provider in tests)
        """
        self.transport = transport

    async def forward_buffered(
        self,
        request: CompletionRequest,
        provider: ProviderConfig,
        default_max_tokens: int,
    ) -> dict[str, Any]:
        """
        Forward a request and return the provider's full JSON body.

        Raises:
            UpstreamAPIError: If the provider returns a non-2xx status or a non-JSON body
            UpstreamConnectionError: If the provider is unreachable
            UpstreamTimeoutError: If the call exceeds its timeout
        """
        payload = build_completion_payload(request, default_max_tokens)
        logger.info(
            "Completion provider request",
            extra={
                "model": payload["model"],
                "stream": False,
                "max_tokens": payload["max_tokens"],
                "messages": _summarize_messages(request.messages),
            },
        )

        response = await post_chat_completion(provider, payload, transport=self.transport)

        if not is_success(response):
            logger.error(
                "Completion provider returned an error status",
                extra={"status_code": response.status_code},
            )
            raise UpstreamAPIError(
                provider.name, response.status_code, provider_error=error_payload(response)
            )

        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamAPIError(
                provider.name,
                502,
                provider_error=response.text,
                message="Completion provider returned a non-JSON body",
            ) from exc

    async def forward_streamed(
        self,
        request: CompletionRequest,
        provider: ProviderConfig,
        default_max_tokens: int,
    ) -> AsyncIterator[bytes]:
        """
        Forward a request and relay the provider's event stream verbatim.

        The upstream connection is held only while this generator runs; closing
        the generator (e.g., on client disconnect) releases it.

        Yields:
            Raw response bytes exactly as framed by the provider

        Raises:
            UpstreamAPIError: If the provider returns a non-2xx status
            UpstreamConnectionError: If the provider is unreachable or the stream breaks
            UpstreamTimeoutError: If the call exceeds its timeout
        """
        payload = build_completion_payload(request, default_max_tokens)
        logger.info(
            "Completion provider request",
            extra={
                "model": payload["model"],
                "stream": True,
                "max_tokens": payload["max_tokens"],
                "messages": _summarize_messages(request.messages),
            },
        )

        async with stream_chat_completion(provider, payload, transport=self.transport) as response:
            if not is_success(response):
                await response.aread()
                logger.error(
                    "Completion provider returned an error status",
                    extra={"status_code": response.status_code, "stream": True},
                )
                raise UpstreamAPIError(
                    provider.name, response.status_code, provider_error=error_payload(response)
                )

            chunk_count = 0
            async for chunk in response.aiter_bytes():
                chunk_count += 1
                yield chunk

            logger.debug("Upstream stream finished", extra={"chunk_count": chunk_count})
