"""
Moderation client.

Sends the projected conversation to the moderation provider and parses its
verdict. The client fails closed: any response that cannot be confidently
parsed into a boolean verdict raises InvalidModerationResponseError instead of
being treated as safe.
"""

from typing import Any

import httpx
from pydantic import ValidationError

from moderation_gateway.models.gateway import ModerationPolicy, ModerationVerdict, ProviderConfig
from moderation_gateway.pipeline.upstream import error_payload, is_success, post_chat_completion
from moderation_gateway.utils.errors import InvalidModerationResponseError
from moderation_gateway.utils.logging import get_logger

logger = get_logger(__name__)


class ModerationClient:
    """Issues the synchronous moderation call for one request."""

    def __init__(
        self,
        policy: ModerationPolicy,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the moderation client.

        Args:
            policy: Moderation policy carrying token budgets and vision timeout
            transport: Optional httpx transport (used to stub the provider in tests)
        """
        self.policy = policy
        self.transport = transport

    def build_payload(
        self,
        messages: list[dict[str, Any]],
        model: str,
        has_image_content: bool,
        tools: list[Any] | None = None,
    ) -> dict[str, Any]:
        """Build the moderation request body."""
        payload: dict[str, Any] = {
            "model": model,
            "messages": messages,
            "temperature": 0,
            "max_tokens": (
                self.policy.vision_moderation_max_tokens
                if has_image_content
                else self.policy.moderation_max_tokens
            ),
            "response_format": {"type": "json_object"},
        }
        if tools:
            payload["tools"] = tools
        return payload

    async def check_violation(
        self,
        messages: list[dict[str, Any]],
        model: str,
        provider: ProviderConfig,
        has_image_content: bool = False,
        tools: list[Any] | None = None,
    ) -> bool:
        """
        Ask the moderation provider whether the conversation violates policy.

        Args:
            messages: Projected moderation conversation
            model: Moderation model identifier
            provider: Moderation provider settings
            has_image_content: Apply the vision token budget and timeout
            tools: Caller tool definitions passed through to the judge

        Returns:
            True only when the verdict is exactly ``isViolation: true``

        Raises:
            InvalidModerationResponseError: If the verdict cannot be parsed
            UpstreamConnectionError: If the provider is unreachable
            UpstreamTimeoutError: If the call exceeds its timeout
        """
        payload = self.build_payload(messages, model, has_image_content, tools)
        timeout = (
            self.policy.vision_moderation_timeout if has_image_content else provider.timeout_seconds
        )

        logger.info(
            "Moderation request",
            extra={
                "moderation_model": model,
                "message_count": len(messages),
                "max_tokens": payload["max_tokens"],
                "has_image_content": has_image_content,
            },
        )

        response = await post_chat_completion(
            provider, payload, timeout=timeout, transport=self.transport
        )

        if not is_success(response):
            logger.error(
                "Moderation provider returned an error status",
                extra={"status_code": response.status_code},
            )
            raise InvalidModerationResponseError(
                details=f"Moderation provider returned HTTP {response.status_code}",
                provider_error=error_payload(response),
            )

        verdict = self.parse_verdict(response)
        logger.info("Moderation verdict", extra={"is_violation": verdict.is_violation})
        return verdict.is_violation is True

    @staticmethod
    def parse_verdict(response: httpx.Response) -> ModerationVerdict:
        """
        Parse the verdict from a moderation completion response.

        Raises:
            InvalidModerationResponseError: If any part of the response is malformed
        """
        try:
            data = response.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            logger.error(
                "Moderation parsing error",
                extra={"stage": "envelope", "error_type": type(exc).__name__},
            )
            raise InvalidModerationResponseError(
                details="Moderation response has no message content"
            ) from exc

        if not isinstance(content, str):
            logger.error("Moderation parsing error", extra={"stage": "content"})
            raise InvalidModerationResponseError(
                details="Moderation message content is not a string"
            )

        try:
            return ModerationVerdict.model_validate_json(content)
        except ValidationError as exc:
            logger.error(
                "Moderation parsing error",
                extra={"stage": "verdict", "error_count": exc.error_count()},
            )
            raise InvalidModerationResponseError(
                details="Moderation content is not a JSON object with a boolean isViolation"
            ) from exc
