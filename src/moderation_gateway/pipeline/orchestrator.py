"""
Request orchestrator for the moderation-gated pipeline.

Sequences one request through the pipeline states:

    validating -> moderating -> (rejected | forwarding) -> completed

The state machine is the same for buffered and streamed requests. Only the
transport of the terminal event differs: buffered requests raise gateway
errors for the HTTP layer to render, streamed requests emit them in-band.
"""

import asyncio
import contextlib
import time
from collections.abc import AsyncIterator
from typing import Any

import httpx

from moderation_gateway.models.gateway import GatewayConfig, ModerationProjection, PipelineState
from moderation_gateway.models.openai import CompletionRequest
from moderation_gateway.pipeline.forwarder import Forwarder
from moderation_gateway.pipeline.moderation import ModerationClient
from moderation_gateway.pipeline.normalizer import error_event, normalize_error
from moderation_gateway.pipeline.projection import project_for_moderation
from moderation_gateway.pipeline.validation import validate_completion_request
from moderation_gateway.utils.errors import ContentViolationError
from moderation_gateway.utils.logging import get_logger

logger = get_logger(__name__)


class RequestOrchestrator:
    """
    Runs one request through validation, moderation and forwarding.

    The orchestrator holds only immutable configuration and an optional
    transport; it keeps no state between requests.
    """

    def __init__(
        self,
        config: GatewayConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the orchestrator.

        Args:
            config: Immutable gateway configuration
            transport: Optional httpx transport shared by both upstream calls
                (used to stub providers in tests)
        """
        self.config = config
        self.moderation_client = ModerationClient(config.policy, transport=transport)
        self.forwarder = Forwarder(transport=transport)

    @staticmethod
    def _transition(state: PipelineState, **extra: Any) -> None:
        logger.debug(f"Pipeline state: {state.value}", extra={"pipeline_state": state.value, **extra})

    def validate(self, body: Any) -> CompletionRequest:
        """
        Validating state: check the raw body and build the request model.

        Raises:
            InvalidRequestError: If the body fails validation
        """
        self._transition(PipelineState.VALIDATING)
        return validate_completion_request(body, self.config.policy)

    async def moderate(self, request: CompletionRequest) -> ModerationProjection:
        """
        Moderating state: project the conversation and ask the judge.

        Returns:
            The projection, whose flags drive the forwarding budget

        Raises:
            ContentViolationError: If the judge reports a violation (rejected state)
            InvalidModerationResponseError: If the verdict cannot be parsed
            UpstreamError: If the moderation call fails
        """
        self._transition(PipelineState.MODERATING)
        projection = project_for_moderation(
            request.messages, self.config.policy, self.config.moderation_prompt
        )

        is_violation = await self.moderation_client.check_violation(
            projection.messages,
            self.config.moderation_model,
            self.config.moderation_provider,
            has_image_content=projection.has_image_content,
            tools=request.tools,
        )
        if is_violation:
            self._transition(PipelineState.REJECTED)
            logger.warning("Content violation detected", extra={"model": request.model})
            raise ContentViolationError()

        return projection

    def _default_max_tokens(self, projection: ModerationProjection) -> int:
        policy = self.config.policy
        if projection.uses_vision:
            return policy.vision_completion_default_max_tokens
        return policy.completion_default_max_tokens

    async def run_buffered(self, request: CompletionRequest) -> dict[str, Any]:
        """
        Run a buffered request past the validation stage.

        Returns:
            The completion provider's JSON body, unmodified

        Raises:
            GatewayError: Any failure, for the HTTP layer to normalize
        """
        start_time = time.time()
        projection = await self.moderate(request)

        self._transition(PipelineState.FORWARDING, stream=False)
        result = await self.forwarder.forward_buffered(
            request,
            self.config.completion_provider,
            self._default_max_tokens(projection),
        )

        self._transition(PipelineState.COMPLETED, elapsed_seconds=time.time() - start_time)
        return result

    async def run_streamed(self, request: CompletionRequest) -> AsyncIterator[bytes]:
        """
        Run a streamed request past the validation stage.

        Moderation completes before the first downstream byte is requested.
        Any failure after this point, including a content violation, is sent
        as a terminal in-band error event followed by [DONE].

        Yields:
            Provider stream bytes, or a single terminal error event
        """
        start_time = time.time()
        chunk_count = 0
        try:
            projection = await self.moderate(request)

            self._transition(PipelineState.FORWARDING, stream=True)
            # The upstream stream is closed as soon as this generator is closed
            async with contextlib.aclosing(
                self.forwarder.forward_streamed(
                    request,
                    self.config.completion_provider,
                    self._default_max_tokens(projection),
                )
            ) as chunks:
                async for chunk in chunks:
                    chunk_count += 1
                    yield chunk

        except asyncio.CancelledError:
            logger.info("Client disconnected", extra={"chunk_count": chunk_count})
            raise

        except Exception as exc:
            envelope = normalize_error(exc)
            logger.error(
                f"Stream handler error: {envelope.error.message}",
                extra={
                    "error_type": envelope.error.type,
                    "error_code": envelope.error.code,
                    "chunk_count": chunk_count,
                },
            )
            yield error_event(envelope)

        self._transition(
            PipelineState.COMPLETED,
            chunk_count=chunk_count,
            elapsed_seconds=time.time() - start_time,
        )
