"""
Data models for the Moderation Gateway.

OpenAI-compatible request/error models and internal pipeline models.
"""

from moderation_gateway.models.gateway import (
    GatewayConfig,
    ModerationPolicy,
    ModerationProjection,
    ModerationVerdict,
    PipelineState,
    ProviderConfig,
)
from moderation_gateway.models.openai import (
    CompletionRequest,
    ErrorDetail,
    ErrorEnvelope,
    MessageRole,
)

__all__ = [
    "CompletionRequest",
    "ErrorDetail",
    "ErrorEnvelope",
    "GatewayConfig",
    "MessageRole",
    "ModerationPolicy",
    "ModerationProjection",
    "ModerationVerdict",
    "PipelineState",
    "ProviderConfig",
]
