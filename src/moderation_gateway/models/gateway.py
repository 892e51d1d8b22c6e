"""
Gateway pipeline models.

Configuration models (ProviderConfig, ModerationPolicy, GatewayConfig) are
immutable and built once at startup. ModerationVerdict and
ModerationProjection live for a single request only.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictBool


class PipelineState(str, Enum):
    """States of the request orchestrator."""

    VALIDATING = "validating"
    MODERATING = "moderating"
    REJECTED = "rejected"
    FORWARDING = "forwarding"
    COMPLETED = "completed"


class ProviderConfig(BaseModel):
    """Connection settings for one upstream provider role."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Upstream role: 'moderation' or 'completion'")
    base_url: str = Field(description="Provider base URL without the /v1 path")
    api_key: str = Field(description="Bearer key sent to the provider", repr=False)
    timeout_seconds: float = Field(gt=0, description="Per-call timeout in seconds")

    @property
    def completions_url(self) -> str:
        """Full URL of the provider's chat completions endpoint."""
        return f"{self.base_url.rstrip('/')}/v1/chat/completions"

    @property
    def headers(self) -> dict[str, str]:
        """Request headers for the provider."""
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }


class ModerationPolicy(BaseModel):
    """
    Policy switches for validation, projection and token budgets.

    Two historical pipeline variants differ only in these switches: string
    content strictness, image awareness and prompt reinforcement.
    """

    model_config = ConfigDict(frozen=True)

    require_structured_string_content: bool = Field(
        default=False,
        description="Reject string content that is not a JSON object or array",
    )
    image_aware: bool = Field(
        default=False,
        description="Send structured image content to the moderation model",
    )
    reinforce_prompt: bool = Field(
        default=True,
        description="Repeat the moderation instructions as a trailing user message",
    )
    allow_empty_messages: bool = Field(
        default=False,
        description="Accept requests whose messages array is empty",
    )
    moderation_max_tokens: int = Field(default=100, ge=1)
    vision_moderation_max_tokens: int = Field(default=8192, ge=1)
    completion_default_max_tokens: int = Field(default=2000, ge=1)
    vision_completion_default_max_tokens: int = Field(default=8192, ge=1)
    vision_moderation_timeout: float = Field(default=60, gt=0)


class GatewayConfig(BaseModel):
    """
    Complete, immutable gateway configuration.

    Constructed once from Settings and shared by reference with every request.
    """

    model_config = ConfigDict(frozen=True)

    moderation_provider: ProviderConfig
    completion_provider: ProviderConfig
    moderation_model: str = Field(min_length=1)
    auth_key: str = Field(min_length=1, repr=False)
    moderation_prompt: str = Field(min_length=1, repr=False)
    policy: ModerationPolicy = Field(default_factory=ModerationPolicy)


class ModerationVerdict(BaseModel):
    """
    Verdict returned by the moderation model.

    Only a real JSON boolean under the ``isViolation`` key is accepted;
    strings, numbers and the snake_case field name fail validation.
    """

    is_violation: StrictBool = Field(alias="isViolation")


class ModerationProjection(BaseModel):
    """Conversation sent to the moderation model, plus image detection flags."""

    messages: list[dict[str, Any]]
    has_image_content: bool = False
    uses_vision: bool = Field(
        default=False,
        description="Image-aware policy is on and the request carries images",
    )
