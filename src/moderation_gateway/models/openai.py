"""
OpenAI-compatible data models for the chat completions API.

These models ensure compatibility with OpenAI API clients. Messages are kept as
plain dictionaries: their structure is checked by the gateway's own message
validator so that failures surface as gateway error envelopes.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class MessageRole:
    """Message roles the gateway treats specially."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class CompletionRequest(BaseModel):
    """
    Request model for the chat completions endpoint.

    Only the fields listed here are forwarded to the completion provider.
    """

    model_config = ConfigDict(extra="ignore")

    model: str = Field(min_length=1, description="Model identifier passed to the completion provider")
    messages: list[dict[str, Any]] = Field(description="List of messages in the conversation")
    stream: bool | None = Field(default=False, description="Stream response chunks")
    temperature: float | None = Field(default=None, description="Sampling temperature")
    max_tokens: int | None = Field(default=None, description="Maximum tokens in the response")
    response_format: dict[str, Any] | None = Field(
        default=None, description="Response format forwarded verbatim"
    )
    tools: list[Any] | None = Field(default=None, description="Tool definitions forwarded verbatim")


class ErrorDetail(BaseModel):
    """Body of an error envelope."""

    model_config = ConfigDict(frozen=True)

    message: str = Field(description="Human-readable error message")
    type: str = Field(description="Error category (e.g., 'invalid_request_error')")
    code: str | int = Field(description="Machine-readable error code or HTTP status")
    details: Any = Field(default=None, description="Optional diagnostic details")
    provider_error: Any = Field(default=None, description="Error payload returned by an upstream provider")


class ErrorEnvelope(BaseModel):
    """
    Uniform error shape returned to callers in both transport modes.

    The HTTP status is carried alongside the envelope but never serialized.
    """

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail
    status_code: int = Field(default=500, exclude=True)

    def to_dict(self) -> dict[str, Any]:
        """Serialize the envelope, dropping empty optional fields."""
        return self.model_dump(exclude_none=True)
