"""
Configuration management using Pydantic Settings.

This module handles all environment-based configuration for the Moderation
Gateway, including both upstream providers, the inbound auth key, moderation
policy switches and logging.
"""

from typing import TYPE_CHECKING

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

if TYPE_CHECKING:
    from moderation_gateway.models.gateway import GatewayConfig

# Required settings in the order they are reported when missing
REQUIRED_SETTINGS: tuple[str, ...] = (
    "moderation_provider_url",
    "completion_provider_url",
    "moderation_model",
    "moderation_provider_key",
    "completion_provider_key",
    "auth_key",
)


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables and .env file.

    Provider and auth settings are optional at load time so the service can
    start and fail closed per request when they are missing.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # API Configuration
    api_host: str = Field(default="0.0.0.0", description="API server host address")
    api_port: int = Field(default=8000, description="API server port")
    api_title: str = Field(default="Moderation Gateway", description="API title")
    api_version: str = Field(default="0.1.0", description="API version")

    # Environment
    environment: str = Field(
        default="development",
        description="Deployment environment",
        pattern="^(development|staging|production|test)$",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
    )
    log_format: str = Field(
        default="json",
        description="Logging format",
        pattern="^(json|standard)$",
    )

    # Moderation provider
    moderation_provider_url: str | None = Field(
        default=None,
        description="Base URL of the OpenAI-compatible moderation provider",
    )
    moderation_provider_key: str | None = Field(
        default=None,
        description="API key for the moderation provider",
        repr=False,
    )
    moderation_model: str | None = Field(
        default=None,
        description="Model identifier used as the moderation judge",
    )

    # Completion provider
    completion_provider_url: str | None = Field(
        default=None,
        description="Base URL of the OpenAI-compatible completion provider",
    )
    completion_provider_key: str | None = Field(
        default=None,
        description="API key for the completion provider",
        repr=False,
    )

    # Inbound authentication
    auth_key: str | None = Field(
        default=None,
        description="Bearer key callers must present",
        repr=False,
    )

    # Timeouts
    moderation_timeout: float = Field(
        default=45,
        description="Timeout in seconds for text-only moderation calls",
        gt=0,
        le=300,
    )
    vision_moderation_timeout: float = Field(
        default=60,
        description="Timeout in seconds for moderation calls carrying images",
        gt=0,
        le=300,
    )
    completion_timeout: float = Field(
        default=60,
        description="Timeout in seconds for completion provider calls",
        gt=0,
        le=600,
    )

    # Token budgets
    moderation_max_tokens: int = Field(default=100, ge=1, description="max_tokens for text moderation")
    vision_moderation_max_tokens: int = Field(
        default=8192, ge=1, description="max_tokens for moderation calls carrying images"
    )
    completion_default_max_tokens: int = Field(
        default=2000, ge=1, description="max_tokens forwarded when the caller sends none"
    )
    vision_completion_default_max_tokens: int = Field(
        default=8192, ge=1, description="Default max_tokens for requests carrying images"
    )

    # Moderation policy
    require_structured_string_content: bool = Field(
        default=False,
        description="Reject string message content that is not a JSON object or array",
    )
    moderation_image_aware: bool = Field(
        default=False,
        description="Forward structured image content to the moderation model",
    )
    moderation_reinforce_prompt: bool = Field(
        default=True,
        description="Append the moderation instructions as a trailing user message",
    )
    allow_empty_messages: bool = Field(
        default=False,
        description="Accept requests with an empty messages array",
    )
    moderation_prompt_name: str = Field(
        default="moderation",
        description="Name of the prompt file in prompts/ (without _system.md)",
    )

    # CORS Configuration
    cors_origins: list[str] = Field(default=["*"], description="Allowed CORS origins")
    cors_allow_methods: list[str] = Field(
        default=["POST", "OPTIONS"],
        description="Allowed CORS methods",
    )
    cors_allow_headers: list[str] = Field(
        default=["Content-Type", "Authorization"],
        description="Allowed CORS headers",
    )

    # Request Validation
    max_request_body_size: int = Field(
        default=10485760,  # 10 MB, room for base64 images
        description="Maximum request body size in bytes",
        ge=1024,
        le=52428800,
    )

    # Security Headers Configuration
    enable_security_headers: bool = Field(
        default=True,
        description="Enable security headers (X-Content-Type-Options, X-Frame-Options, HSTS, X-XSS-Protection)",
    )

    @model_validator(mode="after")
    def check_timeout_order(self) -> "Settings":
        """Moderation calls must never be allowed longer than completion calls."""
        if self.moderation_timeout > self.completion_timeout:
            raise ValueError("moderation_timeout must not exceed completion_timeout")
        if self.vision_moderation_timeout > self.completion_timeout:
            raise ValueError("vision_moderation_timeout must not exceed completion_timeout")
        return self

    def missing_required(self) -> list[str]:
        """
        List the environment variable names of missing required settings.

        Returns:
            Upper-case variable names, in declaration order
        """
        return [name.upper() for name in REQUIRED_SETTINGS if not getattr(self, name)]

    def invalid_provider_urls(self) -> list[str]:
        """Names of provider URL settings that are set but not http(s)."""
        invalid = []
        for name in ("moderation_provider_url", "completion_provider_url"):
            value = getattr(self, name)
            if value and not value.lower().startswith(("http://", "https://")):
                invalid.append(name.upper())
        return invalid

    @property
    def gateway_config(self) -> "GatewayConfig":
        """
        Build the immutable GatewayConfig for the request pipeline.

        Returns:
            GatewayConfig instance ready for RequestOrchestrator

        Raises:
            ConfigurationError: If required settings are missing or invalid
        """
        # Lazy imports to avoid circular dependencies
        from moderation_gateway.models.gateway import (
            GatewayConfig,
            ModerationPolicy,
            ProviderConfig,
        )
        from moderation_gateway.utils.errors import ConfigurationError
        from moderation_gateway.utils.prompts import load_prompt

        missing = self.missing_required()
        if missing:
            raise ConfigurationError(
                "Missing required environment variables",
                error_code="provider_not_configured",
                details=f"Missing: {', '.join(missing)}",
            )
        invalid = self.invalid_provider_urls()
        if invalid:
            raise ConfigurationError(
                "Invalid provider URL",
                error_code="invalid_provider_url",
                details=f"Invalid: {', '.join(invalid)}",
            )

        return GatewayConfig(
            moderation_provider=ProviderConfig(
                name="moderation",
                base_url=self.moderation_provider_url,
                api_key=self.moderation_provider_key,
                timeout_seconds=self.moderation_timeout,
            ),
            completion_provider=ProviderConfig(
                name="completion",
                base_url=self.completion_provider_url,
                api_key=self.completion_provider_key,
                timeout_seconds=self.completion_timeout,
            ),
            moderation_model=self.moderation_model,
            auth_key=self.auth_key,
            moderation_prompt=load_prompt(self.moderation_prompt_name),
            policy=ModerationPolicy(
                require_structured_string_content=self.require_structured_string_content,
                image_aware=self.moderation_image_aware,
                reinforce_prompt=self.moderation_reinforce_prompt,
                allow_empty_messages=self.allow_empty_messages,
                moderation_max_tokens=self.moderation_max_tokens,
                vision_moderation_max_tokens=self.vision_moderation_max_tokens,
                completion_default_max_tokens=self.completion_default_max_tokens,
                vision_completion_default_max_tokens=self.vision_completion_default_max_tokens,
                vision_moderation_timeout=self.vision_moderation_timeout,
            ),
        )
