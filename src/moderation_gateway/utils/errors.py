"""
Custom exception hierarchy for the Moderation Gateway.

Every error the gateway reports to a caller is a GatewayError subclass. Each
subclass fixes the error type, code and HTTP status that end up in the
error envelope returned to the caller.
"""

from typing import Any


class GatewayError(Exception):
    """
    Base exception for all Moderation Gateway errors.

    All application errors should inherit from this class.
    """

    error_type: str = "internal_error"
    default_status_code: int = 500

    def __init__(
        self,
        message: str,
        error_code: str | int | None = None,
        status_code: int | None = None,
        details: Any = None,
        provider_error: Any = None,
    ) -> None:
        """
        Initialize a gateway error.

        Args:
            message: Human-readable error message
            error_code: Optional error code for categorization
            status_code: HTTP status returned to the caller
            details: Optional extra diagnostic information
            provider_error: Optional error payload returned by an upstream provider
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code if error_code is not None else self.__class__.__name__
        self.status_code = status_code or self.default_status_code
        self.details = details
        self.provider_error = provider_error


class InvalidRequestError(GatewayError):
    """
    Raised when the inbound request body fails validation.

    Validation errors never reach an upstream provider.
    """

    error_type = "invalid_request_error"
    default_status_code = 400


class RequestSizeError(InvalidRequestError):
    """Raised when request body exceeds size limit."""

    default_status_code = 413

    def __init__(self, actual_size: int, max_size: int) -> None:
        """
        Initialize a request size error.

        Args:
            actual_size: Actual size of request body in bytes
            max_size: Maximum allowed size in bytes
        """
        message = (
            f"Request body size ({actual_size} bytes) exceeds maximum allowed ({max_size} bytes)"
        )
        super().__init__(message, error_code="request_too_large")
        self.actual_size = actual_size
        self.max_size = max_size


class AuthenticationError(GatewayError):
    """Raised when the bearer key is missing or does not match the configured key."""

    error_type = "invalid_request_error"
    default_status_code = 401

    def __init__(self, message: str = "Invalid authentication key") -> None:
        super().__init__(message, error_code="invalid_auth_key")


class MethodNotAllowedError(GatewayError):
    """Raised for any method other than POST or OPTIONS on the completion endpoint."""

    error_type = "invalid_request_error"
    default_status_code = 405

    def __init__(self, method: str) -> None:
        super().__init__("Method not allowed", error_code=405, details=f"Method: {method}")
        self.method = method


class ConfigurationError(GatewayError):
    """
    Raised when there's an error in application configuration.

    The gateway fails closed: no upstream call is made while configuration
    is incomplete.
    """

    error_type = "configuration_error"


class ContentViolationError(GatewayError):
    """Raised when the moderation provider reports a policy violation."""

    error_type = "content_filter_error"
    default_status_code = 403

    def __init__(self, message: str = "Content violation detected") -> None:
        super().__init__(message, error_code="content_violation")


class InvalidModerationResponseError(GatewayError):
    """
    Raised when the moderation verdict cannot be confidently parsed.

    A verdict that cannot be parsed is never treated as "not a violation".
    """

    error_type = "moderation_error"

    def __init__(
        self,
        message: str = "Invalid moderation response format",
        details: Any = None,
        provider_error: Any = None,
    ) -> None:
        super().__init__(
            message,
            error_code="invalid_moderation_response",
            details=details,
            provider_error=provider_error,
        )


class UpstreamError(GatewayError):
    """
    Raised when an upstream provider call fails.

    Wraps transport and HTTP errors from the moderation or completion provider.
    """

    def __init__(
        self,
        message: str,
        provider: str,
        error_code: str | int | None = None,
        status_code: int | None = None,
        details: Any = None,
        provider_error: Any = None,
    ) -> None:
        """
        Initialize an upstream error.

        Args:
            message: Human-readable error message
            provider: Upstream role that failed ("moderation" or "completion")
            error_code: Optional error code
            status_code: HTTP status returned to the caller
            details: Optional extra diagnostic information
            provider_error: Optional error payload from the provider
        """
        super().__init__(message, error_code, status_code, details, provider_error)
        self.provider = provider


class UpstreamConnectionError(UpstreamError):
    """Raised when an upstream provider is unreachable or the connection aborts."""

    error_type = "connection_error"
    default_status_code = 503

    def __init__(self, provider: str, message: str = "Connection failed") -> None:
        super().__init__(
            message,
            provider=provider,
            error_code=self.default_status_code,
            details=f"Provider: {provider}",
        )


class UpstreamTimeoutError(UpstreamConnectionError):
    """Raised when an upstream provider call exceeds its timeout."""

    default_status_code = 504

    def __init__(self, provider: str, timeout_seconds: float) -> None:
        super().__init__(
            provider,
            message=f"{provider.capitalize()} provider request timed out after {timeout_seconds}s",
        )
        self.timeout_seconds = timeout_seconds


class UpstreamAPIError(UpstreamError):
    """
    Raised when an upstream provider returns a non-2xx response.

    The caller sees the provider's own status code and error payload.
    """

    error_type = "api_error"

    def __init__(
        self,
        provider: str,
        upstream_status: int,
        provider_error: Any = None,
        message: str | None = None,
    ) -> None:
        super().__init__(
            message or f"{provider.capitalize()} provider returned HTTP {upstream_status}",
            provider=provider,
            error_code=upstream_status,
            status_code=upstream_status,
            provider_error=provider_error,
        )
        self.upstream_status = upstream_status
