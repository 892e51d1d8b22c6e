"""
Unit tests for request size validation middleware.

Tests the middleware logic in isolation with mocked requests, verifying the
Content-Length check and the 413 error envelope.
"""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from moderation_gateway.config import Settings
from moderation_gateway.middleware.request_size import request_size_validator
from moderation_gateway.utils.errors import InvalidRequestError, RequestSizeError


class TestRequestSizeError:
    """Test RequestSizeError exception."""

    def test_attributes(self) -> None:
        error = RequestSizeError(actual_size=2_000_000, max_size=1_000_000)
        assert error.actual_size == 2_000_000
        assert error.max_size == 1_000_000
        assert error.error_code == "request_too_large"
        assert error.status_code == 413
        assert "2000000" in error.message

    def test_is_invalid_request(self) -> None:
        assert isinstance(RequestSizeError(2, 1), InvalidRequestError)


@pytest.fixture
def small_limit_settings() -> Settings:
    """Settings with a 2 KB body limit."""
    return Settings(_env_file=None, max_request_body_size=2048)


@pytest.fixture
def mock_request(small_limit_settings: Settings):
    """Create a mock POST request to the completion endpoint."""
    request = MagicMock()
    request.method = "POST"
    request.url.path = "/v1/chat/completions"
    request.headers = {}
    request.app.state.settings = small_limit_settings
    return request


@pytest.fixture
def mock_call_next():
    """Create a mock call_next returning a 200 response."""
    return AsyncMock(return_value=MagicMock(status_code=200))


class TestRequestSizePasses:
    """Requests that reach the next handler."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("length", ["100", "2047", "2048"])
    async def test_within_limit(self, mock_request, mock_call_next, length) -> None:
        mock_request.headers["content-length"] = length

        response = await request_size_validator(mock_request, mock_call_next)

        assert response.status_code == 200
        mock_call_next.assert_called_once_with(mock_request)

    @pytest.mark.asyncio
    async def test_missing_content_length(self, mock_request, mock_call_next) -> None:
        response = await request_size_validator(mock_request, mock_call_next)
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_unparseable_content_length(self, mock_request, mock_call_next) -> None:
        mock_request.headers["content-length"] = "lots"
        response = await request_size_validator(mock_request, mock_call_next)
        assert response.status_code == 200

    @pytest.mark.asyncio
    @pytest.mark.parametrize("method", ["GET", "HEAD", "OPTIONS"])
    async def test_bodiless_methods_skipped(self, mock_request, mock_call_next, method) -> None:
        mock_request.method = method
        mock_request.headers["content-length"] = "999999"

        response = await request_size_validator(mock_request, mock_call_next)

        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_health_skipped(self, mock_request, mock_call_next) -> None:
        mock_request.url.path = "/health/ready"
        mock_request.headers["content-length"] = "999999"

        response = await request_size_validator(mock_request, mock_call_next)

        assert response.status_code == 200


class TestRequestSizeRejects:
    """Requests rejected with 413."""

    @pytest.mark.asyncio
    async def test_over_limit(self, mock_request, mock_call_next) -> None:
        mock_request.headers["content-length"] = "2049"

        response = await request_size_validator(mock_request, mock_call_next)

        assert response.status_code == 413
        mock_call_next.assert_not_called()
        body = json.loads(response.body)
        assert body["error"]["type"] == "invalid_request_error"
        assert body["error"]["code"] == "request_too_large"
