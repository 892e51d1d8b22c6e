"""Pytest configuration and shared fixtures."""

import json
import os
from collections.abc import Callable
from typing import Any

import httpx
import pytest
from fastapi.testclient import TestClient

from moderation_gateway.config import Settings
from moderation_gateway.main import create_app

MODERATION_URL = "https://moderation.test"
COMPLETION_URL = "https://completion.test"
AUTH_KEY = "test-gateway-key"

COMPLETION_BODY = {
    "id": "chatcmpl-123",
    "object": "chat.completion",
    "model": "m",
    "choices": [{"index": 0, "message": {"role": "assistant", "content": "hi"}, "finish_reason": "stop"}],
}

STREAM_BODY = (
    b'data: {"id":"chatcmpl-1","choices":[{"index":0,"delta":{"role":"assistant","content":"hi"}}]}\n\n'
    b'data: {"id":"chatcmpl-1","choices":[{"index":0,"delta":{},"finish_reason":"stop"}]}\n\n'
    b"data: [DONE]\n\n"
)


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment() -> None:
    """Set up test environment variables."""
    os.environ.setdefault("LOG_LEVEL", "INFO")


def verdict_response(content: Any) -> httpx.Response:
    """Build a moderation provider response whose message content is `content`."""
    if not isinstance(content, str):
        content = json.dumps(content)
    return httpx.Response(
        200,
        json={"choices": [{"index": 0, "message": {"role": "assistant", "content": content}}]},
    )


class UpstreamStub:
    """
    Stand-in for both upstream providers.

    Routes requests by host, records every JSON payload, and answers with the
    configured handler for each role. A handler may return a response or raise.
    """

    def __init__(self) -> None:
        self.moderation_calls: list[dict[str, Any]] = []
        self.completion_calls: list[dict[str, Any]] = []
        self.moderation_headers: list[httpx.Headers] = []
        self.completion_headers: list[httpx.Headers] = []
        self.moderation: Callable[[httpx.Request], httpx.Response] = lambda request: verdict_response(
            {"isViolation": False}
        )
        self.completion: Callable[[httpx.Request], httpx.Response] = lambda request: httpx.Response(
            200, json=COMPLETION_BODY
        )

    def handler(self, request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        if request.url.host == "moderation.test":
            self.moderation_calls.append(payload)
            self.moderation_headers.append(request.headers)
            return self.moderation(request)

        self.completion_calls.append(payload)
        self.completion_headers.append(request.headers)
        if payload.get("stream"):
            return self.completion_stream(request)
        return self.completion(request)

    def completion_stream(self, request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            content=STREAM_BODY,
            headers={"Content-Type": "text/event-stream"},
        )

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def upstream() -> UpstreamStub:
    """Upstream provider stub recording moderation and completion calls."""
    return UpstreamStub()


@pytest.fixture
def gateway_settings() -> Settings:
    """Fully configured settings pointing at the stubbed providers."""
    return Settings(
        _env_file=None,
        moderation_provider_url=MODERATION_URL,
        moderation_provider_key="moderation-key",
        moderation_model="judge-model",
        completion_provider_url=COMPLETION_URL,
        completion_provider_key="completion-key",
        auth_key=AUTH_KEY,
        log_level="DEBUG",
        environment="test",
    )


@pytest.fixture
def gateway_config(gateway_settings: Settings):
    """Immutable gateway configuration built from the test settings."""
    return gateway_settings.gateway_config


@pytest.fixture
def app(gateway_settings: Settings, upstream: UpstreamStub):
    """FastAPI app wired to the upstream stub."""
    application = create_app(gateway_settings)
    application.state.upstream_transport = upstream.transport
    return application


@pytest.fixture
def client(app) -> TestClient:
    """Create test client from app."""
    return TestClient(app)


@pytest.fixture
def make_verdict() -> Callable[[Any], httpx.Response]:
    """Factory for moderation provider responses."""
    return verdict_response


@pytest.fixture
def completion_body() -> dict[str, Any]:
    """Body returned by the completion provider stub in buffered mode."""
    return COMPLETION_BODY


@pytest.fixture
def stream_body() -> bytes:
    """Bytes returned by the completion provider stub in streamed mode."""
    return STREAM_BODY


@pytest.fixture
def auth_headers() -> dict[str, str]:
    """Authorization header carrying the configured gateway key."""
    return {"Authorization": f"Bearer {AUTH_KEY}"}
