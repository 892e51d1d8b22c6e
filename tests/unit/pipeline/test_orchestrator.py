"""
Unit tests for RequestOrchestrator.

Both providers are served by one MockTransport that routes on host, so each
test can assert exactly which upstream calls were made and in what order.
"""

import json

import httpx
import pytest

from moderation_gateway.models.gateway import GatewayConfig, ModerationPolicy, ProviderConfig
from moderation_gateway.pipeline.orchestrator import RequestOrchestrator
from moderation_gateway.utils.errors import (
    ContentViolationError,
    InvalidModerationResponseError,
    InvalidRequestError,
    UpstreamAPIError,
)

PROMPT = "Judge the conversation. Reply with JSON."

STREAM = b'data: {"choices":[{"delta":{"content":"ok"}}]}\n\ndata: [DONE]\n\n'


def _config(policy: ModerationPolicy | None = None) -> GatewayConfig:
    return GatewayConfig(
        moderation_provider=ProviderConfig(
            name="moderation", base_url="https://moderation.test", api_key="m", timeout_seconds=45
        ),
        completion_provider=ProviderConfig(
            name="completion", base_url="https://completion.test", api_key="c", timeout_seconds=60
        ),
        moderation_model="judge",
        auth_key="k",
        moderation_prompt=PROMPT,
        policy=policy or ModerationPolicy(),
    )


class TrackedStream(httpx.AsyncByteStream):
    """Provider event stream that records when it is closed."""

    def __init__(self, chunks: list[bytes], break_after: bool = False) -> None:
        self.chunks = chunks
        self.break_after = break_after
        self.closed = False

    async def __aiter__(self):
        for chunk in self.chunks:
            yield chunk
        if self.break_after:
            raise httpx.ReadError("connection reset by peer")

    async def aclose(self) -> None:
        self.closed = True


class Providers:
    """Routes calls by host and records them in arrival order."""

    def __init__(
        self,
        verdict: str = '{"isViolation": false}',
        completion_status: int = 200,
        completion_stream: httpx.AsyncByteStream | None = None,
    ) -> None:
        self.calls: list[tuple[str, dict]] = []
        self.timeouts: list[float] = []
        self.verdict = verdict
        self.completion_status = completion_status
        self.completion_stream = completion_stream

    def handler(self, request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        self.calls.append((request.url.host, payload))
        self.timeouts.append(request.extensions["timeout"]["read"])
        if request.url.host == "moderation.test":
            return httpx.Response(200, json={"choices": [{"message": {"content": self.verdict}}]})
        if self.completion_status != 200:
            return httpx.Response(self.completion_status, json={"error": {"message": "upstream"}})
        if payload.get("stream") and self.completion_stream is not None:
            return httpx.Response(
                200, stream=self.completion_stream, headers={"Content-Type": "text/event-stream"}
            )
        if payload.get("stream"):
            return httpx.Response(200, content=STREAM, headers={"Content-Type": "text/event-stream"})
        return httpx.Response(200, json={"choices": [{"message": {"content": "ok"}}]})

    @property
    def hosts(self) -> list[str]:
        return [host for host, _ in self.calls]


def _orchestrator(providers: Providers, policy: ModerationPolicy | None = None) -> RequestOrchestrator:
    return RequestOrchestrator(_config(policy), transport=httpx.MockTransport(providers.handler))


async def _collect(stream) -> bytes:
    return b"".join([chunk async for chunk in stream])


class TestBuffered:
    """Tests for the buffered pipeline."""

    @pytest.mark.asyncio
    async def test_moderation_precedes_forwarding(self):
        providers = Providers()
        orchestrator = _orchestrator(providers)
        request = orchestrator.validate({"model": "gpt", "messages": [{"role": "user", "content": "hi"}]})

        result = await orchestrator.run_buffered(request)

        assert result == {"choices": [{"message": {"content": "ok"}}]}
        assert providers.hosts == ["moderation.test", "completion.test"]

    @pytest.mark.asyncio
    async def test_violation_never_forwards(self):
        providers = Providers(verdict='{"isViolation": true}')
        orchestrator = _orchestrator(providers)
        request = orchestrator.validate({"model": "gpt", "messages": [{"role": "user", "content": "bad"}]})

        with pytest.raises(ContentViolationError):
            await orchestrator.run_buffered(request)

        assert providers.hosts == ["moderation.test"]

    @pytest.mark.asyncio
    async def test_unparseable_verdict_never_forwards(self):
        providers = Providers(verdict="maybe")
        orchestrator = _orchestrator(providers)
        request = orchestrator.validate({"model": "gpt", "messages": [{"role": "user", "content": "x"}]})

        with pytest.raises(InvalidModerationResponseError):
            await orchestrator.run_buffered(request)

        assert providers.hosts == ["moderation.test"]

    def test_invalid_body_raises_before_any_call(self):
        providers = Providers()
        orchestrator = _orchestrator(providers)

        with pytest.raises(InvalidRequestError):
            orchestrator.validate({"model": "gpt", "messages": "hi"})

        assert providers.calls == []

    @pytest.mark.asyncio
    async def test_projection_sent_to_judge_original_to_completion(self):
        providers = Providers()
        orchestrator = _orchestrator(providers)
        messages = [
            {"role": "system", "content": "caller prompt"},
            {"role": "user", "content": '{"a":1}'},
        ]
        request = orchestrator.validate({"model": "gpt", "messages": messages})

        await orchestrator.run_buffered(request)

        moderation_payload = providers.calls[0][1]
        completion_payload = providers.calls[1][1]
        assert moderation_payload["model"] == "judge"
        assert moderation_payload["messages"] == [
            {"role": "system", "content": PROMPT},
            {"role": "user", "content": '{\n  "a": 1\n}'},
            {"role": "user", "content": PROMPT},
        ]
        assert completion_payload["messages"] == messages
        assert completion_payload["max_tokens"] == 2000

    @pytest.mark.asyncio
    async def test_vision_budget_for_image_requests(self):
        providers = Providers()
        orchestrator = _orchestrator(providers, ModerationPolicy(image_aware=True))
        messages = [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": "what is this"},
                    {"type": "image_url", "image_url": {"url": "https://example.com/a.png"}},
                ],
            }
        ]
        request = orchestrator.validate({"model": "gpt", "messages": messages})

        await orchestrator.run_buffered(request)

        assert providers.calls[0][1]["max_tokens"] == 8192
        assert providers.calls[1][1]["max_tokens"] == 8192

    @pytest.mark.asyncio
    async def test_text_only_judge_still_gets_vision_budget_for_images(self):
        providers = Providers()
        orchestrator = _orchestrator(providers, ModerationPolicy(image_aware=False))
        messages = [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": "what is this"},
                    {"type": "image_url", "image_url": {"url": "https://example.com/a.png"}},
                ],
            }
        ]
        request = orchestrator.validate({"model": "gpt", "messages": messages})

        await orchestrator.run_buffered(request)

        assert providers.calls[0][1]["max_tokens"] == 8192
        assert providers.timeouts[0] == 60
        assert providers.calls[1][1]["max_tokens"] == 2000

    @pytest.mark.asyncio
    async def test_text_request_uses_standard_budget(self):
        providers = Providers()
        orchestrator = _orchestrator(providers)
        request = orchestrator.validate({"model": "gpt", "messages": [{"role": "user", "content": "x"}]})

        await orchestrator.run_buffered(request)

        assert providers.calls[0][1]["max_tokens"] == 100
        assert providers.timeouts[0] == 45

    @pytest.mark.asyncio
    async def test_upstream_error_propagates(self):
        providers = Providers(completion_status=500)
        orchestrator = _orchestrator(providers)
        request = orchestrator.validate({"model": "gpt", "messages": [{"role": "user", "content": "x"}]})

        with pytest.raises(UpstreamAPIError) as exc_info:
            await orchestrator.run_buffered(request)

        assert exc_info.value.status_code == 500


class TestStreamed:
    """Tests for the streamed pipeline."""

    @pytest.mark.asyncio
    async def test_relay(self):
        providers = Providers()
        orchestrator = _orchestrator(providers)
        request = orchestrator.validate(
            {"model": "gpt", "stream": True, "messages": [{"role": "user", "content": "x"}]}
        )

        assert await _collect(orchestrator.run_streamed(request)) == STREAM
        assert providers.hosts == ["moderation.test", "completion.test"]

    @pytest.mark.asyncio
    async def test_violation_in_band(self):
        providers = Providers(verdict='{"isViolation": true}')
        orchestrator = _orchestrator(providers)
        request = orchestrator.validate(
            {"model": "gpt", "stream": True, "messages": [{"role": "user", "content": "x"}]}
        )

        body = await _collect(orchestrator.run_streamed(request))

        events = [event for event in body.split(b"\n\n") if event]
        assert len(events) == 2
        assert json.loads(events[0][len(b"data: "):])["error"]["code"] == "content_violation"
        assert events[1] == b"data: [DONE]"
        assert providers.hosts == ["moderation.test"]

    @pytest.mark.asyncio
    async def test_upstream_error_in_band(self):
        providers = Providers(completion_status=503)
        orchestrator = _orchestrator(providers)
        request = orchestrator.validate(
            {"model": "gpt", "stream": True, "messages": [{"role": "user", "content": "x"}]}
        )

        body = await _collect(orchestrator.run_streamed(request))

        error = json.loads(body.split(b"\n\n")[0][len(b"data: "):])["error"]
        assert error["type"] == "api_error"
        assert error["code"] == 503
        assert body.endswith(b"data: [DONE]\n\n")

    @pytest.mark.asyncio
    async def test_closing_relay_closes_upstream_stream(self):
        upstream_stream = TrackedStream([b"data: one\n\n", b"data: two\n\n", b"data: [DONE]\n\n"])
        providers = Providers(completion_stream=upstream_stream)
        orchestrator = _orchestrator(providers)
        request = orchestrator.validate(
            {"model": "gpt", "stream": True, "messages": [{"role": "user", "content": "x"}]}
        )

        relay = orchestrator.run_streamed(request)
        first = await relay.__anext__()
        await relay.aclose()

        assert first == b"data: one\n\n"
        assert upstream_stream.closed

    @pytest.mark.asyncio
    async def test_break_after_relayed_bytes_ends_with_error_event(self):
        relayed = b'data: {"choices":[{"delta":{"content":"par"}}]}\n\n'
        upstream_stream = TrackedStream([relayed], break_after=True)
        providers = Providers(completion_stream=upstream_stream)
        orchestrator = _orchestrator(providers)
        request = orchestrator.validate(
            {"model": "gpt", "stream": True, "messages": [{"role": "user", "content": "x"}]}
        )

        body = await _collect(orchestrator.run_streamed(request))

        assert body.startswith(relayed)
        events = [event for event in body[len(relayed):].split(b"\n\n") if event]
        assert len(events) == 2
        error = json.loads(events[0][len(b"data: "):])["error"]
        assert error["type"] == "connection_error"
        assert error["code"] == 503
        assert events[1] == b"data: [DONE]"
        assert upstream_stream.closed
