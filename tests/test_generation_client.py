"""Tests for the transports, the retry loop and the Gemini text client."""

import httpx
import pytest
import requests

from helpers import FakeTransport, SleepRecorder, envelope, http_status, ok
from recipe_ai.services.gemini_client import GeminiTextClient
from recipe_ai.services.transport import (
    EmptyBody,
    ExhaustedRetries,
    Forbidden,
    HttpxTransport,
    RequestsTransport,
    RetryPolicy,
    Success,
    TransportResponse,
    send_with_retries,
)
from recipe_ai.utils.exceptions import TransportError

URL = "https://generativelanguage.googleapis.com/v1beta/models/gemini-2.5-flash:generateContent"


def _policy(sleeper: SleepRecorder, unit: float = 0.3) -> RetryPolicy:
    return RetryPolicy(max_attempts=3, backoff_unit=unit, sleep=sleeper)


@pytest.mark.asyncio
async def test_three_transport_errors_exhaust_retries_without_raising(sleeper):
    """Exactly three attempts, linear backoff, failure returned as a value."""
    transport = FakeTransport(TransportError("connection reset"))

    outcome = await send_with_retries(transport, URL, {}, {}, _policy(sleeper))

    assert len(transport.calls) == 3
    assert sleeper.delays == [pytest.approx(0.3), pytest.approx(0.6)]
    assert isinstance(outcome, ExhaustedRetries)
    assert outcome.attempts == 3
    assert "connection reset" in outcome.last_error


@pytest.mark.asyncio
async def test_forbidden_is_terminal_immediately(sleeper):
    transport = FakeTransport(http_status(403, '{"error": {"status": "PERMISSION_DENIED"}}'), ok("unused"))

    outcome = await send_with_retries(transport, URL, {}, {}, _policy(sleeper))

    assert outcome == Forbidden(status_code=403)
    assert len(transport.calls) == 1
    assert sleeper.delays == []


@pytest.mark.asyncio
async def test_server_error_then_success(sleeper):
    transport = FakeTransport(http_status(503, "unavailable"), ok("payload"))

    outcome = await send_with_retries(transport, URL, {}, {}, _policy(sleeper))

    assert outcome == Success(text="payload")
    assert len(transport.calls) == 2
    assert sleeper.delays == [pytest.approx(0.3)]


@pytest.mark.asyncio
async def test_other_http_errors_are_retried(sleeper):
    transport = FakeTransport(http_status(429), http_status(400, "bad"), http_status(500))

    outcome = await send_with_retries(transport, URL, {}, {}, _policy(sleeper))

    assert outcome == ExhaustedRetries(attempts=3, last_error="HTTP 500")
    assert len(transport.calls) == 3


@pytest.mark.asyncio
async def test_blank_bodies_end_in_empty_body(sleeper):
    transport = FakeTransport(ok("   "))

    outcome = await send_with_retries(transport, URL, {}, {}, _policy(sleeper, unit=0.5))

    assert outcome == EmptyBody(attempts=3)
    assert sleeper.delays == [pytest.approx(0.5), pytest.approx(1.0)]


@pytest.mark.asyncio
async def test_response_hook_sees_every_response(sleeper):
    seen = []
    transport = FakeTransport(http_status(500, "oops"), ok("fine"))

    await send_with_retries(
        transport, URL, {}, {}, _policy(sleeper), on_response=lambda resp, attempt: seen.append((attempt, resp))
    )

    assert [attempt for attempt, _ in seen] == [1, 2]
    assert seen[1][1] == TransportResponse(status_code=200, text="fine")


@pytest.mark.asyncio
async def test_text_client_builds_schema_guided_envelope(make_settings, sleeper):
    settings = make_settings(gemini_system_prompt="You are a chef.")
    transport = FakeTransport(ok(envelope("{}")))
    client = GeminiTextClient(settings, transport=transport, policy=_policy(sleeper))

    outcome = await client.generate("Make soup", "secret-key")

    assert isinstance(outcome, Success)
    call = transport.calls[0]
    assert call["url"] == settings.gemini_api_url
    assert call["headers"]["x-goog-api-key"] == "secret-key"
    payload = call["payload"]
    assert payload["contents"] == [{"parts": [{"text": "Make soup"}]}]
    assert payload["systemInstruction"] == {"parts": [{"text": "You are a chef."}]}
    config = payload["generationConfig"]
    assert config["responseMimeType"] == "application/json"
    assert "recipeName" in config["responseSchema"]["properties"]
    assert "$defs" not in config["responseSchema"]


def test_text_client_policy_follows_settings(make_settings):
    client = GeminiTextClient(make_settings(gemini_max_attempts=5, gemini_retry_backoff_ms=250))
    assert client.policy.max_attempts == 5
    assert client.policy.backoff_for(2) == pytest.approx(0.5)
    assert isinstance(client.transport, HttpxTransport)


@pytest.mark.asyncio
async def test_httpx_transport_returns_status_and_body():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["x-goog-api-key"] == "k"
        return httpx.Response(502, text="bad gateway")

    transport = HttpxTransport(timeout=5.0, transport=httpx.MockTransport(handler))
    response = await transport.post_json(URL, {"a": 1}, {"x-goog-api-key": "k"})

    assert response == TransportResponse(status_code=502, text="bad gateway")


@pytest.mark.asyncio
async def test_httpx_transport_wraps_connection_errors():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    transport = HttpxTransport(timeout=5.0, transport=httpx.MockTransport(handler))
    with pytest.raises(TransportError):
        await transport.post_json(URL, {}, {})


class _FakeSession:
    def __init__(self, result):
        self.result = result
        self.calls = []

    def post(self, url, json=None, headers=None, timeout=None):
        self.calls.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


class _FakeRequestsResponse:
    status_code = 200
    text = '{"ok": true}'


@pytest.mark.asyncio
async def test_requests_transport_posts_on_worker_thread():
    session = _FakeSession(_FakeRequestsResponse())
    transport = RequestsTransport(timeout=12.0, session=session)

    response = await transport.post_json(URL, {"a": 1}, {"h": "v"})

    assert response == TransportResponse(status_code=200, text='{"ok": true}')
    assert session.calls == [{"url": URL, "json": {"a": 1}, "headers": {"h": "v"}, "timeout": 12.0}]


@pytest.mark.asyncio
async def test_requests_transport_wraps_errors():
    transport = RequestsTransport(session=_FakeSession(requests.ConnectionError("down")))
    with pytest.raises(TransportError):
        await transport.post_json(URL, {}, {})
