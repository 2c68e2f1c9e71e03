"""
Tests for the Gemini gateway: request shape, retries, backoff and error
classification. The network is replaced with httpx.MockTransport and
waits are recorded instead of slept.
"""
import asyncio
import base64
import json

import httpx
import pytest

from hirebot.llm import Attachment, ErrorKind, GatewayError, GeminiGateway, RetryPolicy
from hirebot.llm import gemini_gateway
from hirebot.llm.errors import ProviderError, classify


def ok(text="generated text"):
    return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": text}]}}]})


def api_error(code, message="error"):
    return httpx.Response(code, json={"error": {"code": code, "message": message, "status": "X"}})


class ScriptedProvider:
    """Replays a list of responses, one per request."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def make_gateway(provider, retry_policy=None, **kwargs):
    delays = []

    async def record_sleep(seconds):
        delays.append(seconds)

    gateway = GeminiGateway(
        api_key="test-key",
        model_name="gemini-test",
        api_base="https://gemini.example/v1beta",
        retry_policy=retry_policy,
        transport=httpx.MockTransport(provider),
        sleep=record_sleep,
        **kwargs
    )
    return gateway, delays


def test_success_returns_first_part_text():
    provider = ScriptedProvider(ok("hello"))
    gateway, delays = make_gateway(provider)

    assert asyncio.run(gateway.invoke("Say hello")) == "hello"
    assert delays == []
    assert len(provider.requests) == 1


def test_request_carries_prompt_attachment_and_generation_config():
    provider = ScriptedProvider(ok())
    gateway, _ = make_gateway(provider)
    data = base64.b64encode(b"%PDF-1.4").decode("ascii")

    asyncio.run(gateway.invoke("Analyze", Attachment(mime_type="application/pdf", data=data)))

    request = provider.requests[0]
    assert str(request.url) == "https://gemini.example/v1beta/models/gemini-test:generateContent"
    assert request.headers["x-goog-api-key"] == "test-key"
    body = json.loads(request.content)
    parts = body["contents"][0]["parts"]
    assert parts[0] == {"text": "Analyze"}
    assert parts[1]["inline_data"] == {"mime_type": "application/pdf", "data": data}
    assert body["generationConfig"]["temperature"] == 0.7
    assert body["generationConfig"]["maxOutputTokens"] == 8192
    assert {s["category"] for s in body["safetySettings"]} == {
        "HARM_CATEGORY_HARASSMENT", "HARM_CATEGORY_HATE_SPEECH"
    }


def test_overload_uses_escalating_schedule_then_succeeds():
    provider = ScriptedProvider(api_error(503), api_error(503), ok("recovered"))
    gateway, delays = make_gateway(provider)

    assert asyncio.run(gateway.invoke("p", max_attempts=3)) == "recovered"
    assert delays == [30.0, 120.0]


def test_overload_exhausted_raises_overloaded():
    provider = ScriptedProvider(api_error(503), api_error(503), api_error(503))
    gateway, delays = make_gateway(provider)

    with pytest.raises(GatewayError) as exc_info:
        asyncio.run(gateway.invoke("p", max_attempts=3))

    assert exc_info.value.kind is ErrorKind.OVERLOADED
    assert exc_info.value.attempts == 3
    # no wait after the final attempt
    assert delays == [30.0, 120.0]


def test_overload_detected_from_message_whatever_the_code():
    provider = ScriptedProvider(api_error(500, "The model is overloaded. Please try again later."))
    gateway, _ = make_gateway(provider)

    with pytest.raises(GatewayError) as exc_info:
        asyncio.run(gateway.invoke("p", max_attempts=1))

    assert exc_info.value.kind is ErrorKind.OVERLOADED


def test_rate_limit_backs_off_linearly():
    provider = ScriptedProvider(api_error(429), api_error(429), api_error(429))
    gateway, delays = make_gateway(provider)

    with pytest.raises(GatewayError) as exc_info:
        asyncio.run(gateway.invoke("p", max_attempts=3))

    assert exc_info.value.kind is ErrorKind.RATE_LIMITED
    assert delays == [30.0, 60.0]


def test_bad_request_is_not_retried():
    provider = ScriptedProvider(api_error(400, "Invalid argument"), ok())
    gateway, delays = make_gateway(provider)

    with pytest.raises(GatewayError) as exc_info:
        asyncio.run(gateway.invoke("p", max_attempts=3))

    assert exc_info.value.kind is ErrorKind.INVALID_REQUEST
    assert exc_info.value.attempts == 1
    assert len(provider.requests) == 1
    assert delays == []


def test_generic_failure_backs_off_then_fails_after_retries():
    provider = ScriptedProvider(api_error(500), api_error(500), api_error(500))
    gateway, delays = make_gateway(provider)

    with pytest.raises(GatewayError) as exc_info:
        asyncio.run(gateway.invoke("p", max_attempts=3))

    assert exc_info.value.kind is ErrorKind.FAILED_AFTER_RETRIES
    assert delays == [5.0, 10.0]


def test_network_error_is_retried():
    request = httpx.Request("POST", "https://gemini.example")
    provider = ScriptedProvider(httpx.ConnectError("refused", request=request), ok("after reconnect"))
    gateway, delays = make_gateway(provider)

    assert asyncio.run(gateway.invoke("p", max_attempts=2)) == "after reconnect"
    assert delays == [5.0]


def test_response_without_text_is_malformed():
    provider = ScriptedProvider(
        httpx.Response(200, json={"candidates": []}),
        httpx.Response(200, json={"candidates": [{"content": {"parts": []}}]}),
    )
    gateway, delays = make_gateway(provider)

    with pytest.raises(GatewayError) as exc_info:
        asyncio.run(gateway.invoke("p", max_attempts=2))

    assert exc_info.value.kind is ErrorKind.MALFORMED_RESPONSE
    assert delays == [5.0]


@pytest.mark.parametrize("payload", [
    {"candidates": ["oops"]},
    {"candidates": [{"content": "text"}]},
    {"candidates": [{"content": {"parts": ["text"]}}]},
    {"candidates": [{"content": {"parts": [{"text": 42}]}}]},
    {"candidates": {"content": {}}},
])
def test_unexpected_response_shape_is_malformed(payload):
    provider = ScriptedProvider(httpx.Response(200, json=payload))
    gateway, delays = make_gateway(provider)

    with pytest.raises(GatewayError) as exc_info:
        asyncio.run(gateway.invoke("p", max_attempts=1))

    assert exc_info.value.kind is ErrorKind.MALFORMED_RESPONSE
    assert delays == []


def test_malformed_then_success():
    provider = ScriptedProvider(httpx.Response(200, text="not json"), ok("fine"))
    gateway, _ = make_gateway(provider)

    assert asyncio.run(gateway.invoke("p", max_attempts=2)) == "fine"


def test_oversized_attachment_rejected_without_network_call():
    provider = ScriptedProvider(ok())
    gateway, _ = make_gateway(provider, max_attachment_mb=0.001)
    data = base64.b64encode(b"x" * 4096).decode("ascii")

    with pytest.raises(GatewayError) as exc_info:
        asyncio.run(gateway.invoke("p", Attachment(mime_type="video/mp4", data=data)))

    assert exc_info.value.kind is ErrorKind.PAYLOAD_TOO_LARGE
    assert provider.requests == []


def test_immediate_policy_never_waits():
    provider = ScriptedProvider(api_error(503), api_error(429), ok())
    gateway, delays = make_gateway(provider, retry_policy=RetryPolicy.immediate())

    asyncio.run(gateway.invoke("p", max_attempts=3))

    assert delays == [0.0, 0.0]


def test_overload_schedule_repeats_last_entry():
    policy = RetryPolicy(overload_schedule=(1.0, 2.0))

    assert [policy.overload_delay(n) for n in (1, 2, 3, 4)] == [1.0, 2.0, 2.0, 2.0]


def test_health_check_makes_a_single_attempt():
    provider = ScriptedProvider(api_error(500), ok())
    gateway, delays = make_gateway(provider)

    with pytest.raises(GatewayError):
        asyncio.run(gateway.health_check())

    assert len(provider.requests) == 1
    assert delays == []


def test_health_check_reports_elapsed_ms():
    gateway, _ = make_gateway(ScriptedProvider(ok("API Working")))

    assert asyncio.run(gateway.health_check()) >= 0


def test_missing_api_key_raises(monkeypatch):
    monkeypatch.setattr(gemini_gateway, "GEMINI_API_KEY", None)

    with pytest.raises(ValueError):
        GeminiGateway()


def test_attachment_size_from_base64():
    data = base64.b64encode(b"x" * (1024 * 1024)).decode("ascii")

    assert Attachment(mime_type="audio/mpeg", data=data).size_mb == pytest.approx(1.0)


@pytest.mark.parametrize("error, expected", [
    (ProviderError("unavailable", code=503), ErrorKind.OVERLOADED),
    (ProviderError("Model is OVERLOADED", code=500), ErrorKind.OVERLOADED),
    (ProviderError("slow down", code=429), ErrorKind.RATE_LIMITED),
    (ProviderError("bad", code=400), ErrorKind.INVALID_REQUEST),
    (ProviderError("no text", malformed=True), ErrorKind.MALFORMED_RESPONSE),
    (ProviderError("boom", code=500), ErrorKind.FAILED_AFTER_RETRIES),
    (ProviderError("timeout"), ErrorKind.FAILED_AFTER_RETRIES),
])
def test_classify(error, expected):
    assert classify(error) is expected
