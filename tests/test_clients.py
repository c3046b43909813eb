import asyncio
from types import SimpleNamespace

import groq
import httpx
import pytest

from vibecheck.clients import GroqClient, WebhookClient
from vibecheck.errors import MalformedResponse, NotificationFailure, ServiceError

CHAT_URL = "https://api.groq.com/openai/v1/chat/completions"


def _groq_with(create) -> GroqClient:
    client = GroqClient(model="test-model", api_key="gsk_test")
    client._client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))
    return client


def _completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def test_groq_chat_returns_content_and_passes_model():
    seen = {}

    async def create(**kwargs):
        seen.update(kwargs)
        return _completion('{"ok": true}')

    text = asyncio.run(_groq_with(create).chat([{"role": "user", "content": "hi"}], temperature=0.2))
    assert text == '{"ok": true}'
    assert seen["model"] == "test-model"
    assert seen["temperature"] == 0.2
    assert "max_tokens" not in seen


def test_groq_connection_error_becomes_service_error():
    async def create(**kwargs):
        raise groq.APIConnectionError(request=httpx.Request("POST", CHAT_URL))

    with pytest.raises(ServiceError):
        asyncio.run(_groq_with(create).chat([]))


def test_groq_status_error_becomes_service_error():
    async def create(**kwargs):
        request = httpx.Request("POST", CHAT_URL)
        raise groq.APIStatusError(
            "rate limited", response=httpx.Response(429, request=request), body=None
        )

    with pytest.raises(ServiceError, match="429"):
        asyncio.run(_groq_with(create).chat([]))


def test_groq_reply_without_text_is_malformed():
    async def create(**kwargs):
        return _completion(None)

    with pytest.raises(MalformedResponse):
        asyncio.run(_groq_with(create).chat([]))


def test_webhook_posts_json_body():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(202)

    async def scenario():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            hook = WebhookClient("https://hooks.test/feedback", client=http)
            return await hook.post('{"score": 7}')

    assert asyncio.run(scenario()) == 202
    assert seen[0].method == "POST"
    assert str(seen[0].url) == "https://hooks.test/feedback"
    assert seen[0].headers["content-type"] == "application/json"
    assert seen[0].content == b'{"score": 7}'


def test_webhook_transport_failure_raises_notification_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async def scenario():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            await WebhookClient("https://hooks.test/feedback", client=http).post("{}")

    with pytest.raises(NotificationFailure):
        asyncio.run(scenario())
