import asyncio
import json

import httpx
import pytest

from backend.clubhub.gemini_async import (
    GeminiHTTPError,
    GeminiNotConfigured,
    GeminiUnavailable,
    generate_content,
)
from backend.clubhub.settings import settings


def mock_client(handler):
    return httpx.AsyncClient(
        transport=httpx.MockTransport(handler), base_url=settings.GEMINI_API_BASE
    )


def post(payload, handler):
    async def _call():
        async with mock_client(handler) as client:
            return await generate_content(payload, client=client)

    return asyncio.run(_call())


@pytest.fixture
def api_key(monkeypatch):
    monkeypatch.setattr(settings, "GEMINI_API_KEY", "test-key")
    monkeypatch.setattr(settings, "GEMINI_MODEL", "gemini-test")


def test_posts_to_generate_content_with_key_header(api_key):
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["key"] = request.headers.get("x-goog-api-key")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"candidates": []})

    data = post({"contents": [{"role": "user", "parts": [{"text": "hi"}]}]}, handler)
    assert data == {"candidates": []}
    assert seen["path"].endswith("/models/gemini-test:generateContent")
    assert seen["key"] == "test-key"
    assert seen["body"]["contents"][0]["parts"][0]["text"] == "hi"


def test_missing_key_fails_before_any_request(monkeypatch):
    monkeypatch.setattr(settings, "GEMINI_API_KEY", None)
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json={})

    with pytest.raises(GeminiNotConfigured):
        post({}, handler)
    assert calls == []


def test_http_errors_keep_status_code(api_key):
    with pytest.raises(GeminiHTTPError) as excinfo:
        post({}, lambda request: httpx.Response(429, text="RESOURCE_EXHAUSTED"))
    assert excinfo.value.status_code == 429


def test_network_failure_is_unavailable(api_key):
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(GeminiUnavailable) as excinfo:
        post({}, handler)
    assert not isinstance(excinfo.value, GeminiHTTPError)


def test_invalid_json_is_unavailable(api_key):
    with pytest.raises(GeminiUnavailable):
        post({}, lambda request: httpx.Response(200, text="<html>oops</html>"))
