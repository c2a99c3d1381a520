from __future__ import annotations

import asyncio
from typing import Any

import httpx

from .settings import settings

_client: httpx.AsyncClient | None = None
_client_lock = asyncio.Lock()


class GeminiUnavailable(RuntimeError):
    """The generative model could not be reached or answered with garbage."""


class GeminiNotConfigured(GeminiUnavailable):
    pass


class GeminiHTTPError(GeminiUnavailable):
    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f"Gemini error {status_code}: {body[:200]}")
        self.status_code = status_code


def _headers() -> dict[str, str]:
    if not settings.GEMINI_API_KEY:
        raise GeminiNotConfigured("GEMINI_API_KEY not configured")
    return {
        "x-goog-api-key": settings.GEMINI_API_KEY,
        "Content-Type": "application/json",
    }


async def _get_client() -> httpx.AsyncClient:
    global _client
    if _client is None:
        async with _client_lock:
            if _client is None:
                timeout = httpx.Timeout(
                    settings.GEMINI_TIMEOUT_SECONDS,
                    connect=settings.GEMINI_CONNECT_TIMEOUT_SECONDS,
                )
                base_url = settings.GEMINI_API_BASE.rstrip("/")
                _client = httpx.AsyncClient(base_url=base_url, timeout=timeout)
    return _client


async def generate_content(
    payload: dict[str, Any], *, client: httpx.AsyncClient | None = None
) -> dict[str, Any]:
    """POST a generateContent request and return the decoded JSON body."""
    headers = _headers()
    client = client or await _get_client()
    try:
        response = await client.post(settings.gemini_generate_path, json=payload, headers=headers)
    except httpx.HTTPError as exc:
        raise GeminiUnavailable(f"Request failed: {exc.__class__.__name__}") from exc
    if response.status_code >= 400:
        raise GeminiHTTPError(response.status_code, response.text)
    try:
        data = response.json()
    except ValueError as exc:
        raise GeminiUnavailable("Invalid JSON from Gemini") from exc
    if not isinstance(data, dict):
        raise GeminiUnavailable("Unexpected Gemini payload")
    return data


async def close_async_client() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
