"""Prometheus metrics for the club directory and the chat assistant."""

from __future__ import annotations

import re
import time
from collections.abc import Callable

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

# ==============================================================================
# HTTP METRICS
# ==============================================================================

http_requests_total = Counter(
    "clubhub_http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
)

http_request_duration_seconds = Histogram(
    "clubhub_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 20.0),
)

# ==============================================================================
# DIRECTORY METRICS
# ==============================================================================

club_rankings_total = Counter(
    "clubhub_club_rankings_total",
    "Ranked club lists served",
    ["sort_mode"],
)

# ==============================================================================
# CHAT METRICS
# ==============================================================================

chat_replies_total = Counter(
    "clubhub_chat_replies_total",
    "Chat replies by outcome (direct, tools, fallback, timeout, error)",
    ["outcome"],
)

chat_tool_calls_total = Counter(
    "clubhub_chat_tool_calls_total",
    "Tool invocations requested by the model",
    ["tool", "status"],
)

gemini_request_duration_seconds = Histogram(
    "clubhub_gemini_request_duration_seconds",
    "Gemini generateContent round-trip time",
    ["phase"],
    buckets=(0.25, 0.5, 1.0, 2.0, 4.0, 8.0, 15.0, 30.0),
)


def normalize_endpoint(path: str) -> str:
    """Collapse ids so label cardinality stays bounded."""
    path = re.sub(r"/users/[^/]+", "/users/{user_id}", path)
    path = re.sub(r"/clubs/[^/]+", "/clubs/{club_id}", path)
    path = re.sub(r"/(follows|events)/[^/]+", r"/\1/{id}", path)
    return path


class PrometheusMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path == "/metrics":
            return await call_next(request)

        method = request.method
        endpoint = normalize_endpoint(request.url.path)
        start_time = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            http_requests_total.labels(method=method, endpoint=endpoint, status="500").inc()
            raise
        finally:
            http_request_duration_seconds.labels(method=method, endpoint=endpoint).observe(
                time.perf_counter() - start_time
            )
        http_requests_total.labels(
            method=method, endpoint=endpoint, status=str(response.status_code)
        ).inc()
        return response


def get_metrics() -> Response:
    """Generate Prometheus metrics response."""
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


__all__ = [
    "PrometheusMiddleware",
    "chat_replies_total",
    "chat_tool_calls_total",
    "club_rankings_total",
    "gemini_request_duration_seconds",
    "get_metrics",
]
