"""Health check module with dependency verification."""

from __future__ import annotations

import time
from typing import Any

from .settings import settings
from .storage import ClubStore, StoreUnavailable


def _is_configured(value: str | None) -> bool:
    """Return True when a config string is non-empty after trimming."""
    if value is None:
        return False
    return bool(value.strip())


class HealthChecker:
    """Health checker for the club database and optional integrations."""

    def __init__(self, store: ClubStore) -> None:
        self._store = store

    async def check_all(self) -> dict[str, Any]:
        checks = {
            "database": await self._check_database(),
            "gemini": self._check_gemini(),
            "sentry": self._check_sentry(),
        }
        # Gemini and Sentry are optional; only the database decides overall health.
        healthy = checks["database"].get("status") == "ok"
        return {
            "status": "healthy" if healthy else "degraded",
            "timestamp": time.time(),
            "checks": checks,
        }

    async def _check_database(self) -> dict[str, Any]:
        try:
            clubs = await self._store.list_clubs()
        except StoreUnavailable as exc:
            return {"status": "error", "error": str(exc), "error_type": type(exc).__name__}
        return {"status": "ok", "club_count": len(clubs)}

    def _check_gemini(self) -> dict[str, Any]:
        if not _is_configured(settings.GEMINI_API_KEY):
            return {"status": "disabled", "reason": "GEMINI_API_KEY not configured"}
        return {"status": "ok", "model": settings.GEMINI_MODEL}

    def _check_sentry(self) -> dict[str, Any]:
        if not _is_configured(settings.SENTRY_DSN):
            return {"status": "disabled", "reason": "SENTRY_DSN not configured"}
        dsn = settings.SENTRY_DSN or ""
        if "@" in dsn and "//" in dsn:
            return {
                "status": "ok",
                "environment": settings.SENTRY_ENVIRONMENT,
                "release": settings.SENTRY_RELEASE or "unset",
            }
        return {"status": "error", "error": "Invalid SENTRY_DSN format"}
