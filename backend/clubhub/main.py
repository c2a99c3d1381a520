from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import sentry_sdk
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from sentry_sdk.integrations.fastapi import FastApiIntegration

from .api.routes import chat as chat_routes
from .api.routes import clubs as clubs_routes
from .api.routes import quiz as quiz_routes
from .api.routes import users as users_routes
from .db.core import init_db
from .gemini_async import close_async_client
from .health import HealthChecker
from .logging_config import configure_structlog, get_logger
from .metrics import PrometheusMiddleware, get_metrics
from .quiz import QuizIncomplete, QuizUnavailable
from .seed import seed_database
from .settings import APP_VERSION, settings
from .storage import DB, StoreUnavailable
from .utils import add_cors, add_request_id_tracing, get_request_id

# Configure structured logging (must be done before any logging calls)
configure_structlog(json_logs=not settings.DEBUG)

if settings.SENTRY_DSN:
    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.SENTRY_ENVIRONMENT,
        release=settings.SENTRY_RELEASE or f"clubhub@{APP_VERSION}",
        integrations=[FastApiIntegration()],
        traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
    )

logger = get_logger(__name__)

API_PREFIX = "/v1"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    await init_db()
    if settings.SEED_ON_STARTUP:
        seeded = await seed_database(DB)
        logger.info("startup_seed", seeded=seeded)
    yield
    await close_async_client()


app = FastAPI(
    title="ClubHub API",
    version=APP_VERSION,
    description="Campus club discovery: ranked directory, interest quiz and chat assistant",
    lifespan=lifespan,
)
add_cors(app)
add_request_id_tracing(app)
app.add_middleware(PrometheusMiddleware)

app.include_router(clubs_routes.router, prefix=API_PREFIX)
app.include_router(quiz_routes.router, prefix=API_PREFIX)
app.include_router(users_routes.router, prefix=API_PREFIX)
app.include_router(chat_routes.router, prefix=API_PREFIX)

health_checker = HealthChecker(DB)


def _unavailable(message: str) -> JSONResponse:
    return JSONResponse(
        status_code=503,
        content={"detail": message, "request_id": get_request_id() or None},
    )


@app.exception_handler(QuizIncomplete)
async def quiz_incomplete_handler(request: Request, exc: QuizIncomplete) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={"detail": str(exc), "unanswered": exc.unanswered},
    )


@app.exception_handler(QuizUnavailable)
async def quiz_unavailable_handler(request: Request, exc: QuizUnavailable) -> JSONResponse:
    logger.warning("quiz_unavailable", path=request.url.path, error=str(exc))
    return _unavailable(str(exc))


@app.exception_handler(StoreUnavailable)
async def store_unavailable_handler(request: Request, exc: StoreUnavailable) -> JSONResponse:
    logger.warning("store_unavailable", path=request.url.path)
    return _unavailable("Club data is temporarily unavailable. Please try again.")


@app.get("/health")
async def health():
    """Return service health including the database check."""
    health_status = await health_checker.check_all()
    status_code = 200 if health_status["status"] == "healthy" else 503
    body: dict[str, Any] = {
        "status": health_status["status"],
        "timestamp": health_status.get("timestamp"),
        "checks": health_status.get("checks", {}),
        "service": "clubhub",
        "version": APP_VERSION,
    }
    return JSONResponse(content=body, status_code=status_code)


@app.get("/metrics")
def metrics():
    """Expose Prometheus metrics."""
    try:
        return get_metrics()
    except Exception:  # pragma: no cover - defensive path
        logger.exception("Metrics export failed")
        raise HTTPException(status_code=503, detail="metrics unavailable")
