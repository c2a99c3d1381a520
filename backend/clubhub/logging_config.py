"""structlog setup for the ClubHub API: JSON lines in deployments, colour console in DEBUG."""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor

from .settings import APP_VERSION, settings
from .utils import request_id_ctx

SERVICE_NAME = "clubhub"

# Libraries that log every request or query at INFO.
QUIET_LOGGERS = ("httpx", "httpcore", "aiosqlite", "uvicorn.access")


def stamp_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Tag an entry with the service identity and, inside a request, its id."""
    event_dict.setdefault("service", SERVICE_NAME)
    event_dict.setdefault("environment", settings.SENTRY_ENVIRONMENT)
    event_dict.setdefault("version", APP_VERSION)
    request_id = request_id_ctx.get("")
    if request_id:
        event_dict["request_id"] = request_id
    return event_dict


def strip_uvicorn_colour(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    # uvicorn duplicates the message with ANSI codes under this key
    event_dict.pop("color_message", None)
    return event_dict


def _output_chain(json_logs: bool) -> list[Processor]:
    if json_logs:
        return [
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            strip_uvicorn_colour,
            structlog.processors.JSONRenderer(),
        ]
    return [
        structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.dev.ConsoleRenderer(),
    ]


def configure_structlog(json_logs: bool = False, level: int = logging.INFO) -> None:
    """
    Install the processor chain and route stdlib logging to stdout.

    Console output is only used when DEBUG is on and ``json_logs`` is False.
    """
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        stamp_context,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        *_output_chain(json_logs or not settings.DEBUG),
    ]
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Structured logger, e.g. ``get_logger(__name__).info("chat_reply", outcome="tools")``."""
    return structlog.get_logger(name)


__all__ = ["configure_structlog", "get_logger"]
