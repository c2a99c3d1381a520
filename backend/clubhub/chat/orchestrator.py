from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Iterable, Sequence
from typing import Any

from ..contracts import ChatMessage
from ..gemini_async import (
    GeminiHTTPError,
    GeminiNotConfigured,
    GeminiUnavailable,
    generate_content,
)
from ..metrics import chat_replies_total, gemini_request_duration_seconds
from ..settings import settings
from ..validators import normalize_tags
from .prompts import (
    CONFIGURATION_ERROR_MESSAGE,
    CONNECTIVITY_ERROR_MESSAGE,
    FALLBACK_RESPONSE,
    FOLLOW_UP_DIRECTIVE,
    FOLLOW_UP_ERROR_MESSAGE,
    RATE_LIMITED_MESSAGE,
    is_degenerate,
    system_instruction,
)
from .tools import GET_USER_PREFERENCES, ToolRegistry
from .types import ChatPhase, ChatReply, ToolCall, ToolResult

logger = logging.getLogger(__name__)

Transport = Callable[[dict[str, Any]], Awaitable[dict[str, Any]]]
Turn = dict[str, Any]

CONFIGURATION_STATUSES = frozenset({400, 401, 403, 404})


def _text_part(text: str) -> dict[str, str]:
    return {"text": text}


def build_contents(history: Sequence[ChatMessage], message: str) -> tuple[Turn, ...]:
    """Convert prior messages plus the new one into alternating Gemini turns.

    Leading assistant messages are dropped (a conversation has to open with the
    user) and consecutive messages from the same side are merged into one turn.
    Blank messages are skipped.
    """
    turns: list[Turn] = []
    for role, text in [
        *(("user" if item.is_user else "model", item.text) for item in history),
        ("user", message),
    ]:
        if not text or not text.strip():
            continue
        if not turns and role == "model":
            continue
        if turns and turns[-1]["role"] == role:
            previous = turns[-1]
            turns[-1] = {"role": role, "parts": [*previous["parts"], _text_part(text)]}
        else:
            turns.append({"role": role, "parts": [_text_part(text)]})
    return tuple(turns)


def request_body(
    contents: Iterable[Turn], tools: list[dict[str, Any]], instruction: str
) -> dict[str, Any]:
    return {
        "contents": list(contents),
        "tools": tools,
        "systemInstruction": {"parts": [_text_part(instruction)]},
    }


def response_parts(data: Any) -> list[dict[str, Any]]:
    candidates = data.get("candidates") if isinstance(data, dict) else None
    if not isinstance(candidates, list) or not candidates or not isinstance(candidates[0], dict):
        return []
    content = candidates[0].get("content")
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list):
        return []
    return [part for part in parts if isinstance(part, dict)]


def function_calls(parts: Iterable[dict[str, Any]]) -> list[ToolCall]:
    calls: list[ToolCall] = []
    for part in parts:
        payload = part.get("functionCall")
        if not isinstance(payload, dict) or not isinstance(payload.get("name"), str):
            continue
        args = payload.get("args")
        calls.append(ToolCall(name=payload["name"], args=dict(args) if isinstance(args, dict) else {}))
    return calls


def response_text(parts: Iterable[dict[str, Any]]) -> str:
    # "thought" parts carry the model's reasoning, not the answer.
    return "".join(
        part["text"]
        for part in parts
        if isinstance(part.get("text"), str) and not part.get("thought")
    )


def error_message(exc: GeminiUnavailable, *, follow_up: bool = False) -> str:
    status = exc.status_code if isinstance(exc, GeminiHTTPError) else None
    if status == 429:
        return RATE_LIMITED_MESSAGE
    if follow_up:
        return FOLLOW_UP_ERROR_MESSAGE
    if isinstance(exc, GeminiNotConfigured) or status in CONFIGURATION_STATUSES:
        return CONFIGURATION_ERROR_MESSAGE
    return CONNECTIVITY_ERROR_MESSAGE


class ChatOrchestrator:
    """Runs one question through Gemini with club tools, within a time limit.

    A reply takes at most two model round-trips: the first may request tool
    calls, the second turns the tool output into an answer. If the whole
    exchange outlives ``timeout_seconds`` the caller gets ``fallback_text``
    immediately while the abandoned call finishes (or fails) in the background.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        *,
        transport: Transport | None = None,
        timeout_seconds: float | None = None,
        fallback_text: str = FALLBACK_RESPONSE,
    ) -> None:
        self._registry = registry
        self._transport = transport or generate_content
        self._timeout = settings.CHAT_TIMEOUT_SECONDS if timeout_seconds is None else timeout_seconds
        self._fallback = fallback_text
        self._abandoned: set[asyncio.Task[ChatReply]] = set()

    @property
    def pending_abandoned(self) -> int:
        return len(self._abandoned)

    async def converse(
        self,
        history: Sequence[ChatMessage],
        message: str,
        user_id: str | None = None,
        known_preference_tags: Iterable[str] | None = None,
    ) -> str:
        reply = await self.converse_detailed(history, message, user_id, known_preference_tags)
        return reply.text

    async def converse_detailed(
        self,
        history: Sequence[ChatMessage],
        message: str,
        user_id: str | None = None,
        known_preference_tags: Iterable[str] | None = None,
    ) -> ChatReply:
        task = asyncio.ensure_future(
            self._exchange(tuple(history), message, user_id, normalize_tags(known_preference_tags))
        )
        try:
            done, _ = await asyncio.wait({task}, timeout=self._timeout)
        except asyncio.CancelledError:
            logger.info("Chat caller went away; leaving exchange to finish")
            self._abandon(task)
            raise
        if task in done:
            reply = task.result()
        else:
            logger.warning(
                "Chat reply exceeded %.1fs; answering with fallback (phase=%s)",
                self._timeout,
                ChatPhase.TIMED_OUT.value,
            )
            self._abandon(task)
            reply = ChatReply(text=self._fallback, outcome="timeout")
        chat_replies_total.labels(outcome=reply.outcome).inc()
        return reply

    def _abandon(self, task: asyncio.Task[ChatReply]) -> None:
        self._abandoned.add(task)
        task.add_done_callback(self._abandoned_done)

    def _abandoned_done(self, task: asyncio.Task[ChatReply]) -> None:
        self._abandoned.discard(task)
        if task.cancelled():
            logger.info("Abandoned chat exchange was cancelled")
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("Abandoned chat exchange failed: %s", exc)
            return
        logger.info("Abandoned chat exchange finished late (outcome=%s)", task.result().outcome)

    async def _send(self, body: dict[str, Any], phase: ChatPhase) -> dict[str, Any]:
        started = time.perf_counter()
        try:
            return await self._transport(body)
        finally:
            gemini_request_duration_seconds.labels(phase=phase.value).observe(
                time.perf_counter() - started
            )

    async def _exchange(
        self,
        history: tuple[ChatMessage, ...],
        message: str,
        user_id: str | None,
        known_tags: list[str],
    ) -> ChatReply:
        contents = build_contents(history, message)
        instruction = system_instruction(known_tags)
        excluded = (GET_USER_PREFERENCES,) if known_tags else ()
        tools = self._registry.declarations(exclude=excluded)

        phase = ChatPhase.AWAITING_MODEL
        try:
            first = await self._send(request_body(contents, tools, instruction), phase)
            parts = response_parts(first)
            calls = function_calls(parts)
        except GeminiUnavailable as exc:
            logger.warning("Gemini request failed (phase=%s): %s", phase.value, exc)
            return ChatReply(text=error_message(exc), outcome="error")
        except Exception:
            logger.exception("Unreadable Gemini response (phase=%s)", phase.value)
            return ChatReply(text=CONNECTIVITY_ERROR_MESSAGE, outcome="error")

        if not calls:
            # May be empty; the caller decides what to show for a silent model.
            return ChatReply(text=response_text(parts), outcome="direct")

        phase = ChatPhase.EXECUTING_TOOLS
        names = tuple(call.name for call in calls)
        logger.info("Model requested tools: %s", ", ".join(names))
        results: list[ToolResult] = await asyncio.gather(
            *(
                self._registry.execute(
                    self._registry.bind_context(call, user_id=user_id, known_tags=known_tags)
                )
                for call in calls
            )
        )

        phase = ChatPhase.AWAITING_FOLLOW_UP
        follow_up = (
            *contents,
            {"role": "model", "parts": parts},
            {"role": "user", "parts": [result.to_part() for result in results]},
            {"role": "user", "parts": [_text_part(FOLLOW_UP_DIRECTIVE)]},
        )
        try:
            second = await self._send(request_body(follow_up, tools, instruction), phase)
            text = response_text(response_parts(second))
        except GeminiUnavailable as exc:
            logger.warning("Gemini request failed (phase=%s): %s", phase.value, exc)
            return ChatReply(text=error_message(exc, follow_up=True), outcome="error", tools=names)
        except Exception:
            logger.exception("Unreadable Gemini response (phase=%s)", phase.value)
            return ChatReply(text=FOLLOW_UP_ERROR_MESSAGE, outcome="error", tools=names)

        if is_degenerate(text):
            logger.info("Follow-up answer was unusable; serving fallback")
            return ChatReply(text=self._fallback, outcome="fallback", tools=names)
        return ChatReply(text=text, outcome="tools", tools=names)
