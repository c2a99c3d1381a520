from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from ..contracts import Club
from ..metrics import chat_tool_calls_total
from ..scoring import score_club
from ..settings import settings
from ..storage import ClubStore
from ..validators import normalize_label, normalize_tags
from .types import ToolCall, ToolResult

logger = logging.getLogger(__name__)

SEARCH_CLUBS = "searchClubs"
GET_ALL_CLUBS = "getAllClubs"
GET_CLUB_DETAILS = "getClubDetails"
GET_USER_PREFERENCES = "getUserPreferences"

Handler = Callable[..., Awaitable[Any]]


@dataclass(frozen=True)
class ToolDefinition:
    """A function the model may call, plus how its arguments reach the handler."""

    name: str
    description: str
    parameters: dict[str, Any]
    # model argument name -> handler keyword
    arguments: dict[str, str] = field(default_factory=dict)
    accepts_user_id: bool = False
    accepts_tags: bool = False
    empty: Callable[[], Any] = lambda: None

    def declaration(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.parameters,
        }


TOOL_DEFINITIONS: tuple[ToolDefinition, ...] = (
    ToolDefinition(
        name=SEARCH_CLUBS,
        description=(
            "Search for clubs based on a query string (e.g., 'robotics', 'music', 'sports'). "
            "Use an empty query to get clubs matching the user's interests."
        ),
        parameters={
            "type": "OBJECT",
            "properties": {
                "query": {
                    "type": "STRING",
                    "description": "The search term to find clubs.",
                }
            },
            "required": ["query"],
        },
        arguments={"query": "query", "userId": "user_id", "tags": "tags"},
        accepts_user_id=True,
        accepts_tags=True,
        empty=list,
    ),
    ToolDefinition(
        name=GET_ALL_CLUBS,
        description="Get a list of all available clubs.",
        parameters={"type": "OBJECT", "properties": {}},
        empty=list,
    ),
    ToolDefinition(
        name=GET_CLUB_DETAILS,
        description="Get detailed information about a specific club by its ID.",
        parameters={
            "type": "OBJECT",
            "properties": {
                "clubId": {
                    "type": "STRING",
                    "description": "The ID of the club.",
                }
            },
            "required": ["clubId"],
        },
        arguments={"clubId": "club_id"},
    ),
    ToolDefinition(
        name=GET_USER_PREFERENCES,
        description="Get the current user's interests and preferences (tags).",
        parameters={"type": "OBJECT", "properties": {}},
        arguments={"userId": "user_id"},
        accepts_user_id=True,
        empty=list,
    ),
)


def _club_payload(club: Club, preference_tags: Iterable[str] = ()) -> dict[str, Any]:
    payload = club.model_dump(mode="json")
    payload["is_match_for_user"] = score_club(club, (), preference_tags).user_preference_score > 0
    return payload


class ToolRegistry:
    """Read-only club tools exposed to the chat model.

    Handlers never raise: a failed lookup is reported to the model as an empty
    list (collection tools) or ``None`` (single-item tools).
    """

    def __init__(self, store: ClubStore, *, search_limit: int | None = None) -> None:
        self._store = store
        self._search_limit = search_limit or settings.CHAT_SEARCH_LIMIT
        self._tools = {tool.name: tool for tool in TOOL_DEFINITIONS}
        self._handlers: dict[str, Handler] = {
            SEARCH_CLUBS: self.search_clubs,
            GET_ALL_CLUBS: self.get_all_clubs,
            GET_CLUB_DETAILS: self.get_club_details,
            GET_USER_PREFERENCES: self.get_user_preferences,
        }

    def declarations(self, *, exclude: Iterable[str] = ()) -> list[dict[str, Any]]:
        """Build the ``tools`` block of a Gemini request, minus ``exclude``."""
        skipped = set(exclude)
        functions = [tool.declaration() for tool in TOOL_DEFINITIONS if tool.name not in skipped]
        return [{"function_declarations": functions}]

    def bind_context(
        self,
        call: ToolCall,
        *,
        user_id: str | None = None,
        known_tags: Iterable[str] = (),
    ) -> ToolCall:
        """Return ``call`` with the caller's identity and known tags filled in.

        The user id always wins over whatever the model supplied.
        """
        tool = self._tools.get(call.name)
        if tool is None:
            return call
        args = dict(call.args)
        if tool.accepts_user_id and user_id:
            args["userId"] = user_id
        tags = normalize_tags(known_tags)
        if tool.accepts_tags and tags:
            args["tags"] = tags
        return ToolCall(name=call.name, args=args)

    async def execute(self, call: ToolCall) -> ToolResult:
        tool = self._tools.get(call.name)
        if tool is None:
            logger.warning("Model requested unknown tool %s", call.name)
            chat_tool_calls_total.labels(tool="unknown", status="unknown").inc()
            return ToolResult(name=call.name, content=None)

        kwargs = {
            keyword: call.args[arg]
            for arg, keyword in tool.arguments.items()
            if arg in call.args
        }
        started = time.perf_counter()
        try:
            content = await self._handlers[tool.name](**kwargs)
        except Exception:
            logger.exception("Tool %s failed", tool.name)
            chat_tool_calls_total.labels(tool=tool.name, status="error").inc()
            return ToolResult(name=tool.name, content=tool.empty())
        logger.debug(
            "Tool %s finished in %.1fms", tool.name, (time.perf_counter() - started) * 1000
        )
        chat_tool_calls_total.labels(tool=tool.name, status="ok").inc()
        return ToolResult(name=tool.name, content=content)

    async def search_clubs(
        self,
        query: object = "",
        user_id: str | None = None,
        tags: Iterable[str] | None = None,
    ) -> list[dict[str, Any]]:
        text = normalize_label(query)
        preference_tags = normalize_tags(tags)
        if not preference_tags and user_id:
            preference_tags = await self._store.get_user_preference_tags(user_id)

        if text:
            clubs = await self._store.search_clubs(text, self._search_limit)
        elif preference_tags:
            clubs = await self._store.clubs_with_tags(preference_tags, self._search_limit)
        else:
            clubs = await self._store.list_clubs(self._search_limit)
        return [_club_payload(club, preference_tags) for club in clubs]

    async def get_all_clubs(self) -> list[dict[str, Any]]:
        clubs = await self._store.list_clubs()
        return [club.model_dump(mode="json") for club in clubs]

    async def get_club_details(self, club_id: object = None) -> dict[str, Any] | None:
        key = normalize_label(club_id)
        if not key:
            return None
        club = await self._store.get_club(key)
        if club is None:
            return None
        payload = club.model_dump(mode="json")
        events = await self._store.get_club_events(club.id)
        payload["events"] = [event.model_dump(mode="json") for event in events]
        return payload

    async def get_user_preferences(self, user_id: str | None = None) -> list[str]:
        if not user_id:
            return []
        return await self._store.get_user_preference_tags(user_id)
