import asyncio

from backend.clubhub.chat.tools import (
    GET_ALL_CLUBS,
    GET_CLUB_DETAILS,
    GET_USER_PREFERENCES,
    SEARCH_CLUBS,
    ToolRegistry,
)
from backend.clubhub.chat.types import ToolCall
from backend.clubhub.contracts import Club
from backend.clubhub.scoring import score_club
from backend.clubhub.storage import StoreUnavailable


def run(coro):
    return asyncio.run(coro)


def declared_names(registry, **kwargs):
    (block,) = registry.declarations(**kwargs)
    return [item["name"] for item in block["function_declarations"]]


class TestDeclarations:
    def test_all_four_tools_are_declared(self, store):
        registry = ToolRegistry(store)
        assert declared_names(registry) == [
            SEARCH_CLUBS,
            GET_ALL_CLUBS,
            GET_CLUB_DETAILS,
            GET_USER_PREFERENCES,
        ]

    def test_excluding_a_tool_leaves_the_catalogue_untouched(self, store):
        registry = ToolRegistry(store)
        assert GET_USER_PREFERENCES not in declared_names(registry, exclude=[GET_USER_PREFERENCES])
        assert GET_USER_PREFERENCES in declared_names(registry)


class TestBindContext:
    def test_user_id_overrides_model_value(self, store):
        registry = ToolRegistry(store)
        call = ToolCall(name=SEARCH_CLUBS, args={"query": "", "userId": "someone-else"})
        bound = registry.bind_context(call, user_id="me", known_tags=["music"])
        assert bound.args == {"query": "", "userId": "me", "tags": ["music"]}
        assert call.args == {"query": "", "userId": "someone-else"}

    def test_tags_are_only_added_to_search(self, store):
        registry = ToolRegistry(store)
        bound = registry.bind_context(
            ToolCall(name=GET_USER_PREFERENCES), user_id="me", known_tags=["music"]
        )
        assert bound.args == {"userId": "me"}
        details = registry.bind_context(
            ToolCall(name=GET_CLUB_DETAILS, args={"clubId": "1"}), user_id="me"
        )
        assert details.args == {"clubId": "1"}


class TestSearchClubs:
    def test_text_query_searches_and_flags_matches(self, store):
        run(store.update_user_preference_tags("me", ["music"]))
        registry = ToolRegistry(store)
        results = run(registry.search_clubs(query="band", user_id="me"))
        assert [item["name"] for item in results] == ["Jazz Band"]
        assert results[0]["is_match_for_user"] is True

    def test_empty_query_with_tags_uses_overlap(self, store):
        registry = ToolRegistry(store)
        results = run(registry.search_clubs(query="", tags=["outdoor"]))
        assert {item["name"] for item in results} == {
            "Environmental Alliance",
            "Photography Society",
            "Varsity Soccer",
        }
        assert all(item["is_match_for_user"] for item in results)

    def test_empty_query_reads_stored_tags_when_none_given(self, store):
        run(store.update_user_preference_tags("me", ["strategy"]))
        results = run(ToolRegistry(store).search_clubs(query="", user_id="me"))
        assert [item["name"] for item in results] == ["Chess Club"]

    def test_match_flags_agree_with_the_scorer(self, store):
        tags = ["outdoor", "music"]
        results = run(ToolRegistry(store).search_clubs(query="o", tags=tags))
        assert results
        for item in results:
            club = Club(**item)
            expected = score_club(club, [], tags).user_preference_score > 0
            assert item["is_match_for_user"] is expected

    def test_no_query_and_no_tags_returns_a_capped_sample(self, store):
        results = run(ToolRegistry(store, search_limit=3).search_clubs(query=""))
        assert len(results) == 3
        assert not any(item["is_match_for_user"] for item in results)


class TestExecute:
    def test_club_details_include_events(self, store):
        registry = ToolRegistry(store)
        result = run(registry.execute(ToolCall(name=GET_CLUB_DETAILS, args={"clubId": "8"})))
        assert result.content["name"] == "Jazz Band"
        assert result.content["events"][0]["title"] == "Rehearsal"

    def test_missing_club_is_none(self, store):
        registry = ToolRegistry(store)
        result = run(registry.execute(ToolCall(name=GET_CLUB_DETAILS, args={"clubId": "404"})))
        assert result.content is None

    def test_get_all_clubs_returns_everything(self, store):
        result = run(ToolRegistry(store).execute(ToolCall(name=GET_ALL_CLUBS)))
        assert len(result.content) == 8

    def test_unknown_tool_yields_none(self, store):
        result = run(ToolRegistry(store).execute(ToolCall(name="bookRoom", args={"room": "1"})))
        assert result.name == "bookRoom"
        assert result.content is None

    def test_failures_become_empty_results(self):
        class DownStore:
            async def search_clubs(self, text, limit=None):
                raise StoreUnavailable("down")

            async def get_club(self, club_id):
                raise StoreUnavailable("down")

        registry = ToolRegistry(DownStore())
        search = run(registry.execute(ToolCall(name=SEARCH_CLUBS, args={"query": "jazz"})))
        details = run(registry.execute(ToolCall(name=GET_CLUB_DETAILS, args={"clubId": "1"})))
        assert search.content == []
        assert details.content is None

    def test_function_response_shape(self, store):
        result = run(ToolRegistry(store).execute(ToolCall(name=GET_USER_PREFERENCES, args={})))
        assert result.to_part() == {
            "functionResponse": {
                "name": GET_USER_PREFERENCES,
                "response": {"name": GET_USER_PREFERENCES, "content": []},
            }
        }
