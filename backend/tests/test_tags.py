import asyncio

from backend.clubhub.contracts import Club
from backend.clubhub.storage import StoreUnavailable
from backend.clubhub.tags import (
    build_category_index,
    build_tag_index,
    interest_catalog,
    load_tag_index,
    sorted_tags,
)
from backend.clubhub.validators import normalize_tags, tag_key, title_case


def make_club(club_id, tags, category="Technology", name=None):
    return Club(id=club_id, name=name or f"Club {club_id}", category=category, tags=tags)


class FakeStore:
    def __init__(self, catalog=None, clubs=None, catalog_error=False, clubs_error=False):
        self.catalog = catalog or []
        self.clubs = clubs or []
        self.catalog_error = catalog_error
        self.clubs_error = clubs_error
        self.club_fetches = 0

    async def get_tag_catalog(self):
        if self.catalog_error:
            raise StoreUnavailable("catalog down")
        return list(self.catalog)

    async def list_clubs(self, limit=None):
        self.club_fetches += 1
        if self.clubs_error:
            raise StoreUnavailable("clubs down")
        return list(self.clubs)


def test_normalize_tags_trims_and_keeps_first_spelling():
    assert normalize_tags([" Music ", "music", "", "  ", "Jazz  Band", "MUSIC"]) == [
        "Music",
        "Jazz Band",
    ]


def test_normalize_tags_treats_missing_lists_as_empty():
    assert normalize_tags(None) == []
    assert normalize_tags("music") == []


def test_tag_key_ignores_case_and_padding():
    assert tag_key("  Coding ") == tag_key("coding")


def test_title_case_leaves_acronyms():
    assert title_case("  academic   STEM ") == "Academic STEM"


def test_build_tag_index_is_distinct_and_case_insensitively_sorted():
    clubs = [
        make_club("1", ["music", "Art"]),
        make_club("2", ["art", "coding"]),
        make_club("3", []),
    ]
    assert build_tag_index(clubs) == ["Art", "coding", "music"]


def test_build_tag_index_empty_input():
    assert build_tag_index([]) == []


def test_sorted_tags_orders_without_regard_to_case():
    assert sorted_tags(["b", "A", "c"]) == ["A", "b", "c"]


def test_category_index_and_interest_catalog():
    clubs = [make_club("1", ["coding"], "technology"), make_club("2", ["music"], "Music")]
    categories = build_category_index(clubs)
    assert categories == ["Music", "Technology"]
    assert interest_catalog(categories, ["coding", "music"]) == ["coding", "Music", "Technology"]


def test_load_tag_index_prefers_catalog():
    store = FakeStore(catalog=["robots", "Art"], clubs=[make_club("1", ["music"])])
    assert asyncio.run(load_tag_index(store)) == ["Art", "robots"]
    assert store.club_fetches == 0


def test_load_tag_index_derives_from_clubs_when_catalog_empty():
    store = FakeStore(catalog=[], clubs=[make_club("1", ["music", "art"])])
    assert asyncio.run(load_tag_index(store)) == ["art", "music"]


def test_load_tag_index_derives_from_clubs_when_catalog_fails():
    store = FakeStore(catalog_error=True, clubs=[make_club("1", ["coding"])])
    assert asyncio.run(load_tag_index(store)) == ["coding"]


def test_load_tag_index_is_empty_when_everything_fails():
    store = FakeStore(catalog_error=True, clubs_error=True)
    assert asyncio.run(load_tag_index(store)) == []
