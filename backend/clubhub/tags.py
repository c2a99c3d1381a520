"""Interest tag index derived from clubs or the tag catalog."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

from .contracts import Club
from .validators import normalize_tags

if TYPE_CHECKING:
    from .storage import ClubStore

logger = logging.getLogger(__name__)


def _sort_key(tag: str) -> tuple[str, str]:
    return tag.casefold(), tag


def sorted_tags(values: Iterable[str]) -> list[str]:
    return sorted(normalize_tags(values), key=_sort_key)


def build_tag_index(clubs: Iterable[Club]) -> list[str]:
    collected: list[str] = []
    for club in clubs:
        collected.extend(club.tags or [])
    return sorted_tags(collected)


def build_category_index(clubs: Iterable[Club]) -> list[str]:
    return sorted_tags(club.category for club in clubs if club.category)


def interest_catalog(categories: Iterable[str], tags: Iterable[str]) -> list[str]:
    """Flat toggle list for the preference editor: categories plus tags."""
    return sorted_tags([*categories, *tags])


async def load_tag_index(store: ClubStore) -> list[str]:
    """
    Return the tag universe, preferring the catalog table.

    An empty or unreachable catalog falls back to deriving tags from clubs. When
    both sources fail the index is empty and callers render their empty state.
    """
    from .storage import StoreUnavailable

    try:
        catalog = await store.get_tag_catalog()
    except StoreUnavailable as exc:
        logger.warning("Tag catalog unavailable, deriving from clubs: %s", exc)
        catalog = []
    if catalog:
        return sorted_tags(catalog)

    try:
        clubs = await store.list_clubs()
    except StoreUnavailable as exc:
        logger.warning("Club fetch failed while deriving tag index: %s", exc)
        return []
    return build_tag_index(clubs)
