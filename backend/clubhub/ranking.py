"""Filter and order the club directory for one browsing session."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from .contracts import Club, ScoredClub
from .scoring import SortMode, ranking_key, score_club, scored
from .validators import normalize_label, normalize_tags, tag_keys


@dataclass(frozen=True)
class ClubFilters:
    search_text: str = ""
    categories: tuple[str, ...] = ()
    selected_tags: tuple[str, ...] = ()
    hidden_ids: frozenset[str] = field(default_factory=frozenset)
    sort_mode: SortMode = SortMode.DEFAULT

    @classmethod
    def build(
        cls,
        *,
        search_text: str | None = None,
        categories: Iterable[str] | None = None,
        selected_tags: Iterable[str] | None = None,
        hidden_ids: Iterable[str] | None = None,
        sort_mode: SortMode | str | None = None,
    ) -> ClubFilters:
        return cls(
            search_text=normalize_label(search_text),
            categories=tuple(normalize_tags(categories)),
            selected_tags=tuple(normalize_tags(selected_tags)),
            hidden_ids=frozenset(str(item) for item in hidden_ids or ()),
            sort_mode=SortMode(sort_mode or SortMode.DEFAULT),
        )


def _matches_text(club: Club, needle: str) -> bool:
    return needle in club.name.casefold() or needle in club.description.casefold()


def rank_clubs(
    all_clubs: Iterable[Club] | None,
    filters: ClubFilters | None = None,
    preference_tags: Iterable[str] | None = None,
) -> list[ScoredClub]:
    """
    Pure ranking pipeline.

    Hidden clubs go first, then the text search and category filter; the
    survivors are scored against the selected tags and the user's preference tags
    and sorted with a stable sort so equal keys keep their input order.
    """
    filters = filters or ClubFilters()
    clubs = [club for club in all_clubs or () if club.id not in filters.hidden_ids]

    needle = filters.search_text.casefold()
    if needle:
        clubs = [club for club in clubs if _matches_text(club, needle)]

    wanted_categories = tag_keys(filters.categories)
    if wanted_categories:
        clubs = [club for club in clubs if club.category.casefold() in wanted_categories]

    results = [
        scored(club, score_club(club, filters.selected_tags, preference_tags)) for club in clubs
    ]
    return sorted(
        results,
        key=lambda item: ranking_key(item, filters.selected_tags, filters.sort_mode),
    )
