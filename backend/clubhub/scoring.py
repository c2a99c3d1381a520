from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from .contracts import Club, ScoredClub
from .validators import tag_key, tag_keys


class SortMode(str, Enum):
    DEFAULT = "default"
    ALPHABETICAL = "alphabetical"
    CATEGORY = "category"

    @classmethod
    def _missing_(cls, value: object) -> SortMode | None:
        if not isinstance(value, str):
            return None
        lowered = value.strip().lower()
        if lowered in ("name", "alpha", "az"):
            return cls.ALPHABETICAL
        if lowered in ("", "relevance"):
            return cls.DEFAULT
        for member in cls:
            if member.value == lowered:
                return member
        return None


@dataclass(slots=True, frozen=True)
class ClubScore:
    selected_tags_score: int = 0
    user_preference_score: int = 0


def score_club(
    club: Club,
    selected_tags: Iterable[str] | None,
    preference_tags: Iterable[str] | None,
) -> ClubScore:
    """Count the club's tags present in each reference set. No weighting."""
    selected = tag_keys(selected_tags)
    preferred = tag_keys(preference_tags)
    selected_score = 0
    preference_score = 0
    for tag in club.tags or []:
        key = tag_key(tag)
        if key in selected:
            selected_score += 1
        if key in preferred:
            preference_score += 1
    return ClubScore(selected_tags_score=selected_score, user_preference_score=preference_score)


def scored(club: Club, score: ClubScore) -> ScoredClub:
    return ScoredClub(
        **club.model_dump(),
        selected_tags_score=score.selected_tags_score,
        user_preference_score=score.user_preference_score,
        is_match_for_user=score.user_preference_score > 0,
    )


def ranking_key(
    club: ScoredClub, selected_tags: Iterable[str] | None, sort_mode: SortMode
) -> tuple:
    name = club.name.casefold()
    if sort_mode is SortMode.ALPHABETICAL:
        return (name,)
    if sort_mode is SortMode.CATEGORY:
        return (club.category.casefold(), name)
    if tag_keys(selected_tags):
        return (-club.selected_tags_score, name)
    return (-club.user_preference_score, name)
