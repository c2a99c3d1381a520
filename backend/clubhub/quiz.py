from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from .contracts import QuizQuestion, UserPreferenceProfile
from .storage import ClubStore, StoreUnavailable
from .tags import build_category_index, interest_catalog, load_tag_index
from .validators import normalize_tags

logger = logging.getLogger(__name__)


class QuizIncomplete(ValueError):
    """Raised when a full-quiz submission leaves questions unanswered."""

    def __init__(self, unanswered: list[str]) -> None:
        super().__init__("Please answer all questions before submitting")
        self.unanswered = unanswered


class QuizUnavailable(RuntimeError):
    """Raised when quiz data or preferences cannot be loaded or saved; safe to retry."""


@dataclass
class QuizState:
    questions: list[QuizQuestion]
    selections: dict[str, list[str]] = field(default_factory=dict)


@dataclass
class PreferenceEditorState:
    interests: list[str]
    selected: list[str]


def unanswered_questions(
    questions: Iterable[QuizQuestion], selections: Mapping[str, Iterable[str]]
) -> list[str]:
    missing: list[str] = []
    for question in questions:
        valid = {option.id for option in question.options}
        chosen = [option_id for option_id in selections.get(question.id) or [] if option_id in valid]
        if not chosen:
            missing.append(question.id)
    return missing


def resolve_quiz_tags(
    questions: Iterable[QuizQuestion], selections: Mapping[str, Iterable[str]]
) -> list[str]:
    """
    Union the tags of every selected option across all questions.

    Each question needs at least one selected option, otherwise `QuizIncomplete`
    is raised. Option ids that do not belong to their question are ignored. Tags
    come back in question order, then option order, de-duplicated case-insensitively.
    """
    questions = list(questions)
    missing = unanswered_questions(questions, selections)
    if missing:
        raise QuizIncomplete(missing)
    collected: list[str] = []
    for question in questions:
        chosen = set(selections.get(question.id) or [])
        for option in question.options:
            if option.id in chosen:
                collected.extend(option.tags)
    return normalize_tags(collected)


class QuizService:
    def __init__(self, store: ClubStore) -> None:
        self._store = store

    async def load_quiz(self, user_id: str | None = None, *, edit: bool = False) -> QuizState:
        try:
            questions = await self._store.get_quiz_questions()
            selections: dict[str, list[str]] = {}
            if edit and user_id:
                selections = await self._store.get_quiz_responses(user_id)
        except StoreUnavailable as exc:
            raise QuizUnavailable("Failed to load quiz questions") from exc
        return QuizState(questions=questions, selections=selections)

    async def submit_quiz(
        self, user_id: str, selections: Mapping[str, Iterable[str]]
    ) -> UserPreferenceProfile:
        state = await self.load_quiz()
        cleaned = {str(key): [str(item) for item in value or []] for key, value in selections.items()}
        tags = resolve_quiz_tags(state.questions, cleaned)
        try:
            profile = await self._store.record_quiz_submission(user_id, cleaned, tags)
        except StoreUnavailable as exc:
            raise QuizUnavailable("Failed to submit quiz. Please try again.") from exc
        logger.info("Quiz submitted for %s (%d tags)", user_id, len(profile.preference_tags))
        return profile

    async def load_preference_editor(self, user_id: str) -> PreferenceEditorState:
        try:
            clubs = await self._store.list_clubs()
            tags = await load_tag_index(self._store)
            selected = await self._store.get_user_preference_tags(user_id)
        except StoreUnavailable as exc:
            raise QuizUnavailable("Failed to load preferences") from exc
        return PreferenceEditorState(
            interests=interest_catalog(build_category_index(clubs), tags),
            selected=selected,
        )

    async def save_preferences(self, user_id: str, tags: Iterable[str]) -> UserPreferenceProfile:
        """Replace the stored preference tags with exactly `tags` (may be empty)."""
        try:
            return await self._store.update_user_preference_tags(user_id, tags)
        except StoreUnavailable as exc:
            raise QuizUnavailable("Failed to update preferences") from exc
