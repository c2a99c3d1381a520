from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .validators import normalize_label, normalize_tags, title_case


# --- Clubs ---
class Club(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str = ""
    category: str = ""
    tags: list[str] = Field(default_factory=list)
    image: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _id(cls, value: object) -> str:
        return str(value).strip()

    @field_validator("name", "description", mode="before")
    @classmethod
    def _text(cls, value: object) -> str:
        return normalize_label(value)

    @field_validator("category", mode="before")
    @classmethod
    def _category(cls, value: object) -> str:
        return title_case(value)

    @field_validator("tags", mode="before")
    @classmethod
    def _tags(cls, value: object) -> list[str]:
        return normalize_tags(value)  # type: ignore[arg-type]


class ScoredClub(Club):
    """Ranking projection of a club; computed per request and never stored."""

    user_preference_score: int = 0
    selected_tags_score: int = 0
    is_match_for_user: bool = False


class ClubEvent(BaseModel):
    id: str
    club_id: str
    title: str
    time: str
    location: str | None = None
    description: str | None = None


# --- Users ---
class UserPreferenceProfile(BaseModel):
    user_id: str
    preference_tags: list[str] = Field(default_factory=list)
    completed_onboarding: bool = False

    @field_validator("preference_tags", mode="before")
    @classmethod
    def _preference_tags(cls, value: object) -> list[str]:
        return normalize_tags(value)  # type: ignore[arg-type]


# --- Preference quiz ---
class QuizOption(BaseModel):
    id: str
    question_id: str
    text: str
    tags: list[str] = Field(default_factory=list)

    @field_validator("tags", mode="before")
    @classmethod
    def _tags(cls, value: object) -> list[str]:
        return normalize_tags(value)  # type: ignore[arg-type]


class QuizQuestion(BaseModel):
    id: str
    text: str
    options: list[QuizOption] = Field(default_factory=list)


# --- Chat ---
class ChatMessage(BaseModel):
    text: str
    is_user: bool
