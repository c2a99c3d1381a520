from __future__ import annotations

from typing import Annotated

from fastapi import Query
from pydantic import BaseModel, Field

from ..contracts import ChatMessage, QuizQuestion

ClubSearch = Annotated[
    str | None,
    Query(
        max_length=80,
        description="Case-insensitive substring matched against club name and description",
    ),
]

RepeatedFilter = Annotated[list[str] | None, Query()]

SortQuery = Annotated[
    str | None,
    Query(description="default, alphabetical (alias: name) or category"),
]


class QuizResponse(BaseModel):
    questions: list[QuizQuestion]
    selections: dict[str, list[str]] = Field(default_factory=dict)


class QuizSubmission(BaseModel):
    user_id: str = Field(..., min_length=1)
    selections: dict[str, list[str]] = Field(default_factory=dict)


class PreferenceEditor(BaseModel):
    interests: list[str]
    selected: list[str]


class PreferenceUpdate(BaseModel):
    tags: list[str] = Field(default_factory=list)


class MembershipState(BaseModel):
    active: bool


class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=2000)
    history: list[ChatMessage] = Field(default_factory=list)
    user_id: str | None = None
    preference_tags: list[str] | None = Field(
        None, description="Interests the client already knows; skips the preference lookup tool"
    )


class ChatResponse(BaseModel):
    reply: str
    outcome: str
    tools: list[str] = Field(default_factory=list)
