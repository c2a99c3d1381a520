from __future__ import annotations

from fastapi import APIRouter, Depends

from ...contracts import UserPreferenceProfile
from ...quiz import QuizService
from ...storage import ClubStore, get_store
from ..types import PreferenceEditor, PreferenceUpdate, QuizResponse, QuizSubmission

router = APIRouter(tags=["quiz"])


def get_quiz_service(store: ClubStore = Depends(get_store)) -> QuizService:
    return QuizService(store)


@router.get("/quiz", response_model=QuizResponse)
async def load_quiz(
    user_id: str | None = None,
    edit: bool = False,
    service: QuizService = Depends(get_quiz_service),
):
    state = await service.load_quiz(user_id, edit=edit)
    return QuizResponse(questions=state.questions, selections=state.selections)


@router.post("/quiz", response_model=UserPreferenceProfile)
async def submit_quiz(
    payload: QuizSubmission, service: QuizService = Depends(get_quiz_service)
):
    return await service.submit_quiz(payload.user_id, payload.selections)


@router.get("/users/{user_id}/preferences", response_model=PreferenceEditor)
async def load_preferences(user_id: str, service: QuizService = Depends(get_quiz_service)):
    state = await service.load_preference_editor(user_id)
    return PreferenceEditor(interests=state.interests, selected=state.selected)


@router.put("/users/{user_id}/preferences", response_model=UserPreferenceProfile)
async def save_preferences(
    user_id: str,
    payload: PreferenceUpdate,
    service: QuizService = Depends(get_quiz_service),
):
    return await service.save_preferences(user_id, payload.tags)
