from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from ...contracts import Club, ClubEvent
from ...storage import ClubStore, get_store
from ..types import MembershipState

router = APIRouter(prefix="/users/{user_id}", tags=["users"])


@router.get("/follows", response_model=list[Club])
async def followed_clubs(user_id: str, store: ClubStore = Depends(get_store)):
    return await store.get_followed_clubs(user_id)


@router.put("/follows/{club_id}", response_model=MembershipState)
async def follow_club(user_id: str, club_id: str, store: ClubStore = Depends(get_store)):
    if not await store.follow_club(user_id, club_id):
        raise HTTPException(404, "Club not found")
    return MembershipState(active=True)


@router.delete("/follows/{club_id}", response_model=MembershipState)
async def unfollow_club(user_id: str, club_id: str, store: ClubStore = Depends(get_store)):
    await store.unfollow_club(user_id, club_id)
    return MembershipState(active=False)


@router.get("/events", response_model=list[ClubEvent])
async def event_signups(user_id: str, store: ClubStore = Depends(get_store)):
    return await store.get_user_event_signups(user_id)


@router.put("/events/{event_id}", response_model=MembershipState)
async def sign_up(user_id: str, event_id: str, store: ClubStore = Depends(get_store)):
    if not await store.sign_up_for_event(user_id, event_id):
        raise HTTPException(404, "Event not found")
    return MembershipState(active=True)


@router.delete("/events/{event_id}", response_model=MembershipState)
async def cancel_signup(user_id: str, event_id: str, store: ClubStore = Depends(get_store)):
    await store.remove_event_signup(user_id, event_id)
    return MembershipState(active=False)
