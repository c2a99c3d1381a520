from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from ...contracts import Club, ClubEvent, ScoredClub
from ...metrics import club_rankings_total
from ...ranking import ClubFilters, rank_clubs
from ...scoring import SortMode
from ...storage import ClubStore, get_store
from ...tags import build_category_index, load_tag_index
from ..types import ClubSearch, RepeatedFilter, SortQuery

router = APIRouter(tags=["clubs"])


@router.get("/clubs", response_model=list[ScoredClub])
async def list_clubs(
    q: ClubSearch = None,
    category: RepeatedFilter = None,
    tag: RepeatedFilter = None,
    hidden: RepeatedFilter = None,
    sort: SortQuery = None,
    user_id: str | None = None,
    store: ClubStore = Depends(get_store),
):
    try:
        sort_mode = SortMode(sort or SortMode.DEFAULT)
    except ValueError:
        raise HTTPException(422, f"Unknown sort mode: {sort}")
    filters = ClubFilters.build(
        search_text=q,
        categories=category,
        selected_tags=tag,
        hidden_ids=hidden,
        sort_mode=sort_mode,
    )
    clubs = await store.list_clubs()
    preference_tags = await store.get_user_preference_tags(user_id) if user_id else []
    club_rankings_total.labels(sort_mode=sort_mode.value).inc()
    return rank_clubs(clubs, filters, preference_tags)


@router.get("/clubs/{club_id}", response_model=Club)
async def get_club(club_id: str, store: ClubStore = Depends(get_store)):
    club = await store.get_club(club_id)
    if club is None:
        raise HTTPException(404, "Club not found")
    return club


@router.get("/clubs/{club_id}/events", response_model=list[ClubEvent])
async def club_events(club_id: str, store: ClubStore = Depends(get_store)):
    if await store.get_club(club_id) is None:
        raise HTTPException(404, "Club not found")
    return await store.get_club_events(club_id)


@router.get("/tags", response_model=list[str])
async def list_tags(store: ClubStore = Depends(get_store)):
    return await load_tag_index(store)


@router.get("/categories", response_model=list[str])
async def list_categories(store: ClubStore = Depends(get_store)):
    return build_category_index(await store.list_clubs())
