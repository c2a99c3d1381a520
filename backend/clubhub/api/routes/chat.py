from __future__ import annotations

from fastapi import APIRouter, Depends

from ...chat import ChatOrchestrator, ToolRegistry
from ...storage import DB
from ..types import ChatRequest, ChatResponse

router = APIRouter(tags=["chat"])

# One orchestrator per process so late, abandoned model calls stay tracked.
ORCHESTRATOR = ChatOrchestrator(ToolRegistry(DB))


def get_orchestrator() -> ChatOrchestrator:
    return ORCHESTRATOR


@router.post("/chat", response_model=ChatResponse)
async def chat(req: ChatRequest, orchestrator: ChatOrchestrator = Depends(get_orchestrator)):
    reply = await orchestrator.converse_detailed(
        req.history,
        req.message,
        user_id=req.user_id,
        known_preference_tags=req.preference_tags,
    )
    return ChatResponse(reply=reply.text, outcome=reply.outcome, tools=list(reply.tools))
