"""
Events API Route

Thin delegation layer to the conversation orchestrator.
Contains NO business logic, routing, or generation code.

DESIGN RULE: All intelligence lives in the orchestration layer.
"""

from fastapi import APIRouter, Depends

from app.dependencies import get_orchestrator
from orchestration.orchestrator import ConversationOrchestrator
from schemas.events import EventBatch, EventBatchResponse, EventReply, UserStatsResponse


router = APIRouter()


@router.post("/events", response_model=EventBatchResponse)
async def handle_events(
    batch: EventBatch,
    orchestrator: ConversationOrchestrator = Depends(get_orchestrator),
) -> EventBatchResponse:
    """
    Answer one delivery batch.

    Events are processed concurrently; replies keep the request order.
    Non-text events get the fixed unsupported-content reply.
    """
    texts = await orchestrator.handle_batch(batch.events)
    return EventBatchResponse(
        replies=[EventReply(user_id=event.user_id, text=text) for event, text in zip(batch.events, texts)]
    )


@router.get("/users/{user_id}/stats", response_model=UserStatsResponse)
async def user_stats(
    user_id: str,
    orchestrator: ConversationOrchestrator = Depends(get_orchestrator),
) -> UserStatsResponse:
    stats = await orchestrator.stats(user_id)
    return UserStatsResponse(
        user_id=user_id,
        distinct_session_count=stats.distinct_session_count,
        total_turn_count=stats.total_turn_count,
    )
