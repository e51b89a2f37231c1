from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field


class InboundEvent(BaseModel):
    """
    One already-validated message event from the transport layer.
    """
    user_id: str = Field(..., min_length=1, description="Stable user identifier")
    text: str = Field(default="", description="Message text (text events only)")
    message_type: str = Field(default="text", description="Message kind; only 'text' is answered")
    delivery_timestamp: Optional[datetime] = Field(default=None, description="When the event was delivered")


class EventBatch(BaseModel):
    """
    API request model for the /events endpoint.
    """
    events: List[InboundEvent] = Field(default_factory=list)


class EventReply(BaseModel):
    user_id: str
    text: str = Field(..., description="Reply text, never empty")


class EventBatchResponse(BaseModel):
    """
    Replies in the same order as the request events.
    """
    replies: List[EventReply] = Field(default_factory=list)


class UserStatsResponse(BaseModel):
    user_id: str
    distinct_session_count: int = 0
    total_turn_count: int = 0
