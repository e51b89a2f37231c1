"""
Conversation Context

Loads the message history handed to the generation capability.

Persisted history is preferred. When the store has no backend, or the read
fails, the process-local handle stands in so context survives within the
process.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from memory.backends.base import PersistenceError
from memory.store import ConversationStore
from memory.types import ActiveConversation, ChatMessage


logger = logging.getLogger(__name__)


@dataclass
class LoadedHistory:
    messages: List[ChatMessage]
    source: str  # "store", "cache" or "empty"
    warning: Optional[str] = None


async def load_history(
    store: ConversationStore,
    handle: Optional[ActiveConversation],
    user_id: str,
    session_id: str,
    limit: int,
) -> LoadedHistory:
    """
    Best-effort bounded history, oldest first. Never raises PersistenceError.
    """
    warning = None
    if store.is_configured:
        try:
            turns = await store.read_history(user_id, session_id, limit)
            messages = [turn.to_chat_message() for turn in turns]
            return LoadedHistory(messages=[m for m in messages if m.text], source="store")
        except PersistenceError as e:
            warning = f"History load failed: {e}"
            logger.warning(f"{warning} (user {user_id}, session {session_id})")

    if handle is not None and not handle.is_empty():
        return LoadedHistory(messages=handle.history[-limit:], source="cache", warning=warning)
    return LoadedHistory(messages=[], source="empty", warning=warning)


def format_transcript(messages: List[ChatMessage]) -> str:
    """Render messages one per line for the summary prompt."""
    return "\n".join(message.to_prompt_format() for message in messages)
