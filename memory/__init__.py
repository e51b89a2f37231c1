# Memory Package
from memory.types import (
    ActiveConversation,
    ChatMessage,
    ConversationStats,
    ConversationTurn,
    MessageType,
)
from memory.session_key import derive_session_key
from memory.session_cache import SessionCache
from memory.store import ConversationStore, build_backend
from memory.backends.base import PersistenceBackend, PersistenceError

__all__ = [
    "ActiveConversation",
    "ChatMessage",
    "ConversationStats",
    "ConversationTurn",
    "MessageType",
    "derive_session_key",
    "SessionCache",
    "ConversationStore",
    "build_backend",
    "PersistenceBackend",
    "PersistenceError",
]
