"""
Memory Types

Data structures for conversation memory.

DESIGN RULES:
- Persisted turns are immutable
- No business logic
- Session-scoped only
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class MessageType(str, Enum):
    """Which side authored a persisted conversation row."""
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class ChatMessage:
    """
    One role-tagged message handed to the generation capability.
    """
    role: str  # "user" or "assistant"
    text: str

    def to_prompt_format(self) -> str:
        """Format for summary prompts."""
        prefix = "用戶:" if self.role == "user" else "助手:"
        return f"{prefix} {self.text}"

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role, "text": self.text}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChatMessage":
        return cls(role=str(data.get("role", "user")), text=str(data.get("text", "")))


@dataclass(frozen=True)
class ConversationTurn:
    """
    A single persisted conversation row.

    The user half is stored with response=None and message_type=USER.
    The assistant half repeats the user message and carries the response.
    """
    user_id: str
    session_id: str
    message: str
    response: Optional[str] = None
    message_type: MessageType = MessageType.USER
    timestamp: Optional[datetime] = None  # assigned by the store
    id: Optional[Any] = None

    def to_chat_message(self) -> ChatMessage:
        """Project the row onto the side that authored it."""
        if self.message_type == MessageType.ASSISTANT:
            return ChatMessage(role="assistant", text=self.response or "")
        return ChatMessage(role="user", text=self.message)


@dataclass(frozen=True)
class ConversationStats:
    """Per-user aggregate over the conversation log."""
    distinct_session_count: int = 0
    total_turn_count: int = 0


@dataclass
class ActiveConversation:
    """
    Process-local working set for one (user_id, session_id).

    Never persisted. Rebuildable from the ConversationStore at any time.
    """
    user_id: str
    session_id: str
    created_at: datetime
    expires_at: datetime
    history: List[ChatMessage] = field(default_factory=list)
    memory: Dict[str, Any] = field(default_factory=dict)
    max_messages: int = 20

    @property
    def key(self) -> tuple:
        return (self.user_id, self.session_id)

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def add_message(self, role: str, text: str) -> None:
        """Add a message, maintaining max size."""
        self.history.append(ChatMessage(role=role, text=text))

        # Trim oldest if exceeded
        if len(self.history) > self.max_messages:
            self.history = self.history[-self.max_messages:]

    def replace_history(self, messages: List[ChatMessage]) -> None:
        self.history = list(messages)[-self.max_messages:]

    def is_empty(self) -> bool:
        """Check if the working set has any messages."""
        return len(self.history) == 0
