"""
Persistence Backend Interface

Abstract interface for persisting conversation turns and memory snapshots.
Storage-agnostic - implementations can write to a SQL database, a
PostgREST endpoint, etc.

DESIGN RULES:
- Exactly one backend is active per process, chosen at startup
- "Row not found" is None / empty, never an exception
- Every I/O failure surfaces as PersistenceError
- Must be safe for concurrent use
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from memory.types import ConversationStats, ConversationTurn


class PersistenceError(Exception):
    """Any backend I/O failure."""


class PersistenceBackend(ABC):
    """
    Abstract base for conversation persistence.

    Implementations:
    - SqlBackend (SQLAlchemy async engine)
    - PostgrestBackend (Supabase-style REST)
    """

    name: str = "abstract"

    async def open(self) -> None:
        """Acquire connections. Default: nothing to do."""

    @abstractmethod
    async def append_turn(self, turn: ConversationTurn) -> None:
        """
        Append one conversation row. The backend assigns the timestamp.
        """
        pass

    @abstractmethod
    async def read_history(self, user_id: str, session_id: str, limit: int) -> List[ConversationTurn]:
        """
        Read the most recent `limit` rows of a session, oldest first.
        """
        pass

    @abstractmethod
    async def upsert_memory(self, user_id: str, session_id: str, blob: Dict[str, Any]) -> None:
        """
        Write the memory snapshot, replacing any previous one.
        """
        pass

    @abstractmethod
    async def read_memory(self, user_id: str, session_id: str) -> Optional[Dict[str, Any]]:
        """
        Read the memory snapshot, or None if there is none.
        """
        pass

    @abstractmethod
    async def delete_memory(self, user_id: str, session_id: str) -> None:
        """
        Delete the memory snapshot. Deleting an absent snapshot is not an error.
        """
        pass

    @abstractmethod
    async def aggregate_stats(self, user_id: str) -> ConversationStats:
        """
        Count distinct sessions and total rows for a user.
        """
        pass

    async def close(self) -> None:
        """Release connections. Must be idempotent."""
