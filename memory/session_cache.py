"""
Session Cache

Process-local cache of active conversations.

DESIGN RULES:
- No persistence - loss is a performance cost, never a correctness failure
- No cross-session sharing
- Eviction is a pure function of "now" vs. the recorded expiry
- Expired entries are dropped lazily on access or by an explicit sweep
"""

from typing import Callable, Dict, Optional, Tuple
from datetime import datetime, timedelta, timezone
from threading import Lock

from memory.types import ActiveConversation


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionCache:
    """
    In-memory cache of ActiveConversation handles.

    Keyed by (user_id, session_id). Each entry expires a fixed window after
    creation; with refresh_on_access=True the window slides on every hit.

    Thread-safe for concurrent access.
    """

    # Default max messages per handle
    DEFAULT_MAX_MESSAGES = 20

    # Handle lifetime
    SESSION_TIMEOUT_MINUTES = 30

    def __init__(
        self,
        ttl_minutes: int = SESSION_TIMEOUT_MINUTES,
        max_messages: int = DEFAULT_MAX_MESSAGES,
        refresh_on_access: bool = False,
        clock: Callable[[], datetime] = _utcnow,
    ):
        """
        Initialize session cache.

        Args:
            ttl_minutes: Lifetime of a handle
            max_messages: Maximum working-set messages kept per handle
            refresh_on_access: Slide the expiry on every access
            clock: Source of the current time
        """
        self._entries: Dict[Tuple[str, str], ActiveConversation] = {}
        self._ttl = timedelta(minutes=ttl_minutes)
        self._max_messages = max_messages
        self._refresh_on_access = refresh_on_access
        self._clock = clock
        self._lock = Lock()

    def get(self, user_id: str, session_id: str) -> Optional[ActiveConversation]:
        """
        Get a live handle, or None when absent or expired.
        """
        key = (user_id, session_id)
        now = self._clock()
        with self._lock:
            handle = self._entries.get(key)
            if handle is None:
                return None
            if handle.is_expired(now):
                del self._entries[key]
                return None
            if self._refresh_on_access:
                handle.expires_at = now + self._ttl
            return handle

    def create(self, user_id: str, session_id: str) -> ActiveConversation:
        """
        Create (or replace) a handle with a fresh expiry.
        """
        now = self._clock()
        handle = ActiveConversation(
            user_id=user_id,
            session_id=session_id,
            created_at=now,
            expires_at=now + self._ttl,
            max_messages=self._max_messages,
        )
        with self._lock:
            self._entries[handle.key] = handle
        return handle

    def evict(self, user_id: str, session_id: str) -> bool:
        """
        Drop a handle.

        Returns:
            True if a handle was present
        """
        with self._lock:
            return self._entries.pop((user_id, session_id), None) is not None

    def sweep(self) -> int:
        """
        Remove expired handles.

        Returns:
            Number of handles removed
        """
        now = self._clock()
        with self._lock:
            expired = [key for key, handle in self._entries.items() if handle.is_expired(now)]
            for key in expired:
                del self._entries[key]
            return len(expired)

    def __len__(self) -> int:
        """Count of live handles."""
        self.sweep()
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: Tuple[str, str]) -> bool:
        return self.get(*key) is not None
