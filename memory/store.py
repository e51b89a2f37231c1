"""
Conversation Store

Backend-agnostic facade used by the orchestrator.

DESIGN RULES:
- Wraps at most one PersistenceBackend for the process lifetime
- No backend configured: writes are warned no-ops, reads are empty
- Backend failures surface as PersistenceError; callers decide the policy
- close() is idempotent
"""

import logging
from typing import Any, Dict, List, Optional

from memory.backends.base import PersistenceBackend, PersistenceError
from memory.types import ConversationStats, ConversationTurn


logger = logging.getLogger(__name__)


class ConversationStore:
    """
    Optional-persistence facade over a single PersistenceBackend.
    """

    def __init__(self, backend: Optional[PersistenceBackend] = None):
        """
        Args:
            backend: The active backend, or None for limited-memory mode
        """
        self._backend = backend
        self._closed = False

    @property
    def is_configured(self) -> bool:
        return self._backend is not None and not self._closed

    @property
    def backend_name(self) -> str:
        return self._backend.name if self.is_configured else "none"

    async def open(self, provision_schema: bool = False) -> None:
        """
        Open the backend. A backend that cannot connect is dropped and the
        store continues in limited-memory mode.

        Args:
            provision_schema: Also create missing tables, where the backend can
        """
        if self._backend is None:
            logger.warning("No persistence backend configured; conversation memory is process-local only")
            return
        try:
            await self._backend.open()
            if provision_schema and hasattr(self._backend, "ensure_schema"):
                await self._backend.ensure_schema()
            logger.info(f"Persistence backend '{self._backend.name}' ready")
        except Exception as e:
            logger.error(f"Persistence backend '{self._backend.name}' failed to open: {e}")
            logger.warning("Running without database - conversation memory will be limited")
            self._backend = None

    async def _call(self, op: str, *args: Any) -> Any:
        try:
            return await getattr(self._backend, op)(*args)
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(f"{op} failed: {e}") from e

    async def append_turn(self, turn: ConversationTurn) -> None:
        if not self.is_configured:
            logger.warning(f"append_turn skipped for {turn.user_id}/{turn.session_id}: no backend")
            return
        await self._call("append_turn", turn)

    async def read_history(self, user_id: str, session_id: str, limit: int = 10) -> List[ConversationTurn]:
        if not self.is_configured:
            return []
        history = await self._call("read_history", user_id, session_id, limit)
        logger.debug(f"Loaded {len(history)} rows for user {user_id}, session {session_id}")
        return history

    async def upsert_memory(self, user_id: str, session_id: str, blob: Dict[str, Any]) -> None:
        if not self.is_configured:
            logger.warning(f"upsert_memory skipped for {user_id}/{session_id}: no backend")
            return
        await self._call("upsert_memory", user_id, session_id, blob)

    async def read_memory(self, user_id: str, session_id: str) -> Optional[Dict[str, Any]]:
        if not self.is_configured:
            return None
        return await self._call("read_memory", user_id, session_id)

    async def delete_memory(self, user_id: str, session_id: str) -> None:
        if not self.is_configured:
            logger.warning(f"delete_memory skipped for {user_id}/{session_id}: no backend")
            return
        await self._call("delete_memory", user_id, session_id)

    async def aggregate_stats(self, user_id: str) -> ConversationStats:
        if not self.is_configured:
            return ConversationStats()
        return await self._call("aggregate_stats", user_id)

    async def close(self) -> None:
        """Release backend resources. Safe on an unconfigured or closed store."""
        if self._closed:
            return
        self._closed = True
        if self._backend is not None:
            try:
                await self._backend.close()
            except Exception as e:
                logger.warning(f"Error closing persistence backend: {e}")


def build_backend(settings) -> Optional[PersistenceBackend]:
    """
    Select the backend once, from configuration.

    Args:
        settings: app.core.config.Settings

    Returns:
        The configured backend, or None when persistence is disabled
    """
    backend = settings.resolved_backend()
    if backend == "sql":
        from memory.backends.sql_backend import SqlBackend
        return SqlBackend(settings.database_url)
    if backend == "postgrest":
        from memory.backends.postgrest_backend import PostgrestBackend
        return PostgrestBackend(
            settings.postgrest_url,
            settings.postgrest_service_key,
            timeout=settings.http_timeout_seconds,
        )
    return None
