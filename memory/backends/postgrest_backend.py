"""
PostgREST Persistence Backend

Managed-Postgres storage over a Supabase-style REST interface
(`<url>/rest/v1/<table>`).

DESIGN RULES:
- One shared httpx.AsyncClient per process
- Filters use PostgREST operators (eq., order=, limit=)
- An empty result set is "not found", never an error
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx

from memory.backends.base import PersistenceBackend, PersistenceError
from memory.types import ConversationStats, ConversationTurn, MessageType


logger = logging.getLogger(__name__)


class PostgrestBackend(PersistenceBackend):
    """
    httpx-backed conversation persistence against a PostgREST endpoint.
    """

    name = "postgrest"

    CONVERSATIONS = "conversations"
    MEMORY = "conversation_memory"

    STATS_PAGE_SIZE = 1000

    def __init__(
        self,
        base_url: str,
        service_key: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            base_url: Project URL (the `/rest/v1` suffix is added here)
            service_key: Service-role key, sent as apikey and bearer token
            timeout: Per-request timeout in seconds
            transport: Custom transport (tests use httpx.MockTransport)
        """
        self._rest_url = base_url.rstrip("/") + "/rest/v1"
        self._service_key = service_key
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def open(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._rest_url,
                headers={
                    "apikey": self._service_key,
                    "Authorization": f"Bearer {self._service_key}",
                    "Content-Type": "application/json",
                },
                timeout=self._timeout,
                transport=self._transport,
            )

    async def _send(
        self,
        method: str,
        table: str,
        *,
        params: Optional[Dict[str, str]] = None,
        json: Any = None,
        prefer: Optional[str] = None,
    ) -> httpx.Response:
        if self._client is None:
            raise PersistenceError("PostgREST backend is not open")

        headers = {"Prefer": prefer} if prefer else None
        try:
            resp = await self._client.request(method, f"/{table}", params=params, json=json, headers=headers)
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise PersistenceError(
                f"{method} {table} failed: {exc.response.status_code} {exc.response.text}"
            ) from exc
        except httpx.HTTPError as exc:
            raise PersistenceError(f"{method} {table} failed: {exc}") from exc
        return resp

    @staticmethod
    def _decode(resp: httpx.Response, method: str, table: str) -> Any:
        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as exc:
            raise PersistenceError(f"{method} {table} returned malformed JSON") from exc

    async def _request(self, method: str, table: str, **kwargs) -> Any:
        resp = await self._send(method, table, **kwargs)
        return self._decode(resp, method, table)

    @staticmethod
    def _exact_count(resp: httpx.Response) -> Optional[int]:
        """Total from a `Content-Range: 0-999/1234` header, if the server sent one."""
        content_range = resp.headers.get("Content-Range", "")
        _, _, total = content_range.partition("/")
        return int(total) if total.isdigit() else None

    @staticmethod
    def _session_filter(user_id: str, session_id: str) -> Dict[str, str]:
        return {"user_id": f"eq.{user_id}", "session_id": f"eq.{session_id}"}

    async def append_turn(self, turn: ConversationTurn) -> None:
        # timestamp is filled by the column default (now())
        await self._request(
            "POST",
            self.CONVERSATIONS,
            json=[{
                "user_id": turn.user_id,
                "message": turn.message,
                "response": turn.response,
                "session_id": turn.session_id,
                "message_type": turn.message_type.value,
            }],
            prefer="return=minimal",
        )

    async def read_history(self, user_id: str, session_id: str, limit: int) -> List[ConversationTurn]:
        if limit <= 0:
            return []
        params = {
            "select": "*",
            **self._session_filter(user_id, session_id),
            "order": "timestamp.desc,id.desc",
            "limit": str(limit),
        }
        rows = await self._request("GET", self.CONVERSATIONS, params=params) or []

        turns = []
        for row in rows:
            try:
                message_type = MessageType(row.get("message_type", "user"))
            except ValueError:
                message_type = MessageType.USER
            turns.append(ConversationTurn(
                id=row.get("id"),
                user_id=row.get("user_id", user_id),
                session_id=row.get("session_id", session_id),
                message=row.get("message", ""),
                response=row.get("response"),
                message_type=message_type,
                timestamp=row.get("timestamp"),
            ))
        turns.reverse()
        return turns

    async def upsert_memory(self, user_id: str, session_id: str, blob: Dict[str, Any]) -> None:
        await self._request(
            "POST",
            self.MEMORY,
            params={"on_conflict": "user_id,session_id"},
            json=[{
                "user_id": user_id,
                "session_id": session_id,
                "memory_data": blob,
                "updated_at": datetime.now(timezone.utc).isoformat(),
            }],
            prefer="resolution=merge-duplicates,return=minimal",
        )

    async def read_memory(self, user_id: str, session_id: str) -> Optional[Dict[str, Any]]:
        params = {
            "select": "memory_data",
            **self._session_filter(user_id, session_id),
            "limit": "1",
        }
        rows = await self._request("GET", self.MEMORY, params=params) or []
        if not rows:
            return None
        return rows[0].get("memory_data")

    async def delete_memory(self, user_id: str, session_id: str) -> None:
        await self._request(
            "DELETE",
            self.MEMORY,
            params=self._session_filter(user_id, session_id),
            prefer="return=minimal",
        )

    async def aggregate_stats(self, user_id: str) -> ConversationStats:
        """
        Count turns and distinct sessions for one user.

        The server caps rows per response (max-rows), so session ids are read
        page by page; the turn total comes from the exact count when available.
        """
        sessions = set()
        fetched = 0
        total: Optional[int] = None
        while True:
            params = {
                "select": "session_id",
                "user_id": f"eq.{user_id}",
                "order": "id.asc",
                "offset": str(fetched),
                "limit": str(self.STATS_PAGE_SIZE),
            }
            resp = await self._send("GET", self.CONVERSATIONS, params=params, prefer="count=exact")
            rows = self._decode(resp, "GET", self.CONVERSATIONS) or []
            if total is None:
                total = self._exact_count(resp)

            sessions.update(row.get("session_id") for row in rows)
            fetched += len(rows)
            if not rows:
                break
            if total is not None and fetched >= total:
                break
            if total is None and len(rows) < self.STATS_PAGE_SIZE:
                break

        return ConversationStats(
            distinct_session_count=len(sessions),
            total_turn_count=total if total is not None else fetched,
        )

    async def close(self) -> None:
        """Close the HTTP client. Safe to call more than once."""
        if self._client is not None:
            await self._client.aclose()
            logger.info("PostgREST backend closed")
        self._client = None
