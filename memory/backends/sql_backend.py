"""
SQL Persistence Backend

Relational storage through the SQLAlchemy async engine.
Any SQLAlchemy async URL works (postgresql+asyncpg, mssql+aioodbc,
sqlite+aiosqlite, ...).

DESIGN RULES:
- SQLAlchemy Core only, no ORM entities
- History ties on timestamp are broken by the autoincrement id
- Memory upsert is UPDATE-then-INSERT in one transaction (portable)
"""

from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Callable, Dict, List, Optional

from sqlalchemy import (
    Column,
    DateTime,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    delete,
    distinct,
    func,
    insert,
    select,
    update,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from memory.backends.base import PersistenceBackend, PersistenceError
from memory.types import ConversationStats, ConversationTurn, MessageType


logger = logging.getLogger(__name__)

metadata = MetaData()

conversations = Table(
    "conversations",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", String(100), nullable=False),
    Column("message", Text, nullable=False),
    Column("response", Text, nullable=True),
    Column("session_id", String(100), nullable=False),
    Column("message_type", String(20), nullable=False, default=MessageType.USER.value),
    Column("timestamp", DateTime(timezone=True), nullable=False),
    Index("ix_conversations_user_session_ts", "user_id", "session_id", "timestamp"),
)

conversation_memory = Table(
    "conversation_memory",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", String(100), nullable=False),
    Column("session_id", String(100), nullable=False),
    Column("memory_data", Text, nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    UniqueConstraint("user_id", "session_id", name="uq_conversation_memory_user_session"),
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _message_type(value: Optional[str]) -> MessageType:
    try:
        return MessageType(value)
    except ValueError:
        return MessageType.USER


class SqlBackend(PersistenceBackend):
    """
    SQLAlchemy-backed conversation persistence.
    """

    name = "sql"

    def __init__(
        self,
        database_url: str,
        engine: Optional[AsyncEngine] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        """
        Args:
            database_url: SQLAlchemy async URL
            engine: Pre-built engine (skips engine creation in open())
            clock: Source of row timestamps
        """
        self._database_url = database_url
        self._engine = engine
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None
        self._clock = clock

    async def open(self) -> None:
        """Initialize the engine and session factory."""
        if self._engine is None:
            self._engine = create_async_engine(
                self._database_url,
                echo=False,
                pool_pre_ping=True,
                pool_recycle=3600,
            )
        self._session_factory = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def ensure_schema(self) -> None:
        """Create the tables if they do not exist yet (provisioning helper)."""
        if self._engine is None:
            await self.open()
        try:
            async with self._engine.begin() as conn:
                await conn.run_sync(metadata.create_all)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Schema creation failed: {exc}") from exc

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[AsyncSession]:
        if self._session_factory is None:
            raise PersistenceError("SQL backend is not open")
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    yield session
        except SQLAlchemyError as exc:
            raise PersistenceError(str(exc)) from exc

    async def append_turn(self, turn: ConversationTurn) -> None:
        async with self._transaction() as session:
            await session.execute(
                insert(conversations).values(
                    user_id=turn.user_id,
                    message=turn.message,
                    response=turn.response,
                    session_id=turn.session_id,
                    message_type=turn.message_type.value,
                    timestamp=self._clock(),
                )
            )

    async def read_history(self, user_id: str, session_id: str, limit: int) -> List[ConversationTurn]:
        if limit <= 0:
            return []
        stmt = (
            select(conversations)
            .where(conversations.c.user_id == user_id)
            .where(conversations.c.session_id == session_id)
            .order_by(conversations.c.timestamp.desc(), conversations.c.id.desc())
            .limit(limit)
        )
        async with self._transaction() as session:
            rows = (await session.execute(stmt)).mappings().all()

        turns = [
            ConversationTurn(
                id=row["id"],
                user_id=row["user_id"],
                session_id=row["session_id"],
                message=row["message"],
                response=row["response"],
                message_type=_message_type(row["message_type"]),
                timestamp=row["timestamp"],
            )
            for row in rows
        ]
        turns.reverse()
        return turns

    async def upsert_memory(self, user_id: str, session_id: str, blob: Dict[str, Any]) -> None:
        now = self._clock()
        data = json.dumps(blob, ensure_ascii=False)
        async with self._transaction() as session:
            result = await session.execute(
                update(conversation_memory)
                .where(conversation_memory.c.user_id == user_id)
                .where(conversation_memory.c.session_id == session_id)
                .values(memory_data=data, updated_at=now)
            )
            if result.rowcount == 0:
                await session.execute(
                    insert(conversation_memory).values(
                        user_id=user_id,
                        session_id=session_id,
                        memory_data=data,
                        created_at=now,
                        updated_at=now,
                    )
                )

    async def read_memory(self, user_id: str, session_id: str) -> Optional[Dict[str, Any]]:
        stmt = (
            select(conversation_memory.c.memory_data)
            .where(conversation_memory.c.user_id == user_id)
            .where(conversation_memory.c.session_id == session_id)
        )
        async with self._transaction() as session:
            raw = (await session.execute(stmt)).scalar_one_or_none()

        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError as exc:
            raise PersistenceError(f"Corrupt memory snapshot for {user_id}/{session_id}") from exc

    async def delete_memory(self, user_id: str, session_id: str) -> None:
        async with self._transaction() as session:
            await session.execute(
                delete(conversation_memory)
                .where(conversation_memory.c.user_id == user_id)
                .where(conversation_memory.c.session_id == session_id)
            )

    async def aggregate_stats(self, user_id: str) -> ConversationStats:
        stmt = select(
            func.count(distinct(conversations.c.session_id)),
            func.count(),
        ).where(conversations.c.user_id == user_id)
        async with self._transaction() as session:
            sessions, turns = (await session.execute(stmt)).one()
        return ConversationStats(
            distinct_session_count=int(sessions or 0),
            total_turn_count=int(turns or 0),
        )

    async def close(self) -> None:
        """Dispose the engine. Safe to call more than once."""
        if self._engine is not None:
            await self._engine.dispose()
            logger.info("SQL backend closed")
        self._engine = None
        self._session_factory = None
