import pytest

from app.core.config import Settings
from memory.backends.base import PersistenceError
from memory.backends.postgrest_backend import PostgrestBackend
from memory.backends.sql_backend import SqlBackend
from memory.store import ConversationStore, build_backend
from memory.types import ConversationStats, ConversationTurn
from fakes import BrokenBackend


@pytest.mark.asyncio
async def test_unconfigured_store_is_empty_not_failing(empty_store):
    """Test that a store without a backend degrades to no-ops."""
    await empty_store.open()
    await empty_store.append_turn(ConversationTurn(user_id="U1", session_id="S1", message="hi"))
    await empty_store.upsert_memory("U1", "S1", {"a": 1})
    await empty_store.delete_memory("U1", "S1")

    assert await empty_store.read_history("U1", "S1", 10) == []
    assert await empty_store.read_memory("U1", "S1") is None
    assert await empty_store.aggregate_stats("U1") == ConversationStats(0, 0)
    assert empty_store.backend_name == "none"


@pytest.mark.asyncio
async def test_close_is_idempotent(empty_store):
    await empty_store.close()
    await empty_store.close()


@pytest.mark.asyncio
async def test_close_releases_backend_once():
    backend = BrokenBackend()
    store = ConversationStore(backend)
    await store.close()
    await store.close()
    assert backend.closed == 1
    assert not store.is_configured


@pytest.mark.asyncio
async def test_backend_failures_are_persistence_errors():
    """Test that arbitrary backend exceptions surface as PersistenceError."""
    store = ConversationStore(BrokenBackend())
    await store.open()

    with pytest.raises(PersistenceError):
        await store.append_turn(ConversationTurn(user_id="U1", session_id="S1", message="hi"))
    with pytest.raises(PersistenceError):
        await store.read_history("U1", "S1", 10)
    with pytest.raises(PersistenceError):
        await store.aggregate_stats("U1")


@pytest.mark.asyncio
async def test_open_failure_drops_backend():
    """Test that a backend that cannot connect leaves the store in limited mode."""
    store = ConversationStore(BrokenBackend(fail_open=True))
    await store.open()

    assert not store.is_configured
    assert store.backend_name == "none"
    assert await store.read_history("U1", "S1", 10) == []


@pytest.mark.asyncio
async def test_sql_store_round_trip(sql_store):
    await sql_store.append_turn(ConversationTurn(user_id="U1", session_id="S1", message="hi"))
    history = await sql_store.read_history("U1", "S1", 10)
    assert [t.message for t in history] == ["hi"]
    assert sql_store.backend_name == "sql"


def test_build_backend_selection():
    """Test that backend selection happens from configuration alone."""
    assert build_backend(Settings(database_backend="none")) is None
    assert build_backend(Settings(database_backend="auto", database_url="", postgrest_url="")) is None

    sql = build_backend(Settings(database_backend="auto", database_url="sqlite+aiosqlite:///x.db"))
    assert isinstance(sql, SqlBackend)

    rest = build_backend(Settings(
        database_backend="auto",
        database_url="sqlite+aiosqlite:///x.db",
        postgrest_url="https://example.supabase.co",
        postgrest_service_key="key",
    ))
    assert isinstance(rest, PostgrestBackend)
