import os
from datetime import datetime, timezone

import pytest
import pytest_asyncio

from agents.prompts import PromptBook, load_prompt_book
from memory.backends.sql_backend import SqlBackend
from memory.store import ConversationStore
from fakes import FakeClock, FakeGenerator

PROMPTS_PATH = os.path.join(os.path.dirname(os.path.dirname(__file__)), "prompts", "prompts.yaml")


@pytest.fixture
def prompts() -> PromptBook:
    return load_prompt_book(PROMPTS_PATH)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 5, 17, 9, 30, tzinfo=timezone.utc))


@pytest.fixture
def generator() -> FakeGenerator:
    return FakeGenerator()


@pytest_asyncio.fixture
async def sql_backend(tmp_path, clock):
    backend = SqlBackend(f"sqlite+aiosqlite:///{tmp_path / 'chat.db'}", clock=clock)
    await backend.open()
    await backend.ensure_schema()
    yield backend
    await backend.close()


@pytest_asyncio.fixture
async def sql_store(sql_backend):
    store = ConversationStore(sql_backend)
    yield store
    await store.close()


@pytest.fixture
def empty_store() -> ConversationStore:
    return ConversationStore(None)
