"""Test doubles shared across test modules."""

from datetime import datetime, timedelta
from typing import List

from llm.base import GenerationClient, GenerationError
from memory.backends.base import PersistenceBackend


class FakeClock:
    """Controllable time source."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakeGenerator(GenerationClient):
    """
    Records every call; fails on demand.
    """

    def __init__(
        self,
        reply: str = "plain reply",
        tool_reply: str = "tool reply",
        fail_plain: bool = False,
        fail_tools: bool = False,
    ):
        self.reply = reply
        self.tool_reply = tool_reply
        self.fail_plain = fail_plain
        self.fail_tools = fail_tools
        self.plain_calls: List[dict] = []
        self.tool_calls: List[dict] = []

    async def generate(self, system_prompt, history, user_text) -> str:
        self.plain_calls.append({
            "system_prompt": system_prompt,
            "history": list(history),
            "user_text": user_text,
        })
        if self.fail_plain:
            raise GenerationError("plain path down")
        return self.reply

    async def generate_with_tools(self, system_prompt, history, user_text, capabilities, max_iterations) -> str:
        self.tool_calls.append({
            "system_prompt": system_prompt,
            "history": list(history),
            "user_text": user_text,
            "capabilities": frozenset(capabilities),
            "max_iterations": max_iterations,
        })
        if self.fail_tools:
            raise GenerationError("tool path down")
        return self.tool_reply


class BrokenBackend(PersistenceBackend):
    """Every operation raises something that is not a PersistenceError."""
    name = "broken"

    def __init__(self, fail_open: bool = False):
        self.fail_open = fail_open
        self.closed = 0

    async def open(self):
        if self.fail_open:
            raise ConnectionError("database unreachable")

    async def append_turn(self, turn):
        raise RuntimeError("disk full")

    async def read_history(self, user_id, session_id, limit):
        raise RuntimeError("disk full")

    async def upsert_memory(self, user_id, session_id, blob):
        raise RuntimeError("disk full")

    async def read_memory(self, user_id, session_id):
        raise RuntimeError("disk full")

    async def delete_memory(self, user_id, session_id):
        raise RuntimeError("disk full")

    async def aggregate_stats(self, user_id):
        raise RuntimeError("disk full")

    async def close(self):
        self.closed += 1
