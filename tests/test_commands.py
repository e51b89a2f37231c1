import pytest

from memory.session_cache import SessionCache
from memory.types import ConversationTurn, MessageType
from orchestration.commands import CommandDispatcher


@pytest.fixture
def dispatcher_factory(generator, prompts, clock):
    def build(store):
        cache = SessionCache(clock=clock)
        return CommandDispatcher(cache=cache, store=store, generator=generator, prompts=prompts), cache
    return build


@pytest.mark.asyncio
async def test_match_is_case_insensitive_exact(dispatcher_factory, empty_store):
    dispatcher, _ = dispatcher_factory(empty_store)
    assert dispatcher.match("/HELP") == "/help"
    assert dispatcher.match("/tools  \n") == "/tools"
    assert dispatcher.match("/help me") is None
    assert dispatcher.match("help") is None


@pytest.mark.asyncio
async def test_marker_must_be_first_character(dispatcher_factory, empty_store):
    dispatcher, _ = dispatcher_factory(empty_store)
    assert dispatcher.match(" /help") is None
    assert await dispatcher.dispatch("U1", "\t/clear", "S1") is None


@pytest.mark.asyncio
async def test_unknown_directive_is_not_a_command(dispatcher_factory, empty_store):
    dispatcher, _ = dispatcher_factory(empty_store)
    assert await dispatcher.dispatch("U1", "/xyz", "S1") is None
    assert await dispatcher.dispatch("U1", "hello", "S1") is None


@pytest.mark.asyncio
async def test_static_commands(dispatcher_factory, empty_store, prompts):
    dispatcher, _ = dispatcher_factory(empty_store)
    assert await dispatcher.dispatch("U1", "/help", "S1") == prompts.help_text
    assert await dispatcher.dispatch("U1", "/tools", "S1") == prompts.tools_text


@pytest.mark.asyncio
async def test_clear_evicts_handle_and_snapshot_but_keeps_log(dispatcher_factory, sql_store, prompts):
    """Test that /clear drops working memory only."""
    dispatcher, cache = dispatcher_factory(sql_store)
    cache.create("U1", "S1")
    await sql_store.append_turn(ConversationTurn(user_id="U1", session_id="S1", message="hi"))
    await sql_store.upsert_memory("U1", "S1", {"turn_count": 1})

    reply = await dispatcher.dispatch("U1", "/clear", "S1")

    assert reply == prompts.cleared
    assert cache.get("U1", "S1") is None
    assert await sql_store.read_memory("U1", "S1") is None
    assert len(await sql_store.read_history("U1", "S1", 10)) == 1


@pytest.mark.asyncio
async def test_clear_without_backend(dispatcher_factory, empty_store, prompts):
    dispatcher, _ = dispatcher_factory(empty_store)
    assert await dispatcher.dispatch("U1", "/clear", "S1") == prompts.cleared


@pytest.mark.asyncio
async def test_summary_with_no_history(dispatcher_factory, sql_store, prompts, generator):
    dispatcher, _ = dispatcher_factory(sql_store)
    assert await dispatcher.dispatch("U1", "/summary", "S1") == prompts.summary_empty
    assert generator.plain_calls == []


@pytest.mark.asyncio
async def test_summary_condenses_history(dispatcher_factory, sql_store, prompts, generator):
    dispatcher, _ = dispatcher_factory(sql_store)
    await sql_store.append_turn(ConversationTurn(user_id="U1", session_id="S1", message="台北天氣如何"))
    await sql_store.append_turn(ConversationTurn(
        user_id="U1", session_id="S1", message="台北天氣如何", response="晴天", message_type=MessageType.ASSISTANT,
    ))

    reply = await dispatcher.dispatch("U1", "/summary", "S1")

    assert reply == generator.reply
    call = generator.plain_calls[0]
    assert call["system_prompt"] == prompts.summary_system
    assert call["history"] == []
    assert "用戶: 台北天氣如何" in call["user_text"]
    assert "助手: 晴天" in call["user_text"]


@pytest.mark.asyncio
async def test_summary_generation_failure(dispatcher_factory, sql_store, prompts, generator):
    dispatcher, _ = dispatcher_factory(sql_store)
    await sql_store.append_turn(ConversationTurn(user_id="U1", session_id="S1", message="hi"))
    generator.fail_plain = True

    assert await dispatcher.dispatch("U1", "/summary", "S1") == prompts.summary_failed


@pytest.mark.asyncio
async def test_summary_uses_cached_history_without_backend(dispatcher_factory, empty_store, generator):
    dispatcher, cache = dispatcher_factory(empty_store)
    handle = cache.create("U1", "S1")
    handle.add_message("user", "hello")
    handle.add_message("assistant", "hi there")

    await dispatcher.dispatch("U1", "/summary", "S1")
    assert "助手: hi there" in generator.plain_calls[0]["user_text"]
