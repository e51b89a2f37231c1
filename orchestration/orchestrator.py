import asyncio
import logging
import weakref
from datetime import datetime, timezone, tzinfo
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Union

from agents.intent_router import IntentRouter
from agents.prompts import PromptBook
from llm.base import GenerationClient
from memory.backends.base import PersistenceError
from memory.session_cache import SessionCache
from memory.session_key import derive_session_key
from memory.store import ConversationStore
from memory.types import ActiveConversation, ChatMessage, ConversationStats, ConversationTurn, MessageType
from orchestration.commands import CommandDispatcher
from orchestration.context import load_history
from orchestration.state import PipelineStage, ReplyResult
from orchestration.strategies import FallbackChain, GenerationRequest, plan_strategies

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ConversationOrchestrator:
    """
    The Engine.

    Per message:
    1. Commands short-circuit everything (nothing is persisted)
    2. User half of the turn is persisted (best effort)
    3. Bounded recent history is loaded (best effort)
    4. Intent router picks plain chat or tools
    5. Fallback chain generates a reply (always returns text)
    6. Assistant half and the memory snapshot are persisted (best effort)

    Persistence is advisory: a failing or missing backend never blocks a reply.
    """

    def __init__(
        self,
        store: ConversationStore,
        generator: GenerationClient,
        prompts: PromptBook,
        router: Optional[IntentRouter] = None,
        cache: Optional[SessionCache] = None,
        history_limit: int = 10,
        summary_history_limit: int = 20,
        max_iterations: int = 3,
        session_timezone: Union[tzinfo, str] = timezone.utc,
        serialize_sessions: bool = True,
        clock: Callable[[], datetime] = _utcnow,
    ):
        """
        Initialize the orchestrator.

        Args:
            store: Conversation store (may have no backend)
            generator: Generation capability
            prompts: System prompts and fixed replies
            router: Intent router (default keyword tables)
            cache: Process-local handle cache
            history_limit: Turns of persisted history used as context
            summary_history_limit: Turns read by /summary
            max_iterations: Bound on tool-loop model rounds
            session_timezone: Reference timezone for session keys
            serialize_sessions: Hold a per-session lock for the whole pipeline
            clock: Source of the current time
        """
        self._store = store
        self._generator = generator
        self._prompts = prompts
        self._router = router if router is not None else IntentRouter()
        self._clock = clock
        self._cache = cache if cache is not None else SessionCache(clock=clock)
        self._history_limit = history_limit
        self._max_iterations = max_iterations
        self._session_timezone = session_timezone
        self._serialize_sessions = serialize_sessions

        self._commands = CommandDispatcher(
            cache=self._cache,
            store=store,
            generator=generator,
            prompts=prompts,
            summary_limit=summary_history_limit,
        )
        self._chain = FallbackChain(generator, apology=prompts.apology)
        self._locks: "weakref.WeakValueDictionary[Tuple[str, str], asyncio.Lock]" = weakref.WeakValueDictionary()

    @property
    def cache(self) -> SessionCache:
        return self._cache

    @property
    def store(self) -> ConversationStore:
        return self._store

    def session_key(self, user_id: str, at: Optional[datetime] = None) -> str:
        return derive_session_key(user_id, at or self._clock(), self._session_timezone)

    def _session_lock(self, user_id: str, session_id: str) -> asyncio.Lock:
        if not self._serialize_sessions:
            # Uncontended lock: overlapping calls for a session may interleave
            return asyncio.Lock()
        key = (user_id, session_id)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    async def process_message(self, user_id: str, message: str, session_id: Optional[str] = None) -> str:
        """
        Produce the reply text for one message. Never raises.
        """
        result = await self.process(user_id, message, session_id)
        return result.text

    async def process(self, user_id: str, message: str, session_id: Optional[str] = None) -> ReplyResult:
        """
        Run the full pipeline and report what happened.
        """
        session_id = session_id or self.session_key(user_id)
        result = ReplyResult(user_id=user_id, session_id=session_id, text="")
        result.advance(PipelineStage.RECEIVED)

        try:
            # Step 1: Commands short-circuit
            result.advance(PipelineStage.COMMAND_CHECK)
            command_reply = await self._commands.dispatch(user_id, message, session_id)
            if command_reply is not None:
                result.command = self._commands.match(message)
                result.text = command_reply
                result.advance(PipelineStage.COMMAND_HANDLED)
                result.advance(PipelineStage.REPLIED)
                return result

            async with self._session_lock(user_id, session_id):
                await self._run_pipeline(result, message)

        except Exception as e:
            logger.error(f"Pipeline failed for user {user_id}: {e}", exc_info=True)
            result.text = self._prompts.apology

        if not result.text:
            result.text = self._prompts.apology
        result.advance(PipelineStage.REPLIED)
        return result

    async def _run_pipeline(self, result: ReplyResult, message: str) -> None:
        user_id, session_id = result.user_id, result.session_id
        handle = await self._get_or_create_handle(user_id, session_id)

        # Step 2: User half (safe write)
        await self._safe_persist(
            result,
            self._store.append_turn(ConversationTurn(
                user_id=user_id,
                session_id=session_id,
                message=message,
                message_type=MessageType.USER,
            )),
            "User turn write failed",
        )

        # Step 3: History (safe read)
        result.advance(PipelineStage.HISTORY_LOAD)
        loaded = await load_history(self._store, handle, user_id, session_id, self._history_limit)
        if loaded.warning:
            result.persistence_warnings.append(loaded.warning)
        history = list(loaded.messages)
        if loaded.source == "store" and history and history[-1] == ChatMessage(role="user", text=message):
            # The row just written; the message is passed separately
            history.pop()

        # Step 4: Route
        result.advance(PipelineStage.INTENT_CLASSIFY)
        decision = self._router.route(message)
        result.routing = decision.to_metadata()
        logger.info(f"Routing for {user_id}: {decision.reason}")

        # Step 5: Generate
        result.advance(PipelineStage.GENERATE)
        request = GenerationRequest(
            user_text=message,
            history=history,
            capabilities=decision.capabilities,
            max_iterations=self._max_iterations,
        )
        text, attempts = await self._chain.run(plan_strategies(decision, self._prompts), request)
        result.text = text
        result.attempts = attempts

        # Step 6: Assistant half + snapshot (safe writes)
        result.advance(PipelineStage.PERSIST)
        await self._safe_persist(
            result,
            self._store.append_turn(ConversationTurn(
                user_id=user_id,
                session_id=session_id,
                message=message,
                response=text,
                message_type=MessageType.ASSISTANT,
            )),
            "Assistant turn write failed",
        )

        handle.add_message("user", message)
        handle.add_message("assistant", text)
        handle.memory = {
            "messages": [m.to_dict() for m in handle.history[-self._history_limit:]],
            "capabilities": sorted(c.value for c in decision.capabilities),
            "turn_count": int(handle.memory.get("turn_count", 0)) + 1,
        }
        await self._safe_persist(
            result,
            self._store.upsert_memory(user_id, session_id, handle.memory),
            "Memory snapshot write failed",
        )

    async def _safe_persist(self, result: ReplyResult, write, error_msg: str) -> None:
        """Await a store write; PersistenceError is logged and recorded."""
        try:
            await write
        except PersistenceError as e:
            logger.warning(f"{error_msg}: {e}")
            result.persistence_warnings.append(f"{error_msg}: {e}")

    async def _get_or_create_handle(self, user_id: str, session_id: str) -> ActiveConversation:
        handle = self._cache.get(user_id, session_id)
        if handle is not None:
            return handle

        # Yesterday's session keys are never read again
        swept = self._cache.sweep()
        if swept:
            logger.debug(f"Swept {swept} expired conversations")

        handle = self._cache.create(user_id, session_id)
        try:
            snapshot = await self._store.read_memory(user_id, session_id)
        except PersistenceError as e:
            logger.warning(f"Memory snapshot read failed for {user_id}/{session_id}: {e}")
            return handle

        if snapshot:
            handle.replace_history([ChatMessage.from_dict(m) for m in snapshot.get("messages", [])])
            handle.memory = dict(snapshot)
            logger.debug(f"Hydrated {user_id}/{session_id} with {len(handle.history)} messages")
        return handle

    async def handle_batch(self, events: Iterable[Any]) -> List[str]:
        """
        Process one delivery batch concurrently.

        Each event exposes user_id, text, message_type and delivery_timestamp.
        Replies come back in input order, one per event.
        """
        events = list(events)

        async def handle(event) -> str:
            if getattr(event, "message_type", "text") != "text":
                return self._prompts.unsupported_content
            session_id = self.session_key(event.user_id, getattr(event, "delivery_timestamp", None))
            return await self.process_message(event.user_id, event.text, session_id)

        return list(await asyncio.gather(*(handle(event) for event in events)))

    async def stats(self, user_id: str) -> ConversationStats:
        """Per-user aggregate; zero counts when unavailable."""
        try:
            return await self._store.aggregate_stats(user_id)
        except PersistenceError as e:
            logger.warning(f"Stats unavailable for {user_id}: {e}")
            return ConversationStats()

    def describe(self) -> Dict[str, Any]:
        return {
            "backend": self._store.backend_name,
            "active_sessions": len(self._cache),
            "commands": self._commands.commands,
        }
