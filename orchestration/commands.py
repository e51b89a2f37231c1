"""
Command Dispatcher

Recognizes the "/" directive language and answers it without the normal
routing pipeline. A command turn is never written to the conversation log.

Directives (case-insensitive, whole message):
    /clear    drop the working memory of the current session
    /summary  summarize the session's persisted history
    /help     usage text
    /tools    list available tools

Anything else, including unknown "/xyz" text, is not a command.
"""

import logging
from typing import Awaitable, Callable, Dict, Optional

from agents.prompts import PromptBook
from llm.base import GenerationClient, GenerationError
from memory.backends.base import PersistenceError
from memory.session_cache import SessionCache
from memory.store import ConversationStore
from orchestration.context import format_transcript, load_history


logger = logging.getLogger(__name__)

DIRECTIVE_MARKER = "/"


class CommandDispatcher:
    """
    Maps directives to handlers. Handlers return reply text.
    """

    def __init__(
        self,
        cache: SessionCache,
        store: ConversationStore,
        generator: GenerationClient,
        prompts: PromptBook,
        summary_limit: int = 20,
    ):
        self._cache = cache
        self._store = store
        self._generator = generator
        self._prompts = prompts
        self._summary_limit = summary_limit

        self._handlers: Dict[str, Callable[[str, str], Awaitable[str]]] = {
            "/clear": self._clear,
            "/summary": self._summary,
            "/help": self._help,
            "/tools": self._tools,
        }

    @property
    def commands(self):
        return sorted(self._handlers)

    def match(self, message: str) -> Optional[str]:
        """
        Returns:
            The normalized directive, or None if the message is not a command
        """
        # The marker must be the first character; trailing whitespace is ignored
        text = (message or "").rstrip()
        if not text.startswith(DIRECTIVE_MARKER):
            return None
        directive = text.lower()
        return directive if directive in self._handlers else None

    async def dispatch(self, user_id: str, message: str, session_id: str) -> Optional[str]:
        """
        Answer a directive.

        Returns:
            Reply text, or None when the message is not a command
        """
        directive = self.match(message)
        if directive is None:
            return None
        logger.info(f"Command {directive} from user {user_id}")
        return await self._handlers[directive](user_id, session_id)

    async def _clear(self, user_id: str, session_id: str) -> str:
        # The conversation log is kept; only working memory goes
        self._cache.evict(user_id, session_id)
        try:
            await self._store.delete_memory(user_id, session_id)
        except PersistenceError as e:
            logger.warning(f"Memory snapshot delete failed for {user_id}/{session_id}: {e}")
        return self._prompts.cleared

    async def _summary(self, user_id: str, session_id: str) -> str:
        loaded = await load_history(
            self._store,
            self._cache.get(user_id, session_id),
            user_id,
            session_id,
            self._summary_limit,
        )
        if not loaded.messages:
            return self._prompts.summary_empty

        prompt = self._prompts.summary_prompt(format_transcript(loaded.messages))
        try:
            return await self._generator.generate(self._prompts.summary_system, [], prompt)
        except GenerationError as e:
            logger.warning(f"Summary generation failed for {user_id}: {e}")
            return self._prompts.summary_failed

    async def _help(self, user_id: str, session_id: str) -> str:
        return self._prompts.help_text

    async def _tools(self, user_id: str, session_id: str) -> str:
        return self._prompts.tools_text
