"""
FastAPI Dependencies

All object creation happens here, not per request.

RULE: FastAPI routes call exactly one entry point, the ConversationOrchestrator
"""

from functools import lru_cache

from agents.prompts import get_prompt_book
from app.core.config import settings
from llm.langchain_adapter import LangChainGenerator
from memory.session_cache import SessionCache
from memory.store import ConversationStore, build_backend
from orchestration.orchestrator import ConversationOrchestrator
from toolkit.registry import bootstrap_tools


@lru_cache(maxsize=1)
def get_conversation_store() -> ConversationStore:
    """
    The single store for the process; the backend is selected once here.
    """
    return ConversationStore(build_backend(settings))


@lru_cache(maxsize=1)
def get_generator() -> LangChainGenerator:
    registry = bootstrap_tools(settings=settings)
    return LangChainGenerator(
        api_key=settings.openai_api_key,
        model=settings.openai_model,
        chat_temperature=settings.chat_temperature,
        agent_temperature=settings.agent_temperature,
        max_tokens=settings.max_tokens,
        registry=registry,
    )


@lru_cache(maxsize=1)
def get_orchestrator() -> ConversationOrchestrator:
    """
    Create and cache the ConversationOrchestrator singleton.

    Wired here:
    - ConversationStore: optional persistence
    - LangChainGenerator: plain and tool-augmented generation
    - SessionCache: process-local working memory
    """
    return ConversationOrchestrator(
        store=get_conversation_store(),
        generator=get_generator(),
        prompts=get_prompt_book(),
        cache=SessionCache(ttl_minutes=settings.conversation_ttl_minutes),
        history_limit=settings.history_limit,
        summary_history_limit=settings.summary_history_limit,
        max_iterations=settings.agent_max_iterations,
        session_timezone=settings.session_timezone,
        serialize_sessions=settings.serialize_sessions,
    )
