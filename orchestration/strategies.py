"""
Generation Strategies

The fallback chain is an ordered list of strategies tried until one
returns text. The last resort is a fixed apology, so the chain always
produces a reply.

Order:
    tool-augmented (tools matched) | plain chat (no tools)
        → minimal chat (generic prompt, no history)
            → apology
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import FrozenSet, List, Sequence, Tuple

from agents.intent_router import Capability, RoutingDecision
from agents.prompts import PromptBook
from llm.base import GenerationClient
from memory.types import ChatMessage
from orchestration.state import StrategyAttempt


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationRequest:
    """Everything a strategy may use to produce a reply."""
    user_text: str
    history: List[ChatMessage] = field(default_factory=list)
    capabilities: FrozenSet[Capability] = frozenset()
    max_iterations: int = 3


class GenerationStrategy(ABC):
    name: str = "abstract"

    def __init__(self, prompts: PromptBook):
        self._prompts = prompts

    @abstractmethod
    async def run(self, client: GenerationClient, request: GenerationRequest) -> str:
        pass


class ToolAugmentedStrategy(GenerationStrategy):
    """Agent prompt + history + the matched capabilities as tools."""
    name = "tools"

    async def run(self, client: GenerationClient, request: GenerationRequest) -> str:
        return await client.generate_with_tools(
            self._prompts.agent_system,
            request.history,
            request.user_text,
            request.capabilities,
            request.max_iterations,
        )


class PlainChatStrategy(GenerationStrategy):
    """Chat prompt + history."""
    name = "chat"

    async def run(self, client: GenerationClient, request: GenerationRequest) -> str:
        return await client.generate(self._prompts.chat_system, request.history, request.user_text)


class MinimalChatStrategy(GenerationStrategy):
    """Generic prompt, no history. Last model attempt."""
    name = "fallback"

    async def run(self, client: GenerationClient, request: GenerationRequest) -> str:
        return await client.generate(self._prompts.fallback_system, [], request.user_text)


def plan_strategies(decision: RoutingDecision, prompts: PromptBook) -> List[GenerationStrategy]:
    """Declare the priority list for one routing decision."""
    primary = ToolAugmentedStrategy(prompts) if decision.use_tools else PlainChatStrategy(prompts)
    return [primary, MinimalChatStrategy(prompts)]


class FallbackChain:
    """
    Runs strategies in order; never raises.
    """

    def __init__(self, client: GenerationClient, apology: str):
        self._client = client
        self._apology = apology

    async def run(
        self,
        strategies: Sequence[GenerationStrategy],
        request: GenerationRequest,
    ) -> Tuple[str, List[StrategyAttempt]]:
        """
        Returns:
            (reply text, attempts in order)
        """
        attempts: List[StrategyAttempt] = []

        for strategy in strategies:
            start_time = time.time()
            try:
                text = await strategy.run(self._client, request)
            except Exception as e:
                # Any failure moves on to the next strategy
                duration = (time.time() - start_time) * 1000
                logger.warning(f"Strategy '{strategy.name}' failed: {e}")
                attempts.append(StrategyAttempt(
                    strategy=strategy.name, succeeded=False, error=str(e), duration_ms=duration,
                ))
                continue

            duration = (time.time() - start_time) * 1000
            if text and text.strip():
                attempts.append(StrategyAttempt(strategy=strategy.name, succeeded=True, duration_ms=duration))
                return text, attempts

            logger.warning(f"Strategy '{strategy.name}' returned empty text")
            attempts.append(StrategyAttempt(
                strategy=strategy.name, succeeded=False, error="empty response", duration_ms=duration,
            ))

        logger.error("All generation strategies failed; replying with apology")
        return self._apology, attempts
