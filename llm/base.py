"""
Generation Capability Interface

The orchestrator's only view of the language model:
text + history in, text out, or GenerationError.

DESIGN RULES:
- No LangChain types cross this boundary
- Every failure (transport, quota, malformed output, runaway tool loop)
  is a GenerationError
- No built-in timeout; the caller bounds the call if it wants to
"""

from abc import ABC, abstractmethod
from typing import Iterable, List

from agents.intent_router import Capability
from memory.types import ChatMessage


class GenerationError(Exception):
    """The language model or the tool loop failed."""


class GenerationClient(ABC):
    """
    Abstract generation capability.
    """

    @abstractmethod
    async def generate(
        self,
        system_prompt: str,
        history: List[ChatMessage],
        user_text: str,
    ) -> str:
        """
        Plain chat completion.

        Raises:
            GenerationError: on any failure
        """
        pass

    @abstractmethod
    async def generate_with_tools(
        self,
        system_prompt: str,
        history: List[ChatMessage],
        user_text: str,
        capabilities: Iterable[Capability],
        max_iterations: int,
    ) -> str:
        """
        Tool-augmented completion, bounded to max_iterations model rounds.

        Raises:
            GenerationError: on any failure, including hitting the bound
        """
        pass
