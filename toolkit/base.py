"""
Tools

A tool answers one kind of factual question (weather, calories, BMI) for
the agent loop in llm/langchain_adapter.py, which is the only caller.
Each tool is filed under the Capability that unlocks it.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field

from agents.intent_router import Capability


class ToolResult(BaseModel):
    """What a tool hands back; the adapter sends it to the model as JSON."""

    output: Dict[str, Any] = Field(default_factory=dict)
    success: bool = True
    error: Optional[str] = Field(
        default=None,
        description="Shown to the model instead of output when success is False",
    )

    @classmethod
    def ok(cls, output: Dict[str, Any]) -> "ToolResult":
        return cls(output=output, success=True)

    @classmethod
    def fail(cls, error: str) -> "ToolResult":
        return cls(output={}, success=False, error=error)


class Tool(ABC):
    """
    A synchronous, side-effect-free lookup.

    Bad input and upstream outages come back as ToolResult.fail so the model
    can explain the problem to the user; run() should not raise.
    """

    capability: Capability

    @property
    @abstractmethod
    def name(self) -> str:
        """Function name the model calls."""

    @property
    @abstractmethod
    def description(self) -> str:
        """Tells the model when to call this tool."""

    @property
    def input_schema(self) -> Dict[str, Any]:
        """JSON Schema of the arguments; tools without arguments keep the empty object."""
        return {"type": "object", "properties": {}}

    @abstractmethod
    def run(self, input: Dict[str, Any]) -> ToolResult:
        """Answer one call with the model-supplied arguments."""

    def to_openai_function(self) -> Dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.input_schema,
            },
        }
