from typing import Any, Dict, List, Optional
from enum import Enum
from pydantic import BaseModel, Field

# Per-invocation pipeline bookkeeping. Nothing here is persisted.

class PipelineStage(str, Enum):
    RECEIVED = "received"
    COMMAND_CHECK = "command_check"
    COMMAND_HANDLED = "command_handled"
    HISTORY_LOAD = "history_load"
    INTENT_CLASSIFY = "intent_classify"
    GENERATE = "generate"
    PERSIST = "persist"
    REPLIED = "replied"

class StrategyAttempt(BaseModel):
    """
    One generation strategy tried by the fallback chain.
    """
    strategy: str
    succeeded: bool
    error: Optional[str] = None
    duration_ms: float = 0.0

class ReplyResult(BaseModel):
    """
    Outcome of one processed message.
    """
    user_id: str
    session_id: str
    text: str
    stages: List[PipelineStage] = Field(default_factory=list)
    command: Optional[str] = None
    routing: Dict[str, Any] = Field(default_factory=dict)
    attempts: List[StrategyAttempt] = Field(default_factory=list)
    persistence_warnings: List[str] = Field(default_factory=list)

    def advance(self, stage: PipelineStage) -> None:
        self.stages.append(stage)

    @property
    def strategy(self) -> Optional[str]:
        """Name of the strategy that produced the reply, if any did."""
        for attempt in self.attempts:
            if attempt.succeeded:
                return attempt.strategy
        return None
