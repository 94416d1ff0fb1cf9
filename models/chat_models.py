"""
Data models for chat-turn processing.
Contains the per-turn prompt state, stage results and the turn trace.
"""
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from models.api_models import Message


@dataclass(frozen=True)
class EnrichedPrompt:
    """
    Prompt state for a single turn.
    Built once after enrichment and never modified afterwards.
    """
    base_prompt: str
    history_window: tuple[Message, ...]
    user_turn: str
    memory_used: bool = False
    memory_context_length: int = 0

    def __post_init__(self):
        if self.memory_context_length < 0:
            raise ValueError("memory_context_length must be >= 0")


class EnrichmentResult(BaseModel):
    """Memory service answer; also used to validate raw service payloads."""
    enriched_prompt: str
    context_used: bool
    context_length: int = Field(0, ge=0)


@dataclass(frozen=True)
class MemoryOptions:
    """Retrieval policy passed to the memory service."""
    enabled: bool = True
    context_window_size: int = 3
    smart_filter: bool = True
    debug: bool = False


@dataclass(frozen=True)
class SamplingOptions:
    """Sampling parameters forwarded to the generation backend."""
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None


@dataclass(frozen=True)
class GenerationResult:
    """Normalized output of a generation call."""
    model: str
    response: str


class TurnStage(Enum):
    """Stages a turn moves through."""
    START = "start"
    VALIDATE = "validate"
    ASSEMBLE_CONTEXT = "assemble_context"
    ENRICH = "enrich"
    SKIP_ENRICH = "skip_enrich"
    GENERATE = "generate"
    PERSIST = "persist"
    COMPLETE = "complete"
    FAILED = "failed"


@dataclass
class TurnTrace:
    """Wall-clock elapsed time from turn start at every stage transition."""
    started_at: float = field(default_factory=time.perf_counter)
    transitions: list[tuple[TurnStage, float]] = field(default_factory=list)

    def elapsed_ms(self) -> int:
        return int((time.perf_counter() - self.started_at) * 1000)

    def mark(self, stage: TurnStage) -> int:
        """Record a transition into ``stage`` and return the elapsed milliseconds."""
        elapsed = self.elapsed_ms()
        self.transitions.append((stage, elapsed))
        return elapsed

    @property
    def stages(self) -> list[TurnStage]:
        return [stage for stage, _ in self.transitions]

    def summary(self) -> str:
        return " -> ".join(f"{stage.value}@{ms}ms" for stage, ms in self.transitions)
