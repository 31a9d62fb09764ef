"""Generation state entities for streamgen.

This module defines the lifecycle phases of a prompt's decode and the
result record produced once it ends.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Tuple


class GenerationPhase(Enum):
    """Lifecycle of a single prompt's decode."""

    START = "start"
    PRIMING = "priming"  # step 0, full prompt submitted
    DECODING = "decoding"  # steps 1..N, one token submitted
    STOPPED = "stopped"
    CACHE_RESET = "cache_reset"


class StopReason(Enum):
    """Why decoding of a prompt ended."""

    EOS = "eos"
    MAX_LENGTH = "max_length"
    ERROR = "error"
    ABORTED = "aborted"  # stream closed before a natural stop


@dataclass(frozen=True)
class GenerationResult:
    """Per-prompt output of the generation loop."""
    prompt: str
    fragments: Tuple[str, ...]
    generated_tokens: int
    elapsed_seconds: float
    stop_reason: StopReason
    prompt_tokens: int = 0
    token_ids: Tuple[int, ...] = ()
    finished_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self):
        """Validate generation result."""
        if self.generated_tokens < 0:
            raise ValueError(f"generated_tokens must be non-negative, got {self.generated_tokens}")
        if self.elapsed_seconds < 0:
            raise ValueError(f"elapsed_seconds must be non-negative, got {self.elapsed_seconds}")

    @property
    def text(self) -> str:
        """All emitted fragments joined in generation order."""
        return "".join(self.fragments)

    @property
    def tokens_per_second(self) -> float:
        """Throughput over the prompt's wall time."""
        if self.elapsed_seconds <= 0:
            return 0.0
        return self.generated_tokens / self.elapsed_seconds


@dataclass
class SessionSummary:
    """Outcome of an interactive session over a stream of prompts."""
    results: List[GenerationResult] = field(default_factory=list)
    failed_prompts: int = 0
    fatal_error: Optional[str] = None

    @property
    def completed_prompts(self) -> int:
        return len(self.results)

    @property
    def total_tokens(self) -> int:
        return sum(result.generated_tokens for result in self.results)
