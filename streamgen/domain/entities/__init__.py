"""Domain entities for streamgen.

This package contains value objects and entities that represent
the core concepts of incremental decoding.
"""

from .generation_config import SamplingConfig, PenaltyConfig
from .token_sequence import TokenSequence
from .generation_state import GenerationPhase, StopReason, GenerationResult, SessionSummary

__all__ = [
    "SamplingConfig",
    "PenaltyConfig",
    "TokenSequence",
    "GenerationPhase",
    "StopReason",
    "GenerationResult",
    "SessionSummary",
]
