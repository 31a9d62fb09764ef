"""Generation configuration value objects for streamgen.

These immutable objects are handed to the generation loop at construction
and stay fixed for the whole session.
"""

from dataclasses import dataclass
from typing import Optional

# Temperatures below this value are treated as greedy decoding.
GREEDY_TEMPERATURE_EPSILON = 1e-7


@dataclass(frozen=True)
class SamplingConfig:
    """Sampling policy for one session."""
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    seed: int = 0

    def __post_init__(self):
        """Validate sampling configuration."""
        if self.temperature is not None and self.temperature < 0:
            raise ValueError(f"temperature must be non-negative, got {self.temperature}")
        if self.top_p is not None and not 0.0 < self.top_p <= 1.0:
            raise ValueError(f"top_p must be in (0, 1], got {self.top_p}")
        if self.seed < 0:
            raise ValueError(f"seed must be non-negative, got {self.seed}")

    @property
    def is_greedy(self) -> bool:
        """Whether selection is the deterministic argmax."""
        return self.temperature is None or self.temperature < GREEDY_TEMPERATURE_EPSILON

    @property
    def mode(self) -> str:
        """Name of the selection policy implied by this configuration."""
        if self.is_greedy:
            return "greedy"
        if self.top_p is None or self.top_p >= 1.0:
            return "temperature"
        return "nucleus"


@dataclass(frozen=True)
class PenaltyConfig:
    """Repeat penalty settings for one session."""
    penalty: float = 1.0
    last_n: int = 64

    def __post_init__(self):
        """Validate penalty configuration."""
        if self.penalty <= 0:
            raise ValueError(f"penalty must be positive, got {self.penalty}")
        if self.last_n < 0:
            raise ValueError(f"last_n must be non-negative, got {self.last_n}")

    @property
    def enabled(self) -> bool:
        """A penalty of exactly 1.0 disables the filter."""
        return self.penalty != 1.0
