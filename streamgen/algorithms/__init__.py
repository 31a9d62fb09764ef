"""streamgen algorithm components."""

from .generation.logits_processor import RepeatPenaltyFilter
from .generation.sampler import Sampler

__all__ = [
    "RepeatPenaltyFilter",
    "Sampler",
]
