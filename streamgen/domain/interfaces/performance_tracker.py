"""Performance tracker interface for streamgen.

This module defines the interface for tracking decoding performance.
"""

from typing import Protocol
from abc import abstractmethod


class PerformanceTrackerInterface(Protocol):
    """Interface for tracking performance metrics."""

    @abstractmethod
    def track_model_call(self, duration: float, num_tokens: int = 1) -> None:
        """Track model forward pass performance."""
        ...

    @abstractmethod
    def track_sampling(self, duration: float) -> None:
        """Track logits filtering and token selection."""
        ...

    @abstractmethod
    def track_decode(self, duration: float) -> None:
        """Track single-token decoding."""
        ...

    @abstractmethod
    def get_stats(self) -> dict:
        """Get performance statistics."""
        ...

    @abstractmethod
    def print_stats(self) -> None:
        """Log performance statistics."""
        ...
