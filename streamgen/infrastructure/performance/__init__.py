"""Performance tracking infrastructure for streamgen."""

from .performance_tracker import PerformanceTracker

__all__ = ["PerformanceTracker"]
