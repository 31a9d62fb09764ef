"""Performance tracking implementation for streamgen.

This module records timings for the stages of each decoding step so that
throughput and per-step latency can be reported after a session.
"""

import time
from typing import Dict, List, Optional

import numpy as np

from streamgen.domain.interfaces.performance_tracker import PerformanceTrackerInterface
from streamgen.utils.logging_utils import LoggingMixin


class PerformanceTracker(LoggingMixin, PerformanceTrackerInterface):
    """Tracks performance metrics for token generation operations."""

    def __init__(self, debug_mode: Optional[bool] = None):
        """Initialize the performance tracker."""
        super().__init__()
        self.setup_logging("performance_tracker", debug_mode)
        self.reset()

    def reset(self) -> None:
        """Reset all performance statistics."""
        self.stats = {
            "model_calls": 0,
            "model_time": 0.0,
            "model_tokens_processed": 0,
            "sampling_calls": 0,
            "sampling_time": 0.0,
            "decode_calls": 0,
            "decode_time": 0.0,
            "start_time": time.time(),
        }
        # Priming calls are excluded so the percentiles describe cached steps
        self.step_times: List[float] = []

        if self.debug_mode:
            self.log("Reset performance statistics")

    def track_model_call(self, duration: float, num_tokens: int = 1) -> None:
        """Track model forward pass performance.

        Args:
            duration: Time taken for the forward pass
            num_tokens: Number of tokens submitted (the whole prompt when priming)
        """
        self.stats["model_calls"] += 1
        self.stats["model_time"] += duration
        self.stats["model_tokens_processed"] += num_tokens

        if num_tokens == 1:
            self.step_times.append(duration)

    def track_sampling(self, duration: float) -> None:
        """Track repeat penalty plus token selection time."""
        self.stats["sampling_calls"] += 1
        self.stats["sampling_time"] += duration

    def track_decode(self, duration: float) -> None:
        """Track single-token decoding time."""
        self.stats["decode_calls"] += 1
        self.stats["decode_time"] += duration

    def get_stats(self) -> Dict:
        """Get performance statistics.

        Returns:
            Dictionary with raw counters plus derived averages and percentiles
        """
        stats = self.stats.copy()

        for name in ("model", "sampling", "decode"):
            calls = stats[f"{name}_calls"]
            stats[f"avg_{name}_time"] = stats[f"{name}_time"] / calls if calls else 0.0

        if self.step_times:
            times = np.asarray(self.step_times)
            stats["step_p50"] = float(np.percentile(times, 50))
            stats["step_p95"] = float(np.percentile(times, 95))
        else:
            stats["step_p50"] = 0.0
            stats["step_p95"] = 0.0

        busy_time = stats["model_time"] + stats["sampling_time"] + stats["decode_time"]
        stats["tokens_per_second"] = stats["sampling_calls"] / busy_time if busy_time > 0 else 0.0
        stats["total_elapsed_time"] = time.time() - stats["start_time"]

        return stats

    def print_stats(self) -> None:
        """Log performance statistics."""
        stats = self.get_stats()
        logger = self._streamgen_logger

        logger.info("Performance Statistics:")
        logger.info(f"  Total elapsed time: {stats['total_elapsed_time']:.2f}s")
        logger.info(f"  Model forward: {stats['model_calls']} calls, "
                    f"{stats['model_tokens_processed']} tokens, "
                    f"avg {stats['avg_model_time'] * 1000:.2f}ms")
        logger.info(f"  Cached step latency: p50 {stats['step_p50'] * 1000:.2f}ms, "
                    f"p95 {stats['step_p95'] * 1000:.2f}ms")
        logger.info(f"  Sampling: {stats['sampling_calls']} calls, "
                    f"avg {stats['avg_sampling_time'] * 1000:.3f}ms")
        logger.info(f"  Decoding: {stats['decode_calls']} calls, "
                    f"avg {stats['avg_decode_time'] * 1000:.3f}ms")
        logger.info(f"  Throughput: {stats['tokens_per_second']:.2f} token/s")
