import pytest
from unittest.mock import patch

from streamgen.infrastructure.performance.performance_tracker import PerformanceTracker


class TestPerformanceTracker:
    """Test suite for the PerformanceTracker."""

    def test_empty_stats(self):
        stats = PerformanceTracker().get_stats()

        assert stats["model_calls"] == 0
        assert stats["avg_model_time"] == 0.0
        assert stats["step_p50"] == 0.0
        assert stats["tokens_per_second"] == 0.0

    def test_counts_and_averages(self):
        tracker = PerformanceTracker()
        tracker.track_model_call(0.5, num_tokens=10)
        tracker.track_model_call(0.1)
        tracker.track_model_call(0.3)
        tracker.track_sampling(0.05)
        tracker.track_sampling(0.05)
        tracker.track_decode(0.02)

        stats = tracker.get_stats()

        assert stats["model_calls"] == 3
        assert stats["model_tokens_processed"] == 12
        assert stats["avg_model_time"] == pytest.approx(0.3)
        assert stats["avg_sampling_time"] == pytest.approx(0.05)
        assert stats["decode_calls"] == 1
        assert stats["tokens_per_second"] == pytest.approx(2 / 1.02)

    def test_percentiles_exclude_priming_call(self):
        tracker = PerformanceTracker()
        tracker.track_model_call(5.0, num_tokens=100)
        for duration in [0.1, 0.2, 0.3, 0.4, 0.5]:
            tracker.track_model_call(duration)

        stats = tracker.get_stats()

        assert stats["step_p50"] == pytest.approx(0.3)
        assert stats["step_p95"] == pytest.approx(0.48)

    def test_reset(self):
        tracker = PerformanceTracker()
        tracker.track_model_call(0.1)
        tracker.reset()

        assert tracker.get_stats()["model_calls"] == 0
        assert tracker.step_times == []

    def test_print_stats_logs_summary(self):
        tracker = PerformanceTracker()
        tracker.track_model_call(0.1)

        with patch.object(tracker._streamgen_logger, "info") as mock_info:
            tracker.print_stats()

        messages = [c.args[0] for c in mock_info.call_args_list]
        assert messages[0] == "Performance Statistics:"
        assert any("Model forward: 1 calls" in m for m in messages)
