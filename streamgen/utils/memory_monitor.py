"""Memory monitoring utilities for streamgen.

Reports process, system, and GPU memory so the footprint of the loaded
model and its key-value cache can be logged after startup.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import psutil
import torch

logger = logging.getLogger(__name__)

GB = 1024 ** 3


@dataclass
class MemoryStats:
    """Current memory statistics."""
    process_rss_gb: float
    total_gb: float
    used_gb: float
    available_gb: float
    percent_used: float

    # GPU-specific (if available)
    gpu_allocated_gb: Optional[float] = None
    gpu_reserved_gb: Optional[float] = None
    gpu_total_gb: Optional[float] = None

    def format(self) -> str:
        """One-line human readable summary."""
        text = (f"process {self.process_rss_gb:.2f}GB, system {self.used_gb:.1f}/"
                f"{self.total_gb:.1f}GB ({self.percent_used:.0f}%)")
        if self.gpu_allocated_gb is not None:
            text += (f", gpu allocated {self.gpu_allocated_gb:.2f}GB "
                     f"reserved {self.gpu_reserved_gb:.2f}GB of {self.gpu_total_gb:.1f}GB")
        return text


class MemoryMonitor:
    """Collects memory statistics for the current process and device."""

    def __init__(self, device: str = "cpu"):
        """Initialize memory monitor.

        Args:
            device: Device to monitor ("cuda", "cpu", "mps")
        """
        self.device = device
        self.process = psutil.Process()

    def get_memory_stats(self) -> MemoryStats:
        """Get current memory statistics.

        Returns:
            MemoryStats object with current usage
        """
        mem = psutil.virtual_memory()
        stats = MemoryStats(
            process_rss_gb=self.process.memory_info().rss / GB,
            total_gb=mem.total / GB,
            used_gb=mem.used / GB,
            available_gb=mem.available / GB,
            percent_used=mem.percent,
        )

        if self.device == "cuda" and torch.cuda.is_available():
            stats.gpu_allocated_gb = torch.cuda.memory_allocated() / GB
            stats.gpu_reserved_gb = torch.cuda.memory_reserved() / GB
            stats.gpu_total_gb = torch.cuda.get_device_properties(0).total_memory / GB

        return stats

    def log_memory_stats(self, label: str = "Memory") -> MemoryStats:
        """Log current memory statistics and return them."""
        stats = self.get_memory_stats()
        logger.info(f"{label}: {stats.format()}")
        return stats
