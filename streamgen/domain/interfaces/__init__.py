"""Domain interfaces for streamgen.

This package contains the interface definitions (protocols) that the
infrastructure layer implements and tests replace with stubs.
"""

from .model import ModelInterface
from .tokenizer import TokenizerInterface
from .output_sink import OutputSinkInterface
from .performance_tracker import PerformanceTrackerInterface

__all__ = [
    "ModelInterface",
    "TokenizerInterface",
    "OutputSinkInterface",
    "PerformanceTrackerInterface",
]
