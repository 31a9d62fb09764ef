"""Application services for streamgen."""

from .generation_loop import GenerationLoop, GenerationStream
from .interactive_session import InteractiveSession

__all__ = ["GenerationLoop", "GenerationStream", "InteractiveSession"]
