"""Terminal output for streamgen."""

from .console_sink import ConsoleSink

__all__ = ["ConsoleSink"]
