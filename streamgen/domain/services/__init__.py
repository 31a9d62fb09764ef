"""Pure domain services for streamgen."""

from .context_window import ContextWindow

__all__ = ["ContextWindow"]
