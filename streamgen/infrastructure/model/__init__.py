"""Model infrastructure for streamgen."""

from .model_adapter import ModelAdapter

__all__ = ["ModelAdapter"]
