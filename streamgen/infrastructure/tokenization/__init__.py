"""Tokenization infrastructure for streamgen."""

from .tokenizer_adapter import TokenizerAdapter

__all__ = ["TokenizerAdapter"]
