"""Output sink interface for streamgen.

This module defines where an interactive session reports prompts,
streamed fragments, summaries, and per-prompt errors.
"""

from typing import Protocol, Sequence
from abc import abstractmethod

from ..entities.generation_state import GenerationResult


class OutputSinkInterface(Protocol):
    """Interface for ordered emission of generation output."""

    @abstractmethod
    def prompt_started(self, prompt: str, sample_len: int) -> None:
        """Announce a new prompt before decoding begins."""
        ...

    @abstractmethod
    def prompt_tokens(self, token_ids: Sequence[int], tokens: Sequence[str]) -> None:
        """Show how the prompt was tokenized (verbose mode)."""
        ...

    @abstractmethod
    def fragment(self, text: str) -> None:
        """Emit one decoded fragment as soon as it is produced."""
        ...

    @abstractmethod
    def token_detail(self, index: int, token_id: int, text: str) -> None:
        """Show per-token diagnostics (verbose mode)."""
        ...

    @abstractmethod
    def summary(self, result: GenerationResult) -> None:
        """Report the outcome and throughput of a finished prompt."""
        ...

    @abstractmethod
    def error(self, prompt: str, error: Exception) -> None:
        """Report an error that aborted a prompt or the session."""
        ...
