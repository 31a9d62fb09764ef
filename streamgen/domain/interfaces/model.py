"""Model interface for streamgen.

This module defines the capability the generation loop borrows from the
language model: an incremental forward pass and a cache reset.
"""

from typing import Protocol, Sequence
import torch
from abc import abstractmethod


class ModelInterface(Protocol):
    """Interface for incremental model operations."""

    @abstractmethod
    def forward(self, token_ids: Sequence[int]) -> torch.Tensor:
        """Run the model on new tokens, extending its key-value cache.

        Args:
            token_ids: Tokens not yet seen by the cache

        Returns:
            1-D logits for the next position, sized to the vocabulary
        """
        ...

    @abstractmethod
    def reset_cache(self) -> None:
        """Clear the key-value cache. Calling it on an empty cache is a no-op."""
        ...
