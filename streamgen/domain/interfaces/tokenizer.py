"""Tokenizer interface for streamgen.

This module defines the tokenization capability used by the generation loop.
"""

from typing import Protocol, List, Sequence
from abc import abstractmethod


class TokenizerInterface(Protocol):
    """Interface for tokenization operations."""

    @abstractmethod
    def encode(self, text: str) -> List[int]:
        """Encode prompt text into token ids.

        Raises:
            TokenizationError: If the text cannot be encoded
        """
        ...

    @abstractmethod
    def decode(self, token_id: int) -> str:
        """Decode a single token id to a text fragment."""
        ...

    @abstractmethod
    def token_to_id(self, token: str) -> int:
        """Look up a special token in the vocabulary.

        Raises:
            UnknownSpecialTokenError: If the token is not in the vocabulary
        """
        ...

    @abstractmethod
    def id_to_tokens(self, token_ids: Sequence[int]) -> List[str]:
        """Return the raw vocabulary strings for token ids."""
        ...
