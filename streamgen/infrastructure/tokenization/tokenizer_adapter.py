"""Tokenizer adapter implementation for streamgen.

This module provides an adapter for HuggingFace tokenizers,
implementing the TokenizerInterface from the domain layer.
"""

from typing import List, Optional, Sequence

from streamgen.domain.interfaces.tokenizer import TokenizerInterface
from streamgen.utils.error_manager import ErrorCode, UnknownSpecialTokenError
from streamgen.utils.exception_handlers import handle_tokenization_errors
from streamgen.utils.logging_utils import LoggingMixin


class TokenizerAdapter(LoggingMixin, TokenizerInterface):
    """Adapter for HuggingFace tokenizers."""

    def __init__(self, tokenizer, debug_mode: Optional[bool] = None):
        """Initialize the tokenizer adapter.

        Args:
            tokenizer: HuggingFace tokenizer instance
            debug_mode: Whether to enable debug logging
        """
        super().__init__()

        assert tokenizer is not None, "Tokenizer cannot be None"
        assert hasattr(tokenizer, "encode"), "Tokenizer must have encode method"
        assert hasattr(tokenizer, "decode"), "Tokenizer must have decode method"
        assert hasattr(tokenizer, "get_vocab"), "Tokenizer must have get_vocab method"

        self.tokenizer = tokenizer
        self._vocab = None

        self.setup_logging("tokenizer_adapter", debug_mode)

    @handle_tokenization_errors(error_message="Failed to encode prompt")
    def encode(self, text: str) -> List[int]:
        """Encode prompt text, adding the tokenizer's special prefix tokens.

        Args:
            text: Prompt text

        Returns:
            List of token ids (possibly empty)
        """
        assert isinstance(text, str), f"Prompt must be a string, got {type(text).__name__}"

        token_ids = self.tokenizer.encode(text, add_special_tokens=True)
        if hasattr(token_ids, "tolist"):
            token_ids = token_ids.tolist()

        if self.debug_mode:
            self.log(f"Encoded {len(text)} chars into {len(token_ids)} tokens", level="debug")

        return [int(t) for t in token_ids]

    @handle_tokenization_errors(
        error_message="Failed to decode token",
        error_code=ErrorCode.TOKENIZE_DECODE_FAILED,
    )
    def decode(self, token_id: int) -> str:
        """Decode a single token id, skipping special tokens.

        Args:
            token_id: Token id to decode

        Returns:
            Decoded text fragment
        """
        return self.tokenizer.decode([int(token_id)], skip_special_tokens=True)

    def token_to_id(self, token: str) -> int:
        """Look up a vocabulary entry, special tokens included.

        Args:
            token: Vocabulary string, e.g. ``<|endoftext|>``

        Returns:
            The token's id

        Raises:
            UnknownSpecialTokenError: If the vocabulary has no such entry
        """
        if self._vocab is None:
            self._vocab = self.tokenizer.get_vocab()

        if token not in self._vocab:
            raise UnknownSpecialTokenError(
                f"cannot find the {token} token in the vocabulary",
                token=token,
                vocab_size=len(self._vocab),
            )

        return int(self._vocab[token])

    def id_to_tokens(self, token_ids: Sequence[int]) -> List[str]:
        """Return raw vocabulary strings for token ids.

        Args:
            token_ids: Token ids to look up

        Returns:
            One vocabulary string per id
        """
        return list(self.tokenizer.convert_ids_to_tokens([int(t) for t in token_ids]))
