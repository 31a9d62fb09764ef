"""Model adapter implementation for streamgen.

This module wraps a HuggingFace causal language model behind the
ModelInterface: each forward call submits only the new tokens and keeps the
returned ``past_key_values`` as the incremental key-value cache.
"""

from typing import Any, Optional, Sequence

import torch

from streamgen.domain.interfaces.model import ModelInterface
from streamgen.utils.error_manager import ErrorCode, ModelForwardError
from streamgen.utils.exception_handlers import handle_model_errors
from streamgen.utils.logging_utils import LoggingMixin


class ModelAdapter(LoggingMixin, ModelInterface):
    """Adapter for the underlying language model."""

    def __init__(self, model: Any, device: str = "cpu", debug_mode: Optional[bool] = None):
        """Initialize the model adapter.

        Args:
            model: The underlying HuggingFace causal language model
            device: Device the model lives on
            debug_mode: Whether to enable debug logging
        """
        super().__init__()

        # Validate inputs
        assert model is not None, "Model cannot be None"
        assert device in ["cpu", "cuda", "mps"], f"Unsupported device: {device}"
        assert callable(model), "Model must be callable"

        self.model = model
        self.device = device
        self._past_key_values: Optional[Any] = None
        self.forward_calls = 0

        self.setup_logging("model_adapter", debug_mode)

    @property
    def has_cache(self) -> bool:
        return self._past_key_values is not None

    @handle_model_errors(
        error_message="Model forward pass failed",
        error_code=ErrorCode.MODEL_FORWARD_FAILED,
        error_class=ModelForwardError,
    )
    def forward(self, token_ids: Sequence[int]) -> torch.Tensor:
        """Run the model on tokens the cache has not seen yet.

        Args:
            token_ids: New token ids (the whole prompt on the first call)

        Returns:
            1-D logits for the position after the last submitted token
        """
        assert len(token_ids) > 0, "forward needs at least one token"

        input_ids = torch.tensor([list(token_ids)], dtype=torch.long, device=self.device)

        with torch.inference_mode():
            outputs = self.model(
                input_ids=input_ids,
                past_key_values=self._past_key_values,
                use_cache=True,
                return_dict=True,
            )

        self._past_key_values = outputs.past_key_values
        self.forward_calls += 1

        logits = outputs.logits
        assert logits.dim() == 3 and logits.size(0) == 1, \
            f"Expected logits of shape [1, seq_len, vocab], got {tuple(logits.shape)}"

        if self.debug_mode:
            self.log(f"Forward #{self.forward_calls}: {len(token_ids)} tokens, "
                     f"logits {tuple(logits.shape)}", level="debug")

        return logits[0, -1, :]

    def reset_cache(self) -> None:
        """Drop the key-value cache. Safe to call on an empty cache."""
        if self._past_key_values is not None and self.debug_mode:
            self.log("Cleared KV cache", level="debug")
        self._past_key_values = None
