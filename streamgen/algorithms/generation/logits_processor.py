"""Logits processing for token generation."""

import torch
from typing import Sequence

from streamgen.domain.entities.generation_config import PenaltyConfig


class RepeatPenaltyFilter:
    """Attenuates the logits of tokens that appeared in the recent context.

    Each distinct token id in the lookback window is scaled once, however
    often it occurs there: positive logits are divided by the penalty and
    negative logits multiplied by it.
    """

    def __init__(self, config: PenaltyConfig):
        self.config = config

    def __call__(self, logits: torch.Tensor, sequence: Sequence[int]) -> torch.Tensor:
        return self.apply(logits, self.config.penalty, sequence, self.config.last_n)

    @staticmethod
    def apply(
        logits: torch.Tensor,
        penalty: float,
        sequence: Sequence[int],
        lookback: int,
    ) -> torch.Tensor:
        """
        Apply repetition penalty to discourage repeating tokens.

        Args:
            logits: 1-D logits over the vocabulary
            penalty: Penalty factor, 1.0 disables the filter
            sequence: Token ids generated so far, prompt included
            lookback: How many trailing tokens count as recent

        Returns:
            The input tensor itself when the penalty is 1.0, otherwise a
            penalized copy
        """
        if penalty == 1.0:
            return logits

        assert logits.dim() == 1, f"Expected 1-D logits, got shape {tuple(logits.shape)}"
        assert lookback >= 0, f"lookback must be non-negative, got {lookback}"

        window = list(sequence)[max(0, len(sequence) - lookback):]
        if not window:
            return logits

        token_ids = sorted(set(int(t) for t in window))
        vocab_size = logits.shape[0]
        if token_ids[-1] >= vocab_size or token_ids[0] < 0:
            raise ValueError(
                f"Token id outside logits range [0, {vocab_size}): {token_ids[0]}..{token_ids[-1]}"
            )

        index = torch.tensor(token_ids, dtype=torch.long, device=logits.device)
        selected = logits[index]
        logits = logits.clone()
        logits[index] = torch.where(selected >= 0, selected / penalty, selected * penalty)

        return logits
