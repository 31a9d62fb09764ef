"""Context window service for incremental decoding.

The model keeps a key-value cache of everything it has already processed,
so each step only needs to submit what the cache has not seen yet.
"""

from typing import List, Sequence

from ...utils.error_manager import EmptyPromptError


class ContextWindow:
    """Computes the slice of the running sequence to feed the model."""

    def next_input(self, sequence: Sequence[int], step_index: int) -> List[int]:
        """Return the token ids to submit at a decoding step.

        Step 0 returns the whole encoded prompt, priming the cache. Every
        later step returns only the most recently appended token.

        Args:
            sequence: The running token sequence (prompt plus generated ids)
            step_index: Zero-based decoding step

        Returns:
            Token ids for the model's forward pass

        Raises:
            EmptyPromptError: If the sequence is empty
        """
        if step_index < 0:
            raise ValueError(f"step_index must be non-negative, got {step_index}")
        if len(sequence) == 0:
            raise EmptyPromptError("Empty prompts are not supported", step_index=step_index)

        if step_index == 0:
            return list(sequence)
        return [sequence[-1]]
