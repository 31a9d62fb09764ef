"""Token sampling for incremental decoding.

Three mutually exclusive policies are derived from the SamplingConfig:
greedy argmax, temperature-scaled softmax sampling, and nucleus (top-p)
sampling. All randomness comes from one seeded CPU generator owned by the
sampler, so a seed reproduces the same token stream on any device.
"""

import torch

from streamgen.domain.entities.generation_config import SamplingConfig
from streamgen.utils.error_manager import SamplingError
from streamgen.utils.logging_utils import LoggingMixin


class Sampler(LoggingMixin):
    """Selects the next token id from a logits vector."""

    def __init__(self, config: SamplingConfig, debug_mode: bool = None):
        """Initialize the sampler.

        Args:
            config: Sampling policy and seed for the session
            debug_mode: Whether to enable debug logging
        """
        super().__init__()
        self.setup_logging("sampler", debug_mode)

        self.config = config
        self.generator = torch.Generator(device="cpu")
        self.generator.manual_seed(config.seed)
        self.draws = 0

        self.log(f"Sampler mode={config.mode} temperature={config.temperature} "
                 f"top_p={config.top_p} seed={config.seed}")

    def select(self, logits: torch.Tensor) -> int:
        """Select one token id.

        Args:
            logits: Logits for the next position, shape [vocab] or [1, vocab]

        Returns:
            The selected token id

        Raises:
            SamplingError: If the logits are empty or have no finite value
        """
        logits = self._prepare(logits)

        if self.config.is_greedy:
            return int(torch.argmax(logits).item())

        probs = torch.softmax(logits / self.config.temperature, dim=-1)
        if not torch.isfinite(probs).all():
            raise SamplingError(
                "Temperature scaling produced a non-finite distribution",
                temperature=self.config.temperature,
            )

        if self.config.mode == "nucleus":
            probs = self.truncate_nucleus(probs, self.config.top_p)

        return self._draw(probs)

    @staticmethod
    def truncate_nucleus(probs: torch.Tensor, top_p: float) -> torch.Tensor:
        """Keep the smallest high-probability prefix whose mass reaches top_p.

        Tokens are ranked by probability (ties keep vocabulary order). A token
        is retained while the mass ranked strictly above it is still below
        ``top_p``, so the token that crosses the threshold is included.

        Args:
            probs: 1-D probability distribution
            top_p: Nucleus mass threshold in (0, 1]

        Returns:
            Distribution of the same shape with the tail zeroed and the
            retained mass renormalized to 1
        """
        sorted_probs, sorted_idx = torch.sort(probs, descending=True, stable=True)
        cumulative = torch.cumsum(sorted_probs, dim=-1)
        mass_before = torch.cat([cumulative.new_zeros(1), cumulative[:-1]])

        keep_sorted = mass_before < top_p
        keep_sorted[0] = True

        keep = torch.empty_like(keep_sorted)
        keep[sorted_idx] = keep_sorted
        truncated = probs.masked_fill(~keep, 0.0)
        return truncated / truncated.sum()

    def _draw(self, probs: torch.Tensor) -> int:
        """Draw one index from the session's random stream."""
        self.draws += 1
        choice = torch.multinomial(probs, num_samples=1, generator=self.generator)
        return int(choice.item())

    @staticmethod
    def _prepare(logits: torch.Tensor) -> torch.Tensor:
        """Move logits to CPU float32 and mask non-finite entries."""
        if logits.dim() == 2 and logits.shape[0] == 1:
            logits = logits[0]
        assert logits.dim() == 1, f"Expected 1-D logits, got shape {tuple(logits.shape)}"

        if logits.numel() == 0:
            raise SamplingError("Cannot sample from an empty logits vector")

        logits = logits.detach().to(device="cpu", dtype=torch.float32)
        finite = torch.isfinite(logits)
        if not finite.any():
            raise SamplingError(
                "Logits contain no finite value",
                vocab_size=logits.numel(),
            )
        if not finite.all():
            logits = logits.masked_fill(~finite, float("-inf"))

        return logits
