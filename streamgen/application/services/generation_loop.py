"""Generation loop for incremental decoding.

This module drives one prompt at a time from encoding to termination:
the context window picks the slice to submit, the model extends its
key-value cache, the repeat penalty and sampler choose the next token, and
decoded fragments are yielded to the caller as soon as they exist.
"""

import time
from typing import Iterator, List, Optional

from streamgen.algorithms.generation.logits_processor import RepeatPenaltyFilter
from streamgen.algorithms.generation.sampler import Sampler
from streamgen.domain.entities.generation_config import PenaltyConfig, SamplingConfig
from streamgen.domain.entities.generation_state import (
    GenerationPhase,
    GenerationResult,
    StopReason,
)
from streamgen.domain.entities.token_sequence import TokenSequence
from streamgen.domain.interfaces.model import ModelInterface
from streamgen.domain.interfaces.performance_tracker import PerformanceTrackerInterface
from streamgen.domain.interfaces.tokenizer import TokenizerInterface
from streamgen.domain.services.context_window import ContextWindow
from streamgen.utils.error_manager import EmptyPromptError, TokenizationError
from streamgen.utils.logging_utils import LoggingMixin


class GenerationLoop(LoggingMixin):
    """Decodes prompts against a borrowed model, one prompt at a time."""

    def __init__(
        self,
        model: ModelInterface,
        tokenizer: TokenizerInterface,
        sampling_config: SamplingConfig,
        penalty_config: PenaltyConfig,
        eos_token: str = "<|endoftext|>",
        performance_tracker: Optional[PerformanceTrackerInterface] = None,
        debug_mode: Optional[bool] = None,
    ):
        """Initialize the generation loop.

        Args:
            model: Incremental model capability (borrowed, not owned)
            tokenizer: Tokenizer capability
            sampling_config: Sampling policy and seed for the session
            penalty_config: Repeat penalty settings for the session
            eos_token: Vocabulary entry that ends generation
            performance_tracker: Optional tracker for step timings
            debug_mode: Whether to enable debug logging

        Raises:
            UnknownSpecialTokenError: If ``eos_token`` is not in the vocabulary
        """
        super().__init__()
        self.setup_logging("generation_loop", debug_mode)

        assert model is not None, "Model cannot be None"
        assert tokenizer is not None, "Tokenizer cannot be None"

        self.model = model
        self.tokenizer = tokenizer
        self.sampling_config = sampling_config
        self.penalty_config = penalty_config
        self.performance_tracker = performance_tracker

        self.sampler = Sampler(sampling_config, debug_mode=self.debug_mode)
        self.penalty_filter = RepeatPenaltyFilter(penalty_config)
        self.context_window = ContextWindow()

        self.eos_token = eos_token
        self.eos_token_id = tokenizer.token_to_id(eos_token)
        self._active: Optional["GenerationStream"] = None

        self.log(f"Generation loop ready: eos={eos_token!r} ({self.eos_token_id}), "
                 f"penalty={penalty_config.penalty} last_n={penalty_config.last_n}")

    def generate(self, prompt: str, max_tokens: int) -> "GenerationStream":
        """Start decoding a prompt.

        The prompt is encoded immediately so that tokenization errors surface
        here rather than on first iteration. Any stream still open from a
        previous prompt is closed first, which resets the cache for it.

        Args:
            prompt: Prompt text
            max_tokens: Upper bound on sampled tokens, end-of-sequence included

        Returns:
            A one-shot iterator over decoded text fragments

        Raises:
            EmptyPromptError: If the prompt encodes to zero tokens
            TokenizationError: If the prompt cannot be encoded
        """
        if max_tokens < 0:
            raise ValueError(f"max_tokens must be non-negative, got {max_tokens}")

        if self._active is not None and not self._active.finished:
            self._active.close()
        self._active = None

        try:
            token_ids = self.tokenizer.encode(prompt)
        except TokenizationError:
            self.model.reset_cache()
            raise

        if len(token_ids) == 0:
            # Nothing reached the cache, but every prompt ends with one reset.
            self.model.reset_cache()
            raise EmptyPromptError("Empty prompts are not supported", prompt=prompt)

        stream = GenerationStream(self, prompt, TokenSequence(token_ids), max_tokens)
        self._active = stream
        return stream

    def generate_text(self, prompt: str, max_tokens: int) -> GenerationResult:
        """Decode a prompt to completion and return its result."""
        stream = self.generate(prompt, max_tokens)
        for _ in stream:
            pass
        return stream.result


class GenerationStream:
    """Lazy, one-shot sequence of decoded fragments for a single prompt.

    Phases run Start, Priming (step 0), Decoding (steps 1..N), Stopped and
    finally CacheReset. Once the stream has stopped, iterating it again
    yields nothing.
    """

    def __init__(
        self,
        loop: GenerationLoop,
        prompt: str,
        sequence: TokenSequence,
        max_tokens: int,
    ):
        self.loop = loop
        self.prompt = prompt
        self.sequence = sequence
        self.max_tokens = max_tokens
        self.prompt_length = len(sequence)

        self.phase = GenerationPhase.START
        self.step = 0
        self.generated_tokens = 0
        self.last_token_id: Optional[int] = None
        self.fragments: List[str] = []
        self.stop_reason: Optional[StopReason] = None
        self.result: Optional[GenerationResult] = None

        self._start_time = time.time()

    @property
    def finished(self) -> bool:
        return self.phase in (GenerationPhase.STOPPED, GenerationPhase.CACHE_RESET)

    @property
    def generated_token_ids(self) -> List[int]:
        """Ids sampled so far, end-of-sequence included."""
        return self.sequence[self.prompt_length:]

    def __iter__(self) -> Iterator[str]:
        return self

    def __next__(self) -> str:
        while not self.finished:
            if self.step >= self.max_tokens:
                self._finish(StopReason.MAX_LENGTH)
                break

            try:
                fragment = self._advance()
            except KeyboardInterrupt:
                self._finish(StopReason.ABORTED)
                raise
            except Exception:
                self._finish(StopReason.ERROR)
                raise

            if fragment is not None:
                return fragment

        raise StopIteration

    def close(self) -> None:
        """Abandon the prompt early. The cache is reset once."""
        if not self.finished:
            self._finish(StopReason.ABORTED)

    def _advance(self) -> Optional[str]:
        """Run one decoding step, returning the decoded fragment if any."""
        loop = self.loop
        tracker = loop.performance_tracker

        self.phase = GenerationPhase.PRIMING if self.step == 0 else GenerationPhase.DECODING
        model_input = loop.context_window.next_input(self.sequence, self.step)

        start = time.time()
        logits = loop.model.forward(model_input)
        if tracker:
            tracker.track_model_call(time.time() - start, num_tokens=len(model_input))

        start = time.time()
        logits = loop.penalty_filter(logits, self.sequence)
        token_id = loop.sampler.select(logits)
        if tracker:
            tracker.track_sampling(time.time() - start)

        self.sequence.append(token_id)
        self.last_token_id = token_id
        self.generated_tokens += 1
        self.step += 1

        if token_id == loop.eos_token_id:
            self._finish(StopReason.EOS)
            return None

        start = time.time()
        fragment = loop.tokenizer.decode(token_id)
        if tracker:
            tracker.track_decode(time.time() - start)

        if loop.debug_mode:
            loop.log(f"Step {self.step - 1}: token {token_id} -> {fragment!r}", level="debug")

        self.fragments.append(fragment)
        return fragment

    def _finish(self, reason: StopReason) -> None:
        self.phase = GenerationPhase.STOPPED
        self.stop_reason = reason
        elapsed = time.time() - self._start_time

        self.result = GenerationResult(
            prompt=self.prompt,
            fragments=tuple(self.fragments),
            generated_tokens=self.generated_tokens,
            elapsed_seconds=elapsed,
            stop_reason=reason,
            prompt_tokens=self.prompt_length,
            token_ids=tuple(self.generated_token_ids),
        )

        self.loop.model.reset_cache()
        self.phase = GenerationPhase.CACHE_RESET

        self.loop._streamgen_logger.info(
            f"Prompt finished ({reason.value}): {self.generated_tokens} tokens "
            f"in {elapsed:.2f}s ({self.result.tokens_per_second:.2f} token/s)"
        )
