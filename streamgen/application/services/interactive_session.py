"""Interactive prompt session for streamgen.

This module reads prompts from a line-oriented source, decodes each one with
the generation loop, and reports everything to an output sink. Errors that
only concern one prompt are reported and skipped; session-fatal errors are
reported and re-raised to the caller.
"""

import logging
from typing import Iterable, List, Optional

from streamgen.domain.entities.generation_state import SessionSummary
from streamgen.domain.interfaces.output_sink import OutputSinkInterface
from streamgen.utils.error_manager import StreamgenError
from streamgen.utils.logging_utils import LoggingMixin

from .generation_loop import GenerationLoop

# SentencePiece renders spaces and newlines with these vocabulary markers.
TOKEN_DISPLAY_REPLACEMENTS = (("▁", " "), ("<0x0A>", "\n"))


def display_token(token: str) -> str:
    """Make a raw vocabulary entry readable on a terminal."""
    for marker, replacement in TOKEN_DISPLAY_REPLACEMENTS:
        token = token.replace(marker, replacement)
    return token


class InteractiveSession(LoggingMixin):
    """Runs the prompt read-loop around a GenerationLoop."""

    def __init__(
        self,
        loop: GenerationLoop,
        sink: OutputSinkInterface,
        sample_len: int,
        verbose: bool = False,
        debug_mode: Optional[bool] = None,
    ):
        """Initialize the session.

        Args:
            loop: Generation loop that owns the sampling state
            sink: Destination for banners, fragments, and summaries
            sample_len: Maximum number of tokens per prompt
            verbose: Whether to surface per-token diagnostics
            debug_mode: Whether to enable debug logging
        """
        super().__init__()
        self.setup_logging("interactive_session", debug_mode)

        self.loop = loop
        self.sink = sink
        self.sample_len = sample_len
        self.verbose = verbose

    def run(self, lines: Iterable[str]) -> SessionSummary:
        """Process prompts until the source is exhausted.

        Args:
            lines: Prompt source, one prompt per line

        Returns:
            SessionSummary for all processed prompts

        Raises:
            StreamgenError: The first session-fatal error, after reporting it
        """
        summary = SessionSummary()

        for line in lines:
            prompt = line.rstrip("\r\n")
            try:
                self.process_prompt(prompt, summary)
            except StreamgenError as e:
                self.sink.error(prompt, e)
                if e.is_session_fatal:
                    summary.fatal_error = str(e)
                    raise
                summary.failed_prompts += 1
                self.log(f"Skipping prompt after {e.code.value}", level="warning")

        self.log(f"Session finished: {summary.completed_prompts} prompts, "
                 f"{summary.failed_prompts} failed, {summary.total_tokens} tokens")
        return summary

    def process_prompt(self, prompt: str, summary: Optional[SessionSummary] = None):
        """Decode one prompt, streaming its fragments to the sink."""
        self.sink.prompt_started(prompt, self.sample_len)

        with self.operation("generate_prompt", level=logging.DEBUG):
            stream = self.loop.generate(prompt, self.sample_len)

            if self.verbose:
                prompt_ids: List[int] = stream.sequence.to_list()
                tokens = [display_token(t) for t in self.loop.tokenizer.id_to_tokens(prompt_ids)]
                self.sink.prompt_tokens(prompt_ids, tokens)

            for fragment in stream:
                if self.verbose:
                    self.sink.token_detail(stream.step - 1, stream.last_token_id, fragment)
                else:
                    self.sink.fragment(fragment)

        result = stream.result
        self.sink.summary(result)
        if summary is not None:
            summary.results.append(result)
        return result
