"""Console output sink for streamgen.

Generated text and per-prompt reports go to stdout, flushed after every
write so fragments appear as soon as they are sampled. Errors go to stderr.
"""

import sys
from typing import Optional, Sequence, TextIO

from streamgen.domain.entities.generation_state import GenerationResult
from streamgen.domain.interfaces.output_sink import OutputSinkInterface
from streamgen.utils.error_manager import StreamgenError

WELCOME_BANNER = "[Welcome to streamgen, enter a prompt]"


class ConsoleSink(OutputSinkInterface):
    """Writes generation output to a terminal."""

    # ANSI color codes for terminal output
    RED = "\033[91m"
    BLUE = "\033[94m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    CYAN = "\033[96m"
    RESET = "\033[0m"
    BOLD = "\033[1m"

    def __init__(
        self,
        stream: Optional[TextIO] = None,
        error_stream: Optional[TextIO] = None,
        use_color: Optional[bool] = None,
    ):
        """Initialize the sink.

        Args:
            stream: Output stream (defaults to stdout)
            error_stream: Stream for error reports (defaults to stderr)
            use_color: Force ANSI colors on or off (defaults to tty detection)
        """
        self.stream = stream or sys.stdout
        self.error_stream = error_stream or sys.stderr
        if use_color is None:
            use_color = hasattr(self.stream, "isatty") and self.stream.isatty()
        self.use_color = use_color

    def _color(self, text, color: str) -> str:
        if not self.use_color:
            return str(text)
        return f"{color}{text}{self.RESET}"

    def _write(self, text: str, stream: Optional[TextIO] = None) -> None:
        stream = stream or self.stream
        stream.write(text)
        stream.flush()

    def prompt_started(self, prompt: str, sample_len: int) -> None:
        self._write(f"{WELCOME_BANNER}\n")
        self._write(f"samplelen {self._color(sample_len, self.BLUE)}\n")

    def prompt_tokens(self, token_ids: Sequence[int], tokens: Sequence[str]) -> None:
        for token_id, token in zip(token_ids, tokens):
            self._write(f"{token_id:7} -> '{token}'\n")

    def fragment(self, text: str) -> None:
        self._write(text)

    def token_detail(self, index: int, token_id: int, text: str) -> None:
        self._write(
            f"[Index: {self._color(index, self.BLUE)}] "
            f"[Raw Token: {self._color(token_id, self.GREEN)}] "
            f"[Decode Token: {self._color(text, self.YELLOW)}]\n"
        )

    def summary(self, result: GenerationResult) -> None:
        self._write(
            f"\n{result.generated_tokens} tokens generated "
            f"({result.tokens_per_second:.2f} token/s)\n"
        )
        self._write(f"{self._color('Result:', self.BOLD)}\n")
        self._write(f"{result.text}\n")

    def error(self, prompt: str, error: Exception) -> None:
        if isinstance(error, StreamgenError):
            label = error.code.value
            detail = error.message
        else:
            label = type(error).__name__
            detail = str(error)
        self._write(f"{self._color('Error', self.RED)} [{label}]: {detail}\n", self.error_stream)
