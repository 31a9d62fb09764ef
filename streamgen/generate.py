#!/usr/bin/env python3
"""
streamgen: interactive streaming text generation.

Reads prompts line by line from standard input (after an optional --prompt),
decodes each one incrementally with a HuggingFace causal language model, and
streams the generated text to the terminal.
"""

import argparse
import itertools
import sys
import time
from typing import Iterable, List, Optional

from streamgen.application.services.generation_loop import GenerationLoop
from streamgen.application.services.interactive_session import InteractiveSession
from streamgen.domain.interfaces.output_sink import OutputSinkInterface
from streamgen.infrastructure.model.model_adapter import ModelAdapter
from streamgen.infrastructure.performance.performance_tracker import PerformanceTracker
from streamgen.infrastructure.tokenization.tokenizer_adapter import TokenizerAdapter
from streamgen.infrastructure.visualization.console_sink import ConsoleSink
from streamgen.utils.config_manager import ConfigurationError, StreamgenConfig
from streamgen.utils.error_manager import StreamgenError
from streamgen.utils.logger import add_global_context, get_logger
from streamgen.utils.memory_monitor import MemoryMonitor
from streamgen.utils.model_utils import (
    describe_backend,
    get_best_device,
    get_device_dtype,
    load_model_and_tokenizer,
    resolve_seed,
)

logger = get_logger("generate")

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_INTERRUPTED = 130

# Shown in the startup report when no temperature is set
DISPLAY_DEFAULT_TEMPERATURE = 0.95


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Interactive streaming text generation with a causal language model"
    )

    parser.add_argument("--cache", "--cache-dir", dest="cache_dir", type=str, default=None,
                        help="Directory for downloaded model files (default: .)")
    parser.add_argument("--cpu", action="store_true",
                        help="Run on CPU rather than on GPU")
    parser.add_argument("--verbose", "--verbose-prompt", dest="verbose", action="store_true",
                        default=None,
                        help="Display prompt tokens and per-token diagnostics")
    parser.add_argument("--prompt", type=str, default=None,
                        help="First prompt, processed before standard input")
    parser.add_argument("--temperature", type=float, default=None,
                        help="Sampling temperature; omit for greedy decoding")
    parser.add_argument("--top-p", type=float, default=None,
                        help="Nucleus sampling probability cutoff")
    parser.add_argument("--seed", type=int, default=None,
                        help="Random seed; a random one is drawn and printed if omitted")
    parser.add_argument("--sample-len", "-n", type=int, default=None,
                        help="Maximum number of tokens per prompt (default: 5000)")
    parser.add_argument("--model-id", type=str, default=None,
                        help="HuggingFace model id")
    parser.add_argument("--revision", type=str, default=None,
                        help="Model revision")
    parser.add_argument("--weight-file", type=str, default=None,
                        help="Local checkpoint overriding --model-id")
    parser.add_argument("--tokenizer", type=str, default=None,
                        help="Path to a tokenizer.json overriding the hub tokenizer")
    parser.add_argument("--repeat-penalty", type=float, default=None,
                        help="Penalty for repeating tokens, 1.0 means no penalty (default: 1.1)")
    parser.add_argument("--repeat-last-n", type=int, default=None,
                        help="Context size considered by the repeat penalty (default: 64)")
    parser.add_argument("--config", type=str, default=None,
                        help="JSON configuration file")

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> StreamgenConfig:
    """Merge file, environment, and command-line settings, later ones winning."""
    base = StreamgenConfig.from_file(args.config) if args.config else None
    config = StreamgenConfig.from_env(base)

    config.with_overrides(
        "model",
        cache_dir=args.cache_dir,
        model_id=args.model_id,
        revision=args.revision,
        weight_file=args.weight_file,
        tokenizer_file=args.tokenizer,
        device="cpu" if args.cpu else None,
    )
    config.with_overrides(
        "generation",
        temperature=args.temperature,
        top_p=args.top_p,
        seed=args.seed,
        sample_len=args.sample_len,
        repeat_penalty=args.repeat_penalty,
        repeat_last_n=args.repeat_last_n,
        verbose=args.verbose,
    )
    return config


def print_startup_report(config: StreamgenConfig, prompt: Optional[str], seed: int) -> None:
    backend = describe_backend()
    generation = config.generation
    temperature = generation.temperature
    if temperature is None:
        temperature = DISPLAY_DEFAULT_TEMPERATURE

    print(f"cpu capability: {backend['cpu_capability']}, cuda: {backend['cuda']}, "
          f"mps: {backend['mps']}, threads: {backend['num_threads']}")
    print(f"temp: {temperature:.2f} repeat-penalty: {generation.repeat_penalty:.2f} "
          f"repeat-last-n: {generation.repeat_last_n}")
    print(f"cache path {config.model.cache_dir}")
    if prompt is not None:
        print(f"Prompt: [{prompt}]")
    print(f"Using Seed {seed}")


def prompt_source(prompt: Optional[str], stdin: Iterable[str]) -> Iterable[str]:
    """Yield the optional --prompt first, then every input line."""
    first = [prompt] if prompt is not None else []
    return itertools.chain(first, stdin)


def build_session(
    config: StreamgenConfig,
    seed: int,
    sink: Optional[OutputSinkInterface] = None,
):
    """Load the model and wire a ready-to-run session.

    Returns:
        Tuple of (session, performance tracker)
    """
    device = get_best_device(config.model)
    dtype = get_device_dtype(device, config.model)
    print(f"DType is {dtype}")

    load_start = time.time()
    with logger.operation("load_model"):
        model, tokenizer = load_model_and_tokenizer(config.model, device, dtype)
    print(f"Model loaded in {time.time() - load_start:.2f}s")
    MemoryMonitor(device).log_memory_stats("Memory after model load")

    tracker = PerformanceTracker()
    loop = GenerationLoop(
        model=ModelAdapter(model, device=device),
        tokenizer=TokenizerAdapter(tokenizer),
        sampling_config=config.to_sampling_config(seed),
        penalty_config=config.to_penalty_config(),
        eos_token=config.generation.eos_token,
        performance_tracker=tracker,
    )
    session = InteractiveSession(
        loop,
        sink or ConsoleSink(),
        sample_len=config.generation.sample_len,
        verbose=config.generation.verbose,
    )
    return session, tracker


def main(argv: Optional[List[str]] = None, stdin: Optional[Iterable[str]] = None) -> int:
    """Main entry point for the streamgen command."""
    args = parse_args(argv)

    try:
        config = build_config(args)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_FATAL

    seed = resolve_seed(config.generation.seed)
    add_global_context(seed=seed)
    logger.info(f"Sampling: temperature={config.generation.temperature} "
                f"top_p={config.generation.top_p} seed={seed}")
    print_startup_report(config, args.prompt, seed)

    try:
        session, tracker = build_session(config, seed)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return EXIT_INTERRUPTED
    except StreamgenError as e:
        print(f"Fatal error [{e.code.value}]: {e.message}", file=sys.stderr)
        return EXIT_FATAL

    try:
        session.run(prompt_source(args.prompt, stdin if stdin is not None else sys.stdin))
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return EXIT_INTERRUPTED
    except StreamgenError:
        # Already reported through the session's sink
        return EXIT_FATAL
    finally:
        tracker.print_stats()

    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
