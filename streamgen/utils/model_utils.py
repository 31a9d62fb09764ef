"""
Model utilities for streamgen.

This module provides centralized functionality for model loading, device
detection, dtype selection, backend reporting, and seed resolution.
"""

import time
from typing import Any, Dict, Optional, Tuple

import numpy as np
import torch
from transformers import (
    AutoModelForCausalLM,
    AutoTokenizer,
    PreTrainedModel,
    PreTrainedTokenizerBase,
    PreTrainedTokenizerFast,
)

from streamgen.utils.config_manager import ModelConfig
from streamgen.utils.error_manager import ErrorCode
from streamgen.utils.exception_handlers import handle_model_errors
from streamgen.utils.logger import get_logger

# Configure logger
logger = get_logger("model_utils")

SUPPORTED_DEVICES = ["cuda", "mps", "cpu"]

DTYPES = {
    "float16": torch.float16,
    "bfloat16": torch.bfloat16,
    "float32": torch.float32,
}


def get_best_device(model_config: Optional[ModelConfig] = None, force_cpu: bool = False) -> str:
    """
    Determine the best available device for model execution.

    Args:
        model_config: Model configuration; an explicit device wins
        force_cpu: Skip accelerator detection

    Returns:
        str: 'cuda' if an NVIDIA GPU is available, 'mps' for Apple Silicon, or 'cpu' as fallback
    """
    if force_cpu:
        logger.info("CPU execution forced")
        return "cpu"

    if model_config is not None and model_config.device:
        logger.info(f"Using device from configuration: {model_config.device}")
        return model_config.device

    if torch.cuda.is_available():
        logger.info(f"Auto-detected CUDA device: {torch.cuda.get_device_name(0)}")
        return "cuda"
    elif hasattr(torch.backends, "mps") and torch.backends.mps.is_available():
        logger.info("Auto-detected Apple Silicon MPS device")
        return "mps"

    logger.info("No GPU detected, using CPU device")
    return "cpu"


def get_device_dtype(device: str, model_config: Optional[ModelConfig] = None) -> torch.dtype:
    """
    Determine the appropriate dtype based on the device.

    Args:
        device: Device string ('cuda', 'mps', 'cpu')
        model_config: Model configuration; an explicit torch_dtype wins

    Returns:
        torch.dtype: bfloat16 on CUDA, float32 elsewhere, unless configured
    """
    if model_config is not None and model_config.torch_dtype:
        dtype = DTYPES[model_config.torch_dtype]
        logger.info(f"Using dtype from configuration: {dtype}")
        return dtype

    if device == "cuda":
        return torch.bfloat16
    return torch.float32


def describe_backend() -> Dict[str, Any]:
    """
    Report the compute capabilities available to torch.

    Returns:
        Dict with CPU capability, accelerator availability, and thread count
    """
    cpu_capability = "unknown"
    if hasattr(torch.backends, "cpu") and hasattr(torch.backends.cpu, "get_cpu_capability"):
        cpu_capability = torch.backends.cpu.get_cpu_capability()

    return {
        "torch_version": torch.__version__,
        "cpu_capability": cpu_capability,
        "cuda": torch.cuda.is_available(),
        "mps": hasattr(torch.backends, "mps") and torch.backends.mps.is_available(),
        "num_threads": torch.get_num_threads(),
    }


def resolve_seed(seed: Optional[int] = None) -> int:
    """
    Return the session seed, drawing a random one when none was given.

    Args:
        seed: Explicit seed, or None

    Returns:
        int: Seed to use for the whole session
    """
    if seed is not None:
        return seed

    seed = int(np.random.default_rng().integers(0, 2**63 - 1))
    logger.info(f"Generated random seed: {seed}")
    return seed


@handle_model_errors(
    error_message="Failed to load model", error_code=ErrorCode.MODEL_LOAD_FAILED
)
def load_model_and_tokenizer(
    model_config: ModelConfig,
    device: str,
    torch_dtype: torch.dtype,
) -> Tuple[PreTrainedModel, PreTrainedTokenizerBase]:
    """
    Load a causal language model and its tokenizer.

    ``weight_file`` replaces ``model_id`` as the checkpoint location when set,
    and ``tokenizer_file`` loads a standalone ``tokenizer.json`` instead of the
    hub tokenizer.

    Args:
        model_config: Model configuration section
        device: Device to place the model on
        torch_dtype: Data type for the model weights

    Returns:
        Tuple of (model, tokenizer)

    Raises:
        ModelError: If the model or tokenizer cannot be loaded
    """
    assert device in SUPPORTED_DEVICES, f"Unsupported device: {device}"

    model_path = model_config.weight_file or model_config.model_id
    hub_args = {
        "revision": model_config.revision,
        "cache_dir": model_config.cache_dir,
        "trust_remote_code": model_config.trust_remote_code,
    }

    logger.info(
        f"Loading model: {model_path} (revision: {model_config.revision}) "
        f"on device: {device} with dtype: {torch_dtype}"
    )

    tokenizer_start = time.time()
    if model_config.tokenizer_file:
        tokenizer = PreTrainedTokenizerFast(tokenizer_file=model_config.tokenizer_file)
    else:
        tokenizer = AutoTokenizer.from_pretrained(model_config.model_id, **hub_args)
    logger.info(f"Loaded tokenizer in {time.time() - tokenizer_start:.2f}s")

    model_load_start = time.time()
    model = AutoModelForCausalLM.from_pretrained(
        model_path,
        torch_dtype=torch_dtype,
        **hub_args,
    )
    model = model.to(device)
    model.eval()
    logger.info(f"Loaded model in {time.time() - model_load_start:.2f}s")

    return model, tokenizer
