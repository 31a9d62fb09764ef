"""
Configuration Manager for streamgen.

This module provides a centralized configuration system for the generation
driver. Settings come from default values, a JSON file, and environment
variables, with validation on every section.
"""

import os
import json
import typing
from typing import Dict, Any, Optional, Union
from pathlib import Path
from dataclasses import dataclass, field, fields, asdict

from streamgen.domain.entities.generation_config import SamplingConfig, PenaltyConfig

ENV_PREFIX = "STREAMGEN_"
TRUE_VALUES = ["true", "1", "yes"]


class ConfigurationError(Exception):
    """Exception raised for configuration errors."""

    pass


@dataclass
class LoggingConfig:
    """Configuration settings for logging."""

    enable_file_logging: bool = False
    log_dir: str = field(default_factory=lambda: os.path.join(os.getcwd(), "logs"))
    log_level: str = "INFO"
    console_logging: bool = True

    def __post_init__(self):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if self.log_level.upper() not in valid_levels:
            raise ConfigurationError(
                f"Invalid log level: {self.log_level}. Must be one of {valid_levels}"
            )

        self.log_level = self.log_level.upper()


@dataclass
class ModelConfig:
    """Configuration settings for model and tokenizer loading."""

    model_id: str = "THUDM/codegeex4-all-9b"
    revision: str = "main"
    cache_dir: str = "."
    weight_file: Optional[str] = None  # local checkpoint overriding model_id
    tokenizer_file: Optional[str] = None  # tokenizer.json overriding the hub tokenizer
    device: Optional[str] = None  # None means auto-detect
    torch_dtype: Optional[str] = None  # None, "float16", "bfloat16", "float32"
    trust_remote_code: bool = True

    def __post_init__(self):
        """Validate model configuration."""
        valid_devices = [None, "cpu", "cuda", "mps"]
        if self.device not in valid_devices:
            raise ConfigurationError(
                f"Invalid device: {self.device}. Must be one of {valid_devices}"
            )

        valid_dtypes = [None, "float16", "bfloat16", "float32"]
        if self.torch_dtype not in valid_dtypes:
            raise ConfigurationError(
                f"Invalid torch_dtype: {self.torch_dtype}. Must be one of {valid_dtypes}"
            )


@dataclass
class GenerationConfig:
    """Configuration settings for text generation."""

    temperature: Optional[float] = None  # None means greedy decoding
    top_p: Optional[float] = None
    seed: Optional[int] = None  # None means a random seed is drawn per run
    repeat_penalty: float = 1.1
    repeat_last_n: int = 64
    sample_len: int = 5000
    verbose: bool = False
    eos_token: str = "<|endoftext|>"

    def __post_init__(self):
        """Validate generation configuration."""
        if self.temperature is not None and self.temperature < 0:
            raise ConfigurationError(
                f"temperature must be >= 0, got {self.temperature}"
            )

        if self.top_p is not None and not 0 < self.top_p <= 1:
            raise ConfigurationError(f"top_p must be in (0, 1], got {self.top_p}")

        if self.repeat_penalty <= 0:
            raise ConfigurationError(
                f"repeat_penalty must be > 0, got {self.repeat_penalty}"
            )

        if self.repeat_last_n < 0:
            raise ConfigurationError(
                f"repeat_last_n must be >= 0, got {self.repeat_last_n}"
            )

        if self.sample_len < 0:
            raise ConfigurationError(f"sample_len must be >= 0, got {self.sample_len}")

        if not self.eos_token:
            raise ConfigurationError("eos_token cannot be empty")


@dataclass
class DebugConfig:
    """Configuration settings for debugging."""

    global_debug: bool = False
    module_debug: Dict[str, bool] = field(default_factory=dict)

    def is_debug_enabled(self, module_name: str) -> bool:
        """
        Check if debug is enabled for a module.

        Args:
            module_name: Name of the module

        Returns:
            bool: Whether debug is enabled for the module
        """
        env_var = f"{ENV_PREFIX}DEBUG_{module_name.upper()}"
        if env_var in os.environ:
            return os.environ[env_var].lower() in TRUE_VALUES

        if module_name in self.module_debug:
            return self.module_debug[module_name]

        return self.global_debug


def _coerce(field_type: Any, raw_value: str) -> Any:
    """Convert an environment string to the declared type of a config field."""
    if typing.get_origin(field_type) is Union:
        if raw_value.lower() in ["", "none", "null"]:
            return None
        field_type = next(t for t in typing.get_args(field_type) if t is not type(None))

    if field_type is bool:
        return raw_value.lower() in TRUE_VALUES
    if field_type is int:
        return int(raw_value)
    if field_type is float:
        return float(raw_value)
    return raw_value


def _update_section(section: Any, values: Dict[str, Any]) -> Any:
    """Return a re-validated copy of a config section with values applied."""
    current = asdict(section)
    for key, value in values.items():
        if key in current:
            current[key] = value
    return type(section)(**current)


@dataclass
class StreamgenConfig:
    """
    Central configuration class for streamgen.

    Holds every setting of the generation driver in a structured way.
    """

    logging: LoggingConfig = field(default_factory=LoggingConfig)
    model: ModelConfig = field(default_factory=ModelConfig)
    generation: GenerationConfig = field(default_factory=GenerationConfig)
    debug: DebugConfig = field(default_factory=DebugConfig)

    SECTIONS = ("logging", "model", "generation")

    @classmethod
    def from_env(cls, base: Optional["StreamgenConfig"] = None) -> "StreamgenConfig":
        """
        Create a configuration instance from environment variables.

        Variables are named ``STREAMGEN_<SECTION>_<KEY>``, for example
        ``STREAMGEN_GENERATION_TOP_P=0.9``.

        Args:
            base: Configuration to start from (defaults to built-in defaults)

        Returns:
            StreamgenConfig: Configuration with environment overrides applied
        """
        config = base or cls()
        updates: Dict[str, Dict[str, Any]] = {name: {} for name in cls.SECTIONS}

        for env_name, env_value in os.environ.items():
            if not env_name.startswith(ENV_PREFIX):
                continue

            if env_name == f"{ENV_PREFIX}DEBUG":
                config.debug.global_debug = env_value.lower() in TRUE_VALUES
                continue

            if env_name.startswith(f"{ENV_PREFIX}DEBUG_"):
                module_name = env_name.replace(f"{ENV_PREFIX}DEBUG_", "", 1).lower()
                config.debug.module_debug[module_name] = env_value.lower() in TRUE_VALUES
                continue

            parts = env_name.replace(ENV_PREFIX, "", 1).lower().split("_", 1)
            if len(parts) != 2 or parts[0] not in cls.SECTIONS:
                continue

            section_name, key = parts
            section = getattr(config, section_name)
            hints = typing.get_type_hints(type(section))
            if key not in {f.name for f in fields(section)}:
                continue

            try:
                updates[section_name][key] = _coerce(hints[key], env_value)
            except ValueError as e:
                raise ConfigurationError(f"Invalid value for {env_name}: {e}")

        for section_name, values in updates.items():
            if values:
                setattr(
                    config,
                    section_name,
                    _update_section(getattr(config, section_name), values),
                )

        return config

    @classmethod
    def from_file(cls, file_path: Union[str, Path]) -> "StreamgenConfig":
        """
        Load configuration from a JSON file.

        Args:
            file_path: Path to the JSON configuration file

        Returns:
            StreamgenConfig: Configuration instance with values from the file
        """
        file_path = Path(file_path)
        if not file_path.exists():
            raise ConfigurationError(f"Configuration file not found: {file_path}")

        try:
            with file_path.open("r") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in configuration file: {e}")

        config = cls()
        for section_name, section_data in data.items():
            if section_name != "debug" and section_name not in cls.SECTIONS:
                continue
            if not isinstance(section_data, dict):
                raise ConfigurationError(
                    f"Section '{section_name}' in {file_path} must be an object"
                )

            try:
                if section_name == "debug":
                    config.debug = DebugConfig(**section_data)
                else:
                    setattr(
                        config,
                        section_name,
                        _update_section(getattr(config, section_name), section_data),
                    )
            except TypeError as e:
                raise ConfigurationError(
                    f"Invalid '{section_name}' settings in {file_path}: {e}"
                )

        return config

    def with_overrides(self, section_name: str, **values: Any) -> "StreamgenConfig":
        """
        Apply non-None overrides (typically command-line flags) to one section.

        Args:
            section_name: Section to update
            **values: Field values; None entries are ignored

        Returns:
            StreamgenConfig: This instance, updated in place
        """
        if section_name not in self.SECTIONS:
            raise ConfigurationError(f"Unknown configuration section: {section_name}")

        present = {k: v for k, v in values.items() if v is not None}
        setattr(
            self, section_name, _update_section(getattr(self, section_name), present)
        )
        return self

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert configuration to a dictionary.

        Returns:
            Dict[str, Any]: Configuration as a nested dictionary
        """
        return {
            "logging": asdict(self.logging),
            "model": asdict(self.model),
            "generation": asdict(self.generation),
            "debug": {
                "global_debug": self.debug.global_debug,
                "module_debug": self.debug.module_debug,
            },
        }

    def save_to_file(self, file_path: Union[str, Path]) -> None:
        """
        Save configuration to a JSON file.

        Args:
            file_path: Path to save the configuration file
        """
        file_path = Path(file_path)
        file_path.parent.mkdir(parents=True, exist_ok=True)

        with file_path.open("w") as f:
            json.dump(self.to_dict(), f, indent=2)

    def to_sampling_config(self, seed: int) -> SamplingConfig:
        """Build the immutable sampling configuration for one session."""
        return SamplingConfig(
            temperature=self.generation.temperature,
            top_p=self.generation.top_p,
            seed=seed,
        )

    def to_penalty_config(self) -> PenaltyConfig:
        """Build the immutable repeat-penalty configuration for one session."""
        return PenaltyConfig(
            penalty=self.generation.repeat_penalty,
            last_n=self.generation.repeat_last_n,
        )

    def get_debug_mode(self, module_name: str) -> bool:
        """
        Get debug mode for a specific module.

        Args:
            module_name: Name of the module

        Returns:
            bool: Whether debug is enabled for the module
        """
        return self.debug.is_debug_enabled(module_name)


def _load_global_config() -> StreamgenConfig:
    """Environment configuration for the logging layer.

    Invalid values fall back to defaults here; the command line rebuilds the
    configuration and reports them.
    """
    try:
        return StreamgenConfig.from_env()
    except ConfigurationError:
        return StreamgenConfig()


# Global configuration instance used by the logging layer.
# The generation core receives its configuration explicitly.
config = _load_global_config()


def get_debug_mode(module_name: str) -> bool:
    """
    Get debug mode for a specific module.

    Args:
        module_name: Name of the module

    Returns:
        bool: Whether debug is enabled for the module
    """
    return config.get_debug_mode(module_name)
