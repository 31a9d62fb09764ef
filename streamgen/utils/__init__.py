"""
Utilities module for streamgen.

This package provides configuration, logging, error handling, and model
loading helpers shared across the project.
"""

# Re-export the configuration manager for easy imports
from streamgen.utils.config_manager import config, StreamgenConfig, get_debug_mode

__all__ = ["config", "StreamgenConfig", "get_debug_mode"]
