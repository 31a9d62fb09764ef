"""
Logging utilities for streamgen.

This module provides the mixin that components use to obtain a named logger
and a debug-gated ``log`` method.
"""

from typing import Optional

from streamgen.utils.config_manager import get_debug_mode
from streamgen.utils.logger import get_logger


class LoggingMixin:
    """
    Mixin class to provide consistent logging functionality.

    Usage:
        class MyClass(LoggingMixin):
            def __init__(self):
                super().__init__()
                self.setup_logging("my_class")

            def my_method(self):
                self.log("This is a log message")
    """

    VALID_LEVELS = ["info", "debug", "warning", "error", "critical"]

    def setup_logging(
        self,
        logger_name: str,
        debug_mode: Optional[bool] = None,
    ):
        """
        Set up logging for this class.

        Args:
            logger_name: Name of the logger
            debug_mode: Whether to enable debug mode (overrides config if provided)
        """
        if debug_mode is None:
            debug_mode = get_debug_mode(logger_name)

        self._streamgen_logger = get_logger(logger_name)
        self.logger = self._streamgen_logger.logger
        self.debug_mode = debug_mode

    def log(self, message: str, level: str = "info", **kwargs):
        """
        Log a message if debug mode is enabled.

        Args:
            message: Message to log
            level: Log level (info, debug, warning, error, critical)
            **kwargs: Additional context key-value pairs
        """
        if level not in self.VALID_LEVELS:
            raise ValueError(
                f"Invalid log level: {level}. Must be one of {self.VALID_LEVELS}"
            )

        if not getattr(self, "debug_mode", False):
            return

        getattr(self._streamgen_logger, level)(message, **kwargs)

    def set_debug_mode(self, enabled: bool = True):
        """
        Enable or disable debug mode.

        Args:
            enabled: Whether to enable debug mode
        """
        assert isinstance(enabled, bool), "Debug mode must be a boolean"
        old_mode = getattr(self, "debug_mode", False)
        self.debug_mode = enabled

        if hasattr(self, "_streamgen_logger") and old_mode != enabled:
            state = "enabled" if enabled else "disabled"
            self._streamgen_logger.info(f"Debug mode {state}")

    def operation(self, operation_name: str, **kwargs):
        """Create a context manager for tracking operations."""
        return self._streamgen_logger.operation(operation_name, **kwargs)
