"""
Logging system for streamgen.

This module provides structured logging with context tracking, optional
rotating file handlers, and an ``operation`` context manager that times and
reports a unit of work. Console output goes to stderr so that generated
text on stdout stays clean.
"""

import os
import sys
import time
import logging
import threading
from typing import Dict, Optional
from logging.handlers import RotatingFileHandler
from pathlib import Path
from datetime import datetime
from contextlib import contextmanager

from streamgen import __version__
from streamgen.utils.config_manager import config


# Thread local storage for context tracking
_thread_local = threading.local()

# Global context that applies to all threads
_global_context = {}


class ContextAwareFormatter(logging.Formatter):
    """
    Formatter that appends thread-local and global context to log records.
    """

    def format(self, record):
        """Format the log record with context information."""
        self._add_context_to_record(record)
        return super().format(record)

    def _add_context_to_record(self, record):
        """Add context information to the log record."""
        thread_context = getattr(_thread_local, "context", {})
        context = {**_global_context, **thread_context}

        for key, value in context.items():
            # Don't override existing record attributes
            if not hasattr(record, key):
                setattr(record, key, value)

        if context:
            context_items = [f"{key}={value}" for key, value in context.items()]
            record.context_str = " | " + " ".join(context_items)
        else:
            record.context_str = ""


class RotatingFileHandlerWithHeader(RotatingFileHandler):
    """
    RotatingFileHandler that writes a header when a new log file is created.
    """

    def __init__(self, filename, **kwargs):
        """Initialize the handler with a custom header function."""
        self.header_function = kwargs.pop("header_function", None)
        super().__init__(filename, **kwargs)

        if self.header_function and os.path.getsize(filename) == 0:
            self._write_header()

    def doRollover(self):
        """Write a header to the new log file after rollover."""
        super().doRollover()

        if self.header_function:
            self._write_header()

    def _write_header(self):
        """Write the header to the log file."""
        header = self.header_function()
        if header:
            self.stream.write(header + "\n")
            self.stream.flush()


class StreamgenLogger:
    """
    Logger for streamgen.

    Features:
    - Structured logging with context
    - Rotating file handlers
    - Context managers for tracking operations
    """

    def __init__(self, name: str, log_file: Optional[str] = None):
        """
        Initialize the logger.

        Args:
            name: Logger name
            log_file: Log file name (defaults to name.log in config.logging.log_dir)
        """
        self.name = name
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, config.logging.log_level, logging.INFO))
        self.logger.propagate = False

        for handler in list(self.logger.handlers):
            self.logger.removeHandler(handler)

        self._setup_handlers(log_file)

    def _setup_handlers(self, log_file: Optional[str]):
        """
        Set up log handlers.

        Args:
            log_file: Log file name
        """
        console_formatter = ContextAwareFormatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s%(context_str)s"
        )
        file_formatter = ContextAwareFormatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(pathname)s:%(lineno)d - %(message)s%(context_str)s"
        )

        if config.logging.console_logging:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setFormatter(console_formatter)
            self.logger.addHandler(console_handler)

        if config.logging.enable_file_logging:
            if log_file is None:
                log_file = f"{self.name.replace('.', '_')}.log"

            log_path = Path(config.logging.log_dir) / log_file
            log_path.parent.mkdir(parents=True, exist_ok=True)

            def header_function():
                return f"--- Log started at {datetime.now().isoformat()} ---\n" + \
                      f"--- streamgen logger: {self.name} ---\n" + \
                      f"--- App Version: {__version__} ---"

            file_handler = RotatingFileHandlerWithHeader(
                filename=str(log_path),
                maxBytes=10 * 1024 * 1024,  # 10 MB
                backupCount=5,
                header_function=header_function,
            )
            file_handler.setFormatter(file_formatter)
            self.logger.addHandler(file_handler)

    def _log(self, level: int, msg: str, *args, exc_info=None, stack_info=False,
             stacklevel=1, extra=None, **kwargs):
        """
        Log a message with the specified level and context.

        Args:
            level: Log level
            msg: Message to log
            *args: Arguments for string formatting
            exc_info: Exception info
            stack_info: Whether to include stack info
            stacklevel: Stack level for finding caller
            extra: Extra info for the log record
            **kwargs: Context key-value pairs to add
        """
        with self.context(**kwargs):
            self.logger.log(level, msg, *args, exc_info=exc_info, stack_info=stack_info,
                            stacklevel=stacklevel + 1, extra=extra)

    def debug(self, msg, *args, **kwargs):
        """Log a debug message."""
        self._log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg, *args, **kwargs):
        """Log an info message."""
        self._log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg, *args, **kwargs):
        """Log a warning message."""
        self._log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg, *args, **kwargs):
        """Log an error message."""
        self._log(logging.ERROR, msg, *args, **kwargs)

    def critical(self, msg, *args, **kwargs):
        """Log a critical message."""
        self._log(logging.CRITICAL, msg, *args, **kwargs)

    def exception(self, msg, *args, **kwargs):
        """Log an exception with traceback."""
        kwargs["exc_info"] = kwargs.get("exc_info", True)
        self._log(logging.ERROR, msg, *args, **kwargs)

    @contextmanager
    def context(self, **kwargs):
        """
        Context manager for adding temporary context to logs.

        Args:
            **kwargs: Context key-value pairs
        """
        if not hasattr(_thread_local, "context"):
            _thread_local.context = {}

        old_context = _thread_local.context.copy()
        _thread_local.context.update(kwargs)

        try:
            yield
        finally:
            _thread_local.context = old_context

    @contextmanager
    def operation(self, operation_name: str, level: int = logging.INFO):
        """
        Context manager for tracking and logging operations.

        Args:
            operation_name: Name of the operation
            level: Log level for start and completion messages
        """
        self._log(level, f"Starting operation: {operation_name}")
        start_time = time.time()

        try:
            yield
        except Exception as e:
            elapsed = time.time() - start_time
            self._log(logging.ERROR, f"Failed operation: {operation_name} after {elapsed:.3f}s - {str(e)}",
                      operation=operation_name, status="failed", error_type=type(e).__name__)
            raise

        elapsed = time.time() - start_time
        self._log(level, f"Completed operation: {operation_name} in {elapsed:.3f}s",
                  operation=operation_name, status="success")


def add_global_context(**kwargs):
    """
    Add context that will be included in all log records.

    Args:
        **kwargs: Context key-value pairs
    """
    _global_context.update(kwargs)


_loggers: Dict[str, StreamgenLogger] = {}


def get_logger(name: str) -> StreamgenLogger:
    """
    Get or create a logger by name.

    Args:
        name: Logger name

    Returns:
        StreamgenLogger: Logger instance
    """
    if name not in _loggers:
        _loggers[name] = StreamgenLogger(name)

    return _loggers[name]
