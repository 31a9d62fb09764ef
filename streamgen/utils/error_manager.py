"""
Error management for streamgen.

This module provides a centralized error handling system with standardized
error classes, error codes, and severity levels. Severity decides how far an
error travels: CRITICAL errors end the session, everything else only aborts
the current prompt.
"""

import traceback
import inspect
import logging
from enum import Enum
from typing import Dict, List, Any, Optional
from dataclasses import dataclass

# Configure module logger
logger = logging.getLogger("streamgen-error")


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    CRITICAL = "CRITICAL"  # Session cannot continue
    ERROR = "ERROR"  # Prompt failed, session continues
    WARNING = "WARNING"  # Potentially problematic situation
    INFO = "INFO"  # Informational message about an error


class ErrorCategory(Enum):
    """Categories for errors to help with grouping and filtering."""

    MODEL = "MODEL"
    TOKENIZE = "TOKENIZE"
    GENERATION = "GENERATION"
    SAMPLING = "SAMPLING"
    UNKNOWN = "UNKNOWN"


class ErrorCode(Enum):
    """
    Standard error codes for streamgen.

    Format: CATEGORY_DESCRIPTION
    Example: MODEL_LOAD_FAILED
    """

    # Model errors
    MODEL_LOAD_FAILED = "MODEL_LOAD_FAILED"
    MODEL_FORWARD_FAILED = "MODEL_FORWARD_FAILED"

    # Tokenization errors
    TOKENIZE_FAILED = "TOKENIZE_FAILED"
    TOKENIZE_EMPTY_PROMPT = "TOKENIZE_EMPTY_PROMPT"
    TOKENIZE_UNKNOWN_SPECIAL_TOKEN = "TOKENIZE_UNKNOWN_SPECIAL_TOKEN"
    TOKENIZE_DECODE_FAILED = "TOKENIZE_DECODE_FAILED"

    # Sampling errors
    SAMPLING_DEGENERATE_LOGITS = "SAMPLING_DEGENERATE_LOGITS"

    # General errors
    GENERATION_FAILED = "GENERATION_FAILED"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"

    @classmethod
    def get_category(cls, code: "ErrorCode") -> ErrorCategory:
        """Get the category for an error code."""
        code_str = code.value
        for category in ErrorCategory:
            if code_str.startswith(category.name):
                return category
        return ErrorCategory.UNKNOWN


@dataclass
class ErrorContext:
    """
    Context information for an error.

    Records where in the code an error was raised.
    """

    module: str
    function: str
    line_number: int
    file_path: str
    call_stack: List[str]
    additional_info: Dict[str, Any] = None

    @classmethod
    def current(cls, stack_depth: int = 2) -> "ErrorContext":
        """
        Create an ErrorContext from the current execution context.

        Args:
            stack_depth: How far up the stack to look for caller information

        Returns:
            ErrorContext: Context information for the current execution point
        """
        frame = inspect.currentframe()
        try:
            for _ in range(stack_depth):
                frame = frame.f_back
                if frame is None:
                    break

            if frame is None:
                return cls(
                    module="unknown",
                    function="unknown",
                    line_number=-1,
                    file_path="unknown",
                    call_stack=traceback.format_stack(),
                    additional_info={},
                )

            frameinfo = inspect.getframeinfo(frame)
            module = inspect.getmodule(frame)
            module_name = module.__name__ if module else "unknown"

            return cls(
                module=module_name,
                function=frameinfo.function,
                line_number=frameinfo.lineno,
                file_path=frameinfo.filename,
                call_stack=traceback.format_stack(),
                additional_info={},
            )
        finally:
            # Drop the frame reference to avoid reference cycles
            del frame


class StreamgenError(Exception):
    """
    Base exception class for streamgen.

    Carries an error code, a severity, the raising location, and the
    original exception when one is wrapped.
    """

    default_code = ErrorCode.UNKNOWN_ERROR
    default_severity = ErrorSeverity.ERROR

    def __init__(
        self,
        message: str,
        code: Optional[ErrorCode] = None,
        severity: Optional[ErrorSeverity] = None,
        context: Optional[ErrorContext] = None,
        cause: Optional[Exception] = None,
        **kwargs,
    ):
        """
        Initialize a StreamgenError.

        Args:
            message: Error message
            code: Error code (defaults to the class's code)
            severity: Error severity level (defaults to the class's severity)
            context: Error context information
            cause: Original exception that caused this error
            **kwargs: Additional context information to add to error
        """
        self.message = message
        self.code = code or self.default_code
        self.severity = severity or self.default_severity
        self.cause = cause

        self.context = context or ErrorContext.current()

        if kwargs:
            if self.context.additional_info is None:
                self.context.additional_info = {}
            self.context.additional_info.update(kwargs)

        full_message = f"{self.code.value}: {message}"
        if cause:
            full_message += f" (Caused by: {type(cause).__name__}: {str(cause)})"

        super().__init__(full_message)

        self._log_error()

    @property
    def is_session_fatal(self) -> bool:
        """Whether the error must end the interactive session."""
        return self.severity == ErrorSeverity.CRITICAL

    @property
    def category(self) -> ErrorCategory:
        return ErrorCode.get_category(self.code)

    def _log_error(self):
        """Log the error based on its severity."""
        log_message = self._format_for_logging()

        if self.severity == ErrorSeverity.CRITICAL:
            logger.critical(log_message)
        elif self.severity == ErrorSeverity.ERROR:
            logger.error(log_message)
        elif self.severity == ErrorSeverity.WARNING:
            logger.warning(log_message)
        else:
            logger.info(log_message)

    def _format_for_logging(self) -> str:
        """Format the error for logging."""
        parts = [f"ERROR [{self.code.value}] ({self.severity.value}): {self.message}"]

        if self.context:
            parts.append(
                f"Location: {self.context.module}.{self.context.function} ({self.context.file_path}:{self.context.line_number})"
            )

            if self.context.additional_info:
                parts.append("Additional Info:")
                for key, value in self.context.additional_info.items():
                    parts.append(f"  {key}: {value}")

        if self.cause:
            parts.append(f"Caused by: {type(self.cause).__name__}: {str(self.cause)}")

            if self.cause.__traceback__:
                parts.append("Cause Traceback:")
                for line in traceback.format_tb(self.cause.__traceback__):
                    parts.append(f"  {line.rstrip()}")

        return "\n".join(parts)

    def to_dict(self) -> Dict[str, Any]:
        """Convert the error to a dictionary for serialization."""
        result = {
            "code": self.code.value,
            "message": self.message,
            "severity": self.severity.value,
        }

        if self.context:
            result["context"] = {
                "module": self.context.module,
                "function": self.context.function,
                "line_number": self.context.line_number,
                "file_path": self.context.file_path,
            }

            if self.context.additional_info:
                result["additional_info"] = self.context.additional_info

        if self.cause:
            result["cause"] = {
                "type": type(self.cause).__name__,
                "message": str(self.cause),
            }

        return result


# Specific error classes


class ModelError(StreamgenError):
    """Model or tokenizer could not be loaded."""

    default_code = ErrorCode.MODEL_LOAD_FAILED
    default_severity = ErrorSeverity.CRITICAL


class ModelForwardError(ModelError):
    """A forward pass failed; the cache state can no longer be trusted."""

    default_code = ErrorCode.MODEL_FORWARD_FAILED


class TokenizationError(StreamgenError):
    """Prompt text could not be encoded or a token could not be decoded."""

    default_code = ErrorCode.TOKENIZE_FAILED


class EmptyPromptError(TokenizationError):
    """The prompt encoded to zero tokens."""

    default_code = ErrorCode.TOKENIZE_EMPTY_PROMPT


class UnknownSpecialTokenError(TokenizationError):
    """A required special token is missing from the vocabulary."""

    default_code = ErrorCode.TOKENIZE_UNKNOWN_SPECIAL_TOKEN
    default_severity = ErrorSeverity.CRITICAL


class SamplingError(StreamgenError):
    """Logits are empty or contain no finite value to select from."""

    default_code = ErrorCode.SAMPLING_DEGENERATE_LOGITS
