"""
Exception handling utilities for streamgen.

This module provides decorators that translate third-party exceptions
(torch, transformers, tokenizers) into the streamgen error taxonomy.
Errors that are already StreamgenErrors pass through untouched.
"""

import functools
from typing import Any, Callable, Type, TypeVar

from streamgen.utils.error_manager import (
    StreamgenError, ErrorCode, ErrorContext,
    ModelError, TokenizationError,
)

# Type variable for generic function return type
T = TypeVar("T")


def handle_exceptions(
    error_message: str = "An error occurred",
    error_code: ErrorCode = ErrorCode.UNKNOWN_ERROR,
    error_class: Type[StreamgenError] = StreamgenError,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Decorator for wrapping exceptions in a standardized way.

    Args:
        error_message: Message for the wrapping error
        error_code: Error code for the wrapping error
        error_class: Error class for the wrapping error

    Returns:
        Decorated function
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> T:
            try:
                return func(*args, **kwargs)
            except StreamgenError:
                raise
            except Exception as e:
                func_name = getattr(func, "__qualname__", "unknown")
                module_name = getattr(func, "__module__", "unknown")

                raise error_class(
                    message=f"{error_message} in {module_name}.{func_name}",
                    code=error_code,
                    cause=e,
                    context=ErrorContext.current(),
                ) from e

        return wrapper
    return decorator


def handle_model_errors(error_message: str = "Model operation failed", **kwargs: Any):
    """
    Decorator for handling model-related errors.

    Args:
        error_message: Error message
        **kwargs: Additional arguments for handle_exceptions
    """
    kwargs.setdefault("error_code", ErrorCode.MODEL_LOAD_FAILED)
    kwargs.setdefault("error_class", ModelError)

    return handle_exceptions(error_message=error_message, **kwargs)


def handle_tokenization_errors(error_message: str = "Tokenization failed", **kwargs: Any):
    """
    Decorator for handling tokenization-related errors.

    Args:
        error_message: Error message
        **kwargs: Additional arguments for handle_exceptions
    """
    kwargs.setdefault("error_code", ErrorCode.TOKENIZE_FAILED)
    kwargs.setdefault("error_class", TokenizationError)

    return handle_exceptions(error_message=error_message, **kwargs)
