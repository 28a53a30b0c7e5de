# Centralized error handling utilities
"""
Provides consistent error handling patterns across the pipeline.

This module defines:
- Custom exception classes for the buffer, adjustment, drawing and export layers
- An error handling decorator for listener callbacks
- Utility functions for error logging and user messaging
"""

import functools
import traceback
from typing import Any, Callable, Optional, Tuple, TypeVar, Union
from enum import Enum

from .logger import get_logger

logger = get_logger(__name__)

# Type variable for generic function signatures
F = TypeVar('F', bound=Callable[..., Any])


class ErrorCategory(Enum):
    """Categories of errors for consistent handling."""
    RECOVERABLE = "recoverable"      # Can continue, e.g. retry later
    USER_INPUT = "user_input"        # Invalid adjustment or request
    FILE_IO = "file_io"              # Decode/encode and file system errors
    PROCESSING = "processing"        # Pipeline or drawing errors
    CONFIGURATION = "configuration"  # Settings/config errors
    FATAL = "fatal"                  # Broken internal invariant


class AppError(Exception):
    """Base exception for pipeline errors."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.RECOVERABLE,
        original_error: Optional[Exception] = None,
        user_message: Optional[str] = None,
    ):
        super().__init__(message)
        self.category = category
        self.original_error = original_error
        self.user_message = user_message or message

    def __str__(self) -> str:
        if self.original_error:
            return f"{self.args[0]} (caused by: {type(self.original_error).__name__})"
        return self.args[0]


class FileIOError(AppError):
    """File I/O related errors."""

    def __init__(self, message: str, file_path: Optional[str] = None, **kwargs):
        super().__init__(message, category=ErrorCategory.FILE_IO, **kwargs)
        self.file_path = file_path


class ProcessingError(AppError):
    """Pixel pipeline errors."""

    def __init__(self, message: str, step: Optional[str] = None, **kwargs):
        kwargs.setdefault('category', ErrorCategory.PROCESSING)
        super().__init__(message, **kwargs)
        self.step = step


class InvalidAdjustmentError(AppError):
    """An adjustment field is unknown or its value lies outside the field's domain."""

    def __init__(
        self,
        message: str,
        field_name: Optional[str] = None,
        allowed: Optional[Tuple[Any, Any]] = None,
        **kwargs,
    ):
        super().__init__(message, category=ErrorCategory.USER_INPUT, **kwargs)
        self.field_name = field_name
        self.allowed = allowed


class BufferMismatchError(ProcessingError):
    """A pixel buffer is malformed or its dimensions disagree with the session."""

    def __init__(
        self,
        message: str,
        expected: Optional[Tuple[int, ...]] = None,
        actual: Optional[Tuple[int, ...]] = None,
        **kwargs,
    ):
        kwargs.setdefault('category', ErrorCategory.FATAL)
        super().__init__(message, step="buffers", **kwargs)
        self.expected = expected
        self.actual = actual


class SurfaceUnavailableError(ProcessingError):
    """No presentation surface is attached; nothing was drawn."""

    def __init__(self, message: str = "No presentation surface is attached", **kwargs):
        kwargs.setdefault('user_message', "The preview surface is not ready yet.")
        super().__init__(message, step="compositor", **kwargs)


class OperationInProgressError(AppError):
    """A buffer operation was requested while another one is still running."""

    def __init__(self, operation: str, running: Optional[str] = None, **kwargs):
        message = f"Cannot start '{operation}' while '{running or 'another operation'}' is in progress"
        kwargs.setdefault('user_message', "Please wait for the current operation to finish.")
        super().__init__(message, category=ErrorCategory.RECOVERABLE, **kwargs)
        self.operation = operation
        self.running = running


class ExportError(AppError):
    """Encoding the rendered image failed (including the fallback encoder)."""

    def __init__(self, message: str, image_format: Optional[str] = None, **kwargs):
        kwargs.setdefault('user_message', "The image could not be exported.")
        super().__init__(message, category=ErrorCategory.FILE_IO, **kwargs)
        self.image_format = image_format


def handle_errors(
    fallback_value: Any = None,
    category: ErrorCategory = ErrorCategory.RECOVERABLE,
    log_level: str = "warning",
    reraise: bool = False,
    user_message: Optional[str] = None,
) -> Callable[[F], F]:
    """
    Decorator for consistent error handling.

    Args:
        fallback_value: Value to return on error (can be callable for dynamic fallback).
        category: Error category for logging context.
        log_level: Logging level ('debug', 'info', 'warning', 'error', 'exception').
        reraise: If True, re-raise the exception wrapped in an AppError after logging.
        user_message: Optional user-friendly message for UI display.

    Example:
        @handle_errors(fallback_value=None, category=ErrorCategory.PROCESSING)
        def notify(result):
            listener(result)
    """
    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except AppError:
                # Re-raise our custom errors
                raise
            except Exception as e:
                log_func = getattr(logger, log_level, logger.warning)
                log_func(
                    "%s failed in %s.%s: %s",
                    category.value,
                    func.__module__,
                    func.__name__,
                    str(e),
                )

                if log_level == "exception":
                    logger.debug("Full traceback:\n%s", traceback.format_exc())

                if reraise:
                    raise AppError(
                        str(e),
                        category=category,
                        original_error=e,
                        user_message=user_message,
                    ) from e

                if callable(fallback_value):
                    return fallback_value()
                return fallback_value

        return wrapper  # type: ignore
    return decorator


def log_and_continue(
    message: str,
    category: ErrorCategory = ErrorCategory.RECOVERABLE,
    level: str = "warning",
) -> None:
    """
    Log a non-fatal condition and continue execution.

    Args:
        message: Message to log.
        category: Error category for context.
        level: Log level.
    """
    log_func = getattr(logger, level, logger.warning)
    log_func("[%s] %s", category.value, message)


def format_user_error(error: Union[Exception, str], context: Optional[str] = None) -> str:
    """
    Format an error message for user display.

    Args:
        error: The error or error message.
        context: Optional context about what operation failed.

    Returns:
        User-friendly error message.
    """
    if isinstance(error, AppError):
        return error.user_message

    error_str = str(error)

    if "No such file or directory" in error_str:
        return f"File not found{f' while {context}' if context else ''}"
    if "Permission denied" in error_str:
        return f"Permission denied{f' while {context}' if context else ''}"
    if "out of memory" in error_str.lower():
        return "Not enough memory to complete this operation. Try with a smaller image."

    if context:
        return f"Error {context}: {error_str}"
    return f"An error occurred: {error_str}"
