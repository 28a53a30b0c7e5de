"""Tests for error types, the handle_errors decorator and logging helpers."""

import logging

import pytest

from pixel_pipeline.utils import logger as logger_module
from pixel_pipeline.utils.errors import (
    AppError,
    BufferMismatchError,
    ErrorCategory,
    ExportError,
    FileIOError,
    InvalidAdjustmentError,
    OperationInProgressError,
    ProcessingError,
    SurfaceUnavailableError,
    format_user_error,
    handle_errors,
    log_and_continue,
)


class TestAppError:
    """Tests for AppError base class."""

    def test_basic_error(self):
        """Basic error creation should work."""
        error = AppError("Test error")
        assert str(error) == "Test error"
        assert error.category == ErrorCategory.RECOVERABLE
        assert error.user_message == "Test error"

    def test_error_with_original(self):
        """Wrapping an exception names its type."""
        original = ValueError("Original error")
        error = AppError("Wrapped error", original_error=original)
        assert error.original_error is original
        assert "ValueError" in str(error)

    def test_error_with_user_message(self):
        error = AppError("Technical error details", user_message="Please try again.")
        assert error.user_message == "Please try again."


class TestSpecificErrors:
    """Tests for specific error types."""

    def test_file_io_error(self):
        """FileIOError should include file path."""
        error = FileIOError("File not found", file_path="/path/to/file.jpg")
        assert error.category == ErrorCategory.FILE_IO
        assert error.file_path == "/path/to/file.jpg"

    def test_processing_error(self):
        error = ProcessingError("Processing failed", step="blur")
        assert error.category == ErrorCategory.PROCESSING
        assert error.step == "blur"

    def test_invalid_adjustment(self):
        """Out-of-range values carry the field and its domain."""
        error = InvalidAdjustmentError("too big", field_name="contrast", allowed=(-100, 100))
        assert error.category == ErrorCategory.USER_INPUT
        assert error.field_name == "contrast"
        assert error.allowed == (-100, 100)

    def test_buffer_mismatch_is_fatal(self):
        """A broken buffer invariant is a fatal processing error."""
        error = BufferMismatchError("bad", expected=(2, 2, 4), actual=(2, 2, 3))
        assert isinstance(error, ProcessingError)
        assert error.category == ErrorCategory.FATAL
        assert error.step == "buffers"

    def test_surface_unavailable(self):
        error = SurfaceUnavailableError()
        assert error.step == "compositor"
        assert "surface" in str(error)

    def test_operation_in_progress(self):
        """The message names both operations."""
        error = OperationInProgressError("crop", running="export")
        assert error.category == ErrorCategory.RECOVERABLE
        assert "crop" in str(error) and "export" in str(error)

    def test_export_error(self):
        error = ExportError("encode failed", image_format="webp")
        assert error.category == ErrorCategory.FILE_IO
        assert error.image_format == "webp"


class TestHandleErrorsDecorator:
    """Tests for handle_errors decorator."""

    def test_successful_function(self):
        """Decorator should not affect successful functions."""
        @handle_errors(fallback_value=None)
        def successful_func():
            return "success"

        assert successful_func() == "success"

    def test_fallback_on_error(self):
        @handle_errors(fallback_value="fallback")
        def failing_func():
            raise ValueError("Test error")

        assert failing_func() == "fallback"

    def test_callable_fallback(self):
        @handle_errors(fallback_value=lambda: "dynamic fallback")
        def failing_func():
            raise ValueError("Test error")

        assert failing_func() == "dynamic fallback"

    def test_reraise_option(self):
        """reraise wraps foreign exceptions in AppError."""
        @handle_errors(fallback_value=None, reraise=True)
        def failing_func():
            raise ValueError("Test error")

        with pytest.raises(AppError) as exc_info:
            failing_func()
        assert isinstance(exc_info.value.original_error, ValueError)

    def test_app_errors_pass_through(self):
        """Our own errors are never swallowed."""
        @handle_errors(fallback_value="fallback")
        def failing_func():
            raise ProcessingError("pipeline broke")

        with pytest.raises(ProcessingError):
            failing_func()

    def test_preserves_function_metadata(self):
        @handle_errors(fallback_value=None)
        def documented_func():
            """This is a docstring."""
            return "result"

        assert documented_func.__name__ == "documented_func"
        assert "docstring" in documented_func.__doc__


class TestFormatUserError:
    """Tests for format_user_error function."""

    def test_format_app_error(self):
        error = AppError("Technical details", user_message="User friendly message")
        assert format_user_error(error) == "User friendly message"

    def test_format_file_not_found(self):
        error = FileNotFoundError("No such file or directory: '/path/to/file'")
        result = format_user_error(error, context="loading image")
        assert "File not found" in result
        assert "loading image" in result

    def test_format_permission_denied(self):
        error = PermissionError("Permission denied: '/path/to/file'")
        assert "Permission denied" in format_user_error(error)

    def test_format_memory_error(self):
        assert "memory" in format_user_error(MemoryError("Out of memory")).lower()

    def test_format_generic_error(self):
        result = format_user_error(RuntimeError("Something went wrong"), context="exporting")
        assert "exporting" in result
        assert "Something went wrong" in result


class TestLogAndContinue:
    """Tests for log_and_continue function."""

    def test_accepts_all_categories(self):
        """Should accept every category without raising."""
        for category in ErrorCategory:
            log_and_continue(f"Test {category.value}", category)


class TestLogger:
    """Tests for logger configuration."""

    def test_get_logger_single_handler(self):
        """Repeated lookups do not stack handlers."""
        first = logger_module.get_logger("pixel_pipeline.test_handlers")
        second = logger_module.get_logger("pixel_pipeline.test_handlers")
        assert first is second
        assert len(second.handlers) == 1
        assert not second.propagate

    def test_set_level(self):
        """set_level updates existing pipeline loggers."""
        log = logger_module.get_logger("pixel_pipeline.test_level")
        previous = logger_module.log_level
        try:
            logger_module.set_level("debug")
            assert log.level == logging.DEBUG
        finally:
            logger_module.set_level(logging.getLevelName(previous))

    def test_set_level_unknown(self):
        with pytest.raises(ValueError):
            logger_module.set_level("chatty")
