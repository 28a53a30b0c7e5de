# This file makes the 'utils' directory a Python package.

from .errors import (
    AppError,
    FileIOError,
    ProcessingError,
    InvalidAdjustmentError,
    BufferMismatchError,
    SurfaceUnavailableError,
    OperationInProgressError,
    ExportError,
    ErrorCategory,
    handle_errors,
    log_and_continue,
    format_user_error,
)

from .history import HistoryStack, HistoryEntry
from .geometry import ASPECT_RATIOS, AspectRatio, CropRect, crop_image, fit_size, get_aspect_ratio, resize_image
from .image_proxy import ProxyInfo, create_proxy

__all__ = [
    # Errors
    'AppError',
    'FileIOError',
    'ProcessingError',
    'InvalidAdjustmentError',
    'BufferMismatchError',
    'SurfaceUnavailableError',
    'OperationInProgressError',
    'ExportError',
    'ErrorCategory',
    'handle_errors',
    'log_and_continue',
    'format_user_error',
    # History
    'HistoryStack',
    'HistoryEntry',
    # Geometry
    'AspectRatio',
    'ASPECT_RATIOS',
    'get_aspect_ratio',
    'CropRect',
    'crop_image',
    'fit_size',
    'resize_image',
    # Proxy
    'ProxyInfo',
    'create_proxy',
]
