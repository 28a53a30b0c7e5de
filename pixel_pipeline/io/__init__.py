# IO package initialization
from .image_loader import (
    load_image,
    decode_bytes,
)
from .image_saver import (
    RenderRequest,
    ExportResult,
    encode_image,
    estimate_export_size,
    format_size,
    is_format_supported,
    SUPPORTED_FORMATS,
)

__all__ = [
    'load_image',
    'decode_bytes',
    'RenderRequest',
    'ExportResult',
    'encode_image',
    'estimate_export_size',
    'format_size',
    'is_format_supported',
    'SUPPORTED_FORMATS',
]
