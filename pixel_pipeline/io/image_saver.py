# Export functionality using Pillow
import io
from dataclasses import dataclass
from typing import Optional

import numpy as np
from PIL import Image

from ..config import settings
from ..processing.buffers import validate_buffer
from ..utils.errors import ErrorCategory, ExportError, InvalidAdjustmentError, log_and_continue
from ..utils.geometry import resize_image
from ..utils.logger import get_logger

logger = get_logger(__name__)

_EXPORT = settings.EXPORT_DEFAULTS

SUPPORTED_FORMATS = tuple(_EXPORT["pillow_formats"])


@dataclass(frozen=True)
class RenderRequest:
    """
    What to export.

    ``width``/``height`` of None mean "the rendered surface's size".
    ``quality`` only affects jpg, webp and avif.
    """
    format: str = "png"
    quality: int = _EXPORT["default_quality"]
    width: Optional[int] = None
    height: Optional[int] = None

    def __post_init__(self):
        fmt = str(self.format).lower().lstrip(".")
        if fmt not in _EXPORT["pillow_formats"]:
            raise InvalidAdjustmentError(
                f"Unsupported export format: {self.format!r}",
                field_name="format",
                user_message=f"Unsupported export format '{self.format}'. Choose one of: {', '.join(SUPPORTED_FORMATS)}",
            )
        object.__setattr__(self, "format", fmt)

        if isinstance(self.quality, bool) or not isinstance(self.quality, (int, np.integer)) or not 0 <= self.quality <= 100:
            raise InvalidAdjustmentError(
                f"quality must be an integer in 0..100, got {self.quality!r}",
                field_name="quality",
                allowed=(0, 100),
            )
        for name in ("width", "height"):
            value = getattr(self, name)
            if value is None:
                continue
            if isinstance(value, bool) or not isinstance(value, (int, np.integer)) or value <= 0:
                raise InvalidAdjustmentError(f"{name} must be a positive integer, got {value!r}", field_name=name)

    def target_size(self, width: int, height: int):
        """Resolve the output size for a surface of ``width x height``.

        When only one side is given the other follows the surface's aspect
        ratio.
        """
        if self.width is None and self.height is None:
            return width, height
        if self.height is None:
            return int(self.width), max(1, int(round(self.width * height / width)))
        if self.width is None:
            return max(1, int(round(self.height * width / height))), int(self.height)
        return int(self.width), int(self.height)


@dataclass(frozen=True)
class ExportResult:
    """Encoded bytes plus what was actually produced."""
    data: bytes
    format: str
    requested_format: str
    width: int
    height: int
    warning: Optional[str] = None

    @property
    def fell_back(self) -> bool:
        return self.warning is not None

    @property
    def extension(self) -> str:
        return "jpg" if self.format == "jpeg" else self.format


def is_format_supported(fmt: str) -> bool:
    """Whether the installed Pillow can encode ``fmt``."""
    pil_format = _EXPORT["pillow_formats"].get(fmt.lower())
    if pil_format is None:
        return False
    Image.init()
    return pil_format in Image.SAVE


def _encode(image_rgba: np.ndarray, fmt: str, quality: int) -> bytes:
    pil_format = _EXPORT["pillow_formats"][fmt]
    img = Image.fromarray(image_rgba, 'RGBA')
    try:
        save_kwargs = {}
        if pil_format in ('JPEG', 'BMP'):
            # Neither carries the alpha channel we hold
            converted = img.convert('RGB')
            img.close()
            img = converted
        if fmt in _EXPORT["lossy_formats"]:
            save_kwargs['quality'] = max(1, quality) if pil_format == 'JPEG' else quality
        if pil_format == 'JPEG':
            save_kwargs['optimize'] = True

        buffer = io.BytesIO()
        img.save(buffer, format=pil_format, **save_kwargs)
        return buffer.getvalue()
    finally:
        img.close()


def encode_image(buffer: np.ndarray, request: RenderRequest) -> ExportResult:
    """
    Encode ``buffer`` as requested, resizing a copy first if needed.

    If the requested format cannot be encoded, the image is encoded as
    WebP instead and the result carries a warning. Only a failing WebP
    fallback raises.

    Raises:
        ExportError: Neither the requested format nor WebP could be encoded.
    """
    validate_buffer(buffer, "buffer")
    src_h, src_w = buffer.shape[:2]
    width, height = request.target_size(src_w, src_h)
    if (width, height) != (src_w, src_h):
        buffer = resize_image(buffer, width, height)

    fmt = request.format
    warning = None
    data = None

    if is_format_supported(fmt):
        try:
            data = _encode(buffer, fmt, request.quality)
        except (OSError, ValueError, KeyError) as e:
            warning = f"{fmt.upper()} encoding failed ({e}); exported as WebP instead"
    else:
        warning = f"{fmt.upper()} is not supported by this encoder; exported as WebP instead"

    out_format = "png" if _EXPORT["pillow_formats"][fmt] == "PNG" else fmt
    if data is None:
        fallback = _EXPORT["fallback_format"]
        log_and_continue(warning, category=ErrorCategory.FILE_IO)
        try:
            data = _encode(buffer, fallback, request.quality)
        except (OSError, ValueError, KeyError) as e:
            raise ExportError(
                f"Export failed: {fmt} unsupported and {fallback} fallback failed",
                image_format=fmt,
                original_error=e,
            ) from e
        out_format = fallback

    logger.info(
        "Exported %dx%d as %s (%d bytes)%s",
        width, height, out_format, len(data), " [fallback]" if warning else "",
    )
    return ExportResult(
        data=data,
        format=out_format,
        requested_format=fmt,
        width=width,
        height=height,
        warning=warning,
    )


def estimate_export_size(width: int, height: int, fmt: str, quality: int = _EXPORT["default_quality"]) -> int:
    """Rough encoded size in bytes, for display before exporting."""
    bytes_per_pixel, scales = _EXPORT["size_factors"].get(fmt.lower(), (3.0, False))
    size = width * height * bytes_per_pixel
    if scales:
        size *= quality / 100.0
    return int(size)


def format_size(num_bytes: int) -> str:
    """Human readable size, MB above one megabyte and KB otherwise."""
    if num_bytes > 1024 * 1024:
        return f"{num_bytes / 1024 / 1024:.1f} MB"
    return f"{num_bytes / 1024:.0f} KB"
