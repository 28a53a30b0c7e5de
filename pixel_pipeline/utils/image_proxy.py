# Preview proxy management
"""
Downscaled stand-ins for very large buffers.

Background previews of large images render on a proxy whose pixel count
stays below ``RENDER_DEFAULTS["preview_max_pixels"]``. A proxy is only
ever used for display; full renders and exports always use the real
``Original``.
"""

import math
from dataclasses import dataclass
from typing import Tuple

import numpy as np

from ..config import settings
from .geometry import resize_image
from .logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ProxyInfo:
    """Information about a proxy buffer."""
    original_shape: Tuple[int, ...]
    proxy_shape: Tuple[int, ...]
    scale_factor: float

    @property
    def is_proxy(self) -> bool:
        return self.proxy_shape != self.original_shape

    @property
    def original_megapixels(self) -> float:
        return (self.original_shape[0] * self.original_shape[1]) / 1_000_000

    @property
    def proxy_megapixels(self) -> float:
        return (self.proxy_shape[0] * self.proxy_shape[1]) / 1_000_000


def get_pixel_count(image: np.ndarray) -> int:
    """Get total pixel count of an image."""
    return int(image.shape[0]) * int(image.shape[1])


def calculate_scale_factor(image: np.ndarray, max_pixels: int) -> float:
    """
    Scale factor needed to fit within max_pixels.

    Returns 1.0 if no scaling is needed, < 1.0 for downscaling.
    """
    current_pixels = get_pixel_count(image)
    if current_pixels <= max_pixels:
        return 1.0
    return math.sqrt(max_pixels / current_pixels)


def create_proxy(image: np.ndarray, max_pixels: int = None) -> Tuple[np.ndarray, ProxyInfo]:
    """
    Create a downscaled proxy of ``image`` if it exceeds ``max_pixels``.

    Args:
        image: uint8 RGBA buffer.
        max_pixels: Maximum pixels for the proxy; defaults to the
            ``preview_max_pixels`` setting.

    Returns:
        Tuple of (proxy_or_original, proxy_info). The input is returned
        as-is when no scaling is needed.
    """
    if max_pixels is None:
        max_pixels = settings.RENDER_DEFAULTS["preview_max_pixels"]

    scale = calculate_scale_factor(image, max_pixels)
    if scale >= 1.0:
        return image, ProxyInfo(tuple(image.shape), tuple(image.shape), 1.0)

    new_width = max(1, int(image.shape[1] * scale))
    new_height = max(1, int(image.shape[0] * scale))
    proxy = resize_image(image, new_width, new_height)
    info = ProxyInfo(tuple(image.shape), tuple(proxy.shape), scale)

    logger.debug(
        "Created proxy: %.1f MP -> %.1f MP (scale=%.3f)",
        info.original_megapixels,
        info.proxy_megapixels,
        scale,
    )
    return proxy, info
