# Spatial filter stage
"""
Neighborhood operators: clarity, dehaze, sharpen and box blur.

Each operator reads from a frozen copy of its input and returns a new
uint8 RGBA buffer, so an operator never sees its own partial writes. An
operator whose driving value is 0 returns its input object unchanged.
"""

import math

import cv2
import numpy as np

from ..config import settings
from ..utils.logger import get_logger
from .tone import quantize

logger = get_logger(__name__)

_DEFAULTS = settings.PIPELINE_DEFAULTS


def _rgb_float(buffer):
    return buffer[..., :3].astype(np.float64)


def _with_rgb(buffer, rgb):
    out = buffer.copy()
    out[..., :3] = quantize(rgb)
    return out


def apply_clarity(buffer: np.ndarray, clarity: float) -> np.ndarray:
    """
    Local contrast: push each pixel away from its box-neighborhood mean.

    Only pixels at least ``clarity_radius`` away from every border change.
    """
    if clarity == 0:
        return buffer
    radius = int(_DEFAULTS["clarity_radius"])
    h, w = buffer.shape[:2]
    if h <= 2 * radius or w <= 2 * radius:
        return buffer

    src = _rgb_float(buffer)
    ksize = 2 * radius + 1
    mean = cv2.blur(src, (ksize, ksize), borderType=cv2.BORDER_REPLICATE)

    strength = clarity / 100.0
    result = src.copy()
    inner = (slice(radius, h - radius), slice(radius, w - radius))
    result[inner] = src[inner] + (src[inner] - mean[inner]) * strength
    return _with_rgb(buffer, result)


def apply_dehaze(buffer: np.ndarray, dehaze: float) -> np.ndarray:
    """Invert a constant-airlight haze model: c' = (c - A(1 - T)) / T."""
    if dehaze == 0:
        return buffer
    atmospheric_light = _DEFAULTS["dehaze_atmospheric_light"]
    transmission = 1.0 - (dehaze / 100.0) * _DEFAULTS["dehaze_transmission_scale"]
    src = _rgb_float(buffer)
    result = (src - atmospheric_light * (1.0 - transmission)) / transmission
    return _with_rgb(buffer, result)


def apply_sharpen(buffer: np.ndarray, sharpness: float) -> np.ndarray:
    """3x3 sharpen kernel blended with the input by ``sharpness / 100``; borders untouched."""
    if sharpness <= 0:
        return buffer
    h, w = buffer.shape[:2]
    if h < 3 or w < 3:
        return buffer

    src = _rgb_float(buffer)
    filtered = cv2.filter2D(src, -1, _DEFAULTS["sharpen_kernel"], borderType=cv2.BORDER_REPLICATE)

    strength = sharpness / 100.0
    result = src.copy()
    inner = (slice(1, h - 1), slice(1, w - 1))
    result[inner] = src[inner] + (filtered[inner] - src[inner]) * strength
    return _with_rgb(buffer, result)


def blur_radius(blur: float) -> int:
    return int(math.ceil(blur / _DEFAULTS["blur_radius_step"]))


def apply_blur(buffer: np.ndarray, blur: float) -> np.ndarray:
    """Box blur of radius ``ceil(blur / 10)`` with edge-clamped sampling."""
    if blur <= 0:
        return buffer
    radius = blur_radius(blur)
    ksize = 2 * radius + 1
    blurred = cv2.blur(_rgb_float(buffer), (ksize, ksize), borderType=cv2.BORDER_REPLICATE)
    return _with_rgb(buffer, blurred)


def apply_spatial(buffer: np.ndarray, clarity=0.0, dehaze=0.0, sharpness=0.0, blur=0.0) -> np.ndarray:
    """Run clarity, dehaze, sharpen and blur in that order."""
    result = apply_clarity(buffer, clarity)
    result = apply_dehaze(result, dehaze)
    result = apply_sharpen(result, sharpness)
    result = apply_blur(result, blur)
    return result
