# Histogram and one-shot auto corrections
"""
Operators that look at the whole image at once.

``auto_levels`` and ``auto_white_balance`` produce a new baseline buffer;
the engine commits it in place of ``Original`` the same way crop and
resize do. Channels that cannot be stretched or scaled (no range, or an
average of 0) are left as they are.
"""

from dataclasses import dataclass

import numpy as np

from ..config import settings
from ..utils.logger import get_logger
from .buffers import validate_buffer
from .tone import quantize

logger = get_logger(__name__)


@dataclass(frozen=True)
class Histogram:
    """256-bin counts for each channel and for luminance."""
    r: np.ndarray
    g: np.ndarray
    b: np.ndarray
    luminance: np.ndarray

    def to_dict(self):
        return {
            "r": self.r.tolist(),
            "g": self.g.tolist(),
            "b": self.b.tolist(),
            "luminance": self.luminance.tolist(),
        }


def compute_histogram(buffer: np.ndarray) -> Histogram:
    """
    Count pixel values per channel.

    Luminance is ``0.2989r + 0.587g + 0.114b`` rounded half-up.
    """
    validate_buffer(buffer)
    rgb = buffer[..., :3].reshape(-1, 3)
    wr, wg, wb = settings.PIPELINE_DEFAULTS["luma_weights"]
    lum = np.floor(wr * rgb[:, 0] + wg * rgb[:, 1] + wb * rgb[:, 2] + 0.5).astype(np.int64)

    def _count(values):
        return np.bincount(values, minlength=256)[:256]

    return Histogram(
        r=_count(rgb[:, 0]),
        g=_count(rgb[:, 1]),
        b=_count(rgb[:, 2]),
        luminance=_count(np.clip(lum, 0, 255)),
    )


def auto_levels(buffer: np.ndarray) -> np.ndarray:
    """Stretch each RGB channel so its min maps to 0 and its max to 255."""
    validate_buffer(buffer)
    out = buffer.copy()
    for channel in range(3):
        values = buffer[..., channel].astype(np.float64)
        lo, hi = values.min(), values.max()
        if hi == lo:
            logger.debug("auto_levels: channel %d has no range, left unchanged", channel)
            continue
        out[..., channel] = quantize((values - lo) / (hi - lo) * 255.0)
    return out


def auto_white_balance(buffer: np.ndarray) -> np.ndarray:
    """
    Gray-world white balance.

    Each channel is scaled by ``avg_gray / avg_channel`` so the three channel
    averages meet; results above 255 are clipped.
    """
    validate_buffer(buffer)
    averages = buffer[..., :3].reshape(-1, 3).mean(axis=0)
    avg_gray = averages.mean()

    out = buffer.copy()
    for channel, avg in enumerate(averages):
        if avg == 0:
            logger.debug("auto_white_balance: channel %d averages 0, left unchanged", channel)
            continue
        scale = avg_gray / avg
        out[..., channel] = quantize(buffer[..., channel].astype(np.float64) * scale)
    logger.debug("auto_white_balance averages=%s gray=%.2f", np.round(averages, 2).tolist(), avg_gray)
    return out
