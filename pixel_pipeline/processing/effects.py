# Post effects stage
import numpy as np

from ..config import settings
from ..utils.logger import get_logger
from .tone import quantize

logger = get_logger(__name__)


def vignette_mask(width: int, height: int, amount: float, radius: float) -> np.ndarray:
    """
    Per-pixel multiplier for the radial vignette.

    ``factor = 1 - clamp((d - (1 - radius)) / radius, 0, 1) ** 2 * strength``
    with ``d`` the distance to the image centre normalised by the corner
    distance.
    """
    cx = width / 2.0
    cy = height / 2.0
    max_dist = np.hypot(cx, cy)
    ys, xs = np.mgrid[0:height, 0:width]
    dist = np.hypot(xs - cx, ys - cy) / max_dist
    falloff = np.clip((dist - (1.0 - radius)) / radius, 0.0, 1.0)
    return 1.0 - falloff ** 2 * (amount / 100.0)


def apply_vignette(buffer: np.ndarray, amount: float, radius=None) -> np.ndarray:
    """Darken toward the corners. A zero amount or zero radius is a no-op."""
    if radius is None:
        radius = settings.PIPELINE_DEFAULTS["vignette_radius"]
    if amount <= 0 or radius <= 0:
        return buffer
    h, w = buffer.shape[:2]
    factor = vignette_mask(w, h, amount, radius)
    out = buffer.copy()
    out[..., :3] = quantize(buffer[..., :3].astype(np.float64) * factor[..., None])
    return out


def apply_grain(buffer: np.ndarray, grain: float, rng: np.random.Generator) -> np.ndarray:
    """Add uniform noise in [-s/2, s/2], s = grain/100 * 50, per channel per pixel."""
    if grain <= 0:
        return buffer
    strength = (grain / 100.0) * settings.PIPELINE_DEFAULTS["grain_max_amplitude"]
    h, w = buffer.shape[:2]
    noise = (rng.random((h, w, 3)) - 0.5) * strength
    out = buffer.copy()
    out[..., :3] = quantize(buffer[..., :3].astype(np.float64) + noise)
    return out
