# Tone & color stage
"""
Per-pixel tone and color operators.

All steps run in float64 on the RGB planes, in a fixed order, and the
result is quantised to bytes exactly once at the end of the stage. No step
looks at neighbouring pixels. Alpha is passed through untouched.
"""

import numpy as np

from ..config import settings
from ..utils.logger import get_logger
from .adjustment_state import AdjustmentState

logger = get_logger(__name__)

_DEFAULTS = settings.PIPELINE_DEFAULTS


def _round_half_up(values):
    # Half-up rounding; HSL output is never negative
    return np.floor(values + 0.5)


# --- Color space helpers ---

def rgb_to_hsl(r, g, b):
    """
    Vectorised RGB (0-255) -> HSL with hue in degrees, saturation and
    lightness in percent.
    """
    r = r / 255.0
    g = g / 255.0
    b = b / 255.0
    mx = np.maximum(np.maximum(r, g), b)
    mn = np.minimum(np.minimum(r, g), b)
    lightness = (mx + mn) / 2.0
    d = mx - mn
    chromatic = d != 0
    safe_d = np.where(chromatic, d, 1.0)

    denom = np.where(lightness > 0.5, 2.0 - mx - mn, mx + mn)
    saturation = np.where(chromatic, d / np.where(denom == 0, 1.0, denom), 0.0)

    # Red wins ties, then green, then blue
    hue_r = (g - b) / safe_d + np.where(g < b, 6.0, 0.0)
    hue_g = (b - r) / safe_d + 2.0
    hue_b = (r - g) / safe_d + 4.0
    hue = np.select([r == mx, g == mx], [hue_r, hue_g], default=hue_b) / 6.0
    hue = np.where(chromatic, hue, 0.0)

    return hue * 360.0, saturation * 100.0, lightness * 100.0


def _hue_to_rgb(p, q, t):
    t = np.where(t < 0, t + 1.0, t)
    t = np.where(t > 1, t - 1.0, t)
    return np.select(
        [t < 1.0 / 6.0, t < 0.5, t < 2.0 / 3.0],
        [p + (q - p) * 6.0 * t, q, p + (q - p) * (2.0 / 3.0 - t) * 6.0],
        default=p,
    )


def hsl_to_rgb(h, s, l):
    """Vectorised inverse of :func:`rgb_to_hsl`; returns rounded 0-255 floats."""
    h = h / 360.0
    s = s / 100.0
    l = l / 100.0
    q = np.where(l < 0.5, l * (1.0 + s), l + s - l * s)
    p = 2.0 * l - q

    gray = s == 0
    r = np.where(gray, l, _hue_to_rgb(p, q, h + 1.0 / 3.0))
    g = np.where(gray, l, _hue_to_rgb(p, q, h))
    b = np.where(gray, l, _hue_to_rgb(p, q, h - 1.0 / 3.0))
    return _round_half_up(r * 255.0), _round_half_up(g * 255.0), _round_half_up(b * 255.0)


# --- Individual operators (float RGB planes in, float RGB planes out) ---

def apply_exposure(r, g, b, exposure):
    factor = 2.0 ** (exposure / 100.0)
    return r * factor, g * factor, b * factor


def apply_brightness(r, g, b, brightness):
    offset = (brightness / 100.0) * 255.0
    return r + offset, g + offset, b + offset


def apply_contrast(r, g, b, contrast):
    factor = (contrast + 100.0) / 100.0
    return (r - 128.0) * factor + 128.0, (g - 128.0) * factor + 128.0, (b - 128.0) * factor + 128.0


def apply_temperature(r, g, b, temperature):
    """Positive values warm the image, negative values cool it."""
    if temperature == 0:
        return r, g, b
    t = temperature / 100.0
    cr, cg, cb = _DEFAULTS["temperature_warm"] if t > 0 else _DEFAULTS["temperature_cool"]
    return r + t * cr, g + t * cg, b + t * cb


def apply_tint(r, g, b, tint):
    """Positive values push toward magenta, negative toward green."""
    if tint == 0:
        return r, g, b
    t = tint / 100.0
    cr, cg, cb = _DEFAULTS["tint_magenta"] if t > 0 else _DEFAULTS["tint_green"]
    return r + t * cr, g + t * cg, b + t * cb


def apply_vibrance(r, g, b, vibrance):
    """Pull the non-maximum channels toward (or away from) the pixel maximum."""
    if vibrance == 0:
        return r, g, b
    mx = np.maximum(np.maximum(r, g), b)
    avg = (r + g + b) / 3.0
    amount = (np.abs(mx - avg) * 2.0 / 255.0) * vibrance / 100.0

    def push(c):
        return np.where(c != mx, c + (mx - c) * amount, c)

    return push(r), push(g), push(b)


def apply_saturation(r, g, b, saturation):
    wr, wg, wb = _DEFAULTS["luma_weights"]
    gray = wr * r + wg * g + wb * b
    factor = (saturation + 100.0) / 100.0
    return gray + (r - gray) * factor, gray + (g - gray) * factor, gray + (b - gray) * factor


def apply_hue(r, g, b, hue):
    """Rotate hue by ``hue`` degrees through HSL."""
    if hue == 0:
        return r, g, b
    h, s, l = rgb_to_hsl(np.clip(r, 0, 255), np.clip(g, 0, 255), np.clip(b, 0, 255))
    h = (h + hue + 360.0) % 360.0
    return hsl_to_rgb(h, s, l)


def apply_highlights_shadows(r, g, b, highlights, shadows):
    """Scale bright pixels by ``highlights`` and dark pixels by ``shadows``."""
    lum = (r + g + b) / 3.0 / 255.0
    factor = np.where(
        lum > 0.5,
        1.0 + (highlights / 100.0) * (lum - 0.5) * 2.0,
        1.0 + (shadows / 100.0) * (0.5 - lum) * 2.0,
    )
    return r * factor, g * factor, b * factor


def quantize(values):
    """Round half to even and clamp into bytes, as a clamped byte array would."""
    return np.clip(np.rint(values), 0, 255).astype(np.uint8)


def apply_tone(buffer: np.ndarray, adj: AdjustmentState) -> np.ndarray:
    """
    Run the tone & color chain over an RGBA buffer.

    Args:
        buffer: uint8 array of shape (h, w, 4). Not modified.
        adj: The adjustment state.

    Returns:
        A new uint8 RGBA buffer, clamped once after the last step.
    """
    rgb = buffer[..., :3].astype(np.float64)
    r, g, b = rgb[..., 0], rgb[..., 1], rgb[..., 2]

    r, g, b = apply_exposure(r, g, b, adj.exposure)
    r, g, b = apply_brightness(r, g, b, adj.brightness)
    r, g, b = apply_contrast(r, g, b, adj.contrast)
    r, g, b = apply_temperature(r, g, b, adj.temperature)
    r, g, b = apply_tint(r, g, b, adj.tint)
    r, g, b = apply_vibrance(r, g, b, adj.vibrance)
    r, g, b = apply_saturation(r, g, b, adj.saturation)
    r, g, b = apply_hue(r, g, b, adj.hue)
    r, g, b = apply_highlights_shadows(r, g, b, adj.highlights, adj.shadows)

    out = np.empty_like(buffer)
    out[..., 0] = quantize(r)
    out[..., 1] = quantize(g)
    out[..., 2] = quantize(b)
    out[..., 3] = buffer[..., 3]
    return out
