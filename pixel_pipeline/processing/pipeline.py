# Full render pipeline
"""
``render(original, adj)`` turns a baseline buffer and an adjustment state
into a new working buffer: tone & color, then spatial filters, then post
effects. It is a pure function of its inputs; in particular grain noise is
drawn from a generator seeded from settings unless the caller passes one.
Rotation and flips are not applied here; see ``compositor``.
"""

import time
from typing import Optional, Union

import numpy as np

from ..config import settings
from ..utils.errors import BufferMismatchError
from ..utils.logger import get_logger
from .adjustment_state import AdjustmentState
from .buffers import validate_buffer
from .effects import apply_grain, apply_vignette
from .spatial import apply_spatial
from .tone import apply_tone

logger = get_logger(__name__)

SeedLike = Union[None, int, np.random.Generator]


def _grain_rng(seed: SeedLike) -> np.random.Generator:
    if isinstance(seed, np.random.Generator):
        return seed
    if seed is None:
        seed = settings.RENDER_DEFAULTS["grain_seed"]
    return np.random.default_rng(seed)


def render(original: np.ndarray, adj: Optional[AdjustmentState] = None, seed: SeedLike = None) -> np.ndarray:
    """
    Render ``original`` with ``adj``.

    Args:
        original: uint8 RGBA buffer of shape (h, w, 4). Never modified.
        adj: Adjustment state; defaults to the neutral state.
        seed: Grain seed or generator. Same seed, same output.

    Returns:
        A new uint8 RGBA buffer with the same shape as ``original``.
    """
    validate_buffer(original, "original")
    if adj is None:
        adj = AdjustmentState()

    start = time.perf_counter()
    result = apply_tone(original, adj)
    result = apply_spatial(
        result,
        clarity=adj.clarity,
        dehaze=adj.dehaze,
        sharpness=adj.sharpness,
        blur=adj.blur,
    )
    result = apply_vignette(result, adj.vignette_amount, adj.vignette_radius)
    result = apply_grain(result, adj.grain, _grain_rng(seed))

    if result.shape != original.shape:
        raise BufferMismatchError(
            "Pipeline output does not match the original's dimensions",
            expected=tuple(original.shape),
            actual=tuple(result.shape),
        )
    logger.debug(
        "Rendered %dx%d in %.1f ms",
        original.shape[1],
        original.shape[0],
        (time.perf_counter() - start) * 1000.0,
    )
    return result
