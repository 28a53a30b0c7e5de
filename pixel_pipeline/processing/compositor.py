# Geometric compositor
"""
Draw-time rotation and flips.

Rotation and flips never touch the working buffer; they are expressed as
an affine transform and applied when the buffer is drawn onto a
presentation surface. Drawing goes through a ``Renderer`` so the
compositor can run without a real display.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Protocol, Tuple

import cv2
import numpy as np

from ..utils.errors import SurfaceUnavailableError
from ..utils.logger import get_logger
from .adjustment_state import AdjustmentState
from .buffers import validate_buffer

logger = get_logger(__name__)

# Exact values for quarter turns so 90 degree steps stay pixel-exact
_QUARTER_TURNS = {0: (1.0, 0.0), 90: (0.0, 1.0), 180: (-1.0, 0.0), 270: (0.0, -1.0)}


def _cos_sin(degrees: float) -> Tuple[float, float]:
    quarter = _QUARTER_TURNS.get(int(degrees)) if float(degrees).is_integer() else None
    if quarter is not None:
        return quarter
    radians = math.radians(degrees)
    return math.cos(radians), math.sin(radians)


@dataclass(frozen=True)
class AffineTransform:
    """
    A 2x3 affine map from buffer pixel coordinates to surface coordinates.

    Built the way a canvas draw is set up: translate to the surface centre,
    rotate (clockwise on screen, y pointing down), scale(-1, 1) and/or
    scale(1, -1), then translate the buffer so its centre is the origin.
    """

    matrix: Tuple[Tuple[float, float, float], Tuple[float, float, float]]
    output_size: Tuple[int, int]  # (width, height)
    rotation: float = 0.0
    flip_horizontal: bool = False
    flip_vertical: bool = False

    @classmethod
    def for_buffer(
        cls,
        width: int,
        height: int,
        rotation: float = 0.0,
        flip_horizontal: bool = False,
        flip_vertical: bool = False,
        expand: bool = True,
    ) -> "AffineTransform":
        rotation = float(rotation) % 360.0
        cos, sin = _cos_sin(rotation)

        if expand:
            out_w = int(round(abs(width * cos) + abs(height * sin)))
            out_h = int(round(abs(width * sin) + abs(height * cos)))
        else:
            out_w, out_h = width, height

        sx = -1.0 if flip_horizontal else 1.0
        sy = -1.0 if flip_vertical else 1.0

        # Pixel centres sit on integer coordinates, so centres are (n - 1) / 2
        src_cx, src_cy = (width - 1) / 2.0, (height - 1) / 2.0
        dst_cx, dst_cy = (out_w - 1) / 2.0, (out_h - 1) / 2.0

        a, b = cos * sx, -sin * sy
        c, d = sin * sx, cos * sy
        tx = dst_cx - (a * src_cx + b * src_cy)
        ty = dst_cy - (c * src_cx + d * src_cy)

        return cls(
            matrix=((a, b, tx), (c, d, ty)),
            output_size=(max(1, out_w), max(1, out_h)),
            rotation=rotation,
            flip_horizontal=flip_horizontal,
            flip_vertical=flip_vertical,
        )

    @classmethod
    def from_state(cls, width: int, height: int, state: AdjustmentState, expand: bool = True) -> "AffineTransform":
        return cls.for_buffer(
            width,
            height,
            rotation=state.rotation,
            flip_horizontal=state.flip_horizontal,
            flip_vertical=state.flip_vertical,
            expand=expand,
        )

    @property
    def is_identity(self) -> bool:
        return self.matrix == ((1.0, 0.0, 0.0), (0.0, 1.0, 0.0))

    @property
    def is_axis_aligned(self) -> bool:
        return float(self.rotation).is_integer() and int(self.rotation) in _QUARTER_TURNS

    def as_array(self) -> np.ndarray:
        return np.array(self.matrix, dtype=np.float64)

    def apply(self, x: float, y: float) -> Tuple[float, float]:
        (a, b, tx), (c, d, ty) = self.matrix
        return a * x + b * y + tx, c * x + d * y + ty


@dataclass(frozen=True)
class Surface:
    """What a renderer produced: the drawn pixels and the transform used."""

    pixels: np.ndarray
    transform: AffineTransform

    @property
    def size(self) -> Tuple[int, int]:
        return int(self.pixels.shape[1]), int(self.pixels.shape[0])


class Renderer(Protocol):
    def draw(self, buffer: np.ndarray, transform: AffineTransform) -> Surface: ...


class CanvasRenderer:
    """
    Offscreen canvas backed by ``cv2.warpAffine``.

    Areas not covered by the buffer are transparent, like a cleared canvas.
    Quarter turns and flips use nearest sampling and are lossless.
    """

    def draw(self, buffer: np.ndarray, transform: AffineTransform) -> Surface:
        validate_buffer(buffer, "buffer")
        out_w, out_h = transform.output_size
        if transform.is_identity and (out_w, out_h) == (buffer.shape[1], buffer.shape[0]):
            return Surface(pixels=buffer.copy(), transform=transform)

        interpolation = cv2.INTER_NEAREST if transform.is_axis_aligned else cv2.INTER_LINEAR
        pixels = cv2.warpAffine(
            np.ascontiguousarray(buffer),
            transform.as_array(),
            (out_w, out_h),
            flags=interpolation,
            borderMode=cv2.BORDER_CONSTANT,
            borderValue=(0, 0, 0, 0),
        )
        return Surface(pixels=pixels, transform=transform)


class Compositor:
    """Applies the state's rotation/flips to a working buffer through a renderer."""

    def __init__(self, renderer: Optional[Renderer] = None, expand: bool = True):
        self.renderer = renderer
        self.expand = expand

    @property
    def has_surface(self) -> bool:
        return self.renderer is not None

    def present(self, working: Optional[np.ndarray], state: AdjustmentState) -> Surface:
        """
        Draw ``working`` with ``state``'s rotation and flips.

        Raises:
            SurfaceUnavailableError: no renderer is attached or there is
                nothing to draw. Nothing is drawn in that case.
        """
        if self.renderer is None:
            raise SurfaceUnavailableError()
        if working is None:
            raise SurfaceUnavailableError(
                "Nothing to draw: no working buffer",
                user_message="Load an image before rendering.",
            )
        h, w = working.shape[:2]
        transform = AffineTransform.from_state(w, h, state, expand=self.expand)
        surface = self.renderer.draw(working, transform)
        logger.debug(
            "Presented %dx%d -> %dx%d (rotation=%s, flipH=%s, flipV=%s)",
            w, h, surface.size[0], surface.size[1],
            state.rotation, state.flip_horizontal, state.flip_vertical,
        )
        return surface
