# Geometry tools for crop and resize operations
"""
Crop and resize helpers used to rebase the original buffer and to size
exports. Both return new arrays and never modify their input.
"""

from dataclasses import dataclass
from typing import NamedTuple, Optional, Tuple
import numpy as np
import cv2

from .errors import InvalidAdjustmentError
from .logger import get_logger

logger = get_logger(__name__)


class CropRect(NamedTuple):
    """Rectangle for cropping (x, y, width, height)."""
    x: int
    y: int
    width: int
    height: int

    def to_slice(self) -> Tuple[slice, slice]:
        """Convert to numpy array slices (y_slice, x_slice)."""
        return (
            slice(self.y, self.y + self.height),
            slice(self.x, self.x + self.width)
        )

    def is_valid(self, image_width: int, image_height: int) -> bool:
        """Check if crop rect is valid for given image dimensions."""
        return (
            self.x >= 0 and self.y >= 0 and
            self.width > 0 and self.height > 0 and
            self.x + self.width <= image_width and
            self.y + self.height <= image_height
        )

    def clamp(self, image_width: int, image_height: int) -> 'CropRect':
        """Clamp crop rect to image bounds."""
        x = max(0, min(self.x, image_width - 1))
        y = max(0, min(self.y, image_height - 1))
        w = max(1, min(self.width, image_width - x))
        h = max(1, min(self.height, image_height - y))
        return CropRect(x, y, w, h)

    @classmethod
    def from_floats(cls, x: float, y: float, width: float, height: float) -> 'CropRect':
        """Round a rectangle dragged in (possibly fractional) pixel units."""
        return cls(int(round(x)), int(round(y)), int(round(width)), int(round(height)))


@dataclass(frozen=True)
class AspectRatio:
    """Aspect ratio lock for cropping (``width:height``)."""
    width: int
    height: int

    @property
    def ratio(self) -> float:
        return self.width / self.height

    @property
    def label(self) -> str:
        return f"{self.width}:{self.height}"

    def constrain(self, rect: CropRect, anchor: str = "top-left") -> CropRect:
        """
        Shrink ``rect`` to this ratio so it stays inside the original rect.

        Args:
            rect: The dragged crop rectangle.
            anchor: "top-left" keeps the drag origin, "center" keeps the
                rectangle's centre.

        Returns:
            New CropRect with the aspect ratio applied.
        """
        if anchor not in _ANCHORS:
            raise InvalidAdjustmentError(f"Unknown crop anchor: {anchor!r}", field_name="anchor")
        if rect.width <= 0 or rect.height <= 0:
            raise InvalidAdjustmentError(f"Crop size must be positive, got {rect.width}x{rect.height}", field_name="crop")

        target = self.ratio
        if rect.width / rect.height > target:
            # Too wide, reduce width
            new_width = max(1, int(round(rect.height * target)))
            new_height = rect.height
        else:
            new_width = rect.width
            new_height = max(1, int(round(rect.width / target)))

        if anchor == "center":
            new_x = rect.x + (rect.width - new_width) // 2
            new_y = rect.y + (rect.height - new_height) // 2
        else:
            new_x, new_y = rect.x, rect.y
        return CropRect(new_x, new_y, new_width, new_height)


_ANCHORS = ("top-left", "center")

# Crop ratio locks offered by the editor; "free" means unconstrained
ASPECT_RATIOS = {
    "free": None,
    "1:1": AspectRatio(1, 1),
    "4:3": AspectRatio(4, 3),
    "16:9": AspectRatio(16, 9),
    "9:16": AspectRatio(9, 16),
    "3:2": AspectRatio(3, 2),
}


def get_aspect_ratio(name: Optional[str]) -> Optional[AspectRatio]:
    """Look up a ratio lock by name; None and "free" give no constraint."""
    if name is None:
        return None
    try:
        return ASPECT_RATIOS[str(name).strip().lower()]
    except KeyError:
        raise InvalidAdjustmentError(
            f"Unknown aspect ratio {name!r}; choose one of: {', '.join(ASPECT_RATIOS)}",
            field_name="aspect",
        ) from None


def crop_image(
    image: np.ndarray,
    rect: CropRect,
    aspect: Optional[AspectRatio] = None,
    anchor: str = "top-left",
) -> np.ndarray:
    """
    Crop an image to the specified rectangle.

    The rectangle is clamped to the image first, so the result is never
    empty. An aspect lock then shrinks the clamped rectangle to the ratio.

    Args:
        image: Input image array (H, W, C).
        rect: Crop rectangle.
        aspect: Optional ratio lock.
        anchor: Corner kept in place by the ratio lock.

    Returns:
        Cropped image array, re-based to the crop size.
    """
    h, w = image.shape[:2]
    if rect.width <= 0 or rect.height <= 0:
        raise InvalidAdjustmentError(f"Crop size must be positive, got {rect.width}x{rect.height}", field_name="crop")
    clamped = rect.clamp(w, h)
    if clamped != rect:
        logger.debug("Crop rect %s clamped to %s", rect, clamped)
    if aspect is not None:
        clamped = aspect.constrain(clamped, anchor=anchor)

    y_slice, x_slice = clamped.to_slice()
    return np.ascontiguousarray(image[y_slice, x_slice]).copy()


def fit_size(src_width: int, src_height: int, width: int, height: int) -> Tuple[int, int]:
    """
    Largest size with the source aspect ratio that fits in ``width x height``.
    """
    aspect = src_width / src_height
    if width / height > aspect:
        width = height * aspect
    else:
        height = width / aspect
    return max(1, int(round(width))), max(1, int(round(height)))


def resize_image(
    image: np.ndarray,
    width: int,
    height: int,
    keep_aspect: bool = False
) -> np.ndarray:
    """
    Resample an image to ``width x height``.

    Uses area averaging when shrinking and bilinear interpolation when
    enlarging.

    Args:
        image: Input image array (H, W, C).
        width: Target width in pixels.
        height: Target height in pixels.
        keep_aspect: Fit inside the target box instead of stretching.

    Returns:
        Resized image array (a copy even when the size is unchanged).
    """
    if int(width) != width or int(height) != height or width <= 0 or height <= 0:
        raise InvalidAdjustmentError(f"Resize target must be positive integers, got {width}x{height}", field_name="resize")

    src_h, src_w = image.shape[:2]
    if keep_aspect:
        width, height = fit_size(src_w, src_h, width, height)
    width, height = int(width), int(height)

    if (width, height) == (src_w, src_h):
        return image.copy()

    shrinking = width * height < src_w * src_h
    interpolation = cv2.INTER_AREA if shrinking else cv2.INTER_LINEAR
    resized = cv2.resize(np.ascontiguousarray(image), (width, height), interpolation=interpolation)
    if resized.ndim == 2:
        resized = resized[..., None]
    logger.debug("Resized %dx%d -> %dx%d", src_w, src_h, width, height)
    return resized
