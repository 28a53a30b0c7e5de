"""Pixel buffer helpers and the Initial/Original/Working buffer store."""

from typing import Optional

import numpy as np

from ..utils.errors import BufferMismatchError
from ..utils.logger import get_logger

logger = get_logger(__name__)


def validate_buffer(buffer, name: str = "buffer") -> np.ndarray:
    """Check that ``buffer`` is an RGBA uint8 array of shape (h, w, 4)."""
    if not isinstance(buffer, np.ndarray):
        raise BufferMismatchError(f"{name} must be a numpy array, got {type(buffer).__name__}")
    if buffer.dtype != np.uint8:
        raise BufferMismatchError(f"{name} must be uint8, got {buffer.dtype}")
    if buffer.ndim != 3 or buffer.shape[2] != 4:
        raise BufferMismatchError(
            f"{name} must have shape (height, width, 4), got {buffer.shape}",
            actual=tuple(buffer.shape),
        )
    if buffer.shape[0] == 0 or buffer.shape[1] == 0:
        raise BufferMismatchError(f"{name} is empty", actual=tuple(buffer.shape))
    return buffer


def as_rgba(image: np.ndarray) -> np.ndarray:
    """Promote a gray, RGB or RGBA uint8 array to a contiguous RGBA copy."""
    if not isinstance(image, np.ndarray):
        raise BufferMismatchError(f"Expected a numpy array, got {type(image).__name__}")
    if image.dtype != np.uint8:
        raise BufferMismatchError(f"Expected uint8 pixels, got {image.dtype}")

    if image.ndim == 2:
        image = image[..., None]
    if image.ndim != 3 or image.shape[2] not in (1, 3, 4):
        raise BufferMismatchError(f"Unsupported pixel layout {image.shape}", actual=tuple(image.shape))

    h, w, channels = image.shape
    if channels == 4:
        return np.ascontiguousarray(image).copy()

    rgba = np.empty((h, w, 4), dtype=np.uint8)
    rgba[..., :3] = image if channels == 3 else np.repeat(image, 3, axis=2)
    rgba[..., 3] = 255
    return rgba


def buffer_size(buffer: np.ndarray):
    """Return ``(width, height)`` of a buffer."""
    return int(buffer.shape[1]), int(buffer.shape[0])


def _frozen_copy(buffer: np.ndarray) -> np.ndarray:
    copy = np.array(buffer, dtype=np.uint8, copy=True)
    copy.setflags(write=False)
    return copy


class BufferStore:
    """
    Owns the three buffers of an editing session.

    ``initial`` is the pristine decode, set once per session. ``original`` is
    the current baseline the pipeline renders from; crop, resize and the
    auto operators replace it. ``working`` is the latest pipeline output.
    All stored buffers are read-only; replacing a buffer means storing a
    new array, never writing into an existing one.
    """

    def __init__(self):
        self._initial: Optional[np.ndarray] = None
        self._original: Optional[np.ndarray] = None
        self._working: Optional[np.ndarray] = None

    @property
    def initial(self) -> Optional[np.ndarray]:
        return self._initial

    @property
    def original(self) -> Optional[np.ndarray]:
        return self._original

    @property
    def working(self) -> Optional[np.ndarray]:
        return self._working

    @property
    def is_loaded(self) -> bool:
        return self._original is not None

    def load(self, image: np.ndarray) -> None:
        """Set ``original`` from a decoded image; ``initial`` only if unset."""
        original = _frozen_copy(validate_buffer(as_rgba(image), "image"))
        self._original = original
        self._working = None
        if self._initial is None:
            self._initial = original
            logger.info("Initial buffer set (%dx%d)", original.shape[1], original.shape[0])
        else:
            logger.debug("Initial buffer kept; original replaced by load")

    def commit_geometry(self, new_buffer: np.ndarray) -> None:
        """Replace ``original`` (crop/resize/auto ops). ``initial`` is untouched."""
        if self._original is None:
            raise BufferMismatchError("Cannot commit a new baseline before an image is loaded")
        self._original = _frozen_copy(validate_buffer(new_buffer, "new_buffer"))
        self._working = None
        logger.debug("Original rebased to %dx%d", self._original.shape[1], self._original.shape[0])

    def restore_initial(self) -> None:
        """Set ``original`` back to a copy of ``initial``."""
        if self._initial is None:
            raise BufferMismatchError("No initial buffer to restore")
        self._original = self._initial
        self._working = None

    def set_working(self, buffer: np.ndarray) -> None:
        """Store a fresh pipeline output; it must match ``original``'s shape."""
        validate_buffer(buffer, "working")
        if self._original is None or buffer.shape != self._original.shape:
            raise BufferMismatchError(
                "Working buffer does not match the original's dimensions",
                expected=None if self._original is None else tuple(self._original.shape),
                actual=tuple(buffer.shape),
            )
        if buffer.flags.writeable:
            buffer.setflags(write=False)
        self._working = buffer

    def clear(self) -> None:
        """Discard all buffers (a new image replaces the session)."""
        self._initial = None
        self._original = None
        self._working = None
