# Image import functionality using Pillow
import io
import os

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from ..processing.buffers import as_rgba
from ..utils.errors import FileIOError
from ..utils.logger import get_logger

logger = get_logger(__name__)


# Single-channel modes holding 16-bit (or wider) samples
_HIGH_BIT_DEPTH_MODES = ('I', 'I;16', 'I;16L', 'I;16B', 'I;16N')


def _scale_to_8bit(values: np.ndarray) -> np.ndarray:
    """Map 0..65535 samples onto 0..255 (x / 257, rounded)."""
    scaled = np.rint(values.astype(np.float64) / 257.0)
    return np.clip(scaled, 0, 255).astype(np.uint8)


def _to_rgba_array(img: Image.Image, source: str) -> np.ndarray:
    """Orient, convert to RGBA and copy the pixels out of a Pillow image."""
    # Apply EXIF orientation; returns a new image when a transpose was needed
    oriented = ImageOps.exif_transpose(img)
    try:
        if oriented.mode in _HIGH_BIT_DEPTH_MODES:
            # convert('RGBA') clips these at 255 rather than scaling them
            logger.debug("Scaling %s image down to 8 bits", oriented.mode)
            image_np = _scale_to_8bit(np.array(oriented))
        else:
            if oriented.mode != 'RGBA':
                logger.debug("Converting image from mode '%s' to 'RGBA'", oriented.mode)
                rgba = oriented.convert('RGBA')
            else:
                rgba = oriented
            image_np = np.array(rgba, dtype=np.uint8)
    finally:
        if oriented is not img:
            oriented.close()

    if image_np.size == 0:
        raise FileIOError(f"Decoded image is empty: '{source}'", file_path=source)
    return as_rgba(image_np)


def load_image(file_path: str) -> np.ndarray:
    """Loads an image from the specified file path using Pillow.

    EXIF orientation is applied and any mode (palette, grayscale, RGB,
    16-bit) is converted to 8-bit RGBA.

    Args:
        file_path (str): The path to the image file.

    Returns:
        numpy.ndarray: uint8 RGBA array of shape (height, width, 4).

    Raises:
        FileIOError: The file is missing or cannot be decoded.
    """
    if not isinstance(file_path, (str, os.PathLike)) or not str(file_path):
        raise FileIOError("Invalid file path provided", file_path=str(file_path))

    file_path = os.fspath(file_path)
    if not os.path.isfile(file_path):
        raise FileIOError(
            f"File not found at '{file_path}'",
            file_path=file_path,
            user_message=f"File not found: {file_path}",
        )

    try:
        with Image.open(file_path) as img:
            image_np = _to_rgba_array(img, file_path)
    except UnidentifiedImageError as e:
        raise FileIOError(
            f"Pillow could not identify image file format or file is corrupted: '{file_path}'",
            file_path=file_path,
            original_error=e,
            user_message=f"Unsupported or corrupted image: {os.path.basename(file_path)}",
        ) from e
    except OSError as e:
        raise FileIOError(
            f"Error reading image '{file_path}'",
            file_path=file_path,
            original_error=e,
        ) from e

    logger.info("Loaded image '%s' (%dx%d)", file_path, image_np.shape[1], image_np.shape[0])
    return image_np


def decode_bytes(data: bytes) -> np.ndarray:
    """Decode an in-memory encoded image (e.g. an export) to an RGBA array."""
    if not data:
        raise FileIOError("No image data to decode")
    try:
        with Image.open(io.BytesIO(data)) as img:
            return _to_rgba_array(img, "<bytes>")
    except (UnidentifiedImageError, OSError) as e:
        raise FileIOError(
            "Could not decode image data",
            original_error=e,
            user_message="The image data could not be decoded.",
        ) from e

