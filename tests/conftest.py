import pytest
import numpy as np

from pixel_pipeline.processing.compositor import CanvasRenderer
from pixel_pipeline.services.editing_engine import Engine


def make_rgba(height, width, color):
    """Solid RGBA buffer."""
    img = np.empty((height, width, 4), dtype=np.uint8)
    img[:] = color
    return img


@pytest.fixture
def red_4x4():
    """4x4 opaque pure red image."""
    return make_rgba(4, 4, (255, 0, 0, 255))


@pytest.fixture
def gray_128():
    """8x8 image where every channel is exactly 128."""
    return make_rgba(8, 8, (128, 128, 128, 255))


@pytest.fixture
def gradient_rgba():
    """Returns a 16x24 image with a horizontal, vertical and diagonal ramp and varying alpha."""
    h, w = 16, 24
    ys, xs = np.mgrid[0:h, 0:w]
    img = np.empty((h, w, 4), dtype=np.uint8)
    img[..., 0] = (xs * 255 // (w - 1)).astype(np.uint8)
    img[..., 1] = (ys * 255 // (h - 1)).astype(np.uint8)
    img[..., 2] = ((xs + ys) * 255 // (w + h - 2)).astype(np.uint8)
    img[..., 3] = (200 + (xs % 4) * 10).astype(np.uint8)
    return img


@pytest.fixture
def quadrant_rgba():
    """Returns a 10x20 image with four colored quadrants."""
    img = np.zeros((10, 20, 4), dtype=np.uint8)
    img[:5, :10] = [255, 0, 0, 255]    # Red quadrant
    img[:5, 10:] = [0, 255, 0, 255]    # Green quadrant
    img[5:, :10] = [0, 0, 255, 255]    # Blue quadrant
    img[5:, 10:] = [255, 255, 0, 255]  # Yellow quadrant
    return img


@pytest.fixture
def random_rgba():
    """Returns a 32x32 noise image (fixed seed)."""
    rng = np.random.default_rng(1234)
    return rng.integers(0, 256, size=(32, 32, 4), dtype=np.uint8)


@pytest.fixture
def engine():
    """Engine with an offscreen canvas attached and no image loaded."""
    return Engine(renderer=CanvasRenderer())


@pytest.fixture
def loaded_engine(engine, gradient_rgba):
    """Engine with the gradient image loaded."""
    engine.load(gradient_rgba)
    return engine
