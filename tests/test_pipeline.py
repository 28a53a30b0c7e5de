"""Tests for the full render pipeline."""

import numpy as np
import pytest

from pixel_pipeline.processing.adjustment_state import AdjustmentState
from pixel_pipeline.processing.pipeline import render
from pixel_pipeline.utils.errors import BufferMismatchError


BUSY_STATE = AdjustmentState(
    exposure=15, contrast=25, temperature=-30, vibrance=40, hue=20,
    clarity=30, dehaze=20, sharpness=50, blur=5,
    vignette_amount=40, grain=35,
)


class TestPurity:
    """render is a pure function of its inputs."""

    def test_same_inputs_bit_identical(self, random_rgba):
        """Two renders with the same state are byte-identical, grain included."""
        a = render(random_rgba, BUSY_STATE)
        b = render(random_rgba, BUSY_STATE)
        np.testing.assert_array_equal(a, b)

    def test_no_accumulation(self, random_rgba):
        """Rendering in between does not affect a later render."""
        first = render(random_rgba, BUSY_STATE)
        render(random_rgba, AdjustmentState(brightness=80))
        np.testing.assert_array_equal(render(random_rgba, BUSY_STATE), first)

    def test_original_not_modified(self, random_rgba):
        """The input buffer is never written."""
        before = random_rgba.copy()
        render(random_rgba, BUSY_STATE)
        np.testing.assert_array_equal(random_rgba, before)

    def test_read_only_original(self, random_rgba):
        """A read-only baseline renders fine."""
        random_rgba.setflags(write=False)
        out = render(random_rgba, BUSY_STATE)
        assert out.flags.writeable

    def test_explicit_seed(self, random_rgba):
        """A different grain seed changes the output; the same seed does not."""
        state = AdjustmentState(grain=60)
        assert not np.array_equal(render(random_rgba, state, seed=1), render(random_rgba, state, seed=2))
        np.testing.assert_array_equal(render(random_rgba, state, seed=5), render(random_rgba, state, seed=5))


class TestNeutral:
    """Tests for the default state."""

    def test_default_state_reproduces_original(self, random_rgba):
        """render(original, default) == original."""
        np.testing.assert_array_equal(render(random_rgba, AdjustmentState()), random_rgba)
        np.testing.assert_array_equal(render(random_rgba), random_rgba)

    def test_geometry_not_baked_in(self, gradient_rgba):
        """Rotation and flips are left to the compositor."""
        state = AdjustmentState(rotation=90, flip_horizontal=True)
        np.testing.assert_array_equal(render(gradient_rgba, state), gradient_rgba)


class TestShape:
    """Tests for buffer validation."""

    def test_output_shape_matches(self, gradient_rgba):
        """Working always has the original's shape and dtype."""
        out = render(gradient_rgba, BUSY_STATE)
        assert out.shape == gradient_rgba.shape
        assert out.dtype == np.uint8

    @pytest.mark.parametrize("bad", [
        np.zeros((4, 4, 3), dtype=np.uint8),
        np.zeros((4, 4, 4), dtype=np.float32),
        np.zeros((0, 4, 4), dtype=np.uint8),
        np.zeros((4, 4), dtype=np.uint8),
    ])
    def test_malformed_buffer_rejected(self, bad):
        """Anything but a non-empty uint8 (h, w, 4) array raises."""
        with pytest.raises(BufferMismatchError):
            render(bad, AdjustmentState())

    def test_one_pixel_image(self):
        """Tiny images pass through every stage."""
        img = np.array([[[10, 20, 30, 40]]], dtype=np.uint8)
        out = render(img, BUSY_STATE)
        assert out.shape == (1, 1, 4)
        assert out[0, 0, 3] == 40
