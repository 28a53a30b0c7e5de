"""Tests for the spatial filter stage."""

import numpy as np
import pytest

from pixel_pipeline.processing.spatial import (
    apply_blur,
    apply_clarity,
    apply_dehaze,
    apply_sharpen,
    apply_spatial,
    blur_radius,
)

from conftest import make_rgba


@pytest.fixture
def dot_9x9():
    """9x9 mid-gray image with a single bright pixel in the centre."""
    img = make_rgba(9, 9, (100, 100, 100, 255))
    img[4, 4] = (200, 200, 200, 255)
    return img


class TestNeutralIdentity:
    """Each operator is an exact no-op at 0."""

    @pytest.mark.parametrize("op", [apply_clarity, apply_dehaze, apply_sharpen, apply_blur])
    def test_zero_returns_input_unchanged(self, op, random_rgba):
        """A zero parameter returns the very same buffer."""
        before = random_rgba.copy()
        out = op(random_rgba, 0)
        assert out is random_rgba
        np.testing.assert_array_equal(out, before)

    def test_stage_with_all_zero(self, random_rgba):
        """The whole stage is byte-identical at neutral."""
        out = apply_spatial(random_rgba)
        np.testing.assert_array_equal(out, random_rgba)


class TestClarity:
    """Tests for local contrast."""

    def test_uniform_image_unchanged(self, gray_128):
        """Without local detail there is nothing to amplify."""
        np.testing.assert_array_equal(apply_clarity(gray_128, 100), gray_128)

    def test_boosts_local_peak(self, dot_9x9):
        """A bright pixel gets brighter relative to its neighborhood."""
        out = apply_clarity(dot_9x9, 100)
        # 200 + (200 - 104) clamps at 255; 104 is the 5x5 mean
        assert out[4, 4, 0] == 255

    def test_border_band_untouched(self, random_rgba):
        """Pixels within the radius of an edge are left as they are."""
        out = apply_clarity(random_rgba, 80)
        np.testing.assert_array_equal(out[:2], random_rgba[:2])
        np.testing.assert_array_equal(out[-2:], random_rgba[-2:])
        np.testing.assert_array_equal(out[:, :2], random_rgba[:, :2])
        np.testing.assert_array_equal(out[:, -2:], random_rgba[:, -2:])
        assert not np.array_equal(out[2:-2, 2:-2], random_rgba[2:-2, 2:-2])


class TestDehaze:
    """Tests for the constant-airlight dehaze."""

    def test_known_values(self):
        """At full strength T = 0.5, so c' = 2c - 220."""
        img = np.array([[[220, 110, 200, 255], [50, 255, 0, 255]]], dtype=np.uint8)
        out = apply_dehaze(img, 100)
        np.testing.assert_array_equal(out[0, 0], [220, 0, 180, 255])
        np.testing.assert_array_equal(out[0, 1], [0, 255, 0, 255])

    def test_partial_strength(self):
        """dehaze=50 gives T = 0.75."""
        img = make_rgba(1, 1, (100, 100, 100, 255))
        # (100 - 220 * 0.25) / 0.75 = 60
        np.testing.assert_array_equal(apply_dehaze(img, 50)[0, 0], [60, 60, 60, 255])


class TestSharpen:
    """Tests for the 3x3 sharpen."""

    def test_uniform_image_unchanged(self, gray_128):
        """The kernel sums to one, so flat areas stay flat."""
        np.testing.assert_array_equal(apply_sharpen(gray_128, 100), gray_128)

    def test_full_strength_matches_kernel(self, dot_9x9):
        """At sharpness 100 the centre is 5*200 - 4*100."""
        out = apply_sharpen(dot_9x9, 100)
        assert out[4, 4, 0] == 255
        # Each 4-neighbour loses the bright pixel's excess: 5*100 - 3*100 - 200
        assert out[3, 4, 0] == 0

    def test_borders_unmodified(self, random_rgba):
        """Only interior pixels are convolved."""
        out = apply_sharpen(random_rgba, 100)
        np.testing.assert_array_equal(out[0], random_rgba[0])
        np.testing.assert_array_equal(out[-1], random_rgba[-1])
        np.testing.assert_array_equal(out[:, 0], random_rgba[:, 0])
        np.testing.assert_array_equal(out[:, -1], random_rgba[:, -1])

    def test_blend_strength(self, dot_9x9):
        """Half strength moves halfway to the sharpened value."""
        out = apply_sharpen(dot_9x9, 50)
        # 200 + (600 - 200) * 0.5
        assert out[4, 4, 0] == 255
        # 100 + (0 - 100) * 0.5
        assert out[3, 4, 0] == 50


class TestBlur:
    """Tests for the box blur."""

    @pytest.mark.parametrize("blur,radius", [(1, 1), (10, 1), (11, 2), (55, 6), (100, 10)])
    def test_radius(self, blur, radius):
        """Radius is ceil(blur / 10)."""
        assert blur_radius(blur) == radius

    def test_uniform_image_unchanged(self, gray_128):
        """Averaging a flat image changes nothing."""
        np.testing.assert_array_equal(apply_blur(gray_128, 70), gray_128)

    def test_averages_neighbourhood(self, dot_9x9):
        """Radius 1 spreads the bright pixel over its 3x3 block."""
        out = apply_blur(dot_9x9, 10)
        # (8 * 100 + 200) / 9 = 111.1
        assert out[4, 4, 0] == 111
        assert out[3, 3, 0] == 111
        assert out[0, 0, 0] == 100

    def test_alpha_preserved(self, gradient_rgba):
        """Blur only touches color channels."""
        out = apply_blur(gradient_rgba, 40)
        np.testing.assert_array_equal(out[..., 3], gradient_rgba[..., 3])
