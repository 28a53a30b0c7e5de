"""Tests for preview proxies."""

import numpy as np
import pytest

from pixel_pipeline.utils.image_proxy import (
    ProxyInfo,
    calculate_scale_factor,
    create_proxy,
    get_pixel_count,
)


class TestProxyInfo:
    """Tests for ProxyInfo dataclass."""

    def test_megapixels_calculation(self):
        """Should calculate megapixels correctly."""
        info = ProxyInfo(
            original_shape=(2000, 3000, 4),
            proxy_shape=(1000, 1500, 4),
            scale_factor=0.5,
        )
        assert info.original_megapixels == 6.0
        assert info.proxy_megapixels == 1.5
        assert info.is_proxy

    def test_same_shape_is_not_proxy(self):
        info = ProxyInfo((10, 10, 4), (10, 10, 4), 1.0)
        assert not info.is_proxy


class TestScaleFactor:
    """Tests for pixel counting and scale factors."""

    def test_pixel_count(self, quadrant_rgba):
        assert get_pixel_count(quadrant_rgba) == 200

    def test_small_image_not_scaled(self, quadrant_rgba):
        assert calculate_scale_factor(quadrant_rgba, 1000) == 1.0

    def test_scale_is_square_root_of_ratio(self, random_rgba):
        """The factor is applied per side, so it is the square root of the ratio."""
        assert calculate_scale_factor(random_rgba, 256) == pytest.approx(0.5)


class TestCreateProxy:
    """Tests for create_proxy."""

    def test_no_proxy_needed(self, gradient_rgba):
        """Images within the limit are returned unchanged."""
        proxy, info = create_proxy(gradient_rgba, max_pixels=10_000)
        assert proxy is gradient_rgba
        assert not info.is_proxy
        assert info.scale_factor == 1.0

    def test_downscales_large_image(self, random_rgba):
        """32x32 with a 100 pixel limit becomes 10x10."""
        proxy, info = create_proxy(random_rgba, max_pixels=100)
        assert proxy.shape == (10, 10, 4)
        assert proxy.dtype == np.uint8
        assert info.is_proxy
        assert info.original_shape == (32, 32, 4)
        assert get_pixel_count(proxy) <= 100

    def test_default_limit(self, gradient_rgba):
        """Without max_pixels the preview setting applies."""
        proxy, info = create_proxy(gradient_rgba)
        assert proxy is gradient_rgba
        assert not info.is_proxy
