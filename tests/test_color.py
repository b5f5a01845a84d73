"""Tests for pindou.color — sRGB to Lab and CIE76 distance."""

import numpy as np
import pytest

from pindou.color import delta_e, hex_to_rgb, rgb_to_lab


class TestRgbToLab:
    def test_black(self):
        L, a, b = rgb_to_lab((0, 0, 0))
        assert L == pytest.approx(0.0, abs=1e-6)
        assert a == pytest.approx(0.0, abs=1e-6)
        assert b == pytest.approx(0.0, abs=1e-6)

    def test_white(self):
        L, a, b = rgb_to_lab((255, 255, 255))
        assert L == pytest.approx(100.0, abs=0.01)
        assert abs(a) < 0.05
        assert abs(b) < 0.05

    def test_pure_red(self):
        L, a, b = rgb_to_lab((255, 0, 0))
        assert L == pytest.approx(53.24, abs=0.05)
        assert a == pytest.approx(80.09, abs=0.05)
        assert b == pytest.approx(67.20, abs=0.05)

    def test_dark_value_uses_linear_segment(self):
        """(1, 1, 1) falls under both breakpoints and must stay finite/small."""
        L, _, _ = rgb_to_lab((1, 1, 1))
        assert 0 < L < 1

    def test_vectorised_shape(self):
        rgb = np.zeros((4, 5, 3), dtype=np.uint8)
        assert rgb_to_lab(rgb).shape == (4, 5, 3)

    def test_float_input(self):
        np.testing.assert_allclose(rgb_to_lab([127.5, 127.5, 127.5]),
                                   rgb_to_lab(np.array([127.5] * 3)))

    def test_lightness_monotonic_on_greys(self):
        greys = np.repeat(np.arange(0, 256, 15)[:, None], 3, axis=1)
        L = rgb_to_lab(greys)[:, 0]
        assert np.all(np.diff(L) > 0)


class TestDeltaE:
    def test_same_colour_is_zero(self):
        lab = rgb_to_lab((12, 200, 99))
        assert delta_e(lab, lab) == 0.0

    def test_symmetry(self):
        a = rgb_to_lab((100, 50, 200))
        b = rgb_to_lab((120, 60, 180))
        assert delta_e(a, b) == delta_e(b, a)

    def test_euclidean(self):
        assert delta_e((0, 0, 0), (3, 4, 0)) == pytest.approx(5.0)

    def test_returns_float_for_single_pair(self):
        assert isinstance(delta_e((1, 2, 3), (1, 2, 4)), float)

    def test_broadcasts(self):
        labs = rgb_to_lab(np.array([[0, 0, 0], [255, 255, 255]]))
        d = delta_e(labs, labs[0])
        assert d.shape == (2,)
        assert d[0] == 0.0
        assert d[1] == pytest.approx(100.0, abs=0.05)


class TestHexToRgb:
    def test_white(self):
        assert hex_to_rgb("#FFFFFF") == (255, 255, 255)

    def test_lowercase(self):
        assert hex_to_rgb("#3fa0e0") == (63, 160, 224)

    def test_no_hash(self):
        assert hex_to_rgb("ff0000") == (255, 0, 0)
