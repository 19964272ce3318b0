"""
test_reduction.py
=================

Pointwise shrink rules, the block-tree sum of squares and the NeighShrink
neighbourhood kernels.
"""

from __future__ import annotations

import math

import numpy as np
import pytest

from errors import PreconditionError
from reduction import (
    ShrinkageMode,
    neigh_scale,
    neighbourhood_energy,
    shrink,
    sum_of_squares,
)

ALL_MODES = list(ShrinkageMode)


# --------------------------------------------------------------------------- #
# shrink
# --------------------------------------------------------------------------- #

class TestShrink:

    @pytest.mark.parametrize("mode", ALL_MODES)
    def test_zero_threshold_is_identity(self, mode):
        x = np.array([-2.5, -1.0, 0.0, 0.3, 4.0])
        np.testing.assert_array_equal(shrink(x, 0.0, mode), x)

    def test_soft_formula(self):
        rng = np.random.default_rng(1)
        x = rng.normal(0, 2, size=(16, 16))
        t = 0.8
        expected = np.sign(x) * np.maximum(np.abs(x) - t, 0.0)
        np.testing.assert_allclose(shrink(x, t, "soft"), expected)

    def test_soft_is_not_idempotent(self):
        x = np.array([3.0, -3.0])
        once = shrink(x, 1.0, ShrinkageMode.SOFT)
        twice = shrink(once, 1.0, ShrinkageMode.SOFT)
        np.testing.assert_array_equal(once, [2.0, -2.0])
        np.testing.assert_array_equal(twice, [1.0, -1.0])

    def test_hard_keeps_values_strictly_above(self):
        x = np.array([-2.0, -1.0, 0.5, 1.0, 1.5])
        np.testing.assert_array_equal(shrink(x, 1.0, "hard"), [-2.0, 0.0, 0.0, 0.0, 1.5])

    def test_garrote_formula(self):
        x = np.array([-4.0, -1.0, 0.0, 2.0])
        t = 1.5
        expected = np.array([-4.0 + 2.25 / 4.0, 0.0, 0.0, 2.0 - 2.25 / 2.0])
        np.testing.assert_allclose(shrink(x, t, "garrote"), expected)

    def test_garrote_zero_coefficients_do_not_divide(self):
        x = np.zeros((4, 4))
        with np.errstate(all="raise"):
            out = shrink(x, 0.5, ShrinkageMode.GARROTE)
        np.testing.assert_array_equal(out, x)

    @pytest.mark.parametrize("mode", ALL_MODES)
    def test_infinite_threshold_zeroes_everything(self, mode):
        x = np.array([[-7.0, 0.0], [1e-3, 1e6]])
        with np.errstate(all="raise"):
            out = shrink(x, math.inf, mode)
        assert not np.isnan(out).any()
        np.testing.assert_array_equal(out, np.zeros_like(x))

    @pytest.mark.parametrize("mode", ALL_MODES)
    def test_dtype_preserved(self, mode):
        x = np.linspace(-2, 2, 9, dtype=np.float32)
        assert shrink(x, 0.5, mode).dtype == np.float32

    def test_negative_threshold_rejected(self):
        with pytest.raises(ValueError):
            shrink(np.ones(3), -0.1, "hard")

    def test_unknown_mode_rejected(self):
        with pytest.raises(ValueError):
            shrink(np.ones(3), 0.1, "median")

    def test_garrote_large_threshold_float32(self):
        x = np.array([1e25, -3e25, 1.0], dtype=np.float32)
        t = 1e20
        with np.errstate(all="raise"):
            out = shrink(x, t, ShrinkageMode.GARROTE)
        assert out.dtype == np.float32
        assert np.isfinite(out).all()
        x64 = x.astype(np.float64)
        expected = np.where(np.abs(x64) > t, x64 - t * (t / x64), 0.0)
        np.testing.assert_allclose(out, expected, rtol=1e-6)
        assert out[2] == 0.0

    @pytest.mark.parametrize("mode", ALL_MODES)
    def test_threshold_beyond_dtype_range_zeroes_everything(self, mode):
        x = np.array([3e38, -1.0], dtype=np.float32)
        with np.errstate(all="raise"):
            out = shrink(x, 1e40, mode)
        np.testing.assert_array_equal(out, np.zeros_like(x))

    def test_non_array_input_rejected(self):
        with pytest.raises(PreconditionError):
            shrink([1.0, -2.0], 0.5, "hard")


# --------------------------------------------------------------------------- #
# sum_of_squares
# --------------------------------------------------------------------------- #

class TestSumOfSquares:

    @pytest.mark.parametrize("n", [1, 255, 256, 1000])
    def test_matches_numpy(self, n):
        rng = np.random.default_rng(n)
        x = rng.normal(size=n)
        assert sum_of_squares(x) == pytest.approx(float(np.sum(x * x)), rel=1e-12)

    def test_two_dimensional_input(self):
        x = np.arange(12, dtype=np.float32).reshape(3, 4)
        assert sum_of_squares(x, block_size=4) == pytest.approx(506.0)

    def test_does_not_modify_input(self):
        x = np.arange(10, dtype=np.float64)
        before = x.copy()
        sum_of_squares(x, block_size=8)
        np.testing.assert_array_equal(x, before)

    def test_empty(self):
        assert sum_of_squares(np.zeros((0, 3))) == 0.0

    def test_block_size_must_be_power_of_two(self):
        with pytest.raises(ValueError):
            sum_of_squares(np.ones(4), block_size=3)


# --------------------------------------------------------------------------- #
# NeighShrink kernels
# --------------------------------------------------------------------------- #

class TestNeighbourhood:

    def test_energy_clips_window_at_edges(self):
        energy = neighbourhood_energy(np.ones((4, 4)), half_window=1)
        expected = np.array(
            [
                [4, 6, 6, 4],
                [6, 9, 9, 6],
                [6, 9, 9, 6],
                [4, 6, 6, 4],
            ],
            dtype=float,
        )
        np.testing.assert_array_equal(energy, expected)

    def test_zero_half_window_is_square(self):
        x = np.array([[1.0, -2.0], [3.0, 0.5]])
        np.testing.assert_array_equal(neighbourhood_energy(x, 0), x * x)

    def test_uniform_energy_gives_uniform_factor(self):
        # a 5x5 window covers the whole 3x3 band from every position
        x = np.full((3, 3), 2.0)
        t = 3.0
        square_sum = 9 * 4.0
        factor = max(1 - t * t / square_sum, 0.0)
        out = neigh_scale(x, t, half_window=2)
        np.testing.assert_allclose(out, x * factor)
        assert np.unique(out).size == 1

    def test_modified_constant(self):
        x = np.full((3, 3), 2.0)
        out = neigh_scale(x, 3.0, half_window=2, k=0.75)
        np.testing.assert_allclose(out, x * (1 - 0.75 * 9.0 / 36.0))

    def test_zero_energy_maps_to_zero(self):
        x = np.zeros((5, 5))
        with np.errstate(all="raise"):
            out = neigh_scale(x, 1.0, half_window=1)
        np.testing.assert_array_equal(out, x)

    def test_large_threshold_zeroes_band(self):
        x = np.random.default_rng(3).normal(size=(8, 8))
        np.testing.assert_array_equal(neigh_scale(x, 100.0, half_window=1), np.zeros_like(x))

    def test_zero_threshold_is_identity(self):
        x = np.random.default_rng(4).normal(size=(6, 6)).astype(np.float32)
        out = neigh_scale(x, 0.0, half_window=1)
        assert out.dtype == np.float32
        np.testing.assert_array_equal(out, x)
