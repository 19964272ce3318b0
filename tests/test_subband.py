"""
test_subband.py
===============

Pyramid quadrant layout, view aliasing and the PyWavelets transform that
writes the layout.
"""

from __future__ import annotations

import numpy as np
import pytest
import pywt

from subband import Band, Pyramid
from wavelet import WaveletTransform


def make_grid(rows: int = 8, cols: int = 8) -> np.ndarray:
    return np.arange(rows * cols, dtype=np.float64).reshape(rows, cols)


# --------------------------------------------------------------------------- #
# Pyramid / SubbandView
# --------------------------------------------------------------------------- #

class TestLayout:

    def test_level_one_quadrants(self):
        grid = make_grid()
        pyr = Pyramid(grid, 2)
        np.testing.assert_array_equal(pyr.view(1, Band.LL).array, grid[:4, :4])
        np.testing.assert_array_equal(pyr.view(1, Band.HL).array, grid[:4, 4:])
        np.testing.assert_array_equal(pyr.view(1, Band.LH).array, grid[4:, :4])
        np.testing.assert_array_equal(pyr.view(1, Band.HH).array, grid[4:, 4:])

    def test_level_two_nests_in_ll(self):
        grid = make_grid()
        pyr = Pyramid(grid, 2)
        np.testing.assert_array_equal(pyr.view(2, "HH").array, grid[2:4, 2:4])
        np.testing.assert_array_equal(pyr.approximation().array, grid[:2, :2])

    def test_rectangular_grid(self):
        grid = make_grid(4, 8)
        view = Pyramid(grid, 1).view(1, Band.HL)
        assert view.shape == (2, 4)
        assert (view.row, view.col) == (0, 4)
        assert view.stride == 8

    def test_detail_view_order(self):
        pyr = Pyramid(make_grid(), 1)
        views = pyr.detail_views(1)
        assert [(v.row, v.col) for v in views] == [(0, 4), (4, 0), (4, 4)]
        assert pyr.noise_band().array is not None

    def test_writes_through_view_reach_owner(self):
        grid = make_grid()
        view = Pyramid(grid, 1).view(1, Band.HH)
        view.array[...] = -1.0
        assert (grid[4:, 4:] == -1.0).all()
        view.write(np.full((4, 4), 7.0))
        assert (grid[4:, 4:] == 7.0).all()

    def test_clone_is_detached_and_contiguous(self):
        grid = make_grid()
        view = Pyramid(grid, 1).view(1, Band.HL)
        copy = view.clone()
        assert copy.flags.c_contiguous
        copy[...] = 0.0
        np.testing.assert_array_equal(grid, make_grid())

    def test_write_shape_mismatch(self):
        view = Pyramid(make_grid(), 1).view(1, Band.HL)
        with pytest.raises(ValueError):
            view.write(np.zeros((2, 2)))

    @pytest.mark.parametrize("shape, levels", [((6, 8), 2), ((8, 8), 4), ((8, 8), 0)])
    def test_invalid_pyramid(self, shape, levels):
        with pytest.raises(ValueError):
            Pyramid(np.zeros(shape), levels)

    def test_level_out_of_range(self):
        with pytest.raises(ValueError):
            Pyramid(make_grid(), 1).view(2, Band.HH)


# --------------------------------------------------------------------------- #
# WaveletTransform
# --------------------------------------------------------------------------- #

class TestWaveletTransform:

    def test_level_one_matches_pywt(self):
        img = np.random.default_rng(0).normal(size=(8, 8))
        pyr = WaveletTransform("haar").decompose(img, 1)
        cA, (cH, cV, cD) = pywt.dwt2(img, "haar", mode="periodization")
        np.testing.assert_allclose(pyr.grid[:4, :4], cA)
        np.testing.assert_allclose(pyr.grid[:4, 4:], cH)
        np.testing.assert_allclose(pyr.grid[4:, :4], cV)
        np.testing.assert_allclose(pyr.grid[4:, 4:], cD)

    def test_level_two_decomposes_ll(self):
        img = np.random.default_rng(1).normal(size=(8, 8))
        pyr = WaveletTransform().decompose(img, 2)
        cA1, _ = pywt.dwt2(img, "haar", mode="periodization")
        cA2, (cH2, _, _) = pywt.dwt2(cA1, "haar", mode="periodization")
        np.testing.assert_allclose(pyr.grid[:2, :2], cA2)
        np.testing.assert_allclose(pyr.grid[:2, 2:4], cH2)

    @pytest.mark.parametrize("wavelet", ["haar", "db2"])
    def test_reconstruct_inverts(self, wavelet):
        img = np.random.default_rng(2).normal(size=(32, 16))
        tr = WaveletTransform(wavelet)
        pyr = tr.decompose(img, 3)
        np.testing.assert_allclose(tr.reconstruct(pyr, 3), img, atol=1e-10)

    def test_float32_preserved(self):
        img = np.random.default_rng(3).normal(size=(8, 8)).astype(np.float32)
        tr = WaveletTransform()
        pyr = tr.decompose(img, 2)
        assert pyr.grid.dtype == np.float32
        out = tr.reconstruct(pyr)
        assert out.dtype == np.float32
        np.testing.assert_allclose(out, img, atol=1e-5)

    def test_input_not_modified(self):
        img = np.random.default_rng(4).normal(size=(8, 8))
        before = img.copy()
        WaveletTransform().decompose(img, 2)
        np.testing.assert_array_equal(img, before)

    def test_rejects_bad_input(self):
        tr = WaveletTransform()
        with pytest.raises(ValueError):
            tr.decompose(np.zeros((8, 8), dtype=np.uint8), 1)
        with pytest.raises(ValueError):
            tr.decompose(np.zeros(8), 1)
        with pytest.raises(ValueError):
            tr.decompose(np.zeros((6, 6)), 2)

    def test_reconstruct_level_mismatch(self):
        tr = WaveletTransform()
        pyr = tr.decompose(np.zeros((8, 8)), 2)
        with pytest.raises(ValueError):
            tr.reconstruct(pyr, 1)
