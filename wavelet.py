"""
wavelet.py
==========

Forward / inverse 2‑D DWT writing the in-place quadrant layout used by the
thresholding engine (see `subband.py`).

Public API
----------
WaveletTransform(wavelet="haar", mode="periodization")
    .decompose(image, levels) -> Pyramid
    .reconstruct(pyramid, levels=None) -> np.ndarray

Design Notes
------------
* PyWavelets (`pywt`) is the backend.
* ``periodization`` mode keeps every sub-band at exactly half the parent
  size, which the ``rows >> i`` / ``cols >> i`` offsets rely on.
* Output dtype follows the input (float32 stays float32).
"""

from __future__ import annotations

import logging

import numpy as np
import pywt

from io_utils import timer
from subband import Band, Pyramid

__all__ = ["WaveletTransform"]

logger = logging.getLogger("wavelet")
logger.setLevel(logging.INFO)


# --------------------------------------------------------------------------- #
# Helpers
# --------------------------------------------------------------------------- #
def _validate_input(img: np.ndarray) -> None:
    if img.ndim != 2:
        raise ValueError("Input image must be 2‑D gray scale.")
    if img.dtype not in (np.float32, np.float64):
        raise ValueError("WaveletTransform expects float32 or float64 input.")


class WaveletTransform:
    """Multi-level DWT over a single full-size coefficient grid."""

    def __init__(self, wavelet: str = "haar", mode: str = "periodization"):
        self.wavelet = pywt.Wavelet(wavelet)
        self.mode = mode

    @timer
    def decompose(self, image: np.ndarray, levels: int) -> Pyramid:
        """
        Decompose *image* into a `Pyramid` with *levels* levels.

        Parameters
        ----------
        image : np.ndarray
            2‑D float32/float64 array; both sides divisible by 2**levels.
        levels : int
            Decomposition depth, ≥1.

        Returns
        -------
        Pyramid
            New grid (the input is not modified).
        """
        _validate_input(image)
        pyramid = Pyramid(np.array(image, order="C", copy=True), levels)

        for lvl in range(1, levels + 1):
            parent = pyramid.view(lvl - 1, Band.LL) if lvl > 1 else None
            src = parent.array if parent is not None else pyramid.grid
            cA, (cH, cV, cD) = pywt.dwt2(src, self.wavelet, mode=self.mode)
            pyramid.view(lvl, Band.LL).write(cA.astype(image.dtype, copy=False))
            pyramid.view(lvl, Band.HL).write(cH.astype(image.dtype, copy=False))
            pyramid.view(lvl, Band.LH).write(cV.astype(image.dtype, copy=False))
            pyramid.view(lvl, Band.HH).write(cD.astype(image.dtype, copy=False))

        return pyramid

    @timer
    def reconstruct(self, pyramid: Pyramid, levels: int | None = None) -> np.ndarray:
        """
        Inverse of `decompose`; returns a new image of the grid's shape/dtype.

        *levels* defaults to ``pyramid.levels`` and must equal it.
        """
        levels = pyramid.levels if levels is None else levels
        if levels != pyramid.levels:
            raise ValueError(f"levels={levels} does not match pyramid depth {pyramid.levels}")

        dtype = pyramid.grid.dtype
        work = Pyramid(pyramid.grid.copy(), pyramid.levels)

        for lvl in range(levels, 0, -1):
            cA = work.view(lvl, Band.LL).array
            cH = work.view(lvl, Band.HL).array
            cV = work.view(lvl, Band.LH).array
            cD = work.view(lvl, Band.HH).array
            rec = pywt.idwt2((cA, (cH, cV, cD)), self.wavelet, mode=self.mode)
            if lvl > 1:
                work.view(lvl - 1, Band.LL).write(rec.astype(dtype, copy=False))
            else:
                work.grid[...] = rec.astype(dtype, copy=False)

        return work.grid
