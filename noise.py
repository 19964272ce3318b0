"""
noise.py – Robust noise σ estimation (Donoho & Johnstone MAD rule).

    σ̂ = median(|band|) / 0.6745

The median is found with a partial selection (`partition`) on the device;
only the middle element is placed, no full sort.
"""

from __future__ import annotations

import logging

import numpy as np

from device import Device, DeviceBuffer
from errors import PreconditionError
from reduction import abs_values

__all__ = ["MAD_SCALE", "check_band", "estimate_sigma"]

logger = logging.getLogger("noise")
logger.setLevel(logging.INFO)

MAD_SCALE = 0.6745


def check_band(band: np.ndarray) -> None:
    """Entry check shared by the statistic routines."""
    if band.dtype not in (np.float32, np.float64):
        raise PreconditionError(f"band must be float32 or float64, got {band.dtype}")
    if not band.flags.c_contiguous:
        raise PreconditionError("band must be C-contiguous (clone the view first)")
    if band.size == 0:
        raise ValueError("band is empty")


def estimate_sigma(band: np.ndarray, device: str | Device | None = None) -> float:
    """
    Estimate Gaussian noise σ from a high-frequency band.

    Parameters
    ----------
    band : np.ndarray
        Contiguous float32/float64 coefficients, usually the finest HH.
    device : str or Device, optional
        'cpu' (default) or 'cuda'.

    Returns
    -------
    float
        σ̂ ≥ 0.  For an even element count the upper of the two middle
        values is used.
    """
    check_band(band)
    with DeviceBuffer(band, device) as buf:
        mags = abs_values(buf.array).ravel()
        mid = mags.size // 2
        placed = buf.device.xp.partition(mags, mid)
        median = float(buf.to_host(placed[mid : mid + 1])[0])
    sigma = median / MAD_SCALE
    logger.debug(f"median |x| = {median:.6g}, sigma = {sigma:.6g}")
    return sigma
