"""
thresholding.py – Threshold calculators for the shrinkage policies.

This module is totally *stateless*; every function maps a band (plus a
noise σ̂) to one scalar threshold.

Public API
----------
universal_threshold(band, sigma)
    VisuShrink threshold σ·√(2·ln N).
bayes_threshold(band, sigma_noise, device=None)
    BayesShrink threshold σ²/σ_signal from the band's variance.
NEIGH_K, MODI_NEIGH_K
    Scaling constants of NeighShrink and ModiNeighShrink.
"""

from __future__ import annotations

import logging
import math

import numpy as np

from device import Device, DeviceBuffer
from noise import check_band
from reduction import sum_of_squares

__all__ = [
    "NEIGH_K",
    "MODI_NEIGH_K",
    "universal_threshold",
    "bayes_threshold",
]

logger = logging.getLogger("thresholding")
logger.setLevel(logging.INFO)

NEIGH_K = 1.0
MODI_NEIGH_K = 0.75


# ---------------------------------------------------------------------------
# Universal (VisuShrink)
# ---------------------------------------------------------------------------


def universal_threshold(band: np.ndarray, sigma: float) -> float:
    """
    Donoho's universal threshold  T = σ · √(2 · ln(rows · cols)).

    Only the band's size is used; its values are not read.
    """
    if sigma < 0:
        raise ValueError("`sigma` must be ≥ 0")
    n = band.shape[0] * band.shape[1]
    if n == 0:
        raise ValueError("band is empty")
    return sigma * math.sqrt(2.0 * math.log(n))


# ---------------------------------------------------------------------------
# BayesShrink
# ---------------------------------------------------------------------------


def bayes_threshold(
    band: np.ndarray,
    sigma_noise: float,
    device: str | Device | None = None,
) -> float:
    """
    Per-band BayesShrink threshold.

    σ_y² = Σ x² / N                 (total variance, device reduction)
    σ_x  = √max(σ_y² − σ_n², 0)     (signal std)
    T    = σ_n² / σ_x

    Parameters
    ----------
    band : np.ndarray
        Contiguous float32/float64 detail coefficients.
    sigma_noise : float
        Noise σ̂ from `noise.estimate_sigma`.

    Returns
    -------
    float
        ``0.0`` when σ_n is 0 (nothing to remove) and ``math.inf`` when the
        band carries no signal energy above the noise floor (the band is
        zeroed by any shrink mode).
    """
    check_band(band)
    if sigma_noise < 0:
        raise ValueError("`sigma_noise` must be ≥ 0")

    with DeviceBuffer(band, device) as buf:
        total_var = sum_of_squares(buf.array) / band.size

    noise_var = sigma_noise * sigma_noise
    if noise_var == 0.0:
        return 0.0

    signal_var = max(total_var - noise_var, 0.0)
    if signal_var == 0.0:
        logger.info(
            f"band variance {total_var:.6g} ≤ noise variance {noise_var:.6g}; zeroing band"
        )
        return math.inf
    return noise_var / math.sqrt(signal_var)
