"""
reduction.py – Data-parallel kernels over coefficient grids.

Every function takes either a NumPy or a CuPy array and runs on whichever
device owns it (see `device.array_module`).  Nothing here allocates device
buffers or synchronises streams; that is the caller's job.

Public API
----------
ShrinkageMode
abs_values(x)
sum_of_squares(x, block_size=256) -> float
shrink(x, t, mode)
neighbourhood_energy(x, half_window)
neigh_scale(x, t, half_window, k=1.0)
"""

from __future__ import annotations

from enum import Enum

import numpy as np

from device import array_module

__all__ = [
    "ShrinkageMode",
    "abs_values",
    "sum_of_squares",
    "shrink",
    "neighbourhood_energy",
    "neigh_scale",
]


class ShrinkageMode(str, Enum):
    HARD = "hard"
    SOFT = "soft"
    GARROTE = "garrote"


# --------------------------------------------------------------------------- #
# Elementwise / reductions
# --------------------------------------------------------------------------- #
def abs_values(x):
    """Elementwise |x| on the array's own device."""
    return array_module(x).abs(x)


def sum_of_squares(x, block_size: int = 256) -> float:
    """
    Σ x² via a two-stage reduction.

    Stage 1 runs on the device: the flattened data is cut into blocks of
    *block_size* elements (zero padded) and each block is folded in half
    repeatedly (tree reduction) until one partial per block remains.
    Stage 2 copies the per-block partials to the host and sums them in
    float64.

    Parameters
    ----------
    x : array
        Coefficients (any shape).
    block_size : int, default 256
        Power of two.

    Returns
    -------
    float
    """
    if block_size < 1 or block_size & (block_size - 1):
        raise ValueError("`block_size` must be a positive power of two")

    xp = array_module(x)
    flat = x.ravel()
    n = flat.size
    if n == 0:
        return 0.0

    n_blocks = -(-n // block_size)
    blocks = xp.zeros(n_blocks * block_size, dtype=flat.dtype)
    blocks[:n] = flat * flat
    blocks = blocks.reshape(n_blocks, block_size)

    width = block_size
    while width > 1:
        width //= 2
        blocks[:, :width] += blocks[:, width : 2 * width]

    partials = blocks[:, 0]
    if xp is not np:
        partials = xp.asnumpy(partials)
    return float(np.sum(partials, dtype=np.float64))


# --------------------------------------------------------------------------- #
# Pointwise shrinkage
# --------------------------------------------------------------------------- #
def shrink(x, t: float, mode: ShrinkageMode | str):
    """
    Apply the hard / soft / garrote rule with threshold *t* to every element.

    hard    : |x| > t ? x : 0
    soft    : sign(x) · max(|x| - t, 0)
    garrote : |x| > t ? x - t²/x : 0

    *t* may be ``inf``; any *t* at or above the dtype's largest finite value
    zeroes everything.  Returns a new array of the same dtype.
    """
    if t < 0:
        raise ValueError("threshold must be ≥ 0")
    mode = ShrinkageMode(mode)
    xp = array_module(x)
    zero = x.dtype.type(0)
    if t >= np.finfo(x.dtype).max:
        return xp.zeros_like(x)
    mag = xp.abs(x)

    if mode is ShrinkageMode.HARD:
        return xp.where(mag > t, x, zero)
    elif mode is ShrinkageMode.SOFT:
        return (xp.sign(x) * xp.maximum(mag - t, 0)).astype(x.dtype, copy=False)
    else:
        keep = mag > t
        # divisor is only x where |x| > t ≥ 0, so never zero
        safe = xp.where(keep, x, x.dtype.type(1))
        # t · (t/x): t² alone can overflow float32
        ratio = xp.where(keep, t / safe, zero)
        return xp.where(keep, x - t * ratio, zero).astype(x.dtype, copy=False)


# --------------------------------------------------------------------------- #
# Neighbourhood (NeighShrink) kernels
# --------------------------------------------------------------------------- #
def neighbourhood_energy(x, half_window: int):
    """
    Σ x² over the (2h+1)×(2h+1) window around every element.

    Window cells outside the band are left out of the sum.
    """
    if half_window < 0:
        raise ValueError("`half_window` must be ≥ 0")
    xp = array_module(x)
    rows, cols = x.shape
    sq = x * x
    padded = xp.pad(sq, half_window, mode="constant")
    out = xp.zeros_like(sq)
    span = 2 * half_window + 1
    for dy in range(span):
        for dx in range(span):
            out += padded[dy : dy + rows, dx : dx + cols]
    return out


def neigh_scale(x, t: float, half_window: int, k: float = 1.0):
    """
    NeighShrink rule: x · max(1 - k·t²/S, 0) with S the local energy.

    Elements whose window energy is 0 map to 0.
    """
    xp = array_module(x)
    energy = neighbourhood_energy(x, half_window)
    has_energy = energy > 0
    safe = xp.where(has_energy, energy, x.dtype.type(1))
    factor = xp.maximum(1 - (k * t * t) / safe, 0)
    factor = xp.where(has_energy, factor, 0)
    return (x * factor).astype(x.dtype, copy=False)
