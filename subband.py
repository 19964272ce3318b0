"""
subband.py – Pyramid container and non-owning sub-band views.

Quadrant layout of one decomposition level *i* (1 = finest) over a grid of
``rows × cols`` (h = rows >> i, w = cols >> i)::

    +---------+---------+
    | LL      | HL      |   rows 0 … h
    +---------+---------+
    | LH      | HH      |   rows h … 2h
    +---------+---------+
     cols 0…w  cols w…2w

Level i+1 lives inside the LL quadrant of level i.  `wavelet.WaveletTransform`
writes exactly this layout.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Tuple

import numpy as np

__all__ = ["Band", "DETAIL_BANDS", "SubbandView", "Pyramid"]


class Band(str, Enum):
    LL = "LL"
    HL = "HL"
    LH = "LH"
    HH = "HH"


DETAIL_BANDS: Tuple[Band, ...] = (Band.HL, Band.LH, Band.HH)

# (row block, col block) of each quadrant
_QUADRANT = {
    Band.LL: (0, 0),
    Band.HL: (0, 1),
    Band.LH: (1, 0),
    Band.HH: (1, 1),
}


@dataclass(slots=True)
class SubbandView:
    """Rectangular window (offset, extent) over a coefficient grid."""

    owner: np.ndarray
    row: int
    col: int
    rows: int
    cols: int

    @property
    def shape(self) -> Tuple[int, int]:
        return (self.rows, self.cols)

    @property
    def size(self) -> int:
        return self.rows * self.cols

    @property
    def stride(self) -> int:
        """Row pitch of the owning grid, in elements."""
        return self.owner.shape[1]

    @property
    def array(self) -> np.ndarray:
        """Aliasing view: writes go straight into the owner."""
        return self.owner[self.row : self.row + self.rows, self.col : self.col + self.cols]

    def clone(self) -> np.ndarray:
        """Detached, C-contiguous copy for out-of-place statistics."""
        return np.array(self.array, order="C", copy=True)

    def write(self, values: np.ndarray) -> None:
        if values.shape != self.shape:
            raise ValueError(f"shape mismatch: view {self.shape}, values {values.shape}")
        self.array[...] = values


@dataclass(slots=True)
class Pyramid:
    """Full-size coefficient grid holding *levels* nested decompositions."""

    grid: np.ndarray
    levels: int

    def __post_init__(self) -> None:
        if self.grid.ndim != 2:
            raise ValueError("Pyramid grid must be 2‑D")
        if self.levels < 1:
            raise ValueError("`levels` must be >= 1")
        rows, cols = self.grid.shape
        step = 1 << self.levels
        if rows % step or cols % step:
            raise ValueError(
                f"grid {rows}x{cols} cannot hold {self.levels} levels "
                f"(both sides must be multiples of {step})"
            )

    @property
    def shape(self) -> Tuple[int, int]:
        return self.grid.shape

    def band_shape(self, level: int) -> Tuple[int, int]:
        if not 1 <= level <= self.levels:
            raise ValueError(f"level {level} outside 1…{self.levels}")
        rows, cols = self.grid.shape
        return rows >> level, cols >> level

    def view(self, level: int, band: Band | str) -> SubbandView:
        h, w = self.band_shape(level)
        r, c = _QUADRANT[Band(band)]
        return SubbandView(self.grid, r * h, c * w, h, w)

    def detail_views(self, level: int) -> List[SubbandView]:
        """HL, LH, HH views of *level* (in that order)."""
        return [self.view(level, b) for b in DETAIL_BANDS]

    def noise_band(self) -> SubbandView:
        """Finest diagonal band, used for the MAD noise estimate."""
        return self.view(1, Band.HH)

    def approximation(self) -> SubbandView:
        """Coarsest LL quadrant."""
        return self.view(self.levels, Band.LL)
