"""
shrinkage.py
============

The four wavelet shrinkage policies.

Every policy comes in two forms:

* ``<policy>(image, level, …) -> np.ndarray``
    validate → decompose → estimate σ̂ → threshold every detail band of every
    level → reconstruct.
* ``<policy>_pyramid(pyramid, …) -> ShrinkResult``
    the thresholding step alone, mutating an already decomposed `Pyramid`
    in place.  The LL band is never touched.

Policies
--------
VisuShrink       – one universal threshold, hard/soft/garrote rule.
NeighShrink      – universal threshold, local-energy scaling (k = 1).
ModiNeighShrink  – as NeighShrink with k = 0.75.
BayesShrink      – one threshold per band per level; HL/LH/HH of a level
                   are processed concurrently, each in its own stream.

`denoise(image, method, …)` dispatches on `Method` and also returns the
`ShrinkResult`; it is what `pipeline.run` calls.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from functools import partial
from typing import Callable, Dict, Tuple

import numpy as np

from device import Device, DeviceBuffer, get_device
from io_utils import timer
from noise import estimate_sigma
from reduction import ShrinkageMode, neigh_scale, shrink
from subband import DETAIL_BANDS, Band, Pyramid
from thresholding import MODI_NEIGH_K, NEIGH_K, bayes_threshold, universal_threshold
from wavelet import WaveletTransform

__all__ = [
    "Method",
    "ShrinkResult",
    "visu_shrink",
    "visu_shrink_pyramid",
    "neigh_shrink",
    "neigh_shrink_pyramid",
    "modi_neigh_shrink",
    "modi_neigh_shrink_pyramid",
    "bayes_shrink",
    "bayes_shrink_pyramid",
    "denoise",
]

logger = logging.getLogger("shrinkage")
logger.setLevel(logging.INFO)


class Method(str, Enum):
    VISU = "visushrink"
    NEIGH = "neighshrink"
    MODI_NEIGH = "modineighshrink"
    BAYES = "bayesshrink"


@dataclass(slots=True)
class ShrinkResult:
    """Noise estimate and the threshold applied to each (level, band)."""
    sigma: float
    thresholds: Dict[Tuple[int, Band], float] = field(default_factory=dict)


# --------------------------------------------------------------------------- #
# Helpers
# --------------------------------------------------------------------------- #
def _validate(image: np.ndarray, level: int, window_size: int | None = None) -> None:
    if image is None or image.size == 0:
        raise ValueError("image is empty")
    if image.ndim != 2:
        raise ValueError("image must be 2‑D")
    if level < 1:
        raise ValueError("`level` must be >= 1")
    if window_size is not None and window_size < 1:
        raise ValueError("`window_size` must be >= 1")


def _noise_sigma(pyramid: Pyramid, device: Device) -> Tuple[np.ndarray, float]:
    noise_band = pyramid.noise_band().clone()
    sigma = estimate_sigma(noise_band, device)
    return noise_band, sigma


def _shrink_band(
    values: np.ndarray,
    device: Device,
    op: Callable,
) -> np.ndarray:
    """Run *op* on a device copy of *values* in a private stream."""
    with device.stream() as stream, DeviceBuffer(values, device) as buf:
        out = op(buf.array)
        stream.synchronize()
        return buf.to_host(out)


def _decompose_shrink_reconstruct(
    image: np.ndarray,
    level: int,
    transform: WaveletTransform | None,
    apply: Callable[[Pyramid], ShrinkResult],
) -> Tuple[np.ndarray, ShrinkResult]:
    transform = transform or WaveletTransform()
    pyramid = transform.decompose(image, level)
    result = apply(pyramid)
    return transform.reconstruct(pyramid, level), result


# --------------------------------------------------------------------------- #
# VisuShrink
# --------------------------------------------------------------------------- #
def visu_shrink_pyramid(
    pyramid: Pyramid,
    mode: ShrinkageMode | str = ShrinkageMode.HARD,
    device: str | Device | None = None,
) -> ShrinkResult:
    device = get_device(device)
    mode = ShrinkageMode(mode)

    noise_band, sigma = _noise_sigma(pyramid, device)
    t = universal_threshold(noise_band, sigma)
    logger.info(f"VisuShrink: sigma={sigma:.6g}, T={t:.6g}, mode={mode.value}")

    result = ShrinkResult(sigma)
    op = partial(shrink, t=t, mode=mode)
    for lvl in range(1, pyramid.levels + 1):
        for band, view in zip(DETAIL_BANDS, pyramid.detail_views(lvl)):
            view.write(_shrink_band(view.clone(), device, op))
            result.thresholds[(lvl, band)] = t
    return result


@timer
def visu_shrink(
    image: np.ndarray,
    level: int,
    mode: ShrinkageMode | str = ShrinkageMode.HARD,
    *,
    transform: WaveletTransform | None = None,
    device: str | Device | None = None,
) -> np.ndarray:
    """
    VisuShrink denoise of a 2‑D float image.

    Parameters
    ----------
    image : np.ndarray
        float32/float64, both sides divisible by 2**level.
    level : int
        Decomposition depth (≥1).
    mode : {'hard', 'soft', 'garrote'}
        Pointwise rule.
    transform : WaveletTransform, optional
        Defaults to a Haar transform.
    device : {'cpu', 'cuda'}, optional

    Returns
    -------
    np.ndarray
        Denoised image, same shape and dtype.
    """
    _validate(image, level)
    mode, device = ShrinkageMode(mode), get_device(device)
    apply = partial(visu_shrink_pyramid, mode=mode, device=device)
    return _decompose_shrink_reconstruct(image, level, transform, apply)[0]


# --------------------------------------------------------------------------- #
# NeighShrink / ModiNeighShrink
# --------------------------------------------------------------------------- #
def _neigh_pyramid(
    pyramid: Pyramid,
    window_size: int,
    k: float,
    device: str | Device | None,
) -> ShrinkResult:
    if window_size < 1:
        raise ValueError("`window_size` must be >= 1")
    device = get_device(device)
    half_window = window_size // 2

    noise_band, sigma = _noise_sigma(pyramid, device)
    t = universal_threshold(noise_band, sigma)
    logger.info(
        f"NeighShrink(k={k}): sigma={sigma:.6g}, T={t:.6g}, window={2 * half_window + 1}"
    )

    result = ShrinkResult(sigma)
    op = partial(neigh_scale, t=t, half_window=half_window, k=k)
    for lvl in range(1, pyramid.levels + 1):
        for band, view in zip(DETAIL_BANDS, pyramid.detail_views(lvl)):
            view.write(_shrink_band(view.clone(), device, op))
            result.thresholds[(lvl, band)] = t
    return result


def neigh_shrink_pyramid(
    pyramid: Pyramid,
    window_size: int = 3,
    device: str | Device | None = None,
) -> ShrinkResult:
    return _neigh_pyramid(pyramid, window_size, NEIGH_K, device)


def modi_neigh_shrink_pyramid(
    pyramid: Pyramid,
    window_size: int = 3,
    device: str | Device | None = None,
) -> ShrinkResult:
    return _neigh_pyramid(pyramid, window_size, MODI_NEIGH_K, device)


@timer
def neigh_shrink(
    image: np.ndarray,
    level: int,
    window_size: int = 3,
    *,
    transform: WaveletTransform | None = None,
    device: str | Device | None = None,
) -> np.ndarray:
    """NeighShrink denoise; *window_size* is the (odd) window side."""
    _validate(image, level, window_size)
    device = get_device(device)
    apply = partial(neigh_shrink_pyramid, window_size=window_size, device=device)
    return _decompose_shrink_reconstruct(image, level, transform, apply)[0]


@timer
def modi_neigh_shrink(
    image: np.ndarray,
    level: int,
    window_size: int = 3,
    *,
    transform: WaveletTransform | None = None,
    device: str | Device | None = None,
) -> np.ndarray:
    """ModiNeighShrink denoise (NeighShrink with k = 0.75)."""
    _validate(image, level, window_size)
    device = get_device(device)
    apply = partial(modi_neigh_shrink_pyramid, window_size=window_size, device=device)
    return _decompose_shrink_reconstruct(image, level, transform, apply)[0]


# --------------------------------------------------------------------------- #
# BayesShrink
# --------------------------------------------------------------------------- #
def _bayes_band(
    values: np.ndarray,
    sigma: float,
    mode: ShrinkageMode,
    device: Device,
) -> Tuple[float, np.ndarray]:
    t = bayes_threshold(values, sigma, device)
    return t, _shrink_band(values, device, partial(shrink, t=t, mode=mode))


def bayes_shrink_pyramid(
    pyramid: Pyramid,
    mode: ShrinkageMode | str = ShrinkageMode.SOFT,
    device: str | Device | None = None,
) -> ShrinkResult:
    device = get_device(device)
    mode = ShrinkageMode(mode)

    _, sigma = _noise_sigma(pyramid, device)
    logger.info(f"BayesShrink: sigma={sigma:.6g}, mode={mode.value}")

    result = ShrinkResult(sigma)
    with ThreadPoolExecutor(max_workers=len(DETAIL_BANDS)) as pool:
        for lvl in range(1, pyramid.levels + 1):
            views = pyramid.detail_views(lvl)
            futures = [
                pool.submit(_bayes_band, view.clone(), sigma, mode, device)
                for view in views
            ]
            # all three bands must finish before anything is written back
            done = [f.result() for f in futures]
            for band, view, (t, values) in zip(DETAIL_BANDS, views, done):
                view.write(values)
                result.thresholds[(lvl, band)] = t
                logger.info(f"BayesShrink: level {lvl} {band.value} T={t:.6g}")
    return result


@timer
def bayes_shrink(
    image: np.ndarray,
    level: int,
    mode: ShrinkageMode | str = ShrinkageMode.SOFT,
    *,
    transform: WaveletTransform | None = None,
    device: str | Device | None = None,
) -> np.ndarray:
    """BayesShrink denoise; see `visu_shrink` for parameters."""
    _validate(image, level)
    mode, device = ShrinkageMode(mode), get_device(device)
    apply = partial(bayes_shrink_pyramid, mode=mode, device=device)
    return _decompose_shrink_reconstruct(image, level, transform, apply)[0]


# --------------------------------------------------------------------------- #
# Dispatcher
# --------------------------------------------------------------------------- #
def denoise(
    image: np.ndarray,
    method: Method | str,
    level: int,
    *,
    mode: ShrinkageMode | str = ShrinkageMode.SOFT,
    window_size: int = 3,
    transform: WaveletTransform | None = None,
    device: str | Device | None = None,
) -> Tuple[np.ndarray, ShrinkResult]:
    """Run *method* on *image*; returns (denoised image, ShrinkResult)."""
    method = Method(method)
    mode, device = ShrinkageMode(mode), get_device(device)
    if method is Method.VISU:
        _validate(image, level)
        apply = partial(visu_shrink_pyramid, mode=mode, device=device)
    elif method is Method.NEIGH:
        _validate(image, level, window_size)
        apply = partial(neigh_shrink_pyramid, window_size=window_size, device=device)
    elif method is Method.MODI_NEIGH:
        _validate(image, level, window_size)
        apply = partial(modi_neigh_shrink_pyramid, window_size=window_size, device=device)
    else:
        _validate(image, level)
        apply = partial(bayes_shrink_pyramid, mode=mode, device=device)
    return _decompose_shrink_reconstruct(image, level, transform, apply)
