"""
device.py – Device selection, scoped buffers and streams.

Two backends are supported:

* ``"cpu"``  – NumPy arrays; streams are no-ops and every kernel completes
  before the call returns.
* ``"cuda"`` – CuPy arrays; work is queued on a non-blocking CUDA stream and
  only becomes visible to the host after ``stream.synchronize()`` or a
  device→host copy.

Public API
----------
get_device(device=None) -> Device
array_module(arr) -> module
DeviceBuffer(host, device=None)
    Context manager: copies *host* onto the device on entry, releases the
    device copy on exit (also when the body raises).
"""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from types import ModuleType
from typing import Tuple, Type

import numpy as np

from errors import DeviceError, PreconditionError

__all__ = ["Device", "CPU", "get_device", "array_module", "DeviceBuffer"]

logger = logging.getLogger("device")
logger.setLevel(logging.INFO)


# --------------------------------------------------------------------------- #
# Streams
# --------------------------------------------------------------------------- #
class _HostStream:
    """Stand-in for a CUDA stream on the NumPy backend."""

    def __enter__(self) -> "_HostStream":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        return False

    def synchronize(self) -> None:
        pass


# --------------------------------------------------------------------------- #
# Device
# --------------------------------------------------------------------------- #
@dataclass(frozen=True)
class Device:
    name: str
    xp: ModuleType

    @property
    def is_cuda(self) -> bool:
        return self.name == "cuda"

    def stream(self):
        """Return a fresh stream usable as a context manager."""
        if self.is_cuda:
            return self.xp.cuda.Stream(non_blocking=True)
        return _HostStream()

    def to_host(self, arr) -> np.ndarray:
        if self.is_cuda:
            return self.xp.asnumpy(arr)
        return np.asarray(arr)

    def oom_errors(self) -> Tuple[Type[BaseException], ...]:
        if self.is_cuda:
            return (MemoryError, self.xp.cuda.memory.OutOfMemoryError)
        return (MemoryError,)


CPU = Device("cpu", np)


@functools.lru_cache(maxsize=None)
def _cuda_device() -> Device:
    try:
        import cupy
    except ImportError as exc:
        raise DeviceError(
            "device 'cuda' requires CuPy (pip install wavelet-shrink[cuda])"
        ) from exc
    if cupy.cuda.runtime.getDeviceCount() < 1:
        raise DeviceError("no CUDA device visible")
    return Device("cuda", cupy)


def get_device(device: str | Device | None = None) -> Device:
    """Resolve *device* ('cpu', 'cuda', a Device or None → cpu)."""
    if device is None:
        return CPU
    if isinstance(device, Device):
        return device
    if device == "cpu":
        return CPU
    if device == "cuda":
        return _cuda_device()
    raise ValueError(f"Unknown device: {device!r}")


def array_module(arr) -> ModuleType:
    """NumPy for host arrays, CuPy for device arrays."""
    if isinstance(arr, np.ndarray):
        return np
    if type(arr).__module__.split(".")[0] != "cupy":
        raise PreconditionError(
            f"expected a numpy or cupy array, got {type(arr).__name__}"
        )
    import cupy

    return cupy.get_array_module(arr)


# --------------------------------------------------------------------------- #
# Scoped buffer
# --------------------------------------------------------------------------- #
class DeviceBuffer:
    """
    Device-resident copy of a host array, valid inside a ``with`` block.

    The copy is always detached from *host*: kernels may overwrite
    ``buf.array`` without touching the caller's data.

    Examples
    --------
    >>> with DeviceBuffer(band, "cpu") as buf:
    ...     total = float(buf.array.sum())
    """

    def __init__(self, host: np.ndarray, device: str | Device | None = None):
        self.device = get_device(device)
        self._host = host
        self._array = None

    def __enter__(self) -> "DeviceBuffer":
        try:
            self._array = self.device.xp.array(self._host, order="C", copy=True)
        except self.device.oom_errors() as exc:
            raise DeviceError(
                f"failed to allocate {self._host.nbytes} bytes on {self.device.name}"
            ) from exc
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.release()
        return False

    @property
    def array(self):
        if self._array is None:
            raise DeviceError("buffer is not allocated")
        return self._array

    @property
    def released(self) -> bool:
        return self._array is None

    def to_host(self, arr=None) -> np.ndarray:
        """Copy *arr* (default: the buffer itself) back to a host array."""
        return self.device.to_host(self.array if arr is None else arr)

    def release(self) -> None:
        self._array = None
