"""
errors.py – Exception types raised by the thresholding engine.

Invalid arguments (empty image, ``level < 1`` …) are plain ``ValueError``;
the two classes below cover the remaining failure kinds.
"""

from __future__ import annotations

__all__ = ["PreconditionError", "DeviceError"]


class PreconditionError(TypeError):
    """Band has the wrong dtype or non-contiguous storage."""


class DeviceError(RuntimeError):
    """Device runtime missing or device allocation failed."""
