"""
io_utils.py
===========

I/O utilities + lightweight timing helpers for the **wavelet_shrink** project.

The module centralises:

1. **Path management**
   * PROJECT_ROOT  – repository root (directory holding this file).
   * RESULTS_DIR   – `<root>/results/<timestamp>`, created on first write.

2. **Image helpers**
   * read_image  – returns a uint8/uint16 gray-scale numpy array.
   * save_image  – writes PNG/TIFF, auto‑creates parent dirs.

3. **Timing**
   * @timer decorator – wall‑clock per call, logged and summed in TIMINGS.
   * summary / write_log / reset_timings.

No directories are created at import time.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime
from functools import wraps
from pathlib import Path
from typing import Callable, Dict, List, TypeVar

import cv2
import numpy as np

__all__ = [
    "PROJECT_ROOT",
    "RESULTS_DIR",
    "TIMINGS",
    "ensure_dir",
    "read_image",
    "save_image",
    "timer",
    "summary",
    "reset_timings",
    "write_log",
]

# --------------------------------------------------------------------------- #
# Path management
# --------------------------------------------------------------------------- #

PROJECT_ROOT: Path = Path(__file__).resolve().parent

# Timestamped results directory (e.g. results/20250729_143015)
_RESULTS_STAMP: str = datetime.now().strftime("%Y%m%d_%H%M%S")
RESULTS_DIR: Path = PROJECT_ROOT / "results" / _RESULTS_STAMP

# wall‑clock per decorated function, in ms
TIMINGS: Dict[str, float] = {}


def ensure_dir(p: Path) -> Path:
    """Create directory *p* (and parents) if it does not exist. Return *p*."""
    p.mkdir(parents=True, exist_ok=True)
    return p


# --------------------------------------------------------------------------- #
# Image helpers
# --------------------------------------------------------------------------- #


def read_image(path: str | Path) -> np.ndarray:
    """
    Load *path* as a single-channel image.

    Returns uint8 or uint16 numpy ndarray (H×W).
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(p)

    img = cv2.imread(str(p), cv2.IMREAD_ANYDEPTH)
    if img is None:
        raise IOError(f"cv2 failed to read image: {p}")
    return img


def save_image(img: np.ndarray, path: str | Path) -> Path:
    """
    Save *img* to *path* (PNG/TIFF determined by extension).

    Relative paths land under RESULTS_DIR.  Float images are assumed to be
    in [0, 1] and converted to uint8.
    """
    p = Path(path)
    if not p.is_absolute():
        p = RESULTS_DIR / p
    ensure_dir(p.parent)

    if np.issubdtype(img.dtype, np.floating):
        img_to_save = np.clip(img * 255, 0, 255).astype(np.uint8)
    else:
        img_to_save = img

    if not cv2.imwrite(str(p), img_to_save):
        raise IOError(f"cv2 failed to write image: {p}")
    return p


# --------------------------------------------------------------------------- #
# Timing
# --------------------------------------------------------------------------- #

_F = TypeVar("_F", bound=Callable)

logger = logging.getLogger("io_utils")
logger.setLevel(logging.INFO)


def timer(fn: _F) -> _F:
    """
    Decorator that logs wall‑clock time for *fn* at INFO level.

    Usage
    -----
    >>> @timer
    ... def heavy_func(...):
    ...     ...
    """
    @wraps(fn)
    def wrapper(*args, **kwargs):
        start = time.perf_counter()
        try:
            return fn(*args, **kwargs)
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1e3
            logger.info(f"{fn.__name__} finished in {elapsed_ms:.2f} ms")
            TIMINGS[fn.__name__] = TIMINGS.get(fn.__name__, 0.0) + elapsed_ms

    return wrapper  # type: ignore[return-value]


def summary() -> None:
    """Pretty‑print timing results collected so far."""
    if not TIMINGS:
        print("No timing data recorded.")
        return

    print("\n=== Timing summary ===")
    total = 0.0
    for k, v in TIMINGS.items():
        total += v
        print(f"{k:<25}: {v:10.2f} ms")
    print(f"{'-'*25}\nTotal{'':<20}: {total:10.2f} ms\n")


def reset_timings() -> None:
    """Erase all stored timing information (useful for tests)."""
    TIMINGS.clear()


def write_log(param_lines: List[str] | None = None, out_dir: Path | None = None) -> Path:
    """
    Write run parameters + timings to `<out_dir>/run_log.txt`.

    *out_dir* defaults to RESULTS_DIR.
    """
    out_dir = ensure_dir(out_dir or RESULTS_DIR)
    log_path = out_dir / "run_log.txt"
    with open(log_path, "w", encoding="utf-8") as f:
        f.write(f"Run timestamp : {_RESULTS_STAMP}\n")
        if param_lines:
            f.write("\n# Parameters\n")
            for ln in param_lines:
                f.write(ln + "\n")
        if TIMINGS:
            f.write("\n# Timings (ms)\n")
            total = 0.0
            for k, v in TIMINGS.items():
                total += v
                f.write(f"{k:<25}: {v:.2f}\n")
            f.write(f"{'-'*25}\nTotal{'':<20}: {total:.2f}\n")
    return log_path
