"""Mean squared error and peak signal-to-noise ratio of 8-bit images."""

from __future__ import annotations

import math

import numpy as np

_PEAK_SQUARED = 255 * 255


def _pair(ref, cmp) -> tuple[np.ndarray, np.ndarray]:
    ref_arr = np.asarray(ref)
    cmp_arr = np.asarray(cmp)
    if ref_arr.ndim != 2 or cmp_arr.ndim != 2:
        raise ValueError("images must be two-dimensional arrays")
    if ref_arr.shape != cmp_arr.shape:
        raise ValueError(
            f"image sizes differ: {ref_arr.shape} vs. {cmp_arr.shape}"
        )
    if ref_arr.size == 0:
        raise ValueError("images are empty")
    return ref_arr.astype(np.int64), cmp_arr.astype(np.int64)


def mse(ref, cmp) -> float:
    """Mean squared error between two equal-sized 8-bit images."""
    ref_arr, cmp_arr = _pair(ref, cmp)
    diff = ref_arr - cmp_arr
    total = int((diff * diff).sum())
    return float(np.float32(total / ref_arr.size))


def psnr(ref, cmp) -> float:
    """Peak signal-to-noise ratio in decibels; infinite for identical images."""
    error = mse(ref, cmp)
    if error == 0.0:
        return math.inf
    return float(np.float32(10.0 * math.log10(_PEAK_SQUARED / error)))