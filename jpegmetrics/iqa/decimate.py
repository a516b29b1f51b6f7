"""Downsampling of floating point images."""

from __future__ import annotations

from typing import Optional

import numpy as np

from jpegmetrics.iqa.convolve import Kernel


def _output_size(length: int, factor: int) -> int:
    return length // factor + (length & 1)


def _extended(image: np.ndarray, kernel: Kernel, x_end: int, y_end: int) -> np.ndarray:
    """Return the image grown so coordinates ``[-uc, x_end)`` x ``[-vc, y_end)`` exist.

    Values outside the image come from the kernel's boundary function.
    """
    if kernel.bnd_opt is None:
        raise ValueError("kernel has no boundary handling")
    h, w = image.shape
    uc = kernel.width // 2
    vc = kernel.height // 2
    xs = range(-uc, x_end)
    ys = range(-vc, y_end)

    grown = np.empty((len(ys), len(xs)), dtype=np.float32)
    inner_h = min(h, y_end)
    inner_w = min(w, x_end)
    grown[vc : vc + inner_h, uc : uc + inner_w] = image[:inner_h, :inner_w]

    outside_cols = [(i, x) for i, x in enumerate(xs) if not 0 <= x < w]
    for j, y in enumerate(ys):
        cols = outside_cols if 0 <= y < h else enumerate(xs)
        for i, x in cols:
            grown[j, i] = kernel.bnd_opt(image, x, y, kernel.bnd_const)
    return grown


def decimate(img, factor: int, kernel: Optional[Kernel]) -> np.ndarray:
    """Downsample ``img`` by ``factor``, optionally low-pass filtering first.

    The result has ``w // factor + (w & 1)`` columns and
    ``h // factor + (h & 1)`` rows. Each output pixel is the kernel applied
    (without normalisation) at the matching input position. Without a kernel
    the input pixels are taken as they are.
    """
    if factor <= 0:
        raise ValueError(f"decimation factor must be positive, got {factor}")
    image = np.asarray(img, dtype=np.float32)
    if image.ndim != 2:
        raise ValueError("image must be a two-dimensional array")

    h, w = image.shape
    sw = _output_size(w, factor)
    sh = _output_size(h, factor)
    if sw == 0 or sh == 0:
        return np.empty((sh, sw), dtype=np.float32)

    last_x = factor * (sw - 1)
    last_y = factor * (sh - 1)

    if kernel is None:
        if last_x >= w or last_y >= h:
            raise ValueError("decimated grid reaches past the image without a kernel")
        return image[: last_y + 1 : factor, : last_x + 1 : factor].copy()

    uc = kernel.width // 2
    vc = kernel.height // 2
    x_end = last_x + kernel.width - uc
    y_end = last_y + kernel.height - vc
    grown = _extended(image, kernel, x_end, y_end)

    acc = np.zeros((sh, sw), dtype=np.float64)
    for (v, u), weight in np.ndenumerate(kernel.kernel):
        samples = grown[v : v + last_y + 1 : factor, u : u + last_x + 1 : factor]
        acc += (samples * np.float32(weight)).astype(np.float64)
    return acc.astype(np.float32)