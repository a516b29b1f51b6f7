"""Two-dimensional convolution with configurable boundary handling.

Images are two-dimensional arrays indexed as ``img[y, x]``.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Optional

import numpy as np

BoundaryFunc = Callable[[np.ndarray, int, int, float], float]


def kbnd_symmetric(img: np.ndarray, x: int, y: int, bnd_const: float) -> float:
    """Out-of-bounds values mirror the border values."""
    h, w = img.shape
    if x < 0:
        x = -1 - x
    elif x >= w:
        x = (w - (x - w)) - 1
    if y < 0:
        y = -1 - y
    elif y >= h:
        y = (h - (y - h)) - 1
    return float(img[y, x])


def kbnd_replicate(img: np.ndarray, x: int, y: int, bnd_const: float) -> float:
    """Out-of-bounds values take the nearest border value."""
    h, w = img.shape
    x = min(max(x, 0), w - 1)
    y = min(max(y, 0), h - 1)
    return float(img[y, x])


def kbnd_constant(img: np.ndarray, x: int, y: int, bnd_const: float) -> float:
    """Values past the right or bottom edge are ``bnd_const``.

    Negative coordinates are clamped to the first row or column.
    """
    h, w = img.shape
    x = max(x, 0)
    y = max(y, 0)
    if x >= w or y >= h:
        return float(bnd_const)
    return float(img[y, x])


@dataclass(eq=False)
class Kernel:
    """A convolution kernel and the way it treats pixels outside the image."""

    kernel: np.ndarray
    normalized: bool = True
    bnd_opt: Optional[BoundaryFunc] = kbnd_symmetric
    bnd_const: float = 0.0

    def __post_init__(self) -> None:
        self.kernel = np.asarray(self.kernel, dtype=np.float32)
        if self.kernel.ndim != 2 or self.kernel.size == 0:
            raise ValueError("kernel must be a non-empty two-dimensional array")

    @property
    def width(self) -> int:
        return self.kernel.shape[1]

    @property
    def height(self) -> int:
        return self.kernel.shape[0]

    def scale(self) -> float:
        """Factor that normalises the kernel so its values add up to one."""
        if self.normalized:
            return 1.0
        total = float(self.kernel.astype(np.float64).sum())
        if total != 0.0:
            return float(np.float32(1.0 / total))
        return 1.0


def _as_image(img) -> np.ndarray:
    image = np.asarray(img, dtype=np.float32)
    if image.ndim != 2:
        raise ValueError("image must be a two-dimensional array")
    return image


def convolve(img, kernel: Kernel) -> np.ndarray:
    """Apply ``kernel`` wherever it fits completely inside the image.

    The result is smaller than the input by the kernel size minus one in
    each direction.
    """
    image = _as_image(img)
    h, w = image.shape
    dst_h = h - kernel.height + 1
    dst_w = w - kernel.width + 1
    if dst_h <= 0 or dst_w <= 0:
        return np.empty((max(dst_h, 0), max(dst_w, 0)), dtype=np.float32)

    acc = np.zeros((dst_h, dst_w), dtype=np.float64)
    for (v, u), weight in np.ndenumerate(kernel.kernel):
        window = image[v : v + dst_h, u : u + dst_w]
        acc += (window * np.float32(weight)).astype(np.float64)
    return (acc * kernel.scale()).astype(np.float32)


def _padded(image: np.ndarray, kernel: Kernel) -> np.ndarray:
    if kernel.bnd_opt is None:
        raise ValueError("kernel has no boundary handling")
    h, w = image.shape
    uc = kernel.width // 2
    vc = kernel.height // 2
    ys = range(-vc, -vc + h + kernel.height - 1)
    xs = range(-uc, -uc + w + kernel.width - 1)

    padded = np.empty((len(ys), len(xs)), dtype=np.float32)
    padded[vc : vc + h, uc : uc + w] = image
    outside_cols = [(i, x) for i, x in enumerate(xs) if not 0 <= x < w]
    for j, y in enumerate(ys):
        cols = outside_cols if 0 <= y < h else enumerate(xs)
        for i, x in cols:
            padded[j, i] = kernel.bnd_opt(image, x, y, kernel.bnd_const)
    return padded


def img_filter(img, kernel: Kernel) -> np.ndarray:
    """Apply ``kernel`` centred on every pixel; the result keeps the image size.

    Pixels outside the image come from the kernel's boundary function.
    """
    if kernel is None:
        raise ValueError("a kernel is required")
    image = _as_image(img)
    return convolve(_padded(image, kernel), kernel)


def filter_pixel(img, x: int, y: int, kernel: Optional[Kernel], kscale: float) -> float:
    """Return the filtered value of one pixel, or the raw value without a kernel."""
    image = img if isinstance(img, np.ndarray) and img.dtype == np.float32 else _as_image(img)
    if kernel is None:
        return float(image[y, x])

    h, w = image.shape
    uc = kernel.width // 2
    vc = kernel.height // 2
    edge = x < uc or y < vc or x >= w - uc or y >= h - vc

    if not edge:
        window = image[y - vc : y - vc + kernel.height, x - uc : x - uc + kernel.width]
    else:
        if kernel.bnd_opt is None:
            raise ValueError("kernel has no boundary handling")
        window = np.array(
            [
                [
                    kernel.bnd_opt(image, x + u, y + v, kernel.bnd_const)
                    for u in range(-uc, -uc + kernel.width)
                ]
                for v in range(-vc, -vc + kernel.height)
            ],
            dtype=np.float32,
        )
    total = float((window * kernel.kernel).astype(np.float64).sum())
    return float(np.float32(total * kscale))