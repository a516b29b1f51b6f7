"""Small numeric helpers used by the image quality metrics."""

from __future__ import annotations

from collections.abc import Iterable

import numpy as np


def round_float(a: float) -> int:
    """Round a float to an integer.

    Positive values with a fractional part of at least one half round up;
    every other value is truncated towards zero.
    """
    value = float(np.float32(a))
    truncated = int(value)
    sign = 1 if value > 0.0 else -1
    if value - truncated >= 0.5:
        return truncated + sign
    return truncated


def _scaled_round(value: float, scale: float) -> int:
    scaled = value * scale
    truncated = int(scaled)
    sign = 1 if value > 0.0 else -1
    if scaled - truncated >= 0.5:
        return truncated + sign
    return truncated


def cmp_float(a: float, b: float, digits: int) -> bool:
    """Return True if ``a`` and ``b`` agree when rounded to ``digits`` decimals."""
    scale = 10.0 ** digits
    a32 = float(np.float32(a))
    b32 = float(np.float32(b))
    return _scaled_round(a32, scale) == _scaled_round(b32, scale)


def matrix_cmp(a: Iterable, b: Iterable, digits: int) -> bool:
    """Return True if every value of ``b`` matches ``a`` to ``digits`` decimals.

    The values are compared in row-major order; ``a`` may hold more values
    than ``b``, in which case only its leading values are compared.
    """
    flat_a = np.asarray(a, dtype=np.float32).ravel()
    flat_b = np.asarray(b, dtype=np.float32).ravel()
    if flat_a.size < flat_b.size:
        raise ValueError(
            f"first matrix has {flat_a.size} values, fewer than {flat_b.size}"
        )
    return all(
        cmp_float(x, y, digits) for x, y in zip(flat_a.tolist(), flat_b.tolist())
    )