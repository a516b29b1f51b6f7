"""The SmallFry perceptual quality metric for 8-bit luma images.

The metric combines a PSNR term with a blocking-artifact term measured
along 8x8 block borders. Higher values mean the images look more alike.
"""

from __future__ import annotations

import math

import numpy as np

_PSNR_WEIGHT = 37.1891885161239
_AAE_WEIGHT = 78.5328607296973


def _clamp_unit(value: float) -> float:
    low = value if value < 1.0 else 1.0
    return low if low > 0.0 else 0.0


def _as_luma(img) -> np.ndarray:
    arr = np.asarray(img)
    if arr.ndim != 2:
        raise ValueError("images must be two-dimensional arrays")
    if arr.size == 0:
        raise ValueError("images are empty")
    values = arr.astype(np.int64)
    if values.min() < 0 or values.max() > 255:
        raise ValueError("pixel values must lie between 0 and 255")
    return values


def _psnr_factor(orig: np.ndarray, comp: np.ndarray, peak: int) -> float:
    diff = orig - comp
    total = int((diff * diff).sum())
    if total == 0:
        ret = math.inf
    else:
        ret = 10.0 * math.log10(65025.0 / (total / orig.size))

    if peak > 128:
        ret /= 50.0
    else:
        ret /= (0.0016 * float(peak * peak)) - (0.38 * float(peak) + 72.5)
    return _clamp_unit(ret)


def _artifact_score(before, at, after, beyond) -> float:
    calc = np.abs(at - after) / (
        (np.abs(before - at) + np.abs(after - beyond) + 0.0001) / 2.0
    )
    score = np.where(calc > 5.0, 1.0, np.where(calc > 2.0, (calc - 2.0) / 3.0, 0.0))
    return float(score.sum())


def _aae_factor(orig: np.ndarray, comp: np.ndarray, peak: int) -> float:
    h, w = orig.shape
    diff = np.abs(orig - comp)
    cols = np.arange(7, w - 1, 8)
    rows = np.arange(7, h - 2, 8)
    count = cols.size * h + rows.size * w
    if count == 0:
        raise ValueError(f"image of {w}x{h} has no block borders to measure")

    total = 0.0
    if cols.size:
        # Samples past the end of a row continue into the next row.
        flat = np.concatenate([diff.ravel(), np.zeros(2, dtype=np.int64)])
        idx = (np.arange(h)[:, None] * w + cols[None, :]).ravel()
        total += _artifact_score(flat[idx - 1], flat[idx], flat[idx + 1], flat[idx + 2])
    if rows.size:
        total += _artifact_score(diff[rows - 1], diff[rows], diff[rows + 1], diff[rows + 2])

    ret = 1.0 - total / count
    if peak > 128:
        cfmax = 0.65
    else:
        cfmax = 0.65 + 0.35 * ((128.0 - float(peak)) / 128.0)

    ratio = 0.25 + (1000.0 * count / total if total else math.inf)
    capped = 1.0 if 1.0 < ratio else ratio
    cf = cfmax if cfmax > capped else capped
    return ret * cf


def smallfry_metric(original, compressed) -> float:
    """SmallFry score of ``compressed`` against ``original`` (equal-sized luma)."""
    orig = _as_luma(original)
    comp = _as_luma(compressed)
    if orig.shape != comp.shape:
        raise ValueError(f"image sizes differ: {orig.shape} vs. {comp.shape}")

    peak = int(orig.max())
    p = _psnr_factor(orig, comp, peak)
    a = _aae_factor(orig, comp, peak)
    return p * _PSNR_WEIGHT + a * _AAE_WEIGHT