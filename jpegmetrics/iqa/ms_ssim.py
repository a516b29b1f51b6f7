"""Multi-scale structural similarity (MS-SSIM) of 8-bit greyscale images.

The default algorithm is MS-SSIM* by Rouse and Hemami; the original
algorithm by Wang et al. is available through :class:`MsSsimArgs`.
Images are two-dimensional arrays indexed as ``img[y, x]``.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Optional

import numpy as np

from jpegmetrics.iqa.convolve import Kernel, kbnd_symmetric
from jpegmetrics.iqa.decimate import decimate
from jpegmetrics.iqa.ssim import (
    GAUSSIAN_LEN,
    GAUSSIAN_WINDOW,
    SQUARE_WINDOW,
    ImageTooSmallError,
    SsimArgs,
    SsimComponents,
    compute_ssim,
)

SCALES = 5
LPF_LEN = 9

# Low-pass filter for downsampling (9/7 biorthogonal wavelet filter).
LOW_PASS_FILTER = np.array(
    [
        [0.000714, -0.000450, -0.002090, 0.007132, 0.016114, 0.007132, -0.002090, -0.000450, 0.000714],
        [-0.000450, 0.000283, 0.001316, -0.004490, -0.010146, -0.004490, 0.001316, 0.000283, -0.000450],
        [-0.002090, 0.001316, 0.006115, -0.020867, -0.047149, -0.020867, 0.006115, 0.001316, -0.002090],
        [0.007132, -0.004490, -0.020867, 0.071207, 0.160885, 0.071207, -0.020867, -0.004490, 0.007132],
        [0.016114, -0.010146, -0.047149, 0.160885, 0.363505, 0.160885, -0.047149, -0.010146, 0.016114],
        [0.007132, -0.004490, -0.020867, 0.071207, 0.160885, 0.071207, -0.020867, -0.004490, 0.007132],
        [-0.002090, 0.001316, 0.006115, -0.020867, -0.047149, -0.020867, 0.006115, 0.001316, -0.002090],
        [-0.000450, 0.000283, 0.001316, -0.004490, -0.010146, -0.004490, 0.001316, 0.000283, -0.000450],
        [0.000714, -0.000450, -0.002090, 0.007132, 0.016114, 0.007132, -0.002090, -0.000450, 0.000714],
    ],
    dtype=np.float32,
)

DEFAULT_ALPHAS = (0.0000, 0.0000, 0.0000, 0.0000, 0.1333)
DEFAULT_BETAS = (0.0448, 0.2856, 0.3001, 0.2363, 0.1333)
DEFAULT_GAMMAS = (0.0448, 0.2856, 0.3001, 0.2363, 0.1333)


@dataclass
class MsSsimArgs:
    """Fine-grained control of the MS-SSIM algorithm.

    ``wang`` selects the original algorithm instead of MS-SSIM*;
    ``gaussian`` selects the 11x11 Gaussian window instead of the 8x8
    square one. Per-scale exponents default to the published weights and
    must be given when ``scales`` is not 5.
    """

    wang: bool = False
    gaussian: bool = True
    scales: int = SCALES
    alphas: Optional[Sequence[float]] = None
    betas: Optional[Sequence[float]] = None
    gammas: Optional[Sequence[float]] = None


@dataclass
class MsSsimAccumulator:
    """Sums luminance, contrast and structure terms over one scale."""

    alpha: float
    beta: float
    gamma: float
    l: float = 0.0
    c: float = 0.0
    s: float = 0.0

    def add(self, components: SsimComponents) -> None:
        """Add the given terms to the running sums."""
        self.l += float(np.sum(np.asarray(components.l, dtype=np.float64)))
        self.c += float(np.sum(np.asarray(components.c, dtype=np.float64)))
        self.s += float(np.sum(np.asarray(components.s, dtype=np.float64)))

    def result(self, width: int, height: int) -> float:
        """Weighted product of the mean terms over a ``width`` x ``height`` map."""
        size = float(width * height)
        with np.errstate(invalid="ignore", divide="ignore", over="ignore"):
            lum = np.power(np.float64(self.l / size), np.float64(np.float32(self.alpha)))
            con = np.power(np.float64(self.c / size), np.float64(np.float32(self.beta)))
            struct = np.power(
                np.float64(abs(self.s / size)), np.float64(np.float32(self.gamma))
            )
            return float(np.float32(lum * con * struct))


def _weights(values: Optional[Sequence[float]], default: Sequence[float], scales: int, name: str) -> np.ndarray:
    chosen = default if values is None else values
    weights = np.asarray(chosen, dtype=np.float32).ravel()
    if weights.size < scales:
        raise ValueError(f"{name} holds {weights.size} values but {scales} scales are used")
    return weights


def _image_pair(ref, cmp) -> tuple[np.ndarray, np.ndarray]:
    ref_arr = np.asarray(ref, dtype=np.float32)
    cmp_arr = np.asarray(cmp, dtype=np.float32)
    if ref_arr.ndim != 2 or cmp_arr.ndim != 2:
        raise ValueError("images must be two-dimensional arrays")
    if ref_arr.shape != cmp_arr.shape:
        raise ValueError(f"image sizes differ: {ref_arr.shape} vs. {cmp_arr.shape}")
    return ref_arr, cmp_arr


def ms_ssim(ref, cmp, args: Optional[MsSsimArgs] = None) -> float:
    """Mean multi-scale structural similarity of two equal-sized 8-bit images.

    Raises :class:`ImageTooSmallError` when the image cannot be halved
    ``scales - 1`` times and still hold the filter window.
    """
    if args is None:
        args = MsSsimArgs()
    scales = args.scales
    if scales < 1:
        raise ValueError(f"at least one scale is required, got {scales}")
    alphas = _weights(args.alphas, DEFAULT_ALPHAS, scales, "alphas")
    betas = _weights(args.betas, DEFAULT_BETAS, scales, "betas")
    gammas = _weights(args.gammas, DEFAULT_GAMMAS, scales, "gammas")

    ref_img, cmp_img = _image_pair(ref, cmp)
    h, w = ref_img.shape

    min_len = GAUSSIAN_LEN if args.gaussian else LPF_LEN
    cur_w, cur_h = w, h
    for _ in range(scales):
        if cur_w < min_len or cur_h < min_len:
            raise ImageTooSmallError(
                f"image of {w}x{h} is too small for {scales} scales"
            )
        cur_w //= 2
        cur_h //= 2

    window_values = GAUSSIAN_WINDOW if args.gaussian else SQUARE_WINDOW
    window = Kernel(window_values, normalized=True, bnd_opt=kbnd_symmetric)
    low_pass = Kernel(LOW_PASS_FILTER, normalized=True, bnd_opt=kbnd_symmetric)

    ref_levels = [ref_img]
    cmp_levels = [cmp_img]
    for _ in range(1, scales):
        ref_levels.append(decimate(ref_levels[-1], 2, low_pass))
        cmp_levels.append(decimate(cmp_levels[-1], 2, low_pass))

    if args.wang:
        k1, k2 = 0.01, 0.03
    else:
        # MS-SSIM* forces the stabilisation constants to zero.
        k1, k2 = 0.0, 0.0

    result = np.float32(1.0)
    for idx, (ref_level, cmp_level) in enumerate(zip(ref_levels, cmp_levels)):
        accumulator = MsSsimAccumulator(
            alpha=float(alphas[idx]), beta=float(betas[idx]), gamma=float(gammas[idx])
        )
        ssim_args = SsimArgs(alpha=1.0, beta=1.0, gamma=1.0, L=255, K1=k1, K2=k2, f=1)
        value = compute_ssim(ref_level, cmp_level, window, ssim_args, accumulator)
        result = np.float32(result * np.float32(value))
    return float(result)