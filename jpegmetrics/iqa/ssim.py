"""Structural similarity (SSIM) of 8-bit greyscale images.

Images are two-dimensional arrays indexed as ``img[y, x]``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol

import numpy as np

from jpegmetrics.iqa.convolve import Kernel, convolve, kbnd_symmetric
from jpegmetrics.iqa.decimate import decimate
from jpegmetrics.iqa.math_utils import round_float

GAUSSIAN_LEN = 11
SQUARE_LEN = 8

# Circular-symmetric Gaussian weighting with sigma 1.5, normalised to 1.0.
GAUSSIAN_WINDOW = np.array(
    [
        [0.000001, 0.000008, 0.000037, 0.000112, 0.000219, 0.000274, 0.000219, 0.000112, 0.000037, 0.000008, 0.000001],
        [0.000008, 0.000058, 0.000274, 0.000831, 0.001619, 0.002021, 0.001619, 0.000831, 0.000274, 0.000058, 0.000008],
        [0.000037, 0.000274, 0.001296, 0.003937, 0.007668, 0.009577, 0.007668, 0.003937, 0.001296, 0.000274, 0.000037],
        [0.000112, 0.000831, 0.003937, 0.011960, 0.023294, 0.029091, 0.023294, 0.011960, 0.003937, 0.000831, 0.000112],
        [0.000219, 0.001619, 0.007668, 0.023294, 0.045371, 0.056662, 0.045371, 0.023294, 0.007668, 0.001619, 0.000219],
        [0.000274, 0.002021, 0.009577, 0.029091, 0.056662, 0.070762, 0.056662, 0.029091, 0.009577, 0.002021, 0.000274],
        [0.000219, 0.001619, 0.007668, 0.023294, 0.045371, 0.056662, 0.045371, 0.023294, 0.007668, 0.001619, 0.000219],
        [0.000112, 0.000831, 0.003937, 0.011960, 0.023294, 0.029091, 0.023294, 0.011960, 0.003937, 0.000831, 0.000112],
        [0.000037, 0.000274, 0.001296, 0.003937, 0.007668, 0.009577, 0.007668, 0.003937, 0.001296, 0.000274, 0.000037],
        [0.000008, 0.000058, 0.000274, 0.000831, 0.001619, 0.002021, 0.001619, 0.000831, 0.000274, 0.000058, 0.000008],
        [0.000001, 0.000008, 0.000037, 0.000112, 0.000219, 0.000274, 0.000219, 0.000112, 0.000037, 0.000008, 0.000001],
    ],
    dtype=np.float32,
)

# Equal-weight square window; every pixel weighs 1/64.
SQUARE_WINDOW = np.full((SQUARE_LEN, SQUARE_LEN), 0.015625, dtype=np.float32)


class ImageTooSmallError(ValueError):
    """The image is smaller than the window the metric needs."""


@dataclass
class SsimArgs:
    """Fine-grained control of the SSIM algorithm.

    ``f`` is the scale factor: 0 picks one from the image size, 1 disables
    downsampling.
    """

    alpha: float = 1.0
    beta: float = 1.0
    gamma: float = 1.0
    L: int = 255
    K1: float = 0.01
    K2: float = 0.03
    f: int = 0


@dataclass(frozen=True)
class SsimComponents:
    """Luminance, contrast and structure terms.

    Each term is either a single value or an array holding one value per
    pixel of the SSIM map.
    """

    l: object
    c: object
    s: object


class Accumulator(Protocol):
    def add(self, components: SsimComponents) -> None: ...

    def result(self, width: int, height: int) -> float: ...


@dataclass
class SsimAccumulator:
    """Collects the mean of ``l * c * s`` over the SSIM map."""

    total: float = 0.0

    def add(self, components: SsimComponents) -> None:
        """Add the products of the given terms to the running sum."""
        product = (
            np.asarray(components.l, dtype=np.float64)
            * np.asarray(components.c, dtype=np.float64)
            * np.asarray(components.s, dtype=np.float64)
        )
        self.total += float(np.sum(product))

    def result(self, width: int, height: int) -> float:
        """Mean of the accumulated products over a ``width`` x ``height`` map."""
        return float(np.float32(self.total / float(width * height)))


def _power(values: np.ndarray, exponent: np.float32) -> np.ndarray:
    if exponent == np.float32(1.0):
        return values
    sign = np.where(values < 0.0, -1.0, 1.0)
    return sign * np.power(np.abs(values), float(exponent))


def _luminance(mu1, mu2, c1, alpha) -> np.ndarray:
    mu1_sq = mu1 * mu1
    mu2_sq = mu2 * mu2
    numerator = 2.0 * mu1.astype(np.float64) * mu2.astype(np.float64) + float(c1)
    denominator = (mu1_sq + mu2_sq + c1).astype(np.float64)
    result = _power(numerator / denominator, alpha)
    if c1 == 0:
        result = np.where((mu1_sq == 0) & (mu2_sq == 0), 1.0, result)
    return result


def _contrast(sigma_root, sigma1_sqd, sigma2_sqd, c2, beta) -> np.ndarray:
    sigma_sum = sigma1_sqd + sigma2_sqd
    numerator = 2.0 * sigma_root + float(c2)
    denominator = (sigma_sum + c2).astype(np.float64)
    result = _power(numerator / denominator, beta)
    if c2 == 0:
        result = np.where(sigma_sum == 0, 1.0, result)
    return result


def _structure(sigma_12, sigma_root, sigma1_sqd, sigma2_sqd, c3, gamma) -> np.ndarray:
    numerator = (sigma_12 + c3).astype(np.float64)
    denominator = sigma_root + float(c3)
    result = _power(numerator / denominator, gamma)
    if c3 == 0:
        flat = sigma_root == 0
        zero1 = sigma1_sqd == 0
        zero2 = sigma2_sqd == 0
        result = np.where(
            flat & zero1 & zero2,
            1.0,
            np.where(flat & (zero1 | zero2), 0.0, result),
        )
    return result


def _image_pair(ref, cmp) -> tuple[np.ndarray, np.ndarray]:
    ref_arr = np.asarray(ref, dtype=np.float32)
    cmp_arr = np.asarray(cmp, dtype=np.float32)
    if ref_arr.ndim != 2 or cmp_arr.ndim != 2:
        raise ValueError("images must be two-dimensional arrays")
    if ref_arr.shape != cmp_arr.shape:
        raise ValueError(f"image sizes differ: {ref_arr.shape} vs. {cmp_arr.shape}")
    return ref_arr, cmp_arr


def compute_ssim(
    ref,
    cmp,
    kernel: Kernel,
    args: Optional[SsimArgs] = None,
    accumulator: Optional[Accumulator] = None,
) -> float:
    """SSIM of two pre-processed float images using ``kernel`` as the window.

    Without ``args`` the mean SSIM is returned directly. With ``args`` the
    luminance, contrast and structure terms are handed to ``accumulator``,
    whose result is returned; an accumulator is then required.
    """
    ref_img, cmp_img = _image_pair(ref, cmp)
    h, w = ref_img.shape
    if h < kernel.height or w < kernel.width:
        raise ImageTooSmallError(
            f"image of {w}x{h} is smaller than the {kernel.width}x{kernel.height} window"
        )

    alpha = beta = gamma = np.float32(1.0)
    level = 255
    k1, k2 = np.float32(0.01), np.float32(0.03)
    if args is not None:
        if accumulator is None:
            raise ValueError("an accumulator is required when args are given")
        alpha = np.float32(args.alpha)
        beta = np.float32(args.beta)
        gamma = np.float32(args.gamma)
        level = args.L
        k1 = np.float32(args.K1)
        k2 = np.float32(args.K2)

    k1l = np.float32(k1 * np.float32(level))
    k2l = np.float32(k2 * np.float32(level))
    c1 = np.float32(k1l * k1l)
    c2 = np.float32(k2l * k2l)
    c3 = np.float32(c2 / np.float32(2.0))

    ref_mu = convolve(ref_img, kernel)
    cmp_mu = convolve(cmp_img, kernel)
    ref_sigma_sqd = convolve(ref_img * ref_img, kernel) - ref_mu * ref_mu
    cmp_sigma_sqd = convolve(cmp_img * cmp_img, kernel) - cmp_mu * cmp_mu
    sigma_both = convolve(ref_img * cmp_img, kernel) - ref_mu * cmp_mu
    out_h, out_w = ref_mu.shape

    with np.errstate(divide="ignore", invalid="ignore"):
        if args is None:
            numerator = (
                2.0 * ref_mu.astype(np.float64) * cmp_mu.astype(np.float64) + float(c1)
            ) * (2.0 * sigma_both.astype(np.float64) + float(c2))
            denominator = (
                (ref_mu * ref_mu + cmp_mu * cmp_mu + c1)
                * (ref_sigma_sqd + cmp_sigma_sqd + c2)
            ).astype(np.float64)
            total = float(np.sum(numerator / denominator))
            return float(np.float32(total / float(out_w * out_h)))

        zero = np.float32(0.0)
        ref_sigma_sqd = np.maximum(ref_sigma_sqd, zero)
        cmp_sigma_sqd = np.maximum(cmp_sigma_sqd, zero)
        sigma_root = np.sqrt((ref_sigma_sqd * cmp_sigma_sqd).astype(np.float64))

        components = SsimComponents(
            l=_luminance(ref_mu, cmp_mu, c1, alpha),
            c=_contrast(sigma_root, ref_sigma_sqd, cmp_sigma_sqd, c2, beta),
            s=_structure(sigma_both, sigma_root, ref_sigma_sqd, cmp_sigma_sqd, c3, gamma),
        )
        accumulator.add(components)
    return accumulator.result(out_w, out_h)


def ssim(ref, cmp, gaussian: bool = True, args: Optional[SsimArgs] = None) -> float:
    """Mean structural similarity of two equal-sized 8-bit images.

    ``gaussian`` selects the 11x11 Gaussian window; otherwise an 8x8 square
    window is used. Images are downsampled first when they are large, unless
    ``args.f`` fixes the factor.
    """
    ref_img, cmp_img = _image_pair(ref, cmp)
    h, w = ref_img.shape

    scale = max(1, round_float(np.float32(min(w, h)) / np.float32(256.0)))
    accumulator: Optional[SsimAccumulator] = None
    if args is not None:
        if args.f:
            scale = args.f
        accumulator = SsimAccumulator()

    if gaussian:
        window = Kernel(GAUSSIAN_WINDOW, normalized=True, bnd_opt=kbnd_symmetric)
    else:
        window = Kernel(SQUARE_WINDOW, normalized=True, bnd_opt=kbnd_symmetric)

    if scale > 1:
        weight = np.float32(1.0) / np.float32(scale * scale)
        low_pass = Kernel(
            np.full((scale, scale), weight, dtype=np.float32),
            normalized=False,
            bnd_opt=kbnd_symmetric,
        )
        ref_img = decimate(ref_img, scale, low_pass)
        cmp_img = decimate(cmp_img, scale, low_pass)

    return compute_ssim(ref_img, cmp_img, window, args, accumulator)