import math

import numpy as np
import pytest

from jpegmetrics.iqa.mse import mse, psnr


@pytest.fixture
def pair():
    rng = np.random.default_rng(3)
    ref = rng.integers(0, 256, size=(16, 22), dtype=np.uint8)
    cmp = rng.integers(0, 256, size=(16, 22), dtype=np.uint8)
    return ref, cmp


def test_identical_images_have_zero_error(pair):
    ref, _ = pair
    assert mse(ref, ref.copy()) == 0.0


def test_identical_images_have_infinite_psnr(pair):
    ref, _ = pair
    assert psnr(ref, ref.copy()) == math.inf


def test_full_range_difference():
    ref = np.zeros((4, 5), dtype=np.uint8)
    cmp = np.full((4, 5), 255, dtype=np.uint8)
    assert mse(ref, cmp) == 65025.0
    assert psnr(ref, cmp) == 0.0


def test_unsigned_values_do_not_wrap():
    ref = np.array([[0, 255]], dtype=np.uint8)
    cmp = np.array([[255, 0]], dtype=np.uint8)
    assert mse(ref, cmp) == 65025.0


def test_symmetric(pair):
    ref, cmp = pair
    assert mse(ref, cmp) == mse(cmp, ref)
    assert psnr(ref, cmp) == psnr(cmp, ref)


def test_strided_view_ignores_padding(pair):
    ref, cmp = pair
    padded_ref = np.zeros((16, 23), dtype=np.uint8)
    padded_cmp = np.full((16, 23), 200, dtype=np.uint8)
    padded_ref[:, :22] = ref
    padded_cmp[:, :22] = cmp
    assert mse(padded_ref[:, :22], padded_cmp[:, :22]) == mse(ref, cmp)


def test_psnr_falls_as_error_grows():
    ref = np.full((8, 8), 100, dtype=np.uint8)
    small = np.full((8, 8), 102, dtype=np.uint8)
    large = np.full((8, 8), 140, dtype=np.uint8)
    assert mse(ref, small) < mse(ref, large)
    assert psnr(ref, small) > psnr(ref, large)


def test_psnr_consistent_with_mse(pair):
    ref, cmp = pair
    error = mse(ref, cmp)
    assert psnr(ref, cmp) == pytest.approx(10.0 * math.log10(255 * 255 / error), rel=1e-6)


def test_size_mismatch_raises():
    with pytest.raises(ValueError):
        mse(np.zeros((4, 4), dtype=np.uint8), np.zeros((4, 5), dtype=np.uint8))


def test_empty_images_raise():
    with pytest.raises(ValueError):
        psnr(np.zeros((0, 4), dtype=np.uint8), np.zeros((0, 4), dtype=np.uint8))


def test_non_2d_raises():
    with pytest.raises(ValueError):
        mse(np.zeros(4, dtype=np.uint8), np.zeros(4, dtype=np.uint8))