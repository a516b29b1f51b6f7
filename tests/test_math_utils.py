import pytest

from jpegmetrics.iqa.math_utils import cmp_float, matrix_cmp, round_float


def test_round_half_up():
    assert round_float(2.5) == 3


def test_round_below_half_truncates():
    assert round_float(2.49) == 2


def test_round_negative_truncates_towards_zero():
    assert round_float(-2.7) == -2


@pytest.mark.parametrize("n", [0, 1, 7, 256, 1000])
def test_round_integers_unchanged(n):
    assert round_float(float(n)) == n


@pytest.mark.parametrize("n", [1, 4, 19])
def test_round_negative_never_rounds_away(n):
    assert round_float(-n - 0.7) == -n


def test_cmp_float_equal_to_precision():
    assert cmp_float(0.853244, 0.85324, 5) is True


def test_cmp_float_differs_at_precision():
    assert cmp_float(0.85326, 0.85324, 5) is False


def test_cmp_float_lower_precision_tolerates_difference():
    assert cmp_float(0.79858, 0.79850, 2) is True
    assert cmp_float(0.79858, 0.79850, 5) is False


def test_cmp_float_identical():
    assert cmp_float(1.0, 1.00000, 5) is True


def test_matrix_cmp_equal():
    a = [[255.0, 96.0], [96.0, 79.75]]
    b = [[255.0, 96.0], [96.0, 79.750]]
    assert matrix_cmp(a, b, 3) is True


def test_matrix_cmp_detects_difference():
    a = [[255.0, 96.0], [96.0, 79.76]]
    b = [[255.0, 96.0], [96.0, 79.750]]
    assert matrix_cmp(a, b, 3) is False


def test_matrix_cmp_larger_first_matrix():
    a = [190.1161, 70.4189, 70.419, 131.6891, 5.0, 6.0]
    b = [[190.116, 70.419], [70.419, 131.689]]
    assert matrix_cmp(a, b, 3) is True


def test_matrix_cmp_first_smaller_raises():
    with pytest.raises(ValueError):
        matrix_cmp([1.0], [1.0, 2.0], 3)