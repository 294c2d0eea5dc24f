import numpy as np
import pytest

from densityfit.util import bin_centers, infer_arg_names, uncertainty_to_string


@pytest.mark.parametrize(
    "x, err, precision, expected",
    [
        (0.0, 1e-4, 1, "0(1)e-4"),
        (12.34567, 0.00123, 1, "12.346(1)"),
        (12.34567, 0.00123, 2, "12.3457(12)"),
        (-0.123456, 0.000123, 2, "-0.12346(12)"),
        (1.0, 0.0, 2, "1(0)"),
        (float("nan"), 1.0, 1, "NaN"),
        (1.0, float("inf"), 1, "inf"),
        (1.0, -0.1, 1, "1.0(1)"),
        (12.34567, 0.00123, "auto", "12.3457(12)"),
        (1.2345, 0.067, "auto", "1.23(7)"),
    ],
)
def test_uncertainty_to_string(x, err, precision, expected):
    assert uncertainty_to_string(x, err, precision) == expected


def test_bin_centers_are_midpoints():
    centers, width = bin_centers(0.0, 1.0, 4)
    assert width == pytest.approx(0.25)
    np.testing.assert_allclose(centers, [0.125, 0.375, 0.625, 0.875])


def test_bin_centers_rejects_empty_grid():
    with pytest.raises(ValueError):
        bin_centers(0.0, 1.0, 0)


def test_infer_arg_names():
    def eff(mSq12, slope, offset=0.0):
        return slope * mSq12 + offset

    assert infer_arg_names(eff) == ("mSq12", "slope", "offset")


@pytest.mark.parametrize(
    "func",
    [
        lambda *args: 0.0,
        lambda x, **kw: 0.0,
    ],
)
def test_infer_arg_names_rejects_varargs(func):
    with pytest.raises(TypeError):
        infer_arg_names(func)
