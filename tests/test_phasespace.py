import numpy as np
import pytest

from densityfit import PhaseSpace

# D0 -> K0S pi+ pi-
M_D0, M_KS, M_PI = 1.86484, 0.497611, 0.13957


@pytest.fixture
def ps():
    return PhaseSpace(M_D0, M_KS, M_PI, M_PI)


def test_kinematic_bounds(ps):
    assert ps.m_sq_sum == pytest.approx(M_D0**2 + M_KS**2 + 2 * M_PI**2)
    assert ps.bounds(0) == pytest.approx(((M_KS + M_PI) ** 2, (M_D0 - M_PI) ** 2))
    assert ps.bounds(1) == pytest.approx(ps.bounds(0))
    assert ps.bounds(2) == pytest.approx(((2 * M_PI) ** 2, (M_D0 - M_KS) ** 2))


@pytest.mark.parametrize(
    "masses",
    [
        (1.0, 0.5, 0.3, 0.3),
        (1.0, -0.1, 0.1, 0.1),
        (0.0, 0.0, 0.0, 0.0),
    ],
)
def test_invalid_masses(masses):
    with pytest.raises(ValueError):
        PhaseSpace(*masses)


def test_m23_limits_close_at_the_edges(ps):
    lo, hi = ps.m23_limits(ps.m_sq_min(0))
    assert float(hi - lo) == pytest.approx(0.0, abs=1e-6)
    lo, hi = ps.m23_limits(1.0)
    assert lo < hi
    lo, hi = ps.m23_limits(ps.m_sq_max(0) + 0.1)
    assert np.isnan(lo) and np.isnan(hi)


def test_contains(ps):
    m12 = 1.0
    lo, hi = ps.m23_limits(m12)
    m23 = float(0.5 * (lo + hi))
    m13 = ps.m_sq_sum - m12 - m23

    assert ps.contains(m12, m13, m23) is True
    # Violates the mass-sum constraint.
    assert ps.contains(m12, m13 + 0.01, m23) is False
    # Outside the m23 range at fixed m12.
    m23_out = float(hi) + 0.05
    assert ps.contains(m12, ps.m_sq_sum - m12 - m23_out, m23_out) is False


def test_contains_is_vectorized(ps):
    m12 = np.array([1.0, 1.0, 5.0])
    lo, hi = ps.m23_limits(1.0)
    m23 = np.array([0.5 * (lo + hi), hi + 0.05, 0.5])
    m13 = ps.m_sq_sum - m12 - m23

    inside = ps.contains(m12, m13, m23)
    assert inside.dtype == bool
    assert inside.tolist() == [True, False, False]
