import warnings

import numpy as np
import pytest

from densityfit import (
    ArgumentCountMismatch,
    BreitWigner,
    Decay3Body,
    DependencyError,
    FlatAmplitude,
    Function,
    Gaussian,
    GenerationExhaustedError,
    Parameter,
    Pdf,
    PhaseSpace,
    Variable,
)
from densityfit.util import bin_centers

M_D0, M_KS, M_PI = 1.86484, 0.497611, 0.13957
RES = 60


def _vars():
    return Variable("mSq12"), Variable("mSq13"), Variable("mSq23")


def _ps():
    return PhaseSpace(M_D0, M_KS, M_PI, M_PI)


def _rho():
    return BreitWigner(Parameter("m_rho", 0.775), Parameter("g_rho", 0.149), channel="23")


def _loop_integral(density):
    """Straightforward midpoint sum over the Dalitz region, one point at a time."""
    ps = density.phase_space
    xs, dx = bin_centers(*ps.bounds(0), density.resolution)
    ys, dy = bin_centers(*ps.bounds(1), density.resolution)
    total = 0.0
    for x in xs:
        for y in ys:
            z = ps.m_sq_sum - x - y
            if ps.contains(x, y, z):
                total += abs(density.amplitude.evaluate(ps, x, y, z)) ** 2
    return total * dx * dy


@pytest.fixture
def flat():
    return Decay3Body(*_vars(), FlatAmplitude(), _ps(), resolution=RES)


@pytest.fixture
def rho():
    return Decay3Body(*_vars(), _rho(), _ps(), resolution=RES)


def test_parameters_come_from_the_amplitude(rho):
    assert rho.var_names() == ["mSq12", "mSq13", "mSq23"]
    assert rho.par_names() == ["g_rho", "m_rho"]
    assert rho.roles == ("mSq12", "mSq13", "mSq23")
    assert rho.parameters["g_rho"] is rho.amplitude.parameters["g_rho"]


def test_construction_copies_amplitude_and_phase_space():
    amp = _rho()
    ps = _ps()
    d = Decay3Body(*_vars(), amp, ps, resolution=RES)
    assert d.amplitude is not amp
    assert d.phase_space is not ps
    amp.parameters["g_rho"].set(1.0)
    assert d.value("g_rho") == pytest.approx(0.149)


def test_norm_matches_loop_integral(rho):
    assert rho.norm == pytest.approx(_loop_integral(rho), rel=1e-9)


def test_flat_density_is_inverse_area(flat):
    m12, m13 = 1.0, 1.2
    assert flat.evaluate_at(m12, m13) == pytest.approx(1.0 / flat.norm)


def test_evaluate_matches_evaluate_at(rho):
    ps = rho.phase_space
    m12, m13 = 1.0, 1.4
    m23 = ps.m_sq_sum - m12 - m13

    expected = rho.evaluate_at(m12, m13, m23)
    assert rho.evaluate_at(m12, m13) == pytest.approx(expected)
    assert rho.evaluate([m12, m13, m23]) == pytest.approx(expected)
    assert rho.evaluate({"mSq23": m23, "mSq12": m12, "mSq13": m13}) == pytest.approx(expected)

    rho.set_vars([m12, m13, m23])
    assert rho.evaluate() == pytest.approx(expected)


def test_positional_values_follow_sorted_names_not_roles():
    # Role order (m12, m13, m23) is the reverse of the sorted order.
    c, b, a = Variable("c"), Variable("b"), Variable("a")
    amp = BreitWigner(Parameter("m", 0.892), Parameter("g", 0.05), channel="12")
    d = Decay3Body(c, b, a, amp, _ps(), resolution=RES)
    ps = d.phase_space

    m12, m13 = 0.8, 1.6
    m23 = ps.m_sq_sum - m12 - m13
    assert d.var_names() == ["a", "b", "c"]
    assert d.evaluate([m23, m13, m12]) == pytest.approx(d.evaluate_at(m12, m13, m23))


def test_evaluate_accepts_arrays(rho):
    m12 = np.array([0.8, 1.0, 1.2])
    m13 = np.array([1.5, 1.4, 1.3])
    out = rho.evaluate_at(m12, m13)
    assert out.shape == (3,)
    assert out[1] == pytest.approx(rho.evaluate_at(1.0, 1.4))


def test_set_par_recaches(rho):
    before = rho.norm
    rho.set_par("g_rho", 0.3)
    assert rho.norm != pytest.approx(before)
    assert rho.norm == pytest.approx(_loop_integral(rho), rel=1e-9)

    fresh = Decay3Body(
        *_vars(),
        BreitWigner(Parameter("m_rho", 0.775), Parameter("g_rho", 0.3), channel="23"),
        _ps(),
        resolution=RES,
    )
    assert rho.norm == pytest.approx(fresh.norm)


def test_project_on_foreign_variable_is_one(rho):
    assert rho.project("x", 1.0) == 1.0


def test_projection_integrates_to_one(rho):
    xs, dx = bin_centers(*rho.bounds("mSq12"), RES)
    assert np.sum(rho.project("mSq12", xs)) * dx == pytest.approx(1.0, rel=1e-9)

    for name in ("mSq13", "mSq23"):
        xs, dx = bin_centers(*rho.bounds(name), 200)
        assert np.sum(rho.project(name, xs)) * dx == pytest.approx(1.0, rel=0.05)


def test_projection_outside_the_region_is_zero(flat):
    lo, hi = flat.bounds("mSq12")
    assert flat.project("mSq12", hi + 0.5) == 0.0
    assert isinstance(flat.project("mSq12", 1.0), float)
    assert flat.project("mSq12", [1.0, hi + 0.5]).shape == (2,)


def test_function_multiplies_and_recaches(flat):
    def efficiency(mSq12, slope):
        return 1.0 + slope * mSq12

    eff = Function(efficiency, [Variable("mSq12")], [Parameter("slope", 0.5)])
    weighted = flat * eff

    assert isinstance(weighted, Decay3Body)
    assert flat.functions == []
    assert weighted.par_names() == ["slope"]
    assert weighted.norm > flat.norm
    assert (eff * flat).norm == pytest.approx(weighted.norm)

    m12, m13 = 1.0, 1.2
    assert weighted.evaluate_at(m12, m13) == pytest.approx((1.0 + 0.5 * m12) / weighted.norm)

    weighted.set_par("slope", 0.0)
    assert weighted.norm == pytest.approx(flat.norm)


def test_function_parameters_overwrite_same_named_cells(rho):
    def shape(mSq23, g_rho):
        return 1.0 + 0.0 * g_rho * mSq23

    weighted = rho.with_function(Function(shape, [Variable("mSq23")], [Parameter("g_rho", 0.3)]))

    assert weighted.value("g_rho") == pytest.approx(0.3)
    assert weighted.parameters["g_rho"] is weighted.amplitude.parameters["g_rho"]
    assert weighted.parameters["g_rho"] is weighted.functions[0].parameters["g_rho"]
    weighted.set_par("g_rho", 0.149)
    assert weighted.norm == pytest.approx(rho.norm)


def test_function_on_foreign_variable_is_rejected(rho):
    norm = rho.norm
    pars = rho.par_names()
    weight = Function(lambda x, k: k * x, [Variable("x")], [Parameter("k", 1.0)])

    with pytest.raises(DependencyError, match="x"):
        rho * weight

    assert rho.functions == []
    assert rho.par_names() == pars
    assert rho.norm == norm


def test_negative_weights_are_floored(flat):
    neg = Function(lambda mSq12: -1.0 + 0.0 * mSq12, [Variable("mSq12")])
    with pytest.warns(UserWarning, match="normalization"):
        weighted = flat.with_function(neg)
    assert weighted.norm == 0.0


def test_generate_stays_in_the_region(flat):
    flat.envelope = 1.0
    rng = np.random.default_rng(3)
    ps = flat.phase_space
    for _ in range(20):
        event = flat.generate(rng)
        assert sorted(event) == ["mSq12", "mSq13", "mSq23"]
        assert ps.contains(event["mSq12"], event["mSq13"], event["mSq23"])


def test_sample_returns_columns(flat):
    flat.envelope = 1.0
    events = flat.sample(25, np.random.default_rng(7))
    assert sorted(events) == ["mSq12", "mSq13", "mSq23"]
    assert all(col.shape == (25,) for col in events.values())
    total = events["mSq12"] + events["mSq13"] + events["mSq23"]
    np.testing.assert_allclose(total, flat.phase_space.m_sq_sum)


def test_exhausted_generation_returns_sentinel(flat):
    flat.envelope = 1e12
    flat.max_attempts = 1
    with pytest.warns(UserWarning, match="no event accepted"):
        event = flat.generate(np.random.default_rng(0))
    assert event == {"mSq12": 0.0, "mSq13": 0.0, "mSq23": 0.0}

    with pytest.raises(GenerationExhaustedError):
        flat.generate(np.random.default_rng(0), strict=True)


def test_envelope_overshoot_warns(flat):
    flat.envelope = 1e-6
    with pytest.warns(UserWarning, match="exceeds the envelope"):
        flat.generate(np.random.default_rng(1))


def test_generation_with_adequate_envelope_is_silent(flat):
    flat.envelope = 2.0 / flat.norm
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        flat.sample(5, np.random.default_rng(2))


def test_decay_inside_a_composite(rho):
    t = Variable("t")
    pdf = Pdf(rho) * Gaussian(t, Parameter("mu", 0.0), Parameter("sigma", 1.0))

    assert pdf.var_names() == ["mSq12", "mSq13", "mSq23", "t"]
    assert pdf.par_names() == ["g_rho", "m_rho", "mu", "sigma"]

    ps = rho.phase_space
    m12, m13 = 1.0, 1.4
    m23 = ps.m_sq_sum - m12 - m13
    value = pdf.evaluate([m12, m13, m23, 0.0])
    assert value == pytest.approx(rho.evaluate_at(m12, m13, m23) / np.sqrt(2 * np.pi))

    # Parameter updates reach the embedded copy's amplitude and renormalize it.
    pdf.set_par("g_rho", 0.3)
    inner = pdf.models[0]
    assert inner.amplitude.value("g_rho") == pytest.approx(0.3)
    assert inner.norm == pytest.approx(_loop_integral(inner), rel=1e-9)
    assert rho.value("g_rho") == pytest.approx(0.149)


def test_cache_is_idempotent(rho):
    norm = rho.norm
    rho.cache()
    rho.cache()
    assert rho.norm == norm

    pdf = Pdf(rho) * Gaussian(Variable("t"), Parameter("mu", 0.0), Parameter("sigma", 1.0))
    inner = pdf.models[0].norm
    pdf.cache()
    pdf.cache()
    assert pdf.models[0].norm == inner
    assert inner == norm


def test_positional_pair_derives_m23(rho):
    ps = rho.phase_space
    m12, m13 = 1.0, 1.4
    expected = rho.evaluate_at(m12, m13, ps.m_sq_sum - m12 - m13)
    assert rho.evaluate([m12, m13]) == pytest.approx(expected)

    m12 = np.array([0.9, 1.0])
    m13 = np.array([1.5, 1.4])
    np.testing.assert_allclose(rho.evaluate([m12, m13]), rho.evaluate_at(m12, m13))

    with pytest.raises(ArgumentCountMismatch):
        rho.evaluate([1.0])


def _seeded_flat(seed):
    d = Decay3Body(*_vars(), FlatAmplitude(), _ps(), resolution=20, rng=np.random.default_rng(seed))
    d.envelope = 1.0
    return d


def _draws(density, n=3):
    return [tuple(density.generate().values()) for _ in range(n)]


def test_copies_draw_from_their_own_stream():
    parent = _seeded_flat(11)
    twin = _seeded_flat(11)

    child = parent.copy()
    weighted = parent.with_function(Function(lambda mSq13: 1.0 + 0.0 * mSq13, [Variable("mSq13")]))
    embedded = Pdf(parent).models[0]

    # Spawning children leaves the parent's own stream untouched.
    expected = _draws(twin)
    assert _draws(parent) == expected
    assert _draws(child) != expected
    assert _draws(weighted) != expected
    assert _draws(embedded) != expected
    assert _draws(child) != _draws(weighted)
