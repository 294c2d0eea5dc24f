import numpy as np
import pytest

matplotlib = pytest.importorskip("matplotlib")
matplotlib.use("Agg")

from densityfit import BreitWigner, Decay3Body, Parameter, PhaseSpace, Variable  # noqa: E402
from densityfit.plotting import plot_dalitz, plot_projection  # noqa: E402


@pytest.fixture
def density():
    amp = BreitWigner(Parameter("m_rho", 0.775), Parameter("g_rho", 0.149), channel="23")
    ps = PhaseSpace(1.86484, 0.497611, 0.13957, 0.13957)
    d = Decay3Body(Variable("mSq12"), Variable("mSq13"), Variable("mSq23"), amp, ps, resolution=40)
    d.envelope = 5.0
    return d


def test_projection_without_data_uses_kinematic_range(density):
    import matplotlib.pyplot as plt

    fig, ax = plot_projection(density, "mSq23", npoints=50)
    line = ax.get_lines()[0]
    lo, hi = density.bounds("mSq23")
    assert line.get_xdata()[0] == pytest.approx(lo)
    assert line.get_xdata()[-1] == pytest.approx(hi)
    assert ax.get_xlabel() == "mSq23"
    plt.close(fig)


def test_projection_scales_to_data(density):
    import matplotlib.pyplot as plt

    events = density.sample(30, np.random.default_rng(0))
    fig, ax = plt.subplots()
    out_fig, out_ax = plot_projection(density, "mSq23", data=events, bins=10, ax=ax)
    assert out_ax is ax and out_fig is fig
    assert ax.get_ylabel() == "events / bin"
    assert len(ax.containers) == 1
    plt.close(fig)


def test_projection_requires_project():
    with pytest.raises(TypeError):
        plot_projection(object(), "x")


def test_dalitz_scatter(density):
    import matplotlib.pyplot as plt

    events = density.sample(20, np.random.default_rng(1))
    fig, ax = plot_dalitz(events, "mSq12", "mSq23")
    assert ax.get_xlabel() == "mSq12"
    assert len(ax.collections) == 1
    plt.close(fig)

    with pytest.raises(ValueError):
        plot_dalitz({"a": np.zeros(3), "b": np.zeros(4)}, "a", "b")
