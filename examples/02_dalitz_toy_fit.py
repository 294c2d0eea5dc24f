import logging

import matplotlib.pyplot as plt
import numpy as np

from densityfit import (
    BreitWigner,
    Decay3Body,
    Function,
    Parameter,
    PhaseSpace,
    Variable,
    fit,
    plot_dalitz,
    plot_projection,
)

logging.basicConfig(level=logging.INFO)
logging.getLogger("densityfit").setLevel(logging.DEBUG)

# D0 -> K0S pi+ pi-, masses in GeV.
ps = PhaseSpace(1.86484, 0.497611, 0.13957, 0.13957)
m12, m13, m23 = Variable("mSq12"), Variable("mSq13"), Variable("mSq23")

rho = BreitWigner(Parameter("m_rho", 0.775), Parameter("g_rho", 0.149), channel="23")
decay = Decay3Body(m12, m13, m23, rho, ps, resolution=80)


def efficiency(mSq12, slope):
    return 1.0 + slope * (mSq12 - 1.5)


decay = decay * Function(efficiency, [m12], [Parameter("slope", 0.2)])
print(decay)

# Envelope for accept-reject: the density maximum on a coarse grid, plus margin.
m23_grid = np.linspace(*ps.bounds(2), 200)
m12_grid = np.linspace(*ps.bounds(0), 200)
a, c = np.meshgrid(m12_grid, m23_grid)
b = ps.m_sq_sum - a - c
inside = ps.contains(a, b, c)
decay.envelope = 1.5 * float(np.max(decay.evaluate_at(a[inside], b[inside], c[inside])))

events = decay.sample(400, np.random.default_rng(42))

# Fit the width from a displaced start; mass and efficiency stay fixed.
decay.set_par("g_rho", 0.25)
res = fit(
    decay,
    events,
    bounds={"g_rho": (0.05, 0.5)},
    fixed=["m_rho", "slope"],
)
print(res.summary())

fig, (ax1, ax2) = plt.subplots(1, 2, figsize=(10, 4))
plot_dalitz(events, "mSq12", "mSq23", ax=ax1)
plot_projection(decay, "mSq23", data=events, bins=30, ax=ax2)
ax2.legend()
plt.show()
