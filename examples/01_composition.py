import numpy as np

from densityfit import Gaussian, Parameter, Uniform, Variable, exp, fit

x = Variable("x")
t = Variable("t")

mu = Parameter("mu", 0.0)
sigma = Parameter("sigma", 1.0)
frac = Parameter("f", 0.5)

# Signal peak on a flat background in x, times a resolution model in t.
mass = frac * Gaussian(x, mu, sigma) + (1 - frac) * Uniform(x, -5.0, 5.0)
decay_time = Gaussian(t, Parameter("t0", 0.0), Parameter("res", 0.2))
pdf = mass * decay_time

print(pdf)
print("variables:", pdf.var_names())
print("parameters:", pdf.par_names())
print("p(x=0, t=0) =", pdf.evaluate([0.0, 0.0]))

# Parameter expressions stay live: changing tau changes the weight.
tau = Parameter("tau", 1.0)
weighted = mass.with_scale(exp(-tau))
print("exp(-tau) * p(x=0) =", weighted.evaluate([0.0]))
weighted.set_par("tau", 2.0)
print("after tau=2        =", weighted.evaluate([0.0]))

rng = np.random.default_rng(0)
data = {
    "x": np.concatenate([rng.normal(0.3, 0.8, 400), rng.uniform(-5.0, 5.0, 600)]),
}
res = fit(mass, data, bounds={"f": (0.0, 1.0), "sigma": (0.05, 5.0)})
print(res.summary(digits=2))
