"""Unbinned maximum-likelihood fits of densities to events."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Tuple, Union
from warnings import warn

import numpy as np
from scipy.optimize import minimize

try:
    import uncertainties
except Exception:  # pragma: no cover - optional at import time
    uncertainties = None

from .util import uncertainty_to_string
from .variables import Parameter

__all__ = ["FitResult", "neg_loglike", "fit"]

Bounds = Mapping[str, Tuple[Optional[float], Optional[float]]]


@dataclass(frozen=True)
class FitResult:
    """Outcome of `fit`.

    `names` follow the sorted parameter order of the fitted density, which is
    also the order of `values`, `errors` and the rows of `cov`.
    """

    names: Tuple[str, ...]
    values: np.ndarray
    errors: np.ndarray
    cov: Optional[np.ndarray] = None
    nll: float = float("nan")
    success: bool = True
    message: str = ""
    stats: Dict[str, Any] = field(default_factory=dict)

    @property
    def parameters(self) -> Dict[str, Parameter]:
        """name -> Parameter carrying the fitted value and error."""
        return {
            n: Parameter(n, float(v), float(e))
            for n, v, e in zip(self.names, self.values, self.errors)
        }

    @property
    def params(self) -> Dict[str, Any]:
        """name -> uncertainties value, correlated through `cov` when available."""
        if uncertainties is None:
            raise RuntimeError("uncertainties package is not available.")
        vals = [float(v) for v in self.values]
        if self.cov is not None:
            try:
                corr = uncertainties.correlated_values(vals, np.asarray(self.cov, dtype=float))
                return dict(zip(self.names, corr))
            except Exception:
                pass
        return {
            n: uncertainties.ufloat(v, float(e)) for n, v, e in zip(self.names, vals, self.errors)
        }

    def __getitem__(self, name: str) -> Parameter:
        return self.parameters[name]

    def summary(self, digits: int | str = "auto") -> str:
        """Return a human-readable summary string."""
        lines = [f"FitResult(success={self.success}, nll={self.nll:.6g})"]
        if self.message:
            lines.append(f"  message: {self.message}")
        for n, v, e in zip(self.names, self.values, self.errors):
            if math.isfinite(float(e)):
                lines.append(f"  {n:>12s}: {uncertainty_to_string(v, e, precision=digits)}")
            else:
                lines.append(f"  {n:>12s}: {float(v):.6g}")
        return "\n".join(lines)


def _columns(density: Any, data: Union[Mapping[str, Any], Sequence[Any]]) -> list:
    """Event columns in `var_names()` order."""
    names = density.var_names()
    if isinstance(data, Mapping):
        return [np.asarray(data[n], dtype=float) for n in names]
    return [np.asarray(col, dtype=float) for col in data]


def neg_loglike(density: Any, data: Any, *, floor: float = 1e-300) -> float:
    """-sum(log p) over events at the density's current parameters.

    `data` is a mapping name -> array (as returned by `Decay3Body.sample`) or
    a sequence of columns in `var_names()` order. Densities are clamped to
    `floor` before the logarithm.
    """
    values = np.asarray(density.evaluate(_columns(density, data)), dtype=float)
    values = np.clip(values, floor, None)
    return float(-np.sum(np.log(values)))


def _hessian_at_minimum(
    func: Callable[[np.ndarray], float],
    x0: np.ndarray,
    f0: float,
    bounds: Sequence[Tuple[Optional[float], Optional[float]]],
    step: Optional[float],
) -> Optional[np.ndarray]:
    """Central-difference Hessian of `func` at `x0`, where `func(x0) == f0`.

    Steps are relative to |x0| + 1 and shrink to stay inside `bounds`.
    Returns None when a parameter sits on a bound.
    """
    lo = np.array([-np.inf if b is None else float(b) for b, _ in bounds])
    hi = np.array([np.inf if b is None else float(b) for _, b in bounds])
    eps = (1e-4 if step is None else float(step)) * (np.abs(x0) + 1.0)
    eps = np.minimum(eps, 0.5 * np.clip(x0 - lo, 0.0, None))
    eps = np.minimum(eps, 0.5 * np.clip(hi - x0, 0.0, None))
    if np.any(eps <= 0.0):
        return None

    shifts = np.diag(eps)
    npar = x0.size
    hess = np.empty((npar, npar))
    for i in range(npar):
        di = shifts[i]
        hess[i, i] = (func(x0 + di) - 2.0 * f0 + func(x0 - di)) / eps[i] ** 2
        for j in range(i):
            dj = shifts[j]
            cross = (
                func(x0 + di + dj)
                - func(x0 + di - dj)
                - func(x0 - di + dj)
                + func(x0 - di - dj)
            )
            hess[i, j] = hess[j, i] = cross / (4.0 * eps[i] * eps[j])
    return hess


def fit(
    density: Any,
    data: Any,
    *,
    bounds: Optional[Bounds] = None,
    fixed: Sequence[str] = (),
    method: str = "L-BFGS-B",
    options: Optional[Dict[str, Any]] = None,
    cov_step: Optional[float] = None,
    cov_jitter: float = 1e-8,
) -> FitResult:
    """Fit the parameters of a density to events by unbinned maximum likelihood.

    Starts from the density's current parameter values. Every trial point is
    applied with `set_pars` (which renormalizes), and the density is left at
    the best-fit point with the fitted errors.

    Options:
    - bounds: name -> (lo, hi); None means unbounded on that side
    - fixed: parameter names held at their current values
    - method: scipy.optimize.minimize method (default: L-BFGS-B)
    - options: dict forwarded to scipy.optimize.minimize
    - cov_step: relative step size for the numeric Hessian (default: 1e-4)
    - cov_jitter: diagonal jitter before inverting the Hessian (default: 1e-8)
    """
    pars = density.parameters
    unknown = [n for n in fixed if n not in pars]
    if unknown:
        raise KeyError(f"Cannot fix unknown parameters: {unknown}")
    names = tuple(n for n in density.par_names() if n not in fixed)
    if not names:
        raise ValueError("The density has no free parameters to fit.")
    p0 = np.array([float(pars[n].value) for n in names], dtype=float)

    bounds = dict(bounds or {})
    unknown = [n for n in bounds if n not in names]
    if unknown:
        raise KeyError(f"Bounds given for unknown or fixed parameters: {unknown}")
    scipy_bounds = []
    for n in names:
        lo, hi = bounds.get(n, (None, None))
        scipy_bounds.append((lo, hi))

    columns = _columns(density, data)

    def objective(theta: np.ndarray) -> float:
        density.set_pars({n: float(t) for n, t in zip(names, theta)})
        return neg_loglike(density, columns)

    res = minimize(
        lambda v: objective(np.asarray(v, dtype=float)),
        p0,
        method=method,
        bounds=scipy_bounds if bounds else None,
        options=options or {},
    )
    theta = np.asarray(res.x, dtype=float)

    nll = float(objective(theta))
    cov = None
    hess = _hessian_at_minimum(objective, theta, nll, scipy_bounds, cov_step)
    if hess is not None:
        if cov_jitter > 0.0:
            hess = hess + cov_jitter * np.eye(hess.shape[0])
        try:
            cov = np.linalg.pinv(hess)
        except np.linalg.LinAlgError:
            cov = None
    if cov is None:
        warn("fit: could not estimate the covariance matrix.", UserWarning)
        errors = np.full(theta.shape, np.nan)
    else:
        errors = np.sqrt(np.clip(np.diag(cov), 0.0, None))

    result = FitResult(
        names=names,
        values=theta,
        errors=errors,
        cov=cov,
        nll=nll,
        success=bool(res.success),
        message=str(res.message),
        stats={"method": method, "nfev": int(getattr(res, "nfev", 0))},
    )
    density.set_pars(result)
    return result
