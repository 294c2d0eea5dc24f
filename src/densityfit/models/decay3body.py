from __future__ import annotations

import copy
import logging
import time
from typing import Any, Dict, List, Mapping, Optional
from warnings import warn

import numpy as np

from ..amplitude import Amplitude
from ..errors import DependencyError, GenerationExhaustedError
from ..function import Function
from ..model import PdfModel
from ..phasespace import PhaseSpace
from ..util import bin_centers
from ..variables import Variable, rebind

logger = logging.getLogger(__name__)

__all__ = ["Decay3Body"]


class Decay3Body(PdfModel):
    """Density of a three-body decay over the Dalitz plot.

        p(m12, m13, m23) = |A(m12, m13, m23)|^2 * prod_k f_k / norm

    where `A` is the amplitude, `f_k` the auxiliary functions (efficiency,
    acceptance, ...) and `norm` the integral of the numerator over the
    kinematically allowed region, computed on a `resolution` x `resolution`
    midpoint grid.

    Parameters
    ----------
    m12, m13, m23 : Variable
        Squared invariant masses of the pairs (12), (13) and (23). Positional
        `evaluate(values)` still follows `var_names()` (sorted) order; values
        are mapped onto these roles by name. A positional pair is read as
        (m12, m13) and m23 is derived.
    amplitude : Amplitude
        Copied; its parameters become the parameters of the density.
    phase_space : PhaseSpace
        Copied.
    resolution : int
        Bins per axis for normalization and projections.
    envelope : float
        Upper bound of the density assumed by `generate`.
    max_attempts : int
        Candidates drawn by `generate` before giving up.
    rng : numpy Generator, optional
        Default random source for `generate`/`sample`.
    """

    def __init__(
        self,
        m12: Variable,
        m13: Variable,
        m23: Variable,
        amplitude: Amplitude,
        phase_space: PhaseSpace,
        *,
        resolution: int = 400,
        envelope: float = 14.0,
        max_attempts: int = 10_000,
        rng: Optional[np.random.Generator] = None,
        name: Optional[str] = None,
    ):
        amp = amplitude.copy()
        super().__init__([m12, m13, m23], list(amp.parameters.values()), name=name)
        self._amp = amp
        self._ps = copy.deepcopy(phase_space)
        self._roles = (m12.name, m13.name, m23.name)
        self._funcs: List[Function] = []
        self._norm = 1.0

        if int(resolution) < 1:
            raise ValueError("resolution must be a positive integer.")
        if not float(envelope) > 0:
            raise ValueError("envelope must be positive.")
        self.resolution = int(resolution)
        self.envelope = float(envelope)
        self.max_attempts = int(max_attempts)
        self._rng = rng if rng is not None else np.random.default_rng()

        self.cache()

    # ---- accessors ----
    @property
    def amplitude(self) -> Amplitude:
        return self._amp

    @property
    def phase_space(self) -> PhaseSpace:
        return self._ps

    @property
    def functions(self) -> List[Function]:
        return list(self._funcs)

    @property
    def norm(self) -> float:
        return self._norm

    @property
    def roles(self):
        """Variable names of (m12, m13, m23)."""
        return self._roles

    def bounds(self, name: str):
        """Kinematic range of one of the density's variables."""
        return self._ps.bounds(self._roles.index(name))

    def __deepcopy__(self, memo):
        # Copies draw from a child stream instead of replaying the parent's.
        cls = type(self)
        out = cls.__new__(cls)
        memo[id(self)] = out
        for key, value in self.__dict__.items():
            if key != "_rng":
                setattr(out, key, copy.deepcopy(value, memo))
        out._rng = self._rng.spawn(1)[0]
        return out

    # ---- registry sharing ----
    def bind(self, variables, parameters) -> None:
        super().bind(variables, parameters)
        self._share_cells()

    def _share_cells(self) -> None:
        self._amp.bind(self._pars)
        for func in self._funcs:
            func.bind(self._vars, self._pars)

    # ---- density ----
    def _weights(self, m12: Any, m13: Any, m23: Any) -> Any:
        """Product of the auxiliary functions, floored at zero."""
        value: Any = 1.0
        for func in self._funcs:
            args = {
                name: v
                for name, v in zip(self._roles, (m12, m13, m23))
                if func.depends_on(name)
            }
            value = value * func.evaluate(args)
        return np.maximum(value, 0.0)

    def _intensity(self, m12: Any, m13: Any, m23: Any) -> Any:
        amp = self._amp.evaluate(self._ps, m12, m13, m23)
        return np.abs(amp) ** 2 * self._weights(m12, m13, m23)

    def evaluate_at(self, m12: Any, m13: Any, m23: Any = None) -> Any:
        """Density at a Dalitz point; m23 is derived from the others if omitted."""
        if m23 is None:
            m23 = self._ps.m_sq_sum - np.asarray(m12) - np.asarray(m13)
        return self._intensity(m12, m13, m23) / self._norm

    def _point(self, values):
        """Map evaluate() input onto variable names.

        Besides the generic forms, a positional pair is read as (m12, m13) in
        role order, with m23 derived from the mass-sum constraint.
        """
        if not isinstance(values, (Mapping, str, bytes)):
            vals = list(values)
            if len(vals) == 2:
                m12, m13 = vals
                m23 = self._ps.m_sq_sum - np.asarray(m12) - np.asarray(m13)
                return dict(zip(self._roles, (m12, m13, m23)))
            values = vals
        return super()._point(values)

    def _evaluate(self, point: Mapping[str, Any]) -> Any:
        return self.evaluate_at(*(point[name] for name in self._roles))

    # ---- normalization ----
    def integral(self) -> float:
        """Unnormalized integral of |A|^2 * weights over the Dalitz region."""
        x, dx = bin_centers(self._ps.m_sq_min(0), self._ps.m_sq_max(0), self.resolution)
        y, dy = bin_centers(self._ps.m_sq_min(1), self._ps.m_sq_max(1), self.resolution)
        m12, m13 = np.meshgrid(x, y, indexing="ij")
        m23 = self._ps.m_sq_sum - m12 - m13

        inside = self._ps.contains(m12, m13, m23)
        total = np.sum(self._intensity(m12[inside], m13[inside], m23[inside]))
        return float(total) * dx * dy

    def cache(self) -> None:
        start = time.perf_counter()
        norm = self.integral()
        if not norm > 0:
            warn(
                f"{self.name}: normalization integral is {norm!r}; density values are undefined.",
                UserWarning,
            )
        self._norm = norm
        logger.debug(
            "%s: recached norm=%.6g on %dx%d grid in %.3fs",
            self.name,
            norm,
            self.resolution,
            self.resolution,
            time.perf_counter() - start,
        )

    # ---- projection ----
    def project(self, name: str, x: Any) -> Any:
        """One-dimensional marginal density of variable `name` at `x`.

        Integrates over the next kinematic variable (m12 -> m13 -> m23 -> m12)
        with the third one fixed by the mass-sum constraint. Returns 1.0 if the
        density does not depend on `name`.
        """
        if name not in self._roles:
            return 1.0

        index = self._roles.index(name)
        free = (index + 1) % 3
        fixed = (index + 2) % 3

        y, dy = bin_centers(self._ps.m_sq_min(free), self._ps.m_sq_max(free), self.resolution)
        x_arr = np.asarray(x, dtype=float)
        xs, ys = np.broadcast_arrays(x_arr[..., None], y)

        coords: List[Any] = [None, None, None]
        coords[index] = xs
        coords[free] = ys
        coords[fixed] = self._ps.m_sq_sum - xs - ys

        inside = self._ps.contains(*coords)
        values = np.zeros(xs.shape, dtype=float)
        values[inside] = self.evaluate_at(*(c[inside] for c in coords))
        proj = values.sum(axis=-1) * dy

        if x_arr.ndim == 0:
            return float(proj)
        return proj

    # ---- auxiliary functions ----
    def with_function(self, func: Function) -> "Decay3Body":
        """Return a copy of the density multiplied by `func`.

        `func` may only depend on variables of the density. Its parameters
        join the density's registry, replacing cells of the same name, and the
        copy is renormalized.
        """
        foreign = [n for n in func.var_names() if n not in self._vars]
        if foreign:
            raise DependencyError(
                f"Cannot multiply {self.name} by function {func.name!r}: it depends on "
                f"variables {foreign} the density does not declare."
            )

        out = self.copy()
        added = func.copy()
        for name, par in added.parameters.items():
            out._pars[name] = par
        rebind(added._vars, out._vars)
        out._funcs.append(added)
        out._share_cells()
        out.cache()
        return out

    def __mul__(self, other):
        if isinstance(other, Function):
            return self.with_function(other)
        return super().__mul__(other)

    def __rmul__(self, other):
        if isinstance(other, Function):
            return self.with_function(other)
        return super().__rmul__(other)

    # ---- generation ----
    def generate(
        self, rng: Optional[np.random.Generator] = None, *, strict: bool = False
    ) -> Dict[str, float]:
        """Draw one event by accept-reject sampling.

        m12 and m13 are drawn uniformly on their kinematic ranges; candidates
        outside the Dalitz region are rejected, the rest accepted with
        probability density / envelope. If every attempt fails, a point with
        all values 0.0 is returned (with a warning), or GenerationExhaustedError
        is raised when `strict=True`.
        """
        rng = self._rng if rng is None else rng
        ps = self._ps
        lo12, hi12 = ps.bounds(0)
        lo13, hi13 = ps.bounds(1)

        for _ in range(self.max_attempts):
            m12 = float(rng.uniform(lo12, hi12))
            m13 = float(rng.uniform(lo13, hi13))
            m23 = ps.m_sq_sum - m12 - m13
            if not ps.contains(m12, m13, m23):
                continue

            value = float(self.evaluate_at(m12, m13, m23))
            if value > self.envelope:
                warn(
                    f"{self.name}: density {value:.6g} at ({m12:.6g}, {m13:.6g}, {m23:.6g}) "
                    f"exceeds the envelope {self.envelope:.6g}; generated events are biased.",
                    UserWarning,
                )
            if rng.uniform(0.0, self.envelope) < value:
                return dict(zip(self._roles, (m12, m13, m23)))

        message = f"{self.name}: no event accepted after {self.max_attempts} attempts."
        if strict:
            raise GenerationExhaustedError(message)
        warn(message + " Returning the all-zero point.", UserWarning)
        return {name: 0.0 for name in self._roles}

    def sample(
        self,
        size: int,
        rng: Optional[np.random.Generator] = None,
        *,
        strict: bool = False,
    ) -> Dict[str, np.ndarray]:
        """Generate `size` events, returned as name -> array."""
        events = [self.generate(rng, strict=strict) for _ in range(int(size))]
        logger.debug("%s: generated %d events", self.name, len(events))
        return {
            name: np.array([ev[name] for ev in events], dtype=float) for name in self._roles
        }
