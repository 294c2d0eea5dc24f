"""
Three-body phase space (Dalitz plot) geometry.

Kinematic variables are squared invariant masses of daughter pairs, indexed
    0 -> m12 = (p1 + p2)^2
    1 -> m13 = (p1 + p3)^2
    2 -> m23 = (p2 + p3)^2
and satisfy m12 + m13 + m23 = M^2 + m1^2 + m2^2 + m3^2.

Units are whatever the masses are given in (GeV by convention).
"""

from __future__ import annotations

from typing import Any, Tuple

import numpy as np

__all__ = ["PhaseSpace"]

# Daughter pair and spectator for each kinematic index.
_PAIRS = {0: (0, 1), 1: (0, 2), 2: (1, 2)}
_SPECTATOR = {0: 2, 1: 1, 2: 0}


class PhaseSpace:
    """Kinematically allowed region of a decay M -> 1 2 3."""

    def __init__(self, m_mother: float, m1: float, m2: float, m3: float):
        masses = (float(m1), float(m2), float(m3))
        if any(m < 0 for m in masses):
            raise ValueError("All daughter masses must be non-negative.")
        if float(m_mother) <= 0:
            raise ValueError("Mother mass must be positive.")
        if sum(masses) >= float(m_mother):
            raise ValueError(
                f"Kinematically forbidden: sum of daughter masses {sum(masses):.6g} "
                f">= mother mass {float(m_mother):.6g}."
            )
        self.m_mother = float(m_mother)
        self.m1, self.m2, self.m3 = masses

    @property
    def masses(self) -> Tuple[float, float, float]:
        return (self.m1, self.m2, self.m3)

    @property
    def m_sq_mother(self) -> float:
        return self.m_mother**2

    @property
    def m_sq_sum(self) -> float:
        """Sum of the squared masses of mother and daughters."""
        return self.m_mother**2 + self.m1**2 + self.m2**2 + self.m3**2

    def m_sq_min(self, index: int) -> float:
        a, b = _PAIRS[index]
        return (self.masses[a] + self.masses[b]) ** 2

    def m_sq_max(self, index: int) -> float:
        return (self.m_mother - self.masses[_SPECTATOR[index]]) ** 2

    def bounds(self, index: int) -> Tuple[float, float]:
        return self.m_sq_min(index), self.m_sq_max(index)

    def m23_limits(self, m12: Any) -> Tuple[np.ndarray, np.ndarray]:
        """Allowed range of m23 at fixed m12 (NaN outside the m12 range)."""
        m12 = np.asarray(m12, dtype=float)
        m1, m2, m3 = self.masses
        with np.errstate(divide="ignore", invalid="ignore"):
            valid = (m12 >= self.m_sq_min(0)) & (m12 <= self.m_sq_max(0)) & (m12 > 0)
            mass12 = np.sqrt(np.where(valid, m12, np.nan))
            # Energies of particles 2 and 3 in the (12) rest frame.
            e2 = (m12 - m1**2 + m2**2) / (2.0 * mass12)
            e3 = (self.m_sq_mother - m12 - m3**2) / (2.0 * mass12)
            p2 = np.sqrt(np.clip(e2**2 - m2**2, 0.0, None))
            p3 = np.sqrt(np.clip(e3**2 - m3**2, 0.0, None))
            lo = (e2 + e3) ** 2 - (p2 + p3) ** 2
            hi = (e2 + e3) ** 2 - (p2 - p3) ** 2
        return lo, hi

    def contains(self, m12: Any, m13: Any, m23: Any) -> Any:
        """True where (m12, m13, m23) lies inside the Dalitz region.

        Accepts floats or broadcastable arrays; returns a bool or a bool array.
        """
        m12, m13, m23 = np.broadcast_arrays(
            np.asarray(m12, dtype=float),
            np.asarray(m13, dtype=float),
            np.asarray(m23, dtype=float),
        )
        tolerance = 1e-9 * self.m_sq_sum
        lo, hi = self.m23_limits(m12)
        with np.errstate(invalid="ignore"):
            inside = (
                (np.abs(m12 + m13 + m23 - self.m_sq_sum) <= tolerance)
                & (m23 >= lo)
                & (m23 <= hi)
            )
        if inside.ndim == 0:
            return bool(inside)
        return inside

    def __repr__(self) -> str:
        return (
            f"PhaseSpace(m_mother={self.m_mother:g}, m1={self.m1:g}, "
            f"m2={self.m2:g}, m3={self.m3:g})"
        )
