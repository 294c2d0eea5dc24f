from __future__ import annotations

from typing import Any, Mapping, Optional

import numpy as np

from ..model import PdfModel
from ..variables import Variable


class Uniform(PdfModel):
    """Flat density of one variable on the fixed interval [lo, hi]."""

    def __init__(self, x: Variable, lo: float, hi: float, *, name: Optional[str] = None):
        lo = float(lo)
        hi = float(hi)
        if not hi > lo:
            raise ValueError(f"Uniform requires lo < hi, got ({lo}, {hi}).")
        super().__init__([x], name=name)
        self._x = x.name
        self.lo = lo
        self.hi = hi

    def _evaluate(self, point: Mapping[str, Any]) -> Any:
        x = np.asarray(point[self._x], dtype=float)
        inside = (x >= self.lo) & (x <= self.hi)
        return np.where(inside, 1.0 / (self.hi - self.lo), 0.0)
