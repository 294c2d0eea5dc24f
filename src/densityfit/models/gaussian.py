from __future__ import annotations

from typing import Any, Mapping, Optional

import numpy as np

from ..model import PdfModel
from ..variables import Parameter, Variable


def gaussian_func(x, mu, sigma):
    """Unit-normalized Gaussian density."""
    z = (x - mu) / sigma
    return np.exp(-0.5 * z * z) / (np.sqrt(2.0 * np.pi) * np.abs(sigma))


class Gaussian(PdfModel):
    """Normal density of one variable.

    Parameters in the model
    -----------------------
    mu    : mean
    sigma : width (sign is ignored)
    """

    def __init__(
        self,
        x: Variable,
        mu: Parameter,
        sigma: Parameter,
        *,
        name: Optional[str] = None,
    ):
        super().__init__([x], [mu, sigma], name=name)
        self._x = x.name
        self._mu = mu.name
        self._sigma = sigma.name

    def _evaluate(self, point: Mapping[str, Any]) -> Any:
        return gaussian_func(
            np.asarray(point[self._x], dtype=float),
            self.value(self._mu),
            self.value(self._sigma),
        )
