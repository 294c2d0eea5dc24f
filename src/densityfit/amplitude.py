"""Complex decay amplitudes over the Dalitz plot.

An amplitude is evaluated as ``amp.evaluate(ps, m12, m13, m23)`` and must
accept numpy arrays. Parameters are held as Parameter cells so a density can
share them with its own registry (see `Amplitude.bind`).
"""

from __future__ import annotations

import copy
from abc import ABC, abstractmethod
from typing import Any, Dict, MutableMapping, Sequence, Tuple

import numpy as np

from .phasespace import PhaseSpace
from .variables import Parameter, rebind, register

__all__ = ["Amplitude", "FlatAmplitude", "BreitWigner", "ResonanceSum"]

_CHANNELS = {"12": 0, "13": 1, "23": 2}


class Amplitude(ABC):
    """Base class of amplitude models."""

    def __init__(self, parameters: Sequence[Parameter] = ()):
        self._pars: Dict[str, Parameter] = {}
        register(self._pars, parameters, "parameter")

    @property
    def parameters(self) -> Dict[str, Parameter]:
        return dict(self._pars)

    def value(self, name: str) -> float:
        return self._pars[name].value

    def bind(self, parameters: MutableMapping[str, Parameter]) -> None:
        """Share parameter cells with an outer registry, name by name."""
        rebind(self._pars, parameters)

    @abstractmethod
    def evaluate(self, ps: PhaseSpace, m12: Any, m13: Any, m23: Any) -> Any:
        ...

    def copy(self) -> "Amplitude":
        return copy.deepcopy(self)


class FlatAmplitude(Amplitude):
    """Constant amplitude: the density is uniform over the Dalitz region."""

    def __init__(self, constant: complex = 1.0):
        super().__init__()
        self.constant = complex(constant)

    def evaluate(self, ps, m12, m13, m23):
        shape = np.broadcast(np.asarray(m12), np.asarray(m13), np.asarray(m23)).shape
        if shape == ():
            return self.constant
        return np.full(shape, self.constant, dtype=complex)


class BreitWigner(Amplitude):
    """Relativistic Breit-Wigner in one two-body channel.

        BW(s) = 1 / (m0^2 - s - i m0 Gamma)

    with `s` the squared invariant mass of the channel ("12", "13" or "23").
    """

    def __init__(self, mass: Parameter, width: Parameter, channel: str = "12"):
        if channel not in _CHANNELS:
            raise ValueError(f"channel must be one of {tuple(_CHANNELS)}, got {channel!r}.")
        super().__init__([mass, width])
        self.mass_name = mass.name
        self.width_name = width.name
        self.channel = channel

    def evaluate(self, ps, m12, m13, m23):
        s = (m12, m13, m23)[_CHANNELS[self.channel]]
        m0 = self.value(self.mass_name)
        gamma = self.value(self.width_name)
        return 1.0 / ((m0**2 - np.asarray(s, dtype=float)) - 1j * m0 * gamma)


class ResonanceSum(Amplitude):
    """Coherent sum  A = sum_k (re_k + i im_k) * A_k.

    `terms` is a sequence of (re, im, amplitude) with `re`, `im` Parameters.
    Every term amplitude shares the parameter cells of the sum.
    """

    def __init__(self, terms: Sequence[Tuple[Parameter, Parameter, Amplitude]]):
        pars: Dict[str, Parameter] = {}
        for re, im, amp in terms:
            for p in (re, im, *amp.parameters.values()):
                if pars.setdefault(p.name, p) is not p:
                    raise ValueError(f"Parameter name {p.name!r} is used by two different cells.")
        super().__init__(list(pars.values()))
        self._terms = [(re.name, im.name, amp) for re, im, amp in terms]

    def bind(self, parameters):
        super().bind(parameters)
        for _, _, amp in self._terms:
            amp.bind(parameters)

    def evaluate(self, ps, m12, m13, m23):
        total = 0.0 + 0.0j
        for re, im, amp in self._terms:
            coef = complex(self.value(re), self.value(im))
            total = total + coef * amp.evaluate(ps, m12, m13, m23)
        return total
