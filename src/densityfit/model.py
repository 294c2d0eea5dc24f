from __future__ import annotations

import copy
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, MutableMapping, Optional, Sequence, Union

from .errors import ArgumentCountMismatch, UnknownNameError
from .variables import Parameter, Variable, assign_values, current_values, rebind, register

__all__ = ["PdfModel"]

Values = Union[Sequence[Any], Mapping[str, Any]]


class PdfModel(ABC):
    """Base class of every primitive density.

    Subclasses implement `_evaluate(point)` where `point` maps variable names
    to values (floats or numpy arrays), and override `cache()` when they keep
    a normalization that depends on parameters.

    Positional setters and `evaluate(values)` follow the sorted-name order of
    `var_names()`/`par_names()`, not the order in which variables were passed
    to the constructor.
    """

    def __init__(
        self,
        variables: Sequence[Variable],
        parameters: Sequence[Parameter] = (),
        *,
        name: Optional[str] = None,
    ):
        self.name = name or type(self).__name__
        self._vars: Dict[str, Variable] = {}
        self._pars: Dict[str, Parameter] = {}
        register(self._vars, variables, "variable")
        register(self._pars, parameters, "parameter")

    # ---- accessors ----
    def var_names(self) -> List[str]:
        return sorted(self._vars)

    def par_names(self) -> List[str]:
        return sorted(self._pars)

    @property
    def variables(self) -> Dict[str, Variable]:
        return dict(self._vars)

    @property
    def parameters(self) -> Dict[str, Parameter]:
        return dict(self._pars)

    def value(self, name: str) -> Any:
        """Current value of a parameter."""
        return self._pars[name].value

    # ---- evaluation ----
    @abstractmethod
    def _evaluate(self, point: Mapping[str, Any]) -> Any:
        ...

    def evaluate(self, values: Optional[Values] = None) -> Any:
        """Evaluate the density.

        Without arguments the last-set variable values are used. A positional
        `values` vector must follow `var_names()` order; a mapping must name
        every variable.
        """
        if values is None:
            return self._evaluate(current_values(self._vars))
        return self._evaluate(self._point(values))

    def _point(self, values: Values) -> Dict[str, Any]:
        names = self.var_names()
        if isinstance(values, Mapping):
            missing = [n for n in names if n not in values]
            if missing:
                raise ArgumentCountMismatch(f"Missing values for variables: {missing}.")
            return {n: values[n] for n in names}
        vals = list(values)
        if len(vals) != len(names):
            raise ArgumentCountMismatch(
                f"{self.name} takes {len(names)} variable value(s) {names}, got {len(vals)}."
            )
        return dict(zip(names, vals))

    def cache(self) -> None:
        """Recompute any derived normalization. No-op by default."""

    # ---- setters ----
    def set_var(self, name: str, value: Any, error: float = 0.0) -> None:
        if name not in self._vars:
            raise UnknownNameError(f"Cannot set unexisting variable {name!r}.")
        self._vars[name].set(value, error)

    def set_vars(self, values: Values) -> None:
        assign_values(self._vars, values, "variable")

    def set_par(self, name: str, value: Any, error: float = 0.0) -> None:
        if name not in self._pars:
            raise UnknownNameError(f"Cannot set unexisting parameter {name!r}.")
        self._pars[name].set(value, error)
        self.cache()

    def set_pars(self, values: Any) -> None:
        """Set parameters from a vector, a mapping or a FitResult, then recache."""
        from .fit import FitResult

        if isinstance(values, FitResult):
            values = values.parameters
        assign_values(self._pars, values, "parameter")
        self.cache()

    # ---- registry sharing ----
    def bind(
        self,
        variables: MutableMapping[str, Variable],
        parameters: MutableMapping[str, Parameter],
    ) -> None:
        """Share cells with an outer registry, name by name.

        Cells the registry lacks are added to it; afterwards the model and
        the registry hold the same object for every name.
        """
        rebind(self._vars, variables)
        rebind(self._pars, parameters)

    def copy(self) -> "PdfModel":
        """Return a fully independent deep copy."""
        return copy.deepcopy(self)

    # ---- composition ----
    def _as_pdf(self):
        from .pdf import Pdf

        return Pdf(self)

    def __add__(self, other):
        return self._as_pdf().__add__(other)

    def __mul__(self, other):
        return self._as_pdf().__mul__(other)

    def __rmul__(self, other):
        return self._as_pdf().__rmul__(other)

    def __truediv__(self, other):
        return self._as_pdf().__truediv__(other)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, vars={self.var_names()}, pars={self.par_names()})"
