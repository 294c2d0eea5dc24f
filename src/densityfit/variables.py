from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, MutableMapping, Sequence, Union

try:
    import uncertainties
except Exception:  # pragma: no cover - optional at import time
    uncertainties = None

from .errors import ArgumentCountMismatch, UnknownNameError

__all__ = [
    "Variable",
    "Parameter",
    "register",
    "rebind",
    "assign_values",
    "current_values",
]


@dataclass(eq=False)
class Variable:
    """A named observable with a current value and uncertainty.

    Instances are mutable cells: every model holding the same object sees the
    same value.
    """

    name: str
    value: Any = 0.0
    error: float = 0.0

    def set(self, value: Any, error: float | None = None) -> None:
        self.value = value
        if error is not None:
            self.error = float(error)

    @property
    def u(self):
        """Return the value as an uncertainties ufloat."""
        if uncertainties is None:
            raise RuntimeError("uncertainties package is not available.")
        return uncertainties.ufloat(float(self.value), float(self.error))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r}, value={self.value!r}, error={self.error!r})"


class Parameter(Variable):
    """A fit parameter. Arithmetic on parameters builds a ParameterExpr."""

    def _expr(self):
        from .expr import ParameterExpr

        return ParameterExpr.lift(self)

    def __add__(self, other):
        return self._expr() + other

    def __radd__(self, other):
        return other + self._expr()

    def __sub__(self, other):
        return self._expr() - other

    def __rsub__(self, other):
        return other - self._expr()

    def __mul__(self, other):
        return self._expr() * other

    def __rmul__(self, other):
        return other * self._expr()

    def __truediv__(self, other):
        return self._expr() / other

    def __rtruediv__(self, other):
        return other / self._expr()

    def __pow__(self, other):
        return self._expr() ** other

    def __rpow__(self, other):
        return other ** self._expr()

    def __neg__(self):
        return -self._expr()


Cell = Union[Variable, Parameter]


def register(registry: MutableMapping[str, Cell], cells: Iterable[Cell], kind: str) -> None:
    """Add cells to a registry, rejecting duplicated names."""
    for cell in cells:
        if cell.name in registry:
            raise ValueError(f"Duplicate {kind} name {cell.name!r}.")
        registry[cell.name] = cell


def rebind(own: MutableMapping[str, Cell], shared: MutableMapping[str, Cell]) -> None:
    """Point every entry of `own` at the cell of the same name in `shared`.

    Names missing from `shared` are added to it, so after the call both
    mappings hold identical objects for every name in `own`.
    """
    for name in list(own):
        own[name] = shared.setdefault(name, own[name])


def assign_values(
    registry: Mapping[str, Cell],
    values: Union[Sequence[Any], Mapping[str, Any]],
    kind: str = "variable",
) -> None:
    """Assign values to the cells of a registry.

    `values` may be
    - a sequence, matched against the registry names in sorted order
      (not declaration order),
    - a mapping name -> Variable/Parameter (value and error are copied),
    - a mapping name -> raw value.

    Validation happens before anything is written.
    """
    names = sorted(registry)

    if isinstance(values, Mapping):
        unknown = [n for n in values if n not in registry]
        if unknown:
            raise UnknownNameError(
                f"Cannot set unexisting {kind}(s): {', '.join(map(str, unknown))}."
            )
        for n, v in values.items():
            if isinstance(v, Variable):
                registry[n].set(v.value, v.error)
            else:
                registry[n].set(v)
        return

    if isinstance(values, (str, bytes)):
        raise TypeError(f"Expected a sequence or mapping of {kind} values.")

    vals: List[Any] = list(values)
    if len(vals) != len(names):
        raise ArgumentCountMismatch(
            f"Got {len(vals)} {kind} value(s) but the model has {len(names)}: {names}."
        )
    for n, v in zip(names, vals):
        registry[n].set(v)


def current_values(registry: Mapping[str, Cell]) -> Dict[str, Any]:
    """Return name -> value for a registry."""
    return {n: c.value for n, c in registry.items()}
