from __future__ import annotations

import copy
from typing import Any, Callable, Dict, List, Mapping, MutableMapping, Optional, Sequence

from .util import infer_arg_names
from .variables import Parameter, Variable, rebind, register

__all__ = ["Function"]


class Function:
    """Scalar function of variables and parameters, used as a density weight.

    The wrapped callable receives every variable and parameter as a keyword
    argument named after it::

        def efficiency(mSq12, slope):
            return 1.0 + slope * mSq12

        eff = Function(efficiency, [m12], [slope])

    Callables should accept numpy arrays as well as floats.
    """

    def __init__(
        self,
        func: Callable[..., Any],
        variables: Sequence[Variable] = (),
        parameters: Sequence[Parameter] = (),
        *,
        name: Optional[str] = None,
    ):
        self.func = func
        self.name = name or getattr(func, "__name__", "function")
        self._vars: Dict[str, Variable] = {}
        self._pars: Dict[str, Parameter] = {}
        register(self._vars, variables, "variable")
        register(self._pars, parameters, "parameter")

        args = set(infer_arg_names(func))
        bound = set(self._vars) | set(self._pars)
        if args != bound:
            missing = sorted(args - bound)
            extra = sorted(bound - args)
            raise TypeError(
                f"Function {self.name!r} arguments do not match its variables and parameters "
                f"(unbound arguments: {missing}, unknown names: {extra})."
            )
        if set(self._vars) & set(self._pars):
            raise TypeError("A name cannot be both a variable and a parameter.")

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

    def depends_on(self, name: str) -> bool:
        return name in self._vars

    def evaluate(self, values: Optional[Mapping[str, Any]] = None) -> Any:
        """Evaluate at the given variable values.

        Variables missing from `values` take their current value.
        """
        values = values or {}
        kwargs = {n: p.value for n, p in self._pars.items()}
        for n, v in self._vars.items():
            kwargs[n] = values[n] if n in values else v.value
        return self.func(**kwargs)

    def bind(
        self,
        variables: MutableMapping[str, Variable],
        parameters: MutableMapping[str, Parameter],
    ) -> None:
        rebind(self._vars, variables)
        rebind(self._pars, parameters)

    def copy(self) -> "Function":
        return copy.deepcopy(self)

    def __repr__(self) -> str:
        return f"Function({self.name!r}, vars={self.var_names()}, pars={self.par_names()})"
