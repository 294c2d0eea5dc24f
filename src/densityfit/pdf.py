from __future__ import annotations

import copy
from numbers import Real
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Sequence, Union

from .errors import (
    ArgumentCountMismatch,
    IncompatibleVariablesError,
    OverlappingVariablesError,
    UnknownNameError,
)
from .expr import (
    BinaryNode,
    ConstantLeaf,
    ModelLeaf,
    Operation,
    ParameterExpr,
    ParameterLeaf,
    _constant_label,
    evaluate_program,
    format_program,
    replay,
)
from .model import PdfModel
from .variables import Parameter, Variable, assign_values, rebind

__all__ = ["Pdf"]

Density = Union[PdfModel, "Pdf"]
Factor = Union[Parameter, ParameterExpr, Real]


def _var_names_of(operand: Density) -> List[str]:
    return operand.var_names()


class Pdf:
    """Composite density built from models, parameters and constants.

    A Pdf stores a post-order program whose model leaves index into its own
    list of embedded model copies. Builder operations (`with_sum`,
    `with_product`, `with_scale`, `with_division`) and the matching operators
    never modify their operands: they return a new Pdf that owns independent
    copies of everything it embeds.

    Inside one Pdf every embedded model shares a single Variable/Parameter
    cell per name, so `set_var`/`set_par` reach all of them at once. When two
    operands declare the same name, the left operand's cell (and value) is
    kept.

    Legality rules:
    - sum: both operands must depend on exactly the same variables;
    - product of densities: operands must not share any variable.

    Example
    -------
    >>> signal = Gaussian(x, mu, sigma)
    >>> background = Uniform(x, 0.0, 10.0)
    >>> model = f * signal + (1 - f) * background
    """

    def __init__(self, model: Optional[Density] = None):
        self._models: List[PdfModel] = []
        self._program: tuple = ()
        self._vars: Dict[str, Variable] = {}
        self._pars: Dict[str, Parameter] = {}
        if model is not None:
            self._append(model)

    # ---- program assembly (only ever applied to fresh copies) ----
    def _append(self, operand: Any) -> None:
        if isinstance(operand, PdfModel):
            model = operand.copy()
            model.bind(self._vars, self._pars)
            self._models.append(model)
            self._program += (ModelLeaf(len(self._models) - 1),)
        elif isinstance(operand, Pdf):
            other = copy.deepcopy(operand)
            offset = len(self._models)
            rebind(other._vars, self._vars)
            rebind(other._pars, self._pars)
            for model in other._models:
                model.bind(self._vars, self._pars)
            self._models.extend(other._models)
            self._program += tuple(
                ModelLeaf(node.index + offset) if isinstance(node, ModelLeaf) else node
                for node in other._program
            )
        elif isinstance(operand, Parameter):
            par = copy.deepcopy(operand)
            self._pars.setdefault(par.name, par)
            self._program += (ParameterLeaf(par.name),)
        elif isinstance(operand, ParameterExpr):
            expr = operand.copy()
            for name, par in expr.parameters.items():
                self._pars.setdefault(name, par)
            self._program += expr.program
        elif isinstance(operand, Real):
            self._program += (ConstantLeaf(float(operand)),)
        elif isinstance(operand, Operation):
            self._program += (BinaryNode(operand),)
        else:
            raise TypeError(f"Cannot append {type(operand).__name__} to a Pdf.")

    def _extended(self, operand: Any, op: Operation) -> "Pdf":
        out = self.copy()
        if not out._program:
            # An empty Pdf adopts its first operand.
            out._append(operand)
            return out
        out._append(operand)
        out._append(op)
        return out

    # ---- builders ----
    def with_sum(self, other: Density) -> "Pdf":
        """Return self + other. Both must depend on the same variables."""
        if not isinstance(other, (PdfModel, Pdf)):
            raise TypeError(f"Cannot add {type(other).__name__} to a Pdf.")
        if self._program and self.var_names() != _var_names_of(other):
            raise IncompatibleVariablesError(
                "Cannot add two pdfs that do not depend on the same variables: "
                f"{self.var_names()} vs {_var_names_of(other)}."
            )
        return self._extended(other, Operation.PLUS)

    def with_product(self, other: Density) -> "Pdf":
        """Return self * other. The operands must not share any variable."""
        if not isinstance(other, (PdfModel, Pdf)):
            raise TypeError(f"Cannot multiply a Pdf by {type(other).__name__}.")
        common = sorted(set(self.var_names()) & set(_var_names_of(other)))
        if common:
            raise OverlappingVariablesError(
                f"Cannot multiply two pdfs that depend on some common variable: {common}."
            )
        return self._extended(other, Operation.MULT)

    def with_scale(self, factor: Factor) -> "Pdf":
        """Return self * factor for a parameter, parameter expression or constant."""
        if not isinstance(factor, (Parameter, ParameterExpr, Real)):
            raise TypeError(f"Cannot scale a Pdf by {type(factor).__name__}.")
        return self._extended(factor, Operation.MULT)

    def with_division(self, factor: Factor) -> "Pdf":
        """Return self / factor for a parameter, parameter expression or constant."""
        if not isinstance(factor, (Parameter, ParameterExpr, Real)):
            raise TypeError(f"Cannot divide a Pdf by {type(factor).__name__}.")
        return self._extended(factor, Operation.DIV)

    def __add__(self, other):
        if isinstance(other, (PdfModel, Pdf)):
            return self.with_sum(other)
        return NotImplemented

    def __mul__(self, other):
        if isinstance(other, (PdfModel, Pdf)):
            return self.with_product(other)
        if isinstance(other, (Parameter, ParameterExpr, Real)):
            return self.with_scale(other)
        return NotImplemented

    def __rmul__(self, other):
        if isinstance(other, (Parameter, ParameterExpr, Real)):
            return self.with_scale(other)
        return NotImplemented

    def __truediv__(self, other):
        if isinstance(other, (Parameter, ParameterExpr, Real)):
            return self.with_division(other)
        return NotImplemented

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

    @property
    def models(self) -> List[PdfModel]:
        """The embedded model copies, in program order."""
        return list(self._models)

    @property
    def program(self) -> tuple:
        return self._program

    def copy(self) -> "Pdf":
        return copy.deepcopy(self)

    # ---- setters ----
    def set_var(self, name: str, value: Any, error: float = 0.0) -> None:
        if name not in self._vars:
            raise UnknownNameError(f"Cannot set unexisting variable {name!r}.")
        self._vars[name].set(value, error)

    def set_par(self, name: str, value: Any, error: float = 0.0) -> None:
        if name not in self._pars:
            raise UnknownNameError(f"Cannot set unexisting parameter {name!r}.")
        self._pars[name].set(value, error)
        self.cache()

    def set_vars(self, values: Union[Sequence[Any], Mapping[str, Any]]) -> None:
        """Set variables. Positional values follow `var_names()` (sorted) order."""
        assign_values(self._vars, values, "variable")

    def set_pars(self, values: Any) -> None:
        """Set parameters and recache every embedded model.

        Positional values follow `par_names()` (sorted) order. A mapping of
        Parameters, a mapping of floats or a FitResult are also accepted.
        """
        from .fit import FitResult

        if isinstance(values, FitResult):
            values = values.parameters
        assign_values(self._pars, values, "parameter")
        self.cache()

    def cache(self) -> None:
        for model in self._models:
            model.cache()

    # ---- evaluation ----
    def _point(self, values: Union[Sequence[Any], Mapping[str, Any]]) -> Dict[str, Any]:
        names = self.var_names()
        if isinstance(values, Mapping):
            missing = [n for n in names if n not in values]
            if missing:
                raise ArgumentCountMismatch(f"Missing values for variables: {missing}.")
            return {n: values[n] for n in names}
        vals = list(values)
        if len(vals) != len(names):
            raise ArgumentCountMismatch(
                f"Pdf takes {len(names)} variable value(s) {names}, got {len(vals)}."
            )
        return dict(zip(names, vals))

    def evaluate(self, values: Optional[Union[Sequence[Any], Mapping[str, Any]]] = None) -> Any:
        """Run the program.

        Without arguments each model uses the last-set variable values. With
        `values` (positional in `var_names()` order, or a name mapping; arrays
        allowed) each model is evaluated on the values of its own variables.
        """
        point = None if values is None else self._point(values)

        def _leaf(node):
            if isinstance(node, ModelLeaf):
                model = self._models[node.index]
                if point is None:
                    return model.evaluate()
                return model.evaluate([point[n] for n in model.var_names()])
            if isinstance(node, ParameterLeaf):
                return self._pars[node.name].value
            return node.value

        return evaluate_program(self._program, _leaf)

    def common_vars(self) -> List[str]:
        """Variables shared across the products of the expression.

        Sums intersect the variable sets of their operands, every other binary
        operation takes their union; parameters and constants contribute the
        empty set. These are the variables a convolution may integrate over.
        """
        empty: FrozenSet[str] = frozenset()

        def _leaf(node):
            if isinstance(node, ModelLeaf):
                return frozenset(self._models[node.index].var_names())
            return empty

        def _binary(op, x, y):
            if op is Operation.PLUS:
                return x & y
            return x | y

        return sorted(replay(self._program, _leaf, _binary, lambda op, x: x))

    def expression(self) -> str:
        """Infix rendering of the program."""

        def _label(node):
            if isinstance(node, ModelLeaf):
                return self._models[node.index].name
            if isinstance(node, ParameterLeaf):
                return node.name
            return _constant_label(node.value)

        if not self._program:
            return ""
        return format_program(self._program, _label)

    def __repr__(self) -> str:
        return f"Pdf({self.expression()})"
