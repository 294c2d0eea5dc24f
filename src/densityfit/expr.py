"""Post-order programs over parameters, constants and density models.

A program is a flat tuple of nodes in post-order: operands always precede
the operator that consumes them. Composite densities and parameter
expressions share the same node types and the same interpreter (`replay`).
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from enum import Enum
from numbers import Real
from typing import Any, Callable, Dict, Mapping, Sequence, Tuple, Union

import numpy as np

from .errors import MalformedExpressionError, StackUnderflowError, UnknownOperatorError
from .variables import Parameter

__all__ = [
    "Operation",
    "ModelLeaf",
    "ParameterLeaf",
    "ConstantLeaf",
    "BinaryNode",
    "UnaryNode",
    "replay",
    "evaluate_program",
    "format_program",
    "ParameterExpr",
    "exp",
    "log",
    "sin",
    "cos",
    "tan",
]


class Operation(Enum):
    PLUS = "+"
    MINUS = "-"
    MULT = "*"
    DIV = "/"
    POW = "**"
    NEG = "neg"
    EXP = "exp"
    LOG = "log"
    SIN = "sin"
    COS = "cos"
    TAN = "tan"


BINARY_OPERATIONS: Dict[Operation, Callable[[Any, Any], Any]] = {
    Operation.PLUS: np.add,
    Operation.MINUS: np.subtract,
    Operation.MULT: np.multiply,
    Operation.DIV: np.divide,
    Operation.POW: np.power,
}

UNARY_OPERATIONS: Dict[Operation, Callable[[Any], Any]] = {
    Operation.NEG: np.negative,
    Operation.EXP: np.exp,
    Operation.LOG: np.log,
    Operation.SIN: np.sin,
    Operation.COS: np.cos,
    Operation.TAN: np.tan,
}


@dataclass(frozen=True)
class ModelLeaf:
    index: int


@dataclass(frozen=True)
class ParameterLeaf:
    name: str


@dataclass(frozen=True)
class ConstantLeaf:
    value: float


@dataclass(frozen=True)
class BinaryNode:
    op: Operation


@dataclass(frozen=True)
class UnaryNode:
    op: Operation


Leaf = Union[ModelLeaf, ParameterLeaf, ConstantLeaf]
Node = Union[ModelLeaf, ParameterLeaf, ConstantLeaf, BinaryNode, UnaryNode]
Program = Tuple[Node, ...]


def replay(
    program: Sequence[Node],
    leaf: Callable[[Leaf], Any],
    binary: Callable[[Operation, Any, Any], Any],
    unary: Callable[[Operation, Any], Any],
) -> Any:
    """Run a post-order program against an explicit operand stack.

    `leaf` maps a leaf node to its operand, `binary`/`unary` combine operands.
    The right operand of a binary node is the one popped first.
    """
    stack: list = []
    for node in program:
        if isinstance(node, (ModelLeaf, ParameterLeaf, ConstantLeaf)):
            stack.append(leaf(node))
        elif isinstance(node, BinaryNode):
            if node.op not in BINARY_OPERATIONS:
                raise UnknownOperatorError(f"Unknown binary operation {node.op!r}.")
            if len(stack) < 2:
                raise StackUnderflowError("Not enough values in the stack for a binary operation.")
            right = stack.pop()
            left = stack.pop()
            stack.append(binary(node.op, left, right))
        elif isinstance(node, UnaryNode):
            if node.op not in UNARY_OPERATIONS:
                raise UnknownOperatorError(f"Unknown unary operation {node.op!r}.")
            if not stack:
                raise StackUnderflowError("Not enough values in the stack for a unary operation.")
            stack.append(unary(node.op, stack.pop()))
        else:
            raise UnknownOperatorError(f"Unknown program node {node!r}.")

    if len(stack) != 1:
        raise MalformedExpressionError(
            f"Program left {len(stack)} values in the stack instead of one."
        )
    return stack[0]


def evaluate_program(program: Sequence[Node], leaf: Callable[[Leaf], Any]) -> Any:
    """Numerically evaluate a program (numpy-aware)."""
    return replay(
        program,
        leaf,
        lambda op, x, y: BINARY_OPERATIONS[op](x, y),
        lambda op, x: UNARY_OPERATIONS[op](x),
    )


def format_program(program: Sequence[Node], leaf: Callable[[Leaf], str]) -> str:
    """Render a program as an infix string."""

    def _binary(op: Operation, x: str, y: str) -> str:
        return f"({x} {op.value} {y})"

    def _unary(op: Operation, x: str) -> str:
        if op is Operation.NEG:
            return f"-{x}"
        return f"{op.value}({x})"

    return replay(program, leaf, _binary, _unary)


def _constant_label(value: float) -> str:
    return f"{value:g}"


class ParameterExpr:
    """Arithmetic expression over parameters and constants.

    Built by applying arithmetic to Parameter objects::

        yield_ratio = n_sig / (n_sig + n_bkg)
        slope = exp(-tau)
    """

    def __init__(self, program: Program, parameters: Mapping[str, Parameter]):
        self._program: Program = tuple(program)
        self._pars: Dict[str, Parameter] = dict(parameters)

    # ---- construction ----
    @staticmethod
    def lift(operand: Any) -> "ParameterExpr":
        """Wrap a Parameter, a ParameterExpr or a real number as an expression."""
        if isinstance(operand, ParameterExpr):
            return operand
        if isinstance(operand, Parameter):
            return ParameterExpr((ParameterLeaf(operand.name),), {operand.name: operand})
        if isinstance(operand, Real):
            return ParameterExpr((ConstantLeaf(float(operand)),), {})
        raise TypeError(f"Cannot use {type(operand).__name__} in a parameter expression.")

    @staticmethod
    def _liftable(operand: Any) -> bool:
        return isinstance(operand, (ParameterExpr, Parameter, Real))

    def _combine(self, other: Any, op: Operation, reflected: bool = False):
        if not self._liftable(other):
            return NotImplemented
        rhs = ParameterExpr.lift(other)
        left, right = (rhs, self) if reflected else (self, rhs)
        pars = dict(right._pars)
        # Left-hand cells win on name clashes.
        pars.update(left._pars)
        return ParameterExpr(left._program + right._program + (BinaryNode(op),), pars)

    def apply(self, op: Operation) -> "ParameterExpr":
        """Return a new expression with a unary operation applied."""
        if op not in UNARY_OPERATIONS:
            raise UnknownOperatorError(f"{op!r} is not a unary operation.")
        return ParameterExpr(self._program + (UnaryNode(op),), self._pars)

    # ---- accessors ----
    @property
    def program(self) -> Program:
        return self._program

    @property
    def parameters(self) -> Dict[str, Parameter]:
        return dict(self._pars)

    def par_names(self) -> list[str]:
        return sorted(self._pars)

    def copy(self) -> "ParameterExpr":
        return copy.deepcopy(self)

    # ---- evaluation ----
    def _leaf(self, node: Leaf) -> Any:
        if isinstance(node, ParameterLeaf):
            return self._pars[node.name].value
        if isinstance(node, ConstantLeaf):
            return node.value
        raise UnknownOperatorError(f"Parameter expressions cannot hold {node!r}.")

    def evaluate(self) -> Any:
        return evaluate_program(self._program, self._leaf)

    @property
    def value(self) -> Any:
        return self.evaluate()

    def __float__(self) -> float:
        return float(self.evaluate())

    def __repr__(self) -> str:
        def _label(node: Leaf) -> str:
            if isinstance(node, ParameterLeaf):
                return node.name
            if isinstance(node, ConstantLeaf):
                return _constant_label(node.value)
            return "?"

        return f"ParameterExpr({format_program(self._program, _label)})"

    # ---- arithmetic ----
    def __add__(self, other):
        return self._combine(other, Operation.PLUS)

    def __radd__(self, other):
        return self._combine(other, Operation.PLUS, reflected=True)

    def __sub__(self, other):
        return self._combine(other, Operation.MINUS)

    def __rsub__(self, other):
        return self._combine(other, Operation.MINUS, reflected=True)

    def __mul__(self, other):
        return self._combine(other, Operation.MULT)

    def __rmul__(self, other):
        return self._combine(other, Operation.MULT, reflected=True)

    def __truediv__(self, other):
        return self._combine(other, Operation.DIV)

    def __rtruediv__(self, other):
        return self._combine(other, Operation.DIV, reflected=True)

    def __pow__(self, other):
        return self._combine(other, Operation.POW)

    def __rpow__(self, other):
        return self._combine(other, Operation.POW, reflected=True)

    def __neg__(self):
        return self.apply(Operation.NEG)


def _unary(op: Operation, operand: Any) -> ParameterExpr:
    return ParameterExpr.lift(operand).apply(op)


def exp(operand: Any) -> ParameterExpr:
    return _unary(Operation.EXP, operand)


def log(operand: Any) -> ParameterExpr:
    return _unary(Operation.LOG, operand)


def sin(operand: Any) -> ParameterExpr:
    return _unary(Operation.SIN, operand)


def cos(operand: Any) -> ParameterExpr:
    return _unary(Operation.COS, operand)


def tan(operand: Any) -> ParameterExpr:
    return _unary(Operation.TAN, operand)
