"""Exception types raised by densityfit."""

from __future__ import annotations

__all__ = [
    "PdfError",
    "ArgumentCountMismatch",
    "UnknownNameError",
    "IncompatibleVariablesError",
    "OverlappingVariablesError",
    "DependencyError",
    "ExpressionError",
    "StackUnderflowError",
    "UnknownOperatorError",
    "MalformedExpressionError",
    "GenerationExhaustedError",
]


class PdfError(Exception):
    """Base class for every densityfit error."""


class ArgumentCountMismatch(PdfError, ValueError):
    """A positional vector does not match the number of variables/parameters."""


class UnknownNameError(PdfError, KeyError):
    """A variable or parameter name is not declared by the model."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the message readable.
        return str(self.args[0]) if self.args else ""


class IncompatibleVariablesError(PdfError, ValueError):
    """Summed densities must depend on exactly the same variables."""


class OverlappingVariablesError(PdfError, ValueError):
    """Multiplied densities must not share any variable."""


class DependencyError(PdfError, ValueError):
    """An auxiliary function depends on a variable the density does not declare."""


class ExpressionError(PdfError, RuntimeError):
    """A composite program is corrupt."""


class StackUnderflowError(ExpressionError):
    """An operator was reached without enough operands on the stack."""


class UnknownOperatorError(ExpressionError):
    """A program node carries an operator that cannot be applied."""


class MalformedExpressionError(ExpressionError):
    """The program did not leave exactly one value on the stack."""


class GenerationExhaustedError(PdfError, RuntimeError):
    """Rejection sampling ran out of attempts."""
