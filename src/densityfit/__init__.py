"""densityfit public API."""
from .amplitude import Amplitude, BreitWigner, FlatAmplitude, ResonanceSum
from .errors import (
    ArgumentCountMismatch,
    DependencyError,
    GenerationExhaustedError,
    IncompatibleVariablesError,
    MalformedExpressionError,
    OverlappingVariablesError,
    PdfError,
    StackUnderflowError,
    UnknownNameError,
    UnknownOperatorError,
)
from .expr import ParameterExpr, cos, exp, log, sin, tan
from .fit import FitResult, fit
from .function import Function
from .model import PdfModel
from .models import Decay3Body, Gaussian, Uniform
from .pdf import Pdf
from .phasespace import PhaseSpace
from .plotting import plot_dalitz, plot_projection
from .variables import Parameter, Variable
from . import models

__all__ = [
    "Amplitude",
    "BreitWigner",
    "FlatAmplitude",
    "ResonanceSum",
    "ArgumentCountMismatch",
    "DependencyError",
    "GenerationExhaustedError",
    "IncompatibleVariablesError",
    "MalformedExpressionError",
    "OverlappingVariablesError",
    "PdfError",
    "StackUnderflowError",
    "UnknownNameError",
    "UnknownOperatorError",
    "ParameterExpr",
    "cos",
    "exp",
    "log",
    "sin",
    "tan",
    "FitResult",
    "fit",
    "Function",
    "PdfModel",
    "Decay3Body",
    "Gaussian",
    "Uniform",
    "Pdf",
    "PhaseSpace",
    "plot_dalitz",
    "plot_projection",
    "Parameter",
    "Variable",
    "models",
]
