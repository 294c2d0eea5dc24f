"""Primitive density models."""

from .decay3body import Decay3Body
from .gaussian import Gaussian, gaussian_func
from .uniform import Uniform

__all__ = ["Decay3Body", "Gaussian", "Uniform", "gaussian_func"]
