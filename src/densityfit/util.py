from __future__ import annotations

import inspect
import math
from typing import Any, Callable, Tuple

import numpy as np


def infer_arg_names(func: Callable[..., Any]) -> Tuple[str, ...]:
    """Infer argument names from a function signature.

    Every argument is bound by name (variables and parameters alike), so
    *args/**kwargs are not supported.
    """
    sig = inspect.signature(func)
    params = list(sig.parameters.values())

    bad_kinds = {inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD}
    for p in params:
        if p.kind in bad_kinds:
            raise TypeError("*args/**kwargs are not supported in functions of variables.")
        if p.kind is inspect.Parameter.POSITIONAL_ONLY:
            raise TypeError("Positional-only arguments cannot be bound by name.")

    names = [p.name for p in params]
    if len(set(names)) != len(names):
        raise TypeError("Duplicate argument names in function signature.")
    return tuple(names)


def bin_centers(lo: float, hi: float, nbins: int) -> Tuple[np.ndarray, float]:
    """Midpoints of `nbins` equal bins on [lo, hi] and the bin width."""
    nbins = int(nbins)
    if nbins < 1:
        raise ValueError("nbins must be a positive integer.")
    lo = float(lo)
    hi = float(hi)
    width = (hi - lo) / nbins
    return lo + width * (np.arange(nbins) + 0.5), width


def uncertainty_to_string(x: float, err: float, precision: int | str | None = 1) -> str:
    """Compact "value(error)" string such as ``12.346(1)`` or ``-1.23(1)e-5``.

    `precision` is the number of significant digits kept in the error;
    "auto" (or None) keeps two when the error starts with a 1, else one.
    The shorter of the fixed-point and exponent forms is returned.
    """
    x = float(x)
    err = abs(float(err))
    if math.isnan(x) or math.isnan(err):
        return "NaN"
    if math.isinf(x) or math.isinf(err):
        return "inf"

    auto = precision is None or str(precision).lower() == "auto"
    if err == 0.0:
        digits = 1 if auto else max(1, int(precision))  # type: ignore[arg-type]
        return f"{x:.{digits}g}(0)"

    err_exp = math.floor(math.log10(err))
    if auto:
        digits = 2 if int(err / 10**err_exp + 1e-12) == 1 else 1
    else:
        digits = max(1, int(precision))  # type: ignore[arg-type]

    # Decimal exponent of the last digit shown, shared by value and error.
    last = err_exp - digits + 1
    value_int = round(x * 10 ** (-last))
    err_int = round(err * 10 ** (-last))

    lead = err_exp if x == 0.0 or abs(x) < err else math.floor(math.log10(abs(x)))
    places = lead - last
    scientific = "%.*f(%d)e%d" % (places, value_int * 10 ** (-places), err_int, lead)

    places = max(0, -last)
    fixed = "%.*f(%d)" % (places, value_int * 10**last, err_int * 10 ** max(0, last))

    return fixed if len(fixed) <= len(scientific) else scientific
