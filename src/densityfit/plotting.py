from __future__ import annotations

from typing import Any, Mapping, Optional, Tuple

import numpy as np


def plot_projection(
    density: Any,
    name: str,
    *,
    data: Optional[Any] = None,
    bins: int = 50,
    range: Optional[Tuple[float, float]] = None,
    npoints: int = 200,
    ax: Optional[Any] = None,
    data_kwargs: Optional[Mapping[str, Any]] = None,
    line_kwargs: Optional[Mapping[str, Any]] = None,
) -> Tuple[Any, Any]:
    """Plot the projection of a density on one variable.

    Parameters
    ----------
    density : object with ``project(name, x)``
        E.g. a Decay3Body.
    name : str
        Variable to project on.
    data : array-like or mapping, optional
        Event values of `name` (or a mapping name -> array). When given, the
        data are histogrammed with Poisson error bars and the projection is
        scaled to the number of events per bin.
    range : (lo, hi), optional
        Plot range. Defaults to the data range, else ``density.bounds(name)``.
    """
    import matplotlib.pyplot as plt

    if not hasattr(density, "project"):
        raise TypeError(f"{type(density).__name__} does not provide project().")

    if ax is None:
        fig, ax = plt.subplots()
    else:
        fig = ax.figure

    data_kwargs = dict(data_kwargs or {})
    line_kwargs = dict(line_kwargs or {})

    values = None
    if data is not None:
        values = np.asarray(data[name] if isinstance(data, Mapping) else data, dtype=float)
        if values.ndim != 1:
            raise ValueError("plot_projection requires 1D event values.")

    if range is None:
        if values is not None and values.size:
            range = (float(np.min(values)), float(np.max(values)))
        elif hasattr(density, "bounds"):
            range = tuple(density.bounds(name))
        else:
            raise ValueError("Pass range=(lo, hi) for densities without bounds().")
    lo, hi = float(range[0]), float(range[1])

    xg = np.linspace(lo, hi, int(npoints))
    curve = np.asarray(density.project(name, xg), dtype=float)
    if curve.shape != xg.shape:
        curve = np.broadcast_to(curve, xg.shape)

    if values is not None:
        counts, edges = np.histogram(values, bins=int(bins), range=(lo, hi))
        centers = 0.5 * (edges[:-1] + edges[1:])
        width = edges[1] - edges[0]
        data_kwargs.setdefault("fmt", "o")
        data_kwargs.setdefault("ms", 3)
        data_kwargs.setdefault("capsize", 0)
        data_kwargs.setdefault("label", "data")
        ax.errorbar(centers, counts, yerr=np.sqrt(counts), **data_kwargs)
        curve = curve * values.size * width
        ax.set_ylabel("events / bin")
    else:
        ax.set_ylabel("density")

    line_kwargs.setdefault("label", "projection")
    ax.plot(xg, curve, **line_kwargs)
    ax.set_xlabel(name)
    return fig, ax


def plot_dalitz(
    events: Mapping[str, Any],
    x_name: str,
    y_name: str,
    *,
    ax: Optional[Any] = None,
    **scatter_kwargs: Any,
) -> Tuple[Any, Any]:
    """Scatter plot of events in the (x_name, y_name) plane."""
    import matplotlib.pyplot as plt

    if ax is None:
        fig, ax = plt.subplots()
    else:
        fig = ax.figure

    x = np.asarray(events[x_name], dtype=float)
    y = np.asarray(events[y_name], dtype=float)
    if x.shape != y.shape:
        raise ValueError("plot_dalitz requires x and y to have the same shape.")

    scatter_kwargs.setdefault("s", 2)
    scatter_kwargs.setdefault("alpha", 0.5)
    ax.scatter(x, y, **scatter_kwargs)
    ax.set_xlabel(x_name)
    ax.set_ylabel(y_name)
    return fig, ax
