"""
Grid approximation of a posterior distribution.

A posterior over a single bounded parameter is approximated by evaluating
prior x likelihood at a finite grid of candidate values and normalizing the
product. The result is an immutable GridPosterior; sampling is a separate
function taking that value and an explicit random generator.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence, Union

import numpy as np
import pandas as pd

from .checks import DegeneratePosteriorError, require

NORMALIZATION_TOL = 1e-9

GridValues = Union[Sequence[float], np.ndarray]
GridFunction = Callable[..., Any]


@dataclass(frozen=True)
class GridPosterior:
    """Normalized posterior over a parameter grid.

    All arrays are read-only and share the grid's length.
    """

    grid: np.ndarray
    prior: np.ndarray
    likelihood: np.ndarray
    unnormalized: np.ndarray
    posterior: np.ndarray

    @property
    def normalizing_constant(self) -> float:
        return float(self.unnormalized.sum())

    def __len__(self) -> int:
        return int(self.grid.size)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            {
                "grid": self.grid,
                "prior": self.prior,
                "likelihood": self.likelihood,
                "unnormalized": self.unnormalized,
                "posterior": self.posterior,
            }
        )


def _frozen(values: np.ndarray) -> np.ndarray:
    out = np.array(values, dtype=np.float64, copy=True)
    out.setflags(write=False)
    return out


def make_grid(lower: float, upper: float, n_points: int) -> np.ndarray:
    """Evenly spaced grid of ``n_points`` values spanning [lower, upper]."""

    require(
        np.isfinite(lower) and np.isfinite(upper),
        check_id="grid-bounds",
        message="Grid bounds must be finite",
        data={"lower": lower, "upper": upper},
    )
    require(
        lower < upper,
        check_id="grid-bounds",
        message="Grid lower bound must be below upper bound",
        data={"lower": lower, "upper": upper},
    )
    require(
        isinstance(n_points, (int, np.integer)) and not isinstance(n_points, bool) and n_points >= 1,
        check_id="grid-size",
        message="n_points must be a positive integer",
        data={"n_points": n_points},
    )
    return np.linspace(float(lower), float(upper), int(n_points))


def validate_grid(grid: GridValues) -> np.ndarray:
    """Return the grid as a float array after checking shape, finiteness and order."""

    arr = np.asarray(grid, dtype=np.float64)
    require(arr.ndim == 1, check_id="grid-shape", message="Grid must be one-dimensional", data={"ndim": int(arr.ndim)})
    require(arr.size > 0, check_id="grid-size", message="Grid must be non-empty")
    require(bool(np.all(np.isfinite(arr))), check_id="grid-finite", message="Grid values must be finite")
    # Repeated values are allowed; a decreasing step is not.
    require(
        bool(np.all(np.diff(arr) >= 0.0)),
        check_id="grid-order",
        message="Grid must be ordered (non-decreasing)",
        data={"first_decrease": int(np.argmax(np.diff(arr) < 0.0)) if arr.size > 1 else None},
    )
    return arr


def _evaluate(source: Union[GridValues, GridFunction], grid: np.ndarray, data: Any, name: str) -> np.ndarray:
    if callable(source):
        values = source(grid) if data is None else source(grid, data)
    else:
        values = source
    arr = np.asarray(values, dtype=np.float64)
    if arr.ndim == 0:
        arr = np.full(grid.shape, float(arr))
    require(
        arr.shape == grid.shape,
        check_id=f"{name}-length",
        message=f"{name} must have one value per grid point",
        data={"expected": int(grid.size), "got": list(arr.shape)},
    )
    require(
        bool(np.all(np.isfinite(arr))),
        check_id=f"{name}-finite",
        message=f"{name} values must be finite",
    )
    require(
        bool(np.all(arr >= 0.0)),
        check_id=f"{name}-nonneg",
        message=f"{name} values must be non-negative",
        data={"min": float(arr.min())},
    )
    return arr


def grid_posterior(
    grid: GridValues,
    prior: Union[GridValues, GridFunction],
    likelihood: Union[GridValues, GridFunction],
    data: Any = None,
    logger: Optional[logging.Logger] = None,
) -> GridPosterior:
    """Combine prior and likelihood on a grid and normalize.

    Parameters
    ----------
    grid : sequence of float
        Ordered candidate parameter values.
    prior : sequence or callable
        Prior weight per grid point, or ``prior(grid)`` returning them. Weights
        need not sum to one.
    likelihood : sequence or callable
        Likelihood per grid point, or a callable evaluated as
        ``likelihood(grid, data)`` (``likelihood(grid)`` when ``data`` is None).
    data : any, optional
        Observed data passed through to a callable likelihood.

    Returns
    -------
    GridPosterior
        Prior, likelihood, unnormalized and normalized posterior on the grid.

    Raises
    ------
    GridValidationError
        If the grid is malformed or prior/likelihood are the wrong length,
        negative or non-finite.
    DegeneratePosteriorError
        If prior x likelihood is zero at every grid point or
        overflows at any of them.
    """

    log = logger or logging.getLogger(__name__)
    arr_grid = validate_grid(grid)
    prior_vals = _evaluate(prior, arr_grid, None, "prior")
    like_vals = _evaluate(likelihood, arr_grid, data, "likelihood")

    with np.errstate(over="ignore"):
        unnormalized = prior_vals * like_vals
    require(
        bool(np.all(np.isfinite(unnormalized))),
        check_id="posterior-overflow",
        message="prior x likelihood overflows at some grid point; rescale the prior or likelihood",
        error=DegeneratePosteriorError,
        data={"n_points": int(arr_grid.size)},
    )
    peak = float(unnormalized.max())
    require(
        peak > 0.0,
        check_id="posterior-degenerate",
        message="prior x likelihood is zero at every grid point; the posterior cannot be normalized",
        error=DegeneratePosteriorError,
        data={"n_points": int(arr_grid.size)},
    )
    # Sum after dividing by the peak; a plain sum of finite weights can overflow.
    scaled = unnormalized / peak
    posterior = scaled / scaled.sum()
    total = peak * float(scaled.sum())
    require(
        abs(float(posterior.sum()) - 1.0) <= NORMALIZATION_TOL,
        check_id="posterior-normalized",
        message="Posterior sums to one",
        error=DegeneratePosteriorError,
        data={"sum": float(posterior.sum())},
    )

    log.debug(
        "Grid posterior: n_points=%d total=%.6g mode=%.4g",
        arr_grid.size,
        total,
        float(arr_grid[int(np.argmax(posterior))]),
    )
    return GridPosterior(
        grid=_frozen(arr_grid),
        prior=_frozen(prior_vals),
        likelihood=_frozen(like_vals),
        unnormalized=_frozen(unnormalized),
        posterior=_frozen(posterior),
    )


def sample_posterior(
    posterior: GridPosterior,
    n: int,
    rng: Optional[np.random.Generator] = None,
) -> np.ndarray:
    """Draw ``n`` grid values with replacement, weighted by the posterior."""

    require(
        isinstance(n, (int, np.integer)) and not isinstance(n, bool) and n >= 0,
        check_id="sample-count",
        message="Sample count must be a non-negative integer",
        data={"n": n},
    )
    if rng is None:
        rng = np.random.default_rng()
    return rng.choice(posterior.grid, size=int(n), replace=True, p=posterior.posterior)

