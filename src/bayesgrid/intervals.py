"""
Posterior summaries: percentile and highest-density intervals, and
precis-style tables.

Sample-based summaries work on any array of draws (from a grid posterior or a
quadratic approximation). Exact moments of a GridPosterior come straight from
its weights.
"""

from __future__ import annotations

import math
from typing import Mapping, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from .posterior import GridPosterior

DEFAULT_PROB = 0.89


def _as_samples(samples: Sequence[float]) -> np.ndarray:
    arr = np.asarray(samples, dtype=float).ravel()
    if arr.size == 0:
        raise ValueError("samples must be non-empty")
    if not np.all(np.isfinite(arr)):
        raise ValueError("samples must be finite")
    return arr


def _check_prob(prob: float) -> None:
    if not 0.0 < prob < 1.0:
        raise ValueError("prob must be in (0,1)")


def interval_labels(prob: float) -> Tuple[str, str]:
    """Column labels for a central interval, e.g. ('5.5%', '94.5%') for 0.89."""

    _check_prob(prob)
    tail = 0.5 * (1.0 - prob)
    return f"{100.0 * tail:g}%", f"{100.0 * (1.0 - tail):g}%"


def percentile_interval(samples: Sequence[float], prob: float = DEFAULT_PROB) -> Tuple[float, float]:
    """Central interval with equal mass ``(1 - prob) / 2`` in each tail."""

    _check_prob(prob)
    arr = _as_samples(samples)
    tail = 0.5 * (1.0 - prob)
    lo, hi = np.quantile(arr, [tail, 1.0 - tail])
    return float(lo), float(hi)


def hpdi(samples: Sequence[float], prob: float = DEFAULT_PROB) -> Tuple[float, float]:
    """Narrowest interval containing ``prob`` of the samples.

    Follows coda's ``HPDinterval``: each candidate interval runs from a sorted
    sample to the one ``round(prob * n)`` positions later (at least one, at
    most ``n - 1``), so it spans ``round(prob * n) + 1`` samples. The
    narrowest wins; ties go to the leftmost.
    """

    _check_prob(prob)
    arr = np.sort(_as_samples(samples))
    n = arr.size
    if n == 1:
        return float(arr[0]), float(arr[0])
    gap = max(1, min(n - 1, int(round(prob * n))))
    widths = arr[gap:] - arr[: n - gap]
    i = int(np.argmin(widths))
    return float(arr[i]), float(arr[i + gap])


def summarize_samples(
    samples_by_name: Union[Mapping[str, Sequence[float]], pd.DataFrame],
    prob: float = DEFAULT_PROB,
) -> pd.DataFrame:
    """Mean, standard deviation and percentile interval per named sample vector."""

    lo_label, hi_label = interval_labels(prob)
    if isinstance(samples_by_name, pd.DataFrame):
        items = [(str(c), samples_by_name[c].to_numpy()) for c in samples_by_name.columns]
    else:
        items = [(str(k), v) for k, v in samples_by_name.items()]
    if not items:
        raise ValueError("samples_by_name must contain at least one entry")

    rows = []
    for name, values in items:
        arr = _as_samples(values)
        lo, hi = percentile_interval(arr, prob)
        sd = float(arr.std(ddof=1)) if arr.size > 1 else float("nan")
        rows.append({"name": name, "mean": float(arr.mean()), "sd": sd, lo_label: lo, hi_label: hi})
    return pd.DataFrame.from_records(rows).set_index("name")


def posterior_mean(posterior: GridPosterior) -> float:
    return float(np.sum(posterior.grid * posterior.posterior))


def posterior_sd(posterior: GridPosterior) -> float:
    mean = posterior_mean(posterior)
    var = float(np.sum(posterior.posterior * (posterior.grid - mean) ** 2))
    return math.sqrt(max(var, 0.0))


def posterior_mode(posterior: GridPosterior) -> float:
    """Grid value with the largest posterior weight (first one on ties)."""

    return float(posterior.grid[int(np.argmax(posterior.posterior))])
