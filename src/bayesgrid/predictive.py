"""
Posterior predictive simulation and empirical frequency checks.
"""

from __future__ import annotations

from typing import Optional, Sequence

import numpy as np


def _rng(rng: Optional[np.random.Generator]) -> np.random.Generator:
    return rng if rng is not None else np.random.default_rng()


def binomial_predictive(
    p_samples: Sequence[float],
    trials: int,
    rng: Optional[np.random.Generator] = None,
) -> np.ndarray:
    """One binomial outcome per posterior draw of p.

    Spreads both outcome uncertainty and parameter uncertainty into the
    predictions.
    """

    p = np.asarray(p_samples, dtype=float).ravel()
    if trials < 0:
        raise ValueError("trials must be non-negative")
    if np.any((p < 0.0) | (p > 1.0)):
        raise ValueError("p_samples must lie in [0,1]")
    return _rng(rng).binomial(int(trials), p)


def binomial_draws(
    n: int,
    trials: int,
    p: float,
    rng: Optional[np.random.Generator] = None,
) -> np.ndarray:
    """``n`` binomial outcomes at a fixed probability (outcome uncertainty only)."""

    if n < 0:
        raise ValueError("n must be non-negative")
    if trials < 0:
        raise ValueError("trials must be non-negative")
    if not 0.0 <= p <= 1.0:
        raise ValueError("p must be in [0,1]")
    return _rng(rng).binomial(int(trials), float(p), size=int(n))


def normal_predictive(
    mu_samples: Sequence[float],
    sigma_samples: Sequence[float],
    rng: Optional[np.random.Generator] = None,
) -> np.ndarray:
    """One normal outcome per joint posterior draw of (mu, sigma)."""

    mu = np.asarray(mu_samples, dtype=float).ravel()
    sigma = np.asarray(sigma_samples, dtype=float).ravel()
    if mu.shape != sigma.shape:
        raise ValueError("mu_samples and sigma_samples must have the same length")
    if np.any(sigma <= 0.0):
        raise ValueError("sigma_samples must be positive")
    return _rng(rng).normal(loc=mu, scale=sigma)


def empirical_frequencies(values: Sequence[float], support: Sequence[float]) -> np.ndarray:
    """Relative frequency of each support value among ``values``.

    ``support`` must be sorted; every value must equal some support point.
    """

    vals = np.asarray(values, dtype=float).ravel()
    sup = np.asarray(support, dtype=float).ravel()
    if vals.size == 0:
        raise ValueError("values must be non-empty")
    if sup.size == 0:
        raise ValueError("support must be non-empty")
    if np.any(np.diff(sup) < 0.0):
        raise ValueError("support must be sorted")
    pos = np.searchsorted(sup, vals, side="left")
    in_range = pos < sup.size
    if not np.all(in_range) or not np.all(sup[pos] == vals):
        raise ValueError("values contain points outside the support")
    counts = np.bincount(pos, minlength=sup.size)
    return counts / float(vals.size)


def total_variation(p: Sequence[float], q: Sequence[float]) -> float:
    """Total variation distance between two discrete distributions."""

    p_arr = np.asarray(p, dtype=float)
    q_arr = np.asarray(q, dtype=float)
    if p_arr.shape != q_arr.shape:
        raise ValueError("p and q must have the same shape")
    return float(0.5 * np.abs(p_arr - q_arr).sum())
