"""
Priors and likelihoods evaluated pointwise on a parameter grid.

Densities come from scipy.stats; the builders here only bind observed data
and hyperparameters so the returned callables can be handed straight to
grid_posterior().
"""

from __future__ import annotations

from typing import Callable, Dict, Optional, Sequence

import numpy as np
from scipy import stats

GridCallable = Callable[[np.ndarray], np.ndarray]


def uniform_prior(grid: np.ndarray) -> np.ndarray:
    """Flat prior: weight one at every grid point."""

    return np.ones_like(np.asarray(grid, dtype=np.float64))


def step_prior(threshold: float = 0.5) -> GridCallable:
    """Zero weight below ``threshold``, one at or above it."""

    threshold = float(threshold)

    def prior(grid: np.ndarray) -> np.ndarray:
        return np.where(np.asarray(grid, dtype=np.float64) < threshold, 0.0, 1.0)

    return prior


def normal_prior(mean: float, sd: float) -> GridCallable:
    if sd <= 0.0:
        raise ValueError("sd must be positive")
    return lambda grid: stats.norm.pdf(grid, loc=mean, scale=sd)


def cauchy_prior(location: float, scale: float) -> GridCallable:
    if scale <= 0.0:
        raise ValueError("scale must be positive")
    return lambda grid: stats.cauchy.pdf(grid, loc=location, scale=scale)


def beta_prior(a: float, b: float) -> GridCallable:
    """Beta(a, b) density.

    With ``a < 1`` or ``b < 1`` the density is unbounded at 0 or 1; those
    endpoint values are replaced by the density one machine epsilon inside
    the unit interval.
    """

    if a <= 0.0 or b <= 0.0:
        raise ValueError("a and b must be positive")
    eps = np.finfo(np.float64).eps

    def prior(grid: np.ndarray) -> np.ndarray:
        x = np.asarray(grid, dtype=np.float64)
        dens = stats.beta.pdf(x, a, b)
        unbounded = np.isinf(dens)
        if np.any(unbounded):
            dens = np.where(unbounded, stats.beta.pdf(np.clip(x, eps, 1.0 - eps), a, b), dens)
        return dens

    return prior


def binomial_likelihood(successes: int, trials: int) -> GridCallable:
    """Binomial probability of ``successes`` in ``trials`` at each grid probability."""

    successes = int(successes)
    trials = int(trials)
    if trials < 0:
        raise ValueError("trials must be non-negative")
    if not 0 <= successes <= trials:
        raise ValueError("successes must be in [0, trials]")

    def likelihood(grid: np.ndarray) -> np.ndarray:
        return stats.binom.pmf(successes, trials, grid)

    return likelihood


def normal_likelihood(observations: Sequence[float], sigma: float) -> GridCallable:
    """Joint normal density of ``observations`` with the grid value as the mean.

    The product is computed in log space and rescaled so its largest value is
    one. Only relative values matter once the posterior is normalized, and the
    rescaling keeps long data vectors from underflowing to zero everywhere.
    """

    obs = np.asarray(observations, dtype=np.float64).ravel()
    if obs.size == 0:
        raise ValueError("observations must be non-empty")
    if not np.all(np.isfinite(obs)):
        raise ValueError("observations must be finite")
    if sigma <= 0.0:
        raise ValueError("sigma must be positive")

    def likelihood(grid: np.ndarray) -> np.ndarray:
        mu = np.asarray(grid, dtype=np.float64)
        log_lik = stats.norm.logpdf(obs[None, :], loc=mu[:, None], scale=sigma).sum(axis=1)
        return np.exp(log_lik - np.max(log_lik))

    return likelihood


def binomial_mass(trials: int, p: float) -> np.ndarray:
    """Probability mass of every outcome 0..trials."""

    if trials < 0:
        raise ValueError("trials must be non-negative")
    if not 0.0 <= p <= 1.0:
        raise ValueError("p must be in [0,1]")
    return stats.binom.pmf(np.arange(int(trials) + 1), int(trials), p)


def build_prior(spec: Optional[Dict]) -> GridCallable:
    """Prior callable from a config mapping such as ``{"kind": "normal", "mean": 0, "sd": 1}``."""

    spec = dict(spec or {"kind": "uniform"})
    kind = spec.get("kind", "uniform")
    if kind == "uniform":
        return uniform_prior
    if kind == "step":
        return step_prior(float(spec.get("threshold", 0.5)))
    if kind == "normal":
        return normal_prior(float(spec["mean"]), float(spec["sd"]))
    if kind == "cauchy":
        return cauchy_prior(float(spec["location"]), float(spec["scale"]))
    if kind == "beta":
        return beta_prior(float(spec["a"]), float(spec["b"]))
    raise ValueError(f"Unknown prior kind: {kind!r}")


def build_likelihood(spec: Dict, observations: Optional[Sequence[float]] = None) -> GridCallable:
    """Likelihood callable from a config mapping.

    ``observations`` overrides any inline ``observations`` list, which lets the
    caller supply a column loaded from a data file.
    """

    kind = spec.get("kind")
    if kind == "binomial":
        return binomial_likelihood(int(spec["successes"]), int(spec["trials"]))
    if kind == "normal":
        obs = observations if observations is not None else spec.get("observations")
        if obs is None:
            raise ValueError("normal likelihood requires observations or a data_path")
        return normal_likelihood(obs, float(spec["sigma"]))
    raise ValueError(f"Unknown likelihood kind: {kind!r}")
