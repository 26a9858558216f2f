"""
Quadratic (Laplace) approximation of a posterior.

The mode is found with scipy.optimize.minimize on the negative log posterior;
the posterior is then approximated by a multivariate normal centred on the mode
with covariance equal to the inverse of the negative Hessian there. Models are
plain Python callables returning a log posterior, so there is no model
language to parse.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from scipy import optimize, special, stats

from .checks import DegeneratePosteriorError, GridValidationError, require
from .intervals import DEFAULT_PROB, interval_labels

LogPosterior = Callable[[np.ndarray], float]


@dataclass(frozen=True)
class QuapFit:
    names: Tuple[str, ...]
    mean: np.ndarray
    covariance: np.ndarray
    log_posterior_at_mode: float
    converged: bool

    def coef(self) -> pd.Series:
        """MAP estimate per parameter."""
        return pd.Series(self.mean, index=list(self.names), name="map")

    def sd(self) -> np.ndarray:
        return np.sqrt(np.diag(self.covariance))

    def vcov(self) -> pd.DataFrame:
        return pd.DataFrame(self.covariance, index=list(self.names), columns=list(self.names))


def numerical_hessian(f: LogPosterior, x: np.ndarray, rel_step: float = 1e-4) -> np.ndarray:
    """Central-difference Hessian of ``f`` at ``x``."""

    x = np.asarray(x, dtype=float)
    k = x.size
    h = rel_step * np.maximum(1.0, np.abs(x))
    hess = np.empty((k, k), dtype=float)
    f0 = f(x)
    for i in range(k):
        ei = np.zeros(k)
        ei[i] = h[i]
        hess[i, i] = (f(x + ei) - 2.0 * f0 + f(x - ei)) / (h[i] * h[i])
        for j in range(i + 1, k):
            ej = np.zeros(k)
            ej[j] = h[j]
            val = (f(x + ei + ej) - f(x + ei - ej) - f(x - ei + ej) + f(x - ei - ej)) / (4.0 * h[i] * h[j])
            hess[i, j] = val
            hess[j, i] = val
    return hess


def fit_quap(
    log_posterior: LogPosterior,
    start: Union[Mapping[str, float], Sequence[float]],
    names: Optional[Sequence[str]] = None,
    method: str = "Nelder-Mead",
    options: Optional[Dict] = None,
    logger: Optional[logging.Logger] = None,
) -> QuapFit:
    """Fit a quadratic approximation to ``log_posterior``.

    Parameters
    ----------
    log_posterior : callable
        Maps a parameter vector to the (unnormalized) log posterior. Returning
        ``-inf`` outside the support is allowed.
    start : mapping or sequence
        Starting values. A mapping also supplies the parameter names.
    names : sequence of str, optional
        Parameter names when ``start`` is a plain sequence.
    method : str
        Any scipy.optimize.minimize method; the default tolerates ``-inf``
        boundaries from uniform priors.

    Raises
    ------
    GridValidationError
        If the log posterior is not finite at ``start``.
    DegeneratePosteriorError
        If the negative Hessian at the mode is not positive definite.
    """

    log = logger or logging.getLogger(__name__)
    if isinstance(start, Mapping):
        param_names = [str(k) for k in start.keys()]
        x0 = np.array([float(v) for v in start.values()], dtype=float)
    else:
        x0 = np.asarray(start, dtype=float).ravel()
        param_names = list(names) if names is not None else [f"theta{i}" for i in range(x0.size)]
    require(
        len(param_names) == x0.size,
        check_id="quap-names",
        message="One name per starting value is required",
        data={"names": param_names, "n_start": int(x0.size)},
    )

    lp0 = float(log_posterior(x0))
    require(
        np.isfinite(lp0),
        check_id="quap-start",
        message="Log posterior must be finite at the starting values",
        error=GridValidationError,
        data={"start": x0.tolist(), "log_posterior": lp0},
    )

    def objective(theta: np.ndarray) -> float:
        val = float(log_posterior(theta))
        return -val if np.isfinite(val) else np.inf

    opts = {"xatol": 1e-8, "fatol": 1e-10, "maxiter": 20000, "maxfev": 40000} if method == "Nelder-Mead" else {}
    opts.update(options or {})
    result = optimize.minimize(objective, x0, method=method, options=opts)
    if not result.success:
        log.warning("quap optimizer did not report convergence: %s", result.message)

    mode = np.asarray(result.x, dtype=float)
    neg_hess = -numerical_hessian(log_posterior, mode)
    neg_hess = 0.5 * (neg_hess + neg_hess.T)
    eig = np.linalg.eigvalsh(neg_hess) if np.all(np.isfinite(neg_hess)) else np.array([np.nan])
    require(
        bool(np.all(np.isfinite(eig)) and np.all(eig > 0.0)),
        check_id="quap-hessian",
        message="Negative Hessian at the mode is not positive definite",
        error=DegeneratePosteriorError,
        data={"eigenvalues": eig.tolist(), "mode": mode.tolist()},
    )
    cov = np.linalg.inv(neg_hess)

    log.info("quap fit: %s", ", ".join(f"{n}={v:.4g}" for n, v in zip(param_names, mode)))
    return QuapFit(
        names=tuple(param_names),
        mean=mode,
        covariance=cov,
        log_posterior_at_mode=float(log_posterior(mode)),
        converged=bool(result.success),
    )


def extract_samples(fit: QuapFit, n: int, rng: Optional[np.random.Generator] = None) -> pd.DataFrame:
    """Multivariate-normal draws from the approximation, one column per parameter."""

    if n < 0:
        raise ValueError("n must be non-negative")
    rng = rng if rng is not None else np.random.default_rng()
    draws = rng.multivariate_normal(fit.mean, fit.covariance, size=int(n))
    return pd.DataFrame(draws, columns=list(fit.names))


def precis(fit: QuapFit, prob: float = DEFAULT_PROB) -> pd.DataFrame:
    """Mean, sd and Gaussian interval bounds per parameter."""

    lo_label, hi_label = interval_labels(prob)
    z = stats.norm.ppf(0.5 * (1.0 + prob))
    sd = fit.sd()
    return pd.DataFrame(
        {
            "mean": fit.mean,
            "sd": sd,
            lo_label: fit.mean - z * sd,
            hi_label: fit.mean + z * sd,
        },
        index=pd.Index(list(fit.names), name="name"),
    )


def gaussian_model(
    data: pd.DataFrame,
    outcome: str,
    predictors: Sequence[str] = (),
    intercept_prior: Tuple[float, float] = (0.0, 100.0),
    slope_prior: Tuple[float, float] = (0.0, 10.0),
    sigma_upper: float = 50.0,
) -> Tuple[LogPosterior, List[str]]:
    """Log posterior of ``outcome ~ Normal(a + sum(b_k * x_k), sigma)``.

    Priors: ``a ~ Normal(*intercept_prior)``, each ``b_k ~ Normal(*slope_prior)``,
    ``sigma ~ Uniform(0, sigma_upper)``. Parameter order is
    ``a, b_<predictor>..., sigma``.
    """

    missing = [c for c in [outcome, *predictors] if c not in data.columns]
    if missing:
        raise KeyError(f"Columns missing from data: {missing}")
    if sigma_upper <= 0.0:
        raise ValueError("sigma_upper must be positive")

    y = data[outcome].to_numpy(dtype=float)
    x = data[list(predictors)].to_numpy(dtype=float) if predictors else np.zeros((y.size, 0))
    names = ["a", *[f"b_{p}" for p in predictors], "sigma"]

    def log_posterior(theta: np.ndarray) -> float:
        theta = np.asarray(theta, dtype=float)
        a, b, sigma = theta[0], theta[1:-1], theta[-1]
        if not 0.0 < sigma < sigma_upper:
            return -np.inf
        mu = a + x @ b
        lp = stats.norm.logpdf(y, loc=mu, scale=sigma).sum()
        lp += stats.norm.logpdf(a, loc=intercept_prior[0], scale=intercept_prior[1])
        lp += stats.norm.logpdf(b, loc=slope_prior[0], scale=slope_prior[1]).sum()
        lp += stats.uniform.logpdf(sigma, loc=0.0, scale=sigma_upper)
        return float(lp)

    return log_posterior, names


def binomial_model(
    data: pd.DataFrame,
    successes: str,
    trials: Union[str, int] = 1,
    predictors: Sequence[str] = (),
    intercept_prior: Tuple[float, float] = (0.0, 10.0),
    slope_prior: Tuple[float, float] = (0.0, 10.0),
) -> Tuple[LogPosterior, List[str]]:
    """Log posterior of ``successes ~ Binomial(trials, p)`` with
    ``logit(p) = a + sum(b_k * x_k)``.

    ``trials`` is either a column name (aggregated counts, as produced by
    ``aggregate_binomial``) or a constant, 1 for single 0/1 trials. Priors are
    ``a ~ Normal(*intercept_prior)`` and each ``b_k ~ Normal(*slope_prior)``;
    parameter order is ``a, b_<predictor>...``.
    """

    columns = [successes, *predictors] + ([trials] if isinstance(trials, str) else [])
    missing = [c for c in columns if c not in data.columns]
    if missing:
        raise KeyError(f"Columns missing from data: {missing}")

    k = data[successes].to_numpy(dtype=float)
    n = data[trials].to_numpy(dtype=float) if isinstance(trials, str) else np.full(k.size, float(trials))
    if np.any(n < 0) or np.any(k < 0) or np.any(k > n):
        raise ValueError("successes must lie in [0, trials] on every row")
    x = data[list(predictors)].to_numpy(dtype=float) if predictors else np.zeros((k.size, 0))
    names = ["a", *[f"b_{p}" for p in predictors]]

    def log_posterior(theta: np.ndarray) -> float:
        theta = np.asarray(theta, dtype=float)
        a, b = theta[0], theta[1:]
        p = special.expit(a + x @ b)
        lp = stats.binom.logpmf(k, n, p).sum()
        lp += stats.norm.logpdf(a, loc=intercept_prior[0], scale=intercept_prior[1])
        lp += stats.norm.logpdf(b, loc=slope_prior[0], scale=slope_prior[1]).sum()
        return float(lp)

    return log_posterior, names


def link(
    samples: pd.DataFrame,
    data: pd.DataFrame,
    predictors: Sequence[str] = (),
    family: str = "gaussian",
) -> np.ndarray:
    """Posterior draws of the linear predictor for each row of ``data``.

    With ``family="binomial"`` the draws are mapped through the inverse logit
    onto the probability scale. Returns an array of shape (n_draws, n_rows).
    """

    if family not in ("gaussian", "binomial"):
        raise ValueError(f"Unknown family: {family!r}")
    if "a" not in samples.columns:
        raise KeyError("samples must contain an intercept column 'a'")
    mu = np.repeat(samples["a"].to_numpy(dtype=float)[:, None], len(data), axis=1)
    for p in predictors:
        col = f"b_{p}"
        if col not in samples.columns:
            raise KeyError(f"samples missing slope column {col!r}")
        mu = mu + samples[col].to_numpy(dtype=float)[:, None] * data[p].to_numpy(dtype=float)[None, :]
    return special.expit(mu) if family == "binomial" else mu
