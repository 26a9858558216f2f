"""Static plots for grid posteriors and posterior samples."""

from __future__ import annotations

import logging
import os
from typing import Optional, Sequence, Tuple

import numpy as np
from scipy.stats import gaussian_kde

from .posterior import GridPosterior


def _pyplot():
    import matplotlib

    matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    return plt


def _ensure_parent(save_path: str) -> None:
    parent = os.path.dirname(save_path)
    if parent:
        os.makedirs(parent, exist_ok=True)


def plot_grid_posterior(
    posterior: GridPosterior,
    save_path: str,
    xlabel: str = "parameter value",
    title: Optional[str] = None,
    logger: Optional[logging.Logger] = None,
) -> str:
    """Points-and-line plot of posterior probability over the grid."""

    plt = _pyplot()
    log = logger or logging.getLogger(__name__)

    fig, ax = plt.subplots(figsize=(6, 4), constrained_layout=True)
    ax.plot(posterior.grid, posterior.posterior, marker="o", markersize=3, color="#1f4f5f", lw=1.2)
    ax.set_xlabel(xlabel)
    ax.set_ylabel("posterior probability")
    if title:
        ax.set_title(title)
    ax.grid(True, alpha=0.18, lw=0.6)

    _ensure_parent(save_path)
    fig.savefig(save_path, dpi=120)
    plt.close(fig)
    log.info("Saved posterior plot: %s", save_path)
    return save_path


def plot_density_with_interval(
    samples: Sequence[float],
    interval: Tuple[float, float],
    save_path: str,
    xlabel: str = "parameter value",
    title: Optional[str] = None,
    logger: Optional[logging.Logger] = None,
) -> str:
    """Kernel density of ``samples`` with ``interval`` shaded underneath the curve."""

    plt = _pyplot()
    log = logger or logging.getLogger(__name__)

    arr = np.asarray(samples, dtype=float).ravel()
    if arr.size < 2 or float(np.ptp(arr)) == 0.0:
        raise ValueError("Density plot needs at least two distinct sample values")
    lo, hi = float(interval[0]), float(interval[1])
    if lo > hi:
        raise ValueError("interval lower bound exceeds upper bound")

    kde = gaussian_kde(arr)
    pad = 0.05 * float(np.ptp(arr))
    x = np.linspace(float(arr.min()) - pad, float(arr.max()) + pad, 512)
    y = kde(x)

    fig, ax = plt.subplots(figsize=(6, 4), constrained_layout=True)
    ax.plot(x, y, color="#1f4f5f", lw=1.6)
    mask = (x >= lo) & (x <= hi)
    ax.fill_between(x[mask], y[mask], color="darkgrey", alpha=0.8, lw=0)
    ax.set_xlabel(xlabel)
    ax.set_ylabel("density")
    if title:
        ax.set_title(title)
    ax.grid(True, alpha=0.18, lw=0.6)

    _ensure_parent(save_path)
    fig.savefig(save_path, dpi=120)
    plt.close(fig)
    log.info("Saved density plot: %s", save_path)
    return save_path
