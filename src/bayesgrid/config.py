"""
YAML analysis configuration.

An analysis file looks like::

    name: globe_toss
    grid: {lower: 0.0, upper: 1.0, n_points: 101}
    prior: {kind: uniform}
    likelihood: {kind: binomial, successes: 6, trials: 9}
    sampling: {n_samples: 10000, seed: 100}
    intervals: [0.5, 0.89]
    predictive: {trials: 9}
    logging: {level: INFO}
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import yaml

PRIOR_KINDS = {"uniform", "step", "normal", "cauchy", "beta"}
LIKELIHOOD_KINDS = {"binomial", "normal"}


@dataclass
class AnalysisConfig:
    """Run-level options, usually from the command line."""

    cfg_path: str
    out_dir: str
    n_samples: Optional[int] = None
    seed: Optional[int] = None
    make_plots: bool = True


@dataclass
class GridSpec:
    lower: float = 0.0
    upper: float = 1.0
    n_points: int = 101


@dataclass
class AnalysisSpec:
    name: str
    grid: GridSpec
    prior: Dict[str, Any]
    likelihood: Dict[str, Any]
    n_samples: int = 10000
    seed: int = 0
    intervals: List[float] = field(default_factory=lambda: [0.89])
    predictive_trials: Optional[int] = None
    log_level: str = "INFO"
    raw: Dict[str, Any] = field(default_factory=dict)


def parse_analysis_spec(raw: Dict[str, Any]) -> AnalysisSpec:
    if not isinstance(raw, dict):
        raise ValueError("Analysis config must be a mapping")
    if "likelihood" not in raw:
        raise ValueError("Analysis config requires a 'likelihood' section")

    grid_raw = raw.get("grid", {}) or {}
    grid = GridSpec(
        lower=float(grid_raw.get("lower", 0.0)),
        upper=float(grid_raw.get("upper", 1.0)),
        n_points=int(grid_raw.get("n_points", 101)),
    )

    prior = dict(raw.get("prior") or {"kind": "uniform"})
    if prior.get("kind", "uniform") not in PRIOR_KINDS:
        raise ValueError(f"Unknown prior kind: {prior.get('kind')!r}")
    likelihood = dict(raw["likelihood"])
    if likelihood.get("kind") not in LIKELIHOOD_KINDS:
        raise ValueError(f"Unknown likelihood kind: {likelihood.get('kind')!r}")

    sampling = raw.get("sampling", {}) or {}
    intervals = [float(p) for p in (raw.get("intervals") or [0.89])]
    for p in intervals:
        if not 0.0 < p < 1.0:
            raise ValueError(f"Interval probability out of (0,1): {p}")

    predictive = raw.get("predictive") or {}
    trials = predictive.get("trials")

    return AnalysisSpec(
        name=str(raw.get("name", "analysis")),
        grid=grid,
        prior=prior,
        likelihood=likelihood,
        n_samples=int(sampling.get("n_samples", 10000)),
        seed=int(sampling.get("seed", 0)),
        intervals=intervals,
        predictive_trials=int(trials) if trials is not None else None,
        log_level=str((raw.get("logging") or {}).get("level", "INFO")).upper(),
        raw=raw,
    )


def load_analysis_spec(path: str) -> AnalysisSpec:
    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)
    return parse_analysis_spec(raw)
