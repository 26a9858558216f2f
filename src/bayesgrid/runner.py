"""
End-to-end driver for a single grid-approximation analysis.

Pipeline:
1) Load the YAML analysis config and set up logging.
2) Build grid, prior and likelihood (loading a data column if configured).
3) Normalize the posterior on the grid.
4) Sample from it, summarize with percentile and highest-density intervals.
5) Optionally simulate binomial posterior predictions.
6) Write posterior.csv, samples.csv, summary.json, manifest.json and plots.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd

from .checks import CheckContext, reset_check_context, set_check_context, stable_config_hash
from .config import AnalysisConfig, AnalysisSpec, load_analysis_spec
from .data import filter_rows, load_table
from .intervals import hpdi, percentile_interval, posterior_mean, posterior_mode, posterior_sd
from .likelihood import build_likelihood, build_prior
from .plotting import plot_density_with_interval, plot_grid_posterior
from .posterior import GridPosterior, grid_posterior, make_grid, sample_posterior
from .predictive import binomial_predictive, empirical_frequencies


class GridAnalysisRunner:
    def __init__(self, cfg: AnalysisConfig):
        self.cfg = cfg
        self.spec: AnalysisSpec = load_analysis_spec(cfg.cfg_path)
        if cfg.n_samples is not None:
            self.spec.n_samples = int(cfg.n_samples)
        if cfg.seed is not None:
            self.spec.seed = int(cfg.seed)

        self.log = logging.getLogger("bayesgrid")
        self.log.setLevel(getattr(logging, self.spec.log_level, logging.INFO))
        ch = logging.StreamHandler()
        ch.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s"))
        if not self.log.handlers:
            self.log.addHandler(ch)

        self.out_dir = Path(cfg.out_dir)
        self.out_dir.mkdir(parents=True, exist_ok=True)
        if cfg.make_plots:
            Path(self.out_dir, "plots").mkdir(parents=True, exist_ok=True)

    def _observations(self) -> Optional[np.ndarray]:
        """Column of observations from ``likelihood.data_path`` if one is configured."""

        like = self.spec.likelihood
        data_path = like.get("data_path")
        if data_path is None:
            return None
        path = Path(data_path)
        if not path.is_absolute():
            path = Path(self.cfg.cfg_path).resolve().parent / path
        column = like.get("column")
        if column is None:
            raise ValueError("likelihood.column is required with likelihood.data_path")

        filt = like.get("filter") or {}
        required = [column] + ([filt["column"]] if "column" in filt else [])
        df = load_table(str(path), required_columns=required, logger=self.log)
        if "column" in filt:
            df = filter_rows(df, filt["column"], min_value=filt.get("min"), max_value=filt.get("max"))
            self.log.info("Filtered on %s: %d rows remain", filt["column"], len(df))
        return df[column].to_numpy(dtype=float)

    def _intervals(self, samples: np.ndarray) -> List[Dict[str, Any]]:
        out = []
        for prob in self.spec.intervals:
            pi = percentile_interval(samples, prob)
            hd = hpdi(samples, prob)
            self.log.info("%.0f%% PI=[%.4f, %.4f] HPDI=[%.4f, %.4f]", 100 * prob, pi[0], pi[1], hd[0], hd[1])
            out.append({"prob": prob, "pi": list(pi), "hpdi": list(hd)})
        return out

    def _predictive(self, samples: np.ndarray, rng: np.random.Generator) -> Optional[Dict[str, Any]]:
        trials = self.spec.predictive_trials
        if trials is None:
            return None
        preds = binomial_predictive(samples, trials, rng)
        freqs = empirical_frequencies(preds, np.arange(trials + 1))
        pd.DataFrame({"outcome": preds}).to_csv(self.out_dir / "predictive.csv", index=False)
        return {"trials": trials, "frequencies": freqs.tolist(), "mean": float(np.mean(preds))}

    def _plots(self, posterior: GridPosterior, samples: np.ndarray, intervals: List[Dict[str, Any]]) -> List[str]:
        plot_dir = self.out_dir / "plots"
        paths = [plot_grid_posterior(posterior, str(plot_dir / "posterior.png"), title=self.spec.name, logger=self.log)]
        if samples.size < 2 or float(np.ptp(samples)) == 0.0:
            self.log.warning("Skipping density plots: samples have no spread")
            return paths
        for entry in intervals:
            tag = f"{int(round(100 * entry['prob']))}"
            for kind in ("pi", "hpdi"):
                paths.append(
                    plot_density_with_interval(
                        samples,
                        tuple(entry[kind]),
                        str(plot_dir / f"density_{kind}_{tag}.png"),
                        title=f"{tag}% {kind.upper()} shaded",
                        logger=self.log,
                    )
                )
        return paths

    def run(self) -> Dict[str, Any]:
        spec = self.spec
        ctx = CheckContext(
            analysis_name=spec.name,
            seed=spec.seed,
            config_hash=stable_config_hash(spec.raw),
        )
        token = set_check_context(ctx)
        try:
            self.log.info(
                "Analysis %s: grid=[%g, %g] x %d prior=%s likelihood=%s",
                spec.name,
                spec.grid.lower,
                spec.grid.upper,
                spec.grid.n_points,
                spec.prior.get("kind", "uniform"),
                spec.likelihood.get("kind"),
            )
            grid = make_grid(spec.grid.lower, spec.grid.upper, spec.grid.n_points)
            prior = build_prior(spec.prior)
            likelihood = build_likelihood(spec.likelihood, self._observations())
            posterior = grid_posterior(grid, prior, likelihood, logger=self.log)

            rng = np.random.default_rng(spec.seed)
            samples = sample_posterior(posterior, spec.n_samples, rng)
            posterior.to_frame().to_csv(self.out_dir / "posterior.csv", index=False)
            pd.DataFrame({"sample": samples}).to_csv(self.out_dir / "samples.csv", index=False)

            summary: Dict[str, Any] = {
                "name": spec.name,
                "mode": posterior_mode(posterior),
                "mean": posterior_mean(posterior),
                "sd": posterior_sd(posterior),
                "normalizing_constant": posterior.normalizing_constant,
                "n_samples": int(samples.size),
                "intervals": self._intervals(samples) if samples.size else [],
                "predictive": self._predictive(samples, rng) if samples.size else None,
            }
            plots = self._plots(posterior, samples, summary["intervals"]) if self.cfg.make_plots else []
        finally:
            reset_check_context(token)

        with open(self.out_dir / "summary.json", "w", encoding="utf-8") as f:
            json.dump(summary, f, indent=2)
        manifest = {
            "config_path": str(self.cfg.cfg_path),
            "config": spec.raw,
            "config_hash": ctx.config_hash,
            "seed": spec.seed,
            "n_samples": spec.n_samples,
            "checks": ctx.summary(),
            "artifacts": sorted(
                {p.name for p in self.out_dir.iterdir() if p.is_file()}
                | {"manifest.json"}
                | {Path(p).relative_to(self.out_dir).as_posix() for p in plots}
            ),
        }
        with open(self.out_dir / "manifest.json", "w", encoding="utf-8") as f:
            json.dump(manifest, f, indent=2, default=str)

        self.log.info("Analysis %s complete: mode=%.4f mean=%.4f -> %s", spec.name, summary["mode"], summary["mean"], self.out_dir)
        return summary
