"""
CLI entrypoint for a grid-approximation analysis.
"""

from __future__ import annotations

import argparse
import datetime as dt
from pathlib import Path
from typing import Optional, Sequence

from .config import AnalysisConfig
from .runner import GridAnalysisRunner


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run a grid-approximation posterior analysis.")
    parser.add_argument(
        "--config",
        default="configs/globe_toss.yaml",
        help="Analysis config YAML.",
    )
    parser.add_argument(
        "--out",
        default=None,
        help="Output directory (default: results/run_<timestamp>).",
    )
    parser.add_argument("--n_samples", type=int, default=None, help="Override sampling.n_samples.")
    parser.add_argument("--seed", type=int, default=None, help="Override sampling.seed.")
    parser.add_argument("--no_plots", action="store_true", help="Skip writing plots.")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = parse_args(argv)
    out_dir = args.out
    if out_dir is None:
        stamp = dt.datetime.now(dt.timezone.utc).strftime("%Y%m%d_%H%M%S")
        out_dir = f"results/run_{stamp}"
    Path(out_dir).mkdir(parents=True, exist_ok=True)

    cfg = AnalysisConfig(
        cfg_path=args.config,
        out_dir=out_dir,
        n_samples=args.n_samples,
        seed=args.seed,
        make_plots=not args.no_plots,
    )
    GridAnalysisRunner(cfg).run()


if __name__ == "__main__":
    main()
