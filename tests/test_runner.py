import json

import numpy as np
import pandas as pd
import pytest
import yaml

from bayesgrid.checks import DegeneratePosteriorError, current_context
from bayesgrid.cli import main
from bayesgrid.config import AnalysisConfig, parse_analysis_spec
from bayesgrid.runner import GridAnalysisRunner


def _write(path, cfg):
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(cfg, f)
    return path


def _globe_cfg(**overrides):
    cfg = {
        "name": "globe",
        "grid": {"lower": 0.0, "upper": 1.0, "n_points": 101},
        "prior": {"kind": "uniform"},
        "likelihood": {"kind": "binomial", "successes": 6, "trials": 9},
        "sampling": {"n_samples": 2000, "seed": 100},
        "intervals": [0.5, 0.89],
        "predictive": {"trials": 9},
        "logging": {"level": "ERROR"},
    }
    cfg.update(overrides)
    return cfg


def test_runner_writes_artifacts(tmp_path):
    cfg_path = _write(tmp_path / "globe.yaml", _globe_cfg())
    out_dir = tmp_path / "out"
    summary = GridAnalysisRunner(AnalysisConfig(cfg_path=str(cfg_path), out_dir=str(out_dir))).run()

    assert summary["mode"] == pytest.approx(0.67)
    assert summary["n_samples"] == 2000
    assert [e["prob"] for e in summary["intervals"]] == [0.5, 0.89]
    assert sum(summary["predictive"]["frequencies"]) == pytest.approx(1.0)

    for name in ["posterior.csv", "samples.csv", "predictive.csv", "summary.json", "manifest.json"]:
        assert (out_dir / name).exists()
    assert (out_dir / "plots" / "posterior.png").exists()
    assert (out_dir / "plots" / "density_hpdi_89.png").exists()

    posterior = pd.read_csv(out_dir / "posterior.csv")
    assert posterior["posterior"].sum() == pytest.approx(1.0)
    with open(out_dir / "manifest.json", "r", encoding="utf-8") as f:
        manifest = json.load(f)
    assert manifest["checks"]["n_failed"] == 0
    assert "summary.json" in manifest["artifacts"]
    assert len(manifest["config_hash"]) == 64


def test_runner_overrides_and_no_plots(tmp_path):
    cfg_path = _write(tmp_path / "globe.yaml", _globe_cfg(predictive=None))
    out_dir = tmp_path / "out"
    cfg = AnalysisConfig(cfg_path=str(cfg_path), out_dir=str(out_dir), n_samples=300, seed=5, make_plots=False)
    summary = GridAnalysisRunner(cfg).run()
    assert summary["n_samples"] == 300
    assert summary["predictive"] is None
    assert not (out_dir / "plots").exists()
    assert len(pd.read_csv(out_dir / "samples.csv")) == 300


def test_runner_normal_likelihood_from_data_file(tmp_path):
    rng = np.random.default_rng(8)
    heights = rng.normal(154.6, 7.7, 300)
    ages = np.where(np.arange(300) % 3 == 0, 10, 30)
    pd.DataFrame({"height": heights, "age": ages}).to_csv(tmp_path / "howell.csv", index=False)
    cfg = _globe_cfg(
        name="howell_mu",
        grid={"lower": 140.0, "upper": 170.0, "n_points": 301},
        likelihood={
            "kind": "normal",
            "sigma": 7.7,
            "data_path": "howell.csv",
            "column": "height",
            "filter": {"column": "age", "min": 18},
        },
        predictive=None,
    )
    cfg_path = _write(tmp_path / "howell.yaml", cfg)
    summary = GridAnalysisRunner(
        AnalysisConfig(cfg_path=str(cfg_path), out_dir=str(tmp_path / "out"), make_plots=False)
    ).run()
    adult_mean = heights[ages >= 18].mean()
    assert abs(summary["mode"] - adult_mean) <= 0.1


def test_runner_reports_degenerate_posterior(tmp_path):
    cfg = _globe_cfg(grid={"lower": 0.0, "upper": 1.0, "n_points": 2}, likelihood={"kind": "binomial", "successes": 1, "trials": 2})
    cfg_path = _write(tmp_path / "bad.yaml", cfg)
    runner = GridAnalysisRunner(AnalysisConfig(cfg_path=str(cfg_path), out_dir=str(tmp_path / "out"), make_plots=False))
    with pytest.raises(DegeneratePosteriorError):
        runner.run()
    assert current_context() is None
    assert not (tmp_path / "out" / "summary.json").exists()


def test_parse_analysis_spec_rejects_bad_config():
    with pytest.raises(ValueError):
        parse_analysis_spec({"grid": {}})
    with pytest.raises(ValueError):
        parse_analysis_spec({"likelihood": {"kind": "poisson"}})
    with pytest.raises(ValueError):
        parse_analysis_spec({"likelihood": {"kind": "binomial"}, "prior": {"kind": "weird"}})
    with pytest.raises(ValueError):
        parse_analysis_spec({"likelihood": {"kind": "binomial"}, "intervals": [1.5]})
    spec = parse_analysis_spec({"likelihood": {"kind": "binomial", "successes": 1, "trials": 2}})
    assert spec.grid.n_points == 101 and spec.intervals == [0.89] and spec.log_level == "INFO"


def test_cli_main(tmp_path):
    cfg_path = _write(tmp_path / "globe.yaml", _globe_cfg())
    out_dir = tmp_path / "cli_out"
    main(["--config", str(cfg_path), "--out", str(out_dir), "--n_samples", "100", "--no_plots"])
    with open(out_dir / "summary.json", "r", encoding="utf-8") as f:
        summary = json.load(f)
    assert summary["n_samples"] == 100
