import numpy as np
import pandas as pd
import pytest

from bayesgrid.intervals import (
    hpdi,
    interval_labels,
    percentile_interval,
    posterior_mean,
    posterior_mode,
    posterior_sd,
    summarize_samples,
)
from bayesgrid.likelihood import binomial_likelihood, uniform_prior
from bayesgrid.posterior import grid_posterior, make_grid, sample_posterior


def test_interval_labels():
    assert interval_labels(0.89) == ("5.5%", "94.5%")
    assert interval_labels(0.5) == ("25%", "75%")
    with pytest.raises(ValueError):
        interval_labels(1.0)


def test_percentile_interval_on_uniform_values():
    samples = np.linspace(0.0, 1.0, 1001)
    lo, hi = percentile_interval(samples, 0.5)
    assert lo == pytest.approx(0.25)
    assert hi == pytest.approx(0.75)


def test_hpdi_picks_narrowest_window():
    assert hpdi([0.0, 1.0, 2.0, 3.0, 100.0], prob=0.6) == (0.0, 3.0)
    assert hpdi([3.0], prob=0.5) == (3.0, 3.0)


def test_hpdi_window_matches_coda_hpdinterval():
    # HPDinterval(as.mcmc(0:9), 0.5) gives 0 and 5 in R.
    assert hpdi(np.arange(10.0), 0.5) == (0.0, 5.0)
    assert hpdi([0.0, 1.0, 2.0], 0.99) == (0.0, 2.0)
    assert hpdi([0.0, 1.0, 2.0], 0.01) == (0.0, 1.0)


def test_hpdi_hugs_the_boundary_for_skewed_posterior():
    grid = make_grid(0.0, 1.0, 101)
    post = grid_posterior(grid, uniform_prior, binomial_likelihood(5, 5))
    samples = sample_posterior(post, 10000, np.random.default_rng(100))
    pi = percentile_interval(samples, 0.5)
    hd = hpdi(samples, 0.5)
    # Ties between equally narrow windows on the discrete grid go to the leftmost one.
    assert hd[1] >= 0.98
    assert (hd[1] - hd[0]) < (pi[1] - pi[0])


def test_invalid_interval_inputs():
    with pytest.raises(ValueError):
        percentile_interval([], 0.5)
    with pytest.raises(ValueError):
        hpdi([1.0, np.nan], 0.5)
    with pytest.raises(ValueError):
        hpdi([1.0, 2.0], 0.0)


def test_summarize_samples_table():
    rng = np.random.default_rng(0)
    frame = pd.DataFrame({"mu": rng.normal(10.0, 1.0, 5000), "sigma": rng.uniform(1.0, 2.0, 5000)})
    table = summarize_samples(frame, prob=0.89)
    assert list(table.columns) == ["mean", "sd", "5.5%", "94.5%"]
    assert list(table.index) == ["mu", "sigma"]
    assert table.loc["mu", "mean"] == pytest.approx(10.0, abs=0.1)
    assert table.loc["mu", "5.5%"] < table.loc["mu", "mean"] < table.loc["mu", "94.5%"]


def test_exact_moments_of_grid_posterior():
    grid = make_grid(0.0, 1.0, 101)
    post = grid_posterior(grid, uniform_prior, binomial_likelihood(6, 9))
    # Continuous answer is Beta(7, 4): mean 7/11, sd ~0.139.
    assert posterior_mean(post) == pytest.approx(7.0 / 11.0, abs=1e-3)
    assert posterior_sd(post) == pytest.approx(0.1387, abs=2e-3)
    assert posterior_mode(post) == pytest.approx(0.67)
