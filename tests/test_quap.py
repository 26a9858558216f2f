import numpy as np
import pandas as pd
import pytest
from scipy import stats
from scipy.special import expit

from bayesgrid.checks import DegeneratePosteriorError, GridValidationError
from bayesgrid.data import aggregate_binomial
from bayesgrid.quap import binomial_model, extract_samples, fit_quap, gaussian_model, link, precis


def _regression_data(n=200, seed=11):
    rng = np.random.default_rng(seed)
    x = rng.normal(0.0, 1.0, n)
    y = 2.0 + 3.0 * x + rng.normal(0.0, 1.0, n)
    return pd.DataFrame({"x": x, "y": y})


def test_quap_is_exact_for_conjugate_normal_mean():
    rng = np.random.default_rng(3)
    y = rng.normal(5.0, 1.0, 50)

    def log_post(theta):
        return stats.norm.logpdf(y, theta[0], 1.0).sum() + stats.norm.logpdf(theta[0], 0.0, 10.0)

    fit = fit_quap(log_post, [0.0], names=["mu"])
    precision = y.size + 1.0 / 100.0
    assert fit.converged
    assert fit.mean[0] == pytest.approx(y.sum() / precision, rel=1e-5)
    assert fit.covariance[0, 0] == pytest.approx(1.0 / precision, rel=1e-3)
    assert fit.coef().index.tolist() == ["mu"]


def test_gaussian_regression_recovers_coefficients():
    data = _regression_data()
    log_post, names = gaussian_model(data, "y", ["x"], intercept_prior=(0.0, 100.0))
    assert names == ["a", "b_x", "sigma"]
    fit = fit_quap(log_post, {"a": 0.0, "b_x": 0.0, "sigma": 5.0})
    coef = fit.coef()
    assert coef["a"] == pytest.approx(2.0, abs=0.3)
    assert coef["b_x"] == pytest.approx(3.0, abs=0.3)
    assert coef["sigma"] == pytest.approx(1.0, abs=0.2)
    assert np.all(fit.sd() > 0.0)


def test_samples_precis_and_link():
    data = _regression_data()
    log_post, names = gaussian_model(data, "y", ["x"])
    fit = fit_quap(log_post, [0.0, 0.0, 5.0], names=names)

    post = extract_samples(fit, 4000, np.random.default_rng(0))
    assert list(post.columns) == names
    assert len(post) == 4000
    assert post["b_x"].mean() == pytest.approx(fit.mean[1], abs=0.05)

    table = precis(fit, prob=0.89)
    assert list(table.columns) == ["mean", "sd", "5.5%", "94.5%"]
    assert table.loc["a", "5.5%"] < table.loc["a", "mean"] < table.loc["a", "94.5%"]

    new = pd.DataFrame({"x": [0.0, 1.0, 2.0]})
    mu = link(post, new, ["x"])
    assert mu.shape == (4000, 3)
    assert mu[:, 1].mean() == pytest.approx(fit.mean[0] + fit.mean[1], abs=0.05)


def test_start_outside_support_is_rejected():
    data = _regression_data(n=20)
    log_post, names = gaussian_model(data, "y", ["x"])
    with pytest.raises(GridValidationError):
        fit_quap(log_post, [0.0, 0.0, -1.0], names=names)


def test_flat_log_posterior_has_no_quadratic_approximation():
    with pytest.raises(DegeneratePosteriorError):
        fit_quap(lambda theta: 0.0, [0.0, 0.0], names=["a", "b"])


def test_gaussian_model_requires_columns():
    with pytest.raises(KeyError):
        gaussian_model(pd.DataFrame({"y": [1.0]}), "y", ["weight"])


def _pulls(n_per_level=800, seed=7):
    rng = np.random.default_rng(seed)
    x = np.repeat(np.linspace(-1.0, 1.0, 5), n_per_level)
    pulled = rng.binomial(1, expit(0.3 + 0.8 * x))
    return pd.DataFrame({"x": x, "pulled": pulled})


def test_binomial_logit_model_on_aggregated_counts():
    raw = _pulls()
    counts = aggregate_binomial(raw, ["x"], "pulled")
    assert counts["trials"].tolist() == [800] * 5

    log_post, names = binomial_model(counts, "successes", "trials", ["x"])
    assert names == ["a", "b_x"]
    fit = fit_quap(log_post, {"a": 0.0, "b_x": 0.0})
    assert fit.coef()["a"] == pytest.approx(0.3, abs=0.15)
    assert fit.coef()["b_x"] == pytest.approx(0.8, abs=0.15)

    # Aggregating does not change the posterior over a and b.
    single_post, _ = binomial_model(raw, "pulled", 1, ["x"])
    single = fit_quap(single_post, {"a": 0.0, "b_x": 0.0})
    np.testing.assert_allclose(single.mean, fit.mean, atol=1e-3)
    np.testing.assert_allclose(single.sd(), fit.sd(), rtol=1e-2)

    post = extract_samples(fit, 2000, np.random.default_rng(1))
    p = link(post, pd.DataFrame({"x": [-1.0, 0.0, 1.0]}), ["x"], family="binomial")
    assert p.shape == (2000, 3)
    assert np.all((p > 0.0) & (p < 1.0))
    assert p[:, 1].mean() == pytest.approx(expit(fit.mean[0]), abs=0.01)
    assert p[:, 0].mean() < p[:, 1].mean() < p[:, 2].mean()


def test_binomial_model_validates_counts():
    data = pd.DataFrame({"k": [3, 5], "n": [4, 4]})
    with pytest.raises(ValueError):
        binomial_model(data, "k", "n")
    with pytest.raises(KeyError):
        binomial_model(data, "k", "trials")
    with pytest.raises(ValueError):
        link(pd.DataFrame({"a": [0.0]}), data, family="poisson")
