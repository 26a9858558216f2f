"""
Grid-approximation Bayesian inference for single-parameter models, with
posterior sampling, interval summaries, posterior predictive simulation and a
quadratic approximation for multi-parameter regressions.
"""

__version__ = "0.1.0"

from .checks import BayesGridError, DegeneratePosteriorError, GridValidationError
from .posterior import GridPosterior, grid_posterior, make_grid, sample_posterior
