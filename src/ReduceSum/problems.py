"""Poisson regression problem used for threading benchmarks.

Provides simulated count data and the log density (likelihood + prior)
of a Poisson regression with log link.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np
import pandas as pd


@dataclass(frozen=True)
class Prior:
    """Independent normal priors on the regression coefficients."""

    intercept_scale: float = 2.5
    slope_scale: float = 1.0

    def __post_init__(self):
        if self.intercept_scale <= 0 or self.slope_scale <= 0:
            raise ValueError("prior scales must be positive")


def simulate_poisson_data(
    N: int,
    intercept: float = 0.5,
    slopes: Sequence[float] = (0.3,),
    seed: int | None = None,
) -> pd.DataFrame:
    """Simulate counts y ~ Poisson(exp(intercept + X @ slopes)).

    Parameters
    ----------
    N : int
        Number of observations.
    intercept : float
        Intercept on the log scale.
    slopes : sequence of float
        One coefficient per predictor. Predictors are standard normal and
        named ``x1, x2, ...``.
    seed : int, optional
        Seed for the generator.

    Returns
    -------
    pd.DataFrame
        Columns ``x1..xK`` and ``y``.
    """
    if N < 1:
        raise ValueError(f"N must be >= 1, got {N}")

    rng = np.random.default_rng(seed)
    slopes = np.asarray(slopes, dtype=np.float64)
    x = rng.standard_normal((N, slopes.size))
    y = rng.poisson(np.exp(intercept + x @ slopes))

    df = pd.DataFrame(x, columns=[f"x{k + 1}" for k in range(slopes.size)])
    df["y"] = y
    return df


class PoissonRegression:
    """Poisson regression ``response ~ 1 + predictors`` with log link.

    Parameters
    ----------
    data : pd.DataFrame
        Data containing the predictor and response columns.
    predictors : sequence of str, optional
        Predictor columns. Defaults to every column except the response.
    response : str
        Count column.
    prior : Prior
        Coefficient priors.
    """

    def __init__(
        self,
        data: pd.DataFrame,
        predictors: Sequence[str] | None = None,
        response: str = "y",
        prior: Prior = Prior(),
    ):
        if response not in data.columns:
            raise ValueError(f"response column '{response}' not found in data")
        if predictors is None:
            predictors = [c for c in data.columns if c != response]
        missing = [p for p in predictors if p not in data.columns]
        if missing:
            raise ValueError(f"predictor columns not found in data: {missing}")

        y = data[response].to_numpy(dtype=np.float64)
        if np.any(y < 0) or np.any(y != np.floor(y)) or not np.all(np.isfinite(y)):
            raise ValueError(f"response '{response}' must contain non-negative integer counts")

        self.data = data
        self.predictors = list(predictors)
        self.response = response
        self.prior = prior

        self.y = np.ascontiguousarray(y)
        self.X = np.ascontiguousarray(
            np.column_stack(
                [np.ones(len(data))] + [data[p].to_numpy(dtype=np.float64) for p in self.predictors]
            )
        )
        self.prior_scales = np.array(
            [prior.intercept_scale] + [prior.slope_scale] * len(self.predictors)
        )

    @property
    def N(self) -> int:
        return self.y.shape[0]

    @property
    def n_params(self) -> int:
        return self.X.shape[1]

    @property
    def param_names(self) -> list:
        return ["b_Intercept"] + [f"b_{p}" for p in self.predictors]

    def log_prior(self, beta: np.ndarray) -> Tuple[float, np.ndarray]:
        """Normal log prior (up to a constant) and its gradient."""
        scaled = beta / self.prior_scales
        return float(-0.5 * np.dot(scaled, scaled)), -scaled / self.prior_scales

    def log_density(self, beta: np.ndarray, kernel, grainsize: int) -> Tuple[float, np.ndarray]:
        """Unnormalised log posterior and gradient.

        The likelihood is evaluated by ``kernel`` as partial sums of
        ``grainsize`` observations.
        """
        lp_lik, grad_lik = kernel.evaluate(self.y, self.X, beta, grainsize)
        lp_prior, grad_prior = self.log_prior(beta)
        return lp_lik + lp_prior, grad_lik + grad_prior
