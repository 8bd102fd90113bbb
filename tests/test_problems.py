"""Tests for the Poisson regression problem."""

import numpy as np
import pandas as pd
import pytest

from ReduceSum import NumPyKernel, PoissonRegression, Prior, simulate_poisson_data


class TestSimulation:
    """Tests for simulated count data."""

    def test_columns_and_size(self):
        df = simulate_poisson_data(50, slopes=(0.1, 0.2, 0.3), seed=0)
        assert list(df.columns) == ["x1", "x2", "x3", "y"]
        assert len(df) == 50

    def test_counts_are_non_negative_integers(self):
        y = simulate_poisson_data(200, seed=1)["y"]
        assert (y >= 0).all()
        assert np.issubdtype(y.dtype, np.integer)

    def test_seed_is_reproducible(self):
        pd.testing.assert_frame_equal(
            simulate_poisson_data(30, seed=3), simulate_poisson_data(30, seed=3)
        )

    def test_invalid_size_raises(self):
        with pytest.raises(ValueError):
            simulate_poisson_data(0)


class TestPoissonRegression:
    """Tests for model construction and the log density."""

    @pytest.fixture
    def data(self):
        return simulate_poisson_data(120, slopes=(0.3, -0.4), seed=11)

    def test_design_matrix(self, data):
        """Intercept column first, then predictors in order."""
        model = PoissonRegression(data)
        assert model.X.shape == (120, 3)
        assert np.all(model.X[:, 0] == 1.0)
        assert model.param_names == ["b_Intercept", "b_x1", "b_x2"]
        assert model.N == 120
        assert model.n_params == 3

    def test_predictor_subset(self, data):
        model = PoissonRegression(data, predictors=["x2"])
        assert model.param_names == ["b_Intercept", "b_x2"]

    def test_missing_response_raises(self, data):
        with pytest.raises(ValueError, match="response"):
            PoissonRegression(data, response="counts")

    def test_missing_predictor_raises(self, data):
        with pytest.raises(ValueError, match="predictor"):
            PoissonRegression(data, predictors=["x9"])

    def test_non_count_response_raises(self, data):
        data = data.assign(y=data["y"] + 0.5)
        with pytest.raises(ValueError, match="counts"):
            PoissonRegression(data)

    def test_invalid_prior_raises(self):
        with pytest.raises(ValueError):
            Prior(intercept_scale=0.0)

    def test_gradient_matches_finite_differences(self, data):
        """Analytic gradient of likelihood + prior."""
        model = PoissonRegression(data)
        kernel = NumPyKernel()
        beta = np.array([0.3, 0.1, -0.2])

        _, grad = model.log_density(beta, kernel, grainsize=17)

        eps = 1e-6
        numeric = np.zeros_like(beta)
        for k in range(beta.size):
            step = np.zeros_like(beta)
            step[k] = eps
            up, _ = model.log_density(beta + step, kernel, grainsize=17)
            down, _ = model.log_density(beta - step, kernel, grainsize=17)
            numeric[k] = (up - down) / (2 * eps)

        assert np.allclose(grad, numeric, rtol=1e-5, atol=1e-5)

    def test_prior_is_centered_at_zero(self, data):
        lp, grad = PoissonRegression(data).log_prior(np.zeros(3))
        assert lp == 0.0
        assert np.all(grad == 0.0)
