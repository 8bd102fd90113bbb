"""Shared fixtures."""

import pytest

from ReduceSum import fit_model, simulate_poisson_data


@pytest.fixture(scope="session")
def poisson_data():
    return simulate_poisson_data(400, intercept=0.5, slopes=(0.3,), seed=2024)


@pytest.fixture(scope="session")
def baseline(poisson_data):
    """Single-chain NumPy fit used as a template."""
    return fit_model(poisson_data, chains=1, iter=300, seed=1, use_numba=False)
