"""Tests for the model-fitting API."""

import numpy as np
import pytest

from ReduceSum import FittedModel, ThreadingConfig, WarmupInfo, fit_model, resolve_inits
from ReduceSum.fitting import _chain_inits

PARAMS = ["b_Intercept", "b_x1"]


class TestResolveInits:
    """Starting values from an ``inits`` specification."""

    def test_random_inits_in_range(self):
        theta = resolve_inits("random", PARAMS, np.random.default_rng(0))
        assert theta.shape == (2,)
        assert np.all(np.abs(theta) <= 2.0)

    def test_scalar(self):
        assert np.array_equal(resolve_inits(0, PARAMS, None), [0.0, 0.0])

    def test_sequence(self):
        assert np.array_equal(resolve_inits([0.1, -0.2], PARAMS, None), [0.1, -0.2])

    def test_mapping_in_parameter_order(self):
        theta = resolve_inits({"b_x1": 0.3, "b_Intercept": 0.5}, PARAMS, None)
        assert np.array_equal(theta, [0.5, 0.3])

    @pytest.mark.parametrize("inits", ["zero", [1.0, 2.0, 3.0], {"b_Intercept": 1.0}])
    def test_invalid_inits_raise(self, inits):
        with pytest.raises(ValueError):
            resolve_inits(inits, PARAMS, np.random.default_rng(0))

    def test_list_of_mappings_is_per_chain(self):
        inits = [{"b_Intercept": 0.0, "b_x1": 0.0}, {"b_Intercept": 1.0, "b_x1": 1.0}]
        assert _chain_inits(inits, 2) == inits
        with pytest.raises(ValueError, match="chains"):
            _chain_inits(inits, 3)

    def test_no_chains_need_no_inits(self):
        """A template without chains accepts any stored per-chain inits."""
        inits = [{"b_Intercept": 0.0, "b_x1": 0.0}, {"b_Intercept": 1.0, "b_x1": 1.0}]
        assert _chain_inits(inits, 0) == []

    def test_plain_value_is_shared(self):
        assert _chain_inits(0.5, 3) == [0.5, 0.5, 0.5]


class TestFitModel:
    """Fitting the Poisson regression."""

    def test_recovers_coefficients(self, baseline):
        """Posterior means near the simulated intercept and slope."""
        summary = baseline.summary()
        assert summary.loc["b_Intercept", "mean"] == pytest.approx(0.5, abs=0.15)
        assert summary.loc["b_x1", "mean"] == pytest.approx(0.3, abs=0.15)

    def test_draws_and_diagnostics(self, baseline):
        draws = baseline.draws()
        assert len(draws) == 150
        assert set(PARAMS) <= set(draws.columns)
        assert not draws["warmup"].any()
        assert len(baseline.sampler_params()) == 150
        assert baseline.metrics.chains == 1
        assert baseline.metrics.num_leapfrog == baseline.num_leapfrog()

    def test_default_grainsize_resolved(self, baseline):
        """Unset grainsize becomes max(100, ceil(N / (2 * threads)))."""
        assert baseline.threading == ThreadingConfig(threads=1, grainsize=200, static=False)

    def test_same_seed_same_draws(self, poisson_data):
        fits = [fit_model(poisson_data, chains=1, iter=60, seed=9, use_numba=False) for _ in range(2)]
        assert np.array_equal(fits[0].traces[0].draws, fits[1].traces[0].draws)

    def test_chains_get_distinct_streams(self, poisson_data):
        fit = fit_model(poisson_data, chains=2, iter=40, seed=3, use_numba=False)
        assert not np.array_equal(fit.traces[0].draws, fit.traces[1].draws)

    def test_zero_chains_builds_template(self, poisson_data):
        fit = fit_model(poisson_data, chains=0, use_numba=False)
        assert isinstance(fit, FittedModel)
        assert not fit.is_sampled
        assert fit.num_leapfrog() == 0
        assert fit.draws().empty
        with pytest.raises(ValueError, match="chains=0"):
            fit.warmup_info()
        with pytest.raises(ValueError, match="chains=0"):
            fit.extract_draw()

    @pytest.mark.parametrize("kwargs", [{"chains": -1}, {"iter": 10, "warmup": 20}, {"iter": 0}])
    def test_invalid_settings_raise(self, poisson_data, kwargs):
        with pytest.raises(ValueError):
            fit_model(poisson_data, use_numba=False, **kwargs)

    def test_numba_kernel(self, poisson_data):
        fit = fit_model(poisson_data, chains=1, iter=20, seed=1, threads=1, use_numba=True)
        assert fit.metrics.observed_numba_threads == 1


class TestUpdate:
    """Re-fitting from a template."""

    def test_update_keeps_settings(self, baseline):
        refit = baseline.update(chains=0)
        assert refit.settings["iter"] == baseline.settings["iter"]
        assert refit.settings["seed"] == baseline.settings["seed"]
        assert refit.model.param_names == baseline.model.param_names
        assert refit.model.data is baseline.model.data

    def test_update_threading(self, baseline):
        refit = baseline.update(chains=0, threads=ThreadingConfig(threads=1, grainsize=50, static=True))
        assert refit.threading.grainsize == 50
        assert refit.threading.static

    def test_unknown_argument_raises(self, baseline):
        with pytest.raises(TypeError, match="unexpected"):
            baseline.update(cores=2)

    def test_fixed_tuning_refit(self, baseline):
        """Warmup-free refit reuses the baseline step size and metric."""
        winfo = baseline.warmup_info()
        assert isinstance(winfo, WarmupInfo)

        refit = baseline.update(
            chains=1,
            warmup=0,
            iter=25,
            seed=1234,
            inits=0.0,
            step_size=winfo.step_size,
            inv_metric=winfo.inv_metric,
            adapt_engaged=False,
            save_warmup=True,
        )
        assert refit.warmup_info().step_size == winfo.step_size
        assert np.array_equal(refit.warmup_info().inv_metric, winfo.inv_metric)
        assert len(refit.draws()) == 25
        assert refit.num_leapfrog() == sum(refit.traces[0].n_leapfrog)

    def test_extract_draw_as_inits(self, baseline):
        draw = baseline.extract_draw(0)
        assert list(draw) == PARAMS
        refit = baseline.update(chains=1, iter=10, warmup=0, inits=draw, step_size=0.1, adapt_engaged=False)
        assert refit.is_sampled

    def test_template_from_per_chain_inits(self, poisson_data):
        fit = fit_model(
            poisson_data, chains=2, iter=40, seed=4, use_numba=False,
            inits=[{"b_Intercept": 0.0, "b_x1": 0.0}, {"b_Intercept": 0.2, "b_x1": 0.1}],
        )
        template = fit.update(chains=0)
        assert not template.is_sampled
        assert template.settings["inits"] == fit.settings["inits"]
