"""Tests for the threading benchmark harness.

The harness is exercised with a recording fake fit and a fake clock so the
tests neither depend on the number of CPU cores nor on wall-clock timing.
"""

import itertools
import logging

import numba
import numpy as np
import pytest

from ReduceSum import (
    BaseFit,
    BenchmarkRow,
    fit_model,
    ThreadingConfig,
    TuningConfig,
    WarmupInfo,
    benchmark_threading,
    results_to_frame,
    tuning_grid,
)


class FakeFit(BaseFit):
    """Records every ``update`` call; leapfrog count grows with ``iter``."""

    def __init__(self, calls=None, settings=None, fail_on=None):
        self.calls = [] if calls is None else calls
        self.settings = settings or {}
        self.fail_on = fail_on

    def update(self, **overrides):
        self.calls.append(overrides)
        threads = overrides.get("threads")
        if self.fail_on is not None and threads is not None and threads.threads == self.fail_on:
            raise RuntimeError(f"fit failed with {threads.threads} threads")
        return FakeFit(self.calls, {**self.settings, **overrides}, self.fail_on)

    def warmup_info(self, chain=0):
        return WarmupInfo(step_size=0.25, inv_metric=np.array([1.0, 0.5]))

    def num_leapfrog(self, inc_warmup=True):
        return 3 * self.settings.get("iter", 0)

    def extract_draw(self, index=0, chain=0):
        return {"b_Intercept": 0.5, "b_x1": 0.3}


class FakeClock:
    """Advances by ``tick`` seconds per call."""

    def __init__(self, tick=0.5):
        self.now = 100.0
        self.tick = tick

    def __call__(self):
        self.now += self.tick
        return self.now


def config_tuples(table):
    return list(table[["cores", "grainsize", "iter", "static"]].itertuples(index=False, name=None))


class TestTuningGrid:
    """Cross product of candidate values."""

    def test_cores_vary_slowest(self):
        grid = tuning_grid([1, 2], [10, 20], [5])
        assert [(c.cores, c.grainsize, c.iter) for c in grid] == [
            (1, 10, 5), (1, 20, 5), (2, 10, 5), (2, 20, 5),
        ]

    def test_scalar_candidates(self):
        assert tuning_grid(2, 100, 50, static=True) == [TuningConfig(2, 100, 50, static=True, inits=0.0)]

    def test_numpy_integer_candidates(self):
        """NumPy scalars count as a single candidate."""
        grid = tuning_grid(np.int64(2), np.int32(100), np.array([10, 20]))
        assert [(c.cores, c.grainsize, c.iter) for c in grid] == [(2, 100, 10), (2, 100, 20)]

    @pytest.mark.parametrize("empty", ["cores", "grainsize", "iterations"])
    def test_empty_candidates_raise(self, empty):
        kwargs = {"cores": [1], "grainsize": [1], "iterations": [1], empty: []}
        with pytest.raises(ValueError, match=empty):
            tuning_grid(**kwargs)

    def test_threading_config(self):
        config = TuningConfig(cores=4, grainsize=250, iter=10, static=True)
        assert config.threading() == ThreadingConfig(threads=4, grainsize=250, static=True)


class TestBenchmarkThreading:
    """Sweep behaviour."""

    @pytest.mark.parametrize(
        "cores,grainsize,iterations",
        [([1], [1], [1]), ([1, 2], [100], [10, 20]), ([1, 2, 4], [500, 250], [25, 50, 75])],
    )
    def test_one_row_per_configuration(self, cores, grainsize, iterations):
        """Row count is the product of the candidate list sizes."""
        table = benchmark_threading(FakeFit(), cores, grainsize, iterations, clock=FakeClock())
        assert len(table) == len(cores) * len(grainsize) * len(iterations)
        assert list(table.columns) == list(BenchmarkRow.COLUMNS)

    def test_runtimes_are_non_negative_floats(self):
        table = benchmark_threading(FakeFit(), [1, 2], [10, 20], [5], clock=FakeClock(tick=0.25))
        assert table["runtime"].dtype == np.float64
        assert (table["runtime"] >= 0).all()
        assert np.allclose(table["runtime"], 0.25)

    def test_repeated_static_sweeps_match(self):
        """Same inputs give the same configuration columns."""
        kwargs = dict(cores=[1, 2], grainsize=[100, 50], iterations=[10], static=True, inits=0, seed=7)
        first = benchmark_threading(FakeFit(), clock=FakeClock(0.1), **kwargs)
        second = benchmark_threading(FakeFit(), clock=FakeClock(0.3), **kwargs)
        assert config_tuples(first) == config_tuples(second)
        assert (first["num_leapfrog"] == second["num_leapfrog"]).all()

    def test_single_core(self):
        table = benchmark_threading(FakeFit(), [1], [10, 20, 40], [5, 10], clock=FakeClock())
        assert (table["cores"] == 1).all()

    def test_core_scaling_scenario(self):
        table = benchmark_threading(FakeFit(), cores=[1, 2, 4], grainsize=[500], iterations=[25], clock=FakeClock())
        assert len(table) == 3
        assert (table["grainsize"] == 500).all()
        assert (table["iter"] == 25).all()
        assert sorted(table["cores"]) == [1, 2, 4]

    def test_grainsize_scenario(self):
        table = benchmark_threading(
            FakeFit(), cores=[1], grainsize=[5000, 2500, 1250], iterations=[25, 50], clock=FakeClock()
        )
        assert len(table) == 6
        combos = set(zip(table["grainsize"], table["iter"]))
        assert combos == set(itertools.product([5000, 2500, 1250], [25, 50]))

    def test_update_calls(self):
        """Template install once, then one fixed-tuning refit per configuration."""
        fit = FakeFit()
        benchmark_threading(fit, cores=[1, 2], grainsize=[300, 100], iterations=[10], static=True, seed=42,
                            clock=FakeClock())

        template, *refits = fit.calls
        assert template == {
            "chains": 0,
            "inits": 0.0,
            "threads": ThreadingConfig(threads=1, grainsize=300, static=True),
        }
        assert len(refits) == 4
        for call, (cores, grainsize) in zip(refits, [(1, 300), (1, 100), (2, 300), (2, 100)]):
            assert call["chains"] == 1
            assert call["warmup"] == 0
            assert call["iter"] == 10
            assert call["seed"] == 42
            assert call["inits"] == 0.0
            assert call["threads"] == ThreadingConfig(threads=cores, grainsize=grainsize, static=True)
            assert call["step_size"] == 0.25
            assert np.array_equal(call["inv_metric"], [1.0, 0.5])
            assert call["adapt_engaged"] is False
            assert call["save_warmup"] is True

    def test_num_leapfrog_recorded(self):
        table = benchmark_threading(FakeFit(), [1], [10], [5, 20], clock=FakeClock())
        assert list(table["num_leapfrog"]) == [15, 60]

    def test_inits_from_draw(self):
        fit = FakeFit()
        benchmark_threading(fit, [1], [10], [5], inits="draw", clock=FakeClock())
        assert fit.calls[-1]["inits"] == {"b_Intercept": 0.5, "b_x1": 0.3}

    def test_failure_propagates(self):
        """A failing fit aborts the sweep."""
        fit = FakeFit(fail_on=2)
        with pytest.raises(RuntimeError, match="2 threads"):
            benchmark_threading(fit, [1, 2, 4], [10], [5], clock=FakeClock())
        # 1 template + 1 successful + 1 failing
        assert len(fit.calls) == 3

    def test_real_fit(self, baseline):
        """End to end on a small NumPy-kernel fit."""
        table = benchmark_threading(baseline, cores=[1], grainsize=[400, 50], iterations=[5], static=True)
        assert len(table) == 2
        assert (table["runtime"] >= 0).all()
        assert (table["num_leapfrog"] > 0).all()


class TestResultTable:
    """Result rows and table assembly."""

    def test_negative_runtime_raises(self):
        with pytest.raises(ValueError, match="runtime"):
            BenchmarkRow(TuningConfig(1, 10, 5), runtime=-0.1)

    def test_frame_keeps_order(self):
        rows = [BenchmarkRow(TuningConfig(c, 10, 5), runtime=float(c)) for c in (4, 1, 2)]
        table = results_to_frame(rows)
        assert list(table["cores"]) == [4, 1, 2]
        assert list(table["runtime"]) == [4.0, 1.0, 2.0]

    def test_empty_frame_has_columns(self):
        assert list(results_to_frame([]).columns) == list(BenchmarkRow.COLUMNS)


class TestBenchmarkRealBackend:
    """Sweeps over actual fits."""

    def test_per_chain_inits_baseline(self, poisson_data):
        """A baseline fitted with one init mapping per chain can be benchmarked."""
        inits = [{"b_Intercept": 0.0, "b_x1": 0.0}, {"b_Intercept": 0.5, "b_x1": 0.1}]
        base = fit_model(poisson_data, chains=2, iter=100, seed=5, inits=inits, use_numba=False)

        table = benchmark_threading(base, cores=[1], grainsize=[100], iterations=[5])

        assert len(table) == 1
        assert table["num_leapfrog"].iloc[0] > 0

    def test_numpy_template_warns(self, baseline, caplog):
        with caplog.at_level(logging.WARNING, logger="ReduceSum.benchmark"):
            benchmark_threading(baseline, cores=[1], grainsize=[100], iterations=[3])
        assert "NumPy kernel" in caplog.text

    def test_numba_template_does_not_warn(self, poisson_data, caplog):
        base = fit_model(poisson_data, chains=1, iter=60, seed=2, threads=1, use_numba=True)
        with caplog.at_level(logging.WARNING, logger="ReduceSum.benchmark"):
            benchmark_threading(base, cores=[1], grainsize=[100], iterations=[3])
        assert "NumPy kernel" not in caplog.text

    def test_repeated_static_numba_sweeps_match(self, poisson_data):
        """Threaded static sweeps repeat their configurations and trajectories."""
        threads = min(2, numba.config.NUMBA_NUM_THREADS)
        base = fit_model(poisson_data, chains=1, iter=100, seed=3, threads=1, use_numba=True)
        kwargs = dict(
            cores=sorted({1, threads}), grainsize=[100, 50], iterations=[10, 20], static=True, seed=11
        )

        first = benchmark_threading(base, **kwargs)
        second = benchmark_threading(base, **kwargs)

        assert len(first) == len(kwargs["cores"]) * 4
        assert config_tuples(first) == config_tuples(second)
        assert list(first["num_leapfrog"]) == list(second["num_leapfrog"])
        assert (first["runtime"] >= 0).all()
