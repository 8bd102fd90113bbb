"""Within-chain threading benchmarks for a partial-sum Bayesian sampler.

The log likelihood of one chain is split into partial sums of
``grainsize`` observations, evaluated on ``threads`` threads with a static
or dynamic schedule. A benchmark harness re-fits a model over a grid of
thread counts, grainsizes and iteration counts and records runtimes.

Model fitting
-------------
- fit_model / FittedModel: Poisson regression sampled with NUTS
- NumPyKernel / NumbaKernel: partial-sum log-likelihood kernels

Benchmarking
------------
- benchmark_threading: timed sweep over threading configurations
- analysis: chunks, slowdown, speedup and efficiency columns
"""

from .datastructures import (
    ThreadingConfig,
    TuningConfig,
    BenchmarkRow,
    WarmupInfo,
    FitMetrics,
    ChainTrace,
)
from .kernels import NumPyKernel, NumbaKernel, create_kernel
from .problems import Prior, PoissonRegression, simulate_poisson_data
from .sampler import NUTSSampler, SamplerError
from .fitting import BaseFit, FittedModel, fit_model, resolve_inits
from .benchmark import benchmark_threading, tuning_grid, results_to_frame
from . import analysis

__all__ = [
    # Data structures
    "ThreadingConfig",
    "TuningConfig",
    "BenchmarkRow",
    "WarmupInfo",
    "FitMetrics",
    "ChainTrace",
    # Kernels
    "NumPyKernel",
    "NumbaKernel",
    "create_kernel",
    # Model
    "Prior",
    "PoissonRegression",
    "simulate_poisson_data",
    # Sampling
    "NUTSSampler",
    "SamplerError",
    "BaseFit",
    "FittedModel",
    "fit_model",
    "resolve_inits",
    # Benchmark
    "benchmark_threading",
    "tuning_grid",
    "results_to_frame",
    "analysis",
]
