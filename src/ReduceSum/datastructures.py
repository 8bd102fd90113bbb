"""Data structures for threading configuration, benchmark rows and fit results.

Architecture: Params vs Metrics

                 Params (input/config)          Metrics (output/results)
                 ─────────────────────          ────────────────────────
Threading        ThreadingConfig                FitMetrics
(per fit)        threads, grainsize, static     elapsed times, n_leapfrog,
                                                divergences, numba threads

Benchmark        TuningConfig                   BenchmarkRow
(per sweep       cores, grainsize, iter,        TuningConfig + runtime,
 point)          static, inits                  num_leapfrog
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, List, Optional

import numpy as np


# ============================================================================
# Threading (one fit)
# ============================================================================


@dataclass(frozen=True)
class ThreadingConfig:
    """Within-chain threading setup for a single fit.

    Parameters
    ----------
    threads : int
        Number of threads evaluating partial sums of one chain.
    grainsize : int, optional
        Number of observations per partial sum. ``None`` picks a default
        from the data size, see :meth:`resolve_grainsize`.
    static : bool
        Use a fixed partition of partial sums over threads instead of
        dynamic load balancing.
    """

    threads: int = 1
    grainsize: Optional[int] = None
    static: bool = False

    def __post_init__(self):
        if int(self.threads) != self.threads or self.threads < 1:
            raise ValueError(f"threads must be a positive integer, got {self.threads!r}")
        if self.grainsize is not None and (
            int(self.grainsize) != self.grainsize or self.grainsize < 1
        ):
            raise ValueError(
                f"grainsize must be a positive integer, got {self.grainsize!r}"
            )

    @classmethod
    def coerce(cls, threads) -> "ThreadingConfig":
        """Build a config from None, an int thread count or a config."""
        if threads is None:
            return cls()
        if isinstance(threads, cls):
            return threads
        return cls(threads=int(threads))

    def resolve_grainsize(self, n_obs: int) -> int:
        """Grainsize used for ``n_obs`` observations.

        Defaults to ``max(100, ceil(n_obs / (2 * threads)))`` when unset.
        """
        if self.grainsize is not None:
            return int(self.grainsize)
        return max(100, math.ceil(n_obs / (2 * self.threads)))

    def n_chunks(self, n_obs: int) -> int:
        """Number of partial sums the likelihood is split into."""
        return max(1, math.ceil(n_obs / self.resolve_grainsize(n_obs)))


@dataclass(frozen=True)
class WarmupInfo:
    """Sampler tuning adapted during warmup of one chain."""

    step_size: float
    inv_metric: np.ndarray


@dataclass
class FitMetrics:
    """Scalar results of one fit - logged to MLflow as metrics."""

    chains: int = 0
    iterations: int = 0
    warmup: int = 0
    warmup_time: float = 0.0
    sampling_time: float = 0.0
    num_leapfrog: int = 0
    divergences: int = 0
    mean_accept_stat: Optional[float] = None
    observed_numba_threads: Optional[int] = None

    @property
    def total_time(self) -> float:
        return self.warmup_time + self.sampling_time

    def to_mlflow(self) -> dict:
        """Convert to MLflow-compatible dict (no None, bools as int)."""
        return {
            k: (int(v) if isinstance(v, bool) else v)
            for k, v in self.__dict__.items()
            if v is not None
        }


# ============================================================================
# Benchmark sweep
# ============================================================================


@dataclass(frozen=True)
class TuningConfig:
    """One point of the benchmark grid. Produces exactly one timed fit."""

    cores: int
    grainsize: int
    iter: int
    static: bool = False
    inits: Any = 0.0

    def threading(self) -> ThreadingConfig:
        return ThreadingConfig(threads=self.cores, grainsize=self.grainsize, static=self.static)


@dataclass(frozen=True)
class BenchmarkRow:
    """A tuning configuration together with its measured runtime."""

    config: TuningConfig
    runtime: float
    num_leapfrog: int = 0

    # Table columns, in order. inits is structured and stays out of the table.
    COLUMNS = ("cores", "grainsize", "iter", "static", "num_leapfrog", "runtime")

    def __post_init__(self):
        if not self.runtime >= 0.0:
            raise ValueError(f"runtime must be non-negative, got {self.runtime!r}")

    def to_record(self) -> dict:
        return {
            "cores": self.config.cores,
            "grainsize": self.config.grainsize,
            "iter": self.config.iter,
            "static": self.config.static,
            "num_leapfrog": int(self.num_leapfrog),
            "runtime": float(self.runtime),
        }


@dataclass
class ChainTrace:
    """Per-iteration sampler output of one chain.

    ``draws`` has shape (n_saved, n_params); the first ``n_warmup_saved`` rows
    are warmup. Diagnostic lists hold one entry per saved iteration while
    ``total_leapfrog`` also counts unsaved warmup iterations.
    """

    chain: int
    draws: np.ndarray
    n_warmup_saved: int
    step_size: float
    inv_metric: np.ndarray
    lp: List[float] = field(default_factory=list)
    n_leapfrog: List[int] = field(default_factory=list)
    treedepth: List[int] = field(default_factory=list)
    accept_stat: List[float] = field(default_factory=list)
    divergent: List[bool] = field(default_factory=list)
    total_leapfrog: int = 0
    warmup_time: float = 0.0
    sampling_time: float = 0.0

    def sampler_params(self) -> dict:
        """Diagnostic columns, keyed like Stan's ``*__`` sampler parameters."""
        return {
            "lp__": self.lp,
            "n_leapfrog__": self.n_leapfrog,
            "treedepth__": self.treedepth,
            "accept_stat__": self.accept_stat,
            "divergent__": self.divergent,
        }
