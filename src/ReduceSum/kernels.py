"""Partial-sum kernels for the Poisson log likelihood.

The likelihood over N observations is split into ceil(N / grainsize)
partial sums. Each partial sum returns its log-likelihood contribution and
its gradient contribution; the partial results are reduced in chunk order.
Threading is handled here, the sampler only calls ``evaluate``.
"""

import math

import numpy as np
import numba
from numba import njit, prange
from scipy.special import gammaln


@njit(parallel=True)
def _poisson_partial_sums_numba(
    y: np.ndarray, X: np.ndarray, beta: np.ndarray, grainsize: int
):
    """Numba JIT partial sums, one ``prange`` iteration per chunk."""
    n = X.shape[0]
    p = X.shape[1]
    n_chunks = (n + grainsize - 1) // grainsize

    partial_lp = np.zeros(n_chunks)
    partial_grad = np.zeros((n_chunks, p))

    for c in prange(n_chunks):
        start = c * grainsize
        end = min(start + grainsize, n)
        lp = 0.0
        for i in range(start, end):
            eta = 0.0
            for k in range(p):
                eta += X[i, k] * beta[k]
            mu = math.exp(eta)
            lp += y[i] * eta - mu - math.lgamma(y[i] + 1.0)
            resid = y[i] - mu
            for k in range(p):
                partial_grad[c, k] += resid * X[i, k]
        partial_lp[c] = lp

    return partial_lp, partial_grad


def _check_grainsize(grainsize: int) -> int:
    grainsize = int(grainsize)
    if grainsize < 1:
        raise ValueError(f"grainsize must be >= 1, got {grainsize}")
    return grainsize


class NumPyKernel:
    """NumPy partial-sum kernel. Single threaded reference."""

    def __init__(self, threads: int = 1, static: bool = False):
        self.threads = threads
        self.static = static
        self.observed_numba_threads = None  # Not applicable for NumPy

    def partial_sums(self, y: np.ndarray, X: np.ndarray, beta: np.ndarray, grainsize: int):
        """Return per-chunk log-likelihood terms and gradients."""
        grainsize = _check_grainsize(grainsize)
        eta = X @ beta
        mu = np.exp(eta)
        terms = y * eta - mu - gammaln(y + 1.0)
        starts = np.arange(0, y.shape[0], grainsize)
        partial_lp = np.add.reduceat(terms, starts)
        partial_grad = np.add.reduceat((y - mu)[:, None] * X, starts, axis=0)
        return partial_lp, partial_grad

    def evaluate(self, y: np.ndarray, X: np.ndarray, beta: np.ndarray, grainsize: int):
        """Log likelihood and its gradient with respect to ``beta``."""
        partial_lp, partial_grad = self.partial_sums(y, X, beta, grainsize)
        return float(partial_lp.sum()), partial_grad.sum(axis=0)

    def warmup(self, warmup_size: int = 10):
        """No-op for NumPy kernel."""
        pass


class NumbaKernel:
    """Numba JIT-compiled partial-sum kernel.

    Parameters
    ----------
    threads : int
        Requested Numba threads. Raises ``ValueError`` (from Numba) when it
        exceeds ``NUMBA_NUM_THREADS``.
    static : bool
        True keeps Numba's static partition of chunks over threads. False
        hands out one chunk at a time to whichever thread is free.
    """

    def __init__(self, threads: int = 1, static: bool = False):
        self.threads = threads
        self.static = static

        if threads is not None:
            numba.set_num_threads(threads)

        # Record what Numba actually reports
        self.observed_numba_threads = numba.get_num_threads()

    @property
    def chunksize(self) -> int:
        """Numba parallel chunksize: 0 is static scheduling, >0 is dynamic."""
        return 0 if self.static else 1

    def partial_sums(self, y: np.ndarray, X: np.ndarray, beta: np.ndarray, grainsize: int):
        """Return per-chunk log-likelihood terms and gradients."""
        grainsize = _check_grainsize(grainsize)
        # set_num_threads is thread local, re-apply in case another kernel ran
        numba.set_num_threads(self.observed_numba_threads)
        previous = numba.set_parallel_chunksize(self.chunksize)
        try:
            return _poisson_partial_sums_numba(y, X, beta, grainsize)
        finally:
            numba.set_parallel_chunksize(previous)

    def evaluate(self, y: np.ndarray, X: np.ndarray, beta: np.ndarray, grainsize: int):
        """Log likelihood and its gradient with respect to ``beta``."""
        partial_lp, partial_grad = self.partial_sums(y, X, beta, grainsize)
        return float(partial_lp.sum()), partial_grad.sum(axis=0)

    def warmup(self, warmup_size: int = 10):
        """Trigger JIT compilation with a small problem."""
        rng = np.random.default_rng(0)
        X = np.column_stack([np.ones(warmup_size), rng.standard_normal(warmup_size)])
        y = rng.poisson(1.0, size=warmup_size).astype(np.float64)
        beta = np.zeros(2)
        self.partial_sums(y, X, beta, max(1, warmup_size // 2))


def create_kernel(use_numba: bool = True, threads: int = 1, static: bool = False):
    """Select a kernel implementation."""
    if use_numba:
        return NumbaKernel(threads=threads, static=static)
    return NumPyKernel(threads=threads, static=static)
