"""Model-fitting API.

``fit_model`` builds a Poisson regression, selects a partial-sum kernel for
the requested threading setup and runs NUTS chains. The returned
``FittedModel`` remembers its settings so it can serve as a template:
``update(**overrides)`` re-fits with the same data and priors and only the
overridden settings changed.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from .datastructures import ChainTrace, FitMetrics, ThreadingConfig, WarmupInfo
from .kernels import create_kernel
from .problems import PoissonRegression, Prior
from .sampler import NUTSSampler

log = logging.getLogger(__name__)

# Settings stored on a fit and accepted by update()
DEFAULT_SETTINGS: Dict[str, Any] = {
    "chains": 4,
    "iter": 2000,
    "warmup": None,  # iter // 2
    "seed": None,
    "inits": "random",
    "threads": None,
    "use_numba": True,
    "inv_metric": None,
    "step_size": None,
    "adapt_engaged": True,
    "save_warmup": False,
    "max_treedepth": 10,
    "target_accept": 0.8,
}

MODEL_ARGS = ("data", "predictors", "response", "prior")


class BaseFit(ABC):
    """Interface the benchmark harness needs from a fitted model."""

    @abstractmethod
    def update(self, **overrides) -> "BaseFit":
        """Re-fit with stored settings merged with ``overrides``."""

    @abstractmethod
    def warmup_info(self, chain: int = 0) -> WarmupInfo:
        """Adapted step size and inverse metric of one chain."""

    @abstractmethod
    def num_leapfrog(self, inc_warmup: bool = True) -> int:
        """Total leapfrog steps over all chains."""

    @abstractmethod
    def extract_draw(self, index: int = 0, chain: int = 0) -> Dict[str, float]:
        """One posterior draw as ``{parameter: value}``."""


def resolve_inits(inits, param_names: Sequence[str], rng: np.random.Generator) -> np.ndarray:
    """Turn an ``inits`` specification into a starting vector.

    Accepts ``"random"`` (uniform(-2, 2) per parameter), a scalar applied
    to every parameter, a sequence with one value per parameter, or a
    mapping from parameter name to value.
    """
    n = len(param_names)
    if isinstance(inits, str):
        if inits == "random":
            return rng.uniform(-2.0, 2.0, size=n)
        raise ValueError(f"Unknown inits '{inits}'. Use 'random', a number, a sequence or a mapping")
    if isinstance(inits, Mapping):
        missing = [p for p in param_names if p not in inits]
        if missing:
            raise ValueError(f"inits missing parameters: {missing}")
        return np.array([float(inits[p]) for p in param_names])
    if np.isscalar(inits):
        return np.full(n, float(inits))

    values = np.asarray(inits, dtype=np.float64)
    if values.shape != (n,):
        raise ValueError(f"inits must have {n} values ({list(param_names)}), got shape {values.shape}")
    return values


def _chain_inits(inits, chains: int) -> List[Any]:
    """Per-chain inits: a list of mappings is one entry per chain."""
    if chains == 0:
        return []
    if isinstance(inits, (list, tuple)) and inits and all(isinstance(i, Mapping) for i in inits):
        if len(inits) != chains:
            raise ValueError(f"Got inits for {len(inits)} chains but chains={chains}")
        return list(inits)
    return [inits] * chains


class FittedModel(BaseFit):
    """Result of :func:`fit_model`. Also a template for re-fits.

    Attributes
    ----------
    model : PoissonRegression
        The model that was sampled.
    settings : dict
        Sampling settings, see ``DEFAULT_SETTINGS``.
    threading : ThreadingConfig
        Threading setup with the grainsize resolved for this data set.
    traces : list of ChainTrace
        One entry per chain. Empty when fitted with ``chains=0``.
    metrics : FitMetrics
        Aggregated timings and diagnostics.
    """

    def __init__(
        self,
        model: PoissonRegression,
        settings: Dict[str, Any],
        threading: ThreadingConfig,
        traces: List[ChainTrace],
        metrics: FitMetrics,
    ):
        self.model = model
        self.settings = settings
        self.threading = threading
        self.traces = traces
        self.metrics = metrics

    def __repr__(self) -> str:
        return (
            f"FittedModel(N={self.model.N}, params={self.model.param_names}, "
            f"chains={len(self.traces)}, threads={self.threading.threads}, "
            f"grainsize={self.threading.grainsize}, static={self.threading.static})"
        )

    @property
    def is_sampled(self) -> bool:
        return bool(self.traces)

    def update(self, **overrides) -> "FittedModel":
        """Re-fit with the stored data, priors and settings, changing only ``overrides``.

        Model arguments (``data``, ``predictors``, ``response``, ``prior``)
        rebuild the model; everything else must be a sampling setting.
        """
        unknown = set(overrides) - set(DEFAULT_SETTINGS) - set(MODEL_ARGS)
        if unknown:
            raise TypeError(f"update() got unexpected arguments: {sorted(unknown)}")

        model_args = {
            "data": self.model.data,
            "predictors": self.model.predictors,
            "response": self.model.response,
            "prior": self.model.prior,
        }
        if "data" in overrides and "predictors" not in overrides:
            model_args["predictors"] = None
        model_args.update({k: v for k, v in overrides.items() if k in MODEL_ARGS})

        settings = dict(self.settings)
        settings.update({k: v for k, v in overrides.items() if k in DEFAULT_SETTINGS})
        return fit_model(**model_args, **settings)

    def warmup_info(self, chain: int = 0) -> WarmupInfo:
        if not self.is_sampled:
            raise ValueError("Model has no sampled chains (fitted with chains=0)")
        trace = self.traces[chain]
        return WarmupInfo(step_size=trace.step_size, inv_metric=trace.inv_metric.copy())

    def num_leapfrog(self, inc_warmup: bool = True) -> int:
        if inc_warmup:
            return int(sum(t.total_leapfrog for t in self.traces))
        return int(sum(sum(t.n_leapfrog[t.n_warmup_saved:]) for t in self.traces))

    def draws(self, inc_warmup: bool = False) -> pd.DataFrame:
        """Posterior draws with ``chain``, ``iteration`` and ``warmup`` columns."""
        frames = []
        for trace in self.traces:
            start = 0 if inc_warmup else trace.n_warmup_saved
            df = pd.DataFrame(trace.draws[start:], columns=self.model.param_names)
            df["chain"] = trace.chain
            df["iteration"] = np.arange(start, trace.draws.shape[0]) + 1
            df["warmup"] = df["iteration"] <= trace.n_warmup_saved
            frames.append(df)
        if not frames:
            return pd.DataFrame(columns=self.model.param_names + ["chain", "iteration", "warmup"])
        return pd.concat(frames, ignore_index=True)

    def sampler_params(self, inc_warmup: bool = False) -> pd.DataFrame:
        """NUTS diagnostics per iteration (``lp__``, ``n_leapfrog__``, ...)."""
        frames = []
        for trace in self.traces:
            start = 0 if inc_warmup else trace.n_warmup_saved
            df = pd.DataFrame({k: v[start:] for k, v in trace.sampler_params().items()})
            df["chain"] = trace.chain
            df["warmup"] = np.arange(start, len(trace.lp)) < trace.n_warmup_saved
            frames.append(df)
        if not frames:
            return pd.DataFrame()
        return pd.concat(frames, ignore_index=True)

    def extract_draw(self, index: int = 0, chain: int = 0) -> Dict[str, float]:
        if not self.is_sampled:
            raise ValueError("Model has no sampled chains (fitted with chains=0)")
        trace = self.traces[chain]
        row = trace.draws[trace.n_warmup_saved + index]
        return dict(zip(self.model.param_names, map(float, row)))

    def elapsed_time(self) -> pd.DataFrame:
        """Warmup and sampling seconds per chain, as reported by the sampler."""
        return pd.DataFrame(
            {
                "chain": [t.chain for t in self.traces],
                "warmup": [t.warmup_time for t in self.traces],
                "sample": [t.sampling_time for t in self.traces],
            }
        )

    def summary(self) -> pd.DataFrame:
        """Posterior mean, sd and 90% interval per parameter."""
        draws = self.draws()[self.model.param_names]
        return pd.DataFrame(
            {
                "mean": draws.mean(),
                "sd": draws.std(),
                "q5": draws.quantile(0.05),
                "q95": draws.quantile(0.95),
            }
        )


def fit_model(
    data: pd.DataFrame,
    predictors: Optional[Sequence[str]] = None,
    response: str = "y",
    prior: Prior = Prior(),
    chains: int = 4,
    iter: int = 2000,
    warmup: Optional[int] = None,
    seed: Optional[int] = None,
    inits: Any = "random",
    threads: Any = None,
    use_numba: bool = True,
    inv_metric: Optional[np.ndarray] = None,
    step_size: Optional[float] = None,
    adapt_engaged: bool = True,
    save_warmup: bool = False,
    max_treedepth: int = 10,
    target_accept: float = 0.8,
) -> FittedModel:
    """Fit ``response ~ 1 + predictors`` with a Poisson likelihood.

    Parameters
    ----------
    data : pd.DataFrame
        Observations.
    chains : int
        Number of chains, run one after another. ``0`` only builds the
        model and kernel (useful as a template for :meth:`FittedModel.update`).
    iter : int
        Iterations per chain including warmup.
    warmup : int, optional
        Warmup iterations per chain. Defaults to ``iter // 2``.
    seed : int, optional
        Seed; each chain draws from its own spawned stream.
    inits : str, number, sequence, mapping or list of mappings
        Starting values, see :func:`resolve_inits`.
    threads : ThreadingConfig, int or None
        Within-chain threading. An int is a thread count with default
        grainsize and dynamic scheduling.
    use_numba : bool
        Numba partial-sum kernel (threaded) instead of the NumPy reference.
    inv_metric, step_size : optional
        Starting sampler tuning, e.g. from :meth:`FittedModel.warmup_info`.
    adapt_engaged : bool
        Adapt step size and metric during warmup.

    Returns
    -------
    FittedModel
    """
    model = PoissonRegression(data, predictors=predictors, response=response, prior=prior)

    threading = ThreadingConfig.coerce(threads)
    threading = ThreadingConfig(
        threads=threading.threads,
        grainsize=threading.resolve_grainsize(model.N),
        static=threading.static,
    )

    if warmup is None:
        warmup = iter // 2
    if chains < 0:
        raise ValueError(f"chains must be >= 0, got {chains}")
    if chains > 0 and not (0 <= warmup <= iter and iter >= 1):
        raise ValueError(f"Need iter >= 1 and 0 <= warmup <= iter, got iter={iter}, warmup={warmup}")

    settings = {
        "chains": chains,
        "iter": iter,
        "warmup": warmup,
        "seed": seed,
        "inits": inits,
        "threads": threading,
        "use_numba": use_numba,
        "inv_metric": inv_metric,
        "step_size": step_size,
        "adapt_engaged": adapt_engaged,
        "save_warmup": save_warmup,
        "max_treedepth": max_treedepth,
        "target_accept": target_accept,
    }

    kernel = create_kernel(use_numba=use_numba, threads=threading.threads, static=threading.static)
    kernel.warmup()

    def log_density(beta):
        return model.log_density(beta, kernel, threading.grainsize)

    streams = np.random.SeedSequence(seed).spawn(max(chains, 1))
    traces = []
    for chain, chain_init in enumerate(_chain_inits(inits, chains)):
        rng = np.random.default_rng(streams[chain])
        theta0 = resolve_inits(chain_init, model.param_names, rng)
        sampler = NUTSSampler(
            log_density,
            model.n_params,
            rng,
            step_size=step_size,
            inv_metric=inv_metric,
            max_treedepth=max_treedepth,
            target_accept=target_accept,
        )
        traces.append(
            sampler.sample(
                theta0,
                n_warmup=warmup,
                n_samples=iter - warmup,
                adapt_engaged=adapt_engaged,
                save_warmup=save_warmup,
                chain=chain,
            )
        )

    accept = [a for t in traces for a in t.accept_stat[t.n_warmup_saved:]]
    metrics = FitMetrics(
        chains=chains,
        iterations=iter if chains else 0,
        warmup=warmup if chains else 0,
        warmup_time=sum(t.warmup_time for t in traces),
        sampling_time=sum(t.sampling_time for t in traces),
        num_leapfrog=int(sum(t.total_leapfrog for t in traces)),
        divergences=int(sum(sum(t.divergent[t.n_warmup_saved:]) for t in traces)),
        mean_accept_stat=float(np.mean(accept)) if accept else None,
        observed_numba_threads=kernel.observed_numba_threads,
    )

    if chains:
        log.info(
            f"Fitted {chains} chain(s), iter={iter}, warmup={warmup}, threads={threading.threads}, "
            f"grainsize={threading.grainsize}, static={threading.static}: "
            f"{metrics.total_time:.3f}s, {metrics.num_leapfrog} leapfrog steps"
        )
    else:
        log.debug(f"Built model without sampling: {threading}")

    return FittedModel(model, settings, threading, traces, metrics)
