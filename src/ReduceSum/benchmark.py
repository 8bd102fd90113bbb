"""Threading benchmark harness.

Re-fits a template model once per combination of candidate thread counts,
grainsizes and iteration counts, timing each fit. Every fit uses one chain,
a fixed seed, fixed initial values and the warmup tuning of the baseline
fit without further adaptation, so runtimes differ only through the
threading setup.

The sweep is strictly sequential and fail-fast: an error in any fit
propagates and no table is returned.
"""

import itertools
import logging
import numbers
import time
from typing import Any, Callable, Iterable, List

import pandas as pd

from .datastructures import BenchmarkRow, ThreadingConfig, TuningConfig
from .fitting import BaseFit

log = logging.getLogger(__name__)


def _as_candidates(name: str, values) -> List[int]:
    if isinstance(values, numbers.Integral):
        values = [values]
    values = list(values)
    if not values:
        raise ValueError(f"{name} needs at least one candidate value")
    return values


def tuning_grid(
    cores: Iterable[int],
    grainsize: Iterable[int],
    iterations: Iterable[int],
    static: bool = False,
    inits: Any = 0.0,
) -> List[TuningConfig]:
    """Cross product of candidates, ``cores`` varying slowest."""
    return [
        TuningConfig(cores=c, grainsize=g, iter=i, static=static, inits=inits)
        for c, g, i in itertools.product(
            _as_candidates("cores", cores),
            _as_candidates("grainsize", grainsize),
            _as_candidates("iterations", iterations),
        )
    ]


def results_to_frame(rows: List[BenchmarkRow]) -> pd.DataFrame:
    """Result table with one row per benchmark row, in sweep order."""
    return pd.DataFrame([row.to_record() for row in rows], columns=list(BenchmarkRow.COLUMNS))


def benchmark_threading(
    model: BaseFit,
    cores=(1,),
    grainsize=(1,),
    iterations=(100,),
    static: bool = False,
    inits: Any = 0.0,
    seed: int = 1234,
    clock: Callable[[], float] = time.perf_counter,
) -> pd.DataFrame:
    """Time single-chain re-fits of ``model`` over a threading grid.

    Parameters
    ----------
    model : BaseFit
        Baseline fit. Supplies data, priors and the adapted step size and
        inverse metric.
    cores, grainsize, iterations : int or iterable of int
        Candidate thread counts, partial-sum sizes and sampling iterations.
    static : bool
        Scheduling policy, fixed for the whole sweep.
    inits : any
        Starting values, fixed for the whole sweep. ``"draw"`` uses the
        first posterior draw of ``model``.
    seed : int
        Sampler seed used for every fit.
    clock : callable
        Returns seconds; elapsed time of each fit is the difference of two
        calls.

    Returns
    -------
    pd.DataFrame
        Columns ``cores, grainsize, iter, static, num_leapfrog, runtime``.
    """
    if isinstance(inits, str) and inits == "draw":
        inits = model.extract_draw(0)
    grid = tuning_grid(cores, grainsize, iterations, static=static, inits=inits)

    winfo = model.warmup_info()

    # Install the threading setup once; not timed
    scaling_model = model.update(
        chains=0,
        inits=inits,
        threads=ThreadingConfig(threads=1, grainsize=grid[0].grainsize, static=static),
    )
    if getattr(scaling_model, "settings", {}).get("use_numba") is False:
        log.warning(
            "Template uses the NumPy kernel: cores and static have no effect on the timings"
        )

    log.info(f"Benchmarking {len(grid)} configurations (static={static}, seed={seed})")

    rows = []
    for config in grid:
        t0 = clock()
        fit = scaling_model.update(
            chains=1,
            warmup=0,
            iter=config.iter,
            seed=seed,
            inits=inits,
            threads=config.threading(),
            step_size=winfo.step_size,
            inv_metric=winfo.inv_metric,
            adapt_engaged=False,
            save_warmup=True,
        )
        runtime = clock() - t0

        row = BenchmarkRow(config=config, runtime=runtime, num_leapfrog=fit.num_leapfrog())
        rows.append(row)
        log.info(
            f"cores={config.cores}, grainsize={config.grainsize}, iter={config.iter}: "
            f"{runtime:.3f}s, {row.num_leapfrog} leapfrog steps"
        )

    return results_to_frame(rows)
