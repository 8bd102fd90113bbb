"""
Threading Benchmark Runner - simulate data, fit a baseline, sweep threading setups.

Usage:
    uv run python run_benchmark.py
    uv run python run_benchmark.py experiment=scaling
    uv run python run_benchmark.py experiment=scaling benchmark.static=true mlflow=off
    uv run python run_benchmark.py -m benchmark.static=false,true
"""

import logging
import platform
import socket
from pathlib import Path

import hydra
import pandas as pd
from hydra.core.hydra_config import HydraConfig
from omegaconf import DictConfig, OmegaConf

log = logging.getLogger(__name__)


def _get_hardware_info() -> dict:
    """Hostname, CPU model and thread budget of this process."""
    import numba

    return {
        "hostname": socket.gethostname(),
        "cpu_model": platform.processor() or "unknown",
        "numba_max_threads": numba.config.NUMBA_NUM_THREADS,
        "threading_layer": numba.config.THREADING_LAYER,
    }


def _fit_baseline(cfg: DictConfig):
    """Simulate the data set and fit the baseline model."""
    from ReduceSum import ThreadingConfig, fit_model, simulate_poisson_data

    data = simulate_poisson_data(
        cfg.data.N,
        intercept=cfg.data.intercept,
        slopes=list(cfg.data.slopes),
        seed=cfg.data.seed,
    )
    log.info(f"Simulated N={len(data)} observations, fitting baseline model")

    baseline = fit_model(
        data,
        chains=cfg.baseline.chains,
        iter=cfg.baseline.iter,
        warmup=cfg.baseline.get("warmup"),
        seed=cfg.baseline.seed,
        use_numba=cfg.baseline.use_numba,
        threads=ThreadingConfig(threads=1),
    )
    log.info(f"Baseline posterior:\n{baseline.summary()}")
    return baseline


def derive_columns(table: pd.DataFrame, N: int) -> pd.DataFrame:
    """Add chunks, slowdown, speedup and per-leapfrog runtime."""
    from ReduceSum import analysis

    table = analysis.add_chunks(table, N)
    table = analysis.add_runtime_per_leapfrog(table)
    slowdown = analysis.add_slowdown(table)[["slowdown"]]
    speedup = analysis.add_speedup(table)[["speedup", "efficiency"]]
    return pd.concat([table, slowdown, speedup], axis=1)


def _log_results(cfg: DictConfig, table: pd.DataFrame, baseline, hw_info: dict, output_dir: Path):
    """Log sweep parameters, baseline metrics and the result table to MLflow."""
    from utils.mlflow import (
        log_artifact_file,
        log_metrics_dict,
        log_parameters,
        log_results_table,
        setup_mlflow_tracking,
        start_mlflow_run_context,
    )

    setup_mlflow_tracking(mode=cfg.mlflow.mode)

    b = cfg.benchmark
    policy = "static" if b.static else "dynamic"
    run_name = f"{cfg.experiment_name}_{policy}_N{cfg.data.N}"

    with start_mlflow_run_context(
        experiment_name=cfg.experiment_name, parent_run_name=f"N{cfg.data.N}", child_run_name=run_name
    ):
        log_parameters({
            "N": cfg.data.N,
            "cores": ",".join(map(str, b.cores)),
            "grainsize": ",".join(map(str, b.grainsize)),
            "iterations": ",".join(map(str, b.iterations)),
            "static": b.static,
            "seed": b.seed,
            **hw_info,
        })
        log_metrics_dict({f"baseline_{k}": v for k, v in baseline.metrics.to_mlflow().items()})
        log_metrics_dict({
            "min_runtime": table["runtime"].min(),
            "max_runtime": table["runtime"].max(),
            "max_speedup": table["speedup"].max(),
        })
        log_results_table(table)

        job_log = output_dir / f"{HydraConfig.get().job.name}.log"
        if job_log.exists():
            log_artifact_file(job_log, artifact_path="logs")


@hydra.main(config_path="Experiments/hydra-conf", config_name="config", version_base=None)
def main(cfg: DictConfig) -> None:
    """Entry point - one benchmark sweep per Hydra job."""
    from ReduceSum import benchmark_threading
    from utils.datatools import save_results

    log.info(f"Config:\n{OmegaConf.to_yaml(cfg)}")
    hw_info = _get_hardware_info()
    log.info(f"Hardware: {hw_info}")

    baseline = _fit_baseline(cfg)

    b = cfg.benchmark
    cores = [c for c in b.cores if c <= hw_info["numba_max_threads"]]
    if len(cores) < len(b.cores):
        log.warning(
            f"Skipping cores {sorted(set(b.cores) - set(cores))}: "
            f"only {hw_info['numba_max_threads']} Numba threads available"
        )

    table = benchmark_threading(
        baseline,
        cores=cores,
        grainsize=list(b.grainsize),
        iterations=list(b.iterations),
        static=b.static,
        inits=OmegaConf.to_container(b.inits) if OmegaConf.is_config(b.inits) else b.inits,
        seed=b.seed,
    )
    table = derive_columns(table, cfg.data.N)
    log.info(f"Results:\n{table.to_string(index=False)}")

    output_dir = Path(HydraConfig.get().runtime.output_dir)
    path = save_results(table, output_dir / "benchmark.parquet")
    log.info(f"Saved results to {path}")

    if cfg.mlflow.enabled:
        _log_results(cfg, table, baseline, hw_info, output_dir)


if __name__ == "__main__":
    main()
