"""MLflow I/O utilities for benchmark tracking.

This module provides helpers for:
- Setting up MLflow tracking (local file store or Databricks).
- Orchestrating MLflow runs (context manager for parent/nested runs).
- Logging parameters, metrics and benchmark result tables.
"""

import logging
import os
from contextlib import contextmanager
from pathlib import Path

import mlflow
import pandas as pd

log = logging.getLogger(__name__)

DEFAULT_PROJECT_PREFIX = "/Shared/ReduceSum-Threading"


def setup_mlflow_tracking(mode: str = "local"):
    """Configure MLflow tracking.

    Parameters
    ----------
    mode : str
        "databricks" or "local" (file store under ./mlruns).
    """
    if mode == "databricks":
        try:
            mlflow.login(backend="databricks", interactive=False)
            mlflow.set_tracking_uri("databricks")
            log.info("Connected to Databricks MLflow tracking.")
        except Exception as e:
            raise RuntimeError(
                "MLflow Databricks setup failed. Ensure credentials are configured."
            ) from e
    elif mode == "local":
        mlruns_uri = (Path.cwd() / "mlruns").as_uri()
        mlflow.set_tracking_uri(mlruns_uri)
        log.info(f"Using local file-based MLflow tracking backend: {mlruns_uri}")
    else:
        log.warning(f"Unknown MLflow mode '{mode}'. Using existing URI: {mlflow.get_tracking_uri()}")


def resolve_experiment_name(experiment_name: str, project_prefix: str = DEFAULT_PROJECT_PREFIX) -> str:
    """Prefix relative experiment names when tracking to Databricks."""
    if mlflow.get_tracking_uri() == "databricks" and not experiment_name.startswith("/"):
        return f"{project_prefix}/{experiment_name}"
    return experiment_name


@contextmanager
def start_mlflow_run_context(
    experiment_name: str,
    parent_run_name: str,
    child_run_name: str,
    project_prefix: str = DEFAULT_PROJECT_PREFIX,
):
    """Start a child run nested under a (reused) parent run.

    Parent runs are looked up by name so repeated sweeps of the same data
    set collect their child runs in one place.

    Parameters
    ----------
    experiment_name : str
        MLflow experiment. Prefixed with ``project_prefix`` on Databricks.
    parent_run_name : str
        Name of the parent run, created on first use.
    child_run_name : str
        Name of the nested run for this sweep.
    project_prefix : str
        Workspace folder for Databricks experiments.

    Yields
    ------
    mlflow.ActiveRun
        The active child run.
    """
    experiment_name = resolve_experiment_name(experiment_name, project_prefix)
    experiment = mlflow.set_experiment(experiment_name)
    log.info(f"Using MLflow experiment: {experiment_name}")

    client = mlflow.tracking.MlflowClient()
    parent_runs = client.search_runs(
        experiment_ids=[experiment.experiment_id],
        filter_string=f"tags.mlflow.runName = '{parent_run_name}' AND tags.is_parent = 'true'",
        max_results=1,
    )
    parent_run_id = parent_runs[0].info.run_id if parent_runs else None

    with mlflow.start_run(
        run_id=parent_run_id, run_name=parent_run_name, tags={"is_parent": "true"}
    ):
        with mlflow.start_run(run_name=child_run_name, nested=True) as child_run:
            env = (
                "hpc"
                if os.environ.get("LSB_JOBID") or os.environ.get("SLURM_JOB_ID")
                else "local"
            )
            mlflow.set_tag("environment", env)
            log.info(
                f"Started MLflow run '{child_run.info.run_name}' ({child_run.info.run_id}) [{env}]"
            )
            yield child_run


def log_parameters(params: dict):
    """Log parameters to the active run (bools as int, None dropped)."""
    mlflow.log_params(
        {k: (int(v) if isinstance(v, bool) else v) for k, v in params.items() if v is not None}
    )


def log_metrics_dict(metrics: dict):
    """Log metrics to the active run, filtering out None values."""
    mlflow.log_metrics({k: float(v) for k, v in metrics.items() if v is not None})


def log_results_table(df: pd.DataFrame, artifact_file: str = "benchmark.json"):
    """Log a benchmark result table and its per-row runtimes.

    Runtimes are also logged as a step metric so they show up as a chart
    in the MLflow UI.

    Parameters
    ----------
    df : pd.DataFrame
        Result table with at least a ``runtime`` column.
    artifact_file : str
        Artifact path of the table inside the run.
    """
    mlflow.log_table(df, artifact_file=artifact_file)
    for step, runtime in enumerate(df["runtime"]):
        mlflow.log_metric("runtime", float(runtime), step=step)
    log.info(f"Logged result table with {len(df)} rows to {artifact_file}")


def log_artifact_file(filepath: Path, artifact_path: str = None):
    """Log a file as an artifact to the active run."""
    filepath = Path(filepath)
    if filepath.exists():
        mlflow.log_artifact(str(filepath), artifact_path=artifact_path)
        log.info(f"Logged artifact: {filepath.name}")
    else:
        log.warning(f"Artifact file not found at {filepath}")
