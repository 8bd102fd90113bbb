"""MLflow utilities for benchmark tracking.

Provides:
- Tracking setup (local file store or Databricks)
- Context manager for parent/child run orchestration
- Logging of parameters, metrics, result tables and artifacts
"""

from .io import (
    setup_mlflow_tracking,
    start_mlflow_run_context,
    log_parameters,
    log_metrics_dict,
    log_results_table,
    log_artifact_file,
)

__all__ = [
    "setup_mlflow_tracking",
    "start_mlflow_run_context",
    "log_parameters",
    "log_metrics_dict",
    "log_results_table",
    "log_artifact_file",
]
