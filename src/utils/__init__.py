"""Utility modules for running and reporting threading benchmarks.

Submodules:
- config: Repository root, project config, cleanup
- datatools: Data/figure directories and result table I/O
- mlflow: MLflow tracking setup and run logging
- plotting: Benchmark figure styling and palettes
- runners: Discovery and execution of experiment scripts

Import examples:
    from utils import plotting     # Auto-applies figure styles
    from utils import runners      # Script execution
    from utils.mlflow import start_mlflow_run_context
    from utils.config import get_repo_root, load_project_config
"""

import warnings

# Suppress MLflow FutureWarning about filesystem backend deprecation
warnings.filterwarnings("ignore", category=FutureWarning, module="mlflow")

from . import config, datatools, mlflow, plotting, runners  # noqa: E402

# Re-export common config functions for convenience
from .config import get_repo_root  # noqa: E402

__all__ = [
    "config",
    "datatools",
    "mlflow",
    "plotting",
    "runners",
    "get_repo_root",
]
