"""Data utilities for benchmark outputs.

This module provides utilities for:
- Path management (data/ and figures/ mirroring Experiments/)
- Result table I/O (parquet)
"""

from __future__ import annotations

import inspect
from pathlib import Path

import pandas as pd

from .config import get_config_section, get_repo_root


# ==============================================================================
# Path Management
# ==============================================================================


def get_experiment_name(caller_file: Path | str | None = None) -> str:
    """Get experiment name from the calling script's location.

    - Experiments/threading/compute_chunking.py → "threading"

    Parameters
    ----------
    caller_file : Path or str, optional
        Path to the calling file. If None, automatically detects the caller.

    Raises
    ------
    ValueError
        If the file is not in a subdirectory of Experiments/
    """
    if caller_file is None:
        caller_file = inspect.stack()[1].filename

    parts = Path(caller_file).resolve().parts
    if "Experiments" not in parts:
        raise ValueError(
            f"File {caller_file} is not in an Experiments/ subdirectory. "
            "This utility is designed for scripts in Experiments/*/"
        )

    experiment_parts = parts[parts.index("Experiments") + 1 : -1]
    if not experiment_parts:
        raise ValueError(
            f"File {caller_file} is directly in Experiments/. "
            "Scripts should be in a subdirectory (e.g., Experiments/threading/)"
        )
    return "/".join(experiment_parts)


def _output_dir(kind: str, caller_file, create: bool) -> Path:
    # kind is "data" or "figures"; the directory name comes from project config
    dirname = get_config_section("data").get(f"{kind}_dir", kind)
    path = get_repo_root() / dirname / get_experiment_name(caller_file)
    if create:
        path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir(caller_file: Path | str | None = None, create: bool = True) -> Path:
    """Data directory for the calling experiment (repo_root/data/<experiment>/)."""
    if caller_file is None:
        caller_file = Path(inspect.stack()[1].filename)
    return _output_dir("data", caller_file, create)


def get_figures_dir(caller_file: Path | str | None = None, create: bool = True) -> Path:
    """Figures directory for the calling experiment (repo_root/figures/<experiment>/)."""
    if caller_file is None:
        caller_file = Path(inspect.stack()[1].filename)
    return _output_dir("figures", caller_file, create)


# ==============================================================================
# Result tables
# ==============================================================================


def save_results(df: pd.DataFrame, path: Path | str) -> Path:
    """Write a result table to parquet, creating parent directories."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_parquet(path, index=False)
    return path


def load_results(path: Path | str) -> pd.DataFrame:
    """Read a result table written by :func:`save_results`."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(
            f"No results at {path}. Run the matching compute script first."
        )
    return pd.read_parquet(path)
