"""Cleanup of generated benchmark data, figures, tracking runs and caches.

Provides configurable removal of build artifacts, caches, Hydra outputs,
local MLflow runs and the generated ``data/`` and ``figures/`` trees.
"""

import shutil
from pathlib import Path
from typing import List, Optional, Tuple

from .paths import get_repo_root
from .project import get_config_section

DEFAULT_DIRECTORIES = [
    "build",
    "dist",
    ".pytest_cache",
    ".ruff_cache",
]

DEFAULT_PATTERNS = [
    "__pycache__",
    "*.pyc",
    ".DS_Store",
    "mlruns",
    "multirun",
    "outputs",
]


def _remove_item(path: Path) -> Tuple[bool, Optional[str]]:
    """Remove a file or directory.

    Returns
    -------
    tuple
        (success, error_message)
    """
    try:
        if path.is_dir():
            shutil.rmtree(path)
        else:
            path.unlink()
        return True, None
    except OSError as e:
        return False, str(e)


def clean_directories(
    directories: Optional[List[str]] = None,
    repo_root: Optional[Path] = None,
) -> Tuple[int, int]:
    """Remove whole directories.

    Parameters
    ----------
    directories : list of str, optional
        Directories relative to the repo root. Defaults to
        ``DEFAULT_DIRECTORIES`` plus the configured figures directory.
    repo_root : Path, optional
        Repository root path.

    Returns
    -------
    tuple
        (cleaned_count, failed_count)
    """
    if repo_root is None:
        repo_root = get_repo_root()
    if directories is None:
        figures_dir = get_config_section("data").get("figures_dir", "figures")
        directories = [figures_dir] + DEFAULT_DIRECTORIES

    cleaned, failed = 0, 0
    for d in directories:
        path = repo_root / d
        if path.exists():
            success, _ = _remove_item(path)
            cleaned += success
            failed += not success
    return cleaned, failed


def clean_patterns(
    patterns: Optional[List[str]] = None,
    repo_root: Optional[Path] = None,
) -> Tuple[int, int]:
    """Remove files and directories matching glob patterns anywhere in the repo.

    Parameters
    ----------
    patterns : list of str, optional
        Glob patterns passed to ``Path.rglob``. Defaults to
        ``DEFAULT_PATTERNS``.
    repo_root : Path, optional
        Repository root path.

    Returns
    -------
    tuple
        (cleaned_count, failed_count)
    """
    if repo_root is None:
        repo_root = get_repo_root()
    if patterns is None:
        patterns = DEFAULT_PATTERNS

    cleaned, failed = 0, 0
    for pattern in patterns:
        for path in repo_root.rglob(pattern):
            if not path.exists():  # parent already removed
                continue
            success, _ = _remove_item(path)
            cleaned += success
            failed += not success
    return cleaned, failed


def clean_data_directory(
    data_dir: Optional[str] = None,
    preserve: Optional[List[str]] = None,
    repo_root: Optional[Path] = None,
) -> Tuple[int, int]:
    """Empty the data directory, keeping the directory itself.

    Parameters
    ----------
    data_dir : str, optional
        Data directory relative to the repo root. Defaults to the
        configured ``data.data_dir``.
    preserve : list of str, optional
        File names to keep. Defaults to ``README.md`` and ``.gitkeep``.
    repo_root : Path, optional
        Repository root path.

    Returns
    -------
    tuple
        (cleaned_count, failed_count)
    """
    if repo_root is None:
        repo_root = get_repo_root()
    if data_dir is None:
        data_dir = get_config_section("data").get("data_dir", "data")
    if preserve is None:
        preserve = ["README.md", ".gitkeep"]

    data_path = repo_root / data_dir
    if not data_path.exists():
        return 0, 0

    cleaned, failed = 0, 0
    for item in data_path.iterdir():
        if item.name not in preserve:
            success, _ = _remove_item(item)
            cleaned += success
            failed += not success
    return cleaned, failed


def clean_all() -> None:
    """Clean all generated files and caches, printing a summary."""
    print("\nCleaning all generated files and caches...")

    total_cleaned, total_failed = 0, 0
    for step in (clean_directories, clean_patterns, clean_data_directory):
        c, f = step()
        total_cleaned += c
        total_failed += f

    if total_cleaned:
        print(f"  ✓ Cleaned {total_cleaned} items")
    if total_failed:
        print(f"  ✗ Failed to clean {total_failed} items")
    if not total_cleaned and not total_failed:
        print("  Nothing to clean")
    print()
