"""Discovery and execution of experiment scripts.

Compute scripts run one after another (they time things and must not
compete for cores); plot scripts run in parallel.
"""

import subprocess
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import List, Optional, Tuple

from ..config import get_config_section, get_repo_root


def discover_scripts(pattern: str, directory: str = "Experiments") -> List[Path]:
    """Find experiment scripts by name.

    Parameters
    ----------
    pattern : str
        Substring the file name must contain, e.g. ``"compute"`` or ``"plot"``.
    directory : str
        Directory relative to the repo root, searched recursively.

    Returns
    -------
    list of Path
        Sorted script paths; empty if the directory does not exist.
    """
    search_dir = get_repo_root() / directory
    if not search_dir.exists():
        return []

    return sorted(
        p
        for p in search_dir.rglob("*.py")
        if p.is_file() and pattern in p.name and p.name != "__init__.py"
    )


def _run_single_script(
    script: Path,
    repo_root: Path,
    timeout: int,
    interpreter: str,
) -> Tuple[Path, bool, Optional[str]]:
    """Run one script.

    Returns
    -------
    tuple
        (display_path, success, error_message)
    """
    display_path = script.relative_to(repo_root)
    try:
        result = subprocess.run(
            interpreter.split() + [str(script)],
            capture_output=True,
            text=True,
            timeout=timeout,
            cwd=str(repo_root),
        )
    except subprocess.TimeoutExpired:
        return display_path, False, "timeout"
    except OSError as e:
        return display_path, False, str(e)

    if result.returncode == 0:
        return display_path, True, None
    error_msg = result.stderr[-300:] if result.stderr else ""
    return display_path, False, f"exit {result.returncode}: {error_msg}"


def run_scripts_parallel(
    scripts: List[Path],
    timeout: int = 180,
    interpreter: str = "uv run python",
    max_workers: int = None,
) -> Tuple[int, int]:
    """Run scripts concurrently in a thread pool.

    Parameters
    ----------
    scripts : list of Path
        Scripts to execute.
    timeout : int
        Timeout per script in seconds.
    interpreter : str
        Command used to run each script, split on whitespace.
    max_workers : int, optional
        Thread pool size. Defaults to the executor's choice.

    Returns
    -------
    tuple
        (success_count, fail_count)
    """
    if not scripts:
        print("  No scripts to run")
        return 0, 0

    repo_root = get_repo_root()
    print(f"\nRunning {len(scripts)} scripts in parallel...\n")

    success_count, fail_count = 0, 0
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = [
            executor.submit(_run_single_script, script, repo_root, timeout, interpreter)
            for script in scripts
        ]
        for future in as_completed(futures):
            display_path, success, error_msg = future.result()
            if success:
                print(f"  ✓ {display_path}")
                success_count += 1
            else:
                print(f"  ✗ {display_path} ({error_msg})")
                fail_count += 1

    print(f"\n  Summary: {success_count} succeeded, {fail_count} failed\n")
    return success_count, fail_count


def run_scripts_sequential(
    scripts: List[Path],
    timeout: int = 1800,
    interpreter: str = "uv run python",
) -> Tuple[int, int]:
    """Run scripts one at a time.

    Compute scripts time things and must not compete for cores.

    Parameters
    ----------
    scripts : list of Path
        Scripts to execute, in order.
    timeout : int
        Timeout per script in seconds.
    interpreter : str
        Command used to run each script, split on whitespace.

    Returns
    -------
    tuple
        (success_count, fail_count)
    """
    if not scripts:
        print("  No scripts to run")
        return 0, 0

    repo_root = get_repo_root()
    print(f"\nRunning {len(scripts)} scripts sequentially...\n")

    success_count, fail_count = 0, 0
    for script in scripts:
        print(f"  → {script.relative_to(repo_root)}...", end=" ", flush=True)
        _, success, error_msg = _run_single_script(script, repo_root, timeout, interpreter)
        if success:
            print("✓")
            success_count += 1
        else:
            print(f"✗ ({error_msg})")
            fail_count += 1

    print(f"\n  Summary: {success_count} succeeded, {fail_count} failed\n")
    return success_count, fail_count


def run_compute_scripts() -> Tuple[int, int]:
    """Run all ``compute_*`` scripts sequentially.

    Timeout and interpreter come from the ``runners`` section of the
    project config.

    Returns
    -------
    tuple
        (success_count, fail_count)
    """
    cfg = get_config_section("runners")
    return run_scripts_sequential(
        discover_scripts("compute"),
        timeout=cfg.get("compute_timeout", 1800),
        interpreter=cfg.get("interpreter", "uv run python"),
    )


def run_plot_scripts() -> Tuple[int, int]:
    """Run all ``plot_*`` scripts in parallel.

    Returns
    -------
    tuple
        (success_count, fail_count)
    """
    cfg = get_config_section("runners")
    return run_scripts_parallel(
        discover_scripts("plot"),
        timeout=cfg.get("plot_timeout", 180),
        interpreter=cfg.get("interpreter", "uv run python"),
    )
