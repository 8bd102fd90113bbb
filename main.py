#!/usr/bin/env python3
"""Main entry point for project management - CLI driven."""

import argparse
import os
import subprocess
import sys
import time
import webbrowser
from pathlib import Path

# Ensure src directory is in python path
sys.path.append(str(Path(__file__).parent / "src"))

from utils import runners  # noqa: E402
from utils.config import clean_all, get_repo_root  # noqa: E402


def start_mlflow_ui(port: int = 5000) -> bool:
    """Start the MLflow UI in the background and open it in a browser."""
    print("\nStarting MLflow UI...")
    try:
        with open(get_repo_root() / "mlflow_ui.log", "w") as log_file:
            process = subprocess.Popen(
                ["uv", "run", "mlflow", "ui", "--port", str(port)],
                stdout=log_file,
                stderr=subprocess.STDOUT,
                cwd=str(get_repo_root()),
                start_new_session=True,
            )
    except FileNotFoundError:
        print("  ✗ 'uv' command not found. Ensure uv is installed and in PATH.")
        return False

    print(f"  ✓ MLflow UI started with PID {process.pid} (logs: mlflow_ui.log)")
    time.sleep(3)
    url = f"http://localhost:{port}"
    webbrowser.open_new_tab(url)
    print(f"  → Open: {url}")
    return True


def run_benchmark(overrides):
    """Run the Hydra benchmark runner with optional overrides."""
    cmd = [sys.executable, str(get_repo_root() / "run_benchmark.py"), *overrides]
    print(f"\nRunning: {' '.join(cmd)}")
    return subprocess.run(cmd, cwd=str(get_repo_root()), env=os.environ.copy()).returncode == 0


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Project management for within-chain threading benchmarks",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="Example: python main.py --benchmark experiment=scaling benchmark.static=true",
    )

    actions = parser.add_argument_group("Actions")
    actions.add_argument("--clean", action="store_true", help="Clean all generated files and caches")
    actions.add_argument("--compute", action="store_true", help="Run all compute scripts (sequentially)")
    actions.add_argument("--plot", action="store_true", help="Run all plotting scripts (in parallel)")
    actions.add_argument("--benchmark", nargs="*", metavar="OVERRIDE",
                         help="Run run_benchmark.py with Hydra overrides")
    actions.add_argument("--mlflow-ui", action="store_true", help="Start MLflow UI and open in browser")

    if len(sys.argv) == 1:
        parser.print_help()
        sys.exit(1)

    args = parser.parse_args()
    ok = True

    # Execute commands in logical order
    if args.clean:
        clean_all()

    if args.compute:
        _, failed = runners.run_compute_scripts()
        ok = ok and not failed

    if args.benchmark is not None:
        ok = run_benchmark(args.benchmark) and ok

    if args.plot:
        _, failed = runners.run_plot_scripts()
        ok = ok and not failed

    if args.mlflow_ui:
        ok = start_mlflow_ui() and ok

    if not ok:
        sys.exit(1)


if __name__ == "__main__":
    main()
