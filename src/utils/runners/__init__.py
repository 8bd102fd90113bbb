"""Script execution utilities.

- discover_scripts: Find scripts by pattern in Experiments/
- run_scripts_parallel / run_scripts_sequential: Run a list of scripts
- run_compute_scripts / run_plot_scripts: Run all compute or plot scripts
"""

from .scripts import (
    discover_scripts,
    run_scripts_parallel,
    run_scripts_sequential,
    run_plot_scripts,
    run_compute_scripts,
)

__all__ = [
    "discover_scripts",
    "run_scripts_parallel",
    "run_scripts_sequential",
    "run_plot_scripts",
    "run_compute_scripts",
]
