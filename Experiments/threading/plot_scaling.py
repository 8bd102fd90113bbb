"""
Thread Scaling Plots
====================

Speedup and parallel efficiency against the number of threads, one line
per grainsize, one figure per scheduling policy.
"""

# %%
# Setup
# -----

from utils import plotting  # Apply figure style
from utils.datatools import get_data_dir, get_figures_dir, load_results

df = load_results(get_data_dir() / "scaling.parquet")
fig_dir = get_figures_dir()

# %%
# Speedup and Efficiency
# ----------------------

for static, group in df.groupby("static"):
    policy = "static" if static else "dynamic"
    fig = plotting.plot_scaling(
        group,
        title=plotting.build_parameter_string(
            {"iter": group["iter"].tolist(), "scheduler": policy}
        ),
    )
    fig.savefig(fig_dir / f"scaling_{policy}.pdf")
    print(f"Saved: {fig_dir / f'scaling_{policy}.pdf'}")
