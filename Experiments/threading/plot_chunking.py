"""
Chunking Overhead Plots
=======================

Runtime and slowdown against the number of partial sums on a single core,
one line per number of iterations, one figure per scheduling policy.
"""

# %%
# Setup
# -----

from utils import plotting  # Apply figure style
from utils.datatools import get_data_dir, get_figures_dir, load_results

df = load_results(get_data_dir() / "chunking.parquet")
fig_dir = get_figures_dir()

# %%
# Slowdown vs. Chunks
# -------------------

for static, group in df.groupby("static"):
    policy = "static" if static else "dynamic"
    fig = plotting.plot_chunking(
        group,
        title=plotting.build_parameter_string(
            {"cores": group["cores"].tolist(), "scheduler": policy}
        ),
    )
    fig.savefig(fig_dir / f"chunking_{policy}.pdf")
    print(f"Saved: {fig_dir / f'chunking_{policy}.pdf'}")
