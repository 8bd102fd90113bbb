"""
Chunking Overhead
=================

Split the Poisson log likelihood into more and more partial sums while
running on a single core. With one core every extra chunk is pure
overhead, so this sweep shows how small the grainsize can get before the
bookkeeping dominates.

"""
import numpy as np
import pandas as pd

from ReduceSum import ThreadingConfig, benchmark_threading, fit_model, simulate_poisson_data
from ReduceSum import analysis
from utils.datatools import get_data_dir, save_results

# %%
# Data and Baseline Fit
# ---------------------
#
# The baseline fit provides the adapted step size and inverse metric.
# Every benchmark fit reuses them without adaptation, starting from the
# same initial values with the same seed.

N = 2**12
data = simulate_poisson_data(N, intercept=0.5, slopes=[0.3], seed=42)

baseline = fit_model(data, chains=1, iter=1000, seed=1, threads=ThreadingConfig(threads=1))
print(baseline.summary())

# %%
# Sweep Configuration
# -------------------
#
# Grainsizes from a single chunk (grainsize = N) down to 64 chunks, for
# three run lengths.

grainsizes = [N // 2**k for k in range(7)]
iterations = [25, 50, 100]

# %%
# Run Benchmark
# -------------

records = []
for static in (False, True):
    print(f"\nstatic={static}")
    table = benchmark_threading(
        baseline, cores=[1], grainsize=grainsizes, iterations=iterations, static=static, inits=0.0
    )
    records.append(table)

df = pd.concat(records, ignore_index=True)
df = analysis.add_chunks(df, N)
df = analysis.add_slowdown(df, group_cols=("cores", "iter", "static"))
df = analysis.add_runtime_per_leapfrog(df)

print(df[["static", "iter", "chunks", "runtime", "slowdown"]].to_string(index=False))
print(f"\nMedian slowdown at {df['chunks'].max()} chunks: "
      f"{np.median(df.loc[df['chunks'] == df['chunks'].max(), 'slowdown']):.2f}x")

# %%
# Save Results
# ------------

output_path = save_results(df, get_data_dir() / "chunking.parquet")
print(f"Saved to: {output_path}")
