"""
Thread Scaling
==============

Run the same fit on 1, 2, 4, ... threads at a fixed grainsize and measure
the speedup over one thread. Only thread counts Numba can actually
provide on this machine are used.

"""
import numba
import pandas as pd

from ReduceSum import ThreadingConfig, benchmark_threading, fit_model, simulate_poisson_data
from ReduceSum import analysis
from utils.datatools import get_data_dir, save_results

# %%
# Data and Baseline Fit
# ---------------------

N = 2**14
data = simulate_poisson_data(N, intercept=0.5, slopes=[0.3, -0.2], seed=42)

baseline = fit_model(data, chains=1, iter=1000, seed=1, threads=ThreadingConfig(threads=1))
print(baseline.summary())

# %%
# Sweep Configuration
# -------------------
#
# Two grainsizes: one that gives each thread several chunks and one that
# gives it many. Both scheduling policies are compared.

max_threads = numba.config.NUMBA_NUM_THREADS
cores = [c for c in (1, 2, 4, 8, 16) if c <= max_threads]
grainsizes = [N // 64, N // 16]
iterations = [50]

print(f"Numba threads available: {max_threads}, sweeping cores={cores}")

# %%
# Run Benchmark
# -------------

records = []
for static in (False, True):
    print(f"\nstatic={static}")
    records.append(
        benchmark_threading(
            baseline, cores=cores, grainsize=grainsizes, iterations=iterations, static=static
        )
    )

df = pd.concat(records, ignore_index=True)
df = analysis.add_chunks(df, N)
df = analysis.add_speedup(df, group_cols=("grainsize", "iter", "static"))

print(df[["static", "grainsize", "cores", "runtime", "speedup", "efficiency"]].to_string(index=False))

# %%
# Save Results
# ------------

output_path = save_results(df, get_data_dir() / "scaling.parquet")
print(f"Saved to: {output_path}")
