"""Derived columns for benchmark result tables.

The harness only records configurations and runtimes. These helpers add
the quantities used to read the chunking and scaling plots:

- chunks: number of partial sums, ceil(N / grainsize)
- slowdown: runtime relative to the fewest-chunks run with equal cores/iter
- speedup S(P) = T(P_ref) / T(P), with P_ref the smallest core count
- efficiency E(P) = S(P) * P_ref / P
"""

import numpy as np
import pandas as pd


def add_chunks(df: pd.DataFrame, N: int) -> pd.DataFrame:
    """Add ``chunks`` for a data set with ``N`` observations."""
    df = df.copy()
    df["chunks"] = np.ceil(N / df["grainsize"]).astype(int)
    return df


def add_slowdown(df: pd.DataFrame, group_cols=("cores", "iter")) -> pd.DataFrame:
    """Add ``runtime_ref``, ``num_leapfrog_ref`` and ``slowdown``.

    The reference of each group is the run with the largest grainsize,
    i.e. the least chunking overhead.
    """
    df = df.copy()
    group_cols = list(group_cols)
    ref_idx = df.groupby(group_cols)["grainsize"].idxmax()
    ref = df.loc[ref_idx, group_cols + ["runtime", "num_leapfrog"]].rename(
        columns={"runtime": "runtime_ref", "num_leapfrog": "num_leapfrog_ref"}
    )
    df = df.merge(ref, on=group_cols, how="left")
    df["slowdown"] = df["runtime"] / df["runtime_ref"]
    return df


def add_speedup(df: pd.DataFrame, group_cols=("grainsize", "iter")) -> pd.DataFrame:
    """Add ``cores_ref``, ``runtime_ref``, ``speedup`` and ``efficiency``.

    The reference of each group is the run with the fewest cores.
    """
    df = df.copy()
    group_cols = list(group_cols)
    ref_idx = df.groupby(group_cols)["cores"].idxmin()
    ref = df.loc[ref_idx, group_cols + ["cores", "runtime"]].rename(
        columns={"cores": "cores_ref", "runtime": "runtime_ref"}
    )
    df = df.merge(ref, on=group_cols, how="left")
    df["speedup"] = df["runtime_ref"] / df["runtime"]
    df["efficiency"] = df["speedup"] * df["cores_ref"] / df["cores"]
    return df


def add_runtime_per_leapfrog(df: pd.DataFrame) -> pd.DataFrame:
    """Add ``runtime_per_leapfrog`` (seconds per gradient evaluation)."""
    df = df.copy()
    df["runtime_per_leapfrog"] = df["runtime"] / df["num_leapfrog"].replace(0, np.nan)
    return df
