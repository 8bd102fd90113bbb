"""Figures for chunking and scaling benchmarks.

Both functions take a result table that already carries the derived
columns from ``ReduceSum.analysis`` and return the matplotlib figure.
"""

import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns

from .palettes import THREADING, get_categorical


def plot_chunking(df: pd.DataFrame, title: str = None) -> plt.Figure:
    """Runtime and slowdown against number of chunks, one line per ``iter``.

    Needs columns ``chunks``, ``runtime``, ``slowdown``, ``iter``.
    """
    df = df.copy()
    df["iter"] = df["iter"].astype(str)
    palette = get_categorical(df["iter"].nunique())

    fig, axes = plt.subplots(1, 2, figsize=(12, 4.5))
    sns.lineplot(data=df, x="chunks", y="runtime", hue="iter", style="iter",
                 markers=True, dashes=False, palette=palette, ax=axes[0])
    axes[0].set(xscale="log", yscale="log", xlabel="Number of chunks",
                ylabel="Runtime [s]", title="Runtime")

    sns.lineplot(data=df, x="chunks", y="slowdown", hue="iter", style="iter",
                 markers=True, dashes=False, palette=palette, ax=axes[1])
    axes[1].axhline(1.0, color=THREADING["ideal"], linestyle="--", linewidth=1)
    axes[1].set(xscale="log", xlabel="Number of chunks",
                ylabel="Slowdown vs. fewest chunks", title="Chunking overhead")

    for ax in axes:
        ax.legend(title="iter")
    if title:
        fig.suptitle(title)
    fig.tight_layout()
    return fig


def plot_scaling(df: pd.DataFrame, title: str = None) -> plt.Figure:
    """Speedup and parallel efficiency against cores, one line per grainsize.

    Needs columns ``cores``, ``speedup``, ``efficiency``, ``grainsize``.
    """
    df = df.copy()
    df["grainsize"] = df["grainsize"].astype(str)
    palette = get_categorical(df["grainsize"].nunique())
    cores = sorted(df["cores"].unique())

    fig, axes = plt.subplots(1, 2, figsize=(12, 4.5))
    sns.lineplot(data=df, x="cores", y="speedup", hue="grainsize", style="grainsize",
                 markers=True, dashes=False, palette=palette, ax=axes[0])
    axes[0].plot(cores, [c / cores[0] for c in cores], "--",
                 color=THREADING["ideal"], linewidth=1, label="Ideal")
    axes[0].set(xscale="log", yscale="log", xlabel="Cores",
                ylabel="Speedup S(P)", title="Within-chain speedup")

    sns.lineplot(data=df, x="cores", y="efficiency", hue="grainsize", style="grainsize",
                 markers=True, dashes=False, palette=palette, ax=axes[1])
    axes[1].axhline(1.0, color=THREADING["ideal"], linestyle="--", linewidth=1)
    axes[1].set(xscale="log", xlabel="Cores", ylabel="Efficiency E(P)",
                title="Parallel efficiency", ylim=(0, None))

    for ax in axes:
        ax.set_xticks(cores)
        ax.set_xticklabels([str(c) for c in cores])
        ax.legend(title="grainsize")
    if title:
        fig.suptitle(title)
    fig.tight_layout()
    return fig
