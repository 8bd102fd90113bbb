"""Style application for benchmark figures.

Seaborn's whitegrid theme as base, with small overrides so figures read
well both on screen and in a report.
"""

import matplotlib.pyplot as plt
import seaborn as sns

RC_OVERRIDES = {
    "figure.dpi": 110,
    "savefig.dpi": 200,
    "savefig.bbox": "tight",
    "axes.titlesize": 12,
    "axes.labelsize": 11,
    "legend.fontsize": 9,
    "legend.frameon": False,
    "lines.markersize": 6,
}


def apply_styles(context: str = "notebook") -> None:
    """Apply the seaborn theme and figure overrides.

    Parameters
    ----------
    context : str, default "notebook"
        Seaborn plotting context ("paper", "notebook", "talk").
    """
    sns.set_theme(style="whitegrid", context=context)
    plt.rcParams.update(RC_OVERRIDES)
