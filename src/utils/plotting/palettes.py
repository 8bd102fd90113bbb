"""Color palettes for benchmark figures.

Provides colorblind-friendly palettes for:
- Line plots (categorical)
- Thread scaling plots (ideal line, scheduling policies)
"""

from typing import List

# Colorblind-friendly categorical palette (Paul Tol's vibrant)
CATEGORICAL = [
    "#0077BB",  # Blue
    "#EE7733",  # Orange
    "#009988",  # Teal
    "#CC3311",  # Red
    "#33BBEE",  # Cyan
    "#EE3377",  # Magenta
    "#BBBBBB",  # Grey
]

# For thread scaling plots
THREADING = {
    "ideal": "#888888",    # Grey dashed line for ideal speedup
    "static": "#0077BB",   # Blue for static scheduling
    "dynamic": "#EE7733",  # Orange for dynamic scheduling
}


def get_categorical(n: int = None) -> List[str]:
    """Get categorical palette colors.

    Parameters
    ----------
    n : int, optional
        Number of colors needed. If None, returns full palette. Colors
        repeat when ``n`` exceeds the palette size.

    Returns
    -------
    list of str
        Hex color codes
    """
    if n is None:
        return CATEGORICAL.copy()
    return (CATEGORICAL * ((n // len(CATEGORICAL)) + 1))[:n]
