"""Plotting utilities for benchmark figures.

This module provides:
- Automatic style application (seaborn whitegrid + overrides)
- Chunking and scaling figures
- Parameter formatting for titles
- Colorblind-friendly palettes

Automatically applies styles on import:
    from utils import plotting  # Styles applied!
"""

from .styles import apply_styles
from .formatters import format_parameter_range, build_parameter_string
from .figures import plot_chunking, plot_scaling
from . import palettes

# Apply styles when module is imported
apply_styles()

__all__ = [
    "apply_styles",
    "format_parameter_range",
    "build_parameter_string",
    "plot_chunking",
    "plot_scaling",
    "palettes",
]
