"""Formatting of sweep parameters for figure titles and legends."""

from __future__ import annotations

from typing import Any


def format_parameter_range(values, name: str) -> str:
    """Format candidate values as a single value or a range.

    Examples
    --------
    >>> format_parameter_range([1, 2, 4], 'cores')
    'cores ∈ [1, 4]'
    >>> format_parameter_range([500], 'grainsize')
    'grainsize = 500'
    """
    values = sorted(set(values))
    if not values:
        return f"{name} = ?"
    if len(values) == 1:
        return f"{name} = {values[0]}"
    return f"{name} ∈ [{values[0]}, {values[-1]}]"


def build_parameter_string(params: dict[str, Any], separator: str = ", ") -> str:
    """Join parameters; list values are shown as ranges.

    Examples
    --------
    >>> build_parameter_string({'N': 4096, 'iter': [25, 50]})
    'N = 4096, iter ∈ [25, 50]'
    """
    parts = []
    for name, value in params.items():
        if isinstance(value, (list, tuple)):
            parts.append(format_parameter_range(value, name))
        else:
            parts.append(f"{name} = {value}")
    return separator.join(parts)
