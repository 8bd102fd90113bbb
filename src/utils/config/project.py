"""Project configuration loaded from an optional ``project_config.yaml``.

Values in the YAML file override ``DEFAULT_CONFIG`` section by section.
"""

import copy
from typing import Any, Dict

import yaml

from .paths import get_repo_root

DEFAULT_CONFIG = {
    "data": {
        "data_dir": "data",
        "figures_dir": "figures",
    },
    "runners": {
        "interpreter": "uv run python",
        "compute_timeout": 1800,
        "plot_timeout": 180,
    },
}


def load_project_config(config_name: str = "project_config.yaml") -> Dict[str, Any]:
    """Load project configuration from YAML.

    Parameters
    ----------
    config_name : str
        Name of the config file in repo root.

    Returns
    -------
    dict
        Defaults with each section updated from the file, if present.
    """
    config = copy.deepcopy(DEFAULT_CONFIG)

    config_path = get_repo_root() / config_name
    if config_path.exists():
        with open(config_path, "r") as f:
            user_config = yaml.safe_load(f) or {}
        if not isinstance(user_config, dict):
            raise ValueError(f"{config_path} must contain a mapping, got {type(user_config).__name__}")
        for section, values in user_config.items():
            if isinstance(values, dict) and isinstance(config.get(section), dict):
                config[section].update(values)
            else:
                config[section] = values

    return config


def get_config_section(section: str) -> Dict[str, Any]:
    """Get a specific section from project config, or an empty dict."""
    return load_project_config().get(section, {})
