"""Configuration utilities: repository paths, project config and cleanup."""

from .paths import get_repo_root
from .project import load_project_config, get_config_section
from .clean import clean_all

__all__ = ["get_repo_root", "load_project_config", "get_config_section", "clean_all"]
