"""Configuration management."""
from tilth.config.settings import LockConfig, Settings
from tilth.config.project import (
    GovernanceConfig,
    ProjectConfig,
    ShelfLifeConfig,
    get_config_path,
    get_expertise_dir,
    get_expertise_path,
    get_project_dir,
    validate_domain_name,
)
from tilth.config.constants import *

__all__ = [
    "GovernanceConfig",
    "LockConfig",
    "ProjectConfig",
    "Settings",
    "ShelfLifeConfig",
    "get_config_path",
    "get_expertise_dir",
    "get_expertise_path",
    "get_project_dir",
    "validate_domain_name",
]
