"""Instance configuration: models and TOML loading.

Usage:
    >>> from nc_backup.config import load_instance_config, InstanceConfig
"""

from nc_backup.config.loader import load_instance_config
from nc_backup.config.models import (
    DatabaseSettings,
    InstanceConfig,
    ToolPaths,
    parse_major_version,
)

__all__ = [
    "load_instance_config",
    "InstanceConfig",
    "DatabaseSettings",
    "ToolPaths",
    "parse_major_version",
]
