"""TOML loader for the instance configuration."""

import os
import tomllib
from pathlib import Path

from pydantic import ValidationError

from nc_backup.config.models import InstanceConfig
from nc_backup.errors import ConfigurationError

CONFIG_ENV_VAR = "NC_BACKUP_CONFIG"
DEFAULT_CONFIG_PATH = Path("/etc/nc-backup.toml")


def resolve_config_path(config_path: Path | None = None) -> Path:
    """Pick the config file: explicit path, then ``NC_BACKUP_CONFIG``, then the default."""
    if config_path is not None:
        return Path(config_path)
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    return DEFAULT_CONFIG_PATH


def load_instance_config(config_path: Path | None = None) -> InstanceConfig:
    """Load the instance configuration from a TOML file.

    Expected layout::

        datadir = "/var/lib/nextcloud"
        home = "/var/lib/nextcloud"
        version = "29.0.1"
        occ = ["nextcloud-occ"]

        [database]
        engine = "pgsql"
        host = "/run/postgresql"
        password_file = "/run/secrets/nextcloud-db"

        [tools]
        rsync = "/usr/bin/rsync"

    Args:
        config_path: Path to the TOML file (see ``resolve_config_path``).

    Returns:
        Validated, immutable ``InstanceConfig``.

    Raises:
        FileNotFoundError: If the config file doesn't exist.
        ConfigurationError: If the file is not valid TOML or fails validation.
    """
    path = resolve_config_path(config_path)

    if not path.exists():
        raise FileNotFoundError(
            f"Instance config not found: {path}\n"
            f"Pass --config or set {CONFIG_ENV_VAR}."
        )

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Invalid TOML in {path}: {e}") from e

    try:
        return InstanceConfig(**data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid instance config {path}:\n{e}") from e
