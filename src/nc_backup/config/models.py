"""Pydantic models for the instance configuration.

``InstanceConfig`` is built once per run and never mutated (all models are
frozen).  Paths of the live instance are derived from ``datadir`` and
``home`` the same way the Nextcloud service lays them out.
"""

import re
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

_MAJOR_RE = re.compile(r"^(\d+)")


def parse_major_version(version: str) -> int:
    """Return the integer before the first separator of ``version``.

    Raises:
        ValueError: If ``version`` does not start with digits.

    Example:
        >>> parse_major_version("29.0.1")
        29
    """
    match = _MAJOR_RE.match(version.strip())
    if match is None:
        raise ValueError(f"Version {version!r} has no numeric major component")
    return int(match.group(1))


# ============================================================================
# Configuration Models
# ============================================================================


class DatabaseSettings(BaseModel):
    """Connection parameters of the instance database."""

    model_config = ConfigDict(frozen=True)

    engine: str                                 # sqlite | pgsql | mysql
    host: str = "localhost"
    user: str = "nextcloud"
    name: str = "nextcloud"
    password_file: Path | None = None
    create_locally: bool = False                # MySQL: connect via -h localhost


class ToolPaths(BaseModel):
    """Executables used for copying and dumping."""

    model_config = ConfigDict(frozen=True)

    rsync: str = "rsync"
    pg_dump: str = "pg_dump"
    pg_restore: str = "pg_restore"
    mysqldump: str = "mysqldump"
    mysql: str = "mysql"
    sudo: str = "sudo"


class InstanceConfig(BaseModel):
    """The live Nextcloud instance a run operates on."""

    model_config = ConfigDict(frozen=True)

    datadir: Path
    home: Path
    version: str
    service_user: str = "nextcloud"
    service_group: str | None = None            # defaults to service_user
    occ: list[str] = Field(default_factory=lambda: ["nextcloud-occ"])
    lock_file: Path | None = None
    database: DatabaseSettings
    tools: ToolPaths = Field(default_factory=ToolPaths)

    @field_validator("version")
    @classmethod
    def _version_has_major(cls, value: str) -> str:
        parse_major_version(value)
        return value

    @field_validator("occ")
    @classmethod
    def _occ_not_empty(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("occ must name the admin command")
        return value

    @property
    def version_major(self) -> int:
        return parse_major_version(self.version)

    @property
    def engine(self) -> str:
        return self.database.engine

    @property
    def group(self) -> str:
        return self.service_group or self.service_user

    @property
    def config_file(self) -> Path:
        return self.datadir / "config" / "config.php"

    @property
    def override_config_file(self) -> Path:
        return self.datadir / "config" / "override.config.php"

    @property
    def apps_dir(self) -> Path:
        return self.home / "store-apps"

    @property
    def data_dir(self) -> Path:
        return self.datadir / "data"

    @property
    def lock_path(self) -> Path:
        return self.lock_file or self.datadir / ".nextcloud-backup.lock"

    def with_engine(self, engine: str) -> "InstanceConfig":
        """Copy of this config with only the database engine tag replaced."""
        database = self.database.model_copy(update={"engine": engine})
        return self.model_copy(update={"database": database})
