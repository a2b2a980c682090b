"""Backup manifest and artifact set models.

Usage:
    from nc_backup.backup.models import BackupManifest, BackupArtifactSet

    manifest = BackupManifest.for_instance(config)
    artifacts = BackupArtifactSet.for_backup_root(root, adapter)
"""

from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

from nc_backup.adapters.base import DatabaseAdapter
from nc_backup.config.models import InstanceConfig, parse_major_version

BACKUP_DIR_NAME = "nextcloud-backup"
MANIFEST_NAME = "metadata.json"
CONFIG_ARTIFACT = "config.php"
APPS_ARTIFACT = "store-apps"
DATA_ARTIFACT = "data"


def backup_root_for(target_dir: Path) -> Path:
    """Backup root inside a user-supplied target directory."""
    return Path(target_dir) / BACKUP_DIR_NAME


class BackupManifest(BaseModel):
    """Record written at the end of a backup and read before a restore.

    Serialized with the keys ``time``, ``nextcloudVersion`` and
    ``databaseType``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    time: str
    version: str = Field(alias="nextcloudVersion")
    engine: str = Field(alias="databaseType")

    @field_validator("version")
    @classmethod
    def _version_has_major(cls, value: str) -> str:
        parse_major_version(value)
        return value

    @classmethod
    def for_instance(
        cls,
        config: InstanceConfig,
        now: datetime | None = None,
    ) -> "BackupManifest":
        """Manifest describing ``config`` at ``now`` (RFC 3339, seconds precision)."""
        now = now or datetime.now(timezone.utc).astimezone()
        return cls(
            time=now.isoformat(sep=" ", timespec="seconds"),
            version=config.version,
            engine=config.engine,
        )

    @property
    def version_major(self) -> int:
        return parse_major_version(self.version)

    def to_json(self) -> str:
        """Compact JSON object using the on-disk key names."""
        return self.model_dump_json(by_alias=True)


class BackupArtifactSet(BaseModel):
    """Paths that must all exist for a backup root to be complete."""

    root: Path
    paths: list[Path]

    @classmethod
    def for_backup_root(cls, root: Path, adapter: DatabaseAdapter | None) -> "BackupArtifactSet":
        """Expected paths under ``root``; without an adapter no dump artifact is expected."""
        root = Path(root)
        names = [CONFIG_ARTIFACT, APPS_ARTIFACT, DATA_ARTIFACT]
        if adapter is not None:
            names.append(adapter.artifact_name())
        names.append(MANIFEST_NAME)
        return cls(root=root, paths=[root / name for name in names])

    @property
    def manifest(self) -> Path:
        return self.root / MANIFEST_NAME
