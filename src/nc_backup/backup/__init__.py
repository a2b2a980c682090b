"""Backup manifest, artifact set, verification and compatibility checks.

Usage:
    from nc_backup.backup import BackupManifest, BackupArtifactSet
    from nc_backup.backup import read_manifest, verify_backup, check_compatibility
"""

from nc_backup.backup.compatibility import check_compatibility
from nc_backup.backup.manifest import read_manifest, write_manifest
from nc_backup.backup.models import (
    BACKUP_DIR_NAME,
    MANIFEST_NAME,
    BackupArtifactSet,
    BackupManifest,
    backup_root_for,
)
from nc_backup.backup.verifier import missing_artifacts, verify_backup

__all__ = [
    "BACKUP_DIR_NAME",
    "MANIFEST_NAME",
    "BackupArtifactSet",
    "BackupManifest",
    "backup_root_for",
    "check_compatibility",
    "missing_artifacts",
    "read_manifest",
    "verify_backup",
    "write_manifest",
]
