"""Restore-time compatibility gate.

Two independent checks, both required:

1. The backup's Nextcloud major version equals the installed one.  No
   schema migration is attempted; a mismatch means "install the backup's
   major version first".
2. The backup's database engine equals the configured one.

Both are always evaluated so the operator sees every mismatch at once.
"""

from nc_backup.backup.models import BackupManifest
from nc_backup.config.models import InstanceConfig
from nc_backup.errors import CompatibilityError


def check_compatibility(manifest: BackupManifest, config: InstanceConfig) -> None:
    """Raise ``CompatibilityError`` unless ``manifest`` fits the live instance."""
    mismatches: dict[str, tuple[str, str]] = {}

    if manifest.version_major != config.version_major:
        mismatches["version"] = (str(manifest.version_major), str(config.version_major))

    if manifest.engine != config.engine:
        mismatches["engine"] = (manifest.engine, config.engine)

    if mismatches:
        raise CompatibilityError(mismatches)
