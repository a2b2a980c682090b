"""Backup completeness check.

Only existence is checked (no sizes, no checksums).  Every missing path is
reported at once.
"""

import logging
from pathlib import Path

from nc_backup.backup.models import BackupArtifactSet
from nc_backup.errors import VerificationError

logger = logging.getLogger(__name__)


def missing_artifacts(artifacts: BackupArtifactSet) -> list[Path]:
    """Paths of ``artifacts`` that do not exist, in declaration order."""
    return [path for path in artifacts.paths if not path.exists()]


def verify_backup(artifacts: BackupArtifactSet) -> None:
    """Raise ``VerificationError`` listing every missing artifact.

    Example:
        verify_backup(BackupArtifactSet.for_backup_root(root, adapter))
    """
    missing = missing_artifacts(artifacts)
    if missing:
        raise VerificationError(missing)
    logger.debug("All %d backup artifacts present in %s", len(artifacts.paths), artifacts.root)
