"""Directory mirroring with rsync.

Both directions mirror: files missing from the source are deleted from the
destination, and permissions, symlinks and modification times are kept.
Restores additionally hand ownership to the service identity and make
everything user-readable/writable.  Re-running a sync against unchanged
sources changes nothing.

Source paths are passed without a trailing slash, so ``copy(a/data, b)``
produces ``b/data``, exactly like ``rsync a/data b``.
"""

import logging
from enum import Enum
from pathlib import Path

from nc_backup.config.models import InstanceConfig
from nc_backup.errors import SyncError
from nc_backup.process import run_command

logger = logging.getLogger(__name__)

_MIRROR_FLAGS = ["-rlt", "--del", "--perms"]


class SyncMode(str, Enum):
    """Direction of a tree copy."""

    BACKUP = "backup"
    RESTORE = "restore"


class TreeSync:
    """Mirror files and directories between the instance and a backup root."""

    def __init__(self, config: InstanceConfig) -> None:
        self._rsync = config.tools.rsync
        self._owner = f"{config.service_user}:{config.group}"

    def flags(self, mode: SyncMode) -> list[str]:
        """rsync flags for ``mode``."""
        if mode is SyncMode.RESTORE:
            return [*_MIRROR_FLAGS, "--chmod=u+rwX", f"--chown={self._owner}"]
        return list(_MIRROR_FLAGS)

    def copy(self, source: Path, dest: Path, mode: SyncMode) -> None:
        """Mirror ``source`` into the directory ``dest``.

        Raises:
            SyncError: On any rsync failure.  No partial retry is attempted.
        """
        logger.debug("Mirroring %s -> %s (%s)", source, dest, mode.value)
        run_command(
            [self._rsync, *self.flags(mode), str(source), f"{dest}/"],
            error=SyncError,
        )
