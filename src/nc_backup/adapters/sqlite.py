"""SQLite adapter.

The SQLite database of a Nextcloud instance is a file inside the data
directory, so it is already copied by the data-tree sync in both
directions.  ``dump()`` and ``restore()`` are intentionally no-ops; the
artifact this adapter names lives under ``data/`` in the backup root.
"""

import logging
from pathlib import Path

from nc_backup.config.models import InstanceConfig

logger = logging.getLogger(__name__)


class SqliteAdapter:
    """File-based engine: the data tree sync carries the database."""

    engine = "sqlite"

    def __init__(self, config: InstanceConfig) -> None:
        self._settings = config.database

    def artifact_name(self) -> str:
        return f"data/{self._settings.name}.db"

    def dump(self, backup_root: Path) -> None:
        logger.debug("sqlite database is part of the data directory, nothing to dump")

    def restore(self, backup_root: Path) -> None:
        logger.debug("sqlite database was restored with the data directory")
