"""Database adapter protocol definition.

Defines the ``DatabaseAdapter`` Protocol that every engine variant
implements.  An adapter knows the name of the dump artifact it produces
inside a backup root and how to create and replay that artifact with the
engine's native tools.

Usage:
    from nc_backup.adapters.base import DatabaseAdapter

    def dump_into(adapter: DatabaseAdapter, backup_root: Path) -> None:
        adapter.dump(backup_root)
        assert (backup_root / adapter.artifact_name()).exists()
"""

from pathlib import Path
from typing import Protocol

from nc_backup.config.models import DatabaseSettings
from nc_backup.errors import NcBackupError


class DatabaseAdapter(Protocol):
    """Interface of a per-engine dump/restore strategy.

    Adapters are stateless apart from the configuration they were built
    with and are selected once per run by ``nc_backup.factory.get_adapter``.
    """

    engine: str

    def artifact_name(self) -> str:
        """Relative path of the dump artifact inside a backup root.

        Example:
            adapter.artifact_name()
            # 'database-pgsql.bak'
        """
        ...

    def dump(self, backup_root: Path) -> None:
        """Write ``artifact_name()`` into ``backup_root``.

        Raises:
            DumpError: If the dump tool fails or the password file is unreadable.
        """
        ...

    def restore(self, backup_root: Path) -> None:
        """Replay ``artifact_name()`` from ``backup_root`` into the live database.

        Destructive: existing objects are dropped and recreated.  Runs under
        the service identity of the instance, not the caller's.

        Raises:
            RestoreError: If the restore tool fails or the password file is unreadable.
        """
        ...


def read_password(
    settings: DatabaseSettings,
    error: type[NcBackupError],
) -> str | None:
    """Read the database password from ``settings.password_file``.

    Returns ``None`` when no password file is configured.  The value is
    never logged.  A single trailing newline is stripped, as ``$(cat file)``
    in a shell would.

    Raises:
        error: If the password file cannot be read.
    """
    if settings.password_file is None:
        return None
    try:
        content = settings.password_file.read_text()
    except OSError as e:
        raise error(f"Cannot read database password file {settings.password_file}: {e}") from e
    return content.rstrip("\n")
