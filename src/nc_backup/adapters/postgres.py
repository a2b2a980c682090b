"""PostgreSQL adapter.

Dumps with ``pg_dump -F custom`` and restores with
``pg_restore --clean --if-exists``.  The password, when a password file is
configured, travels in ``PGPASSWORD`` and the tools are run with
``--no-password`` so they never prompt.

Usage:
    from nc_backup.adapters.postgres import PostgresAdapter

    adapter = PostgresAdapter(config)
    adapter.dump(Path("/backups/nextcloud-backup"))
"""

from pathlib import Path

from nc_backup.adapters.base import read_password
from nc_backup.config.models import InstanceConfig
from nc_backup.errors import DumpError, NcBackupError, RestoreError
from nc_backup.process import run_command


class PostgresAdapter:
    """``pgsql`` engine variant built on pg_dump/pg_restore.

    Args:
        config: The live instance.  Only ``database``, ``tools`` and
            ``service_user`` are used.
    """

    engine = "pgsql"
    ARTIFACT = "database-pgsql.bak"

    def __init__(self, config: InstanceConfig) -> None:
        self._settings = config.database
        self._tools = config.tools
        self._service_user = config.service_user

    def artifact_name(self) -> str:
        return self.ARTIFACT

    def _common_flags(self) -> list[str]:
        return [
            "-h", self._settings.host,
            "-U", self._settings.user,
            "--no-password",
        ]

    def _env(self, error: type[NcBackupError]) -> dict[str, str]:
        password = read_password(self._settings, error)
        if password is None:
            return {}
        return {"PGPASSWORD": password}

    def dump(self, backup_root: Path) -> None:
        env = self._env(DumpError)
        run_command(
            [
                self._tools.pg_dump,
                *self._common_flags(),
                "-F", "custom",
                "-f", backup_root / self.ARTIFACT,
                self._settings.name,
            ],
            error=DumpError,
            env=env,
        )

    def restore(self, backup_root: Path) -> None:
        env = self._env(RestoreError)
        # -E keeps PGPASSWORD across the identity switch
        run_command(
            [
                self._tools.sudo, "-E", "-u", self._service_user,
                self._tools.pg_restore,
                *self._common_flags(),
                "--clean", "--if-exists",
                "-d", self._settings.name,
                backup_root / self.ARTIFACT,
            ],
            error=RestoreError,
            env=env,
        )
