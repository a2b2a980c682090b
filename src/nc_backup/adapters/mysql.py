"""MySQL/MariaDB adapter.

``mysqldump`` writes SQL to stdout, which is redirected into the artifact;
restore feeds the artifact to ``mysql`` on stdin.  The password travels in
``MYSQL_PWD`` rather than on the command line.
"""

from pathlib import Path

from nc_backup.adapters.base import read_password
from nc_backup.config.models import InstanceConfig
from nc_backup.errors import DumpError, NcBackupError, RestoreError
from nc_backup.process import run_command


class MysqlAdapter:
    """``mysql`` engine variant built on mysqldump/mysql."""

    engine = "mysql"
    ARTIFACT = "database-mysql.bak"

    def __init__(self, config: InstanceConfig) -> None:
        self._settings = config.database
        self._tools = config.tools
        self._service_user = config.service_user

    def artifact_name(self) -> str:
        return self.ARTIFACT

    def _common_flags(self) -> list[str]:
        # MySQL doesn't accept the socket path as a hostname
        host = "localhost" if self._settings.create_locally else self._settings.host
        return ["-h", host, "-u", self._settings.user]

    def _env(self, error: type[NcBackupError]) -> dict[str, str]:
        password = read_password(self._settings, error)
        if password is None:
            return {}
        return {"MYSQL_PWD": password}

    def dump(self, backup_root: Path) -> None:
        env = self._env(DumpError)
        target = backup_root / self.ARTIFACT
        try:
            out = open(target, "wb")
        except OSError as e:
            raise DumpError(f"Cannot create {target}: {e}") from e
        with out:
            run_command(
                [
                    self._tools.mysqldump,
                    *self._common_flags(),
                    "--add-drop-table",
                    "--single-transaction",
                    self._settings.name,
                ],
                error=DumpError,
                env=env,
                stdout=out,
            )

    def restore(self, backup_root: Path) -> None:
        env = self._env(RestoreError)
        source = backup_root / self.ARTIFACT
        try:
            dump = open(source, "rb")
        except OSError as e:
            raise RestoreError(f"Cannot open {source}: {e}") from e
        with dump:
            run_command(
                [
                    self._tools.sudo, "-E", "-u", self._service_user,
                    self._tools.mysql,
                    *self._common_flags(),
                    self._settings.name,
                ],
                error=RestoreError,
                env=env,
                stdin=dump,
            )
