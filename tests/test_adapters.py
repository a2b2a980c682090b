"""Tests for database adapter selection and the per-engine commands.

``run_command`` is patched in each adapter module, so no database tool is
ever executed.
"""

from pathlib import Path
from unittest.mock import patch

import pytest

from conftest import make_config
from nc_backup.adapters import MysqlAdapter, PostgresAdapter, SqliteAdapter, read_password
from nc_backup.config.models import DatabaseSettings
from nc_backup.errors import ConfigurationError, DumpError, RestoreError
from nc_backup.factory import ADAPTERS, get_adapter, supported_engines


def _config(tmp_path: Path, engine: str, password: str | None = None, **db):
    password_file = None
    if password is not None:
        password_file = tmp_path / "dbpass"
        password_file.write_text(password + "\n")
    database = DatabaseSettings(
        engine=engine,
        host="db.internal",
        user="ncuser",
        name="ncdb",
        password_file=password_file,
        **db,
    )
    return make_config(tmp_path, engine=engine, database=database, service_user="nextcloud")


# ------------------------------------------------------------------
# Selection
# ------------------------------------------------------------------


class TestAdapterSelection:
    """Adapter selection is total over supported tags and strict otherwise."""

    @pytest.mark.parametrize("engine", ["sqlite", "pgsql", "mysql"])
    def test_supported_engine(self, tmp_path, engine):
        """Every supported tag yields an adapter with a non-empty artifact name."""
        adapter = get_adapter(_config(tmp_path, engine))
        assert adapter.engine == engine
        assert adapter.artifact_name()

    def test_supported_engines_list(self):
        assert supported_engines() == ["mysql", "pgsql", "sqlite"]
        assert set(ADAPTERS) == {"sqlite", "pgsql", "mysql"}

    @pytest.mark.parametrize("engine", ["oracle", "", "PGSQL", "pg", "sqlite3", " mysql"])
    def test_unknown_engine(self, tmp_path, engine):
        """Anything but an exact tag is a configuration error."""
        with pytest.raises(ConfigurationError) as exc_info:
            get_adapter(_config(tmp_path, engine))
        assert "Unknown nextcloud database type" in str(exc_info.value)

    def test_artifact_names(self, tmp_path):
        assert get_adapter(_config(tmp_path, "sqlite")).artifact_name() == "data/ncdb.db"
        assert get_adapter(_config(tmp_path, "pgsql")).artifact_name() == "database-pgsql.bak"
        assert get_adapter(_config(tmp_path, "mysql")).artifact_name() == "database-mysql.bak"


# ------------------------------------------------------------------
# Password handling
# ------------------------------------------------------------------


class TestReadPassword:
    def test_no_password_file(self):
        assert read_password(DatabaseSettings(engine="pgsql"), DumpError) is None

    def test_strips_trailing_newline(self, tmp_path):
        path = tmp_path / "pw"
        path.write_text("s3cret\n")
        settings = DatabaseSettings(engine="pgsql", password_file=path)
        assert read_password(settings, DumpError) == "s3cret"

    def test_unreadable_file_raises_given_error(self, tmp_path):
        settings = DatabaseSettings(engine="pgsql", password_file=tmp_path / "missing")
        with pytest.raises(RestoreError):
            read_password(settings, RestoreError)


# ------------------------------------------------------------------
# SQLite
# ------------------------------------------------------------------


class TestSqliteAdapter:
    """The sqlite adapter relies on the data tree sync."""

    def test_dump_and_restore_run_nothing(self, tmp_path):
        adapter = SqliteAdapter(_config(tmp_path, "sqlite"))
        with patch("nc_backup.process.subprocess.run") as mock_run:
            adapter.dump(tmp_path)
            adapter.restore(tmp_path)
        mock_run.assert_not_called()
        assert list(tmp_path.iterdir()) == []


# ------------------------------------------------------------------
# PostgreSQL
# ------------------------------------------------------------------


class TestPostgresAdapter:
    """pg_dump / pg_restore invocations."""

    def test_dump_command(self, tmp_path):
        adapter = PostgresAdapter(_config(tmp_path, "pgsql"))
        with patch("nc_backup.adapters.postgres.run_command") as mock_run:
            adapter.dump(tmp_path / "root")

        argv = mock_run.call_args[0][0]
        assert argv == [
            "pg_dump",
            "-h", "db.internal",
            "-U", "ncuser",
            "--no-password",
            "-F", "custom",
            "-f", tmp_path / "root" / "database-pgsql.bak",
            "ncdb",
        ]
        assert mock_run.call_args.kwargs["error"] is DumpError
        assert mock_run.call_args.kwargs["env"] == {}

    def test_restore_runs_as_service_user(self, tmp_path):
        adapter = PostgresAdapter(_config(tmp_path, "pgsql"))
        with patch("nc_backup.adapters.postgres.run_command") as mock_run:
            adapter.restore(tmp_path / "root")

        argv = mock_run.call_args[0][0]
        assert argv[:4] == ["sudo", "-E", "-u", "nextcloud"]
        assert argv[4] == "pg_restore"
        assert "--clean" in argv and "--if-exists" in argv
        assert argv[-3:] == ["-d", "ncdb", tmp_path / "root" / "database-pgsql.bak"]
        assert mock_run.call_args.kwargs["error"] is RestoreError

    def test_password_in_env_not_argv(self, tmp_path):
        adapter = PostgresAdapter(_config(tmp_path, "pgsql", password="hunter2"))
        with patch("nc_backup.adapters.postgres.run_command") as mock_run:
            adapter.dump(tmp_path)
            adapter.restore(tmp_path)

        for call in mock_run.call_args_list:
            assert call.kwargs["env"] == {"PGPASSWORD": "hunter2"}
            assert "hunter2" not in " ".join(str(a) for a in call.args[0])

    def test_unreadable_password_file_is_dump_error(self, tmp_path):
        database = DatabaseSettings(engine="pgsql", password_file=tmp_path / "nope")
        adapter = PostgresAdapter(make_config(tmp_path, engine="pgsql", database=database))
        with patch("nc_backup.adapters.postgres.run_command") as mock_run:
            with pytest.raises(DumpError):
                adapter.dump(tmp_path)
        mock_run.assert_not_called()

    def test_tool_failure_propagates(self, tmp_path):
        adapter = PostgresAdapter(_config(tmp_path, "pgsql"))
        with patch(
            "nc_backup.adapters.postgres.run_command",
            side_effect=DumpError("pg_dump exited with status 1"),
        ):
            with pytest.raises(DumpError, match="status 1"):
                adapter.dump(tmp_path)


# ------------------------------------------------------------------
# MySQL
# ------------------------------------------------------------------


class TestMysqlAdapter:
    """mysqldump / mysql invocations."""

    def test_dump_redirects_stdout_into_artifact(self, tmp_path):
        adapter = MysqlAdapter(_config(tmp_path, "mysql"))

        def fake_run(argv, error, env=None, stdin=None, stdout=None):
            stdout.write(b"-- MySQL dump\n")

        with patch("nc_backup.adapters.mysql.run_command", side_effect=fake_run) as mock_run:
            adapter.dump(tmp_path)

        argv = mock_run.call_args[0][0]
        assert argv == [
            "mysqldump",
            "-h", "db.internal",
            "-u", "ncuser",
            "--add-drop-table",
            "--single-transaction",
            "ncdb",
        ]
        assert (tmp_path / "database-mysql.bak").read_bytes() == b"-- MySQL dump\n"

    def test_create_locally_uses_localhost(self, tmp_path):
        adapter = MysqlAdapter(_config(tmp_path, "mysql", create_locally=True))
        with patch("nc_backup.adapters.mysql.run_command") as mock_run:
            adapter.dump(tmp_path)
        argv = mock_run.call_args[0][0]
        assert argv[1:3] == ["-h", "localhost"]

    def test_restore_feeds_dump_on_stdin(self, tmp_path):
        (tmp_path / "database-mysql.bak").write_bytes(b"DROP TABLE x;")
        adapter = MysqlAdapter(_config(tmp_path, "mysql", password="pw"))
        seen = {}

        def fake_run(argv, error, env=None, stdin=None, stdout=None):
            seen["argv"] = argv
            seen["stdin"] = stdin.read()
            seen["env"] = env
            seen["error"] = error

        with patch("nc_backup.adapters.mysql.run_command", side_effect=fake_run):
            adapter.restore(tmp_path)

        assert seen["argv"][:5] == ["sudo", "-E", "-u", "nextcloud", "mysql"]
        assert seen["argv"][-1] == "ncdb"
        assert seen["stdin"] == b"DROP TABLE x;"
        assert seen["env"] == {"MYSQL_PWD": "pw"}
        assert seen["error"] is RestoreError
        assert "pw" not in seen["argv"]

    def test_restore_missing_dump(self, tmp_path):
        adapter = MysqlAdapter(_config(tmp_path, "mysql"))
        with pytest.raises(RestoreError, match="Cannot open"):
            adapter.restore(tmp_path / "empty")

    def test_dump_into_missing_directory(self, tmp_path):
        adapter = MysqlAdapter(_config(tmp_path, "mysql"))
        with pytest.raises(DumpError, match="Cannot create"):
            adapter.dump(tmp_path / "does" / "not" / "exist")
