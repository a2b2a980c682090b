"""Shared fixtures: instance configs on tmp_path and recording fakes.

The fakes append ``(collaborator, action, ...)`` tuples to one shared
``events`` list so tests can assert on the global order of calls.
"""

from pathlib import Path

import pytest

from nc_backup.config.models import DatabaseSettings, InstanceConfig
from nc_backup.errors import GateError


def make_config(
    root: Path,
    engine: str = "sqlite",
    version: str = "29.0.1",
    **overrides,
) -> InstanceConfig:
    """InstanceConfig whose datadir/home live under ``root``."""
    values = {
        "datadir": root / "datadir",
        "home": root / "home",
        "version": version,
        "occ": ["occ"],
        "database": DatabaseSettings(engine=engine, name="nextcloud"),
    }
    values.update(overrides)
    return InstanceConfig(**values)


def make_instance(config: InstanceConfig) -> None:
    """Lay out a minimal live instance on disk."""
    (config.datadir / "config").mkdir(parents=True, exist_ok=True)
    config.config_file.write_text("<?php $CONFIG = array();\n")
    config.override_config_file.write_text("<?php\n")
    config.apps_dir.mkdir(parents=True, exist_ok=True)
    (config.apps_dir / "calendar").mkdir(exist_ok=True)
    (config.apps_dir / "calendar" / "appinfo.xml").write_text("<info/>")
    config.data_dir.mkdir(parents=True, exist_ok=True)
    (config.data_dir / f"{config.database.name}.db").write_bytes(b"SQLite format 3\x00")
    (config.data_dir / "admin").mkdir(exist_ok=True)
    (config.data_dir / "admin" / "notes.txt").write_text("hello")


def make_backup_root(root: Path, manifest: str | None = None, db_artifact: str = "data/nextcloud.db") -> Path:
    """A complete ``nextcloud-backup`` directory under ``root``."""
    backup_root = root / "nextcloud-backup"
    (backup_root / "store-apps").mkdir(parents=True)
    (backup_root / "data").mkdir()
    (backup_root / "config.php").write_text("<?php\n")
    db_path = backup_root / db_artifact
    db_path.parent.mkdir(parents=True, exist_ok=True)
    db_path.write_bytes(b"dump")
    if manifest is None:
        manifest = (
            '{"time": "2026-10-19 11:30:00+00:00", '
            '"nextcloudVersion": "29.0.1", "databaseType": "sqlite"}\n'
        )
    (backup_root / "metadata.json").write_text(manifest)
    return backup_root


class FakeGate:
    def __init__(self, events: list, fail_enable: bool = False, fail_disable: bool = False):
        self.events = events
        self.fail_enable = fail_enable
        self.fail_disable = fail_disable
        self.enabled = 0
        self.disabled = 0

    def enable(self) -> None:
        self.enabled += 1
        self.events.append(("gate", "enable"))
        if self.fail_enable:
            raise GateError("occ exited with status 1")

    def disable(self) -> None:
        self.disabled += 1
        self.events.append(("gate", "disable"))
        if self.fail_disable:
            raise GateError("occ exited with status 1")


class FakeSync:
    def __init__(self, events: list, fail_on: str | None = None, error=None):
        self.events = events
        self.fail_on = fail_on
        self.error = error
        self.calls = []

    def copy(self, source: Path, dest: Path, mode) -> None:
        self.calls.append((source, dest, mode))
        self.events.append(("sync", Path(source).name, mode.value))
        if self.fail_on is not None and Path(source).name == self.fail_on:
            raise self.error


class FakeAdapter:
    engine = "sqlite"

    def __init__(self, events: list, artifact: str = "data/nextcloud.db", dump_error=None, restore_error=None):
        self.events = events
        self.artifact = artifact
        self.dump_error = dump_error
        self.restore_error = restore_error

    def artifact_name(self) -> str:
        return self.artifact

    def dump(self, backup_root: Path) -> None:
        self.events.append(("db", "dump"))
        if self.dump_error is not None:
            raise self.dump_error

    def restore(self, backup_root: Path) -> None:
        self.events.append(("db", "restore"))
        if self.restore_error is not None:
            raise self.restore_error


class FakeIdentity:
    def __init__(self, events: list, error=None):
        self.events = events
        self.error = error

    def require_service_user(self) -> None:
        self.events.append(("identity", "service_user"))
        if self.error is not None:
            raise self.error

    def require_admin(self) -> None:
        self.events.append(("identity", "admin"))
        if self.error is not None:
            raise self.error


@pytest.fixture
def events() -> list:
    return []


@pytest.fixture
def config(tmp_path: Path) -> InstanceConfig:
    cfg = make_config(tmp_path)
    make_instance(cfg)
    return cfg
