"""Backup and restore state machines.

Each run walks a fixed sequence of states.  Everything that changes the live
instance happens between ``MaintenanceOn`` and ``MaintenanceOff``; if a step
in between fails (or the process is interrupted), maintenance mode is still
switched off before the run ends.  A failure of that cleanup call is recorded
as a warning next to the original error, never in place of it.

Runs are strictly sequential and must not overlap for the same instance.
The orchestrators enforce this with ``InstanceLock`` on
``InstanceConfig.lock_path``.

Usage:
    from nc_backup.orchestrator import BackupOrchestrator, RestoreOrchestrator

    result = BackupOrchestrator(config).run(Path("/mnt/backups"))
    if not result.success:
        print(result.format_report())

    result = RestoreOrchestrator(config, confirm=ask_operator).run(Path("/mnt/backups"))
"""

import logging
from collections.abc import Callable
from datetime import datetime
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from nc_backup.adapters.base import DatabaseAdapter
from nc_backup.backup.compatibility import check_compatibility
from nc_backup.backup.manifest import read_manifest, write_manifest
from nc_backup.backup.models import (
    APPS_ARTIFACT,
    CONFIG_ARTIFACT,
    DATA_ARTIFACT,
    MANIFEST_NAME,
    BackupArtifactSet,
    BackupManifest,
    backup_root_for,
)
from nc_backup.backup.verifier import verify_backup
from nc_backup.config.models import InstanceConfig
from nc_backup.errors import (
    GateError,
    ManifestError,
    NcBackupError,
    PreconditionError,
    SyncError,
)
from nc_backup.factory import ADAPTERS, get_adapter
from nc_backup.identity import IdentityCheck, InstanceLock
from nc_backup.maintenance import MaintenanceGate
from nc_backup.treesync import SyncMode, TreeSync

logger = logging.getLogger(__name__)

CONFIRM_PROMPT = (
    "WARNING: Restoring the backup will overwrite the current nextcloud "
    "instance. Continue? (y/n): "
)


# ============================================================================
# States and results
# ============================================================================


class BackupState(str, Enum):
    START = "Start"
    MAINTENANCE_ON = "MaintenanceOn"
    COPY_CONFIG_AND_APPS = "CopyConfigAndApps"
    COPY_DATA = "CopyData"
    DUMP_DATABASE = "DumpDatabase"
    MAINTENANCE_OFF = "MaintenanceOff"
    WRITE_MANIFEST = "WriteManifest"
    VERIFY = "Verify"
    DONE = "Done"
    FAILED = "Failed"


class RestoreState(str, Enum):
    START = "Start"
    READ_MANIFEST = "ReadManifest"
    VERIFY = "Verify"
    CHECK_COMPATIBILITY = "CheckCompatibility"
    CHECK_INSTANCE = "CheckInstance"
    CONFIRM_WITH_OPERATOR = "ConfirmWithOperator"
    MAINTENANCE_ON = "MaintenanceOn"
    RESTORE_CONFIG_AND_APPS = "RestoreConfigAndApps"
    RESTORE_DATA = "RestoreData"
    RESTORE_DATABASE = "RestoreDatabase"
    MAINTENANCE_OFF = "MaintenanceOff"
    DONE = "Done"
    ABORTED = "Aborted"
    FAILED = "Failed"


_STEP_MESSAGES = {
    BackupState.COPY_CONFIG_AND_APPS: "Copying config and manually installed apps...",
    BackupState.COPY_DATA: "Copying data directory...",
    BackupState.DUMP_DATABASE: "Dumping database...",
    BackupState.WRITE_MANIFEST: "Writing backup metadata...",
    BackupState.VERIFY: "Checking backup completeness...",
    RestoreState.READ_MANIFEST: "Reading backup metadata...",
    RestoreState.VERIFY: "Checking backup completeness...",
    RestoreState.CHECK_COMPATIBILITY: "Checking backup compatibility...",
    RestoreState.RESTORE_CONFIG_AND_APPS: "Restoring config and manually installed apps...",
    RestoreState.RESTORE_DATA: "Restoring data directory...",
    RestoreState.RESTORE_DATABASE: "Restoring database...",
}


class RunResult(BaseModel):
    """Outcome of one backup or restore run.

    Attributes:
        state: Terminal state (``Done``, ``Aborted`` or ``Failed``).
        failed_step: State in which the run stopped, when it did not finish.
        error: The error that ended the run (``None`` on success or when
            the operator declined).
        warnings: Secondary problems, e.g. a failed cleanup of maintenance mode.
        visited: Every state entered, in order.
        backup_root: The ``<dir>/nextcloud-backup`` directory the run used.
        manifest: Manifest read during a restore, if it got that far.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    state: str = ""
    failed_step: str | None = None
    error: NcBackupError | None = None
    warnings: list[str] = Field(default_factory=list)
    visited: list[str] = Field(default_factory=list)
    backup_root: Path | None = None
    manifest: BackupManifest | None = None

    @property
    def success(self) -> bool:
        return self.state == BackupState.DONE.value

    @property
    def aborted(self) -> bool:
        return self.state == RestoreState.ABORTED.value

    def format_report(self) -> str:
        """Human-readable summary of a run that did not succeed."""
        if self.success:
            return "Completed"
        lines = [f"{self.state} at step {self.failed_step}"]
        if self.error is not None:
            lines.append(self.error.message)
        for warning in self.warnings:
            lines.append(f"Warning: {warning}")
        return "\n".join(lines)


# ============================================================================
# Shared machinery
# ============================================================================


class _Orchestrator:
    """Collaborators and the maintenance bracket shared by both directions."""

    def __init__(
        self,
        config: InstanceConfig,
        *,
        adapter: DatabaseAdapter | None = None,
        gate: MaintenanceGate | None = None,
        tree_sync: TreeSync | None = None,
        identity: IdentityCheck | None = None,
    ) -> None:
        self.config = config
        self._adapter = adapter
        self.gate = gate or MaintenanceGate(config)
        self.tree_sync = tree_sync or TreeSync(config)
        self.identity = identity or IdentityCheck(config)
        self._current: Enum | None = None

    def _enter(self, result: RunResult, state: Enum) -> None:
        self._current = state
        result.visited.append(state.value)
        message = _STEP_MESSAGES.get(state)
        if message:
            logger.info(message)

    def _resolve_adapter(self) -> DatabaseAdapter:
        if self._adapter is None:
            self._adapter = get_adapter(self.config)
        return self._adapter

    def _fail(self, result: RunResult, error: NcBackupError, terminal: Enum) -> RunResult:
        step = self._current.value if self._current is not None else None
        if error.step is None:
            error.step = step
        result.failed_step = step
        result.error = error
        result.state = terminal.value
        result.visited.append(terminal.value)
        logger.error("%s failed: %s", step, error.message)
        return result

    def _cleanup_maintenance(self, result: RunResult) -> None:
        try:
            self.gate.disable()
        except GateError as e:
            warning = f"Could not disable maintenance mode after the failure: {e.message}"
            logger.warning(warning)
            result.warnings.append(warning)

    def _bracketed(
        self,
        result: RunResult,
        on_state: Enum,
        steps: list[tuple[Enum, Callable[[], None]]],
        off_state: Enum,
    ) -> None:
        """Run ``steps`` with maintenance mode on.

        If enabling fails nothing else runs.  An interrupt during ``enable()``
        may land after maintenance mode took effect, so it is cleaned up too.
        Once enabled, any exception triggers one best-effort ``disable()``
        before propagating.
        """
        self._enter(result, on_state)
        try:
            self.gate.enable()
        except KeyboardInterrupt:
            self._cleanup_maintenance(result)
            raise
        try:
            for state, action in steps:
                self._enter(result, state)
                action()
        except BaseException:
            self._cleanup_maintenance(result)
            raise
        self._enter(result, off_state)
        self.gate.disable()


# ============================================================================
# Backup
# ============================================================================


class BackupOrchestrator(_Orchestrator):
    """Back up config, apps, data and database of the live instance.

    Must be run as the instance's service user.

    Args:
        config: The live instance.
        adapter: Database adapter; selected from ``config`` when omitted.
        gate: Maintenance gate; ``MaintenanceGate(config)`` when omitted.
        tree_sync: Tree copier; ``TreeSync(config)`` when omitted.
        identity: Identity precondition checks.
        clock: Returns the timestamp recorded in the manifest.
    """

    def __init__(
        self,
        config: InstanceConfig,
        *,
        clock: Callable[[], datetime] | None = None,
        **collaborators,
    ) -> None:
        super().__init__(config, **collaborators)
        self._clock = clock

    def run(self, target_dir: Path) -> RunResult:
        """Create ``<target_dir>/nextcloud-backup``.

        Returns:
            ``RunResult`` in state ``Done`` or ``Failed``.

        Raises:
            KeyboardInterrupt: Re-raised after maintenance cleanup.
        """
        root = backup_root_for(target_dir)
        result = RunResult(backup_root=root)
        self._current = None

        try:
            self._enter(result, BackupState.START)
            self.identity.require_service_user()
            adapter = self._resolve_adapter()
            artifacts = BackupArtifactSet.for_backup_root(root, adapter)

            with InstanceLock(self.config.lock_path):
                self._bracketed(
                    result,
                    BackupState.MAINTENANCE_ON,
                    [
                        (BackupState.COPY_CONFIG_AND_APPS, lambda: self._copy_config_and_apps(root)),
                        (BackupState.COPY_DATA, lambda: self._copy_data(root)),
                        (BackupState.DUMP_DATABASE, lambda: adapter.dump(root)),
                    ],
                    BackupState.MAINTENANCE_OFF,
                )

                self._enter(result, BackupState.WRITE_MANIFEST)
                self._write_manifest(artifacts)

                self._enter(result, BackupState.VERIFY)
                verify_backup(artifacts)
        except NcBackupError as e:
            return self._fail(result, e, BackupState.FAILED)

        self._enter(result, BackupState.DONE)
        result.state = BackupState.DONE.value
        logger.info("Nextcloud backup completed.")
        return result

    def _copy_config_and_apps(self, root: Path) -> None:
        try:
            root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise SyncError(f"Cannot create backup directory {root}: {e}") from e
        self.tree_sync.copy(self.config.config_file, root, SyncMode.BACKUP)
        self.tree_sync.copy(self.config.apps_dir, root, SyncMode.BACKUP)

    def _copy_data(self, root: Path) -> None:
        self.tree_sync.copy(self.config.data_dir, root, SyncMode.BACKUP)

    def _write_manifest(self, artifacts: BackupArtifactSet) -> None:
        now = self._clock() if self._clock else None
        manifest = BackupManifest.for_instance(self.config, now)
        try:
            write_manifest(artifacts.manifest, manifest)
        except OSError as e:
            raise ManifestError(f"Cannot write backup metadata {artifacts.manifest}: {e}") from e


# ============================================================================
# Restore
# ============================================================================


def deny(prompt: str) -> bool:
    """Confirmation callback that never agrees."""
    return False


class RestoreOrchestrator(_Orchestrator):
    """Overwrite the live instance with a backup.

    Must be run as root.  Nothing destructive happens before the operator
    has agreed, and the operator is only asked once the backup has been
    verified and found compatible.

    Args:
        config: The live instance.
        confirm: Called with the warning prompt; only ``True`` proceeds.
        **collaborators: See ``BackupOrchestrator``.
    """

    def __init__(
        self,
        config: InstanceConfig,
        *,
        confirm: Callable[[str], bool] = deny,
        **collaborators,
    ) -> None:
        super().__init__(config, **collaborators)
        self._confirm = confirm

    def check(self, backup_dir: Path) -> RunResult:
        """Read-only checks: manifest, completeness and compatibility.

        Runs under any identity and never touches the instance.

        Returns:
            ``RunResult`` in state ``Done``, ``Aborted`` (not a backup) or ``Failed``.
        """
        root = backup_root_for(backup_dir)
        result = RunResult(backup_root=root)
        self._current = None

        try:
            self._enter(result, RestoreState.START)
            self._preflight(result, root)
        except ManifestError as e:
            return self._fail(result, e, RestoreState.ABORTED)
        except NcBackupError as e:
            return self._fail(result, e, RestoreState.FAILED)

        self._enter(result, RestoreState.DONE)
        result.state = RestoreState.DONE.value
        return result

    def run(self, backup_dir: Path) -> RunResult:
        """Restore ``<backup_dir>/nextcloud-backup`` onto the live instance.

        Returns:
            ``RunResult`` in state ``Done``, ``Aborted`` or ``Failed``.

        Raises:
            KeyboardInterrupt: Re-raised after maintenance cleanup.
        """
        root = backup_root_for(backup_dir)
        result = RunResult(backup_root=root)
        self._current = None

        try:
            self._enter(result, RestoreState.START)
            self.identity.require_admin()
            adapter = self._resolve_adapter()

            with InstanceLock(self.config.lock_path):
                try:
                    self._preflight(result, root)
                    self._enter(result, RestoreState.CHECK_INSTANCE)
                    self._check_instance()
                except (ManifestError, PreconditionError) as e:
                    return self._fail(result, e, RestoreState.ABORTED)

                self._enter(result, RestoreState.CONFIRM_WITH_OPERATOR)
                if not self._confirm(CONFIRM_PROMPT):
                    logger.info("Restore cancelled, aborting.")
                    result.failed_step = RestoreState.CONFIRM_WITH_OPERATOR.value
                    result.state = RestoreState.ABORTED.value
                    result.visited.append(RestoreState.ABORTED.value)
                    return result

                self._bracketed(
                    result,
                    RestoreState.MAINTENANCE_ON,
                    [
                        (RestoreState.RESTORE_CONFIG_AND_APPS, lambda: self._restore_config_and_apps(root)),
                        (RestoreState.RESTORE_DATA, lambda: self._restore_data(root)),
                        (RestoreState.RESTORE_DATABASE, lambda: adapter.restore(root)),
                    ],
                    RestoreState.MAINTENANCE_OFF,
                )
        except ManifestError as e:
            return self._fail(result, e, RestoreState.ABORTED)
        except NcBackupError as e:
            return self._fail(result, e, RestoreState.FAILED)

        self._enter(result, RestoreState.DONE)
        result.state = RestoreState.DONE.value
        logger.info("Nextcloud backup successfully restored.")
        return result

    def _preflight(self, result: RunResult, root: Path) -> None:
        self._resolve_adapter()

        self._enter(result, RestoreState.READ_MANIFEST)
        manifest = read_manifest(root / MANIFEST_NAME)
        result.manifest = manifest

        # Completeness is judged by the engine the backup was taken with, so
        # an engine mismatch is reported by the compatibility check.
        self._enter(result, RestoreState.VERIFY)
        verify_backup(BackupArtifactSet.for_backup_root(root, self._backup_adapter(manifest)))

        self._enter(result, RestoreState.CHECK_COMPATIBILITY)
        check_compatibility(manifest, self.config)

    def _backup_adapter(self, manifest: BackupManifest) -> DatabaseAdapter | None:
        """Adapter for the engine recorded in ``manifest``, or None for an unknown tag."""
        if manifest.engine == self.config.engine:
            return self._resolve_adapter()
        if manifest.engine not in ADAPTERS:
            return None
        return get_adapter(self.config.with_engine(manifest.engine))

    def _check_instance(self) -> None:
        override = self.config.override_config_file
        if not override.exists():
            raise PreconditionError(
                f"Expected to find the file {override} but it seems to be missing. "
                f"It appears that nextcloud has not been set up correctly, aborting."
            )

    def _restore_config_and_apps(self, root: Path) -> None:
        self.tree_sync.copy(root / CONFIG_ARTIFACT, self.config.datadir / "config", SyncMode.RESTORE)
        self.tree_sync.copy(root / APPS_ARTIFACT, self.config.home, SyncMode.RESTORE)

    def _restore_data(self, root: Path) -> None:
        self.tree_sync.copy(root / DATA_ARTIFACT, self.config.datadir, SyncMode.RESTORE)
