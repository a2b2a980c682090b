"""Error taxonomy for backup and restore runs.

Every error raised by a component derives from ``NcBackupError``.  The
orchestrators attach the name of the step that failed (``step``) before
reporting, so the CLI can say *where* a run stopped as well as *why*.

Usage:
    from nc_backup.errors import SyncError

    raise SyncError("rsync exited with status 23")
"""

from pathlib import Path


class NcBackupError(Exception):
    """Base exception for all backup/restore errors."""

    def __init__(self, message: str, step: str | None = None):
        self.message = message
        self.step = step
        super().__init__(message)

    def __str__(self) -> str:
        if self.step:
            return f"[{self.step}] {self.message}"
        return self.message


class ConfigurationError(NcBackupError):
    """Raised when the instance configuration is invalid (e.g. unknown engine)."""

    pass


class PreconditionError(NcBackupError):
    """Raised when a run may not start: wrong identity, lock held, instance not set up."""

    pass


class GateError(NcBackupError):
    """Raised when toggling maintenance mode fails."""

    pass


class SyncError(NcBackupError):
    """Raised when mirroring a file tree fails."""

    pass


class DumpError(NcBackupError):
    """Raised when the database dump fails."""

    pass


class RestoreError(NcBackupError):
    """Raised when the database restore fails."""

    pass


class ManifestError(NcBackupError):
    """Raised when the backup manifest is missing or cannot be parsed."""

    pass


class VerificationError(NcBackupError):
    """Raised when a backup directory lacks required artifacts.

    ``missing`` lists every absent path, not only the first one found.
    """

    def __init__(self, missing: list[Path], step: str | None = None):
        self.missing = list(missing)
        lines = ["The backup is incomplete. Missing:"]
        lines.extend(f"  - {path}" for path in self.missing)
        super().__init__("\n".join(lines), step=step)


class CompatibilityError(NcBackupError):
    """Raised when a backup does not match the live instance.

    ``mismatches`` maps the compared field (``"version"`` or ``"engine"``)
    to a ``(backup_value, live_value)`` pair.
    """

    def __init__(
        self,
        mismatches: dict[str, tuple[str, str]],
        step: str | None = None,
    ):
        self.mismatches = dict(mismatches)
        lines = ["The backup is not compatible with this instance:"]
        if "version" in self.mismatches:
            backup, live = self.mismatches["version"]
            lines.append(
                f"  - The backup is for Nextcloud {backup} but Nextcloud {live} "
                f"is installed. Change to Nextcloud {backup} before restoring "
                f"(and then possibly upgrade)."
            )
        if "engine" in self.mismatches:
            backup, live = self.mismatches["engine"]
            lines.append(
                f"  - The backup is for the database {backup} but the current "
                f"installation uses {live}."
            )
        super().__init__("\n".join(lines), step=step)
