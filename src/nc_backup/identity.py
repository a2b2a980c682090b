"""Run preconditions: caller identity and single-instance locking.

A backup must run as the instance's service user; a restore must run as
root so it can switch to the service user for the database step.  Both are
checked before any side effect.

Backup and restore of the same instance must never overlap.
``InstanceLock`` takes an exclusive, non-blocking ``flock`` on the
instance's lock file and turns contention into a ``PreconditionError``.
"""

import fcntl
import os
import pwd
from pathlib import Path

from nc_backup.config.models import InstanceConfig
from nc_backup.errors import PreconditionError


def current_user() -> str:
    """Name of the effective user of this process."""
    return pwd.getpwuid(os.geteuid()).pw_name


class IdentityCheck:
    """Identity preconditions for the two kinds of run."""

    def __init__(self, config: InstanceConfig) -> None:
        self._service_user = config.service_user

    def require_service_user(self) -> None:
        """Raise ``PreconditionError`` unless running as the service user."""
        user = current_user()
        if user != self._service_user:
            raise PreconditionError(
                f"This command has to be run as the {self._service_user} user "
                f"(running as {user}), aborting."
            )

    def require_admin(self) -> None:
        """Raise ``PreconditionError`` unless running as root."""
        if os.geteuid() != 0:
            raise PreconditionError("This command has to be run as root, aborting.")


class InstanceLock:
    """Exclusive advisory lock held for the duration of one run.

    Example:
        with InstanceLock(config.lock_path):
            ...
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._fd: int | None = None

    def acquire(self) -> None:
        # Opened by root (restore) and the service user (backup); flock needs
        # only a read descriptor.
        try:
            fd = os.open(self.path, os.O_RDONLY | os.O_CREAT, 0o644)
        except OSError as e:
            raise PreconditionError(f"Cannot open lock file {self.path}: {e}") from e
        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            os.close(fd)
            raise PreconditionError(
                f"Another backup or restore holds {self.path}; it must not run "
                f"concurrently for the same instance, aborting."
            ) from None
        self._fd = fd

    def release(self) -> None:
        if self._fd is None:
            return
        try:
            fcntl.flock(self._fd, fcntl.LOCK_UN)
        finally:
            os.close(self._fd)
            self._fd = None

    def __enter__(self) -> "InstanceLock":
        self.acquire()
        return self

    def __exit__(self, *exc_info) -> None:
        self.release()
