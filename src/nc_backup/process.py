"""Blocking runner for the external tools a run depends on.

rsync, the database dump/restore binaries and the ``occ`` admin CLI are all
invoked through ``run_command()``.  Calls block until the child exits; there
is no internal timeout.  A nonzero exit status or a failure to start the
executable is raised as the caller-chosen ``NcBackupError`` subclass.

Credentials are passed through ``env`` only, so the argv that gets logged
never contains a secret.
"""

import logging
import os
import subprocess
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import IO

from nc_backup.errors import NcBackupError

logger = logging.getLogger(__name__)

# Lines of stderr kept in error messages
_STDERR_TAIL = 10


def run_command(
    argv: Sequence[str | Path],
    error: type[NcBackupError],
    env: Mapping[str, str] | None = None,
    stdin: IO[bytes] | None = None,
    stdout: IO[bytes] | None = None,
) -> None:
    """Run an external command and raise ``error`` if it fails.

    Args:
        argv: Program and arguments.
        error: Exception class raised on failure.
        env: Extra environment variables merged over ``os.environ``.
        stdin: Optional binary file object fed to the child's stdin.
        stdout: Optional binary file object receiving the child's stdout.

    Raises:
        error: If the program cannot be started or exits nonzero.

    Example:
        run_command(["rsync", "-rlt", src, dest], error=SyncError)
    """
    args = [str(a) for a in argv]
    logger.debug("Running: %s", " ".join(args))

    child_env = None
    if env:
        child_env = {**os.environ, **env}

    try:
        result = subprocess.run(
            args,
            env=child_env,
            stdin=stdin,
            stdout=stdout if stdout is not None else subprocess.DEVNULL,
            stderr=subprocess.PIPE,
            check=False,
        )
    except OSError as e:
        raise error(f"Could not run {args[0]}: {e}") from e

    if result.returncode != 0:
        stderr = result.stderr.decode(errors="replace").strip()
        tail = "\n".join(stderr.splitlines()[-_STDERR_TAIL:])
        message = f"{args[0]} exited with status {result.returncode}"
        if tail:
            message = f"{message}:\n{tail}"
        raise error(message)
