"""Maintenance mode gate.

Wraps ``occ maintenance:mode --on/--off`` so the instance is quiesced while
its files and database are copied.  Both calls are idempotent on the
Nextcloud side; the orchestrators guarantee each is issued once per run.
"""

import logging

from nc_backup.config.models import InstanceConfig
from nc_backup.errors import GateError
from nc_backup.process import run_command

logger = logging.getLogger(__name__)


class MaintenanceGate:
    """Toggle maintenance mode through the instance's ``occ`` command.

    Args:
        config: The live instance; ``config.occ`` is the admin command argv.
    """

    def __init__(self, config: InstanceConfig) -> None:
        self._occ = list(config.occ)

    def enable(self) -> None:
        """Turn maintenance mode on.

        Raises:
            GateError: If ``occ`` fails.
        """
        logger.info("Enabling maintenance mode...")
        run_command([*self._occ, "maintenance:mode", "--on"], error=GateError)

    def disable(self) -> None:
        """Turn maintenance mode off.

        Raises:
            GateError: If ``occ`` fails.
        """
        logger.info("Disabling maintenance mode...")
        run_command([*self._occ, "maintenance:mode", "--off"], error=GateError)
