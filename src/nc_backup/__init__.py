"""nc-backup: coordinated backup and restore of a Nextcloud instance.

Backs up the instance config, manually installed apps, the data directory
and the database as one operation under maintenance mode, and restores
such a backup after checking that it is complete and compatible.

Usage:
    from nc_backup import load_instance_config, BackupOrchestrator
    from nc_backup import RestoreOrchestrator, get_adapter
"""

__version__ = "0.1.0"

# Errors
from nc_backup.errors import NcBackupError

# Adapters
from nc_backup.adapters.base import DatabaseAdapter
from nc_backup.factory import get_adapter, supported_engines

# Config
from nc_backup.config.loader import load_instance_config
from nc_backup.config.models import InstanceConfig

# Backup models and checks
from nc_backup.backup.models import BackupArtifactSet, BackupManifest
from nc_backup.backup.compatibility import check_compatibility
from nc_backup.backup.verifier import verify_backup

# Orchestration
from nc_backup.orchestrator import (
    BackupOrchestrator,
    RestoreOrchestrator,
    RunResult,
)

__all__ = [
    # Errors
    "NcBackupError",
    # Adapters
    "DatabaseAdapter",
    "get_adapter",
    "supported_engines",
    # Config
    "load_instance_config",
    "InstanceConfig",
    # Backup
    "BackupArtifactSet",
    "BackupManifest",
    "check_compatibility",
    "verify_backup",
    # Orchestration
    "BackupOrchestrator",
    "RestoreOrchestrator",
    "RunResult",
]
