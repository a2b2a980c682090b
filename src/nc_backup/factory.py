"""Database adapter selection.

The adapter for a run is chosen exactly once, before anything is touched,
by exact match on ``InstanceConfig.database.engine``.  There is no
fallback: an unknown engine tag is a configuration error.
"""

from nc_backup.adapters import MysqlAdapter, PostgresAdapter, SqliteAdapter
from nc_backup.adapters.base import DatabaseAdapter
from nc_backup.config.models import InstanceConfig
from nc_backup.errors import ConfigurationError

ADAPTERS: dict[str, type] = {
    "sqlite": SqliteAdapter,
    "pgsql": PostgresAdapter,
    "mysql": MysqlAdapter,
}


def supported_engines() -> list[str]:
    """Engine tags accepted by ``get_adapter``."""
    return sorted(ADAPTERS)


def get_adapter(config: InstanceConfig) -> DatabaseAdapter:
    """Build the adapter for the configured database engine.

    Args:
        config: The live instance.

    Returns:
        Adapter implementing ``DatabaseAdapter``.

    Raises:
        ConfigurationError: If the engine tag is not supported.

    Example:
        >>> adapter = get_adapter(config)
        >>> adapter.artifact_name()
        'database-pgsql.bak'
    """
    adapter_cls = ADAPTERS.get(config.engine)
    if adapter_cls is None:
        raise ConfigurationError(
            f"Unknown nextcloud database type {config.engine!r}. "
            f"Supported: {', '.join(supported_engines())}"
        )
    return adapter_cls(config)
