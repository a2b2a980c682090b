"""Database adapters package.

Provides the ``DatabaseAdapter`` Protocol and one concrete adapter per
supported engine tag (``sqlite``, ``pgsql``, ``mysql``).

Usage:
    from nc_backup.adapters import DatabaseAdapter, PostgresAdapter
"""

from nc_backup.adapters.base import DatabaseAdapter, read_password
from nc_backup.adapters.mysql import MysqlAdapter
from nc_backup.adapters.postgres import PostgresAdapter
from nc_backup.adapters.sqlite import SqliteAdapter

__all__ = [
    "DatabaseAdapter",
    "read_password",
    "SqliteAdapter",
    "PostgresAdapter",
    "MysqlAdapter",
]
