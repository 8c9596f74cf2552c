"""Database adapters package.

Provides the ``DatabaseClient`` Protocol and the async PostgreSQL adapter
used for persisting comparison history.

Usage:
    from schema_drift.adapters import DatabaseClient, AsyncPostgresAdapter
"""

from schema_drift.adapters.base import DatabaseClient
from schema_drift.adapters.postgres import AsyncPostgresAdapter

__all__ = [
    "DatabaseClient",
    "AsyncPostgresAdapter",
]
