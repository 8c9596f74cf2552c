"""Database client protocol definition.

Defines the ``DatabaseClient`` Protocol used by the PostgreSQL history
store. All methods are ``async def``.

Usage:
    from schema_drift.adapters.base import DatabaseClient

    async def do_work(client: DatabaseClient) -> None:
        rows = await client.fetch_all(
            "SELECT * FROM schema_drift.comparison_history WHERE id = :id",
            {"id": 7},
        )
        await client.execute("DELETE FROM schema_drift.comparison_history")
        await client.close()
"""

from typing import Any, Protocol


class DatabaseClient(Protocol):
    """Database client interface that history persistence relies on.

    All methods are async -- callers must ``await`` every operation.
    Parameters are named (``:name``) in every SQL string.
    """

    async def fetch_all(self, sql: str, params: dict[str, Any] | None = None) -> list[dict]:
        """Run a query and return every row.

        Args:
            sql: SQL query with ``:name`` placeholders.
            params: Optional dict of named parameters.

        Returns:
            List of dicts, one per row.  Empty list if no matches.
        """
        ...

    async def fetch_one(self, sql: str, params: dict[str, Any] | None = None) -> dict | None:
        """Run a query and return the first row, or ``None``.

        Statements with ``RETURNING`` are committed.
        """
        ...

    async def execute(self, sql: str, params: dict[str, Any] | None = None) -> int:
        """Execute a statement (DDL or DML) in its own transaction.

        Returns:
            Number of rows affected (``-1`` when the driver cannot tell).
        """
        ...

    async def close(self) -> None:
        """Close database connection and clean up resources."""
        ...
