"""History store implementations.

A history store persists ``ComparisonHistory`` records and answers the
lookups drift detection needs. Two implementations ship:

- ``InMemoryHistoryStore``: process-local, for tests and one-off CLI runs
- ``PostgresHistoryStore``: ``schema_drift.comparison_history`` table via
  the async SQLAlchemy adapter

Usage:
    from schema_drift.adapters import AsyncPostgresAdapter
    from schema_drift.history.store import PostgresHistoryStore

    store = PostgresHistoryStore(AsyncPostgresAdapter(url, jsonb_params=[...]))
    await store.ensure_schema()
    saved = await store.save(history)
    previous = await store.find_most_recent(saved.drift_key)
"""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Protocol

from schema_drift.adapters.base import DatabaseClient
from schema_drift.history.models import ComparisonHistory, DriftKey

logger = logging.getLogger(__name__)


class HistoryStore(Protocol):
    """Persistence boundary for comparison history. All methods are async."""

    async def save(self, history: ComparisonHistory) -> ComparisonHistory:
        """Persist *history* and return it with its assigned id."""
        ...

    async def find_most_recent(self, key: DriftKey) -> ComparisonHistory | None:
        """Most recent record for the exact instance/schema/profile tuple."""
        ...

    async def find_recent(self, limit: int = 20) -> list[ComparisonHistory]:
        """Newest records first, across all pairs."""
        ...

    async def find_by_instances(
        self, source_instance: str, destination_instance: str, days: int = 30
    ) -> list[ComparisonHistory]:
        """Records for one instance pair within the last *days* days."""
        ...

    async def find_by_id(self, history_id: int) -> ComparisonHistory | None:
        ...

    async def delete_older_than(self, days: int) -> int:
        """Delete records older than *days* days; return how many were removed."""
        ...

    async def count(self) -> int:
        ...

    async def close(self) -> None:
        """Release any connection the store holds."""
        ...


def _newest_first(history: ComparisonHistory) -> tuple[datetime, int]:
    return history.compared_at, history.id or 0


# ============================================================================
# In-Memory Store
# ============================================================================


class InMemoryHistoryStore:
    """Process-local history store guarded by an ``asyncio.Lock``."""

    def __init__(self) -> None:
        self._records: list[ComparisonHistory] = []
        self._next_id = 1
        self._lock = asyncio.Lock()

    async def save(self, history: ComparisonHistory) -> ComparisonHistory:
        async with self._lock:
            saved = history.with_id(self._next_id)
            self._next_id += 1
            self._records.append(saved)
            return saved

    async def find_most_recent(self, key: DriftKey) -> ComparisonHistory | None:
        async with self._lock:
            matches = [h for h in self._records if h.drift_key == key]
        if not matches:
            return None
        return max(matches, key=_newest_first)

    async def find_recent(self, limit: int = 20) -> list[ComparisonHistory]:
        async with self._lock:
            records = list(self._records)
        return sorted(records, key=_newest_first, reverse=True)[:limit]

    async def find_by_instances(
        self, source_instance: str, destination_instance: str, days: int = 30
    ) -> list[ComparisonHistory]:
        cutoff = datetime.now(timezone.utc) - timedelta(days=days)
        async with self._lock:
            matches = [
                h
                for h in self._records
                if h.source_instance == source_instance
                and h.destination_instance == destination_instance
                and h.compared_at >= cutoff
            ]
        return sorted(matches, key=_newest_first, reverse=True)

    async def find_by_id(self, history_id: int) -> ComparisonHistory | None:
        async with self._lock:
            for record in self._records:
                if record.id == history_id:
                    return record
        return None

    async def delete_older_than(self, days: int) -> int:
        cutoff = datetime.now(timezone.utc) - timedelta(days=days)
        async with self._lock:
            kept = [h for h in self._records if h.compared_at >= cutoff]
            deleted = len(self._records) - len(kept)
            self._records = kept
        return deleted

    async def count(self) -> int:
        async with self._lock:
            return len(self._records)

    async def close(self) -> None:
        return None


# ============================================================================
# PostgreSQL Store
# ============================================================================

HISTORY_TABLE = "schema_drift.comparison_history"

HISTORY_DDL = [
    "CREATE SCHEMA IF NOT EXISTS schema_drift",
    f"""
    CREATE TABLE IF NOT EXISTS {HISTORY_TABLE} (
        id BIGSERIAL PRIMARY KEY,
        compared_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        source_instance TEXT NOT NULL,
        destination_instance TEXT NOT NULL,
        source_schema TEXT NOT NULL,
        destination_schema TEXT NOT NULL,
        performed_by TEXT,
        missing_count INT NOT NULL DEFAULT 0,
        extra_count INT NOT NULL DEFAULT 0,
        modified_count INT NOT NULL DEFAULT 0,
        matching_count INT NOT NULL DEFAULT 0,
        profile_name TEXT,
        result_snapshot JSONB,
        filter_config JSONB
    )
    """,
    f"""
    CREATE INDEX IF NOT EXISTS idx_comparison_history_time
        ON {HISTORY_TABLE} (compared_at DESC)
    """,
    f"""
    CREATE INDEX IF NOT EXISTS idx_comparison_history_instances
        ON {HISTORY_TABLE} (source_instance, destination_instance)
    """,
]

_COLUMNS = """
    id, compared_at, source_instance, destination_instance,
    source_schema, destination_schema, performed_by,
    missing_count, extra_count, modified_count, matching_count,
    profile_name,
    CAST(result_snapshot AS text) AS result_snapshot,
    CAST(filter_config AS text) AS filter_config
"""

JSONB_PARAMS = ["result_snapshot", "filter_config"]


def _json_text(value: Any) -> str | None:
    if value is None or isinstance(value, str):
        return value
    return json.dumps(value)


def _row_to_history(row: dict) -> ComparisonHistory:
    return ComparisonHistory(
        id=row["id"],
        compared_at=row["compared_at"],
        source_instance=row["source_instance"],
        destination_instance=row["destination_instance"],
        source_schema=row["source_schema"],
        destination_schema=row["destination_schema"],
        performed_by=row["performed_by"],
        missing_count=row["missing_count"],
        extra_count=row["extra_count"],
        modified_count=row["modified_count"],
        matching_count=row["matching_count"],
        profile_name=row["profile_name"],
        result_snapshot_json=_json_text(row["result_snapshot"]),
        filter_config_json=_json_text(row["filter_config"]),
    )


class PostgresHistoryStore:
    """History store backed by ``schema_drift.comparison_history``.

    The client should be created with ``jsonb_params=JSONB_PARAMS`` so the
    payload parameters are cast to ``jsonb`` on insert.
    """

    def __init__(self, client: DatabaseClient) -> None:
        self._client = client

    async def ensure_schema(self) -> None:
        """Create the history schema, table, and indexes when absent."""
        for statement in HISTORY_DDL:
            await self._client.execute(statement)
        logger.debug("Ensured history table %s", HISTORY_TABLE)

    async def save(self, history: ComparisonHistory) -> ComparisonHistory:
        row = await self._client.fetch_one(
            f"""
            INSERT INTO {HISTORY_TABLE} (
                compared_at, source_instance, destination_instance,
                source_schema, destination_schema, performed_by,
                missing_count, extra_count, modified_count, matching_count,
                profile_name, result_snapshot, filter_config
            ) VALUES (
                :compared_at, :source_instance, :destination_instance,
                :source_schema, :destination_schema, :performed_by,
                :missing_count, :extra_count, :modified_count, :matching_count,
                :profile_name, :result_snapshot, :filter_config
            )
            RETURNING id
            """,
            {
                "compared_at": history.compared_at,
                "source_instance": history.source_instance,
                "destination_instance": history.destination_instance,
                "source_schema": history.source_schema,
                "destination_schema": history.destination_schema,
                "performed_by": history.performed_by,
                "missing_count": history.missing_count,
                "extra_count": history.extra_count,
                "modified_count": history.modified_count,
                "matching_count": history.matching_count,
                "profile_name": history.profile_name,
                "result_snapshot": history.result_snapshot_json,
                "filter_config": history.filter_config_json,
            },
        )
        if row is None:
            raise RuntimeError("INSERT into comparison history returned no id")
        return history.with_id(row["id"])

    async def find_most_recent(self, key: DriftKey) -> ComparisonHistory | None:
        row = await self._client.fetch_one(
            f"""
            SELECT {_COLUMNS} FROM {HISTORY_TABLE}
            WHERE source_instance = :source_instance
              AND destination_instance = :destination_instance
              AND source_schema = :source_schema
              AND destination_schema = :destination_schema
              AND profile_name IS NOT DISTINCT FROM CAST(:profile_name AS text)
            ORDER BY compared_at DESC, id DESC
            LIMIT 1
            """,
            key._asdict(),
        )
        return _row_to_history(row) if row else None

    async def find_recent(self, limit: int = 20) -> list[ComparisonHistory]:
        rows = await self._client.fetch_all(
            f"""
            SELECT {_COLUMNS} FROM {HISTORY_TABLE}
            ORDER BY compared_at DESC, id DESC
            LIMIT :limit
            """,
            {"limit": limit},
        )
        return [_row_to_history(row) for row in rows]

    async def find_by_instances(
        self, source_instance: str, destination_instance: str, days: int = 30
    ) -> list[ComparisonHistory]:
        rows = await self._client.fetch_all(
            f"""
            SELECT {_COLUMNS} FROM {HISTORY_TABLE}
            WHERE source_instance = :source_instance
              AND destination_instance = :destination_instance
              AND compared_at >= NOW() - make_interval(days => :days)
            ORDER BY compared_at DESC, id DESC
            """,
            {
                "source_instance": source_instance,
                "destination_instance": destination_instance,
                "days": days,
            },
        )
        return [_row_to_history(row) for row in rows]

    async def find_by_id(self, history_id: int) -> ComparisonHistory | None:
        row = await self._client.fetch_one(
            f"SELECT {_COLUMNS} FROM {HISTORY_TABLE} WHERE id = :id",
            {"id": history_id},
        )
        return _row_to_history(row) if row else None

    async def delete_older_than(self, days: int) -> int:
        return await self._client.execute(
            f"""
            DELETE FROM {HISTORY_TABLE}
            WHERE compared_at < NOW() - make_interval(days => :days)
            """,
            {"days": days},
        )

    async def count(self) -> int:
        row = await self._client.fetch_one(
            f"SELECT COUNT(*) AS total FROM {HISTORY_TABLE}"
        )
        return int(row["total"]) if row else 0

    async def close(self) -> None:
        await self._client.close()
