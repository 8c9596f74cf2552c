"""Comparison history recording and drift detection.

``HistoryService`` sits between a finished comparison and the history
store. Recording is decoupled from comparing: a payload that cannot be
serialized is logged and the write skipped, and the caller keeps its
``ComparisonResult`` either way.

Usage:
    service = HistoryService(InMemoryHistoryStore())

    drifted = await service.detect_drift(result, profile_name="nightly")
    await service.record(result, actor="ci", profile_name="nightly")
"""

from __future__ import annotations

import logging

from schema_drift.errors import HistorySerializationError
from schema_drift.history.models import (
    ComparisonHistory,
    DriftKey,
    DriftSummary,
    ObjectDrift,
)
from schema_drift.history.store import HistoryStore
from schema_drift.schema.result import ComparisonResult

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_DAYS = 90


def drift_key_for(result: ComparisonResult, profile_name: str | None = None) -> DriftKey:
    return DriftKey(
        result.source_instance,
        result.destination_instance,
        result.source_schema,
        result.destination_schema,
        profile_name,
    )


def _counts_of(result: ComparisonResult) -> ComparisonHistory:
    """Unpersisted record carrying only the identifying fields and counts."""
    summary = result.summary
    return ComparisonHistory(
        compared_at=result.compared_at,
        source_instance=result.source_instance,
        destination_instance=result.destination_instance,
        source_schema=result.source_schema,
        destination_schema=result.destination_schema,
        missing_count=summary.missing_objects,
        extra_count=summary.extra_objects,
        modified_count=summary.modified_objects,
        matching_count=summary.matching_objects,
    )


class HistoryService:
    """Records comparison runs and compares them against earlier runs."""

    def __init__(
        self,
        store: HistoryStore,
        retention_days: int = DEFAULT_RETENTION_DAYS,
    ) -> None:
        self._store = store
        self._retention_days = retention_days

    @property
    def store(self) -> HistoryStore:
        return self._store

    async def record(
        self,
        result: ComparisonResult,
        actor: str | None,
        profile_name: str | None = None,
    ) -> ComparisonHistory | None:
        """Persist *result* as a history record.

        Returns:
            The saved record, or ``None`` when serialization failed and the
            write was skipped.
        """
        logger.info(
            "Recording comparison history: %s.%s -> %s.%s by %s",
            result.source_instance,
            result.source_schema,
            result.destination_instance,
            result.destination_schema,
            actor,
        )
        try:
            history = ComparisonHistory.from_result(result, actor, profile_name)
        except HistorySerializationError as e:
            logger.warning("Skipping history write: %s", e)
            return None
        return await self._store.save(history)

    async def previous_for(
        self, result: ComparisonResult, profile_name: str | None = None
    ) -> ComparisonHistory | None:
        """Most recent stored run for the same instance/schema/profile tuple."""
        return await self._store.find_most_recent(drift_key_for(result, profile_name))

    async def detect_drift(
        self, result: ComparisonResult, profile_name: str | None = None
    ) -> bool:
        """Count-based drift flag against the most recent prior run.

        Call before ``record`` so the prior run is not the current one.
        """
        previous = await self.previous_for(result, profile_name)
        return _counts_of(result).has_drift_from(previous)

    async def drift_summary(
        self, result: ComparisonResult, profile_name: str | None = None
    ) -> DriftSummary | None:
        """Signed count deltas against the prior run, or None on a first run."""
        previous = await self.previous_for(result, profile_name)
        if previous is None:
            return None
        return DriftSummary.between(_counts_of(result), previous)

    async def object_drift(
        self, result: ComparisonResult, profile_name: str | None = None
    ) -> ObjectDrift | None:
        """Identity-level drift against the prior run's stored result.

        Returns None when there is no prior run or it stored no payload.

        Raises:
            HistorySerializationError: If the stored payload is unreadable.
        """
        previous = await self.previous_for(result, profile_name)
        if previous is None:
            return None
        previous_result = previous.result_snapshot()
        if previous_result is None:
            return None
        return ObjectDrift.between(result, previous_result)

    async def history(self, limit: int = 20) -> list[ComparisonHistory]:
        return await self._store.find_recent(limit)

    async def history_for_pair(
        self, source_instance: str, destination_instance: str, days: int = 30
    ) -> list[ComparisonHistory]:
        return await self._store.find_by_instances(
            source_instance, destination_instance, days
        )

    async def find_by_id(self, history_id: int) -> ComparisonHistory | None:
        return await self._store.find_by_id(history_id)

    async def count(self) -> int:
        return await self._store.count()

    async def cleanup(self, retention_days: int | None = None) -> int:
        """Delete records older than the retention window."""
        days = self._retention_days if retention_days is None else retention_days
        deleted = await self._store.delete_older_than(days)
        logger.info("Deleted %d history records older than %d days", deleted, days)
        return deleted
