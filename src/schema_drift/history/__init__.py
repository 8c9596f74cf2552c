"""Comparison history: records, stores, and drift detection.

Usage:
    >>> from schema_drift.history import HistoryService, InMemoryHistoryStore
"""

from schema_drift.history.models import (
    ComparisonHistory,
    DriftKey,
    DriftSummary,
    FilterConfigPayload,
    ObjectDrift,
    ResultSnapshotPayload,
)
from schema_drift.history.service import HistoryService
from schema_drift.history.store import (
    HistoryStore,
    InMemoryHistoryStore,
    PostgresHistoryStore,
)

__all__ = [
    "ComparisonHistory",
    "DriftKey",
    "DriftSummary",
    "FilterConfigPayload",
    "ObjectDrift",
    "ResultSnapshotPayload",
    "HistoryService",
    "HistoryStore",
    "InMemoryHistoryStore",
    "PostgresHistoryStore",
]
