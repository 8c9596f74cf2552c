"""Exception hierarchy for schema comparison and drift detection.

Errors fall into two groups:

1. Input defects surfaced straight to the caller (``InvalidFilterConfiguration``,
   ``DuplicateIdentityError``, ``SnapshotError``, unknown config names).
2. Run-level failures (``ComparisonTimeoutError``) and audit failures
   (``HistorySerializationError``), the latter never failing a comparison.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from schema_drift.schema.models import IdentityKey


class SchemaDriftError(Exception):
    """Base class for all schema-drift errors."""


class InvalidFilterConfiguration(SchemaDriftError, ValueError):
    """Raised when a comparison filter holds a malformed pattern or kind."""


class DuplicateIdentityError(SchemaDriftError):
    """Raised when two objects on one snapshot side share an identity key.

    This points at a defect in snapshot collection and is never
    deduplicated silently.
    """

    def __init__(self, key: IdentityKey, side: str) -> None:
        self.key = key
        self.side = side
        super().__init__(
            f"Duplicate identity on {side} side: {key.kind.value} {key.display_name}"
        )


class ComparisonTimeoutError(SchemaDriftError):
    """Raised when a comparison exceeds the caller-imposed timeout."""


class HistorySerializationError(SchemaDriftError):
    """Raised when a history payload cannot be encoded or decoded."""


class SnapshotError(SchemaDriftError):
    """Raised when a snapshot file cannot be read or is invalid."""


class InstanceNotFoundError(SchemaDriftError, KeyError):
    """Raised when a database instance name is not configured."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class ComparisonProfileNotFoundError(SchemaDriftError, KeyError):
    """Raised when a comparison profile name is not configured."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""
