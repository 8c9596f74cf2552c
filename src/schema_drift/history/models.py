"""Comparison history records and drift reports.

A ``ComparisonHistory`` is built from a ``ComparisonResult`` once per run
and handed to a history store. It is never mutated afterwards; later runs
supersede it.

Persisted payloads are versioned pydantic documents rather than opaque
blobs, so historical results can be re-read and re-diffed object by object:

- ``ResultSnapshotPayload`` wraps the full ``ComparisonResult``
- ``FilterConfigPayload`` wraps the ``ComparisonFilter`` used for the run

Example:
    >>> history = ComparisonHistory(
    ...     source_instance="staging",
    ...     destination_instance="production",
    ...     missing_count=2, extra_count=0, modified_count=1, matching_count=40,
    ... )
    >>> history.has_drift_from(None)
    False
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal, NamedTuple

from pydantic import BaseModel, ConfigDict, Field

from schema_drift.errors import HistorySerializationError
from schema_drift.schema.filter import ComparisonFilter
from schema_drift.schema.models import IdentityKey
from schema_drift.schema.result import ComparisonResult

PAYLOAD_SCHEMA_VERSION = 1


class DriftKey(NamedTuple):
    """The tuple under which successive runs are compared for drift."""

    source_instance: str
    destination_instance: str
    source_schema: str = "public"
    destination_schema: str = "public"
    profile_name: str | None = None


class ResultSnapshotPayload(BaseModel):
    """Versioned persisted form of a ``ComparisonResult``."""

    model_config = ConfigDict(frozen=True)

    schema_version: Literal[1] = PAYLOAD_SCHEMA_VERSION
    result: ComparisonResult


class FilterConfigPayload(BaseModel):
    """Versioned persisted form of a ``ComparisonFilter``."""

    model_config = ConfigDict(frozen=True)

    schema_version: Literal[1] = PAYLOAD_SCHEMA_VERSION
    filter: ComparisonFilter


def _dump_payload(payload: BaseModel) -> str:
    return payload.model_dump_json(by_alias=True)


class ComparisonHistory(BaseModel):
    """One persisted comparison run.

    ``id`` is ``None`` until a history store assigns one.
    """

    model_config = ConfigDict(frozen=True)

    id: int | None = None
    compared_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    source_instance: str
    destination_instance: str
    source_schema: str = "public"
    destination_schema: str = "public"
    performed_by: str | None = None
    missing_count: int = 0
    extra_count: int = 0
    modified_count: int = 0
    matching_count: int = 0
    profile_name: str | None = None
    result_snapshot_json: str | None = None
    filter_config_json: str | None = None

    @classmethod
    def from_result(
        cls,
        result: ComparisonResult,
        actor: str | None,
        profile_name: str | None = None,
    ) -> "ComparisonHistory":
        """Capture *result* as a history record initiated by *actor*.

        Raises:
            HistorySerializationError: If the result or filter payload
                cannot be encoded.
        """
        try:
            result_json = _dump_payload(ResultSnapshotPayload(result=result))
            filter_json = (
                _dump_payload(FilterConfigPayload(filter=result.filter))
                if result.filter is not None
                else None
            )
        except (TypeError, ValueError) as e:
            raise HistorySerializationError(
                f"Failed to serialize comparison result: {e}"
            ) from e

        summary = result.summary
        return cls(
            compared_at=result.compared_at,
            source_instance=result.source_instance,
            destination_instance=result.destination_instance,
            source_schema=result.source_schema,
            destination_schema=result.destination_schema,
            performed_by=actor,
            missing_count=summary.missing_objects,
            extra_count=summary.extra_objects,
            modified_count=summary.modified_objects,
            matching_count=summary.matching_objects,
            profile_name=profile_name,
            result_snapshot_json=result_json,
            filter_config_json=filter_json,
        )

    @property
    def drift_key(self) -> DriftKey:
        return DriftKey(
            self.source_instance,
            self.destination_instance,
            self.source_schema,
            self.destination_schema,
            self.profile_name,
        )

    @property
    def total_differences(self) -> int:
        return self.missing_count + self.extra_count + self.modified_count

    @property
    def total_objects(self) -> int:
        return self.total_differences + self.matching_count

    def has_drift_from(self, previous: ComparisonHistory | None) -> bool:
        """Return True when the missing, extra, or modified count changed.

        Only aggregate counts are compared: two runs that modify different
        objects but the same number of them report no drift. Use
        ``ObjectDrift.between`` for an identity-level view.
        """
        if previous is None:
            return False
        return (
            self.missing_count != previous.missing_count
            or self.extra_count != previous.extra_count
            or self.modified_count != previous.modified_count
        )

    def result_snapshot(self) -> ComparisonResult | None:
        """Decode the persisted result, or None when none was stored.

        Raises:
            HistorySerializationError: If the payload is malformed or of an
                unsupported version.
        """
        if self.result_snapshot_json is None:
            return None
        try:
            payload = ResultSnapshotPayload.model_validate_json(self.result_snapshot_json)
        except ValueError as e:
            raise HistorySerializationError(
                f"Invalid result payload on history {self.id}: {e}"
            ) from e
        return payload.result

    def filter_config(self) -> ComparisonFilter | None:
        """Decode the persisted filter, or None when none was stored."""
        if self.filter_config_json is None:
            return None
        try:
            payload = FilterConfigPayload.model_validate_json(self.filter_config_json)
        except ValueError as e:
            raise HistorySerializationError(
                f"Invalid filter payload on history {self.id}: {e}"
            ) from e
        return payload.filter

    def with_id(self, history_id: int) -> "ComparisonHistory":
        return self.model_copy(update={"id": history_id})


def _signed(delta: int) -> str:
    return f"+{delta}" if delta > 0 else str(delta)


class DriftSummary(BaseModel):
    """Signed count deltas between a run and the previous one for its key.

    Example:
        >>> summary = DriftSummary(missing_delta=1, modified_delta=-2)
        >>> summary.description()
        '+1 missing, -2 modified'
        >>> summary.total_drift
        3
    """

    model_config = ConfigDict(frozen=True)

    missing_delta: int = 0
    extra_delta: int = 0
    modified_delta: int = 0
    previous_compared_at: datetime | None = None

    @classmethod
    def between(
        cls, current: ComparisonHistory, previous: ComparisonHistory
    ) -> "DriftSummary":
        return cls(
            missing_delta=current.missing_count - previous.missing_count,
            extra_delta=current.extra_count - previous.extra_count,
            modified_delta=current.modified_count - previous.modified_count,
            previous_compared_at=previous.compared_at,
        )

    @property
    def has_drift(self) -> bool:
        return bool(self.missing_delta or self.extra_delta or self.modified_delta)

    @property
    def total_drift(self) -> int:
        return abs(self.missing_delta) + abs(self.extra_delta) + abs(self.modified_delta)

    def description(self) -> str:
        if not self.has_drift:
            return "No drift detected"
        parts = []
        if self.missing_delta:
            parts.append(f"{_signed(self.missing_delta)} missing")
        if self.extra_delta:
            parts.append(f"{_signed(self.extra_delta)} extra")
        if self.modified_delta:
            parts.append(f"{_signed(self.modified_delta)} modified")
        return ", ".join(parts)


def _keys(refs) -> set[IdentityKey]:
    return {ref.identity_key for ref in refs}


def _sorted(keys: set[IdentityKey]) -> list[IdentityKey]:
    return sorted(keys, key=lambda key: key.sort_key)


class ObjectDrift(BaseModel):
    """Identity-level drift between two runs' persisted results.

    ``new_*`` lists hold objects that entered a category since the previous
    run; ``resolved_*`` lists hold objects that left it.
    """

    model_config = ConfigDict(frozen=True)

    new_missing: list[IdentityKey] = Field(default_factory=list)
    resolved_missing: list[IdentityKey] = Field(default_factory=list)
    new_extra: list[IdentityKey] = Field(default_factory=list)
    resolved_extra: list[IdentityKey] = Field(default_factory=list)
    new_modified: list[IdentityKey] = Field(default_factory=list)
    resolved_modified: list[IdentityKey] = Field(default_factory=list)

    @classmethod
    def between(
        cls, current: ComparisonResult, previous: ComparisonResult
    ) -> "ObjectDrift":
        cur_missing, prev_missing = _keys(current.missing), _keys(previous.missing)
        cur_extra, prev_extra = _keys(current.extra), _keys(previous.extra)
        cur_mod, prev_mod = _keys(current.modified), _keys(previous.modified)
        return cls(
            new_missing=_sorted(cur_missing - prev_missing),
            resolved_missing=_sorted(prev_missing - cur_missing),
            new_extra=_sorted(cur_extra - prev_extra),
            resolved_extra=_sorted(prev_extra - cur_extra),
            new_modified=_sorted(cur_mod - prev_mod),
            resolved_modified=_sorted(prev_mod - cur_mod),
        )

    @property
    def has_drift(self) -> bool:
        return any(
            (
                self.new_missing,
                self.resolved_missing,
                self.new_extra,
                self.resolved_extra,
                self.new_modified,
                self.resolved_modified,
            )
        )
