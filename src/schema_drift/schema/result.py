"""Comparison result models.

A ``ComparisonResult`` is produced once per comparison run and never
mutated. It carries plain diff data only; presentation belongs to whatever renders
it.

Example:
    >>> result = ComparisonResult(
    ...     source_instance="staging",
    ...     destination_instance="production",
    ... )
    >>> result.summary.total_objects
    0
    >>> result.is_identical
    True
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel

from schema_drift.schema.filter import ComparisonFilter
from schema_drift.schema.models import (
    AttributeDifference,
    IdentityKey,
    SchemaObjectKind,
)

_OUTPUT_CONFIG = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class ObjectRef(BaseModel):
    """A missing or extra object: its kind and qualified name."""

    model_config = _OUTPUT_CONFIG

    kind: SchemaObjectKind
    schema_name: str
    object_name: str
    identity_args: str = ""

    @classmethod
    def from_key(cls, key: IdentityKey) -> "ObjectRef":
        return cls(
            kind=key.kind,
            schema_name=key.schema_name,
            object_name=key.object_name,
            identity_args=key.identity_args,
        )

    @property
    def identity_key(self) -> IdentityKey:
        return IdentityKey(
            self.kind, self.schema_name, self.object_name, self.identity_args
        )

    @computed_field(alias="fullyQualifiedName")
    @property
    def fully_qualified_name(self) -> str:
        return self.identity_key.display_name


class ModifiedObject(ObjectRef):
    """An object present on both sides whose structure differs."""

    differences: list[AttributeDifference] = Field(default_factory=list)

    @property
    def is_breaking(self) -> bool:
        return any(diff.breaking for diff in self.differences)

    @property
    def breaking_count(self) -> int:
        return sum(1 for diff in self.differences if diff.breaking)


class ComparisonSummary(BaseModel):
    """The four headline counts of a comparison run."""

    model_config = _OUTPUT_CONFIG

    missing_objects: int = 0
    extra_objects: int = 0
    modified_objects: int = 0
    matching_objects: int = 0

    @property
    def total_objects(self) -> int:
        return (
            self.missing_objects
            + self.extra_objects
            + self.modified_objects
            + self.matching_objects
        )

    @property
    def total_differences(self) -> int:
        return self.missing_objects + self.extra_objects + self.modified_objects

    def summary_text(self) -> str:
        if self.total_differences == 0:
            return f"Identical ({self.matching_objects} objects)"
        return (
            f"{self.missing_objects} missing, {self.extra_objects} extra, "
            f"{self.modified_objects} modified, {self.matching_objects} matching"
        )


class ComparisonResult(BaseModel):
    """Aggregated outcome of comparing a source and destination snapshot."""

    model_config = _OUTPUT_CONFIG

    source_instance: str
    destination_instance: str
    source_schema: str = "public"
    destination_schema: str = "public"
    compared_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    missing: list[ObjectRef] = Field(default_factory=list)
    extra: list[ObjectRef] = Field(default_factory=list)
    modified: list[ModifiedObject] = Field(default_factory=list)
    matching_count: int = 0
    filter: ComparisonFilter | None = Field(default=None, exclude=True)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def summary(self) -> ComparisonSummary:
        return ComparisonSummary(
            missing_objects=len(self.missing),
            extra_objects=len(self.extra),
            modified_objects=len(self.modified),
            matching_objects=self.matching_count,
        )

    @property
    def is_identical(self) -> bool:
        return self.summary.total_differences == 0

    @property
    def breaking_changes(self) -> list[ModifiedObject]:
        return [obj for obj in self.modified if obj.is_breaking]

    def find_modified(self, qualified_name: str) -> ModifiedObject | None:
        for obj in self.modified:
            if obj.fully_qualified_name == qualified_name:
                return obj
        return None

    def to_payload(self) -> dict[str, Any]:
        """Serialize to camelCase JSON-ready data for external consumers."""
        return self.model_dump(mode="json", by_alias=True)
