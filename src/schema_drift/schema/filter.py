"""Filter configuration for schema comparisons.

A ``ComparisonFilter`` decides which schema objects take part in a
comparison. The engine applies the same filter to both snapshot sides.

Evaluation order for one object:

1. Excluded schemas -- a match drops the object
2. Included schemas -- when given, the schema must match one
3. Object kinds -- excluded kinds drop; a non-empty included set is an allowlist
4. Excluded name patterns -- a match drops the object
5. Included name patterns -- when given, the name must match one
6. ``name_pattern`` -- when given, a regular expression searched in the name

Pattern lists use wildcards (``*`` any run, ``?`` one character, whole-name
match) unless ``use_regex`` is set, in which case each entry is a regular
expression that must match the whole value.

Usage:
    from schema_drift.schema.filter import ComparisonFilter, FilterPreset

    flt = ComparisonFilter.from_preset(FilterPreset.PRODUCTION_SAFE)
    flt = flt.model_copy(update={"included_schemas": ["public"]})
    flt.check()  # raises InvalidFilterConfiguration on a bad pattern
"""

from __future__ import annotations

import re
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from schema_drift.errors import InvalidFilterConfiguration
from schema_drift.schema.models import SchemaObject, SchemaObjectKind

_TEMP_TABLE_PATTERNS = ["temp_*", "tmp_*", "*_backup", "*_bak", "zz_*"]
_SYSTEM_SCHEMA_PATTERNS = ["pg_catalog", "information_schema", "pg_toast"]


class FilterPreset(str, Enum):
    """Predefined filters for common comparison scenarios."""

    NONE = "NONE"
    EXCLUDE_TEMP_TABLES = "EXCLUDE_TEMP_TABLES"
    EXCLUDE_SYSTEM_SCHEMAS = "EXCLUDE_SYSTEM_SCHEMAS"
    PRODUCTION_SAFE = "PRODUCTION_SAFE"

    @property
    def name_patterns(self) -> list[str]:
        if self in (FilterPreset.EXCLUDE_TEMP_TABLES, FilterPreset.PRODUCTION_SAFE):
            return list(_TEMP_TABLE_PATTERNS)
        return []

    @property
    def schema_patterns(self) -> list[str]:
        if self in (FilterPreset.EXCLUDE_SYSTEM_SCHEMAS, FilterPreset.PRODUCTION_SAFE):
            return list(_SYSTEM_SCHEMA_PATTERNS)
        return []


def wildcard_to_regex(pattern: str) -> str:
    """Translate a ``*``/``?`` wildcard into an anchored regular expression.

    Examples:
        >>> wildcard_to_regex("tmp_*")
        '^tmp_.*$'
        >>> wildcard_to_regex("a.b?")
        '^a\\\\.b.$'
    """
    parts = []
    for char in pattern:
        if char == "*":
            parts.append(".*")
        elif char == "?":
            parts.append(".")
        else:
            parts.append(re.escape(char))
    return "^" + "".join(parts) + "$"


class ComparisonFilter(BaseModel):
    """Include/exclude rules applied to both snapshot sides.

    Example:
        >>> flt = ComparisonFilter(included_schemas=["public"])
        >>> flt.has_filters
        True
        >>> flt.summary()
        'Including schemas: public'
    """

    model_config = ConfigDict(frozen=True)

    included_schemas: list[str] = Field(default_factory=list)
    excluded_schemas: list[str] = Field(default_factory=list)
    included_kinds: set[SchemaObjectKind] = Field(default_factory=set)
    excluded_kinds: set[SchemaObjectKind] = Field(default_factory=set)
    included_name_patterns: list[str] = Field(default_factory=list)
    excluded_name_patterns: list[str] = Field(default_factory=list)
    name_pattern: str | None = None
    use_regex: bool = False

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_preset(cls, preset: FilterPreset | str) -> "ComparisonFilter":
        """Build a filter from a named preset."""
        try:
            preset = FilterPreset(preset)
        except ValueError:
            available = ", ".join(p.value for p in FilterPreset)
            raise InvalidFilterConfiguration(
                f"Unknown filter preset '{preset}'. Available: {available}"
            ) from None
        return cls(
            excluded_name_patterns=preset.name_patterns,
            excluded_schemas=preset.schema_patterns,
        )

    @classmethod
    def from_pattern_string(
        cls, patterns: str | None, use_regex: bool = False
    ) -> "ComparisonFilter":
        """Build a filter excluding the comma-separated object-name patterns."""
        excluded = [p.strip() for p in (patterns or "").split(",") if p.strip()]
        return cls(excluded_name_patterns=excluded, use_regex=use_regex)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def check(self) -> None:
        """Compile every pattern once, rejecting malformed ones.

        Raises:
            InvalidFilterConfiguration: If a pattern does not compile or a
                kind is listed as both included and excluded.
        """
        for field_name in (
            "included_schemas",
            "excluded_schemas",
            "included_name_patterns",
            "excluded_name_patterns",
        ):
            for pattern in getattr(self, field_name):
                if not pattern:
                    raise InvalidFilterConfiguration(
                        f"Empty pattern in {field_name}"
                    )
                self._compile(pattern, field_name)

        if self.name_pattern is not None:
            try:
                re.compile(self.name_pattern)
            except re.error as e:
                raise InvalidFilterConfiguration(
                    f"Invalid name_pattern '{self.name_pattern}': {e}"
                ) from e

        overlap = self.included_kinds & self.excluded_kinds
        if overlap:
            names = ", ".join(sorted(kind.value for kind in overlap))
            raise InvalidFilterConfiguration(
                f"Kinds both included and excluded: {names}"
            )

    def _compile(self, pattern: str, field_name: str = "pattern") -> re.Pattern[str]:
        source = pattern if self.use_regex else wildcard_to_regex(pattern)
        try:
            return re.compile(source)
        except re.error as e:
            raise InvalidFilterConfiguration(
                f"Invalid pattern '{pattern}' in {field_name}: {e}"
            ) from e

    # ------------------------------------------------------------------
    # Matching
    # ------------------------------------------------------------------

    def _matches_any(self, value: str, patterns: list[str]) -> bool:
        return any(self._compile(p).fullmatch(value) for p in patterns)

    def matches_schema(self, schema_name: str) -> bool:
        if self._matches_any(schema_name, self.excluded_schemas):
            return False
        if self.included_schemas:
            return self._matches_any(schema_name, self.included_schemas)
        return True

    def matches_kind(self, kind: SchemaObjectKind) -> bool:
        if kind in self.excluded_kinds:
            return False
        return not self.included_kinds or kind in self.included_kinds

    def matches_name(self, object_name: str) -> bool:
        if self._matches_any(object_name, self.excluded_name_patterns):
            return False
        if self.included_name_patterns and not self._matches_any(
            object_name, self.included_name_patterns
        ):
            return False
        if self.name_pattern is not None:
            return re.search(self.name_pattern, object_name) is not None
        return True

    def matches(self, obj: SchemaObject, schema_name: str | None = None) -> bool:
        """Return True when ``obj`` takes part in the comparison.

        *schema_name* replaces the object's own schema for the schema rules,
        so a side compared under another schema name is filtered as that one.
        """
        return (
            self.matches_schema(schema_name if schema_name is not None else obj.schema_name)
            and self.matches_kind(obj.object_kind)
            and self.matches_name(obj.object_name)
        )

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    @property
    def has_filters(self) -> bool:
        return bool(
            self.included_schemas
            or self.excluded_schemas
            or self.included_kinds
            or self.excluded_kinds
            or self.included_name_patterns
            or self.excluded_name_patterns
            or self.name_pattern
        )

    def summary(self) -> str:
        """Describe the active rules in one line."""
        parts: list[str] = []
        if self.included_schemas:
            parts.append(f"Including schemas: {', '.join(self.included_schemas)}")
        if self.excluded_schemas:
            parts.append(f"Excluding schemas: {', '.join(self.excluded_schemas)}")
        if self.included_kinds:
            kinds = sorted(kind.value for kind in self.included_kinds)
            parts.append(f"Kinds: {', '.join(kinds)}")
        if self.excluded_kinds:
            kinds = sorted(kind.value for kind in self.excluded_kinds)
            parts.append(f"Excluding kinds: {', '.join(kinds)}")
        if self.included_name_patterns:
            parts.append(f"Including: {', '.join(self.included_name_patterns)}")
        if self.excluded_name_patterns:
            parts.append(f"Excluding: {', '.join(self.excluded_name_patterns)}")
        if self.name_pattern:
            parts.append(f"Name matches: {self.name_pattern}")
        if not parts:
            return "No filters applied"
        return "; ".join(parts)
