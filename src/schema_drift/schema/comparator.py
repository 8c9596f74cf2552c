"""Structural comparators, one strategy per schema object kind.

Each comparator answers two questions about a pair of same-kind objects:
``is_equal(a, b)`` and ``differences(a, b)``. Pure logic -- no I/O, no
database connections.

Comparators are looked up through a ``ComparatorRegistry`` keyed by
``SchemaObjectKind``. Supporting a new kind means registering one strategy:

    from schema_drift.schema.comparator import default_registry

    registry = default_registry()
    registry.register(SchemaObjectKind.TABLE, MyTableComparator())

Breaking classification: a difference is breaking when it can alter runtime
behavior or the object's external contract (definition text, language, data
types, signatures, presence of sub-objects). Owner, comments, planner hints,
and advisory flags are non-breaking.
"""

from __future__ import annotations

import re
from typing import Any, Protocol

from schema_drift.schema.models import (
    CALLABLE_KINDS,
    AttributeDifference,
    ColumnSchema,
    FunctionSchema,
    IndexSchema,
    SchemaObject,
    SchemaObjectKind,
    SequenceSchema,
    TableSchema,
    TriggerSchema,
    ViewSchema,
)

_WHITESPACE = re.compile(r"\s+")
_TRAILING_TERMINATORS = re.compile(r"[\s;]+$")


# ============================================================================
# Normalization
# ============================================================================


def normalize_definition(text: str | None) -> str | None:
    """Collapse whitespace runs to one space and trim the ends.

    Examples:
        >>> normalize_definition("SELECT  1;\\n")
        'SELECT 1;'
        >>> normalize_definition(normalize_definition("  a\\t b ")) == normalize_definition("  a\\t b ")
        True
    """
    if text is None:
        return None
    return _WHITESPACE.sub(" ", text).strip()


def normalize_view_definition(text: str | None) -> str | None:
    """Normalize view text: whitespace, trailing semicolons, and case.

    Examples:
        >>> normalize_view_definition(" SELECT id\\n FROM t; ")
        'select id from t'
    """
    if text is None:
        return None
    collapsed = _WHITESPACE.sub(" ", text)
    return _TRAILING_TERMINATORS.sub("", collapsed).strip().lower()


def _yes_no(flag: bool) -> str:
    return "YES" if flag else "NO"


def _joined(values: list[str]) -> str:
    return ", ".join(values)


def _text(value: Any) -> str | None:
    return None if value is None else str(value)


# ============================================================================
# Strategy Protocol and Base
# ============================================================================


class StructuralComparator(Protocol):
    """Equality and differencing strategy for one object kind."""

    def is_equal(self, source: Any, destination: Any) -> bool:
        """Return True when both objects are structurally equal."""
        ...

    def differences(self, source: Any, destination: Any) -> list[AttributeDifference]:
        """Return the ordered attribute differences from source to destination."""
        ...


class BaseComparator:
    """Comparator whose equality is "no tracked attribute differs"."""

    def is_equal(self, source: Any, destination: Any) -> bool:
        return not self.differences(source, destination)

    def differences(self, source: Any, destination: Any) -> list[AttributeDifference]:
        raise NotImplementedError


# ============================================================================
# Callables
# ============================================================================


class CallableComparator(BaseComparator):
    """Compares functions, procedures, aggregates, and window functions.

    Equality covers the normalized definition, language, volatility, strict,
    and security-definer flags. Owner and comment are cosmetic.

    Example:
        >>> a = FunctionSchema(schema_name="public", function_name="f", definition="SELECT  1;")
        >>> b = FunctionSchema(schema_name="public", function_name="f", definition="SELECT 1;")
        >>> CallableComparator().is_equal(a, b)
        True
    """

    def is_equal(self, source: FunctionSchema, destination: FunctionSchema) -> bool:
        return (
            normalize_definition(source.definition)
            == normalize_definition(destination.definition)
            and source.language == destination.language
            and source.volatility == destination.volatility
            and source.strict == destination.strict
            and source.security_definer == destination.security_definer
        )

    def differences(
        self, source: FunctionSchema, destination: FunctionSchema
    ) -> list[AttributeDifference]:
        diffs: list[AttributeDifference] = []

        if normalize_definition(source.definition) != normalize_definition(
            destination.definition
        ):
            diffs.append(
                AttributeDifference(
                    attribute_name="Definition",
                    source_value=source.definition,
                    destination_value=destination.definition,
                    breaking=True,
                )
            )

        if source.language != destination.language:
            diffs.append(
                AttributeDifference(
                    attribute_name="Language",
                    source_value=source.language,
                    destination_value=destination.language,
                    breaking=True,
                )
            )

        if source.volatility != destination.volatility:
            diffs.append(
                AttributeDifference(
                    attribute_name="Volatility",
                    source_value=source.volatility.value,
                    destination_value=destination.volatility.value,
                    breaking=False,
                )
            )

        if source.strict != destination.strict:
            diffs.append(
                AttributeDifference(
                    attribute_name="Strict",
                    source_value=_yes_no(source.strict),
                    destination_value=_yes_no(destination.strict),
                    breaking=False,
                )
            )

        if source.security_definer != destination.security_definer:
            diffs.append(
                AttributeDifference(
                    attribute_name="SecurityDefiner",
                    source_value=_yes_no(source.security_definer),
                    destination_value=_yes_no(destination.security_definer),
                    breaking=False,
                )
            )

        return diffs


# ============================================================================
# Tables
# ============================================================================


class TableComparator(BaseComparator):
    """Compares tables column by column, then constraints and triggers.

    Column, constraint, and trigger presence changes are reported under the
    ``Columns``, ``Constraints``, and ``Triggers`` attributes. Changes inside
    a common column are reported as ``Column <name>: <field>``.
    """

    def differences(
        self, source: TableSchema, destination: TableSchema
    ) -> list[AttributeDifference]:
        diffs: list[AttributeDifference] = []
        diffs.extend(self._column_differences(source, destination))
        diffs.extend(self._constraint_differences(source, destination))
        diffs.extend(self._trigger_differences(source, destination))

        if source.row_level_security != destination.row_level_security:
            diffs.append(
                AttributeDifference(
                    attribute_name="Row Level Security",
                    source_value=_yes_no(source.row_level_security),
                    destination_value=_yes_no(destination.row_level_security),
                    breaking=True,
                )
            )
        return diffs

    def _column_differences(
        self, source: TableSchema, destination: TableSchema
    ) -> list[AttributeDifference]:
        diffs: list[AttributeDifference] = []
        dest_columns = {col.name: col for col in destination.columns}
        source_names = {col.name for col in source.columns}

        for col in source.columns:
            other = dest_columns.get(col.name)
            if other is None:
                diffs.append(
                    AttributeDifference(
                        attribute_name="Columns",
                        source_value=col.describe(),
                        destination_value=None,
                        breaking=True,
                    )
                )
            else:
                diffs.extend(self._column_attribute_differences(col, other))

        # Destination-only columns, in destination order
        for col in destination.columns:
            if col.name not in source_names:
                diffs.append(
                    AttributeDifference(
                        attribute_name="Columns",
                        source_value=None,
                        destination_value=col.describe(),
                        breaking=True,
                    )
                )
        return diffs

    def _column_attribute_differences(
        self, source: ColumnSchema, destination: ColumnSchema
    ) -> list[AttributeDifference]:
        prefix = f"Column {source.name}"
        identity_source = source.identity_type if source.is_identity else "NO"
        identity_dest = destination.identity_type if destination.is_identity else "NO"

        checks = [
            ("Data Type", source.data_type, destination.data_type, True),
            (
                "Nullable",
                _yes_no(source.is_nullable),
                _yes_no(destination.is_nullable),
                True,
            ),
            ("Default", source.default, destination.default, False),
            ("Identity", identity_source, identity_dest, False),
            ("Comment", source.comment, destination.comment, False),
        ]
        return [
            AttributeDifference(
                attribute_name=f"{prefix}: {label}",
                source_value=src,
                destination_value=dst,
                breaking=breaking,
            )
            for label, src, dst, breaking in checks
            if src != dst
        ]

    def _constraint_differences(
        self, source: TableSchema, destination: TableSchema
    ) -> list[AttributeDifference]:
        diffs: list[AttributeDifference] = []
        source_map = {c.name: c for c in source.constraints}
        dest_map = {c.name: c for c in destination.constraints}

        for name in sorted(source_map.keys() | dest_map.keys()):
            src = source_map.get(name)
            dst = dest_map.get(name)
            if src is None or dst is None:
                diffs.append(
                    AttributeDifference(
                        attribute_name="Constraints",
                        source_value=f"{name}: {src.describe()}" if src else None,
                        destination_value=f"{name}: {dst.describe()}" if dst else None,
                        breaking=True,
                    )
                )
                continue

            src_text = normalize_definition(src.describe())
            dst_text = normalize_definition(dst.describe())
            if src_text != dst_text:
                diffs.append(
                    AttributeDifference(
                        attribute_name=f"Constraint {name}: Definition",
                        source_value=src.describe(),
                        destination_value=dst.describe(),
                        breaking=True,
                    )
                )
        return diffs

    def _trigger_differences(
        self, source: TableSchema, destination: TableSchema
    ) -> list[AttributeDifference]:
        diffs: list[AttributeDifference] = []
        source_map = {t.name: t for t in source.triggers}
        dest_map = {t.name: t for t in destination.triggers}

        for name in sorted(source_map.keys() | dest_map.keys()):
            src = source_map.get(name)
            dst = dest_map.get(name)
            if src is None or dst is None:
                diffs.append(
                    AttributeDifference(
                        attribute_name="Triggers",
                        source_value=self._describe_trigger(src) if src else None,
                        destination_value=self._describe_trigger(dst) if dst else None,
                        breaking=True,
                    )
                )
                continue

            checks = [
                ("Timing", src.timing, dst.timing),
                ("Events", src.events, dst.events),
                ("Level", src.level, dst.level),
                ("Function", src.function_name, dst.function_name),
                (
                    "Condition",
                    normalize_definition(src.condition),
                    normalize_definition(dst.condition),
                ),
                ("Enabled", _yes_no(src.enabled), _yes_no(dst.enabled)),
            ]
            for label, src_value, dst_value in checks:
                if src_value != dst_value:
                    diffs.append(
                        AttributeDifference(
                            attribute_name=f"Trigger {name}: {label}",
                            source_value=src_value,
                            destination_value=dst_value,
                            breaking=True,
                        )
                    )
        return diffs

    @staticmethod
    def _describe_trigger(trigger: TriggerSchema) -> str:
        return (
            f"{trigger.name}: {trigger.timing} {trigger.events} "
            f"FOR EACH {trigger.level} EXECUTE {trigger.function_name}"
        )


# ============================================================================
# Sequences, Views, Indexes
# ============================================================================


class SequenceComparator(BaseComparator):
    """Compares sequence parameters. Only the data type is breaking."""

    def differences(
        self, source: SequenceSchema, destination: SequenceSchema
    ) -> list[AttributeDifference]:
        checks = [
            ("Data Type", source.data_type, destination.data_type, True),
            ("Start Value", source.start_value, destination.start_value, False),
            ("Increment", source.increment, destination.increment, False),
            ("Min Value", source.min_value, destination.min_value, False),
            ("Max Value", source.max_value, destination.max_value, False),
            ("Cache Size", source.cache_size, destination.cache_size, False),
            ("Cycle", _yes_no(source.cycle), _yes_no(destination.cycle), False),
        ]
        return [
            AttributeDifference(
                attribute_name=label,
                source_value=_text(src),
                destination_value=_text(dst),
                breaking=breaking,
            )
            for label, src, dst, breaking in checks
            if src != dst
        ]


class ViewComparator(BaseComparator):
    """Compares view and materialized view definitions."""

    def differences(
        self, source: ViewSchema, destination: ViewSchema
    ) -> list[AttributeDifference]:
        if normalize_view_definition(source.definition) == normalize_view_definition(
            destination.definition
        ):
            return []
        return [
            AttributeDifference(
                attribute_name="Definition",
                source_value=source.definition,
                destination_value=destination.definition,
                breaking=True,
            )
        ]


class IndexComparator(BaseComparator):
    """Compares index structure. Every tracked index attribute is breaking."""

    def differences(
        self, source: IndexSchema, destination: IndexSchema
    ) -> list[AttributeDifference]:
        diffs: list[AttributeDifference] = []
        checks = [
            ("Table", source.table_name, destination.table_name),
            ("Index Type", source.index_type, destination.index_type),
            ("Columns", _joined(source.columns), _joined(destination.columns)),
            (
                "Include Columns",
                _joined(source.include_columns),
                _joined(destination.include_columns),
            ),
            ("Unique", _yes_no(source.is_unique), _yes_no(destination.is_unique)),
            ("Primary", _yes_no(source.is_primary), _yes_no(destination.is_primary)),
        ]
        for label, src, dst in checks:
            if src != dst:
                diffs.append(
                    AttributeDifference(
                        attribute_name=label,
                        source_value=src,
                        destination_value=dst,
                        breaking=True,
                    )
                )

        if normalize_definition(source.where_clause) != normalize_definition(
            destination.where_clause
        ):
            diffs.append(
                AttributeDifference(
                    attribute_name="WHERE Clause",
                    source_value=source.where_clause,
                    destination_value=destination.where_clause,
                    breaking=True,
                )
            )
        return diffs


# ============================================================================
# Registry
# ============================================================================


class ComparatorRegistry:
    """Strategy table mapping each object kind to its comparator."""

    def __init__(self) -> None:
        self._comparators: dict[SchemaObjectKind, StructuralComparator] = {}

    def register(
        self, kind: SchemaObjectKind, comparator: StructuralComparator
    ) -> None:
        """Register (or replace) the comparator for ``kind``."""
        self._comparators[SchemaObjectKind(kind)] = comparator

    def get(self, kind: SchemaObjectKind) -> StructuralComparator:
        """Return the comparator for ``kind``.

        Raises:
            KeyError: If no comparator is registered for the kind.
        """
        try:
            return self._comparators[SchemaObjectKind(kind)]
        except KeyError:
            raise KeyError(f"No comparator registered for kind {kind}") from None

    def __contains__(self, kind: object) -> bool:
        return kind in self._comparators

    @property
    def kinds(self) -> list[SchemaObjectKind]:
        return [kind for kind in SchemaObjectKind if kind in self._comparators]

    def is_equal(self, source: SchemaObject, destination: SchemaObject) -> bool:
        return self.get(source.object_kind).is_equal(source, destination)

    def differences(
        self, source: SchemaObject, destination: SchemaObject
    ) -> list[AttributeDifference]:
        return self.get(source.object_kind).differences(source, destination)


def default_registry() -> ComparatorRegistry:
    """Build a registry covering every ``SchemaObjectKind``."""
    registry = ComparatorRegistry()

    callable_comparator = CallableComparator()
    for kind in CALLABLE_KINDS:
        registry.register(kind, callable_comparator)

    view_comparator = ViewComparator()
    registry.register(SchemaObjectKind.VIEW, view_comparator)
    registry.register(SchemaObjectKind.MATERIALIZED_VIEW, view_comparator)

    registry.register(SchemaObjectKind.TABLE, TableComparator())
    registry.register(SchemaObjectKind.SEQUENCE, SequenceComparator())
    registry.register(SchemaObjectKind.INDEX, IndexComparator())
    return registry
