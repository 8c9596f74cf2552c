"""Schema object model, structural comparison, and catalog collection.

Provides the typed object model (``TableSchema``, ``FunctionSchema``, ...),
per-kind comparators (``ComparatorRegistry``), the comparison engine
(``compare_schemas``), filtering (``ComparisonFilter``), live catalog
collection (``SchemaIntrospector``), and snapshot files.

Usage:
    from schema_drift.schema import compare_schemas, ComparisonFilter
    from schema_drift.schema import SchemaIntrospector, load_snapshot
"""

from schema_drift.schema.comparator import (
    ComparatorRegistry,
    StructuralComparator,
    default_registry,
    normalize_definition,
    normalize_view_definition,
)
from schema_drift.schema.engine import compare_schemas
from schema_drift.schema.filter import ComparisonFilter, FilterPreset
from schema_drift.schema.introspector import SchemaIntrospector
from schema_drift.schema.models import (
    AttributeDifference,
    ColumnSchema,
    ConstraintSchema,
    FunctionSchema,
    IdentityKey,
    IndexSchema,
    SchemaObject,
    SchemaObjectKind,
    SchemaSnapshot,
    SequenceSchema,
    TableSchema,
    TriggerSchema,
    ViewSchema,
    Volatility,
)
from schema_drift.schema.result import (
    ComparisonResult,
    ComparisonSummary,
    ModifiedObject,
    ObjectRef,
)
from schema_drift.schema.snapshot import load_snapshot, save_snapshot

__all__ = [
    # Comparators
    "ComparatorRegistry",
    "StructuralComparator",
    "default_registry",
    "normalize_definition",
    "normalize_view_definition",
    # Engine
    "compare_schemas",
    # Filter
    "ComparisonFilter",
    "FilterPreset",
    # Collection
    "SchemaIntrospector",
    "load_snapshot",
    "save_snapshot",
    # Models
    "AttributeDifference",
    "ColumnSchema",
    "ConstraintSchema",
    "FunctionSchema",
    "IdentityKey",
    "IndexSchema",
    "SchemaObject",
    "SchemaObjectKind",
    "SchemaSnapshot",
    "SequenceSchema",
    "TableSchema",
    "TriggerSchema",
    "ViewSchema",
    "Volatility",
    # Results
    "ComparisonResult",
    "ComparisonSummary",
    "ModifiedObject",
    "ObjectRef",
]
