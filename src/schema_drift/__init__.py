"""schema-drift: PostgreSQL schema comparison and drift detection.

Compares the structural definitions of two schema snapshots, produces a
categorized diff (missing, extra, modified, matching), and tracks drift
between successive comparison runs.

Usage:
    from schema_drift import compare_schemas, ComparisonFilter
    from schema_drift import SchemaIntrospector, load_snapshot
    from schema_drift import HistoryService, InMemoryHistoryStore
    from schema_drift import load_config, DriftConfig
"""

__version__ = "0.1.0"

# Adapters
from schema_drift.adapters.base import DatabaseClient
from schema_drift.adapters.postgres import AsyncPostgresAdapter

# Config
from schema_drift.config.loader import load_config
from schema_drift.config.models import ComparisonProfile, DriftConfig, InstanceProfile

# Errors
from schema_drift.errors import (
    ComparisonProfileNotFoundError,
    ComparisonTimeoutError,
    DuplicateIdentityError,
    HistorySerializationError,
    InstanceNotFoundError,
    InvalidFilterConfiguration,
    SchemaDriftError,
    SnapshotError,
)

# Factory
from schema_drift.factory import (
    collect_snapshot,
    get_adapter,
    get_history_store,
    get_instance,
    get_profile,
    resolve_url,
)

# History
from schema_drift.history import (
    ComparisonHistory,
    DriftSummary,
    HistoryService,
    InMemoryHistoryStore,
    ObjectDrift,
    PostgresHistoryStore,
)

# Schema
from schema_drift.schema import (
    ComparatorRegistry,
    ComparisonFilter,
    ComparisonResult,
    FilterPreset,
    SchemaIntrospector,
    SchemaObjectKind,
    SchemaSnapshot,
    compare_schemas,
    default_registry,
    load_snapshot,
    save_snapshot,
)

__all__ = [
    # Adapters
    "DatabaseClient",
    "AsyncPostgresAdapter",
    # Config
    "load_config",
    "ComparisonProfile",
    "DriftConfig",
    "InstanceProfile",
    # Errors
    "SchemaDriftError",
    "InvalidFilterConfiguration",
    "DuplicateIdentityError",
    "ComparisonTimeoutError",
    "HistorySerializationError",
    "SnapshotError",
    "InstanceNotFoundError",
    "ComparisonProfileNotFoundError",
    # Factory
    "resolve_url",
    "get_instance",
    "get_profile",
    "get_adapter",
    "get_history_store",
    "collect_snapshot",
    # History
    "ComparisonHistory",
    "DriftSummary",
    "ObjectDrift",
    "HistoryService",
    "InMemoryHistoryStore",
    "PostgresHistoryStore",
    # Schema
    "compare_schemas",
    "ComparatorRegistry",
    "default_registry",
    "ComparisonFilter",
    "FilterPreset",
    "ComparisonResult",
    "SchemaIntrospector",
    "SchemaObjectKind",
    "SchemaSnapshot",
    "load_snapshot",
    "save_snapshot",
]
