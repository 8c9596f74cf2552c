"""Pydantic models for comparable schema objects.

This module contains the schema object model:
- Kinds and keys: SchemaObjectKind, Volatility, IdentityKey
- Schema objects: FunctionSchema, TableSchema (ColumnSchema, ConstraintSchema,
  TriggerSchema), SequenceSchema, ViewSchema, IndexSchema
- Snapshot container: SchemaSnapshot
- Field-level diff record: AttributeDifference

All models are frozen. A snapshot is built once per run by a collector and
never mutated afterwards.

Comparison results live in schema_drift.schema.result.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Literal, NamedTuple, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# ============================================================================
# Kinds and Identity
# ============================================================================


class SchemaObjectKind(str, Enum):
    """Kinds of catalog objects the engine knows how to compare."""

    TABLE = "TABLE"
    FUNCTION = "FUNCTION"
    PROCEDURE = "PROCEDURE"
    AGGREGATE = "AGGREGATE"
    WINDOW = "WINDOW"
    SEQUENCE = "SEQUENCE"
    VIEW = "VIEW"
    MATERIALIZED_VIEW = "MATERIALIZED_VIEW"
    INDEX = "INDEX"

    @classmethod
    def from_prokind(cls, code: str) -> "SchemaObjectKind":
        """Map a ``pg_proc.prokind`` code to a callable kind."""
        return {
            "f": cls.FUNCTION,
            "p": cls.PROCEDURE,
            "a": cls.AGGREGATE,
            "w": cls.WINDOW,
        }.get(code, cls.FUNCTION)


CALLABLE_KINDS = frozenset(
    {
        SchemaObjectKind.FUNCTION,
        SchemaObjectKind.PROCEDURE,
        SchemaObjectKind.AGGREGATE,
        SchemaObjectKind.WINDOW,
    }
)

# Declaration order drives kind passes and sort tie-breaks
KIND_ORDER: dict[SchemaObjectKind, int] = {
    kind: position for position, kind in enumerate(SchemaObjectKind)
}


class Volatility(str, Enum):
    """Function volatility category."""

    IMMUTABLE = "IMMUTABLE"
    STABLE = "STABLE"
    VOLATILE = "VOLATILE"

    @classmethod
    def from_code(cls, code: str) -> "Volatility":
        """Map a ``pg_proc.provolatile`` code (i/s/v) to a Volatility."""
        return {"i": cls.IMMUTABLE, "s": cls.STABLE}.get(code, cls.VOLATILE)


class IdentityKey(NamedTuple):
    """Tuple that names a schema object within one snapshot side.

    Example:
        >>> key = IdentityKey(SchemaObjectKind.FUNCTION, "public", "calc_total", "integer")
        >>> key.display_name
        'public.calc_total(integer)'
    """

    kind: SchemaObjectKind
    schema_name: str
    object_name: str
    identity_args: str = ""

    @property
    def display_name(self) -> str:
        """Fully qualified name, with the argument list for callables."""
        name = f"{self.schema_name}.{self.object_name}"
        if self.kind in CALLABLE_KINDS:
            return f"{name}({self.identity_args})"
        return name

    @property
    def sort_key(self) -> tuple[str, str, int, str]:
        """Ordering used for reproducible output: schema, name, kind, args."""
        return (
            self.schema_name,
            self.object_name,
            KIND_ORDER[self.kind],
            self.identity_args,
        )


# ============================================================================
# Schema Object Base
# ============================================================================


class SchemaObject(BaseModel):
    """Common shape of every comparable catalog object.

    Subclasses declare a ``kind`` literal (the snapshot discriminator) and
    expose their name through ``object_name``.
    """

    model_config = ConfigDict(frozen=True)

    schema_name: str
    owner: str | None = None
    comment: str | None = None

    @property
    def object_kind(self) -> SchemaObjectKind:
        return SchemaObjectKind(getattr(self, "kind"))

    @property
    def object_name(self) -> str:
        raise NotImplementedError

    @property
    def identity_args(self) -> str:
        return ""

    @property
    def identity_key(self) -> IdentityKey:
        return IdentityKey(
            self.object_kind, self.schema_name, self.object_name, self.identity_args
        )

    @property
    def qualified_name(self) -> str:
        return self.identity_key.display_name


# ============================================================================
# Callables
# ============================================================================


class FunctionSchema(SchemaObject):
    """Schema for a function, procedure, aggregate, or window function.

    Example:
        >>> func = FunctionSchema(schema_name="public", function_name="calc_total")
        >>> func.qualified_name
        'public.calc_total()'
        >>> func.volatility
        <Volatility.VOLATILE: 'VOLATILE'>
    """

    kind: Literal["FUNCTION", "PROCEDURE", "AGGREGATE", "WINDOW"] = "FUNCTION"
    function_name: str
    identity_arguments: str = ""
    definition: str = ""
    return_type: str = ""
    language: str = "sql"
    volatility: Volatility = Volatility.VOLATILE
    strict: bool = False
    security_definer: bool = False
    returns_set: bool = False
    cost: float = 100.0
    estimated_rows: float = 0.0
    config_params: list[str] = Field(default_factory=list)

    @property
    def object_name(self) -> str:
        return self.function_name

    @property
    def identity_args(self) -> str:
        return self.identity_arguments

    @property
    def signature(self) -> str:
        return f"{self.function_name}({self.identity_arguments})"


# ============================================================================
# Tables
# ============================================================================


class ColumnSchema(BaseModel):
    """Schema for a table column.

    Example:
        >>> col = ColumnSchema(name="id", data_type="uuid")
        >>> col.is_nullable
        True
    """

    model_config = ConfigDict(frozen=True)

    name: str
    data_type: str
    is_nullable: bool = True
    default: str | None = None
    is_identity: bool = False
    identity_type: str | None = None  # ALWAYS, BY DEFAULT
    comment: str | None = None

    def describe(self) -> str:
        """Render the column roughly as it would appear in DDL."""
        parts = [self.name, self.data_type]
        if not self.is_nullable:
            parts.append("NOT NULL")
        if self.default is not None:
            parts.append(f"DEFAULT {self.default}")
        return " ".join(parts)


class ConstraintSchema(BaseModel):
    """Schema for a table constraint."""

    model_config = ConfigDict(frozen=True)

    name: str
    constraint_type: str  # PRIMARY KEY, FOREIGN KEY, UNIQUE, CHECK
    columns: list[str] = Field(default_factory=list)
    references_table: str | None = None
    references_columns: list[str] = Field(default_factory=list)
    on_delete: str | None = None
    on_update: str | None = None
    expression: str | None = None

    def describe(self) -> str:
        """Render the constraint body in a DDL-like form."""
        if self.constraint_type == "CHECK":
            return f"CHECK {self.expression or ''}".strip()
        body = f"{self.constraint_type} ({', '.join(self.columns)})"
        if self.constraint_type == "FOREIGN KEY":
            body += (
                f" REFERENCES {self.references_table}"
                f" ({', '.join(self.references_columns)})"
            )
            if self.on_delete:
                body += f" ON DELETE {self.on_delete}"
            if self.on_update:
                body += f" ON UPDATE {self.on_update}"
        return body


class TriggerSchema(BaseModel):
    """Schema for a table trigger."""

    model_config = ConfigDict(frozen=True)

    name: str
    timing: str  # BEFORE, AFTER, INSTEAD OF
    events: str  # INSERT, UPDATE, DELETE, TRUNCATE (joined with OR)
    level: str = "ROW"
    function_name: str = ""
    condition: str | None = None
    enabled: bool = True


class TableSchema(SchemaObject):
    """Schema for a table with ordered columns, constraints, and triggers.

    Example:
        >>> table = TableSchema(
        ...     schema_name="public",
        ...     table_name="accounts",
        ...     columns=[ColumnSchema(name="id", data_type="uuid", is_nullable=False)],
        ... )
        >>> table.find_column("id").data_type
        'uuid'
    """

    kind: Literal["TABLE"] = "TABLE"
    table_name: str
    columns: list[ColumnSchema] = Field(default_factory=list)
    constraints: list[ConstraintSchema] = Field(default_factory=list)
    triggers: list[TriggerSchema] = Field(default_factory=list)
    row_level_security: bool = False

    @property
    def object_name(self) -> str:
        return self.table_name

    def find_column(self, name: str) -> ColumnSchema | None:
        for column in self.columns:
            if column.name == name:
                return column
        return None


# ============================================================================
# Sequences, Views, Indexes
# ============================================================================


class SequenceSchema(SchemaObject):
    """Schema for a sequence."""

    kind: Literal["SEQUENCE"] = "SEQUENCE"
    sequence_name: str
    data_type: str = "bigint"
    start_value: int = 1
    increment: int = 1
    min_value: int = 1
    max_value: int = 9223372036854775807
    cache_size: int = 1
    cycle: bool = False
    owned_by_table: str | None = None
    owned_by_column: str | None = None

    @property
    def object_name(self) -> str:
        return self.sequence_name


class ViewSchema(SchemaObject):
    """Schema for a view or materialized view."""

    kind: Literal["VIEW", "MATERIALIZED_VIEW"] = "VIEW"
    view_name: str
    definition: str = ""
    columns: list[str] = Field(default_factory=list)

    @property
    def object_name(self) -> str:
        return self.view_name

    @property
    def is_materialized(self) -> bool:
        return self.kind == SchemaObjectKind.MATERIALIZED_VIEW.value


class IndexSchema(SchemaObject):
    """Schema for an index."""

    kind: Literal["INDEX"] = "INDEX"
    index_name: str
    table_name: str
    index_type: str = "btree"
    columns: list[str] = Field(default_factory=list)
    include_columns: list[str] = Field(default_factory=list)
    is_unique: bool = False
    is_primary: bool = False
    where_clause: str | None = None

    @property
    def object_name(self) -> str:
        return self.index_name


AnySchemaObject = Annotated[
    Union[FunctionSchema, TableSchema, SequenceSchema, ViewSchema, IndexSchema],
    Field(discriminator="kind"),
]


class SchemaSnapshot(BaseModel):
    """Materialized set of schema objects captured from one instance/schema."""

    model_config = ConfigDict(frozen=True)

    instance: str
    schema_name: str = "public"
    captured_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    objects: list[AnySchemaObject] = Field(default_factory=list)


# ============================================================================
# Attribute Difference
# ============================================================================


class AttributeDifference(BaseModel):
    """One field-level difference between a source and destination object.

    Example:
        >>> diff = AttributeDifference(
        ...     attribute_name="Strict", source_value="NO", destination_value="YES"
        ... )
        >>> diff.breaking
        False
        >>> diff.swapped().source_value
        'YES'
    """

    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )

    attribute_name: str
    source_value: str | None = None
    destination_value: str | None = None
    breaking: bool = False

    def swapped(self) -> "AttributeDifference":
        """Return the same difference seen from the other side."""
        return self.model_copy(
            update={
                "source_value": self.destination_value,
                "destination_value": self.source_value,
            }
        )
