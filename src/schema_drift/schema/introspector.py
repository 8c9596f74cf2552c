"""PostgreSQL catalog collection via pg_catalog (async).

This module queries a live database and materializes typed schema objects:
- Callables (functions, procedures, aggregates, window functions)
- Tables with ordered columns, constraints, triggers, and RLS flag
- Sequences
- Views and materialized views
- Indexes

Uses psycopg (v3) ``AsyncConnection`` for PostgreSQL connections. The
comparison engine never talks to the database; it only receives what this
collector returns.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any

import psycopg
from psycopg import AsyncConnection

from schema_drift.schema.models import (
    ColumnSchema,
    ConstraintSchema,
    FunctionSchema,
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

logger = logging.getLogger(__name__)

_CONSTRAINT_TYPES = {
    "p": "PRIMARY KEY",
    "f": "FOREIGN KEY",
    "u": "UNIQUE",
    "c": "CHECK",
}

_FK_ACTIONS = {
    "a": "NO ACTION",
    "r": "RESTRICT",
    "c": "CASCADE",
    "n": "SET NULL",
    "d": "SET DEFAULT",
}

_FUNCTIONS_QUERY = """
    SELECT
        p.proname,
        pg_get_function_identity_arguments(p.oid),
        p.prokind,
        pg_get_userbyid(p.proowner),
        obj_description(p.oid, 'pg_proc'),
        CASE WHEN p.prokind = 'a' THEN NULL ELSE pg_get_functiondef(p.oid) END,
        pg_get_function_result(p.oid),
        l.lanname,
        p.provolatile,
        p.proisstrict,
        p.prosecdef,
        p.proretset,
        p.procost,
        p.prorows,
        p.proconfig
    FROM pg_proc p
    JOIN pg_namespace n ON n.oid = p.pronamespace
    JOIN pg_language l ON l.oid = p.prolang
    WHERE n.nspname = %s
      AND NOT EXISTS (
          SELECT 1 FROM pg_depend d
          WHERE d.objid = p.oid AND d.deptype = 'e'
      )
    ORDER BY p.proname, 2
"""

_TABLES_QUERY = """
    SELECT
        c.relname,
        pg_get_userbyid(c.relowner),
        obj_description(c.oid, 'pg_class'),
        c.relrowsecurity
    FROM pg_class c
    JOIN pg_namespace n ON n.oid = c.relnamespace
    WHERE n.nspname = %s
      AND c.relkind IN ('r', 'p')
    ORDER BY c.relname
"""

_COLUMNS_QUERY = """
    SELECT
        c.relname,
        a.attname,
        format_type(a.atttypid, a.atttypmod),
        NOT a.attnotnull,
        pg_get_expr(ad.adbin, ad.adrelid),
        a.attidentity,
        col_description(c.oid, a.attnum)
    FROM pg_attribute a
    JOIN pg_class c ON c.oid = a.attrelid
    JOIN pg_namespace n ON n.oid = c.relnamespace
    LEFT JOIN pg_attrdef ad ON ad.adrelid = a.attrelid AND ad.adnum = a.attnum
    WHERE n.nspname = %s
      AND c.relkind IN ('r', 'p')
      AND a.attnum > 0
      AND NOT a.attisdropped
    ORDER BY c.relname, a.attnum
"""

_CONSTRAINTS_QUERY = """
    SELECT
        t.relname,
        con.conname,
        con.contype,
        ARRAY(
            SELECT att.attname
            FROM unnest(con.conkey) WITH ORDINALITY AS k(attnum, ord)
            JOIN pg_attribute att
              ON att.attrelid = con.conrelid AND att.attnum = k.attnum
            ORDER BY k.ord
        ),
        ref.relname,
        ARRAY(
            SELECT att.attname
            FROM unnest(con.confkey) WITH ORDINALITY AS k(attnum, ord)
            JOIN pg_attribute att
              ON att.attrelid = con.confrelid AND att.attnum = k.attnum
            ORDER BY k.ord
        ),
        con.confdeltype,
        con.confupdtype,
        CASE WHEN con.contype = 'c' THEN pg_get_constraintdef(con.oid) END
    FROM pg_constraint con
    JOIN pg_class t ON t.oid = con.conrelid
    JOIN pg_namespace n ON n.oid = t.relnamespace
    LEFT JOIN pg_class ref ON ref.oid = con.confrelid
    WHERE n.nspname = %s
      AND con.contype IN ('p', 'f', 'u', 'c')
    ORDER BY t.relname, con.conname
"""

_TRIGGERS_QUERY = """
    SELECT
        event_object_table,
        trigger_name,
        action_timing,
        string_agg(event_manipulation, ' OR ' ORDER BY event_manipulation),
        action_orientation,
        action_statement,
        action_condition
    FROM information_schema.triggers
    WHERE trigger_schema = %s
    GROUP BY event_object_table, trigger_name, action_timing,
             action_orientation, action_statement, action_condition
    ORDER BY event_object_table, trigger_name
"""

_DISABLED_TRIGGERS_QUERY = """
    SELECT c.relname, tg.tgname
    FROM pg_trigger tg
    JOIN pg_class c ON c.oid = tg.tgrelid
    JOIN pg_namespace n ON n.oid = c.relnamespace
    WHERE n.nspname = %s
      AND NOT tg.tgisinternal
      AND tg.tgenabled = 'D'
"""

_SEQUENCES_QUERY = """
    SELECT
        c.relname,
        pg_get_userbyid(c.relowner),
        obj_description(c.oid, 'pg_class'),
        format_type(s.seqtypid, NULL),
        s.seqstart,
        s.seqincrement,
        s.seqmin,
        s.seqmax,
        s.seqcache,
        s.seqcycle,
        owner_table.relname,
        owner_col.attname
    FROM pg_sequence s
    JOIN pg_class c ON c.oid = s.seqrelid
    JOIN pg_namespace n ON n.oid = c.relnamespace
    LEFT JOIN pg_depend d
      ON d.objid = c.oid AND d.classid = 'pg_class'::regclass AND d.deptype IN ('a', 'i')
    LEFT JOIN pg_class owner_table ON owner_table.oid = d.refobjid
    LEFT JOIN pg_attribute owner_col
      ON owner_col.attrelid = d.refobjid AND owner_col.attnum = d.refobjsubid
    WHERE n.nspname = %s
    ORDER BY c.relname
"""

_VIEWS_QUERY = """
    SELECT
        c.relname,
        c.relkind,
        pg_get_userbyid(c.relowner),
        obj_description(c.oid, 'pg_class'),
        pg_get_viewdef(c.oid, true),
        ARRAY(
            SELECT a.attname FROM pg_attribute a
            WHERE a.attrelid = c.oid AND a.attnum > 0 AND NOT a.attisdropped
            ORDER BY a.attnum
        )
    FROM pg_class c
    JOIN pg_namespace n ON n.oid = c.relnamespace
    WHERE n.nspname = %s
      AND c.relkind IN ('v', 'm')
    ORDER BY c.relname
"""

_INDEXES_QUERY = """
    SELECT
        i.relname,
        t.relname,
        am.amname,
        ARRAY(
            SELECT pg_get_indexdef(ix.indexrelid, k.ord::int + 1, true)
            FROM generate_subscripts(ix.indkey, 1) AS k(ord)
            WHERE k.ord < ix.indnkeyatts
            ORDER BY k.ord
        ),
        ARRAY(
            SELECT pg_get_indexdef(ix.indexrelid, k.ord::int + 1, true)
            FROM generate_subscripts(ix.indkey, 1) AS k(ord)
            WHERE k.ord >= ix.indnkeyatts
            ORDER BY k.ord
        ),
        ix.indisunique,
        ix.indisprimary,
        pg_get_expr(ix.indpred, ix.indrelid)
    FROM pg_index ix
    JOIN pg_class i ON i.oid = ix.indexrelid
    JOIN pg_class t ON t.oid = ix.indrelid
    JOIN pg_namespace n ON n.oid = i.relnamespace
    JOIN pg_am am ON am.oid = i.relam
    WHERE n.nspname = %s
    ORDER BY i.relname
"""


def _strip_check_keyword(definition: str | None) -> str | None:
    """'CHECK ((qty > 0))' -> '((qty > 0))', matching ConstraintSchema.describe()."""
    if definition and definition.upper().startswith("CHECK "):
        return definition[len("CHECK "):]
    return definition


class SchemaIntrospector:
    """Collects typed schema objects from a PostgreSQL database.

    Works with any PostgreSQL 11+ database (RDS, Supabase, local).

    Usage:
        async with SchemaIntrospector(database_url) as introspector:
            # Every supported object in one schema
            objects = await introspector.collect("public")

            # Or wrap them into a snapshot for saving
            snapshot = await introspector.snapshot("staging", "public")
    """

    DEFAULT_EXCLUDED_TABLES = frozenset(
        {
            "schema_migrations",
            "pg_stat_statements",
            "spatial_ref_sys",
        }
    )

    def __init__(
        self,
        database_url: str,
        excluded_tables: set[str] | frozenset[str] | None = None,
        connect_timeout: int = 10,
    ) -> None:
        """Initialize with database connection URL.

        Args:
            database_url: PostgreSQL connection URL.
            excluded_tables: Table names never collected. Defaults to
                ``DEFAULT_EXCLUDED_TABLES``.
            connect_timeout: Seconds to wait for the connection.
        """
        self._database_url = database_url
        self._excluded_tables = frozenset(
            self.DEFAULT_EXCLUDED_TABLES if excluded_tables is None else excluded_tables
        )
        self._connect_timeout = connect_timeout
        self._conn: AsyncConnection | None = None

    async def __aenter__(self) -> "SchemaIntrospector":
        """Open the connection."""
        url = self._database_url
        if "connect_timeout" not in url:
            separator = "&" if "?" in url else "?"
            url = f"{url}{separator}connect_timeout={self._connect_timeout}"

        self._conn = await psycopg.AsyncConnection.connect(url)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Close the connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None

    async def _fetch(self, query: str, params: tuple[Any, ...]) -> list[tuple]:
        if not self._conn:
            raise RuntimeError("Introspector not connected. Use async with statement.")
        async with self._conn.cursor() as cur:
            await cur.execute(query, params)
            return await cur.fetchall()

    async def test_connection(self) -> bool:
        """Run ``SELECT 1`` to verify the connection works.

        Raises:
            ConnectionError: If the query fails.
        """
        try:
            rows = await self._fetch("SELECT 1", ())
        except psycopg.Error as e:
            raise ConnectionError(f"Connection test failed: {e}") from e
        return bool(rows) and rows[0][0] == 1

    async def collect(self, schema_name: str = "public") -> list[SchemaObject]:
        """Collect every supported object in *schema_name*.

        Returns:
            Objects ordered tables, callables, sequences, views, indexes.
        """
        objects: list[SchemaObject] = []
        objects.extend(await self._get_tables(schema_name))
        objects.extend(await self._get_functions(schema_name))
        objects.extend(await self._get_sequences(schema_name))
        objects.extend(await self._get_views(schema_name))
        objects.extend(await self._get_indexes(schema_name))
        logger.info("Collected %d objects from schema %s", len(objects), schema_name)
        return objects

    async def snapshot(self, instance: str, schema_name: str = "public") -> SchemaSnapshot:
        """Collect *schema_name* and wrap the objects in a ``SchemaSnapshot``."""
        objects = await self.collect(schema_name)
        return SchemaSnapshot(instance=instance, schema_name=schema_name, objects=objects)

    # ------------------------------------------------------------------
    # Per-kind collection
    # ------------------------------------------------------------------

    async def _get_functions(self, schema_name: str) -> list[FunctionSchema]:
        """Get user-defined callables, skipping extension members."""
        rows = await self._fetch(_FUNCTIONS_QUERY, (schema_name,))
        functions = []
        for row in rows:
            (
                name,
                identity_args,
                prokind,
                owner,
                comment,
                definition,
                return_type,
                language,
                volatile,
                strict,
                secdef,
                retset,
                cost,
                est_rows,
                config,
            ) = row
            functions.append(
                FunctionSchema(
                    schema_name=schema_name,
                    function_name=name,
                    identity_arguments=identity_args or "",
                    kind=SchemaObjectKind.from_prokind(prokind).value,
                    owner=owner,
                    comment=comment,
                    definition=definition or "",
                    return_type=return_type or "",
                    language=language,
                    volatility=Volatility.from_code(volatile),
                    strict=bool(strict),
                    security_definer=bool(secdef),
                    returns_set=bool(retset),
                    cost=float(cost or 0),
                    estimated_rows=float(est_rows or 0),
                    config_params=list(config or []),
                )
            )
        return functions

    async def _get_tables(self, schema_name: str) -> list[TableSchema]:
        """Get tables with their columns, constraints, and triggers."""
        table_rows = await self._fetch(_TABLES_QUERY, (schema_name,))
        columns = await self._get_columns(schema_name)
        constraints = await self._get_constraints(schema_name)
        triggers = await self._get_triggers(schema_name)

        tables = []
        for name, owner, comment, rls in table_rows:
            if name in self._excluded_tables:
                continue
            tables.append(
                TableSchema(
                    schema_name=schema_name,
                    table_name=name,
                    owner=owner,
                    comment=comment,
                    columns=columns.get(name, []),
                    constraints=constraints.get(name, []),
                    triggers=triggers.get(name, []),
                    row_level_security=bool(rls),
                )
            )
        return tables

    async def _get_columns(self, schema_name: str) -> dict[str, list[ColumnSchema]]:
        rows = await self._fetch(_COLUMNS_QUERY, (schema_name,))
        columns: dict[str, list[ColumnSchema]] = defaultdict(list)
        for table, name, data_type, nullable, default, identity, comment in rows:
            identity_type = {"a": "ALWAYS", "d": "BY DEFAULT"}.get(identity or "")
            columns[table].append(
                ColumnSchema(
                    name=name,
                    data_type=self._normalize_data_type(data_type),
                    is_nullable=bool(nullable),
                    default=default,
                    is_identity=identity_type is not None,
                    identity_type=identity_type,
                    comment=comment,
                )
            )
        return columns

    def _normalize_data_type(self, data_type: str) -> str:
        """Normalize PostgreSQL data type names.

        Maps verbose catalog type names to their common short forms.
        """
        type_map = {
            "character varying": "varchar",
            "character": "char",
            "timestamp with time zone": "timestamptz",
            "timestamp without time zone": "timestamp",
            "time with time zone": "timetz",
            "time without time zone": "time",
            "integer": "int",
            "boolean": "bool",
        }
        lowered = data_type.lower()
        for verbose, short in type_map.items():
            if lowered == verbose or lowered.startswith(verbose + "("):
                return short + lowered[len(verbose):]
        return lowered

    async def _get_constraints(
        self, schema_name: str
    ) -> dict[str, list[ConstraintSchema]]:
        rows = await self._fetch(_CONSTRAINTS_QUERY, (schema_name,))
        constraints: dict[str, list[ConstraintSchema]] = defaultdict(list)
        for (
            table,
            name,
            contype,
            cols,
            ref_table,
            ref_cols,
            del_action,
            upd_action,
            check_def,
        ) in rows:
            is_fk = contype == "f"
            constraints[table].append(
                ConstraintSchema(
                    name=name,
                    constraint_type=_CONSTRAINT_TYPES[contype],
                    columns=list(cols or []),
                    references_table=ref_table if is_fk else None,
                    references_columns=list(ref_cols or []) if is_fk else [],
                    on_delete=_FK_ACTIONS.get(del_action) if is_fk else None,
                    on_update=_FK_ACTIONS.get(upd_action) if is_fk else None,
                    expression=_strip_check_keyword(check_def),
                )
            )
        return constraints

    async def _get_triggers(self, schema_name: str) -> dict[str, list[TriggerSchema]]:
        rows = await self._fetch(_TRIGGERS_QUERY, (schema_name,))
        disabled = {
            (table, name)
            for table, name in await self._fetch(_DISABLED_TRIGGERS_QUERY, (schema_name,))
        }
        triggers: dict[str, list[TriggerSchema]] = defaultdict(list)
        for table, name, timing, events, level, statement, condition in rows:
            # "EXECUTE FUNCTION audit_row()" -> "audit_row"
            func_name = ""
            for marker in ("EXECUTE FUNCTION", "EXECUTE PROCEDURE"):
                if marker in statement:
                    func_name = statement.split(marker)[1].strip()
                    func_name = func_name.split("(")[0].strip()
                    break
            triggers[table].append(
                TriggerSchema(
                    name=name,
                    timing=timing,
                    events=events,
                    level=level,
                    function_name=func_name,
                    condition=condition,
                    enabled=(table, name) not in disabled,
                )
            )
        return triggers

    async def _get_sequences(self, schema_name: str) -> list[SequenceSchema]:
        rows = await self._fetch(_SEQUENCES_QUERY, (schema_name,))
        sequences = []
        for (
            name,
            owner,
            comment,
            data_type,
            start,
            increment,
            min_value,
            max_value,
            cache,
            cycle,
            owned_table,
            owned_column,
        ) in rows:
            sequences.append(
                SequenceSchema(
                    schema_name=schema_name,
                    sequence_name=name,
                    owner=owner,
                    comment=comment,
                    data_type=data_type,
                    start_value=start,
                    increment=increment,
                    min_value=min_value,
                    max_value=max_value,
                    cache_size=cache,
                    cycle=bool(cycle),
                    owned_by_table=owned_table,
                    owned_by_column=owned_column,
                )
            )
        return sequences

    async def _get_views(self, schema_name: str) -> list[ViewSchema]:
        rows = await self._fetch(_VIEWS_QUERY, (schema_name,))
        views = []
        for name, relkind, owner, comment, definition, columns in rows:
            kind = (
                SchemaObjectKind.MATERIALIZED_VIEW
                if relkind == "m"
                else SchemaObjectKind.VIEW
            )
            views.append(
                ViewSchema(
                    schema_name=schema_name,
                    view_name=name,
                    kind=kind.value,
                    owner=owner,
                    comment=comment,
                    definition=definition or "",
                    columns=list(columns or []),
                )
            )
        return views

    async def _get_indexes(self, schema_name: str) -> list[IndexSchema]:
        rows = await self._fetch(_INDEXES_QUERY, (schema_name,))
        indexes = []
        for (
            name,
            table,
            index_type,
            columns,
            include_columns,
            is_unique,
            is_primary,
            where_clause,
        ) in rows:
            if table in self._excluded_tables:
                continue
            indexes.append(
                IndexSchema(
                    schema_name=schema_name,
                    index_name=name,
                    table_name=table,
                    index_type=index_type,
                    columns=list(columns or []),
                    include_columns=list(include_columns or []),
                    is_unique=bool(is_unique),
                    is_primary=bool(is_primary),
                    where_clause=where_clause,
                )
            )
        return indexes
