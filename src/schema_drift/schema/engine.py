"""Schema comparison engine.

Aligns two collections of schema objects by identity key and dispatches
common pairs to the per-kind comparators. The engine does no I/O and keeps
no state between calls, so independent comparisons may run concurrently.

Usage:
    from schema_drift.schema.engine import compare_schemas
    from schema_drift.schema.introspector import SchemaIntrospector

    async with SchemaIntrospector(staging_url) as introspector:
        source = await introspector.collect("public")
    async with SchemaIntrospector(production_url) as introspector:
        destination = await introspector.collect("public")

    result = compare_schemas(
        source,
        destination,
        source_instance="staging",
        destination_instance="production",
    )
    print(result.summary.summary_text())
"""

from __future__ import annotations

import logging
import time
from collections import defaultdict
from collections.abc import Iterable

from schema_drift.errors import ComparisonTimeoutError, DuplicateIdentityError
from schema_drift.schema.comparator import ComparatorRegistry, default_registry
from schema_drift.schema.filter import ComparisonFilter
from schema_drift.schema.models import IdentityKey, SchemaObject, SchemaObjectKind
from schema_drift.schema.result import ComparisonResult, ModifiedObject, ObjectRef

logger = logging.getLogger(__name__)


def _aliased_schema(obj: SchemaObject, schema_alias: tuple[str, str] | None) -> str:
    if schema_alias is not None and obj.schema_name == schema_alias[0]:
        return schema_alias[1]
    return obj.schema_name


def _index_objects(
    objects: Iterable[SchemaObject],
    side: str,
    schema_alias: tuple[str, str] | None = None,
) -> dict[IdentityKey, SchemaObject]:
    """Build an identity-keyed map for one side.

    Args:
        objects: Filtered schema objects for one side.
        side: ``"source"`` or ``"destination"`` (used in error messages).
        schema_alias: Optional ``(from_schema, to_schema)`` pair. Keys of
            objects in ``from_schema`` are rewritten to ``to_schema`` so that
            two differently named schemas can be aligned.

    Raises:
        DuplicateIdentityError: If two objects share an identity key.
    """
    indexed: dict[IdentityKey, SchemaObject] = {}
    for obj in objects:
        key = obj.identity_key._replace(schema_name=_aliased_schema(obj, schema_alias))
        if key in indexed:
            raise DuplicateIdentityError(key, side)
        indexed[key] = obj
    return indexed


def _check_deadline(deadline: float | None, kind: SchemaObjectKind) -> None:
    if deadline is not None and time.monotonic() >= deadline:
        raise ComparisonTimeoutError(
            f"Comparison timed out before the {kind.value} pass"
        )


def compare_schemas(
    source_objects: Iterable[SchemaObject],
    destination_objects: Iterable[SchemaObject],
    *,
    source_instance: str = "source",
    destination_instance: str = "destination",
    source_schema: str = "public",
    destination_schema: str = "public",
    filter: ComparisonFilter | None = None,
    registry: ComparatorRegistry | None = None,
    timeout: float | None = None,
) -> ComparisonResult:
    """Compare two schema snapshots and aggregate the differences.

    Steps:
    1. Validate and apply *filter* identically to both sides
    2. Build identity-keyed maps (duplicates fail the run)
    3. Split keys into missing (source only), extra (destination only),
       and common
    4. Per kind, compare common pairs with the registered comparator
    5. Sort every list by (schema_name, object_name)

    Args:
        source_objects: Objects captured from the source instance/schema.
        destination_objects: Objects captured from the destination.
        source_instance: Source instance name recorded on the result.
        destination_instance: Destination instance name recorded on the result.
        source_schema: Source schema name recorded on the result.
        destination_schema: Destination schema name. When it differs from
            *source_schema*, destination objects in it are aligned with
            source objects in *source_schema*.
        filter: Optional include/exclude rules. Defaults to no filtering.
        registry: Comparator strategy table. Defaults to
            ``default_registry()``.
        timeout: Optional time limit in seconds, checked between kind passes.

    Returns:
        A frozen ``ComparisonResult``.

    Raises:
        InvalidFilterConfiguration: If *filter* holds a malformed pattern.
        DuplicateIdentityError: If a side holds two objects with one key.
        ComparisonTimeoutError: If *timeout* elapses; partial work is dropped.

    Examples:
        >>> from schema_drift.schema.models import SequenceSchema
        >>> seq = SequenceSchema(schema_name="public", sequence_name="order_seq")
        >>> result = compare_schemas([seq], [])
        >>> [ref.fully_qualified_name for ref in result.missing]
        ['public.order_seq']

        >>> compare_schemas([seq], [seq]).matching_count
        1
    """
    flt = filter if filter is not None else ComparisonFilter()
    flt.check()
    registry = registry if registry is not None else default_registry()
    deadline = time.monotonic() + timeout if timeout is not None else None

    logger.info(
        "Starting schema comparison: %s.%s -> %s.%s",
        source_instance,
        source_schema,
        destination_instance,
        destination_schema,
    )

    schema_alias = (
        (destination_schema, source_schema)
        if destination_schema != source_schema
        else None
    )
    source_map = _index_objects(
        (obj for obj in source_objects if flt.matches(obj)), "source"
    )
    # Schema rules see destination objects under their aligned schema name
    dest_map = _index_objects(
        (
            obj
            for obj in destination_objects
            if flt.matches(obj, _aliased_schema(obj, schema_alias))
        ),
        "destination",
        schema_alias,
    )

    source_keys = source_map.keys()
    dest_keys = dest_map.keys()

    missing = [ObjectRef.from_key(key) for key in source_keys - dest_keys]
    extra = [
        ObjectRef.from_key(dest_map[key].identity_key) for key in dest_keys - source_keys
    ]

    common_by_kind: dict[SchemaObjectKind, list[IdentityKey]] = defaultdict(list)
    for key in source_keys & dest_keys:
        common_by_kind[key.kind].append(key)

    modified: list[ModifiedObject] = []
    matching_count = 0

    for kind in SchemaObjectKind:
        keys = common_by_kind.get(kind)
        if not keys:
            continue
        _check_deadline(deadline, kind)

        comparator = registry.get(kind)
        kind_modified = 0
        for key in keys:
            source_obj = source_map[key]
            dest_obj = dest_map[key]
            if comparator.is_equal(source_obj, dest_obj):
                matching_count += 1
                continue
            modified.append(
                ModifiedObject(
                    kind=key.kind,
                    schema_name=key.schema_name,
                    object_name=key.object_name,
                    identity_args=key.identity_args,
                    differences=comparator.differences(source_obj, dest_obj),
                )
            )
            kind_modified += 1

        logger.debug(
            "%s pass: %d common, %d modified", kind.value, len(keys), kind_modified
        )

    missing.sort(key=lambda ref: ref.identity_key.sort_key)
    extra.sort(key=lambda ref: ref.identity_key.sort_key)
    modified.sort(key=lambda ref: ref.identity_key.sort_key)

    result = ComparisonResult(
        source_instance=source_instance,
        destination_instance=destination_instance,
        source_schema=source_schema,
        destination_schema=destination_schema,
        missing=missing,
        extra=extra,
        modified=modified,
        matching_count=matching_count,
        filter=flt,
    )

    logger.info(
        "Schema comparison completed: %s", result.summary.summary_text()
    )
    return result
