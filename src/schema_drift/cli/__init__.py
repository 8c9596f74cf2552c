"""CLI module for schema comparison and drift detection.

Provides commands for listing configured instances and comparison profiles,
capturing schema snapshots, comparing two schemas, and inspecting history.

Usage:
    schema-drift instances
    schema-drift profiles
    schema-drift snapshot --instance staging --schema public --output staging.json
    schema-drift compare --profile nightly --record --actor ci
    schema-drift compare --source staging --dest production --preset PRODUCTION_SAFE
    schema-drift compare --source-snapshot a.json --dest-snapshot b.json --json
    schema-drift history --limit 10
    schema-drift cleanup --days 30

Commands:
    instances - List configured database instances
    profiles  - List comparison profiles
    snapshot  - Capture a schema snapshot to a JSON file
    compare   - Compare two schemas (exit 0 when identical, 1 otherwise)
    history   - Show recent comparison runs
    cleanup   - Delete history older than the retention window
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

import psycopg
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table
from sqlalchemy.exc import SQLAlchemyError

from schema_drift.config.loader import default_config_path, load_config
from schema_drift.config.models import DriftConfig
from schema_drift.errors import SchemaDriftError
from schema_drift.factory import (
    collect_snapshot,
    get_history_store,
    get_profile,
)
from schema_drift.history.service import HistoryService
from schema_drift.schema.engine import compare_schemas
from schema_drift.schema.filter import ComparisonFilter, FilterPreset
from schema_drift.schema.models import SchemaObjectKind, SchemaSnapshot
from schema_drift.schema.result import ComparisonResult
from schema_drift.schema.snapshot import load_snapshot, save_snapshot

console = Console()
logger = logging.getLogger(__name__)

# Errors reported as a one-line message with exit code 1
_USER_ERRORS = (SchemaDriftError, OSError, ValueError, psycopg.Error, SQLAlchemyError)


# ============================================================================
# Helpers
# ============================================================================


def _configure_logging(level: str) -> None:
    """Route library logging to stderr through rich."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _print_error(error: Exception) -> None:
    console.print(f"[red]Error: {escape(str(error))}[/red]")


def _config_path(args: argparse.Namespace) -> Path:
    return Path(args.config) if getattr(args, "config", None) else default_config_path()


def _load_config(args: argparse.Namespace, required: bool = True) -> DriftConfig:
    """Load drift.toml; an empty config stands in when it is optional."""
    try:
        return load_config(_config_path(args))
    except FileNotFoundError:
        if required:
            raise
        return DriftConfig()


def _build_cli_filter(args: argparse.Namespace, base: ComparisonFilter) -> ComparisonFilter:
    """Layer command-line filter options over *base*."""
    update: dict = {}
    if args.preset:
        preset = ComparisonFilter.from_preset(args.preset)
        update["excluded_schemas"] = base.excluded_schemas + preset.excluded_schemas
        update["excluded_name_patterns"] = (
            base.excluded_name_patterns + preset.excluded_name_patterns
        )
    if args.include_schema:
        update["included_schemas"] = base.included_schemas + args.include_schema
    if args.exclude_schema:
        update["excluded_schemas"] = (
            update.get("excluded_schemas", base.excluded_schemas) + args.exclude_schema
        )
    if args.kind:
        update["included_kinds"] = base.included_kinds | {
            SchemaObjectKind(kind) for kind in args.kind
        }
    if args.exclude_pattern:
        extra = ComparisonFilter.from_pattern_string(args.exclude_pattern)
        update["excluded_name_patterns"] = (
            update.get("excluded_name_patterns", base.excluded_name_patterns)
            + extra.excluded_name_patterns
        )
    if args.name_pattern:
        update["name_pattern"] = args.name_pattern
    if args.regex:
        update["use_regex"] = True
    return base.model_copy(update=update) if update else base


async def _load_side(
    config: DriftConfig,
    snapshot_path: str | None,
    instance: str | None,
    schema_name: str,
    label: str,
    flag: str,
) -> SchemaSnapshot:
    if snapshot_path:
        return load_snapshot(Path(snapshot_path))
    if instance:
        logger.info("Collecting %s schema from %s", label, instance)
        return await collect_snapshot(config, instance, schema_name)
    raise SchemaDriftError(
        f"No {label} given. Use --profile, --{flag} or --{flag}-snapshot."
    )


def _print_result(result: ComparisonResult) -> None:
    """Render a comparison result as rich tables."""
    summary = result.summary

    table = Table(title="Schema Comparison", show_header=False)
    table.add_column("Key", style="dim")
    table.add_column("Value")
    table.add_row(
        "Source", f"[bold]{result.source_instance}[/bold].{result.source_schema}"
    )
    table.add_row(
        "Destination",
        f"[bold cyan]{result.destination_instance}[/bold cyan].{result.destination_schema}",
    )
    if result.filter is not None and result.filter.has_filters:
        table.add_row("Filter", result.filter.summary())
    table.add_row("Missing", f"[red]{summary.missing_objects}[/red]")
    table.add_row("Extra", f"[yellow]{summary.extra_objects}[/yellow]")
    table.add_row("Modified", f"[magenta]{summary.modified_objects}[/magenta]")
    table.add_row("Matching", f"[green]{summary.matching_objects}[/green]")
    console.print(table)

    if result.missing or result.extra:
        presence = Table(title="Missing / Extra Objects", show_header=True, header_style="bold")
        presence.add_column("Status")
        presence.add_column("Kind", style="dim")
        presence.add_column("Object")
        rows = (("[red]missing[/red]", result.missing), ("[yellow]extra[/yellow]", result.extra))
        for status, refs in rows:
            for ref in refs:
                presence.add_row(status, ref.kind.value, escape(ref.fully_qualified_name))
        console.print()
        console.print(presence)

    if result.modified:
        modified = Table(title="Modified Objects", show_header=True, header_style="bold")
        modified.add_column("Object")
        modified.add_column("Attribute")
        modified.add_column("Source")
        modified.add_column("Destination")
        modified.add_column("", width=8)
        for obj in result.modified:
            for i, diff in enumerate(obj.differences):
                modified.add_row(
                    escape(obj.fully_qualified_name) if i == 0 else "",
                    diff.attribute_name,
                    escape(diff.source_value or "-"),
                    escape(diff.destination_value or "-"),
                    "[bold red]BREAKING[/bold red]" if diff.breaking else "",
                )
        console.print()
        console.print(modified)

    console.print()
    if result.is_identical:
        console.print("[bold green]v[/bold green] Schemas are identical")
    else:
        breaking = len(result.breaking_changes)
        console.print(
            f"[bold red]x[/bold red] {summary.summary_text()}"
            + (f" ([bold red]{breaking} breaking[/bold red])" if breaking else "")
        )


# ============================================================================
# Async command implementations
# ============================================================================


async def _async_snapshot(args: argparse.Namespace) -> int:
    """Async implementation for snapshot command.

    Returns:
        0 on success, 1 on failure.
    """
    try:
        config = _load_config(args)
        snapshot = await collect_snapshot(config, args.instance, args.schema)
        path = save_snapshot(snapshot, Path(args.output))
    except _USER_ERRORS as e:
        _print_error(e)
        return 1

    console.print(
        f"[bold green]v[/bold green] Captured {len(snapshot.objects)} objects from "
        f"[bold cyan]{args.instance}[/bold cyan].{args.schema} to {path}"
    )
    return 0


async def _async_compare(args: argparse.Namespace) -> int:
    """Async implementation for compare command.

    Resolves both sides from a profile, instance names, or snapshot files,
    applies filters, compares, and optionally records history.

    Returns:
        0 when the schemas are identical, 1 on differences or errors.
    """
    uses_config = bool(args.profile or args.source or args.dest or args.record)
    try:
        config = _load_config(args, required=uses_config)

        profile_name = args.profile
        source_instance = args.source
        dest_instance = args.dest
        source_schema = args.source_schema
        dest_schema = args.dest_schema
        base_filter = ComparisonFilter()

        if profile_name:
            profile = get_profile(config, profile_name)
            source_instance = source_instance or profile.source
            dest_instance = dest_instance or profile.destination
            source_schema = source_schema or profile.source_schema
            dest_schema = dest_schema or profile.destination_schema
            base_filter = profile.build_filter()

        flt = _build_cli_filter(args, base_filter)
        flt.check()

        source = await _load_side(
            config,
            args.source_snapshot,
            source_instance,
            source_schema or "public",
            "source",
            "source",
        )
        destination = await _load_side(
            config,
            args.dest_snapshot,
            dest_instance,
            dest_schema or "public",
            "destination",
            "dest",
        )

        result = compare_schemas(
            source.objects,
            destination.objects,
            source_instance=source.instance,
            destination_instance=destination.instance,
            source_schema=source_schema or source.schema_name,
            destination_schema=dest_schema or destination.schema_name,
            filter=flt,
            timeout=args.timeout,
        )

        drift_line = None
        if args.record:
            store = await get_history_store(config)
            try:
                service = HistoryService(store, config.history.retention_days)
                drift = await service.drift_summary(result, profile_name)
                await service.record(result, args.actor, profile_name)
            finally:
                await store.close()
            if drift is not None:
                drift_line = drift.description()
    except _USER_ERRORS as e:
        _print_error(e)
        return 1

    if args.json:
        console.print_json(json.dumps(result.to_payload()))
    else:
        _print_result(result)
        if drift_line is not None:
            console.print(f"[dim]Drift since previous run:[/dim] {drift_line}")

    return 0 if result.is_identical else 1


async def _async_history(args: argparse.Namespace) -> int:
    """Async implementation for history command."""
    try:
        config = _load_config(args)
        store = await get_history_store(config)
        try:
            records = await HistoryService(store).history(args.limit)
        finally:
            await store.close()
    except _USER_ERRORS as e:
        _print_error(e)
        return 1

    if not records:
        console.print("[yellow]No comparison history.[/yellow]")
        return 0

    table = Table(title="Comparison History", show_header=True, header_style="bold")
    table.add_column("ID", justify="right", style="dim")
    table.add_column("Compared At")
    table.add_column("Source")
    table.add_column("Destination")
    table.add_column("Profile")
    table.add_column("By")
    table.add_column("Missing", justify="right", style="red")
    table.add_column("Extra", justify="right", style="yellow")
    table.add_column("Modified", justify="right", style="magenta")
    table.add_column("Matching", justify="right", style="green")

    for h in records:
        table.add_row(
            str(h.id),
            h.compared_at.strftime("%Y-%m-%d %H:%M:%S"),
            f"{h.source_instance}.{h.source_schema}",
            f"{h.destination_instance}.{h.destination_schema}",
            h.profile_name or "",
            h.performed_by or "",
            str(h.missing_count),
            str(h.extra_count),
            str(h.modified_count),
            str(h.matching_count),
        )

    console.print(table)
    return 0


async def _async_cleanup(args: argparse.Namespace) -> int:
    """Async implementation for cleanup command."""
    try:
        config = _load_config(args)
        store = await get_history_store(config)
        try:
            service = HistoryService(store, config.history.retention_days)
            deleted = await service.cleanup(args.days)
        finally:
            await store.close()
    except _USER_ERRORS as e:
        _print_error(e)
        return 1

    console.print(f"[bold green]v[/bold green] Deleted {deleted} history records.")
    return 0


# ============================================================================
# Sync command wrappers (instances, profiles read local files only)
# ============================================================================


def cmd_instances(args: argparse.Namespace) -> int:
    """List configured database instances.

    Reads only local TOML config -- no database calls.

    Returns:
        0 on success, 1 if drift.toml is missing or invalid.
    """
    try:
        config = _load_config(args)
    except _USER_ERRORS as e:
        _print_error(e)
        return 1

    table = Table(title="Database Instances", show_header=True, header_style="bold")
    table.add_column("Instance")
    table.add_column("Description")
    table.add_column("History", width=8)

    for name, instance in config.instances.items():
        is_history = name == config.history.instance
        table.add_row(
            f"[bold cyan]{name}[/bold cyan]" if is_history else name,
            instance.description or "",
            "[green]*[/green]" if is_history else "",
        )

    console.print(table)
    return 0


def cmd_profiles(args: argparse.Namespace) -> int:
    """List comparison profiles from drift.toml.

    Reads only local TOML config -- no database calls.

    Returns:
        0 on success, 1 if drift.toml is missing or invalid.
    """
    try:
        config = _load_config(args)
    except _USER_ERRORS as e:
        _print_error(e)
        return 1

    table = Table(title="Comparison Profiles", show_header=True, header_style="bold")
    table.add_column("Profile")
    table.add_column("Source")
    table.add_column("Destination")
    table.add_column("Filter")
    table.add_column("Description")

    for name, profile in config.profiles.items():
        table.add_row(
            name,
            f"{profile.source}.{profile.source_schema}",
            f"{profile.destination}.{profile.destination_schema}",
            profile.build_filter().summary(),
            profile.description or "",
        )

    console.print(table)
    return 0


def cmd_snapshot(args: argparse.Namespace) -> int:
    """Capture a schema snapshot. Wraps the async implementation."""
    return asyncio.run(_async_snapshot(args))


def cmd_compare(args: argparse.Namespace) -> int:
    """Compare two schemas. Wraps the async implementation."""
    return asyncio.run(_async_compare(args))


def cmd_history(args: argparse.Namespace) -> int:
    """Show recent comparison runs. Wraps the async implementation."""
    return asyncio.run(_async_history(args))


def cmd_cleanup(args: argparse.Namespace) -> int:
    """Delete old history. Wraps the async implementation."""
    return asyncio.run(_async_cleanup(args))


# ============================================================================
# Main entry point
# ============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="schema-drift",
        description="PostgreSQL schema comparison and drift detection",
    )

    # Global options
    parser.add_argument(
        "--config",
        default=None,
        help="Path to drift.toml (default: $SCHEMA_DRIFT_CONFIG or ./drift.toml)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: [logging].level from drift.toml, else INFO)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # instances command
    p_instances = subparsers.add_parser("instances", help="List configured instances")
    p_instances.set_defaults(func=cmd_instances)

    # profiles command
    p_profiles = subparsers.add_parser("profiles", help="List comparison profiles")
    p_profiles.set_defaults(func=cmd_profiles)

    # snapshot command
    p_snapshot = subparsers.add_parser("snapshot", help="Capture a schema snapshot")
    p_snapshot.add_argument("--instance", required=True, help="Instance to capture")
    p_snapshot.add_argument("--schema", default="public", help="Schema name")
    p_snapshot.add_argument("--output", "-o", required=True, help="Output JSON file")
    p_snapshot.set_defaults(func=cmd_snapshot)

    # compare command
    p_compare = subparsers.add_parser("compare", help="Compare two schemas")
    p_compare.add_argument("--profile", help="Comparison profile from drift.toml")
    p_compare.add_argument("--source", help="Source instance")
    p_compare.add_argument("--dest", help="Destination instance")
    p_compare.add_argument("--source-snapshot", help="Source snapshot JSON file")
    p_compare.add_argument("--dest-snapshot", help="Destination snapshot JSON file")
    p_compare.add_argument("--source-schema", help="Source schema (default: public)")
    p_compare.add_argument("--dest-schema", help="Destination schema (default: public)")
    p_compare.add_argument(
        "--preset",
        choices=[p.value for p in FilterPreset],
        help="Filter preset",
    )
    p_compare.add_argument(
        "--include-schema", action="append", default=[], help="Schema pattern to include"
    )
    p_compare.add_argument(
        "--exclude-schema", action="append", default=[], help="Schema pattern to exclude"
    )
    p_compare.add_argument(
        "--kind",
        action="append",
        default=[],
        choices=[k.value for k in SchemaObjectKind],
        help="Object kind to compare (repeatable; default: all)",
    )
    p_compare.add_argument(
        "--exclude-pattern",
        help="Comma-separated object-name patterns to exclude (e.g., tmp_*,*_old)",
    )
    p_compare.add_argument("--name-pattern", help="Regular expression object names must match")
    p_compare.add_argument(
        "--regex",
        action="store_true",
        help="Treat pattern lists as regular expressions instead of wildcards",
    )
    p_compare.add_argument(
        "--timeout", type=float, default=None, help="Comparison timeout in seconds"
    )
    p_compare.add_argument(
        "--record", action="store_true", help="Record the run in comparison history"
    )
    p_compare.add_argument("--actor", default=None, help="Who initiated the run")
    p_compare.add_argument("--json", action="store_true", help="Print the result as JSON")
    p_compare.set_defaults(func=cmd_compare)

    # history command
    p_history = subparsers.add_parser("history", help="Show recent comparison runs")
    p_history.add_argument("--limit", type=int, default=20, help="Number of runs to show")
    p_history.set_defaults(func=cmd_history)

    # cleanup command
    p_cleanup = subparsers.add_parser("cleanup", help="Delete old comparison history")
    p_cleanup.add_argument(
        "--days",
        type=int,
        default=None,
        help="Retention in days (default: [history].retention_days)",
    )
    p_cleanup.set_defaults(func=cmd_cleanup)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Parses command line arguments and dispatches to appropriate handler.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    level = args.log_level
    if level is None:
        try:
            level = _load_config(args, required=False).logging.level
        except ValueError:
            # Malformed config; the command itself reports it
            level = "INFO"
    _configure_logging(level)

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
