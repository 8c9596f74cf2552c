"""Snapshot file I/O.

A snapshot file is the JSON form of a ``SchemaSnapshot``. Files let a
comparison run offline, or against a capture taken earlier.

Usage:
    from schema_drift.schema.snapshot import load_snapshot, save_snapshot

    save_snapshot(snapshot, Path("staging.json"))
    snapshot = load_snapshot(Path("staging.json"))
"""

from pathlib import Path

from pydantic import ValidationError

from schema_drift.errors import SnapshotError
from schema_drift.schema.models import SchemaSnapshot


def load_snapshot(path: Path) -> SchemaSnapshot:
    """Read a snapshot file.

    Raises:
        SnapshotError: If the file is missing, unreadable, or not a valid
            snapshot document.
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise SnapshotError(f"Cannot read snapshot file {path}: {e}") from e

    try:
        return SchemaSnapshot.model_validate_json(raw)
    except ValidationError as e:
        raise SnapshotError(
            f"Invalid snapshot file {path}: {e.error_count()} validation error(s)\n{e}"
        ) from e


def save_snapshot(snapshot: SchemaSnapshot, path: Path) -> Path:
    """Write *snapshot* as indented JSON, creating parent directories."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(snapshot.model_dump_json(indent=2), encoding="utf-8")
    except OSError as e:
        raise SnapshotError(f"Cannot write snapshot file {path}: {e}") from e
    return path
