"""Tests for package exports and public API.

Verifies that all __init__.py files export the expected names and that
__all__ lists are accurate.
"""

import importlib

import pytest


# ============================================================================
# Top-level package exports
# ============================================================================


class TestTopLevelExports:
    """Tests for src/schema_drift/__init__.py exports."""

    def test_version_defined(self) -> None:
        """Package __version__ is defined and is a string."""
        import schema_drift

        assert schema_drift.__version__ == "0.1.0"

    def test_all_names_are_importable(self) -> None:
        """Every name in __all__ is actually accessible on the module."""
        import schema_drift

        for name in schema_drift.__all__:
            assert hasattr(schema_drift, name), (
                f"'{name}' is in __all__ but not accessible on schema_drift"
            )

    def test_engine_exports(self) -> None:
        """The comparison entry points are importable from the top level."""
        from schema_drift import ComparisonFilter, compare_schemas, default_registry

        assert callable(compare_schemas)
        assert callable(default_registry)
        assert isinstance(ComparisonFilter, type)

    def test_error_hierarchy(self) -> None:
        """Every exported error derives from SchemaDriftError."""
        import schema_drift

        for name in schema_drift.__all__:
            if name.endswith("Error") or name == "InvalidFilterConfiguration":
                assert issubclass(getattr(schema_drift, name), schema_drift.SchemaDriftError)


# ============================================================================
# Subpackage exports
# ============================================================================


class TestSubpackageExports:
    """Every subpackage __all__ entry resolves."""

    @pytest.mark.parametrize(
        "module_name",
        [
            "schema_drift.adapters",
            "schema_drift.config",
            "schema_drift.history",
            "schema_drift.schema",
        ],
    )
    def test_all_entries_resolve(self, module_name: str) -> None:
        module = importlib.import_module(module_name)
        assert module.__all__
        for name in module.__all__:
            assert hasattr(module, name), f"{module_name}.{name} missing"

    def test_cli_entry_point(self) -> None:
        """The console script target exists."""
        from schema_drift.cli import main

        assert callable(main)
