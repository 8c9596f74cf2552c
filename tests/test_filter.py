"""Tests for comparison filters and presets."""

import pytest

from schema_drift.errors import InvalidFilterConfiguration
from schema_drift.schema.filter import ComparisonFilter, FilterPreset, wildcard_to_regex
from schema_drift.schema.models import (
    FunctionSchema,
    SchemaObjectKind,
    TableSchema,
    ViewSchema,
)


def _table(name: str, schema: str = "public") -> TableSchema:
    return TableSchema(schema_name=schema, table_name=name)


# ============================================================================
# Test: Wildcards
# ============================================================================


class TestWildcardToRegex:
    """Verify wildcard translation."""

    def test_star_and_question_mark(self) -> None:
        """'*' matches any run, '?' exactly one character."""
        assert wildcard_to_regex("tmp_*") == "^tmp_.*$"
        assert wildcard_to_regex("v?") == "^v.$"

    def test_regex_metacharacters_are_escaped(self) -> None:
        """Dots and brackets in a wildcard are literal."""
        flt = ComparisonFilter(excluded_name_patterns=["a.b"])
        assert flt.matches_name("axb") is True
        assert flt.matches_name("a.b") is False


# ============================================================================
# Test: Matching
# ============================================================================


class TestComparisonFilterMatching:
    """Verify include/exclude evaluation."""

    def test_empty_filter_matches_everything(self) -> None:
        """A default filter admits every object."""
        flt = ComparisonFilter()
        assert flt.matches(_table("accounts", "audit"))
        assert flt.has_filters is False
        assert flt.summary() == "No filters applied"

    def test_included_schemas_is_allowlist(self) -> None:
        """Only listed schemas take part."""
        flt = ComparisonFilter(included_schemas=["public"])
        assert flt.matches(_table("accounts"))
        assert not flt.matches(_table("log", "audit"))

    def test_schema_name_override(self) -> None:
        """An explicit schema name replaces the object's own for schema rules."""
        flt = ComparisonFilter(included_schemas=["public"])
        assert flt.matches(_table("accounts", "staging_copy"), "public")
        assert not flt.matches(_table("accounts"), "staging_copy")

    def test_excluded_schema_wins_over_included(self) -> None:
        """Exclusion is evaluated first."""
        flt = ComparisonFilter(included_schemas=["*"], excluded_schemas=["audit"])
        assert flt.matches(_table("accounts"))
        assert not flt.matches(_table("log", "audit"))

    def test_kind_filters(self) -> None:
        """Excluded kinds drop; included kinds are an allowlist."""
        func = FunctionSchema(schema_name="public", function_name="f")
        view = ViewSchema(schema_name="public", view_name="v")

        only_functions = ComparisonFilter(included_kinds={SchemaObjectKind.FUNCTION})
        assert only_functions.matches(func)
        assert not only_functions.matches(view)

        no_views = ComparisonFilter(excluded_kinds={SchemaObjectKind.VIEW})
        assert no_views.matches(func)
        assert not no_views.matches(view)

    def test_wildcards_match_whole_name(self) -> None:
        """'tmp_*' excludes tmp_orders but not orders_tmp_copy."""
        flt = ComparisonFilter(excluded_name_patterns=["tmp_*"])
        assert not flt.matches(_table("tmp_orders"))
        assert flt.matches(_table("orders_tmp_copy"))

    def test_included_name_patterns(self) -> None:
        """Included patterns restrict names to the listed shapes."""
        flt = ComparisonFilter(included_name_patterns=["acc*", "orders"])
        assert flt.matches(_table("accounts"))
        assert flt.matches(_table("orders"))
        assert not flt.matches(_table("orders_archive"))

    def test_regex_patterns_are_full_matches(self) -> None:
        """With use_regex, each entry must match the whole name."""
        flt = ComparisonFilter(excluded_name_patterns=[r"tmp_\d+"], use_regex=True)
        assert not flt.matches(_table("tmp_42"))
        assert flt.matches(_table("tmp_42_keep"))

    def test_name_pattern_is_searched(self) -> None:
        """name_pattern matches anywhere in the name."""
        flt = ComparisonFilter(name_pattern="order")
        assert flt.matches(_table("customer_orders"))
        assert not flt.matches(_table("accounts"))

    def test_filter_is_frozen(self) -> None:
        """Filters cannot be mutated after construction."""
        flt = ComparisonFilter()
        with pytest.raises(ValueError):
            flt.use_regex = True


# ============================================================================
# Test: Construction and Validation
# ============================================================================


class TestComparisonFilterConstruction:
    """Verify presets, pattern strings, and check()."""

    def test_production_safe_preset(self) -> None:
        """PRODUCTION_SAFE excludes temp tables and system schemas."""
        flt = ComparisonFilter.from_preset(FilterPreset.PRODUCTION_SAFE)
        assert "tmp_*" in flt.excluded_name_patterns
        assert "pg_catalog" in flt.excluded_schemas
        assert not flt.matches(_table("accounts_backup"))
        assert not flt.matches(_table("anything", "information_schema"))
        assert flt.matches(_table("accounts"))

    def test_preset_by_name(self) -> None:
        """Presets can be given by their string value."""
        flt = ComparisonFilter.from_preset("EXCLUDE_SYSTEM_SCHEMAS")
        assert flt.excluded_name_patterns == []
        assert flt.excluded_schemas == ["pg_catalog", "information_schema", "pg_toast"]

    def test_none_preset_has_no_filters(self) -> None:
        """NONE yields an empty filter."""
        assert ComparisonFilter.from_preset(FilterPreset.NONE).has_filters is False

    def test_unknown_preset_raises(self) -> None:
        """An unknown preset name is a configuration error."""
        with pytest.raises(InvalidFilterConfiguration, match="Unknown filter preset"):
            ComparisonFilter.from_preset("EVERYTHING")

    def test_from_pattern_string(self) -> None:
        """Comma-separated patterns are trimmed and blanks dropped."""
        flt = ComparisonFilter.from_pattern_string(" tmp_*, ,*_bak ")
        assert flt.excluded_name_patterns == ["tmp_*", "*_bak"]
        assert flt.summary() == "Excluding: tmp_*, *_bak"

    def test_from_pattern_string_none(self) -> None:
        """No pattern string means no patterns."""
        assert ComparisonFilter.from_pattern_string(None).excluded_name_patterns == []

    def test_invalid_regex_rejected(self) -> None:
        """A pattern that does not compile fails check()."""
        flt = ComparisonFilter(excluded_name_patterns=["("], use_regex=True)
        with pytest.raises(InvalidFilterConfiguration, match="Invalid pattern"):
            flt.check()

    def test_invalid_name_pattern_rejected(self) -> None:
        """name_pattern is validated too."""
        with pytest.raises(InvalidFilterConfiguration, match="name_pattern"):
            ComparisonFilter(name_pattern="[a-").check()

    def test_empty_pattern_rejected(self) -> None:
        """An empty entry in a pattern list is an error."""
        with pytest.raises(InvalidFilterConfiguration, match="Empty pattern"):
            ComparisonFilter(included_schemas=[""]).check()

    def test_conflicting_kinds_rejected(self) -> None:
        """A kind cannot be both included and excluded."""
        flt = ComparisonFilter(
            included_kinds={SchemaObjectKind.TABLE},
            excluded_kinds={SchemaObjectKind.TABLE},
        )
        with pytest.raises(InvalidFilterConfiguration, match="TABLE"):
            flt.check()

    def test_invalid_configuration_is_value_error(self) -> None:
        """Callers catching ValueError also catch filter errors."""
        with pytest.raises(ValueError):
            ComparisonFilter(excluded_name_patterns=["["], use_regex=True).check()

    def test_summary_lists_active_rules(self) -> None:
        """summary() joins the active rules in a fixed order."""
        flt = ComparisonFilter(
            included_schemas=["public"],
            excluded_kinds={SchemaObjectKind.INDEX, SchemaObjectKind.SEQUENCE},
            name_pattern="^acc",
        )
        assert flt.summary() == (
            "Including schemas: public; Excluding kinds: INDEX, SEQUENCE; "
            "Name matches: ^acc"
        )
