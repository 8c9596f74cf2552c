"""Tests for per-kind structural comparators.

Covers definition normalization, callable equality and difference order,
table column/constraint/trigger differencing, sequences, views, indexes,
symmetry of differences, and the comparator registry.
"""

import pytest

from schema_drift.schema.comparator import (
    CallableComparator,
    ComparatorRegistry,
    IndexComparator,
    SequenceComparator,
    TableComparator,
    ViewComparator,
    default_registry,
    normalize_definition,
    normalize_view_definition,
)
from schema_drift.schema.models import (
    ColumnSchema,
    ConstraintSchema,
    FunctionSchema,
    IndexSchema,
    SchemaObjectKind,
    SequenceSchema,
    TableSchema,
    TriggerSchema,
    ViewSchema,
    Volatility,
)

BODY = "BEGIN\n  RETURN (SELECT sum(amount) FROM orders);\nEND;"


def _func(**overrides) -> FunctionSchema:
    fields = {
        "schema_name": "public",
        "function_name": "calc_total",
        "definition": BODY,
        "language": "plpgsql",
    }
    fields.update(overrides)
    return FunctionSchema(**fields)


def _accounts(*columns: ColumnSchema, **overrides) -> TableSchema:
    fields = {"schema_name": "public", "table_name": "accounts", "columns": list(columns)}
    fields.update(overrides)
    return TableSchema(**fields)


ID = ColumnSchema(name="id", data_type="bigint", is_nullable=False)
EMAIL = ColumnSchema(name="email", data_type="text")


def _diff_set(diffs) -> set[tuple]:
    return {(d.attribute_name, d.source_value, d.destination_value, d.breaking) for d in diffs}


# ============================================================================
# Test: Normalization
# ============================================================================


class TestNormalization:
    """Verify whitespace normalization of definition text."""

    SAMPLES = [
        "SELECT  1;",
        "  SELECT\t1 ;\n\n",
        "",
        "   ",
        "BEGIN\r\n  RETURN x;\r\nEND;",
        "select * from t;;  ",
    ]

    @pytest.mark.parametrize("text", SAMPLES)
    def test_normalize_is_idempotent(self, text: str) -> None:
        """normalize(normalize(x)) == normalize(x)."""
        once = normalize_definition(text)
        assert normalize_definition(once) == once

    @pytest.mark.parametrize("text", SAMPLES)
    def test_view_normalize_is_idempotent(self, text: str) -> None:
        """View normalization is idempotent too, trailing semicolons included."""
        once = normalize_view_definition(text)
        assert normalize_view_definition(once) == once

    def test_collapses_and_trims(self) -> None:
        """Whitespace runs become one space; ends are trimmed."""
        assert normalize_definition("  SELECT \n\t 1;  ") == "SELECT 1;"

    def test_none_passes_through(self) -> None:
        """None stays None."""
        assert normalize_definition(None) is None
        assert normalize_view_definition(None) is None

    def test_view_normalization_drops_semicolons_and_case(self) -> None:
        """View text ignores trailing terminators and letter case."""
        assert normalize_view_definition("SELECT id FROM t;") == normalize_view_definition(
            "select id\nfrom t"
        )


# ============================================================================
# Test: Callables
# ============================================================================


class TestCallableComparator:
    """Verify function equality and ordered differences."""

    def test_whitespace_only_change_is_equal(self) -> None:
        """'SELECT  1;' and 'SELECT 1;' compare equal."""
        comparator = CallableComparator()
        a = _func(definition="SELECT  1;")
        b = _func(definition="SELECT 1;")
        assert comparator.is_equal(a, b)
        assert comparator.differences(a, b) == []

    def test_volatility_and_strict_change(self) -> None:
        """VOLATILE/non-strict vs STABLE/strict: two non-breaking differences."""
        comparator = CallableComparator()
        source = _func(volatility=Volatility.VOLATILE, strict=False)
        destination = _func(volatility=Volatility.STABLE, strict=True)

        assert comparator.is_equal(source, destination) is False
        diffs = comparator.differences(source, destination)
        assert [d.attribute_name for d in diffs] == ["Volatility", "Strict"]
        assert all(d.breaking is False for d in diffs)
        assert (diffs[0].source_value, diffs[0].destination_value) == ("VOLATILE", "STABLE")
        assert (diffs[1].source_value, diffs[1].destination_value) == ("NO", "YES")

    def test_owner_and_comment_are_cosmetic(self) -> None:
        """Owner and comment never affect equality."""
        comparator = CallableComparator()
        a = _func(owner="app", comment="Totals")
        b = _func(owner="admin", comment=None)
        assert comparator.is_equal(a, b)

    def test_all_differences_in_declaration_order(self) -> None:
        """Definition comes first, then language, volatility, strict, security definer."""
        comparator = CallableComparator()
        a = _func()
        b = _func(
            definition="SELECT 2",
            language="sql",
            volatility=Volatility.IMMUTABLE,
            strict=True,
            security_definer=True,
        )
        diffs = comparator.differences(a, b)
        assert [(d.attribute_name, d.breaking) for d in diffs] == [
            ("Definition", True),
            ("Language", True),
            ("Volatility", False),
            ("Strict", False),
            ("SecurityDefiner", False),
        ]

    def test_definition_difference_keeps_original_text(self) -> None:
        """Reported values are the raw definitions, not the normalized ones."""
        diffs = CallableComparator().differences(
            _func(definition="SELECT  1"), _func(definition="SELECT 2")
        )
        assert diffs[0].source_value == "SELECT  1"

    def test_is_equal_agrees_with_differences(self) -> None:
        """is_equal is False exactly when differences is non-empty."""
        comparator = CallableComparator()
        pairs = [
            (_func(), _func()),
            (_func(), _func(security_definer=True)),
            (_func(), _func(definition=BODY.replace("\n", " "))),
        ]
        for a, b in pairs:
            assert comparator.is_equal(a, b) == (not comparator.differences(a, b))


# ============================================================================
# Test: Tables
# ============================================================================


class TestTableComparator:
    """Verify column, constraint, trigger, and RLS differencing."""

    def test_missing_column_is_one_breaking_difference(self) -> None:
        """accounts.email absent in destination -> one breaking 'Columns' diff."""
        diffs = TableComparator().differences(_accounts(ID, EMAIL), _accounts(ID))
        assert len(diffs) == 1
        assert diffs[0].attribute_name == "Columns"
        assert diffs[0].breaking is True
        assert diffs[0].source_value == "email text"
        assert diffs[0].destination_value is None

    def test_extra_column_reported_from_destination(self) -> None:
        """A destination-only column carries its description on the destination side."""
        diffs = TableComparator().differences(_accounts(ID), _accounts(ID, EMAIL))
        assert [(d.attribute_name, d.source_value, d.destination_value) for d in diffs] == [
            ("Columns", None, "email text")
        ]

    def test_type_and_nullability_are_breaking(self) -> None:
        """Column type and nullability changes are breaking."""
        changed = ColumnSchema(name="email", data_type="varchar(255)", is_nullable=False)
        diffs = TableComparator().differences(_accounts(ID, EMAIL), _accounts(ID, changed))
        assert [(d.attribute_name, d.breaking) for d in diffs] == [
            ("Column email: Data Type", True),
            ("Column email: Nullable", True),
        ]

    def test_comment_and_default_are_not_breaking(self) -> None:
        """Column comment and default changes are non-breaking."""
        changed = ColumnSchema(name="email", data_type="text", default="''", comment="Login")
        diffs = TableComparator().differences(_accounts(ID, EMAIL), _accounts(ID, changed))
        assert [(d.attribute_name, d.breaking) for d in diffs] == [
            ("Column email: Default", False),
            ("Column email: Comment", False),
        ]

    def test_table_owner_and_comment_ignored(self) -> None:
        """Table-level owner/comment do not make a table modified."""
        comparator = TableComparator()
        a = _accounts(ID, owner="app", comment="Customer accounts")
        b = _accounts(ID, owner="postgres")
        assert comparator.is_equal(a, b)

    def test_constraint_presence_and_definition(self) -> None:
        """Missing constraints and changed definitions are both breaking."""
        pk = ConstraintSchema(name="accounts_pkey", constraint_type="PRIMARY KEY", columns=["id"])
        uq = ConstraintSchema(name="accounts_email_key", constraint_type="UNIQUE", columns=["email"])
        uq_wide = uq.model_copy(update={"columns": ["email", "id"]})

        diffs = TableComparator().differences(
            _accounts(ID, EMAIL, constraints=[pk, uq]),
            _accounts(ID, EMAIL, constraints=[uq_wide]),
        )
        assert [(d.attribute_name, d.breaking) for d in diffs] == [
            ("Constraint accounts_email_key: Definition", True),
            ("Constraints", True),
        ]
        assert diffs[1].source_value == "accounts_pkey: PRIMARY KEY (id)"

    def test_trigger_changes(self) -> None:
        """Trigger timing and enabled-state changes are reported per trigger."""
        trg = TriggerSchema(
            name="audit_accounts",
            timing="AFTER",
            events="INSERT OR UPDATE",
            function_name="audit_row",
        )
        changed = trg.model_copy(update={"timing": "BEFORE", "enabled": False})
        diffs = TableComparator().differences(
            _accounts(ID, triggers=[trg]), _accounts(ID, triggers=[changed])
        )
        assert [d.attribute_name for d in diffs] == [
            "Trigger audit_accounts: Timing",
            "Trigger audit_accounts: Enabled",
        ]

    def test_missing_trigger(self) -> None:
        """A trigger only in source is reported under 'Triggers'."""
        trg = TriggerSchema(name="t", timing="AFTER", events="DELETE", function_name="f")
        diffs = TableComparator().differences(_accounts(ID, triggers=[trg]), _accounts(ID))
        assert diffs[0].attribute_name == "Triggers"
        assert diffs[0].destination_value is None

    def test_row_level_security(self) -> None:
        """Enabling RLS changes access behavior and is breaking."""
        diffs = TableComparator().differences(
            _accounts(ID), _accounts(ID, row_level_security=True)
        )
        assert [(d.attribute_name, d.breaking) for d in diffs] == [("Row Level Security", True)]


# ============================================================================
# Test: Sequences, Views, Indexes
# ============================================================================


class TestOtherKinds:
    """Verify sequence, view, and index comparators."""

    def test_sequence_data_type_breaking_others_not(self) -> None:
        """Only the sequence data type is breaking."""
        a = SequenceSchema(schema_name="public", sequence_name="s")
        b = SequenceSchema(
            schema_name="public", sequence_name="s", data_type="integer", increment=5
        )
        diffs = SequenceComparator().differences(a, b)
        assert [(d.attribute_name, d.source_value, d.destination_value, d.breaking) for d in diffs] == [
            ("Data Type", "bigint", "integer", True),
            ("Increment", "1", "5", False),
        ]

    def test_view_formatting_only_change_is_equal(self) -> None:
        """View definitions differing in whitespace, case, and ';' are equal."""
        a = ViewSchema(schema_name="public", view_name="v", definition=" SELECT id\n   FROM accounts;")
        b = ViewSchema(schema_name="public", view_name="v", definition="select id from accounts")
        assert ViewComparator().is_equal(a, b)

    def test_view_definition_change_is_breaking(self) -> None:
        """A real view change yields one breaking Definition diff."""
        a = ViewSchema(schema_name="public", view_name="v", definition="SELECT id FROM accounts")
        b = ViewSchema(schema_name="public", view_name="v", definition="SELECT id, email FROM accounts")
        diffs = ViewComparator().differences(a, b)
        assert [(d.attribute_name, d.breaking) for d in diffs] == [("Definition", True)]

    def test_index_uniqueness_and_predicate(self) -> None:
        """Index uniqueness and WHERE clause changes are breaking."""
        a = IndexSchema(
            schema_name="public", index_name="i", table_name="accounts", columns=["email"]
        )
        b = a.model_copy(update={"is_unique": True, "where_clause": "(deleted_at IS NULL)"})
        diffs = IndexComparator().differences(a, b)
        assert [(d.attribute_name, d.breaking) for d in diffs] == [
            ("Unique", True),
            ("WHERE Clause", True),
        ]

    def test_index_primary_flag_is_breaking(self) -> None:
        """Promoting an index to the primary key is a breaking change."""
        a = IndexSchema(
            schema_name="public", index_name="accounts_id_idx", table_name="accounts",
            columns=["id"], is_unique=True,
        )
        b = a.model_copy(update={"is_primary": True})
        diffs = IndexComparator().differences(a, b)
        assert [(d.attribute_name, d.breaking) for d in diffs] == [("Primary", True)]
        assert (diffs[0].source_value, diffs[0].destination_value) == ("NO", "YES")
        assert not IndexComparator().is_equal(a, b)

    def test_index_column_order_matters(self) -> None:
        """Column order is part of an index's structure."""
        a = IndexSchema(schema_name="public", index_name="i", table_name="t", columns=["a", "b"])
        b = a.model_copy(update={"columns": ["b", "a"]})
        assert not IndexComparator().is_equal(a, b)


# ============================================================================
# Test: Symmetry
# ============================================================================


class TestSymmetry:
    """differences(a, b) and differences(b, a) mirror each other."""

    PAIRS = [
        (_func(), _func(definition="SELECT 1", strict=True, volatility=Volatility.STABLE)),
        (
            _accounts(ID, EMAIL, constraints=[
                ConstraintSchema(name="pk", constraint_type="PRIMARY KEY", columns=["id"])
            ]),
            _accounts(
                ColumnSchema(name="id", data_type="int"),
                ColumnSchema(name="created_at", data_type="timestamptz"),
                row_level_security=True,
            ),
        ),
        (
            SequenceSchema(schema_name="public", sequence_name="s", cycle=True),
            SequenceSchema(schema_name="public", sequence_name="s", cache_size=20),
        ),
        (
            IndexSchema(schema_name="public", index_name="i", table_name="t", columns=["a"]),
            IndexSchema(
                schema_name="public", index_name="i", table_name="t", columns=["a"],
                index_type="hash", where_clause="a > 0",
            ),
        ),
    ]

    @pytest.mark.parametrize(("a", "b"), PAIRS)
    def test_differences_are_symmetric(self, a, b) -> None:
        """Same attribute set with source/destination values swapped."""
        registry = default_registry()
        forward = registry.differences(a, b)
        backward = registry.differences(b, a)
        assert forward
        assert _diff_set(backward) == _diff_set(d.swapped() for d in forward)


# ============================================================================
# Test: Registry
# ============================================================================


class TestComparatorRegistry:
    """Verify the kind-keyed strategy table."""

    def test_default_registry_covers_every_kind(self) -> None:
        """Every SchemaObjectKind has a registered comparator."""
        registry = default_registry()
        assert registry.kinds == list(SchemaObjectKind)
        for kind in SchemaObjectKind:
            assert kind in registry

    def test_callable_kinds_share_a_comparator(self) -> None:
        """Functions, procedures, aggregates, and windows use one strategy."""
        registry = default_registry()
        assert registry.get(SchemaObjectKind.FUNCTION) is registry.get(SchemaObjectKind.WINDOW)

    def test_unregistered_kind_raises_key_error(self) -> None:
        """An empty registry raises KeyError naming the kind."""
        with pytest.raises(KeyError, match="TABLE"):
            ComparatorRegistry().get(SchemaObjectKind.TABLE)

    def test_register_replaces_strategy(self) -> None:
        """Registering a kind again swaps in the new comparator."""

        class AlwaysEqual:
            def is_equal(self, source, destination) -> bool:
                return True

            def differences(self, source, destination) -> list:
                return []

        registry = default_registry()
        registry.register(SchemaObjectKind.TABLE, AlwaysEqual())
        assert registry.is_equal(_accounts(ID), _accounts(EMAIL))
