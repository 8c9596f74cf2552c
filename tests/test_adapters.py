"""Tests for the async PostgreSQL adapter.

The SQLAlchemy engine is mocked throughout; no database is required.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import UUID

import pytest

from schema_drift.adapters import AsyncPostgresAdapter, DatabaseClient
from schema_drift.adapters.postgres import create_async_engine_pooled, normalize_async_url


def _adapter(**kwargs) -> tuple[AsyncPostgresAdapter, MagicMock]:
    with patch("schema_drift.adapters.postgres.create_async_engine_pooled") as mock_create:
        engine = MagicMock()
        engine.dispose = AsyncMock()
        mock_create.return_value = engine
        adapter = AsyncPostgresAdapter("postgresql://u:p@localhost/drift", **kwargs)
    return adapter, engine


def _context(conn: MagicMock) -> MagicMock:
    ctx = MagicMock()
    ctx.__aenter__ = AsyncMock(return_value=conn)
    ctx.__aexit__ = AsyncMock(return_value=None)
    return ctx


def _result(columns: list[str], rows: list[tuple], rowcount: int = 0) -> MagicMock:
    result = MagicMock()
    result.keys.return_value = columns
    result.fetchall.return_value = rows
    result.fetchone.return_value = rows[0] if rows else None
    result.rowcount = rowcount
    return result


# ============================================================================
# Test: URL and Engine
# ============================================================================


class TestNormalizeAsyncUrl:
    """Verify URL scheme rewriting."""

    @pytest.mark.parametrize(
        ("url", "expected"),
        [
            ("postgresql://u:p@host/db", "postgresql+asyncpg://u:p@host/db"),
            ("postgres://u:p@host/db", "postgresql+asyncpg://u:p@host/db"),
            ("postgresql+asyncpg://u:p@host/db", "postgresql+asyncpg://u:p@host/db"),
        ],
    )
    def test_rewrites_scheme(self, url: str, expected: str) -> None:
        assert normalize_async_url(url) == expected

    def test_adapter_passes_normalized_url(self) -> None:
        """The adapter builds its engine from the asyncpg URL."""
        with patch("schema_drift.adapters.postgres.create_async_engine_pooled") as mock_create:
            AsyncPostgresAdapter("postgres://u:p@host/db", pool_size=2)
        mock_create.assert_called_once_with("postgresql+asyncpg://u:p@host/db", pool_size=2)


class TestCreateAsyncEnginePooled:
    """Verify engine pool defaults and overrides."""

    def test_defaults(self) -> None:
        """Pool settings and connect timeout default sensibly."""
        with patch("schema_drift.adapters.postgres.create_async_engine") as mock_engine:
            create_async_engine_pooled("postgresql+asyncpg://u:p@host/db")

        kwargs = mock_engine.call_args.kwargs
        assert kwargs["pool_size"] == 5
        assert kwargs["max_overflow"] == 10
        assert kwargs["pool_pre_ping"] is True
        assert kwargs["pool_recycle"] == 300
        assert kwargs["connect_args"] == {"timeout": 5}

    def test_overrides(self) -> None:
        """Caller kwargs win over defaults."""
        with patch("schema_drift.adapters.postgres.create_async_engine") as mock_engine:
            create_async_engine_pooled("postgresql+asyncpg://h/db", pool_size=1, echo=True)

        kwargs = mock_engine.call_args.kwargs
        assert kwargs["pool_size"] == 1
        assert kwargs["echo"] is True


# ============================================================================
# Test: Query Methods
# ============================================================================


class TestJsonbParams:
    """Verify ``:name`` placeholders are cast to jsonb."""

    def test_prepare_casts_listed_params(self) -> None:
        adapter, _ = _adapter(jsonb_params=["result_snapshot"])
        clause = adapter._prepare(
            "INSERT INTO t (a, result_snapshot) VALUES (:a, :result_snapshot)"
        )
        assert clause.text == (
            "INSERT INTO t (a, result_snapshot) VALUES (:a, CAST(:result_snapshot AS jsonb))"
        )

    def test_prepare_respects_word_boundaries(self) -> None:
        """Only the exact parameter name is rewritten."""
        adapter, _ = _adapter(jsonb_params=["doc"])
        clause = adapter._prepare("SELECT :doc, :doc_id")
        assert clause.text == "SELECT CAST(:doc AS jsonb), :doc_id"

    def test_prepare_without_params_is_unchanged(self) -> None:
        adapter, _ = _adapter()
        assert adapter._prepare("SELECT :a").text == "SELECT :a"


class TestQueryMethods:
    """Verify fetch/execute against a mocked engine."""

    def test_fetch_all_returns_dicts(self) -> None:
        """Rows become dicts; UUIDs are stringified."""
        adapter, engine = _adapter()
        conn = MagicMock()
        conn.execute = AsyncMock(
            return_value=_result(
                ["id", "ref"],
                [(1, UUID("12345678-1234-5678-1234-567812345678")), (2, None)],
            )
        )
        engine.connect.return_value = _context(conn)

        rows = asyncio.run(adapter.fetch_all("SELECT id, ref FROM t"))

        assert rows == [
            {"id": 1, "ref": "12345678-1234-5678-1234-567812345678"},
            {"id": 2, "ref": None},
        ]
        _, params = conn.execute.await_args.args
        assert params == {}

    def test_fetch_one_uses_transaction(self) -> None:
        """fetch_one runs inside engine.begin() so RETURNING commits."""
        adapter, engine = _adapter()
        conn = MagicMock()
        conn.execute = AsyncMock(return_value=_result(["id"], [(42,)]))
        engine.begin.return_value = _context(conn)

        row = asyncio.run(adapter.fetch_one("INSERT ... RETURNING id", {"a": 1}))

        assert row == {"id": 42}
        engine.connect.assert_not_called()

    def test_fetch_one_none(self) -> None:
        adapter, engine = _adapter()
        conn = MagicMock()
        conn.execute = AsyncMock(return_value=_result(["id"], []))
        engine.begin.return_value = _context(conn)

        assert asyncio.run(adapter.fetch_one("SELECT id FROM t WHERE false")) is None

    def test_execute_returns_rowcount(self) -> None:
        adapter, engine = _adapter()
        conn = MagicMock()
        conn.execute = AsyncMock(return_value=_result([], [], rowcount=3))
        engine.begin.return_value = _context(conn)

        assert asyncio.run(adapter.execute("DELETE FROM t")) == 3

    def test_close_disposes_engine(self) -> None:
        adapter, engine = _adapter()
        asyncio.run(adapter.close())
        engine.dispose.assert_awaited_once()


class TestDatabaseClientProtocol:
    """Verify the protocol surface the history store relies on."""

    @pytest.mark.parametrize("method", ["fetch_all", "fetch_one", "execute", "close"])
    def test_protocol_methods_are_async(self, method: str) -> None:
        assert asyncio.iscoroutinefunction(getattr(DatabaseClient, method))
        assert asyncio.iscoroutinefunction(getattr(AsyncPostgresAdapter, method))
