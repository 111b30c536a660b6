"""
tests/test_introspection.py
Unit tests for crudgen.introspection.

Tests cover:
- Type normalization shared by both introspection paths
- Inspector path against a real SQLite database
- information_schema path against a mocked connection
- Strategy selection in create_introspector
"""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any, Dict, List
from unittest.mock import MagicMock

import pytest
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import OperationalError

from crudgen.introspection import (
    CatalogIntrospector,
    InspectorIntrospector,
    SchemaIntrospector,
    create_introspector,
    normalize_type,
)
from crudgen.models import TypeFamily


# ===========================================================================
# Type normalization
# ===========================================================================


class TestNormalizeType:
    """normalize_type() reduces raw declarations to one vocabulary."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("VARCHAR(255)", "varchar"),
            ("bigint(20) unsigned", "bigint"),
            ("TINYINT(1)", "boolean"),
            ("tinyint(4)", "tinyint"),
            ("DECIMAL(10, 2)", "decimal"),
            ("character varying", "varchar"),
            ("double precision", "double"),
            ("timestamp(6) without time zone", "timestamp"),
            ("int4", "integer"),
            ("bool", "boolean"),
            ("JSONB", "jsonb"),
            ("", ""),
        ],
    )
    def test_normalization(self, raw: str, expected: str) -> None:
        assert normalize_type(raw) == expected


# ===========================================================================
# Inspector path (SQLite)
# ===========================================================================


class TestInspectorIntrospector:
    """Rich path over SQLAlchemy's Inspector."""

    def test_satisfies_protocol(self, engine: Engine) -> None:
        assert isinstance(InspectorIntrospector(engine), SchemaIntrospector)

    def test_has_table(self, engine: Engine) -> None:
        introspector = InspectorIntrospector(engine)
        assert introspector.has_table("products") is True
        assert introspector.has_table("ghosts") is False

    def test_describe_preserves_column_order(self, engine: Engine) -> None:
        columns = InspectorIntrospector(engine).describe("products")
        assert [c.name for c in columns] == [
            "id", "name", "price", "category_id", "created_at", "updated_at",
        ]

    def test_describe_normalizes_types(self, engine: Engine) -> None:
        by_name = {c.name: c for c in InspectorIntrospector(engine).describe("products")}
        assert by_name["name"].type == "varchar"
        assert by_name["price"].type == "decimal"
        assert by_name["category_id"].type == "integer"
        assert by_name["created_at"].type == "datetime"

    def test_describe_reports_nullability(self, engine: Engine) -> None:
        by_name = {c.name: c for c in InspectorIntrospector(engine).describe("products")}
        assert by_name["name"].notnull is True
        assert by_name["created_at"].notnull is False

    def test_describe_reports_defaults(self, engine: Engine) -> None:
        by_name = {c.name: c for c in InspectorIntrospector(engine).describe("orders")}
        assert by_name["is_paid"].has_default is True
        assert by_name["note"].has_default is False

    def test_type_families_from_sqlite(self, engine: Engine) -> None:
        by_name = {c.name: c for c in InspectorIntrospector(engine).describe("orders")}
        assert by_name["is_paid"].type_family is TypeFamily.BOOLEAN
        assert by_name["meta"].type_family is TypeFamily.JSON
        assert by_name["placed_on"].type == "date"
        assert by_name["note"].type_family is None

    def test_foreign_keys(self, engine: Engine) -> None:
        fks = InspectorIntrospector(engine).foreign_keys("products")
        assert [(fk.local_column, fk.referenced_table) for fk in fks] == [
            ("category_id", "categories"),
        ]

    def test_multiple_foreign_keys_to_same_table(self, engine: Engine) -> None:
        fks = InspectorIntrospector(engine).foreign_keys("orders")
        assert sorted(fk.local_column for fk in fks) == ["reviewer_id", "user_id"]
        assert {fk.referenced_table for fk in fks} == {"users"}

    def test_fresh_descriptors_each_call(self, engine: Engine) -> None:
        introspector = InspectorIntrospector(engine)
        first = introspector.describe("products")
        second = introspector.describe("products")
        assert first == second
        assert first[0] is not second[0]


# ===========================================================================
# Catalog path (mocked connection)
# ===========================================================================


def _catalog_connection(
    dialect: str = "mysql",
    columns: List[tuple] = (),
    foreign_keys: List[tuple] = (),
    table_count: int = 1,
) -> MagicMock:
    calls: List[Dict[str, Any]] = []

    def fake_execute(clause: Any, params: Dict[str, Any]) -> List[tuple]:
        sql = str(clause)
        calls.append({"sql": sql, "params": dict(params)})
        if "DATABASE()" in sql or "current_schema()" in sql:
            return [("shop",)]
        if "KEY_COLUMN_USAGE" in sql.upper():
            return list(foreign_keys)
        if "INFORMATION_SCHEMA.TABLES" in sql:
            return [(table_count,)]
        if "INFORMATION_SCHEMA.COLUMNS" in sql:
            return list(columns)
        raise AssertionError(f"unexpected query: {sql}")

    conn = MagicMock(spec=Connection)
    conn.dialect = MagicMock()
    conn.dialect.name = dialect
    conn.execute.side_effect = fake_execute
    conn.calls = calls
    return conn


class TestCatalogIntrospector:
    """Fallback path over information_schema queries."""

    def test_describe_maps_rows(self) -> None:
        conn = _catalog_connection(
            columns=[
                ("id", "bigint", "NO", None),
                ("title", "VARCHAR", "NO", None),
                ("active", "tinyint(1)", "NO", "1"),
                ("note", "text", "YES", None),
            ]
        )
        columns = CatalogIntrospector(conn).describe("posts")

        assert [c.name for c in columns] == ["id", "title", "active", "note"]
        assert columns[1].type == "varchar"
        assert columns[1].notnull is True
        assert columns[2].type == "boolean"
        assert columns[2].has_default is True
        assert columns[3].notnull is False

    def test_queries_are_scoped_by_database_and_table(self) -> None:
        conn = _catalog_connection(columns=[("id", "int", "NO", None)])
        CatalogIntrospector(conn).describe("posts")

        scoped = [c for c in conn.calls if "COLUMNS" in c["sql"]]
        assert scoped[0]["params"] == {"database": "shop", "table": "posts"}
        assert "ORDER BY ORDINAL_POSITION" in scoped[0]["sql"]

    def test_explicit_database_skips_lookup(self) -> None:
        conn = _catalog_connection(columns=[])
        CatalogIntrospector(conn, database="other").describe("posts")

        assert not any("DATABASE()" in c["sql"] for c in conn.calls)
        assert conn.calls[0]["params"]["database"] == "other"

    def test_foreign_keys(self) -> None:
        conn = _catalog_connection(foreign_keys=[("user_id", "users"), ("author_id", "users")])
        fks = CatalogIntrospector(conn).foreign_keys("posts")
        assert [(fk.local_column, fk.referenced_table) for fk in fks] == [
            ("user_id", "users"),
            ("author_id", "users"),
        ]

    def test_postgres_foreign_key_query(self) -> None:
        conn = _catalog_connection(dialect="postgresql", foreign_keys=[("user_id", "users")])
        CatalogIntrospector(conn).foreign_keys("posts")
        fk_sql = [c["sql"] for c in conn.calls if "key_column_usage" in c["sql"]]
        assert fk_sql and "constraint_column_usage" in fk_sql[0]

    def test_has_table(self) -> None:
        assert CatalogIntrospector(_catalog_connection(table_count=1)).has_table("posts") is True
        assert CatalogIntrospector(_catalog_connection(table_count=0)).has_table("posts") is False

    def test_query_errors_propagate(self) -> None:
        conn = MagicMock(spec=Connection)
        conn.dialect = MagicMock()
        conn.dialect.name = "mysql"
        conn.execute.side_effect = OperationalError("SELECT", {}, Exception("gone away"))

        with pytest.raises(OperationalError):
            CatalogIntrospector(conn).describe("posts")


# ===========================================================================
# Strategy selection
# ===========================================================================


class TestCreateIntrospector:
    def test_prefers_inspector(self, engine: Engine) -> None:
        assert isinstance(create_introspector(engine), InspectorIntrospector)

    def test_catalog_on_request(self, engine: Engine) -> None:
        introspector = create_introspector(engine, prefer_inspector=False)
        assert isinstance(introspector, CatalogIntrospector)

    def test_falls_back_without_inspection_support(self) -> None:
        class _OpaqueBind:
            dialect = SimpleNamespace(name="mysql")

        assert isinstance(create_introspector(_OpaqueBind()), CatalogIntrospector)
