# File: crudgen/introspection.py
"""
crudgen - Schema Introspection
================================
Reads column and foreign-key metadata for one table.

Two interchangeable implementations share the ``SchemaIntrospector``
protocol:

    InspectorIntrospector   SQLAlchemy's reflection ``Inspector`` (rich path)
    CatalogIntrospector     raw ``information_schema`` queries (fallback)

Which one backs a run is decided once, by :func:`create_introspector`, not
checked on every call.  Both normalize type names through
:func:`normalize_type` so downstream rule synthesis and source patching see
the same vocabulary regardless of the path taken.

Connectivity and query errors are **not** caught here: they propagate to
the orchestrator unmodified, before any file has been written.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional, Protocol, Union, runtime_checkable

from sqlalchemy import inspect as sa_inspect
from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import CompileError, NoInspectionAvailable
from sqlalchemy.types import TypeEngine

from crudgen.models import ColumnDescriptor, ForeignKeyDescriptor

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.introspection")

Bind = Union[Engine, Connection]

# ---------------------------------------------------------------------------
# Type normalization
# ---------------------------------------------------------------------------

_BOOLEAN_TINYINT_RE: re.Pattern[str] = re.compile(r"^tinyint\s*\(\s*1\s*\)")
_PARAMS_RE: re.Pattern[str] = re.compile(r"\([^)]*\)")
_MODIFIERS_RE: re.Pattern[str] = re.compile(r"\b(unsigned|signed|zerofill)\b")
_WHITESPACE_RE: re.Pattern[str] = re.compile(r"\s+")

_TYPE_ALIASES: Dict[str, str] = {
    "character varying": "varchar",
    "character": "char",
    "nvarchar": "varchar",
    "nchar": "char",
    "double precision": "double",
    "timestamp without time zone": "timestamp",
    "timestamp with time zone": "timestamp",
    "timestamptz": "timestamp",
    "time without time zone": "time",
    "time with time zone": "time",
    "bool": "boolean",
    "int2": "smallint",
    "int4": "integer",
    "int8": "bigint",
    "float4": "real",
    "float8": "double",
}


def normalize_type(raw: str) -> str:
    """
    Reduce a database type declaration to a bare lowercase name.

    Examples:
        >>> normalize_type("VARCHAR(255)")
        'varchar'
        >>> normalize_type("bigint(20) unsigned")
        'bigint'
        >>> normalize_type("TINYINT(1)")
        'boolean'
        >>> normalize_type("timestamp(6) without time zone")
        'timestamp'
    """
    t: str = (raw or "").strip().lower()
    if _BOOLEAN_TINYINT_RE.match(t):
        return "boolean"
    t = _PARAMS_RE.sub("", t)
    t = _MODIFIERS_RE.sub("", t)
    t = _WHITESPACE_RE.sub(" ", t).strip()
    return _TYPE_ALIASES.get(t, t)


def _compile_type(type_: Any, dialect: Any) -> str:
    """Render a reflected SQLAlchemy type as the dialect would spell it."""
    if not isinstance(type_, TypeEngine):
        return str(type_)
    try:
        return type_.compile(dialect=dialect)
    except CompileError:
        # NullType and friends have no DDL spelling.
        return getattr(type_, "__visit_name__", type(type_).__name__)


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class SchemaIntrospector(Protocol):
    """What the orchestrator needs to know about a table."""

    def has_table(self, table: str) -> bool: ...

    def describe(self, table: str) -> List[ColumnDescriptor]: ...

    def foreign_keys(self, table: str) -> List[ForeignKeyDescriptor]: ...


# ---------------------------------------------------------------------------
# Rich path: SQLAlchemy Inspector
# ---------------------------------------------------------------------------


class InspectorIntrospector:
    """
    Introspection through ``sqlalchemy.inspect(bind)``.

    A fresh ``Inspector`` is created for every call so its reflection cache
    never leaks metadata from an earlier run.
    """

    def __init__(self, bind: Bind) -> None:
        self._bind: Bind = bind

    def _inspector(self) -> Any:
        return sa_inspect(self._bind)

    def has_table(self, table: str) -> bool:
        return bool(self._inspector().has_table(table))

    def describe(self, table: str) -> List[ColumnDescriptor]:
        dialect: Any = self._bind.dialect
        columns: List[ColumnDescriptor] = []
        for col in self._inspector().get_columns(table):
            columns.append(
                ColumnDescriptor(
                    name=col["name"],
                    type=normalize_type(_compile_type(col["type"], dialect)),
                    notnull=not col.get("nullable", True),
                    default=col.get("default"),
                )
            )
        logger.debug("Inspector described '%s': %d column(s).", table, len(columns))
        return columns

    def foreign_keys(self, table: str) -> List[ForeignKeyDescriptor]:
        result: List[ForeignKeyDescriptor] = []
        for fk in self._inspector().get_foreign_keys(table):
            referred: str = fk.get("referred_table") or ""
            if not referred:
                continue
            # Composite keys contribute one descriptor per local column.
            for local in fk.get("constrained_columns") or []:
                result.append(
                    ForeignKeyDescriptor(local_column=local, referenced_table=referred)
                )
        logger.debug("Inspector found %d foreign key column(s) on '%s'.", len(result), table)
        return result

    def __repr__(self) -> str:
        return f"<InspectorIntrospector {self._bind.dialect.name}>"


# ---------------------------------------------------------------------------
# Fallback path: information_schema catalog
# ---------------------------------------------------------------------------

_COLUMNS_SQL: str = """
    SELECT COLUMN_NAME, DATA_TYPE, IS_NULLABLE, COLUMN_DEFAULT
    FROM INFORMATION_SCHEMA.COLUMNS
    WHERE TABLE_SCHEMA = :database AND TABLE_NAME = :table
    ORDER BY ORDINAL_POSITION
"""

_FOREIGN_KEYS_SQL: str = """
    SELECT kcu.COLUMN_NAME AS local_column,
           kcu.REFERENCED_TABLE_NAME AS referenced_table
    FROM INFORMATION_SCHEMA.KEY_COLUMN_USAGE kcu
    WHERE kcu.TABLE_SCHEMA = :database
      AND kcu.TABLE_NAME = :table
      AND kcu.REFERENCED_TABLE_NAME IS NOT NULL
    ORDER BY kcu.ORDINAL_POSITION
"""

_POSTGRES_FOREIGN_KEYS_SQL: str = """
    SELECT kcu.column_name AS local_column,
           ccu.table_name AS referenced_table
    FROM information_schema.table_constraints tc
    JOIN information_schema.key_column_usage kcu
      ON tc.constraint_name = kcu.constraint_name
     AND tc.table_schema = kcu.table_schema
    JOIN information_schema.constraint_column_usage ccu
      ON tc.constraint_name = ccu.constraint_name
     AND tc.table_schema = ccu.table_schema
    WHERE tc.constraint_type = 'FOREIGN KEY'
      AND tc.table_schema = :database
      AND tc.table_name = :table
    ORDER BY kcu.ordinal_position
"""

_HAS_TABLE_SQL: str = """
    SELECT COUNT(*)
    FROM INFORMATION_SCHEMA.TABLES
    WHERE TABLE_SCHEMA = :database AND TABLE_NAME = :table
"""

_CURRENT_DATABASE_SQL: Dict[str, str] = {
    "mysql": "SELECT DATABASE()",
    "mariadb": "SELECT DATABASE()",
    "postgresql": "SELECT current_schema()",
}


class CatalogIntrospector:
    """
    Introspection through parameterized ``information_schema`` queries.

    Queries are scoped by the current database (schema) name and the table
    name, and ordered by ordinal position so column order matches the DDL.
    """

    def __init__(self, bind: Bind, database: Optional[str] = None) -> None:
        self._bind: Bind = bind
        self._database: Optional[str] = database

    def _execute(self, sql: str, params: Dict[str, Any]) -> List[Any]:
        if isinstance(self._bind, Connection):
            return list(self._bind.execute(text(sql), params))
        with self._bind.connect() as conn:
            return list(conn.execute(text(sql), params))

    def _database_name(self) -> str:
        if self._database:
            return self._database
        dialect_name: str = self._bind.dialect.name
        query: Optional[str] = _CURRENT_DATABASE_SQL.get(dialect_name)
        name: Optional[str] = None
        if query is not None:
            rows: List[Any] = self._execute(query, {})
            name = rows[0][0] if rows else None
        if not name:
            name = self._bind.engine.url.database
        self._database = name or ""
        return self._database

    def _params(self, table: str) -> Dict[str, Any]:
        return {"database": self._database_name(), "table": table}

    def has_table(self, table: str) -> bool:
        rows: List[Any] = self._execute(_HAS_TABLE_SQL, self._params(table))
        return bool(rows and rows[0][0])

    def describe(self, table: str) -> List[ColumnDescriptor]:
        columns: List[ColumnDescriptor] = []
        for row in self._execute(_COLUMNS_SQL, self._params(table)):
            name, data_type, is_nullable, default = row[0], row[1], row[2], row[3]
            columns.append(
                ColumnDescriptor(
                    name=name,
                    type=normalize_type(str(data_type)),
                    notnull=str(is_nullable).upper() == "NO",
                    default=default,
                )
            )
        logger.debug("Catalog described '%s': %d column(s).", table, len(columns))
        return columns

    def foreign_keys(self, table: str) -> List[ForeignKeyDescriptor]:
        sql: str = (
            _POSTGRES_FOREIGN_KEYS_SQL
            if self._bind.dialect.name == "postgresql"
            else _FOREIGN_KEYS_SQL
        )
        result: List[ForeignKeyDescriptor] = [
            ForeignKeyDescriptor(local_column=row[0], referenced_table=row[1])
            for row in self._execute(sql, self._params(table))
        ]
        logger.debug("Catalog found %d foreign key column(s) on '%s'.", len(result), table)
        return result

    def __repr__(self) -> str:
        return f"<CatalogIntrospector {self._bind.dialect.name}>"


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def create_introspector(
    bind: Bind,
    *,
    prefer_inspector: bool = True,
) -> SchemaIntrospector:
    """
    Choose the introspection strategy for a run.

    The Inspector is used when requested and available for *bind*; when
    SQLAlchemy has no inspection support for it the catalog path is used
    instead.  Any other error (bad credentials, unreachable host) is
    raised as-is.
    """
    if prefer_inspector:
        try:
            inspector: Any = sa_inspect(bind)
        except NoInspectionAvailable:
            logger.info(
                "No SQLAlchemy inspector for %r — falling back to information_schema.",
                bind,
            )
        else:
            if hasattr(inspector, "get_columns") and hasattr(inspector, "get_foreign_keys"):
                logger.debug("Using Inspector introspection (%s).", bind.dialect.name)
                return InspectorIntrospector(bind)
            logger.info("Inspector lacks reflection support — using information_schema.")

    logger.debug("Using information_schema introspection (%s).", bind.dialect.name)
    return CatalogIntrospector(bind)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "SchemaIntrospector",
    "InspectorIntrospector",
    "CatalogIntrospector",
    "create_introspector",
    "normalize_type",
]
