"""
tests/conftest.py
Shared fixtures for the crudgen test suite.

Real file I/O is performed inside temporary directories managed by pytest's
tmp_path fixture, and the rich introspection path runs against real SQLite
databases created through SQLAlchemy.
"""

from __future__ import annotations

import logging
import pathlib
import sys
from typing import Iterator, List

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine

from crudgen.models import ColumnDescriptor, ForeignKeyDescriptor, GeneratorConfig


# ---------------------------------------------------------------------------
# Schema DDL
# ---------------------------------------------------------------------------

SHOP_DDL: List[str] = [
    """
    CREATE TABLE categories (
        id INTEGER PRIMARY KEY,
        name VARCHAR(100) NOT NULL
    )
    """,
    """
    CREATE TABLE users (
        id INTEGER PRIMARY KEY,
        email VARCHAR(255) NOT NULL,
        password VARCHAR(255) NOT NULL
    )
    """,
    """
    CREATE TABLE products (
        id INTEGER PRIMARY KEY,
        name VARCHAR(255) NOT NULL,
        price DECIMAL(10, 2) NOT NULL,
        category_id INTEGER NOT NULL REFERENCES categories (id),
        created_at DATETIME,
        updated_at DATETIME
    )
    """,
    """
    CREATE TABLE orders (
        id INTEGER PRIMARY KEY,
        user_id INTEGER NOT NULL REFERENCES users (id),
        reviewer_id INTEGER REFERENCES users (id),
        is_paid BOOLEAN NOT NULL DEFAULT 0,
        meta JSON,
        placed_on DATE,
        note TEXT,
        created_at DATETIME,
        updated_at DATETIME,
        deleted_at DATETIME
    )
    """,
]

PRODUCT_MODEL_SOURCE: str = '''"""Product model."""

from sqlalchemy import Column, Integer

from app.models.base import Model


class Product(Model):
    """Rows of the ``products`` table."""

    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
'''

ORDER_MODEL_SOURCE: str = PRODUCT_MODEL_SOURCE.replace("Product", "Order").replace(
    "products", "orders"
)


# ---------------------------------------------------------------------------
# Logging isolation
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_crudgen_logger() -> Iterator[None]:
    """Undo the CLI's handler setup so caplog sees every test's records."""
    yield
    crudgen_logger = logging.getLogger("crudgen")
    crudgen_logger.handlers.clear()
    crudgen_logger.propagate = True
    crudgen_logger.setLevel(logging.NOTSET)


# ---------------------------------------------------------------------------
# Database fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def database_url(tmp_path: pathlib.Path) -> str:
    return f"sqlite:///{tmp_path / 'shop.db'}"


@pytest.fixture()
def engine(database_url: str) -> Iterator[Engine]:
    """SQLite engine with the categories/users/products/orders schema."""
    eng = create_engine(database_url)
    with eng.begin() as conn:
        for statement in SHOP_DDL:
            conn.execute(text(statement))
    yield eng
    eng.dispose()


# ---------------------------------------------------------------------------
# Project fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def project_dir(tmp_path: pathlib.Path) -> pathlib.Path:
    """A project tree holding the generated Product and Order model sources."""
    root = tmp_path / "project"
    models = root / "app" / "models"
    models.mkdir(parents=True)
    (models / "product.py").write_text(PRODUCT_MODEL_SOURCE, encoding="utf-8")
    (models / "order.py").write_text(ORDER_MODEL_SOURCE, encoding="utf-8")
    return root


@pytest.fixture()
def config(project_dir: pathlib.Path) -> GeneratorConfig:
    return GeneratorConfig(base_path=str(project_dir))


@pytest.fixture()
def importable_project(
    project_dir: pathlib.Path, monkeypatch: pytest.MonkeyPatch
) -> Iterator[pathlib.Path]:
    """*project_dir* on sys.path, with its ``app`` modules unloaded afterwards."""
    monkeypatch.syspath_prepend(str(project_dir))
    yield project_dir
    for name in [m for m in sys.modules if m == "app" or m.startswith("app.")]:
        del sys.modules[name]


# ---------------------------------------------------------------------------
# Descriptor fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def product_columns() -> List[ColumnDescriptor]:
    return [
        ColumnDescriptor(name="id", type="integer", notnull=True),
        ColumnDescriptor(name="name", type="varchar", notnull=True),
        ColumnDescriptor(name="price", type="decimal", notnull=True),
        ColumnDescriptor(name="category_id", type="integer", notnull=True),
        ColumnDescriptor(name="created_at", type="datetime"),
        ColumnDescriptor(name="updated_at", type="datetime"),
    ]


@pytest.fixture()
def product_foreign_keys() -> List[ForeignKeyDescriptor]:
    return [ForeignKeyDescriptor(local_column="category_id", referenced_table="categories")]
