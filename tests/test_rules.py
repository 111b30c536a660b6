"""
tests/test_rules.py
Unit tests for crudgen.rules (validation rule synthesis).
"""

from __future__ import annotations

from typing import List

import pytest

from crudgen.models import STRUCTURAL_COLUMNS, ColumnDescriptor
from crudgen.rules import RuleSynthesizer

_TYPE_TOKENS = {"integer", "boolean", "numeric", "date", "array", "string"}


def _col(name: str, type_: str, notnull: bool = False, default: object = None) -> ColumnDescriptor:
    return ColumnDescriptor(name=name, type=type_, notnull=notnull, default=default)


class TestStoreRules:
    def test_required_string_with_length_cap(self) -> None:
        rules = RuleSynthesizer().build_store_rules([_col("title", "varchar", notnull=True)])
        assert rules == {"title": ["required", "string", "max:255"]}

    def test_required_numeric(self) -> None:
        rules = RuleSynthesizer().build_store_rules([_col("price", "decimal", notnull=True)])
        assert rules == {"price": ["required", "numeric"]}

    def test_nullable_text(self) -> None:
        rules = RuleSynthesizer().build_store_rules([_col("note", "text")])
        assert rules == {"note": ["nullable", "string"]}

    def test_not_null_with_default_is_nullable(self) -> None:
        rules = RuleSynthesizer().build_store_rules(
            [_col("is_active", "boolean", notnull=True, default="1")]
        )
        assert rules == {"is_active": ["nullable", "boolean"]}

    @pytest.mark.parametrize(
        "type_, token",
        [
            ("int", "integer"),
            ("bigint", "integer"),
            ("tinyint", "integer"),
            ("boolean", "boolean"),
            ("decimal", "numeric"),
            ("double", "numeric"),
            ("real", "numeric"),
            ("date", "date"),
            ("datetime", "date"),
            ("timestamp", "date"),
            ("json", "array"),
            ("jsonb", "array"),
            ("varchar", "string"),
            ("uuid", "string"),
        ],
    )
    def test_type_token(self, type_: str, token: str) -> None:
        rules = RuleSynthesizer().build_store_rules([_col("field", type_, notnull=True)])
        assert rules["field"] == ["required", token]

    @pytest.mark.parametrize("name", ["name", "title", "slug", "email", "username", "last_name"])
    def test_length_cap_names(self, name: str) -> None:
        rules = RuleSynthesizer().build_store_rules([_col(name, "varchar")])
        assert rules[name][-1] == "max:255"

    def test_length_cap_only_for_strings(self) -> None:
        rules = RuleSynthesizer().build_store_rules([_col("name_count", "integer")])
        assert rules == {"name_count": ["nullable", "integer"]}

    def test_custom_max_length(self) -> None:
        rules = RuleSynthesizer(max_length=120).build_store_rules([_col("slug", "varchar")])
        assert rules["slug"] == ["nullable", "string", "max:120"]


class TestUpdateRules:
    def test_always_sometimes(self) -> None:
        rules = RuleSynthesizer().build_update_rules(
            [_col("title", "varchar", notnull=True), _col("note", "text")]
        )
        assert rules == {
            "title": ["sometimes", "string", "max:255"],
            "note": ["sometimes", "string"],
        }


class TestRuleSetShape:
    def test_structural_columns_excluded(self, product_columns: List[ColumnDescriptor]) -> None:
        synthesizer = RuleSynthesizer()
        for rules in (
            synthesizer.build_store_rules(product_columns),
            synthesizer.build_update_rules(product_columns),
        ):
            assert list(rules) == ["name", "price", "category_id"]
            assert not set(rules) & STRUCTURAL_COLUMNS

    def test_one_type_token_per_column(self, product_columns: List[ColumnDescriptor]) -> None:
        columns = product_columns + [
            _col("meta", "json"),
            _col("email", "varchar"),
            _col("deleted_at", "datetime"),
            _col("remember_token", "varchar"),
        ]
        eligible = [c for c in columns if c.name not in STRUCTURAL_COLUMNS]
        synthesizer = RuleSynthesizer()
        for rules in (
            synthesizer.build_store_rules(columns),
            synthesizer.build_update_rules(columns),
        ):
            assert len(rules) == len(eligible)
            for tokens in rules.values():
                assert len([t for t in tokens if t in _TYPE_TOKENS]) == 1

    def test_custom_exclusions(self) -> None:
        rules = RuleSynthesizer(excluded=["secret"]).build_store_rules(
            [_col("id", "integer"), _col("secret", "varchar")]
        )
        assert list(rules) == ["id"]
