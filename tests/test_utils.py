"""
tests/test_utils.py
Unit tests for crudgen.utils (naming, literal formatting, file helpers).
"""

from __future__ import annotations

import pathlib

import pytest

from crudgen.utils import (
    Timer,
    class_basename,
    count_lines,
    format_list_literal,
    format_literal,
    indent_continuation,
    model_to_route_segment,
    model_to_table_name,
    safe_identifier,
    table_to_model_name,
    to_camel_case,
    to_pascal_case,
    to_snake_case,
    wrap_in_quotes,
    write_file,
)


class TestNaming:
    @pytest.mark.parametrize(
        "name, expected",
        [
            ("OrderItem", "order_item"),
            ("getHTTPResponse", "get_http_response"),
            ("already_snake", "already_snake"),
            ("", ""),
        ],
    )
    def test_snake(self, name: str, expected: str) -> None:
        assert to_snake_case(name) == expected

    def test_pascal_and_camel(self) -> None:
        assert to_pascal_case("order_item") == "OrderItem"
        assert to_camel_case("created_by") == "createdBy"
        assert to_camel_case("Product") == "product"

    @pytest.mark.parametrize(
        "model, table",
        [
            ("Product", "products"),
            ("OrderItem", "order_items"),
            ("Category", "categories"),
            ("Person", "people"),
            ("Status", "statuses"),
            ("Box", "boxes"),
            ("Purchase", "purchases"),
            ("Archive", "archives"),
            ("Knife", "knives"),
            ("Roof", "roofs"),
        ],
    )
    def test_model_to_table_name(self, model: str, table: str) -> None:
        assert model_to_table_name(model) == table

    @pytest.mark.parametrize(
        "table, model",
        [
            ("categories", "Category"),
            ("order_items", "OrderItem"),
            ("users", "User"),
            ("addresses", "Address"),
            ("people", "Person"),
            ("purchases", "Purchase"),
            ("courses", "Course"),
            ("archives", "Archive"),
            ("knives", "Knife"),
            ("churches", "Church"),
            ("photos", "Photo"),
        ],
    )
    def test_table_to_model_name(self, table: str, model: str) -> None:
        assert table_to_model_name(table) == model

    @pytest.mark.parametrize(
        "name, expected",
        [("class", "class_"), ("from", "from_"), ("2fa", "_2fa"), ("user", "user"), ("", "_unnamed")],
    )
    def test_safe_identifier(self, name: str, expected: str) -> None:
        assert safe_identifier(name) == expected

    def test_route_segment(self) -> None:
        assert model_to_route_segment("Product") == "products"
        assert model_to_route_segment("OrderItem") == "order-items"

    @pytest.mark.parametrize(
        "path", ["Product", "App\\Models\\Product", "App/Models/Product", "app.models.Product"]
    )
    def test_class_basename(self, path: str) -> None:
        assert class_basename(path) == "Product"


class TestLiterals:
    def test_quotes_are_escaped(self) -> None:
        assert wrap_in_quotes('say "hi"') == '"say \\"hi\\""'

    def test_list_literal(self) -> None:
        assert format_list_literal(["id", "name"]) == '["id", "name"]'
        assert format_list_literal([]) == "[]"

    def test_dict_of_lists(self) -> None:
        assert format_literal({"a": ["x"], "b": []}) == '{\n    "a": ["x"],\n    "b": [],\n}'

    def test_list_of_dicts(self) -> None:
        assert format_literal([{"k": "v"}]) == '[\n    {\n        "k": "v",\n    },\n]'

    def test_scalars(self) -> None:
        assert format_literal(None) == "None"
        assert format_literal(True) == "True"
        assert format_literal(3) == "3"

    def test_unsupported_value(self) -> None:
        with pytest.raises(TypeError):
            format_literal(object())

    def test_indent_continuation_skips_blank_lines(self) -> None:
        assert indent_continuation("a\nb\n\nc", "  ") == "a\n  b\n\n  c"


class TestFiles:
    def test_write_file_returns_byte_count(self, tmp_path: pathlib.Path) -> None:
        target = tmp_path / "nested" / "x.txt"
        assert write_file(target, "é\n") == 3
        assert target.read_text(encoding="utf-8") == "é\n"

    @pytest.mark.parametrize("content, expected", [("", 0), ("a", 1), ("a\nb\n", 2)])
    def test_count_lines(self, content: str, expected: int) -> None:
        assert count_lines(content) == expected

    def test_timer(self) -> None:
        with Timer("step") as timer:
            pass
        assert timer.elapsed >= 0.0
        assert "step" in repr(timer)
