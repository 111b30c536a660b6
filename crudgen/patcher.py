# File: crudgen/patcher.py
"""
crudgen - Model Source Patcher
================================
Idempotently enriches an existing model source file with derived metadata.

Mutations, applied in this order and each gated by a presence check::

    soft_deletes   ``SoftDeletes`` mixin, only when a ``deleted_at`` column exists
    has_factory    ``HasFactory`` mixin, always ensured
    fillable       ``__fillable__ = [...]`` mass-assignable column list
    casts          ``__casts__ = {...}`` column → cast name map
    relations      one ``def <accessor>(self)`` per inferred relation

Anchors are found by parsing the current text with :mod:`ast` before each
mutation: the target class, the run of leading ``__dunder__`` assignments in
its body, its last line, and the module's last top-level import.  Edits are
line insertions at those anchors; nothing already in the file is rewritten
except the class base list, which only ever gains a mixin.

When an anchor cannot be found (the file no longer parses, the class was
renamed, the class is written on a single line) that one mutation is skipped
with a warning.  The file is written back only if its text changed, so a
second run over the same inputs leaves it byte-identical.
"""

from __future__ import annotations

import ast
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

from crudgen.models import (
    SOFT_DELETE_COLUMN,
    STRUCTURAL_COLUMNS,
    ColumnDescriptor,
    GeneratorConfig,
    RelationSpec,
    TypeFamily,
)
from crudgen.utils import (
    format_literal,
    indent_continuation,
    read_file,
    to_snake_case,
    wrap_in_quotes,
    write_file,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.patcher")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

MIXIN_MODULE: str = "app.models.concerns"
SOFT_DELETES: str = "SoftDeletes"
HAS_FACTORY: str = "HasFactory"
FILLABLE_ATTR: str = "__fillable__"
CASTS_ATTR: str = "__casts__"

_CAST_NAMES: Dict[TypeFamily, str] = {
    TypeFamily.INTEGER: "integer",
    TypeFamily.BOOLEAN: "boolean",
    TypeFamily.NUMERIC: "float",
    TypeFamily.JSON: "array",
}

_DUNDER_RE: re.Pattern[str] = re.compile(r"^__\w+__$")


# ---------------------------------------------------------------------------
# Derivations
# ---------------------------------------------------------------------------


def build_fillable(
    columns: Iterable[ColumnDescriptor], sensitive: Iterable[str]
) -> List[str]:
    """All column names minus structural columns and sensitive fields."""
    excluded = STRUCTURAL_COLUMNS | frozenset(sensitive)
    return [c.name for c in columns if c.name not in excluded]


def cast_for(col: ColumnDescriptor) -> Optional[str]:
    """The cast name for one column, or ``None`` when it needs no cast."""
    if col.name == "email_verified_at":
        return "datetime"
    family: Optional[TypeFamily] = col.type_family
    if family is None:
        return None
    if family is TypeFamily.DATE:
        return "date" if col.type == "date" else "datetime"
    return _CAST_NAMES[family]


def build_casts(columns: Iterable[ColumnDescriptor]) -> Dict[str, str]:
    casts: Dict[str, str] = {}
    for col in columns:
        cast: Optional[str] = cast_for(col)
        if cast is not None:
            casts[col.name] = cast
    return casts


def relation_method(relation: RelationSpec, indent: str) -> List[str]:
    """Source lines for one belongs-to accessor, indented as a method."""
    return [
        "",
        f"{indent}def {relation.accessor_name}(self):",
        f"{indent}{indent}return self.belongs_to("
        f"{wrap_in_quotes(relation.target_model)}, {wrap_in_quotes(relation.local_key)})",
    ]


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------


@dataclass(frozen=False, slots=True)
class PatchResult:
    """What one ``SourcePatcher.patch()`` call did to the model file."""

    path: str = ""
    exists: bool = False
    applied: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.applied)


# ---------------------------------------------------------------------------
# Anchor helpers
# ---------------------------------------------------------------------------


class _AnchorError(Exception):
    """An anchor needed by one mutation could not be located."""


def _parse(text: str) -> ast.Module:
    try:
        return ast.parse(text)
    except SyntaxError as exc:
        raise _AnchorError(f"source does not parse (line {exc.lineno}: {exc.msg})") from exc


def _locate_class(tree: ast.Module, model_name: str) -> ast.ClassDef:
    for node in tree.body:
        if isinstance(node, ast.ClassDef) and node.name == model_name:
            if node.body and node.body[0].lineno == node.lineno:
                raise _AnchorError(f"class {model_name} is written on a single line")
            return node
    raise _AnchorError(f"class {model_name} not found")


def _is_docstring(node: ast.stmt) -> bool:
    return (
        isinstance(node, ast.Expr)
        and isinstance(node.value, ast.Constant)
        and isinstance(node.value.value, str)
    )


def _is_dunder_assignment(node: ast.stmt) -> bool:
    if isinstance(node, ast.Assign):
        targets = node.targets
    elif isinstance(node, ast.AnnAssign):
        targets = [node.target]
    else:
        return False
    return all(isinstance(t, ast.Name) and _DUNDER_RE.match(t.id) for t in targets)


def _first_line(node: ast.stmt) -> int:
    decorators: Sequence[ast.expr] = getattr(node, "decorator_list", None) or []
    return min([node.lineno] + [d.lineno for d in decorators])


def _body_indent(cls: ast.ClassDef) -> str:
    return " " * cls.body[0].col_offset


def _last_import_line(tree: ast.Module) -> int:
    """1-based line after which a new top-level import belongs (0 = file start)."""
    last: int = 0
    for node in tree.body:
        if isinstance(node, (ast.Import, ast.ImportFrom)):
            last = node.end_lineno or node.lineno
    if last == 0 and tree.body and _is_docstring(tree.body[0]):
        last = tree.body[0].end_lineno or tree.body[0].lineno
    return last


# ---------------------------------------------------------------------------
# Patcher
# ---------------------------------------------------------------------------


class SourcePatcher:
    """
    Applies the idempotent model-source mutations for one model.

    Usage::

        patcher = SourcePatcher(config)
        result = patcher.patch("Product", columns, relations)
    """

    def __init__(self, config: GeneratorConfig) -> None:
        self._config: GeneratorConfig = config

    def model_path(self, model_name: str) -> Path:
        return (
            Path(self._config.base_path)
            / self._config.models_dir
            / f"{to_snake_case(model_name)}.py"
        )

    # -- Public API ---------------------------------------------------------

    def patch(
        self,
        model_name: str,
        columns: Sequence[ColumnDescriptor],
        relations: Sequence[RelationSpec],
    ) -> PatchResult:
        path: Path = self.model_path(model_name)
        result = PatchResult(path=str(path))

        if not path.is_file():
            logger.info("Model source %s not found — nothing to patch.", path)
            return result
        result.exists = True

        original: str = read_file(path)
        text: str = original
        column_names = {c.name for c in columns}

        if SOFT_DELETE_COLUMN in column_names:
            text = self._apply(result, "soft_deletes", text, model_name,
                               lambda t: self._ensure_mixin(t, model_name, SOFT_DELETES))
        text = self._apply(result, "has_factory", text, model_name,
                           lambda t: self._ensure_mixin(t, model_name, HAS_FACTORY))

        fillable: List[str] = build_fillable(columns, self._config.sensitive)
        text = self._apply(result, "fillable", text, model_name,
                           lambda t: self._ensure_attribute(t, model_name, FILLABLE_ATTR, fillable))

        casts: Dict[str, str] = build_casts(columns)
        text = self._apply(result, "casts", text, model_name,
                           lambda t: self._ensure_attribute(t, model_name, CASTS_ATTR, casts))

        text = self._apply(result, "relations", text, model_name,
                           lambda t: self._ensure_relations(t, model_name, relations))

        if text != original:
            write_file(path, text)
            logger.info("Patched %s: %s", path, ", ".join(result.applied))
        else:
            logger.debug("Model source %s already up to date.", path)
        return result

    # -- Internal -----------------------------------------------------------

    @staticmethod
    def _apply(result: PatchResult, name: str, text: str, model_name: str, mutation) -> str:
        try:
            patched: str = mutation(text)
        except _AnchorError as exc:
            logger.warning("Skipping '%s' patch on %s: %s.", name, model_name, exc)
            result.skipped.append(name)
            return text
        if patched != text:
            result.applied.append(name)
        return patched

    @staticmethod
    def _ensure_mixin(text: str, model_name: str, mixin: str) -> str:
        if re.search(rf"\b{mixin}\b", text):
            return text

        tree: ast.Module = _parse(text)
        cls: ast.ClassDef = _locate_class(tree, model_name)
        lines: List[str] = text.split("\n")
        header_index: int = cls.lineno - 1
        header: str = lines[header_index]
        name: str = re.escape(model_name)

        if cls.bases or cls.keywords:
            new_header, count = re.subn(rf"^(\s*class\s+{name}\s*\()", rf"\g<1>{mixin}, ", header)
        else:
            new_header, count = re.subn(
                rf"^(\s*class\s+{name})\s*(?:\(\s*\))?\s*:", rf"\g<1>({mixin}):", header
            )
        if count != 1:
            raise _AnchorError(f"base list of class {model_name} is not on its header line")

        lines[header_index] = new_header
        lines.insert(_last_import_line(tree), f"from {MIXIN_MODULE} import {mixin}")
        return "\n".join(lines)

    @staticmethod
    def _ensure_attribute(text: str, model_name: str, attr: str, value: object) -> str:
        if attr in text:
            return text

        tree: ast.Module = _parse(text)
        cls: ast.ClassDef = _locate_class(tree, model_name)
        lines: List[str] = text.split("\n")
        indent: str = _body_indent(cls)
        block: List[str] = (
            indent + f"{attr} = " + indent_continuation(format_literal(value), indent)
        ).split("\n")

        body: List[ast.stmt] = list(cls.body)
        docstring: Optional[ast.stmt] = body.pop(0) if _is_docstring(body[0]) else None

        leading: List[ast.stmt] = []
        for node in body:
            if not _is_dunder_assignment(node):
                break
            leading.append(node)

        if leading:
            at: int = leading[-1].end_lineno or leading[-1].lineno
            lines[at:at] = block
        elif body:
            at = _first_line(body[0]) - 1
            lines[at:at] = block + [""]
        elif docstring is not None:
            at = docstring.end_lineno or docstring.lineno
            lines[at:at] = [""] + block
        else:
            raise _AnchorError(f"class {model_name} has an empty body")
        return "\n".join(lines)

    @staticmethod
    def _ensure_relations(
        text: str, model_name: str, relations: Sequence[RelationSpec]
    ) -> str:
        missing: List[RelationSpec] = [
            r for r in relations
            if not re.search(rf"def\s+{re.escape(r.accessor_name)}\s*\(", text)
        ]
        if not missing:
            return text

        tree: ast.Module = _parse(text)
        cls: ast.ClassDef = _locate_class(tree, model_name)
        lines: List[str] = text.split("\n")
        indent: str = _body_indent(cls)

        block: List[str] = []
        for relation in missing:
            block.extend(relation_method(relation, indent))
        at: int = cls.end_lineno or cls.lineno
        lines[at:at] = block
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "SourcePatcher",
    "PatchResult",
    "build_fillable",
    "build_casts",
    "cast_for",
    "relation_method",
    "MIXIN_MODULE",
    "SOFT_DELETES",
    "HAS_FACTORY",
    "FILLABLE_ATTR",
    "CASTS_ATTR",
]
