# File: crudgen/utils.py
"""
crudgen - Utility Functions & Helpers
=======================================
String transformation, literal formatting and file I/O helpers used
throughout the scaffolding pipeline.

Performance strategy:
- Naming conversions are decorated with ``@lru_cache(maxsize=None)`` since
  the same model / column names are converted many times per run.
- File writes go through a temporary file and ``os.replace`` so a crash
  never leaves a half-written artifact behind.
"""

from __future__ import annotations

import functools
import logging
import os
import re
import tempfile
import time
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Optional, Sequence, Tuple

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.utils")

# ---------------------------------------------------------------------------
# Pre-compiled regex patterns (compiled once at module load)
# ---------------------------------------------------------------------------

_CAMEL_TO_SNAKE_RE1: re.Pattern[str] = re.compile(r"([A-Z]+)([A-Z][a-z])")
_CAMEL_TO_SNAKE_RE2: re.Pattern[str] = re.compile(r"([a-z0-9])([A-Z])")
_NON_ALPHANUM_RE: re.Pattern[str] = re.compile(r"[^a-zA-Z0-9]")
_MULTI_UNDERSCORE_RE: re.Pattern[str] = re.compile(r"_{2,}")
_LEADING_TRAILING_UNDERSCORE_RE: re.Pattern[str] = re.compile(r"^_+|_+$")
_SPLIT_WORDS_RE: re.Pattern[str] = re.compile(
    r"[A-Z]?[a-z]+|[A-Z]+(?=[A-Z][a-z]|\d|\b)|[A-Z]|\d+"
)

_IRREGULAR_PLURALS: Dict[str, str] = {
    "person": "people",
    "child": "children",
    "man": "men",
    "woman": "women",
    "mouse": "mice",
    "goose": "geese",
    "tooth": "teeth",
    "foot": "feet",
    "datum": "data",
    "index": "indices",
    "matrix": "matrices",
    "vertex": "vertices",
    "axis": "axes",
    "crisis": "crises",
    "analysis": "analyses",
    "status": "statuses",
    "address": "addresses",
    "bus": "buses",
    "knife": "knives",
    "wife": "wives",
    "life": "lives",
    "leaf": "leaves",
    "half": "halves",
    "shelf": "shelves",
    "wolf": "wolves",
    "calf": "calves",
    "thief": "thieves",
    "shoe": "shoes",
    "toe": "toes",
    "movie": "movies",
    "cookie": "cookies",
}

_IRREGULAR_SINGULARS: Dict[str, str] = {v: k for k, v in _IRREGULAR_PLURALS.items()}

_SIBILANT_ENDINGS: Tuple[str, ...] = ("ss", "sh", "ch", "x", "z")

# Python keywords that cannot be used as identifiers
_PYTHON_KEYWORDS: FrozenSet[str] = frozenset({
    "False", "None", "True", "and", "as", "assert", "async", "await",
    "break", "class", "continue", "def", "del", "elif", "else",
    "except", "finally", "for", "from", "global", "if", "import",
    "in", "is", "lambda", "nonlocal", "not", "or", "pass", "raise",
    "return", "try", "while", "with", "yield",
})


# ---------------------------------------------------------------------------
# Cached string transformation functions
# ---------------------------------------------------------------------------


@functools.lru_cache(maxsize=None)
def to_snake_case(name: str) -> str:
    """
    Convert any string to snake_case.

    Examples:
        >>> to_snake_case("OrderItem")
        'order_item'
        >>> to_snake_case("getHTTPResponse")
        'get_http_response'
        >>> to_snake_case("already_snake")
        'already_snake'
    """
    if not name:
        return ""
    s: str = _CAMEL_TO_SNAKE_RE1.sub(r"\1_\2", name)
    s = _CAMEL_TO_SNAKE_RE2.sub(r"\1_\2", s)
    s = _NON_ALPHANUM_RE.sub("_", s)
    s = _MULTI_UNDERSCORE_RE.sub("_", s)
    s = _LEADING_TRAILING_UNDERSCORE_RE.sub("", s)
    return s.lower()


@functools.lru_cache(maxsize=None)
def to_pascal_case(name: str) -> str:
    """
    Convert any string to PascalCase ("studly" case).

    Examples:
        >>> to_pascal_case("order_item")
        'OrderItem'
        >>> to_pascal_case("OrderItem")
        'OrderItem'
    """
    if not name:
        return ""
    words: Tuple[str, ...] = _extract_words(name)
    return "".join(word.capitalize() for word in words)


@functools.lru_cache(maxsize=None)
def to_camel_case(name: str) -> str:
    """
    Convert any string to camelCase.

    Examples:
        >>> to_camel_case("created_by")
        'createdBy'
        >>> to_camel_case("Product")
        'product'
    """
    if not name:
        return ""
    words: Tuple[str, ...] = _extract_words(name)
    if not words:
        return ""
    first: str = words[0].lower()
    rest: str = "".join(w.capitalize() for w in words[1:])
    return first + rest


@functools.lru_cache(maxsize=None)
def to_kebab_case(name: str) -> str:
    """Convert any string to kebab-case (used in URL paths)."""
    if not name:
        return ""
    words: Tuple[str, ...] = _extract_words(name)
    return "-".join(w.lower() for w in words)


def _match_case(source: str, replacement: str) -> str:
    if source[0].isupper():
        return replacement[0].upper() + replacement[1:]
    return replacement


@functools.lru_cache(maxsize=None)
def to_plural(name: str) -> str:
    """
    Naive English pluralisation of the *last* word of an identifier.

        >>> to_plural("OrderItem")
        'OrderItems'
        >>> to_plural("category")
        'categories'
    """
    if not name:
        return ""

    words: Tuple[str, ...] = _extract_words(name)
    last: str = words[-1] if words else name.lower()
    head: str = name[: len(name) - len(last)]
    tail: str = name[len(name) - len(last):]
    lower: str = last.lower()

    if lower in _IRREGULAR_PLURALS:
        return head + _match_case(tail, _IRREGULAR_PLURALS[lower])

    # Already plural-looking (very naive)
    if lower.endswith("s") and not lower.endswith("ss"):
        return name

    if lower.endswith(_SIBILANT_ENDINGS):
        return name + "es"
    if lower.endswith("y") and len(lower) > 1 and lower[-2] not in "aeiou":
        return name[:-1] + "ies"
    if lower.endswith("o") and len(lower) > 1 and lower[-2] not in "aeiou":
        return name + "es"

    return name + "s"


@functools.lru_cache(maxsize=None)
def to_singular(name: str) -> str:
    """
    Naive English singularisation (reverse of :func:`to_plural`).

    ``-es`` is only dropped after the stems :func:`to_plural` extends with
    it (sibilants and consonant + ``o``); every other plural loses its
    final ``s``.

        >>> to_singular("categories")
        'category'
        >>> to_singular("order_items")
        'order_item'
        >>> to_singular("purchases")
        'purchase'
        >>> to_singular("boxes")
        'box'
    """
    if not name:
        return ""

    words: Tuple[str, ...] = _extract_words(name)
    last: str = words[-1] if words else name.lower()
    head: str = name[: len(name) - len(last)]
    tail: str = name[len(name) - len(last):]
    lower: str = last.lower()

    if lower in _IRREGULAR_SINGULARS:
        return head + _match_case(tail, _IRREGULAR_SINGULARS[lower])

    if lower.endswith("ies") and len(lower) > 3:
        return name[:-3] + "y"
    if lower.endswith("es"):
        stem: str = lower[:-2]
        if stem.endswith(_SIBILANT_ENDINGS):
            return name[:-2]
        if len(stem) > 1 and stem.endswith("o") and stem[-2] not in "aeiou":
            return name[:-2]
    if lower.endswith("s") and not lower.endswith("ss"):
        return name[:-1]

    return name


@functools.lru_cache(maxsize=None)
def _extract_words(name: str) -> Tuple[str, ...]:
    """
    Extract individual words from any casing style.

    Returns a tuple (hashable for LRU cache) of lowercase word strings.
    """
    cleaned: str = _NON_ALPHANUM_RE.sub(" ", name)
    words: List[str] = _SPLIT_WORDS_RE.findall(cleaned)
    return tuple(w.lower() for w in words if w)


@functools.lru_cache(maxsize=None)
def safe_identifier(name: str) -> str:
    """
    Ensure a derived name is a safe Python identifier, keeping its casing.

    - Prefixes with underscore if it starts with a digit
    - Appends underscore if it's a Python keyword (``class`` → ``class_``)
    """
    if not name:
        return "_unnamed"
    if name[0].isdigit():
        name = f"_{name}"
    if name in _PYTHON_KEYWORDS:
        name = f"{name}_"
    return name


@functools.lru_cache(maxsize=None)
def class_basename(name: str) -> str:
    """Return the last segment of a dotted or slashed class path."""
    return re.split(r"[\\/.]", name.strip())[-1]


@functools.lru_cache(maxsize=None)
def model_to_table_name(model_name: str) -> str:
    """``OrderItem`` → ``order_items``."""
    return to_snake_case(to_plural(to_pascal_case(model_name)))


@functools.lru_cache(maxsize=None)
def model_to_route_segment(model_name: str) -> str:
    """``OrderItem`` → ``order-items``."""
    return to_kebab_case(to_plural(model_name))


@functools.lru_cache(maxsize=None)
def table_to_model_name(table_name: str) -> str:
    """``order_items`` → ``OrderItem``."""
    return to_pascal_case(to_singular(table_name))


# ---------------------------------------------------------------------------
# Literal formatting helpers
# ---------------------------------------------------------------------------


def wrap_in_quotes(value: str) -> str:
    """Wrap a string value in double quotes, escaping internals."""
    escaped: str = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def format_list_literal(items: Sequence[str], quote: bool = True) -> str:
    """
    Format a Python list literal from a sequence of strings.

    If *quote* is True, each item is wrapped in quotes.
    """
    if quote:
        inner: str = ", ".join(wrap_in_quotes(item) for item in items)
    else:
        inner = ", ".join(items)
    return f"[{inner}]"


def _is_scalar(value: Any) -> bool:
    return value is None or isinstance(value, (str, int, float, bool))


def _format_scalar(value: Any) -> str:
    if isinstance(value, str):
        return wrap_in_quotes(value)
    return repr(value)


def format_literal(value: Any, level: int = 0, size: int = 4) -> str:
    """
    Format nested dicts / lists of scalars as a Python literal.

    Lists of scalars stay on one line; dicts and lists of containers are
    broken one entry per line with trailing commas::

        {
            "name": ["required", "string", "max:255"],
        }
    """
    if _is_scalar(value):
        return _format_scalar(value)

    pad: str = " " * (level * size)
    inner_pad: str = " " * ((level + 1) * size)

    if isinstance(value, dict):
        if not value:
            return "{}"
        lines: List[str] = ["{"]
        for key, item in value.items():
            lines.append(
                f"{inner_pad}{_format_scalar(key)}: "
                f"{format_literal(item, level + 1, size)},"
            )
        lines.append(f"{pad}}}")
        return "\n".join(lines)

    if isinstance(value, (list, tuple)):
        if not value:
            return "[]"
        if all(_is_scalar(item) for item in value):
            return "[" + ", ".join(_format_scalar(item) for item in value) + "]"
        lines = ["["]
        for item in value:
            lines.append(f"{inner_pad}{format_literal(item, level + 1, size)},")
        lines.append(f"{pad}]")
        return "\n".join(lines)

    raise TypeError(f"Cannot format {type(value).__name__} as a literal.")


def indent_continuation(text: str, prefix: str) -> str:
    """Prefix every line of *text* except the first with *prefix*."""
    lines: List[str] = text.split("\n")
    return "\n".join(
        [lines[0]] + [prefix + line if line.strip() else line for line in lines[1:]]
    )


# ---------------------------------------------------------------------------
# File I/O helpers
# ---------------------------------------------------------------------------


def ensure_directory(path: Path) -> None:
    """Create directory (and parents) if it doesn't exist."""
    path.mkdir(parents=True, exist_ok=True)
    logger.debug("Ensured directory exists: %s", path)


def write_file(path: Path, content: str) -> int:
    """
    Write *content* to *path* atomically.

    Writes to a temporary file in the same directory, then renames it over
    the target, so readers never observe a partially written file.

    Returns the number of bytes written.
    """
    ensure_directory(path.parent)

    encoded: bytes = content.encode("utf-8")
    fd, tmp_path = tempfile.mkstemp(
        dir=str(path.parent),
        prefix=f".{path.name}.",
        suffix=".tmp",
    )
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(encoded)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_path, str(path))
    except BaseException:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise

    logger.debug("Wrote %d bytes to %s", len(encoded), path)
    return len(encoded)


def read_file(path: Path) -> str:
    """Read a file and return its content as a string."""
    return path.read_text(encoding="utf-8")


def count_lines(content: str) -> int:
    """Count the number of lines in a string."""
    if not content:
        return 0
    return content.count("\n") + (1 if not content.endswith("\n") else 0)


# ---------------------------------------------------------------------------
# Timer context manager
# ---------------------------------------------------------------------------


class Timer:
    """
    Simple context-manager timer for profiling pipeline steps.

    Usage:
        with Timer("introspect") as t:
            ...
        print(t.elapsed)
    """

    __slots__ = ("label", "start_time", "end_time", "elapsed")

    def __init__(self, label: str = "operation") -> None:
        self.label: str = label
        self.start_time: float = 0.0
        self.end_time: float = 0.0
        self.elapsed: float = 0.0

    def __enter__(self) -> "Timer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Optional[object],
    ) -> None:
        self.end_time = time.perf_counter()
        self.elapsed = self.end_time - self.start_time
        logger.debug("Timer [%s]: %.4f seconds", self.label, self.elapsed)

    def __repr__(self) -> str:
        return f"<Timer {self.label}: {self.elapsed:.4f}s>"


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "to_snake_case",
    "to_pascal_case",
    "to_camel_case",
    "to_kebab_case",
    "to_plural",
    "to_singular",
    "safe_identifier",
    "class_basename",
    "model_to_table_name",
    "model_to_route_segment",
    "table_to_model_name",
    "wrap_in_quotes",
    "format_list_literal",
    "format_literal",
    "indent_continuation",
    "ensure_directory",
    "write_file",
    "read_file",
    "count_lines",
    "Timer",
]

logger.debug("crudgen.utils loaded — %d public symbols.", len(__all__))
