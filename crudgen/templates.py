# File: crudgen/templates.py
"""
crudgen - Stub Template Engine
================================
Placeholder substitution for stub documents.

Token syntax::

    {{ key }}          generic token, replaced by ``context[key]``
    {{ key|format }}   structured token, resolved by a mutator *before*
                       the generic pass (``json`` or ``literal``)

Rendering rules:
    - A generic token whose key is missing renders as an empty string, so
      stub authors can leave optional sections blank.
    - A structured token is never touched by the generic pass.  If one is
      still present afterwards it stays verbatim in the output, which makes
      a forgotten mutator easy to spot in the generated file.

The engine is pure string manipulation; stubs are loaded through
``StubStore`` and a missing stub is reported as ``None``, never raised.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional

from crudgen.utils import format_literal, indent_continuation, read_file

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.templates")

# ---------------------------------------------------------------------------
# Token patterns
# ---------------------------------------------------------------------------

_TOKEN_RE: re.Pattern[str] = re.compile(r"\{\{\s*([\w|]+)\s*\}\}")

BUNDLED_STUB_DIR: Path = Path(__file__).resolve().parent / "stubs"

Mutator = Callable[[str], str]


def _structured_token_re(key: str, fmt: str) -> re.Pattern[str]:
    return re.compile(r"\{\{\s*" + re.escape(key) + r"\|" + re.escape(fmt) + r"\s*\}\}")


# ---------------------------------------------------------------------------
# Generic pass
# ---------------------------------------------------------------------------


def render(template: str, context: Mapping[str, Any]) -> str:
    """
    Substitute every generic ``{{key}}`` token in *template*.

    Args:
        template: Stub text.
        context: Placeholder name → value.  Values are converted with
            ``str()``; ``None`` and missing keys render as ``""``.

    Returns:
        The rendered text.  Pipe-qualified tokens are left untouched.
    """

    def _substitute(match: re.Match[str]) -> str:
        key: str = match.group(1)
        if "|" in key:
            return match.group(0)
        value: Any = context.get(key)
        if value is None:
            if key not in context:
                logger.debug("Placeholder '%s' has no value; rendering empty.", key)
            return ""
        return str(value)

    rendered: str = _TOKEN_RE.sub(_substitute, template)

    leftovers: List[str] = unresolved_tokens(rendered)
    if leftovers:
        logger.warning(
            "Structured token(s) left unresolved: %s", ", ".join(sorted(set(leftovers)))
        )
    return rendered


def unresolved_tokens(text: str) -> List[str]:
    """Return the pipe-qualified tokens still present in *text*."""
    return [m.group(1) for m in _TOKEN_RE.finditer(text) if "|" in m.group(1)]


# ---------------------------------------------------------------------------
# Structured-token mutators
# ---------------------------------------------------------------------------


def _embed(template: str, key: str, fmt: str, formatter: Callable[[Any], str], value: Any) -> str:
    pattern: re.Pattern[str] = _structured_token_re(key, fmt)

    def _replace(match: re.Match[str]) -> str:
        line_start: int = template.rfind("\n", 0, match.start()) + 1
        prefix: str = template[line_start:match.start()]
        indent: str = prefix[: len(prefix) - len(prefix.lstrip())]
        return indent_continuation(formatter(value), indent)

    return pattern.sub(_replace, template)


def embed_json(template: str, key: str, value: Any) -> str:
    """Replace ``{{key|json}}`` with *value* encoded as compact JSON."""
    return _embed(
        template,
        key,
        "json",
        lambda v: json.dumps(v, separators=(",", ":"), ensure_ascii=False),
        value,
    )


def embed_literal(template: str, key: str, value: Any) -> str:
    """Replace ``{{key|literal}}`` with *value* as a formatted Python literal."""
    return _embed(template, key, "literal", format_literal, value)


def literal_mutator(key: str, value: Any) -> Mutator:
    """Bind :func:`embed_literal` to one key/value for use as a stub mutator."""
    return lambda template: embed_literal(template, key, value)


def json_mutator(key: str, value: Any) -> Mutator:
    """Bind :func:`embed_json` to one key/value for use as a stub mutator."""
    return lambda template: embed_json(template, key, value)


# ---------------------------------------------------------------------------
# Stub store
# ---------------------------------------------------------------------------


class StubStore:
    """
    A directory of named stub documents.

    ``load()`` returns ``None`` for a stub that does not exist, so each
    artifact can be skipped independently.
    """

    def __init__(self, directory: Optional[Path] = None) -> None:
        self._directory: Path = Path(directory) if directory is not None else BUNDLED_STUB_DIR
        self._cache: Dict[str, Optional[str]] = {}

    @property
    def directory(self) -> Path:
        return self._directory

    def path_for(self, name: str) -> Path:
        return self._directory / name

    def exists(self, name: str) -> bool:
        return self.path_for(name).is_file()

    def load(self, name: str) -> Optional[str]:
        if name not in self._cache:
            path: Path = self.path_for(name)
            if path.is_file():
                self._cache[name] = read_file(path)
            else:
                logger.info("Stub '%s' not found in %s — skipping.", name, self._directory)
                self._cache[name] = None
        return self._cache[name]

    def __repr__(self) -> str:
        return f"<StubStore {self._directory}>"


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "BUNDLED_STUB_DIR",
    "Mutator",
    "StubStore",
    "embed_json",
    "embed_literal",
    "json_mutator",
    "literal_mutator",
    "render",
    "unresolved_tokens",
]

logger.debug("crudgen.templates loaded.")
