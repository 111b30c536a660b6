# File: crudgen/rules.py
"""
crudgen - Validation Rule Synthesis
=====================================
Derives per-column request-validation rules from column metadata.

Each column yields an ordered token list::

    [presence token, type token, (length cap)]

- presence (store):  ``required`` when NOT NULL with no default, else ``nullable``
- presence (update): always ``sometimes`` (field may be omitted on PATCH)
- type: exactly one of integer / boolean / numeric / date / array / string,
  chosen by the first matching type family
- ``max:255`` is appended only to string columns whose name looks like a
  name, title, slug, email or username

Structural columns (primary key, timestamps, soft-delete marker, remember
token) never receive rules.
"""

from __future__ import annotations

import logging
import re
from typing import FrozenSet, Iterable, List, Optional

from crudgen.models import STRUCTURAL_COLUMNS, ColumnDescriptor, RuleSet, TypeFamily

logger: logging.Logger = logging.getLogger("crudgen.rules")

# ---------------------------------------------------------------------------
# Rule tokens
# ---------------------------------------------------------------------------

REQUIRED: str = "required"
NULLABLE: str = "nullable"
SOMETIMES: str = "sometimes"
STRING: str = "string"

_TYPE_TOKENS = {
    TypeFamily.INTEGER: "integer",
    TypeFamily.BOOLEAN: "boolean",
    TypeFamily.NUMERIC: "numeric",
    TypeFamily.DATE: "date",
    TypeFamily.JSON: "array",
}

_LENGTH_CAPPED_RE: re.Pattern[str] = re.compile(r"(name|title|slug|email|username)", re.IGNORECASE)


class RuleSynthesizer:
    """Builds store and update rule sets for a table's columns."""

    def __init__(
        self,
        excluded: Optional[Iterable[str]] = None,
        max_length: int = 255,
    ) -> None:
        self._excluded: FrozenSet[str] = (
            frozenset(excluded) if excluded is not None else STRUCTURAL_COLUMNS
        )
        self._max_length: int = max_length

    # -- Public API ---------------------------------------------------------

    def build_store_rules(self, columns: Iterable[ColumnDescriptor]) -> RuleSet:
        rules: RuleSet = {}
        for col in self._eligible(columns):
            presence: str = REQUIRED if col.notnull and not col.has_default else NULLABLE
            rules[col.name] = [presence] + self.type_tokens(col)
        logger.debug("Store rules built for %d column(s).", len(rules))
        return rules

    def build_update_rules(self, columns: Iterable[ColumnDescriptor]) -> RuleSet:
        rules: RuleSet = {}
        for col in self._eligible(columns):
            rules[col.name] = [SOMETIMES] + self.type_tokens(col)
        logger.debug("Update rules built for %d column(s).", len(rules))
        return rules

    def type_tokens(self, col: ColumnDescriptor) -> List[str]:
        """The single type token for *col*, plus a length cap for names."""
        family: Optional[TypeFamily] = col.type_family
        if family is not None:
            return [_TYPE_TOKENS[family]]
        tokens: List[str] = [STRING]
        if _LENGTH_CAPPED_RE.search(col.name):
            tokens.append(f"max:{self._max_length}")
        return tokens

    # -- Internal -----------------------------------------------------------

    def _eligible(self, columns: Iterable[ColumnDescriptor]) -> List[ColumnDescriptor]:
        return [c for c in columns if c.name not in self._excluded]


__all__: List[str] = [
    "RuleSynthesizer",
    "REQUIRED",
    "NULLABLE",
    "SOMETIMES",
    "STRING",
]
