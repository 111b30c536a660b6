# File: crudgen/relations.py
"""
crudgen - Relation Inference
==============================
Turns foreign-key descriptors into named belongs-to relations.

Relations always point from the child table (the one being scaffolded) to
a parent table, so there is no recursion and no cycle detection.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Set

from crudgen.models import ForeignKeyDescriptor, RelationKind, RelationSpec
from crudgen.utils import safe_identifier, table_to_model_name, to_camel_case

logger: logging.Logger = logging.getLogger("crudgen.relations")


def accessor_name_for(local_column: str) -> str:
    """
    Derive the accessor method name from the owning column.

        >>> accessor_name_for("user_id")
        'user'
        >>> accessor_name_for("created_by_id")
        'createdBy'
        >>> accessor_name_for("parent")
        'parent'
        >>> accessor_name_for("class_id")
        'class_'
    """
    base: str = local_column[:-3] if local_column.endswith("_id") else local_column
    return safe_identifier(to_camel_case(base or local_column))


class RelationInferencer:
    """Builds one ``RelationSpec`` per foreign-key column."""

    def infer(self, foreign_keys: Iterable[ForeignKeyDescriptor]) -> List[RelationSpec]:
        relations: List[RelationSpec] = []
        taken: Set[str] = set()

        for fk in foreign_keys:
            accessor: str = self._unique(accessor_name_for(fk.local_column), fk, taken)
            taken.add(accessor)
            relations.append(
                RelationSpec(
                    kind=RelationKind.BELONGS_TO,
                    accessor_name=accessor,
                    target_model=table_to_model_name(fk.referenced_table),
                    foreign_table=fk.referenced_table,
                    local_key=fk.local_column,
                )
            )

        logger.debug(
            "Inferred %d relation(s): %s",
            len(relations),
            ", ".join(r.accessor_name for r in relations) or "none",
        )
        return relations

    @staticmethod
    def _unique(candidate: str, fk: ForeignKeyDescriptor, taken: Set[str]) -> str:
        if candidate not in taken:
            return candidate
        # author_id and author both pointing somewhere: fall back to the full
        # column name, then to a numeric suffix.
        fallback: str = safe_identifier(to_camel_case(fk.local_column))
        if fallback not in taken:
            logger.warning(
                "Accessor '%s' already used; naming relation for '%s' '%s'.",
                candidate,
                fk.local_column,
                fallback,
            )
            return fallback
        counter: int = 2
        while f"{candidate}{counter}" in taken:
            counter += 1
        return f"{candidate}{counter}"


__all__: List[str] = ["RelationInferencer", "accessor_name_for"]
