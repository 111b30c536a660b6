# File: crudgen/models.py
"""
crudgen - Core Data Models
============================
Pydantic V2 models describing everything that flows through one scaffolding
run: introspected columns and foreign keys, inferred relations, the render
context handed to stubs, the trigger event, and the generator configuration.

Lifecycle: every instance except ``GeneratorConfig`` is created at the start
of a run and discarded at its end.  Nothing here is persisted.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from crudgen.utils import format_list_literal

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.models")

# ---------------------------------------------------------------------------
# Constants shared by the rule synthesizer and the source patcher
# ---------------------------------------------------------------------------

# Primary key, timestamps, soft-delete marker and the session secret token.
STRUCTURAL_COLUMNS: FrozenSet[str] = frozenset(
    {"id", "created_at", "updated_at", "deleted_at", "remember_token"}
)

SOFT_DELETE_COLUMN: str = "deleted_at"

DEFAULT_SENSITIVE_FIELDS: List[str] = [
    "password",
    "remember_token",
    "two_factor_secret",
    "two_factor_recovery_codes",
    "api_token",
]

_INTEGER_TYPES: FrozenSet[str] = frozenset(
    {
        "int", "integer", "tinyint", "smallint", "mediumint", "bigint",
        "serial", "smallserial", "bigserial", "year",
    }
)
_BOOLEAN_TYPES: FrozenSet[str] = frozenset({"boolean", "bool", "bit"})
_NUMERIC_MARKERS: tuple = ("decimal", "float", "double", "real", "numeric", "money")
_DATE_PREFIXES: tuple = ("date", "timestamp")


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class TypeFamily(str, Enum):
    """Coarse column-type families, checked in declaration order."""

    INTEGER = "integer"
    BOOLEAN = "boolean"
    NUMERIC = "numeric"
    DATE = "date"
    JSON = "json"


class RelationKind(str, Enum):
    """Relation cardinalities the inferencer can produce."""

    BELONGS_TO = "belongs_to"


def classify_type(type_name: str) -> Optional[TypeFamily]:
    """
    Map a normalized type name to its family; first match wins.

    The order integer → boolean → numeric → date → json is significant:
    ``tinyint`` is integer even though MySQL uses it for flags, and
    ``datetime`` is date even though it also contains ``time``.
    """
    t: str = type_name.lower()
    if t in _INTEGER_TYPES:
        return TypeFamily.INTEGER
    if t in _BOOLEAN_TYPES:
        return TypeFamily.BOOLEAN
    if any(marker in t for marker in _NUMERIC_MARKERS):
        return TypeFamily.NUMERIC
    if t.startswith(_DATE_PREFIXES):
        return TypeFamily.DATE
    if "json" in t:
        return TypeFamily.JSON
    return None


# ---------------------------------------------------------------------------
# Mixin: shared model configuration
# ---------------------------------------------------------------------------

_SHARED_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    validate_assignment=True,
    use_enum_values=False,
    extra="forbid",
)

_FROZEN_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    extra="forbid",
    frozen=True,
)


# ---------------------------------------------------------------------------
# Introspection results
# ---------------------------------------------------------------------------


class ColumnDescriptor(BaseModel):
    """One column of the introspected table."""

    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1, description="Column name.")
    type: str = Field(..., description="Normalized lowercase type name.")
    notnull: bool = Field(default=False, description="NOT NULL constraint present?")
    default: Optional[Any] = Field(default=None, description="Default literal, if any.")

    @field_validator("type")
    @classmethod
    def _lowercase_type(cls, v: str) -> str:
        return v.strip().lower()

    @property
    def type_family(self) -> Optional[TypeFamily]:
        return classify_type(self.type)

    @property
    def has_default(self) -> bool:
        return self.default is not None

    def __repr__(self) -> str:
        null_flag: str = " NOT NULL" if self.notnull else " NULL"
        return f"<Column {self.name} {self.type}{null_flag}>"


class ForeignKeyDescriptor(BaseModel):
    """A (local column → referenced table) pair read from the catalog."""

    model_config = _SHARED_CONFIG

    local_column: str = Field(..., min_length=1)
    referenced_table: str = Field(..., min_length=1)

    def __repr__(self) -> str:
        return f"<FK {self.local_column} → {self.referenced_table}>"


class RelationSpec(BaseModel):
    """A to-one relation from the scaffolded model to a parent model."""

    model_config = _SHARED_CONFIG

    kind: RelationKind = Field(default=RelationKind.BELONGS_TO)
    accessor_name: str = Field(..., min_length=1, description="Method name on the model.")
    target_model: str = Field(..., min_length=1, description="Parent model class name.")
    foreign_table: str = Field(..., min_length=1, description="Parent table name.")
    local_key: str = Field(..., min_length=1, description="Owning FK column.")

    def to_literal(self) -> Dict[str, str]:
        """Structured form embedded into generated repositories."""
        return {
            "type": self.kind.value,
            "name": self.accessor_name,
            "model": self.target_model,
            "foreign_table": self.foreign_table,
            "local_key": self.local_key,
        }

    def __repr__(self) -> str:
        return (
            f"<Relation {self.accessor_name}() {self.kind.value} "
            f"{self.target_model} via {self.local_key}>"
        )


# Column name → ordered rule tokens.
RuleSet = Dict[str, List[str]]


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


class TemplateContext(BaseModel):
    """
    Everything a stub may reference, built once per generation run.

    Frozen: stubs are rendered against the same context and nothing may
    mutate it between artifacts.
    """

    model_config = _FROZEN_CONFIG

    model: str
    var: str
    snake: str
    table: str
    route: str
    version: str
    columns: List[str] = Field(default_factory=list)
    relations: List[RelationSpec] = Field(default_factory=list)
    sensitive: List[str] = Field(default_factory=list)
    cache_ttl: int = 60
    soft_deletes: bool = False
    pdf_view: str = "exports/table.html"

    def as_placeholders(self) -> Dict[str, str]:
        """Flatten the context into the text substituted for ``{{key}}``."""
        return {
            "model": self.model,
            "var": self.var,
            "snake": self.snake,
            "table": self.table,
            "route": self.route,
            "version": self.version,
            "columns": format_list_literal(self.columns),
            "relations": format_list_literal([r.accessor_name for r in self.relations]),
            "sensitive": format_list_literal(self.sensitive),
            "cache_ttl": str(self.cache_ttl),
            "soft_deletes": str(self.soft_deletes),
            "pdf_view": self.pdf_view,
        }


# ---------------------------------------------------------------------------
# Trigger
# ---------------------------------------------------------------------------


class ModelCreatedEvent(BaseModel):
    """Signal emitted by the model-creation step."""

    model_config = _SHARED_CONFIG

    model_name: str = Field(default="", description="Model name or class path.")
    success: bool = Field(default=False, description="Did model creation succeed?")


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class GeneratorConfig(BaseModel):
    """
    Settings for one scaffolding run.

    Passed explicitly to every component that needs it; nothing reads
    settings from module globals.
    """

    model_config = _SHARED_CONFIG

    api_version: str = Field(
        default="v1",
        pattern=r"^[A-Za-z][A-Za-z0-9_]*$",
        description="Version segment used in output paths and route prefixes.",
    )
    route_marker: str = Field(
        default="# [crudgen] register-below",
        min_length=1,
        description="Comment line new route blocks are inserted above.",
    )
    sensitive: List[str] = Field(
        default_factory=lambda: list(DEFAULT_SENSITIVE_FIELDS),
        description="Columns never exposed through fillable lists or resources.",
    )
    cache_ttl: int = Field(
        default=60, ge=0, description="Seconds generated services cache reads for."
    )
    pdf_view: str = Field(
        default="exports/table.html",
        min_length=1,
        description="Export view path, relative to app/templates.",
    )
    base_path: str = Field(
        default=".", description="Root of the project receiving generated files."
    )
    stub_path: Optional[str] = Field(
        default=None,
        description="Directory of stub documents (None → stubs bundled with crudgen).",
    )
    models_dir: str = Field(
        default="app/models", description="Where model sources live, relative to base_path."
    )
    route_file: str = Field(
        default="app/api/routes.py",
        description="Shared route registry, relative to base_path.",
    )
    database_url: Optional[str] = Field(
        default=None, description="SQLAlchemy URL of the database to introspect."
    )
    prefer_inspector: bool = Field(
        default=True,
        description="Use SQLAlchemy's Inspector; False forces information_schema queries.",
    )

    @field_validator("route_marker")
    @classmethod
    def _marker_is_comment(cls, v: str) -> str:
        stripped: str = v.strip()
        if not stripped.startswith("#"):
            raise ValueError(
                f"route_marker must be a Python comment line, got {v!r}."
            )
        return stripped


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "STRUCTURAL_COLUMNS",
    "SOFT_DELETE_COLUMN",
    "DEFAULT_SENSITIVE_FIELDS",
    "TypeFamily",
    "RelationKind",
    "classify_type",
    "ColumnDescriptor",
    "ForeignKeyDescriptor",
    "RelationSpec",
    "RuleSet",
    "TemplateContext",
    "ModelCreatedEvent",
    "GeneratorConfig",
]

logger.debug("crudgen.models loaded — %d public symbols.", len(__all__))
