# File: crudgen/__init__.py
"""
crudgen — Schema-Driven CRUD Scaffold Generator
=================================================

Introspects a database table through SQLAlchemy and scaffolds the FastAPI
artifacts for its model from stub templates: transport resource, store and
update request validators, repository, service, policy, controller, export
definitions and a test module.  It also patches the existing model source
(fillable list, casts, mixins, relation accessors) and registers the
controller in the shared route registry.  Both in-place edits are
idempotent, so re-running a scaffold is always safe.

Architecture overview::

    ┌──────────────┐     ┌─────────────────────┐     ┌────────────────┐
    │  CLI / Entry │────▶│ ScaffoldOrchestrator │────▶│ StubStore +    │
    │   (cli.py)   │     │   (generator.py)     │     │ render()       │
    └──────────────┘     └──────────┬──────────┘     └────────────────┘
                                    │
           ┌──────────────┬─────────┼───────────┬──────────────┐
           ▼              ▼         ▼           ▼              ▼
    ┌─────────────┐ ┌──────────┐ ┌───────┐ ┌──────────┐ ┌─────────────┐
    │introspection│ │relations │ │ rules │ │ patcher  │ │ exporters   │
    └─────────────┘ └──────────┘ └───────┘ └──────────┘ └─────────────┘

Usage::

    # As a library
    from sqlalchemy import create_engine
    from crudgen import GeneratorConfig, ScaffoldOrchestrator, create_introspector

    engine = create_engine("sqlite:///app.db")
    orchestrator = ScaffoldOrchestrator(create_introspector(engine), GeneratorConfig())
    print(orchestrator.generate("Product").summary())

    # From the command line
    crudgen --database-url sqlite:///app.db generate Product

Public API:
    - ScaffoldOrchestrator  — Pipeline orchestrator
    - GeneratorConfig       — Generation settings model
    - create_introspector   — Schema introspection factory
    - SourcePatcher         — Idempotent model-source patcher
    - render                — Stub placeholder substitution
    - handle_model_created  — Model-creation trigger adapter
"""

from __future__ import annotations

__version__: str = "0.1.0"
__license__: str = "MIT"

from crudgen.models import (
    ColumnDescriptor,
    ForeignKeyDescriptor,
    GeneratorConfig,
    ModelCreatedEvent,
    RelationKind,
    RelationSpec,
    RuleSet,
    TemplateContext,
    TypeFamily,
)
from crudgen.introspection import (
    CatalogIntrospector,
    InspectorIntrospector,
    SchemaIntrospector,
    create_introspector,
    normalize_type,
)
from crudgen.relations import RelationInferencer
from crudgen.rules import RuleSynthesizer
from crudgen.templates import StubStore, embed_json, embed_literal, render
from crudgen.patcher import PatchResult, SourcePatcher
from crudgen.exporters import ArtifactWriter, RouteRegistrar
from crudgen.generator import (
    ScaffoldOrchestrator,
    ScaffoldReport,
    build_orchestrator,
    handle_model_created,
    load_config,
    make_model,
)

# ---------------------------------------------------------------------------
# Public API surface
# ---------------------------------------------------------------------------

__all__: list[str] = [
    # Version info
    "__version__",
    "__license__",
    # Orchestration
    "ScaffoldOrchestrator",
    "ScaffoldReport",
    "build_orchestrator",
    "handle_model_created",
    "make_model",
    "load_config",
    # Models
    "ColumnDescriptor",
    "ForeignKeyDescriptor",
    "GeneratorConfig",
    "ModelCreatedEvent",
    "RelationKind",
    "RelationSpec",
    "RuleSet",
    "TemplateContext",
    "TypeFamily",
    # Introspection
    "SchemaIntrospector",
    "InspectorIntrospector",
    "CatalogIntrospector",
    "create_introspector",
    "normalize_type",
    # Synthesis
    "RelationInferencer",
    "RuleSynthesizer",
    # Templates
    "StubStore",
    "render",
    "embed_json",
    "embed_literal",
    # Writers
    "SourcePatcher",
    "PatchResult",
    "ArtifactWriter",
    "RouteRegistrar",
]
