# File: crudgen/generator.py
"""
crudgen - Scaffold Pipeline (Orchestrator)
============================================

Connects every phase of one scaffolding run:

    Table check → Introspection → Relations → Model patch → Render → Write → Routes

The ``ScaffoldOrchestrator`` class is the programmatic API and the backend
for the CLI.  ``handle_model_created`` adapts it to the model-creation
trigger, and ``make_model`` is that upstream model-creation step.

Workflow::

    1. Resolve model name and table name (``Product`` → ``products``).
    2. Skip with a diagnostic if the table does not exist.
    3. Describe columns and foreign keys (errors propagate, nothing written).
    4. Infer belongs-to relations from the foreign keys.
    5. Patch the existing model source (fillable, casts, mixins, accessors).
    6. Build the frozen ``TemplateContext``.
    7. Render every stub in ``ARTIFACTS`` and write it, honoring its
       overwrite policy; missing stubs are skipped individually.
    8. Register the controller in the route registry.
    9. Return a ``ScaffoldReport``.

Error handling strategy:
    - Introspection errors are not caught: they reach the caller before any
      file has been touched.
    - A missing table is a skipped run, reported, never raised.
    - Writes are atomic per file; a failure midway leaves earlier artifacts
      on disk (re-running the same command completes the set).
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import yaml
from pydantic import ValidationError
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from crudgen.exporters import ArtifactWriter, FileRecord, RouteRegistrar
from crudgen.introspection import SchemaIntrospector, create_introspector
from crudgen.models import (
    SOFT_DELETE_COLUMN,
    ColumnDescriptor,
    GeneratorConfig,
    ModelCreatedEvent,
    RelationSpec,
    TemplateContext,
)
from crudgen.patcher import PatchResult, SourcePatcher
from crudgen.relations import RelationInferencer
from crudgen.rules import RuleSynthesizer
from crudgen.templates import StubStore, embed_json, embed_literal, render
from crudgen.utils import (
    Timer,
    class_basename,
    model_to_route_segment,
    model_to_table_name,
    safe_identifier,
    to_camel_case,
    to_pascal_case,
    to_snake_case,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.generator")


# ---------------------------------------------------------------------------
# Artifact table
# ---------------------------------------------------------------------------

_EMBEDDERS: Dict[str, Callable[[str, str, Any], str]] = {
    "json": embed_json,
    "literal": embed_literal,
}


@dataclass(frozen=True, slots=True)
class ArtifactSpec:
    """
    One generated file.

    ``target`` is formatted with ``version``, ``snake`` and ``pdf_view``.
    ``embeds`` lists ``(token key, format, source)`` triples resolved before
    the generic placeholder pass, where *source* names one of the structured
    values the orchestrator computes (``store_rules``, ``update_rules``,
    ``relations``).
    """

    stub: str
    target: str
    overwrite: bool = True
    embeds: Tuple[Tuple[str, str, str], ...] = ()

    def target_path(self, **parts: str) -> str:
        return self.target.format(**parts)


ARTIFACTS: Tuple[ArtifactSpec, ...] = (
    ArtifactSpec("resource.stub", "app/api/{version}/resources/{snake}_resource.py"),
    ArtifactSpec(
        "request.store.stub",
        "app/api/{version}/requests/{snake}/store_{snake}_request.py",
        embeds=(("rules", "literal", "store_rules"),),
    ),
    ArtifactSpec(
        "request.update.stub",
        "app/api/{version}/requests/{snake}/update_{snake}_request.py",
        embeds=(("rules", "literal", "update_rules"),),
    ),
    ArtifactSpec(
        "repository.stub",
        "app/repositories/{snake}_repository.py",
        embeds=(("relations", "literal", "relations"), ("relations", "json", "relations")),
    ),
    ArtifactSpec("service.stub", "app/services/{snake}_service.py"),
    ArtifactSpec("service.custom.stub", "app/services/{snake}_service_custom.py", overwrite=False),
    ArtifactSpec("policy.stub", "app/policies/{snake}_policy.py"),
    ArtifactSpec("controller.stub", "app/api/{version}/controllers/{snake}_controller.py"),
    ArtifactSpec(
        "trait.query.stub",
        "app/api/{version}/controllers/concerns/dynamic_query.py",
        overwrite=False,
    ),
    ArtifactSpec("export.excel.stub", "app/exports/{snake}_export.py"),
    ArtifactSpec("export.pdf.view.stub", "app/templates/{pdf_view}", overwrite=False),
    ArtifactSpec("tests.feature.stub", "tests/api/{version}/test_{snake}_controller.py"),
)

MODEL_STUB: str = "model.stub"


# ---------------------------------------------------------------------------
# Scaffold report
# ---------------------------------------------------------------------------


@dataclass(frozen=False, slots=True)
class ScaffoldReport:
    """Outcome of one ``ScaffoldOrchestrator.generate()`` call."""

    success: bool = False
    model: str = ""
    table: str = ""
    skipped_reason: str = ""

    written: List[str] = field(default_factory=list)
    preserved: List[str] = field(default_factory=list)
    missing_stubs: List[str] = field(default_factory=list)
    patched: List[str] = field(default_factory=list)
    relations: List[str] = field(default_factory=list)
    routes_added: bool = False
    elapsed_seconds: float = 0.0

    def summary(self) -> str:
        """Return a human-readable summary string."""
        lines: List[str] = []
        if self.success:
            status: str = "✅ SUCCESS"
        elif self.skipped_reason:
            status = "⊘ SKIPPED"
        else:
            status = "❌ FAILED"
        lines.append(f"{'='*60}")
        lines.append("  crudgen — Scaffold Report")
        lines.append(f"{'='*60}")
        lines.append(f"  Status:           {status}")
        lines.append(f"  Model:            {self.model}")
        lines.append(f"  Table:            {self.table}")
        if self.skipped_reason:
            lines.append(f"  Reason:           {self.skipped_reason}")
        lines.append(f"  Files written:    {len(self.written)}")
        lines.append(f"  Files preserved:  {len(self.preserved)}")
        lines.append(f"  Relations:        {', '.join(self.relations) or '-'}")
        lines.append(f"  Model patches:    {', '.join(self.patched) or '-'}")
        lines.append(f"  Routes added:     {'yes' if self.routes_added else 'no'}")
        lines.append(f"  Total time:       {self.elapsed_seconds:.3f}s")

        if self.written:
            lines.append(f"{'─'*60}")
            for path in self.written:
                lines.append(f"    ✓ {path}")
        if self.preserved:
            lines.append(f"{'─'*60}")
            for path in self.preserved:
                lines.append(f"    = {path}")
        if self.missing_stubs:
            lines.append(f"{'─'*60}")
            lines.append(f"  Missing stubs ({len(self.missing_stubs)}):")
            for stub in self.missing_stubs:
                lines.append(f"    ⚠ {stub}")

        lines.append(f"{'='*60}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Configuration loading
# ---------------------------------------------------------------------------


def _load_json_file(path: Path) -> Dict[str, Any]:
    try:
        data: Any = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object at top level, got {type(data).__name__}.")
    return data


def _load_yaml_file(path: Path) -> Dict[str, Any]:
    try:
        data: Any = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Expected a YAML mapping at top level, got {type(data).__name__}.")
    return data


def load_config_file(path: Path) -> Dict[str, Any]:
    """
    Load a configuration file (JSON or YAML), dispatching on extension.

    A top-level ``crudgen`` key, when present, is unwrapped so the settings
    can live in a shared project config file.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If the file can't be parsed.
    """
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    if not path.is_file():
        raise ValueError(f"Config path is not a file: {path}")

    suffix: str = path.suffix.lower()
    if suffix in (".yaml", ".yml"):
        raw: Dict[str, Any] = _load_yaml_file(path)
    elif suffix == ".json":
        raw = _load_json_file(path)
    else:
        logger.info("Unknown extension '%s' — trying JSON then YAML.", suffix)
        try:
            raw = _load_json_file(path)
        except ValueError:
            raw = _load_yaml_file(path)

    section: Any = raw.get("crudgen", raw)
    if not isinstance(section, dict):
        raise ValueError(f"'crudgen' section in {path} must be a mapping.")
    return section


def load_config(
    path: Optional[Path] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> GeneratorConfig:
    """
    Build a ``GeneratorConfig`` from an optional file plus explicit overrides.

    ``None`` values in *overrides* are ignored so unset CLI flags never
    clobber file settings.

    Raises:
        FileNotFoundError: If *path* is given but missing.
        ValueError: On parse errors or invalid settings.
    """
    data: Dict[str, Any] = load_config_file(path) if path is not None else {}
    for key, value in (overrides or {}).items():
        if value is not None:
            data[key] = value
    try:
        return GeneratorConfig.model_validate(data)
    except ValidationError as exc:
        raise ValueError(f"Config validation failed: {exc}") from exc


# ---------------------------------------------------------------------------
# Context
# ---------------------------------------------------------------------------


def build_context(
    model: str,
    table: str,
    columns: Sequence[ColumnDescriptor],
    relations: Sequence[RelationSpec],
    config: GeneratorConfig,
) -> TemplateContext:
    return TemplateContext(
        model=model,
        var=safe_identifier(to_camel_case(model)),
        snake=to_snake_case(model),
        table=table,
        route=model_to_route_segment(model),
        version=config.api_version,
        columns=[c.name for c in columns],
        relations=list(relations),
        sensitive=list(config.sensitive),
        cache_ttl=config.cache_ttl,
        soft_deletes=any(c.name == SOFT_DELETE_COLUMN for c in columns),
        pdf_view=config.pdf_view,
    )


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------


class ScaffoldOrchestrator:
    """
    Runs the full scaffold pipeline for one model at a time.

    Usage::

        engine = create_engine("sqlite:///app.db")
        orchestrator = ScaffoldOrchestrator(
            create_introspector(engine), GeneratorConfig(base_path=".")
        )
        report = orchestrator.generate("Product")
        print(report.summary())

    Collaborators default to the standard implementations built from the
    config and may be injected for testing.
    """

    def __init__(
        self,
        introspector: SchemaIntrospector,
        config: GeneratorConfig,
        *,
        stubs: Optional[StubStore] = None,
        rules: Optional[RuleSynthesizer] = None,
        inferencer: Optional[RelationInferencer] = None,
        patcher: Optional[SourcePatcher] = None,
        writer: Optional[ArtifactWriter] = None,
        registrar: Optional[RouteRegistrar] = None,
    ) -> None:
        self._introspector: SchemaIntrospector = introspector
        self._config: GeneratorConfig = config
        self._stubs: StubStore = stubs or StubStore(
            Path(config.stub_path) if config.stub_path else None
        )
        self._rules: RuleSynthesizer = rules or RuleSynthesizer()
        self._inferencer: RelationInferencer = inferencer or RelationInferencer()
        self._patcher: SourcePatcher = patcher or SourcePatcher(config)
        self._writer: ArtifactWriter = writer or ArtifactWriter(Path(config.base_path))
        self._registrar: RouteRegistrar = registrar or RouteRegistrar(config)

        logger.debug(
            "ScaffoldOrchestrator initialised: base=%s, version=%s, stubs=%s.",
            config.base_path,
            config.api_version,
            self._stubs.directory,
        )

    @property
    def config(self) -> GeneratorConfig:
        return self._config

    @property
    def introspector(self) -> SchemaIntrospector:
        return self._introspector

    # -----------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------

    def generate(self, model_name: str, table_name: Optional[str] = None) -> ScaffoldReport:
        """
        Scaffold every artifact for *model_name*.

        Args:
            model_name: Model class name or path (``App/Models/Product``).
            table_name: Backing table; derived from the model name if omitted.

        Returns:
            ScaffoldReport.  ``success`` is False with ``skipped_reason`` set
            when the table does not exist.

        Raises:
            sqlalchemy.exc.SQLAlchemyError: If introspection fails.
        """
        model: str = to_pascal_case(class_basename(model_name))
        table: str = table_name or model_to_table_name(model)
        report = ScaffoldReport(model=model, table=table)

        with Timer(f"generate:{model}") as timer:
            self._run_pipeline(model, table, report)
        report.elapsed_seconds = timer.elapsed

        if report.success:
            logger.info(
                "Scaffolded %s (%s): %d written, %d preserved in %.3fs.",
                model,
                table,
                len(report.written),
                len(report.preserved),
                report.elapsed_seconds,
            )
        return report

    # -----------------------------------------------------------------
    # Internal: pipeline
    # -----------------------------------------------------------------

    def _run_pipeline(self, model: str, table: str, report: ScaffoldReport) -> None:
        if not self._introspector.has_table(table):
            report.skipped_reason = f"table '{table}' does not exist"
            logger.warning("Skipping %s: %s.", model, report.skipped_reason)
            return

        with Timer("introspect"):
            columns: List[ColumnDescriptor] = self._introspector.describe(table)
            foreign_keys = self._introspector.foreign_keys(table)

        relations: List[RelationSpec] = self._inferencer.infer(foreign_keys)
        report.relations = [r.accessor_name for r in relations]

        patch: PatchResult = self._patcher.patch(model, columns, relations)
        report.patched = list(patch.applied)

        context: TemplateContext = build_context(model, table, columns, relations, self._config)
        structured: Dict[str, Any] = {
            "store_rules": self._rules.build_store_rules(columns),
            "update_rules": self._rules.build_update_rules(columns),
            "relations": [r.to_literal() for r in relations],
        }

        with Timer("render"):
            for artifact in ARTIFACTS:
                self._emit(artifact, context, structured, report)

        report.routes_added = self._registrar.register(model)
        report.success = True

    def _emit(
        self,
        artifact: ArtifactSpec,
        context: TemplateContext,
        structured: Dict[str, Any],
        report: ScaffoldReport,
    ) -> None:
        template: Optional[str] = self._stubs.load(artifact.stub)
        if template is None:
            report.missing_stubs.append(artifact.stub)
            return

        target: str = artifact.target_path(
            version=context.version,
            snake=context.snake,
            pdf_view=self._config.pdf_view,
        )
        if not artifact.overwrite and (self._writer.base_path / target).exists():
            report.preserved.append(target)
            logger.debug("Keeping hand-edited %s.", target)
            return

        for key, fmt, source in artifact.embeds:
            template = _EMBEDDERS[fmt](template, key, structured[source])
        content: str = render(template, context.as_placeholders())

        record: FileRecord = self._writer.write(target, content, overwrite=artifact.overwrite)
        if record.written:
            report.written.append(target)
        else:
            report.preserved.append(target)


# ---------------------------------------------------------------------------
# Construction helpers
# ---------------------------------------------------------------------------


def build_orchestrator(
    config: GeneratorConfig,
    engine: Optional[Engine] = None,
) -> ScaffoldOrchestrator:
    """
    Wire an orchestrator to the database named by ``config.database_url``.

    Raises:
        ValueError: If neither *engine* nor ``database_url`` is provided.
    """
    if engine is None:
        if not config.database_url:
            raise ValueError("No database configured: set database_url or pass --database-url.")
        engine = create_engine(config.database_url)
    introspector: SchemaIntrospector = create_introspector(
        engine, prefer_inspector=config.prefer_inspector
    )
    return ScaffoldOrchestrator(introspector, config)


# ---------------------------------------------------------------------------
# Trigger
# ---------------------------------------------------------------------------


def handle_model_created(
    event: ModelCreatedEvent,
    orchestrator: ScaffoldOrchestrator,
) -> Optional[ScaffoldReport]:
    """
    React to a finished model-creation step.

    Never raises: a failed or skipped scaffold must not affect the step that
    created the model.  Diagnostics go to the ``crudgen.generator`` logger.

    Returns:
        The report of a successful run, or None when nothing was generated.
    """
    if not event.success:
        logger.warning("Model creation for '%s' failed — not scaffolding.", event.model_name)
        return None

    model: str = to_pascal_case(class_basename(event.model_name))
    if not model:
        logger.warning("Model creation event carried no model name — not scaffolding.")
        return None

    table: str = model_to_table_name(model)
    try:
        report: ScaffoldReport = orchestrator.generate(model, table)
    except Exception:
        logger.error("Scaffolding %s failed.", model, exc_info=True)
        return None

    if not report.success:
        logger.warning(
            "Table '%s' does not exist for model %s — create it, then run "
            "'crudgen generate %s'.",
            table,
            model,
            model,
        )
        return None
    return report


def make_model(
    model_name: str,
    config: GeneratorConfig,
    stubs: Optional[StubStore] = None,
) -> bool:
    """
    Create the model source skeleton from ``model.stub``.

    An existing model file is never overwritten.

    Returns:
        True if the model file exists afterwards.
    """
    model: str = to_pascal_case(class_basename(model_name))
    if not model:
        logger.error("Cannot create a model without a name.")
        return False

    store: StubStore = stubs or StubStore(Path(config.stub_path) if config.stub_path else None)
    writer = ArtifactWriter(Path(config.base_path))
    relative: str = f"{config.models_dir}/{to_snake_case(model)}.py"
    path: Path = writer.base_path / relative
    if path.exists():
        logger.info("Model source %s already exists.", path)
        return True

    template: Optional[str] = store.load(MODEL_STUB)
    if template is None:
        logger.error("Cannot create %s: stub '%s' is missing.", model, MODEL_STUB)
        return False

    context: TemplateContext = build_context(
        model, model_to_table_name(model), [], [], config
    )
    writer.write(relative, render(template, context.as_placeholders()), overwrite=False)
    logger.info("Created model source %s.", path)
    return True


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "ARTIFACTS",
    "ArtifactSpec",
    "MODEL_STUB",
    "ScaffoldOrchestrator",
    "ScaffoldReport",
    "build_context",
    "build_orchestrator",
    "handle_model_created",
    "load_config",
    "load_config_file",
    "make_model",
]
