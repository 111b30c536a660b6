# File: crudgen/exporters.py
"""
crudgen - Artifact Writer & Route Registrar
=============================================

Responsible for:
    1. Writing rendered artifacts under the project base path, honoring the
       per-artifact overwrite policy (always regenerate vs. write once).
    2. Idempotently registering a model's controller in the shared route
       registry.

Every individual write is atomic (temp file then ``os.replace``).  A run
that fails midway leaves the files already written in place; there is no
staging area and no cleanup of partial batches.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List

from crudgen.models import GeneratorConfig
from crudgen.utils import (
    count_lines,
    model_to_route_segment,
    read_file,
    to_snake_case,
    write_file,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.exporters")

STATUS_WRITTEN: str = "written"
STATUS_PRESERVED: str = "preserved"


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FileRecord:
    """Immutable record of one artifact write attempt."""

    relative_path: str
    absolute_path: str
    status: str
    size_bytes: int = 0
    line_count: int = 0

    @property
    def written(self) -> bool:
        return self.status == STATUS_WRITTEN


# ---------------------------------------------------------------------------
# ArtifactWriter
# ---------------------------------------------------------------------------


class ArtifactWriter:
    """
    Writes rendered artifacts relative to a project base path.

    Usage::

        writer = ArtifactWriter(Path("."))
        record = writer.write("app/services/product_service.py", source)
        record = writer.write("app/services/product_service_custom.py",
                              source, overwrite=False)

    Thread-safety: NOT thread-safe.  Use one writer per run.
    """

    def __init__(self, base_path: Path) -> None:
        self._base_path: Path = Path(base_path)

    @property
    def base_path(self) -> Path:
        return self._base_path

    def write(self, relative_path: str, content: str, *, overwrite: bool = True) -> FileRecord:
        full_path: Path = self._base_path / relative_path

        if not overwrite and full_path.exists():
            logger.info("Preserving existing %s.", relative_path)
            return FileRecord(
                relative_path=relative_path,
                absolute_path=str(full_path),
                status=STATUS_PRESERVED,
            )

        size_bytes: int = write_file(full_path, content)
        line_count: int = count_lines(content)
        logger.debug(
            "Wrote artifact: %s (%d bytes, %d lines).",
            relative_path,
            size_bytes,
            line_count,
        )
        return FileRecord(
            relative_path=relative_path,
            absolute_path=str(full_path),
            status=STATUS_WRITTEN,
            size_bytes=size_bytes,
            line_count=line_count,
        )

    def __repr__(self) -> str:
        return f"<ArtifactWriter {self._base_path}>"


# ---------------------------------------------------------------------------
# RouteRegistrar
# ---------------------------------------------------------------------------

_REGISTRY_HEADER: str = (
    '"""API route registry maintained by crudgen."""\n'
    "\n"
    "from fastapi import APIRouter\n"
    "\n"
    "api_router = APIRouter()\n"
)


class RouteRegistrar:
    """
    Appends controller registrations to the shared route registry.

    The registry holds one version group::

        v1_router = APIRouter(prefix="/v1")

        # [crudgen] register-below

        api_router.include_router(v1_router)

    and each model's block is inserted immediately above the marker line,
    so the marker stays in place for the next run.  A controller is
    registered at most once, keyed on its dotted module path.
    """

    def __init__(self, config: GeneratorConfig) -> None:
        self._config: GeneratorConfig = config

    @property
    def path(self) -> Path:
        return Path(self._config.base_path) / self._config.route_file

    def controller_module(self, model_name: str) -> str:
        return (
            f"app.api.{self._config.api_version}.controllers."
            f"{to_snake_case(model_name)}_controller"
        )

    def group_block(self) -> str:
        version: str = self._config.api_version
        return (
            "\n"
            f'{version}_router = APIRouter(prefix="/{version}")\n'
            "\n"
            f"{self._config.route_marker}\n"
            "\n"
            f"api_router.include_router({version}_router)\n"
        )

    def route_block(self, model_name: str) -> List[str]:
        snake: str = to_snake_case(model_name)
        route: str = model_to_route_segment(model_name)
        version: str = self._config.api_version
        return [
            f"from {self.controller_module(model_name)} import router as {snake}_controller_router",
            f"{version}_router.include_router("
            f'{snake}_controller_router, prefix="/{route}", tags=["{route}"])',
            "",
        ]

    # -- Public API ---------------------------------------------------------

    def register(self, model_name: str) -> bool:
        """
        Register *model_name*'s controller.

        Returns:
            True if a route block was added, False if the controller was
            already referenced.
        """
        path: Path = self.path
        original: str = read_file(path) if path.is_file() else ""
        text: str = original or _REGISTRY_HEADER

        if self._find_marker(text.split("\n")) < 0:
            text = text.rstrip("\n") + "\n" + self.group_block()
            logger.info("Added route group for %s to %s.", self._config.api_version, path)

        added: bool = False
        if self.controller_module(model_name) not in text:
            lines: List[str] = text.split("\n")
            at: int = self._find_marker(lines)
            lines[at:at] = self.route_block(model_name)
            text = "\n".join(lines)
            added = True
            logger.info("Registered routes for %s in %s.", model_name, path)
        else:
            logger.debug("Routes for %s already registered.", model_name)

        if text != original:
            write_file(path, text)
        return added

    # -- Internal -----------------------------------------------------------

    def _find_marker(self, lines: List[str]) -> int:
        marker: str = self._config.route_marker
        for index, line in enumerate(lines):
            if line.strip() == marker:
                return index
        return -1

    def __repr__(self) -> str:
        return f"<RouteRegistrar {self.path}>"


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "ArtifactWriter",
    "FileRecord",
    "RouteRegistrar",
    "STATUS_PRESERVED",
    "STATUS_WRITTEN",
]
