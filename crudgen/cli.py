# File: crudgen/cli.py
"""
crudgen - Command-Line Interface
==================================

CLI built with the standard-library ``argparse`` module.

Usage examples::

    # Scaffold every artifact for an existing table
    crudgen --database-url sqlite:///app.db generate Product

    # Explicit table name, project rooted elsewhere, verbose
    crudgen -v --base-path ./backend --database-url postgresql://... \\
        generate OrderItem --table order_lines

    # Create the model skeleton, then scaffold if the table exists
    crudgen --config crudgen.yaml make-model Product

    # Force information_schema introspection
    crudgen --catalog --database-url mysql+pymysql://... generate Product

Exit codes:
    0 — success
    1 — skipped (table missing)
    2 — generation error
    4 — input/argument error
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, NoReturn, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError

# ---------------------------------------------------------------------------
# Logger (configured in _setup_logging)
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen")


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------

EXIT_SUCCESS: int = 0
EXIT_SKIPPED: int = 1
EXIT_GENERATION_ERROR: int = 2
EXIT_INPUT_ERROR: int = 4


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(verbosity: int) -> None:
    """
    Configure the ``crudgen`` logger based on verbosity level.

    Args:
        verbosity: -1 = silent, 0 = WARNING, 1 = INFO, 2+ = DEBUG.
    """
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity >= 1:
        level = logging.INFO
    elif verbosity == 0:
        level = logging.WARNING
    else:
        level = logging.CRITICAL + 1

    handler: logging.StreamHandler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    fmt: str = "%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s"
    datefmt: str = "%H:%M:%S"
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    root_logger: logging.Logger = logging.getLogger("crudgen")
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.propagate = False


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    from crudgen import __version__

    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="crudgen",
        description=(
            "crudgen — schema-driven CRUD scaffold generator.\n\n"
            "Introspects a database table and emits the resource, request "
            "validators, repository, service, policy, controller, exports and "
            "test scaffold for its model, then wires the controller into the "
            "route registry."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  %(prog)s --database-url sqlite:///app.db generate Product\n"
            "  %(prog)s --config crudgen.yaml make-model Product\n"
        ),
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"crudgen v{__version__}",
    )

    # --- Configuration ---
    parser.add_argument(
        "-c", "--config",
        type=str,
        default=None,
        metavar="PATH",
        help="YAML or JSON configuration file.",
    )
    parser.add_argument(
        "--database-url",
        type=str,
        default=None,
        metavar="URL",
        help="SQLAlchemy URL of the database to introspect.",
    )
    parser.add_argument(
        "--base-path",
        type=str,
        default=None,
        metavar="DIR",
        help="Project root receiving generated files (default: .).",
    )
    parser.add_argument(
        "--api-version",
        type=str,
        default=None,
        metavar="VERSION",
        help="API version segment for paths and routes (default: v1).",
    )
    parser.add_argument(
        "--stub-path",
        type=str,
        default=None,
        metavar="DIR",
        help="Directory of custom stubs (default: stubs bundled with crudgen).",
    )
    parser.add_argument(
        "--catalog",
        action="store_true",
        default=False,
        help="Introspect through information_schema instead of the SQLAlchemy Inspector.",
    )

    # --- Verbosity ---
    verbosity_group = parser.add_mutually_exclusive_group()
    verbosity_group.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v = INFO, -vv = DEBUG).",
    )
    verbosity_group.add_argument(
        "-q", "--quiet",
        action="store_true",
        default=False,
        help="Suppress all log output (errors still set the exit code).",
    )

    # --- Commands ---
    commands = parser.add_subparsers(dest="command", metavar="COMMAND")
    commands.required = True

    generate = commands.add_parser(
        "generate",
        help="Scaffold every artifact for MODEL from its table.",
    )
    generate.add_argument("model", metavar="MODEL", help="Model class name, e.g. Product.")
    generate.add_argument(
        "-t", "--table",
        type=str,
        default=None,
        help="Backing table (default: snake-cased plural of MODEL).",
    )

    make_model_cmd = commands.add_parser(
        "make-model",
        help="Create the model source for MODEL, then scaffold it.",
    )
    make_model_cmd.add_argument("model", metavar="MODEL", help="Model class name.")

    return parser


# ---------------------------------------------------------------------------
# Configuration overrides
# ---------------------------------------------------------------------------


def _build_config_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """Translate CLI flags into config overrides (unset flags stay None)."""
    overrides: Dict[str, Any] = {
        "database_url": args.database_url,
        "base_path": args.base_path,
        "api_version": args.api_version,
        "stub_path": args.stub_path,
    }
    if args.catalog:
        overrides["prefer_inspector"] = False
    return overrides


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def _run_generate(args: argparse.Namespace, config: Any) -> int:
    """Run ``generate``.  Returns the appropriate exit code."""
    from crudgen.generator import ScaffoldReport, build_orchestrator

    try:
        orchestrator = build_orchestrator(config)
        report: ScaffoldReport = orchestrator.generate(args.model, args.table)
    except ValueError as exc:
        logger.error("%s", exc)
        return EXIT_INPUT_ERROR
    except (SQLAlchemyError, OSError) as exc:
        logger.error("Generation failed: %s", exc)
        return EXIT_GENERATION_ERROR

    print(report.summary())
    if report.success:
        return EXIT_SUCCESS
    return EXIT_SKIPPED


def _run_make_model(args: argparse.Namespace, config: Any) -> int:
    """
    Run ``make-model``: create the model file, then fire the trigger.

    Scaffolding problems never change the exit code here; they are only
    logged, as the model itself was created.
    """
    from crudgen.generator import build_orchestrator, handle_model_created, make_model
    from crudgen.models import ModelCreatedEvent

    created: bool = make_model(args.model, config)
    if not created:
        return EXIT_GENERATION_ERROR

    try:
        orchestrator = build_orchestrator(config)
    except (ValueError, SQLAlchemyError) as exc:
        logger.warning("Model created; scaffolding skipped: %s", exc)
        return EXIT_SUCCESS

    report = handle_model_created(
        ModelCreatedEvent(model_name=args.model, success=True), orchestrator
    )
    if report is not None:
        print(report.summary())
    return EXIT_SUCCESS


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def run(argv: Optional[Sequence[str]] = None) -> int:
    """
    Parse *argv*, run the selected command and return its exit code.

    Separated from :func:`cli_main` so tests can call it without catching
    ``SystemExit``.
    """
    from crudgen.generator import load_config

    parser: argparse.ArgumentParser = _build_parser()
    args: argparse.Namespace = parser.parse_args(argv)

    if args.quiet:
        verbosity: int = -1
    else:
        verbosity = args.verbose
    _setup_logging(verbosity)

    config_path: Optional[Path] = Path(args.config).resolve() if args.config else None
    try:
        config = load_config(config_path, _build_config_overrides(args))
    except (FileNotFoundError, ValueError) as exc:
        logger.error("Invalid configuration: %s", exc)
        return EXIT_INPUT_ERROR

    logger.info("Command: %s %s", args.command, args.model)
    logger.info("Base:    %s", Path(config.base_path).resolve())

    if args.command == "generate":
        exit_code: int = _run_generate(args, config)
    else:
        exit_code = _run_make_model(args, config)

    if exit_code == EXIT_SUCCESS:
        logger.info("Completed successfully.")
    elif exit_code != EXIT_SKIPPED:
        logger.error("Failed with exit code %d.", exit_code)
    return exit_code


def cli_main(argv: Optional[Sequence[str]] = None) -> NoReturn:
    """
    Main CLI entry point.

    Can be called from ``__main__.py`` or the console script.
    """
    sys.exit(run(argv))


main = cli_main


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "cli_main",
    "main",
    "run",
    "EXIT_SUCCESS",
    "EXIT_SKIPPED",
    "EXIT_GENERATION_ERROR",
    "EXIT_INPUT_ERROR",
]

logger.debug("crudgen.cli loaded.")
