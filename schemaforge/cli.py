# File: schemaforge/cli.py
"""
SchemaForge - Command-Line Interface
=====================================

CLI built with the standard-library ``argparse`` module.

Usage examples::

    # Render schema.sql and schema.prisma into ./out
    python -m schemaforge --schema schema.yaml --output ./out

    # Only the SQL, printed to stdout
    python -m schemaforge -s schema.json --target sql --stdout

    # Validate only, machine-readable
    python -m schemaforge -s schema.yaml --validate-only --json

Exit codes:
    0 - success
    1 - validation error
    2 - generation error (generation guard)
    3 - export error
    4 - input/argument error
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, NoReturn, Optional, Sequence

# ---------------------------------------------------------------------------
# Logger (configured in _setup_logging)
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("schemaforge")


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------

EXIT_SUCCESS: int = 0
EXIT_VALIDATION_ERROR: int = 1
EXIT_GENERATION_ERROR: int = 2
EXIT_EXPORT_ERROR: int = 3
EXIT_INPUT_ERROR: int = 4


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(verbosity: int) -> None:
    """
    Configure the ``schemaforge`` logger.

    Args:
        verbosity: -1 = ERROR, 0 = WARNING, 1 = INFO, 2+ = DEBUG.
    """
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity == 1:
        level = logging.INFO
    elif verbosity == 0:
        level = logging.WARNING
    else:
        level = logging.ERROR

    handler: logging.StreamHandler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    fmt: str = "%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s"
    datefmt: str = "%H:%M:%S"
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    root_logger: logging.Logger = logging.getLogger("schemaforge")
    root_logger.setLevel(level)

    # Remove existing handlers to prevent duplication
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.propagate = False


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    from schemaforge import __version__

    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="schemaforge",
        description=(
            "SchemaForge - relational schema to PostgreSQL DDL and Prisma models.\n\n"
            "Reads a canonical schema or an editor graph (JSON/YAML), validates it "
            "and renders deterministic, internally consistent artifacts."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  %(prog)s -s schema.yaml -o ./out\n"
            "  %(prog)s -s schema.json --target sql --stdout\n"
            "  %(prog)s -s schema.yaml --validate-only --json\n"
        ),
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"SchemaForge v{__version__}",
    )

    parser.add_argument(
        "-s", "--schema",
        type=str,
        required=True,
        metavar="PATH",
        help="Path to the schema document (JSON or YAML).",
    )
    parser.add_argument(
        "-o", "--output",
        type=str,
        default=None,
        metavar="DIR",
        help="Directory for the rendered files. Required unless --stdout or --validate-only.",
    )

    # --- Modes ---
    mode_group = parser.add_argument_group("operation modes")
    mode_group.add_argument(
        "--validate-only",
        action="store_true",
        default=False,
        help="Only run the validator; render nothing.",
    )
    mode_group.add_argument(
        "--stdout",
        action="store_true",
        default=False,
        help="Print rendered artifacts to stdout instead of (or as well as) writing files.",
    )
    mode_group.add_argument(
        "--json",
        action="store_true",
        default=False,
        help="With --validate-only, print the report as JSON.",
    )

    # --- Settings overrides ---
    config_group = parser.add_argument_group("configuration overrides")
    config_group.add_argument(
        "--target",
        dest="targets",
        action="append",
        choices=["sql", "prisma"],
        default=None,
        help="Artifact to render (repeatable). Default: all.",
    )
    config_group.add_argument(
        "--no-strict",
        action="store_true",
        default=False,
        help="Render even if the validator reports errors (the guard still applies).",
    )

    # --- Verbosity ---
    verbosity_group = parser.add_argument_group("verbosity")
    verbosity_group.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v for INFO, -vv for DEBUG).",
    )
    verbosity_group.add_argument(
        "-q", "--quiet",
        action="store_true",
        default=False,
        help="Suppress all output except errors.",
    )

    return parser


def _build_settings_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """Build a settings override dictionary from CLI arguments."""
    overrides: Dict[str, Any] = {}
    if args.targets:
        overrides["targets"] = args.targets
    if args.no_strict:
        overrides["strict_validation"] = False
    return overrides


# ---------------------------------------------------------------------------
# Validate-only mode
# ---------------------------------------------------------------------------


def _run_validate_only(schema_path: Path, as_json: bool) -> int:
    """Run the validator only.  Returns the exit code."""
    from schemaforge.generator import load_schema_file, parse_raw_schema
    from schemaforge.utils import Timer
    from schemaforge.validators import validate_schema

    logger.info("Running validation-only mode for: %s", schema_path)

    try:
        schema, _settings = parse_raw_schema(load_schema_file(schema_path))
    except (FileNotFoundError, ValueError) as exc:
        logger.error("Failed to load schema: %s", exc)
        return EXIT_INPUT_ERROR

    with Timer("validation") as t:
        result = validate_schema(schema)

    if as_json:
        print(json.dumps(result.to_dict(include_warnings=True), indent=2))
        return EXIT_SUCCESS if result.valid else EXIT_VALIDATION_ERROR

    print(f"\n{'='*50}")
    print("  Schema Validation Report")
    print(f"{'='*50}")
    print(f"  File:     {schema_path.name}")
    print(f"  Tables:   {schema.table_count}")
    print(f"  Time:     {t.elapsed:.3f}s")
    print(f"  Valid:    {'Yes' if result.valid else 'No'}")

    if result.errors:
        print(f"\n  Errors ({result.error_count}):")
        for err in result.errors:
            print(f"    ✗ {err}")

    if result.warnings:
        print(f"\n  Warnings ({result.warning_count}):")
        for warn in result.warnings:
            print(f"    ⚠ {warn}")

    if result.valid and not result.warnings:
        print("\n  ✅ All validations passed!")

    print(f"{'='*50}\n")

    return EXIT_SUCCESS if result.valid else EXIT_VALIDATION_ERROR


# ---------------------------------------------------------------------------
# Full generation mode
# ---------------------------------------------------------------------------

_STAGE_EXIT_CODES: Dict[str, int] = {
    "input": EXIT_INPUT_ERROR,
    "validation": EXIT_VALIDATION_ERROR,
    "generation": EXIT_GENERATION_ERROR,
    "export": EXIT_EXPORT_ERROR,
}


def _run_generation(
    schema_path: Path,
    output_dir: Optional[Path],
    args: argparse.Namespace,
) -> int:
    """Run the full pipeline.  Returns the exit code."""
    from schemaforge.generator import GenerationReport, SchemaGenerator

    overrides: Dict[str, Any] = _build_settings_overrides(args)
    report: GenerationReport = SchemaGenerator().generate_from_file(
        schema_path,
        output_dir,
        settings_overrides=overrides or None,
    )

    if args.stdout and report.success:
        print("\n\n".join(report.artifacts.values()))
        if not args.quiet:
            print(report.summary(), file=sys.stderr)
    elif not args.quiet or not report.success:
        print(report.summary(), file=sys.stderr if args.stdout else sys.stdout)

    if report.success:
        return EXIT_SUCCESS
    return _STAGE_EXIT_CODES.get(report.failed_stage or "", EXIT_GENERATION_ERROR)


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def cli_main(argv: Optional[Sequence[str]] = None) -> NoReturn:
    """
    Main CLI entry point.

    Can be called from ``__main__.py`` or directly for testing.

    Args:
        argv: Optional argument list (defaults to sys.argv[1:]).
    """
    parser: argparse.ArgumentParser = _build_parser()
    args: argparse.Namespace = parser.parse_args(argv)

    verbosity: int = -1 if args.quiet else args.verbose
    _setup_logging(verbosity)

    schema_path: Path = Path(args.schema).resolve()

    if not schema_path.exists():
        logger.error("Schema file not found: %s", schema_path)
        sys.exit(EXIT_INPUT_ERROR)

    if not schema_path.is_file():
        logger.error("Schema path is not a file: %s", schema_path)
        sys.exit(EXIT_INPUT_ERROR)

    if args.validate_only:
        sys.exit(_run_validate_only(schema_path, args.json))

    if args.output is None and not args.stdout:
        logger.error(
            "An output directory is required for generation. "
            "Use -o/--output, --stdout or --validate-only."
        )
        parser.print_usage(sys.stderr)
        sys.exit(EXIT_INPUT_ERROR)

    output_dir: Optional[Path] = Path(args.output).resolve() if args.output else None

    logger.info("Schema:  %s", schema_path)
    logger.info("Output:  %s", output_dir or "<stdout>")
    logger.info("Strict:  %s", not args.no_strict)

    exit_code: int = _run_generation(schema_path, output_dir, args)

    if exit_code == EXIT_SUCCESS:
        logger.info("Generation completed successfully.")
    else:
        logger.error("Generation failed with exit code %d.", exit_code)

    sys.exit(exit_code)


def main() -> None:
    """Console-script entry point."""
    cli_main()


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "cli_main",
    "main",
    "EXIT_SUCCESS",
    "EXIT_VALIDATION_ERROR",
    "EXIT_GENERATION_ERROR",
    "EXIT_EXPORT_ERROR",
    "EXIT_INPUT_ERROR",
]

logger.debug("schemaforge.cli loaded.")
