# File: schemaforge/generator.py
"""
SchemaForge - Generation Pipeline (Orchestrator)
=================================================

Connects every stage together:

    Document → Parse (→ Normalize) → Validate → Guard → Render → Write

The ``SchemaGenerator`` class provides both a programmatic API and the
backend for the CLI.

Workflow::

    1. Load a JSON/YAML document (or accept an in-memory schema).
    2. Parse into ``NormalizedSchema`` + ``GeneratorSettings``.  Editor
       graphs are normalized on the way in.
    3. Run the advisory validator; in strict mode any error stops here.
    4. Run the generation guard; any violation stops here.
    5. Render every requested target.
    6. Optionally write the artifacts (atomic writes).
    7. Return a ``GenerationReport`` with metrics and status.

Error handling strategy:
    - Validation errors and guard violations are collected and surfaced,
      never swallowed.
    - ``generate()`` does not raise for schema problems; the report records
      which stage failed.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from schemaforge.guard import GenerationGuardError, assert_generation_ready
from schemaforge.models import (
    EditorGraph,
    GeneratorSettings,
    NormalizedSchema,
    OutputTarget,
)
from schemaforge.normalizer import find_name_collisions, normalize
from schemaforge.prisma_renderer import render_orm_schema
from schemaforge.sql_renderer import render_sql
from schemaforge.utils import Timer, count_lines, write_file
from schemaforge.validators import ValidationResult, validate_schema

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("schemaforge.generator")

_CONFIG_KEYS: Tuple[str, ...] = ("config", "generation_config", "generator_config")

# Failure stages recorded on the report
STAGE_INPUT: str = "input"
STAGE_VALIDATION: str = "validation"
STAGE_GENERATION: str = "generation"
STAGE_EXPORT: str = "export"


# ---------------------------------------------------------------------------
# Generation report
# ---------------------------------------------------------------------------


@dataclass(frozen=False, slots=True)
class GenerationStepMetric:
    """Timing and outcome for a single pipeline step."""

    step_name: str = ""
    success: bool = True
    elapsed_seconds: float = 0.0
    detail: str = ""


@dataclass(frozen=False, slots=True)
class GenerationReport:
    """
    Report produced by ``SchemaGenerator.generate()``.

    ``artifacts`` maps each rendered target to its text.  ``failed_stage``
    is ``None`` on success.
    """

    success: bool = False
    source: str = ""
    output_directory: str = ""
    failed_stage: Optional[str] = None

    # Metrics
    total_tables: int = 0
    total_files: int = 0
    total_bytes: int = 0
    total_lines: int = 0
    total_elapsed_seconds: float = 0.0

    # Sub-reports
    step_metrics: List[GenerationStepMetric] = field(default_factory=list)
    validation: Optional[ValidationResult] = None
    validation_errors: List[str] = field(default_factory=list)
    validation_warnings: List[str] = field(default_factory=list)
    generation_errors: List[str] = field(default_factory=list)
    export_errors: List[str] = field(default_factory=list)
    artifacts: Dict[str, str] = field(default_factory=dict)
    written_files: List[str] = field(default_factory=list)

    def summary(self) -> str:
        """Return a human-readable summary string."""
        lines: List[str] = []
        status: str = "✅ SUCCESS" if self.success else "❌ FAILED"
        lines.append(f"{'='*60}")
        lines.append("  SchemaForge - Generation Report")
        lines.append(f"{'='*60}")
        lines.append(f"  Status:           {status}")
        if self.source:
            lines.append(f"  Source:           {self.source}")
        if self.output_directory:
            lines.append(f"  Output:           {self.output_directory}")
        lines.append(f"  Tables:           {self.total_tables}")
        lines.append(f"  Artifacts:        {', '.join(self.artifacts) or '-'}")
        lines.append(f"  Files written:    {self.total_files}")
        lines.append(f"  Total lines:      {self.total_lines:,}")
        lines.append(f"  Total bytes:      {self.total_bytes:,}")
        lines.append(f"  Total time:       {self.total_elapsed_seconds:.3f}s")
        lines.append(f"{'─'*60}")

        if self.step_metrics:
            lines.append("  Pipeline Steps:")
            for step in self.step_metrics:
                icon: str = "✓" if step.success else "✗"
                lines.append(
                    f"    {icon} {step.step_name:<28s} "
                    f"{step.elapsed_seconds:>7.3f}s  "
                    f"{step.detail}"
                )

        sections: List[Tuple[str, List[str], str]] = [
            ("Validation Errors", self.validation_errors, "✗"),
            ("Validation Warnings", self.validation_warnings, "⚠"),
            ("Generation Errors", self.generation_errors, "✗"),
            ("Export Errors", self.export_errors, "✗"),
        ]
        for title, items, icon in sections:
            if not items:
                continue
            lines.append(f"{'─'*60}")
            lines.append(f"  {title} ({len(items)}):")
            for item in items:
                lines.append(f"    {icon} {item}")

        lines.append(f"{'='*60}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Document loader helpers
# ---------------------------------------------------------------------------


def _load_json_file(path: Path) -> Dict[str, Any]:
    """Load and parse a JSON file. Raises ValueError on parse errors."""
    try:
        data: Any = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object at top level, got {type(data).__name__}.")
    return data


def _load_yaml_file(path: Path) -> Dict[str, Any]:
    """Load and parse a YAML file. Raises ValueError on parse errors."""
    try:
        data: Any = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"Expected a YAML mapping at top level, got {type(data).__name__}.")
    return data


def load_schema_file(path: Path) -> Dict[str, Any]:
    """
    Load a schema document (JSON or YAML), dispatching on the file extension.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If the file can't be parsed.
    """
    if not path.exists():
        raise FileNotFoundError(f"Schema file not found: {path}")
    if not path.is_file():
        raise ValueError(f"Schema path is not a file: {path}")

    suffix: str = path.suffix.lower()
    if suffix in (".yaml", ".yml"):
        return _load_yaml_file(path)
    if suffix == ".json":
        return _load_json_file(path)

    logger.info("Unknown extension '%s' - trying JSON then YAML.", suffix)
    try:
        return _load_json_file(path)
    except ValueError:
        return _load_yaml_file(path)


def _is_editor_graph(data: Dict[str, Any]) -> bool:
    return isinstance(data.get("tables"), list)


def parse_raw_schema(raw: Dict[str, Any]) -> Tuple[NormalizedSchema, GeneratorSettings]:
    """
    Parse a decoded document into validated models.

    Accepted shapes:
        - a bare canonical schema (``tables`` is a mapping)
        - an editor graph (``tables`` is a list, plus ``relations``),
          which is normalized
        - either of the above under a ``schema`` key, next to an optional
          ``config`` (or ``generation_config`` / ``generator_config``) key

    Raises:
        ValueError: If no schema is found or validation fails.
    """
    schema_data: Any = raw.get("schema", raw)
    if not isinstance(schema_data, dict) or "tables" not in schema_data:
        raise ValueError(
            "Cannot find schema definition in input. "
            "Expected a top-level 'tables' or 'schema' key."
        )

    config_data: Optional[Dict[str, Any]] = None
    for key in _CONFIG_KEYS:
        if key in raw:
            config_data = raw[key] or {}
            break
    if config_data is None:
        logger.info("No generator config found in input - using defaults.")
        config_data = {}

    try:
        if _is_editor_graph(schema_data):
            graph: EditorGraph = EditorGraph.model_validate(schema_data)
            for collision in find_name_collisions(graph.tables):
                logger.warning("%s", collision.message)
            schema: NormalizedSchema = normalize(
                graph.tables, graph.relations, graph.positions
            )
        else:
            schema = NormalizedSchema.from_document(schema_data)
    except PydanticValidationError as exc:
        raise ValueError(f"Schema validation failed: {exc}") from exc

    try:
        settings: GeneratorSettings = GeneratorSettings.model_validate(config_data)
    except PydanticValidationError as exc:
        raise ValueError(f"Config validation failed: {exc}") from exc

    return schema, settings


# ---------------------------------------------------------------------------
# Renderer dispatch
# ---------------------------------------------------------------------------

RENDERERS = {
    OutputTarget.SQL.value: render_sql,
    OutputTarget.PRISMA.value: render_orm_schema,
}


# ---------------------------------------------------------------------------
# SchemaGenerator - Master orchestrator
# ---------------------------------------------------------------------------


class SchemaGenerator:
    """
    Pipeline orchestrator.

    Usage::

        generator = SchemaGenerator()
        report = generator.generate_from_file(Path("schema.yaml"), Path("out"))
        print(report.summary())

    The generator is reusable: create once, call ``generate()`` many times.
    """

    def __init__(self, settings: Optional[GeneratorSettings] = None) -> None:
        self._settings: GeneratorSettings = settings or GeneratorSettings()
        logger.debug(
            "SchemaGenerator initialised: targets=%s, strict=%s.",
            self._settings.targets,
            self._settings.strict_validation,
        )

    @property
    def settings(self) -> GeneratorSettings:
        return self._settings

    # -----------------------------------------------------------------
    # Public: generate from file
    # -----------------------------------------------------------------

    def generate_from_file(
        self,
        schema_path: Path,
        output_dir: Optional[Path] = None,
        *,
        settings_overrides: Optional[Dict[str, Any]] = None,
    ) -> GenerationReport:
        """
        Full pipeline: load file → parse → validate → guard → render → write.

        Settings come from the document's config section, with
        *settings_overrides* applied on top.
        """
        report: GenerationReport = GenerationReport(source=str(schema_path))
        start: float = time.perf_counter()

        with Timer("load_schema") as t_load:
            try:
                raw_data: Dict[str, Any] = load_schema_file(schema_path)
                if settings_overrides:
                    config_key: str = next(
                        (k for k in _CONFIG_KEYS if k in raw_data), "config"
                    )
                    merged: Dict[str, Any] = dict(raw_data.get(config_key) or {})
                    # camelCase keys take precedence during validation
                    merged.update({to_camel(k): v for k, v in settings_overrides.items()})
                    raw_data[config_key] = merged
                schema, settings = parse_raw_schema(raw_data)
            except (FileNotFoundError, ValueError) as exc:
                report.generation_errors.append(str(exc))
                report.failed_stage = STAGE_INPUT
                report.step_metrics.append(GenerationStepMetric(
                    step_name="Load Schema File",
                    success=False,
                    elapsed_seconds=t_load.elapsed,
                    detail=type(exc).__name__,
                ))
                return self._finalise_report(report, time.perf_counter() - start)

        report.step_metrics.append(GenerationStepMetric(
            step_name="Load Schema File",
            success=True,
            elapsed_seconds=t_load.elapsed,
            detail=f"{schema.table_count} tables from {schema_path.name}",
        ))
        logger.info("Loaded %r from %s.", schema, schema_path)

        return SchemaGenerator(settings)._run_pipeline(schema, output_dir, report, start)

    # -----------------------------------------------------------------
    # Public: generate from an in-memory schema
    # -----------------------------------------------------------------

    def generate(
        self,
        schema: NormalizedSchema,
        output_dir: Optional[Path] = None,
    ) -> GenerationReport:
        """
        Run the pipeline on an already-parsed schema.

        When *output_dir* is None nothing is written; the rendered text is
        still available in ``report.artifacts``.
        """
        report: GenerationReport = GenerationReport()
        return self._run_pipeline(schema, output_dir, report, time.perf_counter())

    # -----------------------------------------------------------------
    # Internal: master pipeline
    # -----------------------------------------------------------------

    def _run_pipeline(
        self,
        schema: NormalizedSchema,
        output_dir: Optional[Path],
        report: GenerationReport,
        start: float,
    ) -> GenerationReport:
        report.total_tables = schema.table_count
        if output_dir is not None:
            report.output_directory = str(output_dir.resolve())

        if not self._step_validate(schema, report) and self._settings.strict_validation:
            report.failed_stage = STAGE_VALIDATION
            return self._finalise_report(report, time.perf_counter() - start)

        if not self._step_guard(schema, report):
            report.failed_stage = STAGE_GENERATION
            return self._finalise_report(report, time.perf_counter() - start)

        self._step_render(schema, report)
        if report.generation_errors:
            report.failed_stage = STAGE_GENERATION
            return self._finalise_report(report, time.perf_counter() - start)

        if output_dir is not None:
            self._step_export(output_dir, report)
            if report.export_errors:
                report.failed_stage = STAGE_EXPORT

        return self._finalise_report(report, time.perf_counter() - start)

    # -----------------------------------------------------------------
    # Pipeline step: Validation
    # -----------------------------------------------------------------

    def _step_validate(self, schema: NormalizedSchema, report: GenerationReport) -> bool:
        """Run the advisory validator.  Returns True when there are no errors."""
        with Timer("validation") as t:
            result: ValidationResult = validate_schema(schema)

        report.validation = result
        report.validation_errors.extend(str(e) for e in result.errors)
        report.validation_warnings.extend(str(w) for w in result.warnings)

        if result.error_count:
            detail: str = f"{result.error_count} error(s)"
        elif result.warning_count:
            detail = f"{result.warning_count} warning(s)"
        else:
            detail = "all checks passed"

        report.step_metrics.append(GenerationStepMetric(
            step_name="Validate Schema",
            success=result.valid,
            elapsed_seconds=t.elapsed,
            detail=detail,
        ))

        if not result.valid:
            log = logger.error if self._settings.strict_validation else logger.warning
            log("Validation failed with %d error(s) in %.3fs.", result.error_count, t.elapsed)
            for err in result.errors:
                log("  ✗ %s", err)
            return False

        for warn in result.warnings:
            logger.warning("  ⚠ %s", warn)
        return True

    # -----------------------------------------------------------------
    # Pipeline step: Generation guard
    # -----------------------------------------------------------------

    def _step_guard(self, schema: NormalizedSchema, report: GenerationReport) -> bool:
        with Timer("guard") as t:
            try:
                assert_generation_ready(schema)
                error: Optional[GenerationGuardError] = None
            except GenerationGuardError as exc:
                error = exc

        if error is not None:
            report.generation_errors.extend(str(v) for v in error.violations)

        report.step_metrics.append(GenerationStepMetric(
            step_name="Generation Guard",
            success=error is None,
            elapsed_seconds=t.elapsed,
            detail=f"{len(error.violations)} violation(s)" if error else "ready",
        ))
        return error is None

    # -----------------------------------------------------------------
    # Pipeline step: Rendering
    # -----------------------------------------------------------------

    def _step_render(self, schema: NormalizedSchema, report: GenerationReport) -> None:
        for target in self._settings.targets:
            renderer = RENDERERS[target]
            with Timer(f"render_{target}") as t:
                try:
                    content: str = renderer(schema)
                except GenerationGuardError as exc:
                    report.generation_errors.append(str(exc))
                    content = ""

            report.artifacts[target] = content
            report.total_lines += count_lines(content)
            report.step_metrics.append(GenerationStepMetric(
                step_name=f"Render {target}",
                success=bool(content) or not schema.tables,
                elapsed_seconds=t.elapsed,
                detail=f"{count_lines(content)} lines",
            ))

    # -----------------------------------------------------------------
    # Pipeline step: Export
    # -----------------------------------------------------------------

    def _step_export(self, output_dir: Path, report: GenerationReport) -> None:
        """Write every rendered artifact below *output_dir*."""
        with Timer("export") as t:
            for target, content in report.artifacts.items():
                path: Path = output_dir / self._settings.filename_for(target)
                try:
                    report.total_bytes += write_file(path, content + "\n")
                except OSError as exc:
                    report.export_errors.append(f"{path}: {exc}")
                    logger.error("Failed to write %s: %s", path, exc)
                    continue
                report.written_files.append(str(path))
                report.total_files += 1

        report.step_metrics.append(GenerationStepMetric(
            step_name="Export to Filesystem",
            success=not report.export_errors,
            elapsed_seconds=t.elapsed,
            detail=f"{report.total_files} files, {report.total_bytes:,} bytes",
        ))
        logger.info("Export complete: %d file(s) to %s.", report.total_files, output_dir)

    # -----------------------------------------------------------------
    # Internal: finalise report
    # -----------------------------------------------------------------

    def _finalise_report(self, report: GenerationReport, total_elapsed: float) -> GenerationReport:
        report.total_elapsed_seconds = total_elapsed
        report.success = report.failed_stage is None
        return report


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "SchemaGenerator",
    "GenerationReport",
    "GenerationStepMetric",
    "load_schema_file",
    "parse_raw_schema",
    "STAGE_INPUT",
    "STAGE_VALIDATION",
    "STAGE_GENERATION",
    "STAGE_EXPORT",
]

logger.debug("schemaforge.generator loaded.")
