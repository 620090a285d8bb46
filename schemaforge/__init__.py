# File: schemaforge/__init__.py
"""
SchemaForge - Relational Schema Pipeline
=========================================

Turns a visually edited relational schema into two deterministic,
internally consistent artifacts: a PostgreSQL DDL script and a Prisma
schema.

Architecture overview::

    ┌──────────────┐   normalize   ┌──────────────────┐   validate_schema
    │ Editor graph │──────────────▶│ NormalizedSchema │──────────────────▶ diagnostics
    │  (store.py)  │◀──────────────│   (models.py)    │
    └──────────────┘  denormalize  └────────┬─────────┘
                                            │ assert_generation_ready (guard.py)
                               ┌────────────┴────────────┐
                               ▼                         ▼
                        render_sql                render_orm_schema
                     (sql_renderer.py)          (prisma_renderer.py)

Usage::

    # As a library
    from schemaforge import NormalizedSchema, render_sql, validate_schema
    schema = NormalizedSchema.from_document(document)
    if validate_schema(schema).valid:
        ddl = render_sql(schema)

    # From the command line
    python -m schemaforge --schema schema.yaml --output ./out -v
"""

from __future__ import annotations

__version__: str = "1.0.0"
__license__: str = "MIT"

from schemaforge.models import (
    Column,
    ColumnDefault,
    ColumnType,
    DefaultKind,
    EditorGraph,
    ForeignKeyRef,
    GeneratorSettings,
    NormalizedColumn,
    NormalizedSchema,
    NormalizedTable,
    OutputTarget,
    Position,
    Relation,
    Table,
)
from schemaforge.normalizer import find_name_collisions, normalize
from schemaforge.denormalizer import denormalize
from schemaforge.validators import ErrorCode, ValidationError, ValidationResult, validate_schema
from schemaforge.guard import GenerationGuardError, GuardViolation, assert_generation_ready
from schemaforge.sql_renderer import render_sql
from schemaforge.prisma_renderer import PrismaRenderer, render_orm_schema
from schemaforge.store import EditorState, SchemaStore
from schemaforge.generator import GenerationReport, SchemaGenerator

# ---------------------------------------------------------------------------
# Public API surface
# ---------------------------------------------------------------------------

__all__: list[str] = [
    "__version__",
    "__license__",
    # Models
    "Column",
    "ColumnDefault",
    "ColumnType",
    "DefaultKind",
    "EditorGraph",
    "ForeignKeyRef",
    "GeneratorSettings",
    "NormalizedColumn",
    "NormalizedSchema",
    "NormalizedTable",
    "OutputTarget",
    "Position",
    "Relation",
    "Table",
    # Pipeline
    "normalize",
    "find_name_collisions",
    "denormalize",
    "ErrorCode",
    "ValidationError",
    "ValidationResult",
    "validate_schema",
    "GenerationGuardError",
    "GuardViolation",
    "assert_generation_ready",
    "render_sql",
    "PrismaRenderer",
    "render_orm_schema",
    # Editor state
    "EditorState",
    "SchemaStore",
    # Orchestration
    "SchemaGenerator",
    "GenerationReport",
]
