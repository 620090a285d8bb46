# File: schemaforge/sql_renderer.py
"""
SchemaForge - PostgreSQL DDL Renderer
======================================
Turns a generation-ready ``NormalizedSchema`` into a sequence of
``CREATE TABLE`` statements.

Tables are emitted in foreign-key dependency order (referenced tables first),
computed by a depth-first topological visit whose outer loop follows the
schema's table order.  Output is byte-identical across runs for the same
input.

All string assembly uses the ``List[str]`` + ``join()`` pattern.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Set

from schemaforge.guard import assert_generation_ready
from schemaforge.models import (
    DefaultKind,
    NormalizedColumn,
    NormalizedSchema,
    NormalizedTable,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("schemaforge.sql_renderer")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_INDENT: str = "  "

_POSTGRES_TYPE_MAP: Dict[str, str] = {
    "int": "INT",
    "varchar": "VARCHAR",
    "text": "TEXT",
    "boolean": "BOOLEAN",
    "timestamp": "TIMESTAMP",
    "uuid": "UUID",
}

_SERIAL_TYPE: str = "SERIAL"

_DEFAULT_EXPRESSIONS: Dict[str, str] = {
    DefaultKind.UUID.value: "gen_random_uuid()",
    DefaultKind.NOW.value: "now()",
}


# ---------------------------------------------------------------------------
# Column helpers
# ---------------------------------------------------------------------------


def map_type(declared: str) -> str:
    """Map a declared column type to PostgreSQL; unknown types are upper-cased."""
    return _POSTGRES_TYPE_MAP.get(declared.lower(), declared.upper())


def quote_literal(value: str) -> str:
    """Single-quote *value*, doubling embedded quotes."""
    escaped: str = value.replace("'", "''")
    return f"'{escaped}'"


def _default_clause(column: NormalizedColumn) -> Optional[str]:
    if column.default is None:
        return None
    kind: str = column.default.kind
    if kind in _DEFAULT_EXPRESSIONS:
        return f"DEFAULT {_DEFAULT_EXPRESSIONS[kind]}"
    if kind == DefaultKind.VALUE and column.default.value is not None:
        return f"DEFAULT {quote_literal(column.default.value)}"
    # autoincrement is carried by the SERIAL type
    return None


def column_definition(column: NormalizedColumn, inline_primary_key: bool = True) -> str:
    """
    Build one column clause.

    Order: name, type (``SERIAL`` for autoincrement), DEFAULT, UNIQUE,
    NOT NULL, PRIMARY KEY.
    """
    parts: List[str] = [column.name]

    if column.default_kind == DefaultKind.AUTOINCREMENT:
        parts.append(_SERIAL_TYPE)
    else:
        parts.append(map_type(column.type))

    default: Optional[str] = _default_clause(column)
    if default:
        parts.append(default)
    if column.unique:
        parts.append("UNIQUE")
    if not column.nullable:
        parts.append("NOT NULL")
    if column.primary_key and inline_primary_key:
        parts.append("PRIMARY KEY")

    return " ".join(parts)


# ---------------------------------------------------------------------------
# Dependency ordering
# ---------------------------------------------------------------------------


def order_tables(schema: NormalizedSchema) -> List[str]:
    """
    Return table keys with every referenced table before its dependents.

    A dependency cycle does not fail the sort: the visit stops descending
    into a table that is already in progress and a warning is logged.
    Self-references are not dependencies.
    """
    dependencies: Dict[str, List[str]] = {}
    for name, table in schema.tables.items():
        deps: List[str] = []
        for column in table.columns.values():
            fk = column.foreign_key
            if fk is None or fk.table == name or fk.table not in schema.tables:
                continue
            if fk.table not in deps:
                deps.append(fk.table)
        dependencies[name] = deps

    ordered: List[str] = []
    visited: Set[str] = set()
    visiting: Set[str] = set()

    def visit(name: str) -> None:
        if name in visited:
            return
        if name in visiting:
            logger.warning(
                "Dependency cycle through table '%s'; emitting in best-effort order.",
                name,
            )
            return

        visiting.add(name)
        for dep in dependencies[name]:
            visit(dep)
        visiting.discard(name)
        visited.add(name)
        ordered.append(name)

    for name in schema.tables:
        visit(name)

    return ordered


# ---------------------------------------------------------------------------
# Statement rendering
# ---------------------------------------------------------------------------


def render_table(table: NormalizedTable) -> str:
    """Render one ``CREATE TABLE`` statement."""
    primary_keys: List[str] = [
        c.name for c in table.columns.values() if c.primary_key
    ]
    composite: bool = len(primary_keys) > 1

    definitions: List[str] = [
        _INDENT + column_definition(column, inline_primary_key=not composite)
        for column in table.columns.values()
    ]

    if composite:
        definitions.append(f"{_INDENT}PRIMARY KEY ({', '.join(primary_keys)})")

    # FK-on-PK columns carry no explicit constraint
    for column in table.columns.values():
        fk = column.foreign_key
        if fk is not None and not column.primary_key:
            definitions.append(
                f"{_INDENT}FOREIGN KEY ({column.name}) REFERENCES {fk.table}({fk.column})"
            )

    lines: List[str] = [f"CREATE TABLE {table.name} ("]
    if definitions:
        lines.append(",\n".join(definitions))
    lines.append(");")
    return "\n".join(lines)


def render_sql(schema: NormalizedSchema) -> str:
    """
    Render PostgreSQL DDL for *schema*.

    Raises:
        GenerationGuardError: if any foreign key is misplaced or broken.
            Nothing is rendered in that case.
    """
    assert_generation_ready(schema)

    statements: List[str] = [
        render_table(schema.tables[name]) for name in order_tables(schema)
    ]
    logger.info("Rendered %d CREATE TABLE statement(s).", len(statements))
    return "\n\n".join(statements)


__all__: List[str] = [
    "map_type",
    "quote_literal",
    "column_definition",
    "order_tables",
    "render_table",
    "render_sql",
]

logger.debug("schemaforge.sql_renderer loaded - %d public symbols.", len(__all__))
