# File: schemaforge/prisma_renderer.py
"""
SchemaForge - Prisma Schema Renderer
=====================================
Transforms a generation-ready ``NormalizedSchema`` into Prisma ``model``
blocks (the models section only, no ``datasource`` or ``generator`` block).

Naming:
    - model name: each underscore-separated word of the table name is
      singularised, then capitalised (``order_items`` → ``OrderItem``)
    - scalar field: camelCase of the column name (``created_at`` → ``createdAt``)
    - foreign-key scalar field: referenced model + ``Id`` (``userId``)
    - relation field: referenced model with a lower-case first letter
    - back-relation field: plural of the referencing model (``orderItems``)

Any of these that would clash with a name already taken in the model falls
back to a column-derived or suffixed alternative.  When one table references
another more than once, every such relation is named ``<Model><Field>`` and
gets its own back-relation (``editorPosts Post[] @relation("PostEditor")``).

A field whose name differs from its column carries ``@map("column")``; every
model carries ``@@map("table")``.

Models are emitted in table-name order and fields in column order, so the
output is byte-stable for a given schema.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from typing import Dict, List, Optional, Set, Tuple

from schemaforge.guard import assert_generation_ready
from schemaforge.models import (
    ColumnType,
    DefaultKind,
    NormalizedColumn,
    NormalizedSchema,
    NormalizedTable,
)
from schemaforge.utils import lower_first, to_camel_case, to_model_name, to_plural

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("schemaforge.prisma_renderer")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_INDENT: str = "  "

_PRISMA_TYPE_MAP: Dict[str, str] = {
    "int": "Int",
    "varchar": "String",
    "text": "String",
    "boolean": "Boolean",
    "timestamp": "DateTime",
    "uuid": "String",
}

_DEFAULT_FUNCTIONS: Dict[str, str] = {
    DefaultKind.AUTOINCREMENT.value: "autoincrement()",
    DefaultKind.UUID.value: "uuid()",
    DefaultKind.NOW.value: "now()",
}

_INT_LITERAL_RE: re.Pattern[str] = re.compile(r"^-?\d+$")


def map_type(declared: str) -> str:
    """Map a declared column type to Prisma; unknown types pass through."""
    return _PRISMA_TYPE_MAP.get(declared.lower(), declared)


def quote_string(value: str) -> str:
    escaped: str = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def default_literal(column: NormalizedColumn) -> str:
    """
    Prisma literal for a ``value`` default.

    Integer literals on ``int`` columns and ``true``/``false`` on ``boolean``
    columns are emitted bare; everything else becomes a quoted string.
    """
    value: str = column.default.value or ""
    declared: str = column.type.lower()
    if declared == ColumnType.INT.value and _INT_LITERAL_RE.match(value):
        return value
    if declared == ColumnType.BOOLEAN.value and value in ("true", "false"):
        return value
    return quote_string(value)


def _first_unused(candidates: List[str], used: Set[str]) -> str:
    """First non-empty candidate not in *used*; numbered after the last one otherwise."""
    for candidate in candidates:
        if candidate and candidate not in used:
            return candidate
    last: str = candidates[-1]
    n: int = 2
    while f"{last}{n}" in used:
        n += 1
    return f"{last}{n}"


# ---------------------------------------------------------------------------
# PrismaRenderer class
# ---------------------------------------------------------------------------


class PrismaRenderer:
    """
    Renders every model of one schema.

    Field names are resolved for the whole schema up front because a
    relation's ``references: [...]`` names a field of another model, and a
    named relation must carry the same name on both of its sides.
    The schema must already have passed the generation guard.
    """

    def __init__(self, schema: NormalizedSchema) -> None:
        self._schema: NormalizedSchema = schema
        self._model_names: Dict[str, str] = {
            name: to_model_name(name) for name in schema.tables
        }
        self._field_names: Dict[str, Dict[str, str]] = {
            name: self._resolve_field_names(table)
            for name, table in schema.tables.items()
        }
        self._relation_fields: Dict[str, Dict[str, str]] = {
            name: self._resolve_relation_fields(name, table)
            for name, table in schema.tables.items()
        }
        self._pair_counts: Counter[Tuple[str, str]] = Counter(
            (name, column.foreign_key.table)
            for name, table in schema.tables.items()
            for column in table.columns.values()
            if column.foreign_key is not None
        )
        self._back_references: Dict[str, List[Tuple[str, str]]] = self._build_back_references()
        logger.debug(
            "PrismaRenderer initialised for %d model(s).", len(self._model_names)
        )

    # -- Name resolution ----------------------------------------------------

    def _resolve_field_names(self, table: NormalizedTable) -> Dict[str, str]:
        plain: Set[str] = {
            to_camel_case(c.name)
            for c in table.columns.values()
            if c.foreign_key is None
        }
        used: Set[str] = set()
        names: Dict[str, str] = {}

        for key, column in table.columns.items():
            field: str = to_camel_case(column.name)
            if column.foreign_key is not None:
                ref_model: str = to_model_name(column.foreign_key.table)
                candidate: str = lower_first(ref_model) + "Id"
                if candidate not in used and (candidate not in plain or candidate == field):
                    field = candidate
            names[key] = field
            used.add(field)

        return names

    def _resolve_relation_fields(self, table_name: str, table: NormalizedTable) -> Dict[str, str]:
        used: Set[str] = set(self._field_names[table_name].values())
        names: Dict[str, str] = {}

        for key, column in table.columns.items():
            if column.foreign_key is None:
                continue
            base: str = column.name[:-3] if column.name.endswith("_id") else column.name
            field: str = _first_unused(
                [
                    lower_first(self._model_names[column.foreign_key.table]),
                    to_camel_case(base),
                    to_camel_case(base) + "Ref",
                ],
                used,
            )
            names[key] = field
            used.add(field)

        return names

    def _build_back_references(self) -> Dict[str, List[Tuple[str, str]]]:
        """Referenced table → (referencing table, FK column) pairs, column order."""
        back: Dict[str, List[Tuple[str, str]]] = {}
        for name, table in self._schema.tables.items():
            for key, column in table.columns.items():
                if column.foreign_key is not None:
                    back.setdefault(column.foreign_key.table, []).append((name, key))
        return back

    def relation_name(self, table_name: str, column_name: str) -> Optional[str]:
        """
        ``@relation`` name for a foreign key, or None when the table pair is
        linked only once.  Repeated pairs are ambiguous without a name.
        """
        column: NormalizedColumn = self._schema.tables[table_name].columns[column_name]
        if self._pair_counts[(table_name, column.foreign_key.table)] < 2:
            return None
        field: str = self._relation_fields[table_name][column_name]
        return self.model_name(table_name) + field[:1].upper() + field[1:]

    def model_name(self, table_name: str) -> str:
        return self._model_names[table_name]

    def field_name(self, table_name: str, column_name: str) -> str:
        return self._field_names[table_name][column_name]

    # -- Field lines --------------------------------------------------------

    def _scalar_field(
        self, table_name: str, key: str, column: NormalizedColumn, composite: bool
    ) -> str:
        field: str = self.field_name(table_name, key)
        marker: str = "?" if column.nullable else ""
        parts: List[str] = [field, f"{map_type(column.type)}{marker}"]

        if field != column.name:
            parts.append(f'@map("{column.name}")')
        if column.primary_key and not composite:
            parts.append("@id")
        if column.unique:
            parts.append("@unique")

        if column.default is not None:
            kind: str = column.default.kind
            if kind in _DEFAULT_FUNCTIONS:
                parts.append(f"@default({_DEFAULT_FUNCTIONS[kind]})")
            elif kind == DefaultKind.VALUE and column.default.value is not None:
                parts.append(f"@default({default_literal(column)})")

        return " ".join(parts)

    def _relation_field(self, table_name: str, key: str, column: NormalizedColumn) -> str:
        fk = column.foreign_key
        ref_model: str = self.model_name(fk.table)
        relation: Optional[str] = self.relation_name(table_name, key)
        name_arg: str = f'"{relation}", ' if relation else ""

        marker: str = "?" if column.nullable else ""
        return (
            f"{self._relation_fields[table_name][key]} {ref_model}{marker} "
            f"@relation({name_arg}fields: [{self.field_name(table_name, key)}], "
            f"references: [{self.field_name(fk.table, fk.column)}])"
        )

    def _back_relation_field(self, referencing: str, key: str, used: Set[str]) -> str:
        ref_model: str = self.model_name(referencing)
        plural: str = to_plural(lower_first(ref_model))
        relation: Optional[str] = self.relation_name(referencing, key)

        if relation is None:
            field: str = _first_unused([plural, plural + "List"], used)
            used.add(field)
            return f"{field} {ref_model}[]"

        prefix: str = self._relation_fields[referencing][key]
        field = _first_unused([prefix + plural[:1].upper() + plural[1:]], used)
        used.add(field)
        return f'{field} {ref_model}[] @relation("{relation}")'

    # -- Model --------------------------------------------------------------

    def render_model(self, table_name: str) -> str:
        """Render the ``model`` block for one table."""
        table: NormalizedTable = self._schema.tables[table_name]
        primary_keys: List[str] = table.primary_key_names()
        composite: bool = len(primary_keys) > 1

        lines: List[str] = [f"model {self.model_name(table_name)} {{"]
        used: Set[str] = set(self._field_names[table_name].values())
        used.update(self._relation_fields[table_name].values())

        for key, column in table.columns.items():
            lines.append(_INDENT + self._scalar_field(table_name, key, column, composite))

        for key, column in table.columns.items():
            if column.foreign_key is not None:
                lines.append(_INDENT + self._relation_field(table_name, key, column))

        for referencing, key in self._back_references.get(table_name, []):
            lines.append(_INDENT + self._back_relation_field(referencing, key, used))

        lines.append(f'{_INDENT}@@map("{table_name}")')
        if composite:
            pk_fields: str = ", ".join(self.field_name(table_name, k) for k in primary_keys)
            lines.append(f"{_INDENT}@@id([{pk_fields}])")
        lines.append("}")
        return "\n".join(lines)

    def render(self) -> str:
        """Render every model, sorted by table name, separated by a blank line."""
        models: List[str] = [self.render_model(name) for name in sorted(self._schema.tables)]
        return "\n\n".join(models)


def render_orm_schema(schema: NormalizedSchema) -> str:
    """
    Render Prisma models for *schema*.

    Raises:
        GenerationGuardError: if any foreign key is misplaced or broken.
    """
    assert_generation_ready(schema)

    output: str = PrismaRenderer(schema).render()
    logger.info("Rendered %d Prisma model(s).", len(schema.tables))
    return output


__all__: List[str] = [
    "map_type",
    "default_literal",
    "PrismaRenderer",
    "render_orm_schema",
]

logger.debug("schemaforge.prisma_renderer loaded - %d public symbols.", len(__all__))
