# File: schemaforge/normalizer.py
"""
SchemaForge - Normalizer
=========================
Projects the identifier-keyed editor graph onto the name-keyed canonical
schema consumed by the validator and the renderers.

``normalize`` is total: orphaned relations (an endpoint whose table or column
no longer exists) are dropped, and tables or columns whose names collide
collapse into a single entry, the later one winning.  Because that collapse
loses data before the validator ever sees it, ``find_name_collisions`` reports
collisions on the editor graph itself.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Optional, Sequence, Set, Tuple

from schemaforge.models import (
    ForeignKeyRef,
    NormalizedColumn,
    NormalizedSchema,
    NormalizedTable,
    Position,
    Relation,
    Table,
)
from schemaforge.validators import ErrorCode, ValidationError

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("schemaforge.normalizer")

_ColumnKey = Tuple[str, str]


def normalize(
    tables: Sequence[Table],
    relations: Sequence[Relation],
    positions: Optional[Mapping[str, Position]] = None,
) -> NormalizedSchema:
    """
    Convert editor tables and relations into a ``NormalizedSchema``.

    Args:
        tables: Editor tables, columns in display order.
        relations: PK → FK edges between editor columns.
        positions: Optional canvas positions keyed by table id.

    Returns:
        Canonical schema with foreign-key metadata embedded on the
        referencing (``to``) column and positions re-keyed by table name.
    """
    table_names: Dict[str, str] = {}
    column_names: Dict[_ColumnKey, str] = {}

    for table in tables:
        table_names[table.id] = table.name
        for column in table.columns:
            column_names[(table.id, column.id)] = column.name

    # FK metadata keyed by the referencing (to) endpoint
    foreign_keys: Dict[_ColumnKey, ForeignKeyRef] = {}
    dropped: int = 0

    for relation in relations:
        source_table: Optional[str] = table_names.get(relation.from_table_id)
        source_column: Optional[str] = column_names.get(
            (relation.from_table_id, relation.from_column_id)
        )
        target_key: _ColumnKey = (relation.to_table_id, relation.to_column_id)

        if (
            source_table is None
            or source_column is None
            or relation.to_table_id not in table_names
            or target_key not in column_names
        ):
            dropped += 1
            logger.debug("Dropping orphaned relation %s.", relation.id)
            continue

        foreign_keys[target_key] = ForeignKeyRef(table=source_table, column=source_column)

    if dropped:
        logger.warning("Dropped %d orphaned relation(s) during normalization.", dropped)

    normalized_tables: Dict[str, NormalizedTable] = {}

    for table in tables:
        columns: Dict[str, NormalizedColumn] = {}
        for column in table.columns:
            if column.name in columns:
                logger.warning(
                    "Column name '%s' appears more than once in table '%s'; "
                    "the later column replaces the earlier one.",
                    column.name,
                    table.name,
                )
            columns[column.name] = NormalizedColumn(
                name=column.name,
                type=column.type,
                primary_key=column.primary_key,
                nullable=column.nullable,
                unique=column.unique,
                foreign_key=foreign_keys.get((table.id, column.id)),
                default=column.default,
            )

        if table.name in normalized_tables:
            logger.warning(
                "Table name '%s' appears more than once; the later table "
                "replaces the earlier one.",
                table.name,
            )
        normalized_tables[table.name] = NormalizedTable(name=table.name, columns=columns)

    named_positions: Dict[str, Position] = {}
    if positions:
        for table_id, position in positions.items():
            name: Optional[str] = table_names.get(table_id)
            if name is not None:
                named_positions[name] = position

    schema: NormalizedSchema = NormalizedSchema(
        tables=normalized_tables,
        positions=named_positions or None,
    )
    logger.debug("Normalized %r.", schema)
    return schema


def find_name_collisions(tables: Sequence[Table]) -> List[ValidationError]:
    """
    Report names that ``normalize`` would collapse.

    Table names must be distinct across the graph and column names distinct
    within their table (exact match, which is what the name-keyed mappings
    use).  Each entity after the first with a given name yields one error.
    """
    errors: List[ValidationError] = []
    seen_tables: Set[str] = set()

    for table in tables:
        if table.name in seen_tables:
            errors.append(
                ValidationError(
                    ErrorCode.TABLE_DUPLICATE,
                    f"Duplicate table name '{table.name}'. Only one of these "
                    f"tables will survive normalization.",
                    table=table.name,
                )
            )
        seen_tables.add(table.name)

        seen_columns: Set[str] = set()
        for column in table.columns:
            if column.name in seen_columns:
                errors.append(
                    ValidationError(
                        ErrorCode.COLUMN_DUPLICATE,
                        f"Duplicate column name '{column.name}' in table "
                        f"'{table.name}'. Only one of these columns will "
                        f"survive normalization.",
                        table=table.name,
                        column=column.name,
                    )
                )
            seen_columns.add(column.name)

    return errors


__all__: List[str] = ["normalize", "find_name_collisions"]

logger.debug("schemaforge.normalizer loaded.")
