# File: schemaforge/denormalizer.py
"""
SchemaForge - Denormalizer
===========================
Rebuilds an editor graph from a canonical schema, e.g. when a saved project
is reopened.  Every table, column and relation receives a fresh identifier;
ids from any earlier session are never reused.

Relations are re-derived from the foreign-key metadata embedded on columns and
turned back into the editor's PK → FK direction.  A foreign key whose target
cannot be resolved is skipped so that one malformed reference does not block
loading the rest of the project.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional, Tuple

from schemaforge.models import (
    Column,
    EditorGraph,
    NormalizedSchema,
    Position,
    Relation,
    Table,
)
from schemaforge.utils import new_id

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("schemaforge.denormalizer")


def denormalize(
    schema: NormalizedSchema,
    id_factory: Callable[[], str] = new_id,
) -> EditorGraph:
    """
    Convert a ``NormalizedSchema`` into an ``EditorGraph``.

    Args:
        schema: Canonical schema, typically loaded from a saved document.
        id_factory: Source of fresh identifiers.  Must not repeat a value
            within one call.

    Returns:
        Editor graph with positions re-keyed by the new table ids.
    """
    tables: List[Table] = []
    # table key → (table id, column key → column id)
    id_maps: Dict[str, Tuple[str, Dict[str, str]]] = {}

    for table_key, table in schema.tables.items():
        table_id: str = id_factory()
        column_ids: Dict[str, str] = {}
        columns: List[Column] = []

        for column_key, column in table.columns.items():
            column_id: str = id_factory()
            column_ids[column_key] = column_id
            columns.append(
                Column(
                    id=column_id,
                    name=column.name,
                    type=column.type,
                    primary_key=column.primary_key,
                    nullable=column.nullable,
                    unique=column.unique,
                    default=column.default,
                )
            )

        tables.append(Table(id=table_id, name=table.name, columns=columns))
        id_maps[table_key] = (table_id, column_ids)

    relations: List[Relation] = []

    for table_key, table in schema.tables.items():
        fk_table_id, fk_column_ids = id_maps[table_key]

        for column_key, column in table.columns.items():
            if column.foreign_key is None:
                continue

            target: Optional[Tuple[str, Dict[str, str]]] = id_maps.get(
                column.foreign_key.table
            )
            if target is None:
                logger.warning(
                    "Skipping foreign key %s.%s: table '%s' does not exist.",
                    table_key,
                    column_key,
                    column.foreign_key.table,
                )
                continue

            pk_table_id, pk_column_ids = target
            pk_column_id: Optional[str] = pk_column_ids.get(column.foreign_key.column)
            if pk_column_id is None:
                logger.warning(
                    "Skipping foreign key %s.%s: column '%s.%s' does not exist.",
                    table_key,
                    column_key,
                    column.foreign_key.table,
                    column.foreign_key.column,
                )
                continue

            relations.append(
                Relation(
                    id=id_factory(),
                    from_table_id=pk_table_id,
                    from_column_id=pk_column_id,
                    to_table_id=fk_table_id,
                    to_column_id=fk_column_ids[column_key],
                )
            )

    positions: Dict[str, Position] = {}
    if schema.positions:
        for table_key, position in schema.positions.items():
            if table_key in id_maps:
                positions[id_maps[table_key][0]] = position

    graph: EditorGraph = EditorGraph(
        tables=tables,
        relations=relations,
        positions=positions or None,
    )
    logger.debug(
        "Denormalized %d table(s) and %d relation(s).", len(tables), len(relations)
    )
    return graph


__all__: List[str] = ["denormalize"]

logger.debug("schemaforge.denormalizer loaded.")
