# File: schemaforge/store.py
"""
SchemaForge - Editor State Container
=====================================
Holds the mutable side of the system, the identifier-keyed editor graph, as a
sequence of immutable ``EditorState`` snapshots.  Every transition builds a
new snapshot and swaps it in; nothing is mutated in place.

Any transition that changes tables, columns, relations or positions clears
``is_normalized``.  Transitions that name an unknown table, column or
relation leave the state untouched.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field

from schemaforge.denormalizer import denormalize
from schemaforge.models import (
    Column,
    ColumnType,
    EditorGraph,
    NormalizedSchema,
    Position,
    Relation,
    Table,
)
from schemaforge.normalizer import find_name_collisions, normalize
from schemaforge.utils import new_id
from schemaforge.validators import ValidationResult, validate_schema

logger: logging.Logger = logging.getLogger("schemaforge.store")


class EditorState(BaseModel):
    """One immutable snapshot of the editor."""

    model_config = ConfigDict(frozen=True)

    tables: Tuple[Table, ...] = ()
    relations: Tuple[Relation, ...] = ()
    positions: Dict[str, Position] = Field(default_factory=dict)
    is_normalized: bool = False

    def get_table(self, table_id: str) -> Optional[Table]:
        for table in self.tables:
            if table.id == table_id:
                return table
        return None

    def get_relation(self, relation_id: str) -> Optional[Relation]:
        for relation in self.relations:
            if relation.id == relation_id:
                return relation
        return None


def _replace(model: BaseModel, changes: Mapping[str, Any], protected: str = "id") -> Any:
    """Re-validate *model* with *changes* applied."""
    fields = type(model).model_fields
    unknown: List[str] = [k for k in changes if k not in fields]
    if unknown:
        raise ValueError(f"Unknown field(s) for {type(model).__name__}: {unknown}")
    if protected in changes:
        raise ValueError(f"'{protected}' cannot be changed.")
    data: Dict[str, Any] = model.model_dump()
    data.update(changes)
    return type(model).model_validate(data)


class SchemaStore:
    """
    Editor state plus the transitions allowed on it.

    Usage:
        store = SchemaStore()
        users = store.add_table("users")
        store.add_column(users, name="id", type="uuid", primary_key=True)
        schema = store.normalized_schema()
    """

    def __init__(self, state: Optional[EditorState] = None) -> None:
        self._state: EditorState = state or EditorState()

    @property
    def state(self) -> EditorState:
        return self._state

    def _commit(self, **changes: Any) -> None:
        changes.setdefault("is_normalized", False)
        self._state = self._state.model_copy(update=changes)

    # -- Tables -------------------------------------------------------------

    def add_table(self, name: str = "new_table") -> str:
        table: Table = Table(id=new_id(), name=name, columns=[])
        self._commit(tables=self._state.tables + (table,))
        logger.debug("Added table %s (%s).", table.id, name)
        return table.id

    def update_table_name(self, table_id: str, name: str) -> None:
        table: Optional[Table] = self._state.get_table(table_id)
        if table is None:
            logger.debug("update_table_name: unknown table %s.", table_id)
            return
        renamed: Table = table.model_copy(update={"name": name})
        self._commit(tables=tuple(renamed if t.id == table_id else t for t in self._state.tables))

    def delete_table(self, table_id: str) -> None:
        if self._state.get_table(table_id) is None:
            logger.debug("delete_table: unknown table %s.", table_id)
            return
        positions: Dict[str, Position] = {
            k: v for k, v in self._state.positions.items() if k != table_id
        }
        self._commit(
            tables=tuple(t for t in self._state.tables if t.id != table_id),
            relations=tuple(r for r in self._state.relations if not r.touches_table(table_id)),
            positions=positions,
        )

    def move_table(self, table_id: str, x: float, y: float) -> None:
        if self._state.get_table(table_id) is None:
            logger.debug("move_table: unknown table %s.", table_id)
            return
        positions: Dict[str, Position] = dict(self._state.positions)
        positions[table_id] = Position(x=x, y=y)
        self._commit(positions=positions)

    # -- Columns ------------------------------------------------------------

    def add_column(
        self,
        table_id: str,
        name: str = "column_name",
        type: str = ColumnType.VARCHAR.value,
        primary_key: bool = False,
        nullable: bool = False,
        unique: bool = False,
    ) -> Optional[str]:
        table: Optional[Table] = self._state.get_table(table_id)
        if table is None:
            logger.debug("add_column: unknown table %s.", table_id)
            return None
        column: Column = Column(
            id=new_id(),
            name=name,
            type=type,
            primary_key=primary_key,
            nullable=nullable,
            unique=unique,
        )
        grown: Table = table.model_copy(update={"columns": [*table.columns, column]})
        self._commit(tables=tuple(grown if t.id == table_id else t for t in self._state.tables))
        return column.id

    def update_column(self, table_id: str, column_id: str, **changes: Any) -> None:
        """
        Apply *changes* (snake_case field names) to one column.

        Raises:
            ValueError: for unknown fields, an attempt to change ``id``, or
                values that fail model validation.
        """
        table: Optional[Table] = self._state.get_table(table_id)
        column: Optional[Column] = table.get_column(column_id) if table else None
        if table is None or column is None:
            logger.debug("update_column: unknown column %s.%s.", table_id, column_id)
            return
        updated: Column = _replace(column, changes)
        columns: List[Column] = [updated if c.id == column_id else c for c in table.columns]
        changed: Table = table.model_copy(update={"columns": columns})
        self._commit(tables=tuple(changed if t.id == table_id else t for t in self._state.tables))

    def delete_column(self, table_id: str, column_id: str) -> None:
        table: Optional[Table] = self._state.get_table(table_id)
        if table is None or table.get_column(column_id) is None:
            logger.debug("delete_column: unknown column %s.%s.", table_id, column_id)
            return
        columns: List[Column] = [c for c in table.columns if c.id != column_id]
        shrunk: Table = table.model_copy(update={"columns": columns})
        self._commit(
            tables=tuple(shrunk if t.id == table_id else t for t in self._state.tables),
            relations=tuple(
                r for r in self._state.relations if not r.touches_column(table_id, column_id)
            ),
        )

    # -- Relations ----------------------------------------------------------

    def add_relation(
        self,
        from_table_id: str,
        from_column_id: str,
        to_table_id: str,
        to_column_id: str,
    ) -> str:
        """Add a PK (``from``) → FK (``to``) edge.  Endpoints are not checked."""
        relation: Relation = Relation(
            id=new_id(),
            from_table_id=from_table_id,
            from_column_id=from_column_id,
            to_table_id=to_table_id,
            to_column_id=to_column_id,
        )
        self._commit(relations=self._state.relations + (relation,))
        return relation.id

    def update_relation(self, relation_id: str, **changes: Any) -> None:
        relation: Optional[Relation] = self._state.get_relation(relation_id)
        if relation is None:
            logger.debug("update_relation: unknown relation %s.", relation_id)
            return
        updated: Relation = _replace(relation, changes)
        self._commit(
            relations=tuple(updated if r.id == relation_id else r for r in self._state.relations)
        )

    def remove_relation(self, relation_id: str) -> None:
        if self._state.get_relation(relation_id) is None:
            logger.debug("remove_relation: unknown relation %s.", relation_id)
            return
        self._commit(relations=tuple(r for r in self._state.relations if r.id != relation_id))

    # -- Loading ------------------------------------------------------------

    def load_schema(
        self,
        tables: Sequence[Table],
        relations: Sequence[Relation],
        positions: Optional[Mapping[str, Position]] = None,
    ) -> None:
        """Replace the whole editor graph."""
        self._state = EditorState(
            tables=tuple(tables),
            relations=tuple(relations),
            positions=dict(positions or {}),
        )
        logger.info(
            "Loaded %d table(s) and %d relation(s).", len(tables), len(relations)
        )

    def load_document(self, schema: NormalizedSchema) -> None:
        """Replace the editor graph with a denormalized canonical schema."""
        graph: EditorGraph = denormalize(schema)
        self.load_schema(graph.tables, graph.relations, graph.positions)

    def mark_normalized(self, flag: bool = True) -> None:
        self._state = self._state.model_copy(update={"is_normalized": flag})

    # -- Derived views ------------------------------------------------------

    def graph(self) -> EditorGraph:
        return EditorGraph(
            tables=list(self._state.tables),
            relations=list(self._state.relations),
            positions=dict(self._state.positions) or None,
        )

    def normalized_schema(self) -> NormalizedSchema:
        return normalize(self._state.tables, self._state.relations, self._state.positions)

    def validate(self) -> ValidationResult:
        """Name collisions on the editor graph followed by the schema rules."""
        result: ValidationResult = ValidationResult()
        result.extend(find_name_collisions(self._state.tables))
        result.merge(validate_schema(self.normalized_schema()))
        return result


__all__: List[str] = ["EditorState", "SchemaStore"]
