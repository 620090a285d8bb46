"""
tests/test_normalizer.py
Unit tests for schemaforge.normalizer.

Tests cover:
- Table/column projection onto name-keyed mappings
- Foreign-key metadata placement on the referencing column
- Orphaned relation dropping
- Position re-keying
- Name collisions (collapse + detection)
"""

from __future__ import annotations

import logging
from typing import Any, Dict

import pytest

from schemaforge.models import EditorGraph, Relation, Table
from schemaforge.normalizer import find_name_collisions, normalize
from schemaforge.validators import ErrorCode


def _normalize(graph: EditorGraph):
    return normalize(graph.tables, graph.relations, graph.positions)


# ===========================================================================
# Tests for normalize
# ===========================================================================


class TestNormalize:
    """Projection of the editor graph onto the canonical schema."""

    def test_tables_keyed_by_name(self, editor_graph: EditorGraph) -> None:
        schema = _normalize(editor_graph)
        assert list(schema.tables) == ["users", "posts"]
        assert list(schema.tables["posts"].columns) == ["id", "user_id"]

    def test_column_flags_carried_over(self, editor_graph: EditorGraph) -> None:
        schema = _normalize(editor_graph)
        users_id = schema.get_column("users", "id")
        assert users_id.primary_key is True
        assert users_id.nullable is False
        assert users_id.type == "uuid"
        assert users_id.default.kind == "uuid"
        assert schema.get_column("users", "email").unique is True

    def test_foreign_key_on_referencing_column(self, editor_graph: EditorGraph) -> None:
        schema = _normalize(editor_graph)
        fk = schema.get_column("posts", "user_id").foreign_key
        assert fk is not None
        assert (fk.table, fk.column) == ("users", "id")
        assert schema.get_column("users", "id").foreign_key is None

    def test_positions_rekeyed_by_name(self, editor_graph: EditorGraph) -> None:
        schema = _normalize(editor_graph)
        assert set(schema.positions) == {"users"}
        assert (schema.positions["users"].x, schema.positions["users"].y) == (10, 20)

    def test_positions_omitted_when_absent(self, editor_graph: EditorGraph) -> None:
        schema = normalize(editor_graph.tables, editor_graph.relations)
        assert schema.positions is None
        assert "positions" not in schema.to_document()

    def test_positions_for_unknown_table_dropped(self, editor_graph: EditorGraph) -> None:
        schema = normalize(
            editor_graph.tables,
            editor_graph.relations,
            {"t_gone": editor_graph.positions["t_users"]},
        )
        assert schema.positions is None

    def test_deterministic(self, editor_graph: EditorGraph) -> None:
        assert _normalize(editor_graph) == _normalize(editor_graph)
        assert _normalize(editor_graph).to_document() == _normalize(editor_graph).to_document()

    def test_empty_graph(self) -> None:
        schema = normalize([], [])
        assert schema.tables == {}
        assert schema.table_count == 0


class TestOrphanedRelations:
    """Relations whose endpoints no longer resolve are dropped silently."""

    @pytest.mark.parametrize(
        "field, value",
        [
            ("from_table_id", "t_missing"),
            ("from_column_id", "c_missing"),
            ("to_table_id", "t_missing"),
            ("to_column_id", "c_missing"),
        ],
    )
    def test_orphan_dropped(self, editor_graph: EditorGraph, field: str, value: str) -> None:
        broken: Relation = editor_graph.relations[0].model_copy(update={field: value})
        schema = normalize(editor_graph.tables, [broken])
        assert schema.get_column("posts", "user_id").foreign_key is None
        assert schema.total_foreign_keys == 0

    def test_column_id_resolved_within_its_own_table(self, editor_graph: EditorGraph) -> None:
        # A valid column id paired with the wrong table does not resolve.
        broken: Relation = editor_graph.relations[0].model_copy(
            update={"from_table_id": "t_posts"}
        )
        schema = normalize(editor_graph.tables, [broken])
        assert schema.total_foreign_keys == 0

    def test_orphans_logged(self, editor_graph: EditorGraph, caplog: pytest.LogCaptureFixture) -> None:
        broken: Relation = editor_graph.relations[0].model_copy(update={"to_table_id": "t_x"})
        with caplog.at_level(logging.WARNING, logger="schemaforge.normalizer"):
            normalize(editor_graph.tables, [broken])
        assert "orphaned" in caplog.text


class TestNameCollisions:
    """Duplicate names collapse during normalization and are detectable beforehand."""

    def _duplicate_tables(self, editor_graph_dict: Dict[str, Any]) -> EditorGraph:
        editor_graph_dict["tables"][1]["name"] = "users"
        return EditorGraph.model_validate(editor_graph_dict)

    def test_later_table_wins(self, editor_graph_dict: Dict[str, Any]) -> None:
        graph = self._duplicate_tables(editor_graph_dict)
        schema = _normalize(graph)
        assert list(schema.tables) == ["users"]
        assert list(schema.tables["users"].columns) == ["id", "user_id"]

    def test_later_column_wins(self, editor_graph_dict: Dict[str, Any]) -> None:
        editor_graph_dict["tables"][0]["columns"][1]["name"] = "id"
        schema = _normalize(EditorGraph.model_validate(editor_graph_dict))
        assert list(schema.tables["users"].columns) == ["id"]
        assert schema.get_column("users", "id").type == "varchar"

    def test_detects_duplicate_tables(self, editor_graph_dict: Dict[str, Any]) -> None:
        graph = self._duplicate_tables(editor_graph_dict)
        errors = find_name_collisions(graph.tables)
        assert [e.code for e in errors] == [ErrorCode.TABLE_DUPLICATE.value]
        assert errors[0].table == "users"

    def test_detects_duplicate_columns(self, editor_graph_dict: Dict[str, Any]) -> None:
        editor_graph_dict["tables"][0]["columns"][1]["name"] = "id"
        graph = EditorGraph.model_validate(editor_graph_dict)
        errors = find_name_collisions(graph.tables)
        assert [e.code for e in errors] == [ErrorCode.COLUMN_DUPLICATE.value]
        assert (errors[0].table, errors[0].column) == ("users", "id")

    def test_clean_graph_has_no_collisions(self, editor_graph: EditorGraph) -> None:
        assert find_name_collisions(editor_graph.tables) == []

    def test_same_column_name_in_different_tables_is_fine(self) -> None:
        tables = [
            Table(id="a", name="a", columns=[{"id": "1", "name": "id"}]),
            Table(id="b", name="b", columns=[{"id": "1", "name": "id"}]),
        ]
        assert find_name_collisions(tables) == []
