"""
tests/conftest.py
Shared fixtures for the schemaforge test suite.

Fixtures return plain dicts (camelCase document form) so each test can build
exactly the model it needs; mutable fixtures are deep copies.  File-based
tests write real files inside pytest's ``tmp_path``.
"""

from __future__ import annotations

import copy
import logging
import pathlib
from typing import Any, Callable, Dict

import pytest
import yaml

from schemaforge.models import EditorGraph, NormalizedSchema


# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------

ROOT_DIR: pathlib.Path = pathlib.Path(__file__).resolve().parent.parent
SCHEMA_EXAMPLE_PATH: pathlib.Path = ROOT_DIR / "schema_example.yaml"


@pytest.fixture(autouse=True)
def _restore_package_logger():
    """The CLI reconfigures the ``schemaforge`` logger; undo that after each test."""
    package_logger = logging.getLogger("schemaforge")
    level, handlers, propagate = (
        package_logger.level,
        list(package_logger.handlers),
        package_logger.propagate,
    )
    yield
    package_logger.setLevel(level)
    package_logger.handlers[:] = handlers
    package_logger.propagate = propagate


# ---------------------------------------------------------------------------
# Reference document
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def raw_schema_dict() -> Dict[str, Any]:
    """Load the reference schema_example.yaml once per session."""
    assert SCHEMA_EXAMPLE_PATH.exists(), (
        f"Reference schema not found at {SCHEMA_EXAMPLE_PATH}. "
        "Make sure schema_example.yaml is in the project root."
    )
    with open(SCHEMA_EXAMPLE_PATH, "r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    assert isinstance(data, dict), "Top-level YAML must be a mapping."
    return data


@pytest.fixture()
def schema_dict(raw_schema_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Return a deep copy so each test can mutate freely."""
    return copy.deepcopy(raw_schema_dict)


@pytest.fixture()
def example_schema(schema_dict: Dict[str, Any]) -> NormalizedSchema:
    return NormalizedSchema.from_document(schema_dict["schema"])


@pytest.fixture()
def schema_yaml_path(schema_dict: Dict[str, Any], tmp_path: pathlib.Path) -> pathlib.Path:
    """Write the reference document to a temporary YAML file."""
    path = tmp_path / "schema.yaml"
    with open(path, "w", encoding="utf-8") as fh:
        yaml.dump(schema_dict, fh, default_flow_style=False, allow_unicode=True)
    return path


# ---------------------------------------------------------------------------
# Canonical schema fixtures
# ---------------------------------------------------------------------------


def column(name: str, type: str = "varchar", **flags: Any) -> Dict[str, Any]:
    """Document form of one canonical column."""
    data: Dict[str, Any] = {"name": name, "type": type, "nullable": True}
    data.update(flags)
    return data


def table(name: str, *columns: Dict[str, Any]) -> Dict[str, Any]:
    return {"name": name, "columns": {c["name"]: c for c in columns}}


@pytest.fixture()
def build_schema() -> Callable[..., NormalizedSchema]:
    """Factory: ``build_schema(table(...), table(...))`` → ``NormalizedSchema``."""

    def _build(*tables: Dict[str, Any]) -> NormalizedSchema:
        return NormalizedSchema.from_document({"tables": {t["name"]: t for t in tables}})

    return _build


@pytest.fixture()
def users_posts_dict() -> Dict[str, Any]:
    """``posts`` declared before ``users`` so ordering has to follow the FK."""
    return {
        "tables": {
            "posts": table(
                "posts",
                column(
                    "id", "int", primaryKey=True, nullable=False,
                    default={"kind": "autoincrement"},
                ),
                column(
                    "user_id", "int", nullable=False,
                    foreignKey={"table": "users", "column": "id"},
                ),
                column("title"),
            ),
            "users": table(
                "users",
                column(
                    "id", "uuid", primaryKey=True, nullable=False,
                    default={"kind": "uuid"},
                ),
                column("email", unique=True),
            ),
        }
    }


@pytest.fixture()
def users_posts_schema(users_posts_dict: Dict[str, Any]) -> NormalizedSchema:
    return NormalizedSchema.from_document(users_posts_dict)


@pytest.fixture()
def valid_blog_dict() -> Dict[str, Any]:
    """Two tables that pass every validator rule."""
    return {
        "tables": {
            "users": table(
                "users",
                column(
                    "id", "uuid", primaryKey=True, nullable=False,
                    default={"kind": "uuid"},
                ),
                column("email", nullable=False, unique=True),
            ),
            "posts": table(
                "posts",
                column(
                    "id", "int", primaryKey=True, nullable=False,
                    default={"kind": "autoincrement"},
                ),
                column(
                    "user_id", "uuid", nullable=False,
                    foreignKey={"table": "users", "column": "id"},
                ),
                column("created_at", "timestamp", nullable=False, default={"kind": "now"}),
            ),
        }
    }


@pytest.fixture()
def valid_blog_schema(valid_blog_dict: Dict[str, Any]) -> NormalizedSchema:
    return NormalizedSchema.from_document(valid_blog_dict)


# ---------------------------------------------------------------------------
# Editor graph fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def editor_graph_dict() -> Dict[str, Any]:
    """An editor graph: users ← posts.user_id, plus a canvas position."""
    return {
        "tables": [
            {
                "id": "t_users",
                "name": "users",
                "columns": [
                    {
                        "id": "c_users_id", "name": "id", "type": "uuid",
                        "primaryKey": True, "nullable": False,
                        "unique": False, "default": {"kind": "uuid"},
                    },
                    {
                        "id": "c_users_email", "name": "email", "type": "varchar",
                        "primaryKey": False, "nullable": False, "unique": True,
                    },
                ],
            },
            {
                "id": "t_posts",
                "name": "posts",
                "columns": [
                    {
                        "id": "c_posts_id", "name": "id", "type": "int",
                        "primaryKey": True, "nullable": False, "unique": False,
                        "default": {"kind": "autoincrement"},
                    },
                    {
                        "id": "c_posts_user", "name": "user_id", "type": "uuid",
                        "primaryKey": False, "nullable": False, "unique": False,
                    },
                ],
            },
        ],
        "relations": [
            {
                "id": "r_posts_user",
                "fromTableId": "t_users",
                "fromColumnId": "c_users_id",
                "toTableId": "t_posts",
                "toColumnId": "c_posts_user",
            }
        ],
        "positions": {"t_users": {"x": 10, "y": 20}},
    }


@pytest.fixture()
def editor_graph(editor_graph_dict: Dict[str, Any]) -> EditorGraph:
    return EditorGraph.model_validate(editor_graph_dict)
