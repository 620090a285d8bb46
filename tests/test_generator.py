"""
tests/test_generator.py
Integration tests for schemaforge.generator and the CLI.

Tests cover:
- Document loading (JSON, YAML, unknown extensions, bad input)
- parse_raw_schema shapes (canonical, wrapped, editor graph)
- SchemaGenerator pipeline stages and the report
- File export
- CLI exit codes and output modes
"""

from __future__ import annotations

import json
import logging
import pathlib
from typing import Any, Dict

import pytest
import yaml

from schemaforge.cli import (
    EXIT_EXPORT_ERROR,
    EXIT_GENERATION_ERROR,
    EXIT_INPUT_ERROR,
    EXIT_SUCCESS,
    EXIT_VALIDATION_ERROR,
    cli_main,
)
from schemaforge.generator import (
    STAGE_EXPORT,
    STAGE_GENERATION,
    STAGE_INPUT,
    STAGE_VALIDATION,
    GenerationReport,
    SchemaGenerator,
    load_schema_file,
    parse_raw_schema,
)
from schemaforge.models import GeneratorSettings, NormalizedSchema
from schemaforge.prisma_renderer import render_orm_schema
from schemaforge.sql_renderer import render_sql


def _write_yaml(path: pathlib.Path, data: Dict[str, Any]) -> pathlib.Path:
    with open(path, "w", encoding="utf-8") as fh:
        yaml.dump(data, fh, default_flow_style=False)
    return path


def _not_pk_reference(valid_blog_dict: Dict[str, Any]) -> Dict[str, Any]:
    """valid_blog with posts.user_id pointing at users.email (not a key)."""
    columns = valid_blog_dict["tables"]["posts"]["columns"]
    columns["user_id"]["type"] = "varchar"
    columns["user_id"]["foreignKey"] = {"table": "users", "column": "email"}
    return valid_blog_dict


# ===========================================================================
# Loading and parsing
# ===========================================================================


class TestLoadSchemaFile:
    def test_yaml(self, schema_yaml_path: pathlib.Path) -> None:
        data = load_schema_file(schema_yaml_path)
        assert "schema" in data and "config" in data

    def test_json(self, tmp_path: pathlib.Path, valid_blog_dict: Dict[str, Any]) -> None:
        path = tmp_path / "schema.json"
        path.write_text(json.dumps(valid_blog_dict), encoding="utf-8")
        assert load_schema_file(path) == valid_blog_dict

    def test_unknown_extension_falls_back_to_yaml(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "schema.txt"
        path.write_text("tables:\n  users:\n    name: users\n", encoding="utf-8")
        assert load_schema_file(path) == {"tables": {"users": {"name": "users"}}}

    def test_missing_file(self, tmp_path: pathlib.Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_schema_file(tmp_path / "nope.yaml")

    def test_invalid_json(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "schema.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ValueError, match="Invalid JSON"):
            load_schema_file(path)

    def test_top_level_must_be_mapping(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "schema.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ValueError, match="mapping"):
            load_schema_file(path)


class TestParseRawSchema:
    def test_bare_canonical_schema(self, valid_blog_dict: Dict[str, Any]) -> None:
        schema, settings = parse_raw_schema(valid_blog_dict)
        assert list(schema.tables) == ["users", "posts"]
        assert settings == GeneratorSettings()

    def test_wrapped_with_config(self, schema_dict: Dict[str, Any]) -> None:
        schema, settings = parse_raw_schema(schema_dict)
        assert schema.table_count == 4
        assert settings.targets == ["sql", "prisma"]
        assert settings.strict_validation is True

    def test_alternative_config_key(self, valid_blog_dict: Dict[str, Any]) -> None:
        raw = {"schema": valid_blog_dict, "generator_config": {"targets": ["prisma"]}}
        _, settings = parse_raw_schema(raw)
        assert settings.targets == ["prisma"]

    def test_editor_graph_is_normalized(self, editor_graph_dict: Dict[str, Any]) -> None:
        schema, _ = parse_raw_schema(editor_graph_dict)
        assert isinstance(schema, NormalizedSchema)
        assert schema.get_column("posts", "user_id").foreign_key.table == "users"

    def test_editor_graph_collisions_logged(
        self, editor_graph_dict: Dict[str, Any], caplog: pytest.LogCaptureFixture
    ) -> None:
        editor_graph_dict["tables"][1]["name"] = "users"
        with caplog.at_level(logging.WARNING, logger="schemaforge.generator"):
            parse_raw_schema(editor_graph_dict)
        assert "Duplicate table name 'users'" in caplog.text

    def test_missing_tables(self) -> None:
        with pytest.raises(ValueError, match="Cannot find schema definition"):
            parse_raw_schema({"config": {}})

    def test_invalid_schema(self) -> None:
        with pytest.raises(ValueError, match="Schema validation failed"):
            parse_raw_schema({"tables": {"users": {"columns": "nope"}}})

    def test_invalid_config(self, valid_blog_dict: Dict[str, Any]) -> None:
        with pytest.raises(ValueError, match="Config validation failed"):
            parse_raw_schema({"schema": valid_blog_dict, "config": {"targets": []}})


# ===========================================================================
# Pipeline
# ===========================================================================


class TestSchemaGenerator:
    def test_in_memory_generation(self, valid_blog_schema: NormalizedSchema) -> None:
        report: GenerationReport = SchemaGenerator().generate(valid_blog_schema)
        assert report.success
        assert report.failed_stage is None
        assert report.artifacts == {
            "sql": render_sql(valid_blog_schema),
            "prisma": render_orm_schema(valid_blog_schema),
        }
        assert report.written_files == []
        assert report.total_tables == 2

    def test_single_target(self, valid_blog_schema: NormalizedSchema) -> None:
        settings = GeneratorSettings(targets=["sql"])
        report = SchemaGenerator(settings).generate(valid_blog_schema)
        assert list(report.artifacts) == ["sql"]

    def test_export(self, valid_blog_schema: NormalizedSchema, tmp_path: pathlib.Path) -> None:
        out = tmp_path / "out"
        report = SchemaGenerator().generate(valid_blog_schema, out)
        assert report.success
        assert sorted(p.name for p in out.iterdir()) == ["schema.prisma", "schema.sql"]
        assert (out / "schema.sql").read_text(encoding="utf-8") == render_sql(valid_blog_schema) + "\n"
        assert report.total_files == 2
        assert report.total_bytes > 0

    def test_custom_filenames(self, valid_blog_schema: NormalizedSchema, tmp_path: pathlib.Path) -> None:
        settings = GeneratorSettings(sql_filename="ddl.sql", orm_filename="models.prisma")
        SchemaGenerator(settings).generate(valid_blog_schema, tmp_path)
        assert (tmp_path / "ddl.sql").is_file()
        assert (tmp_path / "models.prisma").is_file()

    def test_strict_validation_stops(self, users_posts_schema: NormalizedSchema) -> None:
        report = SchemaGenerator().generate(users_posts_schema)
        assert not report.success
        assert report.failed_stage == STAGE_VALIDATION
        assert any("FK_TYPE_MISMATCH" in e for e in report.validation_errors)
        assert report.artifacts == {}

    def test_table_without_primary_key_stops_strict_generation(self) -> None:
        schema = NormalizedSchema.from_document(
            {"tables": {"tags": {"name": "tags", "columns": {"label": {"name": "label", "type": "varchar"}}}}}
        )
        report = SchemaGenerator().generate(schema)
        assert report.failed_stage == STAGE_VALIDATION
        assert any("TABLE_NO_PRIMARY_KEY" in e for e in report.validation_errors)
        assert report.artifacts == {}

    def test_non_strict_renders_despite_validation_errors(
        self, users_posts_schema: NormalizedSchema
    ) -> None:
        settings = GeneratorSettings(strict_validation=False)
        report = SchemaGenerator(settings).generate(users_posts_schema)
        assert report.success
        assert report.validation_errors
        assert "CREATE TABLE posts" in report.artifacts["sql"]

    def test_guard_stops_generation(self, valid_blog_dict: Dict[str, Any]) -> None:
        schema = NormalizedSchema.from_document(_not_pk_reference(valid_blog_dict))
        report = SchemaGenerator(GeneratorSettings(strict_validation=False)).generate(schema)
        assert report.failed_stage == STAGE_GENERATION
        assert report.generation_errors[0].startswith("1. Column 'user_id' in table 'posts'")
        assert report.artifacts == {}

    def test_export_failure(self, valid_blog_schema: NormalizedSchema, tmp_path: pathlib.Path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")
        report = SchemaGenerator().generate(valid_blog_schema, blocker)
        assert report.failed_stage == STAGE_EXPORT
        assert len(report.export_errors) == 2
        assert report.artifacts

    def test_summary(self, valid_blog_schema: NormalizedSchema) -> None:
        summary = SchemaGenerator().generate(valid_blog_schema).summary()
        assert "SUCCESS" in summary
        assert "Generation Guard" in summary


class TestGenerateFromFile:
    def test_reference_document(self, schema_yaml_path: pathlib.Path, tmp_path: pathlib.Path) -> None:
        out = tmp_path / "out"
        report = SchemaGenerator().generate_from_file(schema_yaml_path, out)
        assert report.success, report.summary()
        assert len(report.written_files) == 2
        assert report.source == str(schema_yaml_path)

    def test_overrides_win_over_document(
        self, schema_yaml_path: pathlib.Path, tmp_path: pathlib.Path
    ) -> None:
        report = SchemaGenerator().generate_from_file(
            schema_yaml_path, tmp_path, settings_overrides={"targets": ["prisma"]}
        )
        assert list(report.artifacts) == ["prisma"]
        assert not (tmp_path / "schema.sql").exists()

    def test_strict_override(self, tmp_path: pathlib.Path, users_posts_dict: Dict[str, Any]) -> None:
        path = _write_yaml(
            tmp_path / "schema.yaml",
            {"config": {"strictValidation": True}, "schema": users_posts_dict},
        )
        report = SchemaGenerator().generate_from_file(
            path, settings_overrides={"strict_validation": False}
        )
        assert report.success

    def test_missing_file(self, tmp_path: pathlib.Path) -> None:
        report = SchemaGenerator().generate_from_file(tmp_path / "nope.yaml")
        assert report.failed_stage == STAGE_INPUT
        assert "not found" in report.generation_errors[0]


# ===========================================================================
# CLI
# ===========================================================================


class TestCli:
    def _exit_code(self, *argv: str) -> int:
        with pytest.raises(SystemExit) as exc_info:
            cli_main(list(argv))
        return exc_info.value.code

    def test_generation_writes_files(self, schema_yaml_path: pathlib.Path, tmp_path: pathlib.Path) -> None:
        out = tmp_path / "out"
        assert self._exit_code("-s", str(schema_yaml_path), "-o", str(out), "-q") == EXIT_SUCCESS
        assert (out / "schema.sql").is_file()
        assert (out / "schema.prisma").is_file()

    def test_stdout_single_target(
        self, schema_yaml_path: pathlib.Path, capsys: pytest.CaptureFixture
    ) -> None:
        code = self._exit_code("-s", str(schema_yaml_path), "--stdout", "--target", "sql", "-q")
        assert code == EXIT_SUCCESS
        out = capsys.readouterr().out
        assert out.startswith("CREATE TABLE users (")
        assert "model User" not in out

    def test_missing_schema_file(self, tmp_path: pathlib.Path) -> None:
        assert self._exit_code("-s", str(tmp_path / "nope.yaml"), "--stdout") == EXIT_INPUT_ERROR

    def test_output_required(self, schema_yaml_path: pathlib.Path) -> None:
        assert self._exit_code("-s", str(schema_yaml_path)) == EXIT_INPUT_ERROR

    def test_unparseable_document(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "schema.yaml"
        path.write_text("tables: [unclosed", encoding="utf-8")
        assert self._exit_code("-s", str(path), "--stdout", "-q") == EXIT_INPUT_ERROR

    def test_validate_only(self, schema_yaml_path: pathlib.Path, capsys: pytest.CaptureFixture) -> None:
        assert self._exit_code("-s", str(schema_yaml_path), "--validate-only") == EXIT_SUCCESS
        assert "All validations passed" in capsys.readouterr().out

    def test_validate_only_json(
        self, tmp_path: pathlib.Path, capsys: pytest.CaptureFixture
    ) -> None:
        path = _write_yaml(
            tmp_path / "schema.yaml",
            {"tables": {"order": {"name": "order", "columns": {"label": {"name": "label", "type": "varchar"}}}}},
        )
        assert self._exit_code("-s", str(path), "--validate-only", "--json") == EXIT_VALIDATION_ERROR
        report = json.loads(capsys.readouterr().out)
        assert report["valid"] is False
        assert [e["code"] for e in report["errors"]] == [
            "TABLE_RESERVED_KEYWORD",
            "TABLE_NO_PRIMARY_KEY",
        ]
        assert report["warnings"] == []

    def test_validation_failure(self, tmp_path: pathlib.Path, users_posts_dict: Dict[str, Any]) -> None:
        path = _write_yaml(tmp_path / "schema.yaml", users_posts_dict)
        assert self._exit_code("-s", str(path), "--stdout", "-q") == EXIT_VALIDATION_ERROR

    def test_guard_failure(self, tmp_path: pathlib.Path, valid_blog_dict: Dict[str, Any]) -> None:
        path = _write_yaml(tmp_path / "schema.yaml", _not_pk_reference(valid_blog_dict))
        code = self._exit_code("-s", str(path), "--stdout", "--no-strict", "-q")
        assert code == EXIT_GENERATION_ERROR

    def test_foreign_key_on_primary_key_is_a_generation_error(self, tmp_path: pathlib.Path) -> None:
        document = {
            "tables": {
                "users": {"name": "users", "columns": {"id": {"name": "id", "type": "int", "primaryKey": True}}},
                "profiles": {
                    "name": "profiles",
                    "columns": {
                        "id": {
                            "name": "id", "type": "int", "primaryKey": True,
                            "foreignKey": {"table": "users", "column": "id"},
                        }
                    },
                },
            }
        }
        path = _write_yaml(tmp_path / "schema.yaml", document)
        # the validator only cautions; the guard refuses
        assert self._exit_code("-s", str(path), "--validate-only", "-q") == EXIT_SUCCESS
        assert self._exit_code("-s", str(path), "--stdout", "-q") == EXIT_GENERATION_ERROR

    def test_export_failure(self, schema_yaml_path: pathlib.Path, tmp_path: pathlib.Path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")
        assert self._exit_code("-s", str(schema_yaml_path), "-o", str(blocker), "-q") == EXIT_EXPORT_ERROR

    def test_version(self, capsys: pytest.CaptureFixture) -> None:
        assert self._exit_code("--version") == 0
        assert "SchemaForge v1.0.0" in capsys.readouterr().out
