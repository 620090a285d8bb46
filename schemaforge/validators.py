# File: schemaforge/validators.py
"""
SchemaForge - Schema Validators
================================
The advisory rule engine.  Operates on the canonical ``NormalizedSchema`` and
never raises: every rule group runs over the whole schema and the complete
diagnostic list is returned, so an interactive editor can show every problem
at once.

Rule groups run in a fixed order (tables, columns, foreign keys, defaults) and
their results are concatenated in that order, so diagnostics are
deterministic.

Usage by downstream modules:
    from schemaforge.validators import validate_schema
    result = validate_schema(schema)
    if not result.valid:
        print(result.format_report())
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Set

from schemaforge.models import (
    ColumnType,
    DefaultKind,
    NormalizedSchema,
    NormalizedTable,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("schemaforge.validators")


# ---------------------------------------------------------------------------
# Diagnostic codes
# ---------------------------------------------------------------------------


class ErrorCode(str, Enum):
    """Stable diagnostic codes.  Callers may branch on these values."""

    TABLE_EMPTY_NAME = "TABLE_EMPTY_NAME"
    TABLE_NOT_SNAKE_CASE = "TABLE_NOT_SNAKE_CASE"
    TABLE_RESERVED_KEYWORD = "TABLE_RESERVED_KEYWORD"
    TABLE_DUPLICATE = "TABLE_DUPLICATE"
    TABLE_NO_COLUMNS = "TABLE_NO_COLUMNS"
    TABLE_NO_PRIMARY_KEY = "TABLE_NO_PRIMARY_KEY"

    COLUMN_EMPTY_NAME = "COLUMN_EMPTY_NAME"
    COLUMN_NOT_SNAKE_CASE = "COLUMN_NOT_SNAKE_CASE"
    COLUMN_DUPLICATE = "COLUMN_DUPLICATE"
    COLUMN_NO_TYPE = "COLUMN_NO_TYPE"
    COLUMN_MULTIPLE_PK = "COLUMN_MULTIPLE_PK"
    COLUMN_PK_IS_FK = "COLUMN_PK_IS_FK"

    FK_TABLE_NOT_FOUND = "FK_TABLE_NOT_FOUND"
    FK_COLUMN_NOT_FOUND = "FK_COLUMN_NOT_FOUND"
    FK_NOT_PRIMARY_KEY = "FK_NOT_PRIMARY_KEY"
    FK_TYPE_MISMATCH = "FK_TYPE_MISMATCH"

    COLUMN_MULTIPLE_AUTOINCREMENT = "COLUMN_MULTIPLE_AUTOINCREMENT"
    COLUMN_AUTOINCREMENT_NOT_INT = "COLUMN_AUTOINCREMENT_NOT_INT"
    COLUMN_AUTOINCREMENT_NOT_PK = "COLUMN_AUTOINCREMENT_NOT_PK"
    COLUMN_UUID_ON_INT = "COLUMN_UUID_ON_INT"
    COLUMN_NOW_NOT_TIMESTAMP = "COLUMN_NOW_NOT_TIMESTAMP"


# ---------------------------------------------------------------------------
# Validation result container
# ---------------------------------------------------------------------------


class ValidationError:
    """Lightweight diagnostic descriptor (no Pydantic overhead)."""

    __slots__ = ("code", "message", "table", "column", "level")

    def __init__(
        self,
        code: str,
        message: str,
        table: Optional[str] = None,
        column: Optional[str] = None,
        level: str = "error",
    ) -> None:
        self.code: str = code.value if isinstance(code, ErrorCode) else code
        self.message: str = message
        self.table: Optional[str] = table
        self.column: Optional[str] = column
        self.level: str = level  # "error" | "warning"

    @property
    def is_error(self) -> bool:
        return self.level == "error"

    @property
    def is_warning(self) -> bool:
        return self.level == "warning"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ValidationError):
            return NotImplemented
        return self.to_dict() == other.to_dict() and self.level == other.level

    def __hash__(self) -> int:
        return hash((self.code, self.message, self.table, self.column, self.level))

    def __repr__(self) -> str:
        return f"[{self.level.upper()}] {self.code}: {self.message}"

    def __str__(self) -> str:
        return self.__repr__()

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.table is not None:
            data["table"] = self.table
        if self.column is not None:
            data["column"] = self.column
        return data


class ValidationResult:
    """
    Accumulates ``ValidationError`` instances produced by the rule groups.

    Warnings are kept alongside errors but never affect ``valid``.
    """

    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: List[ValidationError] = []

    # -- Mutation -----------------------------------------------------------

    def add_error(
        self,
        code: ErrorCode,
        message: str,
        table: Optional[str] = None,
        column: Optional[str] = None,
    ) -> None:
        self._items.append(ValidationError(code, message, table, column, "error"))

    def add_warning(
        self,
        code: ErrorCode,
        message: str,
        table: Optional[str] = None,
        column: Optional[str] = None,
    ) -> None:
        self._items.append(ValidationError(code, message, table, column, "warning"))

    def extend(self, items: List[ValidationError]) -> None:
        self._items.extend(items)

    def merge(self, other: "ValidationResult") -> None:
        """Append every item of *other*, preserving order."""
        self._items.extend(other._items)

    # -- Query --------------------------------------------------------------

    @property
    def errors(self) -> List[ValidationError]:
        return [e for e in self._items if e.is_error]

    @property
    def warnings(self) -> List[ValidationError]:
        return [e for e in self._items if e.is_warning]

    @property
    def all_items(self) -> List[ValidationError]:
        return list(self._items)

    @property
    def codes(self) -> List[str]:
        return [e.code for e in self.errors]

    @property
    def error_count(self) -> int:
        return sum(1 for e in self._items if e.is_error)

    @property
    def warning_count(self) -> int:
        return sum(1 for e in self._items if e.is_warning)

    @property
    def valid(self) -> bool:
        return self.error_count == 0

    def to_dict(self, include_warnings: bool = False) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "valid": self.valid,
            "errors": [e.to_dict() for e in self.errors],
        }
        if include_warnings:
            data["warnings"] = [w.to_dict() for w in self.warnings]
        return data

    def summary(self) -> str:
        return (
            f"Validation: {self.error_count} error(s), "
            f"{self.warning_count} warning(s)."
        )

    def __repr__(self) -> str:
        return f"<ValidationResult {self.summary()}>"

    def __bool__(self) -> bool:
        """Truthy when there are NO errors (i.e. valid)."""
        return self.valid

    def __len__(self) -> int:
        return len(self._items)

    def format_report(self) -> str:
        """Human-readable multi-line report."""
        lines: List[str] = [self.summary(), ""]
        for item in self._items:
            prefix: str = "❌" if item.is_error else "⚠️"
            lines.append(f"  {prefix} [{item.code}] {item.message}")
            if item.table is not None:
                lines.append(f"       table: {item.table}")
            if item.column is not None:
                lines.append(f"       column: {item.column}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Naming rules
# ---------------------------------------------------------------------------

_SNAKE_CASE_RE: re.Pattern[str] = re.compile(r"^[a-z][a-z0-9_]*$|^_[a-z0-9_]+$")

# PostgreSQL keywords refused as table names (matched case-insensitively)
RESERVED_KEYWORDS: FrozenSet[str] = frozenset(
    {
        "user", "order", "select", "table", "group", "where", "index",
        "from", "join", "limit", "offset", "primary", "references",
        "default", "check", "column", "constraint", "create", "grant",
        "having", "union", "all", "and", "or", "not", "null", "case",
        "end", "else", "when", "then", "desc", "asc", "distinct",
        "foreign", "into", "on", "to", "unique", "with",
    }
)


def is_snake_case(name: str) -> bool:
    """Lowercase words joined by single underscores; a leading ``_`` is allowed."""
    if not name or not name.strip():
        return False
    return bool(_SNAKE_CASE_RE.match(name)) and "__" not in name


def is_reserved_keyword(name: str) -> bool:
    return name.lower() in RESERVED_KEYWORDS


# ---------------------------------------------------------------------------
# Rule groups
# ---------------------------------------------------------------------------


def validate_tables(schema: NormalizedSchema) -> ValidationResult:
    """
    Table rules: non-empty name, snake_case, not a reserved keyword, unique
    (case-insensitive), at least one column, at least one primary key.
    Surplus primary keys are a column rule.
    """
    result: ValidationResult = ValidationResult()
    seen: Set[str] = set()

    for key, table in schema.tables.items():
        name: str = table.name

        if not name or not name.strip():
            result.add_error(
                ErrorCode.TABLE_EMPTY_NAME, "Table name cannot be empty.", table=key
            )

        if name and not is_snake_case(name):
            result.add_error(
                ErrorCode.TABLE_NOT_SNAKE_CASE,
                f"Table name '{name}' must be in snake_case "
                f"(lowercase letters, numbers, underscores only).",
                table=key,
            )

        if name and is_reserved_keyword(name):
            suggestion: str = name if name.endswith("s") else f"{name}s"
            result.add_error(
                ErrorCode.TABLE_RESERVED_KEYWORD,
                f"Table name '{name}' is a reserved keyword. "
                f"Use '{suggestion}' instead.",
                table=key,
            )

        if name:
            if name.lower() in seen:
                result.add_error(
                    ErrorCode.TABLE_DUPLICATE,
                    f"Duplicate table name '{name}'.",
                    table=key,
                )
            seen.add(name.lower())

        if not table.columns:
            result.add_error(
                ErrorCode.TABLE_NO_COLUMNS,
                f"Table '{name}' must have at least one column.",
                table=key,
            )
        elif not table.primary_key_names():
            result.add_error(
                ErrorCode.TABLE_NO_PRIMARY_KEY,
                f"Table '{name}' must have exactly one primary key.",
                table=key,
            )

    return result


def validate_columns(schema: NormalizedSchema) -> ValidationResult:
    """
    Column rules: non-empty name, snake_case, unique within the table
    (case-insensitive), non-empty type, at most one primary key per table.
    Every primary key after the first is reported on its own.
    """
    result: ValidationResult = ValidationResult()

    for table_key, table in schema.tables.items():
        seen: Set[str] = set()
        primary_keys: List[str] = []

        for column_key, column in table.columns.items():
            name: str = column.name

            if not name or not name.strip():
                result.add_error(
                    ErrorCode.COLUMN_EMPTY_NAME,
                    "Column name cannot be empty.",
                    table=table_key,
                    column=column_key,
                )

            if name and not is_snake_case(name):
                result.add_error(
                    ErrorCode.COLUMN_NOT_SNAKE_CASE,
                    f"Column name '{name}' must be in snake_case "
                    f"(lowercase letters, numbers, underscores only).",
                    table=table_key,
                    column=column_key,
                )

            if name:
                if name.lower() in seen:
                    result.add_error(
                        ErrorCode.COLUMN_DUPLICATE,
                        f"Duplicate column name '{name}' in table '{table.name}'.",
                        table=table_key,
                        column=column_key,
                    )
                seen.add(name.lower())

            if not column.type or not column.type.strip():
                result.add_error(
                    ErrorCode.COLUMN_NO_TYPE,
                    f"Column '{name}' in table '{table.name}' must have a datatype.",
                    table=table_key,
                    column=column_key,
                )

            if column.primary_key:
                primary_keys.append(column_key)
                if column.foreign_key is not None:
                    result.add_warning(
                        ErrorCode.COLUMN_PK_IS_FK,
                        f"Column '{name}' in table '{table.name}' is both a primary "
                        f"key and a foreign key (one-to-one relation).",
                        table=table_key,
                        column=column_key,
                    )

        for extra_pk in primary_keys[1:]:
            result.add_error(
                ErrorCode.COLUMN_MULTIPLE_PK,
                f"Table '{table.name}' has multiple primary keys. "
                f"Only one primary key allowed per table.",
                table=table_key,
                column=extra_pk,
            )

    return result


def validate_foreign_keys(schema: NormalizedSchema) -> ValidationResult:
    """
    Foreign-key rules, per referencing column: the referenced table exists,
    the referenced column exists, it is a primary key, and both declared
    types are equal.  A missing table or column stops further checks for
    that column.
    """
    result: ValidationResult = ValidationResult()

    for table_key, table in schema.tables.items():
        for column_key, column in table.columns.items():
            fk = column.foreign_key
            if fk is None:
                continue

            target_table: Optional[NormalizedTable] = schema.get_table(fk.table)
            if target_table is None:
                result.add_error(
                    ErrorCode.FK_TABLE_NOT_FOUND,
                    f"Column '{column.name}' in table '{table.name}' references "
                    f"non-existent table '{fk.table}'.",
                    table=table_key,
                    column=column_key,
                )
                continue

            target = target_table.columns.get(fk.column)
            if target is None:
                result.add_error(
                    ErrorCode.FK_COLUMN_NOT_FOUND,
                    f"Column '{column.name}' in table '{table.name}' references "
                    f"non-existent column '{fk.column}' in table '{fk.table}'.",
                    table=table_key,
                    column=column_key,
                )
                continue

            if not target.primary_key:
                result.add_error(
                    ErrorCode.FK_NOT_PRIMARY_KEY,
                    f"Column '{column.name}' in table '{table.name}' references "
                    f"'{fk.table}.{fk.column}', but '{fk.column}' is not a "
                    f"primary key.",
                    table=table_key,
                    column=column_key,
                )

            if column.type and target.type and column.type != target.type:
                result.add_error(
                    ErrorCode.FK_TYPE_MISMATCH,
                    f"Column '{column.name}' in table '{table.name}' has type "
                    f"'{column.type}' but references '{fk.table}.{fk.column}' "
                    f"with type '{target.type}'.",
                    table=table_key,
                    column=column_key,
                )

    return result


def validate_defaults(schema: NormalizedSchema) -> ValidationResult:
    """
    Default-value rules.  ``autoincrement`` is allowed once per table, only
    on an ``int`` primary key; ``uuid`` is refused on ``int``; ``now`` needs
    ``timestamp``.  Literal ``value`` defaults are unrestricted.
    """
    result: ValidationResult = ValidationResult()

    for table_key, table in schema.tables.items():
        autoincrement_seen: bool = False

        for column_key, column in table.columns.items():
            kind: Optional[str] = column.default_kind
            if kind is None:
                continue

            if kind == DefaultKind.AUTOINCREMENT:
                if autoincrement_seen:
                    result.add_error(
                        ErrorCode.COLUMN_MULTIPLE_AUTOINCREMENT,
                        f"Table '{table.name}' has multiple auto-increment columns. "
                        f"Only one auto-increment column allowed per table.",
                        table=table_key,
                        column=column_key,
                    )
                autoincrement_seen = True

                if column.type != ColumnType.INT.value:
                    result.add_error(
                        ErrorCode.COLUMN_AUTOINCREMENT_NOT_INT,
                        f"Column '{column.name}' in table '{table.name}' is "
                        f"auto-increment but has type '{column.type}'. "
                        f"Auto-increment requires int type.",
                        table=table_key,
                        column=column_key,
                    )

                if not column.primary_key:
                    result.add_error(
                        ErrorCode.COLUMN_AUTOINCREMENT_NOT_PK,
                        f"Column '{column.name}' in table '{table.name}' is "
                        f"auto-increment but is not a primary key.",
                        table=table_key,
                        column=column_key,
                    )

            elif kind == DefaultKind.UUID:
                if column.type == ColumnType.INT.value:
                    result.add_error(
                        ErrorCode.COLUMN_UUID_ON_INT,
                        f"Column '{column.name}' in table '{table.name}' has a "
                        f"UUID default but type 'int'. UUID defaults require "
                        f"uuid or varchar type.",
                        table=table_key,
                        column=column_key,
                    )

            elif kind == DefaultKind.NOW:
                if column.type != ColumnType.TIMESTAMP.value:
                    result.add_error(
                        ErrorCode.COLUMN_NOW_NOT_TIMESTAMP,
                        f"Column '{column.name}' in table '{table.name}' has a "
                        f"now() default but type '{column.type}'. now() "
                        f"requires timestamp type.",
                        table=table_key,
                        column=column_key,
                    )

    return result


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------

_RULE_GROUPS: List[Callable[[NormalizedSchema], ValidationResult]] = [
    validate_tables,
    validate_columns,
    validate_foreign_keys,
    validate_defaults,
]


def validate_schema(schema: NormalizedSchema) -> ValidationResult:
    """
    **Advisory validation entry point.**

    Runs every rule group over the whole schema and returns the merged
    result.  Never raises.
    """
    result: ValidationResult = ValidationResult()

    for rule_group in _RULE_GROUPS:
        logger.debug("Running rule group: %s", rule_group.__name__)
        result.merge(rule_group(schema))

    if result.valid:
        logger.info("Validation PASSED. %s", result.summary())
    else:
        logger.info("Validation FAILED. %s", result.summary())
    return result


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "ErrorCode",
    "ValidationError",
    "ValidationResult",
    "RESERVED_KEYWORDS",
    "is_snake_case",
    "is_reserved_keyword",
    "validate_tables",
    "validate_columns",
    "validate_foreign_keys",
    "validate_defaults",
    "validate_schema",
]

logger.debug("schemaforge.validators loaded - %d public symbols.", len(__all__))
