# File: schemaforge/models.py
"""
SchemaForge - Core Data Models
===============================
Pydantic V2 models for the two representations of a relational schema and
for the generator settings.  These models are the single source of truth for
the entire pipeline:

    Editor Graph → Normalize → Canonical Schema → Validate / Guard → Render

* **Editor graph** (``Table``, ``Column``, ``Relation``): identifier-keyed,
  suited to interactive editing where names change but ids never do.
* **Canonical schema** (``NormalizedSchema``, ``NormalizedTable``,
  ``NormalizedColumn``): name-keyed snapshot with foreign-key metadata embedded
  on the referencing column.  Its camelCase JSON form is the at-rest format.

Every model is frozen.  Transformations build new objects instead of mutating.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("schemaforge.models")

# ---------------------------------------------------------------------------
# Enums - fixed sets used across the entire project
# ---------------------------------------------------------------------------


class ColumnType(str, Enum):
    """Scalar column types understood by both renderers."""

    INT = "int"
    VARCHAR = "varchar"
    TEXT = "text"
    BOOLEAN = "boolean"
    TIMESTAMP = "timestamp"
    UUID = "uuid"


class DefaultKind(str, Enum):
    """How a column obtains its value when none is supplied."""

    AUTOINCREMENT = "autoincrement"
    UUID = "uuid"
    NOW = "now"
    VALUE = "value"


class OutputTarget(str, Enum):
    """Artifacts the generator can render."""

    SQL = "sql"
    PRISMA = "prisma"


# ---------------------------------------------------------------------------
# Shared model configuration
# ---------------------------------------------------------------------------

_SHARED_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    alias_generator=to_camel,
    use_enum_values=True,
    frozen=True,
    extra="ignore",
)


class _Model(BaseModel):
    model_config = _SHARED_CONFIG

    def to_document(self) -> Dict[str, Any]:
        """JSON-ready dict using the camelCase wire keys, optionals omitted."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ---------------------------------------------------------------------------
# Shared primitives
# ---------------------------------------------------------------------------


class ColumnDefault(_Model):
    """Column default descriptor.  ``value`` is only meaningful for kind=value."""

    kind: DefaultKind = Field(..., description="Default strategy.")
    value: Optional[str] = Field(
        default=None, description="Literal default, used when kind == 'value'."
    )

    @field_validator("value", mode="before")
    @classmethod
    def _coerce_literal(cls, v: Any) -> Any:
        # YAML happily turns `value: 0` or `value: true` into non-strings.
        if v is None or isinstance(v, str):
            return v
        if isinstance(v, bool):
            return "true" if v else "false"
        return str(v)

    def __repr__(self) -> str:
        if self.kind == DefaultKind.VALUE:
            return f"<Default value={self.value!r}>"
        return f"<Default {self.kind}>"


class Position(_Model):
    """Canvas coordinates of a table."""

    x: float = 0.0
    y: float = 0.0


# ---------------------------------------------------------------------------
# Editor graph (identifier-keyed)
# ---------------------------------------------------------------------------


class Column(_Model):
    """A column as held by the editor.  ``id`` is unique within its table."""

    id: str = Field(..., min_length=1, description="Opaque column identifier.")
    name: str = Field(default="", description="Column name.")
    type: str = Field(default=ColumnType.VARCHAR.value, description="Declared type.")
    primary_key: bool = False
    nullable: bool = True
    unique: bool = False
    default: Optional[ColumnDefault] = None

    def __repr__(self) -> str:
        pk_flag: str = " PK" if self.primary_key else ""
        return f"<Column {self.id}:{self.name} {self.type}{pk_flag}>"


class Table(_Model):
    """A table as held by the editor, columns in display order."""

    id: str = Field(..., min_length=1, description="Opaque table identifier.")
    name: str = Field(default="", description="Table name.")
    columns: List[Column] = Field(default_factory=list)

    def get_column(self, column_id: str) -> Optional[Column]:
        for column in self.columns:
            if column.id == column_id:
                return column
        return None

    def __repr__(self) -> str:
        return f"<Table {self.id}:{self.name} ({len(self.columns)} cols)>"


class Relation(_Model):
    """
    Directed edge between two columns.

    ``from`` is the referenced (primary-key) side and ``to`` the referencing
    (foreign-key) side.
    """

    id: str = Field(..., min_length=1)
    from_table_id: str
    from_column_id: str
    to_table_id: str
    to_column_id: str

    def touches_table(self, table_id: str) -> bool:
        return table_id in (self.from_table_id, self.to_table_id)

    def touches_column(self, table_id: str, column_id: str) -> bool:
        return (self.from_table_id, self.from_column_id) == (table_id, column_id) or (
            self.to_table_id,
            self.to_column_id,
        ) == (table_id, column_id)

    def __repr__(self) -> str:
        return (
            f"<Relation {self.from_table_id}.{self.from_column_id} → "
            f"{self.to_table_id}.{self.to_column_id}>"
        )


class EditorGraph(_Model):
    """Tables, relations and positions (keyed by table id) of one editor session."""

    tables: List[Table] = Field(default_factory=list)
    relations: List[Relation] = Field(default_factory=list)
    positions: Optional[Dict[str, Position]] = None

    def get_table(self, table_id: str) -> Optional[Table]:
        for table in self.tables:
            if table.id == table_id:
                return table
        return None


# ---------------------------------------------------------------------------
# Canonical schema (name-keyed)
# ---------------------------------------------------------------------------


class ForeignKeyRef(_Model):
    """Names the referenced (primary-key side) table and column."""

    table: str
    column: str

    def __repr__(self) -> str:
        return f"<FK → {self.table}.{self.column}>"


class NormalizedColumn(_Model):
    """Canonical column.  ``foreign_key`` is set iff a relation targets it."""

    name: str = ""
    type: str = ""
    primary_key: bool = False
    nullable: bool = True
    unique: bool = False
    foreign_key: Optional[ForeignKeyRef] = None
    default: Optional[ColumnDefault] = None

    @property
    def default_kind(self) -> Optional[str]:
        return self.default.kind if self.default is not None else None

    def __repr__(self) -> str:
        pk_flag: str = " PK" if self.primary_key else ""
        null_flag: str = " NULL" if self.nullable else " NOT NULL"
        fk_flag: str = (
            f" FK→{self.foreign_key.table}.{self.foreign_key.column}"
            if self.foreign_key
            else ""
        )
        return f"<Column {self.name} {self.type}{pk_flag}{null_flag}{fk_flag}>"


class NormalizedTable(_Model):
    """Canonical table with columns keyed by name, in declaration order."""

    name: str = ""
    columns: Dict[str, NormalizedColumn] = Field(default_factory=dict)

    def primary_key_names(self) -> List[str]:
        return [key for key, col in self.columns.items() if col.primary_key]

    def foreign_key_columns(self) -> List[NormalizedColumn]:
        return [col for col in self.columns.values() if col.foreign_key is not None]

    def __repr__(self) -> str:
        return f"<Table {self.name} ({len(self.columns)} cols)>"


class NormalizedSchema(_Model):
    """
    The root canonical model and the persisted-at-rest document.

    Table names are the mapping keys.  ``positions`` is keyed by table name.
    """

    tables: Dict[str, NormalizedTable] = Field(default_factory=dict)
    positions: Optional[Dict[str, Position]] = None

    @classmethod
    def from_document(cls, data: Dict[str, Any]) -> "NormalizedSchema":
        """Build from a decoded JSON/YAML document (camelCase or snake_case keys)."""
        return cls.model_validate(data)

    def get_table(self, name: str) -> Optional[NormalizedTable]:
        return self.tables.get(name)

    def get_column(self, table: str, column: str) -> Optional[NormalizedColumn]:
        owner: Optional[NormalizedTable] = self.tables.get(table)
        if owner is None:
            return None
        return owner.columns.get(column)

    @property
    def table_count(self) -> int:
        return len(self.tables)

    @property
    def total_columns(self) -> int:
        return sum(len(t.columns) for t in self.tables.values())

    @property
    def total_foreign_keys(self) -> int:
        return sum(len(t.foreign_key_columns()) for t in self.tables.values())

    def __repr__(self) -> str:
        return (
            f"<NormalizedSchema {self.table_count} tables, "
            f"{self.total_columns} columns, "
            f"{self.total_foreign_keys} foreign keys>"
        )


# ---------------------------------------------------------------------------
# Generator configuration
# ---------------------------------------------------------------------------


class GeneratorSettings(_Model):
    """
    Settings that control validation strictness and rendering.

    A single instance (combined with a ``NormalizedSchema``) is all the
    generator needs to produce its output.
    """

    sql_dialect: Literal["postgresql"] = Field(
        default="postgresql", description="SQL dialect of the DDL renderer."
    )
    orm_dialect: Literal["prisma"] = Field(
        default="prisma", description="ORM dialect of the schema renderer."
    )
    targets: List[OutputTarget] = Field(
        default_factory=lambda: [OutputTarget.SQL, OutputTarget.PRISMA],
        min_length=1,
        description="Artifacts to render.",
    )
    sql_filename: str = Field(default="schema.sql", min_length=1)
    orm_filename: str = Field(default="schema.prisma", min_length=1)
    strict_validation: bool = Field(
        default=True,
        description="Refuse to render when the advisory validator reports errors.",
    )

    @field_validator("targets")
    @classmethod
    def _unique_targets(cls, v: List[OutputTarget]) -> List[OutputTarget]:
        return list(dict.fromkeys(v))

    def filename_for(self, target: str) -> str:
        if target == OutputTarget.SQL:
            return self.sql_filename
        return self.orm_filename


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "ColumnType",
    "DefaultKind",
    "OutputTarget",
    "ColumnDefault",
    "Position",
    "Column",
    "Table",
    "Relation",
    "EditorGraph",
    "ForeignKeyRef",
    "NormalizedColumn",
    "NormalizedTable",
    "NormalizedSchema",
    "GeneratorSettings",
]

logger.debug("schemaforge.models loaded - %d public symbols.", len(__all__))
