# File: schemaforge/guard.py
"""
SchemaForge - Generation Guard
===============================
The hard gate in front of both renderers.  Narrower than the advisory
validator: it checks only foreign-key placement and referential integrity,
collects every violation, and raises a single ``GenerationGuardError`` listing
all of them.  Renderers call it unconditionally, so no SQL or ORM text is ever
produced for a schema whose foreign keys sit on primary-key columns or point
at missing or non-key columns.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Set, Tuple

from schemaforge.models import NormalizedSchema, NormalizedTable
from schemaforge.validators import ErrorCode

logger: logging.Logger = logging.getLogger("schemaforge.guard")


@dataclass(frozen=True, slots=True)
class GuardViolation:
    """One referential-integrity violation.  ``index`` is 1-based."""

    index: int
    code: str
    table: str
    column: str
    message: str

    def __str__(self) -> str:
        return f"{self.index}. {self.message}"


class GenerationGuardError(ValueError):
    """Raised when a schema is not generation-ready."""

    def __init__(self, violations: List[GuardViolation]) -> None:
        self.violations: List[GuardViolation] = violations
        lines: str = "\n".join(str(v) for v in violations)
        super().__init__(
            f"Schema validation failed with {len(violations)} error(s):\n\n{lines}"
        )


def collect_violations(schema: NormalizedSchema) -> List[GuardViolation]:
    """
    Return every referential-integrity violation in *schema*, in table then
    column order.

    Checked per foreign-key column: it is not itself a primary key, the
    referenced table exists, and the referenced column exists and is a
    primary key.  Neither renderer can express a PK+FK column faithfully,
    so the validator's one-to-one caution becomes a hard stop here.
    """
    primary_keys: Dict[str, Set[str]] = {
        name: set(table.primary_key_names()) for name, table in schema.tables.items()
    }
    found: List[Tuple[str, str, str, str]] = []

    for table_name, table in schema.tables.items():
        for column_name, column in table.columns.items():
            fk = column.foreign_key
            if fk is None:
                continue

            if column.primary_key:
                found.append(
                    (
                        ErrorCode.COLUMN_PK_IS_FK.value,
                        table_name,
                        column_name,
                        f"Column '{column_name}' in table '{table_name}' is marked "
                        f"as PRIMARY KEY but has foreign-key metadata. Foreign keys "
                        f"can only exist on non-primary-key columns.",
                    )
                )

            target: Optional[NormalizedTable] = schema.get_table(fk.table)
            if target is None:
                found.append(
                    (
                        ErrorCode.FK_TABLE_NOT_FOUND.value,
                        table_name,
                        column_name,
                        f"Column '{column_name}' in table '{table_name}' references "
                        f"non-existent table '{fk.table}'.",
                    )
                )
                continue

            if fk.column not in target.columns:
                found.append(
                    (
                        ErrorCode.FK_COLUMN_NOT_FOUND.value,
                        table_name,
                        column_name,
                        f"Column '{column_name}' in table '{table_name}' references "
                        f"non-existent column '{fk.column}' in table '{fk.table}'.",
                    )
                )
                continue

            if fk.column not in primary_keys[fk.table]:
                found.append(
                    (
                        ErrorCode.FK_NOT_PRIMARY_KEY.value,
                        table_name,
                        column_name,
                        f"Column '{column_name}' in table '{table_name}' references "
                        f"column '{fk.column}' in table '{fk.table}', but "
                        f"'{fk.column}' is NOT a primary key. Foreign keys must "
                        f"reference primary key columns.",
                    )
                )

    return [
        GuardViolation(index=i, code=code, table=t, column=c, message=msg)
        for i, (code, t, c, msg) in enumerate(found, start=1)
    ]


def assert_generation_ready(schema: NormalizedSchema) -> None:
    """
    Raise ``GenerationGuardError`` if *schema* has any foreign-key violation.

    Raises:
        GenerationGuardError: with every violation, numbered from 1.
    """
    violations: List[GuardViolation] = collect_violations(schema)
    if violations:
        logger.error(
            "Generation guard rejected schema with %d violation(s).", len(violations)
        )
        raise GenerationGuardError(violations)
    logger.debug("Generation guard passed for %r.", schema)


__all__: List[str] = [
    "GuardViolation",
    "GenerationGuardError",
    "collect_violations",
    "assert_generation_ready",
]
