# File: dalgen/validators.py
"""
dalgen - Schema Metadata Validators
===================================
Pure-function checks run over the ``Table`` metadata before generation.

Pydantic already enforces per-field structure (non-empty names, no
duplicate key columns).  This module adds the cross-entity checks that
would otherwise surface later as a ``ProgrammingError`` in a clause
builder or as colliding identifiers in generated code: key columns that
do not exist, foreign keys with mismatched column counts, columns whose
title-cased names collide, and so on.

Usage:
    from dalgen.validators import validate_tables
    result = validate_tables(tables)
    if not result:
        print(result.format_report())
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Set

from dalgen.models import Table
from dalgen.naming import RESERVED_WORDS, IdentifierCache, singularize, title_case

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("dalgen.validators")

# ---------------------------------------------------------------------------
# Validation result container
# ---------------------------------------------------------------------------


class ValidationError:
    """Lightweight issue descriptor (no Pydantic overhead)."""

    __slots__ = ("level", "code", "message", "context")

    def __init__(
        self,
        level: str,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.level: str = level  # "error" | "warning"
        self.code: str = code
        self.message: str = message
        self.context: Dict[str, Any] = context or {}

    @property
    def is_error(self) -> bool:
        return self.level == "error"

    @property
    def is_warning(self) -> bool:
        return self.level == "warning"

    def __repr__(self) -> str:
        return f"[{self.level.upper()}] {self.code}: {self.message}"

    def __str__(self) -> str:
        return self.__repr__()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level,
            "code": self.code,
            "message": self.message,
            "context": self.context,
        }


class ValidationResult:
    """Accumulates ``ValidationError`` instances produced by the checks below."""

    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: List[ValidationError] = []

    def add_error(self, code: str, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        self._items.append(ValidationError("error", code, message, context))

    def add_warning(self, code: str, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        self._items.append(ValidationError("warning", code, message, context))

    def merge(self, other: "ValidationResult") -> None:
        self._items.extend(other._items)

    @property
    def errors(self) -> List[ValidationError]:
        return [e for e in self._items if e.is_error]

    @property
    def warnings(self) -> List[ValidationError]:
        return [e for e in self._items if e.is_warning]

    @property
    def codes(self) -> List[str]:
        return [e.code for e in self._items]

    @property
    def has_errors(self) -> bool:
        return any(e.is_error for e in self._items)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    def summary(self) -> str:
        return (
            f"Validation: {len(self.errors)} error(s), "
            f"{len(self.warnings)} warning(s)."
        )

    def format_report(self) -> str:
        lines: List[str] = [self.summary(), ""]
        for item in self._items:
            lines.append(f"  {item.level.upper():<7} [{item.code}] {item.message}")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"<ValidationResult {self.summary()}>"

    def __bool__(self) -> bool:
        """Truthy when there are NO errors."""
        return self.is_valid

    def __len__(self) -> int:
        return len(self._items)


def _missing(table: Table, columns: Sequence[str]) -> List[str]:
    known: Set[str] = set(table.column_names)
    return [c for c in columns if c not in known]


# ---------------------------------------------------------------------------
# Per-table checks
# ---------------------------------------------------------------------------


def validate_primary_key(table: Table) -> ValidationResult:
    """
    A table without a primary key still generates, but every UPDATE then
    sets all columns and there is no single-row lookup.
    """
    result: ValidationResult = ValidationResult()
    ctx: Dict[str, Any] = {"table": table.name}

    if table.primary_key is None:
        result.add_warning(
            "MISSING_PRIMARY_KEY",
            f"Table '{table.name}' has no primary key; lookups by key are not generated.",
            ctx,
        )
        return result

    for column in _missing(table, table.primary_key.columns):
        result.add_error(
            "PK_COLUMN_MISSING",
            f"Primary key of '{table.name}' references unknown column '{column}'.",
            {**ctx, "column": column},
        )
    return result


def validate_foreign_keys(
    table: Table,
    tables: Optional[Mapping[str, Table]] = None,
) -> ValidationResult:
    """
    Check local and foreign columns of every foreign key.  Foreign columns
    are only resolved when *tables* (name -> Table) is given.
    """
    result: ValidationResult = ValidationResult()

    for fk in table.foreign_keys:
        ctx: Dict[str, Any] = {"table": table.name, "foreign_key": fk.name}

        if len(fk.local_columns) != len(fk.foreign_columns):
            result.add_error(
                "FK_COLUMN_COUNT_MISMATCH",
                f"Foreign key '{fk.name}' on '{table.name}' pairs "
                f"{len(fk.local_columns)} local with {len(fk.foreign_columns)} foreign column(s).",
                ctx,
            )

        for column in _missing(table, fk.local_columns):
            result.add_error(
                "FK_LOCAL_COLUMN_MISSING",
                f"Foreign key '{fk.name}' on '{table.name}' uses unknown column '{column}'.",
                {**ctx, "column": column},
            )

        if tables is None:
            continue

        target: Optional[Table] = tables.get(fk.foreign_model)
        if target is None:
            result.add_error(
                "FK_TARGET_TABLE_MISSING",
                f"Foreign key '{fk.name}' on '{table.name}' refers to unknown table "
                f"'{fk.foreign_model}'.",
                ctx,
            )
            continue

        for column in _missing(target, fk.foreign_columns):
            result.add_error(
                "FK_TARGET_COLUMN_MISSING",
                f"Foreign key '{fk.name}' on '{table.name}' refers to unknown column "
                f"'{fk.foreign_model}.{column}'.",
                {**ctx, "column": column},
            )

    return result


def validate_indexes(table: Table) -> ValidationResult:
    result: ValidationResult = ValidationResult()
    seen: Set[str] = set()

    for index in table.indexes:
        ctx: Dict[str, Any] = {"table": table.name, "index": index.name}
        if index.name in seen:
            result.add_error(
                "DUPLICATE_INDEX_NAME",
                f"Index '{index.name}' is defined more than once on '{table.name}'.",
                ctx,
            )
        seen.add(index.name)

        for column in _missing(table, index.columns):
            result.add_error(
                "INDEX_COLUMN_MISSING",
                f"Index '{index.name}' on '{table.name}' uses unknown column '{column}'.",
                {**ctx, "column": column},
            )
    return result


def validate_uniques(table: Table) -> ValidationResult:
    result: ValidationResult = ValidationResult()

    for unique in table.uniques:
        ctx: Dict[str, Any] = {"table": table.name, "unique": unique.name}
        if len(set(unique.columns)) != len(unique.columns):
            result.add_error(
                "UNIQUE_DUPLICATE_COLUMN",
                f"Unique constraint '{unique.name}' on '{table.name}' repeats a column.",
                ctx,
            )
        for column in _missing(table, unique.columns):
            result.add_error(
                "UNIQUE_COLUMN_MISSING",
                f"Unique constraint '{unique.name}' on '{table.name}' uses unknown "
                f"column '{column}'.",
                {**ctx, "column": column},
            )
    return result


def validate_identifiers(table: Table, cache: Optional[IdentifierCache] = None) -> ValidationResult:
    """
    Check that column names survive the naming transforms: no duplicates,
    no two columns title-casing to the same identifier, and a warning for
    reserved words (those get a ``_`` suffix in generated code).
    """
    result: ValidationResult = ValidationResult()
    seen: Set[str] = set()
    by_identifier: Dict[str, str] = {}

    for column in table.columns:
        ctx: Dict[str, Any] = {"table": table.name, "column": column.name}

        if column.name in seen:
            result.add_error(
                "DUPLICATE_COLUMN_NAME",
                f"Column '{column.name}' is duplicated in table '{table.name}'.",
                ctx,
            )
            continue
        seen.add(column.name)

        identifier: str = title_case(column.name, cache)
        if not identifier:
            result.add_error(
                "EMPTY_IDENTIFIER",
                f"Column '{column.name}' in '{table.name}' yields an empty identifier.",
                ctx,
            )
            continue

        other: Optional[str] = by_identifier.get(identifier)
        if other is not None:
            result.add_error(
                "IDENTIFIER_COLLISION",
                f"Columns '{other}' and '{column.name}' in '{table.name}' both map "
                f"to '{identifier}'.",
                {**ctx, "identifier": identifier},
            )
        by_identifier[identifier] = column.name

        if column.name in RESERVED_WORDS:
            result.add_warning(
                "COLUMN_NAME_RESERVED",
                f"Column '{column.name}' in '{table.name}' is a reserved word; "
                f"generated code will use '{column.name}_'.",
                ctx,
            )

    return result


def validate_table(
    table: Table,
    tables: Optional[Mapping[str, Table]] = None,
    cache: Optional[IdentifierCache] = None,
) -> ValidationResult:
    """Run every per-table check and merge the results."""
    result: ValidationResult = ValidationResult()

    checks: List[Callable[[], ValidationResult]] = [
        lambda: validate_primary_key(table),
        lambda: validate_foreign_keys(table, tables),
        lambda: validate_indexes(table),
        lambda: validate_uniques(table),
        lambda: validate_identifiers(table, cache),
    ]
    for check in checks:
        result.merge(check())

    logger.debug("validate_table(%s): %d issue(s).", table.name, len(result))
    return result


def validate_tables(
    tables: Sequence[Table],
    cache: Optional[IdentifierCache] = None,
) -> ValidationResult:
    """
    Validate a whole schema: every table, foreign key targets across
    tables, and model names that collide once singularized and
    title-cased (``user`` and ``users`` both become ``User``).
    """
    result: ValidationResult = ValidationResult()
    by_name: Dict[str, Table] = {}
    model_names: Dict[str, str] = {}

    for table in tables:
        if table.name in by_name:
            result.add_error(
                "DUPLICATE_TABLE_NAME",
                f"Table '{table.name}' is defined more than once.",
                {"table": table.name},
            )
        by_name[table.name] = table

        model: str = title_case(singularize(table.name), cache)
        other: Optional[str] = model_names.get(model)
        if other is not None and other != table.name:
            result.add_error(
                "MODEL_NAME_COLLISION",
                f"Tables '{other}' and '{table.name}' both map to model '{model}'.",
                {"table": table.name, "model": model},
            )
        model_names.setdefault(model, table.name)

    for table in by_name.values():
        result.merge(validate_table(table, by_name, cache))

    if result.has_errors:
        logger.error("Validation FAILED: %s", result.summary())
    else:
        logger.info("Validation PASSED: %s", result.summary())
    return result


__all__: List[str] = [
    "ValidationError",
    "ValidationResult",
    "validate_primary_key",
    "validate_foreign_keys",
    "validate_indexes",
    "validate_uniques",
    "validate_identifiers",
    "validate_table",
    "validate_tables",
]
