# File: dalgen/models.py
"""
dalgen - Schema Metadata & Configuration Models
===============================================
Pydantic V2 models for the read-only schema metadata handed over by the
introspection driver, plus the configuration objects threaded through a
generation run (SQL dialect, sanitizer and output settings).

Metadata models are frozen: they are supplied once per run and shared by
every generation worker.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional, Sequence

import black
from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("dalgen.models")

# ---------------------------------------------------------------------------
# Shared model configuration
# ---------------------------------------------------------------------------

_FROZEN_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    frozen=True,
    extra="forbid",
)

_SHARED_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    validate_assignment=True,
    frozen=False,
    extra="forbid",
)


def _no_duplicates(kind: str, columns: List[str]) -> List[str]:
    if len(columns) != len(set(columns)):
        dupes: List[str] = sorted({c for c in columns if columns.count(c) > 1})
        raise ValueError(f"Duplicate columns in {kind}: {dupes}")
    return columns


# ---------------------------------------------------------------------------
# Schema metadata
# ---------------------------------------------------------------------------


class ColumnDef(BaseModel):
    """A single database column as reported by the introspection driver."""

    model_config = _FROZEN_CONFIG

    name: str = Field(..., min_length=1, description="Column name.")
    type: str = Field(..., description="Target-language type of the column.")
    has_default: bool = Field(
        default=False,
        description="True when the database assigns a value if none is supplied.",
    )

    def __repr__(self) -> str:
        default_flag: str = " DEFAULT" if self.has_default else ""
        return f"<ColumnDef {self.name} {self.type}{default_flag}>"


class PrimaryKey(BaseModel):
    """Primary key columns, in key order."""

    model_config = _FROZEN_CONFIG

    columns: List[str] = Field(..., min_length=1)

    @field_validator("columns")
    @classmethod
    def _unique_columns(cls, v: List[str]) -> List[str]:
        return _no_duplicates("primary key", v)


class Index(BaseModel):
    """A named index over one or more columns."""

    model_config = _FROZEN_CONFIG

    name: str = Field(..., min_length=1)
    columns: List[str] = Field(..., min_length=1)

    @field_validator("columns")
    @classmethod
    def _unique_columns(cls, v: List[str]) -> List[str]:
        return _no_duplicates("index", v)


class Unique(BaseModel):
    """A named unique constraint."""

    model_config = _FROZEN_CONFIG

    name: str = Field(..., min_length=1)
    columns: List[str] = Field(..., min_length=1)


class ForeignKey(BaseModel):
    """
    Foreign key from ``local_columns`` of this model to ``foreign_columns``
    of ``foreign_model``.  Column lists pair up positionally.
    """

    model_config = _FROZEN_CONFIG

    name: str = Field(..., min_length=1)
    local_columns: List[str] = Field(..., min_length=1)
    foreign_model: str = Field(..., min_length=1)
    foreign_columns: List[str] = Field(..., min_length=1)

    def __repr__(self) -> str:
        return (
            f"<ForeignKey {self.name} ({', '.join(self.local_columns)}) → "
            f"{self.foreign_model}({', '.join(self.foreign_columns)})>"
        )


class Table(BaseModel):
    """All metadata for one table, as consumed by a single generation call."""

    model_config = _FROZEN_CONFIG

    name: str = Field(..., min_length=1)
    columns: List[ColumnDef] = Field(default_factory=list)
    primary_key: Optional[PrimaryKey] = None
    indexes: List[Index] = Field(default_factory=list)
    uniques: List[Unique] = Field(default_factory=list)
    foreign_keys: List[ForeignKey] = Field(default_factory=list)

    @computed_field  # type: ignore[misc]
    @property
    def column_names(self) -> List[str]:
        return [c.name for c in self.columns]

    @computed_field  # type: ignore[misc]
    @property
    def defaulted_column_names(self) -> List[str]:
        return [c.name for c in self.columns if c.has_default]

    @computed_field  # type: ignore[misc]
    @property
    def no_default_column_names(self) -> List[str]:
        return [c.name for c in self.columns if not c.has_default]

    @computed_field  # type: ignore[misc]
    @property
    def primary_key_columns(self) -> List[str]:
        return list(self.primary_key.columns) if self.primary_key else []

    def get_column(self, name: str) -> Optional[ColumnDef]:
        for column in self.columns:
            if column.name == name:
                return column
        return None

    def __repr__(self) -> str:
        return (
            f"<Table {self.name} ({len(self.columns)} cols, "
            f"{len(self.foreign_keys)} FKs, {len(self.indexes)} indexes)>"
        )


# ---------------------------------------------------------------------------
# SQL column definitions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SQLColumnDef:
    """A column name paired with its type, formatted like an SQL field definition."""

    name: str
    type: str

    def __str__(self) -> str:
        return f"{self.name} {self.type}"


class SQLColumnDefs(list):
    """List of ``SQLColumnDef`` with projection helpers."""

    def names(self) -> List[str]:
        return [d.name for d in self]

    def types(self) -> List[str]:
        return [d.type for d in self]


def sql_col_definitions(columns: Sequence[ColumnDef], names: Sequence[str]) -> SQLColumnDefs:
    """
    Build definitions for *names*, in that order, taking each type from the
    matching entry of *columns*.  Names with no matching column get an empty
    type.
    """
    by_name: Dict[str, ColumnDef] = {c.name: c for c in columns}
    defs: SQLColumnDefs = SQLColumnDefs()
    for name in names:
        column: Optional[ColumnDef] = by_name.get(name)
        defs.append(SQLColumnDef(name=name, type=column.type if column else ""))
    return defs


# ---------------------------------------------------------------------------
# Dialect
# ---------------------------------------------------------------------------


class Dialect(BaseModel):
    """
    Quote characters and placeholder style for one target database.

    Clause builders take these values as explicit arguments; a ``Dialect``
    only saves callers from threading three loose values around.
    """

    model_config = _FROZEN_CONFIG

    name: str = Field(default="postgres")
    left_quote: str = Field(default='"', min_length=1, max_length=1)
    right_quote: str = Field(default='"', min_length=1, max_length=1)
    use_index_placeholders: bool = Field(
        default=True,
        description="Emit $1, $2 ... instead of anonymous ? placeholders.",
    )

    def start(self, offset: int = 1) -> int:
        """Placeholder start to pass to clause builders (0 means anonymous ``?``)."""
        return offset if self.use_index_placeholders else 0


POSTGRES: Dialect = Dialect(name="postgres", left_quote='"', right_quote='"', use_index_placeholders=True)
MYSQL: Dialect = Dialect(name="mysql", left_quote="`", right_quote="`", use_index_placeholders=False)
SQLITE: Dialect = Dialect(name="sqlite", left_quote='"', right_quote='"', use_index_placeholders=False)
MSSQL: Dialect = Dialect(name="mssql", left_quote="[", right_quote="]", use_index_placeholders=False)


# ---------------------------------------------------------------------------
# Sanitizer & output configuration
# ---------------------------------------------------------------------------


class SanitizeConfig(BaseModel):
    """Settings for pruning and reformatting generated source."""

    model_config = _SHARED_CONFIG

    line_length: int = Field(default=99, ge=40, le=200, description="black line length.")
    string_normalization: bool = Field(default=True)
    magic_trailing_comma: bool = Field(default=True)
    keep_aliases: FrozenSet[str] = Field(
        default=frozenset({"_"}),
        description="Local aliases that are never pruned.",
    )
    keep_modules: FrozenSet[str] = Field(
        default=frozenset({"__future__"}),
        description="Modules whose imports are never pruned.",
    )

    def black_mode(self) -> black.Mode:
        return black.Mode(
            line_length=self.line_length,
            string_normalization=self.string_normalization,
            magic_trailing_comma=self.magic_trailing_comma,
        )


class OutputConfig(BaseModel):
    """Settings for writing finalized files."""

    model_config = _SHARED_CONFIG

    atomic_writes: bool = Field(default=True)
    write_disclaimer: bool = Field(
        default=False,
        description="Prefix every file with the generated-code disclaimer.",
    )
    encoding: str = Field(default="utf-8")
    sanitize: SanitizeConfig = Field(default_factory=SanitizeConfig)


__all__: List[str] = [
    "ColumnDef",
    "PrimaryKey",
    "Index",
    "Unique",
    "ForeignKey",
    "Table",
    "SQLColumnDef",
    "SQLColumnDefs",
    "sql_col_definitions",
    "Dialect",
    "POSTGRES",
    "MYSQL",
    "SQLITE",
    "MSSQL",
    "SanitizeConfig",
    "OutputConfig",
]
