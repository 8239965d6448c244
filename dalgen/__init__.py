# File: dalgen/__init__.py
"""
dalgen - Data-Access-Layer Generation Support Engine
====================================================

The runtime support a schema-driven code generator needs between its
templates and the files it writes: identifier naming, field-set algebra,
SQL clause rendering, and finalizing generated Python source (pruning
unused imports, formatting with black).

Architecture overview::

    ┌──────────────┐   ┌──────────────┐   ┌───────────────┐
    │   naming     │◀──│   clauses    │   │   fieldsets   │
    │  (.py)       │   │   (.py)      │   │   (.py)       │
    └──────────────┘   └──────────────┘   └───────────────┘
           ▲                                      │
    ┌──────┴───────┐   ┌──────────────┐   ┌───────▼───────┐
    │  validators  │   │  sanitizer   │◀──│    output     │
    │  (.py)       │   │  (.py)       │   │    (.py)      │
    └──────────────┘   └──────────────┘   └───────────────┘

Usage::

    from dalgen import IdentifierCache, OutputWriter, title_case, where_clause

    cache = IdentifierCache()
    title_case("user_id", cache)                  # 'UserID'
    where_clause('"', '"', 1, ["id"])             # '"id"=$1'
    OutputWriter("./models").write("users.py", rendered_template)

Public API:
    - IdentifierCache, NamingEngine, Ruleset  -- naming
    - insert_field_set, update_field_set      -- field sets
    - placeholders, where_clause, ...         -- SQL fragments
    - sanitize, SourceSanitizer               -- generated source finalizing
    - OutputWriter                            -- file writer
    - validate_tables                         -- metadata checks
"""

from __future__ import annotations

__version__: str = "0.1.0"
__author__: str = "NexaFlow Team"
__license__: str = "MIT"

from dalgen.errors import DalgenError, ProgrammingError, SanitizeError
from dalgen.models import (
    MSSQL,
    MYSQL,
    POSTGRES,
    SQLITE,
    ColumnDef,
    Dialect,
    ForeignKey,
    Index,
    OutputConfig,
    PrimaryKey,
    SanitizeConfig,
    SQLColumnDef,
    SQLColumnDefs,
    Table,
    Unique,
    sql_col_definitions,
)
from dalgen.naming import (
    DEFAULT_RULESET,
    IdentifierCache,
    NamingEngine,
    Ruleset,
    camel_case,
    contains_any,
    join_lists,
    make_string_map,
    pluralize,
    prefix_string_list,
    quote_character,
    quote_identifier,
    quote_identifiers,
    replace_reserved_word,
    schema_model,
    singularize,
    string_list_match,
    string_map,
    title_case,
    title_case_identifier,
)
from dalgen.fieldsets import (
    insert_field_set,
    set_complement,
    set_include,
    set_merge,
    sort_by_keys,
    table_insert_field_set,
    table_update_field_set,
    update_field_set,
)
from dalgen.clauses import (
    join_on_clause,
    join_where_clause,
    placeholders,
    set_param_names,
    where_clause,
    where_clause_repeated,
    where_in_clause,
)
from dalgen.sanitizer import Diagnostic, SanitizeResult, SourceSanitizer, sanitize
from dalgen.output import OutputReport, OutputWriter, render_header
from dalgen.validators import ValidationResult, validate_table, validate_tables
from dalgen.utils import merge_import_dicts, setup_logging

# ---------------------------------------------------------------------------
# Public API surface
# ---------------------------------------------------------------------------

__all__: list[str] = [
    # Version info
    "__version__",
    "__author__",
    "__license__",
    # Errors
    "DalgenError",
    "ProgrammingError",
    "SanitizeError",
    # Models
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
    # Naming
    "IdentifierCache",
    "NamingEngine",
    "Ruleset",
    "DEFAULT_RULESET",
    "pluralize",
    "singularize",
    "title_case",
    "camel_case",
    "title_case_identifier",
    "quote_identifier",
    "quote_identifiers",
    "schema_model",
    "quote_character",
    "replace_reserved_word",
    "make_string_map",
    "string_map",
    "prefix_string_list",
    "join_lists",
    "string_list_match",
    "contains_any",
    # Field sets
    "set_complement",
    "set_merge",
    "sort_by_keys",
    "set_include",
    "update_field_set",
    "insert_field_set",
    "table_insert_field_set",
    "table_update_field_set",
    # Clauses
    "placeholders",
    "set_param_names",
    "where_clause",
    "where_clause_repeated",
    "join_on_clause",
    "join_where_clause",
    "where_in_clause",
    # Sanitizer & output
    "Diagnostic",
    "SanitizeResult",
    "SourceSanitizer",
    "sanitize",
    "OutputReport",
    "OutputWriter",
    "render_header",
    # Validation
    "ValidationResult",
    "validate_table",
    "validate_tables",
    # Utilities
    "setup_logging",
    "merge_import_dicts",
]
