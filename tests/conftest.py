"""
tests/conftest.py
Shared fixtures for the dalgen test suite.

No external mocking libraries are used; real file I/O is performed
inside temporary directories managed by pytest's tmp_path fixtures.
"""

from __future__ import annotations

import pathlib
import textwrap
from typing import Dict, List

import pytest

from dalgen.models import ColumnDef, ForeignKey, Index, OutputConfig, PrimaryKey, Table, Unique
from dalgen.naming import IdentifierCache
from dalgen.output import OutputWriter
from dalgen.sanitizer import SourceSanitizer


# ---------------------------------------------------------------------------
# Naming fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def cache() -> IdentifierCache:
    """A fresh identifier cache per test."""
    return IdentifierCache()


# ---------------------------------------------------------------------------
# Metadata fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def users_table() -> Table:
    """``users`` with a serial key, two defaulted columns and a unique email."""
    return Table(
        name="users",
        columns=[
            ColumnDef(name="id", type="int", has_default=True),
            ColumnDef(name="email", type="str"),
            ColumnDef(name="name", type="str"),
            ColumnDef(name="created_at", type="datetime", has_default=True),
            ColumnDef(name="is_active", type="bool", has_default=True),
        ],
        primary_key=PrimaryKey(columns=["id"]),
        indexes=[Index(name="users_name_idx", columns=["name"])],
        uniques=[Unique(name="users_email_key", columns=["email"])],
    )


@pytest.fixture()
def posts_table() -> Table:
    """``posts`` referencing ``users``."""
    return Table(
        name="posts",
        columns=[
            ColumnDef(name="id", type="int", has_default=True),
            ColumnDef(name="user_id", type="int"),
            ColumnDef(name="title", type="str"),
            ColumnDef(name="body", type="str"),
        ],
        primary_key=PrimaryKey(columns=["id"]),
        foreign_keys=[
            ForeignKey(
                name="posts_user_id_fkey",
                local_columns=["user_id"],
                foreign_model="users",
                foreign_columns=["id"],
            )
        ],
    )


@pytest.fixture()
def schema_tables(users_table: Table, posts_table: Table) -> List[Table]:
    return [users_table, posts_table]


# ---------------------------------------------------------------------------
# Generated source fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def generated_sources() -> Dict[str, str]:
    """Two well-formed generated modules and one with a syntax error on line 7."""
    good_models: str = textwrap.dedent(
        """\
        import datetime
        import json
        from typing import List, Optional


        class User:
            def __init__(self, name: str, tags: Optional[List[str]] = None) -> None:
                self.name = name
                self.tags = tags or []
                self.created_at = datetime.datetime.now()
        """
    )
    good_queries: str = textwrap.dedent(
        """\
        import sys


        def main() -> int:
            return 0
        """
    )
    broken: str = textwrap.dedent(
        """\
        import os


        class Broken:
            def one(self):
                return 1
            def two(self)
                return 2
        """
    )
    return {"models.py": good_models, "queries.py": good_queries, "broken.py": broken}


@pytest.fixture()
def sanitizer() -> SourceSanitizer:
    return SourceSanitizer()


@pytest.fixture()
def writer(tmp_path: pathlib.Path) -> OutputWriter:
    """An OutputWriter rooted in a fresh temporary directory."""
    return OutputWriter(tmp_path / "out", OutputConfig())
