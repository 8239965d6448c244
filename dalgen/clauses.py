# File: dalgen/clauses.py
"""
dalgen - SQL Clause Builders
============================
Render the parameterized SQL fragments that generated query code embeds:
placeholder lists, ``SET`` assignments, ``WHERE`` conditions and ``JOIN``
conditions.

Every builder takes the dialect explicitly:

- ``lq`` / ``rq``: the identifier quote characters (``"`` for PostgreSQL,
  a backtick for MySQL, ``[`` / ``]`` for SQL Server),
- ``start``: the number of the first ``$n`` placeholder, or ``0`` for
  anonymous ``?`` placeholders.

Identifiers are quoted through ``dalgen.naming.quote_identifier``.
"""

from __future__ import annotations

from typing import List, Sequence

from dalgen.errors import ProgrammingError
from dalgen.naming import quote_identifier


def _param(start: int, offset: int) -> str:
    if start == 0:
        return "?"
    return f"${start + offset}"


def placeholders(indexed: bool, count: int, start: int, group: int) -> str:
    """
    Generate ``count`` placeholders separated by commas.

    With ``group > 1`` every ``group`` placeholders are wrapped in
    parentheses, as needed for multi-row ``VALUES`` lists.

    Examples:
        >>> placeholders(True, 3, 1, 0)
        '$1,$2,$3'
        >>> placeholders(True, 6, 1, 3)
        '($1,$2,$3),($4,$5,$6)'
        >>> placeholders(False, 3, 0, 0)
        '?,?,?'

    Raises:
        ProgrammingError: for a negative ``start`` or ``group``, or an
            indexed ``start`` below 1.
    """
    if start < 0 or group < 0:
        raise ProgrammingError(
            f"placeholders: start ({start}) and group ({group}) must not be negative"
        )
    if indexed and start == 0:
        raise ProgrammingError("placeholders: indexed placeholders must start at 1 or above")

    grouped: bool = group > 1
    parts: List[str] = ["("] if grouped else []
    for i in range(count):
        if i != 0:
            parts.append("),(" if grouped and i % group == 0 else ",")

        parts.append(f"${start + i}" if indexed else "?")

    if grouped:
        parts.append(")")
    return "".join(parts)


def set_param_names(lq: str, rq: str, start: int, fields: Sequence[str]) -> str:
    """``"a"=$1,"b"=$2`` for an UPDATE ... SET list."""
    return ",".join(
        f"{quote_identifier(lq, rq, field)}={_param(start, i)}"
        for i, field in enumerate(fields)
    )


def where_clause(lq: str, rq: str, start: int, cols: Sequence[str]) -> str:
    """
    ``"a"=$1 AND "b"=$2``, or ``"a"=? AND "b"=?`` when *start* is 0.

    Example:
        >>> where_clause('"', '"', 2, ["a", "b"])
        '"a"=$2 AND "b"=$3'
    """
    return " AND ".join(
        f"{quote_identifier(lq, rq, col)}={_param(start, i)}"
        for i, col in enumerate(cols)
    )


def where_clause_repeated(lq: str, rq: str, start: int, cols: Sequence[str], count: int) -> str:
    """
    ``count`` copies of ``where_clause`` OR-ed together, numbering continuing
    across copies: ``("a"=$1 AND "b"=$2) OR ("a"=$3 AND "b"=$4)``.
    """
    groups: List[str] = []
    for i in range(count):
        group_start: int = start + i * len(cols) if start > 0 else 0
        groups.append(where_clause(lq, rq, group_start, cols))
    return "(" + ") OR (".join(groups) + ")"


def join_on_clause(
    lq: str,
    rq: str,
    table1: str,
    cols1: Sequence[str],
    table2: str,
    cols2: Sequence[str],
) -> str:
    """``"t1"."a"="t2"."x" AND "t1"."b"="t2"."y"``; column lists pair up positionally."""
    if len(cols1) != len(cols2):
        raise ProgrammingError(
            f"join_on_clause: column lists differ in length ({len(cols1)} != {len(cols2)})"
        )
    return " AND ".join(
        f"{quote_identifier(lq, rq, f'{table1}.{c1}')}={quote_identifier(lq, rq, f'{table2}.{c2}')}"
        for c1, c2 in zip(cols1, cols2)
    )


def join_where_clause(lq: str, rq: str, start: int, table: str, cols: Sequence[str]) -> str:
    """Like ``where_clause`` with every column qualified by *table*."""
    return " AND ".join(
        f"{quote_identifier(lq, rq, f'{table}.{col}')}={_param(start, i)}"
        for i, col in enumerate(cols)
    )


def where_in_clause(lq: str, rq: str, table: str, cols: Sequence[str]) -> str:
    """
    Left-hand side of an ``IN`` condition: ``"t"."a"`` for one column,
    ``("t"."a","t"."b")`` for a composite key.
    """
    qualified: str = ",".join(quote_identifier(lq, rq, f"{table}.{col}") for col in cols)
    if len(cols) != 1:
        return f"({qualified})"
    return qualified


__all__: List[str] = [
    "placeholders",
    "set_param_names",
    "where_clause",
    "where_clause_repeated",
    "join_on_clause",
    "join_where_clause",
    "where_in_clause",
]
