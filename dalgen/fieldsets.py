# File: dalgen/fieldsets.py
"""
dalgen - Field Set Algebra
==========================
Order-preserving list operations that decide which columns appear in the
generated INSERT, UPDATE and RETURNING statements.

All functions are pure: inputs are never mutated and results are new
lists.  Order always follows the first argument (or the explicit key
order for ``sort_by_keys``) so that generated code is deterministic.
"""

from __future__ import annotations

from typing import List, Sequence, Set, Tuple

from dalgen.models import Table


def set_complement(a: Sequence[str], b: Sequence[str]) -> List[str]:
    """Elements of *a* that are not in *b*, in *a*'s order."""
    exclude: Set[str] = set(b)
    return [item for item in a if item not in exclude]


def set_merge(a: Sequence[str], b: Sequence[str]) -> List[str]:
    """*a* followed by *b*, keeping only the first occurrence of each element."""
    seen: Set[str] = set()
    merged: List[str] = []
    for item in (*a, *b):
        if item not in seen:
            seen.add(item)
            merged.append(item)
    return merged


def sort_by_keys(keys: Sequence[str], items: Sequence[str]) -> List[str]:
    """
    Reorder *items* to follow *keys*.  Items absent from *keys* are dropped.

    Example:
        >>> sort_by_keys(["id", "name", "email"], ["email", "id", "bogus"])
        ['id', 'email']
        >>> sort_by_keys(["id", "id", "name"], ["id", "name"])
        ['id', 'name']
    """
    remaining: Set[str] = set(items)
    ordered: List[str] = []
    for key in keys:
        if key in remaining:
            remaining.discard(key)
            ordered.append(key)
    return ordered


def set_include(item: str, items: Sequence[str]) -> bool:
    return item in items


# ---------------------------------------------------------------------------
# Statement field sets
# ---------------------------------------------------------------------------


def update_field_set(
    all_columns: Sequence[str],
    pk_columns: Sequence[str],
    whitelist: Sequence[str] = (),
) -> List[str]:
    """Columns to SET in an UPDATE: the whitelist if given, else every non-key column."""
    if whitelist:
        return list(whitelist)
    return set_complement(all_columns, pk_columns)


def insert_field_set(
    columns: Sequence[str],
    defaults: Sequence[str],
    no_defaults: Sequence[str],
    non_zero_defaults: Sequence[str],
    whitelist: Sequence[str] = (),
) -> Tuple[List[str], List[str]]:
    """
    Split columns into the INSERT list and the RETURNING list.

    Without a whitelist, the INSERT list holds the columns without a
    database default plus the defaulted columns the caller set to a
    non-zero value, in table order.  Every other defaulted column is read
    back through RETURNING.  With a whitelist, exactly those columns are
    inserted and the remaining defaulted columns are returned.

    The two lists never overlap.

    Returns:
        ``(insert_columns, returning_columns)``
    """
    if whitelist:
        return list(whitelist), set_complement(defaults, whitelist)

    wanted: List[str] = set_merge(non_zero_defaults, no_defaults)
    insert: List[str] = sort_by_keys(columns, wanted)
    returning: List[str] = set_complement(defaults, insert)
    return insert, returning


def table_insert_field_set(
    table: Table,
    non_zero_defaults: Sequence[str] = (),
    whitelist: Sequence[str] = (),
) -> Tuple[List[str], List[str]]:
    """``insert_field_set`` with the column lists taken from *table*."""
    return insert_field_set(
        table.column_names,
        table.defaulted_column_names,
        table.no_default_column_names,
        non_zero_defaults,
        whitelist,
    )


def table_update_field_set(table: Table, whitelist: Sequence[str] = ()) -> List[str]:
    return update_field_set(table.column_names, table.primary_key_columns, whitelist)


__all__: List[str] = [
    "set_complement",
    "set_merge",
    "sort_by_keys",
    "set_include",
    "update_field_set",
    "insert_field_set",
    "table_insert_field_set",
    "table_update_field_set",
]
