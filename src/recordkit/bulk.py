"""Bulk write engine: chunking and multi-row INSERT statements.

``DbService.insert_bulk`` splits the rows with :func:`chunked` and issues
one statement per chunk built by :func:`build_insert_query`.  Every row of a
statement must have the same columns as the first row; values are emitted
in the first row's column order.

Example:
    >>> from recordkit.dialect import MySQLDialect
    >>> d = MySQLDialect()
    >>> build_insert_query("users", [{"id": 1, "name": "a"}], d, upsert=True)
    "INSERT INTO users (id, name) VALUES (1, 'a') ON DUPLICATE KEY UPDATE id = VALUES(id), name = VALUES(name)"
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from typing import Any

from recordkit.dialect import Dialect
from recordkit.errors import ArgumentError
from recordkit.escaping import escape


def chunked(rows: Sequence[Any], size: int) -> Iterator[Sequence[Any]]:
    """Yield consecutive slices of at most *size* rows."""
    if size <= 0:
        raise ArgumentError(f"Chunk size must be positive, got {size}")

    for start in range(0, len(rows), size):
        yield rows[start:start + size]


def build_insert_query(
    table: str,
    rows: Sequence[Mapping[str, Any]],
    dialect: Dialect,
    *,
    upsert: bool = False,
    key_columns: Sequence[str] = ("id",),
) -> str:
    """Build one multi-row INSERT with every value embedded as a literal.

    Args:
        table: Target table name.
        rows: Non-empty list of same-shaped row dicts.
        dialect: Backend used for quoting and the upsert suffix.
        upsert: Append the dialect's "overwrite on duplicate key" clause.
        key_columns: Conflict target for dialects that need one.

    Raises:
        ArgumentError: When *rows* is empty or a row's columns differ from
            the first row's.
    """
    if not rows:
        raise ArgumentError("Cannot build an INSERT without rows")

    columns = list(rows[0].keys())
    values = []

    for row in rows:
        if len(row) != len(columns) or any(column not in row for column in columns):
            raise ArgumentError(
                f"All rows must have the columns {columns}, got {list(row.keys())}"
            ).with_context(table=table)

        literals = [escape(row[column], dialect.quote_string) for column in columns]
        values.append("(" + ", ".join(literals) + ")")

    query = f"INSERT INTO {table} ({', '.join(columns)}) VALUES " + ", ".join(values)

    if upsert:
        query += dialect.upsert_clause(columns, list(key_columns))

    return query


__all__ = [
    "chunked",
    "build_insert_query",
]
