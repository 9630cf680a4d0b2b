"""Where-clause builder.

Turns a ``{column: condition}`` mapping into an AND-joined SQL condition:

    >>> from recordkit.dialect import SQLiteDialect
    >>> quote = SQLiteDialect().quote_string
    >>> build_where_clause({"id": [1, 2], "status": "active", "site_id": 3}, quote)
    "id IN ('1', '2') AND status = 'active' AND site_id = 3"

An empty list contributes no clause, so ``{"id": []}`` yields ``""``.
Callers treat an empty clause as "nothing to do" rather than as "all
rows"; see ``DbService.delete`` and ``DbService.update``.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from recordkit.escaping import escape, is_numeric


def build_clause(column: str, condition: Any, quote: Callable[[str], str]) -> str | None:
    """Build the clause for one column, or ``None`` when it contributes nothing."""
    if isinstance(condition, (list, tuple, set, frozenset)):
        if not condition:
            return None
        members = ", ".join(quote(str(member)) for member in condition)
        return f"{column} IN ({members})"

    if condition is None:
        return f"{column} IS NULL"

    if is_numeric(condition):
        return f"{column} = {str(condition).strip()}"

    return f"{column} = {escape(condition, quote)}"


def build_where_clause(where: Mapping[str, Any], quote: Callable[[str], str]) -> str:
    """AND-join the clauses for every column of *where*."""
    clauses = []

    for column, condition in where.items():
        clause = build_clause(column, condition, quote)
        if clause is not None:
            clauses.append(clause)

    return " AND ".join(clauses)


__all__ = [
    "build_clause",
    "build_where_clause",
]
