"""Result-shaping engine.

Pure functions that turn a row stream into keyed, nested and
object-oriented structures.  Each function consumes its input exactly once,
in order, and never re-orders rows: dictionaries are filled in row emission
order, so a later row with the same key overwrites (or, for the list
shapes, is appended after) an earlier one.

Positional shapes address columns by ordinal, never by name, so they are
indifferent to how the query aliases its columns.  Only the object shapes
read named attributes, because they work on hydrated records.

Architecture::

    rows ──► to_rows / to_row                 list[dict] / dict
         ──► to_value / to_values             scalar / list
         ──► to_assoc                         {c1: c2}
         ──► to_keyed_rows                    {c1: {rest of row}}
         ──► to_keyed_assoc                   {c1: {c2: c3}}
         ──► to_4d_table_assoc                {c1: {c2: {c3: c4}}}
         ──► to_keyed_values                  {c1: [c2, ...]}
         ──► to_table                         {c1: {c2: row}}
         ──► to_array_table                   {c1: {c2: [row, ...]}}

    records ──► to_object_table               {r.a: {r.b: [record, ...]}}
            ──► to_map                        {r.field: record}
            ──► fill_list / fill_map          caller-supplied container

Rows may be SQLAlchemy ``Row`` objects, plain tuples, dicts, or records
exposing ``to_dict()``.  A ``Row`` holding a single record (the result of
``select(Model)``) is treated as that record's column snapshot.

Examples:
    >>> to_keyed_assoc([(1, "a", "x"), (1, "b", "y"), (2, "c", "z")])
    {1: {'a': 'x', 'b': 'y'}, 2: {'c': 'z'}}
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from recordkit.protocols import RecordList, RecordMap


def _is_record(value: Any) -> bool:
    return callable(getattr(value, "to_dict", None))


def _unwrap(row: Any) -> Any:
    """Return the record held by a one-entity ``Row``, else the row itself."""
    if hasattr(row, "_mapping") and len(row) == 1 and _is_record(row[0]):
        return row[0]
    return row


def row_to_dict(row: Any) -> dict[Any, Any]:
    """Convert a row to an ordered ``{column: value}`` dict."""
    row = _unwrap(row)
    if _is_record(row):
        return row.to_dict()
    if hasattr(row, "_mapping"):
        return dict(row._mapping)
    if isinstance(row, Mapping):
        return dict(row)
    return dict(enumerate(row))


def row_values(row: Any) -> tuple[Any, ...]:
    """Convert a row to a tuple of its cell values, in column order."""
    row = _unwrap(row)
    if _is_record(row):
        return tuple(row.to_dict().values())
    if isinstance(row, Mapping):
        return tuple(row.values())
    return tuple(row)


# =============================================================================
# Flat shapes
# =============================================================================


def to_rows(rows: Iterable[Any]) -> list[dict[Any, Any]]:
    return [row_to_dict(row) for row in rows]


def to_row(rows: Iterable[Any]) -> dict[Any, Any]:
    """First row as a dict, or ``{}`` when there are no rows."""
    for row in rows:
        return row_to_dict(row)
    return {}


def to_value(rows: Iterable[Any]) -> Any:
    """First cell of the first row, or ``None`` when there are no rows."""
    for row in rows:
        return row_values(row)[0]
    return None


def to_values(rows: Iterable[Any]) -> list[Any]:
    """First cell of every row."""
    return [row_values(row)[0] for row in rows]


# =============================================================================
# Keyed shapes
# =============================================================================


def to_assoc(rows: Iterable[Any]) -> dict[Any, Any]:
    """Map the first column to the second."""
    result: dict[Any, Any] = {}

    for row in rows:
        values = row_values(row)
        result[values[0]] = values[1]

    return result


def to_keyed_rows(rows: Iterable[Any]) -> dict[Any, dict[Any, Any]]:
    """Key every row by its first value; the rest of the row is the value.

    ::

        {
            21: {"name": "Justin", "email": "justin@justin.com"},
            26: {"name": "Pete", "email": "pete@pete.com"},
        }
    """
    result: dict[Any, dict[Any, Any]] = {}

    for row in rows:
        data = row_to_dict(row)
        first_key = next(iter(data))
        result[data.pop(first_key)] = data

    return result


def to_keyed_assoc(rows: Iterable[Any]) -> dict[Any, dict[Any, Any]]:
    """``{first: {second: third}}``."""
    result: dict[Any, dict[Any, Any]] = {}

    for row in rows:
        first, second, third = row_values(row)[:3]
        result.setdefault(first, {})[second] = third

    return result


def to_4d_table_assoc(rows: Iterable[Any]) -> dict[Any, dict[Any, dict[Any, Any]]]:
    """``{first: {second: {third: fourth}}}``."""
    result: dict[Any, dict[Any, dict[Any, Any]]] = {}

    for row in rows:
        first, second, third, fourth = row_values(row)[:4]
        result.setdefault(first, {}).setdefault(second, {})[third] = fourth

    return result


def to_keyed_values(rows: Iterable[Any], remove_empty_values: bool = False) -> dict[Any, list[Any]]:
    """Group the second column under each distinct first column.

    With *remove_empty_values*, falsy second values are skipped, but their
    key is still present (possibly with an empty list).
    """
    result: dict[Any, list[Any]] = {}

    for row in rows:
        values = row_values(row)
        first, second = values[0], values[1]
        bucket = result.setdefault(first, [])

        if remove_empty_values and not second:
            continue

        bucket.append(second)

    return result


def to_table(rows: Iterable[Any]) -> dict[Any, dict[Any, dict[Any, Any]]]:
    """``{first: {second: full row}}``; the full row keeps its first two columns."""
    result: dict[Any, dict[Any, dict[Any, Any]]] = {}

    for row in rows:
        data = row_to_dict(row)
        first, second = list(data.values())[:2]
        result.setdefault(first, {})[second] = data

    return result


def to_array_table(rows: Iterable[Any]) -> dict[Any, dict[Any, list[dict[Any, Any]]]]:
    """``{first: {second: [row, row, ...]}}``; rows are appended, never overwritten."""
    result: dict[Any, dict[Any, list[dict[Any, Any]]]] = {}

    for row in rows:
        data = row_to_dict(row)
        first, second = list(data.values())[:2]
        result.setdefault(first, {}).setdefault(second, []).append(data)

    return result


# =============================================================================
# Object shapes
# =============================================================================


def to_object_table(
    records: Iterable[Any], first_key: str, second_key: str
) -> dict[Any, dict[Any, list[Any]]]:
    """Group records by two attributes: ``{r.first_key: {r.second_key: [r, ...]}}``."""
    result: dict[Any, dict[Any, list[Any]]] = {}

    for record in records:
        first = getattr(record, first_key)
        second = getattr(record, second_key)
        result.setdefault(first, {}).setdefault(second, []).append(record)

    return result


def to_map(records: Iterable[Any], field: str) -> dict[Any, Any]:
    """Key records by an attribute; later records overwrite earlier ones."""
    return {getattr(record, field): record for record in records}


def fill_list(records: Iterable[Any], container: RecordList) -> RecordList:
    for record in records:
        container.add(record)
    return container


def fill_map(records: Iterable[Any], container: RecordMap, map_by: str = "id") -> RecordMap:
    for record in records:
        container.add(record, getattr(record, map_by))
    return container


__all__ = [
    "row_to_dict",
    "row_values",
    "to_rows",
    "to_row",
    "to_value",
    "to_values",
    "to_assoc",
    "to_keyed_rows",
    "to_keyed_assoc",
    "to_4d_table_assoc",
    "to_keyed_values",
    "to_table",
    "to_array_table",
    "to_object_table",
    "to_map",
    "fill_list",
    "fill_map",
]
