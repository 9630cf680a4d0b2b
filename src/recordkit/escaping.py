"""Value escaping and storage normalization.

``escape`` renders a Python value as a SQL literal for statements that are
assembled as text (bulk inserts, where clauses).  ``to_storage`` prepares a
value for a bound column: blank strings become ``NULL`` and structured
values are stored as JSON text.

Examples:
    >>> from recordkit.dialect import SQLiteDialect
    >>> quote = SQLiteDialect().quote_string
    >>> escape("O'Brien", quote)
    "'O''Brien'"
    >>> escape("", quote)
    'NULL'
    >>> escape(42, quote)
    '42'
    >>> to_storage({"a": 1})
    '{"a": 1}'
"""

from __future__ import annotations

import datetime
import json
import math
import re
from collections.abc import Callable, Mapping
from decimal import Decimal
from typing import Any

from recordkit.errors import ArgumentError

NULL = "NULL"

_NUMERIC_RE = re.compile(r"^\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?\s*$")


def _is_finite(value: int | float | Decimal) -> bool:
    if isinstance(value, int):
        return True
    if isinstance(value, Decimal):
        return value.is_finite()
    return math.isfinite(value)


def is_numeric(value: Any) -> bool:
    """True for ints, floats, Decimals and strings that spell a number.

    Booleans, NaN and infinities are not numeric.
    """
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float, Decimal)):
        return _is_finite(value)
    if isinstance(value, str):
        return bool(_NUMERIC_RE.match(value))
    return False


def _json_default(value: Any) -> Any:
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    if isinstance(value, (datetime.date, datetime.time)):
        return value.isoformat()
    return str(value)


def to_json(value: Any) -> str:
    """Serialize a structured value to JSON text."""
    return json.dumps(value, default=_json_default)


def escape(value: Any, quote: Callable[[str], str]) -> str:
    """Render *value* as a SQL literal.

    Args:
        value: Value to render.
        quote: Backend string-literal quoting, normally the executor's
               ``escape_string``.

    Raises:
        ArgumentError: For NaN and infinite numbers, which SQL cannot spell.
    """
    if value is None or (isinstance(value, str) and value == ""):
        return NULL

    if isinstance(value, bool):
        return quote("1" if value else "0")

    if isinstance(value, (int, float, Decimal)):
        if not _is_finite(value):
            raise ArgumentError(f"{value!r} has no SQL literal")
        return str(value)

    if isinstance(value, datetime.datetime):
        return quote(value.isoformat(sep=" "))

    if isinstance(value, (datetime.date, datetime.time)):
        return quote(value.isoformat())

    if isinstance(value, (dict, list, tuple)):
        return quote(to_json(value))

    return quote(str(value))


def to_storage(value: Any) -> Any:
    """Format a value so it can be stored in the database properly."""
    # convert empty string to null
    if isinstance(value, str) and value == "":
        return None

    if isinstance(value, (dict, list, tuple)) or callable(getattr(value, "to_dict", None)):
        return to_json(value)

    return value


def to_storage_dict(values: Mapping[str, Any]) -> dict[str, Any]:
    """Apply :func:`to_storage` to every value of *values*."""
    return {key: to_storage(value) for key, value in values.items()}


__all__ = [
    "NULL",
    "escape",
    "is_numeric",
    "to_json",
    "to_storage",
    "to_storage_dict",
]
