"""Delimited path access over related records.

A path such as ``"order.customer.address.city"`` names a chain of
attributes: every segment but the last selects a related object, the last
selects the value to read or write.  Paths may also be given as a sequence
of selectors (``["order", "customer", "name"]``).

Each step goes through the object's ``get_related`` / ``set_related``
capability when it has one (every ``Record`` does) and falls back to plain
attribute access otherwise, so a walk can end in a non-record value such as
a JSON column.

    >>> resolve_path(invoice, "order.customer.name")
    'Ada'
    >>> assign_path(invoice, "order.customer.name", "Grace")
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from recordkit.errors import ArgumentError

SEPARATOR = "."


def split_path(path: str | Sequence[str]) -> list[str]:
    """Split *path* into selectors.

    Raises:
        ArgumentError: When the path is empty or has a blank segment
            (``"a..b"``, ``".a"``).
    """
    segments = path.split(SEPARATOR) if isinstance(path, str) else list(path)

    if not segments or any(not segment or not segment.strip() for segment in segments):
        raise ArgumentError(f"Malformed path: {path!r}")

    return segments


def _get(obj: Any, name: str) -> Any:
    getter = getattr(obj, "get_related", None)
    if callable(getter):
        return getter(name)
    return getattr(obj, name)


def _set(obj: Any, name: str, value: Any) -> None:
    setter = getattr(obj, "set_related", None)
    if callable(setter):
        setter(name, value)
    else:
        setattr(obj, name, value)


def resolve_path(obj: Any, path: str | Sequence[str]) -> Any:
    """Read the value at *path*, or ``None`` when a link of the chain is missing."""
    current = obj

    for segment in split_path(path):
        if current is None:
            return None
        current = _get(current, segment)

    return current


def assign_path(obj: Any, path: str | Sequence[str], value: Any) -> None:
    """Write *value* at *path*.

    Raises:
        ArgumentError: When an intermediate object of the chain is missing.
    """
    *parents, last = split_path(path)
    target = obj

    for depth, segment in enumerate(parents):
        target = _get(target, segment)
        if target is None:
            missing = SEPARATOR.join(parents[:depth + 1])
            raise ArgumentError(f"Cannot set {path!r}: {missing!r} is not attached")

    _set(target, last, value)


__all__ = [
    "SEPARATOR",
    "split_path",
    "resolve_path",
    "assign_path",
]
