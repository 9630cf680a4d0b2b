"""Default record containers for ``get_object_list`` and ``get_object_map``.

Subclass these to give a collection of records domain behaviour
(``UserList.emails()``, ``ProductMap.total_price()``) and pass the
subclass to the service:

    >>> users = service.get_object_list(select(User), UserList)
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any


class ObjectList:
    """Ordered list of records."""

    def __init__(self, records: list[Any] | None = None) -> None:
        self._records: list[Any] = list(records or [])

    def add(self, record: Any) -> None:
        self._records.append(record)

    def first(self) -> Any | None:
        return self._records[0] if self._records else None

    def keys(self, field: str = "id") -> list[Any]:
        """Values of *field* of every record, in order."""
        return [getattr(record, field) for record in self._records]

    def __iter__(self) -> Iterator[Any]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __getitem__(self, index: int) -> Any:
        return self._records[index]

    def __bool__(self) -> bool:
        return bool(self._records)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._records!r})"


class ObjectMap:
    """Records keyed by a field value, in insertion order.

    Adding a record under an existing key replaces the earlier one.
    """

    def __init__(self) -> None:
        self._records: dict[Any, Any] = {}

    def add(self, record: Any, key: Any) -> None:
        self._records[key] = record

    def get(self, key: Any, default: Any = None) -> Any:
        return self._records.get(key, default)

    def keys(self) -> list[Any]:
        return list(self._records)

    def values(self) -> list[Any]:
        return list(self._records.values())

    def items(self) -> list[tuple[Any, Any]]:
        return list(self._records.items())

    def __contains__(self, key: object) -> bool:
        return key in self._records

    def __iter__(self) -> Iterator[Any]:
        return iter(self._records.values())

    def __len__(self) -> int:
        return len(self._records)

    def __getitem__(self, key: Any) -> Any:
        return self._records[key]

    def __bool__(self) -> bool:
        return bool(self._records)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._records!r})"


__all__ = [
    "ObjectList",
    "ObjectMap",
]
