"""
Protocol definitions for recordkit.

This module defines the structural contracts recordkit depends on, so the
service and the shaping engine never import a concrete driver.

Architecture:
    ::

        protocols.py
        ├── SqlExecutor   : statement execution + transactions (Session adapter)
        ├── RecordList    : append-only container for get_object_list
        └── RecordMap     : keyed container for get_object_map

    Implementations:
        SqlExecutor → recordkit.orm.session.SessionExecutor
        RecordList  → recordkit.containers.ObjectList
        RecordMap   → recordkit.containers.ObjectMap

Tags:
    protocol, executor, container, recordkit, contracts
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from sqlalchemy.engine import CursorResult, Result, ScalarResult
    from sqlalchemy.sql import Executable, TableClause

    from recordkit.dialect import Dialect


@runtime_checkable
class SqlExecutor(Protocol):
    """
    Minimal synchronous executor interface used by ``DbService``.

    ::

        execute(stmt, params)            → Result (one-shot row cursor)
        scalars(stmt)                    → ScalarResult (hydrated records)
        insert(table, columns, values)   → CursorResult
        update(table, columns, values, where) → CursorResult
        delete(table, where)             → CursorResult
        escape_string(value)             → quoted SQL literal
        begin() / commit() / rollback()  → transaction boundary
        last_insert_id()                 → id generated by the last insert
    """

    @property
    def dialect(self) -> Dialect:
        """SQL fragments for the connected backend."""
        ...

    def execute(
        self, statement: str | Executable, params: Mapping[str, Any] | None = None
    ) -> Result[Any]:
        """Execute SQL text or a SQLAlchemy statement."""
        ...

    def scalars(self, statement: Executable) -> ScalarResult[Any]:
        """Execute a statement and return the first column of each row."""
        ...

    def insert(self, table: str | TableClause, columns: Sequence[str], values: Sequence[Any]) -> CursorResult[Any]:
        """Insert a single row."""
        ...

    def update(
        self,
        table: str | TableClause,
        columns: Sequence[str],
        values: Sequence[Any],
        where: str | None = None,
    ) -> CursorResult[Any]:
        """Update rows matching the SQL condition *where* (all rows if ``None``)."""
        ...

    def delete(self, table: str | TableClause, where: str | None = None) -> CursorResult[Any]:
        """Delete rows matching the SQL condition *where* (all rows if ``None``)."""
        ...

    def escape_string(self, value: str) -> str:
        """Quote *value* as a string literal for the connected backend."""
        ...

    def begin(self) -> None:
        """Begin a transaction, or a savepoint inside an open one."""
        ...

    def commit(self) -> None:
        """Commit what the matching ``begin`` opened."""
        ...

    def rollback(self) -> None:
        """Roll back what the matching ``begin`` opened."""
        ...

    def last_insert_id(self) -> Any:
        """Primary key generated by the most recent insert."""
        ...


@runtime_checkable
class RecordList(Protocol):
    """Container filled by ``DbService.get_object_list``."""

    def add(self, record: Any) -> None:
        ...


@runtime_checkable
class RecordMap(Protocol):
    """Container filled by ``DbService.get_object_map``."""

    def add(self, record: Any, key: Any) -> None:
        ...


__all__ = [
    "SqlExecutor",
    "RecordList",
    "RecordMap",
]
