"""Database access service.

:class:`DbService` pairs a :class:`~recordkit.protocols.SqlExecutor` with
the shaping engine, the where-clause builder and the bulk write engine.
Callers build queries with ``sqlalchemy.select`` and ask the service for
the shape they need.

Architecture::

    ┌────────────────────────────────────────────────────────────────────┐
    │                           DbService                                │
    │                                                                    │
    │   executor: SqlExecutor    ← SessionExecutor over an ORM Session    │
    │   settings: RecordkitSettings                                      │
    │                                                                    │
    │   get_*(select)            → shaped rows / records                 │
    │   query_*(sql)             → shaped rows from SQL text             │
    │   insert / insert_bulk     → single row / chunked multi-row        │
    │   update / delete          → where dict or SQL condition           │
    │   transaction(action)      → begin, run, commit or roll back       │
    └────────────────────────────────────────────────────────────────────┘

Usage:
    >>> with RecordSession(engine) as session:
    ...     service = DbService.from_session(session)
    ...     service.get_assoc(select(User.id, User.name))
    {1: 'Ada', 2: 'Grace'}

Tags:
    service, database, shaping, bulk-insert, transactions, recordkit
"""

from __future__ import annotations

import datetime
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from sqlalchemy import Table, select
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.engine import Result
from sqlalchemy.exc import DBAPIError
from sqlalchemy.sql import Select

from recordkit import shaping
from recordkit.bulk import build_insert_query, chunked
from recordkit.containers import ObjectList, ObjectMap
from recordkit.dialect import Dialect
from recordkit.errors import ArgumentError, ForeignKeyDeleteError, TransactionError, is_foreign_key_violation
from recordkit.escaping import escape, to_storage, to_storage_dict
from recordkit.logging import get_logger
from recordkit.protocols import RecordList, RecordMap, SqlExecutor
from recordkit.settings import RecordkitSettings, get_settings
from recordkit.where import build_where_clause

logger = get_logger(__name__)

# A record class or a plain table name
Model = type | str
Where = str | Mapping[str, Any] | None


class DbService:
    """Query shaping and write helpers over one executor.

    Parameters:
        executor: Any object satisfying :class:`SqlExecutor`.
        settings: Runtime settings.  Defaults to :func:`get_settings`.
    """

    def __init__(self, executor: SqlExecutor, settings: RecordkitSettings | None = None) -> None:
        self.executor = executor
        self.settings = settings or get_settings()

    @classmethod
    def from_session(
        cls,
        session: Any,
        dialect: Dialect | None = None,
        settings: RecordkitSettings | None = None,
    ) -> DbService:
        """Create a service backed by a SQLAlchemy ORM session.

        Wraps *session* in :class:`~recordkit.orm.session.SessionExecutor`.
        The dialect is detected from the session's bind unless given.
        """
        from recordkit.orm.session import SessionExecutor

        return cls(SessionExecutor(session, dialect), settings=settings)

    @property
    def dialect(self) -> Dialect:
        return self.executor.dialect

    # -- Internals ---------------------------------------------------------

    @staticmethod
    def _check_columns(query: Select[Any], expected: int, shape: str) -> None:
        count = len(query.selected_columns)
        if count != expected:
            raise ArgumentError(
                f"{shape} requires a query selecting exactly {expected} column(s), got {count}"
            ).with_context(statement=str(query))

    def _run(self, query: Any) -> Result[Any]:
        return self.executor.execute(query)

    @staticmethod
    def _table(model: Model) -> Table | str:
        if isinstance(model, str):
            return model
        return model.__table__

    @classmethod
    def _table_name(cls, model: Model) -> str:
        table = cls._table(model)
        return table if isinstance(table, str) else table.name

    @staticmethod
    def _key_columns(model: Model) -> list[str]:
        if isinstance(model, str):
            return ["id"]
        return [column.name for column in model.__table__.primary_key.columns]

    def _where_clause(self, where: Where) -> str | None:
        if where is None or isinstance(where, str):
            return where
        return build_where_clause(where, self.escape_string)

    # -- Escaping ----------------------------------------------------------

    def escape_string(self, value: str) -> str:
        return self.executor.escape_string(value)

    def escape(self, value: Any) -> str:
        """Render *value* as a SQL literal for the connected backend."""
        return escape(value, self.executor.escape_string)

    @staticmethod
    def to_storage(value: Any) -> Any:
        return to_storage(value)

    @staticmethod
    def to_storage_dict(values: Mapping[str, Any]) -> dict[str, Any]:
        return to_storage_dict(values)

    @staticmethod
    def get_alias_for_model(model: type) -> str | None:
        return getattr(model, "__alias__", None)

    # -- Row shapes --------------------------------------------------------

    def get_rows(self, query: Select[Any]) -> list[dict[Any, Any]]:
        return shaping.to_rows(self._run(query))

    def get_row(self, query: Select[Any]) -> dict[Any, Any]:
        return shaping.to_row(self._run(query))

    def get_value(self, query: Select[Any]) -> Any:
        self._check_columns(query, 1, "get_value")
        return shaping.to_value(self._run(query))

    def get_values(self, query: Select[Any], ignore_multiple_columns: bool = False) -> list[Any]:
        """First column of every row.

        Raises ``ArgumentError`` when the query selects more than one
        column, unless *ignore_multiple_columns* is set.
        """
        if not ignore_multiple_columns:
            self._check_columns(query, 1, "get_values")
        return shaping.to_values(self._run(query))

    def get_date(self, query: Select[Any]) -> datetime.datetime | None:
        value = self.get_value(query)
        if not value:
            return None
        if isinstance(value, datetime.datetime):
            return value
        if isinstance(value, datetime.date):
            return datetime.datetime.combine(value, datetime.time())
        return datetime.datetime.fromisoformat(str(value))

    def get_exists(self, query: Select[Any]) -> bool:
        return self._run(query).first() is not None

    # -- Keyed shapes ------------------------------------------------------

    def get_assoc(self, query: Select[Any]) -> dict[Any, Any]:
        self._check_columns(query, 2, "get_assoc")
        return shaping.to_assoc(self._run(query))

    def get_keyed_rows(self, query: Select[Any]) -> dict[Any, dict[Any, Any]]:
        return shaping.to_keyed_rows(self._run(query))

    def get_keyed_assoc(self, query: Select[Any]) -> dict[Any, dict[Any, Any]]:
        self._check_columns(query, 3, "get_keyed_assoc")
        return shaping.to_keyed_assoc(self._run(query))

    def get_4d_table_assoc(self, query: Select[Any]) -> dict[Any, dict[Any, dict[Any, Any]]]:
        self._check_columns(query, 4, "get_4d_table_assoc")
        return shaping.to_4d_table_assoc(self._run(query))

    def get_keyed_values(
        self, query: Select[Any], remove_empty_values: bool = False
    ) -> dict[Any, list[Any]]:
        return shaping.to_keyed_values(self._run(query), remove_empty_values)

    def get_table(self, query: Select[Any]) -> dict[Any, dict[Any, dict[Any, Any]]]:
        return shaping.to_table(self._run(query))

    def get_array_table(self, query: Select[Any]) -> dict[Any, dict[Any, list[dict[Any, Any]]]]:
        return shaping.to_array_table(self._run(query))

    # -- Object shapes -----------------------------------------------------

    def get_objects(self, query: Select[Any]) -> list[Any]:
        return list(self.executor.scalars(query))

    def get_object(self, query: Select[Any]) -> Any | None:
        return self.executor.scalars(query).first()

    def get_object_list(
        self, query: Select[Any], container: Callable[[], RecordList] = ObjectList
    ) -> RecordList:
        return shaping.fill_list(self.executor.scalars(query), container())

    def get_object_map(
        self,
        query: Select[Any],
        container: Callable[[], RecordMap] = ObjectMap,
        map_by: str = "id",
    ) -> RecordMap:
        return shaping.fill_map(self.executor.scalars(query), container(), map_by)

    def get_object_table(
        self, query: Select[Any], first_key: str, second_key: str
    ) -> dict[Any, dict[Any, list[Any]]]:
        return shaping.to_object_table(self.executor.scalars(query), first_key, second_key)

    @staticmethod
    def to_map(results: Sequence[Any], field: str) -> dict[Any, Any]:
        return shaping.to_map(results, field)

    def get_table_row_by_id(self, model: type, id: Any) -> dict[Any, Any]:
        """Column dict of the *model* row with primary key *id*, or ``{}``."""
        table = model.__table__
        primary_key = sa_inspect(model).primary_key[0]
        return self.get_row(select(table).where(primary_key == id))

    # -- SQL text ----------------------------------------------------------

    def query(self, sql: str, params: Mapping[str, Any] | None = None) -> Result[Any]:
        """Execute SQL text and return the raw result."""
        return self.executor.execute(sql, params)

    def query_rows(self, sql: str, params: Mapping[str, Any] | None = None) -> list[dict[Any, Any]]:
        return shaping.to_rows(self.query(sql, params))

    def query_row(self, sql: str, params: Mapping[str, Any] | None = None) -> dict[Any, Any]:
        return shaping.to_row(self.query(sql, params))

    def query_assoc(self, sql: str, params: Mapping[str, Any] | None = None) -> dict[Any, Any]:
        return shaping.to_assoc(self.query(sql, params))

    def query_value(self, sql: str, params: Mapping[str, Any] | None = None) -> Any:
        return shaping.to_value(self.query(sql, params))

    def query_values(self, sql: str, params: Mapping[str, Any] | None = None) -> list[Any]:
        return shaping.to_values(self.query(sql, params))

    # -- Writes ------------------------------------------------------------

    def insert(
        self, model: Model, values: Mapping[str, Any], update_on_duplicate_key: bool = False
    ) -> Any:
        """Insert one row and return its primary key.

        With *update_on_duplicate_key* an existing row with the same key is
        overwritten with every supplied column.
        """
        values = dict(values)

        if update_on_duplicate_key:
            key_columns = self._key_columns(model)
            self.executor.execute(
                build_insert_query(
                    self._table_name(model), [values], self.dialect,
                    upsert=True, key_columns=key_columns,
                )
            )
            if len(key_columns) == 1 and values.get(key_columns[0]) is not None:
                return values[key_columns[0]]
        else:
            self.executor.insert(self._table(model), list(values.keys()), list(values.values()))

        return self.executor.last_insert_id()

    def insert_bulk(
        self,
        model: Model,
        rows: Sequence[Mapping[str, Any]],
        update_on_duplicate_key: bool = False,
    ) -> bool:
        """Insert *rows* with one multi-row INSERT per chunk, all or nothing.

        Every row must have the same columns.  The chunks run in one
        transaction, or in a savepoint when the caller already has one open,
        so they commit or roll back with the caller's work.  If any chunk
        fails every chunk is rolled back and the error re-raised; rows the
        caller flushed earlier are kept.
        """
        if not rows:
            return True

        table = self._table_name(model)
        key_columns = self._key_columns(model)
        size = self.settings.bulk_chunk_size

        self.executor.begin()

        try:
            for index, chunk in enumerate(chunked(rows, size)):
                self.executor.execute(
                    build_insert_query(
                        table, chunk, self.dialect,
                        upsert=update_on_duplicate_key, key_columns=key_columns,
                    )
                )
                logger.debug("bulk_insert_chunk", table=table, chunk=index, rows=len(chunk))
        except Exception as e:
            logger.error("bulk_insert_failed", table=table, rows=len(rows), error=str(e))
            self.executor.rollback()
            raise

        self.executor.commit()
        logger.info("bulk_insert_complete", table=table, rows=len(rows))
        return True

    def update(self, model: Model, values: Mapping[str, Any], where: Where = None) -> bool:
        """Update rows matching *where*.

        *where* is a SQL condition or a ``{column: condition}`` dict.  A dict
        producing no condition (``{}``, ``{"id": []}``) updates nothing.
        ``None`` updates every row.
        """
        clause = self._where_clause(where)
        if isinstance(where, Mapping) and not clause:
            return True

        self.executor.update(self._table(model), list(values.keys()), list(values.values()), clause)
        return True

    def delete(self, model: Model, where: str | Mapping[str, Any]) -> bool:
        """Delete rows matching *where*; an empty filter deletes nothing.

        Raises:
            ForeignKeyDeleteError: When a matching row is still referenced.
        """
        clause = self._where_clause(where)
        if not clause:
            return True

        table = self._table_name(model)

        try:
            self.executor.delete(self._table(model), clause)
        except DBAPIError as e:
            if self.settings.is_dev:
                logger.error("delete_failed", table=table, where=clause, error=str(e.orig))

            if is_foreign_key_violation(e):
                raise ForeignKeyDeleteError(cause=e).with_context(table=table, statement=clause) from e
            raise

        return True

    def truncate(self, model: Model) -> bool:
        """Delete every row of the table."""
        self.executor.delete(self._table(model))
        return True

    def set_foreign_key_checks(self, enabled: bool) -> None:
        """Turn foreign key enforcement on or off for the current connection."""
        self.executor.execute(self.dialect.foreign_key_checks(enabled))

    def transaction(
        self,
        action: Callable[[], Any],
        raise_errors: bool = True,
        wrap_errors: bool = False,
    ) -> bool:
        """Run *action* between begin and commit.

        Nested calls, and writes such as :meth:`insert_bulk` made by
        *action*, use savepoints, so only the outermost call commits.

        On failure the transaction is rolled back and the error is logged.
        It is then re-raised (wrapped in :class:`TransactionError` when
        *wrap_errors* is set), or ``False`` is returned when *raise_errors*
        is off.
        """
        self.executor.begin()

        try:
            action()
        except Exception as e:
            logger.error("transaction_failed", error=str(e), error_type=type(e).__name__)
            self.executor.rollback()

            if not raise_errors:
                return False
            if wrap_errors:
                raise TransactionError(f"Transaction rolled back: {e}", cause=e) from e
            raise

        self.executor.commit()
        return True


__all__ = [
    "DbService",
]
