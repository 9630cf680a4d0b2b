"""SQLAlchemy engine factory, session class, and SQL executor adapter.

This module provides:

* ``create_engine``            -- Create a SA engine from a URL.
* ``create_engine_from_settings`` -- Same, driven by ``RecordkitSettings``.
* ``RecordSession``            -- Session with ``expire_on_commit=False``.
* ``record_session_factory``   -- ``sessionmaker`` producing ``RecordSession``.
* ``SessionExecutor``          -- Wraps a SA ``Session`` to satisfy the
  ``recordkit.protocols.SqlExecutor`` protocol used by ``DbService``.

Tags:
    recordkit, orm, sqlalchemy, session, engine, executor
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from sqlalchemy import column as sa_column
from sqlalchemy import create_engine as _sa_create_engine
from sqlalchemy import delete as sa_delete
from sqlalchemy import event, literal_column, text
from sqlalchemy import insert as sa_insert
from sqlalchemy import table as sa_table
from sqlalchemy import update as sa_update
from sqlalchemy.engine import CursorResult, Engine, Result, ScalarResult
from sqlalchemy.orm import Session, SessionTransaction, sessionmaker
from sqlalchemy.sql import Executable, TableClause

from recordkit.dialect import Dialect, get_dialect
from recordkit.settings import RecordkitSettings, get_settings


def _prepare_sqlite_connection(dbapi_connection: Any, _record: Any) -> None:
    # pysqlite would otherwise issue its own BEGIN, which breaks SAVEPOINT
    dbapi_connection.isolation_level = None

    # SQLite ships with foreign key enforcement off for every new connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys = ON")
    cursor.close()


def _begin_sqlite_transaction(connection: Any) -> None:
    connection.exec_driver_sql("BEGIN")


def create_engine(
    url: str = "sqlite:///recordkit.db",
    *,
    echo: bool = False,
    pool_size: int | None = None,
    max_overflow: int | None = None,
    pool_timeout: int | None = None,
    **kwargs: Any,
) -> Engine:
    """Engine for *url* with foreign keys enforced on every backend.

    SQLite connections hand transaction control to SQLAlchemy so that
    savepoints (``Session.begin_nested``) behave as on server databases.

    Args:
        url: SQLAlchemy URL such as ``sqlite:///app.db`` or
            ``mysql+pymysql://user@host/app``.
        echo: Emit every statement through the ``sqlalchemy.engine`` logger.
        pool_size: Pool setting passed through for server databases.
        max_overflow: Pool setting passed through for server databases.
        pool_timeout: Pool setting passed through for server databases.
        **kwargs: Forwarded to :func:`sqlalchemy.create_engine`.
    """
    if not url.startswith("sqlite"):
        pool = {"pool_size": pool_size, "max_overflow": max_overflow, "pool_timeout": pool_timeout}
        kwargs.update({key: value for key, value in pool.items() if value is not None})
        return _sa_create_engine(url, echo=echo, **kwargs)

    kwargs.setdefault("connect_args", {"check_same_thread": False})
    engine = _sa_create_engine(url, echo=echo, **kwargs)
    event.listen(engine, "connect", _prepare_sqlite_connection)
    event.listen(engine, "begin", _begin_sqlite_transaction)
    return engine


def create_engine_from_settings(settings: RecordkitSettings | None = None, **kwargs: Any) -> Engine:
    """Engine for ``RECORDKIT_DATABASE_URL``, echoing SQL when ``RECORDKIT_ECHO`` is set."""
    settings = settings or get_settings()
    return create_engine(settings.database_url, echo=settings.echo, **kwargs)


class RecordSession(Session):
    """Session whose objects stay readable after ``commit()``.

    ``expire_on_commit`` defaults to false, so records returned by a
    service call can still be read once the unit of work has committed.
    """

    def __init__(self, bind: Engine | None = None, **kwargs: Any) -> None:
        kwargs.setdefault("expire_on_commit", False)
        super().__init__(bind=bind, **kwargs)


def record_session_factory(engine: Engine) -> sessionmaker[RecordSession]:
    return sessionmaker(bind=engine, class_=RecordSession)


def _as_table(table: str | TableClause, columns: Sequence[str] = ()) -> TableClause:
    if isinstance(table, str):
        return sa_table(table, *(sa_column(name) for name in columns))
    return table


class SessionExecutor:
    """Adapter that makes a SQLAlchemy ``Session`` satisfy ``SqlExecutor``.

    SQL text without parameters is sent to the driver as-is
    (``exec_driver_sql``), so literals produced by ``escape`` are never
    re-parsed for bind parameters.  SQL text with parameters goes through
    ``text()`` and uses ``:name`` binds.

    Tables may be given by name or as ``Table`` objects; a ``Table`` lets
    SQLAlchemy report generated primary keys on every backend.
    """

    def __init__(self, session: Session, dialect: Dialect | None = None) -> None:
        self._session = session
        self._dialect = dialect or get_dialect(session.get_bind().dialect.name)
        self._last_result: Any = None
        self._transactions: list[SessionTransaction] = []

    # -- Accessors --

    @property
    def session(self) -> Session:
        """The wrapped session, for ORM queries."""
        return self._session

    @property
    def dialect(self) -> Dialect:
        return self._dialect

    # -- Statements --

    def execute(
        self, statement: str | Executable, params: Mapping[str, Any] | None = None
    ) -> Result[Any]:
        if isinstance(statement, str):
            if params:
                result = self._session.execute(text(statement), dict(params))
            else:
                result = self._session.connection().exec_driver_sql(statement)
        else:
            result = self._session.execute(statement, dict(params) if params else None)

        self._last_result = result
        return result

    def scalars(self, statement: Executable) -> ScalarResult[Any]:
        return self._session.scalars(statement)

    # -- Writes --

    def insert(
        self, table: str | TableClause, columns: Sequence[str], values: Sequence[Any]
    ) -> CursorResult[Any]:
        stmt = sa_insert(_as_table(table, columns)).values(dict(zip(columns, values, strict=True)))
        return self.execute(stmt)  # type: ignore[return-value]

    def update(
        self,
        table: str | TableClause,
        columns: Sequence[str],
        values: Sequence[Any],
        where: str | None = None,
    ) -> CursorResult[Any]:
        stmt = sa_update(_as_table(table, columns)).values(dict(zip(columns, values, strict=True)))
        if where:
            stmt = stmt.where(literal_column(where))
        return self.execute(stmt)  # type: ignore[return-value]

    def delete(self, table: str | TableClause, where: str | None = None) -> CursorResult[Any]:
        stmt = sa_delete(_as_table(table))
        if where:
            stmt = stmt.where(literal_column(where))
        return self.execute(stmt)  # type: ignore[return-value]

    def escape_string(self, value: str) -> str:
        return self._dialect.quote_string(value)

    # -- Transactions --

    def begin(self) -> None:
        """Open a transaction, or a savepoint when one is already open.

        Every ``begin`` is closed by the matching ``commit`` or ``rollback``,
        so a nested unit of work never commits or discards the caller's.
        """
        if self._session.in_transaction():
            self._transactions.append(self._session.begin_nested())
        else:
            self._transactions.append(self._session.begin())

    def commit(self) -> None:
        if self._transactions:
            self._transactions.pop().commit()
        else:
            self._session.commit()

    def rollback(self) -> None:
        if self._transactions:
            self._transactions.pop().rollback()
        else:
            self._session.rollback()

    def last_insert_id(self) -> Any:
        result = self._last_result
        if result is None:
            return None

        if getattr(result, "is_insert", False):
            primary_key = result.inserted_primary_key
            if primary_key:
                return primary_key[0]

        return getattr(result, "lastrowid", None)


__all__ = [
    "create_engine",
    "create_engine_from_settings",
    "RecordSession",
    "record_session_factory",
    "SessionExecutor",
]
