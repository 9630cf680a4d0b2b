"""Exceptions raised by recordkit.

All of them derive from :class:`RecordkitError`, which carries an
:class:`ErrorCategory`, an :class:`ErrorContext` naming the table, model
or statement involved, and the driver exception as ``cause``.  Driver
errors recordkit does not recognise are never wrapped; they propagate
unchanged.

Hierarchy::

    RecordkitError
        ArgumentError           wrong column count, malformed path, bad option
        ConfigError             unknown dialect, invalid setting
        ValidationError         record rejected by ``Record.validate``
        DatabaseError
            ForeignKeyDeleteError   delete blocked by a referencing row
        TransactionError        failure inside ``DbService.transaction``

Examples:
    >>> ArgumentError("The query must request two columns").category
    <ErrorCategory.ARGUMENT: 'ARGUMENT'>

    >>> try:
    ...     service.delete(Category, {"id": 1})
    ... except ForeignKeyDeleteError:
    ...     print("still referenced")
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

# MySQL: "Cannot delete or update a parent row: a foreign key constraint fails"
MYSQL_FK_CONSTRAINT_FAIL = 1451
# SQLite extended result code SQLITE_CONSTRAINT_FOREIGNKEY
SQLITE_CONSTRAINT_FOREIGNKEY = 787
# PostgreSQL SQLSTATE foreign_key_violation
POSTGRES_FOREIGN_KEY_VIOLATION = "23503"


class ErrorCategory(str, Enum):
    """Error categories used for classification and log routing."""

    ARGUMENT = "ARGUMENT"         # Caller broke a precondition
    VALIDATION = "VALIDATION"     # Record rejected before persisting
    DATABASE = "DATABASE"         # Store-level failure
    TRANSACTION = "TRANSACTION"   # Failure inside a wrapped transaction
    CONFIG = "CONFIG"             # Invalid settings
    INTERNAL = "INTERNAL"         # Bugs, unexpected state


@dataclass
class ErrorContext:
    """Where an error happened: the table, the record class, the SQL text.

    Anything else passed to :meth:`RecordkitError.with_context` lands in
    ``metadata``.
    """

    table: str | None = None
    model: str | None = None
    statement: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        fields = {"table": self.table, "model": self.model, "statement": self.statement}
        return {key: value for key, value in fields.items() if value is not None} | self.metadata


class RecordkitError(Exception):
    """
    Base exception for all recordkit errors.

    Subclasses set ``default_category``; instances carry an
    :class:`ErrorContext` and the chained ``cause``.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **fields: Any) -> RecordkitError:
        """Attach context fields and return ``self`` so it chains onto ``raise``.

        ``table``, ``model`` and ``statement`` fill the matching
        :class:`ErrorContext` slots; other keys go to ``metadata``::

            raise DatabaseError("insert failed").with_context(table="users", chunk=3)
        """
        slots = {"table", "model", "statement"}
        for key, value in fields.items():
            if key in slots:
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Serializable view used as structured log fields."""
        payload: dict[str, Any] = {
            "error_type": type(self).__name__,
            "message": self.message,
            "category": self.category.value,
        }
        if context := self.context.to_dict():
            payload["context"] = context
        if self.cause is not None:
            payload["cause"] = str(self.cause)
        return payload

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, category={self.category.value})"


# -- Caller errors --------------------------------------------------------


class ArgumentError(RecordkitError, ValueError):
    """
    A precondition of the call was violated.

    Raised before any statement is executed, e.g. when a two-column shape
    is requested from a query selecting three columns, or when a
    delimited path is malformed. Never retryable.
    """

    default_category = ErrorCategory.ARGUMENT


class ConfigError(RecordkitError):
    """Invalid configuration (unknown dialect, bad setting)."""

    default_category = ErrorCategory.CONFIG


# -- Validation -------------------------------------------------------------


class ValidationError(RecordkitError):
    """
    A record was rejected before being persisted.

    The message is the composite ``"<detail>, data: <json>, class: <name>"``
    so it is useful in logs on its own; ``snapshot`` and ``record_class``
    keep the parts for programmatic access.
    """

    default_category = ErrorCategory.VALIDATION

    def __init__(
        self,
        message: str,
        *,
        record_class: str | None = None,
        snapshot: dict[str, Any] | None = None,
        messages: list[str] | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.record_class = record_class
        self.snapshot = snapshot or {}
        self.messages = messages or []

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.record_class:
            result["record_class"] = self.record_class
        if self.messages:
            result["messages"] = list(self.messages)
        return result


# -- Store errors -----------------------------------------------------------


class DatabaseError(RecordkitError):
    """Database error reclassified by recordkit."""

    default_category = ErrorCategory.DATABASE


class ForeignKeyDeleteError(DatabaseError):
    """
    A delete was blocked by a referential-integrity constraint.

    The row is still referenced by another table. The driver exception is
    available as ``cause``.
    """

    def __init__(
        self,
        message: str = "Cannot delete: the row is still referenced by a foreign key",
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)


class TransactionError(RecordkitError):
    """An action wrapped by ``DbService.transaction`` failed and was rolled back."""

    default_category = ErrorCategory.TRANSACTION


# -- Driver error codes -----------------------------------------------------


def driver_error_code(error: BaseException) -> int | str | None:
    """
    Extract the driver-reported error code from an exception.

    Looks through a SQLAlchemy ``DBAPIError`` wrapper (``orig``) and
    understands the conventions of the common drivers:

    - PostgreSQL (psycopg): ``pgcode`` / ``sqlstate``
    - SQLite (sqlite3, Python 3.11+): ``sqlite_errorcode``
    - MySQL (PyMySQL, mysqlclient): first positional argument
    """
    orig = getattr(error, "orig", None) or error

    for attr in ("pgcode", "sqlstate", "sqlite_errorcode", "errno"):
        code = getattr(orig, attr, None)
        if code is not None:
            return code

    args = getattr(orig, "args", ())
    if args and isinstance(args[0], int):
        return args[0]
    return None


def is_foreign_key_violation(error: BaseException) -> bool:
    """Check whether *error* is a foreign key constraint failure."""
    code = driver_error_code(error)
    if code in (MYSQL_FK_CONSTRAINT_FAIL, SQLITE_CONSTRAINT_FOREIGNKEY, POSTGRES_FOREIGN_KEY_VIOLATION):
        return True

    # sqlite3 before 3.11 exposes no error code
    orig = getattr(error, "orig", None) or error
    return "FOREIGN KEY constraint failed" in str(orig)


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "RecordkitError",
    "ArgumentError",
    "ConfigError",
    "ValidationError",
    "DatabaseError",
    "ForeignKeyDeleteError",
    "TransactionError",
    "MYSQL_FK_CONSTRAINT_FAIL",
    "SQLITE_CONSTRAINT_FOREIGNKEY",
    "POSTGRES_FOREIGN_KEY_VIOLATION",
    "driver_error_code",
    "is_foreign_key_violation",
]
