"""SQL dialect fragments for the statements recordkit writes itself.

Most SQL is compiled by SQLAlchemy, but a few statements are assembled as
text: the multi-row INSERT of the bulk write engine, its upsert suffix,
and the foreign-key-check toggle.  Each backend spells these differently,
so the fragments live behind a small ``Dialect`` protocol.

Architecture::

    ┌──────────────┐ ┌──────────────────────┐ ┌──────────────────────────┐
    │ SQLite       │ │ PostgreSQL           │ │ MySQL                    │
    │ ON CONFLICT  │ │ ON CONFLICT (pk)     │ │ ON DUPLICATE KEY UPDATE  │
    │ PRAGMA fk    │ │ session_replication  │ │ SET FOREIGN_KEY_CHECKS   │
    └──────────────┘ └──────────────────────┘ └──────────────────────────┘

Examples:
    >>> from recordkit.dialect import get_dialect
    >>> d = get_dialect("mysql")
    >>> d.upsert_clause(["id", "name"], ["id"])
    ' ON DUPLICATE KEY UPDATE id = VALUES(id), name = VALUES(name)'

Tags:
    dialect, sql, upsert, portability, recordkit
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from recordkit.errors import ConfigError


@runtime_checkable
class Dialect(Protocol):
    """SQL dialect contract.

    Every method returns a **SQL fragment** valid for the target database.
    """

    @property
    def name(self) -> str:
        """Dialect name as reported by SQLAlchemy (e.g. ``'sqlite'``)."""
        ...

    def upsert_clause(self, columns: list[str], key_columns: list[str]) -> str:
        """Suffix turning ``INSERT ... VALUES ...`` into an upsert.

        Every supplied column is overwritten on conflict.  The returned
        fragment starts with a space so it can be appended directly.
        """
        ...

    def foreign_key_checks(self, enabled: bool) -> str:
        """Statement enabling or disabling foreign key enforcement."""
        ...

    def quote_string(self, value: str) -> str:
        """Quote *value* as a string literal."""
        ...


# -- Backends -----------------------------------------------------------------


def _quote_standard(value: str) -> str:
    if "\x00" in value:
        raise ValueError("String literals cannot contain NUL characters")
    return "'" + value.replace("'", "''") + "'"


class SQLiteDialect:
    """SQLite dialect (3.35+ for target-less ``ON CONFLICT DO UPDATE``)."""

    @property
    def name(self) -> str:
        return "sqlite"

    def upsert_clause(self, columns: list[str], key_columns: list[str]) -> str:  # noqa: ARG002
        # Without a conflict target the clause applies to any unique index.
        updates = ", ".join(f"{c} = excluded.{c}" for c in columns)
        return f" ON CONFLICT DO UPDATE SET {updates}"

    def foreign_key_checks(self, enabled: bool) -> str:
        return f"PRAGMA foreign_keys = {'ON' if enabled else 'OFF'}"

    def quote_string(self, value: str) -> str:
        return _quote_standard(value)


class PostgreSQLDialect:
    """PostgreSQL dialect."""

    @property
    def name(self) -> str:
        return "postgresql"

    def upsert_clause(self, columns: list[str], key_columns: list[str]) -> str:
        keys = ", ".join(key_columns)
        updates = ", ".join(f"{c} = EXCLUDED.{c}" for c in columns)
        return f" ON CONFLICT ({keys}) DO UPDATE SET {updates}"

    def foreign_key_checks(self, enabled: bool) -> str:
        role = "origin" if enabled else "replica"
        return f"SET session_replication_role = {role}"

    def quote_string(self, value: str) -> str:
        # standard_conforming_strings is on by default since 9.1
        return _quote_standard(value)


class MySQLDialect:
    """MySQL / MariaDB dialect."""

    @property
    def name(self) -> str:
        return "mysql"

    def upsert_clause(self, columns: list[str], key_columns: list[str]) -> str:  # noqa: ARG002
        updates = ", ".join(f"{c} = VALUES({c})" for c in columns)
        return f" ON DUPLICATE KEY UPDATE {updates}"

    def foreign_key_checks(self, enabled: bool) -> str:
        return f"SET FOREIGN_KEY_CHECKS = {1 if enabled else 0}"

    def quote_string(self, value: str) -> str:
        # Backslash is an escape character unless NO_BACKSLASH_ESCAPES is set
        return _quote_standard(value.replace("\\", "\\\\"))


# -- Lookup -------------------------------------------------------------------

_DIALECTS: dict[str, Dialect] = {}


def register_dialect(name: str, dialect: Dialect) -> None:
    """Make *dialect* available to :func:`get_dialect` under *name*.

    Names are case-insensitive; registering an existing name replaces it.
    """
    _DIALECTS[name.lower()] = dialect


def get_dialect(db_type: str) -> Dialect:
    """Dialect for a SQLAlchemy backend name such as ``engine.dialect.name``.

    Raises:
        ConfigError: When no dialect is registered under *db_type*.
    """
    try:
        return _DIALECTS[db_type.lower()]
    except KeyError:
        raise ConfigError(
            f"Unknown dialect '{db_type}'. Registered: {', '.join(sorted(_DIALECTS))}"
        ) from None


for _name, _dialect in (
    ("sqlite", SQLiteDialect()),
    ("postgresql", PostgreSQLDialect()),
    ("postgres", PostgreSQLDialect()),
    ("mysql", MySQLDialect()),
    ("mariadb", MySQLDialect()),
):
    register_dialect(_name, _dialect)


__all__ = [
    "Dialect",
    "SQLiteDialect",
    "PostgreSQLDialect",
    "MySQLDialect",
    "get_dialect",
    "register_dialect",
]
