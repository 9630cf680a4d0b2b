"""Declarative base for recordkit records.

``Record`` is a SQLAlchemy 2.0 ``DeclarativeBase`` that adds the
conveniences an application model needs on top of the plain mapping:

* lookups: ``find``, ``find_first``, ``find_assoc``, ``get_by_id``,
  ``get_by_id_list``, ``get_by_name``, ``get_name_list``, ``get_name_map``
* introspection: ``get_fields``, ``get_source``, ``to_dict``
* delimited path access: ``get("a.b.c")`` / ``set("a.b.c", value)``
* ``save`` with relation-default propagation and validation
* ``delete`` raising :class:`ForeignKeyDeleteError` when the row is still
  referenced

Sessions are always passed explicitly; a record never looks one up.

``type_annotation_map`` lets ``Mapped`` columns use plain Python types:

* ``dict`` / ``list`` → ``JSON``
* ``datetime.datetime`` → ``DateTime``
"""

from __future__ import annotations

import datetime
from collections.abc import Sequence
from typing import Any, ClassVar, TypeVar

from sqlalchemy import JSON, DateTime, select
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import DeclarativeBase, Session
from sqlalchemy.orm.attributes import set_committed_value
from sqlalchemy.sql.elements import ColumnElement

from recordkit.errors import ArgumentError, ForeignKeyDeleteError, ValidationError, is_foreign_key_violation
from recordkit.escaping import to_json
from recordkit.logging import get_logger
from recordkit.orm.paths import assign_path, resolve_path
from recordkit.orm.relations import propagate_relation_defaults

logger = get_logger(__name__)

R = TypeVar("R", bound="Record")


class Record(DeclarativeBase):
    """Shared declarative base for every recordkit table."""

    type_annotation_map = {
        datetime.datetime: DateTime,
        dict: JSON,
        list: JSON,
    }

    # Short name used when the record is referenced in queries
    __alias__: ClassVar[str | None] = None

    # -- Introspection ------------------------------------------------------

    @classmethod
    def get_fields(cls) -> tuple[str, ...]:
        """Mapped column attributes, in declaration order."""
        return tuple(attr.key for attr in sa_inspect(cls).column_attrs)

    @classmethod
    def get_source(cls) -> str:
        """Name of the table the record is stored in."""
        return cls.__table__.name

    @classmethod
    def _primary_key(cls) -> Any:
        return sa_inspect(cls).primary_key[0]

    def to_dict(self) -> dict[str, Any]:
        """Column snapshot ``{field: value}``."""
        return {key: getattr(self, key) for key in self.get_fields()}

    def __repr__(self) -> str:
        identity = sa_inspect(self).identity
        return f"{type(self).__name__}({identity[0] if identity and len(identity) == 1 else identity!r})"

    # -- Path access --------------------------------------------------------

    def get_related(self, name: str) -> Any:
        """Value of the mapped attribute *name* (a column or a relation)."""
        if name not in sa_inspect(type(self)).attrs:
            raise ArgumentError(f"{type(self).__name__} has no field or relation {name!r}")
        return getattr(self, name)

    def set_related(self, name: str, value: Any) -> None:
        if name not in sa_inspect(type(self)).attrs:
            raise ArgumentError(f"{type(self).__name__} has no field or relation {name!r}")
        setattr(self, name, value)

    def get(self, path: str | Sequence[str]) -> Any:
        """Read a delimited path like ``"menu.parent.name"``."""
        return resolve_path(self, path)

    def set(self, path: str | Sequence[str], value: Any) -> None:
        """Write a delimited path like ``"menu.parent.name"``."""
        assign_path(self, path, value)

    def unset_relation(self, alias: str) -> None:
        """Drop a pending related value; the stored related row is not deleted."""
        relationships = sa_inspect(type(self)).relationships
        if alias not in relationships:
            raise ArgumentError(f"{type(self).__name__} has no relation {alias!r}")

        set_committed_value(self, alias, [] if relationships[alias].uselist else None)

    # -- Persistence --------------------------------------------------------

    def validate(self) -> list[str]:
        """Messages describing why the record cannot be saved.

        Reports every non-nullable column without a default that is
        ``None``.  Columns filled from an attached relation at flush time
        are not reported.  Override to add checks; call ``super()``.
        """
        state = sa_inspect(self)
        mapper = state.mapper

        synced = {
            column
            for rel in mapper.relationships
            if state.dict.get(rel.key) is not None
            for column in rel.local_columns
        }

        messages = []
        for attr in mapper.column_attrs:
            column = attr.columns[0]
            if column.nullable or column.primary_key or column in synced:
                continue
            if column.default is not None or column.server_default is not None:
                continue
            if getattr(self, attr.key) is None:
                messages.append(f"{attr.key} is required")

        return messages

    def save(self, session: Session) -> bool:
        """Apply relation defaults, validate, and flush the record.

        Raises:
            ValidationError: When :meth:`validate` reports messages.
        """
        propagate_relation_defaults(self)

        messages = self.validate()
        if messages:
            snapshot = self.to_dict()
            class_name = type(self).__name__
            raise ValidationError(
                f"{messages[0]}, data: {to_json(snapshot)}, class: {class_name}",
                record_class=class_name,
                snapshot=snapshot,
                messages=messages,
            ).with_context(model=class_name, table=self.get_source())

        session.add(self)
        session.flush()
        return True

    def delete(self, session: Session) -> bool:
        """Delete the record and flush inside a savepoint.

        A blocked delete only rolls back the savepoint, so the session stays
        usable and the record stays attached.

        Raises:
            ForeignKeyDeleteError: When another row still references this one.
        """
        try:
            with session.begin_nested():
                session.delete(self)
                session.flush()
        except DBAPIError as e:
            if is_foreign_key_violation(e):
                logger.info("delete_blocked_by_foreign_key", table=self.get_source(), error=str(e.orig))
                raise ForeignKeyDeleteError(
                    f"Cannot delete {type(self).__name__}: the row is still referenced",
                    cause=e,
                ).with_context(model=type(self).__name__, table=self.get_source()) from e
            raise

        return True

    # -- Lookups ------------------------------------------------------------

    @classmethod
    def find(
        cls: type[R],
        session: Session,
        *criteria: ColumnElement[bool],
        order_by: Any = None,
        limit: int | None = None,
    ) -> list[R]:
        stmt = select(cls).where(*criteria)
        if order_by is not None:
            stmt = stmt.order_by(order_by)
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(session.scalars(stmt))

    @classmethod
    def find_first(
        cls: type[R], session: Session, *criteria: ColumnElement[bool], order_by: Any = None
    ) -> R | None:
        results = cls.find(session, *criteria, order_by=order_by, limit=1)
        return results[0] if results else None

    @classmethod
    def find_assoc(cls, session: Session, *criteria: ColumnElement[bool]) -> dict[Any, Any]:
        """``{first field: second field}`` for every matching record, typically id → name."""
        first, second = cls.get_fields()[:2]
        return {
            getattr(record, first): getattr(record, second)
            for record in cls.find(session, *criteria)
        }

    @classmethod
    def get_by_id(cls: type[R], session: Session, id: Any) -> R | None:
        if not id:
            return None
        return session.get(cls, id)

    @classmethod
    def get_by_id_list(cls: type[R], session: Session, ids: Sequence[Any]) -> list[R]:
        if not ids:
            return []
        return cls.find(session, cls._primary_key().in_(list(ids)))

    @classmethod
    def get_by_name(cls: type[R], session: Session, name: str) -> R | None:
        return cls.find_first(session, sa_inspect(cls).columns["name"] == name)

    @classmethod
    def get_name_list(cls, session: Session) -> list[Any]:
        return [record.name for record in cls.find(session)]

    @classmethod
    def get_name_map(cls, session: Session) -> dict[Any, Any]:
        """``{id: name}`` ordered by name."""
        records = cls.find(session, order_by=sa_inspect(cls).columns["name"])
        return {record.id: record.name for record in records}


__all__ = [
    "Record",
]
