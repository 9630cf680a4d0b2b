"""Relation declarations with default-value constraints.

``has_one``, ``has_many``, ``belongs_to`` and ``has_many_to_many`` wrap
:func:`sqlalchemy.orm.relationship`.  They take the join columns
explicitly and accept a ``defaults`` mapping (field → required value) on
the related record.  The defaults are enforced on both sides:

* **reads** -- every default becomes an extra condition of the join, so
  fetching through the relation only returns related rows carrying those
  values;
* **writes** -- :func:`propagate_relation_defaults` (called by
  ``Record.save``) force-writes the defaults onto attached related
  records before anything is flushed.

Example::

    class Page(Record):
        __tablename__ = "pages"

        id: Mapped[int] = mapped_column(primary_key=True)
        menu_id: Mapped[int | None] = mapped_column(ForeignKey("menus.id"))

        menu = belongs_to("menu_id", "Menu", "id", defaults={"type": "menu"})

Columns are named by their mapped attribute keys.  Targets may be given as
classes or as class names registered with the same declarative base.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from typing import Any

from sqlalchemy import and_
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import Mapper, RelationshipProperty, foreign, relationship
from sqlalchemy.sql.elements import ColumnElement

from recordkit.errors import ArgumentError

Fields = str | Sequence[str]
Target = type | str | Callable[[], type]
Criteria = Callable[[type], ColumnElement[bool]]


def _as_list(fields: Fields) -> list[str]:
    return [fields] if isinstance(fields, str) else list(fields)


def _resolve_class(owner: Mapper[Any], target: Target) -> type:
    if isinstance(target, type):
        return target

    if isinstance(target, str):
        for mapper in owner.registry.mappers:
            if mapper.class_.__name__ == target:
                return mapper.class_
        raise ArgumentError(f"Unknown record class {target!r} in relation of {owner.class_.__name__}")

    return target()


def _default_criteria(target: type, defaults: Mapping[str, Any] | None) -> list[ColumnElement[bool]]:
    columns = sa_inspect(target).columns
    return [columns[key] == value for key, value in (defaults or {}).items()]


def _relation_info(kind: str, defaults: Mapping[str, Any] | None, info: dict[str, Any] | None) -> dict[str, Any]:
    info = dict(info or {})
    info["kind"] = kind
    if defaults:
        info["defaults"] = dict(defaults)
    return info


def _declare(
    kind: str,
    fields: Fields,
    target: Target,
    referenced_fields: Fields,
    *,
    local_is_foreign: bool,
    uselist: bool,
    defaults: Mapping[str, Any] | None,
    criteria: Criteria | None,
    **kwargs: Any,
) -> RelationshipProperty[Any]:
    local_keys = _as_list(fields)
    remote_keys = _as_list(referenced_fields)

    if len(local_keys) != len(remote_keys):
        raise ArgumentError(
            f"{kind}: {len(local_keys)} local field(s) but {len(remote_keys)} referenced field(s)"
        )

    prop: RelationshipProperty[Any]

    def primaryjoin() -> ColumnElement[bool]:
        owner = prop.parent
        related = _resolve_class(owner, target)
        related_columns = sa_inspect(related).columns

        pairs = []
        for local_key, remote_key in zip(local_keys, remote_keys):
            local, remote = owner.columns[local_key], related_columns[remote_key]
            if local_is_foreign:
                pairs.append(foreign(local) == remote)
            else:
                pairs.append(local == foreign(remote))

        extra = [criteria(related)] if criteria is not None else []
        return and_(*pairs, *_default_criteria(related, defaults), *extra)

    prop = relationship(
        target,
        primaryjoin=primaryjoin,
        uselist=uselist,
        info=_relation_info(kind, defaults, kwargs.pop("info", None)),
        **kwargs,
    )
    return prop


def belongs_to(
    fields: Fields,
    target: Target,
    referenced_fields: Fields,
    *,
    defaults: Mapping[str, Any] | None = None,
    criteria: Criteria | None = None,
    **kwargs: Any,
) -> RelationshipProperty[Any]:
    """Many-to-one: *fields* on this record reference *referenced_fields* on *target*."""
    return _declare(
        "belongs_to", fields, target, referenced_fields,
        local_is_foreign=True, uselist=False, defaults=defaults, criteria=criteria, **kwargs,
    )


def has_one(
    fields: Fields,
    target: Target,
    referenced_fields: Fields,
    *,
    defaults: Mapping[str, Any] | None = None,
    criteria: Criteria | None = None,
    **kwargs: Any,
) -> RelationshipProperty[Any]:
    """One-to-one: *referenced_fields* on *target* reference *fields* on this record."""
    return _declare(
        "has_one", fields, target, referenced_fields,
        local_is_foreign=False, uselist=False, defaults=defaults, criteria=criteria, **kwargs,
    )


def has_many(
    fields: Fields,
    target: Target,
    referenced_fields: Fields,
    *,
    defaults: Mapping[str, Any] | None = None,
    criteria: Criteria | None = None,
    **kwargs: Any,
) -> RelationshipProperty[Any]:
    """One-to-many: *referenced_fields* on *target* reference *fields* on this record."""
    return _declare(
        "has_many", fields, target, referenced_fields,
        local_is_foreign=False, uselist=True, defaults=defaults, criteria=criteria, **kwargs,
    )


def has_many_to_many(
    fields: Fields,
    intermediate: Target,
    intermediate_fields: Fields,
    intermediate_referenced_fields: Fields,
    target: Target,
    referenced_fields: Fields,
    *,
    defaults: Mapping[str, Any] | None = None,
    criteria: Criteria | None = None,
    **kwargs: Any,
) -> RelationshipProperty[Any]:
    """Many-to-many through the *intermediate* record's table.

    ``fields`` → ``intermediate_fields`` joins this record to the
    intermediate table, ``intermediate_referenced_fields`` →
    ``referenced_fields`` joins it to *target*.  Defaults and criteria
    apply to *target*.
    """
    local_keys = _as_list(fields)
    link_keys = _as_list(intermediate_fields)
    link_remote_keys = _as_list(intermediate_referenced_fields)
    remote_keys = _as_list(referenced_fields)

    if len(local_keys) != len(link_keys) or len(link_remote_keys) != len(remote_keys):
        raise ArgumentError("has_many_to_many: field lists of each join must have the same length")

    prop: RelationshipProperty[Any]

    def _link() -> type:
        return _resolve_class(prop.parent, intermediate)

    def secondary() -> Any:
        return _link().__table__

    def primaryjoin() -> ColumnElement[bool]:
        owner_columns = prop.parent.columns
        link_columns = sa_inspect(_link()).columns
        return and_(*(
            owner_columns[local] == foreign(link_columns[link])
            for local, link in zip(local_keys, link_keys)
        ))

    def secondaryjoin() -> ColumnElement[bool]:
        related = _resolve_class(prop.parent, target)
        related_columns = sa_inspect(related).columns
        link_columns = sa_inspect(_link()).columns

        pairs = [
            foreign(link_columns[link]) == related_columns[remote]
            for link, remote in zip(link_remote_keys, remote_keys)
        ]
        extra = [criteria(related)] if criteria is not None else []
        return and_(*pairs, *_default_criteria(related, defaults), *extra)

    prop = relationship(
        target,
        secondary=secondary,
        primaryjoin=primaryjoin,
        secondaryjoin=secondaryjoin,
        uselist=True,
        info=_relation_info("has_many_to_many", defaults, kwargs.pop("info", None)),
        **kwargs,
    )
    return prop


def relation_defaults(record_class: type) -> dict[str, dict[str, Any]]:
    """``{relation key: defaults}`` for every relation of *record_class* declaring defaults."""
    return {
        rel.key: dict(rel.info["defaults"])
        for rel in sa_inspect(record_class).relationships
        if rel.info.get("defaults")
    }


def propagate_relation_defaults(record: Any) -> None:
    """Force-write relation defaults onto the related records attached to *record*.

    Only related values already present on the instance are touched; an
    unloaded relation is not fetched.  Collections get the defaults on every
    member.
    """
    state = sa_inspect(record)

    for rel in state.mapper.relationships:
        defaults = rel.info.get("defaults")
        if not defaults:
            continue

        related = state.dict.get(rel.key)
        if related is None:
            continue

        for target in (related if rel.uselist else [related]):
            for key, value in defaults.items():
                setattr(target, key, value)


__all__ = [
    "belongs_to",
    "has_one",
    "has_many",
    "has_many_to_many",
    "relation_defaults",
    "propagate_relation_defaults",
]
