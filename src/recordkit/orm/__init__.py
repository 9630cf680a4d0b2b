"""SQLAlchemy 2.0 ORM layer for recordkit.

Modules
-------
base        Record (declarative base) with lookups, save and delete
relations   belongs_to / has_one / has_many / has_many_to_many with defaults
paths       Delimited path access (``"menu.parent.name"``)
session     Engine factory, RecordSession, SessionExecutor

Tags:
    recordkit, orm, sqlalchemy, declarative, relations
"""

from __future__ import annotations

from recordkit.orm.base import Record
from recordkit.orm.paths import assign_path, resolve_path, split_path
from recordkit.orm.relations import (
    belongs_to,
    has_many,
    has_many_to_many,
    has_one,
    propagate_relation_defaults,
    relation_defaults,
)
from recordkit.orm.session import (
    RecordSession,
    SessionExecutor,
    create_engine,
    create_engine_from_settings,
    record_session_factory,
)

__all__ = [
    "Record",
    "belongs_to",
    "has_one",
    "has_many",
    "has_many_to_many",
    "relation_defaults",
    "propagate_relation_defaults",
    "split_path",
    "resolve_path",
    "assign_path",
    "create_engine",
    "create_engine_from_settings",
    "RecordSession",
    "record_session_factory",
    "SessionExecutor",
]
