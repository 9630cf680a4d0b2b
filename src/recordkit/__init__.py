"""recordkit -- convenience layer over the SQLAlchemy ORM.

Manifesto:
    Application code keeps asking the database the same questions in
    slightly different shapes: an id → name map, rows keyed by id, records
    grouped by two attributes.  recordkit answers them from an ordinary
    ``select()`` so the shaping lives in one tested place.

    - **Shapes, not queries:** Callers build queries, recordkit reshapes results
    - **Explicit sessions:** Nothing is looked up from a global container
    - **Relation defaults:** Declared once, enforced on reads and writes

Architecture::

    escaping.py        SQL literal rendering + storage normalization
    where.py           {column: condition} → SQL condition
    shaping.py         Pure row-stream → shape functions
    bulk.py            Chunking + multi-row INSERT / upsert
    dialect.py         Per-backend SQL fragments (SQLite, PostgreSQL, MySQL)
    service.py         DbService facade
    orm/               Record base type, relations, paths, sessions
    errors.py          Structured error hierarchy
    settings.py        RECORDKIT_* settings + DbConfig defaults
    logging.py         structlog configuration

Tags:
    recordkit, sqlalchemy, orm, result-shaping, bulk-insert
"""

from __future__ import annotations

from recordkit.containers import ObjectList, ObjectMap
from recordkit.errors import (
    ArgumentError,
    ConfigError,
    DatabaseError,
    ForeignKeyDeleteError,
    RecordkitError,
    TransactionError,
    ValidationError,
)
from recordkit.orm import (
    Record,
    RecordSession,
    belongs_to,
    create_engine,
    has_many,
    has_many_to_many,
    has_one,
)
from recordkit.service import DbService
from recordkit.settings import DbConfig, RecordkitSettings, get_settings

__version__ = "0.1.0"

__all__ = [
    "DbService",
    "Record",
    "RecordSession",
    "create_engine",
    "belongs_to",
    "has_one",
    "has_many",
    "has_many_to_many",
    "ObjectList",
    "ObjectMap",
    "DbConfig",
    "RecordkitSettings",
    "get_settings",
    "RecordkitError",
    "ArgumentError",
    "ConfigError",
    "DatabaseError",
    "ForeignKeyDeleteError",
    "TransactionError",
    "ValidationError",
]
