"""Structured logging for recordkit.

recordkit modules log through :func:`get_logger` with an event name and
keyword fields (``table=``, ``rows=``, ``chunk=``).  How those events are
rendered is decided once per process by :func:`configure_logging`, or by
:func:`configure_from_settings` when the ``RECORDKIT_*`` settings should
drive it:

* ``json_format=True`` renders one JSON object per line for log shippers
* ``json_format=False`` renders colored console lines for development
* ``sql_echo=True`` also raises the ``sqlalchemy.engine`` logger to INFO so
  emitted statements land in the same stream

Events travel through the stdlib ``logging`` module, so pytest's ``caplog``
and any handler attached to the root logger see them.

Examples:
    >>> from recordkit.logging import configure_logging, get_logger
    >>> configure_logging(level="DEBUG", json_format=False)
    >>> logger = get_logger(__name__)
    >>> logger.info("bulk_insert_complete", table="users", rows=2500)

    Scoped fields for a block of work:

    >>> with LogContext(table="users"):
    ...     logger.info("transaction_started")
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from recordkit.settings import RecordkitSettings, get_settings

SQLALCHEMY_ENGINE_LOGGER = "sqlalchemy.engine"


class _ServiceStamp:
    """Processor writing ``service.name`` onto every event that lacks one."""

    def __init__(self, service: str):
        self.service = service

    def __call__(self, logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service.name", self.service)
        return event_dict


def _level_number(level: str | int) -> int:
    if isinstance(level, int):
        return level
    number = logging.getLevelName(level.upper())
    if not isinstance(number, int):
        raise ValueError(f"Unknown log level: {level!r}")
    return number


def _processor_chain(service: str, json_format: bool, add_timestamp: bool) -> list[Processor]:
    chain: list[Processor] = []
    if add_timestamp:
        chain.append(structlog.processors.TimeStamper(fmt="iso"))
    chain += [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        _ServiceStamp(service),
    ]

    if json_format:
        chain += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        chain.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))
    return chain


def configure_logging(
    level: str | int = "INFO",
    json_format: bool | None = None,
    service: str = "recordkit",
    add_timestamp: bool = True,
    sql_echo: bool = False,
) -> None:
    """Set up structlog and the stdlib bridge for the whole process.

    Args:
        level: Minimum level, as a name (``"DEBUG"``) or a ``logging`` constant.
        json_format: JSON lines when true, console lines when false.  ``None``
            picks console output only when stdout is a terminal.
        service: Value written to ``service.name`` on every event.
        add_timestamp: Prefix events with an ISO ``timestamp`` field.
        sql_echo: Route SQLAlchemy's statement log through the same handlers.

    Raises:
        ValueError: When *level* is not a known level name.
    """
    threshold = _level_number(level)
    if json_format is None:
        json_format = not sys.stdout.isatty()

    structlog.configure(
        processors=_processor_chain(service, json_format, add_timestamp),
        wrapper_class=structlog.make_filtering_bound_logger(threshold),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=threshold)
    logging.getLogger(SQLALCHEMY_ENGINE_LOGGER).setLevel(logging.INFO if sql_echo else logging.WARNING)


def configure_from_settings(settings: RecordkitSettings | None = None) -> None:
    """Configure logging from ``RECORDKIT_LOG_LEVEL``, ``RECORDKIT_ENV`` and ``RECORDKIT_ECHO``.

    The ``dev`` environment renders console lines; any other renders JSON.
    """
    settings = settings or get_settings()
    configure_logging(
        level=settings.log_level,
        json_format=not settings.is_dev,
        sql_echo=settings.echo,
    )


def get_logger(name: str | None = None) -> Any:
    """Bound structlog logger, usually ``get_logger(__name__)``."""
    return structlog.get_logger(name)


def bind_context(**fields: Any) -> None:
    """Attach *fields* to every event logged from the current context."""
    structlog.contextvars.bind_contextvars(**fields)


def unbind_context(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


class LogContext:
    """Bind fields for the duration of a ``with`` block.

    Values bound before the block are restored on exit, so nested contexts
    may shadow a key without losing the outer value.
    """

    def __init__(self, **fields: Any):
        self.fields = fields
        self._tokens: dict[str, Any] = {}

    def __enter__(self) -> LogContext:
        self._tokens = structlog.contextvars.bind_contextvars(**self.fields)
        return self

    def __exit__(self, *exc_info: Any) -> None:
        structlog.contextvars.reset_contextvars(**self._tokens)
        self._tokens = {}


__all__ = [
    "LogContext",
    "SQLALCHEMY_ENGINE_LOGGER",
    "bind_context",
    "clear_context",
    "configure_from_settings",
    "configure_logging",
    "get_logger",
    "unbind_context",
]
