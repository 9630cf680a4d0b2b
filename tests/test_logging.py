"""
Tests for the logging module.

Tests verify:
- JSON output carries the event, bound key/values and service name
- DEBUG logs are suppressed at INFO level
- Scoped context is bound and unbound
"""

import json
import logging

import pytest
import structlog

from recordkit.logging import (
    SQLALCHEMY_ENGINE_LOGGER,
    LogContext,
    bind_context,
    clear_context,
    configure_from_settings,
    configure_logging,
    get_logger,
    unbind_context,
)
from recordkit.settings import RecordkitSettings


@pytest.fixture(autouse=True)
def _reset_structlog():
    clear_context()
    yield
    clear_context()
    structlog.reset_defaults()


class TestConfigureLogging:
    def test_json_output(self, caplog) -> None:
        configure_logging(level="INFO", json_format=True, service="inventory", add_timestamp=False)
        logger = get_logger("recordkit.tests.json")

        with caplog.at_level(logging.INFO):
            logger.info("bulk_insert_complete", table="items", rows=3)

        payload = json.loads(caplog.records[-1].getMessage())
        assert payload["event"] == "bulk_insert_complete"
        assert payload["table"] == "items"
        assert payload["rows"] == 3
        assert payload["level"] == "info"
        assert payload["service.name"] == "inventory"

    def test_debug_suppressed_at_info(self, caplog) -> None:
        configure_logging(level="INFO", json_format=True, add_timestamp=False)
        logger = get_logger("recordkit.tests.level")

        with caplog.at_level(logging.DEBUG):
            logger.debug("bulk_insert_chunk", chunk=0)

        assert not [r for r in caplog.records if "bulk_insert_chunk" in r.getMessage()]

    def test_timestamp_added(self, caplog) -> None:
        configure_logging(level="INFO", json_format=True)
        logger = get_logger("recordkit.tests.ts")

        with caplog.at_level(logging.INFO):
            logger.info("ping")

        assert "timestamp" in json.loads(caplog.records[-1].getMessage())


class TestContext:
    def test_bind_and_unbind(self) -> None:
        bind_context(request_id="r-1", table="items")
        unbind_context("table")
        assert structlog.contextvars.get_contextvars() == {"request_id": "r-1"}

    def test_log_context_is_scoped(self) -> None:
        with LogContext(table="items"):
            assert structlog.contextvars.get_contextvars() == {"table": "items"}
        assert structlog.contextvars.get_contextvars() == {}

    def test_context_merged_into_output(self, caplog) -> None:
        configure_logging(level="INFO", json_format=True, add_timestamp=False)
        logger = get_logger("recordkit.tests.ctx")

        with caplog.at_level(logging.INFO), LogContext(batch="b-7"):
            logger.info("transaction_started")

        assert json.loads(caplog.records[-1].getMessage())["batch"] == "b-7"

    def test_nested_context_restores_outer_value(self) -> None:
        with LogContext(table="items"):
            with LogContext(table="tags"):
                assert structlog.contextvars.get_contextvars() == {"table": "tags"}
            assert structlog.contextvars.get_contextvars() == {"table": "items"}


class TestSettingsDrivenConfiguration:
    def test_invalid_level_rejected(self) -> None:
        with pytest.raises(ValueError, match="Unknown log level"):
            configure_logging(level="LOUD")

    def test_sql_echo_raises_engine_logger(self) -> None:
        configure_logging(level="INFO", json_format=True, sql_echo=True)
        assert logging.getLogger(SQLALCHEMY_ENGINE_LOGGER).level == logging.INFO

        configure_logging(level="INFO", json_format=True)
        assert logging.getLogger(SQLALCHEMY_ENGINE_LOGGER).level == logging.WARNING

    def test_configure_from_settings(self, caplog) -> None:
        settings = RecordkitSettings(_env_file=None, log_level="WARNING", env="prod", echo=False)
        configure_from_settings(settings)
        logger = get_logger("recordkit.tests.settings")

        with caplog.at_level(logging.DEBUG):
            logger.info("hidden")
            logger.warning("delete_failed", table="owners")

        messages = [r.getMessage() for r in caplog.records]
        assert not [m for m in messages if "hidden" in m]
        assert json.loads(messages[-1])["event"] == "delete_failed"
