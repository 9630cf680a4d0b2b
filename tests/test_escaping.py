"""Tests for SQL literal rendering and storage normalization."""

from __future__ import annotations

import datetime
from decimal import Decimal
from types import SimpleNamespace

import pytest

from recordkit.dialect import MySQLDialect, SQLiteDialect
from recordkit.errors import ArgumentError
from recordkit.escaping import NULL, escape, is_numeric, to_json, to_storage, to_storage_dict

quote = SQLiteDialect().quote_string


class TestEscape:
    @pytest.mark.parametrize("value", [None, ""])
    def test_null(self, value) -> None:
        assert escape(value, quote) == NULL

    def test_booleans(self) -> None:
        assert escape(True, quote) == "'1'"
        assert escape(False, quote) == "'0'"

    def test_numbers_are_unquoted(self) -> None:
        assert escape(42, quote) == "42"
        assert escape(1.5, quote) == "1.5"
        assert escape(Decimal("9.90"), quote) == "9.90"

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf"), Decimal("NaN"), Decimal("Infinity")])
    def test_non_finite_numbers_rejected(self, value) -> None:
        with pytest.raises(ArgumentError, match="no SQL literal"):
            escape(value, quote)

    def test_large_integers(self) -> None:
        assert escape(10**400, quote) == str(10**400)

    def test_strings_are_quoted(self) -> None:
        assert escape("O'Brien", quote) == "'O''Brien'"
        assert escape("0", quote) == "'0'"

    def test_dates(self) -> None:
        assert escape(datetime.datetime(2024, 1, 2, 3, 4, 5), quote) == "'2024-01-02 03:04:05'"
        assert escape(datetime.date(2024, 1, 2), quote) == "'2024-01-02'"

    def test_structured_values_are_json(self) -> None:
        assert escape({"a": [1, "x"]}, quote) == """'{"a": [1, "x"]}'"""
        assert escape(["it's"], quote) == """'["it''s"]'"""

    def test_uses_backend_quoting(self) -> None:
        assert escape("C:\\temp", MySQLDialect().quote_string) == "'C:\\\\temp'"


class TestIsNumeric:
    @pytest.mark.parametrize("value", [0, 12, -3.5, Decimal("1.0"), "12", " 1.5 ", "-7", "1e3", ".5"])
    def test_numeric(self, value) -> None:
        assert is_numeric(value)

    @pytest.mark.parametrize("value", [True, False, None, "", "abc", "1.2.3", "12px", [1], float("nan"), float("inf")])
    def test_not_numeric(self, value) -> None:
        assert not is_numeric(value)


class TestStorage:
    def test_empty_string_becomes_none(self) -> None:
        assert to_storage("") is None

    def test_structured_values_become_json(self) -> None:
        assert to_storage({"a": 1}) == '{"a": 1}'
        assert to_storage([1, 2]) == "[1, 2]"

    def test_records_become_json(self) -> None:
        record = SimpleNamespace(to_dict=lambda: {"id": 1, "name": "Ada"})
        assert to_storage(record) == '{"id": 1, "name": "Ada"}'

    def test_other_values_unchanged(self) -> None:
        assert to_storage("text") == "text"
        assert to_storage(0) == 0
        assert to_storage(None) is None

    def test_storage_dict(self) -> None:
        assert to_storage_dict({"name": "", "tags": ["a"], "n": 3}) == {
            "name": None,
            "tags": '["a"]',
            "n": 3,
        }

    def test_to_json_handles_dates(self) -> None:
        assert to_json({"on": datetime.date(2024, 5, 1)}) == '{"on": "2024-05-01"}'
