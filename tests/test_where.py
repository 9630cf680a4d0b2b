"""Tests for the where-clause builder."""

from __future__ import annotations

import pytest

from recordkit.dialect import SQLiteDialect
from recordkit.errors import ArgumentError
from recordkit.where import build_clause, build_where_clause

quote = SQLiteDialect().quote_string


class TestBuildClause:
    def test_list_becomes_in(self) -> None:
        assert build_clause("id", [1, 2], quote) == "id IN ('1', '2')"

    def test_in_members_are_escaped(self) -> None:
        assert build_clause("name", ["O'Brien", "x"], quote) == "name IN ('O''Brien', 'x')"

    def test_empty_list_is_dropped(self) -> None:
        assert build_clause("id", [], quote) is None

    def test_none_is_null(self) -> None:
        assert build_clause("deleted_at", None, quote) == "deleted_at IS NULL"

    def test_numbers_are_unquoted(self) -> None:
        assert build_clause("site_id", 3, quote) == "site_id = 3"
        assert build_clause("site_id", "3", quote) == "site_id = 3"

    def test_strings_are_quoted(self) -> None:
        assert build_clause("status", "active", quote) == "status = 'active'"

    def test_booleans_are_not_numbers(self) -> None:
        assert build_clause("flag", True, quote) == "flag = '1'"

    def test_nan_is_rejected(self) -> None:
        with pytest.raises(ArgumentError):
            build_clause("price", float("nan"), quote)


class TestBuildWhereClause:
    def test_and_joined(self) -> None:
        where = {"id": [1, 2], "status": "active", "site_id": 3}
        assert build_where_clause(where, quote) == "id IN ('1', '2') AND status = 'active' AND site_id = 3"

    def test_empty(self) -> None:
        assert build_where_clause({}, quote) == ""
        assert build_where_clause({"id": []}, quote) == ""

    def test_empty_lists_are_skipped(self) -> None:
        assert build_where_clause({"id": [], "status": None}, quote) == "status IS NULL"
