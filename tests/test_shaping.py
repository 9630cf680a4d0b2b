"""Tests for the pure result-shaping functions."""

from __future__ import annotations

from types import SimpleNamespace

from recordkit import shaping
from recordkit.containers import ObjectList, ObjectMap


def _record(**fields):
    return SimpleNamespace(**fields, to_dict=lambda: dict(fields))


class TestRowConversion:
    def test_tuple_rows_are_keyed_by_position(self) -> None:
        assert shaping.row_to_dict((1, "a")) == {0: 1, 1: "a"}

    def test_dict_rows_are_copied(self) -> None:
        row = {"id": 1}
        assert shaping.row_to_dict(row) == row
        assert shaping.row_to_dict(row) is not row

    def test_records_use_to_dict(self) -> None:
        assert shaping.row_values(_record(id=1, name="Ada")) == (1, "Ada")


class TestFlatShapes:
    def test_rows(self) -> None:
        assert shaping.to_rows([{"id": 1}, {"id": 2}]) == [{"id": 1}, {"id": 2}]

    def test_row(self) -> None:
        assert shaping.to_row([{"id": 1}, {"id": 2}]) == {"id": 1}
        assert shaping.to_row([]) == {}

    def test_value(self) -> None:
        assert shaping.to_value([(5,), (6,)]) == 5
        assert shaping.to_value([]) is None

    def test_values(self) -> None:
        assert shaping.to_values([(1, "x"), (2, "y")]) == [1, 2]

    def test_consumes_iterators_once(self) -> None:
        assert shaping.to_values(iter([(1,), (2,)])) == [1, 2]


class TestKeyedShapes:
    def test_assoc_later_rows_overwrite(self) -> None:
        result = shaping.to_assoc([(1, "a"), (2, "b"), (1, "c")])
        assert result == {1: "c", 2: "b"}
        assert list(result) == [1, 2]

    def test_keyed_rows(self) -> None:
        rows = [
            {"id": 21, "name": "Justin", "email": "justin@justin.com"},
            {"id": 26, "name": "Pete", "email": "pete@pete.com"},
        ]
        assert shaping.to_keyed_rows(rows) == {
            21: {"name": "Justin", "email": "justin@justin.com"},
            26: {"name": "Pete", "email": "pete@pete.com"},
        }

    def test_keyed_assoc(self) -> None:
        rows = [(1, "a", "x"), (1, "b", "y"), (2, "c", "z")]
        assert shaping.to_keyed_assoc(rows) == {1: {"a": "x", "b": "y"}, 2: {"c": "z"}}

    def test_4d_table_assoc(self) -> None:
        rows = [(1, "a", "x", 10), (1, "a", "y", 11), (1, "b", "x", 12)]
        assert shaping.to_4d_table_assoc(rows) == {1: {"a": {"x": 10, "y": 11}, "b": {"x": 12}}}

    def test_keyed_values(self) -> None:
        rows = [(1, "a"), (1, ""), (2, None), (1, "b")]
        assert shaping.to_keyed_values(rows) == {1: ["a", "", "b"], 2: [None]}

    def test_keyed_values_without_empty_values_keeps_keys(self) -> None:
        rows = [(1, "a"), (1, ""), (2, None), (1, "b")]
        assert shaping.to_keyed_values(rows, remove_empty_values=True) == {1: ["a", "b"], 2: []}

    def test_table(self) -> None:
        rows = [
            {"site": 1, "id": 10, "name": "a"},
            {"site": 1, "id": 11, "name": "b"},
            {"site": 2, "id": 10, "name": "c"},
        ]
        assert shaping.to_table(rows) == {
            1: {10: rows[0], 11: rows[1]},
            2: {10: rows[2]},
        }

    def test_array_table_appends(self) -> None:
        rows = [
            {"site": 1, "status": "on", "id": 1},
            {"site": 1, "status": "on", "id": 2},
            {"site": 1, "status": "off", "id": 3},
        ]
        assert shaping.to_array_table(rows) == {
            1: {"on": [rows[0], rows[1]], "off": [rows[2]]},
        }


class TestObjectShapes:
    def test_object_table(self) -> None:
        a = _record(id=1, site=1, status="on")
        b = _record(id=2, site=1, status="on")
        c = _record(id=3, site=2, status="off")

        assert shaping.to_object_table([a, b, c], "site", "status") == {
            1: {"on": [a, b]},
            2: {"off": [c]},
        }

    def test_map(self) -> None:
        a, b = _record(id=1, name="x"), _record(id=2, name="x")
        assert shaping.to_map([a, b], "id") == {1: a, 2: b}
        assert shaping.to_map([a, b], "name") == {"x": b}

    def test_fill_list(self) -> None:
        a, b = _record(id=1), _record(id=2)
        container = shaping.fill_list([a, b], ObjectList())
        assert list(container) == [a, b]

    def test_fill_map(self) -> None:
        a, b = _record(id=1, code="A"), _record(id=2, code="B")
        container = shaping.fill_map([a, b], ObjectMap(), map_by="code")
        assert container.keys() == ["A", "B"]
        assert container["B"] is b
