"""Unit tests for rqlite_sdk.protocol.statement: statements and batch encoding."""

import json
from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID

import pytest

from rqlite_sdk.protocol.statement import Statement, as_statement, encode_statements


class TestStatement:
    def test_matching_placeholders_no_warning(self) -> None:
        stmt = Statement("INSERT INTO t VALUES (?, ?)", 1, "bob")
        assert stmt.warning == ""
        assert stmt.parameters == (1, "bob")

    def test_mismatched_placeholders_warns(self) -> None:
        stmt = Statement("INSERT INTO t VALUES (?, ?)", 1)
        assert stmt.warning == "Unexpected parameters count: 1, expected: 2"

    def test_too_many_arguments_warns(self) -> None:
        assert Statement("SELECT * FROM t", 1).warning != ""

    def test_is_immutable(self) -> None:
        stmt = Statement("SELECT 1")
        with pytest.raises(AttributeError):
            stmt.sql = "SELECT 2"  # type: ignore[misc]

    def test_append_returns_new_statement(self) -> None:
        base = Statement("SELECT * FROM t WHERE a = ?", 1)
        extended = base.append(" AND b = ?", "x")

        assert extended.sql == "SELECT * FROM t WHERE a = ? AND b = ?"
        assert extended.parameters == (1, "x")
        assert extended.warning == ""
        assert base.sql == "SELECT * FROM t WHERE a = ?"
        assert base.parameters == (1,)

    def test_equality(self) -> None:
        assert Statement("SELECT ?", 1) == Statement("SELECT ?", 1)
        assert Statement("SELECT ?", 1) != Statement("SELECT ?", 2)

    def test_str_renders_debug_sql(self) -> None:
        stmt = Statement("INSERT INTO t VALUES (?, ?, ?)", 1, "o'brien", None)
        assert str(stmt) == "INSERT INTO t VALUES (1, 'o''brien', NULL)"

    def test_to_wire(self) -> None:
        assert Statement("SELECT ?", 5).to_wire() == ["SELECT ?", 5]


class TestAsStatement:
    def test_wraps_plain_sql(self) -> None:
        assert as_statement("SELECT 1") == Statement("SELECT 1")

    def test_passes_statement_through(self) -> None:
        stmt = Statement("SELECT ?", 1)
        assert as_statement(stmt) is stmt

    def test_rejects_other_types(self) -> None:
        with pytest.raises(TypeError):
            as_statement(42)  # type: ignore[arg-type]


class TestEncodeStatements:
    def test_batch_of_two(self) -> None:
        body = encode_statements(
            [
                Statement("INSERT INTO t (id, name) VALUES (?, ?)", 1, "fiona"),
                Statement("UPDATE t SET name = ? WHERE id = ?", "bob", 1),
            ]
        )
        decoded = json.loads(body)
        assert decoded == [
            ["INSERT INTO t (id, name) VALUES (?, ?)", 1, "fiona"],
            ["UPDATE t SET name = ? WHERE id = ?", "bob", 1],
        ]

    def test_plain_sql_encodes_as_single_element_array(self) -> None:
        assert json.loads(encode_statements(["SELECT 1"])) == [["SELECT 1"]]

    def test_preserves_argument_types(self) -> None:
        decoded = json.loads(encode_statements([Statement("?,?,?,?,?", "s", 7, 2.5, True, None)]))
        assert decoded == [["?,?,?,?,?", "s", 7, 2.5, True, None]]
        assert isinstance(decoded[0][2], int)
        assert isinstance(decoded[0][3], float)
        assert decoded[0][4] is True

    def test_extended_types(self) -> None:
        when = datetime(2424, 1, 2, 17, 0, tzinfo=timezone.utc)
        uid = UUID("12345678-1234-5678-1234-567812345678")
        decoded = json.loads(encode_statements([Statement("?,?,?,?", b"\x00\x01", when, Decimal("1.5"), uid)]))
        assert decoded == [["?,?,?,?", "AAE=", "2424-01-02T17:00:00+00:00", 1.5, str(uid)]]

    def test_unknown_type_fails(self) -> None:
        with pytest.raises(TypeError):
            encode_statements([Statement("?", object())])
