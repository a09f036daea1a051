"""Tests for the structured CRUD and schema helpers."""

from __future__ import annotations

from typing import Any

import pytest

from pghandle.errors import ValidationError
from pghandle.helpers import DBHandle


def test_insert_row_returns_id_of_fetchable_row(dbh: DBHandle) -> None:
    new_id = dbh.insert_row("t", {"a": 1, "b": 2})

    row = dbh.fetch_one_row("SELECT * FROM t WHERE id = :id", {"id": new_id})

    assert new_id == 1
    assert row["a"] == 1
    assert row["b"] == 2


def test_insert_row_returns_none_when_insert_fails(dbh: DBHandle) -> None:
    assert dbh.insert_row("t", {"name": None}) is None


def test_insert_row_requires_fields(dbh: DBHandle) -> None:
    with pytest.raises(ValidationError):
        dbh.insert_row("t", {})


def test_update_by_key_round_trips_value(dbh: DBHandle) -> None:
    new_id = dbh.insert_row("t", {"a": 1, "name": "before"})

    assert dbh.update_by_key("t", "id", new_id, {"name": "after", "a": 7}) is True

    assert dbh.fetch_scalar("SELECT name FROM t WHERE id = :id", {"id": new_id}) == "after"
    assert dbh.fetch_scalar("SELECT a FROM t WHERE id = :id", {"id": new_id}) == 7
    assert dbh.affected_rows == 1


def test_update_by_keys_matches_every_pair(dbh: DBHandle) -> None:
    dbh.insert_row("t", {"a": 1, "b": 1})
    dbh.insert_row("t", {"a": 1, "b": 2})

    dbh.update_by_keys("t", {"a": 1, "b": 2}, {"name": "hit"})

    assert dbh.fetch_column("SELECT name FROM t ORDER BY id") == ["", "hit"]


def test_update_by_key_can_set_the_key_column(dbh: DBHandle) -> None:
    dbh.insert_row("t", {"a": 1})

    dbh.update_by_key("t", "a", 1, {"a": 5})

    assert dbh.fetch_scalar("SELECT a FROM t") == 5


def test_update_by_keys_rejects_missing_key_pairs(dbh: DBHandle) -> None:
    with pytest.raises(ValidationError):
        dbh.update_by_keys("t", {}, {"a": 1})


def test_delete_by_keys_refuses_empty_key_pairs(dbh: DBHandle) -> None:
    dbh.insert_row("t", {"a": 1})

    with pytest.raises(ValidationError):
        dbh.delete_by_keys("t", {})

    assert dbh.count_rows("t", {"a": 1}) == 1


def test_delete_by_keys_refuses_missing_table(dbh: DBHandle) -> None:
    with pytest.raises(ValidationError):
        dbh.delete_by_keys("", {"a": 1})


def test_delete_by_key_removes_matching_rows_only(dbh: DBHandle) -> None:
    dbh.insert_row("t", {"a": 1})
    dbh.insert_row("t", {"a": 2})

    assert dbh.delete_by_key("t", "a", 1) is True

    assert dbh.fetch_column("SELECT a FROM t") == [2]


def test_delete_all_rows_empties_table(dbh: DBHandle) -> None:
    for value in (1, 2, 3):
        dbh.insert_row("t", {"a": value})

    assert dbh.delete_all_rows("t") is True

    assert dbh.fetch_scalar("SELECT COUNT(*) FROM t") == 0


def test_count_rows_matches_actual_rows(dbh: DBHandle) -> None:
    for value in (1, 1, 2, 1, 3):
        dbh.insert_row("t", {"x": value})

    assert dbh.count_rows("t", {"x": 1}) == 3
    assert dbh.count_rows("t", {"x": 9}) == 0


def test_count_rows_returns_false_without_table_or_keys(dbh: DBHandle) -> None:
    assert dbh.count_rows("", {"x": 1}) is False
    assert dbh.count_rows("t", {}) is False


def test_helpers_reject_unsafe_identifiers(dbh: DBHandle) -> None:
    with pytest.raises(ValidationError):
        dbh.insert_row("t; DROP TABLE t", {"a": 1})
    with pytest.raises(ValidationError):
        dbh.update_by_key("t", "id", 1, {"a = 1 --": 2})

    assert dbh.table_exists("t")


def test_schema_introspection(dbh: DBHandle) -> None:
    assert dbh.list_tables() == ["t"]
    assert dbh.table_exists("t") is True
    assert dbh.table_exists("missing") is False

    columns = dbh.list_columns("t")

    assert [col["field"] for col in columns] == ["id", "a", "b", "x", "name"]
    assert columns[-1]["null"] == "NO"
    assert dbh.column_exists("name", "t") is True
    assert dbh.column_exists("nope", "t") is False
    assert dbh.column_exists("name", "missing") is False
    assert dbh.list_columns("missing") == []


def test_found_rows_reports_total_beyond_limit(dbh: DBHandle) -> None:
    for value in range(5):
        dbh.insert_row("t", {"x": value})

    page = dbh.fetch_rows("SELECT * FROM t WHERE x >= 1 ORDER BY id LIMIT 2", found_rows=True)

    assert len(page) == 2
    assert dbh.previous_query_row_count() == 4


def test_insert_row_returns_id_of_its_own_row(pg_dbh: DBHandle, recording_conn: Any) -> None:
    recording_conn.queue({"column_name": "id"})
    recording_conn.queue({"id": 42})

    new_id = pg_dbh.insert_row("accounts", {"email": "anna@example.com"})

    lookup_sql, lookup_args = recording_conn.calls[0]
    insert_sql, insert_args = recording_conn.calls[1]
    assert new_id == 42
    assert pg_dbh.affected_rows == 1
    assert lookup_args == (None, "accounts")
    assert insert_sql.endswith("\nRETURNING id")
    assert insert_args == ("anna@example.com",)
    assert all("lastval" not in sql for sql, _ in recording_conn.calls)


def test_insert_row_without_generated_key_returns_none(pg_dbh: DBHandle, recording_conn: Any) -> None:
    recording_conn.queue()

    assert pg_dbh.insert_row("tags", {"name": "x"}) is None

    insert_sql, insert_args = recording_conn.calls[1]
    assert insert_sql.startswith("INSERT INTO tags")
    assert "RETURNING" not in insert_sql
    assert insert_args == ("x",)
    assert len(recording_conn.calls) == 2


def test_insert_row_with_explicit_id_column_skips_lookup(pg_dbh: DBHandle, recording_conn: Any) -> None:
    recording_conn.queue({"code": "NL"})

    assert pg_dbh.insert_row("countries", {"code": "NL"}, id_column="code") == "NL"
    assert len(recording_conn.calls) == 1
    assert recording_conn.calls[0][0].endswith("RETURNING code")


def test_schema_qualified_tables_query_their_schema(pg_dbh: DBHandle, recording_conn: Any) -> None:
    recording_conn.queue({"table_name": "events"})
    recording_conn.queue({"table_name": "events"})
    recording_conn.queue({"field": "id", "type": "integer", "null": "NO", "default": None})

    assert pg_dbh.table_exists("audit.events") is True
    columns = pg_dbh.list_columns("audit.events")

    assert [col["field"] for col in columns] == ["id"]
    assert recording_conn.calls[0][1] == ("audit",)
    assert recording_conn.calls[1][1] == ("audit",)
    assert recording_conn.calls[2][1] == ("audit", "events")


def test_unqualified_tables_use_current_schema(pg_dbh: DBHandle, recording_conn: Any) -> None:
    recording_conn.queue({"table_name": "accounts"})

    assert pg_dbh.table_exists("accounts") is True
    assert "current_schema()" in recording_conn.calls[0][0]
    assert recording_conn.calls[0][1] == (None,)
