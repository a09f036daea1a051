"""App-level tests for the query console."""

from __future__ import annotations

import threading
from typing import Any

import pytest

from pghandle.app import QueryConsoleApp, main
from pghandle.config import AppConfig
from pghandle.helpers import DBHandle
from pghandle.widgets import QueryLogTable, QueryPad, StatusBar
from pghandle.widgets.query_pad import returns_rows


@pytest.mark.anyio
async def test_query_pad_runs_statements_and_updates_log(dbh: DBHandle) -> None:
    app = QueryConsoleApp(dbh, profile_name="Test")

    async with app.run_test() as pilot:
        pad = app.query_one(QueryPad)
        await pad.run_sql("INSERT INTO t (a, name) VALUES (1, 'one')")
        await pilot.pause()
        assert pad.status_text == "✔ 1 row(s) affected"

        await pad.run_sql("SELECT a, name FROM t")
        await pilot.pause()
        assert pad.status_text == "✔ 1 row(s)"

        log_table = app.query_one(QueryLogTable)
        status = app.query_one(StatusBar)
        assert log_table.row_count == 2
        assert "Profile: Test" in status.text
        assert "Queries: 2" in status.text


@pytest.mark.anyio
async def test_query_pad_reports_errors(dbh: DBHandle) -> None:
    app = QueryConsoleApp(dbh)

    async with app.run_test() as pilot:
        pad = app.query_one(QueryPad)
        await pad.run_sql("SELECT * FROM no_such_table")
        await pilot.pause()
        assert pad.status_text.startswith("✖ Error:")

        await pad.run_sql("   ")
        assert pad.status_text == "⚠ Enter SQL to run."


@pytest.mark.anyio
async def test_clear_log_action_empties_table(dbh: DBHandle) -> None:
    app = QueryConsoleApp(dbh)

    async with app.run_test() as pilot:
        await app.query_one(QueryPad).run_sql("SELECT 1")
        await pilot.pause()
        assert app.query_one(QueryLogTable).row_count == 1

        await app.run_action("clear_log")
        await pilot.pause()

        assert dbh.query_log == ()
        assert app.query_one(QueryLogTable).row_count == 0


def test_returns_rows_by_leading_keyword() -> None:
    assert returns_rows("  select 1")
    assert returns_rows("WITH x AS (SELECT 1) SELECT * FROM x")
    assert not returns_rows("UPDATE t SET a = 1")
    assert not returns_rows("")


def test_main_reports_unknown_profile(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("pghandle.app._load_app_config", lambda: AppConfig())

    assert main(["--profile", "Nope"]) == 2


def test_main_reports_connection_failures(monkeypatch: pytest.MonkeyPatch) -> None:
    async def _broken_connect(**kwargs: Any) -> None:
        raise OSError("connection refused")

    monkeypatch.setattr("pghandle.app._load_app_config", lambda: AppConfig())
    monkeypatch.setattr("pghandle.handle.asyncpg.connect", _broken_connect)

    assert main([]) == 1


@pytest.mark.anyio
async def test_query_pad_keeps_handle_calls_off_the_ui_thread(
    dbh: DBHandle, monkeypatch: pytest.MonkeyPatch
) -> None:
    threads: list[threading.Thread] = []
    fetch_rows = dbh.fetch_rows

    def _recording_fetch_rows(*args: Any, **kwargs: Any) -> Any:
        threads.append(threading.current_thread())
        return fetch_rows(*args, **kwargs)

    monkeypatch.setattr(dbh, "fetch_rows", _recording_fetch_rows)
    app = QueryConsoleApp(dbh)

    async with app.run_test() as pilot:
        await app.query_one(QueryPad).run_sql("SELECT 1")
        await pilot.pause()

    assert len(threads) == 1
    assert threads[0] is not threading.current_thread()
