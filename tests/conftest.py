"""Shared fixtures: a SQLite-backed stand-in and a recording asyncpg connection."""

from __future__ import annotations

import re
import sqlite3
from typing import Any, Iterator

import asyncpg
import pytest

from pghandle.config import HandleConfig
from pghandle.dialects import POSTGRES, Dialect
from pghandle.helpers import DBHandle

SQLITE = Dialect(
    name="sqlite",
    sqlglot_dialect="sqlite",
    tables_query="SELECT name FROM sqlite_master WHERE type = 'table' AND name NOT LIKE 'sqlite_%' ORDER BY name",
    columns_query=(
        "SELECT name AS field, type AS type, "
        "CASE WHEN \"notnull\" THEN 'NO' ELSE 'YES' END AS \"null\", "
        "dflt_value AS \"default\" "
        "FROM pragma_table_info(:table)"
    ),
    generated_key_query="SELECT name FROM pragma_table_info(:table) WHERE pk = 1 AND lower(type) = 'integer'",
    last_insert_id_query="SELECT last_insert_rowid()",
)

_POSITIONAL = re.compile(r"\$(\d+)")


class SqliteConnection:
    """Speaks asyncpg's coroutine API on top of an in-memory SQLite database."""

    def __init__(self) -> None:
        self._db = sqlite3.connect(":memory:", check_same_thread=False, isolation_level=None)
        self._db.row_factory = sqlite3.Row
        self.closed = False
        self.statements: list[tuple[str, tuple[object, ...]]] = []

    async def fetch(self, sql: str, *args: object) -> list[sqlite3.Row]:
        cursor = self._run(sql, args)
        return cursor.fetchall()

    async def execute(self, sql: str, *args: object) -> str:
        cursor = self._run(sql, args)
        verb = sql.split(None, 1)[0].upper()
        if cursor.rowcount < 0:
            return verb
        if verb == "INSERT":
            return f"INSERT 0 {cursor.rowcount}"
        return f"{verb} {cursor.rowcount}"

    async def close(self) -> None:
        self.closed = True
        self._db.close()

    def _run(self, sql: str, args: tuple[object, ...]) -> sqlite3.Cursor:
        self.statements.append((sql, args))
        try:
            return self._db.execute(_POSITIONAL.sub(r"?\1", sql), args)
        except sqlite3.IntegrityError as exc:
            if "NOT NULL" in str(exc):
                raise asyncpg.exceptions.NotNullViolationError(str(exc)) from exc
            raise asyncpg.exceptions.IntegrityConstraintViolationError(str(exc)) from exc
        except sqlite3.Error as exc:
            raise asyncpg.PostgresError(str(exc)) from exc


class FakeRecord(dict):
    """Dict that also answers positional lookups, like asyncpg.Record."""

    def __getitem__(self, key: Any) -> Any:
        if isinstance(key, int):
            return list(self.values())[key]
        return super().__getitem__(key)


class RecordingConnection:
    """Records every statement; ``fetch`` replays queued result sets in order."""

    def __init__(self) -> None:
        self.closed = False
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.results: list[list[FakeRecord]] = []

    def queue(self, *rows: dict[str, Any]) -> None:
        self.results.append([FakeRecord(row) for row in rows])

    async def fetch(self, sql: str, *args: Any) -> list[FakeRecord]:
        self.calls.append((sql, args))
        return self.results.pop(0) if self.results else []

    async def execute(self, sql: str, *args: Any) -> str:
        self.calls.append((sql, args))
        return "UPDATE 0"

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def sqlite_conn() -> SqliteConnection:
    return SqliteConnection()


@pytest.fixture
def recording_conn() -> RecordingConnection:
    return RecordingConnection()


@pytest.fixture
def pg_dbh(recording_conn: RecordingConnection) -> Iterator[DBHandle]:
    """Handle speaking the Postgres dialect to a recording connection."""

    handle = DBHandle(connection=recording_conn)
    assert handle.dialect is POSTGRES
    try:
        yield handle
    finally:
        handle.close()


@pytest.fixture
def dbh(sqlite_conn: SqliteConnection) -> Iterator[DBHandle]:
    handle = DBHandle(
        HandleConfig(profiling_enabled=True),
        connection=sqlite_conn,
        dialect=SQLITE,
    )
    handle.execute(
        """
        CREATE TABLE t (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            a INTEGER,
            b INTEGER,
            x INTEGER,
            name TEXT NOT NULL DEFAULT ''
        )
        """
    )
    handle.clear_query_log()
    try:
        yield handle
    finally:
        handle.close()
