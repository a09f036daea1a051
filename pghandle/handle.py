"""Connection handle: one live connection, profiling and the fetch/execute primitives."""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from typing import Any, Coroutine, Mapping

import asyncpg

from .config import HandleConfig
from .dialects import Dialect, get_dialect
from .errors import (
    DatabaseConnectionError,
    FoundRowsUnavailableError,
    PgHandleError,
    QueryExecutionError,
    simplify_error,
)
from .models import QueryLogEntry, Row
from .querylog import render_html, render_text
from .statements import build_found_rows_query, compile_named, normalize_binds, quote_literal

LOG = logging.getLogger(__name__)

DRIVER_ERRORS: tuple[type[BaseException], ...] = (asyncpg.PostgresError, asyncpg.InterfaceError)

Binds = Mapping[str, Any] | None


class ConnectionHandle:
    """Blocking wrapper around a single asyncpg connection.

    asyncpg is driven from a private event loop running in a daemon thread, so
    every public method blocks until the driver returns. Access is serialised
    with a re-entrant lock; compound operations (insert + last id, query +
    found rows) hold it for their whole duration.

    An injected ``connection`` must expose asyncpg's coroutine API (``fetch``,
    ``execute``, ``close``) and be usable from the handle's own loop.
    """

    def __init__(
        self,
        config: HandleConfig | None = None,
        *,
        connection: Any | None = None,
        dialect: Dialect | None = None,
    ) -> None:
        config = config or HandleConfig()
        self._config = config
        self._debug = config.debug
        self._dialect = dialect or get_dialect(config.type)
        self._connection_details = "not connected"
        self._profiling_enabled = False
        self._profiling_log_results_enabled = False
        self._start_time: float | None = None
        self._query_timer: float | None = None
        self._query_log: list[QueryLogEntry] = []
        self._found_rows: int | None = None
        self._affected_rows: int | None = None
        self._closed = False
        self._lock = threading.RLock()
        self.enable_profiling(config.profiling_enabled)
        self.enable_profiling_result_logging(config.profiling_log_results_enabled)
        self._loop = asyncio.new_event_loop()
        self._loop_thread = threading.Thread(
            target=self._loop.run_forever,
            name="pghandle-loop",
            daemon=True,
        )
        self._loop_thread.start()

        if connection is not None:
            self._conn = connection
            self._connection_details = "Using provided connection object"
            return

        self._connection_details = config.describe()
        try:
            self._conn = self._run(self._connect(config))
        except DatabaseConnectionError:
            self._stop_loop()
            raise

    @classmethod
    def open(cls, config: HandleConfig | None = None, **kwargs: Any) -> ConnectionHandle:
        """Connect and return a ready handle."""

        return cls(config, **kwargs)

    def __enter__(self) -> ConnectionHandle:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __del__(self) -> None:  # pragma: no cover - best effort cleanup
        try:
            self._stop_loop()
        except Exception:
            pass

    @property
    def connection(self) -> Any:
        """The underlying driver connection."""

        return self._conn

    @property
    def connection_details(self) -> str:
        return self._connection_details

    @property
    def dialect(self) -> Dialect:
        return self._dialect

    @property
    def debug(self) -> bool:
        return self._debug

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def affected_rows(self) -> int | None:
        """Row count the driver reported for the last successful ``execute``."""

        return self._affected_rows

    def close(self) -> None:
        """Close the connection and stop the private loop. Safe to call twice."""

        with self._lock:
            if self._closed:
                return
            try:
                self._run(self._conn.close())
            finally:
                self._closed = True
                self._stop_loop()

    # -- escaping ---------------------------------------------------------

    def quote(self, value: Any, wrap: bool = True) -> Any:
        """Escape a value, or each element of a list/dict, for literal SQL use."""

        return quote_literal(value, wrap)

    # -- profiling --------------------------------------------------------

    @property
    def profiling_enabled(self) -> bool:
        return self._profiling_enabled

    @property
    def profiling_log_results_enabled(self) -> bool:
        return self._profiling_log_results_enabled

    @property
    def start_time(self) -> float | None:
        """``perf_counter`` value when profiling was last enabled."""

        return self._start_time

    @property
    def query_log(self) -> tuple[QueryLogEntry, ...]:
        return tuple(self._query_log)

    def enable_profiling(self, on: bool = True) -> bool:
        if on:
            self._profiling_enabled = True
            self._start_time = time.perf_counter()
            return True
        self._profiling_enabled = False
        self._start_time = None
        return False

    def enable_profiling_result_logging(self, on: bool = True) -> bool:
        """Keep full result sets in the log. Memory grows with every query."""

        self._profiling_log_results_enabled = bool(on)
        return self._profiling_log_results_enabled

    def reset_query_timer(self) -> bool:
        """Mark the start of the next query; no-op unless profiling."""

        if not self._profiling_enabled:
            return False
        self._query_timer = time.perf_counter()
        return True

    def log_query(
        self,
        sql: str,
        binds: Binds = None,
        results: Any = None,
        start_time: float | None = None,
        end_time: float | None = None,
    ) -> bool:
        """Append a query log entry; returns False when nothing was logged."""

        if not self._profiling_enabled:
            return False
        if start_time is None:
            start_time = self._query_timer
        if end_time is None:
            end_time = time.perf_counter()
        if not sql or start_time is None:
            return False
        if end_time < start_time:
            return False
        self._query_log.append(
            QueryLogEntry(
                sql=sql,
                binds=normalize_binds(binds),
                start_time=start_time,
                end_time=end_time,
                results=results if self._profiling_log_results_enabled else None,
            )
        )
        return True

    def clear_query_log(self) -> None:
        self._query_log.clear()

    def total_query_time(self) -> float:
        return sum(entry.duration for entry in self._query_log)

    def render_query_log(self, as_plain_text: bool = False) -> str:
        if not self._profiling_enabled:
            return "Profiling is not enabled."
        if as_plain_text:
            return render_text(self._query_log)
        return render_html(
            self._query_log,
            self._start_time,
            include_results=self._profiling_log_results_enabled,
        )

    # -- execution primitives --------------------------------------------

    def fetch_rows(
        self,
        sql: str,
        binds: Binds = None,
        key_column: str | None = None,
        found_rows: bool = False,
    ) -> list[Row] | dict[Any, Row]:
        """Run a read query and return its rows as dicts.

        With ``key_column`` the rows come back in a dict keyed by that
        column's value. Rows without a value for the key are skipped, and when
        several rows share a key the last one wins.

        With ``found_rows`` the handle also counts every row the query would
        match without its LIMIT/OFFSET; read the total back with
        ``previous_query_row_count()`` before running anything else.
        """

        with self._lock:
            records = self._query(sql, binds)
            rows = [dict(record) for record in records]
            self.log_query(sql, binds, rows)
            if found_rows:
                count_sql = build_found_rows_query(sql, dialect=self._dialect.sqlglot_dialect)
                total = self.fetch_scalar(count_sql, binds)
                self._found_rows = int(total or 0)
        if key_column is None:
            return rows
        keyed: dict[Any, Row] = {}
        for row in rows:
            value = row.get(key_column)
            if value is None:
                continue
            keyed[value] = row
        return keyed

    def fetch_one_row(self, sql: str, binds: Binds = None) -> Row:
        rows = self.fetch_rows(sql, binds)
        return rows[0] if rows else {}

    def fetch_column(self, sql: str, binds: Binds = None) -> list[Any]:
        """Values of the first selected column across all rows."""

        with self._lock:
            records = self._query(sql, binds)
            values = [record[0] for record in records]
            self.log_query(sql, binds, values)
        return values

    def fetch_scalar(self, sql: str, binds: Binds = None) -> Any:
        """First value of the first row, or None, e.g. ``SELECT COUNT(*) FROM t``."""

        values = self.fetch_column(sql, binds)
        return values[0] if values else None

    def execute(self, sql: str, binds: Binds = None) -> bool:
        """Run a statement that returns no rows (insert, update, delete, DDL).

        Returns True on success. Driver errors are logged and reported as
        False rather than raised.
        """

        with self._lock:
            compiled, args = compile_named(sql, binds)
            self._found_rows = None
            self.reset_query_timer()
            LOG.debug("Executing statement", extra={"sql": sql})
            try:
                status = self._run(self._conn.execute(compiled, *args))
            except DRIVER_ERRORS as exc:
                LOG.warning("Statement failed: %s", simplify_error(exc), extra={"sql": sql})
                self._affected_rows = None
                self.log_query(sql, binds, False)
                return False
            self._affected_rows = _status_row_count(status)
            self.log_query(sql, binds, True)
            return True

    def last_insert_id(self) -> Any:
        """Last value any sequence produced on this connection, or None.

        This is session-wide (``lastval()`` on Postgres), so a trigger or an insert
        into another table moves it. ``DBHandle.insert_row`` returns the id of its
        own row via RETURNING instead.
        """

        try:
            return self.fetch_scalar(self._dialect.last_insert_id_query)
        except QueryExecutionError as exc:
            LOG.debug("No insert id available: %s", exc)
            return None

    def previous_query_row_count(self) -> int:
        """Total rows matched by the preceding ``fetch_rows(..., found_rows=True)``.

        Only valid immediately after such a call; anything else raises
        FoundRowsUnavailableError.
        """

        if self._found_rows is None:
            raise FoundRowsUnavailableError(
                "The previous query did not request a found-rows total; "
                "call fetch_rows(..., found_rows=True) first."
            )
        return self._found_rows

    # -- internals --------------------------------------------------------

    def _query(self, sql: str, binds: Binds) -> list[Any]:
        compiled, args = compile_named(sql, binds)
        self._found_rows = None
        self.reset_query_timer()
        LOG.debug("Executing query", extra={"sql": sql})
        try:
            return self._run(self._conn.fetch(compiled, *args))
        except DRIVER_ERRORS as exc:
            raise QueryExecutionError(simplify_error(exc)) from exc

    async def _connect(self, config: HandleConfig) -> Any:
        try:
            return await asyncpg.connect(**config.connect_kwargs())
        except Exception as exc:
            message = simplify_error(exc)
            if self._debug:
                LOG.error(
                    "Connection failed: %s",
                    message,
                    extra={"connection": self._connection_details},
                )
            raise DatabaseConnectionError(str(exc) or exc.__class__.__name__) from exc

    def _run(self, coro: Coroutine[Any, Any, Any]) -> Any:
        if self._closed:
            coro.close()
            raise PgHandleError("Handle is closed.")
        future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        return future.result()

    def _stop_loop(self) -> None:
        if not self._loop.is_running():
            return
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._loop_thread.join(timeout=1)
        if not self._loop.is_running():
            self._loop.close()


def _status_row_count(status: object) -> int | None:
    """Parse the trailing row count of a command tag such as ``UPDATE 3``."""

    if not isinstance(status, str):
        return None
    parts = status.split()
    if len(parts) < 2 or not parts[-1].isdigit():
        return None
    return int(parts[-1])


__all__ = ["ConnectionHandle", "DRIVER_ERRORS"]
