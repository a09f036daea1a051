"""Textual query console: run statements through a handle and watch its query log."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from textual.app import App, ComposeResult
from textual.widgets import Footer, Header

from .config import AppConfig, load_config
from .errors import DatabaseConnectionError, PgHandleError
from .helpers import DBHandle
from .widgets import QueryLogTable, QueryPad, StatusBar

LOG = logging.getLogger(__name__)


def _load_app_config() -> AppConfig:
    """Load configuration with a small wrapper for test overrides."""

    return load_config()


class QueryConsoleApp(App[None]):
    """Diagnostics console around a single DBHandle."""

    TITLE = "pghandle"
    CSS = """
    Screen {
        layout: vertical;
    }
    """

    BINDINGS = [
        ("ctrl+c", "quit", "Quit"),
        ("ctrl+l", "clear_log", "Clear Log"),
        ("ctrl+t", "list_tables", "Tables"),
    ]

    def __init__(self, handle: DBHandle, *, profile_name: str | None = None) -> None:
        super().__init__()
        self._handle = handle
        self._profile_name = profile_name
        self._log_table: QueryLogTable | None = None
        self._status_bar: StatusBar | None = None

    @property
    def handle(self) -> DBHandle:
        return self._handle

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        yield QueryPad(self._handle)
        self._log_table = QueryLogTable(self._handle)
        yield self._log_table
        self._status_bar = StatusBar(self._handle, profile_name=self._profile_name)
        yield self._status_bar
        yield Footer()

    def on_query_pad_executed(self, event: QueryPad.Executed) -> None:
        self._refresh_diagnostics()

    def action_clear_log(self) -> None:
        self._handle.clear_query_log()
        self._refresh_diagnostics()

    async def action_list_tables(self) -> None:
        try:
            tables = await asyncio.to_thread(self._handle.list_tables)
        except PgHandleError as exc:
            self.notify(f"Could not list tables: {exc}", severity="error")
            return
        self._refresh_diagnostics()
        self.notify(", ".join(tables) or "No tables found.", title="Tables")

    def _refresh_diagnostics(self) -> None:
        if self._log_table is not None:
            self._log_table.refresh_log()
        if self._status_bar is not None:
            self._status_bar.refresh_status()


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Interactive query console with profiling.")
    parser.add_argument("--profile", help="Connection profile name from config.toml")
    parser.add_argument(
        "--log-results",
        action="store_true",
        help="Keep full result sets in the query log",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Open a handle for the chosen profile and run the console."""

    args = parse_args(sys.argv[1:] if argv is None else argv)
    config = _load_app_config()
    try:
        handle_config = config.handle_config(args.profile)
    except ValueError as exc:
        print(exc, file=sys.stderr)
        return 2
    handle_config = handle_config.model_copy(
        update={
            "profiling_enabled": True,
            "profiling_log_results_enabled": args.log_results or handle_config.profiling_log_results_enabled,
        }
    )
    try:
        handle = DBHandle.open(handle_config)
    except DatabaseConnectionError as exc:
        LOG.debug("Console could not connect", exc_info=True)
        print(f"Could not connect: {exc}", file=sys.stderr)
        return 1
    profile_name = args.profile or config.active_profile or (config.profiles[0].name if config.profiles else None)
    try:
        QueryConsoleApp(handle, profile_name=profile_name).run()
    finally:
        handle.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
